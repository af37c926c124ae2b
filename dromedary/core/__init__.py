"""Dromedary routing core — endpoint parsing, registry, routes, pool and engine."""
