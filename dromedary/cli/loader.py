"""Locating and importing Python configuration files.

A configuration file is an ordinary Python module exposing ``config``:
a ``RuntimeConfig`` (usually from ``define_config``), a mapping with
``components``/``routes``/``plugins``, or a sync or async callable
returning either.
"""

from __future__ import annotations

import hashlib
import importlib.util
import inspect
import logging
from pathlib import Path

from dromedary.errors import ConfigurationError
from dromedary.models.config import RuntimeConfig, coerce_config

logger = logging.getLogger(__name__)

CONFIG_CANDIDATES = ("dromedary.config.py", "dromedary_config.py")


def find_config(cwd: Path, override: Path | None = None) -> Path:
    """Return the configuration file to load.

    Raises
    ------
    ConfigurationError
        If *override* does not exist, or no candidate exists in *cwd*.
    """
    if override is not None:
        resolved = (cwd / override).resolve()
        if not resolved.is_file():
            raise ConfigurationError(f"Config file not found: {resolved}")
        return resolved

    for name in CONFIG_CANDIDATES:
        candidate = cwd / name
        if candidate.is_file():
            return candidate.resolve()

    raise ConfigurationError(
        "No config file found.\n"
        f"Tried: {', '.join(CONFIG_CANDIDATES)}\n"
        "Override with: --config <file>"
    )


async def load_config(path: Path) -> RuntimeConfig:
    """Import *path* and return its resolved ``RuntimeConfig``."""
    digest = hashlib.sha1(str(path).encode("utf-8")).hexdigest()[:12]
    spec = importlib.util.spec_from_file_location(f"_dromedary_config_{digest}", path)
    if spec is None or spec.loader is None:
        raise ConfigurationError(f"Cannot import config file {path}")

    module = importlib.util.module_from_spec(spec)
    try:
        spec.loader.exec_module(module)
    except Exception as exc:
        raise ConfigurationError(f"Failed to import config {path.name}: {exc}") from exc

    exported = getattr(module, "config", None)
    if exported is None:
        raise ConfigurationError(f"Config file {path.name!r} does not define `config`.")

    if callable(exported) and not isinstance(exported, RuntimeConfig):
        try:
            exported = exported()
            if inspect.isawaitable(exported):
                exported = await exported
        except ConfigurationError:
            raise
        except Exception as exc:
            raise ConfigurationError(f"Config factory in {path.name} failed: {exc}") from exc

    runtime = coerce_config(exported).resolve()
    logger.info(
        "Loaded %s: %d component(s), %d route(s)",
        path.name,
        len(runtime.components),
        len(runtime.routes),
    )
    return runtime
