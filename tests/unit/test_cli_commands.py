"""Unit tests for the CLI — command registration, config loading and output.

Exercises the Typer app via typer.testing.CliRunner and the config loader
directly against temporary config files.
"""

from __future__ import annotations

import asyncio
import logging
import textwrap

import pytest
from rich.logging import RichHandler
from typer.testing import CliRunner

from dromedary.cli.app import app
from dromedary.cli.commands.routes import _describe
from dromedary.cli.loader import CONFIG_CANDIDATES, find_config, load_config
from dromedary.cli.log_setup import configure_logging
from dromedary.core.registry import ComponentRegistry
from dromedary.errors import ConfigurationError
from dromedary.models.config import RuntimeConfig

runner = CliRunner()

CONFIG_SOURCE = textwrap.dedent(
    """
    from dromedary import define_config, route_from
    from dromedary.components import CronComponent, EmailComponent

    config = define_config(
        components={"cron": CronComponent(timezone="UTC"), "email": EmailComponent()},
        routes=[route_from("cron:*/5 * * * *").to("email:ops").named("heartbeat")],
    )
    """
)


@pytest.fixture(autouse=True)
def _restore_dromedary_logger():
    """`run` configures logging; undo it so other tests see a clean logger."""
    log = logging.getLogger("dromedary")
    handlers, level = list(log.handlers), log.level
    yield
    for handler in list(log.handlers):
        if handler not in handlers:
            log.removeHandler(handler)
    log.setLevel(level)


def _write(directory, name, source):
    path = directory / name
    path.write_text(textwrap.dedent(source))
    return path


# ---------------------------------------------------------------------------
# Test: CLI help and registration
# ---------------------------------------------------------------------------


class TestCliApp:
    """The CLI must register all expected commands and show help."""

    def test_no_args_shows_help(self):
        result = runner.invoke(app, [])
        # Typer's no_args_is_help may exit with 0 or 2 depending on version
        assert result.exit_code in (0, 2)
        assert "usage" in result.output.lower()

    def test_help_lists_commands(self):
        result = runner.invoke(app, ["--help"])
        assert result.exit_code == 0
        assert "run" in result.output
        assert "routes" in result.output

    @pytest.mark.parametrize("command", ["run", "routes"])
    def test_command_help(self, command):
        result = runner.invoke(app, [command, "--help"])
        assert result.exit_code == 0
        assert "--config" in result.output


class TestRoutesCommand:
    """`dromedary routes` renders the configured routes."""

    def test_lists_routes(self, tmp_path):
        path = _write(tmp_path, "dromedary.config.py", CONFIG_SOURCE)
        result = runner.invoke(app, ["routes", "--config", str(path)])
        assert result.exit_code == 0
        assert "heartbeat" in result.output

    def test_empty_config(self, tmp_path):
        path = _write(tmp_path, "empty.py", "config = {'components': {}, 'routes': []}\n")
        result = runner.invoke(app, ["routes", "-c", str(path)])
        assert result.exit_code == 0
        assert "No routes configured" in result.output

    def test_missing_config_exits_1(self, tmp_path):
        result = runner.invoke(app, ["routes", "--config", str(tmp_path / "nope.py")])
        assert result.exit_code == 1

    def test_describe_marks_resolution(self, source, sink):
        registry = ComponentRegistry({"source": source, "sink": sink})
        assert _describe("source:a", registry, "consumer") == "[green]source:a[/green]"
        assert "no consumer" in _describe("sink:a", registry, "consumer")
        assert "no component" in _describe("ghost:a", registry, "producer")
        assert "invalid" in _describe("nocolon", registry, "producer")


class TestRunCommand:
    """`dromedary run` fails fast on configuration problems."""

    def test_missing_config_exits_1(self, tmp_path):
        result = runner.invoke(app, ["run", "--config", str(tmp_path / "missing.py")])
        assert result.exit_code == 1
        assert "failed" in result.output

    def test_invalid_config_exits_1(self, tmp_path):
        path = _write(tmp_path, "bad.py", "config = ['not', 'a', 'config']\n")
        result = runner.invoke(app, ["run", "--config", str(path)])
        assert result.exit_code == 1


# ---------------------------------------------------------------------------
# Test: config discovery and loading
# ---------------------------------------------------------------------------


class TestFindConfig:
    """Candidates are tried in order; an explicit path must exist."""

    def test_first_candidate_wins(self, tmp_path):
        for name in CONFIG_CANDIDATES:
            _write(tmp_path, name, "config = {}\n")
        assert find_config(tmp_path).name == CONFIG_CANDIDATES[0]

    def test_second_candidate(self, tmp_path):
        _write(tmp_path, "dromedary_config.py", "config = {}\n")
        assert find_config(tmp_path).name == "dromedary_config.py"

    def test_nothing_found(self, tmp_path):
        with pytest.raises(ConfigurationError, match="No config file found"):
            find_config(tmp_path)

    def test_relative_override(self, tmp_path):
        (tmp_path / "conf").mkdir()
        _write(tmp_path / "conf", "routes.py", "config = {}\n")
        assert find_config(tmp_path, tmp_path / "conf" / "routes.py").name == "routes.py"
        assert find_config(tmp_path, "conf/routes.py").parent.name == "conf"

    def test_missing_override(self, tmp_path):
        with pytest.raises(ConfigurationError, match="Config file not found"):
            find_config(tmp_path, "absent.py")


class TestLoadConfig:
    """Config modules export `config` as a value or (async) factory."""

    def test_runtime_config(self, tmp_path):
        runtime = asyncio.run(load_config(_write(tmp_path, "c.py", CONFIG_SOURCE)))
        assert isinstance(runtime, RuntimeConfig)
        assert sorted(runtime.components) == ["cron", "email"]
        assert runtime.routes[0].label == "heartbeat"

    def test_sync_factory(self, tmp_path):
        path = _write(
            tmp_path,
            "c.py",
            """
            def config():
                return {"components": {}, "routes": []}
            """,
        )
        assert asyncio.run(load_config(path)).routes == ()

    def test_async_factory_with_plugins(self, tmp_path):
        path = _write(
            tmp_path,
            "c.py",
            """
            from dromedary import route_from
            from dromedary.components import EmailComponent

            async def config():
                return {
                    "components": {},
                    "routes": [],
                    "plugins": [
                        lambda ctx: {
                            "components": {"email": EmailComponent()},
                            "routes": [route_from("cron:0 * * * *").to("email:ops")],
                        }
                    ],
                }
            """,
        )
        runtime = asyncio.run(load_config(path))
        assert list(runtime.components) == ["email"]
        assert runtime.plugins == ()
        assert len(runtime.routes) == 1

    def test_missing_export(self, tmp_path):
        path = _write(tmp_path, "c.py", "settings = {}\n")
        with pytest.raises(ConfigurationError, match="does not define `config`"):
            asyncio.run(load_config(path))

    def test_import_error(self, tmp_path):
        path = _write(tmp_path, "c.py", "import dromedary_no_such_module\n")
        with pytest.raises(ConfigurationError, match="Failed to import"):
            asyncio.run(load_config(path))

    def test_factory_error(self, tmp_path):
        path = _write(
            tmp_path,
            "c.py",
            """
            def config():
                raise RuntimeError("secrets unavailable")
            """,
        )
        with pytest.raises(ConfigurationError, match="secrets unavailable"):
            asyncio.run(load_config(path))

    def test_invalid_shape(self, tmp_path):
        path = _write(tmp_path, "c.py", "config = {'routes': [], 'extras': True}\n")
        with pytest.raises(ConfigurationError, match="Unknown configuration key"):
            asyncio.run(load_config(path))


class TestConfigureLogging:
    """The CLI installs exactly one Rich handler on the dromedary logger."""

    def test_single_handler_and_level(self):
        log = logging.getLogger("dromedary")
        configure_logging("debug")
        configure_logging("warning")
        rich_handlers = [h for h in log.handlers if isinstance(h, RichHandler)]
        assert len(rich_handlers) == 1
        assert log.level == logging.WARNING
        assert log.propagate
