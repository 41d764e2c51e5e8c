"""Tests for the diagnostics system.

Covers:
- NO_COLOR / TERM=dumb color disabling
- Everything goes to stderr, nothing to stdout
- Quiet mode suppression rules
- Verbose mode debug output
- Markup in messages is printed literally
- Global instance management
- Convenience functions
"""

from __future__ import annotations

import pytest

from apibuilder import output as output_module
from apibuilder.output import (
    OutputManager,
    _should_disable_color,
    get_output,
    reset_output,
    set_output,
)


# ------------------------------------------------------------------ #
# Fixtures
# ------------------------------------------------------------------ #


@pytest.fixture(autouse=True)
def _reset_global_output():
    """Ensure the global output instance is reset between tests."""
    reset_output()
    yield
    reset_output()


@pytest.fixture()
def color_env(monkeypatch):
    """Clear the variables that switch colour off."""
    monkeypatch.delenv("NO_COLOR", raising=False)
    monkeypatch.setenv("TERM", "xterm-256color")


# ------------------------------------------------------------------ #
# Color disabling
# ------------------------------------------------------------------ #


class TestColorDisabling:
    """Test that NO_COLOR and TERM=dumb are respected."""

    def test_no_color_env_disables_color(self, monkeypatch):
        monkeypatch.setenv("NO_COLOR", "")
        assert _should_disable_color() is True

    def test_no_color_env_any_value(self, monkeypatch):
        monkeypatch.setenv("NO_COLOR", "yes")
        assert _should_disable_color() is True

    def test_term_dumb_disables_color(self, monkeypatch):
        monkeypatch.delenv("NO_COLOR", raising=False)
        monkeypatch.setenv("TERM", "dumb")
        assert _should_disable_color() is True

    def test_normal_term_keeps_color(self, color_env):
        assert _should_disable_color() is False

    def test_no_color_env_forces_plain_prefixes(self, capfd, monkeypatch):
        monkeypatch.setenv("NO_COLOR", "1")
        OutputManager().warning("careful")
        assert capfd.readouterr().err == "Warning: careful\n"


# ------------------------------------------------------------------ #
# stderr discipline
# ------------------------------------------------------------------ #


class TestStderrDiscipline:
    """Every diagnostic goes to stderr; stdout stays empty."""

    @pytest.mark.parametrize("method", ["info", "success", "warning", "error", "progress"])
    def test_plain_goes_to_stderr(self, capfd, method):
        mgr = OutputManager(no_color=True)
        getattr(mgr, method)("some message")
        captured = capfd.readouterr()
        assert captured.out == ""
        assert "some message" in captured.err

    @pytest.mark.parametrize("method", ["info", "success", "warning", "error", "progress"])
    def test_rich_goes_to_stderr(self, capfd, color_env, method):
        mgr = OutputManager()
        getattr(mgr, method)("some message")
        captured = capfd.readouterr()
        assert captured.out == ""
        assert "some message" in captured.err

    def test_error_prefix(self, capfd):
        OutputManager(no_color=True).error("something broke")
        assert capfd.readouterr().err == "Error: something broke\n"


# ------------------------------------------------------------------ #
# Quiet / verbose
# ------------------------------------------------------------------ #


class TestQuietMode:
    """--quiet hides informational messages only."""

    @pytest.mark.parametrize("method", ["info", "success", "progress"])
    def test_quiet_suppresses(self, capfd, method):
        getattr(OutputManager(no_color=True, quiet=True), method)("hidden")
        assert capfd.readouterr().err == ""

    @pytest.mark.parametrize("method", ["warning", "error"])
    def test_quiet_keeps(self, capfd, method):
        getattr(OutputManager(no_color=True, quiet=True), method)("shown")
        assert "shown" in capfd.readouterr().err

    def test_quiet_property(self):
        assert OutputManager(quiet=True).is_quiet


class TestVerboseMode:
    """--verbose reveals debug messages."""

    def test_debug_hidden_by_default(self, capfd):
        OutputManager(no_color=True).debug("internal")
        assert capfd.readouterr().err == ""

    def test_debug_shown_with_verbose(self, capfd):
        OutputManager(no_color=True, verbose=True).debug("internal")
        assert capfd.readouterr().err == "[debug] internal\n"

    def test_debug_rich(self, capfd, color_env):
        OutputManager(verbose=True).debug("internal")
        assert "[debug] internal" in capfd.readouterr().err

    def test_verbose_property(self):
        assert OutputManager(verbose=True).is_verbose
        assert not OutputManager().is_verbose


class TestMarkupEscaping:
    """Spec-supplied text never turns into Rich markup."""

    def test_brackets_printed_literally(self, capfd, color_env):
        OutputManager().info("route [bold]/find[/bold]")
        assert "route [bold]/find[/bold]" in capfd.readouterr().err


# ------------------------------------------------------------------ #
# Global instance
# ------------------------------------------------------------------ #


class TestGlobalInstance:
    """Test get_output / set_output / reset_output."""

    def test_get_output_creates_default(self):
        assert isinstance(get_output(), OutputManager)

    def test_set_output_overrides(self):
        custom = OutputManager(no_color=True)
        set_output(custom)
        assert get_output() is custom

    def test_set_then_reset_then_get(self):
        first = OutputManager(no_color=True)
        set_output(first)
        reset_output()
        assert get_output() is not first


class TestConvenienceFunctions:
    """Test module-level convenience functions delegate to global instance."""

    @pytest.mark.parametrize("name", ["info", "success", "warning", "error", "progress"])
    def test_delegates(self, capfd, name):
        set_output(OutputManager(no_color=True))
        getattr(output_module, name)("via module")
        assert "via module" in capfd.readouterr().err

    def test_debug_delegates(self, capfd):
        set_output(OutputManager(no_color=True, verbose=True))
        output_module.debug("via module")
        assert "via module" in capfd.readouterr().err
