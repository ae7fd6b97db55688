"""Tests for the administration CLI."""

import json
import logging

import pytest
import structlog
from click.testing import CliRunner

from resilient_cache import __version__, cli as cli_module
from resilient_cache.cache.connection import RedisCache
from resilient_cache.cache.manager import CacheManager
from resilient_cache.cli import cli

TEST_URL = "redis://localhost:6379/0"


@pytest.fixture(autouse=True)
def quiet_logging(monkeypatch):
    """Keep log lines out of command output and structlog config untouched."""
    monkeypatch.setattr(cli_module, "setup_logging", lambda **kwargs: None)
    structlog.configure(wrapper_class=structlog.make_filtering_bound_logger(logging.CRITICAL))
    yield
    structlog.reset_defaults()


@pytest.fixture
def runner():
    return CliRunner()


@pytest.fixture
def remote_env(monkeypatch, fake_redis):
    """Point the CLI at the in-memory Redis stand-in."""
    monkeypatch.setenv("BACKEND_URL", TEST_URL)

    def build(settings):
        return CacheManager(settings, remote=RedisCache(TEST_URL, client=fake_redis))

    monkeypatch.setattr(cli_module, "CacheManager", build)
    return fake_redis


@pytest.fixture
def disabled_env(monkeypatch):
    monkeypatch.setenv("CACHE_DISABLED", "true")


class TestCli:
    """Test suite for CLI commands."""

    def test_version(self, runner):
        result = runner.invoke(cli, ["--version"])

        assert result.exit_code == 0
        assert __version__ in result.output

    def test_missing_configuration(self, runner):
        result = runner.invoke(cli, ["stats"])

        assert result.exit_code == 1
        assert "BACKEND_URL" in result.output

    def test_stats_disabled(self, runner, disabled_env):
        result = runner.invoke(cli, ["stats"])

        assert result.exit_code == 0
        stats = json.loads(result.output)
        assert stats["disabled"] is True
        assert stats["backend"] == "memory"
        assert stats["remote"]["state"] == "disabled"

    def test_stats_remote(self, runner, remote_env):
        result = runner.invoke(cli, ["stats"])

        assert result.exit_code == 0
        assert json.loads(result.output)["backend"] == "redis"

    def test_health_disabled(self, runner, disabled_env):
        result = runner.invoke(cli, ["health"])

        assert result.exit_code == 0
        assert json.loads(result.output)["status"] == "disabled"

    def test_health_healthy(self, runner, remote_env):
        result = runner.invoke(cli, ["health"])

        assert result.exit_code == 0
        assert json.loads(result.output)["status"] == "healthy"

    def test_health_degraded_exits_nonzero(self, runner, remote_env):
        remote_env.fail = True

        result = runner.invoke(cli, ["health"])

        assert result.exit_code == 1
        assert json.loads(result.output)["status"] == "degraded"

    def test_clear(self, runner, remote_env):
        remote_env.store.update({"a": "1", "b": "2"})

        result = runner.invoke(cli, ["clear"])

        assert result.exit_code == 0
        assert "Cache cleared successfully" in result.output
        assert remote_env.store == {}

    def test_clear_requires_remote(self, runner, disabled_env):
        result = runner.invoke(cli, ["clear"])

        assert result.exit_code == 1
        assert "disabled" in result.output

    def test_clear_fails_when_remote_unreachable(self, runner, remote_env):
        remote_env.fail = True

        result = runner.invoke(cli, ["clear"])

        assert result.exit_code == 1
        assert "unavailable" in result.output

    def test_delete(self, runner, remote_env):
        remote_env.store["conversations:user:42"] = "[]"

        result = runner.invoke(cli, ["delete", "conversations:user:42"])

        assert result.exit_code == 0
        assert "Deleted: conversations:user:42" in result.output
        assert remote_env.store == {}

    def test_delete_missing_key(self, runner, remote_env):
        result = runner.invoke(cli, ["delete", "nope"])

        assert result.exit_code == 0
        assert "Key not found in cache: nope" in result.output

    def test_delete_pattern(self, runner, remote_env):
        remote_env.store.update(
            {"conversations:user:42": "1", "conversations:user:43": "2", "voices": "3"}
        )

        result = runner.invoke(cli, ["delete-pattern", "conversations:*"])

        assert result.exit_code == 0
        assert "Deleted 2 key(s) matching conversations:*" in result.output
        assert list(remote_env.store) == ["voices"]
