"""
Unit Tests for the Command Line Interface
=========================================

Source management commands run through click's CliRunner against a
temporary database. No command here touches the network.
"""

import pytest
from click.testing import CliRunner

import main
from newsagg.config import settings as settings_module
from newsagg.database import connection as connection_module


@pytest.fixture
def runner(tmp_path, monkeypatch):
    monkeypatch.setenv("NEWSAGG_DATABASE__PATH", str(tmp_path / "cli.db"))
    monkeypatch.setenv("NEWSAGG_LOGGING__CONSOLE_LOGGING", "false")
    monkeypatch.setattr(settings_module, "_settings", None)
    monkeypatch.setattr(connection_module, "_db_manager", None)
    yield CliRunner()
    if connection_module._db_manager is not None:
        connection_module._db_manager.close_all_connections()


class TestSourceCommands:
    """add-source, toggle-source and show-sources."""

    def test_add_and_show_sources(self, runner):
        result = runner.invoke(main.cli, ["add-source", "Tech Feed", "https://tech.example.com/rss"])
        assert result.exit_code == 0, result.output
        assert "Added source Tech Feed (ID: 1)" in result.output

        result = runner.invoke(main.cli, [
            "add-source", "Scale", "https://scale.com/blog",
            "--type", "html", "--website-id", "scale-blog", "--strategy", "enhanced",
        ])
        assert result.exit_code == 0, result.output

        result = runner.invoke(main.cli, ["show-sources"])
        assert result.exit_code == 0
        assert "Tech" in result.output
        assert "Scale" in result.output
        assert "Never" in result.output

    def test_html_source_needs_known_website_id(self, runner):
        result = runner.invoke(main.cli, ["add-source", "Blog", "https://blog.example.com", "--type", "html"])
        assert result.exit_code == 1
        assert "--website-id" in result.output

        result = runner.invoke(main.cli, [
            "add-source", "Blog", "https://blog.example.com", "--type", "html", "--website-id", "nope",
        ])
        assert result.exit_code == 1
        assert "Unknown website id: nope" in result.output

    def test_duplicate_url_rejected(self, runner):
        runner.invoke(main.cli, ["add-source", "Feed", "https://dup.example.com/rss"])
        result = runner.invoke(main.cli, ["add-source", "Feed again", "https://dup.example.com/rss"])
        assert result.exit_code == 1
        assert "already registered" in result.output

    def test_toggle_source(self, runner):
        runner.invoke(main.cli, ["add-source", "Feed", "https://feed.example.com/rss"])

        result = runner.invoke(main.cli, ["toggle-source", "1", "--disable"])
        assert result.exit_code == 0
        assert "Source 1 disabled" in result.output

        result = runner.invoke(main.cli, ["toggle-source", "99"])
        assert result.exit_code == 1


class TestDatabaseCommands:
    """init-db."""

    def test_init_and_reset(self, runner):
        result = runner.invoke(main.cli, ["init-db"])
        assert result.exit_code == 0, result.output
        assert "Database initialized" in result.output

        runner.invoke(main.cli, ["add-source", "Feed", "https://feed.example.com/rss"])
        result = runner.invoke(main.cli, ["init-db", "--reset"], input="y\n")
        assert result.exit_code == 0, result.output

        result = runner.invoke(main.cli, ["show-sources"])
        assert "No sources registered" in result.output


class TestFetchCommands:
    """fetch-source argument handling."""

    def test_unknown_source(self, runner):
        result = runner.invoke(main.cli, ["fetch-source", "99"])
        assert result.exit_code == 1
        assert "Source with ID 99 not found." in result.output

    def test_disabled_source(self, runner):
        runner.invoke(main.cli, ["add-source", "Feed", "https://feed.example.com/rss", "--disabled"])

        result = runner.invoke(main.cli, ["fetch-source", "1"])
        assert result.exit_code == 1
        assert 'Source "Feed" is disabled.' in result.output

    @pytest.mark.parametrize("args", [
        ["fetch-all", "--max-articles=-1"],
        ["fetch-source", "1", "--max-articles=-1"],
    ])
    def test_negative_limit_is_reported(self, runner, args):
        runner.invoke(main.cli, ["add-source", "Feed", "https://feed.example.com/rss"])

        result = runner.invoke(main.cli, args)
        assert result.exit_code == 1
        assert isinstance(result.exception, SystemExit)
        assert "Invalid max_articles: must be zero or greater" in result.output

    def test_show_runs_empty(self, runner):
        result = runner.invoke(main.cli, ["show-runs"])
        assert result.exit_code == 0
        assert "No fetch runs recorded" in result.output
