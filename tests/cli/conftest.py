"""Fixtures for CLI tests.

CLI commands call ``asyncio.run`` themselves, so these tests are plain
(synchronous) functions driving the app through ``CliRunner``.
"""

import pytest
from typer.testing import CliRunner

from bitbucket_activity_db.cli.app import app
from bitbucket_activity_db.db import engine as engine_module


@pytest.fixture
def runner() -> CliRunner:
    return CliRunner()


@pytest.fixture
def cli_database(tmp_path, monkeypatch, runner):
    """Point the CLI at a fresh SQLite file and create the schema."""
    db_path = tmp_path / "cli.db"
    monkeypatch.setenv("DATABASE_URL", f"sqlite+aiosqlite:///{db_path}")
    monkeypatch.setattr(engine_module, "_engine", None)
    monkeypatch.setattr(engine_module, "_async_session_factory", None)

    result = runner.invoke(app, ["db", "init"])
    assert result.exit_code == 0, result.output
    return db_path
