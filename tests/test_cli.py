"""Tests for the webanalyzer CLI."""

import json
from datetime import datetime

import pytest
from typer.testing import CliRunner

from webanalyzer import __version__
from webanalyzer.cli import app
from webanalyzer.core.context import Context
from webanalyzer.db.duckdb import DuckDBStore
from webanalyzer.db.schema import Session

runner = CliRunner()

D1 = datetime(2024, 5, 1, 10, 0)


@pytest.fixture(autouse=True)
def workdir(tmp_path, monkeypatch):
    """Run every command in an empty directory, so no config file is picked up."""
    monkeypatch.chdir(tmp_path)
    return tmp_path


def seed_db(path, client_id=0):
    store = DuckDBStore(str(path))
    store.save(
        [
            Session(client_id=client_id, visitor_id=1, session_id=1, time=D1, entry_path="/", page_views=2),
            Session(client_id=client_id, visitor_id=2, session_id=1, time=D1, entry_path="/", page_views=1,
                    is_bounce=True),
        ]
    )
    store.close()


def test_version():
    result = runner.invoke(app, ["--version"])

    assert result.exit_code == 0
    assert f"webanalyzer {__version__}" in result.stdout


def test_init_db(workdir):
    result = runner.invoke(app, ["init-db", "analytics.duckdb"])

    assert result.exit_code == 0
    assert "Initialized analytics.duckdb" in result.stdout
    assert (workdir / "analytics.duckdb").exists()

    store = DuckDBStore(str(workdir / "analytics.duckdb"), create_schema=False)
    try:
        assert store.count(Context.background(), "SELECT count(*) FROM session", []) == 0
    finally:
        store.close()


def test_stats_total(workdir):
    seed_db(workdir / "analytics.duckdb")

    result = runner.invoke(
        app, ["stats", "total", "--db", "analytics.duckdb", "--from", "2024-05-01", "--to", "2024-05-01"]
    )

    assert result.exit_code == 0, result.output
    data = json.loads(result.stdout)
    assert data["visitors"] == 2
    assert data["views"] == 3
    assert data["bounces"] == 1


def test_stats_reads_config_file(workdir):
    (workdir / "data").mkdir()
    seed_db(workdir / "data" / "analytics.duckdb", client_id=7)
    (workdir / "webanalyzer.yaml").write_text("database:\n  path: data/analytics.duckdb\nclient_id: 7\n")

    result = runner.invoke(app, ["stats", "total", "--from", "2024-05-01", "--to", "2024-05-01"])

    assert result.exit_code == 0, result.output
    assert json.loads(result.stdout)["visitors"] == 2


def test_stats_client_id_overrides_config(workdir):
    seed_db(workdir / "analytics.duckdb", client_id=7)
    (workdir / "webanalyzer.yaml").write_text("database:\n  path: analytics.duckdb\nclient_id: 7\n")

    result = runner.invoke(
        app, ["stats", "total", "--client-id", "8", "--from", "2024-05-01", "--to", "2024-05-01"]
    )

    assert result.exit_code == 0, result.output
    assert json.loads(result.stdout)["visitors"] == 0


def test_stats_unknown_report():
    result = runner.invoke(app, ["stats", "funnel"])

    assert result.exit_code == 1
    assert "Unknown report 'funnel'" in result.output


def test_stats_growth_needs_dates():
    result = runner.invoke(app, ["stats", "growth"])

    assert result.exit_code == 1
    assert "no period or day specified" in result.output


def test_stats_invalid_timezone():
    result = runner.invoke(app, ["stats", "total", "--timezone", "Mars/Olympus"])

    assert result.exit_code == 1
    assert "Error:" in result.output


def test_sql_groups_by_dimensions():
    result = runner.invoke(app, ["sql", "path", "visitors", "--path", "/blog"])

    assert result.exit_code == 0, result.output
    assert "GROUP BY" in result.stdout
    assert "-- args:" in result.stdout
    assert '"/blog"' in result.stdout


def test_sql_unknown_field():
    result = runner.invoke(app, ["sql", "path", "pageviewz"])

    assert result.exit_code == 1
    assert "Unknown field" in result.output


def test_sql_other_dialect():
    result = runner.invoke(app, ["sql", "country", "visitors", "--dialect", "postgres"])

    assert result.exit_code == 0, result.output
    assert "-- args:" in result.stdout


def test_stats_unreadable_database(workdir):
    result = runner.invoke(app, ["stats", "total", "--db", str(workdir / "missing" / "analytics.duckdb")])

    assert result.exit_code == 1
    assert "Error:" in result.output
