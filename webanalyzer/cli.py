"""CLI for webanalyzer query operations."""

import json
import logging
from datetime import datetime
from pathlib import Path

import typer

from webanalyzer import __version__
from webanalyzer.config import AnalyzerConfig, build_connection_string, find_config, load_config
from webanalyzer.core.fields import Field
from webanalyzer.core.filter import Filter
from webanalyzer.validation import AnalyzerError


def version_callback(value: bool):
    """Print version and exit."""
    if value:
        typer.echo(f"webanalyzer {__version__}")
        raise typer.Exit()


app = typer.Typer(
    help="webanalyzer: SQL query engine for web analytics",
    no_args_is_help=True,
)

# Global state for config (set in callback, used in commands)
_loaded_config: AnalyzerConfig | None = None

REPORTS = {
    "total": lambda analyzer, filter: analyzer.visitors.total(filter),
    "by-period": lambda analyzer, filter: analyzer.visitors.by_period(filter),
    "growth": lambda analyzer, filter: analyzer.visitors.growth(filter),
    "referrer": lambda analyzer, filter: analyzer.visitors.referrer(filter),
    "pages": lambda analyzer, filter: analyzer.pages.by_path(filter),
    "entry": lambda analyzer, filter: analyzer.pages.entry(filter),
    "exit": lambda analyzer, filter: analyzer.pages.exit(filter),
    "events": lambda analyzer, filter: analyzer.events.events(filter),
    "languages": lambda analyzer, filter: analyzer.demographics.languages(filter),
    "countries": lambda analyzer, filter: analyzer.demographics.countries(filter),
    "browsers": lambda analyzer, filter: analyzer.device.browser(filter),
    "os": lambda analyzer, filter: analyzer.device.os(filter),
}

DATE_FORMATS = ["%Y-%m-%d", "%Y-%m-%dT%H:%M:%S"]


@app.callback()
def main(
    version: bool = typer.Option(
        None, "--version", "-v", callback=version_callback, is_eager=True, help="Show version"
    ),
    config: Path = typer.Option(None, "--config", "-c", help="Path to config file (webanalyzer.yaml)"),
):
    """webanalyzer CLI.

    You can use a config file (webanalyzer.yaml or webanalyzer.json) to set default values.
    CLI arguments override config file values.
    """
    global _loaded_config

    config_path = config or find_config()
    _loaded_config = None

    if config_path:
        try:
            _loaded_config = load_config(config_path)
        except (OSError, ValueError) as e:
            typer.echo(f"Warning: Failed to load config: {e}", err=True)

    level = _loaded_config.log_level if _loaded_config else "WARNING"
    logging.basicConfig(level=getattr(logging, level), format="%(levelname)s %(name)s: %(message)s")


def _connection(db: Path | None) -> str:
    if db:
        return f"duckdb://{db.absolute()}"

    if _loaded_config and _loaded_config.database:
        return build_connection_string(_loaded_config)

    return "duckdb:///:memory:"


def _build_filter(
    client_id: int | None,
    timezone: str | None,
    from_date: datetime | None,
    to_date: datetime | None,
    path: list[str] | None,
    event: list[str] | None,
    country: list[str] | None,
) -> Filter:
    config = _loaded_config or AnalyzerConfig()
    return Filter(
        client_id=config.client_id if client_id is None else client_id,
        timezone=timezone or config.timezone,
        from_=from_date,
        to=to_date,
        path=list(path or []),
        event_name=list(event or []),
        country=list(country or []),
        max_time_on_page_seconds=config.max_time_on_page_seconds,
    )


def _to_json(result) -> object:
    if isinstance(result, list):
        return [_to_json(item) for item in result]

    if hasattr(result, "model_dump"):
        return result.model_dump(mode="json")

    return result


@app.command("init-db")
def init_db(
    path: Path = typer.Argument(..., help="DuckDB database file to create the tables in"),
):
    """
    Create the analytics tables in a DuckDB database.

    Examples:
      webanalyzer init-db analytics.duckdb
    """
    from webanalyzer.db.duckdb import DuckDBStore

    store = DuckDBStore(str(path))
    store.close()
    typer.echo(f"Initialized {path}")


@app.command()
def stats(
    report: str = typer.Argument(..., help=f"Report to run: {', '.join(REPORTS)}"),
    db: Path = typer.Option(None, "--db", help="Path to DuckDB database file (overrides config)"),
    from_date: datetime = typer.Option(None, "--from", formats=DATE_FORMATS, help="First day (YYYY-MM-DD)"),
    to_date: datetime = typer.Option(None, "--to", formats=DATE_FORMATS, help="Last day (YYYY-MM-DD)"),
    path: list[str] = typer.Option(None, "--path", help="Path filter, prefix with ! to negate"),
    event: list[str] = typer.Option(None, "--event", help="Event name filter, prefix with ! to negate"),
    country: list[str] = typer.Option(None, "--country", help="Country code filter"),
    client_id: int = typer.Option(None, "--client-id", help="Client to query (overrides config)"),
    timezone: str = typer.Option(None, "--timezone", help="Timezone of the date range (overrides config)"),
):
    """
    Run an analysis and print the result as JSON.

    Examples:
      webanalyzer stats total --db analytics.duckdb
      webanalyzer stats pages --from 2024-01-01 --to 2024-01-31 --country de
      webanalyzer stats events --event signup --timezone Europe/Berlin
    """
    import duckdb

    from webanalyzer.analyzer.analyzer import Analyzer
    from webanalyzer.db.duckdb import DuckDBStore

    if report not in REPORTS:
        typer.echo(f"Error: Unknown report '{report}'. Choose one of: {', '.join(REPORTS)}", err=True)
        raise typer.Exit(1)

    try:
        filter = _build_filter(client_id, timezone, from_date, to_date, path, event, country)
        store = DuckDBStore.from_url(_connection(db))
    except (ValueError, duckdb.Error) as e:
        typer.echo(f"Error: {e}", err=True)
        raise typer.Exit(1)

    try:
        result = REPORTS[report](Analyzer(store), filter)
    except (AnalyzerError, ValueError, duckdb.Error) as e:
        typer.echo(f"Error: {e}", err=True)
        raise typer.Exit(1)
    finally:
        store.close()

    typer.echo(json.dumps(_to_json(result), indent=2))


@app.command()
def sql(
    fields: list[str] = typer.Argument(..., help="Fields to select, e.g. path visitors"),
    from_date: datetime = typer.Option(None, "--from", formats=DATE_FORMATS, help="First day (YYYY-MM-DD)"),
    to_date: datetime = typer.Option(None, "--to", formats=DATE_FORMATS, help="Last day (YYYY-MM-DD)"),
    path: list[str] = typer.Option(None, "--path", help="Path filter, prefix with ! to negate"),
    event: list[str] = typer.Option(None, "--event", help="Event name filter, prefix with ! to negate"),
    country: list[str] = typer.Option(None, "--country", help="Country code filter"),
    client_id: int = typer.Option(None, "--client-id", help="Client to query (overrides config)"),
    timezone: str = typer.Option(None, "--timezone", help="Timezone of the date range (overrides config)"),
    dialect: str = typer.Option("duckdb", "--dialect", "-d", help="SQL dialect to print the statement in"),
):
    """
    Print the SQL statement built for a field list without running it.

    Non-aggregate fields are grouped by.

    Examples:
      webanalyzer sql path visitors --path /blog
      webanalyzer sql day visitors views --from 2024-01-01 --to 2024-01-31 --dialect postgres
    """
    import sqlglot
    from sqlglot.errors import SqlglotError

    from webanalyzer.sql.planner import build_query

    try:
        selected = [Field[name.upper()] for name in fields]
    except KeyError as e:
        typer.echo(f"Error: Unknown field {e}", err=True)
        raise typer.Exit(1)

    try:
        filter = _build_filter(client_id, timezone, from_date, to_date, path, event, country)
        filter.validate()
        query, args = build_query(filter, selected, group_by=[f for f in selected if not f.is_aggregate])
    except ValueError as e:
        typer.echo(f"Error: {e}", err=True)
        raise typer.Exit(1)

    try:
        query = sqlglot.transpile(query, read="duckdb", write=dialect, pretty=True)[0]
    except SqlglotError as e:
        typer.echo(f"Warning: Could not format SQL: {e}", err=True)

    typer.echo(query)
    typer.echo(f"-- args: {json.dumps(args, default=str)}")


if __name__ == "__main__":
    app()
