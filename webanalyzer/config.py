"""Configuration file format for webanalyzer."""

from pathlib import Path
from typing import Literal

from pydantic import BaseModel, Field, field_validator

from webanalyzer.core.filter import NULL_CLIENT
from webanalyzer.validation import validate_timezone

CONFIG_NAMES = ("webanalyzer.yaml", "webanalyzer.yml", "webanalyzer.json")

LogLevel = Literal["DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"]


class DuckDBConnection(BaseModel):
    """DuckDB connection configuration."""

    type: Literal["duckdb"] = "duckdb"
    path: str = Field(..., description="Path to DuckDB database file or :memory:")


class AnalyzerConfig(BaseModel):
    """webanalyzer configuration file format.

    Can be saved as webanalyzer.yaml or webanalyzer.json.

    Example YAML:
        database:
          type: duckdb
          path: data/analytics.duckdb
        client_id: 42
        timezone: Europe/Berlin
        max_time_on_page_seconds: 1800
        log_level: INFO
    """

    database: DuckDBConnection | None = Field(default=None, description="Database connection configuration")
    client_id: int = Field(default=NULL_CLIENT, description="Client queried when no client ID is given")
    timezone: str = Field(default="UTC", description="Default timezone of filters")
    max_time_on_page_seconds: int = Field(default=0, ge=0, description="Cap for the time on a single page")
    log_level: LogLevel = Field(default="WARNING", description="Level of the webanalyzer loggers")

    @field_validator("timezone")
    @classmethod
    def check_timezone(cls, value: str) -> str:
        validate_timezone(value)
        return value

    @field_validator("log_level", mode="before")
    @classmethod
    def upper_log_level(cls, value):
        return value.upper() if isinstance(value, str) else value

    def resolve_paths(self, base_dir: Path | None = None) -> "AnalyzerConfig":
        """Resolve relative paths to absolute paths.

        Args:
            base_dir: Base directory for resolving relative paths (defaults to cwd)

        Returns:
            New config with resolved paths
        """
        base = base_dir or Path.cwd()
        database = self.database

        if database and database.path != ":memory:":
            db_path = Path(database.path)

            if not db_path.is_absolute():
                db_path = (base / db_path).resolve()

            database = DuckDBConnection(path=str(db_path))

        return self.model_copy(update={"database": database})


def load_config(config_path: Path) -> AnalyzerConfig:
    """Load configuration from YAML or JSON file.

    Args:
        config_path: Path to config file (webanalyzer.yaml or webanalyzer.json)

    Returns:
        Loaded and validated configuration

    Raises:
        FileNotFoundError: If config file doesn't exist
        ValueError: If config file format is invalid
    """
    import json

    if not config_path.exists():
        raise FileNotFoundError(f"Config file not found: {config_path}")

    suffix = config_path.suffix.lower()

    if suffix in {".yaml", ".yml"}:
        import yaml

        with open(config_path) as f:
            data = yaml.safe_load(f)
    elif suffix == ".json":
        with open(config_path) as f:
            data = json.load(f)
    else:
        raise ValueError(f"Unsupported config format: {suffix}. Use .yaml, .yml, or .json")

    config = AnalyzerConfig(**(data or {}))

    # Resolve relative paths relative to config file directory
    return config.resolve_paths(config_path.parent)


def find_config(start_dir: Path | None = None) -> Path | None:
    """Find config file by searching up the directory tree.

    Searches for webanalyzer.yaml, webanalyzer.yml, or webanalyzer.json.

    Args:
        start_dir: Directory to start searching from (defaults to cwd)

    Returns:
        Path to config file if found, None otherwise
    """
    current = (start_dir or Path.cwd()).resolve()

    while True:
        for name in CONFIG_NAMES:
            config_path = current / name
            if config_path.exists():
                return config_path

        parent = current.parent
        if parent == current:
            break
        current = parent

    return None


def build_connection_string(config: AnalyzerConfig) -> str:
    """Build database connection string from config.

    Args:
        config: webanalyzer configuration

    Returns:
        Connection string for DuckDBStore.from_url
    """
    if not config.database:
        return "duckdb:///:memory:"

    path = config.database.path

    if path == ":memory:":
        return "duckdb:///:memory:"

    # /tmp/app.db -> duckdb:///tmp/app.db, app.db -> duckdb://app.db
    return f"duckdb://{path}"
