"""
Settings for the psychosocial risk assessment core.

Each concern is a pydantic-settings section read from its own environment
prefix (``DB_``, ``LOG_``, ``REPORT_``, ``APP_``); ``get_settings()`` returns
one cached ``Settings`` that loads sections on first access.
"""

from __future__ import annotations

import json
import os
from functools import cached_property, lru_cache
from pathlib import Path
from typing import Any, Literal

from pydantic import Field, SecretStr, field_validator, model_validator
from pydantic_settings import BaseSettings
from sqlalchemy.engine import URL

DEFAULT_DISCLAIMER = (
    "This report, on its own, cannot diagnose a pathology, but it may indicate the "
    "presence of symptoms from a collective point of view. A clinical diagnosis of each "
    "assessed person can only be made by a psychologist, occupational physician, "
    "psychiatrist or another qualified health professional."
)

MEMORY_DATABASE = ":memory:"


class DatabaseConfig(BaseSettings):
    """
    Where assessments, responses and reports are stored.

    ``url`` wins over the backend-specific fields when set.

    Example:
        >>> DatabaseConfig(sqlite_path=":memory:").get_connection_url()
        'sqlite:///:memory:'
    """

    backend: Literal["sqlite", "mysql"] = Field("sqlite", description="Database backend type")
    url: str | None = Field(None, description="Full SQLAlchemy URL overriding the fields below")

    sqlite_path: str = Field("./data/psyrisk.db", description="SQLite database file")

    mysql_host: str = Field("localhost", description="MySQL host")
    mysql_port: int = Field(3306, ge=1, le=65535, description="MySQL port")
    mysql_user: str = Field("psyrisk", description="MySQL username")
    mysql_password: SecretStr = Field(SecretStr(""), description="MySQL password")
    mysql_database: str = Field("psyrisk", description="MySQL database name")
    mysql_charset: str = Field("utf8mb4", description="MySQL character set")

    pool_pre_ping: bool = Field(True, description="Check connections before use")
    pool_recycle: int = Field(3600, ge=60, description="Seconds before a connection is recycled")
    echo: bool = Field(False, description="Echo SQL statements")

    model_config = {"env_prefix": "DB_", "case_sensitive": False}

    @field_validator("sqlite_path")
    def ensure_sqlite_directory(cls, v: str) -> str:
        if v != MEMORY_DATABASE:
            path = Path(v)
            path.parent.mkdir(parents=True, exist_ok=True)
            if not path.suffix:
                v = str(path.with_suffix(".db"))
        return v

    @model_validator(mode="after")
    def require_mysql_target(self):
        if self.backend == "mysql" and not self.url:
            missing = [
                name
                for name in ("mysql_host", "mysql_user", "mysql_database")
                if not getattr(self, name)
            ]
            if missing:
                raise ValueError(f"MySQL backend requires: {', '.join(missing)}")
        return self

    @property
    def is_memory(self) -> bool:
        return not self.url and self.backend == "sqlite" and self.sqlite_path == MEMORY_DATABASE

    @property
    def is_sqlite(self) -> bool:
        if self.url:
            return self.url.startswith("sqlite")
        return self.backend == "sqlite"

    def get_connection_url(self) -> str:
        if self.url:
            return self.url
        if self.backend == "sqlite":
            return URL.create("sqlite", database=self.sqlite_path).render_as_string()
        return URL.create(
            "mysql+pymysql",
            username=self.mysql_user,
            password=self.mysql_password.get_secret_value() or None,
            host=self.mysql_host,
            port=self.mysql_port,
            database=self.mysql_database,
            query={"charset": self.mysql_charset},
        ).render_as_string(hide_password=False)

    def get_engine_options(self) -> dict[str, Any]:
        options: dict[str, Any] = {"echo": self.echo, "pool_pre_ping": self.pool_pre_ping}
        if not self.is_memory:
            options["pool_recycle"] = self.pool_recycle
        return options


class LoggingConfig(BaseSettings):
    """Log level, format and rotating file destination."""

    level: Literal["DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"] = Field(
        "INFO", description="Minimum logging level"
    )
    file_path: str | None = Field("./logs/psyrisk.log", description="Log file path")
    max_bytes: int = Field(10 * 1024 * 1024, ge=1024, description="Max log file size in bytes")
    backup_count: int = Field(5, ge=1, description="Number of rotated files kept")
    structured: bool = Field(True, description="Emit JSON records")
    console_enabled: bool = Field(True, description="Also log to stdout")

    model_config = {"env_prefix": "LOG_", "case_sensitive": False}

    def get_file_handler_config(self) -> dict[str, Any] | None:
        if not self.file_path:
            return None
        return {
            "class": "logging.handlers.RotatingFileHandler",
            "filename": self.file_path,
            "maxBytes": self.max_bytes,
            "backupCount": self.backup_count,
            "encoding": "utf-8",
        }


class ReportConfig(BaseSettings):
    """
    Issuer signature and fixed text printed in the conclusion section.

    Example:
        >>> cfg = ReportConfig(issuer_name="Dr. Ana Lima", issuer_registration="CRP 06/000001")
        >>> cfg.signature()["name"]
        'Dr. Ana Lima'
    """

    issuer_name: str = Field("Responsible Psychologist", description="Signing professional")
    issuer_title: str = Field("Psychologist", description="Professional title")
    issuer_registration: str = Field("", description="Professional council registration")
    issuer_organization: str = Field("", description="Issuing organisation")
    city: str = Field("São Paulo", description="City printed on the issue date line")
    disclaimer: str = Field(DEFAULT_DISCLAIMER, description="Fixed conclusion disclaimer")
    max_observations_length: int = Field(10000, ge=100, description="Max issuer observations")

    model_config = {"env_prefix": "REPORT_", "case_sensitive": False}

    def signature(self) -> dict[str, str]:
        return {
            "name": self.issuer_name,
            "title": self.issuer_title,
            "registration": self.issuer_registration,
            "organization": self.issuer_organization,
        }


class ApplicationConfig(BaseSettings):
    environment: Literal["development", "testing", "production"] = Field(
        "development", description="Application environment"
    )
    debug: bool = Field(False, description="Enable debug mode")
    version: str = Field("0.1.0", description="Application version")
    title: str = Field("Psychosocial Risk Assessment", description="API title")
    cors_origins: list[str] = Field(["*"], description="Origins allowed to call the API")

    model_config = {"env_prefix": "APP_", "case_sensitive": False}

    @model_validator(mode="after")
    def no_debug_in_production(self):
        if self.debug and self.environment == "production":
            raise ValueError("Debug mode cannot be enabled in production")
        return self


class Settings:
    """
    All configuration sections, each built on first access.

    Example:
        >>> settings = get_settings()
        >>> settings.database.get_connection_url()
        >>> settings.report.signature()
    """

    @cached_property
    def app(self) -> ApplicationConfig:
        return ApplicationConfig()

    @cached_property
    def database(self) -> DatabaseConfig:
        return DatabaseConfig()

    @cached_property
    def logging(self) -> LoggingConfig:
        # debug raises verbosity unless LOG_LEVEL says otherwise
        if self.app.debug and "LOG_LEVEL" not in os.environ:
            return LoggingConfig(level="DEBUG")
        return LoggingConfig()

    @cached_property
    def report(self) -> ReportConfig:
        return ReportConfig()


@lru_cache(maxsize=1)
def get_settings() -> Settings:
    return Settings()


def load_settings_from_file(file_path: str) -> Settings:
    """
    Export a JSON file of ``{section: {key: value}}`` pairs into the environment
    (``{"report": {"city": "Recife"}}`` becomes ``REPORT_CITY``) and reload.

    Raises:
        FileNotFoundError: the file does not exist
        ValueError: the file is not JSON
    """
    config_path = Path(file_path)
    if not config_path.exists():
        raise FileNotFoundError(f"Configuration file not found: {file_path}")
    if config_path.suffix.lower() != ".json":
        raise ValueError(f"Unsupported configuration file format: {config_path.suffix}")

    config_data = json.loads(config_path.read_text(encoding="utf-8"))
    for section, values in config_data.items():
        if isinstance(values, dict):
            for key, value in values.items():
                os.environ[f"{section.upper()}_{key.upper()}"] = str(value)

    return reset_settings()


def override_settings(**kwargs: Any) -> Settings:
    """
    Set environment variables and reload.

    Example:
        >>> settings = override_settings(app_environment="testing", db_sqlite_path=":memory:")
    """
    for key, value in kwargs.items():
        os.environ[key.upper()] = str(value)
    return reset_settings()


def reset_settings() -> Settings:
    get_settings.cache_clear()
    return get_settings()
