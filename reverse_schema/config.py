"""Configuration management for reverse-schema."""

import os
from enum import Enum
from pathlib import Path
from typing import Any, Dict, List, Optional, Tuple

from pydantic import BaseModel, ConfigDict, Field, ValidationError, field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict

from .errors import ReverseSchemaError


def _find_env_file() -> Optional[str]:
    """Find .env file in multiple locations.

    Search order:
    1. Current working directory
    2. ~/.reverse-schema/.env
    3. Package directory (where this file is located)
    """
    if os.path.exists(".env"):
        return ".env"

    user_env = Path.home() / ".reverse-schema" / ".env"
    if user_env.exists():
        return str(user_env)

    package_dir = Path(__file__).parent.parent
    package_env = package_dir / ".env"
    if package_env.exists():
        return str(package_env)

    return None


class Dialect(str, Enum):
    """Supported database dialects."""

    MYSQL = "mysql"
    POSTGRESQL = "postgresql"
    SQLITE = "sqlite"
    DUCKDB = "duckdb"


class JunctionStrategy(str, Enum):
    """How junction tables are turned into ManyToMany relationships."""

    AUTO = "auto"
    SKIP_SIMPLE = "skip_simple"
    ALWAYS_ENTITY = "always_entity"


DEFAULT_PORTS = {
    Dialect.MYSQL: 3306,
    Dialect.POSTGRESQL: 5432,
}


class Settings(BaseSettings):
    """Application settings loaded from environment variables."""

    model_config = SettingsConfigDict(
        env_file=_find_env_file(),
        env_file_encoding="utf-8",
        extra="ignore",
    )

    # Database connection
    db_driver: str = Field(
        default="mysql",
        description="Database dialect (mysql, postgresql, sqlite, duckdb)"
    )
    db_host: str = Field(default="localhost", description="Database host")
    db_port: Optional[int] = Field(
        default=None,
        description="Database port (driver default when not set)"
    )
    db_name: Optional[str] = Field(
        default=None,
        description="Database name, or file path for sqlite/duckdb"
    )
    db_user: str = Field(default="root", description="Database user")
    db_password: str = Field(default="", description="Database password")
    db_charset: str = Field(default="utf8mb4", description="Connection charset")

    # Table selection
    include_tables: str = Field(
        default="",
        description="Comma separated tables to process (all tables when empty)"
    )
    exclude_tables: str = Field(
        default="",
        description="Comma separated tables to skip; wins over include_tables"
    )

    # ManyToMany policy
    junction_strategy: str = Field(
        default="auto",
        description="Junction table strategy (auto, skip_simple, always_entity)"
    )
    metadata_threshold: int = Field(
        default=1,
        description="Max non-FK columns for a junction table to collapse under 'auto'"
    )
    junction_table_pattern: str = Field(
        default="%s_%s",
        description="Naming pattern for join tables"
    )

    log_level: str = Field(default="WARNING", description="Logging level for the CLI")


class ConnectionConfig(BaseModel):
    """Connection parameters for the schema catalog."""

    model_config = ConfigDict(frozen=True, extra="forbid")

    driver: Dialect = Dialect.MYSQL
    host: str = "localhost"
    port: Optional[int] = Field(default=None, ge=1, le=65535)
    dbname: str = Field(min_length=1)
    user: str = "root"
    password: str = ""
    charset: str = "utf8mb4"

    @property
    def effective_port(self) -> Optional[int]:
        return self.port or DEFAULT_PORTS.get(self.driver)

    def describe(self) -> str:
        """Human readable target, never including the password."""
        if self.driver in (Dialect.SQLITE, Dialect.DUCKDB):
            return f"{self.driver.value}:{self.dbname}"
        return f"{self.driver.value}://{self.user}@{self.host}:{self.effective_port}/{self.dbname}"


class TableSelection(BaseModel):
    """Include/exclude filters applied to the catalog table list."""

    model_config = ConfigDict(frozen=True, extra="forbid")

    include: Tuple[str, ...] = ()
    exclude: Tuple[str, ...] = ()

    @field_validator("include", "exclude", mode="before")
    @classmethod
    def _clean_names(cls, value: Any) -> Any:
        if value is None:
            return ()
        if isinstance(value, str):
            value = value.split(",")
        return tuple(name.strip() for name in value if name and name.strip())


def _render_pattern(pattern: str, owning_table: str, inverse_table: str) -> str:
    if pattern.count("%s") == 1:
        return pattern % owning_table
    return pattern % (owning_table, inverse_table)


class ManyToManyConfig(BaseModel):
    """Policy for detecting and collapsing junction tables."""

    model_config = ConfigDict(frozen=True, extra="forbid")

    junction_strategy: JunctionStrategy = JunctionStrategy.AUTO
    metadata_threshold: int = Field(default=1, ge=0)
    junction_table_pattern: str = "%s_%s"

    @field_validator("junction_table_pattern")
    @classmethod
    def _check_pattern(cls, value: str) -> str:
        placeholders = value.count("%s")
        if placeholders < 1:
            raise ValueError("Junction table pattern must contain at least one %s placeholder")
        if placeholders > 2:
            raise ValueError("Junction table pattern may contain at most two %s placeholders")
        try:
            _render_pattern(value, "owning", "inverse")
        except (TypeError, ValueError) as e:
            raise ValueError(f"Junction table pattern cannot be rendered: {e}") from e
        return value

    def join_table_name(self, owning_table: str, inverse_table: str) -> str:
        """Render the pattern for a pair of tables."""
        return _render_pattern(self.junction_table_pattern, owning_table, inverse_table)


class EngineConfig(BaseModel):
    """Validated configuration for one engine run."""

    model_config = ConfigDict(frozen=True, extra="forbid")

    connection: ConnectionConfig
    tables: TableSelection = Field(default_factory=TableSelection)
    many_to_many: ManyToManyConfig = Field(default_factory=ManyToManyConfig)


def _format_validation_errors(exc: ValidationError) -> List[Dict[str, Any]]:
    return [
        {
            "field": ".".join(str(part) for part in error["loc"]),
            "message": error["msg"],
        }
        for error in exc.errors()
    ]


def build_engine_config(
    base: Optional[Settings] = None,
    **overrides: Any,
) -> EngineConfig:
    """Build an EngineConfig from settings plus explicit overrides.

    Overrides use the Settings field names (``db_name``, ``include_tables``,
    ``junction_strategy`` ...). ``None`` overrides are ignored, so CLI
    options that were not given fall back to the environment.

    Raises:
        ReverseSchemaError: CONFIGURATION_INVALID when any value is out of domain
    """
    base = base if base is not None else settings
    unknown = set(overrides) - set(Settings.model_fields)
    if unknown:
        raise ReverseSchemaError.configuration_invalid(
            f"Unknown configuration keys: {', '.join(sorted(unknown))}",
            errors=[{"field": key, "message": "unknown key"} for key in sorted(unknown)],
        )

    values = base.model_dump()
    values.update({key: value for key, value in overrides.items() if value is not None})

    try:
        return EngineConfig.model_validate({
            "connection": {
                "driver": values["db_driver"],
                "host": values["db_host"],
                "port": values["db_port"],
                "dbname": values["db_name"] or "",
                "user": values["db_user"],
                "password": values["db_password"],
                "charset": values["db_charset"],
            },
            "tables": {
                "include": values["include_tables"],
                "exclude": values["exclude_tables"],
            },
            "many_to_many": {
                "junction_strategy": values["junction_strategy"],
                "metadata_threshold": values["metadata_threshold"],
                "junction_table_pattern": values["junction_table_pattern"],
            },
        })
    except ValidationError as e:
        errors = _format_validation_errors(e)
        summary = "; ".join(f"{err['field']}: {err['message']}" for err in errors)
        raise ReverseSchemaError.configuration_invalid(
            f"Invalid configuration: {summary}",
            cause=e,
            errors=errors,
        ) from e


# Global settings instance
settings = Settings()
