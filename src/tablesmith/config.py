"""
Configuration system for tablesmith using Pydantic.
"""

import os
from pathlib import Path
from typing import Any, Dict, Literal, Optional, Union

import yaml
from pydantic import BaseModel, Field, ValidationError, model_validator
from pydantic_settings import BaseSettings, SettingsConfigDict

from .database.connection import ConnectionConfig
from .exceptions import ConfigurationError, DatabaseConfigurationError


class DatabaseSettings(BaseModel):
    """Database connection configuration."""

    url: Optional[str] = Field(None, description="Database URL (overrides the fields below)")
    dialect: Literal["postgresql", "mysql"] = Field("mysql", description="Database engine")
    host: str = Field("localhost", description="Database host")
    port: Optional[int] = Field(None, description="Database port (engine default if unset)")
    database: Optional[str] = Field(None, description="Database name")
    user: Optional[str] = Field(None, description="Database user")
    password: str = Field("", description="Database password")
    schema_name: str = Field("public", description="PostgreSQL schema holding the tables")
    min_size: int = Field(1, description="Minimum connections in pool")
    max_size: int = Field(5, description="Maximum connections in pool")
    connect_timeout: int = Field(30, description="Connection timeout in seconds")
    command_timeout: float = Field(60.0, description="Command timeout in seconds")
    create_database: bool = Field(
        True, description="Create the database at start-up when it does not exist"
    )

    @model_validator(mode="after")
    def check_target(self) -> "DatabaseSettings":
        if self.url is None and (not self.database or not self.user):
            raise ValueError("either 'url' or both 'database' and 'user' are required")
        return self

    def to_connection_config(self) -> ConnectionConfig:
        """Build the driver-level connection configuration."""
        pool_settings = {
            "min_size": self.min_size,
            "max_size": self.max_size,
            "connect_timeout": self.connect_timeout,
            "command_timeout": self.command_timeout,
        }
        try:
            if self.url:
                return ConnectionConfig.from_url(self.url, **pool_settings)
            return ConnectionConfig(
                dialect=self.dialect,
                host=self.host,
                port=self.port,
                database=self.database,
                user=self.user,
                password=self.password,
                schema_name=self.schema_name,
                **pool_settings,
            )
        except (ValidationError, DatabaseConfigurationError) as e:
            raise ConfigurationError(f"Invalid database configuration: {e}") from e


class ReconciliationSettings(BaseModel):
    """Schema reconciliation configuration."""

    mode: Literal["apply", "dry_run"] = Field("apply", description="Reconciliation mode")
    table_options: Optional[str] = Field(
        "ENGINE=InnoDB DEFAULT CHARSET=utf8mb4 COLLATE=utf8mb4_unicode_ci",
        description="Options appended to MySQL CREATE TABLE statements",
    )


class LoggingConfig(BaseModel):
    """Logging configuration."""

    level: Literal["DEBUG", "INFO", "WARNING", "ERROR"] = Field(
        "INFO", description="Log level"
    )
    format: str = Field(
        "%(asctime)s - %(name)s - %(levelname)s - %(message)s",
        description="Log format",
    )
    file: Optional[str] = Field(None, description="Log file path")
    max_size: int = Field(10485760, description="Max log file size in bytes")  # 10MB
    backup_count: int = Field(5, description="Number of backup log files")
    rich: bool = Field(True, description="Use rich console output")


class TablesmithConfig(BaseSettings):
    """Main tablesmith configuration."""

    service_name: str = Field("tablesmith", description="Service name")
    debug: bool = Field(False, description="Enable debug mode")

    database: DatabaseSettings = Field(..., description="Database configuration")
    reconciliation: ReconciliationSettings = Field(
        default_factory=ReconciliationSettings,
        description="Reconciliation configuration",
    )
    logging: LoggingConfig = Field(
        default_factory=LoggingConfig, description="Logging configuration"
    )
    catalog: str = Field(
        "tablesmith.entities",
        description="Import path of the module exposing declarations()",
    )

    model_config = SettingsConfigDict(
        env_file=".env",
        env_prefix="TABLESMITH_",
        env_nested_delimiter="__",
        case_sensitive=False,
        extra="ignore",
    )

    @classmethod
    def from_yaml(cls, path: Union[str, Path]) -> "TablesmithConfig":
        """Load configuration from a YAML file."""
        try:
            with open(path, "r", encoding="utf-8") as f:
                data = yaml.safe_load(f) or {}

            data = cls._expand_env_vars(data)

            return cls(**data)
        except FileNotFoundError:
            raise ConfigurationError(f"Configuration file not found: {path}")
        except yaml.YAMLError as e:
            raise ConfigurationError(f"Invalid YAML in configuration file: {e}")
        except ValidationError as e:
            raise ConfigurationError(f"Invalid configuration: {e}")

    @classmethod
    def _expand_env_vars(cls, data: Any) -> Any:
        """Recursively expand environment variables in configuration data."""
        if isinstance(data, dict):
            return {k: cls._expand_env_vars(v) for k, v in data.items()}
        elif isinstance(data, list):
            return [cls._expand_env_vars(item) for item in data]
        elif isinstance(data, str):
            return os.path.expandvars(data)
        else:
            return data

    @property
    def dry_run(self) -> bool:
        return self.reconciliation.mode == "dry_run"

    def to_dict(self) -> Dict[str, Any]:
        return self.model_dump(exclude_none=True)

    def to_yaml(self, path: Union[str, Path]) -> None:
        """Save configuration to a YAML file."""
        with open(path, "w", encoding="utf-8") as f:
            yaml.dump(self.to_dict(), f, default_flow_style=False, indent=2, sort_keys=False)
