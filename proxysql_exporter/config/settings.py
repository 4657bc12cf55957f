"""
Configuration module using pydantic-settings for type-safe environment variable management.
"""
from typing import Any, Dict, Optional

from pydantic import AliasChoices, Field, field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict

from proxysql_exporter.utils.validators import (
    parse_dsn,
    validate_in_range,
    validate_telemetry_path,
)

_ENV_FILE = ".env"


class ProxySQLSettings(BaseSettings):
    """ProxySQL admin interface connection settings"""
    model_config = SettingsConfigDict(
        env_prefix="PROXYSQL_",
        env_file=_ENV_FILE,
        extra="ignore",
        populate_by_name=True,
    )

    host: str = Field(default="127.0.0.1")
    port: int = Field(default=6032)
    user: str = Field(default="admin")
    password: str = Field(default="admin")
    connect_timeout: int = Field(default=5, description="Seconds to wait for the admin handshake")
    read_timeout: int = Field(default=10, description="Seconds to wait for a query result")
    connect_attempts: int = Field(default=1, ge=1, description="Connection attempts per scrape")
    data_source_name: Optional[str] = Field(
        default=None,
        validation_alias=AliasChoices("DATA_SOURCE_NAME", "data_source_name"),
        description="Go driver style DSN, overrides host/port/user/password",
    )

    @field_validator("port")
    @classmethod
    def _check_port(cls, value: int) -> int:
        validate_in_range(value, 1, 65535, "PROXYSQL_PORT")
        return value

    @field_validator("data_source_name")
    @classmethod
    def _check_dsn(cls, value: Optional[str]) -> Optional[str]:
        if value:
            parse_dsn(value)
        return value or None

    def connection_params(self) -> Dict[str, Any]:
        """Keyword arguments for ``pymysql.connect``."""
        params: Dict[str, Any] = {
            "host": self.host,
            "port": self.port,
            "user": self.user,
            "password": self.password,
        }
        if self.data_source_name:
            parsed = parse_dsn(self.data_source_name, default_port=self.port)
            if "unix_socket" in parsed:
                params.pop("host")
                params.pop("port")
            params.update(parsed)

        params["connect_timeout"] = self.connect_timeout
        params["read_timeout"] = self.read_timeout
        params["write_timeout"] = self.read_timeout
        return params


class CollectorSettings(BaseSettings):
    """Which table groups are scraped and how"""
    model_config = SettingsConfigDict(env_prefix="COLLECT_", env_file=_ENV_FILE, extra="ignore")

    mysql_status: bool = Field(default=True, description="Scrape stats_mysql_global")
    mysql_connection_pool: bool = Field(default=True, description="Scrape stats_mysql_connection_pool")
    mysql_connection_list: bool = Field(default=True, description="Scrape stats_mysql_processlist")
    concurrent: bool = Field(default=True, description="Run table scrapers in parallel threads")


class WebSettings(BaseSettings):
    """HTTP endpoint settings"""
    model_config = SettingsConfigDict(env_prefix="WEB_", env_file=_ENV_FILE, extra="ignore")

    listen_address: str = Field(default="0.0.0.0")
    port: int = Field(default=42004)
    telemetry_path: str = Field(default="/metrics")

    @field_validator("port")
    @classmethod
    def _check_port(cls, value: int) -> int:
        validate_in_range(value, 1, 65535, "WEB_PORT")
        return value

    @field_validator("telemetry_path")
    @classmethod
    def _check_path(cls, value: str) -> str:
        return validate_telemetry_path(value)


class Settings(BaseSettings):
    """Main application settings"""
    model_config = SettingsConfigDict(
        env_file=_ENV_FILE,
        env_file_encoding="utf-8",
        case_sensitive=False,
        extra="ignore",
    )

    # Application settings
    environment: str = Field(default="development")
    log_level: str = Field(default="INFO")

    # Component settings
    proxysql: ProxySQLSettings = Field(default_factory=ProxySQLSettings)
    collectors: CollectorSettings = Field(default_factory=CollectorSettings)
    web: WebSettings = Field(default_factory=WebSettings)

    @field_validator("log_level")
    @classmethod
    def _check_log_level(cls, value: str) -> str:
        level = value.upper()
        if level not in ("DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"):
            raise ValueError(f"LOG_LEVEL must be DEBUG, INFO, WARNING, ERROR or CRITICAL, got {value}")
        return level


# Global settings instance
settings = Settings()
