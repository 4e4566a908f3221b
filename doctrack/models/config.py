"""Configuration models for the document change-tracking layer."""

from enum import Enum

from pydantic import BaseModel, Field
from pydantic_settings import BaseSettings, SettingsConfigDict


class ScanConsistency(str, Enum):
    """Read consistency requested from the storage client."""

    NOT_BOUNDED = "not_bounded"
    REQUEST_PLUS = "request_plus"


class StorageConfig(BaseModel):
    """Configuration for the storage client."""

    bucket: str = Field(default="default", min_length=1, description="Bucket holding documents")
    connection_string: str = Field(
        default="memory://", description="Storage connection string"
    )
    scan_consistency: ScanConsistency = Field(
        default=ScanConsistency.REQUEST_PLUS,
        description="Consistency passed to every storage call",
    )


class LoggingConfig(BaseModel):
    """Configuration for logging."""

    log_level: str = Field(
        default="INFO",
        description="Logging level (DEBUG, INFO, WARNING, ERROR, CRITICAL)",
    )
    json_logs: bool = Field(
        default=True,
        description="If True, output JSON logs. If False, use console format.",
    )
    log_file: str | None = Field(
        default=None,
        description="Optional path to log file. If None, logs only to stdout.",
    )


class AppConfig(BaseSettings):
    """Main application configuration.

    This class uses pydantic-settings to load configuration from environment
    variables with the DOCTRACK_ prefix.
    """

    model_config = SettingsConfigDict(
        env_prefix="DOCTRACK_",
        env_nested_delimiter="__",
        case_sensitive=False,
    )

    storage: StorageConfig = Field(default_factory=StorageConfig)
    logging: LoggingConfig = Field(default_factory=LoggingConfig)
