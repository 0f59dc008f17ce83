"""
Module: settings.py
Description: Dispatcher configuration using pydantic-settings.

Configures queue, message and AWS settings from environment variables
with validation and defaults. Supports .env files for local development.
Nested values use a double underscore, e.g.
JOB_DISPATCHER_QUEUE__URL or JOB_DISPATCHER_MESSAGE__BODY_FORMAT.
"""

from typing import Any, Literal, Optional

from pydantic import BaseModel, Field, field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict

from job_dispatcher.models.job import DriveMode
from job_dispatcher.utils.logger import VALID_LOG_LEVELS


class QueueSettings(BaseModel):
    """Queue identity and fetch loop behaviour."""

    url: str = Field(..., description="URL of the SQS queue to consume")
    long_polling_time_seconds: int = Field(
        default=5,
        ge=0,
        le=20,
        description="ReceiveMessage long-poll wait in seconds"
    )
    max_fetching_delay_seconds: int = Field(
        default=60,
        ge=0,
        description="Cap on the backoff after failed receives"
    )
    drive_mode: DriveMode = Field(
        default=DriveMode.DEPLETE,
        description="How many fetch cycles a run executes"
    )
    max_fetching_retry: int = Field(
        default=0,
        ge=0,
        description="Consecutive receive failures tolerated in deplete mode"
    )
    await_acknowledgement: bool = Field(
        default=True,
        description="Whether a fetch cycle waits for its message deletions to finish"
    )
    endpoint_url: Optional[str] = Field(
        default=None,
        description="Override SQS endpoint (local stacks, tests)"
    )

    @field_validator('url')
    @classmethod
    def validate_url(cls, v: str) -> str:
        """Validate the queue URL is an HTTP(S) URL."""
        if not v or not isinstance(v, str):
            raise ValueError("queue url must be a non-empty string")
        if not v.startswith(('http://', 'https://')):
            raise ValueError("queue url must be a valid HTTP/HTTPS URL")
        return v


class MessageSettings(BaseModel):
    """How raw SQS messages are turned into jobs."""

    job_class_attribute_name: Optional[str] = Field(
        default=None,
        description="Message attribute holding the job class"
    )
    body_format: Literal['json', 'string'] = Field(
        default='string',
        description="Whether message bodies are parsed as JSON"
    )


class AwsSettings(BaseModel):
    """Credentials passed straight through to the aioboto3 session."""

    region: Optional[str] = Field(default=None, description="AWS region")
    access_key_id: Optional[str] = Field(default=None, description="AWS access key id")
    secret_access_key: Optional[str] = Field(default=None, description="AWS secret access key")


class Settings(BaseSettings):
    """Dispatcher settings loaded from environment variables."""

    model_config = SettingsConfigDict(
        env_prefix="JOB_DISPATCHER_",
        env_nested_delimiter="__",
        env_file=".env",
        env_file_encoding="utf-8",
        case_sensitive=False,
        extra="ignore"
    )

    log_level: str = Field(default="INFO", description="Logging level")
    queue: QueueSettings
    message: MessageSettings = Field(default_factory=MessageSettings)
    aws: Optional[AwsSettings] = Field(default=None)

    @field_validator('log_level')
    @classmethod
    def validate_log_level(cls, v: str) -> str:
        """Validate log level is a valid logging level."""
        if v.upper() not in VALID_LOG_LEVELS:
            raise ValueError(f"log_level must be one of: {', '.join(VALID_LOG_LEVELS)}")
        return v.upper()


def load_settings(**overrides: Any) -> Settings:
    """
    Build settings from the environment, with keyword overrides.

    Args:
        **overrides: Field values taking precedence over the environment

    Returns:
        Validated Settings instance

    Raises:
        pydantic.ValidationError: If the configuration is invalid
    """
    return Settings(**overrides)
