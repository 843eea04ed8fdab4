"""Runtime configuration for the photo pipeline."""

import os
from typing import Mapping, Optional

from pydantic import BaseModel, Field, ValidationError

from .exceptions import ConfigurationError


class PipelineConfig(BaseModel):
    """Configuration shared by every pipeline component."""

    table_name: str = "ImageTable"
    email_from: str = ""
    email_to: str = ""
    region: str = "eu-west-1"
    sender_name: str = "The Photo Album"
    max_receive_count: int = Field(default=3, ge=1)
    batch_size: int = Field(default=5, ge=1, le=10000)
    batching_window: float = Field(default=5.0, ge=0)
    visibility_timeout: float = Field(default=30.0, gt=0)
    metadata_topic_arn: Optional[str] = None


# Environment variable -> PipelineConfig field
ENV_VARS = {
    "DYNAMODB_TABLE": "table_name",
    "SES_EMAIL_FROM": "email_from",
    "SES_EMAIL_TO": "email_to",
    "SES_REGION": "region",
    "MAX_RECEIVE_COUNT": "max_receive_count",
    "BATCH_SIZE": "batch_size",
    "MAX_BATCHING_WINDOW": "batching_window",
    "VISIBILITY_TIMEOUT": "visibility_timeout",
    "METADATA_TOPIC_ARN": "metadata_topic_arn",
}

MAILER_ENV_VARS = ("SES_EMAIL_TO", "SES_EMAIL_FROM", "SES_REGION")


def load_config(
    environ: Optional[Mapping[str, str]] = None, require_mailer: bool = False
) -> PipelineConfig:
    """
    Build a PipelineConfig from environment variables.

    Args:
        environ: Mapping to read from (defaults to ``os.environ``)
        require_mailer: Fail unless the SES variables are all present

    Raises:
        ConfigurationError: if required variables are missing or a value is invalid
    """
    environ = os.environ if environ is None else environ

    if require_mailer:
        missing = [name for name in MAILER_ENV_VARS if not environ.get(name)]
        if missing:
            raise ConfigurationError(
                f"Missing environment variables for the mailer: {', '.join(missing)}"
            )

    values = {
        field_name: environ[env_name]
        for env_name, field_name in ENV_VARS.items()
        if environ.get(env_name)
    }

    try:
        return PipelineConfig(**values)
    except ValidationError as exc:
        raise ConfigurationError(f"Invalid pipeline configuration: {exc}") from exc
