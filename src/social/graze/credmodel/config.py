"""
Configuration for the credential model.

Two layers:

1. Settings: process configuration loaded from environment variables through
   pydantic-settings, used by `wiring.credential_model` and the CLI.
2. ModelOptions: the construction options every CredentialModel requires
   (`issuer` and `user_model`). They are validated once, when the model is
   built, and any problem raises ConfigurationError so a misconfigured
   service fails at startup rather than on its first request.
"""

import logging
from typing import Any, Literal, Mapping, Optional, Union

from pydantic import (
    AliasChoices,
    BaseModel,
    ConfigDict,
    Field,
    ValidationError,
    field_validator,
)
from pydantic_settings import BaseSettings

from social.graze.credmodel.errors import ConfigurationError
from social.graze.credmodel.users import UserRepository

logger = logging.getLogger(__name__)


class Settings(BaseSettings):
    """
    Environment-driven settings.

    Environment variables map onto fields by name, with aliases where an
    older or more common name exists (PG_DSN or DATABASE_URL).
    """

    debug: bool = False
    """Echo SQL and enable verbose metrics client output. Set with DEBUG."""

    issuer: str
    """Value of the `iss` claim on every issued token (required). Set with ISSUER."""

    pg_dsn: str = Field(
        "postgresql+asyncpg://postgres:password@db/credmodel",
        validation_alias=AliasChoices("pg_dsn", "database_url"),
    )
    """
    SQLAlchemy async URL for the credential store.
    Set with PG_DSN or DATABASE_URL.
    """

    sentry_dsn: Optional[str] = None
    """Sentry DSN for error reporting. Nothing is reported if unset."""

    metrics_backend: Literal["telegraf", "noop"] = "noop"
    """Metrics backend. Set with METRICS_BACKEND."""

    statsd_host: str = Field(alias="TELEGRAF_HOST", default="telegraf")
    statsd_port: int = Field(alias="TELEGRAF_PORT", default=8125)
    statsd_prefix: str = "credmodel"

    bcrypt_rounds: int = 12
    """Work factor used when hashing passwords from the CLI."""


class ModelOptions(BaseModel):
    """Construction options for CredentialModel."""

    model_config = ConfigDict(arbitrary_types_allowed=True, frozen=True)

    issuer: str = Field(min_length=1)
    user_model: UserRepository

    @field_validator("issuer", mode="before")
    @classmethod
    def strip_issuer(cls, v):
        if isinstance(v, str):
            return v.strip()
        return v


def load_options(
    options: Union[ModelOptions, Mapping[str, Any], None],
) -> ModelOptions:
    """Validate construction options, raising ConfigurationError on any problem."""
    if isinstance(options, ModelOptions):
        return options
    if options is None:
        raise ConfigurationError.missing("issuer")

    for required in ("issuer", "user_model"):
        if options.get(required) is None:
            raise ConfigurationError.missing(required)

    try:
        return ModelOptions.model_validate(dict(options))
    except ValidationError as e:
        logger.error("Invalid credential model options: %s", e)
        raise ConfigurationError.invalid(str(e)) from e
