"""Environment configuration for the HUP ladder."""

import logging
from typing import Mapping, Optional

from pydantic import BaseModel, ConfigDict, Field, ValidationError, field_validator

from hupladder.errors import ConfigError

STAGING_API_URL = "https://api.balena-staging.com"
PRODUCTION_API_URL = "https://api.balena-cloud.com"

# Environment variable -> LadderConfig field
ENV_FIELDS = {
    "UUID": "uuid",
    "TOKEN": "token",
    "RANDOM_ORDER": "random_order",
    "STAGING": "staging",
    "STEP": "step",
    "MAX_FAILS": "max_fails",
    "POLL_INTERVAL": "poll_interval",
    "API_URL": "api_url_override",
    "REQUEST_TIMEOUT": "request_timeout",
    "LOG_LEVEL": "log_level",
    "LOG_FILE": "log_file",
    "STATUS_PORT": "status_port",
}

LOG_LEVELS = {"DEBUG", "INFO", "WARNING", "ERROR"}


class LadderConfig(BaseModel):
    """Ladder settings, read once at startup.

    STAGING defaults to True when the variable is unset; only an explicit
    false value ("0", "false", "no", "off") selects the production API.
    """

    model_config = ConfigDict(frozen=True)

    uuid: str = Field(..., min_length=1, description="Target device UUID")
    token: str = Field(..., min_length=1, description="API token")
    random_order: bool = Field(default=False, description="Pick targets at random")
    staging: bool = Field(default=True, description="Use the staging API")
    step: int = Field(default=1, ge=1, description="Offset for positional target selection")
    max_fails: int = Field(default=10, ge=1, description="Shared failure budget")
    poll_interval: float = Field(default=60.0, gt=0, description="Seconds between polls")
    api_url_override: Optional[str] = Field(
        default=None, pattern=r"^https?://.+", description="Explicit API base URL"
    )
    request_timeout: float = Field(default=30.0, gt=0, description="HTTP timeout (s)")
    log_level: str = Field(default="INFO", description="Logging level name")
    log_file: Optional[str] = Field(default=None, description="Rotating log file path")
    status_port: Optional[int] = Field(
        default=None, ge=1, le=65535, description="Port for the status API"
    )

    @field_validator("log_level", mode="before")
    @classmethod
    def normalize_log_level(cls, v):
        """Accept log level names case-insensitively."""
        level = str(v).strip().upper()
        if level == "WARN":
            level = "WARNING"
        if level not in LOG_LEVELS:
            raise ValueError(f"unknown log level: {v}")
        return level

    @property
    def api_url(self) -> str:
        """Base URL of the device-management API."""
        if self.api_url_override:
            return self.api_url_override.rstrip("/")
        return STAGING_API_URL if self.staging else PRODUCTION_API_URL

    @property
    def actions_url(self) -> str:
        """Base URL of the device actions service (host OS updates)."""
        return self.api_url.replace("://api.", "://actions.", 1) + "/v1"

    @property
    def logging_level(self) -> int:
        return getattr(logging, self.log_level)


def load_config(environ: Mapping[str, str]) -> LadderConfig:
    """Build a LadderConfig from environment variables.

    Empty variables are treated as unset.

    Args:
        environ: Environment mapping (usually os.environ)

    Returns:
        Validated LadderConfig

    Raises:
        ConfigError: If UUID or TOKEN is missing, or a value fails validation
    """
    values = {}
    for env_name, field_name in ENV_FIELDS.items():
        raw = environ.get(env_name)
        if raw is None or not raw.strip():
            continue
        values[field_name] = raw.strip()

    for required in ("UUID", "TOKEN"):
        if ENV_FIELDS[required] not in values:
            raise ConfigError(f"{required} required in environment")

    try:
        return LadderConfig(**values)
    except ValidationError as e:
        fields = ", ".join(
            _env_name(str(err["loc"][0])) for err in e.errors() if err.get("loc")
        )
        raise ConfigError(f"Invalid environment configuration ({fields}): {e}") from e


def _env_name(field_name: str) -> str:
    for env_name, name in ENV_FIELDS.items():
        if name == field_name:
            return env_name
    return field_name
