"""Process-wide settings, read once from the environment at startup."""

from __future__ import annotations

from typing import Any, Literal

from pydantic import Field, PositiveFloat, PositiveInt, ValidationError
from pydantic_settings import BaseSettings, SettingsConfigDict

from gmaps_mcp.exceptions import ConfigurationError


class Settings(BaseSettings):
    """Server settings.

    Values come from the environment (or a ``.env`` file in the working
    directory). ``GOOGLE_MAPS_API_KEY`` is required; everything else has a
    default. For example, ``PORT=8080`` sets ``port=8080``.
    """

    model_config = SettingsConfigDict(
        env_file=".env",
        extra="ignore",
    )

    google_maps_api_key: str = Field(min_length=1, repr=False)

    # HTTP settings
    host: str = "0.0.0.0"
    port: PositiveInt = 3000
    mcp_path: str = "/mcp"

    log_level: Literal["DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"] = "INFO"

    request_timeout: PositiveFloat = 10.0
    """Upper bound, in seconds, for every call to the mapping provider."""


def load_settings(**overrides: Any) -> Settings:
    """Build the settings, turning validation failures into ``ConfigurationError``."""
    try:
        return Settings(**overrides)
    except ValidationError as e:
        missing = [".".join(str(p) for p in err["loc"]) for err in e.errors()]
        if "google_maps_api_key" in missing:
            raise ConfigurationError("Missing GOOGLE_MAPS_API_KEY environment variable") from e
        raise ConfigurationError(f"Invalid configuration: {e}") from e
