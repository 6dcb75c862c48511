"""Environment-driven settings shared by the engine and the example workflows."""

import os
from typing import Literal, Mapping, Optional

from pydantic import BaseModel, Field


class Settings(BaseModel):
    """Runtime settings. Build with ``load_settings()`` to read the environment."""

    step_timeout: Optional[float] = Field(
        default=None,
        gt=0,
        description="Default per-step timeout in seconds (None = no timeout)",
    )
    log_level: str = Field(default="INFO", description="Log level for scripts")

    http_timeout: float = Field(default=30.0, gt=0, description="HTTP timeout in seconds")
    geocoding_url: str = "https://geocoding-api.open-meteo.com/v1/search"
    forecast_url: str = "https://api.open-meteo.com/v1/forecast"
    rain_threshold: float = Field(
        default=30.0,
        ge=0,
        le=100,
        description="Precipitation chance (%) above which indoor plans are added",
    )

    provider: Literal["openai", "anthropic", "ollama"] = "ollama"
    planning_model: Optional[str] = None
    synthesize_model: Optional[str] = None
    ollama_base_url: str = "http://localhost:11434"


def load_settings(environ: Optional[Mapping[str, str]] = None) -> Settings:
    """
    Read settings from environment variables.

    Args:
        environ: Mapping to read instead of ``os.environ`` (for tests)

    Returns:
        Validated Settings

    Raises:
        pydantic.ValidationError: If a variable holds an invalid value
    """
    env = os.environ if environ is None else environ
    mapping = {
        "step_timeout": "FLOWPATTERNS_STEP_TIMEOUT",
        "log_level": "FLOWPATTERNS_LOG_LEVEL",
        "http_timeout": "FLOWPATTERNS_HTTP_TIMEOUT",
        "geocoding_url": "GEOCODING_URL",
        "forecast_url": "FORECAST_URL",
        "rain_threshold": "RAIN_THRESHOLD",
        "provider": "PROVIDER",
        "planning_model": "PLANNING_MODEL",
        "synthesize_model": "SYNTHESIZE_MODEL",
        "ollama_base_url": "OLLAMA_BASE_URL",
    }
    values = {
        field_name: env[var]
        for field_name, var in mapping.items()
        if env.get(var) not in (None, "")
    }
    return Settings.model_validate(values)
