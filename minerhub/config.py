from __future__ import annotations

from typing import Any, Dict, List

from pydantic import BaseModel, ConfigDict, Field, ValidationError

from minerhub.errors import ConfigurationError


class MinerConfig(BaseModel):
    """Where a miner binary lives and how its telemetry endpoint is reached."""

    model_config = ConfigDict(frozen=True)

    path: str = Field(description="Path to the miner executable.")
    endpoint: str = Field(
        default="",
        description="Telemetry URL. Empty means the adapter's well-known default.",
    )


class MinerSettings(MinerConfig):
    type: str = Field(default="xmr-stak", description="Adapter kind to build.")
    refresh_interval: int | None = Field(
        default=None,
        description="Polling interval override in seconds.",
    )


class AppConfig(BaseModel):
    refresh_interval: int = Field(
        default=30, description="Default stats polling interval in seconds."
    )
    log_level: str = Field(default="INFO")
    miners: List[MinerSettings] = Field(default_factory=list)

    @classmethod
    def from_settings(cls, settings: Dict[str, Any]) -> "AppConfig":
        try:
            return cls.model_validate(
                {str(key).lower(): value for key, value in settings.items()}
            )
        except ValidationError as exc:
            raise ConfigurationError(f"Invalid settings: {exc}") from exc


DEFAULT_CONFIG = AppConfig()
