"""Runtime configuration from environment variables."""

from pathlib import Path
from typing import Literal

from pydantic import field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict

from focus_pin import constants
from focus_pin.config import BoostConfig


class Settings(BaseSettings):
    """Runtime configuration from environment variables.

    All settings can be overridden via environment variables with FOCUS_PIN_ prefix.
    Example: FOCUS_PIN_PIN_PRIVILEGED_DOMAIN=true
    CLI flags take precedence over these.
    """

    model_config = SettingsConfigDict(
        env_prefix="FOCUS_PIN_",
        extra="ignore",
    )

    # Boost policy
    boost_mask: str = constants.DEFAULT_BOOST_MASK
    ignore_mask: str = constants.DEFAULT_IGNORE_MASK
    pin_privileged_domain: bool = False
    privileged_domain: str = constants.PRIVILEGED_DOMAIN

    # External binaries (bare names are resolved through PATH at startup)
    xl_bin: Path = Path("xl")
    xprop_bin: Path = Path("xprop")

    # Logging
    log_level: Literal["DEBUG", "INFO", "WARNING", "ERROR"] = "INFO"
    syslog: bool = True

    @field_validator("log_level", mode="before")
    @classmethod
    def _normalize_log_level(cls, value: object) -> object:
        # Same spelling rules as FOCUS_PIN_LOG_LEVEL handling in _logging
        return value.strip().upper() if isinstance(value, str) else value

    def boost_config(self) -> BoostConfig:
        """Policy subset consumed by the supervisor (validated, immutable)."""
        return BoostConfig(
            boost_mask=self.boost_mask,
            ignore_mask=self.ignore_mask,
            pin_privileged_domain=self.pin_privileged_domain,
            privileged_domain=self.privileged_domain,
        )
