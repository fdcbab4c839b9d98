"""Data models for the Eufy Cloud integration."""
from __future__ import annotations

from collections.abc import Mapping
from dataclasses import dataclass, field
from typing import Any

from .const import (
    CONF_COUNTRY,
    CONF_EMAIL,
    CONF_PASSWORD,
    CONF_TRUSTED_DEVICE_NAME,
    DEFAULT_COUNTRY,
    DEFAULT_TRUSTED_DEVICE_NAME,
)


@dataclass(frozen=True)
class Credentials:
    """Account credentials entered by the operator."""

    email: str = ""
    password: str = field(default="", repr=False)
    country: str = DEFAULT_COUNTRY
    trusted_device_name: str = DEFAULT_TRUSTED_DEVICE_NAME

    @property
    def is_complete(self) -> bool:
        """Return True if both email and password are set."""
        return bool(self.email) and bool(self.password)

    @classmethod
    def from_entry_data(cls, data: Mapping[str, Any]) -> Credentials:
        """Create credentials from config entry data or flow input."""
        return cls(
            email=(data.get(CONF_EMAIL) or "").strip(),
            password=data.get(CONF_PASSWORD) or "",
            country=(data.get(CONF_COUNTRY) or DEFAULT_COUNTRY).upper(),
            trusted_device_name=(
                data.get(CONF_TRUSTED_DEVICE_NAME) or DEFAULT_TRUSTED_DEVICE_NAME
            ),
        )

    def as_entry_data(self) -> dict[str, str]:
        """Return the credentials as config entry data."""
        return {
            CONF_EMAIL: self.email,
            CONF_PASSWORD: self.password,
            CONF_COUNTRY: self.country,
            CONF_TRUSTED_DEVICE_NAME: self.trusted_device_name,
        }


@dataclass(frozen=True)
class TwoFactorPending:
    """The cloud asked for a one-time verification code."""


@dataclass(frozen=True)
class CaptchaPending:
    """The cloud asked for a captcha answer."""

    challenge_id: str
    image: str = field(repr=False)


ChallengeState = TwoFactorPending | CaptchaPending | None
