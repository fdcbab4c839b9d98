"""Integration level exceptions."""
from __future__ import annotations

from homeassistant.exceptions import HomeAssistantError


class ConfigurationError(HomeAssistantError):
    """Email or password is missing."""
