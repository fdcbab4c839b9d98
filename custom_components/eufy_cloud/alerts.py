"""Operator-facing alert log.

Alerts are kept in memory and mirrored into Home Assistant persistent
notifications so that login problems show up in the UI.
"""
from __future__ import annotations

import logging
from typing import TYPE_CHECKING

from homeassistant.components import persistent_notification

from .const import DOMAIN

if TYPE_CHECKING:
    from homeassistant.core import HomeAssistant

_LOGGER = logging.getLogger(__name__)

NOTIFICATION_TITLE = "Eufy Security"
MAX_ALERTS = 20


class AlertLog:
    """Append/clear log of operator-facing messages."""

    def __init__(self, hass: HomeAssistant | None = None, key: str = DOMAIN) -> None:
        """Initialize the log. Without hass, alerts are only kept in memory."""
        self._hass = hass
        self._key = key
        self._messages: list[str] = []
        self._notification_ids: list[str] = []
        self._counter = 0

    @property
    def messages(self) -> list[str]:
        """Return the current alerts, oldest first."""
        return list(self._messages)

    def __len__(self) -> int:
        return len(self._messages)

    def alert(self, message: str) -> None:
        """Record an alert and raise it as a notification."""
        # Captcha alerts carry an inline image after the first line
        _LOGGER.warning("%s", message.split("\n", 1)[0])
        self._messages.append(message)
        if len(self._messages) > MAX_ALERTS:
            self._messages.pop(0)

        if self._hass is None:
            return
        self._counter += 1
        notification_id = f"{self._key}_alert_{self._counter}"
        self._notification_ids.append(notification_id)
        persistent_notification.async_create(
            self._hass,
            message,
            title=NOTIFICATION_TITLE,
            notification_id=notification_id,
        )
        if len(self._notification_ids) > MAX_ALERTS:
            persistent_notification.async_dismiss(
                self._hass, self._notification_ids.pop(0)
            )

    def clear(self) -> None:
        """Drop every alert and dismiss its notification."""
        self._messages.clear()
        if self._hass is not None:
            for notification_id in self._notification_ids:
                persistent_notification.async_dismiss(self._hass, notification_id)
        self._notification_ids.clear()
