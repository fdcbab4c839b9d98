"""Sensor entities for Eufy Cloud.

Provides:
- Battery: battery level of battery powered cameras
- Session State: login state of the account (diagnostic)
"""
from __future__ import annotations

import logging
from typing import TYPE_CHECKING, Any

from homeassistant.components.sensor import (
    SensorDeviceClass,
    SensorEntity,
    SensorEntityDescription,
    SensorStateClass,
)
from homeassistant.const import PERCENTAGE, EntityCategory
from homeassistant.helpers.device_registry import DeviceInfo
from homeassistant.helpers.update_coordinator import CoordinatorEntity

from .capabilities import Capability
from .const import DOMAIN, LOGIN_STATES, MANUFACTURER
from .entity import EufyCameraEntity, async_setup_camera_platform
from .models import CaptchaPending, TwoFactorPending

if TYPE_CHECKING:
    from homeassistant.config_entries import ConfigEntry
    from homeassistant.core import HomeAssistant
    from homeassistant.helpers.entity_platform import AddEntitiesCallback

    from .coordinator import EufyCloudCoordinator
    from .device import EufyCameraHandle

_LOGGER = logging.getLogger(__name__)

BATTERY_DESCRIPTION = SensorEntityDescription(
    key="battery",
    device_class=SensorDeviceClass.BATTERY,
    native_unit_of_measurement=PERCENTAGE,
    state_class=SensorStateClass.MEASUREMENT,
    entity_category=EntityCategory.DIAGNOSTIC,
)

SESSION_STATE_DESCRIPTION = SensorEntityDescription(
    key="session_state",
    translation_key="session_state",
    device_class=SensorDeviceClass.ENUM,
    options=LOGIN_STATES,
    entity_category=EntityCategory.DIAGNOSTIC,
    icon="mdi:shield-account",
)


async def async_setup_entry(
    hass: HomeAssistant,
    entry: ConfigEntry,
    async_add_entities: AddEntitiesCallback,
) -> None:
    """Set up sensor entities from a config entry."""
    coordinator: EufyCloudCoordinator = hass.data[DOMAIN][entry.entry_id]

    async_add_entities([SessionStateSensor(coordinator, entry)])
    async_setup_camera_platform(
        hass, entry, async_add_entities, Capability.BATTERY, EufyBatterySensor
    )


class EufyBatterySensor(EufyCameraEntity, SensorEntity):
    """Battery level of a camera."""

    entity_description = BATTERY_DESCRIPTION

    def __init__(
        self,
        coordinator: EufyCloudCoordinator,
        handle: EufyCameraHandle,
    ) -> None:
        """Initialize the sensor."""
        super().__init__(coordinator, handle, BATTERY_DESCRIPTION.key)

    @property
    def native_value(self) -> int | None:
        """Return the battery percentage."""
        return self._handle.battery_level


class SessionStateSensor(CoordinatorEntity["EufyCloudCoordinator"], SensorEntity):
    """Login state of the Eufy account."""

    _attr_has_entity_name = True
    entity_description = SESSION_STATE_DESCRIPTION

    def __init__(
        self,
        coordinator: EufyCloudCoordinator,
        entry: ConfigEntry,
    ) -> None:
        """Initialize the sensor."""
        super().__init__(coordinator)
        self._entry = entry
        self._attr_unique_id = f"{entry.entry_id}_{SESSION_STATE_DESCRIPTION.key}"

    @property
    def device_info(self) -> DeviceInfo:
        """Return the account device."""
        return DeviceInfo(
            identifiers={(DOMAIN, self._entry.entry_id)},
            name=self._entry.title,
            manufacturer=MANUFACTURER,
            model="Cloud Account",
        )

    @property
    def available(self) -> bool:
        """Always report the login state."""
        return True

    @property
    def native_value(self) -> str:
        """Return the login state."""
        return self.coordinator.session.state.value

    @property
    def extra_state_attributes(self) -> dict[str, Any]:
        """Return challenge and diagnostic details without credentials."""
        session = self.coordinator.session
        challenge = session.challenge
        attrs: dict[str, Any] = {
            "generation": session.generation,
            "device_count": len(session.devices),
            "alerts": len(session.alerts),
        }
        if isinstance(challenge, TwoFactorPending):
            attrs["challenge"] = "two_factor"
        elif isinstance(challenge, CaptchaPending):
            attrs["challenge"] = "captcha"
        if session.last_error is not None:
            attrs["last_error"] = str(session.last_error)
        return attrs
