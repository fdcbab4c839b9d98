"""Binary sensor entities for Eufy Cloud.

Provides:
- Motion: on for the event duration after the camera reports motion
"""
from __future__ import annotations

from typing import TYPE_CHECKING

from homeassistant.components.binary_sensor import (
    BinarySensorDeviceClass,
    BinarySensorEntity,
    BinarySensorEntityDescription,
)

from .capabilities import Capability
from .entity import EufyCameraEntity, async_setup_camera_platform

if TYPE_CHECKING:
    from homeassistant.config_entries import ConfigEntry
    from homeassistant.core import HomeAssistant
    from homeassistant.helpers.entity_platform import AddEntitiesCallback

    from .coordinator import EufyCloudCoordinator
    from .device import EufyCameraHandle

MOTION_DESCRIPTION = BinarySensorEntityDescription(
    key="motion",
    translation_key="motion",
    device_class=BinarySensorDeviceClass.MOTION,
)


async def async_setup_entry(
    hass: HomeAssistant,
    entry: ConfigEntry,
    async_add_entities: AddEntitiesCallback,
) -> None:
    """Set up binary sensor entities from a config entry."""
    async_setup_camera_platform(
        hass, entry, async_add_entities, Capability.MOTION, EufyMotionSensor
    )


class EufyMotionSensor(EufyCameraEntity, BinarySensorEntity):
    """Motion reported by a camera."""

    entity_description = MOTION_DESCRIPTION

    def __init__(
        self,
        coordinator: EufyCloudCoordinator,
        handle: EufyCameraHandle,
    ) -> None:
        """Initialize the binary sensor."""
        super().__init__(coordinator, handle, MOTION_DESCRIPTION.key)

    @property
    def is_on(self) -> bool:
        """Return True while motion is active."""
        return self._handle.motion_detected
