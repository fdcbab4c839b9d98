"""Camera entities for Eufy Cloud.

Provides one camera per discovered Eufy camera:
- Stream source: local RTSP or cloud stream (rtsp mode only)
- Still image: latest cover picture
- On/off: device switch through the station
"""
from __future__ import annotations

import logging
from typing import TYPE_CHECKING

from homeassistant.components.camera import Camera, CameraEntityFeature

from .capabilities import Capability
from .const import StreamMode
from .entity import EufyCameraEntity, async_setup_camera_platform

if TYPE_CHECKING:
    from homeassistant.config_entries import ConfigEntry
    from homeassistant.core import HomeAssistant
    from homeassistant.helpers.entity_platform import AddEntitiesCallback

    from .coordinator import EufyCloudCoordinator
    from .device import EufyCameraHandle

_LOGGER = logging.getLogger(__name__)


async def async_setup_entry(
    hass: HomeAssistant,
    entry: ConfigEntry,
    async_add_entities: AddEntitiesCallback,
) -> None:
    """Set up camera entities from a config entry."""
    async_setup_camera_platform(
        hass, entry, async_add_entities, Capability.VIDEO_STREAM, EufyCamera
    )


class EufyCamera(EufyCameraEntity, Camera):
    """A Eufy camera."""

    _attr_name = None
    _attr_brand = "Eufy"

    def __init__(
        self,
        coordinator: EufyCloudCoordinator,
        handle: EufyCameraHandle,
    ) -> None:
        """Initialize the camera."""
        EufyCameraEntity.__init__(self, coordinator, handle, "camera")
        Camera.__init__(self)
        self._stream_mode = coordinator.policy.stream_mode
        features = CameraEntityFeature.ON_OFF
        if self._stream_mode is StreamMode.RTSP:
            features |= CameraEntityFeature.STREAM
        self._attr_supported_features = features
        self._attr_model = handle.descriptor.model

    @property
    def is_on(self) -> bool:
        """Return True if the camera is switched on."""
        return self._handle.is_on

    @property
    def motion_detection_enabled(self) -> bool:
        """Return True if the camera reports motion."""
        return Capability.MOTION in self._handle.descriptor.interfaces

    async def stream_source(self) -> str | None:
        """Return the stream URL."""
        return await self._handle.async_get_stream_source(self._stream_mode)

    async def async_camera_image(
        self, width: int | None = None, height: int | None = None
    ) -> bytes | None:
        """Return the latest still picture."""
        return await self._handle.async_take_picture()

    async def async_turn_on(self) -> None:
        """Switch the camera on."""
        _LOGGER.debug("Turning on %s", self._handle.serial)
        await self._handle.async_turn_on()

    async def async_turn_off(self) -> None:
        """Switch the camera off."""
        _LOGGER.debug("Turning off %s", self._handle.serial)
        await self._handle.async_turn_off()
