"""Live camera handles shared between the session manager and entities."""
from __future__ import annotations

import asyncio
from collections.abc import Callable
import logging
from typing import TYPE_CHECKING

from .const import DEFAULT_EVENT_DURATION_SECONDS, StreamMode

if TYPE_CHECKING:
    from .api.models import Device
    from .capabilities import DeviceDescriptor
    from .session import Session

_LOGGER = logging.getLogger(__name__)

PICTURE_MIME_TYPE = "image/jpeg"


class EufyCameraHandle:
    """A discovered camera bound to the session that reported it.

    Every vendor operation goes through the bound session, so a handle
    left over from an invalidated session raises ``SessionExpiredError``
    until a newer session rebinds it.
    """

    def __init__(
        self,
        session: Session,
        device: Device,
        descriptor: DeviceDescriptor,
        event_duration: int = DEFAULT_EVENT_DURATION_SECONDS,
    ) -> None:
        """Initialize the handle."""
        self._session = session
        self._device = device
        self.descriptor = descriptor
        self._event_duration = event_duration
        self._is_on = device.enabled
        self._motion = False
        self._motion_reset: asyncio.TimerHandle | None = None
        self._listeners: list[Callable[[], None]] = []

    @property
    def serial(self) -> str:
        """Return the vendor serial number (the native id)."""
        return self._device.serial

    @property
    def device(self) -> Device:
        """Return the last known vendor device."""
        return self._device

    @property
    def available(self) -> bool:
        """Return True while the bound session is live."""
        return self._session.live

    @property
    def is_on(self) -> bool:
        """Return True if the camera is switched on."""
        return self._is_on

    @property
    def motion_detected(self) -> bool:
        """Return True while a motion event is active."""
        return self._motion

    @property
    def battery_level(self) -> int | None:
        """Return the reported battery percentage."""
        return self._device.battery_level

    def bind(self, session: Session, device: Device, descriptor: DeviceDescriptor) -> None:
        """Attach the handle to a newer session."""
        self._session = session
        self._device = device
        self.descriptor = descriptor
        self._is_on = device.enabled
        self._notify()

    def update_device(self, device: Device) -> None:
        """Take fresh properties from a poll."""
        self._device = device
        self._is_on = device.enabled
        self._notify()

    def async_add_listener(self, listener: Callable[[], None]) -> Callable[[], None]:
        """Register a change listener and return a function that removes it."""
        self._listeners.append(listener)

        def _remove() -> None:
            if listener in self._listeners:
                self._listeners.remove(listener)

        return _remove

    def _notify(self) -> None:
        for listener in list(self._listeners):
            listener()

    # -------------------------------------------------------------------------
    # Motion
    # -------------------------------------------------------------------------

    def set_motion(self, state: bool) -> None:
        """Record a motion event; active motion clears after the event duration."""
        if self._motion_reset is not None:
            self._motion_reset.cancel()
            self._motion_reset = None

        self._motion = state
        if state:
            loop = asyncio.get_running_loop()
            self._motion_reset = loop.call_later(
                self._event_duration, self._clear_motion
            )
        self._notify()

    def _clear_motion(self) -> None:
        self._motion_reset = None
        self._motion = False
        self._notify()

    # -------------------------------------------------------------------------
    # Vendor operations
    # -------------------------------------------------------------------------

    async def _async_set_enabled(self, enabled: bool) -> None:
        client = self._session.client
        if self._is_on != enabled:
            station = await client.async_get_station(self._device.station_serial)
            await client.async_enable_device(station, self._device, enabled)
        self._is_on = enabled
        self._notify()

    async def async_turn_on(self) -> None:
        """Switch the camera on."""
        await self._async_set_enabled(True)

    async def async_turn_off(self) -> None:
        """Switch the camera off."""
        await self._async_set_enabled(False)

    async def async_take_picture(self) -> bytes | None:
        """Return the latest JPEG picture."""
        return await self._session.client.async_get_picture(self._device)

    async def async_get_stream_source(self, stream_mode: StreamMode) -> str | None:
        """Return the stream URL for the configured stream mode."""
        client = self._session.client
        if stream_mode is StreamMode.SNAPSHOT:
            return None
        endpoint = self._device.get_stream_endpoint()
        if endpoint:
            return endpoint
        return await client.async_start_stream(self._device)

    def detach(self) -> None:
        """Stop timers and drop listeners when the device is released."""
        if self._motion_reset is not None:
            self._motion_reset.cancel()
            self._motion_reset = None
        self._listeners.clear()
        _LOGGER.debug("Detached handle for %s", self.serial)
