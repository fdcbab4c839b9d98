"""Base entity for Eufy cameras."""
from __future__ import annotations

from collections.abc import Callable
from typing import TYPE_CHECKING

from homeassistant.core import HomeAssistant, callback
from homeassistant.helpers.device_registry import DeviceInfo
from homeassistant.helpers.dispatcher import async_dispatcher_connect
from homeassistant.helpers.entity import Entity
from homeassistant.helpers.update_coordinator import CoordinatorEntity

from .capabilities import Capability
from .const import DOMAIN, signal_device_discovered
from .coordinator import EufyCloudCoordinator

if TYPE_CHECKING:
    from homeassistant.config_entries import ConfigEntry
    from homeassistant.helpers.entity_platform import AddEntitiesCallback

    from .device import EufyCameraHandle


class EufyCameraEntity(CoordinatorEntity[EufyCloudCoordinator]):
    """Entity backed by a camera handle."""

    _attr_has_entity_name = True

    def __init__(
        self,
        coordinator: EufyCloudCoordinator,
        handle: EufyCameraHandle,
        key: str,
    ) -> None:
        """Initialize the entity."""
        super().__init__(coordinator)
        self._handle = handle
        self._attr_unique_id = f"{handle.serial}_{key}"

    @property
    def device_info(self) -> DeviceInfo:
        """Return device information from the registration descriptor."""
        descriptor = self._handle.descriptor
        return DeviceInfo(
            identifiers={(DOMAIN, descriptor.native_id)},
            name=descriptor.name,
            manufacturer=descriptor.manufacturer,
            model=descriptor.model,
            sw_version=descriptor.firmware,
            serial_number=descriptor.serial_number,
        )

    @property
    def available(self) -> bool:
        """Return True while the camera's session is live."""
        return self._handle.available

    async def async_added_to_hass(self) -> None:
        """Follow handle changes in addition to coordinator updates."""
        await super().async_added_to_hass()
        self.async_on_remove(self._handle.async_add_listener(self.async_write_ha_state))


def async_setup_camera_platform(
    hass: HomeAssistant,
    entry: ConfigEntry,
    async_add_entities: AddEntitiesCallback,
    capability: Capability,
    factory: Callable[[EufyCloudCoordinator, EufyCameraHandle], Entity],
) -> None:
    """Add entities for cameras with a capability, now and as they appear."""
    coordinator: EufyCloudCoordinator = hass.data[DOMAIN][entry.entry_id]

    @callback
    def _async_add(handle: EufyCameraHandle) -> None:
        if capability in handle.descriptor.interfaces:
            async_add_entities([factory(coordinator, handle)])

    for handle in coordinator.session.devices.values():
        _async_add(handle)

    entry.async_on_unload(
        async_dispatcher_connect(
            hass, signal_device_discovered(entry.entry_id), _async_add
        )
    )
