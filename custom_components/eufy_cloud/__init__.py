"""Eufy Cloud integration for Home Assistant.

Logs in to a Eufy Security cloud account, walks the operator through
two-factor and captcha challenges, and exposes the account's cameras as
camera, motion and battery entities.
"""
from __future__ import annotations

import logging
from typing import TYPE_CHECKING

import voluptuous as vol

from homeassistant.config_entries import ConfigEntry
from homeassistant.const import Platform
from homeassistant.core import HomeAssistant, ServiceCall
from homeassistant.exceptions import ConfigEntryAuthFailed
from homeassistant.helpers import config_validation as cv

from .capabilities import CapabilityPolicy
from .const import (
    ATTR_CODE,
    ATTR_CONFIG_ENTRY_ID,
    DOMAIN,
    SERVICE_SUBMIT_CAPTCHA,
    SERVICE_SUBMIT_VERIFY_CODE,
)
from .coordinator import EufyCloudCoordinator
from .exceptions import ConfigurationError
from .models import Credentials

if TYPE_CHECKING:
    from homeassistant.helpers.device_registry import DeviceEntry
    from homeassistant.helpers.typing import ConfigType

_LOGGER = logging.getLogger(__name__)

PLATFORMS: list[Platform] = [
    Platform.CAMERA,
    Platform.BINARY_SENSOR,
    Platform.SENSOR,
]

CONFIG_SCHEMA = cv.config_entry_only_config_schema(DOMAIN)

SUBMIT_CODE_SCHEMA = vol.Schema(
    {
        vol.Required(ATTR_CODE): cv.string,
        vol.Optional(ATTR_CONFIG_ENTRY_ID): cv.string,
    }
)


async def async_setup(hass: HomeAssistant, config: ConfigType) -> bool:
    """Set up the Eufy Cloud component."""
    hass.data.setdefault(DOMAIN, {})
    return True


async def async_setup_entry(hass: HomeAssistant, entry: ConfigEntry) -> bool:
    """Set up Eufy Cloud from a config entry."""
    _LOGGER.debug("Setting up Eufy Cloud entry: %s", entry.entry_id)

    coordinator = EufyCloudCoordinator(hass, entry)

    # Store coordinator early so platforms can access it
    hass.data.setdefault(DOMAIN, {})[entry.entry_id] = coordinator

    try:
        await coordinator.session.async_attempt_login()
    except ConfigurationError as err:
        hass.data[DOMAIN].pop(entry.entry_id)
        raise ConfigEntryAuthFailed(str(err)) from err

    # A failed or challenged login is reported through entity state and
    # notifications; the entry stays loaded so the operator can answer it.
    await coordinator.async_refresh()

    await hass.config_entries.async_forward_entry_setups(entry, PLATFORMS)

    _async_register_services(hass)

    entry.async_on_unload(entry.add_update_listener(_async_update_options))

    _LOGGER.info(
        "Eufy Cloud initialized for %s (%s)",
        entry.title,
        coordinator.session.state,
    )
    return True


async def async_unload_entry(hass: HomeAssistant, entry: ConfigEntry) -> bool:
    """Unload a config entry."""
    _LOGGER.debug("Unloading Eufy Cloud entry: %s", entry.entry_id)

    unload_ok = await hass.config_entries.async_unload_platforms(entry, PLATFORMS)

    if unload_ok:
        coordinator: EufyCloudCoordinator = hass.data[DOMAIN].pop(entry.entry_id)
        await coordinator.async_shutdown()

    return unload_ok


async def _async_update_options(hass: HomeAssistant, entry: ConfigEntry) -> None:
    """Apply credential or option changes."""
    coordinator: EufyCloudCoordinator = hass.data[DOMAIN][entry.entry_id]

    if CapabilityPolicy.from_options(entry.options) != coordinator.policy:
        _LOGGER.debug("Options updated for Eufy Cloud, reloading")
        await hass.config_entries.async_reload(entry.entry_id)
        return

    credentials = Credentials.from_entry_data(entry.data)
    if credentials != coordinator.session.credentials:
        _LOGGER.debug("Credentials updated for Eufy Cloud, logging in again")
        try:
            await coordinator.session.async_update_credentials(credentials)
        except ConfigurationError as err:
            _LOGGER.warning("Cannot log in: %s", err)
        await coordinator.async_refresh()


async def async_remove_config_entry_device(
    hass: HomeAssistant, entry: ConfigEntry, device_entry: DeviceEntry
) -> bool:
    """Release a camera the user removed from the device registry."""
    coordinator: EufyCloudCoordinator = hass.data[DOMAIN][entry.entry_id]
    for domain, native_id in device_entry.identifiers:
        if domain != DOMAIN:
            continue
        if native_id == entry.entry_id:
            # The account device goes away with the entry, not on its own
            return False
        coordinator.session.release_device(native_id)
    return True


def _async_register_services(hass: HomeAssistant) -> None:
    """Register integration services."""
    if hass.services.has_service(DOMAIN, SERVICE_SUBMIT_VERIFY_CODE):
        return

    def _get_coordinator(call: ServiceCall) -> EufyCloudCoordinator | None:
        entry_id = call.data.get(ATTR_CONFIG_ENTRY_ID)
        if entry_id is None:
            entries = hass.config_entries.async_entries(DOMAIN)
            if not entries:
                _LOGGER.error("No Eufy Cloud entries configured")
                return None
            entry_id = entries[0].entry_id

        coordinator = hass.data.get(DOMAIN, {}).get(entry_id)
        if coordinator is None:
            _LOGGER.error("Eufy Cloud entry %s is not loaded", entry_id)
        return coordinator

    async def handle_submit_verify_code(call: ServiceCall) -> None:
        """Handle the submit_verify_code service call."""
        coordinator = _get_coordinator(call)
        if coordinator is None:
            return
        state = await coordinator.async_login(verify_code=call.data[ATTR_CODE])
        _LOGGER.debug("Verification code submitted, state is now %s", state)

    async def handle_submit_captcha(call: ServiceCall) -> None:
        """Handle the submit_captcha service call."""
        coordinator = _get_coordinator(call)
        if coordinator is None:
            return
        state = await coordinator.async_login(captcha_code=call.data[ATTR_CODE])
        _LOGGER.debug("Captcha submitted, state is now %s", state)

    hass.services.async_register(
        DOMAIN,
        SERVICE_SUBMIT_VERIFY_CODE,
        handle_submit_verify_code,
        schema=SUBMIT_CODE_SCHEMA,
    )
    hass.services.async_register(
        DOMAIN,
        SERVICE_SUBMIT_CAPTCHA,
        handle_submit_captcha,
        schema=SUBMIT_CODE_SCHEMA,
    )
    _LOGGER.debug("Registered Eufy Cloud services")
