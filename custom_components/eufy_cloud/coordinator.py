"""Data coordinator for Eufy Cloud."""
from __future__ import annotations

from datetime import timedelta
import logging
from typing import TYPE_CHECKING, Any

from homeassistant.core import callback
from homeassistant.exceptions import ConfigEntryAuthFailed
from homeassistant.helpers.aiohttp_client import async_get_clientsession
from homeassistant.helpers.dispatcher import async_dispatcher_send
from homeassistant.helpers.update_coordinator import DataUpdateCoordinator, UpdateFailed

from .alerts import AlertLog
from .api.base import ClientConfig, EufyClient
from .api.cloud import EufyCloudApi
from .api.errors import EufyCloudError
from .capabilities import CapabilityPolicy
from .const import (
    CONF_CAPTCHA_ID,
    DEFAULT_POLLING_INTERVAL_MINUTES,
    DOMAIN,
    LoginState,
    signal_device_discovered,
)
from .models import Credentials
from .session import SessionManager

if TYPE_CHECKING:
    from homeassistant.config_entries import ConfigEntry
    from homeassistant.core import HomeAssistant

    from .device import EufyCameraHandle

_LOGGER = logging.getLogger(__name__)


async def async_create_client(hass: HomeAssistant, config: ClientConfig) -> EufyClient:
    """Create a cloud client on Home Assistant's shared aiohttp session."""
    return await EufyCloudApi.async_initialize(config, async_get_clientsession(hass))


class EufyCloudCoordinator(DataUpdateCoordinator[dict[str, Any]]):
    """Coordinator that owns the session manager and polls the cloud."""

    def __init__(self, hass: HomeAssistant, entry: ConfigEntry) -> None:
        """Initialize the coordinator."""
        super().__init__(
            hass,
            _LOGGER,
            config_entry=entry,
            name=DOMAIN,
            update_interval=timedelta(minutes=DEFAULT_POLLING_INTERVAL_MINUTES),
        )
        self.entry = entry
        self.policy = CapabilityPolicy.from_options(entry.options)

        async def _client_factory(config: ClientConfig) -> EufyClient:
            return await async_create_client(hass, config)

        self.session = SessionManager(
            Credentials.from_entry_data(entry.data),
            _client_factory,
            alerts=AlertLog(hass, f"{DOMAIN}_{entry.entry_id}"),
            policy=self.policy,
            captcha_id=entry.data.get(CONF_CAPTCHA_ID),
            on_device_discovered=self._async_device_discovered,
            on_captcha_id=self._async_store_captcha_id,
            on_state_changed=self.async_update_listeners,
        )

    async def _async_update_data(self) -> dict[str, Any]:
        """Poll devices and events from the live session."""
        state = self.session.state
        if state in (LoginState.TWO_FACTOR_PENDING, LoginState.CAPTCHA_PENDING):
            raise ConfigEntryAuthFailed(
                "The Eufy cloud is waiting for a verification code or captcha"
            )
        if not self.session.is_connected:
            raise UpdateFailed(f"Not connected to the Eufy cloud ({state})")

        try:
            await self.session.async_refresh()
        except EufyCloudError as err:
            raise UpdateFailed(f"Error refreshing Eufy devices: {err}") from err

        return {
            "state": self.session.state,
            "device_count": len(self.session.devices),
        }

    @callback
    def _async_device_discovered(self, handle: EufyCameraHandle) -> None:
        """Tell the entity platforms about a new camera."""
        _LOGGER.debug("Registering camera %s", handle.serial)
        async_dispatcher_send(
            self.hass, signal_device_discovered(self.entry.entry_id), handle
        )

    @callback
    def _async_store_captcha_id(self, captcha_id: str) -> None:
        """Keep the pending captcha id in the config entry."""
        if self.entry.data.get(CONF_CAPTCHA_ID) == captcha_id:
            return
        self.hass.config_entries.async_update_entry(
            self.entry, data={**self.entry.data, CONF_CAPTCHA_ID: captcha_id}
        )

    async def async_login(
        self, verify_code: str | None = None, captcha_code: str | None = None
    ) -> LoginState:
        """Run a login attempt and refresh entities with the outcome."""
        state = await self.session.async_attempt_login(
            verify_code=verify_code, captcha_code=captcha_code
        )
        await self.async_refresh()
        return state

    async def async_shutdown(self) -> None:
        """Close the session along with the coordinator."""
        await super().async_shutdown()
        await self.session.async_close()
