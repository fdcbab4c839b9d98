"""Config flow for Eufy Cloud.

Steps:
1. user - email, password, country and trusted device name
2. verify_code - one-time code, when the cloud asks for two-factor
3. captcha - captcha answer, when the cloud asks for one

Reauthentication reuses the challenge steps against the entry's live
session manager.
"""
from __future__ import annotations

from collections.abc import Mapping
import logging
from typing import Any

import voluptuous as vol

from homeassistant.config_entries import ConfigEntry, ConfigFlow, OptionsFlow
from homeassistant.core import callback
from homeassistant.data_entry_flow import FlowResult
from homeassistant.helpers.selector import (
    BooleanSelector,
    CountrySelector,
    SelectSelector,
    SelectSelectorConfig,
    SelectSelectorMode,
    TextSelector,
    TextSelectorConfig,
    TextSelectorType,
)

from .alerts import AlertLog
from .api.base import ClientConfig, EufyClient
from .api.errors import EufyCloudError, InvalidCredentialsError, ResponseCode
from .capabilities import CapabilityPolicy
from .const import (
    CONF_ADVERTISE_BATTERY,
    CONF_ADVERTISE_MOTION,
    CONF_CAPTCHA,
    CONF_CAPTCHA_ID,
    CONF_COUNTRY,
    CONF_EMAIL,
    CONF_PASSWORD,
    CONF_STREAM_MODE,
    CONF_TRUSTED_DEVICE_NAME,
    CONF_VERIFY_CODE,
    DEFAULT_COUNTRY,
    DEFAULT_TRUSTED_DEVICE_NAME,
    DOMAIN,
    STREAM_MODES,
    LoginState,
)
from .coordinator import EufyCloudCoordinator, async_create_client
from .exceptions import ConfigurationError
from .models import CaptchaPending, Credentials
from .session import SessionManager

_LOGGER = logging.getLogger(__name__)

VERIFY_CODE_ERRORS = frozenset(
    {
        ResponseCode.VERIFY_CODE_ERROR,
        ResponseCode.VERIFY_CODE_EXPIRED,
        ResponseCode.VERIFY_CODE_MAX,
    }
)


def _credentials_schema(defaults: Mapping[str, Any]) -> vol.Schema:
    """Build the credentials form, prefilled except for the password."""
    return vol.Schema(
        {
            vol.Required(
                CONF_EMAIL, default=defaults.get(CONF_EMAIL, "")
            ): TextSelector(TextSelectorConfig(type=TextSelectorType.EMAIL)),
            vol.Required(CONF_PASSWORD): TextSelector(
                TextSelectorConfig(type=TextSelectorType.PASSWORD)
            ),
            vol.Required(
                CONF_COUNTRY, default=defaults.get(CONF_COUNTRY, DEFAULT_COUNTRY)
            ): CountrySelector(),
            vol.Optional(
                CONF_TRUSTED_DEVICE_NAME,
                default=defaults.get(
                    CONF_TRUSTED_DEVICE_NAME, DEFAULT_TRUSTED_DEVICE_NAME
                ),
            ): TextSelector(TextSelectorConfig(type=TextSelectorType.TEXT)),
        }
    )


def _error_key(err: EufyCloudError | None) -> str:
    """Map the last login failure to a form error."""
    if isinstance(err, InvalidCredentialsError):
        return "invalid_auth"
    if err is not None and err.code in VERIFY_CODE_ERRORS:
        return "invalid_verify_code"
    return "cannot_connect"


class EufyCloudConfigFlow(ConfigFlow, domain=DOMAIN):
    """Handle a config flow for Eufy Cloud."""

    VERSION = 1

    def __init__(self) -> None:
        """Initialize the config flow."""
        self._manager: SessionManager | None = None
        self._owns_manager = False
        self._reauth_entry: ConfigEntry | None = None

    def _new_manager(self, credentials: Credentials) -> SessionManager:
        """Create a throwaway session manager for validating credentials."""
        hass = self.hass

        async def _client_factory(config: ClientConfig) -> EufyClient:
            return await async_create_client(hass, config)

        captcha_id = None
        if self._reauth_entry is not None:
            captcha_id = self._reauth_entry.data.get(CONF_CAPTCHA_ID)
        return SessionManager(
            credentials,
            _client_factory,
            alerts=AlertLog(),
            captcha_id=captcha_id,
        )

    async def _async_login(self, **codes: str) -> dict[str, str]:
        """Run a login attempt, returning form errors."""
        assert self._manager is not None
        try:
            state = await self._manager.async_attempt_login(**codes)
        except ConfigurationError:
            return {"base": "missing_credentials"}

        if state in (
            LoginState.CONNECTED,
            LoginState.TWO_FACTOR_PENDING,
            LoginState.CAPTCHA_PENDING,
        ):
            return {}
        _LOGGER.debug("Login attempt failed: %s", self._manager.last_error)
        return {"base": _error_key(self._manager.last_error)}

    async def _async_next_step(self) -> FlowResult:
        """Continue with whatever the cloud asked for."""
        assert self._manager is not None
        state = self._manager.state
        if state is LoginState.TWO_FACTOR_PENDING:
            return await self.async_step_verify_code()
        if state is LoginState.CAPTCHA_PENDING:
            return await self.async_step_captcha()
        return await self._async_finish()

    async def _async_finish(self) -> FlowResult:
        """Store the credentials once logged in."""
        assert self._manager is not None
        data: dict[str, Any] = self._manager.credentials.as_entry_data()
        if self._manager.captcha_id:
            data[CONF_CAPTCHA_ID] = self._manager.captcha_id

        if self._owns_manager:
            await self._manager.async_close()

        if self._reauth_entry is None:
            return self.async_create_entry(title=data[CONF_EMAIL], data=data)

        if self._owns_manager:
            return self.async_update_reload_and_abort(self._reauth_entry, data=data)

        self.hass.config_entries.async_update_entry(self._reauth_entry, data=data)
        coordinator: EufyCloudCoordinator = self.hass.data[DOMAIN][
            self._reauth_entry.entry_id
        ]
        await coordinator.async_refresh()
        return self.async_abort(reason="reauth_successful")

    async def async_step_user(
        self, user_input: dict[str, Any] | None = None
    ) -> FlowResult:
        """Handle the credentials step."""
        errors: dict[str, str] = {}

        if user_input is not None:
            credentials = Credentials.from_entry_data(user_input)
            await self.async_set_unique_id(credentials.email.lower())
            self._abort_if_unique_id_configured()

            if self._manager is not None and self._owns_manager:
                await self._manager.async_close()
            self._manager = self._new_manager(credentials)
            self._owns_manager = True

            errors = await self._async_login()
            if not errors:
                return await self._async_next_step()

        return self.async_show_form(
            step_id="user",
            data_schema=_credentials_schema(user_input or {}),
            errors=errors,
        )

    async def async_step_verify_code(
        self, user_input: dict[str, Any] | None = None
    ) -> FlowResult:
        """Handle the two-factor code step."""
        errors: dict[str, str] = {}

        if user_input is not None:
            errors = await self._async_login(verify_code=user_input[CONF_VERIFY_CODE])
            if not errors:
                return await self._async_next_step()

        return self.async_show_form(
            step_id="verify_code",
            data_schema=vol.Schema(
                {
                    vol.Required(CONF_VERIFY_CODE): TextSelector(
                        TextSelectorConfig(type=TextSelectorType.TEXT)
                    ),
                }
            ),
            errors=errors,
        )

    async def async_step_captcha(
        self, user_input: dict[str, Any] | None = None
    ) -> FlowResult:
        """Handle the captcha step."""
        assert self._manager is not None
        errors: dict[str, str] = {}

        if user_input is not None:
            errors = await self._async_login(captcha_code=user_input[CONF_CAPTCHA])
            if not errors:
                return await self._async_next_step()

        challenge = self._manager.challenge
        image = challenge.image if isinstance(challenge, CaptchaPending) else ""

        return self.async_show_form(
            step_id="captcha",
            data_schema=vol.Schema(
                {
                    vol.Required(CONF_CAPTCHA): TextSelector(
                        TextSelectorConfig(type=TextSelectorType.TEXT)
                    ),
                }
            ),
            description_placeholders={"captcha": image},
            errors=errors,
        )

    async def async_step_reauth(
        self, entry_data: Mapping[str, Any]
    ) -> FlowResult:
        """Start reauthentication, answering a pending challenge if there is one."""
        self._reauth_entry = self.hass.config_entries.async_get_entry(
            self.context["entry_id"]
        )
        assert self._reauth_entry is not None

        coordinator: EufyCloudCoordinator | None = self.hass.data.get(DOMAIN, {}).get(
            self._reauth_entry.entry_id
        )
        if coordinator is not None:
            self._manager = coordinator.session
            self._owns_manager = False
            if self._manager.state in (
                LoginState.TWO_FACTOR_PENDING,
                LoginState.CAPTCHA_PENDING,
            ):
                return await self._async_next_step()

        return await self.async_step_reauth_confirm()

    async def async_step_reauth_confirm(
        self, user_input: dict[str, Any] | None = None
    ) -> FlowResult:
        """Ask for the credentials again."""
        assert self._reauth_entry is not None
        errors: dict[str, str] = {}

        if user_input is not None:
            credentials = Credentials.from_entry_data(
                {**self._reauth_entry.data, **user_input}
            )
            if self._manager is None:
                self._manager = self._new_manager(credentials)
                self._owns_manager = True
                errors = await self._async_login()
            elif credentials != self._manager.credentials:
                try:
                    await self._manager.async_update_credentials(credentials)
                except ConfigurationError:
                    errors = {"base": "missing_credentials"}
                else:
                    errors = self._state_errors()
            else:
                errors = await self._async_login()

            if not errors:
                return await self._async_next_step()

        return self.async_show_form(
            step_id="reauth_confirm",
            data_schema=_credentials_schema(self._reauth_entry.data),
            description_placeholders={"email": self._reauth_entry.title},
            errors=errors,
        )

    def _state_errors(self) -> dict[str, str]:
        """Return form errors for the manager's current state."""
        assert self._manager is not None
        if self._manager.state is LoginState.ATTEMPTING:
            return {"base": _error_key(self._manager.last_error)}
        return {}

    @callback
    def async_remove(self) -> None:
        """Close the flow's own session manager when the flow goes away."""
        if self._manager is not None and self._owns_manager:
            self.hass.async_create_task(self._manager.async_close())
        self._manager = None

    @staticmethod
    @callback
    def async_get_options_flow(config_entry: ConfigEntry) -> OptionsFlow:
        """Get the options flow for this handler."""
        return EufyCloudOptionsFlow(config_entry)


class EufyCloudOptionsFlow(OptionsFlow):
    """Handle the capability policy options."""

    def __init__(self, config_entry: ConfigEntry) -> None:
        """Initialize options flow."""
        self._config_entry = config_entry

    async def async_step_init(
        self, user_input: dict[str, Any] | None = None
    ) -> FlowResult:
        """Manage stream mode and advertised interfaces."""
        if user_input is not None:
            return self.async_create_entry(title="", data=user_input)

        policy = CapabilityPolicy.from_options(self._config_entry.options)

        return self.async_show_form(
            step_id="init",
            data_schema=vol.Schema(
                {
                    vol.Required(
                        CONF_STREAM_MODE,
                        default=policy.stream_mode.value,
                    ): SelectSelector(
                        SelectSelectorConfig(
                            options=STREAM_MODES,
                            mode=SelectSelectorMode.DROPDOWN,
                            translation_key=CONF_STREAM_MODE,
                        )
                    ),
                    vol.Required(
                        CONF_ADVERTISE_BATTERY,
                        default=policy.advertise_battery,
                    ): BooleanSelector(),
                    vol.Required(
                        CONF_ADVERTISE_MOTION,
                        default=policy.advertise_motion,
                    ): BooleanSelector(),
                }
            ),
        )
