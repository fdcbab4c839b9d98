"""Unit tests for the config flow.

Tests the config_flow.py module which handles account setup, challenges
and reauthentication.
"""
from __future__ import annotations

import asyncio

import pytest
from unittest.mock import AsyncMock, MagicMock, patch

from homeassistant.data_entry_flow import FlowResultType

USER_INPUT = {
    "email": " User@Example.com ",
    "password": "hunter2",
    "country": "de",
    "trusted_device_name": "eufyclient",
}


def _make_flow(hass):
    from custom_components.eufy_cloud.config_flow import EufyCloudConfigFlow

    flow = EufyCloudConfigFlow()
    flow.hass = hass
    flow.context = {"source": "user"}
    flow.async_set_unique_id = AsyncMock()
    flow._abort_if_unique_id_configured = MagicMock()
    return flow


def _patch_client(client_factory):
    return patch(
        "custom_components.eufy_cloud.config_flow.async_create_client",
        side_effect=client_factory.async_create,
    )


class TestUserStep:
    """Tests for the credentials step."""

    @pytest.mark.asyncio
    async def test_form_is_shown(self, mock_hass):
        """Test the user step shows the credentials form."""
        flow = _make_flow(mock_hass)

        result = await flow.async_step_user()

        assert result["type"] == FlowResultType.FORM
        assert result["step_id"] == "user"

    @pytest.mark.asyncio
    async def test_login_creates_entry(self, mock_hass, client_factory):
        """Test valid credentials create the entry."""
        flow = _make_flow(mock_hass)

        with _patch_client(client_factory):
            result = await flow.async_step_user(user_input=dict(USER_INPUT))

        assert result["type"] == FlowResultType.CREATE_ENTRY
        assert result["title"] == "User@Example.com"
        assert result["data"] == {
            "email": "User@Example.com",
            "password": "hunter2",
            "country": "DE",
            "trusted_device_name": "eufyclient",
        }
        flow.async_set_unique_id.assert_awaited_once_with("user@example.com")
        assert client_factory.last.closed

    @pytest.mark.asyncio
    async def test_invalid_auth(self, mock_hass, client_factory):
        """Test rejected credentials show an error."""
        from custom_components.eufy_cloud.api.errors import InvalidCredentialsError

        client_factory.errors = [InvalidCredentialsError(code=26006)]
        flow = _make_flow(mock_hass)

        with _patch_client(client_factory):
            result = await flow.async_step_user(user_input=dict(USER_INPUT))

        assert result["type"] == FlowResultType.FORM
        assert result["errors"] == {"base": "invalid_auth"}

    @pytest.mark.asyncio
    async def test_cannot_connect(self, mock_hass, client_factory):
        """Test a transport failure shows an error."""
        from custom_components.eufy_cloud.api.errors import CannotConnectError

        client_factory.errors = [CannotConnectError("timeout")]
        flow = _make_flow(mock_hass)

        with _patch_client(client_factory):
            result = await flow.async_step_user(user_input=dict(USER_INPUT))

        assert result["errors"] == {"base": "cannot_connect"}

    @pytest.mark.asyncio
    async def test_missing_password(self, mock_hass, client_factory):
        """Test an empty password never reaches the cloud."""
        flow = _make_flow(mock_hass)

        with _patch_client(client_factory):
            result = await flow.async_step_user(
                user_input={**USER_INPUT, "password": ""}
            )

        assert result["errors"] == {"base": "missing_credentials"}
        assert client_factory.clients == []


class TestChallengeSteps:
    """Tests for the verify_code and captcha steps."""

    @pytest.mark.asyncio
    async def test_two_factor(self, mock_hass, client_factory):
        """Test a tfa request routes to the code step and then succeeds."""
        from custom_components.eufy_cloud.api.events import EVENT_TFA_REQUEST

        client_factory.scripts = [[(EVENT_TFA_REQUEST,)]]
        flow = _make_flow(mock_hass)

        with _patch_client(client_factory):
            result = await flow.async_step_user(user_input=dict(USER_INPUT))
            assert result["type"] == FlowResultType.FORM
            assert result["step_id"] == "verify_code"

            result = await flow.async_step_verify_code(user_input={"verify_code": "123456"})

        assert result["type"] == FlowResultType.CREATE_ENTRY
        assert client_factory.last.connect_calls[0].verify_code == "123456"

    @pytest.mark.asyncio
    async def test_wrong_code(self, mock_hass, client_factory):
        """Test a rejected code shows an error on the code step."""
        from custom_components.eufy_cloud.api.errors import EufyCloudError
        from custom_components.eufy_cloud.api.events import EVENT_TFA_REQUEST

        client_factory.scripts = [[(EVENT_TFA_REQUEST,)]]
        client_factory.errors = [None, EufyCloudError(code=26051)]
        flow = _make_flow(mock_hass)

        with _patch_client(client_factory):
            await flow.async_step_user(user_input=dict(USER_INPUT))
            result = await flow.async_step_verify_code(user_input={"verify_code": "000000"})

        assert result["step_id"] == "verify_code"
        assert result["errors"] == {"base": "invalid_verify_code"}

    @pytest.mark.asyncio
    async def test_captcha(self, mock_hass, client_factory):
        """Test a captcha is shown and its id is stored with the entry."""
        from custom_components.eufy_cloud.api.events import EVENT_CAPTCHA_REQUEST

        image = "data:image/png;base64,AA"
        client_factory.scripts = [[(EVENT_CAPTCHA_REQUEST, "cap-1", image)]]
        flow = _make_flow(mock_hass)

        with _patch_client(client_factory):
            result = await flow.async_step_user(user_input=dict(USER_INPUT))
            assert result["step_id"] == "captcha"
            assert result["description_placeholders"] == {"captcha": image}

            result = await flow.async_step_captcha(user_input={"captcha": "x7k2"})

        assert result["type"] == FlowResultType.CREATE_ENTRY
        assert result["data"]["captcha_id"] == "cap-1"
        captcha = client_factory.last.connect_calls[0].captcha
        assert captcha.captcha_code == "x7k2"
        assert captcha.captcha_id == "cap-1"


class TestReauth:
    """Tests for reauthentication against a loaded entry."""

    @pytest.mark.asyncio
    async def test_pending_challenge_skips_credentials(
        self, mock_hass, mock_config_entry, client_factory, credentials
    ):
        """Test reauth goes straight to the pending challenge."""
        from custom_components.eufy_cloud.api.events import EVENT_TFA_REQUEST
        from custom_components.eufy_cloud.session import SessionManager

        client_factory.scripts = [[(EVENT_TFA_REQUEST,)]]
        manager = SessionManager(credentials, client_factory)
        await manager.async_attempt_login()
        coordinator = MagicMock(session=manager, async_refresh=AsyncMock())
        mock_hass.config_entries.add_entry("eufy_cloud", mock_config_entry)
        mock_hass.data["eufy_cloud"] = {mock_config_entry.entry_id: coordinator}

        flow = _make_flow(mock_hass)
        flow.context = {"source": "reauth", "entry_id": mock_config_entry.entry_id}
        result = await flow.async_step_reauth(mock_config_entry.data)
        assert result["step_id"] == "verify_code"

        with patch("homeassistant.components.persistent_notification.async_dismiss"):
            result = await flow.async_step_verify_code(
                user_input={"verify_code": "123456"}
            )

        assert result["type"] == FlowResultType.ABORT
        assert result["reason"] == "reauth_successful"
        assert manager.is_connected
        coordinator.async_refresh.assert_awaited_once()

    @pytest.mark.asyncio
    async def test_new_password(
        self, mock_hass, mock_config_entry, client_factory, credentials
    ):
        """Test a new password replaces the live session's credentials."""
        from custom_components.eufy_cloud.api.errors import InvalidCredentialsError
        from custom_components.eufy_cloud.session import SessionManager

        client_factory.errors = [InvalidCredentialsError(code=26006)]
        manager = SessionManager(credentials, client_factory)
        await manager.async_attempt_login()
        coordinator = MagicMock(session=manager, async_refresh=AsyncMock())
        mock_hass.config_entries.add_entry("eufy_cloud", mock_config_entry)
        mock_hass.data["eufy_cloud"] = {mock_config_entry.entry_id: coordinator}

        flow = _make_flow(mock_hass)
        flow.context = {"source": "reauth", "entry_id": mock_config_entry.entry_id}
        result = await flow.async_step_reauth(mock_config_entry.data)
        assert result["step_id"] == "reauth_confirm"

        with patch("homeassistant.components.persistent_notification.async_dismiss"):
            result = await flow.async_step_reauth_confirm(
                user_input={
                    "email": "user@example.com",
                    "password": "new-password",
                    "country": "US",
                }
            )

        assert result["reason"] == "reauth_successful"
        assert mock_config_entry.data["password"] == "new-password"
        assert manager.credentials.password == "new-password"


class TestOptionsFlow:
    """Tests for the options flow."""

    @pytest.mark.asyncio
    async def test_options_form(self, mock_hass, mock_config_entry):
        """Test the options form shows the current policy."""
        from custom_components.eufy_cloud.config_flow import EufyCloudOptionsFlow

        flow = EufyCloudOptionsFlow(mock_config_entry)
        flow.hass = mock_hass

        result = await flow.async_step_init()

        assert result["type"] == FlowResultType.FORM
        assert result["step_id"] == "init"

    @pytest.mark.asyncio
    async def test_options_saved(self, mock_hass, mock_config_entry):
        """Test submitted options are stored."""
        from custom_components.eufy_cloud.config_flow import EufyCloudOptionsFlow

        flow = EufyCloudOptionsFlow(mock_config_entry)
        flow.hass = mock_hass
        options = {
            "stream_mode": "snapshot",
            "advertise_battery": False,
            "advertise_motion": True,
        }

        result = await flow.async_step_init(user_input=options)

        assert result["type"] == FlowResultType.CREATE_ENTRY
        assert result["data"] == options


class TestAbandonedFlow:
    """Tests for flows removed before they finish."""

    @pytest.mark.asyncio
    async def test_pending_login_is_closed(self, mock_hass, client_factory):
        """Test removing a flow at the code step closes its client."""
        from custom_components.eufy_cloud.api.events import EVENT_TFA_REQUEST

        client_factory.scripts = [[(EVENT_TFA_REQUEST,)]]
        flow = _make_flow(mock_hass)

        with _patch_client(client_factory):
            result = await flow.async_step_user(user_input=dict(USER_INPUT))
        assert result["step_id"] == "verify_code"
        assert not client_factory.last.closed

        flow.async_remove()
        await _drain_tasks()

        assert client_factory.last.closed

    @pytest.mark.asyncio
    async def test_entry_manager_is_kept(
        self, mock_hass, mock_config_entry, client_factory, credentials
    ):
        """Test removing a reauth flow leaves the entry's session alone."""
        from custom_components.eufy_cloud.api.events import EVENT_TFA_REQUEST
        from custom_components.eufy_cloud.session import SessionManager

        client_factory.scripts = [[(EVENT_TFA_REQUEST,)]]
        manager = SessionManager(credentials, client_factory)
        await manager.async_attempt_login()
        coordinator = MagicMock(session=manager, async_refresh=AsyncMock())
        mock_hass.config_entries.add_entry("eufy_cloud", mock_config_entry)
        mock_hass.data["eufy_cloud"] = {mock_config_entry.entry_id: coordinator}

        flow = _make_flow(mock_hass)
        flow.context = {"source": "reauth", "entry_id": mock_config_entry.entry_id}
        await flow.async_step_reauth(mock_config_entry.data)

        flow.async_remove()
        await _drain_tasks()

        assert not client_factory.last.closed


async def _drain_tasks():
    current = asyncio.current_task()
    pending = [task for task in asyncio.all_tasks() if task is not current]
    if pending:
        await asyncio.gather(*pending)
