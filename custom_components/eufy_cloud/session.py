"""Session manager for the Eufy cloud account.

Drives authenticate -> (optional challenge) -> connected and keeps the
alert log and login state in sync with what the client reports.

Every login attempt bumps a generation counter. Client handlers are bound
to the generation they were registered for, and anything that arrives for
an older generation (events, a late connect result) is discarded. At most
one ``Session`` is live at a time.
"""
from __future__ import annotations

import asyncio
from collections.abc import Awaitable, Callable
import logging
from typing import Any

from .alerts import AlertLog
from .api.base import CaptchaOptions, ClientConfig, ConnectOptions, EufyClient
from .api.errors import EufyCloudError, InvalidCredentialsError, SessionExpiredError
from .api.events import (
    EVENT_CAPTCHA_REQUEST,
    EVENT_CLOSE,
    EVENT_CONNECT,
    EVENT_DEVICE_ADDED,
    EVENT_DEVICE_UPDATED,
    EVENT_MOTION_DETECTED,
    EVENT_PUSH_CLOSE,
    EVENT_PUSH_CONNECT,
    EVENT_STATION_ADDED,
    EVENT_TFA_REQUEST,
)
from .api.models import Device, Station
from .capabilities import CapabilityPolicy, build_descriptor
from .const import (
    DEFAULT_EVENT_DURATION_SECONDS,
    DEFAULT_P2P_CONNECTION,
    DEFAULT_POLLING_INTERVAL_MINUTES,
    LoginState,
)
from .device import EufyCameraHandle
from .exceptions import ConfigurationError
from .models import CaptchaPending, ChallengeState, Credentials, TwoFactorPending

_LOGGER = logging.getLogger(__name__)

ClientFactory = Callable[[ClientConfig], Awaitable[EufyClient]]

ALERT_MISSING_CREDENTIALS = "Enter your Eufy email and password to complete setup."
ALERT_TWO_FACTOR = (
    "Login failed: 2FA is enabled, check your email or texts for your code, "
    "then enter it as the Two Factor Code to complete login."
)
ALERT_CAPTCHA = (
    "Login failed: Captcha was requested, enter the characters shown below "
    "as the Captcha to complete login.\n\n![captcha]({image})"
)
ALERT_INVALID_CREDENTIALS = (
    "Login failed: the Eufy cloud rejected the email or password."
)


class Session:
    """A client bound to one login generation."""

    def __init__(self, generation: int, client: EufyClient) -> None:
        """Initialize the session."""
        self.generation = generation
        self._client = client
        self.valid = True
        self.connected = False
        self._unsubscribers: list[Callable[[], None]] = []

    @property
    def client(self) -> EufyClient:
        """Return the client, refusing access once invalidated."""
        if not self.valid:
            raise SessionExpiredError(
                f"Session {self.generation} is no longer valid"
            )
        return self._client

    @property
    def live(self) -> bool:
        """Return True if valid and connected."""
        return self.valid and self.connected

    def subscribe(self, event: str, handler: Callable[..., Any]) -> None:
        """Register a client handler owned by this session."""
        self._unsubscribers.append(self._client.events.on(event, handler))

    def invalidate(self) -> None:
        """Mark the session unusable."""
        self.valid = False
        self.connected = False

    async def async_close(self) -> None:
        """Invalidate, drop handlers and close the client."""
        self.invalidate()
        while self._unsubscribers:
            self._unsubscribers.pop()()
        await self._client.async_close()


class SessionManager:
    """Owns the single live session of a Eufy account."""

    def __init__(
        self,
        credentials: Credentials,
        client_factory: ClientFactory,
        *,
        alerts: AlertLog | None = None,
        policy: CapabilityPolicy | None = None,
        captcha_id: str | None = None,
        on_device_discovered: Callable[[EufyCameraHandle], None] | None = None,
        on_captcha_id: Callable[[str], None] | None = None,
        on_state_changed: Callable[[], None] | None = None,
    ) -> None:
        """Initialize the session manager."""
        self._credentials = credentials
        self._client_factory = client_factory
        self.alerts = alerts if alerts is not None else AlertLog()
        self.policy = policy or CapabilityPolicy()
        self._captcha_id = captcha_id
        self._on_device_discovered = on_device_discovered
        self._on_captcha_id = on_captcha_id
        self._on_state_changed = on_state_changed

        self._lock = asyncio.Lock()
        self._generation = 0
        self._session: Session | None = None
        self._state = (
            LoginState.ATTEMPTING
            if credentials.is_complete
            else LoginState.NO_CREDENTIALS
        )
        self._challenge: ChallengeState = None
        self._last_error: EufyCloudError | None = None
        self._devices: dict[str, EufyCameraHandle] = {}

    # -------------------------------------------------------------------------
    # State
    # -------------------------------------------------------------------------

    @property
    def state(self) -> LoginState:
        """Return the login state."""
        return self._state

    @property
    def challenge(self) -> ChallengeState:
        """Return the pending challenge, if any."""
        return self._challenge

    @property
    def credentials(self) -> Credentials:
        """Return the credentials in use."""
        return self._credentials

    @property
    def captcha_id(self) -> str | None:
        """Return the id of the last captcha the cloud asked for."""
        return self._captcha_id

    @property
    def generation(self) -> int:
        """Return the current session generation."""
        return self._generation

    @property
    def is_connected(self) -> bool:
        """Return True if a live session exists."""
        return self._session is not None and self._session.live

    @property
    def last_error(self) -> EufyCloudError | None:
        """Return the error of the last failed attempt."""
        return self._last_error

    @property
    def devices(self) -> dict[str, EufyCameraHandle]:
        """Return discovered camera handles keyed by serial."""
        return dict(self._devices)

    def _set_state(self, state: LoginState) -> None:
        self._state = state
        if self._on_state_changed is not None:
            self._on_state_changed()

    def _build_config(self) -> ClientConfig:
        return ClientConfig(
            username=self._credentials.email,
            password=self._credentials.password,
            country=self._credentials.country,
            trusted_device_name=self._credentials.trusted_device_name,
            p2p_connection_setup=DEFAULT_P2P_CONNECTION,
            polling_interval_minutes=DEFAULT_POLLING_INTERVAL_MINUTES,
            event_duration_seconds=DEFAULT_EVENT_DURATION_SECONDS,
        )

    # -------------------------------------------------------------------------
    # Login
    # -------------------------------------------------------------------------

    async def async_attempt_login(
        self,
        verify_code: str | None = None,
        captcha_code: str | None = None,
    ) -> LoginState:
        """Start a new login attempt, superseding any attempt in progress."""
        self.alerts.clear()

        if not self._credentials.is_complete:
            self._set_state(LoginState.NO_CREDENTIALS)
            self.alerts.alert(ALERT_MISSING_CREDENTIALS)
            raise ConfigurationError("Eufy email and password are missing.")

        self._generation += 1
        generation = self._generation

        async with self._lock:
            if generation != self._generation:
                _LOGGER.debug("Login attempt %d superseded before start", generation)
                return self._state

            await self._async_teardown()
            self._challenge = None
            self._last_error = None
            self._set_state(LoginState.ATTEMPTING)

            try:
                client = await self._client_factory(self._build_config())
            except EufyCloudError as err:
                self._last_error = err
                _LOGGER.warning("Could not initialize the Eufy client: %s", err)
                return self._state

            session = Session(generation, client)
            if generation != self._generation:
                await session.async_close()
                return self._state
            self._session = session
            self._subscribe(session)

        captcha = None
        if captcha_code:
            captcha = CaptchaOptions(
                captcha_code=captcha_code, captcha_id=self._captcha_id
            )
        options = ConnectOptions(verify_code=verify_code or None, captcha=captcha, force=False)

        _LOGGER.debug("Connecting client (session %d)", generation)
        try:
            await client.async_connect(options)
        except EufyCloudError as err:
            if not self._is_current(session):
                _LOGGER.debug("Discarding failure of superseded session %d", generation)
                return self._state
            session.invalidate()
            self._last_error = err
            if isinstance(err, InvalidCredentialsError):
                self.alerts.alert(ALERT_INVALID_CREDENTIALS)
            else:
                _LOGGER.warning("Login attempt failed: %s", err)
            self._set_state(LoginState.ATTEMPTING)
            return self._state

        if not self._is_current(session):
            _LOGGER.debug("Discarding result of superseded session %d", generation)
        return self._state

    async def async_update_credentials(self, credentials: Credentials) -> LoginState:
        """Replace the credentials, invalidating the session and logging in again."""
        if credentials == self._credentials:
            return self._state

        _LOGGER.debug("Credentials changed, invalidating session")
        self._credentials = credentials
        self._generation += 1
        if self._session is not None:
            self._session.invalidate()
        async with self._lock:
            await self._async_teardown()
        self._challenge = None
        self._set_state(LoginState.ATTEMPTING)
        return await self.async_attempt_login()

    async def async_refresh(self) -> None:
        """Poll the live session for device and event updates."""
        session = self._session
        if session is None or not session.live:
            raise SessionExpiredError("No live Eufy session")
        await session.client.async_poll_refresh()

    async def async_close(self) -> None:
        """Tear down the session for good."""
        self._generation += 1
        async with self._lock:
            await self._async_teardown()
        for handle in self._devices.values():
            handle.detach()

    async def _async_teardown(self) -> None:
        session, self._session = self._session, None
        if session is None:
            return
        try:
            await session.async_close()
        except EufyCloudError as err:
            _LOGGER.debug("Error closing session %d: %s", session.generation, err)

    def _is_current(self, session: Session) -> bool:
        return (
            session.valid
            and session is self._session
            and session.generation == self._generation
        )

    # -------------------------------------------------------------------------
    # Client events
    # -------------------------------------------------------------------------

    def _subscribe(self, session: Session) -> None:
        """Register every client handler once for a new session."""
        handlers: dict[str, Callable[..., Any]] = {
            EVENT_DEVICE_ADDED: self._handle_device_added,
            EVENT_DEVICE_UPDATED: self._handle_device_updated,
            EVENT_STATION_ADDED: self._handle_station_added,
            EVENT_MOTION_DETECTED: self._handle_motion_detected,
            EVENT_TFA_REQUEST: self._handle_tfa_request,
            EVENT_CAPTCHA_REQUEST: self._handle_captcha_request,
            EVENT_CONNECT: self._handle_connect,
            EVENT_CLOSE: self._handle_close,
            EVENT_PUSH_CONNECT: self._handle_push_connect,
            EVENT_PUSH_CLOSE: self._handle_push_close,
        }
        for event, handler in handlers.items():
            session.subscribe(event, self._bind(session, event, handler))

    def _bind(
        self, session: Session, event: str, handler: Callable[..., None]
    ) -> Callable[..., None]:
        """Wrap a handler so it only runs for the current session."""

        def _dispatch(*args: Any) -> None:
            if not self._is_current(session):
                _LOGGER.debug(
                    "Discarding '%s' from superseded session %d",
                    event,
                    session.generation,
                )
                return
            handler(session, *args)

        return _dispatch

    def _handle_device_added(self, session: Session, device: Device) -> None:
        if not device.is_camera:
            _LOGGER.info(
                "Ignoring unsupported discovered device: %s (%s)",
                device.name,
                device.model,
            )
            return
        _LOGGER.info("Device discovered: %s (%s)", device.name, device.model)

        descriptor = build_descriptor(device, self.policy)
        handle = self._devices.get(device.serial)
        if handle is not None:
            handle.bind(session, device, descriptor)
            return

        handle = EufyCameraHandle(
            session, device, descriptor, DEFAULT_EVENT_DURATION_SECONDS
        )
        self._devices[device.serial] = handle
        if self._on_device_discovered is not None:
            self._on_device_discovered(handle)

    def _handle_device_updated(self, session: Session, device: Device) -> None:
        handle = self._devices.get(device.serial)
        if handle is not None:
            handle.update_device(device)

    def _handle_station_added(self, session: Session, station: Station) -> None:
        _LOGGER.info(
            "Station discovered: %s (%s), but stations are not currently supported",
            station.name,
            station.model,
        )

    def _handle_motion_detected(
        self, session: Session, device: Device, state: bool
    ) -> None:
        handle = self._devices.get(device.serial)
        if handle is not None:
            handle.set_motion(state)

    def _handle_tfa_request(self, session: Session) -> None:
        self.alerts.alert(ALERT_TWO_FACTOR)
        self._challenge = TwoFactorPending()
        self._set_state(LoginState.TWO_FACTOR_PENDING)

    def _handle_captcha_request(
        self, session: Session, captcha_id: str, image: str
    ) -> None:
        self.alerts.alert(ALERT_CAPTCHA.format(image=image))
        self._captcha_id = captcha_id
        if self._on_captcha_id is not None:
            self._on_captcha_id(captcha_id)
        self._challenge = CaptchaPending(challenge_id=captcha_id, image=image)
        self._set_state(LoginState.CAPTCHA_PENDING)

    def _handle_connect(self, session: Session) -> None:
        _LOGGER.debug("Client connected (session %d)", session.generation)
        session.connected = True
        self._challenge = None
        self._last_error = None
        self.alerts.clear()
        self._set_state(LoginState.CONNECTED)

    def _handle_close(self, session: Session) -> None:
        _LOGGER.debug("Client disconnected (session %d)", session.generation)
        session.invalidate()
        self._set_state(LoginState.ATTEMPTING)

    def _handle_push_connect(self, session: Session) -> None:
        _LOGGER.debug("Push connected (session %d)", session.generation)

    def _handle_push_close(self, session: Session) -> None:
        _LOGGER.debug("Push closed (session %d)", session.generation)

    # -------------------------------------------------------------------------
    # Host device lifecycle
    # -------------------------------------------------------------------------

    def get_device(self, native_id: str) -> EufyCameraHandle | None:
        """Return the handle of a discovered camera."""
        return self._devices.get(native_id)

    def release_device(self, native_id: str) -> bool:
        """Forget a camera the host removed."""
        handle = self._devices.pop(native_id, None)
        _LOGGER.info("Device with id '%s' was removed", native_id)
        if handle is None:
            return False
        handle.detach()
        return True
