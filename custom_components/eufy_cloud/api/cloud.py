"""Eufy cloud client over aiohttp.

Talks to the plain JSON account API: region lookup, login with optional
verification code or captcha answer, device and hub lists, device switch,
cloud stream start and the event history used to derive motion.
"""
from __future__ import annotations

from datetime import datetime
import logging
import time
from typing import Any
import uuid

import aiohttp
import voluptuous as vol

from ..const import REQUEST_TIMEOUT
from .base import ClientConfig, ConnectOptions, EufyClient
from .errors import (
    CannotConnectError,
    EufyCloudError,
    ResponseCode,
    SessionExpiredError,
    raise_for_code,
)
from .events import (
    EVENT_CAPTCHA_REQUEST,
    EVENT_CLOSE,
    EVENT_CONNECT,
    EVENT_DEVICE_ADDED,
    EVENT_DEVICE_UPDATED,
    EVENT_MOTION_DETECTED,
    EVENT_STATION_ADDED,
    EVENT_TFA_REQUEST,
)
from .models import Device, ParamType, Station

_LOGGER = logging.getLogger(__name__)

DEFAULT_API_HOST = "mysecurity.eufylife.com"
DOMAIN_LOOKUP_URL = "https://extend.eufylife.com/domain/{country}"
API_PATH = "/api/v1/"

APP_VERSION = "v4.6.0_1630"
VERIFY_CODE_MESSAGE_TYPE = 2
EVENT_HISTORY_SIZE = 20
STREAM_PROTOCOL_RTSP = 2

RESPONSE_SCHEMA = vol.Schema(
    {
        vol.Required("code"): vol.Coerce(int),
        vol.Optional("msg", default=""): vol.Any(None, str),
        vol.Optional("data", default=None): object,
    },
    extra=vol.ALLOW_EXTRA,
)

DOMAIN_LOOKUP_SCHEMA = vol.Schema(
    {
        vol.Optional("data"): vol.Any(
            None,
            vol.Schema(
                {vol.Optional("domain"): vol.Any(None, str)}, extra=vol.ALLOW_EXTRA
            ),
        ),
    },
    extra=vol.ALLOW_EXTRA,
)

LOGIN_DATA_SCHEMA = vol.Schema(
    {
        vol.Required("auth_token"): str,
        vol.Optional("domain"): vol.Any(None, str),
    },
    extra=vol.ALLOW_EXTRA,
)

CAPTCHA_DATA_SCHEMA = vol.Schema(
    {
        vol.Required("captcha_id"): vol.Coerce(str),
        vol.Required("item"): str,
    },
    extra=vol.ALLOW_EXTRA,
)

EVENT_RECORD_SCHEMA = vol.Schema(
    {
        vol.Required("device_sn"): str,
        vol.Required("create_time"): vol.Coerce(int),
    },
    extra=vol.ALLOW_EXTRA,
)


def _timezone_offset_ms() -> int:
    """Return the local UTC offset in milliseconds."""
    offset = datetime.now().astimezone().utcoffset()
    return int(offset.total_seconds() * 1000) if offset else 0


def _transaction() -> str:
    return str(int(time.time() * 1000))


class EufyCloudApi(EufyClient):
    """Client for the Eufy Security cloud account API."""

    def __init__(self, config: ClientConfig, session: aiohttp.ClientSession) -> None:
        """Initialize the client."""
        super().__init__(config)
        self._session = session
        self._host = DEFAULT_API_HOST
        self._token: str | None = None
        self._closed = False
        self._open_udid = uuid.uuid5(
            uuid.NAMESPACE_DNS, f"{config.trusted_device_name}.{config.country}"
        ).hex[:16]
        self._stations: dict[str, Station] = {}
        self._devices: dict[str, Device] = {}
        self._last_event_time: dict[str, int] = {}
        self._events_seeded = False

    @classmethod
    async def async_initialize(
        cls, config: ClientConfig, session: aiohttp.ClientSession
    ) -> EufyCloudApi:
        """Create a client and resolve the API host for the account country."""
        api = cls(config, session)
        await api._async_resolve_host()
        return api

    @property
    def is_connected(self) -> bool:
        """Return True while a token is held."""
        return self._token is not None and not self._closed

    @property
    def devices(self) -> dict[str, Device]:
        """Return known devices keyed by serial."""
        return dict(self._devices)

    # -------------------------------------------------------------------------
    # Transport
    # -------------------------------------------------------------------------

    def _headers(self) -> dict[str, str]:
        headers = {
            "App_version": APP_VERSION,
            "Os_type": "android",
            "Os_version": "30",
            "Phone_model": self.config.trusted_device_name,
            "Country": self.config.country.upper(),
            "Language": "en",
            "Openudid": self._open_udid,
            "Net_type": "wifi",
            "Timezone": str(_timezone_offset_ms()),
            "Content-Type": "application/json",
        }
        if self._token:
            headers["X-Auth-Token"] = self._token
        return headers

    async def _async_resolve_host(self) -> None:
        """Look up the regional API host; keep the default on failure."""
        url = DOMAIN_LOOKUP_URL.format(country=self.config.country.upper())
        try:
            async with self._session.get(
                url, timeout=aiohttp.ClientTimeout(total=REQUEST_TIMEOUT)
            ) as response:
                if response.status != 200:
                    _LOGGER.debug(
                        "Region lookup returned %s, using %s",
                        response.status,
                        self._host,
                    )
                    return
                body = await response.json(content_type=None)
        except (aiohttp.ClientError, TimeoutError) as err:
            _LOGGER.debug("Region lookup failed, using %s: %s", self._host, err)
            return

        try:
            lookup = DOMAIN_LOOKUP_SCHEMA(body)
        except vol.Invalid as err:
            _LOGGER.debug("Malformed region lookup, using %s: %s", self._host, err)
            return

        domain = (lookup.get("data") or {}).get("domain")
        if domain:
            self._host = domain
            _LOGGER.debug("Using API host %s", domain)

    async def _async_post(
        self, path: str, payload: dict[str, Any]
    ) -> tuple[int, Any]:
        """POST a request and return (code, data)."""
        if self._closed:
            raise SessionExpiredError("Client has been closed")

        url = f"https://{self._host}{API_PATH}{path}"
        _LOGGER.debug("POST %s", path)
        try:
            async with self._session.post(
                url,
                json=payload,
                headers=self._headers(),
                timeout=aiohttp.ClientTimeout(total=REQUEST_TIMEOUT),
            ) as response:
                if response.status == 401:
                    await self._async_drop_session()
                    raise SessionExpiredError(code=ResponseCode.INVALID_TOKEN)
                if response.status != 200:
                    raise CannotConnectError(
                        f"Eufy cloud returned HTTP {response.status} for {path}"
                    )
                body = await response.json(content_type=None)
        except (aiohttp.ClientError, TimeoutError) as err:
            raise CannotConnectError(f"Error talking to Eufy cloud: {err}") from err

        try:
            result = RESPONSE_SCHEMA(body)
        except vol.Invalid as err:
            raise EufyCloudError(f"Malformed response for {path}: {err}") from err

        if result["code"] == ResponseCode.INVALID_TOKEN:
            await self._async_drop_session()
        return result["code"], result["data"]

    async def _async_request(self, path: str, payload: dict[str, Any]) -> Any:
        """POST a request that must succeed and return its data."""
        code, data = await self._async_post(path, payload)
        raise_for_code(code)
        return data

    async def _async_drop_session(self) -> None:
        """Forget the token and report the disconnect."""
        if self._token is None:
            return
        self._token = None
        _LOGGER.debug("Eufy cloud session dropped")
        await self.events.async_emit(EVENT_CLOSE)

    # -------------------------------------------------------------------------
    # Login
    # -------------------------------------------------------------------------

    async def async_connect(self, options: ConnectOptions) -> None:
        """Log in, answering a pending challenge if options carry one."""
        payload: dict[str, Any] = {
            "email": self.config.username,
            "password": self.config.password,
            "time_zone": _timezone_offset_ms(),
            "transaction": _transaction(),
        }
        if options.verify_code:
            payload["verify_code"] = options.verify_code
        if options.captcha:
            payload["captcha_id"] = options.captcha.captcha_id
            payload["answer"] = options.captcha.captcha_code

        code, data = await self._async_post("passport/login", payload)

        if code == ResponseCode.NEED_VERIFY_CODE:
            _LOGGER.debug("Login needs a verification code")
            await self._async_request(
                "sms/send/verify_code",
                {
                    "message_type": VERIFY_CODE_MESSAGE_TYPE,
                    "transaction": _transaction(),
                },
            )
            await self.events.async_emit(EVENT_TFA_REQUEST)
            return

        if code in (ResponseCode.NEED_CAPTCHA, ResponseCode.CAPTCHA_ERROR):
            try:
                captcha = CAPTCHA_DATA_SCHEMA(data)
            except vol.Invalid as err:
                raise EufyCloudError(f"Malformed captcha challenge: {err}") from err
            _LOGGER.debug("Login needs a captcha answer")
            await self.events.async_emit(
                EVENT_CAPTCHA_REQUEST, captcha["captcha_id"], captcha["item"]
            )
            return

        raise_for_code(code)

        try:
            login = LOGIN_DATA_SCHEMA(data)
        except vol.Invalid as err:
            raise EufyCloudError(f"Malformed login response: {err}") from err

        self._token = login["auth_token"]
        if login.get("domain") and login["domain"] != self._host:
            self._host = login["domain"]
            _LOGGER.debug("Account lives on API host %s", self._host)

        if options.verify_code:
            await self._async_request(
                "app/trust_device/add",
                {"verify_code": options.verify_code, "transaction": _transaction()},
            )
            _LOGGER.debug("Registered trusted device")

        await self.events.async_emit(EVENT_CONNECT)
        try:
            await self.async_poll_refresh()
        except EufyCloudError as err:
            # The login stands; the next scheduled poll retries discovery
            _LOGGER.warning("Initial Eufy device poll failed: %s", err)

    async def async_close(self) -> None:
        """Drop the token and every handler."""
        self._closed = True
        self._token = None
        self.events.clear()

    # -------------------------------------------------------------------------
    # Polling
    # -------------------------------------------------------------------------

    async def async_poll_refresh(self) -> None:
        """Refresh hubs, devices and recent events."""
        if not self.is_connected:
            raise SessionExpiredError("Not logged in")

        hubs = await self._async_request(
            "app/get_hub_list", {"num": 100, "page": 0, "transaction": _transaction()}
        )
        for raw in hubs or []:
            try:
                station = Station.from_api(raw)
            except EufyCloudError as err:
                _LOGGER.debug("Skipping station: %s", err)
                continue
            is_new = station.serial not in self._stations
            self._stations[station.serial] = station
            if is_new:
                await self.events.async_emit(EVENT_STATION_ADDED, station)

        devices = await self._async_request(
            "app/get_devs_list",
            {
                "device_sn": "",
                "num": 1000,
                "orderby": "",
                "page": 0,
                "station_sn": "",
                "time_zone": _timezone_offset_ms(),
                "transaction": _transaction(),
            },
        )
        for raw in devices or []:
            try:
                device = Device.from_api(raw)
            except EufyCloudError as err:
                _LOGGER.warning("Skipping device: %s", err)
                continue
            is_new = device.serial not in self._devices
            self._devices[device.serial] = device
            await self.events.async_emit(
                EVENT_DEVICE_ADDED if is_new else EVENT_DEVICE_UPDATED, device
            )

        await self._async_poll_events()

    async def _async_poll_events(self) -> None:
        """Emit motion for event records newer than the last poll."""
        records = await self._async_request(
            "event/app/get_all_history_record",
            {
                "device_sn": "",
                "end_time": 0,
                "id": 0,
                "id_type": 1,
                "is_favorite": False,
                "num": EVENT_HISTORY_SIZE,
                "pullup": True,
                "shared": True,
                "start_time": 0,
                "storage": 0,
                "station_sn": "",
                "transaction": _transaction(),
            },
        )

        latest: dict[str, int] = {}
        for raw in records or []:
            try:
                record = EVENT_RECORD_SCHEMA(raw)
            except vol.Invalid:
                _LOGGER.debug("Skipping malformed event record")
                continue
            serial = record["device_sn"]
            latest[serial] = max(latest.get(serial, 0), record["create_time"])

        seeded = self._events_seeded
        self._events_seeded = True
        for serial, created in latest.items():
            previous = self._last_event_time.get(serial)
            self._last_event_time[serial] = max(previous or 0, created)
            # The first poll only establishes a baseline
            if not seeded or (previous is not None and created <= previous):
                continue
            device = self._devices.get(serial)
            if device is not None:
                await self.events.async_emit(EVENT_MOTION_DETECTED, device, True)

    # -------------------------------------------------------------------------
    # Device operations
    # -------------------------------------------------------------------------

    async def async_get_station(self, serial: str) -> Station:
        """Return a known station."""
        if serial not in self._stations:
            raise EufyCloudError(f"Unknown station {serial}")
        return self._stations[serial]

    async def async_enable_device(
        self, station: Station, device: Device, enabled: bool
    ) -> None:
        """Switch a device on or off."""
        value = "1" if enabled else "0"
        await self._async_request(
            "app/upload_devs_params",
            {
                "device_sn": device.serial,
                "station_sn": station.serial,
                "params": [
                    {"param_type": int(ParamType.DEVICE_SWITCH), "param_value": value}
                ],
                "transaction": _transaction(),
            },
        )
        device.params[ParamType.DEVICE_SWITCH] = value

    async def async_get_picture(self, device: Device) -> bytes | None:
        """Download the latest cover picture of a device."""
        if not device.picture_url:
            return None
        try:
            async with self._session.get(
                device.picture_url,
                timeout=aiohttp.ClientTimeout(total=REQUEST_TIMEOUT),
            ) as response:
                if response.status != 200:
                    _LOGGER.debug(
                        "Picture for %s returned HTTP %s",
                        device.serial,
                        response.status,
                    )
                    return None
                return await response.read()
        except (aiohttp.ClientError, TimeoutError) as err:
            raise CannotConnectError(f"Error downloading picture: {err}") from err

    async def async_start_stream(self, device: Device) -> str | None:
        """Ask the cloud to start an RTSP stream and return its URL."""
        data = await self._async_request(
            "web/equipment/start_stream",
            {
                "device_sn": device.serial,
                "station_sn": device.station_serial,
                "proto": STREAM_PROTOCOL_RTSP,
                "transaction": _transaction(),
            },
        )
        if isinstance(data, dict):
            return data.get("url")
        return None
