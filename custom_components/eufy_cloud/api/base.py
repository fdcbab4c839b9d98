"""Client contract consumed by the session manager."""
from __future__ import annotations

from abc import ABC, abstractmethod
from dataclasses import dataclass, field

from ..const import (
    DEFAULT_EVENT_DURATION_SECONDS,
    DEFAULT_P2P_CONNECTION,
    DEFAULT_POLLING_INTERVAL_MINUTES,
    P2PConnectionType,
)
from .events import EventEmitter
from .models import Device, Station


@dataclass(frozen=True)
class ClientConfig:
    """Everything a client needs to log in."""

    username: str = field(repr=False)
    password: str = field(repr=False)
    country: str
    trusted_device_name: str
    p2p_connection_setup: P2PConnectionType = DEFAULT_P2P_CONNECTION
    polling_interval_minutes: int = DEFAULT_POLLING_INTERVAL_MINUTES
    event_duration_seconds: int = DEFAULT_EVENT_DURATION_SECONDS


@dataclass(frozen=True)
class CaptchaOptions:
    """Answer to a captcha challenge."""

    captcha_code: str
    captcha_id: str | None


@dataclass(frozen=True)
class ConnectOptions:
    """Proof material attached to a connect call."""

    verify_code: str | None = None
    captcha: CaptchaOptions | None = None
    force: bool = False


class EufyClient(ABC):
    """Abstract Eufy client.

    Connection progress is reported through ``events`` rather than through
    return values: a connect call that needs a challenge answered returns
    normally after emitting ``tfa request`` or ``captcha request``.
    """

    def __init__(self, config: ClientConfig) -> None:
        """Initialize the client."""
        self.config = config
        self.events = EventEmitter()

    @abstractmethod
    async def async_connect(self, options: ConnectOptions) -> None:
        """Log in and start discovery."""
        ...

    @abstractmethod
    async def async_close(self) -> None:
        """Drop the session and every handler."""
        ...

    @abstractmethod
    async def async_poll_refresh(self) -> None:
        """Poll stations, devices and events, emitting what changed."""
        ...

    @abstractmethod
    async def async_get_station(self, serial: str) -> Station:
        """Return the station with the given serial."""
        ...

    @abstractmethod
    async def async_enable_device(
        self, station: Station, device: Device, enabled: bool
    ) -> None:
        """Switch a device on or off through its station."""
        ...

    @abstractmethod
    async def async_get_picture(self, device: Device) -> bytes | None:
        """Return the latest still picture of a device."""
        ...

    @abstractmethod
    async def async_start_stream(self, device: Device) -> str | None:
        """Ask the cloud for a stream URL."""
        ...

    @property
    @abstractmethod
    def is_connected(self) -> bool:
        """Return True while logged in."""
        ...
