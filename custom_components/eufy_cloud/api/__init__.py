"""Eufy Security cloud client package.

- EufyClient: contract the session manager relies on
- EufyCloudApi: aiohttp implementation against the Eufy account API
"""
from .base import CaptchaOptions, ClientConfig, ConnectOptions, EufyClient
from .cloud import EufyCloudApi
from .errors import (
    CannotConnectError,
    EufyCloudError,
    InvalidCredentialsError,
    SessionExpiredError,
)
from .events import EventEmitter
from .models import Device, DeviceType, Station

__all__ = [
    "CannotConnectError",
    "CaptchaOptions",
    "ClientConfig",
    "ConnectOptions",
    "Device",
    "DeviceType",
    "EufyClient",
    "EufyCloudApi",
    "EufyCloudError",
    "EventEmitter",
    "InvalidCredentialsError",
    "SessionExpiredError",
    "Station",
]
