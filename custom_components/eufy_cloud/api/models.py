"""Typed Eufy cloud objects.

Raw cloud payloads are duck-typed property bags. Everything crossing into the
integration goes through the voluptuous schemas below and comes out as a
``Device`` or ``Station`` with explicit capability queries.
"""
from __future__ import annotations

from dataclasses import dataclass, field
from enum import IntEnum
from typing import Any

import voluptuous as vol

from .errors import EufyCloudError


class DeviceType(IntEnum):
    """Eufy hardware types as reported in ``device_type``."""

    STATION = 0
    CAMERA = 1
    SENSOR = 2
    FLOODLIGHT = 3
    CAMERA_E = 4
    DOORBELL = 5
    BATTERY_DOORBELL = 7
    CAMERA2C = 8
    CAMERA2 = 9
    MOTION_SENSOR = 10
    KEYPAD = 11
    CAMERA2_PRO = 14
    CAMERA2C_PRO = 15
    BATTERY_DOORBELL_2 = 16
    INDOOR_CAMERA = 30
    INDOOR_PT_CAMERA = 31
    SOLO_CAMERA = 32
    SOLO_CAMERA_PRO = 33
    INDOOR_CAMERA_1080 = 34
    INDOOR_PT_CAMERA_1080 = 35
    FLOODLIGHT_CAMERA_8422 = 37
    FLOODLIGHT_CAMERA_8423 = 38
    FLOODLIGHT_CAMERA_8424 = 39
    INDOOR_OUTDOOR_CAMERA_1080P_NO_LIGHT = 44
    INDOOR_OUTDOOR_CAMERA_2K = 45
    INDOOR_OUTDOOR_CAMERA_1080P = 46
    LOCK_BASIC = 50
    LOCK_ADVANCED = 51
    LOCK_BASIC_NO_FINGER = 52
    LOCK_ADVANCED_NO_FINGER = 53
    SOLO_CAMERA_SPOTLIGHT_1080 = 60
    SOLO_CAMERA_SPOTLIGHT_2K = 61
    SOLO_CAMERA_SPOTLIGHT_SOLAR = 62
    BATTERY_DOORBELL_PLUS = 91


class ParamType(IntEnum):
    """Device parameter ids found in the ``params`` list."""

    BATTERY = 1101
    DEVICE_SWITCH = 99904


BATTERY_CAMERA_TYPES = frozenset(
    {
        DeviceType.CAMERA,
        DeviceType.CAMERA_E,
        DeviceType.CAMERA2,
        DeviceType.CAMERA2C,
        DeviceType.CAMERA2_PRO,
        DeviceType.CAMERA2C_PRO,
        DeviceType.BATTERY_DOORBELL,
        DeviceType.BATTERY_DOORBELL_2,
        DeviceType.BATTERY_DOORBELL_PLUS,
        DeviceType.SOLO_CAMERA_SPOTLIGHT_SOLAR,
    }
)

WIRED_CAMERA_TYPES = frozenset(
    {
        DeviceType.FLOODLIGHT,
        DeviceType.DOORBELL,
        DeviceType.INDOOR_CAMERA,
        DeviceType.INDOOR_PT_CAMERA,
        DeviceType.SOLO_CAMERA,
        DeviceType.SOLO_CAMERA_PRO,
        DeviceType.INDOOR_CAMERA_1080,
        DeviceType.INDOOR_PT_CAMERA_1080,
        DeviceType.FLOODLIGHT_CAMERA_8422,
        DeviceType.FLOODLIGHT_CAMERA_8423,
        DeviceType.FLOODLIGHT_CAMERA_8424,
        DeviceType.INDOOR_OUTDOOR_CAMERA_1080P_NO_LIGHT,
        DeviceType.INDOOR_OUTDOOR_CAMERA_2K,
        DeviceType.INDOOR_OUTDOOR_CAMERA_1080P,
        DeviceType.SOLO_CAMERA_SPOTLIGHT_1080,
        DeviceType.SOLO_CAMERA_SPOTLIGHT_2K,
    }
)

CAMERA_TYPES = BATTERY_CAMERA_TYPES | WIRED_CAMERA_TYPES

MOTION_TELEMETRY_TYPES = CAMERA_TYPES | {DeviceType.MOTION_SENSOR}

RTSP_PORT = 554
RTSP_PATH = "live0"

PARAM_SCHEMA = vol.Schema(
    {
        vol.Required("param_type"): vol.Coerce(int),
        vol.Optional("param_value", default=""): vol.Any(None, vol.Coerce(str)),
    },
    extra=vol.ALLOW_EXTRA,
)

DEVICE_SCHEMA = vol.Schema(
    {
        vol.Required("device_sn"): vol.All(str, vol.Length(min=1)),
        vol.Required("device_type"): vol.Coerce(int),
        vol.Optional("device_name", default=""): vol.Any(None, str),
        vol.Optional("device_model", default=""): vol.Any(None, str),
        vol.Optional("main_sw_version", default=""): vol.Any(None, str),
        vol.Optional("station_sn", default=""): vol.Any(None, str),
        vol.Optional("ip_addr", default=""): vol.Any(None, str),
        vol.Optional("cover_path", default=""): vol.Any(None, str),
        vol.Optional("params", default=list): vol.Any(None, [PARAM_SCHEMA]),
    },
    extra=vol.ALLOW_EXTRA,
)

STATION_SCHEMA = vol.Schema(
    {
        vol.Required("station_sn"): vol.All(str, vol.Length(min=1)),
        vol.Optional("station_name", default=""): vol.Any(None, str),
        vol.Optional("station_model", default=""): vol.Any(None, str),
        vol.Optional("main_sw_version", default=""): vol.Any(None, str),
        vol.Optional("ip_addr", default=""): vol.Any(None, str),
    },
    extra=vol.ALLOW_EXTRA,
)


def _validate(schema: vol.Schema, raw: Any, kind: str) -> dict[str, Any]:
    """Run a schema and turn validation failures into client errors."""
    try:
        return schema(raw)
    except vol.Invalid as err:
        raise EufyCloudError(f"Malformed {kind} payload: {err}") from err


@dataclass
class Device:
    """A device registered to the account."""

    serial: str
    device_type: int
    name: str
    model: str
    software_version: str
    station_serial: str
    ip_address: str | None = None
    picture_url: str | None = None
    params: dict[int, str] = field(default_factory=dict)

    @classmethod
    def from_api(cls, raw: Any) -> Device:
        """Create a device from a ``get_devs_list`` entry."""
        data = _validate(DEVICE_SCHEMA, raw, "device")
        params = {
            param["param_type"]: param["param_value"] or ""
            for param in data["params"] or []
        }
        return cls(
            serial=data["device_sn"],
            device_type=data["device_type"],
            name=data["device_name"] or data["device_sn"],
            model=data["device_model"] or "",
            software_version=data["main_sw_version"] or "",
            station_serial=data["station_sn"] or data["device_sn"],
            ip_address=data["ip_addr"] or None,
            picture_url=data["cover_path"] or None,
            params=params,
        )

    @property
    def is_camera(self) -> bool:
        """Return True if the hardware type is a camera or doorbell."""
        return self.device_type in CAMERA_TYPES

    @property
    def enabled(self) -> bool:
        """Return True unless the device switch parameter is off."""
        return self.params.get(ParamType.DEVICE_SWITCH, "1") != "0"

    @property
    def battery_level(self) -> int | None:
        """Return the battery percentage, if reported."""
        value = self.params.get(ParamType.BATTERY)
        if not value:
            return None
        try:
            return max(0, min(100, int(value)))
        except ValueError:
            return None

    def has_battery(self) -> bool:
        """Return True if the device runs on battery."""
        return (
            self.device_type in BATTERY_CAMERA_TYPES
            or ParamType.BATTERY in self.params
        )

    def has_motion_telemetry(self) -> bool:
        """Return True if the device reports motion events."""
        return self.device_type in MOTION_TELEMETRY_TYPES

    def get_stream_endpoint(self) -> str | None:
        """Return the local RTSP endpoint, if the device address is known."""
        if not self.ip_address:
            return None
        return f"rtsp://{self.ip_address}:{RTSP_PORT}/{RTSP_PATH}"


@dataclass
class Station:
    """A hub that proxies communication with its cameras."""

    serial: str
    name: str
    model: str
    software_version: str
    ip_address: str | None = None

    @classmethod
    def from_api(cls, raw: Any) -> Station:
        """Create a station from a ``get_hub_list`` entry."""
        data = _validate(STATION_SCHEMA, raw, "station")
        return cls(
            serial=data["station_sn"],
            name=data["station_name"] or data["station_sn"],
            model=data["station_model"] or "",
            software_version=data["main_sw_version"] or "",
            ip_address=data["ip_addr"] or None,
        )
