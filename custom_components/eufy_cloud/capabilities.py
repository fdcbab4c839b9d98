"""Capability mapping from reported hardware features to host interfaces.

Which interfaces a camera advertises is a policy decision kept in the
config entry options; ``map_capabilities`` is a pure function of a device
and a policy.
"""
from __future__ import annotations

from collections.abc import Mapping
from dataclasses import dataclass
from enum import StrEnum
from typing import Any

from .api.models import Device
from .const import (
    CONF_ADVERTISE_BATTERY,
    CONF_ADVERTISE_MOTION,
    CONF_STREAM_MODE,
    DEFAULT_ADVERTISE_BATTERY,
    DEFAULT_ADVERTISE_MOTION,
    DEFAULT_STREAM_MODE,
    MANUFACTURER,
    StreamMode,
)


class Capability(StrEnum):
    """Interfaces a camera can expose to Home Assistant."""

    VIDEO_STREAM = "video_stream"
    STILL_PICTURE = "still_picture"
    ON_OFF = "on_off"
    BATTERY = "battery"
    MOTION = "motion"


BASE_CAPABILITIES = frozenset(
    {Capability.VIDEO_STREAM, Capability.STILL_PICTURE, Capability.ON_OFF}
)


@dataclass(frozen=True)
class CapabilityPolicy:
    """Which optional interfaces to advertise and how to stream."""

    advertise_battery: bool = DEFAULT_ADVERTISE_BATTERY
    advertise_motion: bool = DEFAULT_ADVERTISE_MOTION
    stream_mode: StreamMode = DEFAULT_STREAM_MODE

    @classmethod
    def from_options(cls, options: Mapping[str, Any] | None) -> CapabilityPolicy:
        """Create a policy from config entry options."""
        options = options or {}
        try:
            stream_mode = StreamMode(options.get(CONF_STREAM_MODE, DEFAULT_STREAM_MODE))
        except ValueError:
            stream_mode = DEFAULT_STREAM_MODE
        return cls(
            advertise_battery=options.get(
                CONF_ADVERTISE_BATTERY, DEFAULT_ADVERTISE_BATTERY
            ),
            advertise_motion=options.get(CONF_ADVERTISE_MOTION, DEFAULT_ADVERTISE_MOTION),
            stream_mode=stream_mode,
        )


@dataclass(frozen=True)
class DeviceDescriptor:
    """What gets registered with Home Assistant for a camera."""

    native_id: str
    name: str
    interfaces: frozenset[Capability]
    model: str
    manufacturer: str
    firmware: str
    serial_number: str
    station_serial: str


def map_capabilities(device: Device, policy: CapabilityPolicy) -> frozenset[Capability]:
    """Return the interfaces a camera exposes under a policy."""
    interfaces = set(BASE_CAPABILITIES)
    if policy.advertise_battery and device.has_battery():
        interfaces.add(Capability.BATTERY)
    if policy.advertise_motion and device.has_motion_telemetry():
        interfaces.add(Capability.MOTION)
    return frozenset(interfaces)


def build_descriptor(device: Device, policy: CapabilityPolicy) -> DeviceDescriptor:
    """Build the registration descriptor for a camera."""
    return DeviceDescriptor(
        native_id=device.serial,
        name=device.name,
        interfaces=map_capabilities(device, policy),
        model=device.model,
        manufacturer=MANUFACTURER,
        firmware=device.software_version,
        serial_number=device.serial,
        station_serial=device.station_serial,
    )
