"""Pytest configuration and fixtures for Eufy Cloud tests."""
from __future__ import annotations

import os
import sys

# Add the project root to Python path for imports
PROJECT_ROOT = os.path.dirname(os.path.dirname(os.path.abspath(__file__)))
if PROJECT_ROOT not in sys.path:
    sys.path.insert(0, PROJECT_ROOT)

import asyncio
from dataclasses import dataclass, field
from typing import Any
from unittest.mock import AsyncMock, MagicMock

import pytest

from custom_components.eufy_cloud.api.base import (
    ClientConfig,
    ConnectOptions,
    EufyClient,
)
from custom_components.eufy_cloud.api.events import EVENT_CONNECT
from custom_components.eufy_cloud.api.models import Device, DeviceType, ParamType, Station
from custom_components.eufy_cloud.models import Credentials

# =============================================================================
# Mock Home Assistant Objects
# =============================================================================


@dataclass
class MockConfigEntry:
    """Mock Home Assistant config entry."""

    entry_id: str = "test_entry_id"
    domain: str = "eufy_cloud"
    title: str = "user@example.com"
    data: dict = field(default_factory=lambda: {
        "email": "user@example.com",
        "password": "hunter2",
        "country": "US",
        "trusted_device_name": "eufyclient",
    })
    options: dict = field(default_factory=dict)
    state: str = "loaded"

    def async_on_unload(self, func) -> None:
        """Accept unload callbacks."""


class MockConfigEntries:
    """Mock config entries."""

    def __init__(self):
        self._entries: dict[str, list[MockConfigEntry]] = {}
        self.async_reload = AsyncMock()
        self.flow = MagicMock()

    def async_entries(self, domain: str | None = None) -> list[MockConfigEntry]:
        if domain:
            return self._entries.get(domain, [])
        return [e for entries in self._entries.values() for e in entries]

    def async_get_entry(self, entry_id: str) -> MockConfigEntry | None:
        for entry in self.async_entries():
            if entry.entry_id == entry_id:
                return entry
        return None

    def async_update_entry(self, entry: MockConfigEntry, *, data=None, options=None) -> bool:
        if data is not None:
            entry.data = dict(data)
        if options is not None:
            entry.options = dict(options)
        return True

    def add_entry(self, domain: str, entry: MockConfigEntry):
        if domain not in self._entries:
            self._entries[domain] = []
        self._entries[domain].append(entry)


class MockHomeAssistant:
    """Mock Home Assistant core object."""

    def __init__(self):
        self.data: dict[str, Any] = {}
        self.config_entries = MockConfigEntries()
        self.services = MagicMock()

    def async_create_task(self, coro):
        """Create a task."""
        return asyncio.create_task(coro)


# =============================================================================
# Fake Eufy Client
# =============================================================================


class FakeEufyClient(EufyClient):
    """Scriptable client: ``async_connect`` replays a list of events."""

    def __init__(self, config: ClientConfig, script: list[tuple] | None = None):
        super().__init__(config)
        self.script = [(EVENT_CONNECT,)] if script is None else script
        self.gate: asyncio.Event | None = None
        self.connect_error: Exception | None = None
        self.connect_calls: list[ConnectOptions] = []
        self.enable_calls: list[tuple[str, str, bool]] = []
        self.poll_count = 0
        self.closed = False
        self.picture = b"\xff\xd8jpeg"
        self.stream_url = "rtsp://cloud.example/stream"
        self._connected = False

    async def async_connect(self, options: ConnectOptions) -> None:
        self.connect_calls.append(options)
        if self.gate is not None:
            await self.gate.wait()
        if self.connect_error is not None:
            raise self.connect_error
        for event, *args in self.script:
            if event == EVENT_CONNECT:
                self._connected = True
            await self.events.async_emit(event, *args)

    async def async_close(self) -> None:
        self.closed = True
        self._connected = False

    async def async_poll_refresh(self) -> None:
        self.poll_count += 1

    async def async_get_station(self, serial: str) -> Station:
        return make_station(serial)

    async def async_enable_device(
        self, station: Station, device: Device, enabled: bool
    ) -> None:
        self.enable_calls.append((station.serial, device.serial, enabled))

    async def async_get_picture(self, device: Device) -> bytes | None:
        return self.picture

    async def async_start_stream(self, device: Device) -> str | None:
        return self.stream_url

    @property
    def is_connected(self) -> bool:
        return self._connected


class FakeClientFactory:
    """Client factory handing out one ``FakeEufyClient`` per login attempt.

    ``scripts`` and ``gates`` are consumed in order, one per created client.
    """

    def __init__(self):
        self.clients: list[FakeEufyClient] = []
        self.configs: list[ClientConfig] = []
        self.scripts: list[list[tuple]] = []
        self.gates: list[asyncio.Event | None] = []
        self.errors: list[Exception | None] = []

    async def __call__(self, config: ClientConfig) -> FakeEufyClient:
        client = FakeEufyClient(config, self.scripts.pop(0) if self.scripts else None)
        if self.gates:
            client.gate = self.gates.pop(0)
        if self.errors:
            client.connect_error = self.errors.pop(0)
        self.configs.append(config)
        self.clients.append(client)
        return client

    async def async_create(self, hass, config: ClientConfig) -> FakeEufyClient:
        """Stand-in for ``async_create_client``."""
        return await self(config)

    @property
    def last(self) -> FakeEufyClient:
        return self.clients[-1]


# =============================================================================
# Sample Devices
# =============================================================================


def make_device(
    serial: str = "T8114P0000001",
    device_type: int = DeviceType.CAMERA2,
    name: str = "Front Door",
    ip_address: str | None = None,
    params: dict[int, str] | None = None,
) -> Device:
    """Build a vendor device."""
    return Device(
        serial=serial,
        device_type=int(device_type),
        name=name,
        model="T8114",
        software_version="2.1.7.6",
        station_serial="T8010P0000001",
        ip_address=ip_address,
        params=dict(params or {ParamType.DEVICE_SWITCH: "1"}),
    )


def make_station(serial: str = "T8010P0000001") -> Station:
    """Build a vendor station."""
    return Station(
        serial=serial,
        name="HomeBase",
        model="T8010",
        software_version="2.2.4.5",
    )


MOCK_DEVICE_PAYLOAD = {
    "device_sn": "T8114P0000001",
    "device_type": 9,
    "device_name": "Front Door",
    "device_model": "T8114",
    "main_sw_version": "2.1.7.6",
    "station_sn": "T8010P0000001",
    "ip_addr": "192.168.1.40",
    "cover_path": "https://cdn.example/cover.jpg",
    "params": [
        {"param_type": 1101, "param_value": "87"},
        {"param_type": 99904, "param_value": "1"},
    ],
}


# =============================================================================
# Pytest Fixtures
# =============================================================================


@pytest.fixture
def mock_hass() -> MockHomeAssistant:
    """Create a mock Home Assistant instance."""
    return MockHomeAssistant()


@pytest.fixture
def mock_config_entry() -> MockConfigEntry:
    """Create a mock config entry with default values."""
    return MockConfigEntry()


@pytest.fixture
def credentials() -> Credentials:
    """Complete account credentials."""
    return Credentials(email="user@example.com", password="hunter2")


@pytest.fixture
def client_factory() -> FakeClientFactory:
    """Factory of scriptable clients."""
    return FakeClientFactory()


@pytest.fixture
def client_config() -> ClientConfig:
    """Client configuration for direct client tests."""
    return ClientConfig(
        username="user@example.com",
        password="hunter2",
        country="US",
        trusted_device_name="eufyclient",
    )
