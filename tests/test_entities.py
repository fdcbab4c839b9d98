"""Unit tests for camera, binary sensor and sensor entities."""
from __future__ import annotations

import pytest
from unittest.mock import MagicMock

from conftest import FakeEufyClient, make_device


def _make_handle(client_config, device=None, policy=None):
    from custom_components.eufy_cloud.capabilities import CapabilityPolicy, build_descriptor
    from custom_components.eufy_cloud.device import EufyCameraHandle
    from custom_components.eufy_cloud.session import Session

    device = device or make_device(ip_address="192.168.1.40")
    session = Session(1, FakeEufyClient(client_config))
    session.connected = True
    descriptor = build_descriptor(device, policy or CapabilityPolicy())
    return EufyCameraHandle(session, device, descriptor), session


def _make_coordinator(policy=None):
    from custom_components.eufy_cloud.capabilities import CapabilityPolicy

    return MagicMock(policy=policy or CapabilityPolicy())


class TestCamera:
    """Tests for the camera entity."""

    def test_rtsp_camera(self, client_config):
        """Test rtsp mode advertises streaming."""
        from homeassistant.components.camera import CameraEntityFeature
        from custom_components.eufy_cloud.camera import EufyCamera

        handle, _ = _make_handle(client_config)
        camera = EufyCamera(_make_coordinator(), handle)

        assert camera.unique_id == "T8114P0000001_camera"
        assert camera.supported_features & CameraEntityFeature.STREAM
        assert camera.supported_features & CameraEntityFeature.ON_OFF
        assert camera.is_on
        assert camera.available
        assert camera.motion_detection_enabled

    def test_snapshot_camera(self, client_config):
        """Test snapshot mode does not advertise streaming."""
        from homeassistant.components.camera import CameraEntityFeature
        from custom_components.eufy_cloud.camera import EufyCamera
        from custom_components.eufy_cloud.capabilities import CapabilityPolicy
        from custom_components.eufy_cloud.const import StreamMode

        handle, _ = _make_handle(client_config)
        policy = CapabilityPolicy(stream_mode=StreamMode.SNAPSHOT)
        camera = EufyCamera(_make_coordinator(policy), handle)

        assert not camera.supported_features & CameraEntityFeature.STREAM

    @pytest.mark.asyncio
    async def test_stream_and_image(self, client_config):
        """Test stream source and still image come from the handle."""
        from custom_components.eufy_cloud.camera import EufyCamera

        handle, session = _make_handle(client_config)
        camera = EufyCamera(_make_coordinator(), handle)

        assert await camera.stream_source() == "rtsp://192.168.1.40:554/live0"
        assert await camera.async_camera_image() == session.client.picture

    def test_device_info(self, client_config):
        """Test device info is built from the descriptor."""
        from custom_components.eufy_cloud.camera import EufyCamera

        handle, _ = _make_handle(client_config)
        camera = EufyCamera(_make_coordinator(), handle)

        info = camera.device_info
        assert info["identifiers"] == {("eufy_cloud", "T8114P0000001")}
        assert info["manufacturer"] == "Eufy"
        assert info["sw_version"] == "2.1.7.6"

    def test_unavailable_after_invalidation(self, client_config):
        """Test the camera goes unavailable with its session."""
        from custom_components.eufy_cloud.camera import EufyCamera

        handle, session = _make_handle(client_config)
        camera = EufyCamera(_make_coordinator(), handle)
        session.invalidate()

        assert not camera.available


class TestBinarySensor:
    """Tests for the motion binary sensor."""

    @pytest.mark.asyncio
    async def test_motion(self, client_config):
        """Test the sensor follows the handle's motion state."""
        from custom_components.eufy_cloud.binary_sensor import EufyMotionSensor

        handle, _ = _make_handle(client_config)
        sensor = EufyMotionSensor(_make_coordinator(), handle)

        assert sensor.unique_id == "T8114P0000001_motion"
        assert not sensor.is_on

        handle.set_motion(True)
        assert sensor.is_on
        handle.detach()


class TestSensors:
    """Tests for the battery and session state sensors."""

    def test_battery(self, client_config):
        """Test the battery sensor reports the battery parameter."""
        from custom_components.eufy_cloud.api.models import ParamType
        from custom_components.eufy_cloud.sensor import EufyBatterySensor

        device = make_device(params={ParamType.BATTERY: "64"})
        handle, _ = _make_handle(client_config, device)
        sensor = EufyBatterySensor(_make_coordinator(), handle)

        assert sensor.unique_id == "T8114P0000001_battery"
        assert sensor.native_value == 64

    @pytest.mark.asyncio
    async def test_session_state(self, mock_config_entry, client_factory, credentials):
        """Test the session state sensor reports the login state."""
        from custom_components.eufy_cloud.api.events import EVENT_TFA_REQUEST
        from custom_components.eufy_cloud.sensor import SessionStateSensor
        from custom_components.eufy_cloud.session import SessionManager

        client_factory.scripts = [[(EVENT_TFA_REQUEST,)]]
        manager = SessionManager(credentials, client_factory)
        await manager.async_attempt_login()
        sensor = SessionStateSensor(MagicMock(session=manager), mock_config_entry)

        assert sensor.unique_id == "test_entry_id_session_state"
        assert sensor.native_value == "two_factor_pending"
        attrs = sensor.extra_state_attributes
        assert attrs["challenge"] == "two_factor"
        assert attrs["generation"] == 1
        assert attrs["alerts"] == 1
        assert "hunter2" not in str(attrs)
