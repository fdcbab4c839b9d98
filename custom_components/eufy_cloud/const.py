"""Constants for the Eufy Cloud integration."""
from __future__ import annotations

from enum import StrEnum
from typing import Final

DOMAIN: Final = "eufy_cloud"
MANUFACTURER: Final = "Eufy"

# =============================================================================
# Config Entry Keys
# =============================================================================

# Credentials (entry data)
CONF_EMAIL: Final = "email"
CONF_PASSWORD: Final = "password"
CONF_COUNTRY: Final = "country"
CONF_TRUSTED_DEVICE_NAME: Final = "trusted_device_name"

# Hidden - pending captcha challenge id
CONF_CAPTCHA_ID: Final = "captcha_id"

# Write-only challenge answers (flows and services, never stored)
CONF_VERIFY_CODE: Final = "verify_code"
CONF_CAPTCHA: Final = "captcha"

# Capability policy (entry options)
CONF_STREAM_MODE: Final = "stream_mode"
CONF_ADVERTISE_BATTERY: Final = "advertise_battery"
CONF_ADVERTISE_MOTION: Final = "advertise_motion"

# =============================================================================
# Defaults
# =============================================================================

DEFAULT_COUNTRY: Final = "US"
DEFAULT_TRUSTED_DEVICE_NAME: Final = "eufyclient"
DEFAULT_ADVERTISE_BATTERY: Final = True
DEFAULT_ADVERTISE_MOTION: Final = True

# Fixed transport preferences handed to the client on every login
DEFAULT_POLLING_INTERVAL_MINUTES: Final = 10
DEFAULT_EVENT_DURATION_SECONDS: Final = 10

REQUEST_TIMEOUT: Final = 30  # seconds

# =============================================================================
# Enums
# =============================================================================


class LoginState(StrEnum):
    """Login/session state of the session manager."""

    NO_CREDENTIALS = "no_credentials"
    ATTEMPTING = "attempting"
    TWO_FACTOR_PENDING = "two_factor_pending"
    CAPTCHA_PENDING = "captcha_pending"
    CONNECTED = "connected"


class StreamMode(StrEnum):
    """How a camera's video stream is offered to Home Assistant."""

    RTSP = "rtsp"
    SNAPSHOT = "snapshot"


class P2PConnectionType(StrEnum):
    """Peer-to-peer connection preference passed to the client."""

    ONLY_LOCAL = "only_local"
    QUICKEST = "quickest"


DEFAULT_STREAM_MODE: Final = StreamMode.RTSP
DEFAULT_P2P_CONNECTION: Final = P2PConnectionType.QUICKEST

LOGIN_STATES: Final = [e.value for e in LoginState]
STREAM_MODES: Final = [e.value for e in StreamMode]

# =============================================================================
# Services / Signals
# =============================================================================

SERVICE_SUBMIT_VERIFY_CODE: Final = "submit_verify_code"
SERVICE_SUBMIT_CAPTCHA: Final = "submit_captcha"

ATTR_CODE: Final = "code"
ATTR_CONFIG_ENTRY_ID: Final = "config_entry_id"

SIGNAL_DEVICE_DISCOVERED: Final = f"{DOMAIN}_device_discovered_{{}}"


def signal_device_discovered(entry_id: str) -> str:
    """Return the dispatcher signal for new devices of a config entry."""
    return SIGNAL_DEVICE_DISCOVERED.format(entry_id)
