"""Eufy cloud response codes and exceptions."""
from __future__ import annotations

from enum import IntEnum

from homeassistant.exceptions import HomeAssistantError


class ResponseCode(IntEnum):
    """Response codes returned in the ``code`` field of cloud replies."""

    SUCCESS = 0
    INVALID_TOKEN = 401
    WHATEVER_ERROR = 998
    NETWORK_ERROR = 999
    PASSWORD_ERROR = 26006
    EMAIL_NOT_REGISTERED = 26050
    VERIFY_CODE_ERROR = 26051
    NEED_VERIFY_CODE = 26052
    VERIFY_CODE_EXPIRED = 26053
    VERIFY_CODE_MAX = 26055
    NEED_CAPTCHA = 100032
    CAPTCHA_ERROR = 100033


RESPONSE_MESSAGES: dict[int, str] = {
    ResponseCode.INVALID_TOKEN: "Authentication token expired or rejected",
    ResponseCode.WHATEVER_ERROR: "Unspecified server error",
    ResponseCode.NETWORK_ERROR: "Server side network error",
    ResponseCode.PASSWORD_ERROR: "Invalid email or password",
    ResponseCode.EMAIL_NOT_REGISTERED: "Account is not registered",
    ResponseCode.VERIFY_CODE_ERROR: "Verification code is wrong",
    ResponseCode.NEED_VERIFY_CODE: "Verification code required",
    ResponseCode.VERIFY_CODE_EXPIRED: "Verification code expired",
    ResponseCode.VERIFY_CODE_MAX: "Too many verification code attempts",
    ResponseCode.NEED_CAPTCHA: "Captcha required",
    ResponseCode.CAPTCHA_ERROR: "Captcha answer is wrong",
}

CREDENTIAL_ERRORS = frozenset(
    {ResponseCode.PASSWORD_ERROR, ResponseCode.EMAIL_NOT_REGISTERED}
)


def get_message(code: int) -> str:
    """Return a readable message for a response code."""
    return RESPONSE_MESSAGES.get(code, f"Unknown error: {code}")


class EufyCloudError(HomeAssistantError):
    """Error reported by the Eufy cloud or the client."""

    def __init__(self, message: str | None = None, code: int | None = None) -> None:
        self.code = code
        if message is None:
            message = get_message(code) if code is not None else "Eufy cloud error"
        super().__init__(message)


class CannotConnectError(EufyCloudError):
    """The cloud could not be reached."""


class InvalidCredentialsError(EufyCloudError):
    """The cloud rejected the email/password pair."""


class SessionExpiredError(EufyCloudError):
    """The session is no longer valid."""


def raise_for_code(code: int) -> None:
    """Raise the matching exception for an unsuccessful response code."""
    if code == ResponseCode.SUCCESS:
        return
    if code in CREDENTIAL_ERRORS:
        raise InvalidCredentialsError(code=code)
    if code == ResponseCode.INVALID_TOKEN:
        raise SessionExpiredError(code=code)
    raise EufyCloudError(code=code)
