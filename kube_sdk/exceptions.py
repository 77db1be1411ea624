"""Public exceptions for the Kube SDK."""

from __future__ import annotations

from typing import TYPE_CHECKING

if TYPE_CHECKING:
    from kube_sdk.models.status import ErrorResponse


class KubeError(Exception):
    """Base exception for all Kube SDK errors."""


class ConfigError(KubeError):
    """Configuration error (missing env vars, invalid config)."""


class TransportError(KubeError):
    """Failure below the HTTP layer (connection refused, reset, generic I/O)."""


class ApiError(KubeError):
    """Structured failure reported by the API server."""

    def __init__(self, response: ErrorResponse) -> None:
        super().__init__(f"{response.message}: {response.reason} ({response.code})")
        self.response = response

    @property
    def status_code(self) -> int:
        return self.response.code


class DecodeError(KubeError):
    """Payload did not decode as UTF-8 or as the expected JSON shape."""

    def __init__(self, message: str, text: str | None = None) -> None:
        super().__init__(message)
        self.text = text


class UpgradeError(KubeError):
    """Websocket handshake validation failed.

    ``kind`` names the failed check so callers can branch without parsing
    the message.
    """

    def __init__(self, message: str, kind: str) -> None:
        super().__init__(message)
        self.kind = kind


class PendingUpgradeError(UpgradeError):
    """Handshake accepted, but the upgraded connection could not be obtained."""

    def __init__(self, message: str) -> None:
        super().__init__(message, kind="pending_upgrade")


class StreamReadError(KubeError):
    """Non-benign I/O failure while reading a streamed body."""


class FrameTooLongError(KubeError):
    """A watch line exceeded the configured maximum length."""

    def __init__(self, max_line_length: int) -> None:
        super().__init__(f"watch line exceeded maximum length of {max_line_length} bytes")
        self.max_line_length = max_line_length
