"""Normalization of transport failures into the SDK error taxonomy."""

import httpx

from kube_sdk.exceptions import KubeError, TransportError


def classify_transport_error(exc: BaseException) -> KubeError:
    """Map a failure raised while sending a request to a ``KubeError``.

    A ``KubeError`` raised by a decorating layer (auth, base URL, ...) is
    returned unchanged so the structured error wins over any generic
    wrapping. Everything else becomes a ``TransportError``.

    Args:
        exc: The exception raised by the transport.

    Returns:
        The error to raise to the caller.
    """
    if isinstance(exc, KubeError):
        return exc
    if isinstance(exc, httpx.TimeoutException):
        return TransportError(f"request timed out: {exc}")
    if isinstance(exc, httpx.HTTPError):
        return TransportError(f"HTTP transport error: {exc}")
    if isinstance(exc, OSError):
        return TransportError(f"I/O error: {exc}")
    return TransportError(f"service error: {exc}")
