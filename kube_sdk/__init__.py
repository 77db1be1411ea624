"""Kube SDK for Python.

Request dispatch and response interpretation for Kubernetes-style
resource APIs.

Public API:
    Client - Handle for sending requests and decoding responses
    HttpxTransport - Default transport backed by httpx
    Connection - Upgraded websocket connection
"""

from kube_sdk._internal.body import BodyStream
from kube_sdk._internal.debug import enable_debug_logging
from kube_sdk._internal.http import HttpxTransport, create_http_client
from kube_sdk._internal.transport import Transport
from kube_sdk._internal.upgrade import Connection, StreamProtocol
from kube_sdk._version import __version__
from kube_sdk.client import Client
from kube_sdk.exceptions import (
    ApiError,
    ConfigError,
    DecodeError,
    FrameTooLongError,
    KubeError,
    PendingUpgradeError,
    StreamReadError,
    TransportError,
    UpgradeError,
)

__all__ = [
    "__version__",
    "ApiError",
    "BodyStream",
    "Client",
    "ConfigError",
    "Connection",
    "DecodeError",
    "FrameTooLongError",
    "HttpxTransport",
    "KubeError",
    "PendingUpgradeError",
    "StreamProtocol",
    "StreamReadError",
    "Transport",
    "TransportError",
    "UpgradeError",
    "create_http_client",
    "enable_debug_logging",
]
