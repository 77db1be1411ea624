"""Dispatch system: the single serialization point in front of a transport.

WARNING: This is a system-level module used by the Client.
Do not call directly from user code.
"""

from kube_sdk._internal.dispatch.client import DEFAULT_CAPACITY, DispatchClient
from kube_sdk._internal.dispatch.errors import classify_transport_error

__all__ = [
    "DEFAULT_CAPACITY",
    "DispatchClient",
    "classify_transport_error",
]
