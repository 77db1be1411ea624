"""Client for Kubernetes-style resource APIs.

The client sends requests through a shared dispatcher and interprets the
responses according to what the caller asked for:

    from kube_sdk import Client

    async with Client.from_env() as client:
        version = await client.apiserver_version()

        request = client.build_request("GET", "/api/v1/namespaces/default/pods")
        pods = await client.request(request, dict)

        watch = client.build_request(
            "GET", "/api/v1/namespaces/default/pods", params={"watch": "true"}
        )
        async for event in client.request_events(watch, dict):
            print(event.type, event.object["metadata"]["name"])

Copies made with ``clone()`` or ``with_valid_until()`` share the same
dispatcher, so they share its queue and backpressure.
"""

import contextlib
import logging
import os
from collections.abc import AsyncIterator
from datetime import datetime
from functools import lru_cache
from types import TracebackType
from typing import Any, TypeVar

import httpx
from pydantic import TypeAdapter, ValidationError

from kube_sdk._internal.body import BodyStream
from kube_sdk._internal.debug import enable_debug_logging
from kube_sdk._internal.dispatch import DEFAULT_CAPACITY, DispatchClient
from kube_sdk._internal.errors import handle_api_errors
from kube_sdk._internal.http import DEFAULT_TIMEOUT, HttpxTransport
from kube_sdk._internal.transport import Transport
from kube_sdk._internal.upgrade import Connection, handshake_request, open_connection
from kube_sdk._internal.watch import iter_watch_events
from kube_sdk.exceptions import ConfigError, DecodeError, TransportError, UpgradeError
from kube_sdk.models.discovery import APIGroupList, APIResourceList, APIVersions, VersionInfo
from kube_sdk.models.status import ObjectOrStatus, ObjectResult, Status, StatusResult
from kube_sdk.models.watch import WatchEvent

logger = logging.getLogger(__name__)

T = TypeVar("T")

DEFAULT_NAMESPACE = "default"
DEFAULT_TIMEOUT_MS = int(DEFAULT_TIMEOUT * 1000)


@lru_cache(maxsize=128)
def _adapter(type_: Any) -> TypeAdapter[Any]:
    return TypeAdapter(type_)


class Client:
    """Handle to a Kubernetes-style API server.

    Handles are cheap to copy. All copies submit through the same
    dispatcher; closing any of them closes it for all.

    Use `Client.from_env()` to create a client from environment variables.
    """

    def __init__(
        self,
        transport: Transport,
        default_namespace: str = DEFAULT_NAMESPACE,
        *,
        capacity: int = DEFAULT_CAPACITY,
        max_line_length: int | None = None,
    ) -> None:
        """Initialize the client.

        Args:
            transport: The transport requests are sent through.
            default_namespace: Namespace used when none is given.
            capacity: Maximum number of queued submissions.
            max_line_length: Maximum watch line length in bytes (None = unbounded).
        """
        self._dispatcher = DispatchClient(transport, capacity=capacity)
        self._default_namespace = default_namespace
        self._valid_until: datetime | None = None
        self._max_line_length = max_line_length

    @classmethod
    def from_env(cls) -> "Client":
        """Create a client from environment variables.

        Required environment variables:
            KUBE_SDK_BASE_URL: The API server base URL.

        Optional environment variables:
            KUBE_SDK_NAMESPACE: Default namespace (default: "default").
            KUBE_SDK_TIMEOUT_MS: Connect/write/pool timeout in milliseconds.
            KUBE_SDK_MAILBOX_SIZE: Maximum number of queued submissions.
            KUBE_SDK_WATCH_MAX_LINE_BYTES: Maximum watch line length in bytes.
            KUBE_SDK_DEBUG: Set to "1" to enable debug logging to stderr.

        Returns:
            A configured Client.

        Raises:
            ConfigError: KUBE_SDK_BASE_URL is not set.
            ValueError: A numeric variable is not a valid integer.
        """
        base_url = os.environ.get("KUBE_SDK_BASE_URL")
        if not base_url:
            raise ConfigError("KUBE_SDK_BASE_URL is not set")

        namespace = os.environ.get("KUBE_SDK_NAMESPACE") or DEFAULT_NAMESPACE
        timeout_ms = int(os.environ.get("KUBE_SDK_TIMEOUT_MS", str(DEFAULT_TIMEOUT_MS)))
        capacity = int(os.environ.get("KUBE_SDK_MAILBOX_SIZE", str(DEFAULT_CAPACITY)))
        max_line_bytes = os.environ.get("KUBE_SDK_WATCH_MAX_LINE_BYTES")
        max_line_length = int(max_line_bytes) if max_line_bytes else None

        if os.environ.get("KUBE_SDK_DEBUG", "") == "1":
            enable_debug_logging()

        transport = HttpxTransport.create(base_url=base_url, timeout=timeout_ms / 1000)
        return cls(
            transport,
            namespace,
            capacity=capacity,
            max_line_length=max_line_length,
        )

    def _copy(self, **changes: Any) -> "Client":
        client = object.__new__(type(self))
        client._dispatcher = self._dispatcher
        client._default_namespace = self._default_namespace
        client._valid_until = changes.get("valid_until", self._valid_until)
        client._max_line_length = self._max_line_length
        return client

    def clone(self) -> "Client":
        """Return another handle sharing this client's dispatcher."""
        return self._copy()

    __copy__ = clone

    def with_valid_until(self, valid_until: datetime | None) -> "Client":
        """Return a handle with an expiry timestamp set.

        The timestamp is informational only: the client keeps working past
        it. Callers check ``valid_until`` themselves.
        """
        return self._copy(valid_until=valid_until)

    @property
    def valid_until(self) -> datetime | None:
        return self._valid_until

    @property
    def default_namespace(self) -> str:
        return self._default_namespace

    @property
    def max_line_length(self) -> int | None:
        return self._max_line_length

    # =========================================================================
    # Lifecycle
    # =========================================================================

    async def aclose(self) -> None:
        """Close the shared dispatcher and its transport."""
        await self._dispatcher.aclose()

    async def __aenter__(self) -> "Client":
        return self

    async def __aexit__(
        self,
        exc_type: type[BaseException] | None,
        exc: BaseException | None,
        tb: TracebackType | None,
    ) -> None:
        await self.aclose()

    # =========================================================================
    # Requests
    # =========================================================================

    def build_request(
        self,
        method: str,
        url: str,
        *,
        params: dict[str, Any] | None = None,
        headers: dict[str, str] | None = None,
        content: bytes | None = None,
        json_body: Any = None,
    ) -> httpx.Request:
        """Build a request; relative URLs resolve against the transport's base URL."""
        if json_body is not None:
            return httpx.Request(method, url, params=params, headers=headers, json=json_body)
        return httpx.Request(method, url, params=params, headers=headers, content=content)

    async def send(self, request: httpx.Request) -> httpx.Response:
        """Send a raw request and return the raw response.

        The response body is not read; the caller owns it and must close it.
        """
        return await self._dispatcher.submit(request)

    async def request_text(self, request: httpx.Request) -> str:
        """Send a request and return the response body as text.

        Raises:
            ApiError: The server returned a 4xx/5xx response.
            DecodeError: The body is not valid UTF-8.
            TransportError: The request or the body read failed.
        """
        response = await handle_api_errors(await self.send(request))
        try:
            body = await response.aread()
        except httpx.HTTPError as exc:
            raise TransportError(f"error reading response body: {exc}") from exc
        finally:
            await response.aclose()
        try:
            return body.decode("utf-8")
        except UnicodeDecodeError as exc:
            raise DecodeError(f"response body is not valid UTF-8: {exc}") from exc

    async def request(self, request: httpx.Request, type_: type[T]) -> T:
        """Send a request and decode the JSON response as ``type_``.

        Raises:
            ApiError: The server returned a 4xx/5xx response.
            DecodeError: The body does not decode as ``type_``.
            TransportError: The request failed.
        """
        text = await self.request_text(request)
        try:
            return _adapter(type_).validate_json(text)
        except ValidationError as exc:
            logger.warning("%s, %s", text, exc)
            raise DecodeError(f"failed to decode response: {exc}", text=text) from exc

    async def request_stream(self, request: httpx.Request) -> BodyStream:
        """Send a request and return the body as an unbuffered byte stream.

        Raises:
            ApiError: The server returned a 4xx/5xx response.
            TransportError: The request failed.
        """
        response = await handle_api_errors(await self.send(request))
        return BodyStream(response)

    async def request_status(self, request: httpx.Request, type_: type[T]) -> ObjectOrStatus[T]:
        """Send a request and decode the response as ``type_`` or a ``Status``.

        The ``kind`` field decides: ``"Status"`` yields a ``StatusResult``,
        anything else an ``ObjectResult``.

        Raises:
            ApiError: The server returned a 4xx/5xx response.
            DecodeError: The body is not JSON or does not match the chosen type.
            TransportError: The request failed.
        """
        text = await self.request_text(request)
        try:
            value = _adapter(Any).validate_json(text)
            if isinstance(value, dict) and value.get("kind") == "Status":
                logger.debug("Status from %s", text)
                return StatusResult(Status.model_validate(value))
            return ObjectResult(_adapter(type_).validate_python(value))
        except ValidationError as exc:
            logger.warning("%s, %s", text, exc)
            raise DecodeError(f"failed to decode response: {exc}", text=text) from exc

    async def request_events(
        self, request: httpx.Request, type_: type[T]
    ) -> AsyncIterator[WatchEvent[T]]:
        """Send a watch request and yield its events in order.

        Nothing is sent until iteration starts. Each call sends a new
        request; an iterator cannot be restarted. A read timeout or a
        connection cut mid-stream ends iteration without an error.

        Raises:
            ApiError: The server sent an error response line.
            DecodeError: A line could not be decoded.
            StreamReadError: Reading the body failed.
            FrameTooLongError: A line exceeded ``max_line_length``.
            TransportError: The request failed.
        """
        response = await self.send(request)
        logger.debug("headers: %s", response.headers)
        events = iter_watch_events(
            response, _adapter(type_), max_line_length=self._max_line_length
        )
        async with contextlib.aclosing(events):
            async for event in events:
                yield event

    async def connect(self, request: httpx.Request) -> Connection:
        """Upgrade a request to a websocket connection.

        Raises:
            UpgradeError: The handshake response failed validation.
            PendingUpgradeError: The upgraded stream could not be obtained.
            TransportError: The request failed.
        """
        request, key = handshake_request(request)
        response = await self.send(request)
        try:
            return open_connection(response, key)
        except UpgradeError:
            await response.aclose()
            raise

    # =========================================================================
    # Discovery
    # =========================================================================

    async def apiserver_version(self) -> VersionInfo:
        """Return the API server version."""
        return await self.request(self.build_request("GET", "/version"), VersionInfo)

    async def list_api_groups(self) -> APIGroupList:
        """List the API groups the server serves."""
        return await self.request(self.build_request("GET", "/apis"), APIGroupList)

    async def list_api_group_resources(self, group_version: str) -> APIResourceList:
        """List the resources served in a group version, e.g. ``apps/v1``."""
        return await self.request(
            self.build_request("GET", f"/apis/{group_version}"), APIResourceList
        )

    async def list_core_api_versions(self) -> APIVersions:
        """List the versions of the core (legacy) API group."""
        return await self.request(self.build_request("GET", "/api"), APIVersions)

    async def list_core_api_resources(self, version: str) -> APIResourceList:
        """List the resources served in a core group version, e.g. ``v1``."""
        return await self.request(self.build_request("GET", f"/api/{version}"), APIResourceList)
