"""Websocket upgrade negotiation.

The handshake rides on the normal request path: the request is decorated
with the upgrade headers, sent through the dispatcher, and the response is
validated against the generated key. The upgraded byte stream is then
driven with the sans-I/O websocket protocol from ``websockets``.
"""

import logging
from collections import deque
from enum import Enum
from types import TracebackType
from typing import Any

import httpx
from websockets.exceptions import InvalidState
from websockets.frames import Frame, Opcode
from websockets.protocol import Protocol, Side, State
from websockets.utils import accept_key, generate_key

from kube_sdk.exceptions import (
    PendingUpgradeError,
    StreamReadError,
    TransportError,
    UpgradeError,
)

logger = logging.getLogger(__name__)

READ_SIZE = 64 * 1024


class StreamProtocol(str, Enum):
    """Sub-protocols for the channel stream, in preference order."""

    V5 = "v5.channel.k8s.io"
    V4 = "v4.channel.k8s.io"


# Selected when the server does not echo a sub-protocol
DEFAULT_PROTOCOL = StreamProtocol.V4

PROTOCOL_HEADER_VALUE = ", ".join(protocol.value for protocol in StreamProtocol)


def supports_stream_close(protocol: str) -> bool:
    """Check if a sub-protocol supports the graceful stream close signal.

    Only v5 does; any other name, including unknown ones, does not.
    """
    return protocol == StreamProtocol.V5.value


def handshake_request(request: httpx.Request) -> tuple[httpx.Request, str]:
    """Copy a request and add the websocket handshake headers to the copy.

    Returns:
        The decorated request and the generated ``Sec-WebSocket-Key``,
        needed to validate the response.
    """
    key = generate_key()
    request = httpx.Request(
        request.method,
        request.url,
        headers=request.headers,
        content=request.content,
        extensions=request.extensions,
    )
    request.headers["Connection"] = "Upgrade"
    request.headers["Upgrade"] = "websocket"
    request.headers["Sec-WebSocket-Version"] = "13"
    request.headers["Sec-WebSocket-Key"] = key
    request.headers["Sec-WebSocket-Protocol"] = PROTOCOL_HEADER_VALUE
    return request, key


def verify_response(response: httpx.Response, key: str) -> str:
    """Validate the handshake response.

    Args:
        response: The handshake response.
        key: The ``Sec-WebSocket-Key`` that was sent.

    Returns:
        The negotiated sub-protocol name.

    Raises:
        UpgradeError: A handshake check failed; ``kind`` names which.
    """
    if response.status_code != 101:
        raise UpgradeError(
            f"failed to switch protocol: {response.status_code}", kind="protocol_switch"
        )

    upgrade = response.headers.get("Upgrade", "")
    if upgrade.lower() != "websocket":
        raise UpgradeError(
            "upgrade header was not set to websocket", kind="missing_upgrade_header"
        )

    connection = response.headers.get("Connection", "")
    if "upgrade" not in [token.strip().lower() for token in connection.split(",")]:
        raise UpgradeError(
            "connection header was not set to Upgrade", kind="missing_connection_header"
        )

    if response.headers.get("Sec-WebSocket-Accept") != accept_key(key):
        raise UpgradeError("Sec-WebSocket-Accept key mismatched", kind="accept_mismatch")

    protocol = response.headers.get("Sec-WebSocket-Protocol")
    if protocol is None:
        return DEFAULT_PROTOCOL.value
    if protocol not in {offered.value for offered in StreamProtocol}:
        logger.warning("Server selected unoffered sub-protocol %r", protocol)
    return protocol


class Connection:
    """Websocket connection over an upgraded HTTP stream.

    Messages are exchanged with ``send`` and ``receive``. Pings are
    answered automatically. ``into_stream`` gives up the framing layer and
    returns the raw upgraded stream.
    """

    def __init__(self, stream: Any, protocol: str, response: httpx.Response) -> None:
        """Initialize the connection.

        Args:
            stream: The upgraded network stream (``read``/``write``/``aclose``).
            protocol: The negotiated sub-protocol.
            response: The handshake response, closed along with the stream.
        """
        self._stream = stream
        self._protocol = protocol
        self._response = response
        self._ws = Protocol(Side.CLIENT, state=State.OPEN, max_size=None)
        self._pending: deque[Frame] = deque()

    @property
    def protocol(self) -> str:
        return self._protocol

    def supports_stream_close(self) -> bool:
        """Return True if the sub-protocol supports graceful close signaling."""
        return supports_stream_close(self._protocol)

    def into_stream(self) -> Any:
        """Return the raw upgraded stream; framing is left to the caller."""
        return self._stream

    async def _flush(self) -> None:
        for data in self._ws.data_to_send():
            # An empty chunk signals end of output; the stream is closed in aclose()
            if data:
                try:
                    await self._stream.write(data)
                except Exception as exc:
                    raise TransportError(f"error writing websocket stream: {exc}") from exc

    async def send(self, message: str | bytes) -> None:
        """Send a text (str) or binary (bytes) message."""
        try:
            if isinstance(message, str):
                self._ws.send_text(message.encode("utf-8"))
            else:
                self._ws.send_binary(message)
        except InvalidState as exc:
            raise TransportError(f"connection is not open: {exc}") from exc
        await self._flush()

    async def receive(self) -> str | bytes | None:
        """Receive the next message.

        Fragmented messages are reassembled. Control frames are handled
        internally.

        Returns:
            The message (str for text, bytes for binary), or None once the
            connection is closed.

        Raises:
            StreamReadError: Reading the stream or parsing frames failed.
        """
        fragments: list[Frame] = []
        while True:
            self._pending.extend(self._ws.events_received())
            await self._flush()
            while self._pending:
                frame = self._pending.popleft()
                if frame.opcode in (Opcode.TEXT, Opcode.BINARY, Opcode.CONT):
                    fragments.append(frame)
                    if frame.fin:
                        return _assemble(fragments)
            if self._ws.state is State.CLOSED or self._ws.close_expected():
                return None

            try:
                data = await self._stream.read(READ_SIZE)
            except Exception as exc:
                raise StreamReadError(f"error reading websocket stream: {exc}") from exc
            if data:
                self._ws.receive_data(data)
            else:
                self._ws.receive_eof()
            if isinstance(self._ws.parser_exc, EOFError):
                logger.debug("Websocket stream ended without a closing handshake")
                return None
            if self._ws.parser_exc is not None:
                raise StreamReadError(f"invalid websocket data: {self._ws.parser_exc}")

    async def close(self, code: int = 1000, reason: str = "") -> None:
        """Start the closing handshake and release the stream."""
        try:
            if self._ws.state is State.OPEN:
                self._ws.send_close(code, reason)
                await self._flush()
        finally:
            await self.aclose()

    async def aclose(self) -> None:
        await self._stream.aclose()
        await self._response.aclose()

    async def __aenter__(self) -> "Connection":
        return self

    async def __aexit__(
        self,
        exc_type: type[BaseException] | None,
        exc: BaseException | None,
        tb: TracebackType | None,
    ) -> None:
        await self.close()


def _assemble(fragments: list[Frame]) -> str | bytes:
    payload = b"".join(frame.data for frame in fragments)
    if fragments[0].opcode is Opcode.TEXT:
        return payload.decode("utf-8")
    return payload


def open_connection(response: httpx.Response, key: str) -> Connection:
    """Validate a handshake response and wrap the upgraded stream.

    Raises:
        UpgradeError: Handshake validation failed.
        PendingUpgradeError: The handshake succeeded but no upgraded stream
            is available.
    """
    protocol = verify_response(response, key)
    stream = response.extensions.get("network_stream")
    if stream is None:
        raise PendingUpgradeError("server accepted the upgrade but no upgraded stream is available")
    logger.debug("Upgraded connection using sub-protocol %s", protocol)
    return Connection(stream, protocol, response)
