"""Watch stream decoding.

Turns a streamed response body into ``WatchEvent`` objects, one per line.
Chunk boundaries from the transfer encoding have nothing to do with line
boundaries, so bytes are buffered until a newline shows up.

Two conditions end the stream quietly instead of raising:

* a line that fails to parse because the JSON ends early (a partial line
  left behind when the connection is cut), and
* a read timeout or a connection closed in the middle of the body, which
  the server does routinely to long-running watches (300s+).
"""

import logging
from collections.abc import AsyncIterator
from typing import Any, TypeVar

import httpx
from pydantic import TypeAdapter, ValidationError

from kube_sdk.exceptions import ApiError, DecodeError, FrameTooLongError, StreamReadError
from kube_sdk.models.status import ErrorResponse
from kube_sdk.models.watch import Bookmark, WatchEvent, WatchEventType, WireWatchEvent

logger = logging.getLogger(__name__)

T = TypeVar("T")

# Messages httpcore uses when the peer hangs up before the body is complete
_UNEXPECTED_EOF_MARKERS = (
    "incomplete chunked read",
    "without sending complete message body",
)


class LineFramer:
    """Splits a byte stream on ``\\n``.

    A trailing ``\\r`` is stripped from each line. ``max_line_length`` of
    ``None`` means lines may grow without limit.
    """

    def __init__(self, max_line_length: int | None = None) -> None:
        if max_line_length is not None and max_line_length < 1:
            raise ValueError("max_line_length must be positive")
        self._max_line_length = max_line_length
        self._buffer = bytearray()
        self._scanned = 0

    def feed(self, chunk: bytes) -> list[str]:
        """Add a chunk and return every line it completed."""
        self._buffer.extend(chunk)
        lines: list[str] = []
        while True:
            index = self._buffer.find(b"\n", self._scanned)
            if index == -1:
                self._scanned = len(self._buffer)
                self._check_length(len(self._buffer))
                return lines
            self._check_length(index)
            raw = bytes(self._buffer[:index])
            del self._buffer[: index + 1]
            self._scanned = 0
            lines.append(self._decode(raw))

    def flush(self) -> list[str]:
        """Return the unterminated remainder at end of stream, if any."""
        if not self._buffer:
            return []
        raw = bytes(self._buffer)
        self._buffer.clear()
        self._scanned = 0
        return [self._decode(raw)]

    def _check_length(self, length: int) -> None:
        if self._max_line_length is not None and length > self._max_line_length:
            raise FrameTooLongError(self._max_line_length)

    @staticmethod
    def _decode(raw: bytes) -> str:
        if raw.endswith(b"\r"):
            raw = raw[:-1]
        try:
            return raw.decode("utf-8")
        except UnicodeDecodeError as exc:
            raise StreamReadError(f"watch line is not valid UTF-8: {exc}") from exc


def is_eof_error(exc: ValidationError) -> bool:
    """Check if a JSON validation error means the input ended too early."""
    return any(
        error["type"] == "json_invalid" and "EOF while parsing" in error["msg"]
        for error in exc.errors()
    )


def is_benign_stream_end(exc: BaseException) -> bool:
    """Check if a read failure is a timeout or an unexpected end of stream."""
    if isinstance(exc, (httpx.TimeoutException, TimeoutError, EOFError)):
        return True
    if isinstance(exc, httpx.RemoteProtocolError):
        message = str(exc)
        return any(marker in message for marker in _UNEXPECTED_EOF_MARKERS)
    return False


def _typed_object(event: WireWatchEvent, adapter: TypeAdapter[T]) -> Any:
    if event.type is WatchEventType.ERROR:
        return ErrorResponse.model_validate(event.object)
    if event.type is WatchEventType.BOOKMARK:
        return Bookmark.model_validate(event.object)
    return adapter.validate_python(event.object)


def decode_line(line: str, adapter: TypeAdapter[T]) -> WatchEvent[T] | None:
    """Decode one watch line.

    Returns:
        The event, or None for a truncated line that should be skipped.

    Raises:
        ApiError: The line is an error response rather than an event.
        DecodeError: The line is neither an event nor an error response.
    """
    try:
        wire = WireWatchEvent.model_validate_json(line)
        return WatchEvent(type=wire.type, object=_typed_object(wire, adapter))
    except ValidationError as exc:
        if is_eof_error(exc):
            return None
        try:
            error = ErrorResponse.model_validate_json(line)
        except ValidationError:
            logger.warning("Failed to decode watch event: %s", line)
            raise DecodeError(f"failed to decode watch event: {exc}", text=line) from exc
        raise ApiError(error) from exc


async def iter_watch_events(
    response: httpx.Response,
    adapter: TypeAdapter[T],
    *,
    max_line_length: int | None = None,
) -> AsyncIterator[WatchEvent[T]]:
    """Yield watch events from a streamed response, in order.

    The response is closed when the iterator finishes, raises or is closed
    by the consumer.

    Raises:
        ApiError: The server sent an error response line.
        DecodeError: A line could not be decoded.
        StreamReadError: Reading the body failed.
        FrameTooLongError: A line exceeded ``max_line_length``.
    """
    framer = LineFramer(max_line_length)
    chunks = response.aiter_bytes()
    try:
        while True:
            try:
                chunk = await anext(chunks)
            except StopAsyncIteration:
                break
            except Exception as exc:
                if is_benign_stream_end(exc):
                    logger.warning("Watch stream ended: %s", exc)
                    return
                raise StreamReadError(f"error reading watch events: {exc}") from exc

            for line in framer.feed(chunk):
                event = decode_line(line, adapter)
                if event is not None:
                    yield event

        for line in framer.flush():
            event = decode_line(line, adapter)
            if event is not None:
                yield event
    finally:
        await response.aclose()
