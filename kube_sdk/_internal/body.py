"""Lazily-read response body."""

from collections.abc import AsyncIterator
from types import TracebackType

import httpx

from kube_sdk.exceptions import StreamReadError


class BodyStream:
    """Byte stream over a response body that has not been buffered.

    Chunks are pulled from the network as the stream is iterated. The total
    length is not known up front. Read failures surface as
    ``StreamReadError``. The stream owns the response and closes it when
    exhausted or when ``aclose`` is called.
    """

    def __init__(self, response: httpx.Response) -> None:
        self._response = response

    @property
    def headers(self) -> httpx.Headers:
        return self._response.headers

    async def __aiter__(self) -> AsyncIterator[bytes]:
        try:
            async for chunk in self._response.aiter_bytes():
                yield chunk
        except httpx.HTTPError as exc:
            raise StreamReadError(f"error reading response body: {exc}") from exc
        finally:
            await self._response.aclose()

    async def aread(self) -> bytes:
        """Read the rest of the body into memory."""
        return b"".join([chunk async for chunk in self])

    async def aclose(self) -> None:
        await self._response.aclose()

    async def __aenter__(self) -> "BodyStream":
        return self

    async def __aexit__(
        self,
        exc_type: type[BaseException] | None,
        exc: BaseException | None,
        tb: TracebackType | None,
    ) -> None:
        await self.aclose()
