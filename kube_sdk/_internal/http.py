"""Shared HTTP client configuration."""

import httpx

from kube_sdk._version import __version__

DEFAULT_TIMEOUT = 30.0


def create_http_client(
    *,
    base_url: str | None = None,
    timeout: float = DEFAULT_TIMEOUT,
    headers: dict[str, str] | None = None,
    transport: httpx.AsyncBaseTransport | None = None,
) -> httpx.AsyncClient:
    """Create configured async HTTP client.

    Reads have no timeout: watch and log bodies stay open for as long as
    the server keeps them open. Callers race their own timeout against a
    pull when they need one.

    Args:
        base_url: Optional base URL for all requests.
        timeout: Connect/write/pool timeout in seconds.
        headers: Extra default headers (e.g. Authorization).
        transport: Optional httpx transport override (mostly for tests).

    Returns:
        Configured httpx.AsyncClient instance.
    """
    default_headers = {"User-Agent": f"kube-sdk/{__version__}"}
    if headers:
        default_headers.update(headers)
    return httpx.AsyncClient(
        base_url=base_url or "",
        timeout=httpx.Timeout(timeout, read=None),
        headers=default_headers,
        transport=transport,
    )


class HttpxTransport:
    """Transport backed by ``httpx.AsyncClient``.

    Responses are returned in streaming mode so the body is only read by
    whichever decoder takes ownership of it.
    """

    def __init__(self, client: httpx.AsyncClient) -> None:
        self._client = client

    @classmethod
    def create(
        cls,
        *,
        base_url: str | None = None,
        timeout: float = DEFAULT_TIMEOUT,
        headers: dict[str, str] | None = None,
    ) -> "HttpxTransport":
        """Create a transport with a freshly configured HTTP client."""
        return cls(create_http_client(base_url=base_url, timeout=timeout, headers=headers))

    @property
    def http_client(self) -> httpx.AsyncClient:
        return self._client

    async def send(self, request: httpx.Request) -> httpx.Response:
        # Rebuild so relative URLs resolve against base_url and default headers apply
        request = self._client.build_request(
            request.method,
            request.url,
            headers=request.headers,
            content=request.content,
            extensions=request.extensions,
        )
        return await self._client.send(request, stream=True)

    async def aclose(self) -> None:
        await self._client.aclose()
