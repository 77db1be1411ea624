"""Transport capability used by the dispatcher.

A transport takes a fully-formed ``httpx.Request`` and produces an
``httpx.Response`` whose body has not been read yet. Implementations are
swappable: the default one wraps ``httpx.AsyncClient``, tests plug in
fakes, and decorating layers can wrap another transport.

A transport does not need to be safe for concurrent invocation; the
dispatcher is the only caller of ``send`` and serializes it.
"""

from typing import Protocol, runtime_checkable

import httpx


@runtime_checkable
class Transport(Protocol):
    """Send-and-receive boundary to the network."""

    async def send(self, request: httpx.Request) -> httpx.Response:
        """Send a request and return the response with an unread body.

        Raises:
            Exception: Any failure; the dispatcher classifies it.
        """
        ...

    async def aclose(self) -> None:
        """Release network resources."""
        ...
