"""Bounded-mailbox dispatch client.

All requests go through a single ``asyncio.Queue``. One worker task pulls
submissions in FIFO order and invokes the transport for each, one call at a
time, so the transport is never invoked concurrently. Transports return as
soon as response headers arrive; response bodies are read by the callers
and may be consumed concurrently.
"""

import asyncio
import contextlib
import logging
from typing import NamedTuple

import httpx

from kube_sdk._internal.dispatch.errors import classify_transport_error
from kube_sdk._internal.transport import Transport
from kube_sdk.exceptions import TransportError

logger = logging.getLogger(__name__)

DEFAULT_CAPACITY = 1024

_CLOSED_MESSAGE = "dispatch client is closed"


class _Submission(NamedTuple):
    request: httpx.Request
    reply: "asyncio.Future[httpx.Response]"


class DispatchClient:
    """Serializes access to a transport behind a bounded queue.

    Submissions suspend while the queue is full; nothing is dropped. The
    worker is started lazily on the first submission, inside the running
    event loop.
    """

    def __init__(self, transport: Transport, *, capacity: int = DEFAULT_CAPACITY) -> None:
        """Initialize the dispatch client.

        Args:
            transport: The transport to send requests through.
            capacity: Maximum number of queued submissions.
        """
        if capacity < 1:
            raise ValueError("capacity must be at least 1")
        self._transport = transport
        self._capacity = capacity
        self._queue: asyncio.Queue[_Submission] | None = None
        self._worker: asyncio.Task[None] | None = None
        self._closed = False

    @property
    def capacity(self) -> int:
        return self._capacity

    @property
    def closed(self) -> bool:
        return self._closed

    @property
    def transport(self) -> Transport:
        return self._transport

    def _ensure_worker(self) -> "asyncio.Queue[_Submission]":
        if self._queue is None or self._worker is None:
            self._queue = asyncio.Queue(maxsize=self._capacity)
            self._worker = asyncio.create_task(self._run(), name="kube-sdk-dispatch")
            logger.debug("Dispatch worker started (capacity=%d)", self._capacity)
        return self._queue

    async def _run(self) -> None:
        queue = self._queue
        assert queue is not None
        while True:
            submission = await queue.get()
            try:
                # Caller gave up while queued
                if not submission.reply.done():
                    await self._invoke(submission)
            finally:
                queue.task_done()

    async def _invoke(self, submission: _Submission) -> None:
        request, reply = submission
        call = asyncio.create_task(self._transport.send(request))

        def cancel_call(future: "asyncio.Future[httpx.Response]") -> None:
            if future.cancelled():
                call.cancel()

        reply.add_done_callback(cancel_call)
        try:
            await asyncio.wait({call})
        except asyncio.CancelledError:
            call.cancel()
            if not reply.done():
                reply.set_exception(TransportError(_CLOSED_MESSAGE))
            raise
        finally:
            reply.remove_done_callback(cancel_call)

        if call.cancelled():
            return
        exc = call.exception()
        if exc is not None:
            if not reply.done():
                reply.set_exception(exc)
            return
        response = call.result()
        if reply.done():
            # Caller cancelled after the transport produced a response
            try:
                await response.aclose()
            except Exception as exc:
                logger.warning("Failed to close abandoned response: %s", exc)
            return
        reply.set_result(response)

    async def submit(self, request: httpx.Request) -> httpx.Response:
        """Send a request through the transport.

        Args:
            request: A fully-formed request.

        Returns:
            The response, with its body not yet read.

        Raises:
            KubeError: A structured error raised by a decorating layer.
            TransportError: Any other failure to obtain a response.
        """
        if self._closed:
            raise TransportError(_CLOSED_MESSAGE)

        queue = self._ensure_worker()
        reply: asyncio.Future[httpx.Response] = asyncio.get_running_loop().create_future()
        await queue.put(_Submission(request, reply))
        if self._closed:
            # Closed while this caller waited for room; draining wakes the next waiter
            _fail_queued(queue)

        try:
            return await reply
        except asyncio.CancelledError:
            if reply.done() and not reply.cancelled() and reply.exception() is None:
                await reply.result().aclose()
            raise
        except Exception as exc:
            error = classify_transport_error(exc)
            if error is exc:
                raise
            raise error from exc

    async def aclose(self) -> None:
        """Stop the worker, fail queued submissions and close the transport."""
        if self._closed:
            return
        self._closed = True

        if self._worker is not None:
            self._worker.cancel()
            with contextlib.suppress(asyncio.CancelledError):
                await self._worker
            self._worker = None

        if self._queue is not None:
            _fail_queued(self._queue)
            self._queue = None

        await self._transport.aclose()
        logger.debug("Dispatch client closed")


def _fail_queued(queue: "asyncio.Queue[_Submission]") -> None:
    while not queue.empty():
        submission = queue.get_nowait()
        if not submission.reply.done():
            submission.reply.set_exception(TransportError(_CLOSED_MESSAGE))
