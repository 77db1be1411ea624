"""Tests for DispatchClient."""

import asyncio

import httpx
import pytest

from kube_sdk._internal.dispatch import DispatchClient, classify_transport_error
from kube_sdk.exceptions import ApiError, TransportError
from kube_sdk.models.status import ErrorResponse
from tests.fakes import ChunkStream, FakeTransport


class TestDispatchClientInit:
    """Tests for DispatchClient construction."""

    def test_default_capacity(self, ok_transport):
        """Should default to 1024 queued submissions."""
        assert DispatchClient(ok_transport).capacity == 1024

    def test_rejects_zero_capacity(self, ok_transport):
        """Should reject a capacity below one."""
        with pytest.raises(ValueError):
            DispatchClient(ok_transport, capacity=0)


class TestDispatchClientSubmit:
    """Tests for submitting requests."""

    @pytest.mark.asyncio
    async def test_submit_returns_response(self, ok_transport):
        """Should return the transport's response."""
        dispatcher = DispatchClient(ok_transport)
        try:
            response = await dispatcher.submit(httpx.Request("GET", "/version"))
            assert response.status_code == 200
            assert ok_transport.requests[0].url.path == "/version"
        finally:
            await dispatcher.aclose()

    @pytest.mark.asyncio
    async def test_concurrent_submissions_are_paired(self):
        """Each response should belong to its own request."""

        async def handler(request: httpx.Request) -> httpx.Response:
            index = int(request.url.path.rsplit("/", 1)[-1])
            await asyncio.sleep(0)
            return httpx.Response(200, json={"index": index})

        transport = FakeTransport(handler)
        dispatcher = DispatchClient(transport, capacity=64)
        try:
            responses = await asyncio.gather(
                *(dispatcher.submit(httpx.Request("GET", f"/items/{i}")) for i in range(50))
            )
            for i, response in enumerate(responses):
                await response.aread()
                assert response.json() == {"index": i}
            assert len(transport.requests) == 50
        finally:
            await dispatcher.aclose()

    @pytest.mark.asyncio
    async def test_transport_is_never_invoked_concurrently(self):
        """At most one transport call should be in progress at any time."""
        active = 0
        peak = 0

        async def handler(request: httpx.Request) -> httpx.Response:
            nonlocal active, peak
            active += 1
            peak = max(peak, active)
            await asyncio.sleep(0.001)
            active -= 1
            return httpx.Response(204)

        dispatcher = DispatchClient(FakeTransport(handler))
        try:
            responses = await asyncio.gather(
                *(dispatcher.submit(httpx.Request("GET", f"/items/{i}")) for i in range(5))
            )
            assert [r.status_code for r in responses] == [204] * 5
            assert peak == 1
        finally:
            await dispatcher.aclose()

    @pytest.mark.asyncio
    async def test_bodies_are_read_after_send_returns(self):
        """A caller still reading its body should not hold up the next send."""
        first_body = ChunkStream([b"first"])
        transport = FakeTransport(
            lambda request: httpx.Response(
                200, stream=first_body if request.url.path == "/first" else ChunkStream([b"next"])
            )
        )
        dispatcher = DispatchClient(transport)
        try:
            first = await dispatcher.submit(httpx.Request("GET", "/first"))
            second = await dispatcher.submit(httpx.Request("GET", "/second"))
            assert await second.aread() == b"next"
            assert await first.aread() == b"first"
        finally:
            await dispatcher.aclose()

    @pytest.mark.asyncio
    async def test_small_capacity_applies_backpressure_without_dropping(self):
        """With capacity 1, all submissions should still complete in FIFO invocation order."""
        transport = FakeTransport(lambda request: httpx.Response(204))
        dispatcher = DispatchClient(transport, capacity=1)
        try:
            responses = await asyncio.gather(
                *(dispatcher.submit(httpx.Request("GET", f"/items/{i}")) for i in range(20))
            )
            assert [r.status_code for r in responses] == [204] * 20
            assert [r.url.path for r in transport.requests] == [f"/items/{i}" for i in range(20)]
        finally:
            await dispatcher.aclose()


class TestDispatchClientErrors:
    """Tests for error normalization."""

    @pytest.mark.asyncio
    async def test_transport_error_is_wrapped(self):
        """Should raise TransportError chained to the original failure."""

        def handler(request: httpx.Request) -> httpx.Response:
            raise httpx.ConnectError("connection refused")

        dispatcher = DispatchClient(FakeTransport(handler))
        try:
            with pytest.raises(TransportError) as exc_info:
                await dispatcher.submit(httpx.Request("GET", "/version"))
            assert isinstance(exc_info.value.__cause__, httpx.ConnectError)
        finally:
            await dispatcher.aclose()

    @pytest.mark.asyncio
    async def test_structured_error_takes_precedence(self):
        """A KubeError raised by a decorating layer should pass through unchanged."""
        error = ApiError(ErrorResponse(status="Failure", code=401, reason="Unauthorized"))

        def handler(request: httpx.Request) -> httpx.Response:
            raise error

        dispatcher = DispatchClient(FakeTransport(handler))
        try:
            with pytest.raises(ApiError) as exc_info:
                await dispatcher.submit(httpx.Request("GET", "/version"))
            assert exc_info.value is error
        finally:
            await dispatcher.aclose()

    @pytest.mark.asyncio
    async def test_failure_does_not_affect_other_submissions(self):
        """One failing request should not fail the others."""

        def handler(request: httpx.Request) -> httpx.Response:
            if request.url.path == "/bad":
                raise httpx.ReadError("connection reset")
            return httpx.Response(200)

        dispatcher = DispatchClient(FakeTransport(handler))
        try:
            results = await asyncio.gather(
                dispatcher.submit(httpx.Request("GET", "/good")),
                dispatcher.submit(httpx.Request("GET", "/bad")),
                dispatcher.submit(httpx.Request("GET", "/good")),
                return_exceptions=True,
            )
            assert results[0].status_code == 200
            assert isinstance(results[1], TransportError)
            assert results[2].status_code == 200
        finally:
            await dispatcher.aclose()


class TestDispatchClientClose:
    """Tests for closing the dispatcher."""

    @pytest.mark.asyncio
    async def test_close_closes_transport(self, ok_transport):
        """Should close the transport once."""
        dispatcher = DispatchClient(ok_transport)
        await dispatcher.submit(httpx.Request("GET", "/"))
        await dispatcher.aclose()
        await dispatcher.aclose()
        assert dispatcher.closed is True
        assert ok_transport.closed is True

    @pytest.mark.asyncio
    async def test_submit_after_close_raises(self, ok_transport):
        """Should refuse new submissions once closed."""
        dispatcher = DispatchClient(ok_transport)
        await dispatcher.aclose()
        with pytest.raises(TransportError):
            await dispatcher.submit(httpx.Request("GET", "/"))

    @pytest.mark.asyncio
    async def test_close_releases_callers_waiting_for_room(self):
        """Callers blocked on a full queue should fail instead of hanging."""
        gate = asyncio.Event()

        async def handler(request: httpx.Request) -> httpx.Response:
            await gate.wait()
            return httpx.Response(200)

        dispatcher = DispatchClient(FakeTransport(handler), capacity=1)
        tasks = [
            asyncio.create_task(dispatcher.submit(httpx.Request("GET", f"/items/{i}")))
            for i in range(5)
        ]
        # Let the worker pick up the first request and the rest fill the queue
        for _ in range(5):
            await asyncio.sleep(0)
        await dispatcher.aclose()

        done, pending = await asyncio.wait(tasks, timeout=1)
        assert pending == set()
        for task in done:
            assert isinstance(task.exception(), TransportError)


class TestDispatchClientCancellation:
    """Tests for callers that give up on a submission."""

    @pytest.mark.asyncio
    async def test_cancel_while_queued(self):
        """A submission cancelled before it is sent should never reach the transport."""
        gate = asyncio.Event()

        async def handler(request: httpx.Request) -> httpx.Response:
            if request.url.path == "/first":
                await gate.wait()
            return httpx.Response(200)

        transport = FakeTransport(handler)
        dispatcher = DispatchClient(transport)
        try:
            first = asyncio.create_task(dispatcher.submit(httpx.Request("GET", "/first")))
            queued = asyncio.create_task(dispatcher.submit(httpx.Request("GET", "/queued")))
            last = asyncio.create_task(dispatcher.submit(httpx.Request("GET", "/last")))
            for _ in range(5):
                await asyncio.sleep(0)

            queued.cancel()
            gate.set()
            assert (await first).status_code == 200
            assert (await last).status_code == 200
            assert queued.cancelled()
            assert [r.url.path for r in transport.requests] == ["/first", "/last"]
        finally:
            await dispatcher.aclose()

    @pytest.mark.asyncio
    async def test_cancel_in_flight(self):
        """Cancelling a caller should cancel its transport call and nothing else."""
        started = asyncio.Event()
        call_cancelled = asyncio.Event()

        async def handler(request: httpx.Request) -> httpx.Response:
            if request.url.path == "/slow":
                started.set()
                try:
                    await asyncio.Event().wait()
                except asyncio.CancelledError:
                    call_cancelled.set()
                    raise
            return httpx.Response(200)

        dispatcher = DispatchClient(FakeTransport(handler))
        try:
            slow = asyncio.create_task(dispatcher.submit(httpx.Request("GET", "/slow")))
            fast = asyncio.create_task(dispatcher.submit(httpx.Request("GET", "/fast")))
            await started.wait()

            slow.cancel()
            assert (await fast).status_code == 200
            assert slow.cancelled()
            assert call_cancelled.is_set()
        finally:
            await dispatcher.aclose()

    @pytest.mark.asyncio
    async def test_response_of_cancelled_caller_is_closed(self):
        """A response produced after its caller gave up should be closed."""
        started = asyncio.Event()
        body = ChunkStream([b"unwanted"])

        async def handler(request: httpx.Request) -> httpx.Response:
            if request.url.path != "/watch":
                return httpx.Response(200)
            started.set()
            try:
                await asyncio.Event().wait()
            except asyncio.CancelledError:
                # Transport finishes anyway
                pass
            return httpx.Response(200, stream=body)

        dispatcher = DispatchClient(FakeTransport(handler))
        try:
            task = asyncio.create_task(dispatcher.submit(httpx.Request("GET", "/watch")))
            await started.wait()
            task.cancel()
            with pytest.raises(asyncio.CancelledError):
                await task
            # Next submission runs only after the abandoned one is handled
            next_response = await dispatcher.submit(httpx.Request("GET", "/next"))
            await next_response.aclose()
            assert body.closed is True
        finally:
            await dispatcher.aclose()


class TestClassifyTransportError:
    """Tests for classify_transport_error()."""

    def test_timeout(self):
        """Timeouts should become TransportError."""
        error = classify_transport_error(httpx.ReadTimeout("timed out"))
        assert isinstance(error, TransportError)
        assert "timed out" in str(error)

    def test_os_error(self):
        """Plain I/O errors should become TransportError."""
        assert isinstance(classify_transport_error(ConnectionResetError()), TransportError)

    def test_unknown_error(self):
        """Anything else from a middleware should become TransportError."""
        assert isinstance(classify_transport_error(RuntimeError("boom")), TransportError)

    def test_kube_error_passes_through(self):
        """Structured errors should be returned as-is."""
        error = ApiError(ErrorResponse(status="Failure", code=403))
        assert classify_transport_error(error) is error
