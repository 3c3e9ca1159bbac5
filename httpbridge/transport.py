"""
Transport adapter: runs httpx on a dedicated worker event loop so callers
never block, and reports exactly one RawExchange per request.
"""

import asyncio
import concurrent.futures
import threading
import time
from typing import Callable, Optional

import httpx
import structlog

from .builder import request_timeout
from .models import RawExchange

logger = structlog.get_logger(__name__)

Notify = Callable[[RawExchange], None]


class TransportUnavailableError(RuntimeError):
    """Raised by send() when the worker loop is not running."""


class CompletionLatch:
    """Forwards the first completion notification and drops any later ones."""

    def __init__(self, on_complete: Notify, label: str = ""):
        self._on_complete = on_complete
        self._lock = threading.Lock()
        self._fired = False
        self.label = label
        self.dropped = 0

    @property
    def fired(self) -> bool:
        return self._fired

    def __call__(self, raw: RawExchange) -> bool:
        with self._lock:
            if self._fired:
                self.dropped += 1
                logger.warning("duplicate_completion_dropped",
                               request=self.label,
                               dropped=self.dropped)
                return False
            self._fired = True

        self._on_complete(raw)
        return True


class TransportCall:
    """Handle for one in-flight send."""

    def __init__(self, url: str, latch: CompletionLatch):
        self.url = url
        self.started = time.monotonic()
        self.cancel_requested = threading.Event()
        self._latch = latch
        self._future: Optional[concurrent.futures.Future] = None

    @property
    def done(self) -> bool:
        return self._latch.fired

    def elapsed(self) -> float:
        return time.monotonic() - self.started

    def notify(self, raw: RawExchange) -> bool:
        return self._latch(raw)

    def failure(self, reason: str, cancelled: bool = False) -> RawExchange:
        return RawExchange(
            success=False,
            url=self.url,
            elapsed_seconds=self.elapsed(),
            reason=reason,
            cancelled=cancelled,
        )

    def attach(self, future: concurrent.futures.Future) -> None:
        self._future = future
        future.add_done_callback(self._on_future_done)

    def _on_future_done(self, future: concurrent.futures.Future) -> None:
        # Covers tasks cancelled before their first step, which never notify
        if not self.done:
            self.notify(self.failure("request aborted before completion",
                                     cancelled=self.cancel_requested.is_set()))

    def cancel(self) -> bool:
        """Cooperatively cancel; the early failure replaces the real notification."""
        if self.done:
            return False
        self.cancel_requested.set()
        delivered = self.notify(self.failure("cancelled by caller", cancelled=True))
        if self._future is not None:
            self._future.cancel()
        return delivered


class HttpTransport:
    def __init__(self, follow_redirects: bool = True, max_redirects: int = 5,
                 completion_grace: float = 5.0,
                 http_transport: Optional[httpx.AsyncBaseTransport] = None):
        """
        Args:
            follow_redirects: Whether httpx follows 3xx responses
            max_redirects: Redirect limit when following
            completion_grace: Seconds past the request timeout before the
                watchdog gives up on the client and reports a failure
            http_transport: Optional httpx transport, e.g. httpx.MockTransport
        """
        self.follow_redirects = follow_redirects
        self.max_redirects = max_redirects
        self.completion_grace = completion_grace
        self._http_transport = http_transport
        self._client: Optional[httpx.AsyncClient] = None
        self._loop: Optional[asyncio.AbstractEventLoop] = None
        self._thread: Optional[threading.Thread] = None
        self._state_lock = threading.Lock()
        self._in_flight: set = set()

    @classmethod
    def from_config(cls, config, http_transport=None) -> "HttpTransport":
        transport_config = config.transport
        return cls(
            follow_redirects=transport_config.get('follow_redirects', True),
            max_redirects=transport_config.get('max_redirects', 5),
            completion_grace=transport_config.get('completion_grace', 5.0),
            http_transport=http_transport,
        )

    @property
    def available(self) -> bool:
        return self._loop is not None and self._loop.is_running()

    def start(self) -> "HttpTransport":
        with self._state_lock:
            if self._loop is not None:
                return self

            loop = asyncio.new_event_loop()
            ready = threading.Event()
            thread = threading.Thread(
                target=self._run_loop,
                args=(loop, ready),
                name="httpbridge-transport",
                daemon=True,
            )
            thread.start()
            ready.wait()

            self._client = httpx.AsyncClient(
                follow_redirects=self.follow_redirects,
                max_redirects=self.max_redirects,
                transport=self._http_transport,
            )
            self._loop = loop
            self._thread = thread

        logger.info("transport_started", thread=thread.name)
        return self

    @staticmethod
    def _run_loop(loop: asyncio.AbstractEventLoop, ready: threading.Event) -> None:
        asyncio.set_event_loop(loop)
        loop.call_soon(ready.set)
        try:
            loop.run_forever()
        finally:
            loop.close()

    def send(self, request: httpx.Request, on_complete: Notify) -> TransportCall:
        """Issue ``request`` off the caller's thread.

        ``on_complete`` runs exactly once, on the worker thread (or on the
        cancelling thread when the call is cancelled).
        """
        url = str(request.url)
        call = TransportCall(url, CompletionLatch(on_complete, label=f"{request.method} {url}"))

        with self._state_lock:
            if self._loop is None:
                raise TransportUnavailableError("HTTP transport not available")
            future = asyncio.run_coroutine_threadsafe(self._exchange(request, call), self._loop)
            self._in_flight.add(call)

        call.attach(future)
        future.add_done_callback(lambda _: self._forget(call))
        return call

    async def _exchange(self, request: httpx.Request, call: TransportCall) -> None:
        if call.cancel_requested.is_set():
            return

        deadline = request_timeout(request) + self.completion_grace
        try:
            response = await asyncio.wait_for(self._client.send(request), timeout=deadline)
            body = response.text
        except asyncio.CancelledError:
            if not call.done:
                call.notify(call.failure("request aborted",
                                         cancelled=call.cancel_requested.is_set()))
            raise
        except asyncio.TimeoutError:
            reason = f"no completion within {deadline:.1f}s"
        except httpx.HTTPError as e:
            reason = f"{type(e).__name__}: {e}"
        except Exception as e:
            logger.error("transport_unexpected_error",
                         url=call.url,
                         method=request.method,
                         error=str(e),
                         exc_info=True)
            reason = f"unexpected error: {e}"
        else:
            call.notify(RawExchange(
                success=True,
                url=call.url,
                status_code=response.status_code,
                body=body,
                header_lines=self._header_lines(response.headers),
                elapsed_seconds=call.elapsed(),
            ))
            return

        logger.warning("transport_failed",
                       url=call.url,
                       method=request.method,
                       reason=reason)
        call.notify(call.failure(reason))

    @staticmethod
    def _header_lines(headers: httpx.Headers) -> list:
        return [
            f"{name.decode(headers.encoding)}: {value.decode(headers.encoding)}"
            for name, value in headers.raw
        ]

    async def _shutdown(self, stop_loop: bool = False) -> None:
        current = asyncio.current_task()
        tasks = [t for t in asyncio.all_tasks() if t is not current]
        for task in tasks:
            task.cancel()
        await asyncio.gather(*tasks, return_exceptions=True)
        if self._client is not None:
            await self._client.aclose()
        if stop_loop:
            asyncio.get_running_loop().stop()

    def _forget(self, call: TransportCall) -> None:
        with self._state_lock:
            self._in_flight.discard(call)

    def _abort_in_flight(self) -> None:
        """Notify every call that is still pending; no-op for finished ones."""
        with self._state_lock:
            calls, self._in_flight = list(self._in_flight), set()
        for call in calls:
            if not call.done:
                call.notify(call.failure("request aborted",
                                         cancelled=call.cancel_requested.is_set()))

    def close(self, timeout: float = 5.0) -> None:
        """Abort in-flight requests (each reports a failure) and stop the loop."""
        with self._state_lock:
            loop, self._loop = self._loop, None
            thread, self._thread = self._thread, None

        if loop is None:
            return

        if threading.current_thread() is thread:
            # Called from a callback running on the worker loop; it cannot block on itself
            loop.create_task(self._shutdown(stop_loop=True))
            logger.info("transport_closing", thread=thread.name)
            return

        try:
            asyncio.run_coroutine_threadsafe(self._shutdown(), loop).result(timeout)
        except concurrent.futures.TimeoutError:
            logger.warning("transport_shutdown_timeout", timeout=timeout)
        finally:
            self._abort_in_flight()
            loop.call_soon_threadsafe(loop.stop)
            if thread is not None:
                thread.join(timeout)
            self._client = None

        logger.info("transport_closed")

    def __enter__(self):
        return self.start()

    def __exit__(self, exc_type, exc_val, exc_tb):
        self.close()
