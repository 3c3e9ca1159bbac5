"""
Submission API: validate, build, send, normalize, deliver.

Every submission returns immediately and ends in exactly one callback on the
engine's delivery context, whatever went wrong along the way.
"""

from typing import Mapping, Optional

import httpx
import structlog

from .builder import DEFAULT_TIMEOUT, DEFAULT_USER_AGENT, build_request
from .config import Config
from .contexts import ExecutionContext
from .dispatcher import Callback, CallbackDispatcher, PendingCallback
from .models import ErrorKind, RawExchange, RequestSpec, ResponseOutcome
from .normalizer import normalize, rejected
from .transport import HttpTransport, TransportCall, TransportUnavailableError
from .validator import validate_request

logger = structlog.get_logger(__name__)

DEFAULT_CONTENT_TYPE = "application/json"
TRANSPORT_UNAVAILABLE_MESSAGE = "HTTP transport not available"


class RequestHandle:
    """Returned by every submission. Allows cooperative cancellation."""

    def __init__(self, url: str, method: str, call: Optional[TransportCall] = None):
        self.url = url
        self.method = method
        self._call = call

    @property
    def done(self) -> bool:
        """True once the outcome has been handed to the dispatcher."""
        return self._call is None or self._call.done

    def cancel(self) -> bool:
        if self._call is None:
            return False
        cancelled = self._call.cancel()
        if cancelled:
            logger.info("request_cancelled", url=self.url, method=self.method)
        return cancelled


class HttpEngine:
    def __init__(self, context: ExecutionContext, transport: HttpTransport = None,
                 config: Config = None, dispatcher: CallbackDispatcher = None):
        """
        Args:
            context: Where callbacks run, usually the caller's main thread
            transport: Started or unstarted transport. When omitted the engine
                      creates one from config and owns its lifecycle.
            config: Loaded Config; defaults to the packaged config.yaml
        """
        self.context = context
        self.config = config or Config()
        self.dispatcher = dispatcher or CallbackDispatcher()

        request_config = self.config.request
        self.timeout = float(request_config.get('timeout', DEFAULT_TIMEOUT))
        self.user_agent = request_config.get('user_agent', DEFAULT_USER_AGENT)
        self.default_content_type = request_config.get('default_content_type', DEFAULT_CONTENT_TYPE)
        self.default_headers = dict(request_config.get('default_headers') or {})

        self._owns_transport = transport is None
        self.transport = transport or HttpTransport.from_config(self.config)

    def start(self) -> "HttpEngine":
        self.transport.start()
        return self

    def close(self) -> None:
        if self._owns_transport:
            self.transport.close()

    def __enter__(self):
        return self.start()

    def __exit__(self, exc_type, exc_val, exc_tb):
        self.close()

    def get(self, url: str, callback: Optional[Callback]) -> RequestHandle:
        return self.request(url, "GET", "", self.default_headers, callback)

    def post(self, url: str, body: str, content_type: str, callback: Optional[Callback],
             headers: Optional[Mapping[str, str]] = None) -> RequestHandle:
        post_headers = {"Content-Type": content_type or self.default_content_type}
        # Explicit headers override the content-type derived default
        if headers:
            post_headers.update(headers)
        return self.request(url, "POST", body, post_headers, callback)

    def request(self, url: str, method: str, body: str, headers: Optional[Mapping[str, str]],
                callback: Optional[Callback]) -> RequestHandle:
        label = f"{(method or '').upper()} {url}"
        pending = PendingCallback(callback, label=label)
        handle = RequestHandle(url, method)

        if not pending.bound:
            logger.warning("request_without_callback", url=url, method=method)

        validation = validate_request(url, method)
        if not validation['valid']:
            return self._reject(validation['reason'], url, method, pending, handle)

        # httpx parses more strictly than the validator (ports, brackets, header bytes)
        try:
            spec = RequestSpec.create(url, validation['method'], body, headers)
            http_request = build_request(spec, timeout=self.timeout, user_agent=self.user_agent)
        except httpx.InvalidURL as e:
            return self._reject(f"Invalid URL format: {e}", url, method, pending, handle)
        except ValueError as e:
            return self._reject(f"Invalid request: {e}", url, method, pending, handle)

        logger.info("request_started", url=url, method=spec.method.value)
        if spec.body:
            logger.debug("request_body", url=url, body=spec.body)

        def on_complete(raw: RawExchange) -> None:
            self._complete(raw, spec, pending)

        try:
            call = self.transport.send(http_request, on_complete)
        except TransportUnavailableError as e:
            logger.error("transport_unavailable", url=url, method=spec.method.value, error=str(e))
            outcome = rejected(TRANSPORT_UNAVAILABLE_MESSAGE, url, kind=ErrorKind.CONFIGURATION)
            self.dispatcher.deliver(outcome, pending, self.context)
            return handle

        return RequestHandle(url, spec.method.value, call)

    def _reject(self, reason: str, url: str, method: str, pending: PendingCallback,
                handle: RequestHandle) -> RequestHandle:
        logger.error("request_validation_failed",
                     url=url,
                     method=method,
                     reason=reason)
        self.dispatcher.deliver(rejected(reason, url), pending, self.context)
        return handle

    def _complete(self, raw: RawExchange, spec: RequestSpec, pending: PendingCallback) -> None:
        outcome = normalize(raw)
        self._log_outcome(outcome, spec, raw)
        self.dispatcher.deliver(outcome, pending, self.context)

    @staticmethod
    def _log_outcome(outcome: ResponseOutcome, spec: RequestSpec, raw: RawExchange) -> None:
        logger.info("request_completed",
                    url=spec.url,
                    method=spec.method.value,
                    succeeded=outcome.succeeded,
                    status_code=outcome.status_code,
                    elapsed_seconds=round(outcome.elapsed_seconds, 3))

        if not outcome.succeeded:
            logger.warning("request_failed",
                           url=spec.url,
                           method=spec.method.value,
                           status_code=outcome.status_code,
                           error_kind=outcome.error_kind.value if outcome.error_kind else None,
                           error=outcome.error_message,
                           reason=raw.reason or None)
