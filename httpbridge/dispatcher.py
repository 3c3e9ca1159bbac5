"""
Delivers a ResponseOutcome to the caller's callback on the caller's context.
"""

from typing import Callable, Optional

import structlog

from .contexts import ExecutionContext
from .models import ResponseOutcome

logger = structlog.get_logger(__name__)

Callback = Callable[[ResponseOutcome], None]


class PendingCallback:
    """Single-use handle to a caller's callback.

    Firing takes the callback out of the handle, so it can run at most once
    no matter how many times ``fire`` is reached.
    """

    def __init__(self, callback: Optional[Callback], label: str = ""):
        self._callback = callback
        self.label = label

    @property
    def bound(self) -> bool:
        return self._callback is not None

    def fire(self, outcome: ResponseOutcome) -> bool:
        callback, self._callback = self._callback, None
        if callback is None:
            logger.warning("callback_already_consumed", request=self.label)
            return False

        try:
            callback(outcome)
        except Exception as e:
            logger.error("callback_raised",
                         request=self.label,
                         error=str(e),
                         exc_info=True)
        return True


def unpacked(fn: Callable[[bool, int, str, str], None]) -> Callback:
    """Adapt ``fn(succeeded, status_code, body, error_message)`` to an outcome callback."""
    def callback(outcome: ResponseOutcome) -> None:
        fn(outcome.succeeded, outcome.status_code, outcome.body, outcome.error_message)
    return callback


class CallbackDispatcher:
    def deliver(self, outcome: ResponseOutcome, pending: PendingCallback,
                context: ExecutionContext) -> bool:
        """Schedule ``pending`` with ``outcome`` on ``context``.

        Returns False when there is nothing to call; that is a caller
        configuration issue and is only logged.
        """
        if not pending.bound:
            logger.warning("callback_not_bound",
                           request=pending.label,
                           status_code=outcome.status_code,
                           succeeded=outcome.succeeded)
            return False

        context.call_soon(lambda: pending.fire(outcome))
        return True
