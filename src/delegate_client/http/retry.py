"""Retry controller: a per-call state machine around the request executor."""

from __future__ import annotations

import logging
from collections.abc import Callable
from dataclasses import dataclass
from enum import Enum
from typing import Any

from delegate_client.http.backoff import STOP, ExponentialBackoff
from delegate_client.http.cancel import REASON_CANCELED, CancelScope
from delegate_client.http.classifier import classify_error
from delegate_client.http.errors import CancellationError, DelegateClientError
from delegate_client.http.executor import RequestExecutor, RequestSpec

logger = logging.getLogger(__name__)

# Sleeps for the given seconds unless the scope ends first; returns True when interrupted.
Sleeper = Callable[[float, CancelScope], bool]


class RetryState(str, Enum):
    """Lifecycle of one resilient call."""

    ATTEMPTING = "attempting"
    RETRYING = "retrying"
    SUCCESS = "success"
    FAILED = "failed"


@dataclass(slots=True)
class RetrySession:
    """State owned by exactly one in-flight resilient call."""

    backoff: ExponentialBackoff
    state: RetryState = RetryState.ATTEMPTING
    attempts: int = 0
    last_error: DelegateClientError | None = None


def scope_sleep(seconds: float, scope: CancelScope) -> bool:
    return scope.wait(seconds)


class RetryController:
    """Retries transient failures until success, a terminal error or backoff exhaustion."""

    def __init__(
        self,
        executor: RequestExecutor,
        *,
        sleep: Sleeper = scope_sleep,
        log: logging.Logger | None = None,
    ) -> None:
        self.executor = executor
        self._sleep = sleep
        self._logger = log or logger

    def run(
        self,
        request: RequestSpec,
        backoff: ExponentialBackoff,
        scope: CancelScope | None = None,
    ) -> Any:
        """Send ``request`` resiliently and return its decoded result.

        Raises the most recent ``DelegateClientError`` when the failure is
        terminal or the backoff ceiling is reached, and ``CancellationError``
        as soon as ``scope`` ends.
        """

        scope = scope or CancelScope()
        # The elapsed-time ceiling is counted from the start of this call only.
        backoff.reset()
        session = RetrySession(backoff=backoff)
        while True:
            session.state = RetryState.ATTEMPTING
            session.attempts += 1
            result = None
            try:
                result = self.executor.execute(request, scope)
                session.last_error = None
            except DelegateClientError as error:
                session.last_error = error

            # Cancellation wins over whatever the attempt produced.
            if scope.canceled:
                self._logger.error("http: %s %s: %s", request.method, request.path, scope.reason)
                self._finish(session, RetryState.FAILED)
                raise CancellationError(scope.reason or REASON_CANCELED) from session.last_error

            if session.last_error is None:
                self._finish(session, RetryState.SUCCESS)
                return result

            decision = classify_error(session.last_error)
            if not decision.retryable:
                self._finish(session, RetryState.FAILED)
                raise session.last_error

            interval = backoff.next_interval()
            self._logger.error(
                "http: %s %s attempt %d failed (%s), retrying: %s",
                request.method,
                request.path,
                session.attempts,
                decision.matched_rule,
                session.last_error,
            )
            if interval is STOP:
                self._logger.error(
                    "http: %s %s giving up after %d attempts in %.1fs",
                    request.method,
                    request.path,
                    session.attempts,
                    backoff.elapsed_seconds,
                )
                self._finish(session, RetryState.FAILED)
                raise session.last_error

            session.state = RetryState.RETRYING
            if self._sleep(interval, scope):
                self._logger.error("http: %s %s: %s", request.method, request.path, scope.reason)
                self._finish(session, RetryState.FAILED)
                raise CancellationError(scope.reason or REASON_CANCELED) from session.last_error

    def _finish(self, session: RetrySession, state: RetryState) -> None:
        session.state = state
        self._logger.debug(
            "Retry session finished: state=%s attempts=%d",
            state.value,
            session.attempts,
        )
