"""Deterministic outcome classification for the retry controller."""

from __future__ import annotations

from dataclasses import dataclass
from enum import Enum

from delegate_client.http.errors import (
    MAX_TERMINAL_STATUS,
    CancellationError,
    StatusError,
    TransportError,
)


class OutcomeClass(str, Enum):
    """Normalized outcome of one request attempt."""

    SUCCESS = "success"
    CLIENT_ERROR = "client_error"
    SERVER_ERROR = "server_error"
    TRANSPORT_ERROR = "transport_error"
    CANCELED = "canceled"
    LOCAL_ERROR = "local_error"


@dataclass(slots=True, frozen=True)
class RetryDecision:
    """Classification result consumed by the retry controller."""

    outcome: OutcomeClass
    retryable: bool
    matched_rule: str


def classify_outcome(
    *,
    status_code: int | None,
    transport_failed: bool = False,
    canceled: bool = False,
) -> RetryDecision:
    """Map a transport outcome to a retry decision.

    Cancellation wins over everything, then transport failures, then status.
    """

    if canceled:
        return RetryDecision(OutcomeClass.CANCELED, retryable=False, matched_rule="canceled")
    if transport_failed or status_code is None:
        return RetryDecision(
            OutcomeClass.TRANSPORT_ERROR,
            retryable=True,
            matched_rule="no_response",
        )
    if 200 <= status_code <= 299:
        return RetryDecision(OutcomeClass.SUCCESS, retryable=False, matched_rule="success")
    if status_code > MAX_TERMINAL_STATUS:
        return RetryDecision(
            OutcomeClass.SERVER_ERROR,
            retryable=True,
            matched_rule="server_error_retryable",
        )
    if status_code >= 500:
        return RetryDecision(
            OutcomeClass.SERVER_ERROR,
            retryable=False,
            matched_rule="server_error_terminal",
        )
    return RetryDecision(OutcomeClass.CLIENT_ERROR, retryable=False, matched_rule="client_error")


def classify_error(error: BaseException | None) -> RetryDecision:
    """Classify the result of an executor call (``None`` means it succeeded)."""

    if error is None:
        return classify_outcome(status_code=200)
    if isinstance(error, CancellationError):
        return classify_outcome(status_code=None, canceled=True)
    if isinstance(error, TransportError):
        return classify_outcome(status_code=None, transport_failed=True)
    if isinstance(error, StatusError):
        return classify_outcome(status_code=error.status_code)
    # Credential, encode and decode failures repeat identically on retry.
    return RetryDecision(OutcomeClass.LOCAL_ERROR, retryable=False, matched_rule="local_error")
