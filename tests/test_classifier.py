"""Tests for the retry-or-surface error classifier."""

from __future__ import annotations

import allure
import pytest

from delegate_client.http.classifier import OutcomeClass, classify_error, classify_outcome
from delegate_client.http.errors import (
    CancellationError,
    ClientError,
    CredentialError,
    DecodeError,
    EncodeError,
    ServerError,
    TransportError,
)

pytestmark = [
    allure.epic("Request Engine"),
    allure.feature("Error Classification"),
]


@pytest.mark.parametrize("status_code", [502, 503, 504, 520, 599, 600])
def test_statuses_above_501_are_retryable(status_code: int) -> None:
    decision = classify_outcome(status_code=status_code)
    assert decision.retryable
    assert decision.outcome == OutcomeClass.SERVER_ERROR
    assert decision.matched_rule == "server_error_retryable"


@pytest.mark.parametrize("status_code", [500, 501])
def test_500_and_501_are_terminal(status_code: int) -> None:
    decision = classify_outcome(status_code=status_code)
    assert not decision.retryable
    assert decision.outcome == OutcomeClass.SERVER_ERROR
    assert decision.matched_rule == "server_error_terminal"


@pytest.mark.parametrize("status_code", [300, 302, 400, 401, 404, 409, 429, 499])
def test_client_errors_are_terminal(status_code: int) -> None:
    decision = classify_outcome(status_code=status_code)
    assert not decision.retryable
    assert decision.outcome == OutcomeClass.CLIENT_ERROR


@pytest.mark.parametrize("status_code", [200, 201, 204, 299])
def test_success_is_terminal(status_code: int) -> None:
    decision = classify_outcome(status_code=status_code)
    assert decision.outcome == OutcomeClass.SUCCESS
    assert not decision.retryable


def test_transport_failure_is_retryable() -> None:
    decision = classify_outcome(status_code=None, transport_failed=True)
    assert decision.retryable
    assert decision.outcome == OutcomeClass.TRANSPORT_ERROR


def test_cancellation_beats_retryable_outcomes() -> None:
    assert not classify_outcome(status_code=503, canceled=True).retryable
    decision = classify_outcome(status_code=None, transport_failed=True, canceled=True)
    assert decision.outcome == OutcomeClass.CANCELED
    assert not decision.retryable


def test_classify_error_maps_taxonomy() -> None:
    assert classify_error(None).outcome == OutcomeClass.SUCCESS
    assert classify_error(TransportError("connection refused")).retryable
    assert classify_error(ServerError("bad gateway", status_code=502)).retryable
    assert not classify_error(ServerError("boom", status_code=500)).retryable
    assert not classify_error(ClientError("Not Found", status_code=404)).retryable
    assert classify_error(CancellationError("context canceled")).outcome == OutcomeClass.CANCELED


@pytest.mark.parametrize(
    "error",
    [
        CredentialError("mint failed"),
        EncodeError("bad payload"),
        DecodeError("bad body"),
    ],
)
def test_local_failures_are_never_retried(error: Exception) -> None:
    decision = classify_error(error)
    assert decision.outcome == OutcomeClass.LOCAL_ERROR
    assert not decision.retryable


def test_status_error_retryable_property_matches_classifier() -> None:
    assert ServerError("x", status_code=503).retryable
    assert not ServerError("x", status_code=501).retryable
    assert not ClientError("x", status_code=404).retryable
