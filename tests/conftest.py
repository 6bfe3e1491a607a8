"""Shared test fixtures."""

from __future__ import annotations

import json
import socket
from collections.abc import Callable, Iterator
from typing import Any

import httpx
import pytest

from delegate_client.client import DelegateClient
from delegate_client.config import BackoffSettings
from delegate_client.http.cancel import CancelScope
from delegate_client.http.credentials import StaticTokenSource, TokenSource

MANAGER_URL = "https://manager.test"
ACCOUNT_ID = "acct-1"


class FakeClock:
    """Monotonic clock that only moves when the retry controller sleeps."""

    def __init__(self, start: float = 1_000.0) -> None:
        self.now = start
        self.sleeps: list[float] = []

    def __call__(self) -> float:
        return self.now

    def advance(self, seconds: float) -> None:
        self.now += seconds

    def sleep(self, seconds: float, scope: CancelScope) -> bool:
        self.sleeps.append(seconds)
        self.now += seconds
        return scope.canceled


class ScriptedManager:
    """MockTransport handler replaying scripted answers and recording requests.

    Each answer is an ``httpx.Response`` factory, an ``(status, body)`` pair,
    or an exception to raise. The last answer repeats once the script runs out.
    """

    def __init__(self, *answers: Any) -> None:
        self.answers = list(answers)
        self.requests: list[httpx.Request] = []

    def __call__(self, request: httpx.Request) -> httpx.Response:
        self.requests.append(request)
        answer = self.answers.pop(0) if len(self.answers) > 1 else self.answers[0]
        if isinstance(answer, Exception):
            raise answer
        if callable(answer):
            return answer(request)
        status, body = answer
        if body is None:
            return httpx.Response(status)
        if isinstance(body, bytes | str):
            return httpx.Response(status, content=body)
        return httpx.Response(status, content=json.dumps(body).encode("utf-8"))

    @property
    def attempts(self) -> int:
        return len(self.requests)


@pytest.fixture()
def fake_clock() -> FakeClock:
    return FakeClock()


@pytest.fixture()
def make_client(
    fake_clock: FakeClock,
) -> Iterator[Callable[..., tuple[DelegateClient, ScriptedManager]]]:
    """Build a DelegateClient wired to a scripted manager and the fake clock."""

    transports: list[httpx.Client] = []

    def _make(
        *answers: Any,
        token_source: TokenSource | None = None,
        backoff: BackoffSettings | None = None,
        **kwargs: Any,
    ) -> tuple[DelegateClient, ScriptedManager]:
        manager = ScriptedManager(*answers)
        http_client = httpx.Client(transport=httpx.MockTransport(manager))
        transports.append(http_client)
        client = DelegateClient(
            MANAGER_URL,
            ACCOUNT_ID,
            token_source or StaticTokenSource("secret"),
            http_client=http_client,
            backoff=backoff,
            sleep=kwargs.pop("sleep", fake_clock.sleep),
            clock=kwargs.pop("clock", fake_clock),
            **kwargs,
        )
        return client, manager

    yield _make

    for http_client in transports:
        http_client.close()


@pytest.fixture()
def silent_manager_url() -> Iterator[str]:
    """URL of a listener that completes TCP handshakes but never answers."""

    server = socket.socket(socket.AF_INET, socket.SOCK_STREAM)
    server.bind(("127.0.0.1", 0))
    server.listen(8)
    host, port = server.getsockname()
    try:
        yield f"http://{host}:{port}"
    finally:
        server.close()
