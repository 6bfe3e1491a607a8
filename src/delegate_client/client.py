"""Manager protocol endpoints used by a polling delegate."""

from __future__ import annotations

import logging
import time
from collections.abc import Callable
from urllib.parse import quote

import httpx

from delegate_client.config import BackoffSettings, Settings
from delegate_client.http.backoff import ExponentialBackoff
from delegate_client.http.cancel import CancelScope
from delegate_client.http.credentials import StaticTokenSource, TokenSource
from delegate_client.http.executor import (
    DEFAULT_CONNECT_TIMEOUT_SECONDS,
    DEFAULT_TIMEOUT_SECONDS,
    RequestExecutor,
    RequestSpec,
)
from delegate_client.http.retry import RetryController, Sleeper, scope_sleep
from delegate_client.models import (
    RegisterRequest,
    RegisterResponse,
    Task,
    TaskEventsResponse,
    TaskResponse,
)

logger = logging.getLogger(__name__)

REGISTER_ENDPOINT = "/api/agent/delegates/register?accountId=%s"
HEARTBEAT_ENDPOINT = "/api/agent/delegates/heartbeat-with-polling?accountId=%s"
TASK_POLL_ENDPOINT = "/api/agent/delegates/%s/task-events?accountId=%s"
TASK_ACQUIRE_ENDPOINT = (
    "/api/agent/v2/delegates/%s/tasks/%s/acquire?accountId=%s&delegateInstanceId=%s"
)
TASK_STATUS_ENDPOINT = "/api/agent/v2/tasks/%s/delegates/%s?accountId=%s"


class DelegateClient:
    """Talks to the dispatch manager on behalf of one delegate.

    Register and status reports go through the retry controller; heartbeat,
    task polling and acquire are single attempts because the polling loop
    calls them again on its next cycle anyway.
    """

    def __init__(  # noqa: PLR0913
        self,
        endpoint: str,
        account_id: str,
        token_source: TokenSource,
        *,
        skip_verify: bool = False,
        http_client: httpx.Client | None = None,
        backoff: BackoffSettings | None = None,
        timeout_seconds: float = DEFAULT_TIMEOUT_SECONDS,
        connect_timeout_seconds: float = DEFAULT_CONNECT_TIMEOUT_SECONDS,
        strict_encoding: bool = False,
        sleep: Sleeper = scope_sleep,
        clock: Callable[[], float] = time.monotonic,
        log: logging.Logger | None = None,
    ) -> None:
        self.endpoint = endpoint
        self.account_id = account_id
        self.skip_verify = skip_verify
        self.backoff_settings = backoff or BackoffSettings()
        self._clock = clock
        self._logger = log or logger
        self._owns_client = http_client is None
        if http_client is None:
            if skip_verify:
                self._logger.warning("TLS certificate verification is disabled for %s", endpoint)
            # Redirects are surfaced as errors rather than followed.
            http_client = httpx.Client(
                verify=not skip_verify,
                follow_redirects=False,
                trust_env=True,
            )
        self._http_client = http_client
        self.executor = RequestExecutor(
            endpoint=endpoint,
            token_source=token_source,
            http_client=http_client,
            timeout_seconds=timeout_seconds,
            connect_timeout_seconds=connect_timeout_seconds,
            strict_encoding=strict_encoding,
            log=self._logger,
        )
        self.retry = RetryController(self.executor, sleep=sleep, log=self._logger)

    @classmethod
    def from_settings(
        cls,
        settings: Settings,
        *,
        token_source: TokenSource | None = None,
        http_client: httpx.Client | None = None,
        log: logging.Logger | None = None,
    ) -> DelegateClient:
        return cls(
            settings.manager.endpoint,
            settings.manager.account_id,
            token_source or StaticTokenSource(settings.manager.token),
            skip_verify=settings.manager.skip_verify,
            http_client=http_client,
            backoff=settings.backoff,
            timeout_seconds=settings.manager.request_timeout_seconds,
            connect_timeout_seconds=settings.manager.connect_timeout_seconds,
            strict_encoding=settings.strict_encoding,
            log=log,
        )

    def register(
        self,
        request: RegisterRequest,
        *,
        scope: CancelScope | None = None,
    ) -> RegisterResponse:
        """Announce this delegate and return the identifier the manager assigned."""

        path = REGISTER_ENDPOINT % _quote(self.account_id)
        return self.retry.run(
            RequestSpec(path, "POST", payload=request, decoder=RegisterResponse.from_dict),
            self._backoff(self.backoff_settings.register_max_elapsed_seconds),
            scope,
        )

    def heartbeat(self, request: RegisterRequest, *, scope: CancelScope | None = None) -> None:
        """Best-effort liveness signal; never retried."""

        path = HEARTBEAT_ENDPOINT % _quote(self.account_id)
        self.executor.execute(RequestSpec(path, "POST", payload=request), scope)

    def get_task_events(
        self,
        delegate_id: str,
        *,
        scope: CancelScope | None = None,
    ) -> TaskEventsResponse:
        """List tasks waiting for this delegate."""

        path = TASK_POLL_ENDPOINT % (_quote(delegate_id), _quote(self.account_id))
        events = self.executor.execute(
            RequestSpec(path, "GET", decoder=TaskEventsResponse.from_dict),
            scope,
        )
        return events or TaskEventsResponse()

    def acquire(
        self,
        delegate_id: str,
        task_id: str,
        *,
        scope: CancelScope | None = None,
    ) -> Task | None:
        """Claim one task; ``None`` when the manager answers without content."""

        path = TASK_ACQUIRE_ENDPOINT % (
            _quote(delegate_id),
            _quote(task_id),
            _quote(self.account_id),
            _quote(delegate_id),
        )
        return self.executor.execute(RequestSpec(path, "PUT", decoder=Task.from_dict), scope)

    def send_status(
        self,
        delegate_id: str,
        task_id: str,
        response: TaskResponse,
        *,
        scope: CancelScope | None = None,
    ) -> None:
        """Report a terminal task outcome, retrying harder than register."""

        path = TASK_STATUS_ENDPOINT % (_quote(task_id), _quote(delegate_id), _quote(self.account_id))
        self._logger.debug("Sending status for task %s", task_id)
        self.retry.run(
            RequestSpec(path, "POST", payload=response),
            self._backoff(self.backoff_settings.status_max_elapsed_seconds),
            scope,
        )
        self._logger.debug("Sent status for task %s", task_id)

    def close(self) -> None:
        if self._owns_client:
            self._http_client.close()

    def __enter__(self) -> DelegateClient:
        return self

    def __exit__(self, *_: object) -> None:
        self.close()

    def _backoff(self, max_elapsed_seconds: float) -> ExponentialBackoff:
        settings = self.backoff_settings
        return ExponentialBackoff(
            max_elapsed_seconds=max_elapsed_seconds,
            initial_interval_seconds=settings.initial_interval_seconds,
            randomization_factor=settings.randomization_factor,
            multiplier=settings.multiplier,
            max_interval_seconds=settings.max_interval_seconds,
            clock=self._clock,
        )


def _quote(value: str) -> str:
    return quote(value, safe="")
