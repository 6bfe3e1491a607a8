"""Single request/response cycle against the dispatch manager."""

from __future__ import annotations

import json
import logging
import threading
from collections.abc import Callable
from dataclasses import dataclass
from typing import Any

import httpx

from delegate_client.http.cancel import CancelScope
from delegate_client.http.credentials import TokenSource
from delegate_client.http.errors import (
    CancellationError,
    ClientError,
    CredentialError,
    DecodeError,
    EncodeError,
    ServerError,
    TransportError,
)

logger = logging.getLogger(__name__)

DEFAULT_TIMEOUT_SECONDS = 30.0
DEFAULT_CONNECT_TIMEOUT_SECONDS = 10.0
DRAIN_LIMIT_BYTES = 4096
JSON_CONTENT_TYPE = "application/json"
AUTH_SCHEME = "Delegate"


@dataclass(slots=True, frozen=True)
class RequestSpec:
    """What to send and how to read the answer; built fresh for every call."""

    path: str
    method: str
    payload: Any = None
    decoder: Callable[[Any], Any] | None = None


class RequestExecutor:
    """Serializes, authenticates, sends and decodes one request.

    Failures are raised as ``DelegateClientError`` subclasses so the retry
    controller can classify them; the executor itself never retries.
    """

    def __init__(  # noqa: PLR0913
        self,
        *,
        endpoint: str,
        token_source: TokenSource,
        http_client: httpx.Client,
        timeout_seconds: float = DEFAULT_TIMEOUT_SECONDS,
        connect_timeout_seconds: float = DEFAULT_CONNECT_TIMEOUT_SECONDS,
        strict_encoding: bool = False,
        log: logging.Logger | None = None,
    ) -> None:
        self.endpoint = endpoint.rstrip("/")
        self.token_source = token_source
        self.strict_encoding = strict_encoding
        self._client = http_client
        self._timeout_seconds = timeout_seconds
        self._connect_timeout_seconds = connect_timeout_seconds
        self._timeout = httpx.Timeout(timeout_seconds, connect=connect_timeout_seconds)
        self._logger = log or logger

    def execute(self, request: RequestSpec, scope: CancelScope | None = None) -> Any:
        """Run one attempt and return the decoded body (``None`` when there is none).

        With a ``scope`` the network round trip runs on a worker thread, so an
        explicit cancel raises ``CancellationError`` straight away instead of
        after the read timeout. The abandoned worker closes its own response.
        """

        if scope is not None and scope.canceled:
            raise CancellationError(scope.reason or "canceled")

        body = self._encode(request)
        token = self._fetch_token()
        http_request = self._client.build_request(
            request.method,
            self.endpoint + request.path,
            content=body,
            headers={
                "Authorization": f"{AUTH_SCHEME} {token}",
                "Content-Type": JSON_CONTENT_TYPE,
            },
            timeout=self._timeout_for(scope),
        )
        if scope is None:
            return self._round_trip(request, http_request, None)
        return self._interruptible_round_trip(request, http_request, scope)

    def _interruptible_round_trip(
        self,
        request: RequestSpec,
        http_request: httpx.Request,
        scope: CancelScope,
    ) -> Any:
        done = threading.Event()
        result_holder: list[Any] = []
        error_holder: list[Exception] = []

        def _run() -> None:
            try:
                result_holder.append(self._round_trip(request, http_request, scope))
            except Exception as error:  # noqa: BLE001
                error_holder.append(error)
            finally:
                done.set()

        unregister = scope.add_callback(done.set)
        worker = threading.Thread(
            target=_run,
            name=f"delegate-http {request.method} {request.path}",
            daemon=True,
        )
        worker.start()
        try:
            # Woken by the worker finishing or an explicit cancel; deadlines bound the wait.
            while not done.wait(scope.remaining_seconds()):
                if scope.canceled:
                    break
        finally:
            unregister()

        if scope.canceled:
            cause = error_holder[0] if error_holder else None
            raise CancellationError(scope.reason or "canceled") from cause
        if error_holder:
            raise error_holder[0]
        return result_holder[0]

    def _round_trip(
        self,
        request: RequestSpec,
        http_request: httpx.Request,
        scope: CancelScope | None,
    ) -> Any:
        try:
            response = self._client.send(http_request, stream=True)
        except httpx.RequestError as error:
            if scope is not None and scope.canceled:
                raise CancellationError(scope.reason or "canceled") from error
            raise TransportError(f"{request.method} {request.path}: {error}") from error

        try:
            return self._read_response(request, response)
        finally:
            self._drain_and_close(response)

    def _encode(self, request: RequestSpec) -> bytes:
        if request.payload is None:
            return b""
        payload = request.payload
        try:
            document = payload.to_dict() if hasattr(payload, "to_dict") else payload
            return json.dumps(document, ensure_ascii=False).encode("utf-8")
        except (TypeError, ValueError) as error:
            if self.strict_encoding:
                raise EncodeError(f"cannot encode {request.path} payload: {error}") from error
            # Degraded mode: the manager receives an empty body instead of no request.
            self._logger.warning(
                "Payload encode failed for %s %s, sending empty body: %s",
                request.method,
                request.path,
                error,
            )
            return b""

    def _fetch_token(self) -> str:
        try:
            return self.token_source.token()
        except CredentialError:
            raise
        except Exception as error:  # noqa: BLE001
            raise CredentialError(f"token retrieval failed: {error}") from error

    def _timeout_for(self, scope: CancelScope | None) -> httpx.Timeout:
        remaining = None if scope is None else scope.remaining_seconds()
        if remaining is None:
            return self._timeout
        return httpx.Timeout(
            min(self._timeout_seconds, remaining),
            connect=min(self._connect_timeout_seconds, remaining),
        )

    def _read_response(self, request: RequestSpec, response: httpx.Response) -> Any:
        status = response.status_code
        self._logger.debug("%s %s -> %s", request.method, request.path, status)

        # No content: nothing to read or decode, even if a decoder was given.
        if status == httpx.codes.NO_CONTENT:
            return None

        try:
            body = response.read()
        except httpx.RequestError as error:
            raise TransportError(f"{request.method} {request.path}: {error}") from error

        if status > 299:
            message = (
                body.decode("utf-8", errors="replace")
                if body
                else httpx.codes.get_reason_phrase(status)
            )
            error_class = ServerError if status >= 500 else ClientError
            raise error_class(message, status_code=status)

        if request.decoder is None:
            return None
        try:
            return request.decoder(json.loads(body))
        except (TypeError, ValueError, KeyError, AttributeError) as error:
            raise DecodeError(f"cannot decode {request.path} response: {error}") from error

    def _drain_and_close(self, response: httpx.Response) -> None:
        try:
            if not response.is_stream_consumed and not response.is_closed:
                drained = 0
                for chunk in response.iter_raw(chunk_size=DRAIN_LIMIT_BYTES):
                    drained += len(chunk)
                    if drained >= DRAIN_LIMIT_BYTES:
                        break
        except (httpx.HTTPError, httpx.StreamError) as error:
            self._logger.debug("Drain failed, connection will not be reused: %s", error)
        finally:
            response.close()
