"""Bearer token suppliers consumed by the request executor."""

from __future__ import annotations

import logging
import threading
import time
from collections.abc import Callable
from typing import Protocol, runtime_checkable

from delegate_client.http.errors import CredentialError

logger = logging.getLogger(__name__)

DEFAULT_TOKEN_TTL_SECONDS = 600.0
DEFAULT_REFRESH_MARGIN_SECONDS = 60.0


@runtime_checkable
class TokenSource(Protocol):
    """Capability that hands out the current bearer token."""

    def token(self) -> str:
        """Return a token valid for at least one request, or raise."""
        raise NotImplementedError


class StaticTokenSource:
    """Always returns the same pre-shared token."""

    def __init__(self, token: str) -> None:
        self._token = token

    def token(self) -> str:
        if not self._token:
            raise CredentialError("delegate token is not configured")
        return self._token


class CachedTokenSource:
    """Caches a minted token and refreshes it shortly before it expires.

    ``mint`` returns either a token string (kept for ``ttl_seconds``) or a
    ``(token, ttl_seconds)`` pair. Concurrent callers share one refresh.
    """

    def __init__(
        self,
        mint: Callable[[], str | tuple[str, float]],
        *,
        ttl_seconds: float = DEFAULT_TOKEN_TTL_SECONDS,
        refresh_margin_seconds: float = DEFAULT_REFRESH_MARGIN_SECONDS,
        clock: Callable[[], float] = time.monotonic,
    ) -> None:
        self._mint = mint
        self._ttl_seconds = ttl_seconds
        self._refresh_margin_seconds = refresh_margin_seconds
        self._clock = clock
        self._lock = threading.Lock()
        self._token: str | None = None
        self._expires_at = 0.0

    def token(self) -> str:
        with self._lock:
            if self._token is not None and self._clock() < self._expires_at:
                return self._token
            return self._refresh()

    def invalidate(self) -> None:
        with self._lock:
            self._token = None
            self._expires_at = 0.0

    def _refresh(self) -> str:
        try:
            minted = self._mint()
        except CredentialError:
            raise
        except Exception as error:  # noqa: BLE001
            raise CredentialError(f"token mint failed: {error}") from error

        if isinstance(minted, tuple):
            token, ttl_seconds = minted
        else:
            token, ttl_seconds = minted, self._ttl_seconds
        if not token:
            raise CredentialError("token mint returned an empty token")

        lifetime = max(0.0, ttl_seconds - self._refresh_margin_seconds)
        self._token = token
        self._expires_at = self._clock() + lifetime
        logger.debug("Refreshed delegate token, valid for %.0fs", lifetime)
        return token
