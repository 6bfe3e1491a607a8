"""Runtime configuration for the delegate manager client."""

from __future__ import annotations

import os
from dataclasses import dataclass, field
from urllib.parse import urlparse

from delegate_client.http.backoff import (
    DEFAULT_INITIAL_INTERVAL_SECONDS,
    DEFAULT_MAX_INTERVAL_SECONDS,
    DEFAULT_MULTIPLIER,
    DEFAULT_RANDOMIZATION_FACTOR,
)
from delegate_client.http.executor import (
    DEFAULT_CONNECT_TIMEOUT_SECONDS,
    DEFAULT_TIMEOUT_SECONDS,
)

REGISTER_MAX_ELAPSED_SECONDS = 30.0
STATUS_MAX_ELAPSED_SECONDS = 60.0


@dataclass(slots=True)
class ManagerSettings:
    """Where the manager lives and how to authenticate against it."""

    endpoint: str = ""
    account_id: str = ""
    token: str = ""
    skip_verify: bool = False
    request_timeout_seconds: float = DEFAULT_TIMEOUT_SECONDS
    connect_timeout_seconds: float = DEFAULT_CONNECT_TIMEOUT_SECONDS


@dataclass(slots=True)
class BackoffSettings:
    """Exponential backoff growth and the per-operation elapsed-time ceilings."""

    initial_interval_seconds: float = DEFAULT_INITIAL_INTERVAL_SECONDS
    multiplier: float = DEFAULT_MULTIPLIER
    randomization_factor: float = DEFAULT_RANDOMIZATION_FACTOR
    max_interval_seconds: float = DEFAULT_MAX_INTERVAL_SECONDS
    register_max_elapsed_seconds: float = REGISTER_MAX_ELAPSED_SECONDS
    status_max_elapsed_seconds: float = STATUS_MAX_ELAPSED_SECONDS


@dataclass(slots=True)
class DelegateIdentitySettings:
    """Identity announced on register and heartbeat."""

    name: str = ""
    delegate_type: str = "DOCKER"
    tags: tuple[str, ...] = ()


@dataclass(slots=True)
class Settings:
    """Application settings grouped by concern."""

    manager: ManagerSettings = field(default_factory=ManagerSettings)
    backoff: BackoffSettings = field(default_factory=BackoffSettings)
    identity: DelegateIdentitySettings = field(default_factory=DelegateIdentitySettings)
    strict_encoding: bool = False

    @classmethod
    def from_env(cls) -> Settings:
        """Load settings from ``DELEGATE_*`` environment variables."""

        return cls(
            manager=ManagerSettings(
                endpoint=os.getenv("DELEGATE_MANAGER_ENDPOINT", "").strip(),
                account_id=os.getenv("DELEGATE_ACCOUNT_ID", "").strip(),
                token=os.getenv("DELEGATE_TOKEN", "").strip(),
                skip_verify=_env_bool("DELEGATE_SKIP_VERIFY", default=False),
                request_timeout_seconds=float(
                    os.getenv("DELEGATE_REQUEST_TIMEOUT_SECONDS", str(DEFAULT_TIMEOUT_SECONDS)),
                ),
                connect_timeout_seconds=float(
                    os.getenv(
                        "DELEGATE_CONNECT_TIMEOUT_SECONDS",
                        str(DEFAULT_CONNECT_TIMEOUT_SECONDS),
                    ),
                ),
            ),
            backoff=BackoffSettings(
                initial_interval_seconds=float(
                    os.getenv(
                        "DELEGATE_BACKOFF_INITIAL_INTERVAL_SECONDS",
                        str(DEFAULT_INITIAL_INTERVAL_SECONDS),
                    ),
                ),
                multiplier=float(
                    os.getenv("DELEGATE_BACKOFF_MULTIPLIER", str(DEFAULT_MULTIPLIER)),
                ),
                randomization_factor=float(
                    os.getenv(
                        "DELEGATE_BACKOFF_RANDOMIZATION_FACTOR",
                        str(DEFAULT_RANDOMIZATION_FACTOR),
                    ),
                ),
                max_interval_seconds=float(
                    os.getenv(
                        "DELEGATE_BACKOFF_MAX_INTERVAL_SECONDS",
                        str(DEFAULT_MAX_INTERVAL_SECONDS),
                    ),
                ),
                register_max_elapsed_seconds=float(
                    os.getenv(
                        "DELEGATE_REGISTER_MAX_ELAPSED_SECONDS",
                        str(REGISTER_MAX_ELAPSED_SECONDS),
                    ),
                ),
                status_max_elapsed_seconds=float(
                    os.getenv(
                        "DELEGATE_STATUS_MAX_ELAPSED_SECONDS",
                        str(STATUS_MAX_ELAPSED_SECONDS),
                    ),
                ),
            ),
            identity=DelegateIdentitySettings(
                name=os.getenv("DELEGATE_NAME", "").strip(),
                delegate_type=os.getenv("DELEGATE_TYPE", "DOCKER").strip() or "DOCKER",
                tags=_env_csv("DELEGATE_TAGS"),
            ),
            strict_encoding=_env_bool("DELEGATE_STRICT_ENCODING", default=False),
        )

    def validate(self) -> None:
        """Raise configuration error if the manager connection is unusable."""

        parsed = urlparse(self.manager.endpoint)
        if parsed.scheme not in {"http", "https"} or not parsed.netloc:
            raise ValueError(
                "Invalid DELEGATE_MANAGER_ENDPOINT: "
                f"{self.manager.endpoint!r}. Expected an absolute http:// or https:// URL.",
            )
        if not self.manager.account_id:
            raise ValueError("DELEGATE_ACCOUNT_ID is required.")
        if not self.manager.token:
            raise ValueError("DELEGATE_TOKEN is required.")
        if self.manager.request_timeout_seconds <= 0:
            raise ValueError("DELEGATE_REQUEST_TIMEOUT_SECONDS must be > 0.")
        if self.manager.connect_timeout_seconds <= 0:
            raise ValueError("DELEGATE_CONNECT_TIMEOUT_SECONDS must be > 0.")
        if self.backoff.initial_interval_seconds <= 0:
            raise ValueError("DELEGATE_BACKOFF_INITIAL_INTERVAL_SECONDS must be > 0.")
        if self.backoff.multiplier < 1:
            raise ValueError("DELEGATE_BACKOFF_MULTIPLIER must be >= 1.")
        if not 0 <= self.backoff.randomization_factor < 1:
            raise ValueError("DELEGATE_BACKOFF_RANDOMIZATION_FACTOR must be in [0, 1).")
        if self.backoff.register_max_elapsed_seconds < 0:
            raise ValueError("DELEGATE_REGISTER_MAX_ELAPSED_SECONDS must be >= 0.")
        if self.backoff.status_max_elapsed_seconds < 0:
            raise ValueError("DELEGATE_STATUS_MAX_ELAPSED_SECONDS must be >= 0.")


def _env_csv(name: str) -> tuple[str, ...]:
    raw = os.getenv(name, "")
    values: list[str] = []
    for part in raw.split(","):
        normalized = part.strip()
        if normalized and normalized not in values:
            values.append(normalized)
    return tuple(values)


def _env_bool(name: str, default: bool) -> bool:
    value = os.getenv(name)
    if value is None:
        return default
    normalized = value.strip().lower()
    if normalized in {"1", "true", "yes", "on"}:
        return True
    if normalized in {"0", "false", "no", "off"}:
        return False
    raise ValueError(f"Invalid boolean value for {name}: {value!r}")
