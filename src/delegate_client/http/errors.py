"""Error taxonomy for manager requests."""

from __future__ import annotations

from dataclasses import dataclass

# Highest status code that is never retried; 502 and above are infrastructure hiccups.
MAX_TERMINAL_STATUS = 501


@dataclass(slots=True)
class DelegateClientError(Exception):
    """Base error for every failure surfaced by the client."""

    message: str
    code: str = "client_error"

    def __str__(self) -> str:
        return self.message


@dataclass(slots=True)
class CredentialError(DelegateClientError):
    """Token retrieval failed; nothing was sent."""

    code: str = "credential_error"


@dataclass(slots=True)
class EncodeError(DelegateClientError):
    """Request payload could not be serialized."""

    code: str = "encode_error"


@dataclass(slots=True)
class TransportError(DelegateClientError):
    """No response was received (DNS, connect, timeout, reset)."""

    code: str = "transport_error"


@dataclass(slots=True)
class StatusError(DelegateClientError):
    """Manager answered with a non-2xx status."""

    code: str = "status_error"
    status_code: int = 0

    @property
    def retryable(self) -> bool:
        return self.status_code > MAX_TERMINAL_STATUS


@dataclass(slots=True)
class ClientError(StatusError):
    """Status 300-499."""

    code: str = "client_error"


@dataclass(slots=True)
class ServerError(StatusError):
    """Status 500 and above; only codes above 501 are retried."""

    code: str = "server_error"


@dataclass(slots=True)
class DecodeError(DelegateClientError):
    """Response body did not match the requested output shape."""

    code: str = "decode_error"


@dataclass(slots=True)
class CancellationError(DelegateClientError):
    """The caller's scope ended (explicit cancel or deadline)."""

    code: str = "canceled"
