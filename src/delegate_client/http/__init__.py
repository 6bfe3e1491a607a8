"""Request engine: executor, retry controller, backoff and error policy."""

from delegate_client.http.backoff import STOP, ExponentialBackoff, create_backoff
from delegate_client.http.cancel import CancelScope
from delegate_client.http.credentials import CachedTokenSource, StaticTokenSource, TokenSource
from delegate_client.http.errors import (
    CancellationError,
    ClientError,
    CredentialError,
    DecodeError,
    DelegateClientError,
    EncodeError,
    ServerError,
    StatusError,
    TransportError,
)
from delegate_client.http.executor import RequestExecutor, RequestSpec
from delegate_client.http.retry import RetryController

__all__ = [
    "STOP",
    "CachedTokenSource",
    "CancelScope",
    "CancellationError",
    "ClientError",
    "CredentialError",
    "DecodeError",
    "DelegateClientError",
    "EncodeError",
    "ExponentialBackoff",
    "RequestExecutor",
    "RequestSpec",
    "RetryController",
    "ServerError",
    "StaticTokenSource",
    "StatusError",
    "TokenSource",
    "TransportError",
    "create_backoff",
]
