"""SCB registry gateway.

Queries Statistics Sweden's workplace registry API over mutually
authenticated TLS using a hand-built HTTP/1.1 client, and returns the
results as a JSON envelope with a per-call diagnostic trace.
"""

from importlib.metadata import PackageNotFoundError, version

try:
    __version__ = version("scb-gateway")
except PackageNotFoundError:
    __version__ = "0.0.0"

from .auth.credentials import (
    CredentialProvider,
    EnvCredentialProvider,
    PemCredential,
    StaticCredentialProvider,
    UnsupportedFormatCredential,
)
from .config import GatewaySettings
from .errors import (
    ConnectionFailureError,
    MalformedResponseError,
    MissingCredentialError,
    RequestTimeoutError,
    ScbGatewayError,
    UpstreamStatusError,
)
from .logging import configure_logging, get_logger
from .registry.models import LookupRequest, ResultEnvelope
from .registry.operations import Operation
from .registry.service import LookupService
from .trace import Trace

__all__ = [
    "ConnectionFailureError",
    "CredentialProvider",
    "EnvCredentialProvider",
    "GatewaySettings",
    "LookupRequest",
    "LookupService",
    "MalformedResponseError",
    "MissingCredentialError",
    "Operation",
    "PemCredential",
    "RequestTimeoutError",
    "ResultEnvelope",
    "ScbGatewayError",
    "StaticCredentialProvider",
    "Trace",
    "UnsupportedFormatCredential",
    "UpstreamStatusError",
    "configure_logging",
    "get_logger",
]
