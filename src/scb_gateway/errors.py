"""Error hierarchy for the SCB registry gateway.

Every failure that can end a lookup call is one of these. The outermost
call boundary (``LookupService.execute``) converts them into a failure
envelope returned with HTTP 500.

Kinds:
- credential: certificate/key missing or in an unsupported format
- transport: DNS, refused connection, TLS handshake, timeout
- response: unparsable framing or body, non-success upstream status
- validation: inbound request or settings invalid
"""

from __future__ import annotations


class ScbGatewayError(Exception):
    """Base error for all gateway errors.

    Every subclass defines a class-level ``kind`` used as a structured
    logging field when the error reaches the call boundary.

    Attributes:
        kind: Short failure category name. Defaults to ``"error"``.

    Args:
        message: Human-readable error description.
    """

    kind: str = "error"

    def __init__(self, message: str):
        super().__init__(message)
        self.message = message


# ============================================================================
# Credential errors
# ============================================================================


class CredentialError(ScbGatewayError):
    """Base credential error.

    Raised before any connection is attempted.
    """

    kind = "credential"


class MissingCredentialError(CredentialError):
    """Client certificate or private key is absent, empty, or unusable.

    Also raised for certificate formats other than PEM, with a message
    explaining how to convert.
    """

    kind = "missing_credential"


# ============================================================================
# Transport errors
# ============================================================================


class TransportError(ScbGatewayError):
    """Base error for socket and TLS failures."""

    kind = "transport"


class ConnectionFailureError(TransportError):
    """DNS resolution, TCP connect, TLS handshake, or socket I/O failed."""

    kind = "connection_failure"


class RequestTimeoutError(TransportError):
    """The round trip did not finish before its deadline."""

    kind = "timeout"


class RequestCancelledError(RequestTimeoutError):
    """The caller cancelled the round trip before it finished."""

    kind = "cancelled"


# ============================================================================
# Response errors
# ============================================================================


class ResponseError(ScbGatewayError):
    """Base error for upstream responses that cannot be used."""

    kind = "response"


class MalformedResponseError(ResponseError):
    """Response framing or body could not be decoded.

    Raised when the chunk stream is truncated or has an unparsable size
    line, or when the decoded body is not valid JSON.

    Attributes:
        raw_excerpt: Leading portion of the raw body, for diagnostics.
    """

    kind = "malformed_response"

    def __init__(self, message: str, *, raw_excerpt: str = ""):
        super().__init__(message)
        self.raw_excerpt = raw_excerpt


class UpstreamStatusError(ResponseError):
    """The registry answered with a non-2xx HTTP status.

    Attributes:
        status: The upstream status code.
        reason: The upstream reason phrase.
        body_excerpt: Leading portion of the decoded body.
    """

    kind = "upstream_status"

    def __init__(
        self,
        message: str,
        *,
        status: int,
        reason: str = "",
        body_excerpt: str = "",
    ):
        super().__init__(message)
        self.status = status
        self.reason = reason
        self.body_excerpt = body_excerpt


# ============================================================================
# Validation errors
# ============================================================================


class ValidationError(ScbGatewayError):
    """Base validation error."""

    kind = "validation"


class RequestValidationError(ValidationError):
    """Inbound lookup request body failed schema validation."""

    kind = "invalid_request"


class ConfigurationError(ValidationError):
    """Missing or invalid gateway settings."""

    kind = "configuration"
