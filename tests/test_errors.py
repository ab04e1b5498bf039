import pytest

from scb_gateway.errors import (
    ConfigurationError,
    ConnectionFailureError,
    CredentialError,
    MalformedResponseError,
    MissingCredentialError,
    RequestCancelledError,
    RequestTimeoutError,
    RequestValidationError,
    ResponseError,
    ScbGatewayError,
    TransportError,
    UpstreamStatusError,
    ValidationError,
)


@pytest.mark.parametrize(
    "cls,parent,kind",
    [
        (CredentialError, ScbGatewayError, "credential"),
        (MissingCredentialError, CredentialError, "missing_credential"),
        (TransportError, ScbGatewayError, "transport"),
        (ConnectionFailureError, TransportError, "connection_failure"),
        (RequestTimeoutError, TransportError, "timeout"),
        (RequestCancelledError, RequestTimeoutError, "cancelled"),
        (ResponseError, ScbGatewayError, "response"),
        (ValidationError, ScbGatewayError, "validation"),
        (RequestValidationError, ValidationError, "invalid_request"),
        (ConfigurationError, ValidationError, "configuration"),
    ],
)
def test_hierarchy_and_kind(cls, parent, kind):
    assert issubclass(cls, parent)
    assert cls.kind == kind
    err = cls("something failed")
    assert err.message == "something failed"
    assert str(err) == "something failed"


def test_base_kind():
    assert ScbGatewayError("x").kind == "error"


def test_malformed_response_keeps_excerpt():
    err = MalformedResponseError("bad", raw_excerpt="<html>")

    assert isinstance(err, ResponseError)
    assert err.kind == "malformed_response"
    assert err.raw_excerpt == "<html>"
    assert MalformedResponseError("bad").raw_excerpt == ""


def test_upstream_status_fields():
    err = UpstreamStatusError("Registry returned status 404 Not Found", status=404, reason="Not Found")

    assert isinstance(err, ResponseError)
    assert err.kind == "upstream_status"
    assert (err.status, err.reason, err.body_excerpt) == (404, "Not Found", "")


def test_all_errors_catchable_at_boundary():
    with pytest.raises(ScbGatewayError):
        raise RequestCancelledError("Request cancelled")
