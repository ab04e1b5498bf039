"""Shared fixtures for the gateway test suite."""

from scb_gateway.testing.fixtures import (  # noqa: F401
    credential_provider,
    gateway_settings,
    lookup_service,
    stub_socket,
)
