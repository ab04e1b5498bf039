"""Pytest fixtures for testing code built on the gateway."""

from __future__ import annotations

import pytest

from ..auth.credentials import StaticCredentialProvider
from ..config import GatewaySettings
from ..registry.service import LookupService
from .mocks import MOCK_CERTIFICATE, MOCK_PRIVATE_KEY, StubSocketClient, http_response


@pytest.fixture
def gateway_settings() -> GatewaySettings:
    """Pytest fixture providing default ``GatewaySettings`` with a short timeout."""
    return GatewaySettings(timeout=5.0)


@pytest.fixture
def credential_provider() -> StaticCredentialProvider:
    """Pytest fixture providing a provider with placeholder PEM material."""
    return StaticCredentialProvider(MOCK_CERTIFICATE, MOCK_PRIVATE_KEY)


@pytest.fixture
def stub_socket() -> StubSocketClient:
    """Pytest fixture providing a ``StubSocketClient`` answering ``{"ok": true}``."""
    return StubSocketClient(http_response({"ok": True}))


@pytest.fixture
def lookup_service(
    gateway_settings: GatewaySettings,
    credential_provider: StaticCredentialProvider,
    stub_socket: StubSocketClient,
) -> LookupService:
    """Pytest fixture providing a ``LookupService`` wired to ``stub_socket``."""
    return LookupService(
        settings=gateway_settings,
        credential_provider=credential_provider,
        socket_client=stub_socket,
    )
