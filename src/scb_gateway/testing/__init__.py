"""Stub socket client, response builders, and pytest fixtures."""

from .mocks import StubSocketClient, http_response, mock_credential

__all__ = ["StubSocketClient", "http_response", "mock_credential"]
