"""Client certificate credentials for the registry's mutual TLS endpoint."""

from __future__ import annotations

import os
from abc import ABC, abstractmethod
from dataclasses import dataclass

from ..errors import MissingCredentialError

CERTIFICATE_ENV = "SCB_API_CERTIFICATE_PEM"
PRIVATE_KEY_ENV = "SCB_API_CERTIFICATE_KEY"
FORMAT_ENV = "SCB_API_CERTIFICATE_FORMAT"

_MISSING_MESSAGE = "Missing certificate configuration"


@dataclass(frozen=True)
class PemCredential:
    """PEM client certificate and matching private key.

    Only presence is checked here. A malformed PEM block surfaces later as
    a TLS handshake failure.

    Attributes:
        certificate: PEM-encoded certificate chain.
        private_key: PEM-encoded private key.

    Raises:
        MissingCredentialError: If either value is absent or empty.
    """

    certificate: str
    private_key: str

    def __post_init__(self) -> None:
        if not self.certificate or not self.private_key:
            raise MissingCredentialError(_MISSING_MESSAGE)

    def __repr__(self) -> str:
        """Return masked representation to prevent key leakage in logs."""
        return (
            f"PemCredential("
            f"certificate=<{len(self.certificate)} chars> "
            f"private_key=<redacted>)"
        )

    def __str__(self) -> str:
        return self.__repr__()


class CredentialProvider(ABC):
    """Source of the client credential used for one call."""

    @abstractmethod
    def get_credential(self) -> PemCredential:
        """Return a usable credential.

        Raises:
            MissingCredentialError: If no usable credential is configured.
        """

    @property
    def has_certificate(self) -> bool:
        """Whether a certificate value is present (for diagnostics)."""
        return False

    @property
    def has_private_key(self) -> bool:
        """Whether a private key value is present (for diagnostics)."""
        return False


class StaticCredentialProvider(CredentialProvider):
    """Provider wrapping a fixed certificate/key pair."""

    def __init__(self, certificate: str | None, private_key: str | None) -> None:
        self._certificate = certificate or ""
        self._private_key = private_key or ""

    def get_credential(self) -> PemCredential:
        return PemCredential(self._certificate, self._private_key)

    @property
    def has_certificate(self) -> bool:
        return bool(self._certificate)

    @property
    def has_private_key(self) -> bool:
        return bool(self._private_key)


class UnsupportedFormatCredential(CredentialProvider):
    """Provider for certificate formats that cannot be used directly.

    Python's ``ssl`` module only loads PEM chains, so PKCS#12 bundles and
    other formats resolve straight to ``MissingCredentialError`` with
    conversion guidance.

    Args:
        certificate_format: The configured format name (e.g. ``"pfx"``).
    """

    def __init__(self, certificate_format: str) -> None:
        self.certificate_format = certificate_format

    def get_credential(self) -> PemCredential:
        raise MissingCredentialError(
            f"{_MISSING_MESSAGE}: certificate format {self.certificate_format!r} "
            f"is not supported. Convert it to PEM (e.g. "
            f"'openssl pkcs12 -in cert.pfx -nodes') and set "
            f"{CERTIFICATE_ENV} and {PRIVATE_KEY_ENV}."
        )


class EnvCredentialProvider(CredentialProvider):
    """Reads the PEM pair from environment variables on every call.

    Expected env vars:
    - SCB_API_CERTIFICATE_PEM: PEM certificate chain
    - SCB_API_CERTIFICATE_KEY: PEM private key
    """

    def get_credential(self) -> PemCredential:
        return PemCredential(
            os.environ.get(CERTIFICATE_ENV, ""),
            os.environ.get(PRIVATE_KEY_ENV, ""),
        )

    @property
    def has_certificate(self) -> bool:
        return bool(os.environ.get(CERTIFICATE_ENV))

    @property
    def has_private_key(self) -> bool:
        return bool(os.environ.get(PRIVATE_KEY_ENV))


def credential_provider_from_environment() -> CredentialProvider:
    """Pick the credential provider for the configured certificate format.

    ``SCB_API_CERTIFICATE_FORMAT`` defaults to ``pem``. Any other value
    yields an ``UnsupportedFormatCredential``.
    """
    certificate_format = os.environ.get(FORMAT_ENV, "pem").strip().lower() or "pem"
    if certificate_format != "pem":
        return UnsupportedFormatCredential(certificate_format)
    return EnvCredentialProvider()
