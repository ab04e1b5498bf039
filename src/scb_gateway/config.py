"""Gateway settings read from the environment."""

from __future__ import annotations

import math
import os
from dataclasses import dataclass

from .errors import ConfigurationError
from .registry.operations import DEFAULT_ORGANISATIONSNUMMER
from .transport.tls import DEFAULT_TIMEOUT

DEFAULT_BASE_URL = "https://privateapi.scb.se/nv0101/v1/sokpavar"

_TRUTHY = {"1", "true", "yes", "on"}


@dataclass(frozen=True)
class GatewaySettings:
    """Runtime settings for the gateway.

    Credentials are not part of the settings; they are read per call by a
    ``CredentialProvider`` so that a missing certificate produces a failure
    envelope instead of a startup error.

    Attributes:
        base_url: Registry API root (``https://`` only).
        timeout: Seconds allowed for one upstream round trip; ``None`` disables it.
        default_organisationsnummer: Organisation number used when a request
            names none.
        log_format: ``"text"`` or ``"json"``.
        verbose: Log at ``DEBUG`` when ``True``.
    """

    base_url: str = DEFAULT_BASE_URL
    timeout: float | None = DEFAULT_TIMEOUT
    default_organisationsnummer: str = DEFAULT_ORGANISATIONSNUMMER
    log_format: str = "text"
    verbose: bool = False

    @classmethod
    def from_environment(cls) -> GatewaySettings:
        """Create settings from environment variables.

        Expected env vars (all optional):
        - SCB_API_BASE_URL: Registry API root
        - SCB_API_TIMEOUT: Round-trip timeout in seconds; ``0`` disables it
        - SCB_DEFAULT_ORGANISATIONSNUMMER: Fallback organisation number
        - SCB_GATEWAY_LOG_FORMAT: ``text`` or ``json``
        - SCB_GATEWAY_VERBOSE: Set to ``1`` for debug logging

        Raises:
            ConfigurationError: If a value is present but invalid.
        """
        base_url = os.environ.get("SCB_API_BASE_URL", "").strip() or DEFAULT_BASE_URL
        if not base_url.startswith("https://"):
            raise ConfigurationError(f"SCB_API_BASE_URL must be an https URL, got {base_url!r}")

        raw_timeout = os.environ.get("SCB_API_TIMEOUT", "").strip()
        timeout: float | None = DEFAULT_TIMEOUT
        if raw_timeout:
            try:
                timeout = float(raw_timeout)
            except ValueError as e:
                raise ConfigurationError(
                    f"SCB_API_TIMEOUT must be a number of seconds, got {raw_timeout!r}"
                ) from e
            if not math.isfinite(timeout):
                raise ConfigurationError(
                    f"SCB_API_TIMEOUT must be a finite number of seconds, got {raw_timeout!r}"
                )
            if timeout < 0:
                raise ConfigurationError("SCB_API_TIMEOUT must not be negative")
            if timeout == 0:
                timeout = None

        log_format = os.environ.get("SCB_GATEWAY_LOG_FORMAT", "text").strip().lower() or "text"
        if log_format not in ("text", "json"):
            raise ConfigurationError(
                f"SCB_GATEWAY_LOG_FORMAT must be 'text' or 'json', got {log_format!r}"
            )

        return cls(
            base_url=base_url,
            timeout=timeout,
            default_organisationsnummer=(
                os.environ.get("SCB_DEFAULT_ORGANISATIONSNUMMER", "").strip()
                or DEFAULT_ORGANISATIONSNUMMER
            ),
            log_format=log_format,
            verbose=os.environ.get("SCB_GATEWAY_VERBOSE", "").strip().lower() in _TRUTHY,
        )
