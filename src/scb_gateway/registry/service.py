"""Outermost call boundary: inbound request in, result envelope out."""

from __future__ import annotations

import json
import threading
from typing import Any

from pydantic import ValidationError as PydanticValidationError

from ..auth.credentials import CredentialProvider, credential_provider_from_environment
from ..config import GatewaySettings
from ..errors import RequestValidationError, ScbGatewayError
from ..logging import bind_call_context, get_logger
from ..trace import Trace
from ..transport.http import RegistryHttpClient
from ..transport.tls import TlsSocketClient
from .client import RegistryClient
from .models import LookupRequest, ResultEnvelope
from .operations import DEFAULT_OPERATION, Operation, parse_operation

logger = get_logger(__name__)

STATUS_OK = 200
STATUS_FAILED = 500


class LookupService:
    """Runs one lookup per call and never raises.

    Every failure is appended to the call's trace and converted into a
    failure envelope with status 500.

    Args:
        settings: Gateway settings.
        credential_provider: Source of the client certificate. Defaults to
            the environment-configured provider.
        socket_client: Socket client for upstream connections.
    """

    def __init__(
        self,
        settings: GatewaySettings | None = None,
        credential_provider: CredentialProvider | None = None,
        socket_client: TlsSocketClient | None = None,
    ) -> None:
        self.settings = settings or GatewaySettings.from_environment()
        self._credentials = credential_provider or credential_provider_from_environment()
        http = RegistryHttpClient(
            self.settings.base_url,
            socket_client=socket_client,
            timeout=self.settings.timeout,
        )
        self._registry = RegistryClient(
            http, default_organisationsnummer=self.settings.default_organisationsnummer
        )

    def execute(
        self,
        payload: bytes | str | dict[str, Any] | None = None,
        read_body: bool = True,
        cancel: threading.Event | None = None,
    ) -> tuple[int, ResultEnvelope]:
        """Run a lookup and build its envelope.

        Args:
            payload: Inbound request body (raw JSON or an already-parsed dict).
            read_body: ``False`` for inbound methods whose body is ignored
                (e.g. ``GET``); defaults apply.
            cancel: Optional event that aborts the upstream round trip.

        Returns:
            ``(http_status, envelope)``: ``200`` on success, ``500`` otherwise.
        """
        trace = Trace()
        bind_call_context(call_id=trace.call_id)
        trace.stamp("Request received")

        try:
            trace.add(f"Certificate present: {self._credentials.has_certificate}")
            trace.add(f"Key present: {self._credentials.has_private_key}")
            credential = self._credentials.get_credential()

            request = self._parse_request(payload if read_body else None, trace)
            data = self._registry.dispatch(request, credential, trace, cancel=cancel)
            trace.add("Request completed successfully")

            count = None
            if request.endpoint is Operation.COUNT and isinstance(data, int) and not isinstance(data, bool):
                count = data
            operation = request.endpoint or DEFAULT_OPERATION
            logger.info("lookup_completed", operation=operation.value, success=True)
            return STATUS_OK, ResultEnvelope.ok(data, trace.entries, count=count)
        except ScbGatewayError as e:
            trace.add(f"ERROR: {e}")
            logger.warning("lookup_failed", kind=e.kind, error=str(e))
            return STATUS_FAILED, ResultEnvelope.failure(str(e), trace.entries)
        except Exception as e:
            trace.add(f"ERROR: {e}")
            logger.exception("lookup_crashed", error=str(e))
            return STATUS_FAILED, ResultEnvelope.failure(str(e) or type(e).__name__, trace.entries)

    @staticmethod
    def _parse_request(payload: bytes | str | dict[str, Any] | None, trace: Trace) -> LookupRequest:
        """Validate the inbound body; an absent or non-JSON body means defaults.

        Raises:
            RequestValidationError: If the body is JSON but not a valid request.
        """
        data: Any = payload
        if isinstance(payload, (bytes, str)):
            try:
                data = json.loads(payload) if payload.strip() else None
            except ValueError:
                data = None
            if data is None:
                trace.add("No JSON body provided, using defaults")

        if data is None:
            return LookupRequest()
        if not isinstance(data, dict):
            raise RequestValidationError("Request body must be a JSON object")
        try:
            request = LookupRequest.model_validate(data)
        except PydanticValidationError as e:
            problems = "; ".join(
                f"{'.'.join(str(p) for p in err['loc'])}: {err['msg']}" for err in e.errors()
            )
            raise RequestValidationError(f"Invalid request: {problems}") from e

        endpoint = data.get("endpoint")
        if endpoint is not None and parse_operation(endpoint) is None:
            trace.add(
                f"Unknown endpoint {endpoint!r}, using {DEFAULT_OPERATION.value}",
                endpoint=repr(endpoint),
            )
        return request
