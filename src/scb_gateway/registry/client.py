"""Dispatch of registry operations onto HTTP requests."""

from __future__ import annotations

import logging
import threading
from typing import Any

from ..auth.credentials import PemCredential
from ..trace import Trace
from ..transport.http import RegistryHttpClient
from .models import LookupRequest
from .operations import (
    DEFAULT_OPERATION,
    DEFAULT_ORGANISATIONSNUMMER,
    ROUTES,
    Operation,
    build_filter_body,
)

logger = logging.getLogger(__name__)


class RegistryClient:
    """Maps each ``Operation`` to its method, path, and body and runs it.

    Every call goes through ``RegistryHttpClient.request_json``: encode,
    open a socket, write, read until close, close, decode. The first
    failure propagates to the caller.

    Args:
        http: Client that performs the round trip.
        default_organisationsnummer: Used when a request names none.
    """

    def __init__(
        self,
        http: RegistryHttpClient,
        default_organisationsnummer: str = DEFAULT_ORGANISATIONSNUMMER,
    ) -> None:
        self._http = http
        self._default_organisationsnummer = default_organisationsnummer

    def dispatch(
        self,
        request: LookupRequest,
        credential: PemCredential,
        trace: Trace,
        cancel: threading.Event | None = None,
    ) -> Any:
        """Run the operation named by ``request`` (``fetch`` if none).

        Returns:
            The registry's parsed JSON response.
        """
        operation = request.endpoint or DEFAULT_OPERATION
        organisationsnummer = request.organisationsnummer or self._default_organisationsnummer
        trace.add(
            f"Endpoint: {operation.value}, OrgNr: {organisationsnummer}",
            operation=operation.value,
        )

        route = ROUTES[operation]
        body = None
        if route.filtered:
            body = build_filter_body(
                organisationsnummer,
                status=request.arbetsstalleStatus,
                variables=request.variable_filters(),
                categories=request.category_filters(),
            )

        logger.debug("Dispatching %s to %s %s", operation.value, route.method, route.path)
        return self._http.request_json(
            route.method, route.path, credential, body=body, trace=trace, cancel=cancel
        )

    def categories(self, credential: PemCredential, trace: Trace) -> Any:
        """Categories purchased by the certificate holder."""
        return self.dispatch(LookupRequest(endpoint=Operation.CATEGORIES), credential, trace)

    def variables(self, credential: PemCredential, trace: Trace) -> Any:
        """Variables purchased by the certificate holder."""
        return self.dispatch(LookupRequest(endpoint=Operation.VARIABLES), credential, trace)

    def count(self, organisationsnummer: str, credential: PemCredential, trace: Trace) -> Any:
        """Number of active workplaces for one organisation."""
        request = LookupRequest(endpoint=Operation.COUNT, organisationsnummer=organisationsnummer)
        return self.dispatch(request, credential, trace)

    def fetch(self, organisationsnummer: str, credential: PemCredential, trace: Trace) -> Any:
        """Active workplaces for one organisation."""
        request = LookupRequest(endpoint=Operation.FETCH, organisationsnummer=organisationsnummer)
        return self.dispatch(request, credential, trace)
