from __future__ import annotations

from typing import Optional

from fastapi import FastAPI
from fastapi.concurrency import run_in_threadpool
from fastapi.responses import JSONResponse
from starlette.requests import Request

from ..auth.credentials import CredentialProvider
from ..config import GatewaySettings
from ..logging import configure_logging, get_logger
from ..registry.service import LookupService
from ..transport.tls import TlsSocketClient
from .middleware import AccessLogMiddleware, CorsHeadersMiddleware

log = get_logger("scb_gateway.api")


def create_app(
    *,
    settings: Optional[GatewaySettings] = None,
    credential_provider: Optional[CredentialProvider] = None,
    socket_client: Optional[TlsSocketClient] = None,
    configure_logs: bool = False,
) -> FastAPI:
    """Create the FastAPI app.

    The lookup runs on Starlette's threadpool because the upstream socket
    is blocking; concurrent inbound calls share nothing but the read-only
    settings and credential provider.
    """

    settings = settings or GatewaySettings.from_environment()
    if configure_logs:
        configure_logging(log_format=settings.log_format, verbose=settings.verbose)

    service = LookupService(
        settings=settings,
        credential_provider=credential_provider,
        socket_client=socket_client,
    )

    app = FastAPI(title="SCB registry gateway", version="0.1")
    app.state.settings = settings
    app.state.service = service

    # Added last, so CORS wraps the access log.
    app.add_middleware(AccessLogMiddleware)
    app.add_middleware(CorsHeadersMiddleware)

    async def lookup(request: Request) -> JSONResponse:
        read_body = request.method == "POST"
        payload = await request.body() if read_body else None
        status, envelope = await run_in_threadpool(service.execute, payload, read_body)
        return JSONResponse(envelope.to_payload(), status_code=status)

    for path in ("/", "/scb"):
        app.add_api_route(path, lookup, methods=["GET", "POST"], include_in_schema=path == "/")

    @app.get("/health", include_in_schema=False)
    def health() -> dict:
        return {"status": "ok"}

    log.info("app_created", base_url=settings.base_url, timeout=settings.timeout)
    return app
