"""Structured logging for the gateway.

Events go through ``structlog`` into the stdlib root logger, rendered as
JSON (``SCB_GATEWAY_LOG_FORMAT=json``) or as console text. Every event
carries the ``call_id`` bound by ``bind_call_context`` for the lookup in
progress, and PEM material is scrubbed before rendering.

Usage::

    from scb_gateway.logging import configure_logging, get_logger

    configure_logging(log_format="json", verbose=True)
    logger = get_logger(__name__)
    logger.info("lookup_completed", operation="fetch", success=True)
"""

from __future__ import annotations

import logging
from typing import Any

import structlog

_QUIET_LOGGERS = ("uvicorn.access", "httpx", "asyncio")
_SECRET_FIELDS = frozenset({"certificate", "private_key", "credential"})
_PEM_MARKER = "-----BEGIN "
_REDACTED = "<redacted>"


def redact_credentials(
    logger: Any, method_name: str, event_dict: structlog.types.EventDict
) -> structlog.types.EventDict:
    """Processor that masks certificate and key material in an event.

    Fields named like a credential are always masked; any other string
    value containing a PEM header is masked too.
    """
    for key, value in event_dict.items():
        if key in _SECRET_FIELDS or (isinstance(value, str) and _PEM_MARKER in value):
            event_dict[key] = _REDACTED
    return event_dict


def _renderer(log_format: str) -> structlog.types.Processor:
    if log_format == "json":
        return structlog.processors.JSONRenderer(ensure_ascii=False)
    return structlog.dev.ConsoleRenderer()


def _pre_chain() -> list[structlog.types.Processor]:
    return [
        structlog.contextvars.merge_contextvars,
        structlog.stdlib.add_log_level,
        structlog.stdlib.add_logger_name,
        structlog.processors.TimeStamper(fmt="iso", utc=True),
        redact_credentials,
        structlog.processors.StackInfoRenderer(),
        structlog.processors.format_exc_info,
    ]


def configure_logging(log_format: str = "text", verbose: bool = False) -> None:
    """Route structlog and stdlib logging through one rendered handler.

    Call once per process, from ``create_app(configure_logs=True)`` or the
    CLI. Calling again replaces the root handler.

    Args:
        log_format: ``"json"`` or ``"text"``.
        verbose: Log at ``DEBUG`` (including every trace line) instead of ``INFO``.
    """
    for name in _QUIET_LOGGERS:
        logging.getLogger(name).setLevel(logging.WARNING)

    structlog.configure(
        processors=[*_pre_chain(), structlog.stdlib.ProcessorFormatter.wrap_for_formatter],
        logger_factory=structlog.stdlib.LoggerFactory(),
        wrapper_class=structlog.stdlib.BoundLogger,
        cache_logger_on_first_use=True,
    )

    handler = logging.StreamHandler()
    handler.setFormatter(
        structlog.stdlib.ProcessorFormatter(
            foreign_pre_chain=[structlog.stdlib.add_log_level, structlog.stdlib.add_logger_name],
            processors=[
                structlog.stdlib.ProcessorFormatter.remove_processors_meta,
                _renderer(log_format),
            ],
        )
    )

    root = logging.getLogger()
    root.handlers.clear()
    root.addHandler(handler)
    root.setLevel(logging.DEBUG if verbose else logging.INFO)


def get_logger(name: str) -> structlog.stdlib.BoundLogger:
    """Return a structlog logger backed by the stdlib logger ``name``."""
    return structlog.get_logger(name)


def bind_call_context(**fields: object) -> None:
    """Replace the context bound to every log event of the current call.

    Uses ``structlog.contextvars``, so lookups running on different
    threads or tasks never see each other's ``call_id``.
    """
    structlog.contextvars.clear_contextvars()
    structlog.contextvars.bind_contextvars(**fields)
