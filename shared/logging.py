"""
Shared logging configuration for the mesh auth core.
"""

import logging
import sys
import uuid
from contextvars import ContextVar
from typing import Any, Dict, Optional

import structlog

# Per-request context picked up by every log event
request_id_var: ContextVar[Optional[str]] = ContextVar('request_id', default=None)
principal_var: ContextVar[Optional[str]] = ContextVar('principal', default=None)


def configure_logging(service_name: str, log_level: str = "info") -> None:
    """Configure JSON structured logging for a service.

    Loggers named ``auth.<component>`` get a ``component`` field; the
    service name is bound once and attached to every event.
    """
    structlog.configure(
        processors=[
            structlog.stdlib.filter_by_level,
            structlog.stdlib.add_logger_name,
            structlog.stdlib.add_log_level,
            structlog.processors.TimeStamper(fmt="iso"),
            structlog.processors.format_exc_info,
            add_service_context,
            add_principal_context,
            structlog.processors.JSONRenderer()
        ],
        context_class=dict,
        logger_factory=structlog.stdlib.LoggerFactory(),
        wrapper_class=structlog.stdlib.BoundLogger,
        cache_logger_on_first_use=True,
    )

    logging.basicConfig(
        format="%(message)s",
        stream=sys.stdout,
        level=getattr(logging, log_level.upper(), logging.INFO),
    )
    structlog.contextvars.bind_contextvars(service=service_name)


def add_service_context(logger: Any, method_name: str, event_dict: Dict[str, Any]) -> Dict[str, Any]:
    """Attach the bound service name and the emitting component."""
    # "auth.jwks" -> component "jwks"
    logger_name = event_dict.get("logger", "")
    if "." in logger_name:
        event_dict["component"] = logger_name.split(".", 1)[1]

    return structlog.contextvars.merge_contextvars(logger, method_name, event_dict)


def add_principal_context(logger: Any, method_name: str, event_dict: Dict[str, Any]) -> Dict[str, Any]:
    """Attach the request id and the authenticated principal, when known."""
    request_id = request_id_var.get()
    if request_id:
        event_dict["request_id"] = request_id

    principal = principal_var.get()
    if principal:
        event_dict["principal"] = principal

    return event_dict


def set_request_id(request_id: Optional[str] = None) -> str:
    """Set request ID in context."""
    if request_id is None:
        request_id = str(uuid.uuid4())
    request_id_var.set(request_id)
    return request_id


def set_principal(principal: Optional[str]) -> None:
    """Record the authenticated principal for subsequent log events."""
    principal_var.set(principal)


def clear_context():
    request_id_var.set(None)
    principal_var.set(None)


def get_logger(name: str) -> structlog.BoundLogger:
    """Get a structured logger instance."""
    return structlog.get_logger(name)
