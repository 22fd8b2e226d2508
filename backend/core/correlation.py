"""
Correlation IDs.

Every request carries a short ID through log records, Sentry events and
error responses so a citizen can quote it when reporting a problem. A
client may supply its own through ``X-Correlation-ID``; anything that is
not a plain token is replaced.
"""

import re
import uuid
from contextvars import ContextVar

correlation_id_var: ContextVar[str] = ContextVar("correlation_id", default="")

# Incoming IDs end up in log lines and response headers
_ACCEPTED_ID = re.compile(r"[A-Za-z0-9._-]{1,64}")


def generate_correlation_id() -> str:
    """Return a new 8-character hex ID (e.g. "abc123de")."""
    return uuid.uuid4().hex[:8]


def resolve_correlation_id(incoming: str | None) -> str:
    """Keep a well-formed client-supplied ID, otherwise generate one."""
    if incoming and _ACCEPTED_ID.fullmatch(incoming):
        return incoming
    return generate_correlation_id()


def get_correlation_id() -> str:
    """Return the current request's correlation ID, or "" outside a request."""
    return correlation_id_var.get()


def set_correlation_id(correlation_id: str) -> None:
    correlation_id_var.set(correlation_id)
