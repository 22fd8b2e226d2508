"""Request-scoped infrastructure shared by every router."""

from core.correlation import get_correlation_id, set_correlation_id
from core.logging_config import configure_logging
from core.sentry_config import init_sentry

__all__ = [
    "configure_logging",
    "get_correlation_id",
    "init_sentry",
    "set_correlation_id",
]
