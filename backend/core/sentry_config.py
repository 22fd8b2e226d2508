"""
Sentry SDK configuration.

Sentry stays disabled unless SENTRY_DSN is set. Events are scrubbed of
citizen PII (emails, phone numbers, auth headers, exact coordinates in
request bodies) before leaving the process.
"""

import os
from typing import Any

import sentry_sdk
from sentry_sdk.integrations.fastapi import FastApiIntegration
from sentry_sdk.integrations.loguru import LoguruIntegration
from sentry_sdk.integrations.sqlalchemy import SqlalchemyIntegration
from sentry_sdk.types import Event, Hint

_SCRUBBED_BODY_FIELDS = ("password", "password_confirm", "phone", "latitude", "longitude")


def _before_send(event: Event, hint: Hint) -> Event | None:
    """Strip PII from an error event, keeping only the user id."""
    user = event.get("user")
    if user:
        user.pop("email", None)
        user.pop("username", None)
        if "ip_address" in user:
            user["ip_address"] = "{{auto}}"

    request = event.get("request")
    if request and isinstance(request, dict):
        request.pop("cookies", None)
        headers = request.get("headers")
        if isinstance(headers, dict) and "Authorization" in headers:
            headers["Authorization"] = "[Filtered]"
        data = request.get("data")
        if isinstance(data, dict):
            for field in _SCRUBBED_BODY_FIELDS:
                if field in data:
                    data[field] = "[Filtered]"

    return event


def _before_send_transaction(event: Event, hint: Hint) -> Event | None:
    """Drop health-check transactions."""
    if event.get("transaction", "") in ("/api/health", "GET /api/health"):
        return None
    return event


def _traces_sampler(sampling_context: dict[str, Any]) -> float:
    """
    Sample traces by endpoint.

    Report submission and auth are sampled more heavily since they carry
    the external calls (media upload, geocoding) worth profiling.
    """
    if sampling_context.get("parent_sampled") is True:
        return 1.0

    path = sampling_context.get("asgi_scope", {}).get("path", "")

    if path == "/api/health":
        return 0.0
    if path.startswith("/api/auth") or path.startswith("/api/reports"):
        return 0.5
    return 0.2


def init_sentry() -> None:
    """
    Initialize Sentry with FastAPI, SQLAlchemy and Loguru integrations.

    Call this before creating the FastAPI app instance.
    """
    dsn = os.getenv("SENTRY_DSN")
    if not dsn:
        return

    sentry_sdk.init(
        dsn=dsn,
        environment=os.getenv("ENVIRONMENT", "development"),
        release=os.getenv("SENTRY_RELEASE", "unknown"),
        send_default_pii=False,
        integrations=[
            FastApiIntegration(transaction_style="endpoint"),
            SqlalchemyIntegration(),
            LoguruIntegration(),
        ],
        traces_sampler=_traces_sampler,
        sample_rate=1.0,
        before_send=_before_send,
        before_send_transaction=_before_send_transaction,
        attach_stacktrace=True,
        max_breadcrumbs=50,
        ignore_errors=[KeyboardInterrupt, SystemExit],
    )
