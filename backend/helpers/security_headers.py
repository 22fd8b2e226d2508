"""
Security headers middleware for FastAPI.

Adds standard security headers to all API responses.
"""

from collections.abc import Awaitable, Callable

from fastapi import Request, Response
from starlette.middleware.base import BaseHTTPMiddleware

from models.config import settings


class SecurityHeadersMiddleware(BaseHTTPMiddleware):
    """
    Middleware that adds security headers to all responses.

    Geolocation stays allowed for same-origin pages because the reporting
    form reads the device position. Uploaded report photos are served
    from the API origin, so images are restricted to self and data URIs.
    """

    async def dispatch(
        self, request: Request, call_next: Callable[[Request], Awaitable[Response]]
    ) -> Response:
        response = await call_next(request)

        response.headers["X-Content-Type-Options"] = "nosniff"
        response.headers["X-Frame-Options"] = "DENY"
        response.headers["Referrer-Policy"] = "strict-origin-when-cross-origin"
        response.headers["Permissions-Policy"] = (
            "camera=(self), geolocation=(self), microphone=(), payment=(), usb=()"
        )
        response.headers["Content-Security-Policy"] = (
            "default-src 'self'; "
            "img-src 'self' data: blob:; "
            "frame-ancestors 'none'"
        )

        # HSTS only behind HTTPS in production
        if settings.ENVIRONMENT == "production":
            response.headers["Strict-Transport-Security"] = (
                "max-age=31536000; includeSubDomains"
            )

        # Uploaded images are served by StaticFiles and keep their own caching
        if (
            "Cache-Control" not in response.headers
            and not request.url.path.startswith(settings.MEDIA_BASE_URL)
        ):
            response.headers["Cache-Control"] = "no-store, max-age=0"

        return response
