"""Tests for Sentry SDK configuration and PII scrubbing."""

import os
from typing import Any
from unittest.mock import patch

import pytest

from core.sentry_config import (
    _before_send,
    _before_send_transaction,
    _traces_sampler,
    init_sentry,
)


class TestBeforeSendPIIScrubbing:
    """Tests for PII scrubbing in _before_send."""

    def test_scrubs_email_and_username_but_keeps_id(self) -> None:
        event: dict[str, Any] = {
            "user": {"id": "123", "email": "citizen@example.com", "username": "c"}
        }
        result = _before_send(event, {})  # type: ignore[arg-type]
        assert result is not None
        assert result["user"] == {"id": "123"}  # type: ignore[typeddict-item]

    def test_anonymizes_ip_address(self) -> None:
        event: dict[str, Any] = {"user": {"id": "1", "ip_address": "192.168.1.100"}}
        result = _before_send(event, {})  # type: ignore[arg-type]
        assert result is not None
        assert result["user"]["ip_address"] == "{{auto}}"  # type: ignore[typeddict-item]

    def test_filters_authorization_header_and_cookies(self) -> None:
        event: dict[str, Any] = {
            "request": {
                "url": "/api/reports",
                "cookies": {"session": "secret"},
                "headers": {
                    "Authorization": "Bearer secret_token_123",
                    "Content-Type": "multipart/form-data",
                },
            }
        }
        result = _before_send(event, {})  # type: ignore[arg-type]
        assert result is not None
        request = result["request"]  # type: ignore[typeddict-item]
        assert "cookies" not in request
        assert request["headers"]["Authorization"] == "[Filtered]"
        assert request["headers"]["Content-Type"] == "multipart/form-data"

    def test_scrubs_location_and_credentials_from_body(self) -> None:
        """Exact report coordinates and phone numbers never reach Sentry."""
        event: dict[str, Any] = {
            "request": {
                "data": {
                    "title": "Light out",
                    "latitude": 19.076,
                    "longitude": 72.8777,
                    "phone": "9876543210",
                    "password": "Secret123",
                }
            }
        }
        result = _before_send(event, {})  # type: ignore[arg-type]
        assert result is not None
        data = result["request"]["data"]  # type: ignore[typeddict-item, index]
        assert data["title"] == "Light out"
        for field in ("latitude", "longitude", "phone", "password"):
            assert data[field] == "[Filtered]"

    def test_handles_event_without_user_or_request(self) -> None:
        event: dict[str, Any] = {"message": "Test error"}
        result = _before_send(event, {})  # type: ignore[arg-type]
        assert result == {"message": "Test error"}


class TestBeforeSendTransaction:
    """Tests for transaction filtering."""

    @pytest.mark.parametrize("path", ["/api/health", "GET /api/health"])
    def test_filters_health_check(self, path: str) -> None:
        event: dict[str, Any] = {"transaction": path}
        assert _before_send_transaction(event, {}) is None  # type: ignore[arg-type]

    def test_allows_other_paths(self) -> None:
        event: dict[str, Any] = {"transaction": "/api/reports/nearby"}
        assert _before_send_transaction(event, {}) == event  # type: ignore[arg-type]


class TestTracesSampler:
    """Tests for dynamic trace sampling."""

    def test_never_samples_health_checks(self) -> None:
        assert _traces_sampler({"asgi_scope": {"path": "/api/health"}}) == 0.0

    @pytest.mark.parametrize("path", ["/api/auth/login", "/api/reports"])
    def test_higher_sampling_for_auth_and_reports(self, path: str) -> None:
        assert _traces_sampler({"asgi_scope": {"path": path}}) == 0.5

    def test_default_sampling_rate(self) -> None:
        assert _traces_sampler({"asgi_scope": {"path": "/"}}) == 0.2

    def test_respects_parent_sampling(self) -> None:
        context: dict[str, Any] = {
            "parent_sampled": True,
            "asgi_scope": {"path": "/api/health"},
        }
        assert _traces_sampler(context) == 1.0

    def test_handles_missing_asgi_scope(self) -> None:
        assert _traces_sampler({}) == 0.2


class TestInitSentry:
    """Tests for Sentry initialization."""

    def test_init_sentry_without_dsn_does_nothing(self) -> None:
        with patch("sentry_sdk.init") as mock_init:
            with patch.dict(os.environ, {}, clear=True):
                init_sentry()
            mock_init.assert_not_called()

    def test_init_sentry_uses_environment_variables(self) -> None:
        env_vars = {
            "SENTRY_DSN": "https://test@o0.ingest.sentry.io/0",
            "ENVIRONMENT": "production",
            "SENTRY_RELEASE": "1.2.3",
        }
        with patch("sentry_sdk.init") as mock_init:
            with patch.dict(os.environ, env_vars):
                init_sentry()
            call_kwargs = mock_init.call_args.kwargs
            assert call_kwargs["dsn"] == env_vars["SENTRY_DSN"]
            assert call_kwargs["environment"] == "production"
            assert call_kwargs["release"] == "1.2.3"
            assert call_kwargs["send_default_pii"] is False
