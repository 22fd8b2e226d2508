"""Tests for request_utils helper functions."""

from unittest.mock import MagicMock

from helpers.request_utils import get_client_ip, get_device_info


def _request(headers: dict, host: str | None = "10.0.0.1") -> MagicMock:
    request = MagicMock()
    request.headers = headers
    request.client = MagicMock(host=host) if host else None
    return request


class TestGetClientIp:
    """Test cases for get_client_ip function."""

    def test_x_real_ip_header(self):
        """Test extraction from X-Real-IP header (nginx)."""
        assert get_client_ip(_request({"X-Real-IP": " 192.168.1.100 "})) == (
            "192.168.1.100"
        )

    def test_x_forwarded_for_first_ip(self):
        request = _request({"X-Forwarded-For": "203.0.113.50, 70.41.3.18"})
        assert get_client_ip(request) == "203.0.113.50"

    def test_x_real_ip_wins_over_forwarded_for(self):
        request = _request(
            {"X-Real-IP": "192.168.1.100", "X-Forwarded-For": "203.0.113.50"}
        )
        assert get_client_ip(request) == "192.168.1.100"

    def test_falls_back_to_client_host(self):
        assert get_client_ip(_request({})) == "10.0.0.1"

    def test_no_client(self):
        assert get_client_ip(_request({}, host=None)) is None


class TestGetDeviceInfo:
    """Test cases for get_device_info function."""

    def test_mobile_client_hints(self):
        request = _request(
            {
                "User-Agent": "Mozilla/5.0 (Linux; Android 14)",
                "Sec-CH-UA-Platform": '"Android"',
                "Sec-CH-UA-Mobile": "?1",
            }
        )
        info = get_device_info(request)
        assert info.browser == "Mozilla/5.0 (Linux; Android 14)"
        assert info.os == "Android"
        assert info.device_type == "mobile"

    def test_desktop_without_hints(self):
        info = get_device_info(_request({"User-Agent": "curl/8.0"}))
        assert info.os is None
        assert info.device_type == "desktop"

    def test_user_agent_is_truncated(self):
        info = get_device_info(_request({"User-Agent": "x" * 800}))
        assert len(info.browser) == 500

    def test_missing_user_agent(self):
        assert get_device_info(_request({})).browser is None
