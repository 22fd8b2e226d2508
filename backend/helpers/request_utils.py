"""
Request utilities for extracting client information.

Report submissions record where they came from: client IP, browser
string and a coarse device type taken from client hint headers.
"""

from dataclasses import dataclass
from typing import Optional

from fastapi import Request


@dataclass
class DeviceInfo:
    browser: Optional[str]
    os: Optional[str]
    device_type: str


def get_client_ip(request: Request) -> Optional[str]:
    """
    Extract the client's real IP address from the request.

    Handles common proxy headers in order of precedence:
    1. X-Real-IP (nginx)
    2. X-Forwarded-For (standard proxy header, first IP)
    3. Direct client.host

    Args:
        request: FastAPI request object

    Returns:
        Client IP address or None if not available
    """
    real_ip = request.headers.get("X-Real-IP")
    if real_ip:
        return real_ip.strip()

    forwarded_for = request.headers.get("X-Forwarded-For")
    if forwarded_for:
        first_ip = forwarded_for.split(",")[0].strip()
        if first_ip:
            return first_ip

    if request.client:
        return request.client.host

    return None


def get_device_info(request: Request) -> DeviceInfo:
    """
    Describe the submitting device from request headers.

    The user agent is truncated to 500 characters. Platform and mobile
    flags come from the Sec-CH-UA client hints when the browser sends them.
    """
    user_agent = request.headers.get("User-Agent")
    platform = request.headers.get("Sec-CH-UA-Platform")
    if platform:
        platform = platform.strip('"')[:100]
    is_mobile = request.headers.get("Sec-CH-UA-Mobile") == "?1"

    return DeviceInfo(
        browser=user_agent[:500] if user_agent else None,
        os=platform or None,
        device_type="mobile" if is_mobile else "desktop",
    )
