"""
Device fingerprint guard for authentication requests.

Clients identify the device with a small JSON object sent either in the
``X-Device-Info`` header or in a ``deviceInfo`` form field.
"""

import json
import logging
from typing import Optional

from fastapi import Form, Header, Request

from ..errors import DeviceInfoError

logger = logging.getLogger(__name__)

REQUIRED_KEYS = ("platform", "screenResolution", "timezone")


def parse_device_info(raw) -> dict:
    if raw is None or raw == "":
        raise DeviceInfoError(
            "Device information is required for security purposes. "
            "Please enable JavaScript and try again.",
            code="DEVICE_INFO_MISSING",
        )

    info = raw
    if isinstance(info, str):
        try:
            info = json.loads(info)
        except json.JSONDecodeError:
            info = None

    if not isinstance(info, dict) or not all(info.get(key) for key in REQUIRED_KEYS):
        raise DeviceInfoError(
            "Invalid device information format. Please refresh the page and try again.",
            code="INVALID_DEVICE_INFO",
        )
    return info


async def require_device_fingerprint(
    request: Request,
    x_device_info: Optional[str] = Header(None),
    device_info: Optional[str] = Form(None, alias="deviceInfo"),
) -> Optional[dict]:
    """
    Dependency validating and logging the device fingerprint
    """
    if not request.app.state.settings.REQUIRE_DEVICE_INFO:
        return None

    info = parse_device_info(x_device_info or device_info)
    client = request.client.host if request.client else "unknown"
    logger.info(
        f"Device fingerprint: {request.method} {request.url.path} from {client} "
        f"platform={info['platform']} screen={info['screenResolution']} tz={info['timezone']} "
        f"agent={request.headers.get('user-agent', '')}"
    )
    return info
