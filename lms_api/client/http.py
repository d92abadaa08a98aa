import json
from typing import Optional

import httpx

from ..config import settings

DEFAULT_TIMEOUT = 30.0


def create_api_client(
    base_url: Optional[str] = None,
    token: Optional[str] = None,
    device_info: Optional[dict] = None,
    transport: Optional[httpx.AsyncBaseTransport] = None,
) -> httpx.AsyncClient:
    """
    Build the shared HTTP client: JSON accept header, bearer session and the
    device fingerprint header on every request
    """
    headers = {"Accept": "application/json"}
    if token:
        headers["Authorization"] = f"Bearer {token}"
    if device_info:
        headers["X-Device-Info"] = json.dumps(device_info)

    return httpx.AsyncClient(
        base_url=base_url or settings.API_BASE_URL,
        headers=headers,
        timeout=DEFAULT_TIMEOUT,
        transport=transport,
    )


def error_message(response: httpx.Response, fallback: str) -> str:
    """Server ``message`` of an error envelope, or ``fallback``"""
    try:
        body = response.json()
    except ValueError:
        return fallback
    if isinstance(body, dict) and body.get("message"):
        return body["message"]
    return fallback
