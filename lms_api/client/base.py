"""
Shared machinery of the state slices. A thunk marks its loading flag,
performs one request and hands the decoded envelope to its reducer. A failed
request leaves the data untouched: the server message (or the thunk's
fallback) becomes the error and the notification, and the thunk returns
``None``.
"""

import logging
from typing import Optional

import httpx
from pydantic import BaseModel

from .http import error_message

logger = logging.getLogger(__name__)


class SliceState(BaseModel):
    loading: bool = False
    error: Optional[str] = None
    action_loading: bool = False
    action_error: Optional[str] = None
    notification: Optional[str] = None


class Slice:
    state_class = SliceState

    def __init__(self, client: httpx.AsyncClient):
        self.client = client
        self.state = self.state_class()

    def reset(self) -> None:
        self.state = self.state_class()

    async def _request(self, method: str, url: str, fallback: str, action: bool = True, **kwargs) -> Optional[dict]:
        loading, error = ("action_loading", "action_error") if action else ("loading", "error")
        setattr(self.state, loading, True)
        setattr(self.state, error, None)
        try:
            response = await self.client.request(method, url, **kwargs)
            response.raise_for_status()
        except httpx.HTTPStatusError as e:
            message = error_message(e.response, fallback)
        except httpx.HTTPError as e:
            logger.warning(f"{method} {url} failed: {e}")
            message = fallback
        else:
            body = response.json()
            self.state.notification = body.get("message")
            return body
        finally:
            setattr(self.state, loading, False)

        setattr(self.state, error, message)
        self.state.notification = message
        return None

    # local reducers
    def clear_error(self) -> None:
        self.state.error = None
        self.state.action_error = None

    def clear_notification(self) -> None:
        self.state.notification = None


def drop_empty(params: dict) -> dict:
    return {k: v for k, v in params.items() if v not in (None, "")}


def replace_record(records: list, record: dict) -> None:
    for index, existing in enumerate(records):
        if existing.get("id") == record.get("id"):
            records[index] = record
            return
