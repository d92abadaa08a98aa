import re
from datetime import datetime, timezone
from typing import Annotated, Optional

from bson import ObjectId
from pydantic import AfterValidator, BaseModel, ConfigDict
from pydantic.alias_generators import to_camel

from ..errors import InvalidIdFormatError

OBJECT_ID_PATTERN = re.compile(r"^[0-9a-fA-F]{24}$")


class CamelModel(BaseModel):
    """Base for wire models: snake_case attributes, camelCase JSON"""

    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)


class Reference(CamelModel):
    """Display projection of a referenced document"""

    id: str
    name: Optional[str] = None
    title: Optional[str] = None


def utcnow() -> datetime:
    """Current UTC time at the millisecond precision BSON stores"""
    now = datetime.now(timezone.utc)
    return now.replace(microsecond=now.microsecond // 1000 * 1000)


def as_utc(value: datetime) -> datetime:
    # stored datetimes come back naive unless the client is tz aware
    if value.tzinfo is None:
        return value.replace(tzinfo=timezone.utc)
    return value.astimezone(timezone.utc)


UtcDatetime = Annotated[datetime, AfterValidator(as_utc)]


def is_object_id(value) -> bool:
    return isinstance(value, str) and bool(OBJECT_ID_PATTERN.match(value))


def parse_object_id(value, label: str = "ID") -> ObjectId:
    """Convert a 24-hex string to an ObjectId or raise InvalidIdFormatError"""
    if isinstance(value, ObjectId):
        return value
    if not is_object_id(value):
        raise InvalidIdFormatError(f"Invalid {label} format")
    return ObjectId(value)
