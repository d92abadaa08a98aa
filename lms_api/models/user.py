from enum import Enum
from typing import Optional

from pydantic import BaseModel, ConfigDict, EmailStr

from .common import UtcDatetime


class UserRole(str, Enum):
    USER = "USER"
    ADMIN = "ADMIN"
    SUPER_ADMIN = "SUPER_ADMIN"


class UserBase(BaseModel):
    email: EmailStr
    full_name: str
    username: str
    role: UserRole = UserRole.USER


class User(UserBase):
    id: str
    is_active: bool = True
    created_at: Optional[UtcDatetime] = None
    last_login: Optional[UtcDatetime] = None

    model_config = ConfigDict(from_attributes=True)

    @classmethod
    def from_document(cls, doc: dict) -> "User":
        data = {k: v for k, v in doc.items() if k not in ("_id", "password")}
        return cls(id=str(doc["_id"]), **data)
