import logging
import secrets
import string
from datetime import datetime, timedelta, timezone
from typing import Optional

from bson import ObjectId
from fastapi import Depends, Request
from fastapi.security import OAuth2PasswordBearer
from jose import JWTError, jwt
from motor.motor_asyncio import AsyncIOMotorDatabase
from passlib.context import CryptContext
from pydantic import BaseModel

from ..config import Settings, settings as default_settings
from ..errors import AuthorizationError, ForbiddenError
from ..models import USERS
from ..models.user import User, UserRole
from .database import get_db

# Configure logging
logger = logging.getLogger(__name__)

TOKEN_COOKIE = "access_token"

# Password context
pwd_context = CryptContext(schemes=["bcrypt"], deprecated="auto")

# Bearer header is optional: browsers send the session cookie instead
oauth2_scheme = OAuth2PasswordBearer(tokenUrl=f"{default_settings.API_PREFIX}/auth/login", auto_error=False)


class TokenPayload(BaseModel):
    sub: str  # user ID
    role: str
    exp: int
    iat: int
    jti: str  # unique token identifier


def verify_password(plain_password: str, hashed_password: str) -> bool:
    """
    Verify a plain password against a hashed password
    """
    try:
        return pwd_context.verify(plain_password, hashed_password)
    except (ValueError, TypeError) as e:
        logger.error(f"Password verification failed: {str(e)}")
        return False


def get_password_hash(password: str) -> str:
    return pwd_context.hash(password)


def generate_secure_token(length: int = 32) -> str:
    alphabet = string.ascii_letters + string.digits
    return "".join(secrets.choice(alphabet) for _ in range(length))


def create_access_token(
    data: dict,
    expires_delta: Optional[timedelta] = None,
    settings: Optional[Settings] = None,
) -> str:
    """
    Create a signed JWT token with expiration
    """
    settings = settings or default_settings
    to_encode = data.copy()
    now = datetime.now(timezone.utc)
    expire = now + (expires_delta or timedelta(minutes=settings.ACCESS_TOKEN_EXPIRE_MINUTES))
    to_encode.update({
        "exp": expire,
        "iat": now,
        "jti": generate_secure_token(),
    })
    return jwt.encode(to_encode, settings.SECRET_KEY, algorithm=settings.ALGORITHM)


def decode_token(token: str, settings: Optional[Settings] = None) -> TokenPayload:
    """
    Decode and validate a JWT token
    """
    settings = settings or default_settings
    try:
        payload = jwt.decode(token, settings.SECRET_KEY, algorithms=[settings.ALGORITHM])
        token_data = TokenPayload(**payload)
    except (JWTError, ValueError) as e:
        logger.warning(f"Token validation failed: {str(e)}")
        raise AuthorizationError("Could not validate credentials", headers={"WWW-Authenticate": "Bearer"})

    if not ObjectId.is_valid(token_data.sub):
        raise AuthorizationError("Could not validate credentials", headers={"WWW-Authenticate": "Bearer"})
    return token_data


async def get_current_user(
    request: Request,
    token: Optional[str] = Depends(oauth2_scheme),
    db: AsyncIOMotorDatabase = Depends(get_db),
) -> User:
    """
    Dependency resolving the principal from the bearer header or session cookie
    """
    token = token or request.cookies.get(TOKEN_COOKIE)
    if not token:
        raise AuthorizationError("Not authenticated", headers={"WWW-Authenticate": "Bearer"})

    token_data = decode_token(token, request.app.state.settings)
    user = await db[USERS].find_one({"_id": ObjectId(token_data.sub)})
    if user is None:
        raise AuthorizationError("User not found")
    return User.from_document(user)


async def get_current_active_user(current_user: User = Depends(get_current_user)) -> User:
    if not current_user.is_active:
        raise ForbiddenError("Inactive user")
    return current_user


def require_roles(*roles: UserRole):
    """
    Build a dependency admitting only active users holding one of ``roles``
    """
    allowed = {UserRole(role) for role in roles}

    async def checker(current_user: User = Depends(get_current_active_user)) -> User:
        if current_user.role not in allowed:
            logger.warning(f"User {current_user.id} with role {current_user.role.value} denied")
            raise ForbiddenError("You do not have permission to access this route")
        return current_user

    return checker


# Dependency for admin-only access
get_current_admin = require_roles(UserRole.ADMIN, UserRole.SUPER_ADMIN)
