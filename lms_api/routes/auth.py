from datetime import timedelta

from fastapi import APIRouter, Depends, Request, Response
from fastapi.security import OAuth2PasswordRequestForm
from motor.motor_asyncio import AsyncIOMotorDatabase
from pydantic import BaseModel

from ..errors import AuthorizationError, ForbiddenError
from ..models import USERS
from ..models.common import utcnow
from ..models.user import User
from ..utils.database import get_db
from ..utils.device import require_device_fingerprint
from ..utils.security import TOKEN_COOKIE, create_access_token, get_current_user, verify_password

router = APIRouter(prefix="/auth", tags=["authentication"])


class Token(BaseModel):
    access_token: str
    token_type: str
    user_id: str
    role: str


async def authenticate_user(db: AsyncIOMotorDatabase, email: str, password: str):
    user = await db[USERS].find_one({"email": email})
    if not user or not verify_password(password, user.get("password", "")):
        return None
    return user


@router.post("/login", response_model=Token)
async def login(
    request: Request,
    response: Response,
    form_data: OAuth2PasswordRequestForm = Depends(),
    device_info: dict = Depends(require_device_fingerprint),
    db: AsyncIOMotorDatabase = Depends(get_db),
):
    """
    Authenticate user, return an access token and set the session cookie
    """
    user = await authenticate_user(db, form_data.username, form_data.password)
    if not user:
        raise AuthorizationError("Incorrect email or password", headers={"WWW-Authenticate": "Bearer"})
    if not user.get("is_active", True):
        raise ForbiddenError("Account is inactive")

    await db[USERS].update_one({"_id": user["_id"]}, {"$set": {"last_login": utcnow()}})

    settings = request.app.state.settings
    expires = timedelta(minutes=settings.ACCESS_TOKEN_EXPIRE_MINUTES)
    access_token = create_access_token(
        data={"sub": str(user["_id"]), "role": user["role"]},
        expires_delta=expires,
        settings=settings,
    )
    response.set_cookie(
        TOKEN_COOKIE,
        access_token,
        max_age=int(expires.total_seconds()),
        httponly=True,
        samesite="lax",
    )
    return {
        "access_token": access_token,
        "token_type": "bearer",
        "user_id": str(user["_id"]),
        "role": user["role"],
    }


@router.get("/me")
async def read_users_me(current_user: User = Depends(get_current_user)):
    """
    Get current user information
    """
    return {"success": True, "data": current_user.model_dump(mode="json")}


@router.post("/logout")
async def logout(response: Response, current_user: User = Depends(get_current_user)):
    """
    Clear the session cookie (bearer clients simply discard their token)
    """
    response.delete_cookie(TOKEN_COOKIE)
    return {"success": True, "message": "Successfully logged out"}
