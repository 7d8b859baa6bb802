from typing import Any

from fastapi import APIRouter, Body, status

from taskapi.core.config import SettingsDep
from taskapi.dependencies import AuthServiceDep, CurrentUser
from taskapi.models import User
from taskapi.schemas import LoginRequest, RegisterRequest, UserRead, dump
from taskapi.validation import validate

router = APIRouter(prefix="/auth", tags=["auth"])


def token_response(message: str, user: User, token: str, settings) -> dict:
    return {
        "success": True,
        "message": message,
        "token": token,
        "expiresIn": settings.jwt_expire_minutes * 60,
        "user": dump(UserRead.model_validate(user)),
    }


@router.post("/register", status_code=status.HTTP_201_CREATED)
async def register(auth: AuthServiceDep, settings: SettingsDep, payload: Any = Body(default=None)):
    """Create an account and return a bearer token"""
    data = validate(RegisterRequest, payload).unwrap()
    user, token = await auth.register(data)
    return token_response("User registered successfully", user, token, settings)


@router.post("/login")
async def login(auth: AuthServiceDep, settings: SettingsDep, payload: Any = Body(default=None)):
    data = validate(LoginRequest, payload).unwrap()
    user, token = await auth.login(data)
    return token_response("Login successful", user, token, settings)


@router.get("/me")
async def me(user: CurrentUser):
    """Profile of the authenticated user"""
    return {"success": True, "user": dump(user)}
