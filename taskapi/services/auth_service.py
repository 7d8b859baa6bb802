"""User registration, login and bearer token resolution."""

from typing import Optional

from sqlmodel import select
from sqlmodel.ext.asyncio.session import AsyncSession

from taskapi.core.config import Settings
from taskapi.core.errors import AuthenticationError, ConflictError
from taskapi.core.logging import get_logger
from taskapi.core.security import (
    create_access_token,
    decode_access_token,
    hash_password,
    verify_password,
)
from taskapi.models import User
from taskapi.schemas import LoginRequest, RegisterRequest

logger = get_logger(__name__)


class AuthService:
    def __init__(self, db: AsyncSession, settings: Settings):
        self.db = db
        self.settings = settings

    async def get_user_by_email(self, email: str) -> Optional[User]:
        result = await self.db.exec(select(User).where(User.email == email.strip().lower()))
        return result.first()

    async def get_user_by_id(self, user_id: int) -> Optional[User]:
        return await self.db.get(User, user_id)

    async def list_users(self) -> list[User]:
        result = await self.db.exec(select(User).order_by(User.created_at.desc()))
        return list(result.all())

    async def register(self, data: RegisterRequest) -> tuple[User, str]:
        if await self.get_user_by_email(data.email):
            raise ConflictError("Email already exists")

        user = User(
            name=data.name,
            email=data.email,
            password_hash=hash_password(data.password),
            role=data.role,
        )
        self.db.add(user)
        await self.db.commit()
        await self.db.refresh(user)

        logger.info("User registered", user_id=user.id, role=user.role)
        return user, self.issue_token(user)

    async def login(self, data: LoginRequest) -> tuple[User, str]:
        user = await self.get_user_by_email(data.email)
        if user is None or not verify_password(data.password, user.password_hash):
            logger.info("Login failed", email=data.email)
            raise AuthenticationError("Invalid credentials")

        logger.info("User logged in", user_id=user.id)
        return user, self.issue_token(user)

    def issue_token(self, user: User) -> str:
        return create_access_token(user.id, self.settings)

    async def authenticate(self, token: str) -> User:
        """
        Resolve a bearer token to its user.

        Signature and expiry failures propagate as jose errors; a token whose
        subject is unusable or no longer exists raises AuthenticationError.
        """
        payload = decode_access_token(token, self.settings)

        subject = payload.get("sub")
        if not isinstance(subject, str) or not subject.isdigit():
            raise AuthenticationError("Not authorized")

        user = await self.get_user_by_id(int(subject))
        if user is None:
            logger.warning("Token subject no longer exists", user_id=subject)
            raise AuthenticationError("Not authorized")
        return user
