"""
directory.py
The user registry. Read side (lookup/list/exists) is what the rules consult;
the write side backs registration and profile edits.
"""
import logging
from typing import List, Optional

from sqlalchemy import select
from sqlalchemy.exc import IntegrityError, SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession
from werkzeug.security import check_password_hash, generate_password_hash

from .database import commit
from .db_models import Profile
from .errors import NotFoundError, TransientStoreError, ValidationError
from .models import AVATARS, Role, default_avatar

logger = logging.getLogger(__name__)

MIN_PASSWORD_LENGTH = 3
MAX_USERNAME_LENGTH = 32


def clean_username(username: Optional[str]) -> str:
    name = (username or "").strip()
    if not name:
        raise ValidationError("Username is required")
    if len(name) > MAX_USERNAME_LENGTH:
        raise ValidationError(f"Username must be at most {MAX_USERNAME_LENGTH} characters")
    return name


def check_password(secret: Optional[str]) -> str:
    if not secret or len(secret) < MIN_PASSWORD_LENGTH:
        raise ValidationError(f"Password must be at least {MIN_PASSWORD_LENGTH} characters")
    return secret


class Directory:
    """
    Directory Class.
    Wraps the profiles table for a single unit of work (one AsyncSession).
    """
    def __init__(self, session: AsyncSession):
        self.session = session

    async def lookup(self, username: str) -> Optional[Profile]:
        try:
            result = await self.session.execute(select(Profile).where(Profile.username == username))
        except SQLAlchemyError as exc:
            logger.exception("[STORE] lookup of %s failed", username)
            raise TransientStoreError("Could not load user") from exc
        return result.scalar_one_or_none()

    async def require(self, username: str) -> Profile:
        profile = await self.lookup(username)
        if profile is None:
            raise NotFoundError(f"User {username} not found")
        return profile

    async def exists(self, username: str) -> bool:
        return await self.lookup(username) is not None

    async def list(self) -> List[Profile]:
        try:
            result = await self.session.execute(select(Profile).order_by(Profile.username))
        except SQLAlchemyError as exc:
            logger.exception("[STORE] listing users failed")
            raise TransientStoreError("Could not list users") from exc
        return list(result.scalars().all())

    async def register(
        self,
        username: str,
        password: str,
        role: Role = Role.USER,
        avatar: Optional[str] = None,
    ) -> Profile:
        """Create a profile. Usernames are unique; the password is stored hashed."""
        username = clean_username(username)
        check_password(password)
        role = Role(role)
        if avatar is not None and avatar not in AVATARS:
            raise ValidationError("Unknown avatar")
        if await self.exists(username):
            raise ValidationError("User already exists")

        profile = Profile(
            username=username,
            password_hash=generate_password_hash(password),
            role=role.value,
            avatar=avatar or default_avatar(role),
        )
        self.session.add(profile)
        try:
            await self.session.commit()
        except IntegrityError as exc:
            # Lost a registration race for the same name
            await self.session.rollback()
            raise ValidationError("User already exists") from exc
        except SQLAlchemyError as exc:
            await self.session.rollback()
            logger.exception("[STORE] registering %s failed", username)
            raise TransientStoreError("Could not create user") from exc

        logger.info("[DIRECTORY] Registered %s (%s)", username, role.value)
        return profile

    async def update_avatar(self, username: str, avatar: str) -> Profile:
        if avatar not in AVATARS:
            raise ValidationError("Unknown avatar")
        profile = await self.require(username)
        profile.avatar = avatar
        await commit(self.session, "update avatar")
        return profile

    async def set_password(self, username: str, password: str) -> None:
        check_password(password)
        profile = await self.require(username)
        profile.password_hash = generate_password_hash(password)
        await commit(self.session, "update password")

    async def verify_password(self, username: str, password: str) -> Optional[Profile]:
        """Returns the profile when the credentials match, else None."""
        profile = await self.lookup(username)
        if profile and check_password_hash(profile.password_hash, password or ""):
            return profile
        return None
