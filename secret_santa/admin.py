"""
admin.py
Privileged account operations: create user, delete user, reset the admin.
Each one is single-shot and answers with an AdminOpResult instead of raising
for ordinary failures; calling without admin rights raises PermissionDenied.
"""
import logging
import secrets
from typing import Optional

from sqlalchemy import delete, or_, select
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession
from werkzeug.security import generate_password_hash

from .auth import SessionRegistry
from .db_models import Comment, Guess, Message, Profile
from .directory import Directory
from .errors import SantaError
from .models import AdminOpResult, Role, default_avatar
from .policy import can_manage_users, require

logger = logging.getLogger(__name__)

ADMIN_USERNAME = "admin"


class AdminService:
    def __init__(self, session: AsyncSession, directory: Directory, registry: SessionRegistry):
        self.session = session
        self.directory = directory
        self.registry = registry

    async def create_user(self, actor, username: str, password: Optional[str] = None,
                          role: Role = Role.USER) -> AdminOpResult:
        """
        Create an account on someone's behalf. Without a password a random
        temporary one is generated and returned once.
        """
        require(can_manage_users(actor))
        temporary = None
        if not password:
            temporary = password = secrets.token_urlsafe(8)
        try:
            profile = await self.directory.register(username, password, role=role)
        except SantaError as exc:
            return AdminOpResult(success=False, error=exc.detail)

        logger.info("[ADMIN] %s recruited %s", actor.username, profile.username)
        return AdminOpResult(success=True, temporary_password=temporary)

    async def delete_user(self, actor, username: str) -> AdminOpResult:
        """
        Remove an account together with its sessions, its gifts (sent and
        received, with their comments), its comments and its guesses.
        """
        require(can_manage_users(actor))
        if not username:
            return AdminOpResult(success=False, error="Missing username")
        if username == ADMIN_USERNAME:
            return AdminOpResult(success=False, error="Cannot delete the main admin")

        profile = await self.directory.lookup(username)
        if profile is None:
            return AdminOpResult(success=False, error="User not found")

        involved = select(Message.id).where(
            or_(Message.from_username == username, Message.to_username == username)
        )
        try:
            await self.session.execute(delete(Comment).where(
                or_(Comment.username == username, Comment.message_id.in_(involved))
            ))
            await self.session.execute(delete(Message).where(
                or_(Message.from_username == username, Message.to_username == username)
            ))
            await self.session.execute(delete(Guess).where(Guess.guesser_username == username))
            await self.session.delete(profile)
            await self.session.commit()
        except SQLAlchemyError as exc:
            await self.session.rollback()
            logger.exception("[ADMIN] Deleting %s failed", username)
            return AdminOpResult(success=False, error="Could not delete user")

        self.registry.revoke_user(username)
        logger.info("[ADMIN] %s deleted %s", actor.username, username)
        return AdminOpResult(success=True)

    async def reset_admin(self, password: str) -> AdminOpResult:
        """Make sure the main admin exists with the default password, role and avatar."""
        try:
            profile = await self.directory.lookup(ADMIN_USERNAME)
            if profile is None:
                logger.info("[ADMIN] Creating new admin user...")
                profile = Profile(username=ADMIN_USERNAME)
                self.session.add(profile)
            else:
                logger.info("[ADMIN] Admin exists, updating password...")
            profile.password_hash = generate_password_hash(password)
            profile.role = Role.ADMIN.value
            profile.avatar = default_avatar(Role.ADMIN)
            await self.session.commit()
        except SantaError as exc:
            return AdminOpResult(success=False, error=exc.detail)
        except SQLAlchemyError as exc:
            await self.session.rollback()
            logger.exception("[ADMIN] Reset execution error")
            return AdminOpResult(success=False, error="Could not reset admin")

        self.registry.revoke_user(ADMIN_USERNAME)
        return AdminOpResult(success=True)
