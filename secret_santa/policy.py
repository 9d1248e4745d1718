"""
policy.py
Role-based capability checks. Every predicate takes an explicit WallConfig
snapshot or user; nothing here caches global state.
"""
import logging

from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession

from .database import commit
from .db_models import AppConfig
from .errors import PermissionDenied, TransientStoreError
from .lifecycle import is_admin
from .models import WallConfig

logger = logging.getLogger(__name__)

PUBLIC_WALL_KEY = "public_wall_enabled"


def can_view_wall(user, config: WallConfig) -> bool:
    return config.public_wall_enabled or is_admin(user)


def can_manage_users(user) -> bool:
    return is_admin(user)


def can_moderate_wall(user) -> bool:
    return is_admin(user)


def can_delete_comment(comment, user) -> bool:
    return user is not None and (is_admin(user) or comment.username == user.username)


def require(allowed: bool, detail: str = "Forbidden: Admin only") -> None:
    if not allowed:
        raise PermissionDenied(detail)


class ConfigStore:
    """Reads and writes the app_config key-value table."""

    def __init__(self, session: AsyncSession):
        self.session = session

    async def snapshot(self) -> WallConfig:
        try:
            row = await self.session.get(AppConfig, PUBLIC_WALL_KEY)
        except SQLAlchemyError as exc:
            logger.exception("[STORE] reading app_config failed")
            raise TransientStoreError("Could not read settings") from exc
        if row is None:
            return WallConfig()
        return WallConfig(public_wall_enabled=row.value == "true")

    async def set_wall_enabled(self, actor, enabled: bool) -> WallConfig:
        require(can_moderate_wall(actor))
        try:
            row = await self.session.get(AppConfig, PUBLIC_WALL_KEY)
        except SQLAlchemyError as exc:
            logger.exception("[STORE] reading app_config failed")
            raise TransientStoreError("Could not read settings") from exc
        value = "true" if enabled else "false"
        if row is None:
            self.session.add(AppConfig(key=PUBLIC_WALL_KEY, value=value))
        else:
            row.value = value
        await commit(self.session, "update settings")
        logger.info("[WALL] %s set public wall %s", actor.username, "on" if enabled else "off")
        return WallConfig(public_wall_enabled=enabled)
