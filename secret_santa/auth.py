"""
auth.py
Sign-in and session tokens.
Passwords are checked against werkzeug hashes; a successful sign-in mints an
opaque bearer token kept in the process-wide SessionRegistry.
"""
import logging
import secrets
from typing import Dict, Optional

from .directory import Directory
from .errors import AuthError, SantaError

logger = logging.getLogger(__name__)


class SessionRegistry:
    """
    Registry for all live sign-in tokens.
    token -> username; a user may hold several tokens (one per device).
    """
    def __init__(self):
        self.tokens: Dict[str, str] = {}

    def issue(self, username: str) -> str:
        token = secrets.token_urlsafe(32)
        self.tokens[token] = username
        return token

    def resolve(self, token: Optional[str]) -> Optional[str]:
        if not token:
            return None
        return self.tokens.get(token)

    def revoke(self, token: str) -> None:
        self.tokens.pop(token, None)

    def revoke_user(self, username: str) -> None:
        for token in [t for t, name in self.tokens.items() if name == username]:
            del self.tokens[token]


class AuthService:
    def __init__(self, directory: Directory, registry: SessionRegistry):
        self.directory = directory
        self.registry = registry

    async def sign_in(self, username: str, password: str) -> str:
        profile = await self.directory.verify_password((username or "").strip(), password)
        if profile is None:
            logger.info("[AUTH] Failed sign-in for %s", username)
            raise AuthError("Invalid Credentials")
        logger.info("[AUTH] %s signed in", profile.username)
        return self.registry.issue(profile.username)

    async def current_session(self, token: Optional[str]):
        """The signed-in profile for a token, or None."""
        username = self.registry.resolve(token)
        if username is None:
            return None
        profile = await self.directory.lookup(username)
        if profile is None:
            # Account was deleted while the token was live
            self.registry.revoke(token)
        return profile

    def sign_out(self, token: str) -> None:
        self.registry.revoke(token)

    async def update_own_password(self, user, password: str) -> bool:
        try:
            await self.directory.set_password(user.username, password)
        except SantaError as exc:
            logger.info("[AUTH] Password update for %s rejected: %s", user.username, exc.detail)
            return False
        return True
