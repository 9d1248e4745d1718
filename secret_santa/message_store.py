"""
message_store.py
Persistence for sent gifts (text, image or audio payloads).
"""
import logging
from typing import List, Optional, Sequence

from sqlalchemy import delete, select
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession

from .clock import Clock, utcnow
from .database import commit
from .db_models import Comment, Message
from .directory import Directory
from .errors import TransientStoreError, ValidationError
from .models import Direction, MessageType

logger = logging.getLogger(__name__)


class MessageStore:
    def __init__(self, session: AsyncSession, directory: Directory, clock: Clock = utcnow):
        self.session = session
        self.directory = directory
        self.clock = clock

    async def _validate(self, from_username: str, to_username: str, body: str, message_type: MessageType) -> str:
        if not to_username:
            raise ValidationError("Please select at least one recipient")
        if to_username == from_username:
            raise ValidationError("You cannot send a gift to yourself")
        if not await self.directory.exists(from_username):
            raise ValidationError(f"Unknown sender {from_username}")
        if not await self.directory.exists(to_username):
            raise ValidationError(f"Unknown recipient {to_username}")
        body = (body or "").strip()
        if not body:
            if message_type == MessageType.TEXT:
                raise ValidationError("Write a message!")
            raise ValidationError(f"An {message_type.value} gift needs an uploaded file")
        return body

    async def create(self, from_username: str, to_username: str, body: str,
                     message_type: MessageType = MessageType.TEXT) -> Message:
        created = await self.send_many(from_username, [to_username], body, message_type)
        return created[0]

    async def send_many(self, from_username: str, recipients: Sequence[str], body: str,
                        message_type: MessageType = MessageType.TEXT) -> List[Message]:
        """
        Send the same payload to every recipient. All recipients are validated
        before anything is written, so either every message lands or none does.
        """
        message_type = MessageType(message_type)
        recipients = list(dict.fromkeys(r.strip() for r in recipients if r and r.strip()))
        if not recipients:
            raise ValidationError("Please select at least one recipient")

        messages = []
        for to_username in recipients:
            clean_body = await self._validate(from_username, to_username, body, message_type)
            messages.append(Message(
                from_username=from_username,
                to_username=to_username,
                body=clean_body,
                type=message_type.value,
                created_at=self.clock(),
            ))

        self.session.add_all(messages)
        await commit(self.session, "send message")
        logger.info("[MESSAGES] %s sent a %s gift to %d recipient(s)", from_username, message_type.value, len(messages))
        return messages

    async def get(self, message_id: str) -> Optional[Message]:
        try:
            result = await self.session.execute(select(Message).where(Message.id == message_id))
        except SQLAlchemyError as exc:
            logger.exception("[STORE] loading message %s failed", message_id)
            raise TransientStoreError("Could not load message") from exc
        return result.scalar_one_or_none()

    async def _list(self, *criteria) -> List[Message]:
        query = select(Message).where(*criteria).order_by(Message.created_at.desc(), Message.id.desc())
        try:
            result = await self.session.execute(query)
        except SQLAlchemyError as exc:
            logger.exception("[STORE] listing messages failed")
            raise TransientStoreError("Could not list messages") from exc
        return list(result.scalars().all())

    async def list_for(self, username: str, direction: Direction = Direction.TO) -> List[Message]:
        """Inbox (direction=to) or sent box (direction=from), newest first."""
        if Direction(direction) == Direction.TO:
            return await self._list(Message.to_username == username)
        return await self._list(Message.from_username == username)

    async def list_all(self) -> List[Message]:
        return await self._list()

    async def list_guessable(self, username: str) -> List[Message]:
        """Everything on the wall except what the caller sent themselves."""
        return await self._list(Message.from_username != username)

    async def delete_by_id(self, message_id: str) -> bool:
        """Idempotent. Returns whether a message was actually removed."""
        try:
            await self.session.execute(delete(Comment).where(Comment.message_id == message_id))
            result = await self.session.execute(delete(Message).where(Message.id == message_id))
            await self.session.commit()
        except SQLAlchemyError as exc:
            await self.session.rollback()
            logger.exception("[STORE] deleting message %s failed", message_id)
            raise TransientStoreError("Could not delete message") from exc
        removed = result.rowcount > 0
        if removed:
            logger.info("[MESSAGES] Deleted message %s", message_id)
        return removed
