"""
comments.py
Comment threads under wall gifts.
"""
import logging
from typing import List

from sqlalchemy import select
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession

from .clock import Clock, utcnow
from .database import commit
from .db_models import Comment
from .errors import NotFoundError, TransientStoreError, ValidationError
from .message_store import MessageStore
from .policy import can_delete_comment, require

logger = logging.getLogger(__name__)


class CommentStore:
    def __init__(self, session: AsyncSession, messages: MessageStore, clock: Clock = utcnow):
        self.session = session
        self.messages = messages
        self.clock = clock

    async def add(self, message_id: str, author, body: str) -> Comment:
        body = (body or "").strip()
        if not body:
            raise ValidationError("Comment cannot be empty")
        if await self.messages.get(message_id) is None:
            raise NotFoundError("Message not found")

        comment = Comment(
            message_id=message_id,
            username=author.username,
            avatar=author.avatar,
            body=body,
            created_at=self.clock(),
        )
        self.session.add(comment)
        await commit(self.session, "add comment")
        return comment

    async def list_for(self, message_id: str) -> List[Comment]:
        query = (
            select(Comment)
            .where(Comment.message_id == message_id)
            .order_by(Comment.created_at, Comment.id)
        )
        try:
            result = await self.session.execute(query)
        except SQLAlchemyError as exc:
            logger.exception("[STORE] listing comments for %s failed", message_id)
            raise TransientStoreError("Could not load comments") from exc
        return list(result.scalars().all())

    async def delete(self, comment_id: str, actor) -> None:
        try:
            comment = await self.session.get(Comment, comment_id)
        except SQLAlchemyError as exc:
            logger.exception("[STORE] loading comment %s failed", comment_id)
            raise TransientStoreError("Could not load comment") from exc
        if comment is None:
            raise NotFoundError("Comment not found")
        require(can_delete_comment(comment, actor), "Only the author or an admin can delete this comment")
        await self.session.delete(comment)
        await commit(self.session, "delete comment")
        logger.info("[WALL] %s deleted comment %s", actor.username, comment_id)
