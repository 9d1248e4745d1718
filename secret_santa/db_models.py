"""
Database models for Secret Santa using SQLAlchemy.
Table names follow the hosted schema: profiles, messages, guesses, comments, app_config.
"""
import uuid

from sqlalchemy import (
    Boolean, CheckConstraint, Column, DateTime, ForeignKey, Index, Integer, String, Text,
    UniqueConstraint,
)

from .clock import utcnow
from .database import Base


def new_id() -> str:
    return str(uuid.uuid4())


class Profile(Base):
    __tablename__ = "profiles"

    id = Column(String(36), primary_key=True, default=new_id)
    username = Column(String(32), unique=True, index=True, nullable=False)
    password_hash = Column(String(255), nullable=False)
    role = Column(String(16), nullable=False, default="user")
    avatar = Column(String(16), nullable=True)
    created_at = Column(DateTime(timezone=True), nullable=False, default=utcnow)


class Message(Base):
    __tablename__ = "messages"

    id = Column(String(36), primary_key=True, default=new_id)
    # Ground truth for the guessing game; never sent to recipients or the wall
    from_username = Column(String(32), index=True, nullable=False)
    to_username = Column(String(32), index=True, nullable=False)
    body = Column(Text, nullable=False)
    type = Column(String(16), nullable=False, default="text")
    created_at = Column(DateTime(timezone=True), index=True, nullable=False, default=utcnow)


class Guess(Base):
    """
    One attempt by one guesser on one message.
    The (message_id, guesser_username, attempt) key turns the attempt cap into
    an insert the database can reject, so two racing submissions cannot both
    take the same slot.
    """
    __tablename__ = "guesses"
    __table_args__ = (
        UniqueConstraint("message_id", "guesser_username", "attempt", name="uq_guess_attempt"),
        CheckConstraint("attempt >= 1", name="ck_guess_attempt_positive"),
        Index("ix_guesses_pair", "message_id", "guesser_username"),
    )

    id = Column(String(36), primary_key=True, default=new_id)
    # Plain column, not a foreign key: guess history survives message moderation
    message_id = Column(String(36), nullable=False)
    guesser_username = Column(String(32), index=True, nullable=False)
    guessed_username = Column(String(32), nullable=False)
    is_correct = Column(Boolean, nullable=False, default=False)
    attempt = Column(Integer, nullable=False)
    created_at = Column(DateTime(timezone=True), nullable=False, default=utcnow)


class Comment(Base):
    __tablename__ = "comments"

    id = Column(String(36), primary_key=True, default=new_id)
    message_id = Column(String(36), ForeignKey("messages.id", ondelete="CASCADE"), index=True, nullable=False)
    username = Column(String(32), index=True, nullable=False)
    avatar = Column(String(16), nullable=True)
    body = Column(Text, nullable=False)
    created_at = Column(DateTime(timezone=True), nullable=False, default=utcnow)


class AppConfig(Base):
    __tablename__ = "app_config"

    key = Column(String(64), primary_key=True)
    value = Column(String(255), nullable=False)
