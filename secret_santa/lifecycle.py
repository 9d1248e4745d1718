"""
lifecycle.py
When a sent gift may be taken back, and who gets to see its sender.
Pure functions of (message, actor, now); pass `now` to pin the clock.
"""
from datetime import datetime, timedelta
from typing import Optional

from .clock import as_utc, utcnow
from .models import Role

DELETE_WINDOW = timedelta(minutes=5)


def is_admin(actor) -> bool:
    return actor is not None and actor.role == Role.ADMIN.value


def within_delete_window(message, now: Optional[datetime] = None) -> bool:
    now = as_utc(now or utcnow())
    return now - as_utc(message.created_at) < DELETE_WINDOW


def can_delete(message, actor, now: Optional[datetime] = None) -> bool:
    """
    Admins may always delete (wall moderation). A sender may delete their own
    gift for five minutes after sending it. Nobody else may delete it.
    """
    if actor is None:
        return False
    if is_admin(actor):
        return True
    return actor.username == message.from_username and within_delete_window(message, now)


def can_see_sender(message, actor) -> bool:
    """Only the sender ever sees the true `from` of a gift."""
    return actor is not None and actor.username == message.from_username


def is_visible_to(message, actor) -> bool:
    """A private view (inbox or sent box) belongs to the two ends of the gift."""
    return actor is not None and actor.username in (message.from_username, message.to_username)
