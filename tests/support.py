"""
Shared fixtures: a fixed clock and an in-memory database per test.
"""
import unittest
from datetime import datetime, timedelta, timezone

from secret_santa.database import build_engine, build_session_factory, init_db
from secret_santa.directory import Directory
from secret_santa.message_store import MessageStore
from secret_santa.models import Role

CHRISTMAS_EVE = datetime(2025, 12, 24, 18, 0, tzinfo=timezone.utc)
PASSWORD = "secret"


class FakeClock:
    """A clock that only moves when told to."""

    def __init__(self, start=CHRISTMAS_EVE):
        self.now = start

    def __call__(self):
        return self.now

    def advance(self, **kwargs):
        self.now += timedelta(**kwargs)
        return self.now


class StoreTestCase(unittest.IsolatedAsyncioTestCase):
    """Fresh in-memory database with alice, bob, carol, dave and the admin."""

    users = ("alice", "bob", "carol", "dave")

    async def asyncSetUp(self):
        self.engine = build_engine("sqlite+aiosqlite://", echo=False)
        await init_db(self.engine)
        self.session_factory = build_session_factory(self.engine)
        self.session = self.session_factory()
        self.clock = FakeClock()
        self.directory = Directory(self.session)
        self.messages = MessageStore(self.session, self.directory, self.clock)

        self.profiles = {}
        for name in self.users:
            self.profiles[name] = await self.directory.register(name, PASSWORD)
        self.admin = await self.directory.register("admin", "admin123", role=Role.ADMIN)

    async def asyncTearDown(self):
        await self.session.close()
        await self.engine.dispose()

    async def send(self, sender, recipient, body="Ho ho ho", **kwargs):
        message = await self.messages.create(sender, recipient, body, **kwargs)
        self.clock.advance(seconds=1)
        return message
