import unittest
from datetime import datetime

from sqlalchemy import select

from secret_santa.db_models import Comment
from secret_santa.errors import ValidationError
from secret_santa.models import Direction, MessageOut, MessageType
from tests.support import CHRISTMAS_EVE, StoreTestCase


class TestMessageStore(StoreTestCase):

    async def test_create_records_sender_and_time(self):
        now = self.clock()
        message = await self.messages.create("alice", "bob", "Merry Christmas!")
        self.assertEqual(message.from_username, "alice")
        self.assertEqual(message.to_username, "bob")
        self.assertEqual(message.type, "text")
        self.assertEqual(message.created_at, now)
        self.assertTrue(message.id)

    async def test_unknown_recipient(self):
        with self.assertRaises(ValidationError):
            await self.messages.create("alice", "zed", "hello?")

    async def test_unknown_sender(self):
        with self.assertRaises(ValidationError):
            await self.messages.create("zed", "alice", "hello?")

    async def test_cannot_send_to_self(self):
        with self.assertRaises(ValidationError):
            await self.messages.create("alice", "alice", "From me, to me")
        with self.assertRaises(ValidationError):
            await self.messages.send_many("alice", ["bob", "alice"], "Almost everyone")
        self.assertEqual(await self.messages.list_all(), [])

    async def test_empty_text_body(self):
        with self.assertRaises(ValidationError):
            await self.messages.create("alice", "bob", "   ")

    async def test_attachment_needs_url(self):
        with self.assertRaises(ValidationError):
            await self.messages.create("alice", "bob", "", message_type=MessageType.IMAGE)

    async def test_attachment_body_is_url(self):
        message = await self.messages.create("alice", "bob", "/uploads/abc.png", message_type=MessageType.IMAGE)
        self.assertEqual(message.type, "image")
        self.assertEqual(message.body, "/uploads/abc.png")

    async def test_inbox_and_sent_are_newest_first(self):
        first = await self.send("alice", "bob", "one")
        second = await self.send("carol", "bob", "two")
        third = await self.send("alice", "dave", "three")

        inbox = await self.messages.list_for("bob", Direction.TO)
        self.assertEqual([m.id for m in inbox], [second.id, first.id])

        sent = await self.messages.list_for("alice", Direction.FROM)
        self.assertEqual([m.id for m in sent], [third.id, first.id])

    async def test_list_all_and_guessable(self):
        first = await self.send("alice", "bob")
        second = await self.send("bob", "carol")
        third = await self.send("carol", "alice")

        everything = await self.messages.list_all()
        self.assertEqual([m.id for m in everything], [third.id, second.id, first.id])

        guessable = await self.messages.list_guessable("bob")
        self.assertEqual([m.id for m in guessable], [third.id, first.id])

    async def test_send_many(self):
        sent = await self.messages.send_many("alice", ["bob", "carol", "bob"], "Cookies for all")
        self.assertEqual(sorted(m.to_username for m in sent), ["bob", "carol"])

    async def test_send_many_is_all_or_nothing(self):
        with self.assertRaises(ValidationError):
            await self.messages.send_many("alice", ["bob", "zed"], "Cookies for all")
        self.assertEqual(await self.messages.list_all(), [])

    async def test_send_many_needs_a_recipient(self):
        with self.assertRaises(ValidationError):
            await self.messages.send_many("alice", [" "], "nobody")

    async def test_delete_by_id_is_idempotent(self):
        message = await self.send("alice", "bob")
        self.assertTrue(await self.messages.delete_by_id(message.id))
        self.assertFalse(await self.messages.delete_by_id(message.id))
        self.assertIsNone(await self.messages.get(message.id))

    async def test_delete_removes_comments(self):
        message = await self.send("alice", "bob")
        self.session.add(Comment(message_id=message.id, username="carol", body="Cute!"))
        await self.session.commit()

        await self.messages.delete_by_id(message.id)
        result = await self.session.execute(select(Comment).where(Comment.message_id == message.id))
        self.assertEqual(result.scalars().all(), [])

    async def test_read_back_timestamps_are_utc(self):
        message = await self.send("alice", "bob")
        message.created_at = datetime(2025, 12, 24, 18, 0)  # naive, as SQLite returns it
        out = MessageOut.model_validate(message)
        self.assertEqual(out.created_at, CHRISTMAS_EVE)
        self.assertIsNotNone(out.created_at.tzinfo)
        self.assertEqual(out.created_at.utcoffset().total_seconds(), 0)


if __name__ == "__main__":
    unittest.main()
