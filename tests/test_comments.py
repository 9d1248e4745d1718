import unittest
from unittest import mock

from sqlalchemy.exc import OperationalError

from secret_santa.comments import CommentStore
from secret_santa.errors import NotFoundError, PermissionDenied, TransientStoreError, ValidationError
from tests.support import StoreTestCase


class TestComments(StoreTestCase):

    async def asyncSetUp(self):
        await super().asyncSetUp()
        self.comments = CommentStore(self.session, self.messages, self.clock)
        self.gift = await self.send("alice", "bob", "A reindeer jumper")

    async def test_add_and_list_oldest_first(self):
        first = await self.comments.add(self.gift.id, self.profiles["carol"], "So festive")
        self.clock.advance(seconds=5)
        second = await self.comments.add(self.gift.id, self.profiles["dave"], "  Love it  ")

        listed = await self.comments.list_for(self.gift.id)
        self.assertEqual([c.id for c in listed], [first.id, second.id])
        self.assertEqual(listed[1].body, "Love it")
        self.assertEqual(listed[0].avatar, "👤")

    async def test_empty_comment(self):
        with self.assertRaises(ValidationError):
            await self.comments.add(self.gift.id, self.profiles["carol"], "   ")

    async def test_comment_on_missing_message(self):
        with self.assertRaises(NotFoundError):
            await self.comments.add("no-such-id", self.profiles["carol"], "Hello?")

    async def test_author_deletes(self):
        comment = await self.comments.add(self.gift.id, self.profiles["carol"], "Oops")
        await self.comments.delete(comment.id, self.profiles["carol"])
        self.assertEqual(await self.comments.list_for(self.gift.id), [])

    async def test_admin_deletes(self):
        comment = await self.comments.add(self.gift.id, self.profiles["carol"], "Rude")
        await self.comments.delete(comment.id, self.admin)
        self.assertEqual(await self.comments.list_for(self.gift.id), [])

    async def test_stranger_cannot_delete(self):
        comment = await self.comments.add(self.gift.id, self.profiles["carol"], "Mine")
        with self.assertRaises(PermissionDenied):
            await self.comments.delete(comment.id, self.profiles["dave"])
        self.assertEqual(len(await self.comments.list_for(self.gift.id)), 1)

    async def test_delete_missing_comment(self):
        with self.assertRaises(NotFoundError):
            await self.comments.delete("no-such-id", self.admin)

    async def test_delete_when_store_is_down(self):
        comment = await self.comments.add(self.gift.id, self.profiles["carol"], "Still here")
        failure = OperationalError("SELECT comments", {}, Exception("database is locked"))
        with mock.patch.object(self.session, "get", mock.AsyncMock(side_effect=failure)):
            with self.assertRaises(TransientStoreError):
                await self.comments.delete(comment.id, self.admin)
        self.assertEqual(len(await self.comments.list_for(self.gift.id)), 1)


if __name__ == "__main__":
    unittest.main()
