import unittest
from datetime import datetime, timedelta
from types import SimpleNamespace

from secret_santa.lifecycle import DELETE_WINDOW, can_delete, can_see_sender, is_visible_to
from tests.support import CHRISTMAS_EVE

BOB = SimpleNamespace(username="bob", role="user")
CAROL = SimpleNamespace(username="carol", role="user")
ADMIN = SimpleNamespace(username="admin", role="admin")


def gift(created_at=CHRISTMAS_EVE):
    return SimpleNamespace(from_username="bob", to_username="alice", created_at=created_at)


class TestDeleteWindow(unittest.TestCase):

    def test_sender_inside_window(self):
        self.assertTrue(can_delete(gift(), BOB, CHRISTMAS_EVE + timedelta(minutes=4, seconds=59)))

    def test_sender_after_window(self):
        self.assertFalse(can_delete(gift(), BOB, CHRISTMAS_EVE + timedelta(minutes=5, seconds=1)))

    def test_window_is_exclusive_at_five_minutes(self):
        self.assertFalse(can_delete(gift(), BOB, CHRISTMAS_EVE + DELETE_WINDOW))

    def test_admin_any_time(self):
        for elapsed in (timedelta(0), timedelta(minutes=6), timedelta(days=30)):
            self.assertTrue(can_delete(gift(), ADMIN, CHRISTMAS_EVE + elapsed))

    def test_other_user_never(self):
        self.assertFalse(can_delete(gift(), CAROL, CHRISTMAS_EVE))

    def test_recipient_cannot_delete(self):
        alice = SimpleNamespace(username="alice", role="user")
        self.assertFalse(can_delete(gift(), alice, CHRISTMAS_EVE))

    def test_no_actor(self):
        self.assertFalse(can_delete(gift(), None, CHRISTMAS_EVE))

    def test_scenario_bob_at_four_and_six_minutes(self):
        message = gift()
        self.assertTrue(can_delete(message, BOB, CHRISTMAS_EVE + timedelta(minutes=4)))
        self.assertFalse(can_delete(message, BOB, CHRISTMAS_EVE + timedelta(minutes=6)))
        self.assertTrue(can_delete(message, ADMIN, CHRISTMAS_EVE + timedelta(minutes=6)))

    def test_naive_timestamps_are_utc(self):
        # SQLite returns naive datetimes
        naive = gift(created_at=CHRISTMAS_EVE.replace(tzinfo=None))
        self.assertTrue(can_delete(naive, BOB, CHRISTMAS_EVE + timedelta(minutes=1)))
        self.assertFalse(can_delete(naive, BOB, CHRISTMAS_EVE + timedelta(minutes=10)))

    def test_uses_wall_clock_by_default(self):
        fresh = gift(created_at=datetime.now().astimezone())
        self.assertTrue(can_delete(fresh, BOB))


class TestVisibility(unittest.TestCase):

    def test_only_sender_sees_sender(self):
        self.assertTrue(can_see_sender(gift(), BOB))
        self.assertFalse(can_see_sender(gift(), CAROL))
        self.assertFalse(can_see_sender(gift(), ADMIN))

    def test_private_view_belongs_to_both_ends(self):
        alice = SimpleNamespace(username="alice", role="user")
        self.assertTrue(is_visible_to(gift(), alice))
        self.assertTrue(is_visible_to(gift(), BOB))
        self.assertFalse(is_visible_to(gift(), CAROL))


if __name__ == "__main__":
    unittest.main()
