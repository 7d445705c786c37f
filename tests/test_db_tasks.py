# test_db_tasks.py — to-do list

import os
import sys
import unittest

sys.path.insert(0, os.path.dirname(os.path.dirname(os.path.abspath(__file__))))

import db_tasks
from errors import NotFoundError
from fake_supabase import FakeSupabase

UID = "user-1"


class TestTasks(unittest.TestCase):

    def setUp(self):
        self.sb = FakeSupabase()

    def test_newest_first(self):
        db_tasks.create_task(UID, "first", sb=self.sb)
        db_tasks.create_task(UID, "second", sb=self.sb)
        self.assertEqual([t["content"] for t in db_tasks.list_tasks(UID, sb=self.sb)], ["second", "first"])

    def test_toggle(self):
        t = db_tasks.create_task(UID, "x", sb=self.sb)
        self.assertFalse(t["is_completed"])
        self.assertTrue(db_tasks.toggle_task(UID, t["id"], sb=self.sb)["is_completed"])
        self.assertFalse(db_tasks.toggle_task(UID, t["id"], sb=self.sb)["is_completed"])

    def test_delete_is_hard(self):
        t = db_tasks.create_task(UID, "x", sb=self.sb)
        self.assertEqual(db_tasks.delete_task(UID, t["id"], sb=self.sb)["content"], "x")
        self.assertEqual(self.sb.rows("tasks"), [])

    def test_other_users_task(self):
        t = db_tasks.create_task(UID, "x", sb=self.sb)
        with self.assertRaises(NotFoundError):
            db_tasks.toggle_task("user-2", t["id"], sb=self.sb)


if __name__ == "__main__":
    unittest.main(verbosity=2)
