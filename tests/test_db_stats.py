# test_db_stats.py — dashboard profit totals and cumulative series

import os
import sys
import unittest
from datetime import datetime, timezone

sys.path.insert(0, os.path.dirname(os.path.dirname(os.path.abspath(__file__))))

import db_stats
from fake_supabase import FakeSupabase

UID = "user-1"

# Wednesday; the week started Monday 2025-03-10
NOW = datetime(2025, 3, 12, 18, 0, tzinfo=timezone.utc)


class TestProfitTotals(unittest.TestCase):

    def setUp(self):
        self.sb = FakeSupabase()

        def session(start, buy_in, cash_out, **extra):
            row = {"user_id": UID, "is_active": False, "start_time": start, "buy_in": buy_in, "cash_out": cash_out}
            row.update(extra)
            return self.sb.seed("poker_sessions", row)[0]

        self.week = session("2025-03-11T10:00:00+00:00", 1000, 1500)
        session("2025-03-03T10:00:00+00:00", 1000, 800)
        session("2025-02-20T10:00:00+00:00", 500, 1500)
        session("2025-03-12T10:00:00+00:00", 1000, None, is_active=True)
        session("2025-03-12T09:00:00+00:00", 1000, 9000, deleted_at="2025-03-12T11:00:00+00:00")
        session("2025-03-12T09:00:00+00:00", 1000, 9000, user_id="user-2")

    def test_totals(self):
        t = db_stats.get_profit_totals(UID, now=NOW, sb=self.sb)
        self.assertEqual(t["all_time"], 1300)
        self.assertEqual(t["month"], 300)
        self.assertEqual(t["week"], 500)
        self.assertEqual(t["session_count"], 3)
        self.assertEqual(t["winning_sessions"], 2)
        self.assertAlmostEqual(t["win_rate"], 200 / 3)

    def test_ev_difference(self):
        self.sb.seed("all_in_records", {"user_id": UID, "session_id": self.week["id"], "pot_amount": 1000,
                                        "win_probability": 50, "actual_result": True})
        t = db_stats.get_profit_totals(UID, now=NOW, sb=self.sb)
        self.assertAlmostEqual(t["ev_difference"], 500.0)

    def test_query_error_returns_zeros(self):
        self.sb.fail_next = RuntimeError("boom")
        t = db_stats.get_profit_totals(UID, now=NOW, sb=self.sb)
        self.assertEqual(t["all_time"], 0)
        self.assertEqual(t["session_count"], 0)

    def test_no_user(self):
        self.assertEqual(db_stats.get_profit_totals("", sb=self.sb)["session_count"], 0)

    def test_series_is_cumulative_oldest_first(self):
        series = db_stats.get_profit_series(UID, sb=self.sb)
        self.assertEqual([p["profit"] for p in series], [1000, -200, 500])
        self.assertEqual([p["cumulative"] for p in series], [1000, 800, 1300])
        self.assertEqual(series[0]["start_time"], datetime(2025, 2, 20, 10, 0, tzinfo=timezone.utc))


if __name__ == "__main__":
    unittest.main(verbosity=2)
