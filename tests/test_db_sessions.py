# test_db_sessions.py — archived sessions and all-in records

import os
import sys
import unittest
from datetime import date

sys.path.insert(0, os.path.dirname(os.path.dirname(os.path.abspath(__file__))))

import db_all_in
import db_sessions
from errors import NotFoundError, ValidationError
from fake_supabase import FakeSupabase

UID = "user-1"
OTHER = "user-2"


class SessionTestCase(unittest.TestCase):

    def setUp(self):
        self.sb = FakeSupabase()
        self.store = self.sb.seed("stores", {"user_id": UID, "name": "Club"})[0]
        self.chips = self.sb.seed("currencies", {"user_id": UID, "name": "Chips"})[0]
        self.points = self.sb.seed("currencies", {"user_id": UID, "name": "Points"})[0]
        self.cash = self.sb.seed(
            "cash_games",
            {"user_id": UID, "store_id": self.store["id"], "currency_id": self.chips["id"],
             "small_blind": 1, "big_blind": 2},
        )[0]
        self.tourney = self.sb.seed(
            "tournaments",
            {"user_id": UID, "store_id": self.store["id"], "currency_id": self.points["id"], "buy_in": 100},
        )[0]

    def archive(self, day: int, buy_in=100, cash_out=150, game="cash", user=UID):
        data = {
            "store_id": self.store["id"],
            "game_type": game,
            "start_time": f"2025-03-{day:02d}T10:00:00+00:00",
            "end_time": f"2025-03-{day:02d}T14:00:00+00:00",
            "buy_in": buy_in,
            "cash_out": cash_out,
        }
        if game == "cash":
            data["cash_game_id"] = self.cash["id"]
        else:
            data["tournament_id"] = self.tourney["id"]
        return db_sessions.create_archive_session(user, data, sb=self.sb)


class TestListSessions(SessionTestCase):

    def setUp(self):
        super().setUp()
        self.s1 = self.archive(1)
        self.s2 = self.archive(5, game="tournament")
        self.s3 = self.archive(9)
        self.sb.seed("poker_sessions", {"user_id": UID, "is_active": True, "buy_in": 100,
                                        "start_time": "2025-03-10T10:00:00+00:00"})
        self.archive(7, user=OTHER)

    def test_paging_newest_first(self):
        page = db_sessions.list_sessions(UID, limit=2, sb=self.sb)
        self.assertEqual(page["total"], 3)
        self.assertTrue(page["has_more"])
        self.assertEqual([s["id"] for s in page["sessions"]], [self.s3["id"], self.s2["id"]])

        page = db_sessions.list_sessions(UID, limit=2, offset=2, sb=self.sb)
        self.assertEqual([s["id"] for s in page["sessions"]], [self.s1["id"]])
        self.assertFalse(page["has_more"])

    def test_game_type_filter(self):
        page = db_sessions.list_sessions(UID, game_type="tournament", sb=self.sb)
        self.assertEqual([s["id"] for s in page["sessions"]], [self.s2["id"]])

    def test_currency_filter(self):
        page = db_sessions.list_sessions(UID, currency_id=self.chips["id"], sb=self.sb)
        self.assertEqual([s["id"] for s in page["sessions"]], [self.s3["id"], self.s1["id"]])
        self.assertEqual(page["total"], 2)

    def test_currency_without_games(self):
        other = self.sb.seed("currencies", {"user_id": UID, "name": "Empty"})[0]
        page = db_sessions.list_sessions(UID, currency_id=other["id"], sb=self.sb)
        self.assertEqual(page, {"sessions": [], "total": 0, "has_more": False})

    def test_date_range(self):
        page = db_sessions.list_sessions(UID, start_from=date(2025, 3, 2), start_to=date(2025, 3, 9), sb=self.sb)
        self.assertEqual([s["id"] for s in page["sessions"]], [self.s2["id"]])

    def test_relations_attached(self):
        s = db_sessions.list_sessions(UID, sb=self.sb)["sessions"][0]
        self.assertEqual(s["store"]["name"], "Club")
        self.assertEqual(s["cash_game"]["currency"]["name"], "Chips")
        self.assertIsNone(s["tournament"])
        self.assertEqual(s["profit_loss"], 50)
        self.assertEqual(db_sessions.session_currency_id(s), str(self.chips["id"]))


class TestSessionDetail(SessionTestCase):

    def test_get_session(self):
        s = self.archive(3, buy_in=500, cash_out=200)
        db_all_in.create_all_in(UID, s["id"], {"pot_amount": 1000, "win_probability": 80, "actual_result": False},
                                sb=self.sb)
        detail = db_sessions.get_session(UID, s["id"], sb=self.sb)
        self.assertEqual(detail["profit_loss"], -300)
        self.assertEqual(detail["all_in_summary"].count, 1)
        self.assertAlmostEqual(detail["all_in_summary"].ev_difference, -800.0)
        self.assertEqual(detail["events"], [])

    def test_update_and_delete(self):
        s = self.archive(3)
        row = db_sessions.update_session(UID, s["id"], {"cash_out": 1000, "is_active": True}, sb=self.sb)
        self.assertEqual(row["cash_out"], 1000)
        self.assertFalse(row["is_active"])

        db_sessions.delete_session(UID, s["id"], sb=self.sb)
        with self.assertRaises(NotFoundError):
            db_sessions.get_session(UID, s["id"], sb=self.sb)

    def test_lookup_currency_from_bare_row(self):
        s = self.archive(3, game="tournament")
        self.assertEqual(db_sessions.lookup_session_currency_id(s, sb=self.sb), str(self.points["id"]))

    def test_profit_loss_without_cash_out(self):
        self.assertIsNone(db_sessions.profit_loss({"buy_in": 100, "cash_out": None}))


class TestAllIns(SessionTestCase):

    def setUp(self):
        super().setUp()
        self.session = self.archive(3)

    def test_list_with_summary(self):
        db_all_in.create_all_in(UID, self.session["id"],
                                {"pot_amount": 400, "win_probability": 50, "actual_result": True,
                                 "recorded_at": "2025-03-03T11:00:00+00:00"}, sb=self.sb)
        db_all_in.create_all_in(UID, self.session["id"],
                                {"pot_amount": 600, "win_probability": 50, "actual_result": False,
                                 "recorded_at": "2025-03-03T12:00:00+00:00"}, sb=self.sb)
        out = db_all_in.list_by_session(UID, self.session["id"], sb=self.sb)
        self.assertEqual([r["pot_amount"] for r in out["records"]], [600, 400])
        self.assertEqual(out["summary"].win_count, 1)

    def test_foreign_session(self):
        with self.assertRaises(NotFoundError):
            db_all_in.create_all_in(OTHER, self.session["id"],
                                    {"pot_amount": 1, "win_probability": 1, "actual_result": True}, sb=self.sb)

    def test_update_checks_merged_runout(self):
        r = db_all_in.create_all_in(UID, self.session["id"],
                                    {"pot_amount": 100, "win_probability": 50, "actual_result": True,
                                     "run_it_times": 2, "wins_in_runout": 1}, sb=self.sb)
        with self.assertRaises(ValidationError):
            db_all_in.update_all_in(UID, r["id"], {"wins_in_runout": 3}, sb=self.sb)
        row = db_all_in.update_all_in(UID, r["id"], {"wins_in_runout": 2}, sb=self.sb)
        self.assertEqual(row["wins_in_runout"], 2)

    def test_record_of_deleted_session_is_gone(self):
        r = db_all_in.create_all_in(UID, self.session["id"],
                                    {"pot_amount": 100, "win_probability": 50, "actual_result": True}, sb=self.sb)
        db_sessions.delete_session(UID, self.session["id"], sb=self.sb)
        with self.assertRaises(NotFoundError):
            db_all_in.delete_all_in(UID, r["id"], sb=self.sb)


if __name__ == "__main__":
    unittest.main(verbosity=2)
