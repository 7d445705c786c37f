# test_db_stores.py — stores, cash games, tournaments

import os
import sys
import unittest

sys.path.insert(0, os.path.dirname(os.path.dirname(os.path.abspath(__file__))))

import db_stores
from errors import NotFoundError, ValidationError
from fake_supabase import FakeSupabase

UID = "user-1"
OTHER = "user-2"


class StoreTestCase(unittest.TestCase):

    def setUp(self):
        self.sb = FakeSupabase()
        self.store = db_stores.create_store(UID, {"name": "Club", "address": "1-2-3 Shibuya"}, sb=self.sb)


class TestStores(StoreTestCase):

    def test_list_with_counts(self):
        db_stores.create_cash_game(UID, self.store["id"], {"small_blind": 1, "big_blind": 2}, sb=self.sb)
        g = db_stores.create_cash_game(UID, self.store["id"], {"small_blind": 2, "big_blind": 5}, sb=self.sb)
        db_stores.archive_cash_game(UID, g["id"], sb=self.sb)
        db_stores.create_tournament(UID, self.store["id"], {"buy_in": 5000}, sb=self.sb)

        rows = db_stores.list_stores(UID, sb=self.sb)
        self.assertEqual(len(rows), 1)
        self.assertEqual(rows[0]["cash_game_count"], 1)
        self.assertEqual(rows[0]["tournament_count"], 1)

    def test_archived_store_hidden(self):
        db_stores.archive_store(UID, self.store["id"], sb=self.sb)
        self.assertEqual(db_stores.list_stores(UID, sb=self.sb), [])
        self.assertEqual(len(db_stores.list_stores(UID, include_archived=True, sb=self.sb)), 1)

    def test_get_store_has_map_url(self):
        store = db_stores.get_store(UID, self.store["id"], sb=self.sb)
        self.assertIn("query=1-2-3%20Shibuya", store["google_maps_url"])
        self.assertEqual(store["cash_games"], [])

    def test_other_user_cannot_read(self):
        with self.assertRaises(NotFoundError):
            db_stores.get_store(OTHER, self.store["id"], sb=self.sb)

    def test_update_and_delete(self):
        row = db_stores.update_store(UID, self.store["id"], {"notes": "late games"}, sb=self.sb)
        self.assertEqual(row["notes"], "late games")
        db_stores.delete_store(UID, self.store["id"], sb=self.sb)
        with self.assertRaises(NotFoundError):
            db_stores.get_store(UID, self.store["id"], sb=self.sb)


class TestCashGames(StoreTestCase):

    def test_create_in_foreign_store_is_bad_request(self):
        with self.assertRaises(ValidationError):
            db_stores.create_cash_game(OTHER, self.store["id"], {"small_blind": 1, "big_blind": 2}, sb=self.sb)

    def test_update_checks_merged_blinds(self):
        g = db_stores.create_cash_game(UID, self.store["id"], {"small_blind": 1, "big_blind": 2}, sb=self.sb)
        with self.assertRaises(ValidationError):
            db_stores.update_cash_game(UID, g["id"], {"small_blind": 2}, sb=self.sb)
        row = db_stores.update_cash_game(UID, g["id"], {"big_blind": 3}, sb=self.sb)
        self.assertEqual(row["big_blind"], 3)

    def test_update_checks_merged_straddles_and_ante(self):
        g = db_stores.create_cash_game(
            UID, self.store["id"], {"small_blind": 1, "big_blind": 2, "straddle1": 4}, sb=self.sb
        )
        # raising BB past the stored straddle breaks the ladder
        with self.assertRaises(ValidationError):
            db_stores.update_cash_game(UID, g["id"], {"big_blind": 5}, sb=self.sb)
        with self.assertRaises(ValidationError):
            db_stores.update_cash_game(UID, g["id"], {"straddle2": 3}, sb=self.sb)
        with self.assertRaises(ValidationError):
            db_stores.update_cash_game(UID, g["id"], {"ante": 1}, sb=self.sb)
        row = db_stores.update_cash_game(UID, g["id"], {"ante": 1, "ante_type": "bb_ante"}, sb=self.sb)
        self.assertEqual(row["ante"], 1)

    def test_list_includes_currency_name(self):
        currency = self.sb.seed("currencies", {"user_id": UID, "name": "Chips"})[0]
        db_stores.create_cash_game(
            UID, self.store["id"], {"small_blind": 1, "big_blind": 2, "currency_id": currency["id"]}, sb=self.sb
        )
        rows = db_stores.list_cash_games(UID, self.store["id"], sb=self.sb)
        self.assertEqual(rows[0]["currency_name"], "Chips")

    def test_delete(self):
        g = db_stores.create_cash_game(UID, self.store["id"], {"small_blind": 1, "big_blind": 2}, sb=self.sb)
        db_stores.delete_cash_game(UID, g["id"], sb=self.sb)
        with self.assertRaises(NotFoundError):
            db_stores.get_cash_game(UID, g["id"], sb=self.sb)


class TestTournaments(StoreTestCase):

    def create(self, **extra):
        data = {"name": "Main", "buy_in": 10000}
        data.update(extra)
        return db_stores.create_tournament(UID, self.store["id"], data, sb=self.sb)

    def test_nested_structures(self):
        t = self.create(
            blind_levels=[
                {"level": 1, "small_blind": 100, "big_blind": 200, "duration_minutes": 20},
                {"level": 2, "is_break": True, "duration_minutes": 10},
            ],
            prize_structures=[
                {
                    "min_entrants": 1,
                    "max_entrants": 20,
                    "prize_levels": [
                        {"min_position": 1, "max_position": 1,
                         "prize_items": [{"prize_type": "percentage", "percentage": 60}]},
                        {"min_position": 2, "max_position": 2,
                         "prize_items": [{"prize_type": "percentage", "percentage": 40}]},
                    ],
                }
            ],
        )
        full = db_stores.get_tournament(UID, t["id"], sb=self.sb)
        self.assertEqual([lvl["level"] for lvl in full["blind_levels"]], [1, 2])
        self.assertTrue(full["blind_levels"][1]["is_break"])
        structure = full["prize_structures"][0]
        self.assertEqual(structure["sort_order"], 0)
        self.assertEqual([lvl["min_position"] for lvl in structure["prize_levels"]], [1, 2])
        self.assertEqual(structure["prize_levels"][0]["prize_items"][0]["percentage"], 60)

    def test_set_blind_levels_replaces(self):
        t = self.create(blind_levels=[{"level": 1, "small_blind": 100, "big_blind": 200, "duration_minutes": 20}])
        db_stores.set_blind_levels(
            UID, t["id"],
            [{"level": 1, "small_blind": 200, "big_blind": 400, "duration_minutes": 15},
             {"level": 2, "small_blind": 300, "big_blind": 600, "duration_minutes": 15}],
            sb=self.sb,
        )
        levels = db_stores.list_blind_levels(t["id"], sb=self.sb)
        self.assertEqual([lvl["small_blind"] for lvl in levels], [200, 300])

    def test_reorder(self):
        t1 = self.create(name="A")
        t2 = self.create(name="B")
        touched = db_stores.reorder_tournaments(UID, self.store["id"], [(t2["id"], 0), (t1["id"], 1)], sb=self.sb)
        self.assertEqual(touched, 2)
        names = [t["name"] for t in db_stores.get_store(UID, self.store["id"], sb=self.sb)["tournaments"]]
        self.assertEqual(names, ["B", "A"])

    def test_reorder_ignores_other_stores(self):
        other_store = db_stores.create_store(UID, {"name": "Other"}, sb=self.sb)
        t = db_stores.create_tournament(UID, other_store["id"], {"buy_in": 100}, sb=self.sb)
        self.assertEqual(db_stores.reorder_tournaments(UID, self.store["id"], [(t["id"], 3)], sb=self.sb), 0)

    def test_archive_and_delete(self):
        t = self.create()
        db_stores.archive_tournament(UID, t["id"], sb=self.sb)
        self.assertEqual(db_stores.list_tournaments(UID, self.store["id"], sb=self.sb), [])
        db_stores.delete_tournament(UID, t["id"], sb=self.sb)
        with self.assertRaises(NotFoundError):
            db_stores.get_tournament(UID, t["id"], sb=self.sb)


if __name__ == "__main__":
    unittest.main(verbosity=2)
