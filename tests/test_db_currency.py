# test_db_currency.py — currencies, transactions and balance against the in-memory client

import os
import sys
import unittest

sys.path.insert(0, os.path.dirname(os.path.dirname(os.path.abspath(__file__))))

import db_currency
from errors import NotFoundError
from fake_supabase import FakeSupabase

UID = "user-1"
OTHER = "user-2"


class CurrencyTestCase(unittest.TestCase):

    def setUp(self):
        self.sb = FakeSupabase()
        self.currency = db_currency.create_currency(UID, "Chips", 1000, sb=self.sb)
        store = self.sb.seed("stores", {"user_id": UID, "name": "Club", "is_archived": False})[0]
        self.game = self.sb.seed(
            "cash_games",
            {"user_id": UID, "store_id": store["id"], "currency_id": self.currency["id"],
             "small_blind": 1, "big_blind": 2, "is_archived": False},
        )[0]

    def session(self, buy_in, cash_out, **extra):
        row = {"user_id": UID, "cash_game_id": self.game["id"], "buy_in": buy_in, "cash_out": cash_out,
               "is_active": cash_out is None, "start_time": "2025-03-01T10:00:00+00:00"}
        row.update(extra)
        return self.sb.seed("poker_sessions", row)[0]


class TestBalance(CurrencyTestCase):

    def test_balance_formula(self):
        db_currency.add_bonus(UID, self.currency["id"], 500, "welcome", sb=self.sb)
        db_currency.add_purchase(UID, self.currency["id"], 1000, sb=self.sb)
        self.session(300, 800)

        b = db_currency.calculate_currency_balance(self.currency["id"], sb=self.sb)
        self.assertEqual(b.total_bonuses, 500)
        self.assertEqual(b.total_purchases, 1000)
        self.assertEqual(b.total_buy_ins, 300)
        self.assertEqual(b.total_cash_outs, 800)
        self.assertEqual(b.current_balance, 1000 + 500 + 1000 - 300 + 800)

    def test_active_and_deleted_sessions_do_not_count(self):
        self.session(300, None)
        self.session(400, 0, deleted_at="2025-03-02T00:00:00+00:00")
        b = db_currency.calculate_currency_balance(self.currency["id"], sb=self.sb)
        self.assertEqual(b.current_balance, 1000)

    def test_unknown_currency_is_zero(self):
        b = db_currency.calculate_currency_balance("nope", sb=self.sb)
        self.assertEqual(b.current_balance, 0)

    def test_deleted_bonus_leaves_balance(self):
        bonus = db_currency.add_bonus(UID, self.currency["id"], 500, sb=self.sb)
        db_currency.delete_bonus(UID, bonus["id"], sb=self.sb)
        b = db_currency.calculate_currency_balance(self.currency["id"], sb=self.sb)
        self.assertEqual(b.total_bonuses, 0)


class TestCurrencies(CurrencyTestCase):

    def test_list_hides_archived_by_default(self):
        other = db_currency.create_currency(UID, "Points", sb=self.sb)
        db_currency.archive_currency(UID, other["id"], sb=self.sb)

        names = [c["name"] for c in db_currency.list_currencies(UID, sb=self.sb)]
        self.assertEqual(names, ["Chips"])
        names = [c["name"] for c in db_currency.list_currencies(UID, include_archived=True, sb=self.sb)]
        self.assertEqual(sorted(names), ["Chips", "Points"])

        db_currency.unarchive_currency(UID, other["id"], sb=self.sb)
        self.assertEqual(len(db_currency.list_currencies(UID, sb=self.sb)), 2)

    def test_list_carries_balance(self):
        rows = db_currency.list_currencies(UID, sb=self.sb)
        self.assertEqual(rows[0]["current_balance"], 1000)

    def test_list_is_per_user(self):
        db_currency.create_currency(OTHER, "Theirs", sb=self.sb)
        self.assertEqual([c["name"] for c in db_currency.list_currencies(UID, sb=self.sb)], ["Chips"])

    def test_get_currency_detail(self):
        self.session(300, 800)
        detail = db_currency.get_currency(UID, self.currency["id"], sb=self.sb)
        self.assertEqual(detail["current_balance"], 1500)
        self.assertEqual(len(detail["cash_games"]), 1)
        self.assertEqual(detail["cash_games"][0]["store_name"], "Club")
        self.assertEqual(len(detail["sessions"]), 1)

    def test_get_other_users_currency_is_not_found(self):
        with self.assertRaises(NotFoundError):
            db_currency.get_currency(OTHER, self.currency["id"], sb=self.sb)

    def test_update_ignores_unknown_fields(self):
        row = db_currency.update_currency(UID, self.currency["id"], {"name": "Gold", "user_id": OTHER}, sb=self.sb)
        self.assertEqual(row["name"], "Gold")
        self.assertEqual(row["user_id"], UID)

    def test_delete_is_soft(self):
        db_currency.delete_currency(UID, self.currency["id"], sb=self.sb)
        self.assertEqual(db_currency.list_currencies(UID, sb=self.sb), [])
        self.assertIsNotNone(self.sb.rows("currencies")[0]["deleted_at"])
        with self.assertRaises(NotFoundError):
            db_currency.delete_currency(UID, self.currency["id"], sb=self.sb)


class TestTransactions(CurrencyTestCase):

    def test_bonus_crud(self):
        bonus = db_currency.add_bonus(UID, self.currency["id"], 200, "promo", "2025-03-01T00:00:00+00:00", sb=self.sb)
        updated = db_currency.update_bonus(UID, bonus["id"], {"amount": 300}, sb=self.sb)
        self.assertEqual(updated["amount"], 300)
        self.assertEqual(updated["source"], "promo")

        rows = db_currency.list_bonuses(UID, self.currency["id"], sb=self.sb)
        self.assertEqual([r["amount"] for r in rows], [300])

    def test_purchases_newest_first(self):
        db_currency.add_purchase(UID, self.currency["id"], 100, "a", "2025-01-01T00:00:00+00:00", sb=self.sb)
        db_currency.add_purchase(UID, self.currency["id"], 200, "b", "2025-02-01T00:00:00+00:00", sb=self.sb)
        rows = db_currency.list_purchases(UID, self.currency["id"], sb=self.sb)
        self.assertEqual([r["note"] for r in rows], ["b", "a"])

    def test_transaction_on_foreign_currency(self):
        with self.assertRaises(NotFoundError):
            db_currency.add_bonus(OTHER, self.currency["id"], 100, sb=self.sb)

    def test_missing_purchase(self):
        with self.assertRaises(NotFoundError):
            db_currency.delete_purchase(UID, "missing", sb=self.sb)


if __name__ == "__main__":
    unittest.main(verbosity=2)
