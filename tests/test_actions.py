# test_actions.py — validation -> data layer -> cache revalidation -> ActionResult

import os
import sys
import unittest
from types import SimpleNamespace
from unittest import mock

sys.path.insert(0, os.path.dirname(os.path.dirname(os.path.abspath(__file__))))

import actions
import cache
import supabase_client
from errors import AuthRequiredError
from fake_supabase import FakeSupabase

UID = "user-1"


class ActionTestCase(unittest.TestCase):
    """Actions run against the in-memory client stored in session_state."""

    def setUp(self):
        self.sb = FakeSupabase()
        self.state = {"supabase_client_anon": self.sb}
        fake_st = SimpleNamespace(session_state=self.state)
        for patcher in (
            mock.patch.object(cache, "st", fake_st),
            mock.patch.object(supabase_client, "st", fake_st),
            mock.patch.object(actions, "current_user_id", return_value=UID),
        ):
            patcher.start()
            self.addCleanup(patcher.stop)


class TestResults(ActionTestCase):

    def test_success_returns_row(self):
        res = actions.create_currency({"name": "Chips", "initial_balance": 100})
        self.assertTrue(res.success)
        self.assertEqual(res.data["name"], "Chips")
        self.assertIsNone(res.error)

    def test_field_error_names_the_field(self):
        res = actions.add_bonus("whatever", {"amount": 0})
        self.assertFalse(res.success)
        self.assertTrue(res.error.startswith("amount: "))

    def test_model_error_message_is_clean(self):
        store = actions.create_store({"name": "Club"}).data
        res = actions.create_cash_game(store["id"], {"small_blind": 5, "big_blind": 2})
        self.assertFalse(res.success)
        self.assertEqual(res.error, "BB must be larger than SB")

    def test_not_found_becomes_error(self):
        res = actions.update_currency("missing", {"name": "x"})
        self.assertFalse(res.success)
        self.assertEqual(res.error, "Currency not found.")

    def test_auth_required(self):
        with mock.patch.object(actions, "current_user_id", side_effect=AuthRequiredError()):
            res = actions.create_task({"content": "x"})
        self.assertFalse(res.success)
        self.assertEqual(res.error, "Authentication required.")
        self.assertEqual(self.sb.rows("tasks"), [])


class TestRevalidation(ActionTestCase):

    def test_currency_mutation_drops_list_cache(self):
        cache.get_cached("currencies", [cache.CURRENCY_LIST], lambda: [])
        cache.get_cached("stores", [cache.STORE_LIST], lambda: [])
        actions.create_currency({"name": "Chips"})
        self.assertFalse(cache.is_cached("currencies"))
        self.assertTrue(cache.is_cached("stores"))

    def test_failed_action_keeps_cache(self):
        cache.get_cached("currencies", [cache.CURRENCY_LIST], lambda: [])
        actions.create_currency({"name": ""})
        self.assertTrue(cache.is_cached("currencies"))

    def test_bonus_drops_currency_detail(self):
        currency = actions.create_currency({"name": "Chips"}).data
        key = f"currency:{currency['id']}"
        cache.get_cached(key, [cache.currency_tag(currency["id"])], lambda: {})
        self.assertTrue(actions.add_bonus(currency["id"], {"amount": 500}).success)
        self.assertFalse(cache.is_cached(key))

    def test_live_actions_drop_active_session(self):
        started = actions.start_session({"buy_in": 1000, "initial_stack": 1000})
        self.assertTrue(started.success)
        sid = started.data["session_id"]

        cache.get_cached("active", [cache.ACTIVE_SESSION], lambda: None)
        res = actions.record_rebuy(sid, {"cost": 500})
        self.assertTrue(res.success)
        self.assertEqual(res.data["new_buy_in_total"], 1500)
        self.assertFalse(cache.is_cached("active"))

        again = actions.start_session({"buy_in": 1000})
        self.assertFalse(again.success)
        self.assertEqual(again.error, "An active session already exists.")

    def test_convert_tablemate_drops_session_detail(self):
        sid = actions.start_session({"buy_in": 1000}).data["session_id"]
        mate = actions.add_tablemate(sid, {"nickname": "Cap guy", "seat_number": 3}).data
        key = f"tablemates:{sid}"
        cache.get_cached(key, [cache.session_tag(sid)], lambda: [mate])
        cache.get_cached("players", [cache.PLAYER_LIST], lambda: [])

        res = actions.convert_tablemate_to_player(mate["id"], {"player_name": "Kenji"})
        self.assertTrue(res.success)
        self.assertFalse(cache.is_cached(key))
        self.assertFalse(cache.is_cached("players"))
        linked = [r for r in self.sb.rows("session_tablemates") if r["id"] == mate["id"]][0]
        self.assertEqual(linked["player_id"], res.data["id"])


class TestSessionCurrencyRevalidation(ActionTestCase):
    """Archive session mutations drop the balance of the game's currency."""

    def setUp(self):
        super().setUp()
        self.yen = actions.create_currency({"name": "Yen chips"}).data
        self.usd = actions.create_currency({"name": "Dollar chips"}).data
        store = actions.create_store({"name": "Club"}).data
        self.store_id = store["id"]
        self.yen_game = actions.create_cash_game(
            store["id"], {"small_blind": 1, "big_blind": 2, "currency_id": self.yen["id"]}
        ).data
        self.usd_game = actions.create_cash_game(
            store["id"], {"small_blind": 2, "big_blind": 5, "currency_id": self.usd["id"]}
        ).data

    def warm(self):
        for c in (self.yen, self.usd):
            cache.get_cached(f"currency:{c['id']}", [cache.currency_tag(c["id"])], lambda: {})
        cache.get_cached("currencies", [cache.CURRENCY_LIST], lambda: [])

    def create_session(self, game):
        res = actions.create_archive_session({
            "store_id": self.store_id,
            "game_type": "cash",
            "cash_game_id": game["id"],
            "start_time": "2025-03-01T10:00:00+00:00",
            "end_time": "2025-03-01T14:00:00+00:00",
            "buy_in": 10000,
            "cash_out": 15000,
        })
        self.assertTrue(res.success, res.error)
        return res.data

    def test_create_drops_currency(self):
        self.warm()
        self.create_session(self.yen_game)
        self.assertFalse(cache.is_cached(f"currency:{self.yen['id']}"))
        self.assertFalse(cache.is_cached("currencies"))
        self.assertTrue(cache.is_cached(f"currency:{self.usd['id']}"))

    def test_update_moving_game_drops_old_and_new_currency(self):
        session = self.create_session(self.yen_game)
        self.warm()
        res = actions.update_session(session["id"], {"cash_game_id": self.usd_game["id"]})
        self.assertTrue(res.success, res.error)
        self.assertFalse(cache.is_cached(f"currency:{self.yen['id']}"))
        self.assertFalse(cache.is_cached(f"currency:{self.usd['id']}"))
        self.assertFalse(cache.is_cached("currencies"))

    def test_delete_drops_currency(self):
        session = self.create_session(self.usd_game)
        self.warm()
        self.assertTrue(actions.delete_session(session["id"]).success)
        self.assertFalse(cache.is_cached(f"currency:{self.usd['id']}"))
        self.assertFalse(cache.is_cached("currencies"))
        self.assertTrue(cache.is_cached(f"currency:{self.yen['id']}"))


class TestFlows(ActionTestCase):

    def test_end_session_reports_profit(self):
        sid = actions.start_session({"buy_in": 1000}).data["session_id"]
        res = actions.end_session(sid, {"cash_out": 2500})
        self.assertTrue(res.success)
        self.assertEqual(res.data["profit_loss"], 1500)

    def test_player_tag_flow(self):
        player = actions.create_player({"name": "Alice"}).data
        tag = actions.create_tag({"name": "Fish", "color": "#112233"}).data
        self.assertTrue(actions.assign_tag(player["id"], tag["id"]).success)
        dup = actions.assign_tag(player["id"], tag["id"])
        self.assertFalse(dup.success)
        self.assertEqual(dup.error, "This tag is already assigned.")

    def test_task_flow(self):
        task = actions.create_task({"content": "  study ICM "}).data
        self.assertEqual(task["content"], "study ICM")
        self.assertTrue(actions.toggle_task(task["id"]).data["is_completed"])
        self.assertTrue(actions.delete_task(task["id"]).success)
        self.assertFalse(actions.delete_task(task["id"]).success)

    def test_display_name(self):
        self.sb.seed("profiles", {"user_id": UID, "email": "a@b.c", "display_name": "a"})
        res = actions.update_display_name({"display_name": "  Ace  "})
        self.assertTrue(res.success)
        self.assertEqual(res.data["display_name"], "Ace")


if __name__ == "__main__":
    unittest.main(verbosity=2)
