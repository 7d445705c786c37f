# test_db_live.py — active session event log, replay, event edits, tablemates

import os
import sys
import unittest
from datetime import timedelta

sys.path.insert(0, os.path.dirname(os.path.dirname(os.path.abspath(__file__))))

import db_live
import live_session as ls
from db import parse_ts
from errors import ConflictError, NotFoundError, ValidationError
from fake_supabase import FakeSupabase

UID = "user-1"
OTHER = "user-2"


class LiveTestCase(unittest.TestCase):

    def setUp(self):
        self.sb = FakeSupabase()
        self.started = db_live.start_session(UID, {"buy_in": 10000, "initial_stack": 10000}, sb=self.sb)
        self.sid = self.started["session_id"]
        self.t0 = parse_ts(self.started["start_time"])

    def events(self):
        return db_live.list_events(UID, self.sid, sb=self.sb)

    def buy_in(self):
        return db_live.find_active_session(UID, sb=self.sb)["buy_in"]


class TestLifecycle(LiveTestCase):

    def test_start_writes_start_and_stack_events(self):
        evs = self.events()
        self.assertEqual([(e["sequence"], e["event_type"]) for e in evs],
                         [(1, ls.SESSION_START), (2, ls.STACK_UPDATE)])
        self.assertEqual(evs[1]["event_data"], {"amount": 10000})
        self.assertEqual(self.started["event_id"], evs[0]["id"])

    def test_only_one_active_session(self):
        with self.assertRaises(ConflictError):
            db_live.start_session(UID, {"buy_in": 100}, sb=self.sb)
        # other users are unaffected
        db_live.start_session(OTHER, {"buy_in": 100}, sb=self.sb)

    def test_end_session(self):
        out = db_live.end_session(UID, self.sid, 15000, sb=self.sb)
        self.assertEqual(out["profit_loss"], 5000)
        self.assertFalse(out["session"]["is_active"])
        self.assertEqual(out["session"]["cash_out"], 15000)
        self.assertEqual(self.events()[-1]["event_data"], {"cashOut": 15000})
        self.assertIsNone(db_live.get_active_session(UID, sb=self.sb))

        with self.assertRaises(NotFoundError):
            db_live.update_stack(UID, self.sid, 100, sb=self.sb)

    def test_other_user_cannot_write(self):
        with self.assertRaises(NotFoundError):
            db_live.update_stack(OTHER, self.sid, 100, sb=self.sb)

    def test_pause_resume(self):
        db_live.pause_session(UID, self.sid, sb=self.sb)
        with self.assertRaises(ValidationError):
            db_live.pause_session(UID, self.sid, sb=self.sb)
        db_live.resume_session(UID, self.sid, sb=self.sb)
        with self.assertRaises(ValidationError):
            db_live.resume_session(UID, self.sid, sb=self.sb)


class TestRecording(LiveTestCase):

    def test_sequences_increment(self):
        db_live.update_stack(UID, self.sid, 9000, sb=self.sb)
        db_live.record_hand_complete(UID, self.sid, "BTN", sb=self.sb)
        self.assertEqual([e["sequence"] for e in self.events()], [1, 2, 3, 4])

    def test_rebuy_and_addon_raise_buy_in(self):
        out = db_live.record_rebuy(UID, self.sid, 5000, sb=self.sb)
        self.assertEqual(out["new_buy_in_total"], 15000)
        out = db_live.record_addon(UID, self.sid, 2000, chips=3000, sb=self.sb)
        self.assertEqual(out["new_buy_in_total"], 17000)
        self.assertEqual(out["event_data"], {"amount": 2000, "cost": 2000, "chips": 3000})
        self.assertEqual(self.buy_in(), 17000)

    def test_active_session_state(self):
        db_live.update_stack(UID, self.sid, 8000, sb=self.sb)
        db_live.record_rebuy(UID, self.sid, 5000, sb=self.sb)
        db_live.record_hand_complete(UID, self.sid, "CO", sb=self.sb)
        db_live.record_hands_passed(UID, self.sid, 4, sb=self.sb)
        db_live.seat_player(UID, self.sid, 3, "Villain", sb=self.sb)

        active = db_live.get_active_session(UID, now=self.t0 + timedelta(hours=2), sb=self.sb)
        state = active["state"]
        self.assertEqual(state.current_stack, 13000)
        self.assertEqual(state.hands_played, 5)
        self.assertEqual(state.last_hand_position, "CO")
        self.assertGreaterEqual(state.elapsed_minutes, 119)
        self.assertEqual(active["buy_in"], 15000)
        self.assertEqual(active["events"][-1]["event_data"], {"seatNumber": 3, "playerName": "Villain"})

    def test_hand_undo(self):
        db_live.record_hand_complete(UID, self.sid, sb=self.sb)
        second = db_live.record_hand_complete(UID, self.sid, sb=self.sb)
        removed = db_live.delete_latest_hand_complete(UID, self.sid, sb=self.sb)
        self.assertEqual(removed["id"], second["id"])
        db_live.delete_latest_hand_complete(UID, self.sid, sb=self.sb)
        with self.assertRaises(NotFoundError):
            db_live.delete_latest_hand_complete(UID, self.sid, sb=self.sb)

    def test_tournament_relation_has_blind_levels(self):
        db_live.end_session(UID, self.sid, 0, sb=self.sb)
        t = self.sb.seed("tournaments", {"user_id": UID, "name": "Daily", "buy_in": 100})[0]
        self.sb.seed("tournament_blind_levels", {"tournament_id": t["id"], "level": 1, "small_blind": 1,
                                                 "big_blind": 2, "duration_minutes": 20})
        db_live.start_session(UID, {"buy_in": 100, "game_type": "tournament", "tournament_id": t["id"]}, sb=self.sb)
        active = db_live.get_active_session(UID, sb=self.sb)
        self.assertEqual(active["tournament"]["name"], "Daily")
        self.assertEqual(len(active["tournament"]["blind_levels"]), 1)
        self.assertIsNone(active["cash_game"])


class TestEventEdits(LiveTestCase):

    def test_start_event_is_locked(self):
        with self.assertRaises(ValidationError):
            db_live.delete_event(UID, self.started["event_id"], sb=self.sb)

    def test_unknown_event(self):
        with self.assertRaises(NotFoundError):
            db_live.delete_event(UID, "missing", sb=self.sb)

    def test_deleting_rebuy_gives_cost_back(self):
        rebuy = db_live.record_rebuy(UID, self.sid, 5000, sb=self.sb)
        out = db_live.delete_event(UID, rebuy["id"], sb=self.sb)
        self.assertEqual(out["deleted_event_ids"], [str(rebuy["id"])])
        self.assertEqual(self.buy_in(), 10000)

    def test_deleting_pause_removes_resume(self):
        pause = db_live.pause_session(UID, self.sid, sb=self.sb)
        resume = db_live.resume_session(UID, self.sid, sb=self.sb)
        out = db_live.delete_event(UID, pause["id"], sb=self.sb)
        self.assertEqual(out["deleted_event_ids"], [str(pause["id"]), str(resume["id"])])
        self.assertEqual(len(self.events()), 2)

    def test_edit_rebuy_amount_moves_buy_in(self):
        rebuy = db_live.record_rebuy(UID, self.sid, 5000, sb=self.sb)
        row = db_live.update_event(UID, rebuy["id"], amount=3000, sb=self.sb)
        self.assertEqual(row["event_data"]["amount"], 3000)
        self.assertEqual(row["event_data"]["cost"], 3000)
        self.assertEqual(self.buy_in(), 13000)

    def test_amount_not_editable_on_hands(self):
        hand = db_live.record_hand_complete(UID, self.sid, sb=self.sb)
        with self.assertRaises(ValidationError):
            db_live.update_event(UID, hand["id"], amount=5, sb=self.sb)

    def test_edit_time_between_neighbours(self):
        db_live.update_stack(UID, self.sid, 100, recorded_at=self.t0 + timedelta(minutes=10), sb=self.sb)
        mid = db_live.update_stack(UID, self.sid, 200, recorded_at=self.t0 + timedelta(minutes=20), sb=self.sb)
        db_live.update_stack(UID, self.sid, 300, recorded_at=self.t0 + timedelta(minutes=30), sb=self.sb)
        later = self.t0 + timedelta(hours=1)

        row = db_live.update_event_time(UID, mid["id"], self.t0 + timedelta(minutes=25), now=later, sb=self.sb)
        self.assertEqual(parse_ts(row["recorded_at"]), self.t0 + timedelta(minutes=25))

        with self.assertRaises(ValidationError):
            db_live.update_event_time(UID, mid["id"], self.t0 + timedelta(minutes=35), now=later, sb=self.sb)

    def test_finished_session_is_frozen(self):
        stack = db_live.update_stack(UID, self.sid, 500, sb=self.sb)
        db_live.end_session(UID, self.sid, 500, sb=self.sb)
        with self.assertRaises(ValidationError):
            db_live.delete_event(UID, stack["id"], sb=self.sb)


class TestTablemates(LiveTestCase):

    def test_add_list_delete(self):
        a = db_live.add_tablemate(UID, self.sid, {"nickname": "Cap", "seat_number": 5}, sb=self.sb)
        db_live.add_tablemate(UID, self.sid, {"nickname": "Hoodie", "seat_number": 2}, sb=self.sb)
        names = [t["nickname"] for t in db_live.list_tablemates(UID, self.sid, sb=self.sb)]
        self.assertEqual(names, ["Hoodie", "Cap"])

        db_live.update_tablemate(UID, a["id"], {"session_notes": "3-bets light"}, sb=self.sb)
        db_live.delete_tablemate(UID, a["id"], sb=self.sb)
        names = [t["nickname"] for t in db_live.list_tablemates(UID, self.sid, sb=self.sb)]
        self.assertEqual(names, ["Hoodie"])

    def test_link_requires_own_player(self):
        t = db_live.add_tablemate(UID, self.sid, {"nickname": "Cap"}, sb=self.sb)
        theirs = self.sb.seed("players", {"user_id": OTHER, "name": "X", "is_temporary": False})[0]
        with self.assertRaises(NotFoundError):
            db_live.link_tablemate(UID, t["id"], theirs["id"], sb=self.sb)

        mine = self.sb.seed("players", {"user_id": UID, "name": "Y", "is_temporary": False})[0]
        row = db_live.link_tablemate(UID, t["id"], mine["id"], sb=self.sb)
        self.assertEqual(row["player_id"], mine["id"])

    def test_convert_to_player(self):
        t = db_live.add_tablemate(UID, self.sid, {"nickname": "Cap"}, sb=self.sb)
        player = db_live.convert_tablemate_to_player(UID, t["id"], "Captain", "loose", sb=self.sb)
        self.assertEqual(player["name"], "Captain")
        self.assertFalse(player["is_temporary"])
        self.assertEqual(db_live.list_tablemates(UID, self.sid, sb=self.sb)[0]["player_id"], player["id"])


if __name__ == "__main__":
    unittest.main(verbosity=2)
