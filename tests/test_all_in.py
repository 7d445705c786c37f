# test_all_in.py — all-in EV summary

import os
import sys
import unittest

sys.path.insert(0, os.path.dirname(os.path.dirname(os.path.abspath(__file__))))

from all_in import AllInSummary, calculate_summary, is_win, record_actual, record_ev


class TestRecordMath(unittest.TestCase):

    def test_ev_is_pot_times_probability(self):
        self.assertAlmostEqual(record_ev({"pot_amount": 1000, "win_probability": 65.5}), 655.0)

    def test_probability_as_string(self):
        """numeric columns can arrive as strings."""
        self.assertAlmostEqual(record_ev({"pot_amount": 200, "win_probability": "25.00"}), 50.0)

    def test_actual_all_or_nothing(self):
        self.assertEqual(record_actual({"pot_amount": 1000, "actual_result": True}), 1000.0)
        self.assertEqual(record_actual({"pot_amount": 1000, "actual_result": False}), 0.0)

    def test_actual_run_it_twice_split(self):
        r = {"pot_amount": 1000, "actual_result": False, "run_it_times": 2, "wins_in_runout": 1}
        self.assertEqual(record_actual(r), 500.0)
        self.assertTrue(is_win(r))

    def test_run_it_once_uses_actual_result(self):
        r = {"pot_amount": 1000, "actual_result": True, "run_it_times": 1, "wins_in_runout": 0}
        self.assertEqual(record_actual(r), 1000.0)
        self.assertTrue(is_win(r))

    def test_run_it_three_times_no_wins_is_loss(self):
        r = {"pot_amount": 900, "actual_result": True, "run_it_times": 3, "wins_in_runout": 0}
        self.assertEqual(record_actual(r), 0.0)
        self.assertFalse(is_win(r))


class TestCalculateSummary(unittest.TestCase):

    def test_empty_is_all_zero(self):
        self.assertEqual(calculate_summary([]), AllInSummary())

    def test_summary(self):
        records = [
            {"pot_amount": 1000, "win_probability": 80, "actual_result": False},
            {"pot_amount": 500, "win_probability": 20, "actual_result": True},
        ]
        s = calculate_summary(records)
        self.assertEqual(s.count, 2)
        self.assertEqual(s.total_pot_amount, 1500)
        self.assertAlmostEqual(s.average_win_rate, 50.0)
        self.assertAlmostEqual(s.all_in_ev, 900.0)
        self.assertAlmostEqual(s.actual_result_total, 500.0)
        self.assertAlmostEqual(s.ev_difference, -400.0)
        self.assertEqual(s.win_count, 1)
        self.assertEqual(s.loss_count, 1)

    def test_deleted_records_do_not_count(self):
        records = [
            {"pot_amount": 1000, "win_probability": 50, "actual_result": True},
            {"pot_amount": 9999, "win_probability": 50, "actual_result": True, "deleted_at": "2025-01-01"},
        ]
        self.assertEqual(calculate_summary(records).count, 1)


if __name__ == "__main__":
    unittest.main(verbosity=2)
