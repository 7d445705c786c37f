# test_balance.py — currency balance aggregation
# Run with: python -m unittest tests.test_balance  (or python run_tests.py)

import os
import sys
import unittest

sys.path.insert(0, os.path.dirname(os.path.dirname(os.path.abspath(__file__))))

from balance import BalanceBreakdown, calculate_balance, total_balance


class TestCalculateBalance(unittest.TestCase):
    """initial + bonuses + purchases - buy-ins + cash-outs."""

    def test_initial_only(self):
        b = calculate_balance(5000)
        self.assertEqual(b, BalanceBreakdown(current_balance=5000))

    def test_full_formula(self):
        b = calculate_balance(
            1000,
            bonuses=[{"amount": 200}, {"amount": 300}],
            purchases=[{"amount": 1000}],
            sessions=[{"buy_in": 500, "cash_out": 800}, {"buy_in": 400, "cash_out": 0}],
        )
        self.assertEqual(b.total_bonuses, 500)
        self.assertEqual(b.total_purchases, 1000)
        self.assertEqual(b.total_buy_ins, 900)
        self.assertEqual(b.total_cash_outs, 800)
        self.assertEqual(b.current_balance, 1000 + 500 + 1000 - 900 + 800)

    def test_running_sessions_are_ignored(self):
        """A session without cash_out is still being played."""
        b = calculate_balance(0, sessions=[{"buy_in": 500, "cash_out": None}])
        self.assertEqual(b.total_buy_ins, 0)
        self.assertEqual(b.current_balance, 0)

    def test_soft_deleted_rows_are_ignored(self):
        b = calculate_balance(
            0,
            bonuses=[{"amount": 100, "deleted_at": "2025-01-01T00:00:00+00:00"}, {"amount": 50}],
            sessions=[{"buy_in": 100, "cash_out": 300, "deleted_at": "2025-01-01T00:00:00+00:00"}],
        )
        self.assertEqual(b.total_bonuses, 50)
        self.assertEqual(b.current_balance, 50)

    def test_balance_can_go_negative(self):
        b = calculate_balance(100, sessions=[{"buy_in": 500, "cash_out": 0}])
        self.assertEqual(b.current_balance, -400)

    def test_to_dict_keys(self):
        d = calculate_balance(10).to_dict()
        self.assertEqual(
            set(d),
            {"total_bonuses", "total_purchases", "total_buy_ins", "total_cash_outs", "current_balance"},
        )


class TestTotalBalance(unittest.TestCase):

    def test_sums_current_balance(self):
        self.assertEqual(total_balance([{"current_balance": 100}, {"current_balance": -30}]), 70)

    def test_empty(self):
        self.assertEqual(total_balance([]), 0)


if __name__ == "__main__":
    unittest.main(verbosity=2)
