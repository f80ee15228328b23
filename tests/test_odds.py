#!/usr/bin/env python3
"""
Odds & Payout Math Tests - tests/test_odds.py

Run with: python -m pytest tests/test_odds.py -v
"""

import math
import sys
import unittest
from pathlib import Path

# Add parent directory to path for imports
sys.path.insert(0, str(Path(__file__).parent.parent))

from execution_layer.errors import OddsConversionError
from execution_layer.odds import (
    NetMarginInputs,
    american_from_decimal,
    apply_commission,
    compute_net_margin,
    decimal_from_american,
    decimal_from_probability,
    expected_payout,
    meets_net_margin_threshold,
    normalized_probabilities,
    payout_headroom,
    probability_from_decimal,
    remove_commission,
    remove_overround,
)


class TestConversions(unittest.TestCase):
    """decimal <-> probability <-> american"""

    # =========================================================================
    # AMERICAN ODDS
    # =========================================================================

    def test_negative_american_to_decimal(self):
        """-110 is the standard juiced line: 1.9090..."""
        self.assertAlmostEqual(decimal_from_american(-110), 1.909090909, places=6)

    def test_positive_american_to_decimal(self):
        self.assertAlmostEqual(decimal_from_american(150), 2.5)

    def test_american_round_trip_on_standard_line(self):
        self.assertEqual(american_from_decimal(decimal_from_american(-110)), -110)
        self.assertEqual(american_from_decimal(2.5), 150)
        self.assertEqual(american_from_decimal(2.0), 100)

    def test_zero_american_odds_rejected(self):
        with self.assertRaises(OddsConversionError):
            decimal_from_american(0)

    # =========================================================================
    # PROBABILITY
    # =========================================================================

    def test_probability_and_decimal_are_reciprocal(self):
        self.assertAlmostEqual(decimal_from_probability(0.25), 4.0)
        self.assertAlmostEqual(probability_from_decimal(4.0), 0.25)

    def test_even_odds_of_one_rejected(self):
        """Decimal odds of exactly 1.0 pay nothing and are outside the domain."""
        with self.assertRaises(OddsConversionError) as ctx:
            probability_from_decimal(1.0)
        self.assertEqual(ctx.exception.code, "E-ODDS")
        self.assertEqual(ctx.exception.details["decimal_odds"], 1.0)

    def test_probability_bounds(self):
        for bad in (0.0, 1.0, -0.2, 1.5, math.nan):
            with self.subTest(probability=bad):
                with self.assertRaises(OddsConversionError):
                    decimal_from_probability(bad)


class TestCommissionAndOverround(unittest.TestCase):

    def test_apply_commission_on_winnings_only(self):
        self.assertAlmostEqual(apply_commission(2.0, 0.05), 1.95)

    def test_remove_commission_inverts_apply(self):
        self.assertAlmostEqual(remove_commission(1.95, 0.05), 2.0)

    def test_commission_must_be_below_one(self):
        with self.assertRaises(OddsConversionError):
            apply_commission(2.0, 1.0)
        with self.assertRaises(OddsConversionError):
            apply_commission(2.0, -0.01)

    def test_overround_removed_from_symmetric_book(self):
        """1.90 / 1.90 carries ~5% vig; fair odds are 2.0 / 2.0."""
        fair = remove_overround([1.9, 1.9])
        self.assertEqual(len(fair), 2)
        for odds in fair:
            self.assertAlmostEqual(odds, 2.0)

    def test_normalized_probabilities_sum_to_one(self):
        probs = normalized_probabilities([1.5, 3.0, 7.0])
        self.assertAlmostEqual(sum(probs), 1.0)

    def test_empty_book(self):
        self.assertEqual(normalized_probabilities([]), [])


class TestPayoutAndNetMargin(unittest.TestCase):

    # =========================================================================
    # PAYOUT
    # =========================================================================

    def test_expected_payout_includes_stake(self):
        self.assertAlmostEqual(expected_payout(50.0, 1.85), 92.5)

    def test_payout_headroom_never_negative(self):
        self.assertAlmostEqual(payout_headroom(1000.0, 92.5), 907.5)
        self.assertEqual(payout_headroom(50.0, 92.5), 0.0)

    # =========================================================================
    # NET MARGIN
    # =========================================================================

    def test_net_margin_subtracts_every_cost(self):
        """
        2.10 / 2.10 across venues: gross = 1 - 2/2.1 = 0.047619
        fees 0.01 + gas 0.005 -> net 0.032619
        """
        breakdown = compute_net_margin(
            NetMarginInputs(odds_a=2.1, odds_b=2.1, fees_a=0.005, fees_b=0.005, gas_cost=0.005)
        )
        self.assertAlmostEqual(breakdown.gross_margin, 0.047619, places=6)
        self.assertAlmostEqual(breakdown.fees_total, 0.01)
        self.assertAlmostEqual(breakdown.net_margin, 0.032619, places=6)
        self.assertEqual(breakdown.to_dict()["gas_total"], 0.005)

    def test_threshold_comparison(self):
        inputs = NetMarginInputs(odds_a=2.1, odds_b=2.1, fees_a=0.01, gas_cost=0.005)
        self.assertTrue(meets_net_margin_threshold(inputs, 0.03))
        self.assertFalse(meets_net_margin_threshold(inputs, 0.04))

    def test_threshold_outside_unit_interval_rejected(self):
        """A threshold of 1.2 is a percentage typo, not a fraction."""
        inputs = NetMarginInputs(odds_a=2.1, odds_b=2.1)
        with self.assertRaises(OddsConversionError):
            meets_net_margin_threshold(inputs, 1.2)
        with self.assertRaises(OddsConversionError):
            meets_net_margin_threshold(inputs, -0.01)

    def test_negative_costs_rejected(self):
        with self.assertRaises(OddsConversionError) as ctx:
            compute_net_margin(NetMarginInputs(odds_a=2.1, odds_b=2.1, gas_cost=-1.0))
        self.assertIn("gas_cost", ctx.exception.details)

    def test_leg_odds_of_one_rejected(self):
        with self.assertRaises(OddsConversionError):
            compute_net_margin(NetMarginInputs(odds_a=1.0, odds_b=3.0))


if __name__ == "__main__":
    unittest.main(verbosity=2)
