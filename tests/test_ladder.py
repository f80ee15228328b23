#!/usr/bin/env python3
"""
Ladder Alignment Tests - tests/test_ladder.py

Run with: python -m pytest tests/test_ladder.py -v
"""

import math
import sys
import unittest
from pathlib import Path

# Add parent directory to path for imports
sys.path.insert(0, str(Path(__file__).parent.parent))

from execution_layer.errors import IncompatibleLadderError
from execution_layer.ladder import align_odds_to_ladder


class TestStepLadder(unittest.TestCase):
    """Fixed-step ladders round to the nearest multiple, half away from zero."""

    def test_rounds_up_to_nearest_step(self):
        self.assertEqual(align_odds_to_ladder(1.934, 0.05), 1.95)

    def test_rounds_down_to_nearest_step(self):
        self.assertEqual(align_odds_to_ladder(1.921, 0.05), 1.9)

    def test_exact_half_rounds_away_from_zero(self):
        """1.925 / 0.05 = 38.5 -> 39 -> 1.95"""
        self.assertEqual(align_odds_to_ladder(1.925, 0.05), 1.95)

    def test_value_already_on_ladder_unchanged(self):
        self.assertEqual(align_odds_to_ladder(2.0, 0.05), 2.0)
        self.assertEqual(align_odds_to_ladder(1.35, 0.01), 1.35)

    def test_non_positive_step_rejected(self):
        for step in (0, -0.05, math.inf, math.nan):
            with self.subTest(step=step):
                with self.assertRaises(IncompatibleLadderError):
                    align_odds_to_ladder(1.9, step)


class TestExplicitLadder(unittest.TestCase):

    def test_picks_nearest_entry(self):
        self.assertEqual(align_odds_to_ladder(1.9, [1.83, 1.91, 2.01]), 1.91)

    def test_unordered_ladder(self):
        self.assertEqual(align_odds_to_ladder(2.0, (2.5, 1.83, 2.01, 1.91)), 2.01)

    def test_tie_prefers_higher_entry(self):
        """1.5 is equidistant from 1.4 and 1.6 (up to float noise)."""
        self.assertEqual(align_odds_to_ladder(1.5, [1.4, 1.6]), 1.6)
        self.assertEqual(align_odds_to_ladder(1.5, [1.6, 1.4]), 1.6)

    def test_outside_ladder_clamps_to_end(self):
        self.assertEqual(align_odds_to_ladder(5.0, [1.83, 1.91, 2.01]), 2.01)
        self.assertEqual(align_odds_to_ladder(1.01, [1.83, 1.91, 2.01]), 1.83)

    def test_empty_ladder_rejected(self):
        with self.assertRaises(IncompatibleLadderError):
            align_odds_to_ladder(1.9, [])

    def test_non_finite_entry_rejected(self):
        with self.assertRaises(IncompatibleLadderError) as ctx:
            align_odds_to_ladder(1.9, [1.8, math.inf])
        self.assertEqual(ctx.exception.details["odds"], 1.9)


class TestPriceDomain(unittest.TestCase):

    def test_non_finite_price_rejected(self):
        for odds in (math.nan, math.inf, -math.inf):
            with self.subTest(odds=odds):
                with self.assertRaises(IncompatibleLadderError):
                    align_odds_to_ladder(odds, 0.05)

    def test_price_beyond_decimal_precision_rejected(self):
        """1e30 on a 0.01 step needs more digits than the decimal context holds."""
        with self.assertRaises(IncompatibleLadderError) as ctx:
            align_odds_to_ladder(1e30, 0.01)
        self.assertEqual(ctx.exception.details["ladder"], 0.01)

    def test_non_numeric_price_rejected(self):
        with self.assertRaises(IncompatibleLadderError):
            align_odds_to_ladder("1.9", 0.05)


if __name__ == "__main__":
    unittest.main(verbosity=2)
