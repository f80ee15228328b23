#!/usr/bin/env python3
"""
Runtime Pre-Flight Check Tests - tests/test_startup_check.py

Run with: python -m pytest tests/test_startup_check.py -v
"""

import sys
import unittest
from pathlib import Path

# Add parent directory to path for imports
sys.path.insert(0, str(Path(__file__).parent.parent))

from config import get_settings
from execution_layer.errors import InvalidResponseError
from execution_layer.runtime_cache import RuntimeFetchers, RuntimeRegistry
from execution_layer.snapshots import (
    BankSnapshot,
    GasSnapshot,
    PayoutLimitsSnapshot,
    SequencerStatus,
    VenueMetadata,
)
from utils.startup_check import (
    check_bank_balances,
    check_gas_prices,
    check_venue_metadata,
    perform_runtime_checks,
)

NOW = 1_700_000_000.0


class Upstream:
    """Healthy defaults; tests override single attributes."""

    def __init__(self):
        self.per_chain = {"arbitrum-one": 250.0, "base": 40.0}
        self.broken_gas_chains = set()
        self.sequencer_healthy = True
        self.odds_ladder = None
        self.odds_ladder_step = 0.05
        self.max_payout = 2500.0

    async def bank(self):
        return BankSnapshot(total_usd=sum(self.per_chain.values()), per_chain_usd=self.per_chain, fetched_at=NOW)

    async def gas(self, chain):
        if chain in self.broken_gas_chains:
            raise InvalidResponseError("rpc error", chain=chain)
        return GasSnapshot(chain=chain, price_gwei=0.02, fetched_at=NOW)

    async def venue_metadata(self):
        return VenueMetadata(
            betting_delay=0.3, heartbeat=2.0, max_odds_slippage=0.02, fetched_at=NOW,
            odds_ladder=self.odds_ladder, odds_ladder_step=self.odds_ladder_step,
        )

    async def payout_limits(self):
        return PayoutLimitsSnapshot(max_payout_usd=self.max_payout, quote_margin=0.04, fetched_at=NOW)

    async def sequencer(self):
        return SequencerStatus(
            chain="arbitrum-one", healthy=self.sequencer_healthy, checked_at=NOW,
            block_age=2.0 if self.sequencer_healthy else 400.0,
        )

    def registry(self) -> RuntimeRegistry:
        fetchers = RuntimeFetchers(
            bank=self.bank,
            gas=self.gas,
            venue_metadata=self.venue_metadata,
            payout_limits=self.payout_limits,
            sequencer=self.sequencer,
        )
        return RuntimeRegistry.from_settings(get_settings(_env_file=None), fetchers, clock=lambda: NOW)


CHAINS = ["arbitrum-one", "base"]


class TestRuntimeChecks(unittest.IsolatedAsyncioTestCase):

    def setUp(self):
        self.upstream = Upstream()

    async def test_all_checks_pass(self):
        passed, issues = await perform_runtime_checks(self.upstream.registry(), CHAINS, verbose=False)
        self.assertTrue(passed)
        self.assertEqual(issues, [])

    # =========================================================================
    # TREASURY
    # =========================================================================

    async def test_low_balance_chain_flagged(self):
        """Default alert threshold is $15 per chain."""
        self.upstream.per_chain = {"arbitrum-one": 250.0, "base": 9.5}
        passed, msg, per_chain = await check_bank_balances(self.upstream.registry())

        self.assertFalse(passed)
        self.assertIn("base", msg)
        self.assertNotIn("arbitrum-one", msg)
        self.assertEqual(per_chain["base"], 9.5)

    async def test_custom_alert_threshold(self):
        passed, _, _ = await check_bank_balances(self.upstream.registry(), alert_threshold_usd=50.0)
        self.assertFalse(passed)

    # =========================================================================
    # GAS / SEQUENCER / VENUE
    # =========================================================================

    async def test_gas_failure_reported_per_chain(self):
        self.upstream.broken_gas_chains = {"base"}
        passed, msg, prices = await check_gas_prices(self.upstream.registry(), CHAINS)

        self.assertFalse(passed)
        self.assertIn("base", msg)
        self.assertEqual(list(prices), ["arbitrum-one"])

    async def test_every_failure_collected(self):
        self.upstream.sequencer_healthy = False
        self.upstream.max_payout = 0.0
        passed, issues = await perform_runtime_checks(self.upstream.registry(), CHAINS, verbose=False)

        self.assertFalse(passed)
        self.assertEqual(len(issues), 2)
        self.assertTrue(any("Sequencer" in issue for issue in issues))
        self.assertTrue(any("Payout" in issue for issue in issues))

    async def test_invalid_ladder_fails_metadata_check(self):
        self.upstream.odds_ladder_step = None
        passed, msg = await check_venue_metadata(self.upstream.registry())
        self.assertFalse(passed)
        self.assertIn("invalid odds ladder", msg)

    async def test_explicit_ladder_reported(self):
        self.upstream.odds_ladder = (1.83, 1.91, 2.01)
        passed, msg = await check_venue_metadata(self.upstream.registry())
        self.assertTrue(passed)
        self.assertIn("3 rungs", msg)


if __name__ == "__main__":
    unittest.main(verbosity=2)
