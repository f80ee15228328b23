#!/usr/bin/env python3
"""
Venue REST Provider Tests - tests/test_venue_api.py

Run with: python -m pytest tests/test_venue_api.py -v
"""

import math
import sys
import unittest
from pathlib import Path

# Add parent directory to path for imports
sys.path.insert(0, str(Path(__file__).parent.parent))

from execution_layer.errors import InvalidResponseError
from execution_layer.utils.venue_api import (
    HttpLimitsProvider,
    HttpMetadataProvider,
    VenueApiClient,
    parse_limits,
    parse_metadata,
)

METADATA = {
    "oddsLadder": [1.83, 1.91, 2.01],
    "oddsLadderStep": 0.05,
    "bettingDelayMs": 300,
    "heartbeatMs": 2000,
    "maxOddsSlippage": 0.02,
    "fetchedAtMs": 1_700_000_000_000,
}

LIMITS = {"maxPayoutUsd": 5000, "quoteMargin": 0.04, "fetchedAtMs": 1_700_000_000_500}


class FakeResponse:
    def __init__(self, status, payload):
        self.status = status
        self._payload = payload

    async def json(self):
        return self._payload

    async def __aenter__(self):
        return self

    async def __aexit__(self, *exc):
        return False


class FakeSession:
    """Stands in for aiohttp.ClientSession: canned responses by URL."""

    def __init__(self, routes):
        self.routes = routes
        self.urls = []
        self.closed = False

    def get(self, url):
        self.urls.append(url)
        status, payload = self.routes[url]
        return FakeResponse(status, payload)

    async def close(self):
        self.closed = True


class TestParsers(unittest.TestCase):

    def test_metadata_timings_converted_to_seconds(self):
        metadata = parse_metadata(METADATA)
        self.assertEqual(metadata.odds_ladder, (1.83, 1.91, 2.01))
        self.assertEqual(metadata.odds_ladder_step, 0.05)
        self.assertAlmostEqual(metadata.betting_delay, 0.3)
        self.assertAlmostEqual(metadata.heartbeat, 2.0)
        self.assertEqual(metadata.fetched_at, 1_700_000_000.0)

    def test_missing_timings_are_unbounded(self):
        payload = {k: v for k, v in METADATA.items() if k not in ("bettingDelayMs", "heartbeatMs")}
        metadata = parse_metadata(payload)
        self.assertEqual(metadata.betting_delay, math.inf)
        self.assertEqual(metadata.heartbeat, math.inf)

    def test_ladder_must_be_a_list(self):
        with self.assertRaises(InvalidResponseError):
            parse_metadata(dict(METADATA, oddsLadder="1.83,1.91"))

    def test_required_fields(self):
        for key in ("maxOddsSlippage", "fetchedAtMs"):
            with self.subTest(key=key):
                payload = {k: v for k, v in METADATA.items() if k != key}
                with self.assertRaises(InvalidResponseError) as ctx:
                    parse_metadata(payload)
                self.assertEqual(ctx.exception.details["field"], key)

    def test_limits(self):
        limits = parse_limits(LIMITS)
        self.assertEqual(limits.max_payout_usd, 5000.0)
        self.assertEqual(limits.quote_margin, 0.04)
        self.assertEqual(limits.fetched_at, 1_700_000_000.5)

    def test_boolean_rejected_as_number(self):
        with self.assertRaises(InvalidResponseError):
            parse_limits(dict(LIMITS, maxPayoutUsd=True))


class TestHttpProviders(unittest.IsolatedAsyncioTestCase):

    async def test_metadata_provider(self):
        session = FakeSession({"https://ladder.test/v1/metadata": (200, METADATA)})
        api = VenueApiClient("https://ladder.test/v1/", session=session)

        metadata = await HttpMetadataProvider(api).latest()
        self.assertEqual(metadata.max_odds_slippage, 0.02)
        self.assertEqual(session.urls, ["https://ladder.test/v1/metadata"])

        await api.close()
        self.assertTrue(session.closed)

    async def test_limits_provider_custom_path(self):
        session = FakeSession({"https://quote.test/payout-limits": (200, LIMITS)})
        api = VenueApiClient("https://quote.test", session=session)

        limits = await HttpLimitsProvider(api, path="/payout-limits").latest()
        self.assertEqual(limits.max_payout_usd, 5000.0)

    async def test_non_200_raises(self):
        session = FakeSession({"https://quote.test/limits": (503, {"error": "maintenance"})})
        api = VenueApiClient("https://quote.test", session=session)
        with self.assertRaises(InvalidResponseError) as ctx:
            await HttpLimitsProvider(api).latest()
        self.assertEqual(ctx.exception.details["status"], 503)

    async def test_non_object_body_raises(self):
        session = FakeSession({"https://quote.test/limits": (200, [1, 2, 3])})
        api = VenueApiClient("https://quote.test", session=session)
        with self.assertRaises(InvalidResponseError):
            await HttpLimitsProvider(api).latest()


if __name__ == "__main__":
    unittest.main(verbosity=2)
