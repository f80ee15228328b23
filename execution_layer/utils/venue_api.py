"""
Venue REST Providers
aiohttp clients for venue metadata and payout limits, plus adapters that
serve both from a RuntimeRegistry.

Wire payloads use camelCase with millisecond timings:
    {"oddsLadder": [...], "oddsLadderStep": 0.05, "bettingDelayMs": 300,
     "heartbeatMs": 2000, "maxOddsSlippage": 0.02, "fetchedAtMs": 1700000000000}
    {"maxPayoutUsd": 5000, "quoteMargin": 0.04, "fetchedAtMs": 1700000000000}
"""
import math
from typing import Any, Dict, Optional

import aiohttp
import structlog

from execution_layer.errors import InvalidResponseError
from execution_layer.snapshots import PayoutLimitsSnapshot, VenueMetadata

log = structlog.get_logger()


def _number(payload: Dict[str, Any], key: str, required: bool = True) -> Optional[float]:
    value = payload.get(key)
    if value is None and not required:
        return None
    if isinstance(value, bool) or not isinstance(value, (int, float)):
        raise InvalidResponseError("expected numeric field", field=key, value=value)
    return float(value)


def _ms_to_seconds(value: Optional[float]) -> float:
    # a missing/non-finite timing leaves the submission deadline unbounded
    if value is None or not math.isfinite(value):
        return math.inf
    return value / 1000.0


def parse_metadata(payload: Dict[str, Any]) -> VenueMetadata:
    ladder = payload.get("oddsLadder")
    if ladder is not None and not isinstance(ladder, list):
        raise InvalidResponseError("oddsLadder must be a list", odds_ladder=ladder)
    return VenueMetadata(
        odds_ladder=tuple(ladder) if ladder is not None else None,
        odds_ladder_step=_number(payload, "oddsLadderStep", required=False),
        betting_delay=_ms_to_seconds(_number(payload, "bettingDelayMs", required=False)),
        heartbeat=_ms_to_seconds(_number(payload, "heartbeatMs", required=False)),
        max_odds_slippage=_number(payload, "maxOddsSlippage"),
        fetched_at=_number(payload, "fetchedAtMs") / 1000.0,
    )


def parse_limits(payload: Dict[str, Any]) -> PayoutLimitsSnapshot:
    return PayoutLimitsSnapshot(
        max_payout_usd=_number(payload, "maxPayoutUsd"),
        quote_margin=_number(payload, "quoteMargin", required=False) or 0.0,
        fetched_at=_number(payload, "fetchedAtMs") / 1000.0,
    )


class VenueApiClient:
    """
    Shared aiohttp session for one venue's REST API.
    """

    def __init__(
        self,
        base_url: str,
        timeout: float = 5.0,
        session: Optional[aiohttp.ClientSession] = None,
    ):
        self.base_url = base_url.rstrip("/")
        self.timeout = timeout
        self._session = session

    async def _get_session(self) -> aiohttp.ClientSession:
        if self._session is None or self._session.closed:
            self._session = aiohttp.ClientSession(
                timeout=aiohttp.ClientTimeout(total=self.timeout),
                headers={"Accept": "application/json"},
            )
        return self._session

    async def get_json(self, path: str) -> Dict[str, Any]:
        session = await self._get_session()
        url = f"{self.base_url}{path}"
        async with session.get(url) as resp:
            if resp.status != 200:
                raise InvalidResponseError("venue request failed", url=url, status=resp.status)
            data = await resp.json()
        if not isinstance(data, dict):
            raise InvalidResponseError("venue response is not an object", url=url)
        return data

    async def close(self):
        if self._session and not self._session.closed:
            await self._session.close()


class HttpMetadataProvider:
    """MetadataProvider backed by ``GET {base_url}{path}``."""

    def __init__(self, api: VenueApiClient, path: str = "/metadata"):
        self._api = api
        self._path = path

    async def latest(self) -> VenueMetadata:
        metadata = parse_metadata(await self._api.get_json(self._path))
        log.debug("venue_metadata_fetched", fetched_at=metadata.fetched_at)
        return metadata


class HttpLimitsProvider:
    """LimitsProvider backed by ``GET {base_url}{path}``."""

    def __init__(self, api: VenueApiClient, path: str = "/limits"):
        self._api = api
        self._path = path

    async def latest(self) -> PayoutLimitsSnapshot:
        limits = parse_limits(await self._api.get_json(self._path))
        log.debug("payout_limits_fetched", max_payout_usd=limits.max_payout_usd)
        return limits


# === Registry adapters ===

class RegistryMetadataProvider:
    """Serve venue metadata out of a RuntimeRegistry."""

    def __init__(self, registry):
        self._registry = registry

    async def latest(self) -> VenueMetadata:
        return await self._registry.get_venue_metadata()


class RegistryLimitsProvider:
    """Serve payout limits out of a RuntimeRegistry."""

    def __init__(self, registry):
        self._registry = registry

    async def latest(self) -> PayoutLimitsSnapshot:
        return await self._registry.get_payout_limits()
