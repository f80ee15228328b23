"""
Runtime Snapshot Types

Immutable views of externally-fetched facts. Each one embeds the time it
was fetched (epoch seconds) so the cache can judge freshness from the data
itself rather than from when the fetch happened to complete.
"""

import math
from dataclasses import dataclass
from datetime import datetime, timezone
from types import MappingProxyType
from typing import Any, Mapping, Optional, Tuple

TIMESTAMP_FIELDS: Tuple[str, ...] = ("fetched_at", "checked_at")


@dataclass(frozen=True)
class BankSnapshot:
    """Treasury balance across chains."""
    total_usd: float
    per_chain_usd: Mapping[str, float]
    fetched_at: float

    def __post_init__(self):
        object.__setattr__(self, "per_chain_usd", MappingProxyType(dict(self.per_chain_usd)))


@dataclass(frozen=True)
class GasSnapshot:
    chain: str
    price_gwei: float
    fetched_at: float


@dataclass(frozen=True)
class VenueMetadata:
    """
    Discretized-ladder venue parameters.

    ``odds_ladder`` (explicit prices) takes precedence over
    ``odds_ladder_step`` when both are present. Timing values are seconds.
    """
    betting_delay: float
    heartbeat: float
    max_odds_slippage: float
    fetched_at: float
    odds_ladder: Optional[Tuple[float, ...]] = None
    odds_ladder_step: Optional[float] = None

    def __post_init__(self):
        if self.odds_ladder is not None and not isinstance(self.odds_ladder, tuple):
            object.__setattr__(self, "odds_ladder", tuple(self.odds_ladder))


@dataclass(frozen=True)
class PayoutLimitsSnapshot:
    """Counterparty payout ceiling."""
    max_payout_usd: float
    quote_margin: float
    fetched_at: float


@dataclass(frozen=True)
class SequencerStatus:
    chain: str
    healthy: bool
    checked_at: float
    block_age: Optional[float] = None


def _as_epoch(candidate: Any) -> Optional[float]:
    if isinstance(candidate, bool):
        return None
    if isinstance(candidate, datetime):
        if candidate.tzinfo is None:
            candidate = candidate.replace(tzinfo=timezone.utc)
        return candidate.timestamp()
    if isinstance(candidate, (int, float)):
        # NaN or inf cannot anchor an age
        return float(candidate) if math.isfinite(candidate) else None
    return None


def extract_timestamp(value: Any) -> Optional[float]:
    """
    Find the embedded fetch/check time of a snapshot.

    Looks for ``fetched_at`` then ``checked_at``, as an attribute or a
    mapping key. Returns epoch seconds, or None if none is recognisable.
    """
    if value is None:
        return None
    for name in TIMESTAMP_FIELDS:
        if isinstance(value, Mapping):
            if name not in value:
                continue
            candidate = value[name]
        elif hasattr(value, name):
            candidate = getattr(value, name)
        else:
            continue
        timestamp = _as_epoch(candidate)
        if timestamp is not None:
            return timestamp
    return None
