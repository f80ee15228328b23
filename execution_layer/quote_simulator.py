"""
Quote-Simulation Venue Client

Pre-trade simulation for the AMM-style venue. Nothing is ever submitted:
a call either returns the full simulation or raises a value-carrying
rejection.

Checks, in order:
1. Stake is positive and finite
2. Quoted and marginal odds are finite and > 1
3. Payout cap is positive and finite
4. stake * marginal_odd <= payout cap
5. |marginal_odd - quoted_odd| <= delta threshold
"""

import math
import time
from dataclasses import dataclass
from typing import Optional, Protocol

import structlog

from execution_layer.errors import (
    ConfigurationError,
    DeltaThresholdExceededError,
    InvalidLimitsError,
    InvalidResponseError,
    MaxPayoutExceededError,
    StakeError,
)
from execution_layer.snapshots import PayoutLimitsSnapshot

log = structlog.get_logger()

EPSILON: float = 1e-9
DEFAULT_DELTA_ODD_REJECT: float = 0.02


# === Types ===

@dataclass(frozen=True)
class SimulationRequest:
    stake: float
    amount_token: Optional[float] = None


@dataclass(frozen=True)
class EngineQuote:
    """Raw quote engine answer. ``max_payout_limit`` may tighten the cap."""
    quoted_odd: float
    marginal_odd: float
    max_payout_limit: Optional[float] = None
    amount_token: Optional[float] = None


@dataclass(frozen=True)
class QuoteSimulation:
    quoted_odd: float
    marginal_odd: float
    delta: float
    stake: float
    amount_token: Optional[float]
    expected_payout: float
    payout_cap: float
    payout_headroom: float

    def to_dict(self) -> dict:
        return {
            "quoted_odd": self.quoted_odd,
            "marginal_odd": self.marginal_odd,
            "delta": round(self.delta, 6),
            "stake": self.stake,
            "amount_token": self.amount_token,
            "expected_payout": round(self.expected_payout, 4),
            "payout_cap": self.payout_cap,
            "payout_headroom": round(self.payout_headroom, 4),
        }


# === Collaborators ===

class QuoteEngine(Protocol):
    async def fetch_quote(self, request: SimulationRequest) -> EngineQuote: ...

    async def max_payout(self) -> float: ...


class LimitsProvider(Protocol):
    async def latest(self) -> PayoutLimitsSnapshot: ...


class _EngineLimits:
    """Limits straight from the quote engine when no provider is injected."""

    def __init__(self, engine: QuoteEngine, clock=time.time):
        self._engine = engine
        self._clock = clock

    async def latest(self) -> PayoutLimitsSnapshot:
        return PayoutLimitsSnapshot(
            max_payout_usd=await self._engine.max_payout(),
            quote_margin=0.0,
            fetched_at=self._clock(),
        )


def _is_finite_number(value) -> bool:
    return (
        isinstance(value, (int, float))
        and not isinstance(value, bool)
        and math.isfinite(value)
    )


def _validate_threshold(value: float) -> float:
    if not _is_finite_number(value) or value <= 0:
        raise ConfigurationError("invalid delta odd threshold", delta_odd_reject=value)
    return float(value)


def _ensure_odds(value, field_name: str) -> float:
    if not _is_finite_number(value):
        raise InvalidResponseError(f"{field_name} must be finite", **{field_name: value})
    if value <= 1:
        raise InvalidResponseError(f"{field_name} must be greater than 1", **{field_name: value})
    return float(value)


# =============================================================================
# Client
# =============================================================================

class QuoteSimulationClient:
    """
    Stateless quote validator.

    Payout limits come from the injected ``LimitsProvider`` (normally
    backed by the runtime cache) or, without one, from the engine itself.
    """

    def __init__(
        self,
        delta_odd_reject: float,
        engine: QuoteEngine,
        limits: Optional[LimitsProvider] = None,
    ):
        self._threshold = _validate_threshold(delta_odd_reject)
        self._engine = engine
        self._limits: LimitsProvider = limits if limits is not None else _EngineLimits(engine)

    @property
    def threshold(self) -> float:
        return self._threshold

    def update_threshold(self, delta_odd_reject: float) -> None:
        """Hot-swap the delta threshold (validated like the constructor)."""
        previous = self._threshold
        self._threshold = _validate_threshold(delta_odd_reject)
        log.info("delta_threshold_updated", previous=previous, current=self._threshold)

    async def simulate_quote(self, request: SimulationRequest) -> QuoteSimulation:
        stake = request.stake
        if not _is_finite_number(stake):
            raise StakeError("stake must be finite", stake=stake)
        if stake <= 0:
            raise StakeError("stake must be positive", stake=stake)

        quote = await self._engine.fetch_quote(request)
        quoted_odd = _ensure_odds(quote.quoted_odd, "quoted_odd")
        marginal_odd = _ensure_odds(quote.marginal_odd, "marginal_odd")

        payout_cap = await self._payout_cap(quote)

        expected_payout = stake * marginal_odd
        if expected_payout > payout_cap + EPSILON:
            log.warning(
                "quote_rejected_max_payout",
                expected_payout=expected_payout,
                payout_cap=payout_cap,
            )
            raise MaxPayoutExceededError(
                "max payout exceeded",
                expected_payout=expected_payout,
                payout_cap=payout_cap,
            )

        # read once: update_threshold may run between calls
        threshold = self._threshold
        delta = abs(marginal_odd - quoted_odd)
        if delta > threshold + EPSILON:
            log.warning("quote_rejected_delta", delta=delta, threshold=threshold)
            raise DeltaThresholdExceededError(
                "delta odd above configured threshold",
                delta=delta,
                threshold=threshold,
            )

        simulation = QuoteSimulation(
            quoted_odd=quoted_odd,
            marginal_odd=marginal_odd,
            delta=delta,
            stake=stake,
            amount_token=quote.amount_token if quote.amount_token is not None else request.amount_token,
            expected_payout=expected_payout,
            payout_cap=payout_cap,
            payout_headroom=max(0.0, payout_cap - expected_payout),
        )
        log.debug("quote_simulated", **simulation.to_dict())
        return simulation

    async def _payout_cap(self, quote: EngineQuote) -> float:
        limits = await self._limits.latest()
        cap = limits.max_payout_usd
        if not _is_finite_number(cap) or cap <= 0:
            raise InvalidLimitsError("max payout must be a positive finite amount", max_payout_usd=cap)

        quote_limit = quote.max_payout_limit
        if _is_finite_number(quote_limit) and quote_limit > 0:
            return float(min(cap, quote_limit))
        return float(cap)
