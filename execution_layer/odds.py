"""
Odds & Payout Math

Pure conversion helpers shared by both venue clients:
- decimal <-> probability <-> american odds
- commission application / removal
- overround removal across a book
- payout and cross-venue net margin arithmetic
"""

import math
from dataclasses import dataclass
from typing import List, Sequence

from execution_layer.errors import OddsConversionError

EPSILON: float = 1e-9


# === Domain guards ===

def _ensure_finite(value: float, label: str) -> float:
    if not math.isfinite(value):
        raise OddsConversionError(f"{label} must be finite", **{label: value})
    return value


def _ensure_probability(value: float) -> float:
    _ensure_finite(value, "probability")
    if value <= 0 or value >= 1:
        raise OddsConversionError("probability must be in (0, 1)", probability=value)
    return value


def _ensure_decimal_odds(value: float, label: str = "decimal_odds") -> float:
    _ensure_finite(value, label)
    if value <= 1 + EPSILON:
        raise OddsConversionError("decimal odds must be greater than 1", **{label: value})
    return value


def _ensure_commission(value: float) -> float:
    _ensure_finite(value, "commission")
    if value < 0 or value >= 1:
        raise OddsConversionError("commission must be in [0, 1)", commission=value)
    return value


def _ensure_cost(value: float, label: str) -> float:
    _ensure_finite(value, label)
    if value < 0:
        raise OddsConversionError(f"{label} must be non-negative", **{label: value})
    return value


def _round_half_up(value: float) -> int:
    return int(math.floor(value + 0.5))


# === Conversions ===

def decimal_from_probability(probability: float) -> float:
    return 1 / _ensure_probability(probability)


def probability_from_decimal(decimal_odds: float) -> float:
    return 1 / _ensure_decimal_odds(decimal_odds)


def decimal_from_american(american_odds: float) -> float:
    """-110 -> 1.909..., +150 -> 2.5"""
    _ensure_finite(american_odds, "american_odds")
    if american_odds == 0:
        raise OddsConversionError("american odds cannot be zero", american_odds=american_odds)
    if american_odds > 0:
        return 1 + american_odds / 100
    return 1 + 100 / abs(american_odds)


def american_from_decimal(decimal_odds: float) -> int:
    odds = _ensure_decimal_odds(decimal_odds)
    if odds >= 2:
        return _round_half_up((odds - 1) * 100)
    return _round_half_up(-100 / (odds - 1))


def apply_commission(decimal_odds: float, commission_rate: float) -> float:
    """Net decimal odds after the venue takes ``commission_rate`` of winnings."""
    odds = _ensure_decimal_odds(decimal_odds)
    commission = _ensure_commission(commission_rate)
    return 1 + (odds - 1) * (1 - commission)


def remove_commission(net_decimal_odds: float, commission_rate: float) -> float:
    odds = _ensure_decimal_odds(net_decimal_odds)
    commission = _ensure_commission(commission_rate)
    multiplier = 1 - commission
    if multiplier <= 0:
        raise OddsConversionError("commission multiplier must be positive", commission=commission)
    return 1 + (odds - 1) / multiplier


def normalized_probabilities(decimal_odds: Sequence[float]) -> List[float]:
    """Implied probabilities scaled to sum to 1 (overround removed)."""
    if not decimal_odds:
        return []
    implied = [probability_from_decimal(odds) for odds in decimal_odds]
    total = sum(implied)
    if total <= EPSILON:
        raise OddsConversionError("total implied probability must be positive", total=total)
    return [value / total for value in implied]


def remove_overround(decimal_odds: Sequence[float]) -> List[float]:
    return [decimal_from_probability(p) for p in normalized_probabilities(decimal_odds)]


# === Payout ===

def expected_payout(stake: float, decimal_odds: float) -> float:
    """Gross return of ``stake`` at ``decimal_odds`` (stake included)."""
    _ensure_cost(stake, "stake")
    return stake * _ensure_decimal_odds(decimal_odds)


def payout_headroom(payout_cap: float, payout: float) -> float:
    return max(0.0, payout_cap - payout)


# === Cross-venue net margin ===

@dataclass(frozen=True)
class NetMarginInputs:
    """Both legs of a cross-venue position plus their execution costs."""
    odds_a: float
    odds_b: float
    fees_a: float = 0.0
    fees_b: float = 0.0
    gas_cost: float = 0.0
    slippage_a: float = 0.0
    slippage_b: float = 0.0


@dataclass(frozen=True)
class NetMarginBreakdown:
    gross_margin: float
    fees_total: float
    slippage_total: float
    gas_total: float
    net_margin: float

    def to_dict(self) -> dict:
        return {
            "gross_margin": round(self.gross_margin, 6),
            "fees_total": round(self.fees_total, 6),
            "slippage_total": round(self.slippage_total, 6),
            "gas_total": round(self.gas_total, 6),
            "net_margin": round(self.net_margin, 6),
        }


def compute_net_margin(inputs: NetMarginInputs) -> NetMarginBreakdown:
    """
    Margin of backing both outcomes across the two venues.

    gross = 1 - 1/odds_a - 1/odds_b
    net   = gross - (fees + slippage + gas)
    """
    odds_a = _ensure_decimal_odds(inputs.odds_a, "odds_a")
    odds_b = _ensure_decimal_odds(inputs.odds_b, "odds_b")
    fees_a = _ensure_cost(inputs.fees_a, "fees_a")
    fees_b = _ensure_cost(inputs.fees_b, "fees_b")
    gas_cost = _ensure_cost(inputs.gas_cost, "gas_cost")
    slippage_a = _ensure_cost(inputs.slippage_a, "slippage_a")
    slippage_b = _ensure_cost(inputs.slippage_b, "slippage_b")

    gross_margin = 1 - 1 / odds_a - 1 / odds_b
    fees_total = fees_a + fees_b
    slippage_total = slippage_a + slippage_b
    net_margin = gross_margin - (fees_total + slippage_total + gas_cost)

    return NetMarginBreakdown(
        gross_margin=gross_margin,
        fees_total=fees_total,
        slippage_total=slippage_total,
        gas_total=gas_cost,
        net_margin=net_margin,
    )


def meets_net_margin_threshold(inputs: NetMarginInputs, threshold: float) -> bool:
    """True when the net margin reaches ``threshold`` (a fraction in [0, 1))."""
    _ensure_finite(threshold, "threshold")
    if threshold < 0 or threshold >= 1:
        raise OddsConversionError("net margin threshold must be in [0, 1)", threshold=threshold)
    return compute_net_margin(inputs).net_margin >= threshold
