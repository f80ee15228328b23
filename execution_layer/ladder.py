"""
Discretized-Price Aligner

Venues only accept prices on a ladder: either a fixed step (every multiple
of ``s``) or an explicit set of allowed prices.

Policy:
- Fixed step rounds half AWAY from zero, computed in Decimal so that
  1.934 on a 0.05 step is exactly 1.95.
- Explicit ladders pick the nearest entry; on a tie (within 1e-12) the
  HIGHER entry wins.
"""

import math
from decimal import ROUND_HALF_UP, Decimal, InvalidOperation
from typing import Sequence, Union

from execution_layer.errors import IncompatibleLadderError

TIE_EPSILON: float = 1e-12

Ladder = Union[float, Sequence[float]]


def _is_number(value) -> bool:
    return isinstance(value, (int, float)) and not isinstance(value, bool)


def _incompatible(odds, ladder) -> IncompatibleLadderError:
    detail = list(ladder) if isinstance(ladder, (list, tuple)) else ladder
    return IncompatibleLadderError("odds not compatible with ladder", odds=odds, ladder=detail)


def _align_to_step(odds: float, step: float) -> float:
    d_step = Decimal(str(step))
    try:
        multiple = (Decimal(str(odds)) / d_step).quantize(Decimal(1), rounding=ROUND_HALF_UP)
    except InvalidOperation:
        # more step multiples than the decimal context can hold
        raise _incompatible(odds, step) from None
    return float(multiple * d_step)


def _align_to_entries(odds: float, ladder: Sequence[float]) -> float:
    best = None
    best_diff = math.inf
    for value in ladder:
        if not _is_number(value) or not math.isfinite(value):
            raise _incompatible(odds, ladder)
        diff = abs(value - odds)
        if best is None or diff < best_diff - TIE_EPSILON:
            best, best_diff = value, diff
        elif abs(diff - best_diff) <= TIE_EPSILON and value > best:
            best, best_diff = value, diff
    return float(best)


def align_odds_to_ladder(odds: float, ladder: Ladder) -> float:
    """
    Map a continuous price onto the nearest allowed ladder point.

    Args:
        odds: Raw decimal price
        ladder: Fixed step (> 0) or non-empty sequence of allowed prices

    Raises:
        IncompatibleLadderError: non-finite price, empty ladder,
            non-finite entry, or non-positive step
    """
    if not _is_number(odds) or not math.isfinite(odds):
        raise _incompatible(odds, ladder)

    if isinstance(ladder, (list, tuple)):
        if not ladder:
            raise _incompatible(odds, ladder)
        return _align_to_entries(odds, ladder)

    if not _is_number(ladder) or not math.isfinite(ladder) or ladder <= 0:
        raise _incompatible(odds, ladder)
    return _align_to_step(odds, ladder)
