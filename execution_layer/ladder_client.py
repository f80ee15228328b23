"""
Discretized-Ladder Venue Client

Quote lookup and bounded-time order placement for a venue that only
accepts prices on an odds ladder.

Rules of engagement:
- Metadata is cached (single-flight, TTL) and its ladder validated BEFORE
  it is cached
- Slippage above the venue maximum is rejected before anything is submitted
- Submission deadline = betting_delay + heartbeat (infinite if either is
  non-finite)
- On timeout the executor call is NOT cancelled; it is detached and its
  late outcome only logged
"""

import asyncio
import math
import sys
from dataclasses import dataclass, field, replace
from enum import Enum
from typing import List, Optional, Protocol, Set, Tuple, Union

import structlog

from execution_layer.errors import (
    InvalidLadderError,
    SlippageRejectedError,
    SubmissionTimeoutError,
)
from execution_layer.ladder import align_odds_to_ladder
from execution_layer.runtime_cache import Clock, SnapshotCache
from execution_layer.snapshots import VenueMetadata

log = structlog.get_logger()

FILL_EPSILON: float = sys.float_info.epsilon


# === Types ===

class OrderStatus(Enum):
    ACCEPTED = "accepted"
    PARTIALLY_ACCEPTED = "partially_accepted"
    VOID = "void"


@dataclass(frozen=True)
class QuoteRequest:
    market_uid: str
    side: str
    stake: float


@dataclass(frozen=True)
class Quote:
    market_uid: str
    side: str
    odds: float
    available_stake: float


@dataclass(frozen=True)
class BetRequest:
    market_uid: str
    side: str
    stake: float
    odds: float
    odds_slippage: float


@dataclass(frozen=True)
class Fill:
    fill_id: str
    filled_stake: float
    odds: float
    accepted_at: float


@dataclass
class OrderResponse:
    status: OrderStatus
    fills: List[Fill] = field(default_factory=list)


@dataclass(frozen=True)
class PreparedOrder:
    """Order as handed to the executor: aligned odds plus venue timing."""
    market_uid: str
    side: str
    odds: float
    stake: float
    odds_slippage: float
    betting_delay: float
    heartbeat: float


@dataclass
class BetExecution:
    status: OrderStatus
    fills: List[Fill]
    requested_stake: float
    remaining_stake: float

    @property
    def filled_stake(self) -> float:
        return self.requested_stake - self.remaining_stake

    def to_dict(self) -> dict:
        return {
            "status": self.status.value,
            "fills": len(self.fills),
            "requested_stake": self.requested_stake,
            "remaining_stake": round(self.remaining_stake, 8),
        }


# === Collaborators ===

class MetadataProvider(Protocol):
    async def latest(self) -> VenueMetadata: ...


class QuoteSource(Protocol):
    async def best_quote(self, request: QuoteRequest) -> Quote: ...


class OrderExecutor(Protocol):
    async def submit(self, order: PreparedOrder) -> OrderResponse: ...


# === Ladder resolution ===

def resolve_ladder(metadata: VenueMetadata) -> Union[float, Tuple[float, ...]]:
    """
    Pick the ladder a metadata snapshot defines.

    An explicit ladder wins over a step. Explicit entries must be finite and
    positive; a step must be finite and positive.

    Raises:
        InvalidLadderError: neither definition is usable
    """
    ladder = metadata.odds_ladder
    step = metadata.odds_ladder_step

    if ladder is not None:
        if len(ladder) == 0 or not all(_is_positive_finite(v) for v in ladder):
            raise InvalidLadderError(
                "invalid odds ladder definition",
                odds_ladder=list(ladder),
                odds_ladder_step=step,
            )
        return tuple(ladder)

    if _is_positive_finite(step):
        return float(step)

    raise InvalidLadderError(
        "invalid odds ladder definition", odds_ladder=None, odds_ladder_step=step
    )


def _is_positive_finite(value) -> bool:
    return (
        isinstance(value, (int, float))
        and not isinstance(value, bool)
        and math.isfinite(value)
        and value > 0
    )


def submission_deadline(betting_delay: float, heartbeat: float) -> float:
    """Seconds to wait for the executor; ``inf`` when unbounded."""
    if not (math.isfinite(betting_delay) and math.isfinite(heartbeat)):
        return math.inf
    return betting_delay + heartbeat


def reconcile(requested_stake: float, response: OrderResponse) -> BetExecution:
    """Classify an executor response against the requested stake."""
    filled = sum(fill.filled_stake for fill in response.fills)
    remaining = max(0.0, requested_stake - filled)

    if remaining <= FILL_EPSILON and response.status == OrderStatus.ACCEPTED:
        status = OrderStatus.ACCEPTED
    elif filled > FILL_EPSILON:
        status = OrderStatus.PARTIALLY_ACCEPTED
    else:
        status = OrderStatus.VOID

    return BetExecution(
        status=status,
        fills=list(response.fills),
        requested_stake=requested_stake,
        remaining_stake=remaining,
    )


# =============================================================================
# Client
# =============================================================================

class LadderVenueClient:
    """
    Client for the discretized-ladder venue.

    Holds its own metadata cache; every other collaborator is injected.
    """

    def __init__(
        self,
        metadata_ttl: float,
        metadata: MetadataProvider,
        quotes: QuoteSource,
        executor: OrderExecutor,
        clock: Optional[Clock] = None,
    ):
        self._quotes = quotes
        self._executor = executor
        self._metadata = SnapshotCache(
            "ladder_metadata",
            metadata_ttl,
            metadata.latest,
            clock=clock,
            validator=resolve_ladder,
        )
        # submissions that outlived their deadline
        self._detached: Set[asyncio.Task] = set()

    async def get_best_quote(self, request: QuoteRequest) -> Quote:
        """Best quote with its price aligned to the venue ladder."""
        metadata = await self._metadata.get()
        ladder = resolve_ladder(metadata)
        quote = await self._quotes.best_quote(request)
        return replace(quote, odds=align_odds_to_ladder(quote.odds, ladder))

    async def place_bet(self, request: BetRequest) -> BetExecution:
        """
        Submit a bet under the venue deadline and reconcile its fills.

        Raises:
            SlippageRejectedError: slippage above venue maximum (no submit)
            SubmissionTimeoutError: executor did not settle in time
        """
        metadata = await self._metadata.get()
        ladder = resolve_ladder(metadata)

        if request.odds_slippage > metadata.max_odds_slippage:
            log.warning(
                "bet_rejected_slippage",
                market_uid=request.market_uid,
                requested=request.odds_slippage,
                max=metadata.max_odds_slippage,
            )
            raise SlippageRejectedError(
                "requested slippage exceeds allowed range",
                requested=request.odds_slippage,
                max=metadata.max_odds_slippage,
            )

        order = PreparedOrder(
            market_uid=request.market_uid,
            side=request.side,
            odds=align_odds_to_ladder(request.odds, ladder),
            stake=request.stake,
            odds_slippage=request.odds_slippage,
            betting_delay=metadata.betting_delay,
            heartbeat=metadata.heartbeat,
        )
        deadline = submission_deadline(metadata.betting_delay, metadata.heartbeat)

        log.info(
            "bet_submitting",
            market_uid=order.market_uid,
            side=order.side,
            odds=order.odds,
            stake=order.stake,
            deadline=deadline,
        )
        response = await self._submit_with_deadline(order, deadline)

        execution = reconcile(request.stake, response)
        log.info("bet_reconciled", market_uid=order.market_uid, **execution.to_dict())
        return execution

    def invalidate_metadata(self) -> None:
        self._metadata.invalidate()

    @property
    def detached_submissions(self) -> int:
        """Timed-out submissions still running in the background."""
        return len(self._detached)

    async def _submit_with_deadline(self, order: PreparedOrder, deadline: float) -> OrderResponse:
        # non-positive or NaN deadlines never arm a timer
        if not (deadline > 0 and math.isfinite(deadline)):
            return await self._executor.submit(order)

        task = asyncio.ensure_future(self._executor.submit(order))
        try:
            done, _ = await asyncio.wait({task}, timeout=deadline)
        except asyncio.CancelledError:
            # caller gave up; the order may still reach the venue
            self._detach(task, order)
            raise
        if task in done:
            return task.result()

        self._detach(task, order)
        raise SubmissionTimeoutError(
            "heartbeat timeout exceeded",
            timeout=deadline,
            market_uid=order.market_uid,
        )

    def _detach(self, task: asyncio.Task, order: PreparedOrder) -> None:
        self._detached.add(task)

        def _on_late_outcome(t: asyncio.Task) -> None:
            self._detached.discard(t)
            if t.cancelled():
                log.warning("orphaned_order_cancelled", market_uid=order.market_uid)
            elif t.exception() is not None:
                log.error(
                    "orphaned_order_failed",
                    market_uid=order.market_uid,
                    error=str(t.exception()),
                )
            else:
                response = t.result()
                log.warning(
                    "orphaned_order_settled",
                    market_uid=order.market_uid,
                    status=getattr(response.status, "value", response.status),
                    fills=len(response.fills),
                )

        task.add_done_callback(_on_late_outcome)
        log.error("bet_submission_timeout", market_uid=order.market_uid, stake=order.stake)
