"""
Single-Flight Runtime Cache

TTL-governed snapshots of externally-fetched facts:
- Treasury balance (bank)
- Gas price (one slot per chain)
- Venue metadata
- Counterparty payout limits
- Sequencer health

Guarantees (asyncio, single event loop):
- At most ONE upstream fetch per key in flight; concurrent callers await it
- Freshness is judged from the timestamp embedded in the snapshot itself
- A stale snapshot FAILS the call and is never cached
- Errors are never cached and never retried here

Slot check-and-claim has no await in between, so it is atomic with respect
to other coroutines on the loop. No locks needed.
"""

import asyncio
import logging
import math
import time
from dataclasses import dataclass, fields
from enum import Enum
from types import MappingProxyType
from typing import Awaitable, Callable, Dict, Generic, Mapping, Optional, TypeVar, Union

from execution_layer.errors import (
    ConfigurationError,
    InvalidResponseError,
    StaleSnapshotError,
)
from execution_layer.snapshots import (
    BankSnapshot,
    GasSnapshot,
    PayoutLimitsSnapshot,
    SequencerStatus,
    VenueMetadata,
    extract_timestamp,
)

logger = logging.getLogger(__name__)

T = TypeVar("T")

Clock = Callable[[], float]
Validator = Callable[[T], None]

_MISSING = object()


def validate_ttl(name: str, ttl: float) -> float:
    """TTL must be a finite positive number of seconds."""
    if isinstance(ttl, bool) or not isinstance(ttl, (int, float)):
        raise ConfigurationError(f"ttl.{name} must be a number", ttl=ttl)
    if not math.isfinite(ttl) or ttl <= 0:
        raise ConfigurationError(f"ttl.{name} must be > 0", ttl=ttl)
    return float(ttl)


class SnapshotSlot:
    """Cache slot: resolved value, its expiry, and the in-flight fetch."""

    __slots__ = ("value", "expires_at", "pending", "generation")

    def __init__(self):
        self.value = _MISSING
        self.expires_at: float = 0.0
        self.pending: Optional[asyncio.Task] = None
        self.generation: int = 0

    def has_fresh_value(self, now: float) -> bool:
        return self.value is not _MISSING and now <= self.expires_at

    def clear(self) -> None:
        self.value = _MISSING
        self.expires_at = 0.0
        self.pending = None

    def reset(self) -> None:
        """Drop everything and orphan any in-flight fetch."""
        self.clear()
        self.generation += 1


def _freeze(value):
    # callers share the cached object, so plain mappings are handed out read-only
    if isinstance(value, Mapping) and not isinstance(value, MappingProxyType):
        return MappingProxyType(dict(value))
    return value


def _consume_outcome(task: asyncio.Task) -> None:
    # every waiter may have been cancelled; don't leave the error unretrieved
    if not task.cancelled():
        task.exception()


class _SlotResolver(Generic[T]):
    """Shared single-flight resolution logic for one or many slots."""

    def __init__(
        self,
        name: str,
        ttl: float,
        *,
        clock: Optional[Clock] = None,
        validator: Optional[Validator] = None,
    ):
        self.name = name
        self.ttl = validate_ttl(name, ttl)
        self._clock: Clock = clock or time.time
        self._validator = validator

    async def _resolve(
        self,
        slot: SnapshotSlot,
        loader: Callable[[], Awaitable[T]],
        label: str,
    ) -> T:
        if slot.has_fresh_value(self._clock()):
            return slot.value

        if slot.pending is None:
            logger.debug(f"Cache miss for '{label}', starting fetch")
            task = asyncio.ensure_future(self._load(slot, slot.generation, loader, label))
            task.add_done_callback(_consume_outcome)
            slot.pending = task
        else:
            logger.debug(f"Cache miss for '{label}', joining in-flight fetch")

        # shield: one caller's cancellation must not cancel the shared fetch
        return await asyncio.shield(slot.pending)

    async def _load(
        self,
        slot: SnapshotSlot,
        generation: int,
        loader: Callable[[], Awaitable[T]],
        label: str,
    ) -> T:
        try:
            value = _freeze(await loader())
            expires_at = self._admit(value, label)
        except BaseException as exc:
            if slot.generation == generation:
                slot.clear()
            logger.warning(f"Snapshot fetch for '{label}' failed: {exc}")
            raise

        # invalidated while in flight: hand the value to our own waiters only
        if slot.generation == generation:
            slot.value = value
            slot.expires_at = expires_at
            slot.pending = None
        return value

    def _admit(self, value: T, label: str) -> float:
        """Validate a fresh snapshot and return its expiry."""
        timestamp = extract_timestamp(value)
        if timestamp is None:
            raise InvalidResponseError(
                f"{label} snapshot missing timestamp", resource=label
            )

        now = self._clock()
        age = now - timestamp
        if age > self.ttl:
            raise StaleSnapshotError(
                f"{label} snapshot stale", resource=label, age=age, ttl=self.ttl
            )

        if self._validator is not None:
            self._validator(value)

        return min(now, timestamp) + self.ttl


class SnapshotCache(_SlotResolver[T]):
    """Single-key single-flight TTL cache."""

    def __init__(
        self,
        name: str,
        ttl: float,
        loader: Callable[[], Awaitable[T]],
        *,
        clock: Optional[Clock] = None,
        validator: Optional[Validator] = None,
    ):
        super().__init__(name, ttl, clock=clock, validator=validator)
        self._loader = loader
        self._slot = SnapshotSlot()

    async def get(self) -> T:
        return await self._resolve(self._slot, self._loader, self.name)

    def peek(self) -> Optional[T]:
        """Cached value if still fresh, without fetching."""
        if self._slot.has_fresh_value(self._clock()):
            return self._slot.value
        return None

    def invalidate(self) -> None:
        self._slot.reset()

    def get_status(self) -> dict:
        now = self._clock()
        return {
            "cached": self._slot.has_fresh_value(now),
            "in_flight": self._slot.pending is not None,
            "expires_in": round(max(0.0, self._slot.expires_at - now), 3)
            if self._slot.has_fresh_value(now) else 0.0,
        }


class KeyedSnapshotCache(_SlotResolver[T]):
    """One independent single-flight slot per key (e.g. per chain)."""

    def __init__(
        self,
        name: str,
        ttl: float,
        loader: Callable[[str], Awaitable[T]],
        *,
        clock: Optional[Clock] = None,
        validator: Optional[Validator] = None,
    ):
        super().__init__(name, ttl, clock=clock, validator=validator)
        self._loader = loader
        self._slots: Dict[str, SnapshotSlot] = {}

    async def get(self, key: str) -> T:
        if not isinstance(key, str) or not key.strip():
            raise ConfigurationError(f"{self.name}: key required", key=key)
        slot = self._slots.get(key)
        if slot is None:
            slot = self._slots[key] = SnapshotSlot()
        return await self._resolve(slot, lambda: self._loader(key), f"{self.name}:{key}")

    def invalidate(self, key: Optional[str] = None) -> None:
        if key is None:
            for slot in self._slots.values():
                slot.reset()
            self._slots.clear()
            return
        slot = self._slots.pop(key, None)
        if slot is not None:
            slot.reset()

    def get_status(self) -> dict:
        now = self._clock()
        return {
            key: {
                "cached": slot.has_fresh_value(now),
                "in_flight": slot.pending is not None,
            }
            for key, slot in self._slots.items()
        }


# =============================================================================
# Runtime Registry
# =============================================================================

class RuntimeResource(str, Enum):
    BANK = "bank"
    GAS = "gas"
    VENUE_METADATA = "venue_metadata"
    PAYOUT_LIMITS = "payout_limits"
    SEQUENCER = "sequencer"


@dataclass(frozen=True)
class RuntimeTtls:
    """Per-resource TTLs in seconds."""
    bank: float
    gas: float
    venue_metadata: float
    payout_limits: float
    sequencer: float

    def validate(self) -> None:
        for f in fields(self):
            validate_ttl(f.name, getattr(self, f.name))


@dataclass(frozen=True)
class RuntimeFetchers:
    """Upstream loaders. Retry policy, if any, lives inside these."""
    bank: Callable[[], Awaitable[BankSnapshot]]
    gas: Callable[[str], Awaitable[GasSnapshot]]
    venue_metadata: Callable[[], Awaitable[VenueMetadata]]
    payout_limits: Callable[[], Awaitable[PayoutLimitsSnapshot]]
    sequencer: Callable[[], Awaitable[SequencerStatus]]


class RuntimeRegistry:
    """
    Runtime facts for one execution context.

    Construct one per runtime context. There is no global instance.
    """

    def __init__(
        self,
        ttl: RuntimeTtls,
        fetchers: RuntimeFetchers,
        clock: Optional[Clock] = None,
    ):
        ttl.validate()
        self.ttl = ttl
        self._clock: Clock = clock or time.time

        self._bank = SnapshotCache("bank", ttl.bank, fetchers.bank, clock=self._clock)
        self._gas = KeyedSnapshotCache("gas", ttl.gas, fetchers.gas, clock=self._clock)
        self._venue_metadata = SnapshotCache(
            "venue_metadata", ttl.venue_metadata, fetchers.venue_metadata, clock=self._clock
        )
        self._payout_limits = SnapshotCache(
            "payout_limits", ttl.payout_limits, fetchers.payout_limits, clock=self._clock
        )
        self._sequencer = SnapshotCache(
            "sequencer", ttl.sequencer, fetchers.sequencer, clock=self._clock
        )

        logger.info(
            f"RuntimeRegistry initialized: bank={ttl.bank}s, gas={ttl.gas}s, "
            f"venue_metadata={ttl.venue_metadata}s, payout_limits={ttl.payout_limits}s, "
            f"sequencer={ttl.sequencer}s"
        )

    @classmethod
    def from_settings(cls, settings, fetchers: RuntimeFetchers, clock: Optional[Clock] = None):
        """Build from a ``RuntimeSettings`` instance."""
        return cls(settings.runtime_ttls(), fetchers, clock=clock)

    # =========================================================================
    # LOOKUPS
    # =========================================================================

    async def get_bank(self) -> BankSnapshot:
        return await self._bank.get()

    async def get_gas(self, chain: str) -> GasSnapshot:
        if not isinstance(chain, str) or not chain.strip():
            raise ConfigurationError("chain required for gas", chain=chain)
        return await self._gas.get(chain)

    async def get_venue_metadata(self) -> VenueMetadata:
        return await self._venue_metadata.get()

    async def get_payout_limits(self) -> PayoutLimitsSnapshot:
        return await self._payout_limits.get()

    async def sequencer_health(self) -> SequencerStatus:
        return await self._sequencer.get()

    # =========================================================================
    # INVALIDATION / STATUS
    # =========================================================================

    def invalidate(self, resource: Optional[Union[RuntimeResource, str]] = None) -> None:
        """Clear one resource (all gas chains for ``gas``) or everything."""
        if resource is None:
            for cache in self._caches().values():
                cache.invalidate()
            logger.debug("RuntimeRegistry fully invalidated")
            return

        try:
            key = RuntimeResource(resource)
        except ValueError:
            raise ConfigurationError("unknown runtime resource", resource=resource) from None
        self._caches()[key].invalidate()
        logger.debug(f"RuntimeRegistry invalidated '{key.value}'")

    def get_status(self) -> dict:
        return {key.value: cache.get_status() for key, cache in self._caches().items()}

    def _caches(self) -> dict:
        return {
            RuntimeResource.BANK: self._bank,
            RuntimeResource.GAS: self._gas,
            RuntimeResource.VENUE_METADATA: self._venue_metadata,
            RuntimeResource.PAYOUT_LIMITS: self._payout_limits,
            RuntimeResource.SEQUENCER: self._sequencer,
        }

    def __repr__(self) -> str:
        cached = [k for k, v in self.get_status().items() if isinstance(v, dict) and v.get("cached")]
        return f"RuntimeRegistry(cached={cached})"
