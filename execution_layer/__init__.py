"""
Cross-Venue Execution Layer

Core Components:
- RuntimeRegistry: single-flight TTL cache of runtime facts
  (bank, gas per chain, venue metadata, payout limits, sequencer)
- LadderVenueClient: ladder-aligned quotes, bounded-time order placement
- QuoteSimulationClient: delta / payout-cap validated trade simulation
- align_odds_to_ladder + odds helpers: pure numeric utilities
"""

from execution_layer.errors import (
    ConfigurationError,
    DeltaThresholdExceededError,
    ExecutionError,
    IncompatibleLadderError,
    InvalidLadderError,
    InvalidLimitsError,
    InvalidResponseError,
    MaxPayoutExceededError,
    OddsConversionError,
    SlippageRejectedError,
    StaleSnapshotError,
    StakeError,
    SubmissionTimeoutError,
)
from execution_layer.ladder import align_odds_to_ladder
from execution_layer.ladder_client import (
    BetExecution,
    BetRequest,
    Fill,
    LadderVenueClient,
    OrderResponse,
    OrderStatus,
    PreparedOrder,
    Quote,
    QuoteRequest,
)
from execution_layer.quote_simulator import (
    EngineQuote,
    QuoteSimulation,
    QuoteSimulationClient,
    SimulationRequest,
)
from execution_layer.runtime_cache import (
    KeyedSnapshotCache,
    RuntimeFetchers,
    RuntimeRegistry,
    RuntimeResource,
    RuntimeTtls,
    SnapshotCache,
)
from execution_layer.snapshots import (
    BankSnapshot,
    GasSnapshot,
    PayoutLimitsSnapshot,
    SequencerStatus,
    VenueMetadata,
)

__all__ = [
    # Runtime cache
    "RuntimeRegistry",
    "RuntimeFetchers",
    "RuntimeResource",
    "RuntimeTtls",
    "SnapshotCache",
    "KeyedSnapshotCache",
    # Snapshots
    "BankSnapshot",
    "GasSnapshot",
    "PayoutLimitsSnapshot",
    "SequencerStatus",
    "VenueMetadata",
    # Ladder venue
    "LadderVenueClient",
    "align_odds_to_ladder",
    "BetExecution",
    "BetRequest",
    "Fill",
    "OrderResponse",
    "OrderStatus",
    "PreparedOrder",
    "Quote",
    "QuoteRequest",
    # Quote simulation
    "QuoteSimulationClient",
    "EngineQuote",
    "QuoteSimulation",
    "SimulationRequest",
    # Errors
    "ExecutionError",
    "ConfigurationError",
    "StaleSnapshotError",
    "InvalidResponseError",
    "InvalidLimitsError",
    "InvalidLadderError",
    "IncompatibleLadderError",
    "SlippageRejectedError",
    "SubmissionTimeoutError",
    "StakeError",
    "MaxPayoutExceededError",
    "DeltaThresholdExceededError",
    "OddsConversionError",
]
