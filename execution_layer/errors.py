"""
Execution Layer Error Taxonomy

Every failure raised by the runtime cache and the venue clients carries:
- a stable ``code`` for structured handling upstream
- ``details`` with the offending numbers (never a bare message)
- a ``retryable`` hint (the core itself never retries)
"""

from typing import Any, Dict


class ExecutionError(Exception):
    """Base class for all execution-layer failures."""

    code: str = "E-EXEC"
    retryable: bool = False

    def __init__(self, message: str, **details: Any):
        super().__init__(message)
        self.message = message
        self.details: Dict[str, Any] = details

    def to_dict(self) -> dict:
        return {
            "code": self.code,
            "message": self.message,
            "retryable": self.retryable,
            "details": dict(self.details),
        }

    def __str__(self) -> str:
        if not self.details:
            return self.message
        rendered = ", ".join(f"{k}={v!r}" for k, v in self.details.items())
        return f"{self.message} ({rendered})"


# === Configuration / snapshot failures ===

class ConfigurationError(ExecutionError):
    """Invalid TTL, threshold or resource key. Fatal, raised at construction."""
    code = "E-CONFIG"


class StaleSnapshotError(ExecutionError):
    """Snapshot age exceeds its TTL. Not cached; caller may retry later."""
    code = "E-SNAPSHOT-STALE"
    retryable = True


class InvalidResponseError(ExecutionError):
    """Upstream returned a malformed quote or snapshot."""
    code = "E-INVALID-RESPONSE"
    retryable = True


class InvalidLimitsError(ExecutionError):
    """Payout-cap snapshot is not a positive finite amount."""
    code = "E-LIMITS-INVALID"
    retryable = True


# === Ladder failures ===

class InvalidLadderError(ExecutionError):
    """Venue metadata carries a malformed discretization ladder."""
    code = "E-LADDER-INVALID"
    retryable = True


class IncompatibleLadderError(ExecutionError):
    """A price cannot be aligned to the given ladder."""
    code = "E-LADDER-INCOMPATIBLE"


# === Business-rule rejections (deterministic) ===

class SlippageRejectedError(ExecutionError):
    """Requested slippage exceeds the venue maximum. Nothing was submitted."""
    code = "E-SLIPPAGE"


class StakeError(ExecutionError):
    """Stake is not a positive finite amount."""
    code = "E-STAKE"


class MaxPayoutExceededError(ExecutionError):
    """Expected payout exceeds the counterparty payout cap."""
    code = "E-MAX-PAYOUT"


class DeltaThresholdExceededError(ExecutionError):
    """Marginal vs quoted price delta is above the configured threshold."""
    code = "E-DELTA-THRESHOLD"


# === Submission ===

class SubmissionTimeoutError(ExecutionError):
    """
    Bounded submission deadline elapsed.

    The executor call is not cancelled and its outcome is unobserved by
    the caller.
    """
    code = "E-SUBMIT-TIMEOUT"


# === Numeric ===

class OddsConversionError(ExecutionError):
    """Numeric input outside the odds/probability domain."""
    code = "E-ODDS"
