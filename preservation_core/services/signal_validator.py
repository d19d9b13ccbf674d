"""Range checks for externally supplied disconnect signals.

Classification must not run on input that fails these checks; the caller
reports the errors back to the client instead.
"""

import math
from dataclasses import dataclass, field
from typing import List, Optional

from .disconnect_classifier import DisconnectSignals, NetworkSnapshot


@dataclass
class ValidationResult:
    valid: bool
    errors: List[str] = field(default_factory=list)

    @property
    def error(self) -> Optional[str]:
        return self.errors[0] if self.errors else None


class SignalValidationError(ValueError):
    """Raised when a signal bundle contains out-of-range values."""

    def __init__(self, field_name: str, errors: List[str]):
        self.field = field_name
        self.errors = errors
        super().__init__(f"Invalid {field_name}: {'; '.join(errors)}")


def _in_range(value, low: float, high: float) -> bool:
    # Written so NaN fails
    return low <= value <= high


def validate_network_snapshot(snapshot: NetworkSnapshot) -> ValidationResult:
    errors = []

    if not (math.isfinite(snapshot.latency_ms) and snapshot.latency_ms >= 0):
        errors.append("latencyMs must be >= 0")
    if not _in_range(snapshot.packet_loss_rate, 0.0, 1.0):
        errors.append("packetLossRate must be between 0 and 1")
    if not isinstance(snapshot.is_connected, bool):
        errors.append("isConnected must be a boolean")

    return ValidationResult(valid=not errors, errors=errors)


def validate_competitive_advantage(advantage: float) -> ValidationResult:
    if not _in_range(advantage, -1.0, 1.0):
        return ValidationResult(False, ["competitiveAdvantage must be between -1.0 and 1.0"])
    return ValidationResult(True)


def validate_fairness_confidence(confidence: float) -> ValidationResult:
    if not _in_range(confidence, 0.0, 1.0):
        return ValidationResult(False, ["fairnessConfidence must be between 0.0 and 1.0"])
    return ValidationResult(True)


def validate_duration(value: float, field_name: str) -> ValidationResult:
    """Millisecond durations must be finite and non-negative."""
    if not (math.isfinite(value) and value >= 0):
        return ValidationResult(False, [f"{field_name} must be >= 0"])
    return ValidationResult(True)


def validate_signals(signals: DisconnectSignals) -> None:
    """Check every optional field of a signal bundle.

    Raises:
        SignalValidationError: for the first group of fields that fails,
            checked in the order network snapshot, competitive advantage,
            fairness confidence, then the millisecond durations.
    """
    checks = []
    if signals.network_before_disconnect is not None:
        checks.append(("networkBeforeDisconnect",
                       validate_network_snapshot(signals.network_before_disconnect)))
    if signals.competitive_advantage is not None:
        checks.append(("competitiveAdvantage",
                       validate_competitive_advantage(signals.competitive_advantage)))
    if signals.fairness_confidence is not None:
        checks.append(("fairnessConfidence",
                       validate_fairness_confidence(signals.fairness_confidence)))
    for field_name, value in (("timeSinceLastPacket", signals.time_since_last_packet),
                              ("timeoutThreshold", signals.timeout_threshold)):
        if value is not None:
            checks.append((field_name, validate_duration(value, field_name)))

    for field_name, result in checks:
        if not result.valid:
            raise SignalValidationError(field_name, result.errors)
