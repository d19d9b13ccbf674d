# Core modules (no database dependencies)
from .disconnect_classifier import (
    DisconnectClassifier, DisconnectType, NetworkSnapshot, DisconnectSignals,
    SignalFlags, ClassificationResult, classify_disconnect,
)
from .signal_validator import (
    ValidationResult, SignalValidationError, validate_network_snapshot,
    validate_competitive_advantage, validate_fairness_confidence,
    validate_duration, validate_signals,
)

__all__ = [
    "DisconnectClassifier",
    "DisconnectType",
    "NetworkSnapshot",
    "DisconnectSignals",
    "SignalFlags",
    "ClassificationResult",
    "classify_disconnect",
    "ValidationResult",
    "SignalValidationError",
    "validate_network_snapshot",
    "validate_competitive_advantage",
    "validate_fairness_confidence",
    "validate_duration",
    "validate_signals",
]
