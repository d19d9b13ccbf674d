"""Disconnect Classification Engine.

Decides, when a match ends in a disconnect, whether the departing player is
charged with a loss. Inputs are normalized and game-agnostic: an explicit quit
flag, a network snapshot taken before the disconnect, the time since the last
acknowledged packet, and two optional studio-supplied context signals.

The engine is a pure function of its input. It holds no state between calls
and is safe to call concurrently.
"""

from dataclasses import dataclass, asdict
from typing import Dict, Optional
from enum import Enum
import logging

logger = logging.getLogger(__name__)


class DisconnectType(str, Enum):
    """Classification of how a match ended."""
    NONE = "none"                                # Normal completion
    INTENTIONAL = "intentional_disconnect"       # Explicit quit
    UNINTENTIONAL = "unintentional_disconnect"   # Network failure


@dataclass(frozen=True)
class NetworkSnapshot:
    """Network quality reading captured before the disconnect."""
    latency_ms: float
    packet_loss_rate: float  # 0.0 - 1.0
    is_connected: bool
    timestamp: Optional[float] = None  # Advisory only


@dataclass(frozen=True)
class DisconnectSignals:
    """Everything known about one disconnect event."""
    quit_action: bool
    network_before_disconnect: Optional[NetworkSnapshot] = None
    time_since_last_packet: Optional[int] = None  # ms
    timeout_threshold: Optional[float] = None     # ms, defaults to TIMEOUT_MS
    competitive_advantage: Optional[float] = None  # -1.0 (behind) .. 1.0 (ahead)
    fairness_confidence: Optional[float] = None    # 0.0 (open) .. 1.0 (settled)


@dataclass(frozen=True)
class SignalFlags:
    """Boolean summary of the evaluated thresholds."""
    quit_detected: bool = False
    timeout_detected: bool = False
    high_packet_loss: bool = False
    high_latency: bool = False
    hard_disconnect: bool = False
    competitive_advantage_used: bool = False
    fairness_confidence_used: bool = False

    @property
    def network_problem(self) -> bool:
        return (
            self.timeout_detected
            or self.high_packet_loss
            or self.high_latency
            or self.hard_disconnect
        )

    def to_dict(self) -> Dict[str, bool]:
        return asdict(self)


@dataclass(frozen=True)
class ClassificationResult:
    """Verdict for one disconnect."""
    type: DisconnectType
    loss_applied: bool
    signals: SignalFlags

    def to_dict(self) -> Dict:
        return {
            "type": self.type.value,
            "loss_applied": self.loss_applied,
            "signals": self.signals.to_dict(),
        }


class DisconnectClassifier:
    """Threshold evaluation and the ordered decision chain.

    Rules are evaluated top to bottom and the first match wins:

    1. Explicit quit -> intentional disconnect, loss applied. Nothing overrides it.
    2. Any network problem (timeout, packet loss, latency, hard disconnect)
       -> unintentional disconnect, match preserved. Context signals only pick
       which preservation sub-rule is reported; every sub-rule preserves.
    3. Otherwise -> no disconnect, no loss.
    """

    # Network thresholds (inclusive)
    HIGH_PACKET_LOSS = 0.25
    HIGH_LATENCY_MS = 800
    TIMEOUT_MS = 5000

    # Context bands (exclusive)
    ADVANTAGE_AHEAD = 0.3
    ADVANTAGE_BEHIND = -0.3
    CONFIDENCE_SETTLED = 0.8
    CONFIDENCE_OPEN = 0.3

    @classmethod
    def evaluate_signals(cls, signals: DisconnectSignals) -> SignalFlags:
        """Convert raw signal values into boolean flags.

        Network-derived flags stay False when no snapshot was supplied.
        """
        threshold = signals.timeout_threshold
        if threshold is None:
            threshold = cls.TIMEOUT_MS

        timeout_detected = (
            signals.time_since_last_packet is not None
            and signals.time_since_last_packet >= threshold
        )

        high_packet_loss = high_latency = hard_disconnect = False
        snapshot = signals.network_before_disconnect
        if snapshot is not None:
            high_packet_loss = snapshot.packet_loss_rate >= cls.HIGH_PACKET_LOSS
            high_latency = snapshot.latency_ms >= cls.HIGH_LATENCY_MS
            hard_disconnect = not snapshot.is_connected

        return SignalFlags(
            quit_detected=signals.quit_action,
            timeout_detected=timeout_detected,
            high_packet_loss=high_packet_loss,
            high_latency=high_latency,
            hard_disconnect=hard_disconnect,
            competitive_advantage_used=signals.competitive_advantage is not None,
            fairness_confidence_used=signals.fairness_confidence is not None,
        )

    @classmethod
    def preservation_rule(cls, signals: DisconnectSignals) -> str:
        """Name the context sub-rule that preserves a network-failure match."""
        advantage = signals.competitive_advantage
        confidence = signals.fairness_confidence

        if advantage is not None and advantage > cls.ADVANTAGE_AHEAD:
            return "advantaged"
        # Behind in a settled match still preserves: network failure wins over
        # competitive state, even if the disconnect might be an escape.
        if (
            advantage is not None
            and advantage < cls.ADVANTAGE_BEHIND
            and confidence is not None
            and confidence > cls.CONFIDENCE_SETTLED
        ):
            return "settled_deficit"
        if confidence is not None and confidence < cls.CONFIDENCE_OPEN:
            return "open_outcome"
        return "default"

    @classmethod
    def classify(cls, signals: DisconnectSignals) -> ClassificationResult:
        """Classify a disconnect and decide whether a loss applies.

        Expects input that already passed the signal validator. Never raises.
        """
        flags = cls.evaluate_signals(signals)

        if signals.quit_action:
            return ClassificationResult(DisconnectType.INTENTIONAL, True, flags)

        if flags.network_problem:
            rule = cls.preservation_rule(signals)
            logger.debug(f"Network failure detected, match preserved ({rule})")
            return ClassificationResult(DisconnectType.UNINTENTIONAL, False, flags)

        return ClassificationResult(DisconnectType.NONE, False, flags)


def classify_disconnect(signals: DisconnectSignals) -> ClassificationResult:
    """Module-level entry point for in-process callers."""
    return DisconnectClassifier.classify(signals)
