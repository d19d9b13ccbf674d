from pydantic import BaseModel, StrictBool, StrictInt, StrictFloat
from pydantic.alias_generators import to_camel
from typing import Optional, Dict, Any, Union
from datetime import datetime
from uuid import UUID

from ..services.disconnect_classifier import (
    DisconnectType, NetworkSnapshot, DisconnectSignals, ClassificationResult,
)

# JSON numbers only; booleans are not coerced
Number = Union[StrictInt, StrictFloat]


class CamelRequest(BaseModel):
    """Inbound bodies: camelCase keys only."""

    class Config:
        alias_generator = to_camel
        populate_by_name = False


class CamelModel(BaseModel):
    """Snake-case attributes, camelCase JSON."""

    class Config:
        alias_generator = to_camel
        populate_by_name = True
        from_attributes = True


class NetworkSnapshotSchema(CamelRequest):
    latency_ms: Number
    packet_loss_rate: Number  # 0.0 - 1.0
    is_connected: StrictBool
    timestamp: Optional[Number] = None

    def to_domain(self) -> NetworkSnapshot:
        return NetworkSnapshot(
            latency_ms=self.latency_ms,
            packet_loss_rate=self.packet_loss_rate,
            is_connected=self.is_connected,
            timestamp=self.timestamp,
        )


class ClassifyRequest(CamelRequest):
    """Signals describing one disconnect event."""
    quit_action: StrictBool
    network_before_disconnect: Optional[NetworkSnapshotSchema] = None
    time_since_last_packet: Optional[StrictInt] = None  # ms
    timeout_threshold: Optional[Number] = None          # ms, default 5000
    competitive_advantage: Optional[Number] = None      # -1.0 .. 1.0
    fairness_confidence: Optional[Number] = None        # 0.0 .. 1.0

    def to_domain(self) -> DisconnectSignals:
        snapshot = self.network_before_disconnect
        return DisconnectSignals(
            quit_action=self.quit_action,
            network_before_disconnect=snapshot.to_domain() if snapshot else None,
            time_since_last_packet=self.time_since_last_packet,
            timeout_threshold=self.timeout_threshold,
            competitive_advantage=self.competitive_advantage,
            fairness_confidence=self.fairness_confidence,
        )


class SignalFlagsSchema(CamelModel):
    quit_detected: bool
    timeout_detected: bool
    high_packet_loss: bool
    high_latency: bool
    hard_disconnect: bool
    competitive_advantage_used: bool
    fairness_confidence_used: bool


class ClassifyResponse(CamelModel):
    type: DisconnectType
    loss_applied: bool
    signals: SignalFlagsSchema

    @classmethod
    def from_result(cls, result: ClassificationResult) -> "ClassifyResponse":
        return cls(
            type=result.type,
            loss_applied=result.loss_applied,
            signals=SignalFlagsSchema(**result.signals.to_dict()),
        )


class ClassificationRecordResponse(CamelModel):
    id: UUID
    disconnect_type: DisconnectType
    loss_applied: bool
    quit_action: bool
    competitive_advantage: Optional[float] = None
    fairness_confidence: Optional[float] = None
    signals: Dict[str, Any]
    created_at: Optional[datetime] = None

    @classmethod
    def from_record(cls, record) -> "ClassificationRecordResponse":
        return cls(
            id=record.id,
            disconnect_type=record.disconnect_type,
            loss_applied=record.loss_applied,
            quit_action=record.quit_action,
            competitive_advantage=record.competitive_advantage,
            fairness_confidence=record.fairness_confidence,
            signals=record.signals or {},
            created_at=record.created_at,
        )
