from sqlalchemy import Column, String, Boolean, Float
from sqlalchemy.dialects.postgresql import TIMESTAMP, JSONB, UUID
from sqlalchemy.sql import func
import uuid
from ..database import Base


class ClassificationRecord(Base):
    """Audit trail of disconnect classifications."""
    __tablename__ = "disconnect_classifications"

    id = Column(UUID(as_uuid=True), primary_key=True, default=uuid.uuid4)

    # Verdict
    disconnect_type = Column(String(32), nullable=False, index=True)  # 'none', 'intentional_disconnect', 'unintentional_disconnect'
    loss_applied = Column(Boolean, nullable=False)

    # Inputs worth filtering on
    quit_action = Column(Boolean, nullable=False)
    competitive_advantage = Column(Float)
    fairness_confidence = Column(Float)

    # Evaluated flags and the raw signal bundle as received
    signals = Column(JSONB, default=dict)
    request = Column(JSONB, default=dict)

    created_at = Column(TIMESTAMP(timezone=True), server_default=func.now(), index=True)
