"""Audit trail for classification decisions.

The engine itself never stores anything; the HTTP service records each
verdict here so studios can review disputed losses later.
"""

import logging
from typing import Any, Dict, List

from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from ..models import ClassificationRecord
from ..schemas.preservation import SignalFlagsSchema
from .disconnect_classifier import ClassificationResult, DisconnectSignals

logger = logging.getLogger(__name__)


def _camel_flags(result: ClassificationResult) -> Dict[str, bool]:
    return SignalFlagsSchema(**result.signals.to_dict()).model_dump(by_alias=True)


def build_record(
    signals: DisconnectSignals,
    result: ClassificationResult,
    request_body: Dict[str, Any],
) -> ClassificationRecord:
    return ClassificationRecord(
        disconnect_type=result.type.value,
        loss_applied=result.loss_applied,
        quit_action=signals.quit_action,
        competitive_advantage=signals.competitive_advantage,
        fairness_confidence=signals.fairness_confidence,
        signals=_camel_flags(result),
        request=request_body,
    )


async def record_classification(
    db: AsyncSession,
    signals: DisconnectSignals,
    result: ClassificationResult,
    request_body: Dict[str, Any],
) -> ClassificationRecord:
    """Persist one verdict and return the stored row."""
    record = build_record(signals, result, request_body)
    db.add(record)
    await db.commit()
    await db.refresh(record)
    logger.debug(f"Recorded classification {record.id} ({record.disconnect_type})")
    return record


async def list_recent_classifications(db: AsyncSession, limit: int = 20) -> List[ClassificationRecord]:
    """Most recent verdicts, newest first."""
    result = await db.execute(
        select(ClassificationRecord)
        .order_by(ClassificationRecord.created_at.desc())
        .limit(limit)
    )
    return list(result.scalars().all())
