import logging
from contextlib import aclosing
from typing import List, Optional

from fastapi import APIRouter, Depends, HTTPException, Query, Request
from sqlalchemy.ext.asyncio import AsyncSession

from ...config import get_settings
from ...database import get_db
from ...schemas.preservation import (
    ClassifyRequest, ClassifyResponse, ClassificationRecordResponse,
)
from ...services.disconnect_classifier import DisconnectClassifier, DisconnectType
from ...services.signal_validator import SignalValidationError, validate_signals
from ...services.classification_audit import (
    record_classification, list_recent_classifications,
)

logger = logging.getLogger(__name__)

router = APIRouter()


async def require_audit_db(request: Request):
    """Database session for the audit trail, or 503 when there is none."""
    if not getattr(request.app.state, "db_available", False):
        raise HTTPException(status_code=503, detail="Classification history unavailable: database not connected")
    async with aclosing(get_db()) as sessions:
        async for session in sessions:
            yield session


async def _audit(request: Request, body: ClassifyRequest, signals, result) -> None:
    """Best-effort persistence; the verdict stands whether or not it is stored."""
    settings = get_settings()
    if not settings.audit_classifications:
        return
    if not getattr(request.app.state, "db_available", False):
        return
    try:
        async with aclosing(get_db()) as sessions:
            async for db in sessions:
                await record_classification(
                    db, signals, result,
                    request_body=body.model_dump(by_alias=True, exclude_none=True),
                )
    except Exception as e:
        logger.warning(f"Failed to record classification audit entry: {e}")


@router.post("/classify", response_model=ClassifyResponse)
async def classify(body: ClassifyRequest, request: Request):
    """Classify a disconnect and decide whether a loss applies."""
    signals = body.to_domain()

    try:
        validate_signals(signals)
    except SignalValidationError as e:
        logger.info(f"Rejected classification request: {e}")
        raise HTTPException(
            status_code=400,
            detail={"error": f"Invalid {e.field}", "details": e.errors},
        )

    result = DisconnectClassifier.classify(signals)
    logger.info(f"Classified disconnect as {result.type.value} (loss_applied={result.loss_applied})")

    await _audit(request, body, signals, result)
    return ClassifyResponse.from_result(result)


@router.get("/classify")
async def describe_classify():
    """API documentation and example usage for the classify endpoint."""
    settings = get_settings()
    return {
        "name": "Preservation Core Classification API",
        "version": "1.0.0",
        "description": "Classifies disconnects as intentional or unintentional, "
                       "and determines if a loss should be applied.",
        "endpoint": f"/api/{settings.api_version}/preservation-core/classify",
        "method": "POST",
        "request": {
            "quitAction": {
                "type": "boolean",
                "required": True,
                "description": "True if the player explicitly quit (quit button, closing the client, etc.)",
            },
            "networkBeforeDisconnect": {
                "type": "object",
                "required": False,
                "description": "Network state before the disconnect occurred",
                "properties": {
                    "latencyMs": {"type": "number", "description": "Latency in milliseconds"},
                    "packetLossRate": {"type": "number", "description": "Packet loss rate (0.0 to 1.0)"},
                    "isConnected": {"type": "boolean", "description": "Whether the connection was active"},
                    "timestamp": {"type": "number", "description": "Optional: when the snapshot was taken"},
                },
            },
            "timeSinceLastPacket": {
                "type": "number",
                "required": False,
                "description": "Milliseconds since the last acknowledged packet",
            },
            "timeoutThreshold": {
                "type": "number",
                "required": False,
                "description": f"Timeout threshold in milliseconds (default: {DisconnectClassifier.TIMEOUT_MS})",
            },
            "competitiveAdvantage": {
                "type": "number",
                "required": False,
                "description": "Game-agnostic advantage signal (-1.0 to 1.0). -1.0 = behind, "
                               "0.0 = even, 1.0 = ahead. Computed by the studio from its own metrics.",
            },
            "fairnessConfidence": {
                "type": "number",
                "required": False,
                "description": "Game-agnostic outcome certainty (0.0 to 1.0). 0.0 = wide open, "
                               "1.0 = essentially decided. Computed by the studio from match state.",
            },
        },
        "response": {
            "type": {
                "enum": [t.value for t in DisconnectType],
                "description": "Type of disconnect detected",
            },
            "lossApplied": {
                "type": "boolean",
                "description": "Whether a loss should be applied to the player",
            },
            "signals": {
                "type": "object",
                "description": "Signals that triggered the classification",
                "properties": {
                    "quitDetected": {"type": "boolean"},
                    "timeoutDetected": {"type": "boolean"},
                    "highPacketLoss": {"type": "boolean"},
                    "highLatency": {"type": "boolean"},
                    "hardDisconnect": {"type": "boolean"},
                    "competitiveAdvantageUsed": {"type": "boolean"},
                    "fairnessConfidenceUsed": {"type": "boolean"},
                },
            },
        },
        "example": {
            "request": {
                "quitAction": False,
                "networkBeforeDisconnect": {
                    "latencyMs": 1200,
                    "packetLossRate": 0.4,
                    "isConnected": False,
                },
                "timeSinceLastPacket": 6000,
                "competitiveAdvantage": 0.7,
                "fairnessConfidence": 0.6,
            },
            "response": {
                "type": "unintentional_disconnect",
                "lossApplied": False,
                "signals": {
                    "quitDetected": False,
                    "timeoutDetected": True,
                    "highPacketLoss": True,
                    "highLatency": True,
                    "hardDisconnect": True,
                    "competitiveAdvantageUsed": True,
                    "fairnessConfidenceUsed": True,
                },
            },
        },
        "thresholds": {
            "HIGH_PACKET_LOSS": DisconnectClassifier.HIGH_PACKET_LOSS,
            "HIGH_LATENCY_MS": DisconnectClassifier.HIGH_LATENCY_MS,
            "TIMEOUT_MS": DisconnectClassifier.TIMEOUT_MS,
        },
    }


@router.get("/history", response_model=List[ClassificationRecordResponse])
async def classification_history(
    limit: Optional[int] = Query(None, ge=1, description="Number of records to return"),
    db: AsyncSession = Depends(require_audit_db),
):
    """Most recent classification verdicts, newest first."""
    settings = get_settings()
    if limit is None:
        limit = settings.history_default_limit
    limit = min(limit, settings.history_max_limit)

    records = await list_recent_classifications(db, limit=limit)
    return [ClassificationRecordResponse.from_record(r) for r in records]
