from .preservation import (
    NetworkSnapshotSchema, ClassifyRequest, SignalFlagsSchema,
    ClassifyResponse, ClassificationRecordResponse,
)

__all__ = [
    "NetworkSnapshotSchema", "ClassifyRequest", "SignalFlagsSchema",
    "ClassifyResponse", "ClassificationRecordResponse",
]
