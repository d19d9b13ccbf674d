from .classifications import ClassificationRecord

__all__ = [
    "ClassificationRecord",
]
