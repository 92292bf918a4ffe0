"""
Schemas / データモデル
Pydantic models shared by storage, detection and emission.
"""

from .binding import BindingFile, BindingPattern
from .entity import DetectableEntity, DetectionHints, EntityKind
from .meta import (
    ChapterFrontmatter,
    ChapterMeta,
    DetectedEntityRef,
    DetectionResult,
    EntityReference,
    MatchTier,
    PatternMatch,
    PatternStats,
    ValidationRule,
)

__all__ = [
    "BindingFile",
    "BindingPattern",
    "ChapterFrontmatter",
    "ChapterMeta",
    "DetectableEntity",
    "DetectedEntityRef",
    "DetectionHints",
    "DetectionResult",
    "EntityKind",
    "EntityReference",
    "MatchTier",
    "PatternMatch",
    "PatternStats",
    "ValidationRule",
]
