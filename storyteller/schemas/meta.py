"""
Chapter meta models.
"""

from enum import Enum
from typing import Dict, List, Optional

from pydantic import BaseModel, ConfigDict, Field

from storyteller.schemas.entity import EntityKind


class MatchTier(str, Enum):
    """Which matcher produced a pattern match."""

    BINDING = "binding"
    EXACT = "exact"
    DISPLAY_NAME = "display_name"
    HINT = "hint"
    ALIAS = "alias"
    PRONOUN = "pronoun"


class PatternMatch(BaseModel):
    """One matched surface form inside a chapter body."""

    model_config = ConfigDict(frozen=True)

    pattern: str
    occurrences: int = 0
    confidence: float
    tier: MatchTier


class PatternStats(BaseModel):
    """Per-pattern statistics attached to a detected entity."""

    model_config = ConfigDict(frozen=True)

    occurrences: int = 0
    confidence: float


class DetectedEntityRef(BaseModel):
    """Finalized per-chapter detection result for one entity."""

    model_config = ConfigDict(populate_by_name=True, frozen=True)

    kind: EntityKind
    id: str
    export_name: str = Field(..., alias="exportName")
    file_path: str = Field(..., alias="filePath")
    matched_patterns: List[str] = Field(default_factory=list, alias="matchedPatterns")
    occurrences: int = 0
    confidence: float = 0.0
    pattern_matches: Optional[Dict[str, PatternStats]] = Field(default=None, alias="patternMatches")


class DetectionResult(BaseModel):
    """Output of :meth:`ReferenceDetector.detect`."""

    model_config = ConfigDict(frozen=True)

    characters: List[DetectedEntityRef] = Field(default_factory=list)
    settings: List[DetectedEntityRef] = Field(default_factory=list)
    confidence: float = Field(default=0.0, description="Mean confidence across detected refs")


class EntityReference(BaseModel):
    """Target of a matched pattern in the references map."""

    model_config = ConfigDict(populate_by_name=True, frozen=True)

    kind: EntityKind
    id: str
    export_name: str = Field(..., alias="exportName")
    file_path: str = Field(..., alias="filePath")


class ValidationRule(BaseModel):
    """Validation rule rendered into the meta module.

    ``validate`` holds TypeScript source of a boolean-returning function over
    the chapter content.
    """

    model_config = ConfigDict(frozen=True, populate_by_name=True)

    type: str
    validate_expr: str = Field(..., alias="validate")
    message: str = ""


class ChapterFrontmatter(BaseModel):
    """The ``storyteller:`` section of a manuscript's frontmatter."""

    model_config = ConfigDict(extra="ignore")

    chapter_id: str
    title: str
    order: int
    characters: Optional[List[str]] = None
    settings: Optional[List[str]] = None
    foreshadowings: Optional[List[str]] = None
    timeline_events: Optional[List[str]] = None
    phases: Optional[List[str]] = None
    timelines: Optional[List[str]] = None
    summary: Optional[str] = None


class ChapterMeta(BaseModel):
    """The unit the TypeScript emitter renders."""

    model_config = ConfigDict(frozen=True)

    id: str
    title: str
    order: int
    characters: List[DetectedEntityRef] = Field(default_factory=list)
    settings: List[DetectedEntityRef] = Field(default_factory=list)
    validations: Optional[List[ValidationRule]] = None
    references: Optional[Dict[str, EntityReference]] = None
    summary: Optional[str] = None
