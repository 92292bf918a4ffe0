"""
Entity data models.
"""

from enum import Enum
from typing import List, Optional

from pydantic import BaseModel, ConfigDict, Field


class EntityKind(str, Enum):
    """Kinds of story elements available for detection."""

    CHARACTER = "character"
    SETTING = "setting"
    FORESHADOWING = "foreshadowing"


class DetectionHints(BaseModel):
    """Author-provided detection hints declared on the entity itself."""

    model_config = ConfigDict(populate_by_name=True, frozen=True)

    common_patterns: List[str] = Field(default_factory=list, alias="commonPatterns")
    exclude_patterns: List[str] = Field(default_factory=list, alias="excludePatterns")
    confidence: Optional[float] = Field(default=None, description="Confidence for common patterns")


class DetectableEntity(BaseModel):
    """A known story element (character, setting, foreshadowing)."""

    model_config = ConfigDict(populate_by_name=True, frozen=True)

    kind: EntityKind = Field(..., description="Entity kind")
    id: str = Field(..., description="Unique id within its kind")
    name: str = Field(..., description="Canonical name")
    export_name: str = Field(..., alias="exportName", description="Exported identifier")
    file_path: str = Field(..., alias="filePath", description="Project-relative module path")
    display_names: List[str] = Field(default_factory=list, alias="displayNames")
    aliases: List[str] = Field(default_factory=list)
    pronouns: List[str] = Field(default_factory=list)
    detection_hints: Optional[DetectionHints] = Field(default=None, alias="detectionHints")
