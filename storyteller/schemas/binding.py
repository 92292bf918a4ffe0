"""
Binding file models.

On-disk schema (``<entity id>.binding.yaml``)::

    version: 1
    patterns:
      - text: "勇者"
        confidence: 0.9
    excludePatterns:
      - "勇者という存在"

Legacy dialect (still accepted)::

    character: hero
    references:
      - pattern: "勇者"
        confidence: 0.9
"""

from typing import List

from pydantic import BaseModel, ConfigDict, Field, field_validator

DEFAULT_BINDING_CONFIDENCE = 0.95


def clamp_confidence(value: float) -> float:
    """Clamp a confidence value to ``[0, 1]``; NaN becomes 0."""
    if value != value:  # NaN
        return 0.0
    return min(1.0, max(0.0, float(value)))


class BindingPattern(BaseModel):
    """Explicit match pattern for one entity."""

    model_config = ConfigDict(frozen=True)

    text: str = Field(..., min_length=1, description="Literal text to search for")
    confidence: float = Field(default=DEFAULT_BINDING_CONFIDENCE, description="Confidence in [0, 1]")

    @field_validator("confidence", mode="before")
    @classmethod
    def _clamp(cls, value):
        if value is None:
            return DEFAULT_BINDING_CONFIDENCE
        return clamp_confidence(value)


class BindingFile(BaseModel):
    """Normalized binding override for one entity."""

    model_config = ConfigDict(populate_by_name=True, frozen=True)

    patterns: List[BindingPattern] = Field(default_factory=list)
    exclude_patterns: List[str] = Field(default_factory=list, alias="excludePatterns")
