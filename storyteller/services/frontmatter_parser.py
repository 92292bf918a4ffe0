"""
Markdown frontmatter parser / フロントマターパーサー

Extracts the ``storyteller:`` section from a manuscript::

    ---
    storyteller:
      chapter_id: chapter01
      title: "旅の始まり"
      order: 1
      characters: [hero]
    ---
"""

from typing import Any, Dict, Optional, Tuple

import yaml
from pydantic import ValidationError as PydanticValidationError

from storyteller.exceptions import ErrorCode
from storyteller.schemas.meta import ChapterFrontmatter
from storyteller.utils.result import Result
from storyteller.utils.text import normalize_newlines

FRONTMATTER_DELIMITER = "---"
REQUIRED_FIELDS = ("chapter_id", "title", "order")


def split_frontmatter(content: str) -> Tuple[Optional[str], str]:
    """Split content into (frontmatter yaml, body).

    Returns ``(None, content)`` when the content does not start with a
    complete ``---`` block.
    """
    lines = normalize_newlines(content).split("\n")
    if not lines or lines[0].strip() != FRONTMATTER_DELIMITER:
        return None, content
    for idx in range(1, len(lines)):
        if lines[idx].strip() == FRONTMATTER_DELIMITER:
            return "\n".join(lines[1:idx]), "\n".join(lines[idx + 1 :])
    return None, content


def strip_frontmatter(content: str) -> str:
    """Return the body of a manuscript without its frontmatter block."""
    return split_frontmatter(content)[1]


class FrontmatterParser:
    """Parse and validate manuscript frontmatter."""

    def parse(self, content: str) -> Result[ChapterFrontmatter]:
        yaml_text, _body = split_frontmatter(content)
        if yaml_text is None:
            return Result.fail(
                ErrorCode.FRONTMATTER_INVALID,
                "Frontmatter not found: the file must start with a --- block",
            )

        try:
            data = yaml.safe_load(yaml_text) or {}
        except yaml.YAMLError as exc:
            return Result.fail(ErrorCode.FRONTMATTER_INVALID, f"Failed to parse frontmatter YAML: {exc}")

        section = data.get("storyteller") if isinstance(data, dict) else None
        if not isinstance(section, dict):
            return Result.fail(
                ErrorCode.FRONTMATTER_INVALID,
                "Missing 'storyteller:' section in frontmatter",
            )

        for field in REQUIRED_FIELDS:
            value = section.get(field)
            if value is None or value == "":
                return Result.fail(
                    ErrorCode.FRONTMATTER_INVALID,
                    f"Missing required frontmatter field (field: {field})",
                )

        try:
            return Result.success(ChapterFrontmatter(**self._coerce(section)))
        except PydanticValidationError as exc:
            return Result.fail(ErrorCode.FRONTMATTER_INVALID, f"Invalid frontmatter: {exc}")

    @staticmethod
    def _coerce(section: Dict[str, Any]) -> Dict[str, Any]:
        data = dict(section)
        # YAML reads "chapter_id: 01" as an int
        data["chapter_id"] = str(data["chapter_id"])
        data["title"] = str(data["title"])
        for key in ("characters", "settings", "foreshadowings", "timeline_events", "phases", "timelines"):
            value = data.get(key)
            if isinstance(value, str):
                data[key] = [value]
            elif isinstance(value, list):
                data[key] = [str(item) for item in value if item is not None]
        return data
