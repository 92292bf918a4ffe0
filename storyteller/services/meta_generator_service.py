# -*- coding: utf-8 -*-
"""
StoryTeller Meta - 原稿とストーリーデータを同期させるメタ生成ツール
StoryTeller Meta - Keeps manuscripts and structured story data in sync

Copyright © 2025-2026 StoryTeller Team
License: PolyForm Noncommercial License 1.0.0

モジュール説明 / Module Description:
  メタ生成サービス - 原稿 Markdown から ChapterMeta を組み立てて出力する
  Meta generator service - Turns a manuscript into a ChapterMeta and writes
  its ``.meta.ts`` module.

処理の流れ / Pipeline:
  read -> frontmatter -> project root -> detect -> validations
  -> references -> (dry run stops here) -> output checks -> emit
"""

from pathlib import Path
from typing import Dict, List, Optional

from pydantic import BaseModel, Field

from storyteller.exceptions import ErrorCode, StorytellerError
from storyteller.schemas.meta import (
    ChapterFrontmatter,
    ChapterMeta,
    DetectedEntityRef,
    DetectionResult,
    EntityReference,
    ValidationRule,
)
from storyteller.services.frontmatter_parser import FrontmatterParser
from storyteller.services.presets import get_preset
from storyteller.services.reference_detector import ReferenceDetector
from storyteller.services.typescript_emitter import TypeScriptEmitter
from storyteller.services.validation_generator import PLOT_ADVANCEMENT, ValidationGenerator
from storyteller.storage.gateway import FileSystemGateway
from storyteller.utils.logger import get_logger
from storyteller.utils.paths import find_project_root
from storyteller.utils.result import MetaError, Result

logger = get_logger(__name__)

META_SUFFIX = ".meta.ts"


class MetaGenerateOptions(BaseModel):
    """Options for :meth:`MetaGeneratorService.generate_from_markdown`."""

    project_path: Optional[str] = None
    output_path: Optional[str] = None
    dry_run: bool = False
    force: bool = False
    characters: Optional[List[str]] = Field(default=None, description="Replaces frontmatter characters")
    settings: Optional[List[str]] = Field(default=None, description="Replaces frontmatter settings")
    preset: Optional[str] = None
    update: bool = False


def default_output_path(markdown_path: Path, chapter_id: str) -> Path:
    """``chapter01.md`` -> ``chapter01.meta.ts`` in the same directory."""
    markdown_path = Path(markdown_path)
    if markdown_path.suffix.lower() == ".md":
        return markdown_path.with_name(f"{markdown_path.stem}{META_SUFFIX}")
    return markdown_path.with_name(f"{chapter_id}{META_SUFFIX}")


def build_references(detected: DetectionResult) -> Dict[str, EntityReference]:
    """Map every matched pattern to the entity that owns it.

    When two entities share a pattern, the more confident one wins; ties go
    to the entity seen first (characters before settings).
    """
    owners: Dict[str, DetectedEntityRef] = {}
    for ref in [*detected.characters, *detected.settings]:
        for pattern in ref.matched_patterns:
            current = owners.get(pattern)
            if current is None or _pattern_confidence(ref, pattern) > _pattern_confidence(current, pattern):
                owners[pattern] = ref
    return {
        pattern: EntityReference(
            kind=ref.kind, id=ref.id, export_name=ref.export_name, file_path=ref.file_path
        )
        for pattern, ref in owners.items()
    }


def _pattern_confidence(ref: DetectedEntityRef, pattern: str) -> float:
    stats = (ref.pattern_matches or {}).get(pattern)
    return stats.confidence if stats is not None else ref.confidence


def apply_preset(validations: List[ValidationRule], preset_name: Optional[str]) -> List[ValidationRule]:
    """Replace the placeholder plot rule with the preset's rules.

    Raises:
        UnknownPresetError: *preset_name* is not a known preset.
    """
    if not preset_name:
        return validations
    preset = get_preset(preset_name)
    rules = [rule for rule in validations if rule.type != PLOT_ADVANCEMENT]
    return [*rules, *preset.validations]


class MetaGeneratorService:
    """
    メタ生成サービス

    Orchestrates frontmatter parsing, reference detection, validation
    generation and emission. Every expected failure is returned as a
    :class:`Result`; only programming errors raise.
    """

    def __init__(
        self,
        frontmatter_parser: Optional[FrontmatterParser] = None,
        reference_detector: Optional[ReferenceDetector] = None,
        validation_generator: Optional[ValidationGenerator] = None,
        emitter: Optional[TypeScriptEmitter] = None,
        gateway: Optional[FileSystemGateway] = None,
    ):
        self.gateway = gateway or FileSystemGateway()
        self.frontmatter_parser = frontmatter_parser or FrontmatterParser()
        self.reference_detector = reference_detector or ReferenceDetector()
        self.validation_generator = validation_generator or ValidationGenerator()
        self.emitter = emitter or TypeScriptEmitter(self.gateway)

    async def generate_from_markdown(
        self,
        markdown_path: str | Path,
        options: Optional[MetaGenerateOptions] = None,
    ) -> Result[ChapterMeta]:
        """
        原稿から ChapterMeta を生成する

        Args:
            markdown_path: Manuscript file.
            options: Generation options; defaults write next to the manuscript.

        Returns:
            The generated meta, or a failure carrying one of the
            ``ErrorCode`` values.
        """
        options = options or MetaGenerateOptions()
        markdown_path = Path(markdown_path)
        logger.info("Generating meta for %s", markdown_path)

        content = await self.gateway.read_file(markdown_path)
        if content.is_failure:
            return content

        parsed = self.frontmatter_parser.parse(content.value)
        if parsed.is_failure:
            return Result.failure(
                MetaError(parsed.error.code, parsed.error.message, str(markdown_path))
            )
        frontmatter = self._apply_overrides(parsed.value, options)

        project_root = self._resolve_project_root(markdown_path, options)
        if project_root is None:
            return Result.fail(
                ErrorCode.PROJECT_ROOT_NOT_FOUND,
                f"Could not find project root (a directory containing src/) above {markdown_path.parent}",
                str(markdown_path),
            )

        try:
            detected = await self.reference_detector.detect(content.value, frontmatter, project_root)
            validations = apply_preset(
                self.validation_generator.generate(detected), options.preset
            )
        except StorytellerError as exc:
            logger.warning("Meta generation failed for %s: %s", markdown_path, exc.message)
            return Result.failure(MetaError.from_exception(exc, str(markdown_path)))

        meta = ChapterMeta(
            id=frontmatter.chapter_id,
            title=frontmatter.title,
            order=frontmatter.order,
            characters=detected.characters,
            settings=detected.settings,
            validations=validations,
            references=build_references(detected),
            summary=frontmatter.summary,
        )
        logger.debug(
            "Detected %d characters, %d settings (confidence %.2f)",
            len(meta.characters),
            len(meta.settings),
            detected.confidence,
        )

        if options.dry_run:
            return Result.success(meta)

        output_path = (
            Path(options.output_path)
            if options.output_path
            else default_output_path(markdown_path, frontmatter.chapter_id)
        )

        if options.update:
            written = await self.emitter.update_or_emit(meta, output_path)
        else:
            exists = await self.gateway.exists(output_path)
            if exists.is_failure:
                return exists
            if exists.value and not options.force:
                return Result.fail(
                    ErrorCode.OUTPUT_EXISTS,
                    f"Output file already exists: {output_path} (use --force to overwrite)",
                    str(output_path),
                )
            written = await self.emitter.emit(meta, output_path)

        if written.is_failure:
            return written
        return Result.success(meta)

    @staticmethod
    def _apply_overrides(
        frontmatter: ChapterFrontmatter, options: MetaGenerateOptions
    ) -> ChapterFrontmatter:
        update = {}
        if options.characters is not None:
            update["characters"] = list(options.characters)
        if options.settings is not None:
            update["settings"] = list(options.settings)
        return frontmatter.model_copy(update=update) if update else frontmatter

    @staticmethod
    def _resolve_project_root(markdown_path: Path, options: MetaGenerateOptions) -> Optional[Path]:
        if options.project_path:
            return Path(options.project_path).resolve()
        return find_project_root(markdown_path.parent)
