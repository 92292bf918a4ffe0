# -*- coding: utf-8 -*-
"""
StoryTeller Meta - 原稿とストーリーデータを同期させるメタ生成ツール
StoryTeller Meta - Keeps manuscripts and structured story data in sync

Copyright © 2025-2026 StoryTeller Team
License: PolyForm Noncommercial License 1.0.0

モジュール説明 / Module Description:
  バインディングローダー - エンティティ毎の *.binding.yaml を読み込み正規化する
  Binding loader - Reads per-entity ``*.binding.yaml`` overrides and normalizes
  both the current and the legacy dialect into a :class:`BindingFile`.
"""

from numbers import Real
from pathlib import Path
from typing import Any, List, Optional

import yaml

from storyteller.config import config
from storyteller.exceptions import BindingLoadError
from storyteller.schemas.binding import BindingFile, BindingPattern, clamp_confidence
from storyteller.storage.base import BaseStorage
from storyteller.utils.logger import get_logger

logger = get_logger(__name__)

_detection_cfg = config.get("detection", {})
DEFAULT_CONFIDENCE = float(_detection_cfg.get("default_binding_confidence", 0.95))

BINDING_SUFFIX = ".binding.yaml"


def binding_path_for(entity_file: Path, entity_id: str) -> Path:
    """Return the binding path that sits beside an entity module.

    Example:
        >>> binding_path_for(Path("src/characters/hero.ts"), "hero")
        PosixPath('src/characters/hero.binding.yaml')
    """
    return Path(entity_file).parent / f"{entity_id}{BINDING_SUFFIX}"


class BindingLoader(BaseStorage):
    """
    バインディングファイルローダー

    Loads ``*.binding.yaml`` files. Not cached: every call reads the file again
    so edits are picked up by the next detection run.
    """

    async def load(self, path: Path) -> Optional[BindingFile]:
        """Load and normalize a binding file.

        Args:
            path: Binding file path.

        Returns:
            Normalized binding, or None when the file does not exist.

        Raises:
            BindingLoadError: The file exists but is unreadable, is not valid
                YAML, or matches neither the current nor the legacy schema.
        """
        path = Path(path)
        try:
            data = await self.read_yaml(path)
        except FileNotFoundError:
            return None
        except OSError as exc:
            raise BindingLoadError(f"Failed to read binding file: {path}: {exc}") from exc
        except yaml.YAMLError as exc:
            raise BindingLoadError(f"Failed to parse YAML: {path}: {exc}") from exc

        binding = self.parse(data, source=str(path))
        logger.debug(
            "Loaded binding %s (%d patterns, %d excludes)",
            path,
            len(binding.patterns),
            len(binding.exclude_patterns),
        )
        return binding

    def parse(self, data: Any, source: str = "<binding>") -> BindingFile:
        """Normalize parsed YAML into a :class:`BindingFile`."""
        if not isinstance(data, dict):
            raise BindingLoadError(f"Invalid binding.yaml: expected a mapping at root ({source})")

        version = data.get("version")
        has_current = version == 1 and not isinstance(version, bool) and "patterns" in data
        has_legacy = "version" not in data and "references" in data

        if has_current:
            patterns = self._parse_patterns(data.get("patterns"), source)
        elif has_legacy:
            patterns = self._parse_legacy_references(data.get("references"), source)
        else:
            raise BindingLoadError(
                f"Invalid binding.yaml: unsupported schema in {source} "
                "(expected version: 1 + patterns[], or legacy references[])"
            )

        excludes = self._parse_exclude_patterns(data.get("excludePatterns"), source)
        return BindingFile(patterns=patterns, exclude_patterns=excludes)

    def _parse_patterns(self, raw: Any, source: str) -> List[BindingPattern]:
        if not isinstance(raw, list):
            raise BindingLoadError(f"Invalid binding.yaml: patterns must be an array ({source})")
        patterns: List[BindingPattern] = []
        for entry in raw:
            if not isinstance(entry, dict):
                raise BindingLoadError(
                    f"Invalid binding.yaml: patterns entries must be objects ({source})"
                )
            text = entry.get("text")
            if not isinstance(text, str) or not text.strip():
                raise BindingLoadError(
                    f"Invalid binding.yaml: patterns[].text must be a string ({source})"
                )
            patterns.append(
                BindingPattern(text=text, confidence=self._confidence(entry.get("confidence")))
            )
        return patterns

    def _parse_legacy_references(self, raw: Any, source: str) -> List[BindingPattern]:
        if not isinstance(raw, list):
            raise BindingLoadError(f"Invalid binding.yaml: references must be an array ({source})")
        patterns: List[BindingPattern] = []
        for entry in raw:
            if not isinstance(entry, dict):
                continue
            text = entry.get("pattern")
            if not isinstance(text, str) or not text.strip():
                continue
            patterns.append(
                BindingPattern(text=text, confidence=self._confidence(entry.get("confidence")))
            )
        return patterns

    def _parse_exclude_patterns(self, raw: Any, source: str) -> List[str]:
        if raw is None:
            return []
        if not isinstance(raw, list):
            raise BindingLoadError(
                f"Invalid binding.yaml: excludePatterns must be an array ({source})"
            )
        return [entry for entry in raw if isinstance(entry, str) and entry.strip()]

    @staticmethod
    def _confidence(value: Any) -> float:
        # bool is a Real subclass; treat it as "not given"
        if isinstance(value, Real) and not isinstance(value, bool):
            return clamp_confidence(value)
        return DEFAULT_CONFIDENCE
