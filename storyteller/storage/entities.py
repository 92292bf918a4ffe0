# -*- coding: utf-8 -*-
"""
StoryTeller Meta - 原稿とストーリーデータを同期させるメタ生成ツール
StoryTeller Meta - Keeps manuscripts and structured story data in sync

Copyright © 2025-2026 StoryTeller Team
License: PolyForm Noncommercial License 1.0.0

モジュール説明 / Module Description:
  エンティティローダー - src/characters などからエンティティ定義を読み込む
  Entity loader - Reads character/setting/foreshadowing definitions from a
  project without executing any code.

実装方式 / Implementation:
  .yaml/.yml/.json はそのままデータとして読み込む。
  .ts モジュールは ``export const name = { ... }`` のオブジェクトリテラルを
  括弧の対応で切り出し、文字列をダブルクォートに正規化した上で YAML の
  フロー形式として解析する（制限付きサブセット）。

  Data files are read as data. TypeScript modules are read as a restricted
  object-literal subset: each exported literal is cut out by brace matching,
  comments are dropped, strings are normalized to double quotes and the
  result is parsed as a YAML flow mapping.
"""

import json
import re
from pathlib import Path
from typing import Any, Dict, Iterator, List, Optional, Tuple

import yaml

from storyteller.config import settings
from storyteller.exceptions import EntityLoadError
from storyteller.schemas.entity import DetectableEntity, DetectionHints, EntityKind
from storyteller.storage.base import BaseStorage
from storyteller.utils.logger import get_logger
from storyteller.utils.paths import to_posix_relative, validate_path_within

logger = get_logger(__name__)

_EXPORT_RE = re.compile(
    r"export\s+const\s+([A-Za-z_$][\w$]*)\s*(?::\s*[^=]+?)?\s*=\s*\{"
)
_DATA_SUFFIXES = {".yaml", ".yml", ".json"}


def entity_dir_for(kind: EntityKind) -> str:
    """Project-relative directory holding entities of *kind*."""
    return {
        EntityKind.CHARACTER: settings.character_dir,
        EntityKind.SETTING: settings.setting_dir,
        EntityKind.FORESHADOWING: settings.foreshadowing_dir,
    }[kind]


class EntityLoader(BaseStorage):
    """
    エンティティローダー

    Loads :class:`DetectableEntity` records for one kind of a project.
    A missing directory yields an empty list.
    """

    async def load_entities(self, project_path: str | Path, kind: EntityKind) -> List[DetectableEntity]:
        project_root = self.get_project_path(project_path)
        entity_dir = project_root / entity_dir_for(kind)
        if not entity_dir.is_dir():
            logger.debug("No %s directory at %s", kind.value, entity_dir)
            return []

        entities: List[DetectableEntity] = []
        for file_path in sorted(entity_dir.iterdir()):
            if not file_path.is_file() or file_path.name.endswith(".binding.yaml"):
                continue
            if file_path.suffix == ".ts" and not file_path.name.endswith(".d.ts"):
                reader = self._read_module
            elif file_path.suffix in _DATA_SUFFIXES:
                reader = self._read_data_file
            else:
                continue

            try:
                resolved = validate_path_within(file_path, project_root)
            except ValueError as exc:
                raise EntityLoadError(f"Entity file resolves outside the project: {file_path}") from exc

            rel_path = to_posix_relative(resolved, project_root)
            for export_name, record in await reader(file_path):
                entity = self._to_entity(record, kind, export_name, rel_path)
                if entity is not None:
                    entities.append(entity)

        entities.sort(key=lambda e: (e.file_path, e.export_name))
        logger.debug("Loaded %d %s entities from %s", len(entities), kind.value, entity_dir)
        return entities

    async def _read(self, file_path: Path) -> str:
        try:
            return await self.read_text(file_path)
        except OSError as exc:
            raise EntityLoadError(f"Failed to read entity file: {file_path}: {exc}") from exc

    async def _read_data_file(self, file_path: Path) -> List[Tuple[str, Any]]:
        raw = await self._read(file_path)
        try:
            data = json.loads(raw) if file_path.suffix == ".json" else yaml.safe_load(raw)
        except (ValueError, yaml.YAMLError) as exc:
            logger.warning("Skipping unparsable entity file %s: %s", file_path, exc)
            return []

        stem = file_path.stem
        if isinstance(data, list):
            return [(self._export_name_of(item, stem), item) for item in data]
        return [(self._export_name_of(data, stem), data)]

    async def _read_module(self, file_path: Path) -> List[Tuple[str, Any]]:
        source = await self._read(file_path)
        try:
            literals = extract_exported_literals(source)
        except yaml.YAMLError as exc:
            logger.warning("Skipping entity module %s: %s", file_path, exc)
            return []

        records: List[Tuple[str, Any]] = []
        for export_name, literal in literals:
            try:
                records.append((export_name, parse_object_literal(literal)))
            except yaml.YAMLError as exc:
                logger.warning(
                    "Skipping export %s in %s: unsupported object literal (%s)",
                    export_name,
                    file_path,
                    exc,
                )
        return records

    @staticmethod
    def _export_name_of(record: Any, default: str) -> str:
        if isinstance(record, dict) and isinstance(record.get("exportName"), str):
            return record["exportName"]
        return default

    def _to_entity(
        self,
        record: Any,
        kind: EntityKind,
        export_name: str,
        file_path: str,
    ) -> Optional[DetectableEntity]:
        if not isinstance(record, dict):
            return None
        entity_id = record.get("id")
        name = record.get("name")
        if not isinstance(entity_id, str) or not isinstance(name, str):
            return None

        hints = None
        raw_hints = record.get("detectionHints")
        if isinstance(raw_hints, dict):
            confidence = raw_hints.get("confidence")
            hints = DetectionHints(
                common_patterns=_strings(raw_hints.get("commonPatterns")),
                exclude_patterns=_strings(raw_hints.get("excludePatterns")),
                confidence=confidence
                if isinstance(confidence, (int, float)) and not isinstance(confidence, bool)
                else None,
            )

        return DetectableEntity(
            kind=kind,
            id=entity_id,
            name=name,
            export_name=export_name,
            file_path=file_path,
            display_names=_strings(record.get("displayNames")),
            aliases=_strings(record.get("aliases")),
            pronouns=_strings(record.get("pronouns")),
            detection_hints=hints,
        )


def _strings(value: Any) -> List[str]:
    if not isinstance(value, list):
        return []
    return [item for item in value if isinstance(item, str)]


# ----------------------------------------------------------------------
# Restricted object-literal reader
# ----------------------------------------------------------------------

def _scan_string(source: str, start: int) -> Tuple[str, int]:
    """Read a JS string literal starting at *start*; return (content, end index)."""
    quote = source[start]
    i = start + 1
    chars: List[str] = []
    while i < len(source):
        ch = source[i]
        if ch == "\\" and i + 1 < len(source):
            chars.append(source[i : i + 2])
            i += 2
            continue
        if ch == quote:
            return "".join(chars), i + 1
        chars.append(ch)
        i += 1
    raise yaml.YAMLError("unterminated string literal")


_STRING_FIXUP_RE = re.compile(r"\\(.)|[\"\r\n]", re.DOTALL)
_RAW_CHAR_ESCAPES = {'"': '\\"', "\n": "\\n", "\r": "\\r"}


def _fix_string_char(match: "re.Match[str]") -> str:
    escaped = match.group(1)
    if escaped is None:
        return _RAW_CHAR_ESCAPES[match.group(0)]
    if escaped in "'`$":
        return escaped
    if escaped in "\r\n":
        # line continuation
        return ""
    return match.group(0)


def _to_double_quoted(content: str) -> str:
    """Rewrite JS string content as a YAML double-quoted scalar.

    JS-only escapes (``\\'``, ``\\```, ``\\$``) are dropped, bare ``"`` and
    raw newlines (template literals) are escaped so YAML keeps them.
    """
    return f'"{_STRING_FIXUP_RE.sub(_fix_string_char, content)}"'


def _tokens(source: str) -> Iterator[Tuple[str, str]]:
    """Yield ("code", text) / ("string", normalized) / ("comment", "") chunks."""
    i = 0
    buf: List[str] = []
    while i < len(source):
        ch = source[i]
        nxt = source[i + 1] if i + 1 < len(source) else ""
        if ch in "\"'`":
            if buf:
                yield "code", "".join(buf)
                buf = []
            content, i = _scan_string(source, i)
            if ch == "`" and "${" in content:
                raise yaml.YAMLError("template literal interpolation is not supported")
            yield "string", _to_double_quoted(content)
            continue
        if ch == "/" and nxt == "/":
            end = source.find("\n", i)
            i = len(source) if end == -1 else end
            continue
        if ch == "/" and nxt == "*":
            end = source.find("*/", i + 2)
            i = len(source) if end == -1 else end + 2
            continue
        buf.append(ch)
        i += 1
    if buf:
        yield "code", "".join(buf)


def extract_exported_literals(source: str) -> List[Tuple[str, str]]:
    """
    ``export const X = { ... }`` のリテラルを抽出する

    Return ``(export name, literal text)`` pairs for every exported object
    literal. Comments are removed and every string is rewritten as a
    double-quoted JSON string so the literal can be read as YAML flow.
    """
    normalized = "".join(
        text if kind != "string" else text.replace("{", "\\u007b").replace("}", "\\u007d")
        for kind, text in _tokens(source)
    )
    literals: List[Tuple[str, str]] = []
    for match in _EXPORT_RE.finditer(normalized):
        start = match.end() - 1
        depth = 0
        for idx in range(start, len(normalized)):
            ch = normalized[idx]
            if ch == "{":
                depth += 1
            elif ch == "}":
                depth -= 1
                if depth == 0:
                    literals.append((match.group(1), normalized[start : idx + 1]))
                    break
    return literals


def parse_object_literal(literal: str) -> Dict[str, Any]:
    """Parse a normalized object literal as a YAML flow mapping."""
    parts: List[str] = []
    for kind, text in _tokens(literal):
        if kind == "code":
            # YAML needs "key: value"; JS allows "key:value"
            text = re.sub(r":(?!\s)", ": ", text)
        parts.append(text)
    data = yaml.safe_load("".join(parts))
    if not isinstance(data, dict):
        raise yaml.YAMLError("object literal did not parse to a mapping")
    return data
