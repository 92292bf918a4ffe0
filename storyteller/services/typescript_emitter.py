# -*- coding: utf-8 -*-
"""
StoryTeller Meta - 原稿とストーリーデータを同期させるメタ生成ツール
StoryTeller Meta - Keeps manuscripts and structured story data in sync

Copyright © 2025-2026 StoryTeller Team
License: PolyForm Noncommercial License 1.0.0

モジュール説明 / Module Description:
  TypeScript エミッタ - ChapterMeta を .meta.ts モジュールとして出力する
  TypeScript emitter - Renders a ChapterMeta into a ``.meta.ts`` module and
  re-renders it later without touching hand-written content.

自動生成領域 / Machine-owned regions:
  ``// storyteller:auto:<block>:start`` と ``...:end`` の行に挟まれた領域のみを
  再生成する。それ以外のバイト列はそのまま保持する。

  Only the lines between ``// storyteller:auto:<block>:start`` and
  ``// storyteller:auto:<block>:end`` are regenerated; every other byte of
  the file is passed through verbatim.
"""

from __future__ import annotations

import json
import re
from dataclasses import dataclass, field
from datetime import datetime
from pathlib import Path
from typing import Dict, List, Optional, Tuple, Union

from storyteller.config import settings
from storyteller.exceptions import ErrorCode
from storyteller.schemas.entity import EntityKind
from storyteller.schemas.meta import ChapterMeta
from storyteller.storage.gateway import FileSystemGateway
from storyteller.utils.logger import get_logger
from storyteller.utils.paths import find_project_root, to_import_specifier
from storyteller.utils.result import Result

logger = get_logger(__name__)

MARKER_PREFIX = "// storyteller:auto:"
BLOCK_IMPORTS = "imports"
BLOCK_CORE = "core"
BLOCK_ENTITIES = "entities"
BLOCK_REFERENCES = "references"
REQUIRED_BLOCKS = (BLOCK_IMPORTS, BLOCK_CORE, BLOCK_ENTITIES)

_MARKER_RE = re.compile(r"^(\s*)// storyteller:auto:([a-z_]+):(start|end)\s*$")
_OBJECT_CLOSE_RE = re.compile(r"^\};?\s*$")

INDENT = "  "


class MarkerError(ValueError):
    """The existing file has no usable machine-owned regions."""


def start_marker(block: str) -> str:
    return f"{MARKER_PREFIX}{block}:start"


def end_marker(block: str) -> str:
    return f"{MARKER_PREFIX}{block}:end"


# ----------------------------------------------------------------------
# Document model
# ----------------------------------------------------------------------

@dataclass
class AutoBlock:
    """A marker-delimited region. Marker lines are kept verbatim."""

    name: str
    start_line: str
    body: str
    end_line: str
    indent: str = ""

    def render(self) -> str:
        return f"{self.start_line}{self.body}{self.end_line}"


@dataclass
class MetaDocument:
    """A meta module split into verbatim text and auto blocks."""

    segments: List[Union[str, AutoBlock]] = field(default_factory=list)

    @classmethod
    def parse(cls, text: str) -> MetaDocument:
        segments: List[Union[str, AutoBlock]] = []
        verbatim: List[str] = []
        current: Optional[Tuple[str, str, str, List[str]]] = None
        seen: set = set()

        for line in text.splitlines(keepends=True):
            match = _MARKER_RE.match(line.rstrip("\r\n"))
            if match is None:
                (current[3] if current else verbatim).append(line)
                continue

            indent, name, edge = match.groups()
            if edge == "start":
                if current is not None:
                    raise MarkerError(f"Nested marker '{name}' inside '{current[0]}'")
                if name in seen:
                    raise MarkerError(f"Duplicate marker block '{name}'")
                if verbatim:
                    segments.append("".join(verbatim))
                    verbatim = []
                current = (name, line, indent, [])
            else:
                if current is None or current[0] != name:
                    raise MarkerError(f"Unbalanced end marker '{name}'")
                segments.append(
                    AutoBlock(
                        name=name,
                        start_line=current[1],
                        body="".join(current[3]),
                        end_line=line,
                        indent=current[2],
                    )
                )
                seen.add(name)
                current = None

        if current is not None:
            raise MarkerError(f"Missing end marker for '{current[0]}'")
        if verbatim:
            segments.append("".join(verbatim))
        return cls(segments=segments)

    def block(self, name: str) -> Optional[AutoBlock]:
        for segment in self.segments:
            if isinstance(segment, AutoBlock) and segment.name == name:
                return segment
        return None

    def render(self) -> str:
        return "".join(s.render() if isinstance(s, AutoBlock) else s for s in self.segments)


# ----------------------------------------------------------------------
# Rendering helpers
# ----------------------------------------------------------------------

@dataclass(frozen=True)
class ImportEntry:
    kind: EntityKind
    export_name: str
    file_path: str


def _js(value: str) -> str:
    return json.dumps(value, ensure_ascii=False)


def _format_number(value) -> str:
    if isinstance(value, float) and value.is_integer():
        return str(int(value))
    return str(value)


def export_identifier(chapter_id: str) -> str:
    """``chapter01`` -> ``chapter01Meta`` (made a valid identifier)."""
    name = re.sub(r"[^\w$]", "_", chapter_id)
    if name[:1].isdigit():
        name = f"_{name}"
    return f"{name}Meta"


def collect_imports(meta: ChapterMeta) -> List[ImportEntry]:
    """Distinct entity imports, sorted by export name."""
    entries: Dict[str, ImportEntry] = {}
    for ref in [*meta.characters, *meta.settings]:
        entries.setdefault(ref.export_name, ImportEntry(ref.kind, ref.export_name, ref.file_path))
    for ref in (meta.references or {}).values():
        entries.setdefault(ref.export_name, ImportEntry(ref.kind, ref.export_name, ref.file_path))
    return [entries[name] for name in sorted(entries)]


def _export_names(refs) -> str:
    return ", ".join(dict.fromkeys(ref.export_name for ref in refs))


class TypeScriptEmitter:
    """
    TypeScript エミッタ

    ``emit`` always writes a fresh file. ``update_or_emit`` regenerates only
    the auto blocks of an existing file and refuses to touch files that have
    no markers.
    """

    def __init__(self, gateway: Optional[FileSystemGateway] = None) -> None:
        self.gateway = gateway or FileSystemGateway()

    # -- block bodies ---------------------------------------------------

    def render_imports(self, meta: ChapterMeta, output_dir: Path, project_root: Path) -> str:
        type_path = project_root / settings.chapter_type_path
        lines = [f'import type {{ ChapterMeta }} from "{to_import_specifier(output_dir, type_path)}";']
        for entry in collect_imports(meta):
            specifier = to_import_specifier(output_dir, project_root / entry.file_path)
            lines.append(f'import {{ {entry.export_name} }} from "{specifier}";')
        return "".join(f"{line}\n" for line in lines)

    def render_core(self, meta: ChapterMeta, indent: str = INDENT) -> str:
        return (
            f"{indent}id: {_js(meta.id)},\n"
            f"{indent}title: {_js(meta.title)},\n"
            f"{indent}order: {_format_number(meta.order)},\n"
        )

    def render_entities(self, meta: ChapterMeta, indent: str = INDENT) -> str:
        return (
            f"{indent}characters: [{_export_names(meta.characters)}],\n"
            f"{indent}settings: [{_export_names(meta.settings)}],\n"
        )

    def render_references(self, meta: ChapterMeta, indent: str = INDENT) -> str:
        references = meta.references or {}
        if not references:
            return ""
        lines = [f"{indent}references: {{\n"]
        for word in sorted(references):
            lines.append(f"{indent}{INDENT}{_js(word)}: {references[word].export_name},\n")
        lines.append(f"{indent}}},\n")
        return "".join(lines)

    def _render_block(self, name: str, body: str, indent: str = "") -> str:
        return f"{indent}{start_marker(name)}\n{body}{indent}{end_marker(name)}\n"

    def render(self, meta: ChapterMeta, output_path: Path, project_root: Path) -> str:
        """Render a complete meta module."""
        output_dir = Path(output_path).parent
        lines: List[str] = [
            "// 自動生成: storyteller meta generate\n",
            f"// 生成日時: {datetime.now().strftime('%Y-%m-%d %H:%M:%S')}\n",
            "\n",
            self._render_block(BLOCK_IMPORTS, self.render_imports(meta, output_dir, project_root)),
            "\n",
            f"export const {export_identifier(meta.id)}: ChapterMeta = {{\n",
            self._render_block(BLOCK_CORE, self.render_core(meta), INDENT),
            self._render_block(BLOCK_ENTITIES, self.render_entities(meta), INDENT),
        ]

        if meta.summary:
            lines.append("\n")
            lines.append(f"{INDENT}summary: {_js(meta.summary)},\n")

        if meta.validations:
            lines.append("\n")
            lines.append(f"{INDENT}validations: [\n")
            for rule in meta.validations:
                lines.append(f"{INDENT * 2}{{\n")
                lines.append(f"{INDENT * 3}type: {_js(rule.type)},\n")
                lines.append(f"{INDENT * 3}validate: {rule.validate_expr},\n")
                if rule.message:
                    lines.append(f"{INDENT * 3}message: {_js(rule.message)},\n")
                lines.append(f"{INDENT * 2}}},\n")
            lines.append(f"{INDENT}],\n")

        if meta.references:
            lines.append("\n")
            lines.append(self._render_block(BLOCK_REFERENCES, self.render_references(meta), INDENT))

        lines.append("};\n")
        return "".join(lines)

    # -- public API -----------------------------------------------------

    def _resolve_root(self, output_path: Path) -> Result[Path]:
        project_root = find_project_root(Path(output_path).parent)
        if project_root is None:
            return Result.fail(
                ErrorCode.PROJECT_ROOT_NOT_FOUND,
                f"Could not find project root from: {Path(output_path).parent}",
                str(output_path),
            )
        return Result.success(project_root)

    async def emit(self, meta: ChapterMeta, output_path: str | Path) -> Result[None]:
        """Render *meta* and overwrite *output_path*."""
        output_path = Path(output_path)
        root = self._resolve_root(output_path)
        if root.is_failure:
            return root
        code = self.render(meta, output_path, root.value)
        written = await self.gateway.write_file(output_path, code)
        if written.is_success:
            logger.info("Emitted %s", output_path)
        return written

    async def update_or_emit(self, meta: ChapterMeta, output_path: str | Path) -> Result[None]:
        """Regenerate the auto blocks of an existing module, or emit a new one.

        Fails with ``update_requires_markers`` (file untouched) when the
        existing file lacks the imports/core/entities blocks.
        """
        output_path = Path(output_path)
        exists = await self.gateway.exists(output_path)
        if exists.is_failure:
            return exists
        if not exists.value:
            return await self.emit(meta, output_path)

        root = self._resolve_root(output_path)
        if root.is_failure:
            return root

        existing = await self.gateway.read_file(output_path)
        if existing.is_failure:
            return existing

        try:
            updated = self.merge(existing.value, meta, output_path, root.value)
        except MarkerError as exc:
            logger.warning("Refusing to update %s: %s", output_path, exc)
            return Result.fail(
                ErrorCode.UPDATE_REQUIRES_MARKERS,
                f"Cannot safely update {output_path}: {exc} (regenerate with --force to overwrite)",
                str(output_path),
            )

        if updated == existing.value:
            logger.debug("No changes for %s", output_path)
            return Result.success(None)
        written = await self.gateway.write_file(output_path, updated)
        if written.is_success:
            logger.info("Updated %s", output_path)
        return written

    def merge(self, text: str, meta: ChapterMeta, output_path: Path, project_root: Path) -> str:
        """Return *text* with every auto block regenerated from *meta*.

        Raises:
            MarkerError: required blocks are missing or markers are malformed.
        """
        document = MetaDocument.parse(text)
        missing = [name for name in REQUIRED_BLOCKS if document.block(name) is None]
        if missing:
            raise MarkerError(f"missing auto blocks: {', '.join(missing)}")

        newline = "\r\n" if "\r\n" in text else "\n"
        output_dir = Path(output_path).parent

        def body(block: AutoBlock) -> str:
            if block.name == BLOCK_IMPORTS:
                rendered = self.render_imports(meta, output_dir, project_root)
            elif block.name == BLOCK_CORE:
                rendered = self.render_core(meta, block.indent)
            elif block.name == BLOCK_ENTITIES:
                rendered = self.render_entities(meta, block.indent)
            elif block.name == BLOCK_REFERENCES:
                rendered = self.render_references(meta, block.indent)
            else:
                return block.body
            return rendered.replace("\n", newline)

        for segment in document.segments:
            if isinstance(segment, AutoBlock):
                segment.body = body(segment)

        if document.block(BLOCK_REFERENCES) is None and meta.references:
            self._insert_references(document, meta, newline)

        return document.render()

    def _insert_references(self, document: MetaDocument, meta: ChapterMeta, newline: str) -> None:
        """Add a references block before the closing brace of the export."""
        entities = document.block(BLOCK_ENTITIES)
        after = document.segments.index(entities) + 1
        block = AutoBlock(
            name=BLOCK_REFERENCES,
            start_line=f"{INDENT}{start_marker(BLOCK_REFERENCES)}{newline}",
            body=self.render_references(meta).replace("\n", newline),
            end_line=f"{INDENT}{end_marker(BLOCK_REFERENCES)}{newline}",
            indent=INDENT,
        )
        for index in range(after, len(document.segments)):
            segment = document.segments[index]
            if isinstance(segment, AutoBlock):
                continue
            lines = segment.splitlines(keepends=True)
            for line_no, line in enumerate(lines):
                if _OBJECT_CLOSE_RE.match(line.rstrip("\r\n")):
                    head = "".join(lines[:line_no])
                    tail = "".join(lines[line_no:])
                    document.segments[index : index + 1] = [head, block, tail]
                    return
        raise MarkerError("closing brace of the meta object not found")
