"""TypeScript emission and marker-based safe updates."""
import pytest

from storyteller.exceptions import ErrorCode
from storyteller.schemas.entity import EntityKind
from storyteller.schemas.meta import ChapterMeta, DetectedEntityRef, EntityReference, ValidationRule
from storyteller.services.typescript_emitter import MarkerError, MetaDocument, TypeScriptEmitter


def _ref(kind, entity_id, directory):
    return DetectedEntityRef(
        kind=kind,
        id=entity_id,
        export_name=entity_id,
        file_path=f"src/{directory}/{entity_id}.ts",
        matched_patterns=[entity_id],
        occurrences=1,
        confidence=1.0,
    )


def _character(entity_id):
    return _ref(EntityKind.CHARACTER, entity_id, "characters")


def _setting(entity_id):
    return _ref(EntityKind.SETTING, entity_id, "settings")


def _target(ref):
    return EntityReference(kind=ref.kind, id=ref.id, export_name=ref.export_name, file_path=ref.file_path)


@pytest.fixture
def emitter():
    return TypeScriptEmitter()


@pytest.fixture
def output_path(project):
    return project.root / "manuscripts" / "chapter01.meta.ts"


@pytest.mark.asyncio
async def test_emit_writes_sorted_deduplicated_imports(emitter, output_path):
    heroine, hero, kingdom = _character("heroine"), _character("hero"), _setting("kingdom")
    meta = ChapterMeta(
        id="chapter01",
        title="旅の始まり",
        order=1,
        characters=[heroine, hero],
        settings=[kingdom],
        validations=[ValidationRule(type="custom", validate="(content: string) => true", message="m")],
        references={"勇者": _target(hero), "王都": _target(kingdom)},
        summary="はじまり",
    )
    result = await emitter.emit(meta, output_path)
    assert result.is_success

    code = output_path.read_text(encoding="utf-8")
    imports = [line for line in code.splitlines() if line.startswith("import {")]
    assert imports == [
        'import { hero } from "../src/characters/hero.ts";',
        'import { heroine } from "../src/characters/heroine.ts";',
        'import { kingdom } from "../src/settings/kingdom.ts";',
    ]
    assert 'import type { ChapterMeta } from "../src/types/chapter.ts";' in code
    assert "export const chapter01Meta: ChapterMeta = {" in code
    assert '  id: "chapter01",' in code
    assert "  characters: [heroine, hero]," in code
    assert "  settings: [kingdom]," in code
    assert '    "勇者": hero,' in code
    assert '  summary: "はじまり",' in code
    assert "      validate: (content: string) => true," in code
    assert code.startswith("// 自動生成: storyteller meta generate\n// 生成日時: ")
    assert code.endswith("};\n")


@pytest.mark.asyncio
async def test_update_preserves_manual_properties_and_drops_stale_imports(emitter, output_path):
    hero, heroine, kingdom = _character("hero"), _character("heroine"), _setting("kingdom")
    meta1 = ChapterMeta(
        id="chapter01",
        title="旅の始まり",
        order=1,
        characters=[hero],
        settings=[kingdom],
        references={"勇者": _target(hero)},
    )
    assert (await emitter.emit(meta1, output_path)).is_success

    code = output_path.read_text(encoding="utf-8")
    marker = "  // storyteller:auto:entities:end\n"
    code = code.replace(marker, marker + '  summary: "MANUAL SUMMARY",\n  validations: [],\n')
    output_path.write_text(code, encoding="utf-8")

    meta2 = ChapterMeta(
        id="chapter01",
        title="更新タイトル",
        order=2,
        characters=[heroine],
        settings=[kingdom],
        references={"エリーゼ": _target(heroine)},
    )
    result = await emitter.update_or_emit(meta2, output_path)
    assert result.is_success

    updated = output_path.read_text(encoding="utf-8")
    assert 'summary: "MANUAL SUMMARY"' in updated
    assert "validations: []," in updated
    assert "characters: [heroine]" in updated
    assert "settings: [kingdom]" in updated
    assert '"エリーゼ": heroine' in updated
    assert "order: 2," in updated
    assert 'title: "更新タイトル",' in updated
    assert 'import { heroine } from "../src/characters/heroine.ts";' in updated
    assert "import { hero }" not in updated
    assert '"勇者"' not in updated


@pytest.mark.asyncio
async def test_update_without_markers_fails_and_leaves_file(emitter, output_path):
    output_path.write_text("export const x = 1;\n", encoding="utf-8")
    meta = ChapterMeta(id="chapter01", title="t", order=1)

    result = await emitter.update_or_emit(meta, output_path)

    assert result.is_failure
    assert result.error.code == ErrorCode.UPDATE_REQUIRES_MARKERS
    assert output_path.read_text(encoding="utf-8") == "export const x = 1;\n"


@pytest.mark.asyncio
async def test_update_of_missing_file_emits(emitter, output_path):
    meta = ChapterMeta(id="chapter01", title="t", order=1, characters=[_character("hero")])
    assert (await emitter.update_or_emit(meta, output_path)).is_success
    assert "// storyteller:auto:core:start" in output_path.read_text(encoding="utf-8")


@pytest.mark.asyncio
async def test_update_inserts_references_block_when_absent(emitter, output_path):
    hero = _character("hero")
    meta = ChapterMeta(id="chapter01", title="t", order=1, characters=[hero])
    assert (await emitter.emit(meta, output_path)).is_success
    assert "storyteller:auto:references" not in output_path.read_text(encoding="utf-8")

    with_refs = meta.model_copy(update={"references": {"勇者": _target(hero)}})
    assert (await emitter.update_or_emit(with_refs, output_path)).is_success

    updated = output_path.read_text(encoding="utf-8")
    assert "  // storyteller:auto:references:start\n  references: {\n" in updated
    assert updated.index("storyteller:auto:references:end") < updated.rindex("};")


@pytest.mark.asyncio
async def test_update_keeps_content_outside_markers_byte_for_byte(emitter, output_path):
    meta = ChapterMeta(id="chapter01", title="t", order=1, characters=[_character("hero")])
    assert (await emitter.emit(meta, output_path)).is_success
    original = output_path.read_text(encoding="utf-8") + "\n// trailing note\n"
    output_path.write_text(original, encoding="utf-8")

    assert (await emitter.update_or_emit(meta, output_path)).is_success
    assert output_path.read_text(encoding="utf-8") == original


@pytest.mark.parametrize(
    "text",
    [
        "// storyteller:auto:core:start\ntitle: 1,\n",
        "// storyteller:auto:core:end\n",
        "// storyteller:auto:core:start\n// storyteller:auto:entities:start\n",
    ],
)
def test_document_rejects_malformed_markers(text):
    with pytest.raises(MarkerError):
        MetaDocument.parse(text)


def test_document_round_trips_verbatim():
    text = "a\r\n  // storyteller:auto:core:start\r\n  title: 1,\r\n  // storyteller:auto:core:end\r\nb"
    document = MetaDocument.parse(text)
    assert document.render() == text
    assert document.block("core").indent == "  "


@pytest.mark.asyncio
async def test_update_rewrites_chapter_id(emitter, output_path):
    meta = ChapterMeta(id="chapter01", title="t", order=1)
    assert (await emitter.emit(meta, output_path)).is_success

    renamed = meta.model_copy(update={"id": "chapter99"})
    assert (await emitter.update_or_emit(renamed, output_path)).is_success

    code = output_path.read_text(encoding="utf-8")
    assert '  id: "chapter99",' in code
    assert '"chapter01"' not in code
    assert code.index('id: "chapter99"') > code.index("storyteller:auto:core:start")
