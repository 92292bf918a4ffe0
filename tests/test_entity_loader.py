"""Entity loading from TypeScript modules and data files."""
import pytest

from storyteller.exceptions import EntityLoadError, ErrorCode
from storyteller.schemas.entity import EntityKind
from storyteller.storage.entities import EntityLoader, extract_exported_literals, parse_object_literal


@pytest.fixture
def loader():
    return EntityLoader()


@pytest.mark.asyncio
async def test_loads_typescript_character(loader, project):
    project.character(
        "hero",
        "勇者",
        displayNames=["アレン"],
        aliases=["英雄"],
        pronouns=["彼"],
        detectionHints={"commonPatterns": ["勇者様"], "excludePatterns": ["勇者という存在"], "confidence": 0.85},
    )
    entities = await loader.load_entities(project.root, EntityKind.CHARACTER)

    assert len(entities) == 1
    hero = entities[0]
    assert hero.id == "hero"
    assert hero.name == "勇者"
    assert hero.export_name == "hero"
    assert hero.file_path == "src/characters/hero.ts"
    assert hero.display_names == ["アレン"]
    assert hero.aliases == ["英雄"]
    assert hero.pronouns == ["彼"]
    assert hero.detection_hints.common_patterns == ["勇者様"]
    assert hero.detection_hints.exclude_patterns == ["勇者という存在"]
    assert hero.detection_hints.confidence == 0.85


@pytest.mark.asyncio
async def test_handwritten_module_with_comments_and_single_quotes(loader, project):
    (project.root / "src" / "characters" / "heroine.ts").write_text(
        "import type { Character } from '../types/character.ts';\n"
        "\n"
        "// ヒロイン\n"
        "export const heroine: Character = {\n"
        "  id: 'heroine',\n"
        "  name: 'エリーゼ', /* 本名 */\n"
        "  displayNames: ['姫', \"エリーゼ姫\"],\n"
        "  summary: 'It\\'s {not} a template',\n"
        "  relationships: { hero: 'ally' },\n"
        "};\n",
        encoding="utf-8",
    )
    entities = await loader.load_entities(project.root, EntityKind.CHARACTER)

    assert [e.id for e in entities] == ["heroine"]
    assert entities[0].display_names == ["姫", "エリーゼ姫"]


@pytest.mark.asyncio
async def test_loads_yaml_setting_and_skips_bindings(loader, project):
    settings_dir = project.root / "src" / "settings"
    (settings_dir / "kingdom.yaml").write_text(
        "id: kingdom\nname: 王都\naliases: [都]\n", encoding="utf-8"
    )
    project.binding("settings", "kingdom", {"version": 1, "patterns": [{"text": "城下町"}]})
    (settings_dir / "notes.yaml").write_text("title: not an entity\n", encoding="utf-8")

    entities = await loader.load_entities(project.root, EntityKind.SETTING)

    assert [(e.id, e.export_name, e.file_path) for e in entities] == [
        ("kingdom", "kingdom", "src/settings/kingdom.yaml")
    ]
    assert entities[0].aliases == ["都"]


@pytest.mark.asyncio
async def test_missing_directory_yields_empty_list(loader, tmp_path):
    assert await loader.load_entities(tmp_path, EntityKind.FORESHADOWING) == []


@pytest.mark.asyncio
async def test_template_interpolation_is_skipped(loader, project):
    (project.root / "src" / "characters" / "ghost.ts").write_text(
        "const base = 'x';\nexport const ghost = { id: `ghost-${base}`, name: 'ghost' };\n",
        encoding="utf-8",
    )
    project.character("hero", "勇者")

    entities = await loader.load_entities(project.root, EntityKind.CHARACTER)
    assert [e.id for e in entities] == ["hero"]


def test_extract_exported_literals_ignores_braces_in_strings():
    source = 'export const a = { name: "}{", nested: { x: 1 } };\nexport const b: T = {id: "b"};\n'
    literals = extract_exported_literals(source)

    assert [name for name, _ in literals] == ["a", "b"]
    assert parse_object_literal(literals[0][1]) == {"name": "}{", "nested": {"x": 1}}
    assert parse_object_literal(literals[1][1]) == {"id": "b"}


@pytest.mark.parametrize(
    "literal, expected",
    [
        ('{ id: "a", name: "It\\\'s" }', "It's"),
        ("{ id: 'a', name: 'say \"hi\"' }", 'say "hi"'),
        ('{ id: "a", name: "cost \\$5 \\`x\\`" }', "cost $5 `x`"),
        ('{ id: "a", name: "back\\\\slash" }', "back\\slash"),
        ("{ id: 'a', name: `line one\nline two` }", "line one\nline two"),
    ],
)
def test_js_string_escapes_are_normalized(literal, expected):
    [(_, normalized)] = extract_exported_literals(f"export const a = {literal};\n")
    assert parse_object_literal(normalized)["name"] == expected


@pytest.mark.asyncio
async def test_module_with_js_only_escape_is_loaded(loader, project):
    (project.root / "src" / "characters" / "bard.ts").write_text(
        'export const bard = { id: "bard", name: "It\\\'s me" };\n', encoding="utf-8"
    )
    entities = await loader.load_entities(project.root, EntityKind.CHARACTER)
    assert [(e.id, e.name) for e in entities] == [("bard", "It's me")]


@pytest.mark.asyncio
async def test_entity_symlink_outside_project_raises(loader, project, tmp_path):
    outside = tmp_path / "elsewhere.yaml"
    outside.write_text("id: stranger\nname: 旅人\n", encoding="utf-8")
    (project.root / "src" / "characters" / "stranger.yaml").symlink_to(outside)

    with pytest.raises(EntityLoadError) as excinfo:
        await loader.load_entities(project.root, EntityKind.CHARACTER)
    assert excinfo.value.code == ErrorCode.ENTITY_LOAD_ERROR
