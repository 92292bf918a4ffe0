"""Binding file loading and normalization."""
import pytest

from storyteller.exceptions import BindingLoadError, ErrorCode
from storyteller.storage.bindings import BindingLoader, binding_path_for


@pytest.fixture
def loader():
    return BindingLoader()


@pytest.mark.asyncio
async def test_missing_file_returns_none(loader, tmp_path):
    assert await loader.load(tmp_path / "nobody.binding.yaml") is None


@pytest.mark.asyncio
async def test_current_schema_clamps_and_defaults(loader, tmp_path):
    path = tmp_path / "hero.binding.yaml"
    path.write_text(
        "version: 1\n"
        "patterns:\n"
        "  - text: 勇者\n"
        "    confidence: 2.5\n"
        "  - text: 英雄\n"
        "  - text: あの男\n"
        "    confidence: -1\n"
        "excludePatterns:\n"
        "  - 勇者という存在\n",
        encoding="utf-8",
    )
    binding = await loader.load(path)

    assert [(p.text, p.confidence) for p in binding.patterns] == [
        ("勇者", 1.0),
        ("英雄", 0.95),
        ("あの男", 0.0),
    ]
    assert binding.exclude_patterns == ["勇者という存在"]


@pytest.mark.asyncio
async def test_legacy_references_are_normalized(loader, tmp_path):
    path = tmp_path / "hero.binding.yaml"
    path.write_text(
        "character: hero\n"
        "references:\n"
        "  - pattern: 勇者\n"
        "    confidence: 0.7\n"
        "  - pattern: 英雄\n"
        "  - note: ignored\n",
        encoding="utf-8",
    )
    binding = await loader.load(path)

    assert [(p.text, p.confidence) for p in binding.patterns] == [("勇者", 0.7), ("英雄", 0.95)]
    assert binding.exclude_patterns == []


@pytest.mark.asyncio
async def test_invalid_yaml_raises(loader, tmp_path):
    path = tmp_path / "hero.binding.yaml"
    path.write_text("version: 1\npatterns: [\n", encoding="utf-8")
    with pytest.raises(BindingLoadError) as excinfo:
        await loader.load(path)
    assert excinfo.value.code == ErrorCode.BINDING_LOAD_ERROR


@pytest.mark.asyncio
@pytest.mark.parametrize(
    "content",
    [
        "- just\n- a list\n",
        "version: 2\npatterns: []\n",
        "version: 1\nreferences:\n  - pattern: 勇者\n",
        "version: 1\npatterns:\n  - confidence: 0.5\n",
        "version: 1\npatterns: []\nexcludePatterns: 勇者\n",
    ],
)
async def test_unrecognized_schema_raises(loader, tmp_path, content):
    path = tmp_path / "hero.binding.yaml"
    path.write_text(content, encoding="utf-8")
    with pytest.raises(BindingLoadError):
        await loader.load(path)


def test_binding_path_sits_beside_entity(tmp_path):
    entity_file = tmp_path / "src" / "characters" / "hero.ts"
    assert binding_path_for(entity_file, "hero") == tmp_path / "src" / "characters" / "hero.binding.yaml"
