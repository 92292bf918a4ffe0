"""Pytest configuration for StoryTeller tests."""
import json
import sys
from pathlib import Path

import pytest
import yaml

# Ensure the storyteller package is importable
repo_root = Path(__file__).resolve().parent.parent
if str(repo_root) not in sys.path:
    sys.path.insert(0, str(repo_root))


class ProjectBuilder:
    """Writes a minimal story project (src/ + manuscripts/) under a directory."""

    def __init__(self, root: Path):
        self.root = root
        (root / "src" / "types").mkdir(parents=True)
        (root / "src" / "characters").mkdir()
        (root / "src" / "settings").mkdir()
        (root / "manuscripts").mkdir()
        (root / "src" / "types" / "chapter.ts").write_text(
            "export type ChapterMeta = Record<string, unknown>;\n", encoding="utf-8"
        )

    def _entity(self, directory: str, type_name: str, entity_id: str, name: str, **fields) -> Path:
        lines = [
            f'import type {{ {type_name} }} from "../types/{type_name.lower()}.ts";',
            "",
            f"export const {entity_id}: {type_name} = {{",
            f'  id: "{entity_id}",',
            f"  name: {json.dumps(name, ensure_ascii=False)},",
        ]
        for key, value in fields.items():
            lines.append(f"  {key}: {json.dumps(value, ensure_ascii=False)},")
        lines.append("};")
        path = self.root / "src" / directory / f"{entity_id}.ts"
        path.write_text("\n".join(lines) + "\n", encoding="utf-8")
        return path

    def character(self, entity_id: str, name: str, **fields) -> Path:
        return self._entity("characters", "Character", entity_id, name, **fields)

    def setting(self, entity_id: str, name: str, **fields) -> Path:
        return self._entity("settings", "Setting", entity_id, name, **fields)

    def binding(self, directory: str, entity_id: str, data) -> Path:
        path = self.root / "src" / directory / f"{entity_id}.binding.yaml"
        text = data if isinstance(data, str) else yaml.safe_dump(data, allow_unicode=True)
        path.write_text(text, encoding="utf-8")
        return path

    def manuscript(self, name: str, frontmatter: dict, body: str) -> Path:
        header = yaml.safe_dump({"storyteller": frontmatter}, allow_unicode=True, sort_keys=False)
        path = self.root / "manuscripts" / name
        path.write_text(f"---\n{header}---\n\n{body}\n", encoding="utf-8")
        return path


@pytest.fixture
def project(tmp_path):
    return ProjectBuilder(tmp_path / "novel")
