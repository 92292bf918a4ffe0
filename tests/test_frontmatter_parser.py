"""Frontmatter parsing."""
import pytest

from storyteller.exceptions import ErrorCode
from storyteller.services.frontmatter_parser import FrontmatterParser, split_frontmatter


@pytest.fixture
def parser():
    return FrontmatterParser()


def test_parses_storyteller_section(parser):
    content = (
        "---\n"
        "storyteller:\n"
        "  chapter_id: chapter01\n"
        '  title: "旅の始まり"\n'
        "  order: 1\n"
        "  characters: [hero, heroine]\n"
        "  settings: kingdom\n"
        "  summary: はじまり\n"
        "---\n"
        "本文\n"
    )
    result = parser.parse(content)

    assert result.is_success
    fm = result.value
    assert (fm.chapter_id, fm.title, fm.order) == ("chapter01", "旅の始まり", 1)
    assert fm.characters == ["hero", "heroine"]
    assert fm.settings == ["kingdom"]
    assert fm.summary == "はじまり"


def test_numeric_chapter_id_becomes_string(parser):
    result = parser.parse("---\nstoryteller:\n  chapter_id: 7\n  title: t\n  order: 7\n---\n")
    assert result.value.chapter_id == "7"


@pytest.mark.parametrize(
    "content, fragment",
    [
        ("本文だけ\n", "not found"),
        ("---\ntitle: [\n---\n", "YAML"),
        ("---\ntitle: t\n---\n", "storyteller"),
        ("---\nstoryteller:\n  chapter_id: c\n  title: t\n---\n", "order"),
        ("---\nstoryteller:\n  chapter_id: c\n  title: t\n  order: first\n---\n", "Invalid"),
    ],
)
def test_invalid_frontmatter(parser, content, fragment):
    result = parser.parse(content)
    assert result.error.code == ErrorCode.FRONTMATTER_INVALID
    assert fragment in result.error.message


def test_split_frontmatter_handles_crlf():
    yaml_text, body = split_frontmatter("---\r\na: 1\r\n---\r\nbody\r\n")
    assert yaml_text == "a: 1"
    assert body == "body\n"
