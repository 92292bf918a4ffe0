#!/usr/bin/env python3
"""
StoryTeller command line interface.

    storyteller meta generate manuscripts/chapter01.md --dry-run
    storyteller meta update manuscripts/chapter01.md
    storyteller meta check --dir manuscripts --recursive
"""

from __future__ import annotations

import argparse
import asyncio
import json
import sys
from pathlib import Path
from typing import List, Optional, Sequence, Tuple

from storyteller.config import config
from storyteller.services.meta_generator_service import MetaGenerateOptions, MetaGeneratorService
from storyteller.services.presets import preset_names
from storyteller.utils.logger import get_logger
from storyteller.utils.result import MetaError

logger = get_logger(__name__)

DEFAULT_MAX_REPORTED_FAILURES = 10


def _split_ids(value: Optional[str]) -> Optional[List[str]]:
    if value is None:
        return None
    return [item.strip() for item in value.split(",") if item.strip()]


def _add_generation_args(parser: argparse.ArgumentParser) -> None:
    parser.add_argument("--project", default="", help="Project root (default: nearest parent with src/)")
    parser.add_argument("--characters", default=None, help="Comma separated character ids (replaces frontmatter)")
    parser.add_argument("--settings", default=None, help="Comma separated setting ids (replaces frontmatter)")
    parser.add_argument("--preset", default=None, choices=preset_names(), help="Validation preset")


def _build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(prog="storyteller", description="StoryTeller meta tooling")
    commands = parser.add_subparsers(dest="command", required=True)

    meta = commands.add_parser("meta", help="Chapter meta generation")
    meta_commands = meta.add_subparsers(dest="meta_command", required=True)

    generate = meta_commands.add_parser("generate", help="Generate a .meta.ts file from a manuscript")
    generate.add_argument("markdown", help="Manuscript Markdown file")
    generate.add_argument("--output", default="", help="Output path (default: <name>.meta.ts)")
    generate.add_argument("--dry-run", action="store_true", help="Print a JSON preview instead of writing")
    generate.add_argument("--force", action="store_true", help="Overwrite an existing output file")
    generate.add_argument("--update", action="store_true", help="Regenerate only the auto blocks of an existing file")
    _add_generation_args(generate)

    update = meta_commands.add_parser("update", help="Safely regenerate the auto blocks of a .meta.ts file")
    update.add_argument("markdown", help="Manuscript Markdown file")
    update.add_argument("--output", default="", help="Output path (default: <name>.meta.ts)")
    _add_generation_args(update)

    check = meta_commands.add_parser("check", help="Dry-run generation over many manuscripts")
    check.add_argument("markdown", nargs="*", help="Manuscript Markdown files")
    check.add_argument("--dir", default="", help="Directory to scan for *.md files")
    check.add_argument("--recursive", action="store_true", help="Scan --dir recursively")
    _add_generation_args(check)

    return parser


def _options(args: argparse.Namespace, **overrides) -> MetaGenerateOptions:
    return MetaGenerateOptions(
        project_path=args.project or None,
        characters=_split_ids(args.characters),
        settings=_split_ids(args.settings),
        preset=args.preset,
        **overrides,
    )


def _format_error(error: MetaError) -> str:
    return f"[{error.code.value}] {error}"


def collect_markdown_files(paths: Sequence[str], directory: str = "", recursive: bool = False) -> List[Path]:
    """Explicit paths first, then ``*.md`` files under *directory* (sorted, deduplicated)."""
    files: List[Path] = [Path(p) for p in paths]
    if directory:
        pattern = "**/*.md" if recursive else "*.md"
        files.extend(sorted(p for p in Path(directory).glob(pattern) if p.is_file()))
    seen = set()
    unique: List[Path] = []
    for path in files:
        key = path.resolve()
        if key not in seen:
            seen.add(key)
            unique.append(path)
    return unique


async def run_generate(args: argparse.Namespace, service: MetaGeneratorService, update: bool = False) -> int:
    options = _options(
        args,
        output_path=args.output or None,
        dry_run=getattr(args, "dry_run", False),
        force=getattr(args, "force", False),
        update=update or getattr(args, "update", False),
    )
    result = await service.generate_from_markdown(args.markdown, options)
    if result.is_failure:
        print(f"Error: {_format_error(result.error)}", file=sys.stderr)
        return 1

    if options.dry_run:
        preview = result.value.model_dump(mode="json", by_alias=True, exclude_none=True)
        print(json.dumps(preview, ensure_ascii=False, indent=2))
    else:
        print(f"Generated meta for {args.markdown}")
    return 0


async def run_check(args: argparse.Namespace, service: MetaGeneratorService) -> int:
    files = collect_markdown_files(args.markdown, args.dir, args.recursive)
    if not files:
        print("No manuscripts to check", file=sys.stderr)
        return 1

    failures: List[Tuple[Path, MetaError]] = []
    for path in files:
        result = await service.generate_from_markdown(path, _options(args, dry_run=True))
        if result.is_failure:
            logger.debug("Check failed for %s: %s", path, result.error)
            failures.append((path, result.error))

    limit = int(config.get("cli", {}).get("max_reported_failures", DEFAULT_MAX_REPORTED_FAILURES))
    print(f"Checked {len(files)} file(s): {len(files) - len(failures)} ok, {len(failures)} failed")
    for path, error in failures[:limit]:
        print(f"  {path}: {_format_error(error)}")
    if len(failures) > limit:
        print(f"  (+{len(failures) - limit} more)")
    return 1 if failures else 0


async def run(argv: Optional[Sequence[str]] = None) -> int:
    args = _build_parser().parse_args(argv)
    service = MetaGeneratorService()

    if args.meta_command == "generate":
        return await run_generate(args, service)
    if args.meta_command == "update":
        return await run_generate(args, service, update=True)
    return await run_check(args, service)


def main(argv: Optional[Sequence[str]] = None) -> int:
    return asyncio.run(run(argv))


if __name__ == "__main__":
    raise SystemExit(main())
