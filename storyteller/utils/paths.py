# -*- coding: utf-8 -*-
"""
StoryTeller Meta - 原稿とストーリーデータを同期させるメタ生成ツール
StoryTeller Meta - Keeps manuscripts and structured story data in sync

Copyright © 2025-2026 StoryTeller Team
License: PolyForm Noncommercial License 1.0.0

モジュール説明 / Module Description:
  パスユーティリティ - プロジェクトルート探索と相対インポート指定子の計算
  Path Utilities - Project root discovery and relative import specifiers.
"""

import os
from pathlib import Path
from typing import Optional


def find_project_root(start_dir: Path) -> Optional[Path]:
    """
    プロジェクトルートを探索する

    Walk upward from *start_dir* to the first directory that contains a
    ``src/`` directory.

    Args:
        start_dir: 探索開始ディレクトリ / Directory to start from

    Returns:
        プロジェクトルート、見つからない場合は None / Project root or None

    Example:
        >>> find_project_root(Path("novel/manuscripts"))
        PosixPath('novel')
    """
    current = Path(start_dir).resolve()
    while True:
        if (current / "src").is_dir():
            return current
        if current.parent == current:
            return None
        current = current.parent


def to_posix_relative(target: Path, base: Path) -> str:
    """
    base から target への相対パスを / 区切りで返す

    Relative path from *base* to *target* with forward slashes.
    ``..`` segments are allowed (unlike ``Path.relative_to``).
    """
    rel = os.path.relpath(str(Path(target).resolve()), str(Path(base).resolve()))
    return rel.replace("\\", "/")


def to_import_specifier(from_dir: Path, target_file: Path) -> str:
    """
    TypeScript の相対インポート指定子を計算する

    Compute a relative ES module specifier from *from_dir* to *target_file*.

    Example:
        >>> to_import_specifier(Path("/p/manuscripts"), Path("/p/src/characters/hero.ts"))
        '../src/characters/hero.ts'
        >>> to_import_specifier(Path("/p"), Path("/p/src/types/chapter.ts"))
        './src/types/chapter.ts'
    """
    rel = to_posix_relative(target_file, from_dir)
    if not rel.startswith("."):
        rel = f"./{rel}"
    return rel


def validate_path_within(child: Path, parent: Path) -> Path:
    """
    child が parent の内側にあることを検証する

    Validate that *child* resolves to a path inside *parent* and return the
    resolved child path.

    Raises:
        ValueError: 親ディレクトリから逸脱する場合 / If the child escapes the parent
    """
    resolved_parent = parent.resolve()
    resolved_child = child.resolve()

    if resolved_child != resolved_parent and resolved_parent not in resolved_child.parents:
        raise ValueError(f"Path escapes project directory: {child}")

    return resolved_child
