# -*- coding: utf-8 -*-
"""
StoryTeller Meta - 原稿とストーリーデータを同期させるメタ生成ツール
StoryTeller Meta - Keeps manuscripts and structured story data in sync

Copyright © 2025-2026 StoryTeller Team
License: PolyForm Noncommercial License 1.0.0

モジュール説明 / Module Description:
  テキストユーティリティ - 改行の正規化と部分文字列の出現位置検索
  Text Utilities - Newline normalization and literal substring search.
"""

from typing import List


def normalize_newlines(text: str | None) -> str:
    """
    改行を正規化する（\\r\\n と \\r を \\n に変換）

    Normalize \\\\r\\\\n and \\\\r to \\\\n.

    Accepts *None* safely (returns empty string).

    Example:
        >>> normalize_newlines("line1\\r\\nline2")
        "line1\\nline2"
    """
    return (text or "").replace("\r\n", "\n").replace("\r", "\n")


def find_occurrences(text: str, needle: str) -> List[int]:
    """
    部分文字列の出現開始位置を列挙する（重複なし）

    Return the start offsets of every non-overlapping occurrence of
    *needle* in *text*. An empty needle never matches.

    Example:
        >>> find_occurrences("勇者と勇者", "勇者")
        [0, 3]
    """
    if not text or not needle:
        return []
    positions: List[int] = []
    start = 0
    while True:
        idx = text.find(needle, start)
        if idx == -1:
            break
        positions.append(idx)
        start = idx + len(needle)
    return positions


def dedupe(items) -> List[str]:
    """Drop blanks and duplicates while keeping first-seen order."""
    return list(dict.fromkeys(str(item) for item in items if item))
