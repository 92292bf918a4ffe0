# -*- coding: utf-8 -*-
"""
StoryTeller Meta - 原稿とストーリーデータを同期させるメタ生成ツール
StoryTeller Meta - Keeps manuscripts and structured story data in sync

Copyright © 2025-2026 StoryTeller Team
License: PolyForm Noncommercial License 1.0.0

モジュール説明 / Module Description:
  ストレージ基底クラス - aiofiles による非同期テキスト/YAML 読み書き
  Base storage - Async text/YAML reads and atomic writes built on aiofiles.
"""

import os
import tempfile
from pathlib import Path
from typing import Any, Optional

import aiofiles
import yaml

from storyteller.config import settings


class BaseStorage:
    """
    ファイルベースストレージの基底クラス

    Base class for file-based storage. Reads raise the underlying
    ``OSError`` (``FileNotFoundError``, ``PermissionError``...) so that callers
    decide whether absence is an error.
    """

    def __init__(self, root_dir: Optional[str] = None, encoding: Optional[str] = None):
        self.root_dir = Path(root_dir) if root_dir else Path.cwd()
        self.encoding = encoding or settings.encoding

    def get_project_path(self, project: str | Path) -> Path:
        """Resolve a project path relative to the storage root."""
        path = Path(project)
        if not path.is_absolute():
            path = self.root_dir / path
        return path

    def ensure_dir(self, path: Path) -> None:
        """Create a directory (and parents) if missing."""
        Path(path).mkdir(parents=True, exist_ok=True)

    async def read_text(self, file_path: Path) -> str:
        """Read a text file."""
        async with aiofiles.open(file_path, "r", encoding=self.encoding, newline="") as f:
            return await f.read()

    async def write_text(self, file_path: Path, content: str) -> None:
        """Write a text file atomically, creating parent directories."""
        self.ensure_dir(Path(file_path).parent)
        await self._atomic_write(Path(file_path), content)

    async def read_yaml(self, file_path: Path) -> Any:
        """Read and parse a YAML file.

        Raises:
            FileNotFoundError: when the file does not exist.
            yaml.YAMLError: when the content is not valid YAML.
        """
        raw = await self.read_text(file_path)
        return yaml.safe_load(raw)

    async def _atomic_write(self, file_path: Path, payload: str) -> None:
        """Write to a temp file in the same directory then ``os.replace`` it.

        Readers never observe a partially-written file, and on failure the
        previous content is left untouched.
        """
        fd, tmp_name = tempfile.mkstemp(
            prefix=f".{file_path.name}.", suffix=".tmp", dir=str(file_path.parent)
        )
        os.close(fd)
        try:
            async with aiofiles.open(tmp_name, "w", encoding=self.encoding, newline="") as f:
                await f.write(payload)
            os.replace(tmp_name, str(file_path))
        except BaseException:
            try:
                os.unlink(tmp_name)
            except OSError:
                pass
            raise
