"""
Filesystem gateway / ファイルシステムゲートウェイ

Result-returning wrapper over :class:`BaseStorage` used by the services, so
I/O failures surface as ``not_found`` / ``permission_denied`` / ``io_error``
results instead of exceptions.
"""

from pathlib import Path
from typing import Optional

from storyteller.exceptions import ErrorCode
from storyteller.storage.base import BaseStorage
from storyteller.utils.result import MetaError, Result


def classify_os_error(exc: OSError) -> ErrorCode:
    """Map an ``OSError`` to a gateway error code."""
    if isinstance(exc, FileNotFoundError):
        return ErrorCode.NOT_FOUND
    if isinstance(exc, PermissionError):
        return ErrorCode.PERMISSION_DENIED
    return ErrorCode.IO_ERROR


class FileSystemGateway:
    """Async filesystem access returning :class:`Result` values."""

    def __init__(self, storage: Optional[BaseStorage] = None):
        self.storage = storage or BaseStorage()

    async def read_file(self, path: Path) -> Result[str]:
        try:
            return Result.success(await self.storage.read_text(Path(path)))
        except OSError as exc:
            return Result.failure(
                MetaError(classify_os_error(exc), f"Failed to read file: {exc}", str(path))
            )

    async def write_file(self, path: Path, content: str) -> Result[None]:
        try:
            await self.storage.write_text(Path(path), content)
            return Result.success(None)
        except OSError as exc:
            return Result.failure(
                MetaError(classify_os_error(exc), f"Failed to write output: {exc}", str(path))
            )

    async def exists(self, path: Path) -> Result[bool]:
        try:
            return Result.success(Path(path).exists())
        except OSError as exc:
            return Result.failure(MetaError(classify_os_error(exc), str(exc), str(path)))
