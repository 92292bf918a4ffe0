# -*- coding: utf-8 -*-
"""
StoryTeller Meta - 原稿とストーリーデータを同期させるメタ生成ツール
StoryTeller Meta - Keeps manuscripts and structured story data in sync

Copyright © 2025-2026 StoryTeller Team
License: PolyForm Noncommercial License 1.0.0

モジュール説明 / Module Description:
  アプリケーション例外階層 - エラーコード付き例外の継承ツリー
  Application-level Exception Hierarchy - Exceptions carrying stable error codes.
"""

from enum import Enum


class ErrorCode(str, Enum):
    """Stable error codes surfaced to callers / 呼び出し側に公開するエラーコード"""

    BINDING_LOAD_ERROR = "binding_load_error"
    ENTITY_LOAD_ERROR = "entity_load_error"
    FRONTMATTER_INVALID = "frontmatter_invalid"
    UNKNOWN_PRESET = "unknown_preset"
    OUTPUT_EXISTS = "output_exists"
    UPDATE_REQUIRES_MARKERS = "update_requires_markers"
    PROJECT_ROOT_NOT_FOUND = "project_root_not_found"
    IO_ERROR = "io_error"
    NOT_FOUND = "not_found"
    PERMISSION_DENIED = "permission_denied"


class StorytellerError(Exception):
    """
    StoryTeller 業務エラーの基底クラス

    Base exception for all StoryTeller business errors.

    All application-level exceptions inherit from this class and carry an
    :class:`ErrorCode` so they can be converted into a ``Result`` failure
    without losing their classification.
    """

    code: ErrorCode = ErrorCode.IO_ERROR

    def __init__(self, message: str, code: ErrorCode | None = None):
        super().__init__(message)
        self.message = message
        if code is not None:
            self.code = code


class BindingLoadError(StorytellerError):
    """
    バインディングファイルの読み込み失敗

    Raised when a ``*.binding.yaml`` file exists but cannot be used.

    発生条件：
    - YAML構文エラー / YAML syntax error
    - 現行スキーマにもレガシースキーマにも一致しない / Matches neither schema
    - 読み取りエラー / Read failure other than "file missing"
    """

    code = ErrorCode.BINDING_LOAD_ERROR


class EntityLoadError(StorytellerError):
    """Raised when an entity directory cannot be read."""

    code = ErrorCode.ENTITY_LOAD_ERROR
