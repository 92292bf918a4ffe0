# -*- coding: utf-8 -*-
"""
StoryTeller Meta - 原稿とストーリーデータを同期させるメタ生成ツール
StoryTeller Meta - Keeps manuscripts and structured story data in sync

Copyright © 2025-2026 StoryTeller Team
License: PolyForm Noncommercial License 1.0.0

モジュール説明 / Module Description:
  集中ログ管理 - 統一されたロガー設定を提供する
  Centralized Logging Module - Unified logging configuration and management

使用例 / Usage:
    from storyteller.utils.logger import get_logger

    logger = get_logger(__name__)
    logger.info("メタ生成開始 / Meta generation started")
"""

import logging
import sys
from logging.handlers import RotatingFileHandler
from pathlib import Path

from storyteller.config import settings

LOG_FORMAT = '%(asctime)s - %(name)s - %(levelname)s - %(message)s'
DATE_FORMAT = '%Y-%m-%d %H:%M:%S'


def get_logger(name: str) -> logging.Logger:
    """
    指定した名前のロガーを取得または作成する

    Get or create a logger with the specified name.

    コンソールハンドラは常に有効。``settings.log_dir`` が設定されている場合は
    ローテーションするファイルハンドラ（最大10MB、5世代）も追加する。
    Console output goes to stderr so that CLI output on stdout (JSON previews)
    stays machine-readable. When ``settings.log_dir`` is set a rotating file
    handler (10MB, 5 backups) is attached as well.

    Args:
        name: ロガー名（通常は __name__） / Logger name (typically __name__)

    Returns:
        設定済みロガー / Configured logger instance
    """
    logger = logging.getLogger(name)

    # Avoid adding handlers multiple times
    if logger.handlers:
        return logger

    level = logging.DEBUG if settings.debug else logging.INFO
    logger.setLevel(level)
    formatter = logging.Formatter(LOG_FORMAT, DATE_FORMAT)

    console_handler = logging.StreamHandler(sys.stderr)
    console_handler.setLevel(level if settings.debug else logging.WARNING)
    console_handler.setFormatter(formatter)
    logger.addHandler(console_handler)

    if settings.log_dir:
        log_dir = Path(settings.log_dir)
        log_dir.mkdir(parents=True, exist_ok=True)
        file_handler = RotatingFileHandler(
            log_dir / "storyteller.log",
            maxBytes=10 * 1024 * 1024,  # 10 MB
            backupCount=5,
            encoding='utf-8'
        )
        file_handler.setLevel(logging.DEBUG)
        file_handler.setFormatter(formatter)
        logger.addHandler(file_handler)

    return logger
