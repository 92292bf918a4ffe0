# -*- coding: utf-8 -*-
"""
StoryTeller Meta - 原稿とストーリーデータを同期させるメタ生成ツール
StoryTeller Meta - Keeps manuscripts and structured story data in sync

Copyright © 2025-2026 StoryTeller Team
License: PolyForm Noncommercial License 1.0.0

モジュール説明 / Module Description:
  設定管理 - 環境変数と storyteller.yaml からアプリケーション設定を読み込む
  Configuration - Loads application settings from environment variables and
  an optional storyteller.yaml file.

使用例 / Usage:
    from storyteller.config import settings, config

    settings.encoding                       # "utf-8"
    config.get("detection", {})             # tunables from storyteller.yaml
"""

from pathlib import Path
from typing import Any, Dict, Optional

import yaml
from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    """
    アプリケーション設定

    Application settings. Every field can be overridden with a
    ``STORYTELLER_``-prefixed environment variable.
    """

    model_config = SettingsConfigDict(env_prefix="STORYTELLER_", extra="ignore")

    debug: bool = False
    log_dir: Optional[str] = None
    encoding: str = "utf-8"

    # Project layout (relative to the project root)
    # プロジェクト構成（プロジェクトルートからの相対パス）
    chapter_type_path: str = "src/types/chapter.ts"
    character_dir: str = "src/characters"
    setting_dir: str = "src/settings"
    foreshadowing_dir: str = "src/foreshadowings"

    config_file: str = "storyteller.yaml"


def load_config(path: Path) -> Dict[str, Any]:
    """
    YAML設定ファイルを読み込む

    Load tunables from a YAML file. A missing file yields an empty dict.

    Args:
        path: 設定ファイルのパス / Config file path

    Returns:
        設定辞書 / Config mapping
    """
    if not path.exists():
        return {}
    with open(path, "r", encoding=settings.encoding) as f:
        data = yaml.safe_load(f) or {}
    if not isinstance(data, dict):
        raise ValueError(f"Invalid config file (expected a mapping): {path}")
    return data


settings = Settings()
config: Dict[str, Any] = load_config(Path(settings.config_file))
