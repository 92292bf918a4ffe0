"""
Services Module / サービスモジュール
Detection, validation and emission pipeline for chapter meta files
章メタファイルの検出・検証・出力パイプライン
"""

from .frontmatter_parser import FrontmatterParser
from .meta_generator_service import MetaGenerateOptions, MetaGeneratorService
from .presets import get_preset, preset_names
from .reference_detector import ReferenceDetector
from .typescript_emitter import TypeScriptEmitter
from .validation_generator import ValidationGenerator

__all__ = [
    "FrontmatterParser",
    "MetaGenerateOptions",
    "MetaGeneratorService",
    "ReferenceDetector",
    "TypeScriptEmitter",
    "ValidationGenerator",
    "get_preset",
    "preset_names",
]
