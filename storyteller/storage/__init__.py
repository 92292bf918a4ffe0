"""
Storage Module / ストレージモジュール
File-based loaders for entities and binding overrides
エンティティとバインディングのファイルベース読み込み
"""

from .base import BaseStorage
from .bindings import BindingLoader, binding_path_for
from .entities import EntityLoader
from .gateway import FileSystemGateway

__all__ = [
    "BaseStorage",
    "BindingLoader",
    "EntityLoader",
    "FileSystemGateway",
    "binding_path_for",
]
