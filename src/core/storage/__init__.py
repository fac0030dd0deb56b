from .base import ContentStore
from .factory import get_content_store, get_key_value_store
from .kv import JsonFileStore, KeyValueStore, MemoryStore
from .local import LocalContentStore

__all__ = [
    "ContentStore",
    "LocalContentStore",
    "KeyValueStore",
    "JsonFileStore",
    "MemoryStore",
    "get_content_store",
    "get_key_value_store",
]
