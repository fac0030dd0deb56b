import logging
from functools import lru_cache

from core.config import configs

from .base import ContentStore
from .kv import JsonFileStore, KeyValueStore, MemoryStore
from .local import LocalContentStore

logger = logging.getLogger(__name__)


class StorageFactory:
    @staticmethod
    def get_key_value_store(store_type: str = "file") -> KeyValueStore:
        logger.info(f"Creating key-value store of type: {store_type}")
        if store_type == "file":
            return JsonFileStore(configs.TOKEN_STORE_PATH)
        elif store_type == "memory":
            return MemoryStore()
        else:
            raise ValueError(f"Unknown store type: {store_type}")


@lru_cache()
def get_content_store() -> ContentStore:
    logger.debug(f"Getting content store (cached). Root: {configs.MEDIA_ROOT}")
    return LocalContentStore(configs.MEDIA_ROOT)


@lru_cache()
def get_key_value_store() -> KeyValueStore:
    store_type = getattr(configs, "STORE_TYPE", "file")
    logger.debug(f"Getting key-value store (cached). Type: {store_type}")
    return StorageFactory.get_key_value_store(store_type)
