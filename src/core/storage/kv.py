import asyncio
import copy
import json
import logging
import os
from abc import ABC, abstractmethod
from pathlib import Path
from typing import Any, Dict, Optional

import aiofiles

from core.config import configs

logger = logging.getLogger(__name__)


class KeyValueStore(ABC):
    """Namespaced key-value persistence provided by the host."""

    @abstractmethod
    async def get(self, namespace: str, key: str, default: Any = None) -> Any:
        pass

    @abstractmethod
    async def set_many(self, namespace: str, values: Dict[str, Any]) -> None:
        """Write several keys of one namespace in a single update."""
        pass

    @abstractmethod
    async def delete(self, namespace: str, *keys: str) -> None:
        pass

    async def set(self, namespace: str, key: str, value: Any) -> None:
        await self.set_many(namespace, {key: value})


class MemoryStore(KeyValueStore):
    def __init__(self):
        self._data: Dict[str, Dict[str, Any]] = {}

    async def get(self, namespace: str, key: str, default: Any = None) -> Any:
        return self._data.get(namespace, {}).get(key, default)

    async def set_many(self, namespace: str, values: Dict[str, Any]) -> None:
        self._data[namespace] = {**self._data.get(namespace, {}), **values}

    async def delete(self, namespace: str, *keys: str) -> None:
        current = self._data.get(namespace, {})
        self._data[namespace] = {k: v for k, v in current.items() if k not in keys}


class JsonFileStore(KeyValueStore):
    """Key-value store persisted as a single JSON document.

    Every write replaces the file through a temporary sibling, so a reader
    never sees a half-written document.
    """

    def __init__(self, path: str = None):
        self.path = Path(path or configs.TOKEN_STORE_PATH)
        self.path.parent.mkdir(parents=True, exist_ok=True)
        self._lock = asyncio.Lock()
        self._cache: Optional[Dict[str, Dict[str, Any]]] = None
        logger.debug(f"JsonFileStore initialized at {self.path}")

    async def _load(self) -> Dict[str, Dict[str, Any]]:
        if self._cache is not None:
            return self._cache
        if not self.path.exists():
            self._cache = {}
            return self._cache
        try:
            async with aiofiles.open(self.path, "r", encoding="utf-8") as f:
                content = await f.read()
            data = json.loads(content) if content.strip() else {}
            self._cache = data if isinstance(data, dict) else {}
        except (OSError, json.JSONDecodeError) as e:
            logger.warning(f"Store file {self.path} unreadable, starting empty: {e}")
            self._cache = {}
        return self._cache

    async def _write(self, data: Dict[str, Dict[str, Any]]) -> None:
        tmp_path = self.path.with_suffix(self.path.suffix + ".tmp")
        async with aiofiles.open(tmp_path, "w", encoding="utf-8") as f:
            await f.write(json.dumps(data, indent=2))
        os.replace(tmp_path, self.path)
        self._cache = data

    async def get(self, namespace: str, key: str, default: Any = None) -> Any:
        data = await self._load()
        return data.get(namespace, {}).get(key, default)

    async def set_many(self, namespace: str, values: Dict[str, Any]) -> None:
        async with self._lock:
            data = copy.deepcopy(await self._load())
            data[namespace] = {**data.get(namespace, {}), **values}
            await self._write(data)

    async def delete(self, namespace: str, *keys: str) -> None:
        async with self._lock:
            data = copy.deepcopy(await self._load())
            current = data.get(namespace, {})
            data[namespace] = {k: v for k, v in current.items() if k not in keys}
            await self._write(data)
