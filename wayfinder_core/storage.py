# /wayfinder_core/storage.py

import asyncio
import os
import re
import tempfile
from abc import ABC, abstractmethod
from pathlib import Path
from typing import Dict, Optional

from wayfinder_core.logger import get_logger

logger = get_logger(__name__)


class KeyValueStorage(ABC):
    """
    Durable string-keyed, string-valued storage. Structured values are
    serialized by the caller.
    """
    @abstractmethod
    async def get_item(self, key: str) -> Optional[str]:
        pass

    @abstractmethod
    async def set_item(self, key: str, value: str) -> None:
        pass

    @abstractmethod
    async def remove_item(self, key: str) -> None:
        pass

    @abstractmethod
    async def size_bytes(self) -> int:
        """Total size of every stored value."""
        pass


class InMemoryStorage(KeyValueStorage):
    """Process-local storage, used for tests and for sessions that must not touch disk."""
    def __init__(self, initial: Optional[Dict[str, str]] = None):
        self._items: Dict[str, str] = dict(initial or {})

    async def get_item(self, key: str) -> Optional[str]:
        return self._items.get(key)

    async def set_item(self, key: str, value: str) -> None:
        self._items[key] = value

    async def remove_item(self, key: str) -> None:
        self._items.pop(key, None)

    async def size_bytes(self) -> int:
        return sum(len(value.encode('utf-8')) for value in self._items.values())


class JsonFileStorage(KeyValueStorage):
    """
    One file per key inside a cache directory. Writes go through a temporary
    file and os.replace, so a value is either fully written or left as it was.
    """
    def __init__(self, cache_dir: str):
        self.cache_dir = Path(cache_dir)
        self.cache_dir.mkdir(parents=True, exist_ok=True)

    def _path_for(self, key: str) -> Path:
        safe_name = re.sub(r'[^A-Za-z0-9_.-]', '_', key).strip('_') or "item"
        return self.cache_dir / f"{safe_name}.json"

    async def get_item(self, key: str) -> Optional[str]:
        return await asyncio.to_thread(self._read, self._path_for(key))

    async def set_item(self, key: str, value: str) -> None:
        await asyncio.to_thread(self._write, self._path_for(key), value)

    async def remove_item(self, key: str) -> None:
        await asyncio.to_thread(self._remove, self._path_for(key))

    async def size_bytes(self) -> int:
        return await asyncio.to_thread(self._total_size)

    def _total_size(self) -> int:
        return sum(path.stat().st_size for path in self.cache_dir.glob("*.json") if path.is_file())

    @staticmethod
    def _read(path: Path) -> Optional[str]:
        if not path.exists():
            return None
        return path.read_text(encoding='utf-8')

    def _write(self, path: Path, value: str) -> None:
        fd, temp_path = tempfile.mkstemp(dir=self.cache_dir, prefix=".tmp-", suffix=".json")
        try:
            with os.fdopen(fd, 'w', encoding='utf-8') as f:
                f.write(value)
            os.replace(temp_path, path)
        except OSError:
            logger.error(f"Failed to write cache file {path}", exc_info=True)
            if os.path.exists(temp_path):
                os.remove(temp_path)
            raise

    @staticmethod
    def _remove(path: Path) -> None:
        try:
            path.unlink()
        except FileNotFoundError:
            pass
