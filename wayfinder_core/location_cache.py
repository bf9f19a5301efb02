# /wayfinder_core/location_cache.py

import asyncio
import base64
import binascii
from typing import List, Optional

from pydantic import TypeAdapter, ValidationError

from wayfinder_core.config import settings
from wayfinder_core.errors import StorageError
from wayfinder_core.logger import get_logger
from wayfinder_core.models import Building, FavoriteDestination, Node, OfflineSnapshot, RecentSearch
from wayfinder_core.storage import KeyValueStorage

logger = get_logger(__name__)

# --- Storage keys ---
FAVORITES_KEY = "@wayfinder:favorites"
RECENT_SEARCHES_KEY = "@wayfinder:recent_searches"
OFFLINE_INDEX_KEY = "@wayfinder:offline_index"
OFFLINE_SNAPSHOT_PREFIX = "@wayfinder:offline:"
FLOOR_PLAN_PREFIX = "@wayfinder:floor_plan:"
BUILDING_LIST_KEY = "@wayfinder:buildings_list"

# A corrupt file may not even decode as text.
READ_ERRORS = (OSError, UnicodeDecodeError)

_favorites_adapter = TypeAdapter(List[FavoriteDestination])
_recents_adapter = TypeAdapter(List[RecentSearch])
_index_adapter = TypeAdapter(List[str])
_buildings_adapter = TypeAdapter(List[Building])


def snapshot_key(building_id: str) -> str:
    return f"{OFFLINE_SNAPSHOT_PREFIX}{building_id}"


def floor_plan_key(floor_id: str) -> str:
    return f"{FLOOR_PLAN_PREFIX}{floor_id}"


class LocationCache:
    """
    Owner of the favorites list, the recent-search list and the per-building
    offline snapshots. Reads never raise: a missing or corrupt value is logged
    and read as empty. Writes raise StorageError so the caller can decide.

    Every read-modify-write runs under one lock, so overlapping mutations
    never lose an update.
    """
    def __init__(self, storage: KeyValueStorage, max_recent: int = settings.MAX_RECENT_SEARCHES):
        self.storage = storage
        self.max_recent = max_recent
        self._lock = asyncio.Lock()

    # --- Low-level helpers ---

    async def _get_raw(self, key: str) -> Optional[str]:
        try:
            return await self.storage.get_item(key)
        except READ_ERRORS as e:
            logger.error(f"Failed to read '{key}' from storage: {e}")
            return None

    async def _read(self, key: str, adapter: TypeAdapter, default):
        raw = await self._get_raw(key)
        if raw is None:
            return default
        try:
            return adapter.validate_json(raw)
        except ValidationError as e:
            logger.warning(f"Ignoring corrupt value stored under '{key}': {e.error_count()} error(s).")
            return default

    async def _set_raw(self, key: str, value: str) -> None:
        try:
            await self.storage.set_item(key, value)
        except OSError as e:
            logger.error(f"Failed to write '{key}' to storage: {e}")
            raise StorageError(f"Could not save '{key}': {e}") from e

    async def _write(self, key: str, adapter: TypeAdapter, value) -> None:
        await self._set_raw(key, adapter.dump_json(value).decode('utf-8'))

    async def _remove(self, key: str) -> None:
        try:
            await self.storage.remove_item(key)
        except OSError as e:
            logger.error(f"Failed to remove '{key}' from storage: {e}")
            raise StorageError(f"Could not remove '{key}': {e}") from e

    # --- Favorites ---

    async def get_favorites(self) -> List[FavoriteDestination]:
        return await self._read(FAVORITES_KEY, _favorites_adapter, [])

    async def add_favorite(self, favorite: FavoriteDestination) -> None:
        async with self._lock:
            favorites = await self.get_favorites()
            if any(f.node_id == favorite.node_id for f in favorites):
                return
            favorites.append(favorite)
            await self._write(FAVORITES_KEY, _favorites_adapter, favorites)
        logger.info(f"Added favorite '{favorite.node_name}' ({favorite.node_id}).")

    async def remove_favorite(self, node_id: str) -> None:
        async with self._lock:
            favorites = await self.get_favorites()
            remaining = [f for f in favorites if f.node_id != node_id]
            if len(remaining) == len(favorites):
                return
            await self._write(FAVORITES_KEY, _favorites_adapter, remaining)

    async def is_favorite(self, node_id: str) -> bool:
        return any(f.node_id == node_id for f in await self.get_favorites())

    # --- Recent searches ---

    async def get_recent_searches(self) -> List[RecentSearch]:
        return await self._read(RECENT_SEARCHES_KEY, _recents_adapter, [])

    async def add_recent_search(self, search: RecentSearch) -> None:
        async with self._lock:
            recents = [r for r in await self.get_recent_searches() if r.node_id != search.node_id]
            recents.insert(0, search)
            await self._write(RECENT_SEARCHES_KEY, _recents_adapter, recents[:self.max_recent])

    async def clear_recent_searches(self) -> None:
        async with self._lock:
            await self._remove(RECENT_SEARCHES_KEY)

    # --- Offline snapshots ---

    async def cached_building_ids(self) -> List[str]:
        return await self._read(OFFLINE_INDEX_KEY, _index_adapter, [])

    async def get_offline_snapshot(self, building_id: str) -> Optional[OfflineSnapshot]:
        raw = await self._get_raw(snapshot_key(building_id))
        if raw is None:
            return None
        try:
            return OfflineSnapshot.model_validate_json(raw)
        except ValidationError as e:
            logger.warning(f"Ignoring corrupt offline snapshot for building '{building_id}': {e.error_count()} error(s).")
            return None

    async def save_offline_snapshot(self, building_id: str, snapshot: OfflineSnapshot) -> None:
        """
        Replaces the building's snapshot and records it in the index. If the
        index cannot be updated the snapshot is removed again, so a failed save
        leaves the building uncached.
        """
        key = snapshot_key(building_id)
        async with self._lock:
            await self._set_raw(key, snapshot.model_dump_json())
            index = await self.cached_building_ids()
            if building_id not in index:
                try:
                    await self._write(OFFLINE_INDEX_KEY, _index_adapter, index + [building_id])
                except StorageError:
                    await self._discard(key)
                    raise
        logger.info(f"Saved offline snapshot for building '{building_id}' ({len(snapshot.nodes)} nodes, {len(snapshot.edges)} edges).")

    async def _discard(self, key: str) -> None:
        try:
            await self.storage.remove_item(key)
        except OSError as e:
            logger.error(f"Failed to roll back '{key}': {e}")

    async def remove_offline_snapshot(self, building_id: str) -> None:
        """Drops the snapshot, its floor plans and its index entry."""
        snapshot = await self.get_offline_snapshot(building_id)
        async with self._lock:
            await self._remove(snapshot_key(building_id))
            if snapshot is not None:
                for floor in snapshot.floors:
                    await self._remove(floor_plan_key(floor.id))
            index = await self.cached_building_ids()
            if building_id in index:
                index.remove(building_id)
                await self._write(OFFLINE_INDEX_KEY, _index_adapter, index)

    async def is_cached(self, building_id: str) -> bool:
        return await self._get_raw(snapshot_key(building_id)) is not None

    async def find_node_by_qr_code(self, qr_code: str) -> Optional[Node]:
        """Looks a QR code up across every cached building."""
        for building_id in await self.cached_building_ids():
            snapshot = await self.get_offline_snapshot(building_id)
            if snapshot is None:
                continue
            node = snapshot.find_node_by_qr_code(qr_code)
            if node is not None:
                return node
        return None

    # --- Floor plans ---

    async def save_floor_plan(self, floor_id: str, image: bytes) -> None:
        await self._set_raw(floor_plan_key(floor_id), base64.b64encode(image).decode('ascii'))

    async def get_floor_plan(self, floor_id: str) -> Optional[bytes]:
        raw = await self._get_raw(floor_plan_key(floor_id))
        if raw is None:
            return None
        try:
            return base64.b64decode(raw, validate=True)
        except binascii.Error as e:
            logger.warning(f"Ignoring corrupt floor plan for floor '{floor_id}': {e}")
            return None

    # --- Building list ---

    async def cache_building_list(self, buildings: List[Building]) -> None:
        await self._write(BUILDING_LIST_KEY, _buildings_adapter, buildings)

    async def get_cached_building_list(self) -> Optional[List[Building]]:
        """The last building list fetched online, or None if none was ever cached."""
        return await self._read(BUILDING_LIST_KEY, _buildings_adapter, None)

    async def clear_building_list(self) -> None:
        await self._remove(BUILDING_LIST_KEY)

    async def get_cache_size(self) -> float:
        """Size of everything stored, in megabytes."""
        try:
            size = await self.storage.size_bytes()
        except OSError as e:
            logger.error(f"Failed to measure cache size: {e}")
            return 0.0
        return size / (1024 * 1024)
