# /wayfinder_core/offline_sync.py

import asyncio
from typing import Callable, Dict, List, Optional

from wayfinder_core.errors import ApiError, OfflineSyncError, StorageError
from wayfinder_core.location_cache import LocationCache
from wayfinder_core.logger import get_logger
from wayfinder_core.models import Building, Edge, Floor, Node, OfflineSnapshot, SyncProgress
from wayfinder_core.remote import WayfinderApi

logger = get_logger(__name__)

ProgressCallback = Callable[[SyncProgress], None]


class OfflineSyncManager:
    """
    Downloads whole buildings into the LocationCache. At most one download per
    building is in flight; a second request for the same building awaits it.
    """
    def __init__(self, api: WayfinderApi, cache: LocationCache,
                 on_progress: Optional[ProgressCallback] = None):
        self.api = api
        self.cache = cache
        self.on_progress = on_progress
        self._in_flight: Dict[str, asyncio.Task] = {}

    def is_downloading(self, building_id: str) -> bool:
        return building_id in self._in_flight

    async def is_building_cached(self, building_id: str) -> bool:
        return await self.cache.is_cached(building_id)

    async def download_building_data(self, building_id: str) -> OfflineSnapshot:
        task = self._in_flight.get(building_id)
        if task is None:
            task = asyncio.create_task(self._download(building_id))
            self._in_flight[building_id] = task
            task.add_done_callback(lambda _: self._in_flight.pop(building_id, None))
        else:
            logger.info(f"Download of building '{building_id}' already in progress; waiting for it.")
        # Shielded so that one cancelled caller does not abort the download for the others.
        return await asyncio.shield(task)

    async def download_building_list(self, page: int = 1, page_size: int = 50) -> List[Building]:
        """Fetches the building list and keeps it for offline browsing. ApiError propagates."""
        buildings = await self.api.get_buildings(page=page, page_size=page_size)
        await self.cache.cache_building_list(buildings)
        logger.info(f"Cached building list ({len(buildings)} buildings).")
        return buildings

    async def get_cached_floor_plan(self, floor_id: str) -> Optional[bytes]:
        return await self.cache.get_floor_plan(floor_id)

    async def get_cache_size(self) -> float:
        return await self.cache.get_cache_size()

    async def clear_cache(self, building_id: Optional[str] = None) -> None:
        building_ids = [building_id] if building_id else await self.cache.cached_building_ids()
        for cached_id in building_ids:
            await self.cache.remove_offline_snapshot(cached_id)
        if building_id is None:
            await self.cache.clear_building_list()
        logger.info(f"Cleared offline cache for {len(building_ids)} building(s).")

    def _report(self, building_id: str, stage: str, completed: int = 0, total: int = 0) -> None:
        if self.on_progress is None:
            return
        try:
            self.on_progress(SyncProgress(building_id=building_id, stage=stage,
                                          completed_floors=completed, total_floors=total))
        except Exception:
            logger.error("Offline sync progress callback raised an exception.", exc_info=True)

    async def _fetch_floor_plan(self, floor: Floor) -> Optional[bytes]:
        if not floor.floor_plan_url:
            return None
        try:
            return await self.api.get_floor_plan_image(floor.floor_plan_url)
        except ApiError as e:
            # A missing image does not make the building unusable offline.
            logger.warning(f"Failed to download floor plan for floor '{floor.id}': {e.message}")
            return None

    async def _save_floor_plans(self, floor_plans: Dict[str, bytes]) -> None:
        for floor_id, image in floor_plans.items():
            try:
                await self.cache.save_floor_plan(floor_id, image)
            except StorageError as e:
                logger.warning(f"Failed to cache floor plan for floor '{floor_id}': {e}")

    async def _download(self, building_id: str) -> OfflineSnapshot:
        logger.info(f"--- Starting offline download of building '{building_id}' ---")
        try:
            self._report(building_id, "building")
            building = await self.api.get_building(building_id)

            self._report(building_id, "floors")
            floors = await self.api.get_floors_by_building(building_id)

            nodes: List[Node] = []
            edges: Dict[str, Edge] = {}
            floor_plans: Dict[str, bytes] = {}
            for index, floor in enumerate(floors):
                self._report(building_id, "floor", index, len(floors))
                nodes.extend(await self.api.get_nodes_by_floor(floor.id))
                for edge in await self.api.get_edges_by_floor(floor.id):
                    # Edges between floors are listed on both of them.
                    edges.setdefault(edge.id or f"{edge.from_node_id}->{edge.to_node_id}", edge)
                image = await self._fetch_floor_plan(floor)
                if image is not None:
                    floor_plans[floor.id] = image

            snapshot = OfflineSnapshot(building=building, floors=floors, nodes=nodes, edges=list(edges.values()))

            self._report(building_id, "saving", len(floors), len(floors))
            await self.cache.save_offline_snapshot(building_id, snapshot)
        except (ApiError, StorageError) as e:
            logger.error(f"Offline download of building '{building_id}' failed: {e}")
            raise OfflineSyncError(building_id, str(e)) from e

        await self._save_floor_plans(floor_plans)

        self._report(building_id, "done", len(floors), len(floors))
        logger.info(f"--- Finished offline download of building '{building_id}': "
                    f"{len(floors)} floors, {len(snapshot.nodes)} nodes, {len(snapshot.edges)} edges, "
                    f"{len(floor_plans)} floor plans ---")
        return snapshot
