# /wayfinder_core/search.py

import asyncio
from typing import List, Optional

from wayfinder_core.config import settings
from wayfinder_core.connectivity import ConnectivityMonitor
from wayfinder_core.errors import ApiError
from wayfinder_core.location_cache import LocationCache
from wayfinder_core.logger import get_logger
from wayfinder_core.models import Node, NodeType, OfflineSnapshot
from wayfinder_core.remote import WayfinderApi

logger = get_logger(__name__)

SEARCH_FAILED_MESSAGE = "Search failed. Please try again."
OFFLINE_NO_DATA_MESSAGE = "You are offline and no building has been downloaded for offline use."


class SearchIndex:
    """
    Debounced node search. Every search captures a generation number and only
    the latest one may write query results, error or loading state.
    """
    def __init__(self, api: WayfinderApi, cache: LocationCache, connectivity: ConnectivityMonitor,
                 debounce_ms: int = settings.SEARCH_DEBOUNCE_MS,
                 max_results: int = settings.SEARCH_MAX_RESULTS,
                 min_query_length: int = settings.SEARCH_MIN_QUERY_LENGTH):
        self.api = api
        self.cache = cache
        self.connectivity = connectivity
        self.debounce_ms = debounce_ms
        self.max_results = max_results
        self.min_query_length = min_query_length

        # Scope filters
        self.building_id: Optional[str] = None
        self.floor_id: Optional[str] = None
        self.node_type: Optional[NodeType] = None

        # Visible state
        self.query = ""
        self.results: List[Node] = []
        self.is_loading = False
        self.error: Optional[str] = None

        self._generation = 0
        self._timer: Optional[asyncio.TimerHandle] = None
        self._task: Optional[asyncio.Task] = None

    def set_scope(self, building_id: Optional[str] = None, floor_id: Optional[str] = None,
                  node_type: Optional[NodeType] = None) -> None:
        self.building_id = building_id
        self.floor_id = floor_id
        self.node_type = NodeType.parse(node_type) if node_type is not None else None

    def set_query(self, text: str) -> None:
        """Echoes the query immediately and (re)schedules the debounced search."""
        self.query = text
        self._cancel_timer()
        loop = asyncio.get_running_loop()
        self._timer = loop.call_later(self.debounce_ms / 1000, self._fire, text)

    def _fire(self, text: str) -> None:
        self._timer = None
        self._task = asyncio.get_running_loop().create_task(self.perform_search(text))

    def _cancel_timer(self) -> None:
        if self._timer is not None:
            self._timer.cancel()
            self._timer = None

    async def perform_search(self, query: str) -> None:
        self._generation += 1
        generation = self._generation
        term = query.strip()

        if len(term) < self.min_query_length:
            self.results = []
            self.error = None
            self.is_loading = False
            return

        self.is_loading = True
        self.error = None
        try:
            if self.connectivity.is_online:
                nodes = await self.api.search_nodes(term, building_id=self.building_id,
                                                    floor_id=self.floor_id, max_results=self.max_results)
                results, error = self._filter(nodes), None
            else:
                results, error = await self._search_offline(lambda node: term.lower() in node.name.lower())
        except ApiError as e:
            logger.warning(f"Search for '{term}' failed: {e.message}")
            results, error = [], SEARCH_FAILED_MESSAGE

        self._apply(generation, results, error)

    async def search_by_type(self, node_type: NodeType) -> None:
        self._generation += 1
        generation = self._generation
        wanted = NodeType.parse(node_type)

        self.is_loading = True
        self.error = None
        try:
            if self.connectivity.is_online:
                nodes = await self.api.search_nodes_by_type(wanted, building_id=self.building_id,
                                                            floor_id=self.floor_id)
                results, error = self._filter(nodes, wanted), None
            else:
                results, error = await self._search_offline(lambda node: True, wanted)
        except ApiError as e:
            logger.warning(f"Search by type '{wanted.value}' failed: {e.message}")
            results, error = [], SEARCH_FAILED_MESSAGE

        self._apply(generation, results, error)

    def _apply(self, generation: int, results: List[Node], error: Optional[str]) -> None:
        if generation != self._generation:
            logger.debug(f"Discarding stale search results (generation {generation}).")
            return
        self.results = results
        self.error = error
        self.is_loading = False

    def _filter(self, nodes: List[Node], node_type: Optional[NodeType] = None) -> List[Node]:
        node_type = node_type or self.node_type
        matches = [
            node for node in nodes
            if (self.floor_id is None or node.floor_id == self.floor_id)
            and (node_type is None or node.type == node_type)
        ]
        return matches[:self.max_results]

    async def _scoped_snapshots(self) -> List[OfflineSnapshot]:
        if self.building_id:
            building_ids = [self.building_id]
        else:
            building_ids = await self.cache.cached_building_ids()
        snapshots = []
        for building_id in building_ids:
            snapshot = await self.cache.get_offline_snapshot(building_id)
            if snapshot is not None:
                snapshots.append(snapshot)
        return snapshots

    async def _search_offline(self, predicate, node_type: Optional[NodeType] = None):
        snapshots = await self._scoped_snapshots()
        if not snapshots:
            return [], OFFLINE_NO_DATA_MESSAGE
        nodes = [node for snapshot in snapshots for node in snapshot.nodes if predicate(node)]
        return self._filter(nodes, node_type), None

    def clear_search(self) -> None:
        self._cancel_timer()
        self._generation += 1
        self.query = ""
        self.results = []
        self.error = None
        self.is_loading = False

    async def close(self) -> None:
        self._cancel_timer()
        self._generation += 1
        if self._task is not None and not self._task.done():
            self._task.cancel()
            try:
                await self._task
            except asyncio.CancelledError:
                pass
        self._task = None
        self.is_loading = False
