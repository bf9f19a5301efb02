# /wayfinder_core/navigation.py

from typing import Optional

from wayfinder_core.connectivity import ConnectivityMonitor
from wayfinder_core.errors import ApiError, StorageError
from wayfinder_core.location_cache import LocationCache
from wayfinder_core.logger import get_logger
from wayfinder_core.models import (
    NavigationSessionState,
    Node,
    OfflineSnapshot,
    RecentSearch,
    RouteStep,
    SessionStatus,
)
from wayfinder_core.remote import WayfinderApi

logger = get_logger(__name__)

MISSING_SELECTION_MESSAGE = "Please select both start and end locations."
NO_ROUTE_MESSAGE = "No route found."
ROUTE_FAILED_MESSAGE = "Route calculation failed. Please try again."
OFFLINE_ROUTE_MESSAGE = "You are offline. Routes can only be calculated with a connection."


class NavigationSession:
    """
    Owns the state of one wayfinding attempt: endpoint selection, the route
    calculation lifecycle and the step cursor over the resulting path.

    Route calculations supersede each other: every call captures a generation
    number and its result is applied only if no newer call (or swap, clear,
    reset) happened in the meantime.
    """
    def __init__(self, api: WayfinderApi, cache: LocationCache, connectivity: ConnectivityMonitor):
        self.api = api
        self.cache = cache
        self.connectivity = connectivity
        self.state = NavigationSessionState()
        self._generation = 0

    # --- Selection ---

    def set_start_node(self, node: Optional[Node]) -> None:
        self.state.start_node = node
        self.state.error = None

    def set_end_node(self, node: Optional[Node]) -> None:
        self.state.end_node = node
        self.state.error = None

    def set_current_building(self, building_id: Optional[str], floor_id: Optional[str] = None) -> None:
        self.state.current_building_id = building_id
        self.state.current_floor_id = floor_id

    def set_require_accessible(self, require_accessible: bool) -> None:
        self.state.require_accessible = require_accessible

    def swap_nodes(self) -> None:
        self._generation += 1
        state = self.state
        state.start_node, state.end_node = state.end_node, state.start_node
        state.route = None
        state.current_step_index = 0
        state.error = None
        state.is_calculating = False

    # --- Route calculation ---

    async def calculate_route(self) -> None:
        state = self.state
        if state.start_node is None or state.end_node is None:
            state.error = MISSING_SELECTION_MESSAGE
            return

        self._generation += 1
        generation = self._generation

        if not self.connectivity.is_online:
            logger.info("Route calculation skipped while offline.")
            state.error = OFFLINE_ROUTE_MESSAGE
            state.is_calculating = False
            return

        start, end = state.start_node, state.end_node
        state.is_calculating = True
        state.error = None
        logger.info(f"Calculating route {start.id} -> {end.id} (accessible={state.require_accessible}).")

        try:
            result = await self.api.calculate_route(start.id, end.id, state.require_accessible)
        except ApiError as e:
            if generation != self._generation:
                return
            logger.warning(f"Route calculation failed: {e.message}")
            state.route = None
            state.current_step_index = 0
            state.error = ROUTE_FAILED_MESSAGE
            state.is_calculating = False
            return

        if generation != self._generation:
            logger.debug(f"Discarding stale route result (generation {generation}).")
            return

        state.is_calculating = False
        if not result.path_found or not result.path:
            state.route = None
            state.current_step_index = 0
            state.error = result.error_message or NO_ROUTE_MESSAGE
            return

        state.route = result
        state.current_step_index = 0
        logger.info(f"Route ready: {len(result.path)} steps, {result.total_distance:.1f} m.")
        await self._record_destination(end)

    async def _record_destination(self, node: Node) -> None:
        building_name = None
        floor_name = None
        if self.state.current_building_id:
            snapshot = await self.cache.get_offline_snapshot(self.state.current_building_id)
            if snapshot is not None:
                building_name = snapshot.building.name
                floor_name = snapshot.floor_name(node.floor_id)
        try:
            await self.cache.add_recent_search(RecentSearch(
                node_id=node.id,
                node_name=node.name,
                node_type=node.type.value,
                building_id=self.state.current_building_id,
                building_name=building_name,
                floor_id=node.floor_id or None,
                floor_name=floor_name,
            ))
        except StorageError as e:
            logger.warning(f"Could not record recent destination '{node.id}': {e}")

    # --- Step cursor ---

    def _last_index(self) -> int:
        route = self.state.route
        return len(route.path) - 1 if route and route.path else -1

    def next_step(self) -> None:
        if self.state.current_step_index < self._last_index():
            self.state.current_step_index += 1

    def previous_step(self) -> None:
        if self.state.route is not None and self.state.current_step_index > 0:
            self.state.current_step_index -= 1

    def go_to_step(self, index: int) -> None:
        if 0 <= index <= self._last_index():
            self.state.current_step_index = index

    def get_current_step(self) -> Optional[RouteStep]:
        route = self.state.route
        if route is None or not route.path:
            return None
        return route.path[self.state.current_step_index]

    @property
    def is_at_start(self) -> bool:
        return self.state.route is not None and self.state.current_step_index == 0

    @property
    def is_at_destination(self) -> bool:
        last = self._last_index()
        return last >= 0 and self.state.current_step_index == last

    @property
    def status(self) -> SessionStatus:
        if self.state.is_calculating:
            return SessionStatus.CALCULATING
        if self.state.route is not None:
            return SessionStatus.ROUTE_READY
        if self.state.error:
            return SessionStatus.ROUTE_FAILED
        return SessionStatus.IDLE

    # --- Lifecycle ---

    def clear_route(self) -> None:
        self._generation += 1
        self.state.route = None
        self.state.current_step_index = 0
        self.state.error = None
        self.state.is_calculating = False

    def reset(self) -> None:
        self._generation += 1
        self.state = NavigationSessionState()
        logger.info("Navigation session reset.")

    async def get_offline_snapshot(self) -> Optional[OfflineSnapshot]:
        if not self.state.current_building_id:
            return None
        return await self.cache.get_offline_snapshot(self.state.current_building_id)
