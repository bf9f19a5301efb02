# /wayfinder_core/context.py

from typing import Optional

from wayfinder_core.config import settings
from wayfinder_core.connectivity import ConnectivityMonitor
from wayfinder_core.location_cache import LocationCache
from wayfinder_core.logger import get_logger
from wayfinder_core.navigation import NavigationSession
from wayfinder_core.offline_sync import OfflineSyncManager
from wayfinder_core.remote import WayfinderApi
from wayfinder_core.scanner import ScanResolver, ScanTarget
from wayfinder_core.search import SearchIndex
from wayfinder_core.storage import JsonFileStorage, KeyValueStorage

logger = get_logger(__name__)


class WayfinderContext:
    """
    Builds and wires one set of components sharing a session, cache and
    connectivity monitor. Screens receive the context instead of reaching
    for a global store.
    """
    def __init__(self, api: WayfinderApi, storage: KeyValueStorage,
                 connectivity: Optional[ConnectivityMonitor] = None,
                 scan_target: Optional[ScanTarget] = "start"):
        self.api = api
        self.storage = storage
        self.connectivity = connectivity or ConnectivityMonitor()
        self.cache = LocationCache(storage)
        self.session = NavigationSession(api, self.cache, self.connectivity)
        self.search = SearchIndex(api, self.cache, self.connectivity)
        self.scanner = ScanResolver(api, self.cache, self.connectivity, session=self.session, target=scan_target)
        self.offline_sync = OfflineSyncManager(api, self.cache)

    @classmethod
    def create(cls, api: Optional[WayfinderApi] = None, cache_dir: Optional[str] = None, **kwargs) -> "WayfinderContext":
        """Context backed by the HTTP client and the JSON file cache from settings."""
        if api is None:
            from wayfinder_api.client import HttpWayfinderApi
            api = HttpWayfinderApi()
        storage = JsonFileStorage(cache_dir or settings.CACHE_DIR)
        logger.info(f"Wayfinder context created (cache: {storage.cache_dir}).")
        return cls(api, storage, **kwargs)

    def reset(self) -> None:
        """Abandons the current navigation flow; cached data is kept."""
        self.session.reset()
        self.search.clear_search()
        self.scanner.reset_scan()

    async def aclose(self) -> None:
        await self.search.close()
        await self.api.aclose()
        logger.info("Wayfinder context closed.")
