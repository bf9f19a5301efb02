# /run_offline_sync.py

import argparse
import asyncio
import sys

from dotenv import load_dotenv

load_dotenv()

from wayfinder_api.client import HttpWayfinderApi
from wayfinder_core.config import settings
from wayfinder_core.errors import OfflineSyncError
from wayfinder_core.location_cache import LocationCache
from wayfinder_core.models import SyncProgress
from wayfinder_core.offline_sync import OfflineSyncManager
from wayfinder_core.storage import JsonFileStorage


def print_progress(progress: SyncProgress):
    if progress.stage == "floor":
        print(f"  - [{progress.building_id}] floor {progress.completed_floors + 1}/{progress.total_floors}")
    else:
        print(f"  - [{progress.building_id}] {progress.stage}")


async def sync_buildings(building_ids, cache_dir: str, clear: bool = False) -> int:
    """
    Downloads each building for offline use. Returns the number of failures.
    """
    api = HttpWayfinderApi()
    cache = LocationCache(JsonFileStorage(cache_dir))
    manager = OfflineSyncManager(api, cache, on_progress=print_progress)
    failures = 0
    try:
        if clear:
            await manager.clear_cache()
        for building_id in building_ids:
            print(f"\n--- Downloading building {building_id} ---")
            try:
                snapshot = await manager.download_building_data(building_id)
            except OfflineSyncError as e:
                print(f"Error: {e}")
                failures += 1
                continue
            print(f"Saved '{snapshot.building.name}': {len(snapshot.floors)} floors, "
                  f"{len(snapshot.nodes)} nodes, {len(snapshot.edges)} edges.")
    finally:
        await api.aclose()
    return failures


def main():
    """
    Pre-downloads buildings into the local cache so they can be browsed offline.
    """
    parser = argparse.ArgumentParser(description="Download Wayfinder buildings for offline use.")
    parser.add_argument("building_ids", nargs="+", metavar="BUILDING_ID")
    parser.add_argument("--cache-dir", default=settings.CACHE_DIR, help="Directory of the JSON cache.")
    parser.add_argument("--clear", action="store_true", help="Remove every cached building first.")
    args = parser.parse_args()

    failures = asyncio.run(sync_buildings(args.building_ids, args.cache_dir, clear=args.clear))
    sys.exit(1 if failures else 0)


if __name__ == '__main__':
    main()
