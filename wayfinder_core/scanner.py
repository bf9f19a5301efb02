# /wayfinder_core/scanner.py

import re
from typing import TYPE_CHECKING, Literal, Optional

from wayfinder_core.connectivity import ConnectivityMonitor
from wayfinder_core.errors import ApiError, NotFoundError
from wayfinder_core.location_cache import LocationCache
from wayfinder_core.logger import get_logger
from wayfinder_core.models import Node
from wayfinder_core.remote import WayfinderApi

if TYPE_CHECKING:
    from wayfinder_core.navigation import NavigationSession

logger = get_logger(__name__)

# Location codes are printed as UUID v4 strings.
QR_CODE_PATTERN = re.compile(r'^[0-9a-f]{8}-[0-9a-f]{4}-4[0-9a-f]{3}-[89ab][0-9a-f]{3}-[0-9a-f]{12}$', re.IGNORECASE)

INVALID_QR_MESSAGE = "Invalid QR code format. Please scan a location code."
UNKNOWN_QR_MESSAGE = "QR code not recognized."
UNKNOWN_QR_OFFLINE_MESSAGE = "QR code not found in the buildings downloaded for offline use."
LOOKUP_FAILED_MESSAGE = "Could not look up the scanned code. Please try again."

ScanTarget = Literal["start", "end"]


def is_valid_qr_code(payload: str) -> bool:
    return bool(QR_CODE_PATTERN.match(payload.strip()))


class ScanResolver:
    """Resolves scanned QR payloads to nodes, optionally feeding the navigation session."""
    def __init__(self, api: WayfinderApi, cache: LocationCache, connectivity: ConnectivityMonitor,
                 session: Optional["NavigationSession"] = None, target: Optional[ScanTarget] = None):
        if target is not None and target not in ("start", "end"):
            raise ValueError(f"Unknown scan target: {target!r}")
        self.api = api
        self.cache = cache
        self.connectivity = connectivity
        self.session = session
        self.target = target

        self.scanned_node: Optional[Node] = None
        self.error: Optional[str] = None
        self.is_processing = False
        self.last_payload: Optional[str] = None
        self._generation = 0

    async def handle_scan(self, payload: str) -> None:
        if self.is_processing or payload == self.last_payload:
            return

        code = payload.strip()
        if not QR_CODE_PATTERN.match(code):
            logger.info("Rejected scanned payload with invalid format.")
            self.error = INVALID_QR_MESSAGE
            return

        self._generation += 1
        generation = self._generation
        self.is_processing = True
        self.error = None
        self.last_payload = payload

        node, error = await self._lookup(code)

        if generation != self._generation:
            logger.debug(f"Discarding stale scan result for '{code}'.")
            return

        self.is_processing = False
        if node is None:
            # Re-arm so the same code can be scanned again.
            self.last_payload = None
            self.error = error
            return

        self.scanned_node = node
        logger.info(f"Scanned location resolved to node '{node.name}' ({node.id}).")
        if self.session is not None and self.target == "start":
            self.session.set_start_node(node)
        elif self.session is not None and self.target == "end":
            self.session.set_end_node(node)

    async def _lookup(self, code: str):
        if not self.connectivity.is_online:
            node = await self.cache.find_node_by_qr_code(code)
            return node, None if node else UNKNOWN_QR_OFFLINE_MESSAGE
        try:
            return await self.api.get_node_by_qr_code(code), None
        except NotFoundError:
            logger.info(f"QR code '{code}' is not registered.")
            return None, UNKNOWN_QR_MESSAGE
        except ApiError as e:
            logger.warning(f"QR lookup for '{code}' failed: {e.message}")
            return None, LOOKUP_FAILED_MESSAGE

    def reset_scan(self) -> None:
        self._generation += 1
        self.scanned_node = None
        self.error = None
        self.is_processing = False
        self.last_payload = None
