# /wayfinder_core/connectivity.py

from typing import Callable, List, Optional

import httpx

from wayfinder_core.config import settings
from wayfinder_core.logger import get_logger

logger = get_logger(__name__)

Listener = Callable[[bool], None]


class ConnectivityMonitor:
    """
    Holds the current online/offline flag. The platform's reachability signal
    feeds set_online(); probe() is an optional active check against the API.
    """
    def __init__(self, online: bool = True, base_url: Optional[str] = None,
                 probe_timeout: float = settings.CONNECTIVITY_PROBE_TIMEOUT_SECONDS,
                 transport: Optional[httpx.AsyncBaseTransport] = None):
        self._online = online
        self._listeners: List[Listener] = []
        self.base_url = base_url or settings.API_BASE_URL
        self.probe_timeout = probe_timeout
        self._transport = transport

    @property
    def is_online(self) -> bool:
        return self._online

    def set_online(self, online: bool) -> None:
        if online == self._online:
            return
        self._online = online
        logger.info(f"Connectivity changed: {'online' if online else 'offline'}.")
        for listener in list(self._listeners):
            try:
                listener(online)
            except Exception:
                logger.error("Connectivity listener raised an exception.", exc_info=True)

    def subscribe(self, listener: Listener) -> Callable[[], None]:
        """Registers a change listener and returns the matching unsubscribe callable."""
        self._listeners.append(listener)
        return lambda: self.unsubscribe(listener)

    def unsubscribe(self, listener: Listener) -> None:
        if listener in self._listeners:
            self._listeners.remove(listener)

    async def probe(self) -> bool:
        """Sends a HEAD request to the API base URL and updates the flag from the outcome."""
        try:
            async with httpx.AsyncClient(timeout=self.probe_timeout, transport=self._transport) as client:
                await client.head(self.base_url)
            reachable = True
        except httpx.HTTPError as e:
            logger.warning(f"Reachability probe to {self.base_url} failed: {e}")
            reachable = False
        self.set_online(reachable)
        return reachable
