# /wayfinder_core/errors.py

from typing import Optional


class WayfinderError(Exception):
    """Base class for every expected failure raised by this package."""


class ApiError(WayfinderError):
    """The remote API rejected a request or answered with an unsuccessful envelope."""
    def __init__(self, message: str, status_code: int = 0, code: Optional[str] = None):
        super().__init__(message)
        self.message = message
        self.status_code = status_code
        self.code = code


class NotFoundError(ApiError):
    """The request reached the server but the resource does not exist (unknown QR code, node, building)."""
    def __init__(self, message: str, code: Optional[str] = None):
        super().__init__(message, status_code=404, code=code)


class TransportError(ApiError):
    """The request never got a usable answer: network unreachable, DNS, timeout."""
    def __init__(self, message: str):
        super().__init__(message, status_code=0, code="NETWORK_ERROR")


class StorageError(WayfinderError):
    """A durable storage write failed."""


class OfflineSyncError(WayfinderError):
    """Downloading a building for offline use failed; nothing was persisted."""
    def __init__(self, building_id: str, reason: str):
        super().__init__(f"Offline download of building '{building_id}' failed: {reason}")
        self.building_id = building_id
        self.reason = reason
