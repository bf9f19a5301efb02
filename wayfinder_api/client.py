# /wayfinder_api/client.py

from typing import Any, Dict, List, Optional

import httpx
from pydantic import ValidationError

from wayfinder_core.config import settings
from wayfinder_core.errors import ApiError, NotFoundError, TransportError
from wayfinder_core.logger import get_logger
from wayfinder_core.models import Building, Edge, Floor, Node, NodeType, RouteResult
from wayfinder_core.remote import WayfinderApi

logger = get_logger(__name__)

DEFAULT_ERROR_MESSAGES = {
    400: "Invalid request.",
    401: "Unauthorized.",
    403: "You are not allowed to perform this action.",
    404: "Resource not found.",
    500: "Server error. Please try again later.",
}
NETWORK_ERROR_MESSAGE = "Connection error. Check your internet connection."


class HttpWayfinderApi(WayfinderApi):
    """
    Concrete implementation of the WayfinderApi interface over httpx.
    Every endpoint answers with a {isSuccess, data, errorMessage} envelope.
    """
    def __init__(self, base_url: Optional[str] = None, timeout: Optional[float] = None,
                 accept_language: Optional[str] = None, transport: Optional[httpx.AsyncBaseTransport] = None):
        self._client = httpx.AsyncClient(
            base_url=base_url or settings.API_BASE_URL,
            timeout=timeout if timeout is not None else settings.API_TIMEOUT_SECONDS,
            headers={
                "Accept": "application/json",
                "Accept-Language": accept_language or settings.ACCEPT_LANGUAGE,
            },
            transport=transport,
        )

    # --- Transport helpers ---

    async def _send(self, method: str, path: str, params: Optional[Dict[str, Any]] = None) -> httpx.Response:
        query = {k: v for k, v in (params or {}).items() if v is not None}
        logger.info(f"[API] {method} {path}", extra={"params": query})
        try:
            return await self._client.request(method, path, params=query)
        except httpx.TimeoutException as e:
            logger.warning(f"[API] {method} {path} timed out: {e}")
            raise TransportError(f"Request to {path} timed out.") from e
        except httpx.RequestError as e:
            logger.warning(f"[API] {method} {path} failed: {e}")
            raise TransportError(NETWORK_ERROR_MESSAGE) from e

    @staticmethod
    def _payload(response: httpx.Response) -> Any:
        try:
            return response.json()
        except ValueError:
            return None

    @staticmethod
    def _error_message(payload: Any, fallback: str) -> str:
        if isinstance(payload, dict):
            message = payload.get("errorMessage") or payload.get("message")
            if message:
                return message
            errors = payload.get("errors")
            if isinstance(errors, list) and errors:
                return "; ".join(str(e) for e in errors)
        return fallback

    def _check_status(self, response: httpx.Response, payload: Any) -> None:
        if not response.is_error:
            return
        status = response.status_code
        message = self._error_message(payload, DEFAULT_ERROR_MESSAGES.get(status, "An error occurred."))
        code = payload.get("code") if isinstance(payload, dict) else None
        logger.error(f"[API Error] {status}: {message}")
        if status == 404:
            raise NotFoundError(message, code=code)
        raise ApiError(message, status_code=status, code=code)

    def _unwrap(self, payload: Any, failure_message: str, missing_is_not_found: bool = False) -> Any:
        if isinstance(payload, dict) and "isSuccess" in payload:
            if payload.get("isSuccess") and payload.get("data") is not None:
                return payload["data"]
            message = self._error_message(payload, failure_message)
            if missing_is_not_found:
                raise NotFoundError(message)
            raise ApiError(message, status_code=200)
        if payload is None:
            raise ApiError(failure_message, status_code=200)
        return payload

    async def _get(self, path: str, failure_message: str, params: Optional[Dict[str, Any]] = None,
                   missing_is_not_found: bool = False) -> Any:
        response = await self._send("GET", path, params)
        payload = self._payload(response)
        self._check_status(response, payload)
        return self._unwrap(payload, failure_message, missing_is_not_found)

    @staticmethod
    def _parse(model, data: Any):
        try:
            return model.model_validate(data)
        except ValidationError as e:
            raise ApiError(f"Unexpected {model.__name__} payload from server: {e.error_count()} invalid field(s).", status_code=200) from e

    def _parse_list(self, model, data: Any) -> List:
        if isinstance(data, dict) and "items" in data:
            data = data["items"]
        return [self._parse(model, item) for item in (data or [])]

    # --- Buildings / floors ---

    async def get_buildings(self, page: int = 1, page_size: int = 10) -> List[Building]:
        data = await self._get("/api/buildings", "Failed to fetch buildings",
                               params={"pageNumber": page, "pageSize": page_size})
        return self._parse_list(Building, data)

    async def get_building(self, building_id: str) -> Building:
        data = await self._get(f"/api/buildings/{building_id}", "Building not found", missing_is_not_found=True)
        return self._parse(Building, data)

    async def get_floor(self, floor_id: str) -> Floor:
        data = await self._get(f"/api/floors/{floor_id}", "Floor not found", missing_is_not_found=True)
        return self._parse(Floor, data)

    async def get_floors_by_building(self, building_id: str) -> List[Floor]:
        data = await self._get(f"/api/floors/by-building/{building_id}", "Failed to fetch floors")
        return self._parse_list(Floor, data)

    # --- Nodes / edges ---

    async def get_nodes(self) -> List[Node]:
        data = await self._get("/api/nodes", "Failed to fetch nodes")
        return self._parse_list(Node, data)

    async def get_nodes_by_floor(self, floor_id: str) -> List[Node]:
        data = await self._get(f"/api/nodes/by-floor/{floor_id}", "Failed to fetch nodes")
        return self._parse_list(Node, data)

    async def get_node_by_qr_code(self, qr_code: str) -> Node:
        data = await self._get("/api/nodes/scan-qr", "QR code not recognized",
                               params={"qrCode": qr_code}, missing_is_not_found=True)
        return self._parse(Node, data)

    async def search_nodes(self, term: str, building_id: Optional[str] = None,
                           floor_id: Optional[str] = None, max_results: int = 50) -> List[Node]:
        data = await self._get("/api/search/nodes", "Search failed", params={
            "searchTerm": term,
            "buildingId": building_id,
            "floorId": floor_id,
            "maxResults": max_results,
        })
        return self._parse_list(Node, data)

    async def search_nodes_by_type(self, node_type: NodeType, building_id: Optional[str] = None,
                                   floor_id: Optional[str] = None) -> List[Node]:
        data = await self._get("/api/search/nodes/by-type", "Search failed", params={
            "nodeType": NodeType.parse(node_type).value,
            "buildingId": building_id,
            "floorId": floor_id,
        })
        return self._parse_list(Node, data)

    async def get_edges_by_floor(self, floor_id: str) -> List[Edge]:
        data = await self._get(f"/api/edges/by-floor/{floor_id}", "Failed to fetch edges")
        return self._parse_list(Edge, data)

    # --- Routes ---

    async def calculate_route(self, start_node_id: str, end_node_id: str,
                              require_accessible: bool = False) -> RouteResult:
        response = await self._send("GET", "/api/routes/calculate", {
            "startNodeId": start_node_id,
            "endNodeId": end_node_id,
            "requireAccessible": require_accessible,
        })
        payload = self._payload(response)

        # A negative answer is a result, not a failure, even when sent with an error status.
        data = payload.get("data") if isinstance(payload, dict) else None
        if isinstance(data, dict) and data.get("pathFound") is False:
            return RouteResult(
                path_found=False,
                error_message=data.get("errorMessage") or payload.get("errorMessage") or "No route found",
            )

        self._check_status(response, payload)
        data = self._unwrap(payload, "Failed to calculate route")
        return self._parse(RouteResult, data)

    # --- Floor plans ---

    async def get_floor_plan_image(self, url: str) -> bytes:
        """Fetches a floor plan image; relative URLs resolve against the API base URL."""
        response = await self._send("GET", url)
        self._check_status(response, None)
        return response.content

    async def aclose(self) -> None:
        await self._client.aclose()
