# /wayfinder_core/remote.py

from abc import ABC, abstractmethod
from typing import List, Optional

from wayfinder_core.models import Building, Edge, Floor, Node, NodeType, RouteResult


class WayfinderApi(ABC):
    """
    An abstract base class defining the remote Wayfinder REST API as seen by
    the client core. Implementations raise NotFoundError, TransportError or
    ApiError; a route without a path is a RouteResult with path_found=False.
    """
    @abstractmethod
    async def get_buildings(self, page: int = 1, page_size: int = 10) -> List[Building]:
        pass

    @abstractmethod
    async def get_building(self, building_id: str) -> Building:
        pass

    @abstractmethod
    async def get_floor(self, floor_id: str) -> Floor:
        pass

    @abstractmethod
    async def get_floors_by_building(self, building_id: str) -> List[Floor]:
        pass

    @abstractmethod
    async def get_nodes(self) -> List[Node]:
        pass

    @abstractmethod
    async def get_nodes_by_floor(self, floor_id: str) -> List[Node]:
        pass

    @abstractmethod
    async def get_node_by_qr_code(self, qr_code: str) -> Node:
        pass

    @abstractmethod
    async def search_nodes(self, term: str, building_id: Optional[str] = None,
                           floor_id: Optional[str] = None, max_results: int = 50) -> List[Node]:
        pass

    @abstractmethod
    async def search_nodes_by_type(self, node_type: NodeType, building_id: Optional[str] = None,
                                   floor_id: Optional[str] = None) -> List[Node]:
        pass

    @abstractmethod
    async def get_edges_by_floor(self, floor_id: str) -> List[Edge]:
        pass

    @abstractmethod
    async def calculate_route(self, start_node_id: str, end_node_id: str,
                              require_accessible: bool = False) -> RouteResult:
        pass

    @abstractmethod
    async def get_floor_plan_image(self, url: str) -> bytes:
        pass

    @abstractmethod
    async def aclose(self) -> None:
        pass
