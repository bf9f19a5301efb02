# /wayfinder_core/models.py

from datetime import datetime, timezone
from enum import Enum
from typing import Any, List, Literal, Optional
from pydantic import AliasChoices, BaseModel, ConfigDict, Field, field_validator, model_validator
from pydantic.alias_generators import to_camel

# This file holds all the shared Pydantic data structures.
# Wire names are camelCase (the API's JSON); attributes are snake_case.


def utcnow() -> datetime:
    return datetime.now(timezone.utc)


class NodeType(str, Enum):
    ROOM = "Room"
    CORRIDOR = "Corridor"
    ELEVATOR = "Elevator"
    STAIRS = "Stairs"
    RESTROOM = "Restroom"
    ENTRANCE = "Entrance"
    EXIT = "Exit"
    OFFICE = "Office"
    CAFETERIA = "Cafeteria"
    PARKING = "Parking"
    OTHER = "Other"

    @classmethod
    def parse(cls, value: Any) -> "NodeType":
        """Accepts a member, a name in any case, or the server's legacy integer code."""
        if isinstance(value, cls):
            return value
        if isinstance(value, bool):
            return cls.OTHER
        if isinstance(value, int):
            return _LEGACY_NODE_TYPE_CODES.get(value, cls.OTHER)
        if isinstance(value, str):
            text = value.strip()
            if text.isdigit():
                return cls.parse(int(text))
            for member in cls:
                if member.value.lower() == text.lower():
                    return member
        return cls.OTHER


_LEGACY_NODE_TYPE_CODES = {
    0: NodeType.ROOM,
    1: NodeType.CORRIDOR,
    2: NodeType.ELEVATOR,
    3: NodeType.STAIRS,
    4: NodeType.ENTRANCE,
    5: NodeType.RESTROOM,
}


class EdgeType(str, Enum):
    WALKING = "Walking"
    STAIRS = "Stairs"
    ELEVATOR = "Elevator"
    TRANSITION = "Transition"


class ApiModel(BaseModel):
    """Immutable value received from the server."""
    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True, frozen=True, extra='ignore')


class Node(ApiModel):
    id: str = Field(description="Identity of the node.")
    name: str = Field("", description="Display name; the server may omit it.")
    type: NodeType = Field(NodeType.OTHER, validation_alias=AliasChoices("type", "nodeType"))
    x: float = 0.0
    y: float = 0.0
    floor_id: str = ""
    is_accessible: bool = True
    qr_code: Optional[str] = None
    description: Optional[str] = None

    @field_validator("type", mode="before")
    @classmethod
    def _parse_type(cls, value):
        return NodeType.parse(value)

    @field_validator("name", mode="before")
    @classmethod
    def _default_name(cls, value):
        return value or ""


class Edge(ApiModel):
    id: str = ""
    from_node_id: str = Field(validation_alias=AliasChoices("fromNodeId", "nodeAId"))
    to_node_id: str = Field(validation_alias=AliasChoices("toNodeId", "nodeBId"))
    weight: float = Field(0.0, ge=0)
    is_accessible: bool = True
    edge_type: Optional[EdgeType] = Field(None, description="Display only; not used for any decision here.")

    @field_validator("edge_type", mode="before")
    @classmethod
    def _parse_edge_type(cls, value):
        if value is None or isinstance(value, EdgeType):
            return value
        for member in EdgeType:
            if str(value).lower() == member.value.lower():
                return member
        return None


class Floor(ApiModel):
    id: str
    name: str = ""
    level: int = Field(0, validation_alias=AliasChoices("level", "floorNumber"))
    building_id: str = ""
    floor_plan_url: Optional[str] = Field(None, validation_alias=AliasChoices("floorPlanUrl", "floorPlanImageUrl"))
    nodes: Optional[List[Node]] = None
    edges: Optional[List[Edge]] = None


class Building(ApiModel):
    id: str
    name: str = ""
    address: Optional[str] = None
    description: Optional[str] = None
    latitude: Optional[float] = None
    longitude: Optional[float] = None
    image_url: Optional[str] = None
    floors: List[Floor] = Field(default_factory=list)

    @field_validator("floors", mode="before")
    @classmethod
    def _default_floors(cls, value):
        return value or []


class RouteStep(ApiModel):
    """One entry of a calculated path, with its turn-by-turn instruction."""
    node_id: str = Field(validation_alias=AliasChoices("nodeId", "id"))
    name: str = Field("", validation_alias=AliasChoices("name", "nodeName"))
    node_type: NodeType = Field(NodeType.OTHER, validation_alias=AliasChoices("nodeType", "type"))
    x: float = 0.0
    y: float = 0.0
    floor_id: str = ""
    floor_name: str = ""
    instruction: str = ""
    distance_from_previous: float = 0.0

    @field_validator("node_type", mode="before")
    @classmethod
    def _parse_type(cls, value):
        return NodeType.parse(value)

    @field_validator("name", "floor_name", "instruction", mode="before")
    @classmethod
    def _default_text(cls, value):
        return value or ""


class RouteResult(ApiModel):
    path_found: bool = False
    path: List[RouteStep] = Field(default_factory=list, validation_alias=AliasChoices("path", "pathNodes"))
    path_edges: Optional[List[Edge]] = None
    total_distance: float = 0.0
    estimated_time_seconds: float = 0.0
    estimated_time_minutes: float = 0.0
    error_message: Optional[str] = None

    @model_validator(mode="before")
    @classmethod
    def _derive_estimates(cls, data):
        if not isinstance(data, dict):
            return data
        data = dict(data)
        if data.get("path", "missing") is None:
            data["path"] = []
        if data.get("pathNodes", "missing") is None:
            data["pathNodes"] = []
        seconds = _first_present(data, "estimatedTimeSeconds", "estimated_time_seconds")
        minutes = _first_present(data, "estimatedTimeMinutes", "estimated_time_minutes")
        # The server answers in seconds; older clients expected minutes.
        if minutes is None and seconds is not None:
            data["estimated_time_minutes"] = float(seconds) / 60
        elif seconds is None and minutes is not None:
            data["estimated_time_seconds"] = float(minutes) * 60
        return data

    @property
    def instructions(self) -> List[str]:
        return [step.instruction for step in self.path if step.instruction.strip()]


def _first_present(data: dict, *keys: str):
    for key in keys:
        if data.get(key) is not None:
            return data[key]
    return None


class LocationRecord(BaseModel):
    """Denormalized node reference kept for display without a join, even offline."""
    model_config = ConfigDict(frozen=True, extra='ignore')

    node_id: str
    node_name: str
    node_type: str
    building_id: Optional[str] = None
    building_name: Optional[str] = None
    floor_id: Optional[str] = None
    floor_name: Optional[str] = None

    @classmethod
    def for_node(cls, node: Node, building: Optional[Building] = None, floor_name: Optional[str] = None, **extra):
        return cls(
            node_id=node.id,
            node_name=node.name,
            node_type=node.type.value,
            building_id=building.id if building else None,
            building_name=building.name if building else None,
            floor_id=node.floor_id or None,
            floor_name=floor_name,
            **extra,
        )


class FavoriteDestination(LocationRecord):
    added_at: datetime = Field(default_factory=utcnow)


class RecentSearch(LocationRecord):
    searched_at: datetime = Field(default_factory=utcnow)


class OfflineSnapshot(BaseModel):
    """Everything needed to browse one building without connectivity."""
    model_config = ConfigDict(frozen=True)

    building: Building
    floors: List[Floor] = Field(default_factory=list)
    nodes: List[Node] = Field(default_factory=list)
    edges: List[Edge] = Field(default_factory=list)
    downloaded_at: datetime = Field(default_factory=utcnow)

    def nodes_on_floor(self, floor_id: str) -> List[Node]:
        return [node for node in self.nodes if node.floor_id == floor_id]

    def floor_name(self, floor_id: str) -> Optional[str]:
        return next((floor.name for floor in self.floors if floor.id == floor_id), None)

    def find_node(self, node_id: str) -> Optional[Node]:
        return next((node for node in self.nodes if node.id == node_id), None)

    def find_node_by_qr_code(self, qr_code: str) -> Optional[Node]:
        wanted = qr_code.lower()
        return next((node for node in self.nodes if node.qr_code and node.qr_code.lower() == wanted), None)


class SyncProgress(BaseModel):
    building_id: str
    stage: Literal["building", "floors", "floor", "saving", "done"]
    completed_floors: int = 0
    total_floors: int = 0


class SessionStatus(str, Enum):
    IDLE = "Idle"
    CALCULATING = "Calculating"
    ROUTE_READY = "RouteReady"
    ROUTE_FAILED = "RouteFailed"


class NavigationSessionState(BaseModel):
    """Mutable state of one wayfinding attempt. Only NavigationSession writes it."""
    start_node: Optional[Node] = None
    end_node: Optional[Node] = None
    current_building_id: Optional[str] = None
    current_floor_id: Optional[str] = None
    require_accessible: bool = False
    route: Optional[RouteResult] = None
    current_step_index: int = 0
    is_calculating: bool = False
    error: Optional[str] = None
