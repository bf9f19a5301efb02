# /tests/test_models.py

import unittest
import sys
import os

# Add root directory to path to allow imports from 'wayfinder_core'
sys.path.append(os.path.abspath(os.path.join(os.path.dirname(__file__), '..')))

from pydantic import ValidationError

from wayfinder_core.models import (
    Building,
    Edge,
    EdgeType,
    Floor,
    LocationRecord,
    Node,
    NodeType,
    OfflineSnapshot,
    RouteResult,
)


class TestNodeType(unittest.TestCase):

    def test_parse_accepts_names_in_any_case(self):
        self.assertEqual(NodeType.parse("elevator"), NodeType.ELEVATOR)
        self.assertEqual(NodeType.parse("RESTROOM"), NodeType.RESTROOM)

    def test_parse_accepts_legacy_integer_codes(self):
        self.assertEqual(NodeType.parse(0), NodeType.ROOM)
        self.assertEqual(NodeType.parse("4"), NodeType.ENTRANCE)

    def test_unknown_values_become_other(self):
        self.assertEqual(NodeType.parse("Balcony"), NodeType.OTHER)
        self.assertEqual(NodeType.parse(42), NodeType.OTHER)
        self.assertEqual(NodeType.parse(None), NodeType.OTHER)


class TestWireModels(unittest.TestCase):

    def test_node_from_camel_case_payload(self):
        node = Node.model_validate({
            "id": "n1", "name": "Lab 101", "nodeType": "Room", "x": 10, "y": 20,
            "floorId": "f1", "isAccessible": False, "qrCode": "abc",
        })

        self.assertEqual(node.type, NodeType.ROOM)
        self.assertEqual(node.floor_id, "f1")
        self.assertFalse(node.is_accessible)
        self.assertEqual(node.qr_code, "abc")

    def test_node_is_frozen(self):
        node = Node(id="n1", name="Lab")
        with self.assertRaises(ValidationError):
            node.name = "Other"

    def test_edge_accepts_legacy_endpoint_names(self):
        edge = Edge.model_validate({"id": "e1", "nodeAId": "a", "nodeBId": "b", "weight": 3.5, "edgeType": "stairs"})

        self.assertEqual((edge.from_node_id, edge.to_node_id), ("a", "b"))
        self.assertEqual(edge.edge_type, EdgeType.STAIRS)

    def test_edge_rejects_negative_weight(self):
        with self.assertRaises(ValidationError):
            Edge.model_validate({"fromNodeId": "a", "toNodeId": "b", "weight": -1})

    def test_floor_accepts_floor_number(self):
        floor = Floor.model_validate({"id": "f1", "name": "Ground", "floorNumber": 2, "floorPlanImageUrl": "plan.png"})

        self.assertEqual(floor.level, 2)
        self.assertEqual(floor.floor_plan_url, "plan.png")

    def test_building_null_floors_become_empty(self):
        self.assertEqual(Building.model_validate({"id": "b1", "floors": None}).floors, [])


class TestRouteResult(unittest.TestCase):

    def test_minutes_derived_from_seconds(self):
        result = RouteResult.model_validate({
            "pathFound": True,
            "path": [{"nodeId": "a", "nodeName": "A", "instruction": "Start here"}, {"nodeId": "b"}],
            "totalDistance": 42,
            "estimatedTimeSeconds": 90,
        })

        self.assertEqual(len(result.path), 2)
        self.assertEqual(result.path[0].name, "A")
        self.assertEqual(result.estimated_time_minutes, 1.5)
        self.assertEqual(result.instructions, ["Start here"])

    def test_seconds_derived_from_minutes_and_path_nodes_alias(self):
        result = RouteResult.model_validate({
            "pathFound": True,
            "pathNodes": [{"id": "a"}, {"id": "m"}, {"id": "b"}],
            "estimatedTimeMinutes": 1,
        })

        self.assertEqual([step.node_id for step in result.path], ["a", "m", "b"])
        self.assertEqual(result.estimated_time_seconds, 60)

    def test_no_path_result(self):
        result = RouteResult.model_validate({"pathFound": False, "path": None, "errorMessage": "Unreachable"})

        self.assertFalse(result.path_found)
        self.assertEqual(result.path, [])
        self.assertEqual(result.error_message, "Unreachable")


class TestOfflineSnapshot(unittest.TestCase):

    def setUp(self):
        self.snapshot = OfflineSnapshot(
            building=Building(id="b1", name="Main"),
            floors=[Floor(id="f1", name="Ground"), Floor(id="f2", name="First")],
            nodes=[
                Node(id="n1", name="Lab", floor_id="f1", qr_code="AAA"),
                Node(id="n2", name="Office", floor_id="f2"),
            ],
        )

    def test_helpers(self):
        self.assertEqual([n.id for n in self.snapshot.nodes_on_floor("f2")], ["n2"])
        self.assertEqual(self.snapshot.floor_name("f1"), "Ground")
        self.assertIsNone(self.snapshot.floor_name("missing"))
        self.assertEqual(self.snapshot.find_node("n2").name, "Office")
        self.assertEqual(self.snapshot.find_node_by_qr_code("aaa").id, "n1")

    def test_json_round_trip_keeps_downloaded_at(self):
        restored = OfflineSnapshot.model_validate_json(self.snapshot.model_dump_json())

        self.assertEqual(restored.downloaded_at, self.snapshot.downloaded_at)
        self.assertEqual(restored.nodes, self.snapshot.nodes)

    def test_location_record_for_node(self):
        record = LocationRecord.for_node(self.snapshot.nodes[0], building=self.snapshot.building, floor_name="Ground")

        self.assertEqual(record.node_type, "Other")
        self.assertEqual(record.building_name, "Main")
        self.assertEqual(record.floor_id, "f1")


if __name__ == '__main__':
    unittest.main()
