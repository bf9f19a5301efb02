# /tests/test_storage.py

import unittest
import tempfile
import sys
import os

sys.path.append(os.path.abspath(os.path.join(os.path.dirname(__file__), '..')))

from wayfinder_core.storage import InMemoryStorage, JsonFileStorage


class TestJsonFileStorage(unittest.IsolatedAsyncioTestCase):

    def setUp(self):
        self.temp_dir = tempfile.TemporaryDirectory()
        self.storage = JsonFileStorage(self.temp_dir.name)

    def tearDown(self):
        self.temp_dir.cleanup()

    async def test_round_trip_and_missing_key(self):
        await self.storage.set_item("@wayfinder:favorites", '[{"nodeId": "n1"}]')

        self.assertEqual(await self.storage.get_item("@wayfinder:favorites"), '[{"nodeId": "n1"}]')
        self.assertIsNone(await self.storage.get_item("@wayfinder:missing"))

    async def test_overwrite_replaces_whole_value_without_leftovers(self):
        await self.storage.set_item("key", "first value that is long")
        await self.storage.set_item("key", "second")

        self.assertEqual(await self.storage.get_item("key"), "second")
        self.assertEqual([name for name in os.listdir(self.temp_dir.name) if name.startswith(".tmp-")], [])

    async def test_remove_is_idempotent(self):
        await self.storage.set_item("key", "value")

        await self.storage.remove_item("key")
        await self.storage.remove_item("key")

        self.assertIsNone(await self.storage.get_item("key"))

    async def test_keys_map_to_safe_file_names(self):
        await self.storage.set_item("@wayfinder:offline:b/1", "{}")

        self.assertEqual(os.listdir(self.temp_dir.name), ["wayfinder_offline_b_1.json"])

    async def test_size_counts_every_value(self):
        await self.storage.set_item("a", "12345")
        await self.storage.set_item("b", "678")

        self.assertEqual(await self.storage.size_bytes(), 8)

    async def test_undecodable_file_raises_unicode_error(self):
        with open(os.path.join(self.temp_dir.name, "key.json"), 'wb') as f:
            f.write(b"\xff\xfe\x00garbage")

        with self.assertRaises(UnicodeDecodeError):
            await self.storage.get_item("key")


class TestInMemoryStorage(unittest.IsolatedAsyncioTestCase):

    async def test_initial_values_are_copied(self):
        initial = {"a": "1"}
        storage = InMemoryStorage(initial)

        await storage.set_item("b", "2")
        await storage.remove_item("a")

        self.assertEqual(initial, {"a": "1"})
        self.assertIsNone(await storage.get_item("a"))
        self.assertEqual(await storage.get_item("b"), "2")
        self.assertEqual(await storage.size_bytes(), 1)


if __name__ == '__main__':
    unittest.main()
