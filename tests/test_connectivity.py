# /tests/test_connectivity.py

import unittest
from unittest.mock import MagicMock
import sys
import os

sys.path.append(os.path.abspath(os.path.join(os.path.dirname(__file__), '..')))

import httpx

from wayfinder_core.connectivity import ConnectivityMonitor


class TestConnectivityMonitor(unittest.TestCase):

    def test_notifies_only_on_change(self):
        monitor = ConnectivityMonitor(online=True)
        listener = MagicMock()
        monitor.subscribe(listener)

        monitor.set_online(True)
        monitor.set_online(False)
        monitor.set_online(False)
        monitor.set_online(True)

        self.assertEqual([c.args for c in listener.call_args_list], [(False,), (True,)])
        self.assertTrue(monitor.is_online)

    def test_unsubscribe_callable_stops_notifications(self):
        monitor = ConnectivityMonitor()
        listener = MagicMock()
        unsubscribe = monitor.subscribe(listener)

        unsubscribe()
        monitor.set_online(False)

        listener.assert_not_called()

    def test_failing_listener_does_not_block_others(self):
        monitor = ConnectivityMonitor()
        monitor.subscribe(MagicMock(side_effect=RuntimeError("boom")))
        healthy = MagicMock()
        monitor.subscribe(healthy)

        monitor.set_online(False)

        healthy.assert_called_once_with(False)
        self.assertFalse(monitor.is_online)


class TestConnectivityProbe(unittest.IsolatedAsyncioTestCase):

    async def test_probe_success_marks_online(self):
        requests = []

        def handler(request: httpx.Request):
            requests.append(request)
            return httpx.Response(200)

        monitor = ConnectivityMonitor(online=False, base_url="http://wayfinder.test",
                                      transport=httpx.MockTransport(handler))

        self.assertTrue(await monitor.probe())
        self.assertTrue(monitor.is_online)
        self.assertEqual(requests[0].method, "HEAD")

    async def test_probe_connection_error_marks_offline(self):
        def handler(request: httpx.Request):
            raise httpx.ConnectError("unreachable", request=request)

        monitor = ConnectivityMonitor(online=True, base_url="http://wayfinder.test",
                                      transport=httpx.MockTransport(handler))

        self.assertFalse(await monitor.probe())
        self.assertFalse(monitor.is_online)


if __name__ == '__main__':
    unittest.main()
