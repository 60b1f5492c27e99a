"""Unit tests for EventDispatcher.

Tests verify:
- Events go to the handler for their type, or to the channel, exactly once
- Unknown opcodes and malformed frames are dropped
- Transient read errors do not stop the loop
- A disconnected device ends the loop and is reported to the caller
- The channel drops its oldest event when full
"""

import threading
import time
import unittest
from unittest.mock import Mock, patch

from meshdongle.dongle.dispatcher import EventDispatcher
from meshdongle.errors import DeviceDisconnectedError, MeshDongleError, TransientTransportError
from meshdongle.models import NodeAdded, NodeEvent, SetupStatus, StateReport

from .fakes import FakeTransport


class TestPollOnce(unittest.TestCase):
    """Single iterations, run in the test thread."""

    def setUp(self):
        self.transport = FakeTransport()
        self.dispatcher = EventDispatcher(self.transport)

    def test_event_goes_to_its_handler_only(self):
        node_event = Mock()
        node_added = Mock()
        self.dispatcher.on(NodeEvent, node_event)
        self.dispatcher.on(NodeAdded, node_added)
        self.transport.feed(bytes([0x20, 0x0A, 0x00]))

        event = self.dispatcher.poll_once()

        self.assertEqual(event, NodeEvent(addr=10))
        node_event.assert_called_once_with(NodeEvent(addr=10))
        node_added.assert_not_called()
        self.assertIsNone(self.dispatcher.get_event(timeout=0))

    def test_unhandled_event_goes_to_channel(self):
        self.transport.feed(b"\x13\x02\x00\x01")

        self.dispatcher.poll_once()

        self.assertEqual(self.dispatcher.get_event(timeout=0), StateReport(addr=2, state=1))

    def test_unknown_opcode_dropped(self):
        handler = Mock()
        self.dispatcher.on(NodeEvent, handler)
        self.transport.feed(b"\xee\x0a\x00")

        self.assertIsNone(self.dispatcher.poll_once())

        handler.assert_not_called()
        self.assertIsNone(self.dispatcher.get_event(timeout=0))

    def test_malformed_frame_dropped(self):
        self.transport.feed(b"\x06\x01")
        self.assertIsNone(self.dispatcher.poll_once())
        self.assertIsNone(self.dispatcher.get_event(timeout=0))

    def test_read_timeout(self):
        self.assertIsNone(self.dispatcher.poll_once())

    def test_transient_error_is_swallowed(self):
        self.transport.feed(TransientTransportError("overflow"), b"\x01")

        self.assertIsNone(self.dispatcher.poll_once())
        self.assertEqual(self.dispatcher.poll_once(), SetupStatus())

    def test_disconnect_propagates(self):
        self.transport.feed(DeviceDisconnectedError("gone"))
        with self.assertRaises(DeviceDisconnectedError):
            self.dispatcher.poll_once()

    def test_handler_exception_is_logged(self):
        self.dispatcher.on(SetupStatus, Mock(side_effect=RuntimeError("boom")))
        self.transport.feed(b"\x01")

        with patch('meshdongle.dongle.dispatcher.logger') as mock_logger:
            event = self.dispatcher.poll_once()

        self.assertEqual(event, SetupStatus())
        mock_logger.exception.assert_called_once()
        self.assertIsNone(self.dispatcher.get_event(timeout=0))

    def test_unregister(self):
        handler = Mock()
        unregister = self.dispatcher.on(NodeAdded, handler)
        unregister()
        self.transport.feed(b"\x06\x02\x00")

        self.dispatcher.poll_once()

        handler.assert_not_called()
        self.assertEqual(self.dispatcher.get_event(timeout=0), NodeAdded(addr=2))

    def test_channel_drops_oldest(self):
        dispatcher = EventDispatcher(self.transport, channel_size=2)
        self.transport.feed(b"\x06\x01\x00", b"\x06\x02\x00", b"\x06\x03\x00")

        for _ in range(3):
            dispatcher.poll_once()

        self.assertEqual(dispatcher.dropped_events, 1)
        self.assertEqual(list(dispatcher.events(timeout=0)), [NodeAdded(addr=2), NodeAdded(addr=3)])


class TestDispatcherThread(unittest.TestCase):

    def setUp(self):
        self.transport = FakeTransport()
        self.dispatcher = EventDispatcher(self.transport, read_timeout_ms=10)

    def tearDown(self):
        self.dispatcher.stop()

    def test_listen_and_stop(self):
        handled = []
        self.dispatcher.listen({NodeEvent: handled.append})
        self.assertTrue(self.dispatcher.is_running)

        self.transport.feed(b"\x20\x0a\x00", b"\x06\x07\x00")
        event = self.dispatcher.get_event(timeout=2.0)

        self.assertEqual(event, NodeAdded(addr=7))
        self.assertEqual(handled, [NodeEvent(addr=10)])

        self.dispatcher.stop()
        self.assertFalse(self.dispatcher.is_running)
        self.assertTrue(self.dispatcher.wait(timeout=1.0))
        self.assertIsNone(self.dispatcher.error)

    def test_events_end_after_stop(self):
        self.dispatcher.start()
        self.dispatcher.stop()
        self.assertEqual(list(self.dispatcher.events(timeout=1.0)), [])

    def test_disconnect_reported_through_wait(self):
        self.transport.feed(DeviceDisconnectedError("gone"))
        self.dispatcher.start()

        with self.assertRaises(DeviceDisconnectedError):
            self.dispatcher.wait(timeout=2.0)
        self.assertIsInstance(self.dispatcher.error, DeviceDisconnectedError)
        self.assertFalse(self.dispatcher.is_running)

    def test_disconnect_reported_through_events(self):
        self.transport.feed(b"\x01", DeviceDisconnectedError("gone"))
        self.dispatcher.start()

        received = []
        with self.assertRaises(DeviceDisconnectedError):
            for event in self.dispatcher.events(timeout=2.0):
                received.append(event)
        self.assertEqual(received, [SetupStatus()])

    def test_transient_errors_keep_loop_alive(self):
        self.transport.feed(TransientTransportError("a"), TransientTransportError("b"), b"\x01")
        self.dispatcher.start()

        self.assertEqual(self.dispatcher.get_event(timeout=2.0), SetupStatus())
        self.assertTrue(self.dispatcher.is_running)

    def test_wait_timeout_while_running(self):
        self.dispatcher.start()
        start = time.monotonic()
        self.assertFalse(self.dispatcher.wait(timeout=0.05))
        self.assertLess(time.monotonic() - start, 1.0)

    def test_restart_after_stop_delivers_events(self):
        self.dispatcher.start()
        self.dispatcher.stop()
        self.dispatcher.start()
        self.transport.feed(b"\x06\x07\x00")

        self.assertEqual(self.dispatcher.get_event(timeout=2.0), NodeAdded(addr=7))
        self.assertTrue(self.dispatcher.is_running)

    def test_restart_keeps_queued_events(self):
        self.dispatcher.start()
        self.transport.feed(b"\x06\x01\x00")
        deadline = time.monotonic() + 2.0
        while self.dispatcher._channel.empty() and time.monotonic() < deadline:
            time.sleep(0.005)
        self.dispatcher.stop()
        self.dispatcher.start()

        self.assertEqual(self.dispatcher.get_event(timeout=2.0), NodeAdded(addr=1))

    def test_run_after_stop_reads_frames(self):
        self.dispatcher.start()
        self.dispatcher.stop()

        handled = threading.Event()
        self.dispatcher.on(NodeEvent, lambda e: handled.set())
        self.transport.feed(b"\x20\x0a\x00")
        runner = threading.Thread(target=self.dispatcher.run, daemon=True)
        runner.start()

        self.assertTrue(handled.wait(timeout=2.0))
        self.assertTrue(runner.is_alive())
        self.dispatcher.stop()
        runner.join(timeout=2.0)
        self.assertFalse(runner.is_alive())

    def test_stop_timeout_does_not_allow_second_loop(self):
        release = threading.Event()
        entered = threading.Event()

        def slow_handler(event):
            entered.set()
            release.wait(timeout=5.0)

        self.dispatcher.on(SetupStatus, slow_handler)
        self.dispatcher.start()
        self.transport.feed(b"\x01")
        self.assertTrue(entered.wait(timeout=2.0))

        self.dispatcher.stop(timeout=0.05)
        self.assertTrue(self.dispatcher.is_running)
        with self.assertRaises(MeshDongleError):
            self.dispatcher.start()
        self.assertEqual(
            [t.name for t in threading.enumerate()].count("MeshEventDispatcher"), 1)

        release.set()
        self.assertTrue(self.dispatcher.wait(timeout=2.0))
        self.assertFalse(self.dispatcher.is_running)

        self.dispatcher.start()
        self.transport.feed(b"\x06\x02\x00")
        self.assertEqual(self.dispatcher.get_event(timeout=2.0), NodeAdded(addr=2))


if __name__ == '__main__':
    unittest.main()
