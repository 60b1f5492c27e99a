"""Unit tests for CommandIssuer.

Tests verify:
- Each command method writes the expected frame
- A failed write is retried once after the backoff
- WriteFailedError carries the frame and the last transport error
- Encoding errors surface before anything is written
"""

import unittest
from unittest.mock import Mock

from meshdongle.dongle.issuer import CommandIssuer
from meshdongle.dongle.retry import RetryPolicy
from meshdongle.errors import (
    FrameError,
    TransientTransportError,
    DeviceDisconnectedError,
    WriteFailedError,
)

from .fakes import FakeTransport


class IssuerTestCase(unittest.TestCase):

    def setUp(self):
        self.transport = FakeTransport()
        self.sleep = Mock()
        self.issuer = CommandIssuer(self.transport, retry_policy=RetryPolicy(sleep=self.sleep))


class TestCommandFrames(IssuerTestCase):

    def test_send_message(self):
        self.issuer.send_message(1, 0x000A, 0)
        self.assertEqual(self.transport.sent, [bytes([0x09, 0x01, 0x0A, 0x00, 0x00, 0x00])])

    def test_provision_accepts_bytearray(self):
        uuid = bytearray(range(16))
        self.issuer.provision(uuid)
        self.assertEqual(self.transport.sent, [b"\x05" + bytes(uuid)])

    def test_network_management(self):
        self.issuer.setup()
        self.issuer.add_key(0)
        self.issuer.configure_node(2, 0)
        self.issuer.configure_element(0xC000, 2, 3, 0)
        self.issuer.reset_node(2)
        self.issuer.reset()
        self.issuer.reboot()
        self.assertEqual(self.transport.sent, [
            b"\x00",
            b"\x02\x00\x00",
            b"\x07\x02\x00\x00\x00",
            b"\x14\x00\xc0\x02\x00\x03\x00\x00\x00",
            b"\x12\x02\x00",
            b"\x10",
            b"\x11",
        ])

    def test_scene_messages(self):
        self.issuer.send_recall_message(1, 2, 0)
        self.issuer.send_store_message(1, 2, 0)
        self.issuer.send_delete_message(1, 2, 0)
        self.issuer.send_bind_message(1, 2, 0)
        self.assertEqual([frame[0] for frame in self.transport.sent], [0x16, 0x17, 0x18, 0x19])
        for frame in self.transport.sent:
            self.assertEqual(frame[1:], b"\x01\x00\x02\x00\x00\x00")

    def test_out_of_range_not_written(self):
        with self.assertRaises(FrameError):
            self.issuer.send_message(0x100, 1, 0)
        self.assertEqual(self.transport.sent, [])


class TestRetry(IssuerTestCase):

    def test_first_write_succeeds(self):
        self.issuer.setup()
        self.assertEqual(len(self.transport.sent), 1)
        self.sleep.assert_not_called()

    def test_retry_once_after_backoff(self):
        self.transport.send_errors.append(TransientTransportError("timeout"))

        self.issuer.reset_node(8)

        self.assertEqual(self.transport.sent, [b"\x12\x08\x00"])
        self.sleep.assert_called_once_with(0.2)

    def test_both_attempts_fail(self):
        first = TransientTransportError("first")
        second = DeviceDisconnectedError("second")
        self.transport.send_errors.extend([first, second])

        with self.assertRaises(WriteFailedError) as ctx:
            self.issuer.setup()

        error = ctx.exception
        self.assertEqual(error.attempts, 2)
        self.assertEqual(error.frame, b"\x00")
        self.assertIs(error.last_error, second)
        self.assertIs(error.__cause__, second)
        self.sleep.assert_called_once_with(0.2)
        self.assertEqual(self.transport.sent, [])

    def test_custom_attempts(self):
        issuer = CommandIssuer(
            self.transport, retry_policy=RetryPolicy(attempts=4, backoff=0.1, sleep=self.sleep))
        self.transport.send_errors.extend([TransientTransportError("x")] * 3)

        issuer.reboot()

        self.assertEqual(self.transport.sent, [b"\x11"])
        self.assertEqual(self.sleep.call_count, 3)

    def test_no_retry(self):
        issuer = CommandIssuer(self.transport, retry_policy=RetryPolicy.no_retry())
        self.transport.send_errors.append(TransientTransportError("x"))

        with self.assertRaises(WriteFailedError) as ctx:
            issuer.reboot()
        self.assertEqual(ctx.exception.attempts, 1)

    def test_uses_mock_transport(self):
        transport = Mock()
        issuer = CommandIssuer(transport)
        issuer.add_key(1)
        transport.send.assert_called_once_with(b"\x02\x01\x00")


if __name__ == '__main__':
    unittest.main()
