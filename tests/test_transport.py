"""Unit tests for the Transport abstraction.

Tests verify:
- Transport is abstract and each method must be implemented
- Context manager opens and closes
"""
import unittest

from meshdongle.transport import Transport

from .fakes import FakeTransport


class TestTransportABC(unittest.TestCase):

    def test_is_abstract(self):
        with self.assertRaises(TypeError):
            Transport()

    def test_abstract_methods(self):
        self.assertEqual(
            Transport.__abstractmethods__,
            frozenset({"open", "close", "is_open", "send", "receive", "max_packet_size"}),
        )

    def test_partial_implementation_is_abstract(self):
        class Incomplete(Transport):
            def open(self):
                pass

            def close(self):
                pass

        with self.assertRaises(TypeError):
            Incomplete()


class TestTransportContextManager(unittest.TestCase):

    def test_opens_and_closes(self):
        transport = FakeTransport()
        with transport as t:
            self.assertIs(t, transport)
            self.assertTrue(transport.is_open())
        self.assertFalse(transport.is_open())

    def test_closes_on_error(self):
        transport = FakeTransport()
        with self.assertRaises(RuntimeError):
            with transport:
                raise RuntimeError("boom")
        self.assertFalse(transport.is_open())


if __name__ == '__main__':
    unittest.main()
