"""Unit tests for RetryPolicy."""

import unittest
from unittest.mock import Mock

from meshdongle.dongle.retry import RetryPolicy


class TestRetryPolicy(unittest.TestCase):

    def test_defaults(self):
        policy = RetryPolicy()
        self.assertEqual(policy.attempts, 2)
        self.assertEqual(policy.backoff, 0.2)

    def test_wait_uses_injected_sleep(self):
        sleep = Mock()
        RetryPolicy(backoff=0.5, sleep=sleep).wait()
        sleep.assert_called_once_with(0.5)

    def test_zero_backoff_does_not_sleep(self):
        sleep = Mock()
        RetryPolicy(backoff=0.0, sleep=sleep).wait()
        sleep.assert_not_called()

    def test_no_retry(self):
        policy = RetryPolicy.no_retry()
        self.assertEqual(policy.attempts, 1)
        self.assertEqual(policy.backoff, 0.0)

    def test_invalid_values(self):
        with self.assertRaises(ValueError):
            RetryPolicy(attempts=0)
        with self.assertRaises(ValueError):
            RetryPolicy(backoff=-1.0)

    def test_sleep_not_part_of_equality(self):
        self.assertEqual(RetryPolicy(sleep=Mock()), RetryPolicy())


if __name__ == '__main__':
    unittest.main()
