"""Unit tests for EventHook."""

import unittest

from instances import EventHook


class TestEventHook(unittest.TestCase):
    """Test subscription and firing of observer callbacks."""

    def test_fires_in_subscription_order(self):
        calls: list[str] = []
        hook: EventHook[str] = EventHook("test")
        hook += lambda value: calls.append(f"first {value}")
        hook += lambda value: calls.append(f"second {value}")

        hook.fire("x")

        self.assertEqual(calls, ["first x", "second x"])
        self.assertEqual(len(hook), 2)

    def test_unsubscribe(self):
        calls: list[str] = []
        hook: EventHook[str] = EventHook("test")
        hook += calls.append
        hook -= calls.append

        hook.fire("x")

        self.assertEqual(calls, [])
        self.assertEqual(len(hook), 0)

    def test_rejects_non_callable(self):
        hook: EventHook[str] = EventHook("test")

        with self.assertRaisesRegex(TypeError, "must be callable"):
            hook.subscribe("not callable")  # type: ignore[arg-type]  # intentionally invalid

    def test_failing_callback_is_logged_and_others_run(self):
        """A callback that raises does not prevent later callbacks."""
        calls: list[str] = []

        def broken(_value: str) -> None:
            error_msg = "bad value"
            raise ValueError(error_msg)

        hook: EventHook[str] = EventHook("test")
        hook += broken
        hook += calls.append

        with self.assertLogs("instances.events", level="WARNING") as logs:
            hook.fire("x")

        self.assertEqual(calls, ["x"])
        self.assertIn("bad value", logs.output[0])

    def test_any_exception_type_is_contained(self):
        """Exceptions outside the usual value errors are logged too, not raised."""
        calls: list[str] = []

        def broken(value: str) -> None:
            _ = {}[value]

        hook: EventHook[str] = EventHook("test")
        hook += broken
        hook += calls.append

        with self.assertLogs("instances.events", level="WARNING"):
            hook.fire("missing")

        self.assertEqual(calls, ["missing"])

    def test_copy_is_independent(self):
        """Subscribing to the original after copying does not affect the copy."""
        calls: list[str] = []
        hook: EventHook[str] = EventHook("test")
        clone = hook.copy()
        hook += calls.append

        clone.fire("x")

        self.assertEqual(calls, [])
        self.assertEqual(clone.name, "test")


if __name__ == "__main__":
    unittest.main()
