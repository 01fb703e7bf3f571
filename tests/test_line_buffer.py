"""Unit tests for the LineBuffer cap-and-drop buffer."""

import threading
import unittest

from instances import LineBuffer


class TestLineBuffer(unittest.TestCase):
    """Test LineBuffer capacity and snapshot behavior."""

    def test_keeps_insertion_order(self):
        buffer = LineBuffer(capacity=10)
        for line in ("a", "b", "c"):
            self.assertTrue(buffer.append(line))

        self.assertEqual(buffer.snapshot(), ("a", "b", "c"))
        self.assertEqual(len(buffer), 3)

    def test_drops_new_lines_when_full(self):
        """Once full, new lines are dropped; old ones are never evicted."""
        buffer = LineBuffer(capacity=2)
        results = [buffer.append(line) for line in ("1", "2", "3", "4")]

        self.assertEqual(results, [True, True, False, False])
        self.assertEqual(buffer.snapshot(), ("1", "2"))
        self.assertEqual(buffer.dropped, 2)
        self.assertTrue(buffer.full)

    def test_capacity_law(self):
        """For N > C lines, exactly the first C are kept."""
        for capacity in range(0, 6):
            buffer = LineBuffer(capacity=capacity)
            lines = [f"line {i}" for i in range(capacity + 3)]
            for line in lines:
                buffer.append(line)

            self.assertEqual(buffer.snapshot(), tuple(lines[:capacity]))

    def test_unbounded(self):
        buffer = LineBuffer(capacity=None)
        for i in range(1000):
            buffer.append(str(i))

        self.assertEqual(len(buffer), 1000)
        self.assertFalse(buffer.full)
        self.assertEqual(buffer.dropped, 0)

    def test_negative_capacity_rejected(self):
        with self.assertRaises(ValueError):
            LineBuffer(capacity=-1)

    def test_snapshot_is_a_copy(self):
        """Later appends do not change an earlier snapshot."""
        buffer = LineBuffer(capacity=None)
        buffer.append("first")
        snapshot = buffer.snapshot()
        buffer.append("second")

        self.assertEqual(snapshot, ("first",))
        self.assertIsInstance(snapshot, tuple)

    def test_concurrent_appends_respect_capacity(self):
        """Appends from many threads never exceed the capacity."""
        buffer = LineBuffer(capacity=500)

        def produce(prefix: str) -> None:
            for i in range(200):
                buffer.append(f"{prefix}-{i}")

        threads = [threading.Thread(target=produce, args=(f"t{n}",)) for n in range(8)]
        for thread in threads:
            thread.start()
        for thread in threads:
            thread.join()

        self.assertEqual(len(buffer), 500)
        self.assertEqual(buffer.dropped, 8 * 200 - 500)


if __name__ == "__main__":
    unittest.main()
