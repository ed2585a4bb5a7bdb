"""Tests for keyed in-process locks."""

from __future__ import annotations

import threading
import time

from django.test import SimpleTestCase

from shared.application.locks import KeyedLockRegistry


class KeyedLockRegistryTests(SimpleTestCase):
    def test_keys_are_sorted_and_deduplicated(self) -> None:
        registry = KeyedLockRegistry()

        with registry.hold([("b", 2), ("a", 1), ("b", 2)]) as held:
            self.assertEqual(held, (("a", 1), ("b", 2)))
            self.assertEqual(len(registry), 2)

        self.assertEqual(len(registry), 0)

    def test_same_key_is_mutually_exclusive(self) -> None:
        registry = KeyedLockRegistry()
        inside = []
        overlaps = []

        def worker() -> None:
            with registry.hold(["slot"]):
                inside.append(1)
                if len(inside) > 1:
                    overlaps.append(True)
                time.sleep(0.01)
                inside.pop()

        threads = [threading.Thread(target=worker) for _ in range(6)]
        for thread in threads:
            thread.start()
        for thread in threads:
            thread.join(timeout=5)

        self.assertEqual(overlaps, [])
        self.assertEqual(len(registry), 0)

    def test_different_keys_do_not_block(self) -> None:
        registry = KeyedLockRegistry()
        entered = threading.Event()

        def other() -> None:
            with registry.hold(["second"]):
                entered.set()

        with registry.hold(["first"]):
            thread = threading.Thread(target=other)
            thread.start()
            self.assertTrue(entered.wait(timeout=2))
            thread.join(timeout=2)

    def test_released_when_body_raises(self) -> None:
        registry = KeyedLockRegistry()

        with self.assertRaises(RuntimeError):
            with registry.hold(["slot"]):
                raise RuntimeError("boom")

        self.assertEqual(len(registry), 0)
        with registry.hold(["slot"]):
            pass
