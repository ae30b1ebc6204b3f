"""
Tests for per-attribute advisory locks.
"""

import threading
import time

import pytest

from identity_reconciliation.linkage.locks import AttributeLockManager


class TestAttributeLockManager:
    """Tests for AttributeLockManager.hold."""

    def test_holds_sorted_unique_keys(self):
        manager = AttributeLockManager()

        with manager.hold(["phone:1", "email:a", "phone:1"]) as held:
            assert held == ["email:a", "phone:1"]
            assert manager.active_keys() == ["email:a", "phone:1"]

        assert manager.active_keys() == []

    def test_released_on_exception(self):
        manager = AttributeLockManager()

        with pytest.raises(RuntimeError):
            with manager.hold(["email:a"]):
                raise RuntimeError("boom")

        assert manager.active_keys() == []
        with manager.hold(["email:a"]):
            pass

    def test_empty_keys(self):
        manager = AttributeLockManager()
        with manager.hold([]) as held:
            assert held == []

    def test_same_key_serializes(self):
        manager = AttributeLockManager()
        inside = []
        overlaps = []

        def worker():
            with manager.hold(["email:a"]):
                inside.append(1)
                if len(inside) > 1:
                    overlaps.append(True)
                time.sleep(0.01)
                inside.pop()

        threads = [threading.Thread(target=worker) for _ in range(5)]
        for t in threads:
            t.start()
        for t in threads:
            t.join()

        assert overlaps == []
        assert manager.active_keys() == []

    def test_disjoint_keys_do_not_block(self):
        manager = AttributeLockManager()
        entered = threading.Event()

        def other():
            with manager.hold(["phone:2"]):
                entered.set()

        with manager.hold(["email:a"]):
            t = threading.Thread(target=other)
            t.start()
            assert entered.wait(timeout=2)
            t.join()

    def test_overlapping_sets_do_not_deadlock(self):
        manager = AttributeLockManager()
        done = []

        def worker(keys):
            for _ in range(50):
                with manager.hold(keys):
                    pass
            done.append(keys)

        t1 = threading.Thread(target=worker, args=(["email:a", "phone:1"],))
        t2 = threading.Thread(target=worker, args=(["phone:1", "email:a"],))
        t1.start()
        t2.start()
        t1.join(timeout=5)
        t2.join(timeout=5)

        assert len(done) == 2
