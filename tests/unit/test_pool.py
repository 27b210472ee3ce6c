"""Unit tests for bounded job execution."""

import threading
import time

import pytest

from polyast.processing.pool import BoundedRun, CancellationToken, run_bounded, run_sequential


class ConcurrencyTracker:
    """Records the peak number of jobs running at once."""

    def __init__(self) -> None:
        self._lock = threading.Lock()
        self.running = 0
        self.peak = 0

    def job(self, value: int, delay: float = 0.01):
        def run() -> int:
            with self._lock:
                self.running += 1
                self.peak = max(self.peak, self.running)
            time.sleep(delay)
            with self._lock:
                self.running -= 1
            return value

        return run


class TestRunBounded:
    """Tests for run_bounded."""

    def test_results_keyed_by_input_index(self) -> None:
        """Test that results come back in input order despite completion order."""
        jobs = [
            (lambda i=i: (time.sleep(0.02 * (5 - i)), i * 10)[1])
            for i in range(5)
        ]

        run = run_bounded(jobs, max_concurrency=5)

        assert run.ordered() == [0, 10, 20, 30, 40]
        assert sorted(run.results) == [0, 1, 2, 3, 4]
        assert not run.cancelled

    def test_bound_is_respected(self) -> None:
        tracker = ConcurrencyTracker()

        run = run_bounded([tracker.job(i) for i in range(12)], max_concurrency=3)

        assert run.ordered() == list(range(12))
        assert 1 <= tracker.peak <= 3

    def test_single_slot_is_serial(self) -> None:
        tracker = ConcurrencyTracker()

        run_bounded([tracker.job(i) for i in range(4)], max_concurrency=1)

        assert tracker.peak == 1

    def test_invalid_bound(self) -> None:
        with pytest.raises(ValueError, match="at least 1"):
            run_bounded([lambda: 1], max_concurrency=0)

    def test_empty_jobs(self) -> None:
        run = run_bounded([], max_concurrency=4)

        assert run.ordered() == []
        assert not run.cancelled

    def test_cancellation_stops_scheduling(self) -> None:
        """Test that no job starts after the token is set."""
        token = CancellationToken()
        started: list[int] = []
        lock = threading.Lock()

        def make(i: int):
            def run() -> int:
                with lock:
                    started.append(i)
                if i == 1:
                    token.cancel()
                return i

            return run

        run = run_bounded([make(i) for i in range(20)], max_concurrency=2, cancellation=token)

        assert run.cancelled
        assert len(started) < 20
        assert sorted(run.results) == sorted(started)
        assert run.ordered() == sorted(started)

    def test_cancelled_before_start(self) -> None:
        token = CancellationToken()
        token.cancel()

        run = run_bounded([lambda: 1, lambda: 2], max_concurrency=2, cancellation=token)

        assert run.cancelled
        assert run.results == {}

    def test_job_exception_propagates(self) -> None:
        def boom() -> int:
            raise RuntimeError("boom")

        with pytest.raises(RuntimeError, match="boom"):
            run_bounded([lambda: 1, boom], max_concurrency=2)


class TestRunSequential:
    """Tests for run_sequential."""

    def test_runs_in_order_on_caller_thread(self) -> None:
        caller = threading.get_ident()

        run = run_sequential([lambda i=i: (i, threading.get_ident()) for i in range(3)])

        assert [value for value, _ in run.ordered()] == [0, 1, 2]
        assert all(thread == caller for _, thread in run.ordered())

    def test_cancellation(self) -> None:
        token = CancellationToken()

        def cancel() -> int:
            token.cancel()
            return 0

        run = run_sequential([cancel, lambda: 1, lambda: 2], cancellation=token)

        assert run.cancelled
        assert run.ordered() == [0]


class TestBoundedRun:
    def test_ordered_skips_missing_indexes(self) -> None:
        run = BoundedRun(results={2: "c", 0: "a"})

        assert run.ordered() == ["a", "c"]
