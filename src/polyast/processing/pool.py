"""Bounded job execution.

Jobs are zero-argument callables identified by their position in the input
sequence. Results are keyed by that position, so callers can restore input
order no matter in which order jobs complete.

Cancellation is cooperative: once the token is set no further job is
scheduled, jobs already running finish normally, and the run reports that it
was cancelled.
"""

import threading
from collections.abc import Callable, Sequence
from concurrent.futures import FIRST_COMPLETED, Future, ThreadPoolExecutor, wait
from dataclasses import dataclass, field
from typing import Generic, TypeVar

from polyast.utils.logging import get_logger

_logger = get_logger(__name__)

R = TypeVar("R")


class CancellationToken:
    """Thread-safe cancellation flag shared between a caller and a run."""

    def __init__(self) -> None:
        self._event = threading.Event()

    def cancel(self) -> None:
        """Request that no further jobs be scheduled."""
        self._event.set()

    @property
    def cancelled(self) -> bool:
        return self._event.is_set()


@dataclass
class BoundedRun(Generic[R]):
    """Outcome of a run.

    Attributes:
        results: Job results keyed by input index
        cancelled: True if some jobs were never scheduled
    """

    results: dict[int, R] = field(default_factory=dict)
    cancelled: bool = False

    def ordered(self) -> list[R]:
        """Results in input order (unscheduled jobs omitted)."""
        return [self.results[index] for index in sorted(self.results)]


def _is_cancelled(cancellation: CancellationToken | None) -> bool:
    return cancellation is not None and cancellation.cancelled


def run_sequential(
    jobs: Sequence[Callable[[], R]],
    cancellation: CancellationToken | None = None,
) -> BoundedRun[R]:
    """Run jobs one after another on the calling thread."""
    run: BoundedRun[R] = BoundedRun()
    for index, job in enumerate(jobs):
        if _is_cancelled(cancellation):
            run.cancelled = True
            break
        run.results[index] = job()
    return run


def run_bounded(
    jobs: Sequence[Callable[[], R]],
    max_concurrency: int,
    cancellation: CancellationToken | None = None,
) -> BoundedRun[R]:
    """Run jobs on a thread pool with at most ``max_concurrency`` in flight.

    Exceptions raised by a job propagate to the caller after in-flight jobs
    have finished; jobs are expected to turn recoverable failures into results.

    Raises:
        ValueError: If max_concurrency is less than 1
    """
    if max_concurrency < 1:
        raise ValueError(f"max_concurrency must be at least 1, got {max_concurrency}")

    run: BoundedRun[R] = BoundedRun()
    if not jobs:
        return run

    workers = min(max_concurrency, len(jobs))
    next_index = 0
    with ThreadPoolExecutor(max_workers=workers, thread_name_prefix="polyast") as executor:
        in_flight: dict[Future[R], int] = {}
        while next_index < len(jobs) or in_flight:
            while (
                next_index < len(jobs)
                and len(in_flight) < max_concurrency
                and not _is_cancelled(cancellation)
            ):
                in_flight[executor.submit(jobs[next_index])] = next_index
                next_index += 1

            if not in_flight:
                break

            done, _ = wait(in_flight, return_when=FIRST_COMPLETED)
            for future in done:
                index = in_flight.pop(future)
                run.results[index] = future.result()

    if next_index < len(jobs):
        run.cancelled = True
        _logger.info(f"Run cancelled: {len(jobs) - next_index} of {len(jobs)} jobs not scheduled")
    return run
