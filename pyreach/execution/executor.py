"""Parallel exhaustive execution for PyReach.
Invokes the decision function once for every boolean parameter vector of a
given width and collects the distinct return values:
- the counter range 0..2^n - 1 is split into chunks spread over a thread pool
- each worker deduplicates locally and merges into the shared set under a lock
- the first invocation that raises stops every worker and aborts the run
"""

from __future__ import annotations

import threading
import time
from collections.abc import Callable
from concurrent.futures import Future, ThreadPoolExecutor, as_completed
from dataclasses import dataclass, field
from typing import Any

from pyreach.config import EXECUTOR_PARAM_LIMIT, ExecutorConfig
from pyreach.core.exceptions import CapacityError, RuntimeFaultError
from pyreach.core.program import EntryPoint
from pyreach.logging import get_logger

VectorEncoder = Callable[[int, int], list[bool]]

CHUNKS_PER_WORKER = 4


def reference_vector(counter: int, width: int) -> list[bool]:
    """
    Vector for ``counter`` using the unpadded binary digits of the counter.
    The most significant digit lands at index 0 and indices past the digit
    count stay False. Distinct counters can map to the same vector, so not
    every combination is visited.
    """
    vector = [False] * width
    if width == 0:
        return vector
    for i, digit in enumerate(format(counter, "b")):
        vector[i] = digit == "1"
    return vector


def padded_vector(counter: int, width: int) -> list[bool]:
    """Vector whose index ``i`` is bit ``i`` of ``counter``; visits every combination."""
    return [bool(counter >> i & 1) for i in range(width)]


ENCODERS: dict[str, VectorEncoder] = {
    "reference": reference_vector,
    "padded": padded_vector,
}


@dataclass
class ExecutionResult:
    """Aggregated result of an exhaustive run."""

    values: frozenset = field(default_factory=frozenset)
    invocations: int = 0
    chunks: int = 0
    workers_used: int = 0
    time_seconds: float = 0.0


@dataclass
class _RunState:
    """Mutable state shared by the chunks of a single ``execute`` call."""

    encode: VectorEncoder
    width: int
    lock: threading.Lock = field(default_factory=threading.Lock)
    stop_event: threading.Event = field(default_factory=threading.Event)
    values: set[Any] = field(default_factory=set)
    invocations: int = 0


class ExhaustiveExecutor:
    """
    Runs a decision function over all parameter vectors of a given width.
    The executor keeps no state between runs, so one instance may serve
    concurrent ``execute`` calls.
    Example:
        >>> executor = ExhaustiveExecutor(ExecutorConfig(max_workers=2))
        >>> sorted(executor.execute(lambda p: 1 if p[0] else 2, 1).values)
        [1, 2]
    """

    def __init__(self, config: ExecutorConfig | None = None):
        self.config = config or ExecutorConfig()
        if self.config.vector_encoding not in ENCODERS:
            raise ValueError(f"unknown vector encoding '{self.config.vector_encoding}'")
        self._encode = ENCODERS[self.config.vector_encoding]

    @property
    def max_params(self) -> int:
        return min(self.config.max_params, EXECUTOR_PARAM_LIMIT)

    def check_capacity(self, param_count: int) -> None:
        """Raise CapacityError when ``param_count`` is beyond the executor's reach."""
        if param_count < 0:
            raise ValueError("parameter count must not be negative")
        if param_count > self.max_params:
            raise CapacityError(param_count, self.max_params)

    def partition(self, total: int) -> list[tuple[int, int]]:
        """Split ``range(total)`` into contiguous ``(start, stop)`` chunks."""
        chunk_count = max(1, min(total, self.config.max_workers * CHUNKS_PER_WORKER))
        size = -(-total // chunk_count)
        return [(start, min(start + size, total)) for start in range(0, total, size)]

    def execute(self, entry_point: EntryPoint, param_count: int) -> ExecutionResult:
        """
        Invoke ``entry_point`` for every vector of width ``param_count``.
        Args:
            entry_point: The compiled decision function
            param_count: Vector width
        Returns:
            ExecutionResult with the distinct return values
        Raises:
            CapacityError: ``param_count`` exceeds the executor limit
            RuntimeFaultError: an invocation raised an exception
        """
        self.check_capacity(param_count)
        logger = get_logger()
        run = _RunState(encode=self._encode, width=param_count)
        total = 1 << param_count
        chunks = self.partition(total)
        workers = min(self.config.max_workers, len(chunks))
        logger.verbose(
            f"executing {total} invocation(s) in {len(chunks)} chunk(s) on {workers} worker(s)",
            category="executor",
        )
        start_time = time.time()
        with ThreadPoolExecutor(max_workers=workers) as executor:
            futures: list[Future[None]] = [
                executor.submit(self._run_chunk, run, entry_point, start, stop)
                for start, stop in chunks
            ]
            try:
                for future in as_completed(futures):
                    future.result()
            except Exception:
                run.stop_event.set()
                for future in futures:
                    future.cancel()
                raise
        result = ExecutionResult(
            values=frozenset(run.values),
            invocations=run.invocations,
            chunks=len(chunks),
            workers_used=workers,
            time_seconds=time.time() - start_time,
        )
        logger.count("invocations", result.invocations)
        logger.verbose(
            f"collected {len(result.values)} distinct value(s) from "
            f"{result.invocations} invocation(s)",
            category="executor",
        )
        return result

    @staticmethod
    def _run_chunk(run: _RunState, entry_point: EntryPoint, start: int, stop: int) -> None:
        local: set[Any] = set()
        done = 0
        for counter in range(start, stop):
            if run.stop_event.is_set():
                break
            vector = run.encode(counter, run.width)
            try:
                local.add(entry_point(vector))
            except KeyboardInterrupt:
                run.stop_event.set()
                raise
            except BaseException as e:
                # SystemExit from decision code is a fault of that vector too
                run.stop_event.set()
                raise RuntimeFaultError(vector, e) from e
            done += 1
        with run.lock:
            run.values |= local
            run.invocations += done


__all__ = [
    "ExhaustiveExecutor",
    "ExecutionResult",
    "ENCODERS",
    "reference_vector",
    "padded_vector",
]
