from dataclasses import dataclass, field
from threading import Lock
from time import perf_counter


@dataclass
class RunStatistics:
    """Outcome counters of a pipeline run. Read them after Pipeline.run returned."""

    processed: int = 0
    errored: int = 0
    started: float = field(default_factory=perf_counter)
    finished: float | None = None
    _lock: Lock = field(default_factory=Lock, repr=False, compare=False)

    def add_processed(self, n: int = 1) -> None:
        with self._lock:
            self.processed += n

    def add_errored(self, n: int = 1) -> None:
        with self._lock:
            self.errored += n

    def finish(self) -> None:
        self.finished = perf_counter()

    @property
    def total(self) -> int:
        return self.processed + self.errored

    @property
    def elapsed(self) -> float:
        """Wall-clock seconds since start, up to finish() if it was called."""
        return (self.finished or perf_counter()) - self.started

    @property
    def rate(self) -> float:
        """Successfully processed lines per second."""
        elapsed = self.elapsed
        return self.processed / elapsed if elapsed > 0 else 0.0
