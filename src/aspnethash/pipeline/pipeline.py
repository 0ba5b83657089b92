# third-party imports
from loguru import logger

# built-in imports
from asyncio import (
    FIRST_COMPLETED,
    AbstractEventLoop,
    Event,
    Queue,
    Semaphore,
    Task,
    gather,
    get_running_loop,
    run,
    run_coroutine_threadsafe,
    wait,
)
from collections.abc import Callable, Iterable, Iterator
from concurrent.futures import CancelledError, ThreadPoolExecutor
from os import cpu_count
from threading import Thread

# local imports
from ..security.errors import LineError
from .containers import RunStatistics
from .limiter import RateLimiter

_EXHAUSTED = object()


def _feed(source: Iterator[str], queue: Queue, loop: AbstractEventLoop) -> None:
    """Move lines from a blocking source into queue, then _EXHAUSTED or the error."""

    def put(item: object) -> bool:
        try:
            run_coroutine_threadsafe(queue.put(item), loop).result()
        except (CancelledError, RuntimeError):
            # the run is over and nobody reads anymore
            return False
        return True

    try:
        for line in source:
            if not put(line):
                return
    except Exception as e:
        put(e)
        return
    put(_EXHAUSTED)


class Pipeline:

    UNLIMITED_THREADS = min(32, (cpu_count() or 1) + 4)
    """Threads running operation when max_workers is 0."""

    def __init__(
        self,
        operation: Callable[[str], str],
        emit: Callable[[str], None],
        rate_limit: int = 0,
        max_workers: int = 0,
    ) -> None:
        """Run operation concurrently over a stream of lines.

        Lines are admitted in input order, first through the rate limiter and
        then through the worker ceiling. Results are handed to emit in
        completion order.

        With max_workers 0 admission is not bounded, but at most
        UNLIMITED_THREADS operation calls execute at the same time. The rest
        wait in the thread pool queue.

        Args:
            operation (Callable[[str], str]): Maps an input line to an output line.
                Raises LineError for lines that should only be counted as errored.
            emit (Callable[[str], None]): Receives every successful output line.
                Any exception it raises is fatal to the run.
            rate_limit (int, optional): Lines per second. 0 means unlimited.
                Defaults to 0.
            max_workers (int, optional): Maximum number of concurrent operation
                calls. 0 means unlimited. Defaults to 0.
        """
        if max_workers < 0:
            raise ValueError("max_workers must not be negative.")
        if rate_limit < 0:
            raise ValueError("rate_limit must not be negative.")
        self.operation = operation
        self.emit = emit
        self.rate_limit = rate_limit
        self.max_workers = max_workers
        self.stats: RunStatistics | None = None
        """Counters of the current or last run, also after it failed."""
        self._fatal: BaseException | None = None

    @property
    def threads(self) -> int:
        return self.max_workers or self.UNLIMITED_THREADS

    async def run(self, lines: Iterable[str]) -> RunStatistics:
        """Process all lines and wait for every dispatched one to finish.

        Args:
            lines (Iterable[str]): The input lines. Iteration happens on a separate
                thread, so blocking sources such as stdin are fine.

        Raises:
            LineSourceError: If lines raised it. Dispatched lines are drained first.
            Exception: Any non-LineError raised by operation or emit. No further
                lines are admitted once it happened, even while lines blocks.

        Returns:
            RunStatistics: Processed and errored counts and timings.
        """
        stats = self.stats = RunStatistics()
        limiter = RateLimiter(self.rate_limit)
        slots = Semaphore(self.max_workers) if self.max_workers else None
        pending: set[Task] = set()
        aborted = Event()
        self._fatal = None

        loop = get_running_loop()
        queue: Queue = Queue(maxsize=1)
        # daemon, so a reader blocked on stdin never holds up shutdown
        Thread(
            target=_feed, args=(iter(lines), queue, loop), name="reader", daemon=True
        ).start()

        async def next_line() -> object:
            getter = loop.create_task(queue.get())
            watcher = loop.create_task(aborted.wait())
            await wait({getter, watcher}, return_when=FIRST_COMPLETED)
            watcher.cancel()
            if aborted.is_set():
                getter.cancel()
                return _EXHAUSTED
            return getter.result()

        with ThreadPoolExecutor(
            max_workers=self.threads, thread_name_prefix="worker"
        ) as workers:

            async def dispatch(line: str) -> None:
                try:
                    result = await loop.run_in_executor(workers, self.operation, line)
                    self.emit(result)
                except LineError as e:
                    stats.add_errored()
                    logger.debug(f"Skipping line: {e}")
                except Exception as e:
                    stats.add_errored()
                    if self._fatal is None:
                        self._fatal = e
                    aborted.set()
                    logger.error(f"Aborting after fatal error: {e}")
                else:
                    stats.add_processed()
                finally:
                    if slots is not None:
                        slots.release()

            try:
                while not aborted.is_set():
                    line = await next_line()
                    if line is _EXHAUSTED:
                        break
                    if isinstance(line, Exception):
                        raise line
                    await limiter.take()
                    if slots is not None:
                        await slots.acquire()
                        if aborted.is_set():
                            slots.release()
                            break
                    task = loop.create_task(dispatch(line))
                    pending.add(task)
                    task.add_done_callback(pending.discard)
            finally:
                # barrier: nothing dispatched is cancelled
                await gather(*pending)
                stats.finish()

        if self._fatal is not None:
            raise self._fatal
        return stats

    def run_sync(self, lines: Iterable[str]) -> RunStatistics:
        """Blocking wrapper around run()."""
        return run(self.run(lines))
