"""Thread pool for running independent solver sessions side by side.

Each task builds and closes its own session, so only plain results cross
thread boundaries.  Results come back in the order the items were given,
whatever order the tasks finish in.
"""
import logging
import time
from concurrent.futures import Future, ThreadPoolExecutor, as_completed
from concurrent.futures import TimeoutError as FuturesTimeoutError
from typing import Any, Callable, Dict, Iterable, List, Optional, TypeVar

T = TypeVar("T")
R = TypeVar("R")

logger = logging.getLogger(__name__)


class ParallelExecutor:
    """Runs ``fn(item)`` for every item on a thread pool.

    Args:
        max_workers: pool size; the ``ThreadPoolExecutor`` default when None.
        log_events: log start and duration of every task at debug level.
        label: names an item in log messages (``str`` by default).
        cancel_on_error: cancel tasks not yet started when one task fails.
    """

    def __init__(self, max_workers: Optional[int] = None, log_events: bool = False,
                 label: Optional[Callable[[Any], str]] = None, cancel_on_error: bool = True):
        if max_workers is not None and max_workers < 1:
            raise ValueError("max_workers must be at least 1")
        self.max_workers = max_workers
        self.log_events = log_events
        self.label = label or str
        self.cancel_on_error = cancel_on_error
        self._pool = ThreadPoolExecutor(max_workers=max_workers, thread_name_prefix="zkcheck")

    def __enter__(self) -> "ParallelExecutor":
        return self

    def __exit__(self, exc_type, exc_val, exc_tb):
        self.shutdown()
        return False

    def shutdown(self, wait: bool = True) -> None:
        self._pool.shutdown(wait=wait)

    def _timed(self, fn: Callable[[T], R], item: T) -> R:
        name = self.label(item)
        start = time.perf_counter()
        logger.debug("Task %s started", name)
        try:
            return fn(item)
        finally:
            logger.debug("Task %s finished in %.3fs", name, time.perf_counter() - start)

    def submit(self, fn: Callable[[T], R], item: T) -> Future:
        if self.log_events:
            return self._pool.submit(self._timed, fn, item)
        return self._pool.submit(fn, item)

    def run(self, fn: Callable[[T], R], items: Iterable[T], timeout: Optional[float] = None,
            *, return_exceptions: bool = False) -> List[Any]:
        """Apply ``fn`` to every item and return the results in item order.

        A failing task re-raises its exception here unless
        ``return_exceptions`` is set, in which case the exception takes the
        place of the result.  When ``timeout`` seconds pass before all tasks
        finish, unfinished tasks are cancelled and ``TimeoutError`` is raised
        (or stored for each unfinished task).
        """
        items = list(items)
        futures: Dict[Future, int] = {self.submit(fn, item): i for i, item in enumerate(items)}
        results: List[Any] = [None] * len(items)
        collected = set()
        try:
            for future in as_completed(futures, timeout=timeout):
                index = futures[future]
                collected.add(index)
                error = future.exception()
                if error is None:
                    results[index] = future.result()
                    continue
                logger.error("Task %s failed: %s: %s", self.label(items[index]),
                             type(error).__name__, error)
                if not return_exceptions:
                    if self.cancel_on_error:
                        self._cancel(futures)
                    raise error
                results[index] = error
        except FuturesTimeoutError:
            self._cancel(futures)
            late = [i for i in range(len(items)) if i not in collected]
            logger.warning("%d task(s) unfinished after %ss", len(late), timeout)
            if not return_exceptions:
                raise TimeoutError(f"{len(late)} task(s) unfinished after {timeout}s") from None
            for index in late:
                results[index] = TimeoutError("task timed out")
        return results

    @staticmethod
    def _cancel(futures: Iterable[Future]) -> None:
        for future in futures:
            future.cancel()


def parallel_map(fn: Callable[[T], R], items: Iterable[T], max_workers: Optional[int] = None,
                 timeout: Optional[float] = None) -> List[R]:
    """``list(map(fn, items))`` on a thread pool, e.g.

        reports = parallel_map(check_target, targets, max_workers=4)
    """
    with ParallelExecutor(max_workers=max_workers) as executor:
        return executor.run(fn, items, timeout=timeout)
