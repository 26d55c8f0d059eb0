"""
Bounded fan-out over a thread pool with cooperative cancellation.
"""

from __future__ import annotations

from concurrent.futures import Future, ThreadPoolExecutor, as_completed
from typing import TYPE_CHECKING, Callable, Sequence, TypeVar

from image_auditor.logging_config import get_logger

if TYPE_CHECKING:
    from image_auditor.core.context import RunContext

logger = get_logger("pool")

T = TypeVar("T")
R = TypeVar("R")


def bounded_map(
    fn: Callable[[T], R],
    items: Sequence[T],
    workers: int,
    context: "RunContext",
    name: str = "worker",
    on_result: Callable[[T, R], None] | None = None,
) -> list[R | None]:
    """
    Apply `fn` to every item with at most `workers` calls in flight.
    
    Results are returned in item order. An entry is None when the item was
    skipped because the run was cancelled before it started. A
    KeyboardInterrupt cancels the run, drops queued items and returns what
    has finished. Exceptions raised by `fn` propagate.
    """
    results: list[R | None] = [None] * len(items)
    if not items:
        return results
    
    def guarded(item: T) -> R | None:
        if context.cancelled:
            return None
        return fn(item)
    
    executor = ThreadPoolExecutor(max_workers=max(1, workers), thread_name_prefix=name)
    futures: dict[Future, int] = {}
    try:
        for index, item in enumerate(items):
            futures[executor.submit(guarded, item)] = index
        
        for future in as_completed(futures):
            index = futures[future]
            value = future.result()
            results[index] = value
            if value is not None and on_result is not None:
                on_result(items[index], value)
    except KeyboardInterrupt:
        context.cancel()
        for future, index in futures.items():
            if future.done() and not future.cancelled() and future.exception() is None:
                results[index] = future.result()
        logger.debug(f"{name} pool interrupted")
    finally:
        executor.shutdown(wait=True, cancel_futures=True)
    
    return results
