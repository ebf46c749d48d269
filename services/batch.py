"""
Best-effort batch fold shared by the creation stages.

Items are processed strictly in order, one remote call awaited before the
next starts. A failing item is logged and recorded as an ``ItemFailure``;
the fold always continues, and nothing already created is rolled back.
"""
from __future__ import annotations

import logging
import time
from typing import Awaitable, Callable, Iterable, Optional, TypeVar

from schemas.results import BatchResult, ItemFailure, ItemSuccess, Outcome

logger = logging.getLogger(__name__)

I = TypeVar("I")
R = TypeVar("R")


async def run_batch(
    items: Iterable[I],
    operation: Callable[[I], Awaitable[R]],
    *,
    label: str,
    failure_prefix: str,
    describe: Optional[Callable[[I], str]] = None,
) -> BatchResult[R]:
    """
    Apply ``operation`` to every item and fold the outcomes into a BatchResult.

    Args:
        items: Inputs, processed sequentially in iteration order.
        operation: Coroutine function creating the remote object for one item.
        label: Stage name used in log lines (e.g. "bundle product").
        failure_prefix: Human-readable prefix of the recorded failure reason.
        describe: Optional callable naming an item for logs.
    """
    outcomes: list[Outcome] = []
    start = time.time()
    name_of = describe or (lambda item: repr(item))

    for index, item in enumerate(items, start=1):
        try:
            value = await operation(item)
        except Exception as exc:
            logger.error(
                "⚠️ %s %d (%s) failed, continuing: %s",
                label,
                index,
                name_of(item),
                exc,
                exc_info=True,
            )
            outcomes.append(ItemFailure(item=item, reason=f"{failure_prefix}: {exc}"))
        else:
            outcomes.append(ItemSuccess(value))

    result: BatchResult[R] = BatchResult(items=outcomes)
    logger.info(
        "✅ %s batch completed in %dms: %d/%d successful",
        label,
        int((time.time() - start) * 1000),
        result.success_count,
        result.total_count,
    )
    return result
