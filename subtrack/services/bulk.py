import logging
from dataclasses import dataclass, field
from typing import Any, Awaitable, Callable, Dict, Generic, Iterable, List, Optional, TypeVar

log = logging.getLogger(__name__)

T = TypeVar("T")
R = TypeVar("R")


@dataclass
class BulkOutcome(Generic[R]):
    successes: List[R] = field(default_factory=list)
    failures: List[Dict[str, Any]] = field(default_factory=list)


async def fold_items(items: Iterable[T], step: Callable[[T], Awaitable[R]],
                     key: Callable[[T], Any], key_name: str = "task_id",
                     on_error: Optional[Callable[[], None]] = None) -> BulkOutcome[R]:
    """Run ``step`` over items one at a time, collecting results and errors.

    A failing item is recorded as ``{key_name: key(item), "error": str}``
    and the loop moves on; nothing here raises for a single item.
    ``on_error`` runs after each failure (e.g. a session rollback).
    """
    outcome: BulkOutcome[R] = BulkOutcome()
    for item in items:
        try:
            outcome.successes.append(await step(item))
        except Exception as e:  # noqa: BLE001 - per-item failures are reported, not raised
            log.warning("bulk item %s failed: %s", key(item), e)
            outcome.failures.append({key_name: key(item), "error": str(e)})
            if on_error is not None:
                on_error()
    log.info("bulk run done: %d ok, %d failed", len(outcome.successes), len(outcome.failures))
    return outcome
