"""
Best-effort cache warming for lists of titles.

Every item gets its own resolution, all started at once; one item failing
(or raising) never affects its siblings and is never reported to the caller
as an error.
"""

from concurrent.futures import ThreadPoolExecutor, wait
from typing import Dict, Optional, Sequence, TYPE_CHECKING

from trailerscout.logging_config import get_logger, log_event
from trailerscout.schemas import MediaInput

if TYPE_CHECKING:
    from trailerscout.resolver import TrailerResolver

logger = get_logger(__name__)


def _describe(item: MediaInput) -> str:
    if isinstance(item, str):
        return item
    if isinstance(item, dict):
        return str(item.get("title") or item.get("name") or "?")
    return str(getattr(item, "title", "?"))


def preload_trailers(
    resolver: "TrailerResolver",
    items: Sequence[MediaInput],
    max_workers: Optional[int] = None
) -> Dict[str, int]:
    """
    Resolve every item concurrently and wait for all of them to settle.

    Args:
        resolver: Resolver whose cache should be warmed
        items: Media inputs accepted by ``TrailerResolver.resolve``
        max_workers: Worker cap; defaults to one worker per item

    Returns:
        Summary dict with ``total``, ``succeeded`` and ``failed`` counts
    """
    summary = {"total": len(items), "succeeded": 0, "failed": 0}
    if not items:
        return summary

    log_event(logger, "info", "trailer_preload_started", count=len(items))

    with ThreadPoolExecutor(max_workers=max_workers or len(items),
                            thread_name_prefix="trailer-preload") as executor:
        futures = {executor.submit(resolver.resolve, item): item for item in items}
        wait(futures)

    for future, item in futures.items():
        error = future.exception()
        if error is not None:
            summary["failed"] += 1
            log_event(
                logger, "warning", "trailer_preload_item_failed",
                title=_describe(item),
                error=f"{type(error).__name__}: {error}",
            )
        elif future.result().success:
            summary["succeeded"] += 1
        else:
            summary["failed"] += 1

    log_event(logger, "info", "trailer_preload_completed", **summary)
    return summary
