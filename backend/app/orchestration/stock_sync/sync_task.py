from __future__ import annotations

import logging
import time
from typing import Any, Callable, Dict, List, Optional

from celery import shared_task

from app.core.config import settings
from app.orchestration.stock_sync.chunk_orchestrator import iter_sync_chunks, run_sync_chunk
from app.utils.serialization import to_jsonable


logger = logging.getLogger(__name__)


"""
  Debug switch: when True the whole chain runs in the current process.
"""
def _inline_tasks_enabled() -> bool:
    return bool(getattr(settings, "SYNC_TASKS_INLINE", False))



"""
    Celery entry: one chunk, then re-enqueue itself at next_offset.
    The chunk delay replaces the client-side timer between chunk requests.
"""
@shared_task(name="app.orchestration.stock_sync.sync_chunk_task")
def sync_chunk_task(offset: int = 0, limit: Optional[int] = None) -> Dict[str, Any]:
    response = run_sync_chunk(offset, limit)
    body = to_jsonable(response.to_dict(preview=settings.SYNC_RESULTS_PREVIEW))

    next_offset = response.next_offset
    if next_offset is not None:
        sync_chunk_task.apply_async(
            args=[next_offset, limit],
            countdown=settings.SYNC_CHUNK_DELAY_SEC,
        )
        logger.info("stock_sync.task.chained next_offset=%s countdown=%s", next_offset, settings.SYNC_CHUNK_DELAY_SEC)
    else:
        logger.info("stock_sync.task.finished success=%s offset=%s", response.success, offset)
    return body


"""
    Debug entry: run every chunk from `offset` in this process, waiting
    SYNC_CHUNK_DELAY_SEC between chunks. Returns the per-chunk bodies.
"""
def run_full_sync_inline(
    offset: int = 0,
    limit: Optional[int] = None,
    *,
    sleep: Callable[[float], None] = time.sleep,
) -> List[Dict[str, Any]]:
    bodies: List[Dict[str, Any]] = []
    for response in iter_sync_chunks(offset, limit):
        bodies.append(to_jsonable(response.to_dict(preview=settings.SYNC_RESULTS_PREVIEW)))
        if response.next_offset is not None:
            sleep(settings.SYNC_CHUNK_DELAY_SEC)
    return bodies


"""
    HTTP entry for the background drive: enqueue or, in inline mode, run it all now.
"""
def start_full_sync(offset: int = 0, limit: Optional[int] = None) -> Dict[str, Any]:
    if _inline_tasks_enabled():
        bodies = run_full_sync_inline(offset, limit)
        last = bodies[-1] if bodies else {}
        return {"mode": "inline", "chunks": len(bodies), "last": last}

    task = sync_chunk_task.apply_async(args=[offset, limit])
    logger.info("stock_sync.task.enqueued id=%s offset=%s limit=%s", task.id, offset, limit)
    return {"mode": "celery", "taskId": task.id}
