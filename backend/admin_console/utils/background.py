import asyncio
import inspect
from typing import Any, Callable, Set

import structlog

logger = structlog.get_logger()

# Keep references to background tasks to prevent GC collection
_background_tasks: Set[asyncio.Task] = set()


def schedule_after(delay: float, callback: Callable[[], Any]) -> asyncio.Task:
    """Run ``callback`` (sync or async) once ``delay`` seconds have passed."""

    async def _run() -> None:
        await asyncio.sleep(delay)
        try:
            result = callback()
            if inspect.isawaitable(result):
                await result
        except Exception:
            logger.exception("scheduled_callback_failed", callback=getattr(callback, "__name__", repr(callback)))
            raise

    task = asyncio.create_task(_run())
    _background_tasks.add(task)
    task.add_done_callback(_background_tasks.discard)
    return task
