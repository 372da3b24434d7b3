# src/board_relay/sources/scheduler.py

from __future__ import annotations

import asyncio
import logging

from .manager import SourceManager

logger = logging.getLogger(__name__)


async def run_source_scheduler(
        manager: SourceManager,
        *,
        interval_seconds: float = 60.0,
) -> None:
    """
    Simple polling loop.

    Every interval_seconds: run one cycle on every source (publishing etc.).
    A failing cycle is logged and the loop keeps going.

    To stop the scheduler, cancel the coroutine/task.
    """
    sleep_s = max(0.01, float(interval_seconds))

    while True:
        try:
            await manager.run_cycle()
        except Exception:
            logger.exception("Source cycle failed")

        await asyncio.sleep(sleep_s)
