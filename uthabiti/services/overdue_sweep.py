from __future__ import annotations

import asyncio
import logging

from uthabiti.core.settings import settings
from uthabiti.db.session import AsyncSessionLocal
from uthabiti.services.ledger import sweep_overdue_loans

logger = logging.getLogger(__name__)


async def run_once() -> int:
    async with AsyncSessionLocal() as session:
        defaulted = await sweep_overdue_loans(session)
        await session.commit()
    logger.info("Overdue loan sweep marked %s loan(s) as Defaulted", defaulted)
    return defaulted


async def sweep_forever(interval_seconds: int | None = None) -> None:
    interval = interval_seconds or settings.overdue_sweep_interval_seconds
    while True:
        try:
            await run_once()
        except Exception:
            logger.exception("Overdue loan sweep failed; retrying in %s seconds", interval)
        await asyncio.sleep(interval)
