import asyncio
import logging

from fastapi import FastAPI

from uthabiti.core.settings import settings
from uthabiti.db.init_db import init_db
from uthabiti.services.overdue_sweep import sweep_forever

logger = logging.getLogger(__name__)


def register_event_handlers(app: FastAPI) -> None:
    @app.on_event("startup")
    async def on_startup() -> None:
        logger.info("Application startup")
        await init_db()
        app.state.overdue_sweep = None
        if settings.overdue_sweep_enabled:
            app.state.overdue_sweep = asyncio.create_task(sweep_forever())

    @app.on_event("shutdown")
    async def on_shutdown() -> None:
        logger.info("Application shutdown")
        task = getattr(app.state, "overdue_sweep", None)
        if task is not None:
            task.cancel()
            try:
                await task
            except asyncio.CancelledError:
                pass
            except Exception:
                logger.exception("Overdue loan sweep task had stopped with an error")
