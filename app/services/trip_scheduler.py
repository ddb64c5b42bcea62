# app/services/trip_scheduler.py
"""
In-process timer for the auto-start sweep.

Runs auto_start_due_trips every AUTO_START_INTERVAL_SECONDS with a fresh
DB session per tick. A failed tick is logged and the loop carries on.
External timers can hit POST /trips/auto-start instead.
"""

import asyncio

from fastapi import HTTPException

from app.core.logger import get_logger
from app.db.session import SessionLocal
from app.services.audit_service import log_action
from app.services.trip_lifecycle_service import auto_start_due_trips

logger = get_logger(__name__)


def run_auto_start_once(session_factory=SessionLocal) -> dict:
    db = session_factory()
    try:
        result = auto_start_due_trips(db)
        if result["updated_count"]:
            log_action(
                db=db,
                user_id=None,
                action="AUTO_START_TRIPS",
                entity_type="Trip",
                details=f"Started trips: {[t['id'] for t in result['updated_trips']]}",
            )
        return result
    finally:
        db.close()


async def auto_start_loop(interval_seconds: int, session_factory=SessionLocal):
    logger.info(f"Auto-start sweep running every {interval_seconds}s")

    while True:
        try:
            await asyncio.to_thread(run_auto_start_once, session_factory)
        except HTTPException as e:
            logger.error(f"Auto-start sweep failed: {e.detail}")
        except Exception as e:
            logger.error(f"Auto-start sweep crashed: {e}", exc_info=True)

        await asyncio.sleep(interval_seconds)


def start_auto_start_task(interval_seconds: int) -> asyncio.Task | None:
    if interval_seconds <= 0:
        logger.warning("AUTO_START_INTERVAL_SECONDS is 0, auto-start sweep disabled.")
        return None

    return asyncio.create_task(auto_start_loop(interval_seconds), name="trip-auto-start")
