"""
Expiry Sweeper.

Deletes every note whose expires_at has passed. Reads already delete expired
notes lazily; the sweep reclaims notes nobody reads again.

Two ways to run it:
1. In-process: ExpirySweeper, started from the application lifespan when
   features.expiry_sweeper_enabled is set
2. As a taskiq scheduled task (see notevault.backend.tasks.scheduled)

Usage:
    from notevault.backend.tasks.sweeper import ExpirySweeper, sweep_expired_notes

    result = await sweep_expired_notes()

    sweeper = ExpirySweeper(interval_seconds=2700)
    sweeper.start()
    ...
    await sweeper.stop()
"""

import asyncio
from typing import Any

from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker

from notevault.backend.core.database import transaction
from notevault.backend.core.exceptions import DatabaseError
from notevault.backend.core.logging import get_logger, log_with_source
from notevault.backend.core.utils import utc_now
from notevault.backend.repositories.note import NoteRepository

logger = get_logger(__name__)


async def sweep_expired_notes(
    session_factory: async_sessionmaker[AsyncSession] | None = None,
) -> dict[str, Any]:
    """
    Delete all expired notes in one statement.

    Args:
        session_factory: Session factory to use; defaults to the application's

    Returns:
        Sweep statistics

    Raises:
        DatabaseError: If the delete fails
    """
    started_at = utc_now()
    try:
        async with transaction(session_factory) as session:
            deleted = await NoteRepository(session).delete_expired(started_at)
    except SQLAlchemyError as e:
        logger.error("Expiry sweep failed", extra={"error": str(e)})
        raise DatabaseError("Expiry sweep failed") from e

    result = {
        "status": "completed",
        "deleted": deleted,
        "swept_at": started_at.isoformat(),
    }
    log_with_source(logger, "tasks", "info", "Expiry sweep completed", **result)
    return result


class ExpirySweeper:
    """
    Runs sweep_expired_notes on a fixed interval inside the event loop.

    A failed sweep is logged and the loop continues with the next interval.
    stop() cancels the loop; start() after stop() begins a new one.
    """

    def __init__(
        self,
        interval_seconds: float,
        session_factory: async_sessionmaker[AsyncSession] | None = None,
    ) -> None:
        self.interval_seconds = interval_seconds
        self._session_factory = session_factory
        self._task: asyncio.Task | None = None

    @property
    def running(self) -> bool:
        return self._task is not None and not self._task.done()

    def start(self) -> None:
        """Start the sweep loop. No-op if already running."""
        if self.running:
            return
        self._task = asyncio.create_task(self._run(), name="expiry-sweeper")
        logger.info(
            "Expiry sweeper started",
            extra={"interval_seconds": self.interval_seconds},
        )

    async def stop(self) -> None:
        """Cancel the sweep loop and wait for it to finish."""
        if self._task is None:
            return
        self._task.cancel()
        try:
            await self._task
        except asyncio.CancelledError:
            pass
        except Exception:
            logger.exception("Expiry sweeper exited with an error")
        self._task = None
        logger.info("Expiry sweeper stopped")

    async def restart(self) -> None:
        await self.stop()
        self.start()

    async def _run(self) -> None:
        while True:
            await asyncio.sleep(self.interval_seconds)
            try:
                await sweep_expired_notes(self._session_factory)
            except DatabaseError:
                # Already logged; try again next interval
                continue
            except Exception:
                logger.exception("Expiry sweep raised unexpectedly")
                continue
