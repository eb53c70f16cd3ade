"""
Expiry Sweep Scheduler.

Fires the expiry sweep on the cron expression in notes.yaml
(notes.sweeper.cron, evaluated in UTC) by sending it to the taskiq broker.
Use this instead of the in-process sweeper when several API replicas share
one database; set features.expiry_sweeper_enabled to false on the replicas.

Usage:
    python run.py --action scheduler
    taskiq scheduler notevault.backend.tasks.scheduler:scheduler

Run exactly one scheduler process; each extra one sends every sweep again.
"""

from typing import TYPE_CHECKING

from notevault.backend.core.logging import get_logger

if TYPE_CHECKING:
    from taskiq import TaskiqScheduler

logger = get_logger(__name__)

_scheduler: "TaskiqScheduler | None" = None


def create_scheduler() -> "TaskiqScheduler":
    """Build a scheduler reading the schedule labels of the registered tasks."""
    from taskiq import TaskiqScheduler
    from taskiq.schedule_sources import LabelScheduleSource

    from notevault.backend.tasks.broker import get_broker
    from notevault.backend.tasks.scheduled import build_schedule, register_scheduled_tasks

    broker = get_broker()
    register_scheduled_tasks()

    scheduler = TaskiqScheduler(broker=broker, sources=[LabelScheduleSource(broker)])

    for name, entry in build_schedule().items():
        logger.info(
            "Scheduled task registered",
            extra={"task": name, "schedule": entry["schedule"]},
        )
    return scheduler


def get_scheduler() -> "TaskiqScheduler":
    """Return the process-wide scheduler, creating it on first use."""
    global _scheduler
    if _scheduler is None:
        _scheduler = create_scheduler()
    return _scheduler


def __getattr__(name: str):
    # `taskiq scheduler module:scheduler` resolves the attribute lazily
    if name == "scheduler":
        return get_scheduler()
    raise AttributeError(f"module {__name__!r} has no attribute {name!r}")
