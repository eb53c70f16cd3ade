"""
Background Tasks Package.

The only background job is the expiry sweep. It runs either in-process
(ExpirySweeper, started by the application lifespan) or as a Taskiq
scheduled task with a Redis broker.

Usage (in-process, no Redis):
    from notevault.backend.tasks import ExpirySweeper, sweep_expired_notes

    result = await sweep_expired_notes()

Usage (with Redis):
    from notevault.backend.tasks import get_broker, register_scheduled_tasks

    broker = get_broker()
    scheduled = register_scheduled_tasks()

CLI Commands:
    python run.py --action worker
    python run.py --action scheduler

    # Or directly with taskiq
    taskiq worker notevault.backend.tasks.broker:broker
    taskiq scheduler notevault.backend.tasks.scheduler:scheduler

Important:
    Run only ONE scheduler instance to avoid duplicate sweeps, and disable
    features.expiry_sweeper_enabled on the API instances when the scheduler
    is used.
"""

from notevault.backend.tasks.broker import get_broker
from notevault.backend.tasks.scheduler import get_scheduler
from notevault.backend.tasks.scheduled import (
    build_schedule,
    expiry_sweep,
    register_scheduled_tasks,
)
from notevault.backend.tasks.sweeper import ExpirySweeper, sweep_expired_notes

__all__ = [
    # Broker and scheduler
    "get_broker",
    "get_scheduler",
    # Registration
    "build_schedule",
    "register_scheduled_tasks",
    # Sweep (callable directly without Redis)
    "ExpirySweeper",
    "expiry_sweep",
    "sweep_expired_notes",
]


def __getattr__(name: str):
    """Lazy attribute access for broker and scheduler."""
    if name == "broker":
        return get_broker()
    if name == "scheduler":
        return get_scheduler()
    raise AttributeError(f"module {__name__!r} has no attribute {name!r}")
