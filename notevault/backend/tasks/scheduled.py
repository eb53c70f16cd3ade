"""
Scheduled Background Tasks.

The expiry sweep as a taskiq task. Its cron expression (notes.sweeper.cron)
is attached as a schedule label, which the scheduler's LabelScheduleSource
picks up. Workers and the scheduler both call register_scheduled_tasks()
before use.

Schedule table entries:

    function        plain coroutine function, wrapped by broker.task
    schedule        taskiq label, e.g. [{"cron": "*/45 * * * *"}]
    retry_on_error  whether taskiq's retry middleware may re-run a failure
    max_retries     optional cap when retry_on_error is on
"""

from typing import Any

from notevault.backend.core.logging import get_logger
from notevault.backend.tasks.sweeper import sweep_expired_notes

logger = get_logger(__name__)


async def expiry_sweep() -> dict[str, Any]:
    """Delete every note whose expires_at has passed; returns sweep statistics."""
    return await sweep_expired_notes()


def build_schedule() -> dict[str, dict[str, Any]]:
    from notevault.backend.core.config import get_app_config

    cron = get_app_config().notes.sweeper.cron
    return {
        "expiry_sweep": {
            "function": expiry_sweep,
            "schedule": [{"cron": cron}],
            # A failed sweep is covered by the next scheduled one
            "retry_on_error": False,
            "description": "Delete notes whose lifetime has passed",
        },
    }


def register_scheduled_tasks() -> dict[str, Any]:
    """Wrap each schedule entry with broker.task; returns tasks by name."""
    from notevault.backend.tasks.broker import get_broker

    broker = get_broker()
    registered: dict[str, Any] = {}
    for name, entry in build_schedule().items():
        options = {
            "task_name": name,
            "schedule": entry["schedule"],
            "retry_on_error": entry.get("retry_on_error", False),
        }
        if "max_retries" in entry:
            options["max_retries"] = entry["max_retries"]
        registered[name] = broker.task(**options)(entry["function"])

    logger.info("Scheduled tasks registered", extra={"tasks": sorted(registered)})
    return registered
