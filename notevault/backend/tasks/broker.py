"""
Taskiq Broker.

Redis list-queue broker that carries the scheduled expiry sweep to workers.
Host, port and queue come from config/settings/database.yaml (redis), the
password from REDIS_PASSWORD.

Workers load the `broker` attribute, which also registers the scheduled
tasks:

    python run.py --action worker
    taskiq worker notevault.backend.tasks.broker:broker
"""

from typing import TYPE_CHECKING

from notevault.backend.core.logging import get_logger

if TYPE_CHECKING:
    from taskiq_redis import ListQueueBroker

logger = get_logger(__name__)

_broker: "ListQueueBroker | None" = None


def create_broker() -> "ListQueueBroker":
    """Build a broker with a Redis result backend; sweep results expire."""
    from taskiq_redis import ListQueueBroker, RedisAsyncResultBackend

    from notevault.backend.core.config import get_app_config, get_redis_url

    url = get_redis_url()
    queue = get_app_config().database.redis.broker

    broker = ListQueueBroker(url=url, queue_name=queue.queue_name).with_result_backend(
        RedisAsyncResultBackend(redis_url=url, result_ex_time=queue.result_expiry_seconds)
    )
    logger.debug(
        "Taskiq broker configured",
        extra={"queue_name": queue.queue_name, "result_expiry": queue.result_expiry_seconds},
    )
    return broker


async def _worker_startup(_state: object) -> None:
    logger.info("Taskiq worker starting up")


async def _worker_shutdown(_state: object) -> None:
    # Sweeps open the shared engine; release its pool with the worker.
    from notevault.backend.core.database import dispose_engine

    await dispose_engine()
    logger.info("Taskiq worker shutting down")


def get_broker() -> "ListQueueBroker":
    """Process-wide broker, created and wired to worker events on first use."""
    from taskiq import TaskiqEvents

    global _broker
    if _broker is None:
        _broker = create_broker()
        _broker.add_event_handler(TaskiqEvents.WORKER_STARTUP, _worker_startup)
        _broker.add_event_handler(TaskiqEvents.WORKER_SHUTDOWN, _worker_shutdown)
    return _broker


def __getattr__(name: str):
    if name == "broker":
        from notevault.backend.tasks.scheduled import register_scheduled_tasks

        broker = get_broker()
        register_scheduled_tasks()
        return broker
    raise AttributeError(f"module {__name__!r} has no attribute {name!r}")
