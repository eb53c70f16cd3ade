"""Unit tests for broker wiring; no Redis connection is made."""

from unittest.mock import AsyncMock, MagicMock, patch

import pytest
from taskiq import TaskiqEvents

from notevault.backend.tasks import broker as broker_module


@pytest.fixture
def fake_broker():
    fake = MagicMock()
    with (
        patch.object(broker_module, "_broker", None),
        patch.object(broker_module, "create_broker", return_value=fake) as create,
    ):
        yield fake, create


class TestGetBroker:
    def test_created_once(self, fake_broker):
        fake, create = fake_broker

        assert broker_module.get_broker() is fake
        assert broker_module.get_broker() is fake
        create.assert_called_once()

    def test_worker_events_registered(self, fake_broker):
        fake, _ = fake_broker

        broker_module.get_broker()

        events = [c.args[0] for c in fake.add_event_handler.call_args_list]
        assert events == [TaskiqEvents.WORKER_STARTUP, TaskiqEvents.WORKER_SHUTDOWN]

    def test_broker_attribute_registers_tasks(self, fake_broker):
        fake, _ = fake_broker

        with patch("notevault.backend.tasks.scheduled.register_scheduled_tasks") as register:
            assert broker_module.broker is fake

        register.assert_called_once()

    def test_unknown_attribute(self):
        with pytest.raises(AttributeError):
            broker_module.not_a_broker


class TestWorkerShutdown:
    @pytest.mark.asyncio
    async def test_disposes_engine(self):
        with patch("notevault.backend.core.database.dispose_engine", AsyncMock()) as dispose:
            await broker_module._worker_shutdown(None)

        dispose.assert_awaited_once()
