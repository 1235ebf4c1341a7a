"""
Tests for the Status Poller

The poller is driven by calling tick() directly with a fake clock and a
fake scheduler, so nothing here waits on a real timer.
"""

import asyncio
from unittest.mock import AsyncMock

import pytest

from trustbridge.errors import BackendError
from trustbridge.services.messaging import LoggingMessenger
from trustbridge.services.polling import IntervalScheduler, StatusPoller
from trustbridge.types import TransactionStatus


# =============================================================================
# Fixtures
# =============================================================================

class FakeClock:
    def __init__(self, now: float = 0.0):
        self.now = now

    def __call__(self) -> float:
        return self.now


class FakeScheduler:
    def __init__(self):
        self.running = False
        self.starts = 0
        self.stops = 0

    def start(self) -> None:
        self.running = True
        self.starts += 1

    def stop(self) -> None:
        self.running = False
        self.stops += 1


def status(transfer_id: str, value: str) -> TransactionStatus:
    return TransactionStatus(transferId=transfer_id, status=value)


@pytest.fixture
def clock() -> FakeClock:
    return FakeClock()


@pytest.fixture
def scheduler() -> FakeScheduler:
    return FakeScheduler()


@pytest.fixture
def messenger() -> LoggingMessenger:
    return LoggingMessenger()


@pytest.fixture
def backend() -> AsyncMock:
    backend = AsyncMock()
    backend.get_transaction_status.return_value = status("tx-1", "PENDING")
    backend.get_transaction_details.return_value = {}
    return backend


@pytest.fixture
def poller(backend, messenger, clock, scheduler) -> StatusPoller:
    return StatusPoller(
        backend,
        messenger,
        max_duration_seconds=1800,
        max_poll_count=120,
        max_error_polls=10,
        clock=clock,
        scheduler=scheduler,
    )


# =============================================================================
# Registration
# =============================================================================

class TestRegistration:
    """start_polling / stop_polling bookkeeping."""

    def test_start_twice_tracks_one_task(self, poller: StatusPoller, scheduler: FakeScheduler):
        assert poller.start_polling("tx-1", "628111@c.us") is True
        assert poller.start_polling("tx-1", "628111@c.us") is False

        assert poller.active_count == 1
        assert scheduler.starts == 1

    def test_scheduler_stops_with_last_task(self, poller: StatusPoller, scheduler: FakeScheduler):
        poller.start_polling("tx-1", "a@c.us")
        poller.start_polling("tx-2", "b@c.us")

        poller.stop_polling("tx-1")
        assert scheduler.running is True

        poller.stop_polling("tx-2")
        assert scheduler.running is False
        assert poller.active_transfers() == []

    def test_stop_all_clears_everything(self, poller: StatusPoller, scheduler: FakeScheduler):
        poller.start_polling("tx-1", "a@c.us")
        poller.start_polling("tx-2", "b@c.us")

        poller.stop_all()

        assert poller.active_count == 0
        assert scheduler.running is False


# =============================================================================
# Ticks
# =============================================================================

class TestTick:
    """Per-task poll behaviour."""

    @pytest.mark.asyncio
    async def test_unchanged_status_sends_nothing(self, poller, backend, messenger):
        poller.start_polling("tx-1", "a@c.us")

        await poller.tick()

        assert not messenger.sent
        assert poller.get_task("tx-1").poll_count == 1

    @pytest.mark.asyncio
    async def test_pending_then_paid_notifies_once(self, poller, backend, messenger):
        poller.start_polling("tx-1", "a@c.us")

        backend.get_transaction_status.return_value = status("tx-1", "PENDING")
        await poller.tick()
        backend.get_transaction_status.return_value = status("tx-1", "PAID")
        await poller.tick()

        assert len(messenger.sent) == 1
        chat_id, text = messenger.sent[0]
        assert chat_id == "a@c.us"
        assert "Payment Confirmed" in text
        assert poller.get_task("tx-1").last_status == "PAID"

    @pytest.mark.asyncio
    async def test_terminal_status_removes_task(self, poller, backend, messenger, scheduler):
        poller.start_polling("tx-1", "a@c.us")
        backend.get_transaction_status.return_value = status("tx-1", "failed")

        await poller.tick()

        assert poller.get_task("tx-1") is None
        assert scheduler.running is False
        assert "Transaction Failed" in messenger.sent[0][1]

    @pytest.mark.asyncio
    async def test_completed_fetches_details_for_summary(self, poller, backend, messenger):
        poller.start_polling("tx-1", "a@c.us")
        backend.get_transaction_status.return_value = status("tx-1", "COMPLETED")
        backend.get_transaction_details.return_value = {
            "sender": {"amount": 100, "currency": "USDT", "totalCharged": 101.5},
            "recipient": {"amount": 1_674_000, "currency": "IDR", "name": "Budi", "bank": "BCA", "account": "123"},
            "fees": {"amount": 1.5, "percentage": 1.5},
        }

        await poller.tick()

        backend.get_transaction_details.assert_awaited_once_with("tx-1")
        assert "Transfer Completed Successfully" in messenger.sent[0][1]

    @pytest.mark.asyncio
    async def test_completed_without_details_uses_simple_text(self, poller, backend, messenger):
        poller.start_polling("tx-1", "a@c.us")
        backend.get_transaction_status.return_value = status("tx-1", "COMPLETED")
        backend.get_transaction_details.side_effect = BackendError("Transaction details", "boom")

        await poller.tick()

        assert "Transfer Completed!" in messenger.sent[0][1]
        assert poller.active_count == 0

    @pytest.mark.asyncio
    async def test_duration_timeout_sends_one_message_without_fetch(self, poller, backend, messenger, clock):
        poller.start_polling("tx-1", "a@c.us")
        clock.now += 1801

        await poller.tick()
        await poller.tick()

        backend.get_transaction_status.assert_not_awaited()
        assert len(messenger.sent) == 1
        assert "automatic updates have stopped" in messenger.sent[0][1]
        assert poller.active_count == 0

    @pytest.mark.asyncio
    async def test_poll_count_bound_triggers_timeout(self, poller, backend, messenger):
        poller.start_polling("tx-1", "a@c.us")
        poller.get_task("tx-1").poll_count = 120

        await poller.tick()

        backend.get_transaction_status.assert_not_awaited()
        assert len(messenger.sent) == 1
        assert "Transaction Status Update" in messenger.sent[0][1]
        assert poller.active_count == 0

    @pytest.mark.asyncio
    async def test_errors_below_budget_are_silent(self, poller, backend, messenger):
        poller.start_polling("tx-1", "a@c.us")
        backend.get_transaction_status.side_effect = BackendError("Transaction status", "timeout")

        for _ in range(10):
            await poller.tick()

        assert not messenger.sent
        assert poller.get_task("tx-1").error_count == 10

    @pytest.mark.asyncio
    async def test_errors_over_budget_notify_and_remove(self, poller, backend, messenger):
        poller.start_polling("tx-1", "a@c.us")
        backend.get_transaction_status.side_effect = BackendError("Transaction status", "timeout")

        for _ in range(11):
            await poller.tick()

        assert len(messenger.sent) == 1
        assert "Status Update Error" in messenger.sent[0][1]
        assert poller.active_count == 0

    @pytest.mark.asyncio
    async def test_messenger_failure_does_not_break_tick(self, poller, backend):
        poller.messenger = AsyncMock()
        poller.messenger.send_message.side_effect = RuntimeError("gateway down")
        poller.start_polling("tx-1", "a@c.us")
        backend.get_transaction_status.return_value = status("tx-1", "PROCESSING")

        await poller.tick()

        assert poller.get_task("tx-1").last_status == "PROCESSING"


# =============================================================================
# IntervalScheduler
# =============================================================================

class TestIntervalScheduler:

    @pytest.mark.asyncio
    async def test_runs_callback_until_stopped(self):
        calls = []

        async def callback():
            calls.append(1)

        scheduler = IntervalScheduler(0.01, callback)
        scheduler.start()
        assert scheduler.running is True

        await asyncio.sleep(0.05)
        scheduler.stop()
        await asyncio.sleep(0)

        assert scheduler.running is False
        assert len(calls) >= 1

    @pytest.mark.asyncio
    async def test_stop_from_inside_tick_lets_tick_finish(self):
        finished = asyncio.Event()
        scheduler = None

        async def callback():
            scheduler.stop()
            await asyncio.sleep(0)
            finished.set()

        scheduler = IntervalScheduler(0.01, callback)
        scheduler.start()

        await asyncio.wait_for(finished.wait(), timeout=1)
        assert scheduler.running is False
