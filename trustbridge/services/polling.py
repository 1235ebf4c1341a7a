"""
Status Poller

Tracks submitted transfers until they reach a terminal status or exhaust
their poll budget. A single shared scheduler drives ``tick()``; each tick is
one sequential pass over every active task. Tests call ``tick()`` directly
with an injected clock instead of waiting on the timer.
"""

from __future__ import annotations

import asyncio
import logging
import time
from dataclasses import dataclass
from typing import Any, Awaitable, Callable, Dict, List, Optional, Protocol

from ..types import TransactionStatusValue, is_terminal_status
from .backend import BackendClient
from .messaging import Messenger
from .notifications import format_polling_error, format_status_update, format_timeout


@dataclass
class PollingTask:
    transfer_id: str
    chat_id: str
    start_time: float
    last_status: str = TransactionStatusValue.PENDING.value
    poll_count: int = 0
    error_count: int = 0

    def to_dict(self) -> Dict[str, Any]:
        return {
            "transferId": self.transfer_id,
            "chatId": self.chat_id,
            "startTime": self.start_time,
            "lastStatus": self.last_status,
            "pollCount": self.poll_count,
            "errorCount": self.error_count,
        }


class Scheduler(Protocol):
    @property
    def running(self) -> bool: ...

    def start(self) -> None: ...

    def stop(self) -> None: ...


class IntervalScheduler:
    """Calls an async callback every ``interval`` seconds on the running loop.

    The next sleep starts only after the callback returns, so ticks never
    overlap.
    """

    def __init__(
        self,
        interval: float,
        callback: Callable[[], Awaitable[None]],
        *,
        name: str = "status-poller",
        logger: Optional[logging.Logger] = None,
    ):
        self.interval = interval
        self._callback = callback
        self._name = name
        self.logger = logger or logging.getLogger(__name__)
        self._task: Optional[asyncio.Task] = None

    @property
    def running(self) -> bool:
        return self._task is not None and not self._task.done()

    def start(self) -> None:
        if self.running:
            return
        self.logger.info("Starting %s loop (every %ss)", self._name, self.interval)
        self._task = asyncio.create_task(self._run(), name=self._name)

    def stop(self) -> None:
        if self._task is None:
            return
        task, self._task = self._task, None
        if task is not asyncio.current_task():
            task.cancel()
        # Stopped from inside a tick: the loop exits once the tick returns
        self.logger.info("%s loop stopped", self._name)

    async def _run(self) -> None:
        try:
            while True:
                await asyncio.sleep(self.interval)
                try:
                    await self._callback()
                except Exception as exc:  # noqa: BLE001
                    self.logger.error("%s tick crashed: %s", self._name, exc, exc_info=True)
                if self._task is not asyncio.current_task():
                    return
        except asyncio.CancelledError:
            return


class StatusPoller:
    """Polls the backend for status changes of submitted transfers."""

    def __init__(
        self,
        backend: BackendClient,
        messenger: Messenger,
        *,
        poll_interval_seconds: float = 15.0,
        max_duration_seconds: float = 30 * 60,
        max_poll_count: int = 120,
        max_error_polls: int = 10,
        clock: Optional[Callable[[], float]] = None,
        scheduler: Optional[Scheduler] = None,
        logger: Optional[logging.Logger] = None,
    ):
        self.backend = backend
        self.messenger = messenger
        self.max_duration_seconds = max_duration_seconds
        self.max_poll_count = max_poll_count
        self.max_error_polls = max_error_polls
        self._clock = clock or time.monotonic
        self.logger = logger or logging.getLogger(__name__)
        self._tasks: Dict[str, PollingTask] = {}
        self.scheduler: Scheduler = scheduler or IntervalScheduler(
            poll_interval_seconds,
            self.tick,
            logger=self.logger,
        )

    # ---------------------------
    # Registration
    # ---------------------------
    def start_polling(self, transfer_id: str, chat_id: str) -> bool:
        """Track a transfer. Returns False when it is already tracked."""
        if transfer_id in self._tasks:
            self.logger.warning("Already polling for transfer %s", transfer_id)
            return False

        self._tasks[transfer_id] = PollingTask(
            transfer_id=transfer_id,
            chat_id=chat_id,
            start_time=self._clock(),
        )
        self.logger.info("Started polling for transfer %s", transfer_id)

        if not self.scheduler.running:
            self.scheduler.start()
        return True

    def stop_polling(self, transfer_id: str) -> None:
        if self._tasks.pop(transfer_id, None) is not None:
            self.logger.info("Stopped polling for transfer %s", transfer_id)

        if not self._tasks and self.scheduler.running:
            self.scheduler.stop()
            self.logger.info("Polling loop stopped (no active tasks)")

    def stop_all(self) -> None:
        self.scheduler.stop()
        self._tasks.clear()
        self.logger.info("All polling tasks stopped")

    # ---------------------------
    # Polling
    # ---------------------------
    async def tick(self) -> None:
        for task in list(self._tasks.values()):
            # A task may have been stopped while an earlier one awaited
            if self._tasks.get(task.transfer_id) is not task:
                continue
            await self._poll_task(task)

    async def _poll_task(self, task: PollingTask) -> None:
        task.poll_count += 1
        elapsed = self._clock() - task.start_time

        if elapsed > self.max_duration_seconds or task.poll_count > self.max_poll_count:
            self.logger.warning(
                "Polling timeout for transfer %s (polls=%d, elapsed=%.0fs)",
                task.transfer_id,
                task.poll_count,
                elapsed,
            )
            self.stop_polling(task.transfer_id)
            await self._send(task, format_timeout(task))
            return

        try:
            status = await self.backend.get_transaction_status(task.transfer_id)
        except Exception as exc:  # noqa: BLE001
            task.error_count += 1
            self.logger.error(
                "Error polling transfer %s (errors=%d): %s",
                task.transfer_id,
                task.error_count,
                exc,
            )
            if task.poll_count > self.max_error_polls:
                self.stop_polling(task.transfer_id)
                await self._send(task, format_polling_error(task))
            return

        current = status.status
        if current.upper() == task.last_status.upper():
            return

        self.logger.info("Transfer %s status changed: %s -> %s", task.transfer_id, task.last_status, current)
        task.last_status = current
        terminal = is_terminal_status(current)
        if terminal:
            self.stop_polling(task.transfer_id)

        details = None
        if current.upper() == TransactionStatusValue.COMPLETED.value:
            details = await self._fetch_details(task)
        await self._send(task, format_status_update(task, current, details))

    async def _fetch_details(self, task: PollingTask) -> Optional[Dict[str, Any]]:
        try:
            return await self.backend.get_transaction_details(task.transfer_id)
        except Exception as exc:  # noqa: BLE001
            self.logger.error("Failed to fetch transfer details for %s: %s", task.transfer_id, exc)
            return None

    async def _send(self, task: PollingTask, text: str) -> None:
        try:
            await self.messenger.send_message(task.chat_id, text)
            self.logger.info("Status update sent to %s for transfer %s", task.chat_id, task.transfer_id)
        except Exception as exc:  # noqa: BLE001
            self.logger.error("Failed to send update for transfer %s: %s", task.transfer_id, exc)

    # ---------------------------
    # Introspection
    # ---------------------------
    def get_task(self, transfer_id: str) -> Optional[PollingTask]:
        return self._tasks.get(transfer_id)

    @property
    def active_count(self) -> int:
        return len(self._tasks)

    def active_transfers(self) -> List[str]:
        return list(self._tasks)

    def stats(self) -> Dict[str, Any]:
        return {
            "active": self.active_count,
            "running": self.scheduler.running,
            "tasks": [task.to_dict() for task in self._tasks.values()],
        }
