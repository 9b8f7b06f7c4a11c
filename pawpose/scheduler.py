"""
Fixed-cadence polling over the corpus index range.

    idle --start()--> running --cursor > max_index / stop()--> stopped

start() fires a run for the start index right away; every interval after
that the cursor advances by one and fires again, until it passes max_index.
Runs are fire-and-forget: the trigger callback must not block.
"""

from __future__ import annotations

import asyncio
import logging
from enum import Enum
from typing import Any, Callable, Dict, Optional


logger = logging.getLogger(__name__)

# trigger(sequence, index)
Trigger = Callable[[int, int], None]


class SchedulerState(str, Enum):
	IDLE = "idle"
	RUNNING = "running"
	STOPPED = "stopped"


class PollingScheduler:
	def __init__(
		self,
		trigger: Trigger,
		max_index: int,
		start_index: int = 1,
		interval_seconds: float = 1.0,
		first_sequence: int = 1,
	) -> None:
		if float(interval_seconds) <= 0.0:
			raise ValueError("interval_seconds must be > 0")
		self._trigger = trigger
		self.max_index = int(max_index)
		self.start_index = int(start_index)
		self.interval_seconds = float(interval_seconds)
		self.cursor = self.start_index
		self.state = SchedulerState.IDLE
		self.triggered = 0
		# Sequence numbers keep increasing across scheduler restarts.
		self._sequence = int(first_sequence) - 1
		self._task: Optional[asyncio.Task] = None

	@property
	def sequence(self) -> int:
		return self._sequence

	def start(self) -> None:
		if self.state is not SchedulerState.IDLE:
			logger.warning("[Scheduler] start() ignored in state %s", self.state.value)
			return
		if self.start_index < 1 or self.start_index > self.max_index:
			logger.info("[Scheduler] start index %d outside [1, %d]; nothing to do", self.start_index, self.max_index)
			self.state = SchedulerState.STOPPED
			return
		self.state = SchedulerState.RUNNING
		logger.info(
			"[Scheduler] started at %d (max %d, every %.3fs)",
			self.cursor,
			self.max_index,
			self.interval_seconds,
		)
		self._fire(self.cursor)
		self._task = asyncio.create_task(self._run(), name="polling-scheduler")

	def tick(self) -> bool:
		"""
		Advance one step. Returns False once the scheduler is stopped.
		"""
		if self.state is not SchedulerState.RUNNING:
			return False
		self.cursor += 1
		if self.cursor > self.max_index:
			self.state = SchedulerState.STOPPED
			logger.info("[Scheduler] reached max index %d; stopped after %d runs", self.max_index, self.triggered)
			return False
		self._fire(self.cursor)
		return True

	def stop(self) -> None:
		if self.state is SchedulerState.STOPPED:
			return
		self.state = SchedulerState.STOPPED
		logger.info("[Scheduler] stopped at cursor %d", self.cursor)
		if self._task is not None and not self._task.done() and self._task is not asyncio.current_task():
			self._task.cancel()

	async def wait_stopped(self) -> None:
		if self._task is None:
			return
		try:
			await self._task
		except asyncio.CancelledError:
			pass

	async def _run(self) -> None:
		loop = asyncio.get_running_loop()
		next_at = loop.time()
		while self.state is SchedulerState.RUNNING:
			# Fixed rate: deadlines don't drift with trigger latency.
			next_at += self.interval_seconds
			await asyncio.sleep(max(0.0, next_at - loop.time()))
			if not self.tick():
				return

	def _fire(self, index: int) -> None:
		self._sequence += 1
		self.triggered += 1
		try:
			self._trigger(self._sequence, index)
		except Exception:
			logger.exception("[Scheduler] trigger failed for index %d", index)

	def status(self) -> Dict[str, Any]:
		return {
			"state": self.state.value,
			"cursor": self.cursor,
			"start_index": self.start_index,
			"max_index": self.max_index,
			"interval_seconds": self.interval_seconds,
			"triggered": self.triggered,
			"sequence": self._sequence,
		}
