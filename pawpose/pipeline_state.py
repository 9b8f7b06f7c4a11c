"""
Published pipeline state and its single writer.

PipelineState holds the latest image and joint map. Completed ticks reach it
through StateWriter, one task draining a queue, so updates are applied one at
a time in arrival order; readers always see a whole snapshot.
"""

from __future__ import annotations

import asyncio
import inspect
import logging
from dataclasses import dataclass, field
from typing import Any, Awaitable, Callable, Dict, List, Optional, Union

from pawpose.acquisition import RawImage
from pawpose.pose.types import PoseObservation


logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class PipelineSnapshot:
	current_image: Optional[RawImage] = None
	current_observation: PoseObservation = field(default_factory=dict)
	# Sequence number of the tick that produced this snapshot (None before the first update).
	sequence: Optional[int] = None


@dataclass(frozen=True)
class TickResult:
	sequence: int
	index: int
	image: RawImage
	observation: PoseObservation


class PipelineState:
	def __init__(self, discard_stale: bool = True) -> None:
		self._snapshot = PipelineSnapshot()
		self._discard_stale = bool(discard_stale)
		self._last_sequence: Optional[int] = None

	@property
	def discard_stale(self) -> bool:
		return self._discard_stale

	def read(self) -> PipelineSnapshot:
		return self._snapshot

	def update(self, image: RawImage, observation: PoseObservation, sequence: Optional[int] = None) -> bool:
		"""
		Replace image and observation together. Returns False (and changes
		nothing) when sequence is older than the last applied one and stale
		results are being discarded.
		"""
		if sequence is not None and self._last_sequence is not None:
			if self._discard_stale and int(sequence) < self._last_sequence:
				return False
		seq = int(sequence) if sequence is not None else self._snapshot.sequence
		self._snapshot = PipelineSnapshot(current_image=image, current_observation=dict(observation), sequence=seq)
		if sequence is not None and (self._last_sequence is None or int(sequence) > self._last_sequence):
			self._last_sequence = int(sequence)
		return True


Listener = Callable[[PipelineSnapshot], Union[None, Awaitable[None]]]


class StateWriter:
	"""
	The only code path that calls PipelineState.update while the app runs.
	"""

	def __init__(self, state: PipelineState) -> None:
		self.state = state
		self._queue: asyncio.Queue = asyncio.Queue()
		self._listeners: List[Listener] = []
		self._task: Optional[asyncio.Task] = None
		self.stats: Dict[str, int] = {"applied": 0, "stale_discarded": 0}

	def add_listener(self, fn: Listener) -> None:
		self._listeners.append(fn)

	def submit(self, result: TickResult) -> None:
		self._queue.put_nowait(result)

	def start(self) -> asyncio.Task:
		if self._task is None or self._task.done():
			self._task = asyncio.create_task(self._run(), name="state-writer")
		return self._task

	async def stop(self) -> None:
		if self._task is None:
			return
		self._task.cancel()
		try:
			await self._task
		except asyncio.CancelledError:
			pass
		self._task = None

	async def drain(self) -> None:
		"""Wait until every submitted result has been applied or discarded."""
		await self._queue.join()

	def pending(self) -> int:
		return self._queue.qsize()

	async def _run(self) -> None:
		while True:
			result = await self._queue.get()
			try:
				await self._apply(result)
			finally:
				self._queue.task_done()

	async def _apply(self, result: TickResult) -> None:
		if not self.state.update(result.image, result.observation, sequence=result.sequence):
			self.stats["stale_discarded"] += 1
			logger.info("[State] discarded stale result seq=%d index=%d", result.sequence, result.index)
			return
		self.stats["applied"] += 1
		snap = self.state.read()
		for fn in list(self._listeners):
			try:
				out = fn(snap)
				if inspect.isawaitable(out):
					await out
			except Exception:
				logger.exception("[State] listener failed")

	def status(self) -> Dict[str, Any]:
		return {"pending": self.pending(), "discard_stale": self.state.discard_stale, **self.stats}
