"""
Tick execution: fetch -> convert -> detect -> hand off to the state writer.

Scheduler triggers land on a bounded queue served by a fixed pool of worker
tasks, so a slow corpus or model never piles up unbounded concurrent runs.
When the queue is full the tick is dropped.
"""

from __future__ import annotations

import asyncio
import logging
import time
from typing import Any, Dict, List, Optional, Tuple

from pawpose.acquisition import ImageAcquisition
from pawpose.config import AppConfig
from pawpose.errors import AcquisitionError, BufferAllocationError
from pawpose.pipeline_state import PipelineState, StateWriter, TickResult
from pawpose.pixel_buffer import PixelBufferConverter
from pawpose.pose.adapter import PoseDetectionAdapter
from pawpose.pose.base import PoseProvider
from pawpose.scheduler import PollingScheduler


logger = logging.getLogger(__name__)


class PosePipeline:
	def __init__(
		self,
		acquisition: ImageAcquisition,
		converter: PixelBufferConverter,
		detector: PoseDetectionAdapter,
		writer: StateWriter,
		max_in_flight: int = 4,
		queue_size: int = 8,
	) -> None:
		self.acquisition = acquisition
		self.converter = converter
		self.detector = detector
		self.writer = writer
		self._max_in_flight = max(1, int(max_in_flight))
		self._queue: asyncio.Queue[Tuple[int, int]] = asyncio.Queue(maxsize=max(1, int(queue_size)))
		self._workers: List[asyncio.Task] = []
		self._in_flight = 0
		self.dbg: Dict[str, Any] = {
			"ticks_queued": 0,
			"ticks_dropped": 0,
			"ticks_completed": 0,
			"acquisition_errors": 0,
			"buffer_errors": 0,
			"tick_errors": 0,
			"last_index": None,
			"last_error": None,
			"last_tick_ms": None,
		}

	@property
	def state(self) -> PipelineState:
		return self.writer.state

	def start(self) -> None:
		self.writer.start()
		if self._workers:
			return
		for n in range(self._max_in_flight):
			self._workers.append(asyncio.create_task(self._worker_loop(), name=f"tick-worker-{n}"))

	async def stop(self) -> None:
		for t in self._workers:
			t.cancel()
		for t in self._workers:
			try:
				await t
			except asyncio.CancelledError:
				pass
		self._workers = []
		await self.writer.stop()

	def trigger(self, sequence: int, index: int) -> None:
		"""Scheduler callback. Never blocks."""
		try:
			self._queue.put_nowait((int(sequence), int(index)))
			self.dbg["ticks_queued"] += 1
		except asyncio.QueueFull:
			self.dbg["ticks_dropped"] += 1
			logger.warning("[Pipeline] queue full; dropped tick for index %d", index)

	async def join(self) -> None:
		"""Wait for queued ticks to finish and their results to be applied."""
		await self._queue.join()
		await self.writer.drain()

	async def _worker_loop(self) -> None:
		while True:
			sequence, index = await self._queue.get()
			self._in_flight += 1
			try:
				await self.run_tick(sequence, index)
			except Exception as e:
				self.dbg["tick_errors"] += 1
				self.dbg["last_error"] = f"tick: {e!r}"
				logger.exception("[Pipeline] tick %d (index %d) failed", sequence, index)
			finally:
				self._in_flight -= 1
				self._queue.task_done()

	async def run_tick(self, sequence: int, index: int) -> Optional[TickResult]:
		"""
		Run one tick. Returns the result handed to the writer, or None when the
		tick was dropped (state untouched).
		"""
		t0 = time.monotonic()
		self.dbg["last_index"] = int(index)
		try:
			raw = await self.acquisition.fetch(index)
		except AcquisitionError as e:
			self.dbg["acquisition_errors"] += 1
			self.dbg["last_error"] = f"acquire: {e}"
			logger.warning("[Pipeline] tick %d dropped, fetch failed: %s", sequence, e)
			return None
		try:
			buffer = self.converter.convert(raw)
		except BufferAllocationError as e:
			self.dbg["buffer_errors"] += 1
			self.dbg["last_error"] = f"buffer: {e}"
			logger.warning("[Pipeline] tick %d dropped, no pixel buffer: %s", sequence, e)
			return None
		observation = await self.detector.detect(buffer)
		del buffer

		result = TickResult(sequence=int(sequence), index=int(index), image=raw, observation=observation)
		self.writer.submit(result)
		self.dbg["ticks_completed"] += 1
		self.dbg["last_tick_ms"] = round((time.monotonic() - t0) * 1000.0, 1)
		logger.info("[Pipeline] index %d: %d joints", index, len(observation))
		return result

	def status(self) -> Dict[str, Any]:
		return {
			**self.dbg,
			"queue_size": self._queue.qsize(),
			"in_flight": self._in_flight,
			"workers": len(self._workers),
			"pose": self.detector.status(),
			"state_writer": self.writer.status(),
		}

	def close(self) -> None:
		self.detector.close()


def build_pipeline(cfg: AppConfig, provider: PoseProvider) -> Tuple[PosePipeline, PollingScheduler]:
	"""Wire every component from config. Nothing is started."""
	acquisition = ImageAcquisition(
		base_url=cfg.corpus.base_url,
		max_index=cfg.corpus.max_index,
		suffix=cfg.corpus.suffix,
		timeout_seconds=cfg.corpus.timeout_seconds,
		user_agent=cfg.corpus.user_agent,
	)
	detector = PoseDetectionAdapter(provider, min_confidence=cfg.pose.min_confidence)
	writer = StateWriter(PipelineState(discard_stale=cfg.state.discard_stale))
	pipeline = PosePipeline(
		acquisition,
		PixelBufferConverter(),
		detector,
		writer,
		max_in_flight=cfg.scheduler.max_in_flight,
		queue_size=cfg.scheduler.queue_size,
	)
	scheduler = PollingScheduler(
		pipeline.trigger,
		max_index=cfg.corpus.max_index,
		start_index=cfg.scheduler.start_index,
		interval_seconds=cfg.scheduler.interval_seconds,
	)
	return pipeline, scheduler
