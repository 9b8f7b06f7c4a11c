"""
Pose detection adapter.

Wraps a PoseProvider and turns its raw per-subject output into a
PoseObservation for the first detected subject. Provider failures never
escape `detect`; they degrade to an empty observation.
"""

from __future__ import annotations

import asyncio
import logging
import math
from concurrent.futures import ThreadPoolExecutor
from typing import Any, Dict, Mapping, Optional, Sequence

from pawpose.errors import DetectionError
from pawpose.pixel_buffer import DeviceImageBuffer
from pawpose.pose.base import PoseProvider
from pawpose.pose.types import DetectedPoint, JointRecord, PoseObservation, Subject, joint_name


logger = logging.getLogger(__name__)


def _finite(v: Optional[float]) -> bool:
	return v is not None and math.isfinite(float(v))


def observation_from_subjects(subjects: Optional[Sequence[Subject]], min_confidence: float = 0.0) -> PoseObservation:
	"""
	Keep the first subject only. Joints without a usable position are left out.
	"""
	if not subjects:
		return {}
	first = subjects[0]
	if not isinstance(first, Mapping):
		return {}
	out: PoseObservation = {}
	for name, pt in first.items():
		if not isinstance(pt, DetectedPoint):
			continue
		if not _finite(pt.x) or not _finite(pt.y):
			continue
		c = float(pt.confidence) if _finite(pt.confidence) else 0.0
		c = min(1.0, max(0.0, c))
		if c < float(min_confidence):
			continue
		key = joint_name(name)
		out[key] = JointRecord(name=key, x=float(pt.x), y=float(pt.y), confidence=c)
	return out


class PoseDetectionAdapter:
	def __init__(self, provider: PoseProvider, min_confidence: float = 0.0) -> None:
		self._provider = provider
		self._min_confidence = float(min_confidence)
		# Models are generally not thread-safe: one dedicated thread serializes requests.
		self._executor = ThreadPoolExecutor(max_workers=1, thread_name_prefix="pose")
		self._closed = False
		self.stats: Dict[str, int] = {"requests": 0, "failures": 0, "empty": 0}

	@property
	def provider_name(self) -> str:
		return self._provider.name()

	def _infer(self, buffer: DeviceImageBuffer) -> Sequence[Subject]:
		try:
			subjects = self._provider.infer(buffer)
		except DetectionError:
			raise
		except Exception as e:
			raise DetectionError(f"{self._provider.name()}: {e!r}") from e
		if subjects is None:
			return []
		if not isinstance(subjects, (list, tuple)):
			raise DetectionError(f"{self._provider.name()}: unexpected result type {type(subjects).__name__}")
		return subjects

	async def detect(self, buffer: DeviceImageBuffer) -> PoseObservation:
		self.stats["requests"] += 1
		loop = asyncio.get_running_loop()
		try:
			subjects = await loop.run_in_executor(self._executor, self._infer, buffer)
		except DetectionError as e:
			self.stats["failures"] += 1
			logger.warning("[Pose] request failed: %s", e)
			return {}
		obs = observation_from_subjects(subjects, self._min_confidence)
		if not obs:
			self.stats["empty"] += 1
			logger.debug("[Pose] no joints (%d subjects)", len(subjects))
		elif len(subjects) > 1:
			logger.debug("[Pose] %d subjects detected; using the first", len(subjects))
		return obs

	def status(self) -> Dict[str, Any]:
		return {"provider": self.provider_name, "min_confidence": self._min_confidence, **self.stats}

	def close(self) -> None:
		if self._closed:
			return
		self._closed = True
		# Runs after any in-flight inference on the same thread.
		self._executor.submit(self._provider.close)
		self._executor.shutdown(wait=True)
