"""
Pipeline error taxonomy.

Every error here is recovered inside the tick that raised it; none of them
stop the scheduler.
"""

from __future__ import annotations

from typing import Optional


class PipelineError(Exception):
	"""Base class for per-tick failures."""


class AcquisitionError(PipelineError):
	"""Network failure, non-2xx response, bad URL or undecodable image bytes."""

	def __init__(self, index: int, url: Optional[str], reason: str) -> None:
		self.index = int(index)
		self.url = url
		self.reason = str(reason)
		super().__init__(f"index={self.index} url={url!r}: {self.reason}")


class BufferAllocationError(PipelineError):
	"""Pixel buffer could not be built for the given dimensions."""

	def __init__(self, width: int, height: int, reason: str) -> None:
		self.width = int(width)
		self.height = int(height)
		self.reason = str(reason)
		super().__init__(f"{self.width}x{self.height}: {self.reason}")


class DetectionError(PipelineError):
	"""Pose model invocation failed."""
