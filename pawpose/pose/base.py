from __future__ import annotations

from abc import ABC, abstractmethod
from typing import TYPE_CHECKING, List

from pawpose.pose.types import Subject

if TYPE_CHECKING:
	from pawpose.pixel_buffer import DeviceImageBuffer


class PoseProvider(ABC):
	"""
	Model adapter interface.

	Implementations take a DeviceImageBuffer and return one mapping per detected
	subject (joint name -> DetectedPoint), in the model's own order. An empty
	list means nothing was detected. Errors may be raised freely; the
	detection adapter absorbs them.
	"""

	@abstractmethod
	def name(self) -> str: ...

	@abstractmethod
	def infer(self, buffer: "DeviceImageBuffer") -> List[Subject]: ...

	@abstractmethod
	def close(self) -> None: ...
