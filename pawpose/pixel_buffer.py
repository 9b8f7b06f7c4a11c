from __future__ import annotations

import logging
import threading
from contextlib import contextmanager
from typing import Iterator, Union

import numpy as np
from PIL import Image

from pawpose.acquisition import RawImage
from pawpose.errors import BufferAllocationError


logger = logging.getLogger(__name__)

# 32 bits per pixel: one skipped byte (alpha position, always 0xFF), then R, G, B.
PIXEL_FORMAT = "XRGB32"
BYTES_PER_PIXEL = 4


class DeviceImageBuffer:
	"""
	Pixel memory in the layout the pose model consumes.

	Writers must hold `locked()` while touching the backing array.
	"""

	def __init__(self, width: int, height: int) -> None:
		width, height = int(width), int(height)
		if width <= 0 or height <= 0:
			raise BufferAllocationError(width, height, "zero-sized image")
		try:
			self._data = np.zeros((height, width, BYTES_PER_PIXEL), dtype=np.uint8)
		except (MemoryError, ValueError) as e:
			raise BufferAllocationError(width, height, f"allocation failed: {e}") from e
		self._width = width
		self._height = height
		self._lock = threading.Lock()

	@property
	def width(self) -> int:
		return self._width

	@property
	def height(self) -> int:
		return self._height

	@property
	def pixel_format(self) -> str:
		return PIXEL_FORMAT

	@property
	def bytes_per_row(self) -> int:
		return self._width * BYTES_PER_PIXEL

	@property
	def is_locked(self) -> bool:
		return self._lock.locked()

	@contextmanager
	def locked(self) -> Iterator[np.ndarray]:
		with self._lock:
			yield self._data

	def rgb(self) -> np.ndarray:
		"""Contiguous HxWx3 uint8 copy of the colour channels."""
		with self._lock:
			return np.ascontiguousarray(self._data[:, :, 1:4])

	def tobytes(self) -> bytes:
		with self._lock:
			return self._data.tobytes()


class PixelBufferConverter:
	"""Draws a decoded bitmap into a fresh DeviceImageBuffer (no crop, no letterbox)."""

	pixel_format = PIXEL_FORMAT

	def convert(self, image: Union[RawImage, Image.Image]) -> DeviceImageBuffer:
		src = image.image if isinstance(image, RawImage) else image
		width, height = int(src.width), int(src.height)
		buf = DeviceImageBuffer(width, height)
		rgb = src if src.mode == "RGB" else src.convert("RGB")
		try:
			pixels_in = np.asarray(rgb, dtype=np.uint8)
			with buf.locked() as pixels:
				pixels[:, :, 0] = 0xFF
				pixels[:, :, 1:4] = pixels_in[:height, :width, :3]
		except (MemoryError, ValueError) as e:
			raise BufferAllocationError(width, height, f"copy failed: {e}") from e
		logger.debug("[Buffer] %dx%d %s", width, height, PIXEL_FORMAT)
		return buf
