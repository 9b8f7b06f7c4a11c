"""
Image acquisition from the remote corpus.

The corpus is addressed by a 1-based integer index; image ``i`` lives at
``f"{base_url}{i}{suffix}"``. Downloads use a blocking urllib request run in
the default executor so the event loop keeps ticking while bytes arrive.
"""

from __future__ import annotations

import asyncio
import http.client
import io
import logging
import time
import urllib.error
import urllib.parse
import urllib.request
from dataclasses import dataclass, field

from PIL import Image, UnidentifiedImageError

from pawpose.errors import AcquisitionError


logger = logging.getLogger(__name__)

DEFAULT_SUFFIX = ".jpg?raw=true"


@dataclass(frozen=True)
class RawImage:
	"""A decoded corpus image (always RGB)."""

	index: int
	url: str
	image: Image.Image = field(compare=False, repr=False)
	fetched_at: float = field(default=0.0, compare=False)

	@property
	def width(self) -> int:
		return int(self.image.width)

	@property
	def height(self) -> int:
		return int(self.image.height)


def build_image_url(base_url: str, index: int, suffix: str = DEFAULT_SUFFIX) -> str:
	return f"{base_url}{int(index)}{suffix}"


def parse_image_url(url: str, base_url: str, suffix: str = DEFAULT_SUFFIX) -> int:
	"""
	Inverse of build_image_url. Raises ValueError if url was not built from
	base_url/suffix.
	"""
	if not url.startswith(base_url) or not url.endswith(suffix):
		raise ValueError(f"not a corpus URL: {url!r}")
	middle = url[len(base_url):len(url) - len(suffix)] if suffix else url[len(base_url):]
	if not middle.isdigit():
		raise ValueError(f"no index in corpus URL: {url!r}")
	return int(middle)


def decode_image(index: int, url: str, data: bytes) -> RawImage:
	if not data:
		raise AcquisitionError(index, url, "empty response body")
	try:
		im = Image.open(io.BytesIO(data))
		im.load()
	except (UnidentifiedImageError, Image.DecompressionBombError, OSError, ValueError) as e:
		raise AcquisitionError(index, url, f"undecodable image: {e}") from e
	if im.mode != "RGB":
		im = im.convert("RGB")
	return RawImage(index=int(index), url=url, image=im, fetched_at=time.time())


class ImageAcquisition:
	def __init__(
		self,
		base_url: str,
		max_index: int,
		suffix: str = DEFAULT_SUFFIX,
		timeout_seconds: float = 10.0,
		user_agent: str = "pawpose/0.1",
	) -> None:
		self.base_url = str(base_url)
		self.max_index = int(max_index)
		self.suffix = str(suffix)
		self._timeout = float(timeout_seconds)
		self._user_agent = str(user_agent)

	def url_for(self, index: int) -> str:
		return build_image_url(self.base_url, index, self.suffix)

	async def fetch(self, index: int) -> RawImage:
		index = int(index)
		if index < 1 or index > self.max_index:
			raise AcquisitionError(index, None, f"index outside [1, {self.max_index}]")
		url = self.url_for(index)
		loop = asyncio.get_running_loop()
		data = await loop.run_in_executor(None, self._download, index, url)
		raw = decode_image(index, url, data)
		logger.debug("[Acquire] index=%d %dx%d (%d bytes)", index, raw.width, raw.height, len(data))
		return raw

	def _download(self, index: int, url: str) -> bytes:
		parts = urllib.parse.urlsplit(url)
		if parts.scheme not in ("http", "https") or not parts.netloc:
			raise AcquisitionError(index, url, "malformed URL")
		req = urllib.request.Request(url, headers={"User-Agent": self._user_agent})
		try:
			with urllib.request.urlopen(req, timeout=self._timeout) as resp:
				status = int(getattr(resp, "status", 200) or 200)
				if status < 200 or status >= 300:
					raise AcquisitionError(index, url, f"HTTP {status}")
				return resp.read()
		except urllib.error.HTTPError as e:
			raise AcquisitionError(index, url, f"HTTP {e.code}") from e
		except (urllib.error.URLError, http.client.HTTPException, OSError, ValueError) as e:
			raise AcquisitionError(index, url, f"network error: {e}") from e
