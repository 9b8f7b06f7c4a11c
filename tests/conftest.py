from __future__ import annotations

import io
import urllib.error
import urllib.request
from typing import Callable, Dict, List, Optional

import pytest
from PIL import Image

from pawpose.pose.base import PoseProvider
from pawpose.pose.types import DetectedPoint


def make_jpeg(width: int = 32, height: int = 24, color=(200, 40, 10)) -> bytes:
	buf = io.BytesIO()
	Image.new("RGB", (width, height), color).save(buf, format="JPEG")
	return buf.getvalue()


class FakeResponse:
	def __init__(self, body: bytes, status: int = 200) -> None:
		self.status = status
		self._body = body

	def read(self) -> bytes:
		return self._body

	def __enter__(self):
		return self

	def __exit__(self, *exc) -> None:
		return None


class FakeCorpus:
	"""
	Stand-in for urllib.request.urlopen. `images` maps URL -> bytes; anything
	missing is a 404. `fail` holds URLs that raise a network error.
	"""

	def __init__(self) -> None:
		self.images: Dict[str, bytes] = {}
		self.fail: set = set()
		self.requested: List[str] = []

	def __call__(self, req, timeout: Optional[float] = None):
		url = req.full_url if hasattr(req, "full_url") else str(req)
		self.requested.append(url)
		if url in self.fail:
			raise urllib.error.URLError("connection refused")
		if url not in self.images:
			raise urllib.error.HTTPError(url, 404, "Not Found", hdrs=None, fp=None)
		return FakeResponse(self.images[url])


class FakePoseProvider(PoseProvider):
	"""Returns whatever `respond(buffer)` returns; records every call."""

	def __init__(self, respond: Optional[Callable] = None) -> None:
		self._respond = respond or (lambda buffer: [{"nose": DetectedPoint(1.0, 2.0, 0.9)}])
		self.calls: List = []
		self.closed = False

	def name(self) -> str:
		return "fake"

	def infer(self, buffer):
		self.calls.append((buffer.width, buffer.height, buffer.pixel_format))
		return self._respond(buffer)

	def close(self) -> None:
		self.closed = True


@pytest.fixture
def fake_corpus(monkeypatch) -> FakeCorpus:
	corpus = FakeCorpus()
	monkeypatch.setattr(urllib.request, "urlopen", corpus)
	return corpus


@pytest.fixture
def fake_provider() -> FakePoseProvider:
	return FakePoseProvider()
