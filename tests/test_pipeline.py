from __future__ import annotations

import asyncio
import http.client
import urllib.request

from pawpose.acquisition import ImageAcquisition, build_image_url
from pawpose.config import AppConfig, CorpusConfig, SchedulerConfig
from pawpose.errors import BufferAllocationError
from pawpose.pipeline import PosePipeline, build_pipeline
from pawpose.pipeline_state import PipelineState, StateWriter
from pawpose.pixel_buffer import PixelBufferConverter
from pawpose.pose.adapter import PoseDetectionAdapter
from pawpose.pose.types import DetectedPoint
from pawpose.scheduler import SchedulerState

from conftest import FakePoseProvider, make_jpeg


BASE = "https://x/"


def _pipeline(provider=None, max_in_flight: int = 2, queue_size: int = 8, max_index: int = 20) -> PosePipeline:
	return PosePipeline(
		ImageAcquisition(BASE, max_index=max_index),
		PixelBufferConverter(),
		PoseDetectionAdapter(provider or FakePoseProvider()),
		StateWriter(PipelineState()),
		max_in_flight=max_in_flight,
		queue_size=queue_size,
	)


def test_tick_publishes_image_and_joints(fake_corpus):
	fake_corpus.images[build_image_url(BASE, 6)] = make_jpeg(16, 12)

	async def run():
		p = _pipeline()
		p.start()
		p.trigger(1, 6)
		await p.join()
		await p.stop()
		p.close()
		return p

	p = asyncio.run(run())
	snap = p.state.read()
	assert snap.current_image.index == 6
	assert (snap.current_image.width, snap.current_image.height) == (16, 12)
	assert set(snap.current_observation) == {"nose"}
	assert snap.sequence == 1
	assert p.dbg["ticks_completed"] == 1


def test_failed_fetch_keeps_previous_image(fake_corpus):
	fake_corpus.images[build_image_url(BASE, 6)] = make_jpeg()
	# index 7 is missing -> 404

	async def run():
		p = _pipeline()
		p.start()
		p.trigger(1, 6)
		await p.join()
		before = p.state.read()
		p.trigger(2, 7)
		await p.join()
		await p.stop()
		p.close()
		return p, before

	p, before = asyncio.run(run())
	after = p.state.read()
	assert after.current_image.index == 6
	assert after == before
	assert p.dbg["acquisition_errors"] == 1
	assert p.writer.stats["applied"] == 1


def test_empty_detection_still_updates_image(fake_corpus):
	fake_corpus.images[build_image_url(BASE, 1)] = make_jpeg()
	fake_corpus.images[build_image_url(BASE, 2)] = make_jpeg()
	answers = [[{"nose": DetectedPoint(1.0, 1.0, 1.0)}], []]
	provider = FakePoseProvider(lambda b: answers.pop(0))

	async def run():
		p = _pipeline(provider, max_in_flight=1)
		p.start()
		p.trigger(1, 1)
		p.trigger(2, 2)
		await p.join()
		await p.stop()
		p.close()
		return p

	p = asyncio.run(run())
	snap = p.state.read()
	assert snap.current_image.index == 2
	assert snap.current_observation == {}


def test_buffer_failure_drops_tick(fake_corpus, monkeypatch):
	fake_corpus.images[build_image_url(BASE, 1)] = make_jpeg()

	def refuse(self, image):
		raise BufferAllocationError(image.width, image.height, "no memory")

	monkeypatch.setattr(PixelBufferConverter, "convert", refuse)
	provider = FakePoseProvider()

	async def run():
		p = _pipeline(provider)
		result = await p.run_tick(1, 1)
		p.close()
		return p, result

	p, result = asyncio.run(run())
	assert result is None
	assert p.dbg["buffer_errors"] == 1
	assert provider.calls == []
	assert p.state.read().current_image is None


def test_full_queue_drops_ticks():
	async def run():
		p = _pipeline(queue_size=2)
		# Workers not started: nothing drains the queue.
		for seq in range(1, 6):
			p.trigger(seq, seq)
		p.close()
		return p

	p = asyncio.run(run())
	assert p.dbg["ticks_queued"] == 2
	assert p.dbg["ticks_dropped"] == 3


def test_scheduled_run_over_small_corpus(fake_corpus):
	for i in range(1, 4):
		fake_corpus.images[build_image_url(BASE, i)] = make_jpeg()
	cfg = AppConfig(
		corpus=CorpusConfig(base_url=BASE, max_index=3),
		scheduler=SchedulerConfig(interval_seconds=0.01, max_in_flight=2),
	)

	async def run():
		pipeline, sched = build_pipeline(cfg, FakePoseProvider())
		pipeline.start()
		sched.start()
		await asyncio.wait_for(sched.wait_stopped(), timeout=5)
		await pipeline.join()
		await pipeline.stop()
		pipeline.close()
		return pipeline, sched

	pipeline, sched = asyncio.run(run())
	assert sched.state is SchedulerState.STOPPED
	assert sorted(fake_corpus.requested) == [build_image_url(BASE, i) for i in (1, 2, 3)]
	assert pipeline.state.read().current_image.index == 3
	assert pipeline.state.read().sequence == 3


def test_worker_survives_unexpected_tick_error(fake_corpus, monkeypatch):
	fake_corpus.images[build_image_url(BASE, 1)] = make_jpeg()
	fake_corpus.images[build_image_url(BASE, 2)] = make_jpeg(10, 10)
	real_convert = PixelBufferConverter.convert

	def flaky(self, image):
		if image.index == 1:
			raise RuntimeError("unexpected")
		return real_convert(self, image)

	monkeypatch.setattr(PixelBufferConverter, "convert", flaky)

	async def run():
		p = _pipeline(max_in_flight=1)
		p.start()
		p.trigger(1, 1)
		p.trigger(2, 2)
		await asyncio.wait_for(p.join(), timeout=5)
		alive = [not t.done() for t in p._workers]
		await p.stop()
		p.close()
		return p, alive

	p, alive = asyncio.run(run())
	assert alive == [True]
	assert p.dbg["tick_errors"] == 1
	assert "unexpected" in p.dbg["last_error"]
	assert p.state.read().current_image.index == 2


def test_truncated_download_counts_as_acquisition_error(fake_corpus, monkeypatch):
	fake_corpus.images[build_image_url(BASE, 2)] = make_jpeg()

	class Truncated:
		status = 200

		def read(self):
			raise http.client.IncompleteRead(b"\xff\xd8", 1000)

		def __enter__(self):
			return self

		def __exit__(self, *exc):
			return None

	def urlopen(req, timeout=None):
		if req.full_url == build_image_url(BASE, 1):
			return Truncated()
		return fake_corpus(req, timeout=timeout)

	monkeypatch.setattr(urllib.request, "urlopen", urlopen)

	async def run():
		p = _pipeline(max_in_flight=1)
		p.start()
		p.trigger(1, 1)
		p.trigger(2, 2)
		await asyncio.wait_for(p.join(), timeout=5)
		await p.stop()
		p.close()
		return p

	p = asyncio.run(run())
	assert p.dbg["acquisition_errors"] == 1
	assert p.dbg["tick_errors"] == 0
	assert p.state.read().current_image.index == 2
