from __future__ import annotations

import asyncio

import pytest

from pawpose.scheduler import PollingScheduler, SchedulerState


class Recorder:
	def __init__(self) -> None:
		self.calls = []

	def __call__(self, sequence: int, index: int) -> None:
		self.calls.append((sequence, index))

	@property
	def indices(self):
		return [i for _, i in self.calls]


def test_runs_each_index_once_then_stops():
	rec = Recorder()

	async def run():
		sched = PollingScheduler(rec, max_index=3, start_index=1, interval_seconds=0.01)
		sched.start()
		await asyncio.wait_for(sched.wait_stopped(), timeout=5)
		return sched

	sched = asyncio.run(run())
	assert rec.indices == [1, 2, 3]
	assert sched.state is SchedulerState.STOPPED
	assert sched.triggered == 3
	# The tick that would have produced index 4 is the one that stops it.
	assert sched.cursor == 4


def test_start_fires_immediately_before_first_interval():
	rec = Recorder()

	async def run():
		sched = PollingScheduler(rec, max_index=10, interval_seconds=60.0)
		sched.start()
		fired = list(rec.indices)
		sched.stop()
		await sched.wait_stopped()
		return fired

	assert asyncio.run(run()) == [1]


def test_manual_ticks_follow_state_machine():
	rec = Recorder()

	async def run():
		sched = PollingScheduler(rec, max_index=3, start_index=2, interval_seconds=60.0)
		sched.start()
		assert sched.tick() is True
		assert sched.tick() is False
		assert sched.state is SchedulerState.STOPPED
		assert sched.tick() is False
		await sched.wait_stopped()
		return sched

	sched = asyncio.run(run())
	assert rec.indices == [2, 3]
	assert sched.cursor == 4


def test_sequence_numbers_increase_monotonically():
	rec = Recorder()

	async def run():
		sched = PollingScheduler(rec, max_index=5, interval_seconds=0.005, first_sequence=10)
		sched.start()
		await asyncio.wait_for(sched.wait_stopped(), timeout=5)

	asyncio.run(run())
	assert [s for s, _ in rec.calls] == [10, 11, 12, 13, 14]


def test_start_index_past_max_never_runs():
	rec = Recorder()

	async def run():
		sched = PollingScheduler(rec, max_index=3, start_index=4)
		sched.start()
		await sched.wait_stopped()
		return sched

	sched = asyncio.run(run())
	assert rec.calls == []
	assert sched.state is SchedulerState.STOPPED


def test_stop_is_terminal():
	rec = Recorder()

	async def run():
		sched = PollingScheduler(rec, max_index=100, interval_seconds=0.01)
		sched.start()
		await asyncio.sleep(0.035)
		sched.stop()
		await sched.wait_stopped()
		count = len(rec.calls)
		await asyncio.sleep(0.05)
		sched.start()
		return sched, count

	sched, count = asyncio.run(run())
	assert len(rec.calls) == count
	assert sched.state is SchedulerState.STOPPED
	assert rec.indices == list(range(1, count + 1))


def test_trigger_failure_does_not_stop_ticking():
	seen = []

	def flaky(sequence, index):
		seen.append(index)
		if index == 1:
			raise RuntimeError("enqueue failed")

	async def run():
		sched = PollingScheduler(flaky, max_index=3, interval_seconds=0.005)
		sched.start()
		await asyncio.wait_for(sched.wait_stopped(), timeout=5)

	asyncio.run(run())
	assert seen == [1, 2, 3]


def test_interval_must_be_positive():
	with pytest.raises(ValueError):
		PollingScheduler(Recorder(), max_index=3, interval_seconds=0)
