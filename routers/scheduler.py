"""Polling scheduler control. Routes: /scheduler/status, /scheduler/start, /scheduler/stop."""
import logging
from typing import Optional

from fastapi import APIRouter, Depends, HTTPException

from app_state import AppState
from deps import get_state
from pawpose.scheduler import PollingScheduler, SchedulerState
from schemas.requests import SchedulerStartPayload
from schemas.responses import SchedulerStatus

router = APIRouter(tags=["scheduler"])
logger = logging.getLogger(__name__)


@router.get("/scheduler/status", response_model=SchedulerStatus)
async def scheduler_status(state: AppState = Depends(get_state)):
	return state.scheduler.status()


@router.post("/scheduler/start", response_model=SchedulerStatus)
async def scheduler_start(payload: Optional[SchedulerStartPayload] = None, state: AppState = Depends(get_state)):
	"""
	Start polling. A stopped scheduler is replaced by a fresh one; sequence
	numbers continue so results from the old run are never newer than the new run.
	"""
	current = state.scheduler
	if current is not None and current.state is SchedulerState.RUNNING:
		raise HTTPException(status_code=409, detail="Scheduler already running")

	payload = payload or SchedulerStartPayload()
	corpus_max = int(state.cfg.corpus.max_index)
	max_index = int(payload.max_index or corpus_max)
	if max_index > corpus_max:
		raise HTTPException(status_code=400, detail=f"max_index must be <= {corpus_max}")

	if current is not None and current.state is SchedulerState.IDLE and payload == SchedulerStartPayload():
		sched = current
	else:
		sched = PollingScheduler(
			state.require_pipeline().trigger,
			max_index=max_index,
			start_index=int(payload.start_index or state.cfg.scheduler.start_index),
			interval_seconds=float(payload.interval_seconds or state.cfg.scheduler.interval_seconds),
			first_sequence=(current.sequence + 1) if current is not None else 1,
		)
		state.scheduler = sched
		logger.info("[Scheduler] new run %d..%d every %.3fs", sched.start_index, sched.max_index, sched.interval_seconds)
	sched.start()
	return sched.status()


@router.post("/scheduler/stop", response_model=SchedulerStatus)
async def scheduler_stop(state: AppState = Depends(get_state)):
	"""Stop polling. In-flight ticks still complete and may publish."""
	state.scheduler.stop()
	await state.scheduler.wait_stopped()
	return state.scheduler.status()
