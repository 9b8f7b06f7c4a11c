"""Diagnostics. Routes: /config, /debug/status."""
from fastapi import APIRouter, Depends

from app_state import AppState
from deps import get_state
from pawpose import __version__

router = APIRouter(tags=["status"])


@router.get("/config")
async def get_effective_config(state: AppState = Depends(get_state)):
	return state.cfg.to_dict()


@router.get("/debug/status")
async def debug_status(state: AppState = Depends(get_state)):
	"""Pipeline counters, queue depth and scheduler position."""
	pipeline = state.require_pipeline()
	return {
		"version": __version__,
		"scheduler": state.scheduler.status() if state.scheduler is not None else None,
		"pipeline": pipeline.status(),
		"ws_clients": state.manager.client_count if state.manager is not None else 0,
	}
