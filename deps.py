"""
FastAPI dependencies. Use Depends(get_state) in route handlers to receive AppState.
"""
from fastapi import HTTPException, Request

from app_state import AppState


def get_state(request: Request) -> AppState:
	"""Return the app state instance attached in lifespan."""
	state = getattr(request.app.state, "state", None)
	if state is None or state.pipeline is None:
		raise HTTPException(status_code=503, detail="Server not ready")
	return state
