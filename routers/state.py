"""Published pipeline state. Routes: /state, /state/image.jpg."""
from fastapi import APIRouter, Depends, HTTPException
from fastapi.responses import Response

from app_state import AppState
from deps import get_state
from pawpose.display import snapshot_jpeg, snapshot_to_dict
from schemas.responses import StateResponse

router = APIRouter(tags=["state"])

_NO_CACHE = {
	"Cache-Control": "no-store, no-cache, must-revalidate, max-age=0",
	"Pragma": "no-cache",
}


@router.get("/state", response_model=StateResponse)
async def get_pipeline_state(state: AppState = Depends(get_state)):
	"""Latest image metadata and joints (sorted by name)."""
	return snapshot_to_dict(state.require_pipeline().state.read())


@router.get("/state/image.jpg")
async def get_state_image(state: AppState = Depends(get_state)):
	"""The currently published image as JPEG."""
	jpeg = snapshot_jpeg(state.require_pipeline().state.read())
	if jpeg is None:
		raise HTTPException(status_code=404, detail="No image published yet")
	return Response(content=jpeg, media_type="image/jpeg", headers=_NO_CACHE)
