"""Pydantic response models for API docs."""
from typing import List, Optional

from pydantic import BaseModel


class JointOut(BaseModel):
	name: str
	x: float
	y: float
	confidence: float


class StateResponse(BaseModel):
	"""Response from GET /state."""

	has_image: bool
	index: Optional[int] = None
	url: Optional[str] = None
	width: Optional[int] = None
	height: Optional[int] = None
	sequence: Optional[int] = None
	joints: List[JointOut] = []
	lines: List[str] = []
	status_text: Optional[str] = None


class SchedulerStatus(BaseModel):
	"""Response from the /scheduler endpoints."""

	state: str
	cursor: int
	start_index: int
	max_index: int
	interval_seconds: float
	triggered: int
	sequence: int
