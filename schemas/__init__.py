"""Pydantic request/response models for API validation and docs."""
from schemas.requests import SchedulerStartPayload
from schemas.responses import JointOut, SchedulerStatus, StateResponse

__all__ = [
	"SchedulerStartPayload",
	"JointOut",
	"SchedulerStatus",
	"StateResponse",
]
