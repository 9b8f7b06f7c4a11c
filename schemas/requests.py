"""Pydantic request body models."""
from typing import Optional

from pydantic import BaseModel, Field


class SchedulerStartPayload(BaseModel):
	"""Request body for POST /scheduler/start. Omitted fields keep the configured values."""

	start_index: Optional[int] = Field(None, ge=1, description="First corpus index to fetch")
	max_index: Optional[int] = Field(None, ge=1, description="Last corpus index to fetch (inclusive)")
	interval_seconds: Optional[float] = Field(None, gt=0, description="Seconds between ticks")
