"""
Explicit app state: single source of truth for runtime lifecycle.
Created in lifespan, attached to app.state.state; injected into routes via Depends(get_state).
"""
from pathlib import Path
from typing import Any, Callable, Optional

from pawpose.config import AppConfig
from pawpose.pipeline import PosePipeline
from pawpose.scheduler import PollingScheduler


class AppState:
	"""
	Holds all runtime state for the app. Populated in server lifespan.
	"""
	# WebSocket and UI (set at app load)
	manager: Any = None
	get_page_html: Optional[Callable[[str], str]] = None
	UI_DIR: Optional[Path] = None

	cfg: Optional[AppConfig] = None

	# Pipeline (set in lifespan). The scheduler is replaced on restart;
	# the pipeline and its published state live for the whole process.
	pipeline: Optional[PosePipeline] = None
	scheduler: Optional[PollingScheduler] = None

	# Helpers (callables set in server after creation)
	log_to_clients: Any = None

	def require_pipeline(self) -> PosePipeline:
		if self.pipeline is None:
			raise RuntimeError("pipeline not started")
		return self.pipeline
