"""
pawpose viewer server.

Polls the image corpus, runs pose detection on each image and publishes the
latest image + joints over HTTP (/state, /state/image.jpg) and WebSocket (/ws).

Run:  python server.py [--config config.json] [--base-url URL] [--max-index N]
"""
import argparse
import logging
from contextlib import asynccontextmanager
from pathlib import Path
from typing import Dict, Optional

import uvicorn
from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware

from app_state import AppState
from pawpose import __version__
from pawpose.config import AppConfig, get_config, set_config_path, with_overrides
from pawpose.display import snapshot_to_dict
from pawpose.pipeline import build_pipeline
from pawpose.pipeline_state import PipelineSnapshot
from pawpose.pose import get_pose_provider
from pawpose.pose.base import PoseProvider
from routers import pages, scheduler, state, status, ws
from routers.ws import ClientLogHandler, manager

# UI directory path
UI_DIR = Path(__file__).parent / "UI"

logger = logging.getLogger("pawpose.server")

_html_cache: Dict[str, str] = {}


def load_html_template(filename: str) -> str:
	"""
	Load an HTML template file from the UI directory (cached after first read).

	Raises:
		FileNotFoundError: If the file doesn't exist
	"""
	if filename in _html_cache:
		return _html_cache[filename]
	file_path = UI_DIR / filename
	if not file_path.exists():
		raise FileNotFoundError(f"UI template not found: {file_path}")
	html = file_path.read_text(encoding="utf-8")
	_html_cache[filename] = html
	return html


async def _broadcast_state(snap: PipelineSnapshot) -> None:
	await manager.broadcast_json({"type": "state", **snapshot_to_dict(snap)})


def create_app(cfg: Optional[AppConfig] = None, provider: Optional[PoseProvider] = None) -> FastAPI:
	"""
	Build the app. The pose provider is created in lifespan (model load can be
	slow) unless one is passed in.
	"""

	@asynccontextmanager
	async def lifespan(app: FastAPI):
		app_cfg = cfg or get_config()
		st = AppState()
		st.cfg = app_cfg
		st.manager = manager
		st.UI_DIR = UI_DIR
		st.get_page_html = load_html_template

		pipeline, sched = build_pipeline(app_cfg, provider or get_pose_provider(app_cfg.pose))
		pipeline.writer.add_listener(_broadcast_state)
		st.pipeline = pipeline
		st.scheduler = sched

		# Pipeline diagnostics go to connected viewers as well as the console.
		client_log = ClientLogHandler(manager)
		client_log.setFormatter(logging.Formatter("%(message)s"))
		pkg_logger = logging.getLogger("pawpose")
		pkg_logger.addHandler(client_log)
		st.log_to_clients = client_log

		app.state.state = st
		pipeline.start()
		if app_cfg.scheduler.autostart:
			sched.start()
		logger.info(
			"[Server] pawpose %s: %s (1..%d), pose backend %s",
			__version__,
			app_cfg.corpus.base_url,
			app_cfg.corpus.max_index,
			pipeline.detector.provider_name,
		)
		try:
			yield
		finally:
			if st.scheduler is not None:
				st.scheduler.stop()
				await st.scheduler.wait_stopped()
			await pipeline.stop()
			pipeline.close()
			pkg_logger.removeHandler(client_log)

	app = FastAPI(title="pawpose", version=__version__, lifespan=lifespan)
	app.add_middleware(
		CORSMiddleware,
		allow_origins=["*"],
		allow_credentials=True,
		allow_methods=["*"],
		allow_headers=["*"],
	)
	app.include_router(pages.router)
	app.include_router(state.router)
	app.include_router(scheduler.router)
	app.include_router(status.router)
	app.include_router(ws.router)
	return app


app = create_app()


def main(argv: Optional[list] = None) -> int:
	p = argparse.ArgumentParser(description="pawpose live animal-pose viewer")
	p.add_argument("--config", default=None, help="Path to config.json (optional)")
	p.add_argument("--host", default=None)
	p.add_argument("--port", type=int, default=None)
	p.add_argument("--base-url", default=None, help="Corpus base URL; images are <base-url><index>.jpg?raw=true")
	p.add_argument("--max-index", type=int, default=None, help="Last corpus index (inclusive)")
	p.add_argument("--start-index", type=int, default=None, help="First corpus index")
	p.add_argument("--interval", type=float, default=None, help="Seconds between ticks")
	p.add_argument("--backend", default=None, help="Pose backend override (mediapipe/yolo)")
	p.add_argument("--log-level", default=None, help="DEBUG/INFO/WARNING")
	args = p.parse_args(argv)

	if args.config:
		set_config_path(args.config)
	cfg = with_overrides(
		get_config(),
		base_url=args.base_url,
		max_index=args.max_index,
		start_index=args.start_index,
		interval_seconds=args.interval,
		backend=args.backend,
	)

	logging.basicConfig(
		level=(args.log_level or cfg.server.log_level or "INFO").upper(),
		format="%(asctime)s %(levelname)s %(name)s: %(message)s",
	)
	uvicorn.run(
		create_app(cfg),
		host=args.host or cfg.server.host,
		port=int(args.port or cfg.server.port),
		log_level=(args.log_level or cfg.server.log_level or "INFO").lower(),
	)
	return 0


if __name__ == "__main__":
	raise SystemExit(main())
