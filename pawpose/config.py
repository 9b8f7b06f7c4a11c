from __future__ import annotations

import dataclasses
import json
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any, Dict, List, Optional


DEFAULT_BASE_URL = "https://raw.githubusercontent.com/sebasdeldi/dog_image_dataset/main/"
DEFAULT_MAX_INDEX = 11936


@dataclass(frozen=True)
class CorpusConfig:
	# Image URL is f"{base_url}{index}{suffix}".
	base_url: str = DEFAULT_BASE_URL
	suffix: str = ".jpg?raw=true"
	max_index: int = DEFAULT_MAX_INDEX
	timeout_seconds: float = 10.0
	user_agent: str = "pawpose/0.1"


@dataclass(frozen=True)
class SchedulerConfig:
	start_index: int = 1
	interval_seconds: float = 1.0
	# Worker pool size; bounds concurrent fetch+detect runs.
	max_in_flight: int = 4
	# Pending ticks beyond this are dropped.
	queue_size: int = 8
	autostart: bool = True


@dataclass(frozen=True)
class PoseConfig:
	# Both default models detect humans; animal joints need a yolo checkpoint
	# trained on an animal keypoint set plus its keypoint_names.
	backend: str = "mediapipe"  # mediapipe / yolo
	min_confidence: float = 0.0
	# MediaPipe
	model_complexity: int = 1
	min_detection_confidence: float = 0.5
	# Ultralytics
	model_path: str = "yolov8n-pose.pt"
	keypoint_names: List[str] = field(default_factory=list)


@dataclass(frozen=True)
class StateConfig:
	# Reject completions older than the last applied sequence number.
	discard_stale: bool = True


@dataclass(frozen=True)
class ServerConfig:
	host: str = "127.0.0.1"
	port: int = 8000
	log_level: str = "INFO"


@dataclass(frozen=True)
class AppConfig:
	corpus: CorpusConfig = field(default_factory=CorpusConfig)
	scheduler: SchedulerConfig = field(default_factory=SchedulerConfig)
	pose: PoseConfig = field(default_factory=PoseConfig)
	state: StateConfig = field(default_factory=StateConfig)
	server: ServerConfig = field(default_factory=ServerConfig)

	def to_dict(self) -> Dict[str, Any]:
		return dataclasses.asdict(self)


_CONFIG_PATH: Optional[Path] = None
_CONFIG_CACHE: Optional[AppConfig] = None


def _repo_root() -> Path:
	# pawpose/config.py -> repo root is one level up.
	return Path(__file__).resolve().parents[1]


def get_default_config_path() -> Path:
	return _repo_root() / "config.json"


def set_config_path(path: str | Path) -> None:
	"""
	Override the config path (must be called before first get_config()).
	"""
	global _CONFIG_PATH
	global _CONFIG_CACHE
	_CONFIG_PATH = Path(path).expanduser().resolve()
	_CONFIG_CACHE = None


def _deep_get(d: Dict[str, Any], keys: list[str], default: Any = None) -> Any:
	cur: Any = d
	for k in keys:
		if not isinstance(cur, dict):
			return default
		cur = cur.get(k)
	return cur if cur is not None else default


def _as_int(v: Any, default: int) -> int:
	try:
		return int(v)
	except (TypeError, ValueError):
		return int(default)


def _as_bool(v: Any, default: bool) -> bool:
	if isinstance(v, bool):
		return v
	if isinstance(v, (int, float)):
		return bool(v)
	if isinstance(v, str):
		return v.strip().lower() in ("1", "true", "yes", "on")
	return bool(default)


def _as_str(v: Any, default: str = "") -> str:
	return str(v) if v is not None else str(default)


def _as_float(v: Any, default: float) -> float:
	try:
		return float(v)
	except (TypeError, ValueError):
		return float(default)


def _as_str_list(v: Any) -> List[str]:
	if not isinstance(v, list):
		return []
	return [str(x) for x in v if x is not None]


def load_config(path: Optional[str | Path] = None) -> AppConfig:
	p = Path(path).expanduser().resolve() if path else (_CONFIG_PATH or get_default_config_path())
	if not p.exists():
		# Defaults-only config; app can still run.
		return AppConfig()
	try:
		raw = json.loads(p.read_text(encoding="utf-8"))
	except (OSError, ValueError):
		# Malformed config falls back to defaults.
		return AppConfig()

	if not isinstance(raw, dict):
		return AppConfig()

	base_url = _as_str(_deep_get(raw, ["corpus", "base_url"], DEFAULT_BASE_URL), DEFAULT_BASE_URL).strip()
	suffix = _as_str(_deep_get(raw, ["corpus", "suffix"], ".jpg?raw=true"), ".jpg?raw=true")
	max_index = _as_int(_deep_get(raw, ["corpus", "max_index"], DEFAULT_MAX_INDEX), DEFAULT_MAX_INDEX)
	timeout_s = _as_float(_deep_get(raw, ["corpus", "timeout_seconds"], 10.0), 10.0)
	user_agent = _as_str(_deep_get(raw, ["corpus", "user_agent"], "pawpose/0.1"), "pawpose/0.1")

	start_index = _as_int(_deep_get(raw, ["scheduler", "start_index"], 1), 1)
	interval_s = _as_float(_deep_get(raw, ["scheduler", "interval_seconds"], 1.0), 1.0)
	max_in_flight = _as_int(_deep_get(raw, ["scheduler", "max_in_flight"], 4), 4)
	queue_size = _as_int(_deep_get(raw, ["scheduler", "queue_size"], 8), 8)
	autostart = _as_bool(_deep_get(raw, ["scheduler", "autostart"], True), True)

	pose_backend = _as_str(_deep_get(raw, ["pose", "backend"], "mediapipe"), "mediapipe").strip().lower()
	min_conf = _as_float(_deep_get(raw, ["pose", "min_confidence"], 0.0), 0.0)
	complexity = _as_int(_deep_get(raw, ["pose", "model_complexity"], 1), 1)
	min_det_conf = _as_float(_deep_get(raw, ["pose", "min_detection_confidence"], 0.5), 0.5)
	model_path = _as_str(_deep_get(raw, ["pose", "model_path"], "yolov8n-pose.pt"), "yolov8n-pose.pt")
	kp_names = _as_str_list(_deep_get(raw, ["pose", "keypoint_names"], []))

	discard_stale = _as_bool(_deep_get(raw, ["state", "discard_stale"], True), True)

	host = _as_str(_deep_get(raw, ["server", "host"], "127.0.0.1"), "127.0.0.1")
	port = _as_int(_deep_get(raw, ["server", "port"], 8000), 8000)
	log_level = _as_str(_deep_get(raw, ["server", "log_level"], "INFO"), "INFO").strip().upper()

	return AppConfig(
		corpus=CorpusConfig(
			base_url=base_url or DEFAULT_BASE_URL,
			suffix=suffix,
			max_index=int(max_index) if int(max_index) > 0 else DEFAULT_MAX_INDEX,
			timeout_seconds=float(timeout_s) if float(timeout_s) > 0.0 else 10.0,
			user_agent=user_agent,
		),
		scheduler=SchedulerConfig(
			start_index=int(start_index) if int(start_index) > 0 else 1,
			interval_seconds=float(interval_s) if float(interval_s) > 0.0 else 1.0,
			max_in_flight=max(1, int(max_in_flight)),
			queue_size=max(1, int(queue_size)),
			autostart=autostart,
		),
		pose=PoseConfig(
			backend=pose_backend or "mediapipe",
			min_confidence=min(1.0, max(0.0, float(min_conf))),
			model_complexity=int(complexity),
			min_detection_confidence=float(min_det_conf),
			model_path=model_path,
			keypoint_names=kp_names,
		),
		state=StateConfig(discard_stale=discard_stale),
		server=ServerConfig(host=host, port=int(port) if int(port) > 0 else 8000, log_level=log_level or "INFO"),
	)


def with_overrides(
	cfg: AppConfig,
	*,
	base_url: Optional[str] = None,
	max_index: Optional[int] = None,
	start_index: Optional[int] = None,
	interval_seconds: Optional[float] = None,
	backend: Optional[str] = None,
) -> AppConfig:
	"""Return a copy of cfg with CLI-level overrides applied (None = keep)."""
	corpus = cfg.corpus
	if base_url is not None:
		corpus = dataclasses.replace(corpus, base_url=str(base_url))
	if max_index is not None and int(max_index) > 0:
		corpus = dataclasses.replace(corpus, max_index=int(max_index))
	scheduler = cfg.scheduler
	if start_index is not None and int(start_index) > 0:
		scheduler = dataclasses.replace(scheduler, start_index=int(start_index))
	if interval_seconds is not None and float(interval_seconds) > 0.0:
		scheduler = dataclasses.replace(scheduler, interval_seconds=float(interval_seconds))
	pose = cfg.pose
	if backend:
		pose = dataclasses.replace(pose, backend=str(backend).strip().lower())
	return dataclasses.replace(cfg, corpus=corpus, scheduler=scheduler, pose=pose)


def get_config() -> AppConfig:
	global _CONFIG_CACHE
	if _CONFIG_CACHE is None:
		_CONFIG_CACHE = load_config()
	return _CONFIG_CACHE
