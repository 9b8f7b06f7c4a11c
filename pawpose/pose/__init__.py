"""
Pose estimation.

A model-agnostic PoseProvider interface, provider adapters (MediaPipe Pose,
Ultralytics YOLO pose) and the detection adapter that normalizes provider
output into a PoseObservation.
"""

from __future__ import annotations

from typing import Optional

from pawpose.config import PoseConfig, get_config
from pawpose.pose.base import PoseProvider


def get_pose_provider(cfg: Optional[PoseConfig] = None, *, backend_override: Optional[str] = None) -> PoseProvider:
	cfg = cfg or get_config().pose
	backend = (backend_override or cfg.backend or "mediapipe").strip().lower()
	if backend in ("mediapipe", "mp"):
		from pawpose.pose.mediapipe_provider import MediaPipePoseProvider

		return MediaPipePoseProvider(
			model_complexity=int(cfg.model_complexity),
			min_detection_confidence=float(cfg.min_detection_confidence),
		)
	if backend in ("yolo", "ultralytics"):
		from pawpose.pose.ultralytics_provider import UltralyticsPoseProvider

		return UltralyticsPoseProvider(model_path=cfg.model_path, keypoint_names=cfg.keypoint_names)
	raise ValueError(f"Unknown pose backend: {backend!r}")
