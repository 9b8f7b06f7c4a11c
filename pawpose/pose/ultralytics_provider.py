from __future__ import annotations

from typing import List, Optional, Sequence

from pawpose.pixel_buffer import DeviceImageBuffer
from pawpose.pose.base import PoseProvider
from pawpose.pose.types import DetectedPoint, Subject, joint_name


class UltralyticsPoseProvider(PoseProvider):
	"""
	Ultralytics YOLO pose model (any keypoint layout, e.g. an animal-pose checkpoint).

	Keypoint names come from `keypoint_names`; indices without a configured
	name are reported as "kp_<i>". Subjects are returned in the order the
	model ranks them.
	"""

	def __init__(
		self,
		model_path: str = "yolov8n-pose.pt",
		keypoint_names: Optional[Sequence[str]] = None,
		conf: float = 0.25,
	) -> None:
		try:
			from ultralytics import YOLO  # type: ignore
		except ImportError as e:
			raise RuntimeError(
				"Ultralytics is not installed. Install pose deps with: pip install 'pawpose-viewer[yolo]'"
			) from e

		self._model = YOLO(str(model_path))
		self._names = [joint_name(n) for n in (keypoint_names or [])]
		self._conf = float(conf)

	def name(self) -> str:
		return "ultralytics_pose"

	def _name_for(self, k: int) -> str:
		if k < len(self._names):
			return self._names[k]
		return joint_name(f"kp_{k}")

	def infer(self, buffer: DeviceImageBuffer) -> List[Subject]:
		# numpy input is treated as BGR by Ultralytics.
		bgr = buffer.rgb()[:, :, ::-1]
		results = self._model.predict(source=bgr, verbose=False, conf=self._conf)
		if not results:
			return []
		kps = results[0].keypoints
		if kps is None or kps.xy is None or len(kps.xy) == 0:
			return []

		xy = kps.xy.cpu().numpy()  # (N, K, 2)
		conf = kps.conf.cpu().numpy() if kps.conf is not None else None  # (N, K)
		subjects: List[Subject] = []
		for i in range(xy.shape[0]):
			subject = {}
			for k in range(xy.shape[1]):
				x, y = float(xy[i, k, 0]), float(xy[i, k, 1])
				c = float(conf[i, k]) if conf is not None else 1.0
				if x == 0.0 and y == 0.0:
					# Unlocalized keypoints come back as the origin.
					subject[self._name_for(k)] = DetectedPoint(x=None, y=None, confidence=c)
				else:
					subject[self._name_for(k)] = DetectedPoint(x=x, y=y, confidence=c)
			subjects.append(subject)
		return subjects

	def close(self) -> None:
		self._model = None
