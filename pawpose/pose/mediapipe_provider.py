from __future__ import annotations

from typing import List

from pawpose.pixel_buffer import DeviceImageBuffer
from pawpose.pose.base import PoseProvider
from pawpose.pose.types import DetectedPoint, Subject, joint_name


class MediaPipePoseProvider(PoseProvider):
	"""
	MediaPipe Pose provider.

	Notes:
	- Every landmark MediaPipe knows is reported, named after its PoseLandmark
	  member in lower case (e.g. "left_wrist").
	- MediaPipe uses normalized coordinates; we convert to pixel space.
	- `visibility` is used as confidence (best-effort).
	- MediaPipe Pose tracks a single subject, so at most one is returned.
	"""

	def __init__(
		self,
		model_complexity: int = 1,
		min_detection_confidence: float = 0.5,
	) -> None:
		try:
			import mediapipe as mp  # type: ignore
		except ImportError as e:
			raise RuntimeError(
				"MediaPipe is not installed. Install pose deps with: pip install 'pawpose-viewer[mediapipe]'"
			) from e
		if not hasattr(mp, "solutions"):
			raise RuntimeError("This MediaPipe build ships without mediapipe.solutions (Pose is unavailable).")

		self._mp = mp
		# Corpus images are unrelated stills, so no temporal smoothing.
		self._pose = mp.solutions.pose.Pose(
			static_image_mode=True,
			model_complexity=int(model_complexity),
			enable_segmentation=False,
			min_detection_confidence=float(min_detection_confidence),
		)

	def name(self) -> str:
		return "mediapipe_pose"

	def infer(self, buffer: DeviceImageBuffer) -> List[Subject]:
		w, h = int(buffer.width), int(buffer.height)
		res = self._pose.process(buffer.rgb())
		if not res or not getattr(res, "pose_landmarks", None):
			return []

		lm = res.pose_landmarks.landmark
		subject = {}
		for member in self._mp.solutions.pose.PoseLandmark:
			idx = int(member)
			if idx >= len(lm):
				continue
			p = lm[idx]
			subject[joint_name(member.name.lower())] = DetectedPoint(
				x=float(p.x) * float(w),
				y=float(p.y) * float(h),
				confidence=float(getattr(p, "visibility", 0.0) or 0.0),
			)
		return [subject]

	def close(self) -> None:
		if self._pose is not None:
			self._pose.close()
			self._pose = None
