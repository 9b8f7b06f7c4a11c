"""
Read-only views of PipelineState for the display layer.
"""

from __future__ import annotations

import io
from typing import Any, Dict, List, Optional

from pawpose.pipeline_state import PipelineSnapshot
from pawpose.pose.types import JointRecord, PoseObservation, sorted_joints


LOADING_TEXT = "Loading Image..."


def joint_line(j: JointRecord) -> str:
	return f"{j.name}: {j.x}, {j.y}"


def joint_lines(observation: PoseObservation) -> List[str]:
	return [joint_line(j) for j in sorted_joints(observation)]


def snapshot_to_dict(snap: PipelineSnapshot) -> Dict[str, Any]:
	img = snap.current_image
	joints = sorted_joints(snap.current_observation)
	return {
		"has_image": img is not None,
		"index": img.index if img is not None else None,
		"url": img.url if img is not None else None,
		"width": img.width if img is not None else None,
		"height": img.height if img is not None else None,
		"sequence": snap.sequence,
		"joints": [
			{"name": j.name, "x": j.x, "y": j.y, "confidence": j.confidence}
			for j in joints
		],
		"lines": [joint_line(j) for j in joints],
		"status_text": None if img is not None else LOADING_TEXT,
	}


def snapshot_jpeg(snap: PipelineSnapshot, quality: int = 85) -> Optional[bytes]:
	if snap.current_image is None:
		return None
	buf = io.BytesIO()
	snap.current_image.image.save(buf, format="JPEG", quality=int(quality))
	return buf.getvalue()
