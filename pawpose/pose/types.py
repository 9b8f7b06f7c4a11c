from __future__ import annotations

import sys
from dataclasses import dataclass
from typing import Dict, List, Mapping, Optional


@dataclass(frozen=True)
class DetectedPoint:
	"""
	A joint as reported by a pose provider, before normalization.

	x/y are None when the model named the joint but could not localize it.
	"""

	x: Optional[float]
	y: Optional[float]
	confidence: float


@dataclass(frozen=True)
class JointRecord:
	"""
	A single 2D joint in pixel coordinates of the analyzed image.
	"""

	name: str
	x: float
	y: float
	confidence: float  # [0..1]

	@property
	def position(self) -> tuple[float, float]:
		return (self.x, self.y)


# joint name -> record. Names are opaque, model-defined strings.
PoseObservation = Dict[str, JointRecord]

# What a provider returns per detected subject.
Subject = Mapping[str, DetectedPoint]


def joint_name(name: str) -> str:
	return sys.intern(str(name))


def empty_observation() -> PoseObservation:
	return {}


def sorted_joints(observation: Mapping[str, JointRecord]) -> List[JointRecord]:
	return [observation[k] for k in sorted(observation)]
