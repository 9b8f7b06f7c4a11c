"""
pawpose: live animal-pose polling viewer.

Fetches images from an indexable remote corpus, runs them through a pose
model and republishes the joints for display.
"""

from pathlib import Path


def _read_version() -> str:
	try:
		vf = Path(__file__).resolve().parents[1] / "VERSION"
		if vf.exists():
			val = vf.read_text(encoding="utf-8").strip()
			if val:
				return val
	except OSError:
		pass
	return "0.1.0"


__version__ = _read_version()
