"""Landmark providers: the single landmarks-for-frame interface.

Components that need to look up a frame by number (calibration and the
interval scan) receive a provider at construction instead of reaching
for a shared pose-estimation handle.
"""

import logging
from abc import ABC, abstractmethod
from typing import Dict, Optional

from .schema import validate_frames

logger = logging.getLogger(__name__)


class LandmarkProvider(ABC):
    """Abstract base class for landmark sources.

    Subclasses must implement landmarks_for_frame() which returns the
    named landmark dict of a frame, or None when the frame is unknown or
    the detection failed.
    """

    name: str = "Base"

    @abstractmethod
    def landmarks_for_frame(self, frame_idx: int) -> Optional[Dict[str, dict]]:
        """Return named landmarks for *frame_idx*, or None."""

    @property
    def frame_range(self) -> Optional[tuple]:
        """(first, last) frame index served, or None if unbounded."""
        return None


class FrameSequenceProvider(LandmarkProvider):
    """Provider over an already materialized list of pivot frames."""

    name = "frames"

    def __init__(self, frames: list):
        validate_frames(frames)
        self._by_idx = {f["frame_idx"]: f.get("landmarks") for f in frames}
        self._range = (frames[0]["frame_idx"], frames[-1]["frame_idx"]) if frames else None
        logger.debug(f"FrameSequenceProvider over {len(frames)} frames")

    @classmethod
    def from_data(cls, data: dict) -> "FrameSequenceProvider":
        if not isinstance(data, dict):
            raise TypeError("data must be a dict")
        return cls(data.get("frames") or [])

    def landmarks_for_frame(self, frame_idx: int) -> Optional[Dict[str, dict]]:
        return self._by_idx.get(frame_idx)

    @property
    def frame_range(self) -> Optional[tuple]:
        return self._range
