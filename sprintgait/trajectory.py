"""Foot-tip trajectory: gap-filled, smoothed height signal and velocity.

The height of a frame is the image ``y`` of the foot tips (larger values
are lower on screen, i.e. nearer the ground). Unknown samples are filled
by holding the nearest valid value, a short symmetric moving average
removes jitter, and every frame is classified from the forward
difference against a threshold proportional to the observed range, so
the detector adapts to subject size and camera distance.

Functions
---------
foot_tip_height
    Foot-tip height of a single frame.
ankle_height
    Ankle height of a single frame.
trajectory_from_heights
    Classify an already extracted height series.
analyze_toe_trajectory
    Build the trajectory of a pivot dict (main entry point).
"""

import logging
import math
from typing import Optional, Sequence

import numpy as np

from .constants import ANKLE_LANDMARKS, FOOT_TIP_LANDMARKS

logger = logging.getLogger(__name__)


def _pair_height(landmarks: Optional[dict], names: tuple, min_visibility: float) -> Optional[float]:
    if not landmarks:
        return None
    ys = []
    for name in names:
        lm = landmarks.get(name)
        if lm is None or lm.get("visibility", 0.0) <= min_visibility:
            return None
        y = lm.get("y")
        if y is None or not math.isfinite(y):
            return None
        ys.append(float(y))
    return min(ys)


def foot_tip_height(landmarks: Optional[dict], min_visibility: float = 0.3) -> Optional[float]:
    """Return ``min(left.y, right.y)`` of the foot tips, or None.

    Both foot tips must have visibility strictly above *min_visibility*.
    """
    return _pair_height(landmarks, FOOT_TIP_LANDMARKS, min_visibility)


def ankle_height(landmarks: Optional[dict], min_visibility: float = 0.3) -> Optional[float]:
    """Return ``min(left.y, right.y)`` of the ankles, or None."""
    return _pair_height(landmarks, ANKLE_LANDMARKS, min_visibility)


def _hold_fill(arr: np.ndarray) -> np.ndarray:
    """Forward-fill then back-fill NaN values."""
    out = arr.copy()
    for i in range(1, len(out)):
        if np.isnan(out[i]):
            out[i] = out[i - 1]
    for i in range(len(out) - 2, -1, -1):
        if np.isnan(out[i]):
            out[i] = out[i + 1]
    return out


def _moving_average(arr: np.ndarray, window: int) -> np.ndarray:
    """Centered moving average; edge samples average the neighbours that exist."""
    half = max(0, int(window) // 2)
    if half == 0:
        return arr.copy()
    n = len(arr)
    out = np.empty(n)
    for i in range(n):
        lo, hi = max(0, i - half), min(n, i + half + 1)
        out[i] = float(np.mean(arr[lo:hi]))
    return out


def _empty_trajectory(n_valid: int, window: int) -> dict:
    return {
        "points": [],
        "mean": None,
        "range": None,
        "threshold": None,
        "n_valid": n_valid,
        "smoothing_window": window,
    }


def trajectory_from_heights(
    heights: Sequence[Optional[float]],
    frame_indices: Optional[Sequence[int]] = None,
    smoothing_window: int = 3,
    velocity_fraction: float = 0.2,
) -> dict:
    """Classify a foot-tip height series.

    Parameters
    ----------
    heights : sequence of float or None
        Raw heights; ``None`` or NaN marks an unknown sample.
    frame_indices : sequence of int, optional
        Frame number of each sample (default ``0..n-1``).
    smoothing_window : int
        Moving-average window (default 3).
    velocity_fraction : float
        Fraction of the smoothed min-max range used as the velocity
        threshold (default 0.2).

    Returns
    -------
    dict
        ``points`` (one per sample with ``frame``, ``height``,
        ``velocity``, ``is_descending``, ``is_lowest``, ``is_rising``),
        ``mean``, ``range``, ``threshold``, ``n_valid`` and
        ``smoothing_window``. ``points`` is empty when fewer than two
        samples are valid.
    """
    raw = np.array([np.nan if h is None else float(h) for h in heights], dtype=float)
    raw[~np.isfinite(raw)] = np.nan
    n = len(raw)
    if frame_indices is None:
        frame_indices = list(range(n))
    elif len(frame_indices) != n:
        raise ValueError("frame_indices and heights must have the same length")

    n_valid = int(np.sum(~np.isnan(raw)))
    if n_valid <= 1:
        logger.warning(f"Toe trajectory: only {n_valid} valid sample(s), nothing to analyze")
        return _empty_trajectory(n_valid, smoothing_window)

    smoothed = _moving_average(_hold_fill(raw), smoothing_window)

    mean = float(np.mean(smoothed))
    value_range = float(np.max(smoothed) - np.min(smoothed))
    threshold = velocity_fraction * value_range

    velocity = np.zeros(n)
    velocity[:-1] = np.diff(smoothed)
    descending = velocity > threshold
    rising = velocity < -threshold
    # The last sample has no forward difference and stays unclassified
    descending[-1] = False
    rising[-1] = False

    points = []
    for i in range(n):
        still = abs(velocity[i]) <= threshold and i < n - 1
        lowest = bool(still and i + 1 < n and rising[i + 1])
        points.append({
            "frame": int(frame_indices[i]),
            "height": float(smoothed[i]),
            "velocity": float(velocity[i]),
            "is_descending": bool(descending[i]),
            "is_lowest": lowest,
            "is_rising": bool(rising[i]),
        })

    return {
        "points": points,
        "mean": mean,
        "range": value_range,
        "threshold": threshold,
        "n_valid": n_valid,
        "smoothing_window": smoothing_window,
    }


def analyze_toe_trajectory(
    data: dict,
    smoothing_window: int = 3,
    velocity_fraction: float = 0.2,
    min_visibility: float = 0.3,
) -> dict:
    """Build the foot-tip trajectory of a pivot dict.

    Parameters
    ----------
    data : dict
        Pivot JSON dict with ``frames`` populated.
    smoothing_window : int, optional
        Moving-average window (default 3).
    velocity_fraction : float, optional
        Velocity threshold as a fraction of the height range (default 0.2).
    min_visibility : float, optional
        Foot-tip visibility that must be exceeded (default 0.3).

    Returns
    -------
    dict
        Modified *data* dict with ``trajectory`` populated.

    Raises
    ------
    TypeError
        If *data* is not a dict.
    """
    if not isinstance(data, dict):
        raise TypeError("data must be a dict")
    frames = data.get("frames") or []

    heights = [foot_tip_height(f.get("landmarks"), min_visibility) for f in frames]
    indices = [f["frame_idx"] for f in frames]
    traj = trajectory_from_heights(
        heights, indices,
        smoothing_window=smoothing_window,
        velocity_fraction=velocity_fraction,
    )
    if traj["points"]:
        logger.info(
            f"Toe trajectory: {traj['n_valid']}/{len(frames)} valid samples, "
            f"range={traj['range']:.4f}, threshold={traj['threshold']:.4f}"
        )
    data["trajectory"] = traj
    return data
