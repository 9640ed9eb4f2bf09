"""Sagittal sprint angles from 2D pose landmarks.

One pure per-frame function maps the named landmarks of a frame to:

    - trunk_angle: hip-mid -> shoulder-mid from vertical.
      90 = upright, < 90 = forward lean, range [0, 180). Forward is
      the direction the feet point to (toe ahead of ankle), +x when
      the feet do not tell.
    - thigh_angle / shank_angle (per leg): hip -> knee and knee -> ankle
      segments measured from vertical-down. Forward (+x) is negative,
      rearward positive.
    - knee_flex / ankle_flex / elbow_angle (per side): 180 minus the
      angle between the two consecutive segment vectors, i.e. the
      included joint angle, 180 = fully extended.
    - toe_horizontal_distance_cm (per leg): hip -> foot tip horizontal
      offset with the thigh sign convention, scaled to centimeters by
      taking the athlete's own hip -> knee length as a 50 cm ruler.

Confidence gate: if either hip or either shoulder has visibility below
0.5, every field of the frame is None. Elbows are gated per side on
shoulder, elbow and wrist. Degenerate vectors give None, never NaN.

Ref: Mann R, Herman J. Kinematic analysis of Olympic sprint
performance: men's 200 meters. Int J Sport Biomech. 1985;1:151-162.
"""

import logging
import math
from typing import Dict, Optional

import numpy as np

from .constants import ARM_LANDMARKS, LEG_LANDMARKS, SIDES, TRUNK_LANDMARKS

logger = logging.getLogger(__name__)

SIDED_FIELDS = (
    "thigh_angle", "shank_angle", "knee_flex", "ankle_flex",
    "elbow_angle", "toe_horizontal_distance_cm",
)


# ── Geometry helpers ─────────────────────────────────────────────────


def _get_xy(landmarks: dict, name: str) -> Optional[np.ndarray]:
    """Extract [x, y] array from a landmarks dict."""
    lm = landmarks.get(name)
    if lm is None:
        return None
    x, y = lm.get("x"), lm.get("y")
    if x is None or y is None:
        return None
    if not (math.isfinite(x) and math.isfinite(y)):
        return None
    return np.array([float(x), float(y)])


def _visible(landmarks: dict, name: str, min_visibility: float) -> bool:
    lm = landmarks.get(name)
    return lm is not None and lm.get("visibility", 0.0) >= min_visibility


def _angle_between(v1: np.ndarray, v2: np.ndarray) -> Optional[float]:
    """Angle between two vectors in degrees [0, 180]."""
    n1 = np.linalg.norm(v1)
    n2 = np.linalg.norm(v2)
    if n1 < 1e-10 or n2 < 1e-10:
        return None
    cos_a = np.clip(np.dot(v1, v2) / (n1 * n2), -1.0, 1.0)
    return float(np.degrees(np.arccos(cos_a)))


def _included(a: Optional[np.ndarray], b: Optional[np.ndarray],
              c: Optional[np.ndarray]) -> Optional[float]:
    """180 minus the angle between a->b and b->c."""
    if a is None or b is None or c is None:
        return None
    between = _angle_between(b - a, c - b)
    return None if between is None else 180.0 - between


def _segment_angle(top: Optional[np.ndarray], bottom: Optional[np.ndarray]) -> Optional[float]:
    """Segment angle from vertical-down; forward (+x) negative."""
    if top is None or bottom is None:
        return None
    d = bottom - top
    if np.linalg.norm(d) < 1e-10:
        return None
    return -math.degrees(math.atan2(d[0], d[1]))


def _facing_sign(landmarks: dict) -> float:
    """+1 when the feet point to +x, -1 when they point to -x."""
    total = 0.0
    for side in SIDES:
        ankle = _get_xy(landmarks, LEG_LANDMARKS[side]["ankle"])
        toe = _get_xy(landmarks, LEG_LANDMARKS[side]["toe"])
        if ankle is not None and toe is not None:
            total += toe[0] - ankle[0]
    if abs(total) < 1e-9:
        return 1.0
    return 1.0 if total > 0 else -1.0


def _trunk_angle(landmarks: dict) -> Optional[float]:
    points = [_get_xy(landmarks, name) for name in TRUNK_LANDMARKS]
    if any(p is None for p in points):
        return None
    left_shoulder, right_shoulder, left_hip, right_hip = points
    trunk = (left_shoulder + right_shoulder) / 2 - (left_hip + right_hip) / 2
    if np.linalg.norm(trunk) < 1e-10:
        return None
    lean = math.degrees(math.atan2(_facing_sign(landmarks) * trunk[0], -trunk[1]))
    angle = (90.0 - lean) % 180.0
    return 0.0 if angle >= 180.0 else angle


def _toe_distance_cm(hip, knee, toe, reference_thigh_cm: float) -> Optional[float]:
    if hip is None or knee is None or toe is None:
        return None
    thigh = float(np.linalg.norm(knee - hip))
    if thigh < 1e-10:
        return None
    return -(toe[0] - hip[0]) / thigh * reference_thigh_cm


def _finite(value: Optional[float]) -> Optional[float]:
    if value is None or not math.isfinite(value):
        return None
    return float(value)


# ── Public API ───────────────────────────────────────────────────────


def empty_angle_sample() -> dict:
    """Angle sample with every field None."""
    sample = {"trunk_angle": None}
    for key in SIDED_FIELDS:
        sample[key] = {"left": None, "right": None}
    return sample


def compute_frame_angles(
    landmarks: Optional[Dict[str, dict]],
    min_visibility: float = 0.5,
    reference_thigh_cm: float = 50.0,
) -> dict:
    """Compute every sprint angle of one frame.

    Parameters
    ----------
    landmarks : dict or None
        Named landmarks of the frame (``None`` for a failed detection).
    min_visibility : float, optional
        Visibility required on hips and shoulders, and per side on the
        arm chain (default 0.5).
    reference_thigh_cm : float, optional
        Assumed thigh length used to scale the foot offset (default 50).

    Returns
    -------
    dict
        ``trunk_angle`` and per-side dicts (``left``/``right``) for
        ``thigh_angle``, ``shank_angle``, ``knee_flex``, ``ankle_flex``,
        ``elbow_angle`` and ``toe_horizontal_distance_cm``. Values are
        finite floats or None.
    """
    sample = empty_angle_sample()
    if not landmarks:
        return sample
    if not all(_visible(landmarks, name, min_visibility) for name in TRUNK_LANDMARKS):
        return sample

    sample["trunk_angle"] = _finite(_trunk_angle(landmarks))

    for side in SIDES:
        leg = LEG_LANDMARKS[side]
        hip = _get_xy(landmarks, leg["hip"])
        knee = _get_xy(landmarks, leg["knee"])
        ankle = _get_xy(landmarks, leg["ankle"])
        toe = _get_xy(landmarks, leg["toe"])

        sample["thigh_angle"][side] = _finite(_segment_angle(hip, knee))
        sample["shank_angle"][side] = _finite(_segment_angle(knee, ankle))
        sample["knee_flex"][side] = _finite(_included(hip, knee, ankle))
        sample["ankle_flex"][side] = _finite(_included(knee, ankle, toe))
        sample["toe_horizontal_distance_cm"][side] = _finite(
            _toe_distance_cm(hip, knee, toe, reference_thigh_cm))

        arm = ARM_LANDMARKS[side]
        if all(_visible(landmarks, arm[part], min_visibility) for part in arm):
            sample["elbow_angle"][side] = _finite(_included(
                _get_xy(landmarks, arm["shoulder"]),
                _get_xy(landmarks, arm["elbow"]),
                _get_xy(landmarks, arm["wrist"]),
            ))

    return sample


def compute_angles(
    data: dict,
    min_visibility: float = 0.5,
    reference_thigh_cm: float = 50.0,
) -> dict:
    """Compute per-frame sprint angles for every frame.

    Parameters
    ----------
    data : dict
        Pivot JSON dict with ``frames`` populated.
    min_visibility : float, optional
        Confidence gate (default 0.5).
    reference_thigh_cm : float, optional
        Thigh ruler for the foot offset (default 50).

    Returns
    -------
    dict
        Modified *data* dict with ``angles`` populated:
        ``{"method", "reference_thigh_cm", "frames": [...]}``.

    Raises
    ------
    TypeError
        If *data* is not a dict.
    ValueError
        If *data* has no frames.
    """
    if not isinstance(data, dict):
        raise TypeError("data must be a dict")
    if not data.get("frames"):
        raise ValueError("No frames in data.")

    angle_frames = []
    n_valid = 0
    for f in data["frames"]:
        sample = compute_frame_angles(f.get("landmarks"), min_visibility, reference_thigh_cm)
        if sample["trunk_angle"] is not None:
            n_valid += 1
        angle_frames.append({"frame_idx": f["frame_idx"], **sample})

    logger.info(f"Computed angles: {n_valid}/{len(angle_frames)} frames passed the gate")

    data["angles"] = {
        "method": "sagittal_2d",
        "min_visibility": min_visibility,
        "reference_thigh_cm": reference_thigh_cm,
        "frames": angle_frames,
    }
    return data


def angle_lookup(data: dict, **kwargs) -> Dict[int, dict]:
    """Map frame number -> angle sample for frames with landmarks.

    Uses ``data["angles"]`` when present, otherwise computes the angles
    on the fly with *kwargs* forwarded to ``compute_frame_angles``.
    """
    detected = {f["frame_idx"] for f in data.get("frames", []) if f.get("landmarks")}
    angles = data.get("angles")
    if angles and angles.get("frames"):
        return {
            af["frame_idx"]: {k: v for k, v in af.items() if k != "frame_idx"}
            for af in angles["frames"] if af["frame_idx"] in detected
        }
    return {
        f["frame_idx"]: compute_frame_angles(f["landmarks"], **kwargs)
        for f in data.get("frames", []) if f.get("landmarks")
    }
