"""Sprint event detection: ground contact and toe-off.

Methods available:
    - "trajectory": rising edges of the foot-tip trajectory flags.
      Contact is the first frame of a stationary foot about to rise
      (``is_lowest``), toe-off the first frame of an upward movement
      (``is_rising``). See ``sprintgait.trajectory``.

    - "joint_angle": inter-frame change of the lower-limb included
      angles. A knee angle change above 15 deg on either leg flags a
      contact candidate, an opening of the knee-ankle-toe angle by more
      than 5 deg flags a toe-off candidate.
      Ref: Hreljac A, Marshall RN. Algorithms to determine event timing
      during normal walking using kinematic data. J Biomech.
      2000;33(6):783-786. doi:10.1016/S0021-9290(00)00014-2

    - "merged" (default): all trajectory candidates, plus joint-angle
      candidates that have no trajectory candidate within 5 frames.

All methods are registered in EVENT_METHODS and can be extended
via register_event_method().
"""

import logging
import math
from typing import Callable, Dict, List, Optional

import numpy as np

from .constants import LEG_LANDMARKS, SIDES
from .trajectory import analyze_toe_trajectory

logger = logging.getLogger(__name__)


# ── Geometry helpers ─────────────────────────────────────────────────


def _visible_xy(landmarks: Optional[dict], name: str, min_visibility: float) -> Optional[tuple]:
    """Return (x, y) of a landmark passing the visibility gate, else None."""
    if not landmarks:
        return None
    lm = landmarks.get(name)
    if lm is None or lm.get("visibility", 0.0) < min_visibility:
        return None
    x, y = lm.get("x"), lm.get("y")
    if x is None or y is None or not (math.isfinite(x) and math.isfinite(y)):
        return None
    return float(x), float(y)


def _included_angle(a: tuple, b: tuple, c: tuple) -> Optional[float]:
    """Angle ABC in degrees from the law of cosines on the three side lengths."""
    ab = math.dist(a, b)
    cb = math.dist(c, b)
    ac = math.dist(a, c)
    if ab < 1e-10 or cb < 1e-10:
        return None
    cos_b = (ab ** 2 + cb ** 2 - ac ** 2) / (2 * ab * cb)
    return math.degrees(math.acos(float(np.clip(cos_b, -1.0, 1.0))))


def _leg_angle(landmarks: Optional[dict], side: str, joint: str,
               min_visibility: float) -> Optional[float]:
    """Knee (hip-knee-ankle) or ankle (knee-ankle-toe) included angle."""
    names = LEG_LANDMARKS[side]
    chain = ("hip", "knee", "ankle") if joint == "knee" else ("knee", "ankle", "toe")
    points = [_visible_xy(landmarks, names[part], min_visibility) for part in chain]
    if any(p is None for p in points):
        return None
    return _included_angle(*points)


# ── Detection methods ────────────────────────────────────────────────


def _rising_edges(points: list, flag: str) -> List[int]:
    frames = []
    prev = False
    for p in points:
        cur = bool(p.get(flag))
        if cur and not prev:
            frames.append(int(p["frame"]))
        prev = cur
    return frames


def detect_trajectory_events(points: list) -> Dict[str, list]:
    """Contacts and toe-offs from the rising edges of trajectory flags.

    Parameters
    ----------
    points : list of dict
        ``trajectory["points"]`` as built by ``trajectory_from_heights``.

    Returns
    -------
    dict
        ``contact_frames`` and ``toe_off_frames``, strictly increasing.
    """
    return {
        "contact_frames": _rising_edges(points, "is_lowest"),
        "toe_off_frames": _rising_edges(points, "is_rising"),
    }


def detect_joint_angle_events(
    frames: list,
    knee_change_deg: float = 15.0,
    ankle_increase_deg: float = 5.0,
    min_visibility: float = 0.5,
) -> Dict[str, list]:
    """Contact and toe-off candidates from inter-frame joint angle changes.

    Each adjacent frame pair is compared leg by leg. Legs failing the
    visibility gate in either frame are skipped, and a pair with no
    usable leg produces no candidate.

    Returns
    -------
    dict
        ``contact_frames`` and ``toe_off_frames``, strictly increasing.
    """
    contacts: List[int] = []
    toe_offs: List[int] = []

    for prev, cur in zip(frames[:-1], frames[1:]):
        lm_prev, lm_cur = prev.get("landmarks"), cur.get("landmarks")
        if not lm_prev or not lm_cur:
            continue

        knee_changes = []
        ankle_opened = False
        for side in SIDES:
            k0 = _leg_angle(lm_prev, side, "knee", min_visibility)
            k1 = _leg_angle(lm_cur, side, "knee", min_visibility)
            if k0 is not None and k1 is not None:
                knee_changes.append(abs(k1 - k0))
            a0 = _leg_angle(lm_prev, side, "ankle", min_visibility)
            a1 = _leg_angle(lm_cur, side, "ankle", min_visibility)
            if a0 is not None and a1 is not None and a1 - a0 > ankle_increase_deg:
                ankle_opened = True

        if knee_changes and max(knee_changes) > knee_change_deg:
            contacts.append(int(cur["frame_idx"]))
        if ankle_opened:
            toe_offs.append(int(cur["frame_idx"]))

    return {"contact_frames": contacts, "toe_off_frames": toe_offs}


def merge_candidates(primary: List[int], auxiliary: List[int], tolerance: int = 5) -> List[int]:
    """Merge two candidate lists, trajectory-based candidates taking precedence.

    Every *primary* frame is kept. An *auxiliary* frame is added only
    when no primary frame lies within *tolerance* frames of it.

    Returns
    -------
    list of int
        Sorted, duplicate-free frame numbers.
    """
    merged = set(int(f) for f in primary)
    prim = np.array(sorted(merged), dtype=int)
    for f in auxiliary:
        if prim.size and np.min(np.abs(prim - int(f))) <= tolerance:
            continue
        merged.add(int(f))
    return sorted(merged)


def _detect_trajectory(frames: list, points: list, params: dict) -> Dict[str, list]:
    return detect_trajectory_events(points)


def _detect_joint_angle(frames: list, points: list, params: dict) -> Dict[str, list]:
    return detect_joint_angle_events(
        frames,
        knee_change_deg=params.get("knee_change_deg", 15.0),
        ankle_increase_deg=params.get("ankle_increase_deg", 5.0),
        min_visibility=params.get("joint_min_visibility", 0.5),
    )


def _detect_merged(frames: list, points: list, params: dict) -> Dict[str, list]:
    traj = _detect_trajectory(frames, points, params)
    joint = _detect_joint_angle(frames, points, params)
    tolerance = params.get("merge_tolerance", 5)
    return {
        "contact_frames": merge_candidates(
            traj["contact_frames"], joint["contact_frames"], tolerance),
        "toe_off_frames": merge_candidates(
            traj["toe_off_frames"], joint["toe_off_frames"], tolerance),
        "candidates": {"trajectory": traj, "joint_angle": joint},
    }


EVENT_METHODS: Dict[str, Callable] = {
    "trajectory": _detect_trajectory,
    "joint_angle": _detect_joint_angle,
    "merged": _detect_merged,
}


def register_event_method(name: str, func: Callable):
    """Register a custom event detection method.

    The function must accept (frames, trajectory_points, params) and
    return a dict with keys: contact_frames, toe_off_frames.
    """
    EVENT_METHODS[name] = func


def list_event_methods() -> list:
    """Return available event detection method names."""
    return list(EVENT_METHODS.keys())


# ── Confidence and validation ────────────────────────────────────────


def _step_consistency(contacts: List[int]) -> float:
    """1 - mean absolute deviation over mean of contact-to-contact intervals."""
    if len(contacts) < 2:
        return 0.0
    intervals = np.diff(np.asarray(contacts, dtype=float))
    mean = float(np.mean(intervals))
    if mean <= 0:
        return 0.0
    spread = float(np.mean(np.abs(intervals - mean))) / mean
    return max(0.0, 1.0 - spread)


def detection_confidence(
    contacts: List[int],
    toe_offs: List[int],
    n_frames: int,
    points: Optional[list] = None,
    match_window: int = 3,
) -> float:
    """Heuristic confidence of a detection result, in [0, 1].

    Weighted sum of the contact and toe-off counts against one step
    per 20 frames (0.3 each), the share of contacts lying within
    *match_window* frames of a trajectory lowest point (0.3), and the
    regularity of contact intervals (0.1).
    """
    if not contacts or not toe_offs:
        return 0.0
    expected = max(1, n_frames // 20)
    contact_ratio = min(len(contacts) / expected, 1.0)
    toe_off_ratio = min(len(toe_offs) / expected, 1.0)

    lowest = [p["frame"] for p in (points or []) if p.get("is_lowest")]
    matched = sum(
        1 for c in contacts if any(abs(f - c) < match_window for f in lowest)
    )
    trajectory_match = matched / len(contacts)

    score = (
        0.3 * contact_ratio
        + 0.3 * toe_off_ratio
        + 0.3 * trajectory_match
        + 0.1 * _step_consistency(contacts)
    )
    return round(float(np.clip(score, 0.0, 1.0)), 4)


def validate_events(
    data: dict,
    min_step_s: float = 0.15,
    max_step_s: float = 0.8,
    max_contact_s: float = 0.35,
) -> dict:
    """Plausibility check of detected sprint events.

    Checks ordering, contact/toe-off alternation, step durations
    and ground contact durations.

    Returns
    -------
    dict
        Validation report with keys ``valid`` (bool), ``issues``
        (list of str) and ``n_valid_steps`` (int).
    """
    events = data.get("events")
    if events is None:
        return {"valid": False, "issues": ["No events detected"], "n_valid_steps": 0}

    issues: List[str] = []
    fps = events.get("fps", data.get("meta", {}).get("fps", 30.0))
    contacts = list(events.get("contact_frames", []))
    toe_offs = list(events.get("toe_off_frames", []))

    for key, frames in (("contact_frames", contacts), ("toe_off_frames", toe_offs)):
        if any(b <= a for a, b in zip(frames[:-1], frames[1:])):
            issues.append(f"{key} are not strictly increasing")

    if not contacts:
        issues.append("No contacts detected")
    if not toe_offs:
        issues.append("No toe-offs detected")

    n_valid = 0
    for i in range(len(contacts) - 1):
        start, end = contacts[i], contacts[i + 1]
        step_s = (end - start) / fps
        if step_s < min_step_s:
            issues.append(f"Step at frame {start}: duration {step_s:.2f}s < {min_step_s}s")
            continue
        if step_s > max_step_s:
            issues.append(f"Step at frame {start}: duration {step_s:.2f}s > {max_step_s}s")
            continue
        between = [t for t in toe_offs if start < t < end]
        if not between:
            issues.append(f"Step at frame {start}: no toe-off before next contact")
            continue
        if len(between) > 1:
            issues.append(f"Step at frame {start}: {len(between)} toe-offs before next contact")
            continue
        contact_s = (between[0] - start) / fps
        if contact_s > max_contact_s:
            issues.append(
                f"Step at frame {start}: contact {contact_s:.2f}s > {max_contact_s}s"
            )
            continue
        n_valid += 1

    return {"valid": not issues, "issues": issues, "n_valid_steps": n_valid}


# ── Main entry point ─────────────────────────────────────────────────


def detect_events(
    data: dict,
    method: str = "merged",
    min_frames: int = 15,
    merge_tolerance: int = 5,
    knee_change_deg: float = 15.0,
    ankle_increase_deg: float = 5.0,
    joint_min_visibility: float = 0.5,
    trajectory_params: Optional[dict] = None,
) -> dict:
    """Detect ground contacts and toe-offs from pose data.

    The foot-tip trajectory is rebuilt first (stored under
    ``data["trajectory"]``) and then the selected method runs.

    Parameters
    ----------
    data : dict
        Pivot JSON dict with ``frames`` populated.
    method : str, optional
        Detection method name (default ``"merged"``). Use
        ``list_event_methods()`` to see available methods.
    min_frames : int, optional
        Sequences shorter than this yield no events (default 15).
    merge_tolerance : int, optional
        Frames within which a trajectory candidate shadows a joint-angle
        candidate (default 5).
    knee_change_deg, ankle_increase_deg : float, optional
        Joint-angle method thresholds (defaults 15 and 5 deg).
    joint_min_visibility : float, optional
        Visibility gate of the joint-angle method (default 0.5).
    trajectory_params : dict, optional
        Keyword arguments forwarded to ``analyze_toe_trajectory``.

    Returns
    -------
    dict
        Modified *data* dict with ``events`` populated.

    Raises
    ------
    ValueError
        If *data* has no frames or *method* is unknown.
    TypeError
        If *data* is not a dict.
    """
    if not isinstance(data, dict):
        raise TypeError("data must be a dict")
    if not data.get("frames"):
        raise ValueError("No frames in data.")
    if method not in EVENT_METHODS:
        available = ", ".join(EVENT_METHODS.keys())
        raise ValueError(f"Unknown method: {method}. Available: {available}")

    fps = data.get("meta", {}).get("fps", 30.0)
    frames = data["frames"]

    analyze_toe_trajectory(data, **(trajectory_params or {}))
    points = data["trajectory"]["points"]

    if len(frames) < min_frames:
        logger.warning(
            f"Only {len(frames)} frames (< {min_frames}), skipping event detection"
        )
        events = {"contact_frames": [], "toe_off_frames": []}
    else:
        logger.info(f"Detecting sprint events with method={method}, fps={fps:.1f}")
        params = {
            "merge_tolerance": merge_tolerance,
            "knee_change_deg": knee_change_deg,
            "ankle_increase_deg": ankle_increase_deg,
            "joint_min_visibility": joint_min_visibility,
        }
        events = EVENT_METHODS[method](frames, points, params)

    contacts = sorted(set(int(f) for f in events["contact_frames"]))
    toe_offs = sorted(set(int(f) for f in events["toe_off_frames"]))
    logger.info(f"Detected {len(contacts)} contacts, {len(toe_offs)} toe-offs")

    data["events"] = {
        "method": method,
        "fps": fps,
        "contact_frames": contacts,
        "toe_off_frames": toe_offs,
        "candidates": events.get("candidates"),
        "confidence": detection_confidence(contacts, toe_offs, len(frames), points),
    }
    return data
