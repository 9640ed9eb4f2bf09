"""Per-stride sprint metrics.

A stride runs from one detected contact to the next (left and right
feet are not distinguished). Each stride record holds:

    - contact_time = (toe_off - contact) / fps
    - flight_time  = (next_contact - toe_off) / fps
    - step_time    = (next_contact - contact) / fps
    - cadence      = 1 / step_time (strides per second)
    - stride_length: the known reference distance split across strides
      in proportion to the ankle-midpoint horizontal displacement of
      each stride (compensates perspective); a uniform split when no
      landmark displacement is available.
    - speed        = stride_length / step_time
    - acceleration = (speed of next stride - speed) / step_time

Every derived value is None when an input event is missing or a
duration is not strictly positive.

Pairing: each contact takes the first toe-off strictly after it.
Contacts left over once toe-offs run out are dropped, and the next
contact of a stride is the contact of the following stride. When no
toe-off exists at all, every contact gets a synthesized ``contact + 1``
toe-off (flagged ``toe_off_synthesized``) so step timing survives; its
contact and flight times are None.
"""

import logging
from typing import Dict, List, Optional, Tuple

import numpy as np

from .angles import angle_lookup
from .constants import ANKLE_LANDMARKS

logger = logging.getLogger(__name__)

METRIC_KEYS = (
    "contact_time", "flight_time", "step_time",
    "cadence", "stride_length", "speed",
)


def _positive(value: float) -> Optional[float]:
    return float(value) if value > 0 else None


def _mean_or_none(vals):
    return float(np.mean(vals)) if vals else None


def pair_events(contact_frames: List[int], toe_off_frames: List[int]) -> List[Tuple[int, int, bool]]:
    """Pair contacts with toe-offs.

    Returns
    -------
    list of tuple
        ``(contact, toe_off, synthesized)`` per stride, in frame order.
    """
    contacts = sorted(set(int(c) for c in contact_frames))
    toe_offs = sorted(set(int(t) for t in toe_off_frames))
    if not toe_offs:
        return [(c, c + 1, True) for c in contacts]

    pairs = []
    j = 0
    for c in contacts:
        while j < len(toe_offs) and toe_offs[j] <= c:
            j += 1
        if j == len(toe_offs):
            break
        pairs.append((c, toe_offs[j], False))
    dropped = len(contacts) - len(pairs)
    if dropped:
        logger.debug(f"{dropped} trailing contact(s) without toe-off dropped")
    return pairs


def _ankle_visible(point: Optional[dict], min_visibility: float) -> bool:
    return bool(point) and point.get("visibility", 0.0) >= min_visibility


def ankle_midpoints(data: dict, min_visibility: float = 0.5) -> Dict[int, float]:
    """Frame number -> horizontal midpoint of both ankles (normalized units).

    Frames where either ankle's visibility is below *min_visibility* are
    left out.
    """
    positions = {}
    for f in data.get("frames", []):
        lm = f.get("landmarks")
        if not lm:
            continue
        xs = [lm[name].get("x") for name in ANKLE_LANDMARKS
              if _ankle_visible(lm.get(name), min_visibility)]
        xs = [x for x in xs if x is not None and np.isfinite(x)]
        if len(xs) == len(ANKLE_LANDMARKS):
            positions[f["frame_idx"]] = float(np.mean(xs))
    return positions


def build_stride_metrics(
    contact_frames: List[int],
    toe_off_frames: List[int],
    fps: float,
    reference_distance_m: Optional[float] = None,
    ankle_positions: Optional[Dict[int, float]] = None,
) -> List[dict]:
    """Build one metric record per stride.

    Parameters
    ----------
    contact_frames, toe_off_frames : list of int
        Detected events.
    fps : float
        Frame rate in Hz.
    reference_distance_m : float, optional
        Known distance covered over the analysed strides. Without it
        stride length and speed are None.
    ankle_positions : dict, optional
        Frame number -> ankle-midpoint x, see ``ankle_midpoints``.

    Returns
    -------
    list of dict
        Stride records (see module docstring).

    Raises
    ------
    ValueError
        If *fps* or *reference_distance_m* is not positive.
    """
    if fps is None or fps <= 0:
        raise ValueError(f"fps must be positive, got {fps}")
    if reference_distance_m is not None and reference_distance_m <= 0:
        raise ValueError(f"reference_distance_m must be positive, got {reference_distance_m}")

    pairs = pair_events(contact_frames, toe_off_frames)
    strides = []
    for i, (contact, toe_off, synthesized) in enumerate(pairs):
        next_contact = pairs[i + 1][0] if i + 1 < len(pairs) else None
        contact_time = None if synthesized else _positive((toe_off - contact) / fps)
        flight_time = None
        step_time = None
        if next_contact is not None:
            if not synthesized:
                flight_time = _positive((next_contact - toe_off) / fps)
            step_time = _positive((next_contact - contact) / fps)
        strides.append({
            "index": i,
            "contact_frame": contact,
            "toe_off_frame": toe_off,
            "next_contact_frame": next_contact,
            "toe_off_synthesized": synthesized,
            "contact_time": contact_time,
            "flight_time": flight_time,
            "step_time": step_time,
            "cadence": 1.0 / step_time if step_time else None,
            "stride_length": None,
            "stride_length_source": None,
            "speed": None,
            "acceleration": None,
        })

    if strides and reference_distance_m is not None:
        _assign_stride_lengths(strides, reference_distance_m, ankle_positions)

    for s in strides:
        if s["stride_length"] is not None and s["step_time"]:
            s["speed"] = s["stride_length"] / s["step_time"]
    for cur, nxt in zip(strides[:-1], strides[1:]):
        if cur["speed"] is not None and nxt["speed"] is not None and cur["step_time"]:
            cur["acceleration"] = (nxt["speed"] - cur["speed"]) / cur["step_time"]

    return strides


def _assign_stride_lengths(strides: List[dict], reference_distance_m: float,
                           ankle_positions: Optional[Dict[int, float]]) -> None:
    displacements = []
    for s in strides:
        d = None
        nxt = s["next_contact_frame"]
        if ankle_positions and nxt is not None:
            x0 = ankle_positions.get(s["contact_frame"])
            x1 = ankle_positions.get(nxt)
            if x0 is not None and x1 is not None:
                d = abs(x1 - x0)
        displacements.append(d)

    total = sum(d for d in displacements if d is not None)
    if total > 1e-10:
        for s, d in zip(strides, displacements):
            s["stride_length"] = d / total * reference_distance_m if d is not None else None
            s["stride_length_source"] = "proportional"
        return

    uniform = reference_distance_m / len(strides)
    for s in strides:
        s["stride_length"] = uniform
        s["stride_length_source"] = "uniform"


def attach_contact_angles(strides: List[dict], data: dict,
                          min_visibility: float = 0.5) -> List[dict]:
    """Add ``trunk_angle_at_contact`` and ``knee_flex_at_contact`` to each stride.

    The knee is taken on the support leg, the one whose ankle is lower
    on screen at the contact frame. Ankles below *min_visibility* do not
    take part in that choice.
    """
    lookup = angle_lookup(data)
    by_idx = {f["frame_idx"]: f.get("landmarks") for f in data.get("frames", [])}
    for s in strides:
        sample = lookup.get(s["contact_frame"])
        s["trunk_angle_at_contact"] = sample["trunk_angle"] if sample else None
        s["knee_flex_at_contact"] = None
        if not sample:
            continue
        knees = sample["knee_flex"]
        side = _support_side(by_idx.get(s["contact_frame"]), min_visibility)
        if side is not None and knees[side] is not None:
            s["knee_flex_at_contact"] = knees[side]
        else:
            s["knee_flex_at_contact"] = knees["left"] if knees["left"] is not None else knees["right"]
    return strides


def _support_side(landmarks: Optional[dict], min_visibility: float = 0.5) -> Optional[str]:
    if not landmarks:
        return None
    ys = {}
    for side, name in zip(("left", "right"), ANKLE_LANDMARKS):
        lm = landmarks.get(name)
        if _ankle_visible(lm, min_visibility) and lm.get("y") is not None:
            ys[side] = lm["y"]
    if not ys:
        return None
    return max(ys, key=ys.get)


def summarize_strides(strides: List[dict]) -> dict:
    """Mean of each metric over the strides where it is available."""
    summary = {"n_strides": len(strides)}
    for key in METRIC_KEYS:
        vals = [s[key] for s in strides if s.get(key) is not None]
        summary[f"avg_{key}"] = _mean_or_none(vals)
        summary[f"n_{key}"] = len(vals)
    return summary


def compute_strides(data: dict, reference_distance_m: Optional[float] = None,
                    min_visibility: float = 0.5) -> dict:
    """Build stride records and their summary from detected events.

    Parameters
    ----------
    data : dict
        Pivot JSON dict with ``events`` populated.
    reference_distance_m : float, optional
        Overrides ``data["meta"]["reference_distance_m"]``.
    min_visibility : float, optional
        Ankle visibility required for stride positions and the support
        leg (default 0.5).

    Returns
    -------
    dict
        Modified *data* dict with ``strides`` populated:
        ``{"strides", "summary", "reference_distance_m", "length_mode"}``.

    Raises
    ------
    TypeError
        If *data* is not a dict.
    ValueError
        If *data* has no events.
    """
    if not isinstance(data, dict):
        raise TypeError("data must be a dict")
    events = data.get("events")
    if not events:
        raise ValueError("No events in data. Run detect_events() first.")

    meta = data.get("meta", {})
    fps = events.get("fps", meta.get("fps", 30.0))
    if reference_distance_m is None:
        reference_distance_m = meta.get("reference_distance_m")

    positions = ankle_midpoints(data, min_visibility)
    strides = build_stride_metrics(
        events.get("contact_frames", []),
        events.get("toe_off_frames", []),
        fps,
        reference_distance_m,
        positions,
    )
    attach_contact_angles(strides, data, min_visibility)

    length_mode = strides[0]["stride_length_source"] if strides else None

    summary = summarize_strides(strides)
    logger.info(
        f"Built {len(strides)} strides "
        f"(length mode={length_mode}, avg speed={summary['avg_speed']})"
    )
    data["strides"] = {
        "strides": strides,
        "summary": summary,
        "reference_distance_m": reference_distance_m,
        "length_mode": length_mode,
    }
    return data
