"""Joint angles at the key phases of each stride.

    - "initial": the contact frame.
    - "mid": the frame of [contact, toe_off] where the mean thigh angle
      of the available legs is nearest 0 deg (thighs passing vertical).
    - "late": the toe-off frame.

Frames without a detection are skipped, as are strides whose toe-off
does not come after the contact.
"""

import logging
from typing import Dict, List, Optional

from .angles import angle_lookup

logger = logging.getLogger(__name__)

PHASES = ("initial", "mid", "late")


def _mean_thigh(sample: dict) -> Optional[float]:
    vals = [v for v in sample["thigh_angle"].values() if v is not None]
    if not vals:
        return None
    return sum(vals) / len(vals)


def _mid_stance_frame(lookup: Dict[int, dict], contact: int, toe_off: int) -> Optional[int]:
    best, best_dev = None, None
    for f in range(contact, toe_off + 1):
        sample = lookup.get(f)
        if sample is None:
            continue
        thigh = _mean_thigh(sample)
        if thigh is None:
            continue
        if best_dev is None or abs(thigh) < best_dev:
            best, best_dev = f, abs(thigh)
    return best


def sample_phase_angles(data: dict, strides: Optional[List[dict]] = None) -> List[dict]:
    """Angles at initial contact, mid-stance and toe-off for every stride.

    Parameters
    ----------
    data : dict
        Pivot JSON dict with ``frames`` (and optionally ``angles``).
    strides : list of dict, optional
        Stride records; defaults to ``data["strides"]["strides"]``.

    Returns
    -------
    list of dict
        ``{"stride_index", "phase", "frame", "angles"}`` entries, up to
        three per stride, in stride order.
    """
    if strides is None:
        strides = (data.get("strides") or {}).get("strides", [])
    lookup = angle_lookup(data)

    samples = []
    for s in strides:
        contact, toe_off = s["contact_frame"], s["toe_off_frame"]
        if toe_off <= contact:
            continue
        frames = {
            "initial": contact,
            "mid": _mid_stance_frame(lookup, contact, toe_off),
            "late": toe_off,
        }
        for phase in PHASES:
            frame = frames[phase]
            if frame is None or frame not in lookup:
                continue
            samples.append({
                "stride_index": s.get("index"),
                "phase": phase,
                "frame": frame,
                "angles": lookup[frame],
            })

    logger.info(f"Sampled {len(samples)} phase angles over {len(strides)} strides")
    return samples


def compute_phase_angles(data: dict) -> dict:
    """Store ``sample_phase_angles`` output under ``data["phases"]``."""
    if not isinstance(data, dict):
        raise TypeError("data must be a dict")
    data["phases"] = sample_phase_angles(data)
    return data
