"""Sprint technique evaluation against reference bands.

Each dimension turns one summary value into a finding::

    {"category", "score", "points", "value", "label", "message", "advice"}

Dimensions whose input is missing or not strictly positive are skipped
rather than scored. Scores map to points (excellent 4, good 3, fair 2,
poor 1); their mean gives the overall tier.

Acceleration mode scores posture from the trunk angle at each contact
(first step, then the step-to-step rise) when at least three contacts
carry a trunk angle, otherwise from the mean phase trunk angle. Top
speed mode always uses the mean.
"""

import logging
from typing import List, Optional

import numpy as np

from .bands import (
    ACCELERATION,
    EXCELLENT,
    OVERALL_MESSAGES,
    SCORE_POINTS,
    STANDING_START,
    TOP_SPEED,
    Band,
    classify,
    get_bands,
    overall_tier,
)

logger = logging.getLogger(__name__)


def _finding(category: str, band: Band, value: float, message: str) -> dict:
    return {
        "category": category,
        "score": band.score,
        "points": SCORE_POINTS[band.score],
        "value": float(value),
        "label": band.label,
        "message": message,
        "advice": band.advice,
    }


def _banded(category: str, table: dict, value: float, **fmt) -> dict:
    band = classify(value, table)
    message = table["message"].format(value=value, label=band.label, **fmt)
    return _finding(category, band, value, message)


def _present(value) -> bool:
    return value is not None and value > 0


# ── Dimensions ───────────────────────────────────────────────────────


def _trunk_progression(trunks: List[float], table: dict) -> dict:
    """Score the trunk rise from the first to the last contact.

    The expected rise is ``per_step_deg`` per step, counted over at most
    ``max_steps`` steps: the trunk should be near upright by then, so
    later contacts add to the observed change but not to the target.
    """
    steps = len(trunks) - 1
    first, last = trunks[0], trunks[-1]
    change = last - first
    per_step = change / steps
    expected = min(steps, table["max_steps"]) * table["per_step_deg"]

    lo, hi = table["on_track"]
    ideal_lo, ideal_hi = table["ideal_step_change"]
    if change < 0:
        outcome = "reversed"
    elif lo * expected <= change <= hi * expected:
        outcome = "ideal" if ideal_lo <= per_step <= ideal_hi else "on_track"
    elif change < table["stalled_below"] * expected:
        outcome = "stalled"
    elif change > table["abrupt_above"] * expected:
        outcome = "abrupt"
    else:
        outcome = "other"

    band = table["outcomes"][outcome]
    message = table["message"].format(
        first=first, last=last, n=steps + 1, change=change, label=band.label,
    )
    return _finding("posture_progression", band, change, message)


def _knee_lock(knees: List[float], table: dict) -> dict:
    finding = _banded("knee_lock", table, knees[0])
    if len(knees) >= 3:
        drop = knees[0] - knees[2]
        lo, hi = table["progress_range"]
        if lo <= drop <= hi:
            finding["advice"] += " " + table["progress_good"]
        elif drop < lo:
            finding["advice"] += " " + table["progress_low"]
    return finding


def _stride_height_by_sex(ratio: float, stride: float, height_cm: float,
                          sex: Optional[str], table: dict) -> dict:
    limits = table["limits"].get(sex or "", table["limits"]["default"])
    ex_lo, ex_hi = limits["excellent"]
    good_lo, good_hi = limits["good"]
    if ex_lo <= ratio <= ex_hi:
        score, key = EXCELLENT, "excellent"
    elif good_lo <= ratio < ex_lo:
        score, key = "good", "short"
    elif ex_hi < ratio <= good_hi:
        score, key = "good", "long"
    elif ratio < good_lo:
        score, key = "fair", "too_short"
    else:
        score, key = "fair", "too_long"
    label, advice = table["labels"][key]
    band = Band(score, None, None, label, advice)
    message = table["message"].format(
        value=ratio, stride=stride, height=height_cm, label=label,
    )
    return _finding("stride_height_ratio", band, ratio, message)


def _phase_values(phase_angles: List[dict], key: str) -> List[float]:
    vals = []
    for entry in phase_angles:
        v = entry["angles"].get(key)
        if isinstance(v, dict):
            vals.extend(x for x in v.values() if x is not None)
        elif v is not None:
            vals.append(v)
    return vals


# ── Public API ───────────────────────────────────────────────────────


def evaluate_running(
    strides: List[dict],
    phase_angles: List[dict],
    summary: dict,
    mode: str = TOP_SPEED,
    start_type: str = STANDING_START,
    height_cm: Optional[float] = None,
    sex: Optional[str] = None,
) -> dict:
    """Score sprint technique for one run.

    Parameters
    ----------
    strides : list of dict
        Stride records (with ``trunk_angle_at_contact`` and
        ``knee_flex_at_contact`` when available).
    phase_angles : list of dict
        Output of ``sample_phase_angles``.
    summary : dict
        Output of ``summarize_strides``.
    mode : {'acceleration', 'top_speed'}
    start_type : {'standing', 'flying'}
        Only used in acceleration mode.
    height_cm : float, optional
        Enables the stride/height dimension.
    sex : str, optional
        ``'female'`` selects the female stride/height bands at top speed.

    Returns
    -------
    dict
        ``{"mode", "start_type", "findings", "priorities", "avg_score",
        "overall_rating", "overall_message"}``. Without any finding the
        score, rating and message are None.

    Raises
    ------
    ValueError
        If *mode* or *start_type* is unknown.
    """
    bands = get_bands(mode, start_type)
    findings = []

    # Posture
    trunks = [s["trunk_angle_at_contact"] for s in strides
              if s.get("trunk_angle_at_contact") is not None]
    phase_trunks = _phase_values(phase_angles, "trunk_angle")
    if mode == ACCELERATION and len(trunks) >= 3:
        findings.append(_banded("first_step_posture", bands["first_step_trunk"], trunks[0]))
        findings.append(_trunk_progression(trunks, bands["trunk_progression"]))
    elif phase_trunks:
        findings.append(_banded("posture", bands["trunk"], float(np.mean(phase_trunks))))

    # Knee lock at the first contacts
    if "knee_lock" in bands:
        knees = [s["knee_flex_at_contact"] for s in strides
                 if s.get("knee_flex_at_contact") is not None]
        if len(knees) >= 2:
            findings.append(_knee_lock(knees, bands["knee_lock"]))

    avg_stride = summary.get("avg_stride_length")
    avg_cadence = summary.get("avg_cadence")
    avg_contact = summary.get("avg_contact_time")
    avg_flight = summary.get("avg_flight_time")

    # Stride extension / step frequency
    if _present(avg_cadence) and _present(avg_stride):
        if mode == ACCELERATION:
            findings.append(_banded("stride_extension", bands["stride_extension"], avg_stride))
        else:
            findings.append(_banded("cadence", bands["cadence"], avg_cadence,
                                    per_min=avg_cadence * 60.0))

    # Stride relative to body height
    if _present(height_cm) and _present(avg_stride):
        ratio = avg_stride / (height_cm / 100.0)
        table = bands["stride_height"]
        if "limits" in table:
            findings.append(_stride_height_by_sex(ratio, avg_stride, height_cm, sex, table))
        else:
            findings.append(_banded("stride_height_ratio", table, ratio,
                                    stride=avg_stride, height=height_cm))

    # Ground contact
    if _present(avg_contact):
        findings.append(_banded("contact_time", bands["contact_time"], avg_contact))
        if _present(avg_flight):
            findings.append(_banded("contact_flight_ratio", bands["contact_flight_ratio"],
                                    avg_contact / avg_flight))

    # Thigh range of motion
    thighs = _phase_values(phase_angles, "thigh_angle")
    if len(thighs) >= 2:
        findings.append(_banded("thigh_rom", bands["thigh_rom"], max(thighs) - min(thighs)))

    result = {
        "mode": mode,
        "start_type": start_type,
        "findings": findings,
        "priorities": [],
        "avg_score": None,
        "overall_rating": None,
        "overall_message": None,
    }
    if not findings:
        logger.warning("No evaluation dimension had enough data")
        return result

    avg = float(np.mean([f["points"] for f in findings]))
    tier = overall_tier(avg)
    result["avg_score"] = avg
    result["overall_rating"] = tier
    result["overall_message"] = OVERALL_MESSAGES[mode][tier]
    result["priorities"] = [
        f["category"] for f in sorted(findings, key=lambda f: f["points"])
        if f["score"] != EXCELLENT
    ]
    logger.info(
        f"Evaluation ({mode}): {len(findings)} findings, "
        f"avg score {avg:.2f} -> {tier}"
    )
    return result


def evaluate(
    data: dict,
    mode: str = TOP_SPEED,
    start_type: str = STANDING_START,
    height_cm: Optional[float] = None,
    sex: Optional[str] = None,
) -> dict:
    """Evaluate the strides and phase angles stored in *data*.

    Height and sex default to ``data["subject"]``.

    Returns
    -------
    dict
        Modified *data* dict with ``evaluation`` populated.

    Raises
    ------
    TypeError
        If *data* is not a dict.
    ValueError
        If *data* has no strides, or mode / start type is unknown.
    """
    if not isinstance(data, dict):
        raise TypeError("data must be a dict")
    stride_block = data.get("strides")
    if stride_block is None:
        raise ValueError("No strides in data. Run compute_strides() first.")

    subject = data.get("subject") or {}
    if height_cm is None:
        height_cm = subject.get("height_cm")
    if sex is None:
        sex = subject.get("sex")

    data["evaluation"] = evaluate_running(
        stride_block.get("strides", []),
        data.get("phases") or [],
        stride_block.get("summary", {}),
        mode=mode,
        start_type=start_type,
        height_cm=height_cm,
        sex=sex,
    )
    return data
