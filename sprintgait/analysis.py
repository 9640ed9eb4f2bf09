"""End-to-end sprint analysis of one recorded run.

Chains every stage over the pivot dict:

    frames -> trajectory/events -> angles -> strides -> phases
    -> evaluation (-> force-velocity profile when body mass is known)

Stage parameters come from a configuration dict merged against
``DEFAULT_CONFIG`` (see :mod:`sprintgait.config`); explicit keyword
arguments of :func:`analyze_run` win over the configuration.

Functions
---------
analyze_run
    Run the whole pipeline (main entry point).
run_summary
    Compact dict of the headline numbers of an analysed run.
"""

import logging
from typing import Optional

from .angles import compute_angles
from .config import get_config
from .evaluation import evaluate
from .events import detect_events
from .hfvp import compute_force_velocity
from .phases import compute_phase_angles
from .schema import validate_frames
from .strides import compute_strides

logger = logging.getLogger(__name__)


def _subject_value(data: dict, cfg: dict, key: str):
    subject = data.get("subject") or {}
    value = subject.get(key)
    return value if value is not None else cfg["subject"].get(key)


def analyze_run(
    data: dict,
    reference_distance_m: Optional[float] = None,
    mode: Optional[str] = None,
    start_type: Optional[str] = None,
    config: Optional[dict] = None,
) -> dict:
    """Analyse a sprint recording.

    Parameters
    ----------
    data : dict
        Pivot JSON dict with ``frames`` and ``meta.fps``.
    reference_distance_m : float, optional
        Known distance covered by the analysed strides. Defaults to the
        configuration, then to ``meta.reference_distance_m``.
    mode : {'acceleration', 'top_speed'}, optional
        Evaluation mode (default from configuration).
    start_type : {'standing', 'flying'}, optional
        Start type in acceleration mode (default from configuration).
    config : dict, optional
        Partial configuration merged against the defaults.

    Returns
    -------
    dict
        Modified *data* dict with ``trajectory``, ``events``, ``angles``,
        ``strides``, ``phases``, ``evaluation`` and ``hfvp`` populated.

    Raises
    ------
    TypeError
        If *data* is not a dict.
    ValueError
        If frames are missing or non-consecutive, fps is not positive,
        or the mode / start type is unknown.
    """
    if not isinstance(data, dict):
        raise TypeError("data must be a dict")
    if not data.get("frames"):
        raise ValueError("No frames in data.")
    validate_frames(data["frames"])

    meta = data.setdefault("meta", {})
    fps = meta.get("fps")
    if fps is None or fps <= 0:
        raise ValueError(f"fps must be positive, got {fps}")

    cfg = get_config(config)
    ev_cfg = cfg["events"]
    eval_cfg = cfg["evaluation"]

    if reference_distance_m is None:
        reference_distance_m = cfg["strides"].get("reference_distance_m")
    if reference_distance_m is None:
        reference_distance_m = meta.get("reference_distance_m")
    mode = mode or eval_cfg["mode"]
    start_type = start_type or eval_cfg["start_type"]

    logger.info(
        f"Analysing {len(data['frames'])} frames at {fps} fps "
        f"(mode={mode}, start={start_type}, distance={reference_distance_m})"
    )

    detect_events(
        data,
        method=ev_cfg["method"],
        min_frames=ev_cfg["min_frames"],
        merge_tolerance=ev_cfg["merge_tolerance"],
        knee_change_deg=ev_cfg["knee_change_deg"],
        ankle_increase_deg=ev_cfg["ankle_increase_deg"],
        joint_min_visibility=ev_cfg["joint_min_visibility"],
        trajectory_params=cfg["trajectory"],
    )
    compute_angles(data, **cfg["angles"])
    compute_strides(data, reference_distance_m=reference_distance_m,
                    min_visibility=cfg["strides"]["min_visibility"])
    compute_phase_angles(data)
    evaluate(
        data,
        mode=mode,
        start_type=start_type,
        height_cm=_subject_value(data, cfg, "height_cm"),
        sex=_subject_value(data, cfg, "sex"),
    )

    mass_kg = _subject_value(data, cfg, "mass_kg")
    if mass_kg is not None:
        compute_force_velocity(data, mass_kg=mass_kg, **cfg["hfvp"])
    else:
        data["hfvp"] = None

    return data


def run_summary(data: dict) -> dict:
    """Headline numbers of an analysed run.

    Missing stages give None entries rather than raising.
    """
    strides = data.get("strides") or {}
    summary = strides.get("summary") or {}
    events = data.get("events") or {}
    evaluation = data.get("evaluation") or {}
    hfvp = data.get("hfvp") or {}
    return {
        "n_contacts": len(events.get("contact_frames", [])),
        "n_toe_offs": len(events.get("toe_off_frames", [])),
        "event_confidence": events.get("confidence"),
        "n_strides": summary.get("n_strides", 0),
        "avg_contact_time_s": summary.get("avg_contact_time"),
        "avg_flight_time_s": summary.get("avg_flight_time"),
        "avg_cadence_hz": summary.get("avg_cadence"),
        "avg_stride_length_m": summary.get("avg_stride_length"),
        "avg_speed_mps": summary.get("avg_speed"),
        "mode": evaluation.get("mode"),
        "overall_rating": evaluation.get("overall_rating"),
        "avg_score": evaluation.get("avg_score"),
        "priorities": evaluation.get("priorities", []),
        "F0": hfvp.get("F0"),
        "V0": hfvp.get("V0"),
        "Pmax": hfvp.get("Pmax"),
    }
