"""Export sprint analysis results to tabular and JSON formats.

Functions
---------
to_dataframe
    Convert angles, strides, events or phase angles to pandas DataFrames.
export_csv
    Export angles, strides, events and phase angles to CSV files.
export_summary_json
    Export a compact JSON summary of the analysed run.

Unknown values are written as empty CSV cells, never as ``NaN`` text
or zero.
"""

import json
import logging
from datetime import datetime
from pathlib import Path

import pandas as pd

from .angles import SIDED_FIELDS
from .schema import _convert_numpy

logger = logging.getLogger(__name__)

_SIDE_SUFFIX = {"left": "L", "right": "R"}

ANGLE_COLUMNS = ["frame_idx", "trunk_angle"] + [
    f"{field}_{suffix}" for field in SIDED_FIELDS for suffix in ("L", "R")
]

STRIDE_COLUMNS = [
    "index", "contact_frame", "toe_off_frame", "next_contact_frame",
    "toe_off_synthesized", "contact_time", "flight_time", "step_time",
    "cadence", "stride_length", "stride_length_source", "speed",
    "acceleration", "trunk_angle_at_contact", "knee_flex_at_contact",
]

EVENT_COLUMNS = ["event_type", "frame", "time"]

PHASE_COLUMNS = ["stride_index", "phase", "frame"] + ANGLE_COLUMNS[1:]


def _flatten_sample(sample: dict) -> dict:
    row = {"trunk_angle": sample.get("trunk_angle")}
    for field in SIDED_FIELDS:
        sided = sample.get(field) or {}
        for side, suffix in _SIDE_SUFFIX.items():
            row[f"{field}_{suffix}"] = sided.get(side)
    return row


def to_dataframe(data: dict, what: str = "angles") -> "pd.DataFrame | dict":
    """Convert sprint analysis data to pandas DataFrame(s).

    Parameters
    ----------
    data : dict
        Pivot JSON dict.
    what : str, optional
        - ``"angles"`` : per-frame angles, one column per side.
        - ``"strides"`` : one row per stride.
        - ``"events"`` : contacts and toe-offs in frame order.
        - ``"phases"`` : angles at initial contact, mid-stance, toe-off.
        - ``"all"`` : dict of all four DataFrames.

    Returns
    -------
    pd.DataFrame or dict of pd.DataFrame

    Raises
    ------
    ValueError
        If *what* is not one of the recognized values.
    """
    valid_whats = ("angles", "strides", "events", "phases", "all")
    if what not in valid_whats:
        raise ValueError(f"what must be one of {valid_whats}, got {what!r}")

    def _angles_df():
        rows = [
            {"frame_idx": af.get("frame_idx"), **_flatten_sample(af)}
            for af in (data.get("angles") or {}).get("frames", [])
        ]
        return pd.DataFrame(rows, columns=ANGLE_COLUMNS)

    def _strides_df():
        strides = (data.get("strides") or {}).get("strides", [])
        rows = [{key: s.get(key) for key in STRIDE_COLUMNS} for s in strides]
        return pd.DataFrame(rows, columns=STRIDE_COLUMNS)

    def _events_df():
        events = data.get("events") or {}
        fps = events.get("fps") or data.get("meta", {}).get("fps")
        rows = []
        for key, label in (("contact_frames", "contact"), ("toe_off_frames", "toe_off")):
            for frame in events.get(key, []):
                rows.append({
                    "event_type": label,
                    "frame": frame,
                    "time": frame / fps if fps else None,
                })
        df = pd.DataFrame(rows, columns=EVENT_COLUMNS)
        if not df.empty:
            df = df.sort_values("frame", kind="stable").reset_index(drop=True)
        return df

    def _phases_df():
        rows = [
            {
                "stride_index": p.get("stride_index"),
                "phase": p.get("phase"),
                "frame": p.get("frame"),
                **_flatten_sample(p.get("angles") or {}),
            }
            for p in data.get("phases") or []
        ]
        return pd.DataFrame(rows, columns=PHASE_COLUMNS)

    if what == "angles":
        return _angles_df()
    elif what == "strides":
        return _strides_df()
    elif what == "events":
        return _events_df()
    elif what == "phases":
        return _phases_df()
    else:  # "all"
        return {
            "angles": _angles_df(),
            "strides": _strides_df(),
            "events": _events_df(),
            "phases": _phases_df(),
        }


# ── CSV export ───────────────────────────────────────────────────────


def export_csv(data: dict, output_dir: str, prefix: str = "") -> list:
    """Export analysis tables to CSV files.

    Writes ``angles.csv``, ``strides.csv``, ``events.csv`` and
    ``phases.csv`` for every stage present in *data*.

    Parameters
    ----------
    data : dict
        Pivot JSON dict.
    output_dir : str
        Directory path for output files. Created if it does not exist.
    prefix : str, optional
        Filename prefix (e.g. ``"athlete01_"``).

    Returns
    -------
    list of str
        Paths to all created CSV files.

    Raises
    ------
    TypeError
        If *data* is not a dict.
    """
    if not isinstance(data, dict):
        raise TypeError("data must be a dict")
    out = Path(output_dir)
    out.mkdir(parents=True, exist_ok=True)
    created = []

    tables = (
        ("angles", data.get("angles"), "%.3f"),
        ("strides", data.get("strides"), "%.4f"),
        ("events", data.get("events"), "%.4f"),
        ("phases", data.get("phases"), "%.3f"),
    )
    for what, stage, float_format in tables:
        if not stage:
            continue
        df = to_dataframe(data, what)
        path = out / f"{prefix}{what}.csv"
        df.to_csv(path, index=False, float_format=float_format, na_rep="")
        created.append(str(path))

    logger.info(f"Exported {len(created)} CSV files to {out}")
    return created


# ── Summary JSON export ──────────────────────────────────────────────


def export_summary_json(data: dict, output_path: str) -> str:
    """Export a compact JSON summary of an analysed run.

    Parameters
    ----------
    data : dict
        Pivot JSON dict after :func:`~sprintgait.analysis.analyze_run`.
    output_path : str
        Output JSON file path.

    Returns
    -------
    str
        Path to the created JSON file.
    """
    from .analysis import run_summary

    evaluation = data.get("evaluation") or {}
    summary = {
        "metadata": {
            "version": data.get("sprintgait_version", "unknown"),
            "date": datetime.now().isoformat(),
            "source": data.get("meta", {}).get("source", ""),
            "subject": data.get("subject") or {},
        },
        "run": run_summary(data),
        "findings": [
            {k: f.get(k) for k in ("category", "score", "value", "message")}
            for f in evaluation.get("findings", [])
        ],
        "overall_message": evaluation.get("overall_message"),
    }

    path = Path(output_path)
    path.parent.mkdir(parents=True, exist_ok=True)
    with open(path, "w") as f:
        json.dump(_convert_numpy(summary), f, indent=2, default=str)

    logger.info(f"Exported summary JSON: {path}")
    return str(path)
