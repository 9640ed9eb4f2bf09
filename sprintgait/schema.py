"""JSON pivot format for sprintgait.

The pivot JSON is the central data structure flowing through all
processing steps: frames -> trajectory -> events -> angles -> strides
-> phases -> evaluation.

Functions
---------
create_empty
    Create an empty pivot JSON structure.
frames_from_landmark_arrays
    Convert index-ordered 33-point pose arrays into named frames.
validate_frames
    Check frame index continuity.
save_json
    Save pivot JSON to file with numpy type conversion.
load_json
    Load and validate a pivot JSON file.
set_subject
    Set athlete metadata in the pivot JSON.
"""

import json
import math
from pathlib import Path
from typing import Any, Optional, Sequence, Union

import numpy as np

from .constants import MP_LANDMARK_NAMES, N_LANDMARKS


def _convert_numpy(obj: Any) -> Any:
    """Recursively convert numpy types to Python types for JSON serialization.

    Non-finite floats become ``None`` so no NaN literal reaches the file.
    """
    if isinstance(obj, (np.integer,)):
        return int(obj)
    if isinstance(obj, (np.floating, float)):
        value = float(obj)
        return value if math.isfinite(value) else None
    if isinstance(obj, np.ndarray):
        return _convert_numpy(obj.tolist())
    if isinstance(obj, dict):
        return {k: _convert_numpy(v) for k, v in obj.items()}
    if isinstance(obj, (list, tuple)):
        return [_convert_numpy(v) for v in obj]
    if isinstance(obj, np.bool_):
        return bool(obj)
    return obj


def create_empty(
    source: str = "",
    fps: float = 30.0,
    n_frames: int = 0,
    reference_distance_m: Optional[float] = None,
) -> dict:
    """Create an empty pivot JSON structure.

    Parameters
    ----------
    source : str
        Free-form description of where the frames came from.
    fps : float
        Frame rate in Hz (default 30.0).
    n_frames : int
        Total number of frames.
    reference_distance_m : float, optional
        Known distance covered by the athlete over the analysed
        interval, in meters.

    Returns
    -------
    dict
        Empty pivot dictionary ready to be populated.
    """
    from . import __version__
    duration = n_frames / fps if fps > 0 else 0.0
    return {
        "sprintgait_version": __version__,
        "meta": {
            "source": str(source),
            "fps": fps,
            "n_frames": n_frames,
            "duration_s": round(duration, 3),
            "reference_distance_m": reference_distance_m,
        },
        "subject": None,
        "frames": [],
        "trajectory": None,
        "events": None,
        "angles": None,
        "strides": None,
        "phases": None,
        "evaluation": None,
        "hfvp": None,
    }


def _landmark_from_point(point: Any) -> Optional[dict]:
    """Convert one provider point into a landmark dict.

    Accepts a mapping with ``x``/``y``/``z``/``visibility`` keys or a
    sequence ``(x, y[, z[, visibility]])``.
    """
    if point is None:
        return None
    if isinstance(point, dict):
        x, y = point.get("x"), point.get("y")
        z = point.get("z", 0.0)
        vis = point.get("visibility", 1.0)
    else:
        values = list(point)
        if len(values) < 2:
            return None
        x, y = values[0], values[1]
        z = values[2] if len(values) > 2 else 0.0
        vis = values[3] if len(values) > 3 else 1.0
    if x is None or y is None:
        return None
    return {
        "x": float(x),
        "y": float(y),
        "z": float(z) if z is not None else 0.0,
        "visibility": float(vis) if vis is not None else 0.0,
    }


def frames_from_landmark_arrays(
    arrays: Sequence[Optional[Sequence[Any]]],
    fps: float = 30.0,
    start_frame: int = 0,
) -> list:
    """Convert index-ordered pose arrays into pivot frames.

    Parameters
    ----------
    arrays : sequence
        One entry per frame: ``None`` for a failed detection, otherwise
        33 points in MediaPipe index order.
    fps : float
        Frame rate used to derive ``time_s``.
    start_frame : int
        Frame number of the first entry.

    Returns
    -------
    list of dict
        Frames with ``frame_idx``, ``time_s`` and named ``landmarks``
        (``None`` where detection failed).

    Raises
    ------
    ValueError
        If *fps* is not positive or a frame does not hold 33 points.
    """
    if fps <= 0:
        raise ValueError(f"fps must be positive, got {fps}")
    frames = []
    for offset, points in enumerate(arrays):
        frame_idx = start_frame + offset
        landmarks = None
        if points is not None:
            points = list(points)
            if len(points) != N_LANDMARKS:
                raise ValueError(
                    f"Frame {frame_idx}: expected {N_LANDMARKS} landmarks, "
                    f"got {len(points)}"
                )
            landmarks = {}
            for name, point in zip(MP_LANDMARK_NAMES, points):
                lm = _landmark_from_point(point)
                if lm is not None:
                    landmarks[name] = lm
        frames.append({
            "frame_idx": frame_idx,
            "time_s": round(frame_idx / fps, 6),
            "landmarks": landmarks,
        })
    return frames


def validate_frames(frames: list) -> None:
    """Check that frame indices are strictly increasing without gaps.

    Detection gaps are allowed (``landmarks is None``); index gaps are not.

    Raises
    ------
    ValueError
        If a frame index does not follow its predecessor by exactly one.
    """
    prev = None
    for f in frames:
        idx = f.get("frame_idx")
        if not isinstance(idx, (int, np.integer)):
            raise ValueError(f"Invalid frame_idx: {idx!r}")
        if prev is not None and idx != prev + 1:
            raise ValueError(
                f"Frame indices must be consecutive: {prev} followed by {idx}"
            )
        prev = idx


def set_subject(
    data: dict,
    height_cm: Optional[float] = None,
    sex: Optional[str] = None,
    mass_kg: Optional[float] = None,
    name: Optional[str] = None,
    **extra,
) -> dict:
    """Set athlete metadata in the pivot JSON.

    Parameters
    ----------
    data : dict
        Pivot JSON dict.
    height_cm : float, optional
        Standing height in centimeters (enables stride/height scoring).
    sex : {'male', 'female', 'other'}, optional
        Selects sex-adjusted stride/height bands.
    mass_kg : float, optional
        Body mass in kilograms (enables the force-velocity profile).
    name : str, optional
        Athlete name or identifier.
    **extra
        Any additional metadata key-value pairs.

    Returns
    -------
    dict
        Modified *data* dict with ``subject`` field populated.
    """
    subject = {}
    if height_cm is not None:
        subject["height_cm"] = height_cm
    if sex is not None:
        subject["sex"] = sex
    if mass_kg is not None:
        subject["mass_kg"] = mass_kg
    if name is not None:
        subject["name"] = name
    subject.update(extra)

    data["subject"] = subject
    return data


def save_json(data: dict, path: Union[str, Path], indent: int = 2) -> None:
    """Save pivot JSON to file.

    Automatically converts numpy types to Python builtins before
    serialization.
    """
    path = Path(path)
    path.parent.mkdir(parents=True, exist_ok=True)
    converted = _convert_numpy(data)
    with open(path, "w") as f:
        json.dump(converted, f, indent=indent, ensure_ascii=False)


def load_json(path: Union[str, Path]) -> dict:
    """Load and validate a pivot JSON file.

    Raises
    ------
    FileNotFoundError
        If the file does not exist.
    ValueError
        If the JSON content is not a valid pivot format.
    """
    path = Path(path)
    if not path.exists():
        raise FileNotFoundError(f"File not found: {path}")

    with open(path) as f:
        data = json.load(f)

    if not isinstance(data, dict):
        raise ValueError("JSON root must be a dict")

    if "meta" not in data:
        raise ValueError("Missing 'meta' key in JSON")
    if "frames" not in data:
        raise ValueError("Missing 'frames' key in JSON")

    return data
