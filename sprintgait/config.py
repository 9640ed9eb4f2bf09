"""Tunable parameters of the sprint analysis, grouped by stage.

``DEFAULT_CONFIG`` has one section per stage: ``trajectory`` (foot-tip
smoothing and the velocity threshold), ``events`` (detector choice and
joint-angle candidate limits), ``calibration`` (interval-scan windows,
fractions and resume offsets, allowed rescale ratios), ``angles``,
``strides`` (reference distance, ankle visibility), ``evaluation``
(mode and start type), ``subject`` and ``hfvp``. A run file written by
``save_config`` reproduces an analysis; ``load_config`` and
``get_config`` accept partial sections and fill the rest from the
defaults.
"""

import copy
import json
import logging
from pathlib import Path
from typing import Optional, Union

import yaml

logger = logging.getLogger(__name__)

YAML_SUFFIXES = (".yaml", ".yml")


DEFAULT_CONFIG = {
    "trajectory": {
        "min_visibility": 0.3,
        "smoothing_window": 3,
        "velocity_fraction": 0.2,
    },
    "events": {
        "method": "merged",
        "min_frames": 15,
        "merge_tolerance": 5,
        "knee_change_deg": 15.0,
        "ankle_increase_deg": 5.0,
        "joint_min_visibility": 0.5,
    },
    "calibration": {
        "min_visibility": 0.3,
        "stable_window": 5,
        "stable_fraction": 0.3,
        "lookahead_frames": 60,
        "toe_off_fraction": 0.8,
        "confirm_fraction": 1.5,
        "resume_after_toe_off": 5,
        "resume_after_contact": 10,
        "min_ratio": 0.5,
        "max_ratio": 2.0,
    },
    "angles": {
        "min_visibility": 0.5,
        "reference_thigh_cm": 50.0,
    },
    "strides": {
        "reference_distance_m": None,
        "min_visibility": 0.5,
    },
    "evaluation": {
        "mode": "top_speed",
        "start_type": "standing",
    },
    "subject": {
        "height_cm": None,
        "sex": None,
        "mass_kg": None,
    },
    "hfvp": {
        "min_steps": 3,
        "gravity": 9.81,
    },
}


def get_config(overrides: Optional[dict] = None) -> dict:
    """Defaults with *overrides* merged in section by section.

    ``{"calibration": {"lookahead_frames": 30}}`` changes that one scan
    window and keeps every other calibration default.
    """
    base = copy.deepcopy(DEFAULT_CONFIG)
    if not overrides:
        return base
    if not isinstance(overrides, dict):
        raise ValueError("Config must be a dict")
    return _deep_merge(base, overrides)


def load_config(path: Union[str, Path]) -> dict:
    """Read a run configuration and complete it from the defaults.

    Parameters
    ----------
    path : str or Path
        ``.yaml`` / ``.yml`` files are read as YAML, anything else as
        JSON.

    Returns
    -------
    dict
        Every stage section, with the file's values taking precedence.

    Raises
    ------
    FileNotFoundError
        If *path* does not exist.
    ValueError
        If the file does not hold a mapping of sections.
    """
    path = Path(path)
    if not path.exists():
        raise FileNotFoundError(f"Config file not found: {path}")

    with open(path) as f:
        if path.suffix.lower() in YAML_SUFFIXES:
            cfg = yaml.safe_load(f)
        else:
            cfg = json.load(f)
    if not isinstance(cfg, dict):
        raise ValueError(f"Config file {path} must hold a mapping of stage sections")

    logger.info(f"Loaded config from {path} (sections: {', '.join(sorted(cfg))})")
    return get_config(cfg)


def save_config(config: dict, path: Union[str, Path]) -> str:
    """Write a run configuration next to its results; returns the path written."""
    path = Path(path)
    path.parent.mkdir(parents=True, exist_ok=True)
    with open(path, "w") as f:
        if path.suffix.lower() in YAML_SUFFIXES:
            yaml.safe_dump(config, f, default_flow_style=False, sort_keys=False)
        else:
            json.dump(config, f, indent=2, ensure_ascii=False)
    logger.info(f"Saved config to {path}")
    return str(path)


def _deep_merge(base: dict, override: dict) -> dict:
    """Stage sections merge key by key; scalar values and new keys replace."""
    merged = base.copy()
    for key, value in override.items():
        current = merged.get(key)
        if isinstance(current, dict) and isinstance(value, dict):
            merged[key] = _deep_merge(current, value)
        else:
            merged[key] = value
    return merged
