"""Tests for configuration files and the pivot JSON schema."""

import json

import numpy as np
import pytest

from sprintgait.config import DEFAULT_CONFIG, get_config, load_config, save_config
from sprintgait.constants import MP_LANDMARK_NAMES, N_LANDMARKS
from sprintgait.schema import (
    create_empty,
    frames_from_landmark_arrays,
    load_json,
    save_json,
    set_subject,
    validate_frames,
)


# ── Config ───────────────────────────────────────────────────────────


def test_get_config_returns_copy():
    cfg = get_config()
    cfg["events"]["min_frames"] = 99
    assert DEFAULT_CONFIG["events"]["min_frames"] == 15


def test_get_config_partial_override():
    cfg = get_config({"calibration": {"lookahead_frames": 30}})
    assert cfg["calibration"]["lookahead_frames"] == 30
    assert cfg["calibration"]["stable_window"] == 5
    assert cfg["events"] == DEFAULT_CONFIG["events"]


def test_get_config_non_dict():
    with pytest.raises(ValueError):
        get_config(["events"])


def test_load_config_json_roundtrip(tmp_path):
    cfg = get_config({"subject": {"height_cm": 182.0}})
    path = save_config(cfg, tmp_path / "cfg.json")
    loaded = load_config(path)
    assert loaded == cfg


def test_load_config_yaml_partial(tmp_path):
    pytest.importorskip("yaml")
    path = tmp_path / "cfg.yaml"
    path.write_text("evaluation:\n  mode: acceleration\n", encoding="utf-8")
    cfg = load_config(path)
    assert cfg["evaluation"]["mode"] == "acceleration"
    assert cfg["evaluation"]["start_type"] == "standing"


def test_save_config_yaml_roundtrip(tmp_path):
    pytest.importorskip("yaml")
    cfg = get_config({"hfvp": {"min_steps": 4}})
    loaded = load_config(save_config(cfg, tmp_path / "nested" / "cfg.yml"))
    assert loaded["hfvp"]["min_steps"] == 4


def test_load_config_missing(tmp_path):
    with pytest.raises(FileNotFoundError):
        load_config(tmp_path / "absent.json")


def test_load_config_non_dict(tmp_path):
    path = tmp_path / "list.json"
    path.write_text("[1, 2]", encoding="utf-8")
    with pytest.raises(ValueError):
        load_config(path)


# ── Schema ───────────────────────────────────────────────────────────


def test_create_empty():
    data = create_empty("clip", fps=50.0, n_frames=100, reference_distance_m=30.0)
    assert data["meta"]["fps"] == 50.0
    assert data["meta"]["duration_s"] == pytest.approx(2.0)
    assert data["meta"]["reference_distance_m"] == 30.0
    assert data["frames"] == []
    for key in ("events", "angles", "strides", "phases", "evaluation", "hfvp"):
        assert data[key] is None


def test_frames_from_landmark_arrays():
    points = [(0.1 * (i % 10), 0.5, 0.0, 0.9) for i in range(N_LANDMARKS)]
    frames = frames_from_landmark_arrays([points, None], fps=25.0, start_frame=4)
    assert [f["frame_idx"] for f in frames] == [4, 5]
    assert frames[0]["time_s"] == pytest.approx(0.16)
    assert frames[1]["landmarks"] is None
    first = frames[0]["landmarks"][MP_LANDMARK_NAMES[0]]
    assert first == {"x": 0.0, "y": 0.5, "z": 0.0, "visibility": 0.9}


def test_frames_from_dict_points_default_visibility():
    points = [{"x": 0.2, "y": 0.3}] * N_LANDMARKS
    frames = frames_from_landmark_arrays([points])
    assert frames[0]["landmarks"]["LEFT_HIP"]["visibility"] == 1.0


def test_frames_wrong_landmark_count():
    with pytest.raises(ValueError, match="expected"):
        frames_from_landmark_arrays([[(0.5, 0.5)] * 17])


def test_frames_invalid_fps():
    with pytest.raises(ValueError):
        frames_from_landmark_arrays([], fps=0)


def test_validate_frames():
    validate_frames([{"frame_idx": 3}, {"frame_idx": 4, "landmarks": None}])
    with pytest.raises(ValueError, match="consecutive"):
        validate_frames([{"frame_idx": 0}, {"frame_idx": 2}])
    with pytest.raises(ValueError):
        validate_frames([{"frame_idx": "a"}])


def test_set_subject():
    data = set_subject(create_empty(), height_cm=175.0, sex="female", team="A")
    assert data["subject"] == {"height_cm": 175.0, "sex": "female", "team": "A"}


def test_save_load_json_converts_numpy(tmp_path):
    data = create_empty(fps=30.0)
    data["strides"] = {"values": np.array([1.5, np.nan]), "n": np.int64(2)}
    path = tmp_path / "out" / "run.json"
    save_json(data, path)
    raw = json.loads(path.read_text(encoding="utf-8"))
    assert raw["strides"] == {"values": [1.5, None], "n": 2}
    assert load_json(path)["meta"]["fps"] == 30.0


def test_load_json_invalid(tmp_path):
    path = tmp_path / "bad.json"
    path.write_text(json.dumps({"frames": []}), encoding="utf-8")
    with pytest.raises(ValueError, match="meta"):
        load_json(path)
    with pytest.raises(FileNotFoundError):
        load_json(tmp_path / "absent.json")
