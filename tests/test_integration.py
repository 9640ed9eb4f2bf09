"""End-to-end tests for the sprint analysis pipeline.

Cover the full chain on synthetic running data, JSON round-trips,
configuration overrides and degenerate recordings.
"""

import copy

import pytest

from conftest import make_height_data, make_running_data

from sprintgait import (
    analyze_run,
    load_json,
    run_summary,
    save_json,
    set_subject,
)


def test_full_pipeline(running_data):
    set_subject(running_data, height_cm=180.0, sex="male", mass_kg=70.0)
    data = analyze_run(running_data)

    assert data["events"]["contact_frames"] == [1 + 13 * k for k in range(9)]
    assert data["events"]["toe_off_frames"] == [2 + 13 * k for k in range(9)]
    assert len(data["angles"]["frames"]) == 120
    assert data["strides"]["summary"]["n_strides"] == 9
    assert len(data["phases"]) == 27

    evaluation = data["evaluation"]
    categories = {f["category"] for f in evaluation["findings"]}
    assert {"posture", "cadence", "stride_height_ratio", "contact_time"} <= categories
    assert evaluation["overall_rating"] in ("elite", "advanced", "intermediate", "beginner")
    assert "hfvp" in data


def test_acceleration_mode(running_data):
    data = analyze_run(running_data, mode="acceleration", start_type="standing")
    categories = {f["category"] for f in data["evaluation"]["findings"]}
    assert "first_step_posture" in categories
    assert "posture_progression" in categories
    assert "stride_extension" in categories
    assert "cadence" not in categories


def test_config_overrides(running_data):
    data = analyze_run(
        running_data,
        config={"evaluation": {"mode": "acceleration", "start_type": "flying"},
                "strides": {"reference_distance_m": 20.0}},
    )
    assert data["evaluation"]["start_type"] == "flying"
    assert data["strides"]["strides"][0]["stride_length"] == pytest.approx(2.5)


def test_explicit_arguments_win_over_config(running_data):
    data = analyze_run(running_data, mode="top_speed",
                       config={"evaluation": {"mode": "acceleration"}})
    assert data["evaluation"]["mode"] == "top_speed"


def test_no_mass_no_force_velocity(running_data):
    data = analyze_run(running_data)
    assert data["hfvp"] is None


def test_run_summary(running_data):
    summary = run_summary(analyze_run(running_data))
    assert summary["n_contacts"] == 9
    assert summary["n_toe_offs"] == 9
    assert summary["n_strides"] == 9
    assert summary["avg_stride_length_m"] == pytest.approx(1.25)
    assert summary["avg_cadence_hz"] == pytest.approx(60 / 13)
    assert summary["mode"] == "top_speed"
    assert summary["F0"] is None


def test_run_summary_before_analysis():
    summary = run_summary({"frames": []})
    assert summary["n_strides"] == 0
    assert summary["overall_rating"] is None


def test_json_roundtrip(running_data, tmp_path):
    data = analyze_run(running_data)
    path = tmp_path / "run.json"
    save_json(data, path)
    loaded = load_json(path)
    assert loaded["strides"]["summary"]["n_strides"] == 9
    assert loaded["evaluation"]["findings"] == data["evaluation"]["findings"]

    again = analyze_run(loaded)
    assert again["events"]["contact_frames"] == data["events"]["contact_frames"]


def test_deterministic():
    a = analyze_run(make_running_data())
    b = analyze_run(make_running_data())
    assert a["strides"] == b["strides"]
    assert a["evaluation"] == b["evaluation"]


def test_input_not_mutated_outside_pivot(running_data):
    frames = copy.deepcopy(running_data["frames"])
    analyze_run(running_data)
    assert running_data["frames"] == frames


def test_short_recording_has_no_events():
    data = analyze_run(make_height_data([0.5] * 10))
    assert data["events"]["contact_frames"] == []
    assert data["strides"]["strides"] == []
    assert data["evaluation"]["findings"] == []
    assert data["evaluation"]["overall_rating"] is None


def test_all_detections_failed():
    data = analyze_run(make_height_data([None] * 30))
    assert data["events"]["contact_frames"] == []
    assert all(f["trunk_angle"] is None for f in data["angles"]["frames"])
    assert data["evaluation"]["findings"] == []


@pytest.mark.parametrize("fps", [0, -1.0, None])
def test_invalid_fps(fps):
    data = make_running_data(n_frames=20)
    data["meta"]["fps"] = fps
    with pytest.raises(ValueError):
        analyze_run(data)


def test_no_frames():
    with pytest.raises(ValueError):
        analyze_run({"meta": {"fps": 30.0}, "frames": []})


def test_non_consecutive_frames(running_data):
    del running_data["frames"][5]
    with pytest.raises(ValueError, match="consecutive"):
        analyze_run(running_data)


def test_not_a_dict():
    with pytest.raises(TypeError):
        analyze_run("frames.json")
