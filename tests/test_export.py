"""Tests for CSV, DataFrame and summary JSON export."""

import json

import pandas as pd
import pytest

from conftest import make_running_data

from sprintgait import analyze_run
from sprintgait.export import (
    ANGLE_COLUMNS,
    EVENT_COLUMNS,
    PHASE_COLUMNS,
    STRIDE_COLUMNS,
    export_csv,
    export_summary_json,
    to_dataframe,
)


@pytest.fixture(scope="module")
def analysed():
    return analyze_run(make_running_data())


def test_to_dataframe_angles(analysed):
    df = to_dataframe(analysed, "angles")
    assert list(df.columns) == ANGLE_COLUMNS
    assert len(df) == 120
    assert "knee_flex_L" in df.columns


def test_to_dataframe_strides(analysed):
    df = to_dataframe(analysed, "strides")
    assert list(df.columns) == STRIDE_COLUMNS
    assert len(df) == 9
    assert df["stride_length"].iloc[:-1].tolist() == pytest.approx([1.25] * 8)
    assert pd.isna(df["stride_length"].iloc[-1])


def test_to_dataframe_events_sorted(analysed):
    df = to_dataframe(analysed, "events")
    assert list(df.columns) == EVENT_COLUMNS
    assert len(df) == 18
    assert df["frame"].is_monotonic_increasing
    first = df.iloc[0]
    assert first["event_type"] == "contact"
    assert first["frame"] == 1
    assert first["time"] == pytest.approx(1 / 60)


def test_to_dataframe_phases(analysed):
    df = to_dataframe(analysed, "phases")
    assert list(df.columns) == PHASE_COLUMNS
    assert set(df["phase"]) == {"initial", "mid", "late"}


def test_to_dataframe_all(analysed):
    tables = to_dataframe(analysed, "all")
    assert set(tables) == {"angles", "strides", "events", "phases"}


def test_to_dataframe_invalid(analysed):
    with pytest.raises(ValueError):
        to_dataframe(analysed, "cycles")


def test_to_dataframe_empty_stage():
    df = to_dataframe({"frames": []}, "strides")
    assert df.empty
    assert list(df.columns) == STRIDE_COLUMNS


def test_export_csv(analysed, tmp_path):
    files = export_csv(analysed, str(tmp_path / "csv"), prefix="run01_")
    names = sorted(p.split("/")[-1] for p in files)
    assert names == ["run01_angles.csv", "run01_events.csv",
                     "run01_phases.csv", "run01_strides.csv"]


def test_export_csv_unknown_values_empty(analysed, tmp_path):
    export_csv(analysed, str(tmp_path))
    text = (tmp_path / "strides.csv").read_text(encoding="utf-8")
    assert "nan" not in text.lower()
    last_row = text.strip().splitlines()[-1].split(",")
    assert last_row[STRIDE_COLUMNS.index("stride_length")] == ""
    assert last_row[STRIDE_COLUMNS.index("next_contact_frame")] == ""


def test_export_csv_skips_missing_stages(tmp_path):
    data = {"events": {"fps": 30.0, "contact_frames": [3], "toe_off_frames": [5]}}
    files = export_csv(data, str(tmp_path))
    assert [p.split("/")[-1] for p in files] == ["events.csv"]


def test_export_csv_not_a_dict(tmp_path):
    with pytest.raises(TypeError):
        export_csv([], str(tmp_path))


def test_export_summary_json(analysed, tmp_path):
    path = export_summary_json(analysed, str(tmp_path / "summary.json"))
    with open(path) as f:
        summary = json.load(f)
    assert summary["run"]["n_strides"] == 9
    assert summary["run"]["n_contacts"] == 9
    assert summary["findings"]
    assert set(summary["findings"][0]) == {"category", "score", "value", "message"}
    assert summary["overall_message"]
