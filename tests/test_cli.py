"""Tests for CLI parsing, subcommands and error handling."""

import json

import pytest

from conftest import make_periodic_scan_data, make_running_data

from sprintgait import cli
from sprintgait.schema import load_json, save_json


def _run(monkeypatch, *argv):
    monkeypatch.setattr("sys.argv", ["sprintgait", *argv])
    cli.main()


@pytest.fixture
def running_file(tmp_path):
    path = tmp_path / "run.json"
    save_json(make_running_data(), path)
    return path


@pytest.fixture
def scan_file(tmp_path):
    path = tmp_path / "scan.json"
    save_json(make_periodic_scan_data(), path)
    return path


# ── Error handling ───────────────────────────────────────────────────


def test_main_without_command_exits_1(monkeypatch):
    with pytest.raises(SystemExit) as e:
        _run(monkeypatch)
    assert e.value.code == 1


def test_missing_file_exits_1(monkeypatch, tmp_path, capsys):
    with pytest.raises(SystemExit) as e:
        _run(monkeypatch, "info", str(tmp_path / "absent.json"))
    assert e.value.code == 1
    assert "Error" in capsys.readouterr().err


def test_main_handles_valueerror(monkeypatch):
    def _boom(_):
        raise ValueError("bad value")

    monkeypatch.setattr(cli, "cmd_info", _boom)
    with pytest.raises(SystemExit) as e:
        _run(monkeypatch, "info", "run.json")
    assert e.value.code == 1


def test_main_handles_keyboard_interrupt(monkeypatch):
    def _boom(_):
        raise KeyboardInterrupt()

    monkeypatch.setattr(cli, "cmd_analyze", _boom)
    with pytest.raises(SystemExit) as e:
        _run(monkeypatch, "analyze", "run.json")
    assert e.value.code == 130


def test_invalid_mode_rejected_by_parser(monkeypatch):
    with pytest.raises(SystemExit) as e:
        _run(monkeypatch, "analyze", "run.json", "--mode", "cruise")
    assert e.value.code == 2


def test_get_version_returns_string():
    assert isinstance(cli._get_version(), str)


def test_fmt():
    assert cli._fmt(None) == "N/A"
    assert cli._fmt(0.12345, unit=" s") == "0.123 s"


# ── analyze ──────────────────────────────────────────────────────────


def test_analyze_writes_outputs(monkeypatch, running_file, tmp_path, capsys):
    summary_path = tmp_path / "summary.json"
    _run(monkeypatch, "analyze", str(running_file), "--height", "180", "--mass", "70",
         "--csv", "--summary", str(summary_path))

    out = capsys.readouterr().out
    assert "Strides: 9" in out
    assert "Overall:" in out

    result = load_json(tmp_path / "run.analysis.json")
    assert result["subject"] == {"height_cm": 180.0, "mass_kg": 70.0}
    assert result["strides"]["summary"]["n_strides"] == 9
    assert result["evaluation"]["mode"] == "top_speed"
    assert (tmp_path / "run_strides.csv").exists()
    assert summary_path.exists()


def test_analyze_acceleration_custom_output(monkeypatch, running_file, tmp_path):
    output = tmp_path / "out" / "result.json"
    _run(monkeypatch, "analyze", str(running_file), "--mode", "acceleration",
         "--start", "flying", "-d", "20", "-o", str(output))
    result = load_json(output)
    assert result["evaluation"]["mode"] == "acceleration"
    assert result["evaluation"]["start_type"] == "flying"
    assert result["strides"]["reference_distance_m"] == 20.0


def test_analyze_with_config(monkeypatch, running_file, tmp_path):
    config = tmp_path / "cfg.json"
    config.write_text(json.dumps({"evaluation": {"mode": "acceleration"}}), encoding="utf-8")
    output = tmp_path / "cfg_result.json"
    _run(monkeypatch, "analyze", str(running_file), "--config", str(config), "-o", str(output))
    assert load_json(output)["evaluation"]["mode"] == "acceleration"


# ── scan ─────────────────────────────────────────────────────────────


def test_scan(monkeypatch, scan_file, tmp_path, capsys):
    output = tmp_path / "scan_result.json"
    _run(monkeypatch, "scan", str(scan_file), "--contact", "10", "--toe-off", "16",
         "--start", "0", "--end", "60", "-o", str(output))
    with open(output) as f:
        result = json.load(f)
    assert result["contact_frames"] == [10, 23, 36, 49]
    assert result["toe_off_frames"] == [17, 30, 43, 56]
    assert "Contacts: [10, 23, 36, 49]" in capsys.readouterr().out


def test_scan_invalid_marks_exit_1(monkeypatch, scan_file):
    with pytest.raises(SystemExit) as e:
        _run(monkeypatch, "scan", str(scan_file), "--contact", "16", "--toe-off", "10")
    assert e.value.code == 1


def test_scan_ratio_out_of_range_exit_1(monkeypatch, scan_file):
    with pytest.raises(SystemExit) as e:
        _run(monkeypatch, "scan", str(scan_file), "--contact", "10", "--toe-off", "16",
             "--ratio", "3.0")
    assert e.value.code == 1


# ── info ─────────────────────────────────────────────────────────────


def test_info(monkeypatch, scan_file, capsys):
    _run(monkeypatch, "info", str(scan_file))
    out = capsys.readouterr().out
    assert "Detected: 61/61" in out
    assert "Events: none" in out
