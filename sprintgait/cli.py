"""Command-line interface for sprintgait.

Provides subcommands for sprint analysis of pose landmark files:

    sprintgait analyze frames.json --distance 10 --mode acceleration --csv
    sprintgait scan frames.json --contact 10 --toe-off 16 --start 0 --end 60
    sprintgait info result.json
"""

import argparse
import json
import logging
import sys
import time
from pathlib import Path
from importlib.metadata import version as pkg_version, PackageNotFoundError


def _get_version() -> str:
    """Return package version without importing the full sprintgait package."""
    try:
        return pkg_version("sprintgait")
    except PackageNotFoundError:
        return "0.0.0+local"


def _setup_logging(verbose: bool = False):
    level = logging.DEBUG if verbose else logging.INFO
    logging.basicConfig(
        level=level,
        format="%(asctime)s [%(levelname)s] %(name)s: %(message)s",
        datefmt="%H:%M:%S",
    )


def _fmt(value, spec: str = ".3f", unit: str = "") -> str:
    if value is None:
        return "N/A"
    return f"{value:{spec}}{unit}"


def cmd_analyze(args):
    """Run the full sprint pipeline on a frames JSON file."""
    from . import load_json, save_json, set_subject, analyze_run
    from .config import get_config, load_config

    cfg = load_config(args.config) if args.config else get_config()
    data = load_json(args.json_file)

    subject = dict(data.get("subject") or {})
    for key, value in (("height_cm", args.height), ("sex", args.sex), ("mass_kg", args.mass)):
        if value is not None:
            subject[key] = value
    if subject:
        set_subject(data, **subject)

    t0 = time.time()
    data = analyze_run(
        data,
        reference_distance_m=args.distance,
        mode=args.mode,
        start_type=args.start,
        config=cfg,
    )
    elapsed = time.time() - t0

    ev = data["events"]
    print(f"Events ({ev['method']}): {len(ev['contact_frames'])} contacts, "
          f"{len(ev['toe_off_frames'])} toe-offs, confidence {ev['confidence']:.2f}")

    summary = data["strides"]["summary"]
    print(f"Strides: {summary['n_strides']}")
    print(f"  Contact time: {_fmt(summary['avg_contact_time'], unit=' s')}")
    print(f"  Flight time:  {_fmt(summary['avg_flight_time'], unit=' s')}")
    print(f"  Cadence:      {_fmt(summary['avg_cadence'], '.2f', ' Hz')}")
    print(f"  Stride:       {_fmt(summary['avg_stride_length'], '.2f', ' m')}")
    print(f"  Speed:        {_fmt(summary['avg_speed'], '.2f', ' m/s')}")

    evaluation = data["evaluation"]
    print(f"Evaluation ({evaluation['mode']}):")
    for f in evaluation["findings"]:
        print(f"  [{f['score']}] {f['message']}")
    if evaluation["overall_rating"]:
        print(f"  Overall: {evaluation['overall_rating']} "
              f"(avg {evaluation['avg_score']:.2f})")
        print(f"  {evaluation['overall_message']}")

    hfvp = data.get("hfvp")
    if hfvp:
        print(f"H-FVP: F0={hfvp['F0']:.1f} N, V0={hfvp['V0']:.2f} m/s, "
              f"Pmax={hfvp['Pmax']:.0f} W, R2={hfvp['r_squared']:.3f}")

    output = args.output or str(Path(args.json_file).with_suffix(".analysis.json"))
    save_json(data, output)
    print(f"Saved to {output} in {elapsed:.1f}s")

    if args.csv:
        from .export import export_csv
        out_dir = args.output_dir or str(Path(output).parent)
        files = export_csv(data, out_dir, prefix=f"{Path(args.json_file).stem}_")
        print(f"  CSV: {len(files)} files exported")

    if args.summary:
        from .export import export_summary_json
        path = export_summary_json(data, args.summary)
        print(f"  Summary: {path}")


def cmd_scan(args):
    """Calibrate on two marked frames and scan an interval for events."""
    from . import load_json, FrameSequenceProvider, CalibrationSession
    from .config import get_config, load_config

    cfg = load_config(args.config) if args.config else get_config()
    data = load_json(args.json_file)

    session = CalibrationSession(FrameSequenceProvider.from_data(data), **cfg["calibration"])
    session.mark_contact(args.contact)
    session.mark_toe_off(args.toe_off)
    if args.ratio is not None:
        session.rescale(args.ratio)

    result = session.scan(args.start, args.end)
    start, end = result["interval"]
    print(f"Threshold: {result['threshold']:.4f} (base {result['base_threshold']:.4f})")
    print(f"Interval [{start}, {end}]:")
    print(f"  Contacts: {result['contact_frames']}")
    print(f"  Toe-offs: {result['toe_off_frames']}")

    if args.output:
        with open(args.output, "w") as f:
            json.dump(result, f, indent=2)
        print(f"Saved to {args.output}")


def cmd_info(args):
    """Display info about a sprintgait JSON file."""
    from . import load_json
    from .constants import SPRINT_LANDMARKS

    data = load_json(args.json_file)

    meta = data.get("meta", {})
    print(f"sprintgait v{data.get('sprintgait_version', '?')}")
    print(f"Source: {meta.get('source', '?')}")
    print(f"FPS: {meta.get('fps', '?')}, Frames: {meta.get('n_frames', '?')}, "
          f"Duration: {meta.get('duration_s', '?')}s")
    print(f"Reference distance: {meta.get('reference_distance_m', '?')} m")

    frames = data.get("frames", [])
    detected = [f for f in frames if f.get("landmarks")]
    print(f"Detected: {len(detected)}/{len(frames)} ({100*len(detected)/len(frames):.0f}%)"
          if frames else "No frames")
    if detected:
        missing = sorted({name for f in detected for name in SPRINT_LANDMARKS
                          if name not in f["landmarks"]})
        if missing:
            print(f"Missing landmarks: {', '.join(missing)}")

    subject = data.get("subject")
    if subject:
        print(f"Subject: {subject}")

    events = data.get("events")
    if events:
        print(f"Events: method={events.get('method', '?')}, "
              f"{len(events.get('contact_frames', []))} contacts, "
              f"{len(events.get('toe_off_frames', []))} toe-offs")
    else:
        print("Events: none")

    strides = data.get("strides")
    if strides:
        print(f"Strides: {strides['summary'].get('n_strides', 0)} "
              f"(length mode={strides.get('length_mode')})")

    evaluation = data.get("evaluation")
    if evaluation:
        print(f"Evaluation: {evaluation.get('mode')} -> {evaluation.get('overall_rating')}")


def main():
    parser = argparse.ArgumentParser(
        prog="sprintgait",
        description="Sprint form analysis from pose landmarks",
    )
    parser.add_argument("--version", action="version", version=f"sprintgait {_get_version()}")
    parser.add_argument("-v", "--verbose", action="store_true", help="Verbose logging")

    sub = parser.add_subparsers(dest="command", help="Available commands")

    # analyze
    p_analyze = sub.add_parser("analyze", help="Run events -> angles -> strides -> evaluation")
    p_analyze.add_argument("json_file", help="Path to a pivot JSON file with frames")
    p_analyze.add_argument("-d", "--distance", type=float, help="Reference distance in meters")
    p_analyze.add_argument("--mode", choices=["acceleration", "top_speed"],
                           help="Evaluation mode (default: top_speed)")
    p_analyze.add_argument("--start", choices=["standing", "flying"],
                           help="Start type in acceleration mode (default: standing)")
    p_analyze.add_argument("--height", type=float, help="Athlete height in cm")
    p_analyze.add_argument("--sex", choices=["male", "female", "other"], help="Athlete sex")
    p_analyze.add_argument("--mass", type=float, help="Body mass in kg (enables H-FVP)")
    p_analyze.add_argument("--config", help="Config file (JSON/YAML)")
    p_analyze.add_argument("-o", "--output", help="Output JSON path (default: <input>.analysis.json)")
    p_analyze.add_argument("--output-dir", help="Directory for CSV files (default: next to output)")
    p_analyze.add_argument("--csv", action="store_true", help="Export CSV files")
    p_analyze.add_argument("--summary", help="Also write a summary JSON to this path")
    p_analyze.set_defaults(func=cmd_analyze)

    # scan
    p_scan = sub.add_parser("scan", help="Calibrated contact/toe-off scan over an interval")
    p_scan.add_argument("json_file", help="Path to a pivot JSON file with frames")
    p_scan.add_argument("--contact", type=int, required=True, help="Marked contact frame")
    p_scan.add_argument("--toe-off", type=int, required=True, help="Marked toe-off frame")
    p_scan.add_argument("--start", type=int, help="First frame of the interval (default: first)")
    p_scan.add_argument("--end", type=int, help="Last frame of the interval (default: last)")
    p_scan.add_argument("--ratio", type=float, help="Threshold ratio in [0.5, 2.0]")
    p_scan.add_argument("--config", help="Config file (JSON/YAML)")
    p_scan.add_argument("-o", "--output", help="Write the scan result to this JSON file")
    p_scan.set_defaults(func=cmd_scan)

    # info
    p_info = sub.add_parser("info", help="Show info about a sprintgait JSON file")
    p_info.add_argument("json_file", help="Path to sprintgait JSON file")
    p_info.set_defaults(func=cmd_info)

    args = parser.parse_args()
    _setup_logging(args.verbose)

    if not args.command:
        parser.print_help()
        sys.exit(1)

    try:
        args.func(args)
    except FileNotFoundError as e:
        print(f"Error: {e}", file=sys.stderr)
        sys.exit(1)
    except ValueError as e:
        print(f"Error: {e}", file=sys.stderr)
        sys.exit(1)
    except ImportError as e:
        print(f"Missing dependency: {e}", file=sys.stderr)
        sys.exit(1)
    except KeyboardInterrupt:
        print("\nInterrupted.", file=sys.stderr)
        sys.exit(130)


if __name__ == "__main__":
    main()
