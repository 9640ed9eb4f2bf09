"""sprintgait -- Sprint form analysis from 2D pose landmarks.

Quick start::

    from sprintgait import load_json, set_subject, analyze_run
    data = load_json("frames.json")
    set_subject(data, height_cm=178, sex="male", mass_kg=72)
    data = analyze_run(data, reference_distance_m=10.0, mode="acceleration")
    print(data["evaluation"]["overall_rating"])

Stage by stage::

    from sprintgait import detect_events, compute_angles, compute_strides
    data = detect_events(data, method="merged")
    data = compute_angles(data)
    data = compute_strides(data, reference_distance_m=10.0)

Operator calibration and interval scan::

    from sprintgait import CalibrationSession, FrameSequenceProvider
    session = CalibrationSession(FrameSequenceProvider.from_data(data))
    session.mark_contact(10)
    session.mark_toe_off(16)
    result = session.scan(0, 60)

Export::

    from sprintgait import export_csv, to_dataframe
    export_csv(data, "./output")
    df = to_dataframe(data, what="strides")
"""

__version__ = "0.1.0"

from .schema import (
    create_empty,
    frames_from_landmark_arrays,
    validate_frames,
    set_subject,
    save_json,
    load_json,
)
from .providers import LandmarkProvider, FrameSequenceProvider
from .trajectory import foot_tip_height, trajectory_from_heights, analyze_toe_trajectory
from .events import (
    detect_events,
    detect_trajectory_events,
    detect_joint_angle_events,
    merge_candidates,
    detection_confidence,
    validate_events,
    list_event_methods,
    register_event_method,
)
from .calibration import (
    CalibrationError,
    CalibrationState,
    CalibrationSession,
    mark_contact,
    mark_toe_off,
    rescale_threshold,
    reset_calibration,
    scan_interval,
)
from .angles import compute_frame_angles, compute_angles
from .strides import (
    build_stride_metrics,
    summarize_strides,
    attach_contact_angles,
    compute_strides,
)
from .phases import sample_phase_angles, compute_phase_angles
from .bands import get_bands
from .evaluation import evaluate_running, evaluate
from .hfvp import compute_hfvp, compute_force_velocity
from .analysis import analyze_run, run_summary
from .export import to_dataframe, export_csv, export_summary_json
from .config import load_config, save_config, get_config, DEFAULT_CONFIG

__all__ = [
    # Core pipeline
    "analyze_run",
    "run_summary",
    "detect_events",
    "compute_angles",
    "compute_strides",
    "compute_phase_angles",
    "evaluate",
    "compute_force_velocity",
    # Trajectory and events
    "foot_tip_height",
    "trajectory_from_heights",
    "analyze_toe_trajectory",
    "detect_trajectory_events",
    "detect_joint_angle_events",
    "merge_candidates",
    "detection_confidence",
    "validate_events",
    "list_event_methods",
    "register_event_method",
    # Calibration
    "CalibrationError",
    "CalibrationState",
    "CalibrationSession",
    "mark_contact",
    "mark_toe_off",
    "rescale_threshold",
    "reset_calibration",
    "scan_interval",
    # Metrics
    "compute_frame_angles",
    "build_stride_metrics",
    "summarize_strides",
    "attach_contact_angles",
    "sample_phase_angles",
    "evaluate_running",
    "get_bands",
    "compute_hfvp",
    # Landmark sources
    "LandmarkProvider",
    "FrameSequenceProvider",
    # I/O
    "create_empty",
    "frames_from_landmark_arrays",
    "validate_frames",
    "set_subject",
    "save_json",
    "load_json",
    "to_dataframe",
    "export_csv",
    "export_summary_json",
    # Config
    "load_config",
    "save_config",
    "get_config",
    "DEFAULT_CONFIG",
]
