"""Shared test fixtures for the sprintgait test suite.

Provides reusable fake data generators used across all test modules.
Coordinates are image-normalized: ``y`` grows downwards, so a larger
foot-tip ``y`` is nearer the ground.
"""

import numpy as np
import pytest

# Runner in profile facing +x, slight forward lean.
RUNNER_POSE = {
    "NOSE":             (0.55, 0.12),
    "LEFT_SHOULDER":    (0.53, 0.25),
    "RIGHT_SHOULDER":   (0.53, 0.25),
    "LEFT_ELBOW":       (0.50, 0.37),
    "RIGHT_ELBOW":      (0.57, 0.36),
    "LEFT_WRIST":       (0.55, 0.42),
    "RIGHT_WRIST":      (0.62, 0.31),
    "LEFT_HIP":         (0.50, 0.50),
    "RIGHT_HIP":        (0.50, 0.50),
    "LEFT_KNEE":        (0.55, 0.64),
    "RIGHT_KNEE":       (0.46, 0.65),
    "LEFT_ANKLE":       (0.52, 0.78),
    "RIGHT_ANKLE":      (0.42, 0.78),
    "LEFT_HEEL":        (0.51, 0.80),
    "RIGHT_HEEL":       (0.41, 0.80),
    "LEFT_FOOT_INDEX":  (0.56, 0.82),
    "RIGHT_FOOT_INDEX": (0.45, 0.82),
}

# Upright, straight-legged stance facing +x.
STANDING_POSE = {
    "LEFT_SHOULDER":    (0.50, 0.25),
    "RIGHT_SHOULDER":   (0.50, 0.25),
    "LEFT_ELBOW":       (0.50, 0.37),
    "RIGHT_ELBOW":      (0.50, 0.37),
    "LEFT_WRIST":       (0.50, 0.48),
    "RIGHT_WRIST":      (0.50, 0.48),
    "LEFT_HIP":         (0.50, 0.50),
    "RIGHT_HIP":        (0.50, 0.50),
    "LEFT_KNEE":        (0.50, 0.65),
    "RIGHT_KNEE":       (0.50, 0.65),
    "LEFT_ANKLE":       (0.50, 0.80),
    "RIGHT_ANKLE":      (0.50, 0.80),
    "LEFT_FOOT_INDEX":  (0.53, 0.82),
    "RIGHT_FOOT_INDEX": (0.53, 0.82),
}

FOOT_TIP_Y = 0.82

# Two strikes: the foot holds, lifts, lands, holds, lifts again.
TWO_STEP_HEIGHTS = [0.8, 0.8, 0.7, 0.6, 0.6, 0.7, 0.8, 0.8,
                    0.8, 0.7, 0.6, 0.6, 0.7, 0.8, 0.8]

# One running step of 13 frames, foot-tip heights (image y).
STEP_PATTERN = [0.50, 0.50, 0.50, 0.50, 0.50, 0.50,
                0.40, 0.30, 0.25, 0.25, 0.30, 0.40, 0.46]


def make_landmarks(pose=None, dx=0.0, dy=0.0, visibility=1.0):
    """Landmark dict for *pose* translated by (dx, dy)."""
    pose = RUNNER_POSE if pose is None else pose
    return {
        name: {"x": x + dx, "y": y + dy, "z": 0.0, "visibility": visibility}
        for name, (x, y) in pose.items()
    }


def make_standing_landmarks(**kwargs):
    return make_landmarks(STANDING_POSE, **kwargs)


def mirror_landmarks(landmarks):
    """Mirror a landmark dict about the vertical axis x = 0.5."""
    return {
        name: {**lm, "x": 1.0 - lm["x"]}
        for name, lm in landmarks.items()
    }


def make_height_data(heights, fps=30.0, dx_per_frame=0.0):
    """Frames whose foot-tip heights follow *heights*.

    The whole body is translated so joint angles stay constant; a
    ``None`` height gives a failed detection.
    """
    from sprintgait.schema import create_empty
    data = create_empty("synthetic", fps=fps, n_frames=len(heights))
    frames = []
    for i, h in enumerate(heights):
        lm = None
        if h is not None:
            lm = make_landmarks(dx=i * dx_per_frame, dy=h - FOOT_TIP_Y)
        frames.append({"frame_idx": i, "time_s": round(i / fps, 6), "landmarks": lm})
    data["frames"] = frames
    return data


def scan_height(frame):
    """Foot-tip height of the periodic scan signal (contacts at 10, 23, 36, ...)."""
    return STEP_PATTERN[(frame - 10) % len(STEP_PATTERN)]


def make_periodic_scan_data(n_frames=61, fps=30.0):
    """Periodic running steps with a 13-frame period starting at frame 10."""
    return make_height_data([scan_height(f) for f in range(n_frames)], fps=fps)


def make_running_data(n_frames=120, fps=60.0, speed=0.004, reference_distance_m=10.0):
    """Sprinter moving along +x with periodic foot strikes.

    Parameters
    ----------
    speed : float
        Horizontal displacement per frame (normalized units).
    """
    data = make_height_data(
        [scan_height(f) for f in range(n_frames)],
        fps=fps,
        dx_per_frame=speed,
    )
    data["meta"]["reference_distance_m"] = reference_distance_m
    return data


@pytest.fixture
def running_data():
    return make_running_data()


@pytest.fixture
def scan_data():
    return make_periodic_scan_data()
