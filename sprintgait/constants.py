"""Landmark layout and named landmark groups used by the sprint pipeline."""

# ── MediaPipe 33-point layout (fixed upstream index order) ──────────────

MP_LANDMARK_NAMES = [
    'NOSE', 'LEFT_EYE_INNER', 'LEFT_EYE', 'LEFT_EYE_OUTER',
    'RIGHT_EYE_INNER', 'RIGHT_EYE', 'RIGHT_EYE_OUTER',
    'LEFT_EAR', 'RIGHT_EAR', 'MOUTH_LEFT', 'MOUTH_RIGHT',
    'LEFT_SHOULDER', 'RIGHT_SHOULDER', 'LEFT_ELBOW', 'RIGHT_ELBOW',
    'LEFT_WRIST', 'RIGHT_WRIST', 'LEFT_PINKY', 'RIGHT_PINKY',
    'LEFT_INDEX', 'RIGHT_INDEX', 'LEFT_THUMB', 'RIGHT_THUMB',
    'LEFT_HIP', 'RIGHT_HIP', 'LEFT_KNEE', 'RIGHT_KNEE',
    'LEFT_ANKLE', 'RIGHT_ANKLE', 'LEFT_HEEL', 'RIGHT_HEEL',
    'LEFT_FOOT_INDEX', 'RIGHT_FOOT_INDEX'
]

N_LANDMARKS = len(MP_LANDMARK_NAMES)

# ── Named groups ────────────────────────────────────────────────────────

SIDES = ("left", "right")

# Landmarks the trunk gate requires (all four must pass)
TRUNK_LANDMARKS = [
    'LEFT_SHOULDER', 'RIGHT_SHOULDER',
    'LEFT_HIP', 'RIGHT_HIP',
]

FOOT_TIP_LANDMARKS = ('LEFT_FOOT_INDEX', 'RIGHT_FOOT_INDEX')

ANKLE_LANDMARKS = ('LEFT_ANKLE', 'RIGHT_ANKLE')

# Per-side chains: side -> landmark name
LEG_LANDMARKS = {
    "left": {
        "hip": 'LEFT_HIP', "knee": 'LEFT_KNEE',
        "ankle": 'LEFT_ANKLE', "toe": 'LEFT_FOOT_INDEX',
    },
    "right": {
        "hip": 'RIGHT_HIP', "knee": 'RIGHT_KNEE',
        "ankle": 'RIGHT_ANKLE', "toe": 'RIGHT_FOOT_INDEX',
    },
}

ARM_LANDMARKS = {
    "left": {"shoulder": 'LEFT_SHOULDER', "elbow": 'LEFT_ELBOW', "wrist": 'LEFT_WRIST'},
    "right": {"shoulder": 'RIGHT_SHOULDER', "elbow": 'RIGHT_ELBOW', "wrist": 'RIGHT_WRIST'},
}

# Landmarks needed for sprint analysis (minimum set)
SPRINT_LANDMARKS = [
    'LEFT_SHOULDER', 'RIGHT_SHOULDER',
    'LEFT_ELBOW', 'RIGHT_ELBOW',
    'LEFT_WRIST', 'RIGHT_WRIST',
    'LEFT_HIP', 'RIGHT_HIP',
    'LEFT_KNEE', 'RIGHT_KNEE',
    'LEFT_ANKLE', 'RIGHT_ANKLE',
    'LEFT_FOOT_INDEX', 'RIGHT_FOOT_INDEX',
]
