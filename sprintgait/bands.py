"""Reference bands for sprint technique evaluation.

Acceleration and maximal-velocity sprinting differ fundamentally:
early acceleration is characterised by a marked forward lean that is
raised progressively over the first ~8 steps, a locked knee at touchdown,
long contacts and short flights, whereas maximal velocity calls for a
near-upright trunk, short contacts, high step frequency and stride
lengths of ~1.2-1.35 x body height.

References:
    Mann R, Murphy A. The Mechanics of Sprinting and Hurdling.
    CreateSpace; 2015.

    Nagahara R, Matsubayashi T, Matsuo A, Zushi K. Kinematics of
    transition during human accelerated sprinting. Biol Open.
    2014;3(8):689-699. doi:10.1242/bio.20148284

    Čoh M, Hébert-Losier K, Štuhec S, Babić V, Supej M. Maximal
    velocity sprinting: a review of kinematic and kinetic parameters.
    J Sports Sci Med. 2018;17(4):607-616.

    Debaere S, Jonkers I, Delecluse C. The contribution of step
    characteristics to sprint running performance in high-level male
    and female athletes. J Strength Cond Res. 2013;27(1):116-124.

Every band is plain data: ``Band(score, low, high, label, advice)`` with
inclusive bounds, checked in order, first match wins; ``default`` applies
when nothing matches.

Modes:
    - acceleration (sub-cases: standing start, flying start)
    - top_speed
"""

import copy
import math
from collections import namedtuple

# ── Constants ────────────────────────────────────────────────────────

EXCELLENT = "excellent"
GOOD = "good"
FAIR = "fair"
POOR = "poor"

SCORE_POINTS = {EXCELLENT: 4, GOOD: 3, FAIR: 2, POOR: 1}

ACCELERATION = "acceleration"
TOP_SPEED = "top_speed"
MODES = (ACCELERATION, TOP_SPEED)

STANDING_START = "standing"
FLYING_START = "flying"
START_TYPES = (STANDING_START, FLYING_START)

INF = math.inf

Band = namedtuple("Band", ["score", "low", "high", "label", "advice"])


def classify(value: float, table: dict) -> Band:
    """Return the first band of *table* containing *value*, else its default."""
    for band in table["bands"]:
        if band.low <= value <= band.high:
            return band
    return table["default"]


# ── Acceleration (standing start) ────────────────────────────────────

ACCELERATION_BANDS = {
    "first_step_trunk": {
        "message": "First-step trunk angle {value:.1f} deg: {label} (target 45 deg)",
        "bands": [
            Band(EXCELLENT, 40, 50, "ideal",
                 "The first-step lean is ideal. The centre of mass sits ahead of "
                 "the foot, which allows strong horizontal propulsion."),
            Band(GOOD, 35, 40, "slightly too steep",
                 "The first-step lean is slightly too strong. Keep balance and aim "
                 "for 40-50 deg."),
            Band(GOOD, 50, 60, "slightly too upright",
                 "The first-step lean is a little shallow. Hold about 45 deg right "
                 "after the start to maximise horizontal force."),
            Band(FAIR, 60, INF, "too upright",
                 "The trunk rises too early. Start with about 45 deg of lean and "
                 "raise it gradually over the first eight steps."),
        ],
        "default": Band(FAIR, -INF, INF, "too steep",
                        "The first-step lean is excessive. Aim for 40-50 deg to stay "
                        "balanced over the contact."),
    },
    "trunk_progression": {
        "message": ("Trunk angle progression {first:.0f} -> {last:.0f} deg over "
                    "{n} steps ({change:+.1f} deg): {label}"),
        "per_step_deg": 4.0,
        "max_steps": 8,
        "on_track": (0.7, 1.5),
        "ideal_step_change": (2.0, 6.0),
        "stalled_below": 0.3,
        "abrupt_above": 2.0,
        "outcomes": {
            "ideal": Band(EXCELLENT, -INF, INF, "gradual rise",
                          "The trunk rises step by step, the ideal pattern for the "
                          "acceleration phase."),
            "on_track": Band(GOOD, -INF, INF, "mostly gradual",
                             "The rise is about right overall. Aim for 3-5 deg per "
                             "step for a smoother transition."),
            "stalled": Band(FAIR, -INF, INF, "lean held too long",
                            "The forward lean is held for too long. Raise the trunk "
                            "to about 75 deg by the eighth step to transition into "
                            "top speed."),
            "abrupt": Band(FAIR, -INF, INF, "rises too quickly",
                           "The trunk comes up too abruptly. Rising before the "
                           "acceleration is complete reduces horizontal force."),
            "reversed": Band(POOR, -INF, INF, "lean increases",
                             "The lean increases during acceleration, which is not a "
                             "natural pattern. Raise the trunk progressively from the "
                             "first step."),
            "other": Band(GOOD, -INF, INF, "acceptable",
                          "The progression is acceptable. Aim for a smoother rise."),
        },
    },
    "trunk": {
        "message": "Average trunk angle {value:.1f} deg: {label}",
        "bands": [
            Band(EXCELLENT, 42, 55, "good acceleration posture",
                 "A forward lean well suited to the acceleration phase."),
            Band(GOOD, 55, 70, "good",
                 "Good posture; right after the start aim for a stronger lean "
                 "of about 45 deg."),
            Band(FAIR, 70, INF, "not enough lean",
                 "Not enough forward lean after the start. Begin around 45 deg "
                 "and rise over about eight steps."),
        ],
        "default": Band(FAIR, -INF, INF, "excessive lean",
                        "The lean is too strong. Aim for 40-50 deg to keep balance."),
    },
    "knee_lock": {
        "message": "First-step knee angle {value:.0f} deg: {label} (target 150-160 deg)",
        "bands": [
            Band(EXCELLENT, 145, 170, "well locked",
                 "The knee is held firm at the first contact; hip extension drives "
                 "the ground backwards efficiently."),
            Band(GOOD, 130, 145, "slightly flexed",
                 "The knee bends a little at the first contact. Hold it at "
                 "150-160 deg for the first steps and push with the hip."),
            Band(GOOD, 170, INF, "over-extended",
                 "The knee is too straight at the first contact. A slightly bent, "
                 "fixed knee (150-160 deg) transfers force better."),
        ],
        "default": Band(FAIR, -INF, INF, "flexing too early",
                        "The knee collapses from the first step. Keep it fixed for "
                        "the first 2-3 steps and gain stride from hip extension."),
        "progress_range": (5.0, 25.0),
        "progress_good": "The knee recovery then increases step by step.",
        "progress_low": ("From the third step on, draw the knee through more "
                         "actively to raise step frequency."),
    },
    "stride_extension": {
        "message": "Average stride length {value:.2f} m: {label}",
        "bands": [
            Band(EXCELLENT, 1.4, INF, "excellent extension",
                 "Excellent stride extension; stride lengthens step by step "
                 "from the start."),
            Band(GOOD, 1.2, 1.4, "good",
                 "Good extension. Lock the knee at 150-160 deg during the first "
                 "steps and gain stride from hip extension alone."),
        ],
        "default": Band(FAIR, -INF, INF, "short",
                        "Stride is short for the acceleration phase. Push the ground "
                        "backwards through hip extension rather than reaching."),
    },
    "stride_height": {
        "message": "Stride/height ratio {value:.2f} ({stride:.2f} m / {height:.0f} cm): {label}",
        "bands": [
            Band(EXCELLENT, 0.85, 1.15, "ideal for acceleration",
                 "Stride length suits the acceleration phase."),
            Band(GOOD, 0.75, 0.85, "slightly short",
                 "Slightly short; extend stride progressively with each step."),
            Band(FAIR, 1.15, INF, "overstriding",
                 "Stride is long for early acceleration; overstriding brakes the "
                 "body. Land under the centre of mass."),
        ],
        "default": Band(FAIR, -INF, INF, "short",
                        "Stride is short relative to height. Drive longer pushes "
                        "through hip extension."),
    },
    "contact_time": {
        "message": "Average ground contact time {value:.3f} s: {label}",
        "bands": [
            Band(EXCELLENT, 0.12, 0.18, "ideal for acceleration",
                 "Contacts are long enough to apply force yet not sluggish."),
            Band(GOOD, 0.18, 0.22, "good",
                 "Good contact time; keep applying force to the end of stance."),
            Band(FAIR, 0.22, 0.28, "long",
                 "Contacts are long. Push the ground backwards more quickly."),
            Band(FAIR, -INF, 0.12, "very short",
                 "Contacts are very short for acceleration; there may not be "
                 "enough time to apply horizontal force."),
        ],
        "default": Band(POOR, -INF, INF, "too long",
                        "Contacts are too long. Work on reactive strength and a "
                        "firmer foot strike."),
    },
    "contact_flight_ratio": {
        "message": "Contact/flight ratio {value:.2f}: {label}",
        "bands": [
            Band(EXCELLENT, 1.0, 2.0, "typical of acceleration",
                 "Long contacts with short flights, as expected while accelerating."),
            Band(GOOD, 0.8, 1.0, "good",
                 "Flight is becoming long for the acceleration phase; keep pushing."),
            Band(FAIR, 2.0, INF, "contact dominant",
                 "Contacts dominate; convert more of the stance into propulsion."),
        ],
        "default": Band(FAIR, -INF, INF, "flight dominant",
                        "Flight is too long for acceleration; the body may be "
                        "jumping upwards instead of driving forwards."),
    },
    "thigh_rom": {
        "message": "Thigh range of motion {value:.0f} deg: {label}",
        "bands": [
            Band(EXCELLENT, 60, INF, "large hip extension",
                 "Large hip extension range drives the acceleration."),
            Band(GOOD, 50, 60, "good",
                 "Good range; extend the hip fully at the end of each push."),
            Band(FAIR, 40, 50, "limited",
                 "Limited hip range; focus on full hip extension at toe-off."),
        ],
        "default": Band(POOR, -INF, INF, "insufficient",
                        "Hip range is insufficient for acceleration. Train hip "
                        "extension strength and mobility."),
    },
}


# ── Top speed ────────────────────────────────────────────────────────

TOP_SPEED_BANDS = {
    "trunk": {
        "message": "Average trunk angle {value:.1f} deg: {label}",
        "bands": [
            Band(EXCELLENT, 80, 90, "ideal at top speed",
                 "An ideal trunk angle for maintaining top speed; pushing down "
                 "beneath the body maximises ground reaction force."),
            Band(GOOD, 78, 80, "good",
                 "Good posture; aim for 80 deg or more."),
            Band(GOOD, 90, 92, "nearly vertical",
                 "Almost vertical; a slight lean (85-90 deg) is more efficient."),
            Band(FAIR, -INF, 78, "leaning too far",
                 "Lean less at top speed and aim for 80-90 deg, stepping down "
                 "beneath the hips."),
        ],
        "default": Band(FAIR, -INF, INF, "leaning back",
                        "The trunk leans back. Bring the chest forward over the hips "
                        "and aim for 80-90 deg."),
    },
    "cadence": {
        "message": "Step frequency {value:.2f} steps/s ({per_min:.0f}/min): {label}",
        "bands": [
            Band(EXCELLENT, 4.5, INF, "elite frequency",
                 "Elite step frequency; keep the fast hip-driven recovery."),
            Band(GOOD, 4.0, 4.5, "good",
                 "Good frequency; quicker recovery of the swing leg will raise it."),
            Band(FAIR, 3.5, 4.0, "moderate",
                 "Moderate frequency; shorten ground contacts and recover the leg "
                 "faster."),
        ],
        "default": Band(POOR, -INF, INF, "low",
                        "Step frequency is low for top speed. Work on quick, "
                        "hip-driven leg recovery."),
    },
    "stride_height": {
        "message": "Stride/height ratio {value:.2f} ({stride:.2f} m / {height:.0f} cm): {label}",
        # excellent (min, max), good (min, max) per sex
        "limits": {
            "female": {"excellent": (1.18, 1.33), "good": (1.10, 1.40)},
            "default": {"excellent": (1.20, 1.35), "good": (1.12, 1.42)},
        },
        "labels": {
            "excellent": ("ideal", "Stride length is ideal relative to height."),
            "short": ("slightly short",
                      "Slightly short; extend the push-off through the hip."),
            "long": ("slightly long",
                     "Slightly long; make sure the foot lands beneath the body."),
            "too_short": ("short",
                          "Stride is short relative to height. Improve hip extension "
                          "power."),
            "too_long": ("overstriding",
                         "Overstriding; reaching forward brakes each contact."),
        },
    },
    "contact_time": {
        "message": "Average ground contact time {value:.3f} s: {label}",
        "bands": [
            Band(EXCELLENT, -INF, 0.10, "world class",
                 "World-class contact time; stiff, reactive ground contacts."),
            Band(EXCELLENT, 0.10, 0.12, "elite",
                 "Elite contact time for top speed."),
            Band(GOOD, 0.12, 0.15, "good",
                 "Good contact time; a stiffer ankle will shorten it further."),
            Band(FAIR, 0.15, 0.18, "long",
                 "Contacts are long for top speed. Strike down beneath the hips."),
        ],
        "default": Band(POOR, -INF, INF, "too long",
                        "Contacts are much too long for top speed. Work on reactive "
                        "strength and foot stiffness."),
    },
    "contact_flight_ratio": {
        "message": "Contact/flight ratio {value:.2f}: {label}",
        "bands": [
            Band(EXCELLENT, 0.6, 0.9, "typical of top speed",
                 "Short contacts and long flights, as expected at top speed."),
            Band(GOOD, 0.9, 1.1, "balanced",
                 "Balanced; shorter contacts would improve it."),
            Band(FAIR, 1.1, INF, "contact dominant",
                 "Contacts are long relative to flight. Aim for quick, stiff "
                 "contacts."),
        ],
        "default": Band(GOOD, -INF, INF, "flight dominant",
                        "Flight dominates; make sure vertical bounce is not wasting "
                        "energy."),
    },
    "thigh_rom": {
        "message": "Thigh range of motion {value:.0f} deg: {label}",
        "bands": [
            Band(EXCELLENT, 70, INF, "large, hip-driven",
                 "Large thigh range from a fast hip-driven kick and recovery."),
            Band(GOOD, 60, 70, "good",
                 "Good range; recover the thigh faster after toe-off."),
            Band(FAIR, 50, 60, "limited",
                 "Limited range; kick back quickly from the hip and draw the "
                 "thigh through."),
        ],
        "default": Band(POOR, -INF, INF, "insufficient",
                        "Thigh range is insufficient for top speed. Focus on fast "
                        "hip extension and flexion."),
    },
}


# ── Start-type adjustments (acceleration only) ───────────────────────

# A flying start enters the analysed zone already running: the trunk is
# higher at the first analysed step, contacts are shorter, and the
# locked-knee touchdown of the first steps out of a start does not apply.
START_TYPE_BANDS = {
    STANDING_START: {},
    FLYING_START: {
        "first_step_trunk": {
            "message": "First-step trunk angle {value:.1f} deg: {label} (target 60 deg)",
            "bands": [
                Band(EXCELLENT, 55, 70, "ideal",
                     "A lean well suited to a rolling start."),
                Band(GOOD, 50, 55, "slightly too steep",
                     "Slightly steep for a rolling start; 55-70 deg is enough."),
                Band(GOOD, 70, 78, "slightly too upright",
                     "Slightly upright; keep some lean while still accelerating."),
                Band(FAIR, 78, INF, "too upright",
                     "Already upright at entry; keep leaning while accelerating."),
            ],
            "default": Band(FAIR, -INF, INF, "too steep",
                            "Too much lean for a rolling start; the body may fall "
                            "ahead of the feet."),
        },
        "trunk_progression": {
            "per_step_deg": 3.0,
            "max_steps": 6,
            "ideal_step_change": (1.5, 4.5),
        },
        "contact_time": {
            "bands": [
                Band(EXCELLENT, 0.10, 0.15, "ideal for a rolling start",
                     "Quick contacts while still accelerating."),
                Band(GOOD, 0.15, 0.19, "good",
                     "Good contact time; keep contacts short as speed builds."),
                Band(FAIR, 0.19, 0.24, "long",
                     "Contacts are long for a rolling start."),
                Band(FAIR, -INF, 0.10, "very short",
                     "Contacts are very short; make sure force is still applied."),
            ],
        },
        "knee_lock": None,
    },
}


# ── Overall rating ───────────────────────────────────────────────────

OVERALL_TIERS = [
    (3.5, "elite"),
    (3.0, "advanced"),
    (2.5, "intermediate"),
    (-INF, "beginner"),
]

OVERALL_MESSAGES = {
    ACCELERATION: {
        "elite": ("Excellent start acceleration: a strong lean raised step by "
                  "step and hip-driven propulsion produce efficient horizontal force."),
        "advanced": ("Good start acceleration. Fine-tune the trunk rise and delay "
                     "knee extension to accelerate more efficiently."),
        "intermediate": ("The acceleration has room to improve. Direction of force "
                         "matters more than its size: start around 45 deg and rise "
                         "over about eight steps while pushing back from the hip."),
        "beginner": ("Revisit acceleration basics: low centre of mass, long contacts "
                     "and short flights, a locked knee and gradual trunk rise."),
    },
    TOP_SPEED: {
        "elite": ("Excellent sprinting form: short contacts, a quick hip-driven kick "
                  "and fast recovery."),
        "advanced": ("Good sprinting form. Faster hip extension without emphasising "
                     "knee and ankle extension should add speed."),
        "intermediate": ("The top-speed mechanics have room to improve. Good sprinters "
                         "show small leg flexion and fast recovery; focus on kicking "
                         "and recovering from the hip rather than high knees."),
        "beginner": ("Top-speed technique needs work. Speed is only produced during "
                     "contact, so learn to apply force in short contacts."),
    },
}


def overall_tier(avg_score: float) -> str:
    for floor, tier in OVERALL_TIERS:
        if avg_score >= floor:
            return tier
    return OVERALL_TIERS[-1][1]


def _merge_table(base: dict, override: dict) -> dict:
    result = dict(base)
    result.update(override)
    return result


def get_bands(mode: str = TOP_SPEED, start_type: str = STANDING_START) -> dict:
    """Reference bands for *mode*, adjusted for *start_type* in acceleration.

    Tables set to None by a start-type adjustment are removed, which
    skips the matching evaluation dimension.

    Raises
    ------
    ValueError
        If *mode* or *start_type* is unknown.
    """
    if mode not in MODES:
        raise ValueError(f"Unknown mode: {mode}. Available: {', '.join(MODES)}")
    if start_type not in START_TYPES:
        raise ValueError(
            f"Unknown start type: {start_type}. Available: {', '.join(START_TYPES)}"
        )
    if mode == TOP_SPEED:
        return copy.deepcopy(TOP_SPEED_BANDS)

    bands = copy.deepcopy(ACCELERATION_BANDS)
    for key, override in START_TYPE_BANDS[start_type].items():
        if override is None:
            bands.pop(key, None)
        else:
            bands[key] = _merge_table(bands[key], copy.deepcopy(override))
    return bands
