"""Operator-driven threshold calibration and the calibrated interval scan.

The operator marks one ground contact and one later toe-off. The
foot-tip height difference between the two frames becomes the
displacement threshold of an automatic scan that walks a whole frame
interval, alternating between looking for a stable (grounded) foot and
for the lift that follows it.

Calibration is an immutable ``CalibrationState`` value moved between
``awaiting_contact -> awaiting_toe_off -> calibrated`` by pure
transition functions. A rejected action raises ``CalibrationError`` and
leaves the caller holding the previous state. ``CalibrationSession``
wraps the current state together with the landmark provider it reads
heights from.
"""

import logging
import math
from dataclasses import dataclass, replace
from typing import Dict, List, Optional

from .providers import LandmarkProvider
from .trajectory import ankle_height, foot_tip_height

logger = logging.getLogger(__name__)

AWAITING_CONTACT = "awaiting_contact"
AWAITING_TOE_OFF = "awaiting_toe_off"
CALIBRATED = "calibrated"


class CalibrationError(ValueError):
    """Rejected operator action; the calibration state is unchanged."""


@dataclass(frozen=True)
class CalibrationState:
    """Snapshot of the calibration workflow."""
    phase: str = AWAITING_CONTACT
    contact_frame: Optional[int] = None
    contact_height: Optional[float] = None
    toe_off_frame: Optional[int] = None
    toe_off_height: Optional[float] = None
    threshold: Optional[float] = None
    base_threshold: Optional[float] = None

    @property
    def is_calibrated(self) -> bool:
        return self.phase == CALIBRATED

    @property
    def ratio(self) -> Optional[float]:
        if not self.is_calibrated:
            return None
        return self.threshold / self.base_threshold


# ── Transitions ──────────────────────────────────────────────────────


def _check_height(frame: int, height: Optional[float]) -> None:
    if height is None or not math.isfinite(height):
        raise CalibrationError(f"No foot-tip height available at frame {frame}")


def reset_calibration() -> CalibrationState:
    """Return a fresh state awaiting a contact mark."""
    return CalibrationState()


def mark_contact(state: CalibrationState, frame: int, height: Optional[float]) -> CalibrationState:
    """Record the contact mark.

    Allowed while awaiting a contact or a toe-off (a second contact
    mark replaces the first).

    Raises
    ------
    CalibrationError
        If already calibrated or the foot-tip height is unknown.
    """
    if state.phase == CALIBRATED:
        raise CalibrationError("Already calibrated; reset before marking a new contact")
    _check_height(frame, height)
    return CalibrationState(
        phase=AWAITING_TOE_OFF,
        contact_frame=int(frame),
        contact_height=float(height),
    )


def mark_toe_off(state: CalibrationState, frame: int, height: Optional[float]) -> CalibrationState:
    """Record the toe-off mark and derive the threshold.

    Raises
    ------
    CalibrationError
        If no contact is marked yet, *frame* is not after the contact,
        the height is unknown, or it equals the contact height.
    """
    if state.phase != AWAITING_TOE_OFF:
        raise CalibrationError(f"Cannot mark toe-off in state '{state.phase}'")
    if frame <= state.contact_frame:
        raise CalibrationError(
            f"Toe-off frame {frame} must be after contact frame {state.contact_frame}"
        )
    _check_height(frame, height)
    threshold = abs(float(height) - state.contact_height)
    if threshold <= 0:
        raise CalibrationError("Contact and toe-off heights are identical")
    return replace(
        state,
        phase=CALIBRATED,
        toe_off_frame=int(frame),
        toe_off_height=float(height),
        threshold=threshold,
        base_threshold=threshold,
    )


def rescale_threshold(
    state: CalibrationState,
    ratio: float,
    min_ratio: float = 0.5,
    max_ratio: float = 2.0,
) -> CalibrationState:
    """Set ``threshold = base_threshold * ratio`` without re-calibrating.

    Raises
    ------
    CalibrationError
        If not calibrated or *ratio* lies outside [min_ratio, max_ratio].
    """
    if not state.is_calibrated:
        raise CalibrationError("Calibrate before rescaling the threshold")
    if not (min_ratio <= ratio <= max_ratio):
        raise CalibrationError(
            f"Ratio {ratio} outside allowed range [{min_ratio}, {max_ratio}]"
        )
    return replace(state, threshold=state.base_threshold * ratio)


# ── Interval scan ────────────────────────────────────────────────────


def _find_stable(foot: Dict[int, float], start: int, end: int,
                 limit: float, window: int) -> Optional[int]:
    """First frame whose height holds (mean deviation < limit) over the next *window* frames."""
    for f in range(start, end - window + 1):
        base = foot.get(f)
        if base is None:
            continue
        ahead = [foot.get(f + k) for k in range(1, window + 1)]
        if any(h is None for h in ahead):
            continue
        if sum(abs(h - base) for h in ahead) / window < limit:
            return f
    return None


def _find_lift(foot: Dict[int, float], ankle: Dict[int, float], contact: int, end: int,
               threshold: float, lookahead: int, toe_off_fraction: float,
               confirm_fraction: float) -> Optional[int]:
    """Frame of maximal upward displacement after *contact*, or None."""
    h0 = foot.get(contact)
    a0 = ankle.get(contact)
    if h0 is None or a0 is None:
        return None
    best, best_disp = None, 0.0
    for f in range(contact + 1, min(contact + lookahead, end) + 1):
        h, a = foot.get(f), ankle.get(f)
        if h is None or a is None:
            continue
        disp = h0 - h
        if disp > toe_off_fraction * threshold and a0 - a > 0:
            if best is None or disp > best_disp:
                best, best_disp = f, disp
            if disp >= confirm_fraction * threshold:
                break
    return best


def scan_interval(
    provider: LandmarkProvider,
    state: CalibrationState,
    start: int,
    end: int,
    min_visibility: float = 0.3,
    stable_window: int = 5,
    stable_fraction: float = 0.3,
    lookahead_frames: int = 60,
    toe_off_fraction: float = 0.8,
    confirm_fraction: float = 1.5,
    resume_after_toe_off: int = 5,
    resume_after_contact: int = 10,
) -> dict:
    """Detect contacts and toe-offs over ``[start, end]`` with a calibrated threshold.

    Parameters
    ----------
    provider : LandmarkProvider
        Source of per-frame landmarks.
    state : CalibrationState
        Must be calibrated.
    start, end : int
        Inclusive frame interval.
    stable_window, stable_fraction : optional
        A contact is a frame whose foot-tip height deviates on average
        less than ``stable_fraction * base_threshold`` over the next
        ``stable_window`` frames (defaults 5 and 0.3).
    lookahead_frames, toe_off_fraction, confirm_fraction : optional
        The toe-off is the frame of largest upward displacement above
        ``toe_off_fraction * threshold`` within ``lookahead_frames``
        while the ankle also rises, accepted early once it reaches
        ``confirm_fraction * threshold`` (defaults 60, 0.8, 1.5).
    resume_after_toe_off, resume_after_contact : int, optional
        Where the search restarts after a toe-off, or after a contact
        without toe-off (defaults 5 and 10).

    Returns
    -------
    dict
        ``contact_frames``, ``toe_off_frames``, ``threshold``,
        ``base_threshold`` and ``interval``.

    Raises
    ------
    CalibrationError
        If *state* is not calibrated, ``start > end``, or a window or
        resume offset would stop the search from advancing.
    """
    if not state.is_calibrated:
        raise CalibrationError("Interval scan requires a calibrated threshold")
    if start > end:
        raise CalibrationError(f"Invalid interval [{start}, {end}]")
    if stable_window < 1 or lookahead_frames < 1:
        raise CalibrationError(
            f"stable_window and lookahead_frames must be >= 1, "
            f"got {stable_window} and {lookahead_frames}"
        )
    # A toe-off always lies after its contact, so 0 still advances.
    if resume_after_contact < 1 or resume_after_toe_off < 0:
        raise CalibrationError(
            f"Resume offsets must advance the scan, got "
            f"{resume_after_contact} after contact and {resume_after_toe_off} after toe-off"
        )

    foot: Dict[int, float] = {}
    ankle: Dict[int, float] = {}
    for f in range(start, end + 1):
        lm = provider.landmarks_for_frame(f)
        h = foot_tip_height(lm, min_visibility)
        a = ankle_height(lm, min_visibility)
        if h is not None:
            foot[f] = h
        if a is not None:
            ankle[f] = a

    stable_limit = stable_fraction * state.base_threshold
    contacts: List[int] = []
    toe_offs: List[int] = []
    cursor = start
    while cursor <= end:
        contact = _find_stable(foot, cursor, end, stable_limit, stable_window)
        if contact is None:
            break
        contacts.append(contact)
        toe_off = _find_lift(
            foot, ankle, contact, end, state.threshold,
            lookahead_frames, toe_off_fraction, confirm_fraction,
        )
        if toe_off is not None:
            toe_offs.append(toe_off)
            cursor = toe_off + resume_after_toe_off
        else:
            cursor = contact + resume_after_contact

    logger.info(
        f"Interval scan [{start}, {end}]: {len(contacts)} contacts, "
        f"{len(toe_offs)} toe-offs (threshold={state.threshold:.4f})"
    )
    return {
        "contact_frames": contacts,
        "toe_off_frames": toe_offs,
        "threshold": state.threshold,
        "base_threshold": state.base_threshold,
        "interval": [start, end],
    }


# ── Session ──────────────────────────────────────────────────────────


class CalibrationSession:
    """Calibration workflow bound to one landmark provider.

    Each operator action replaces ``state`` with the result of the
    corresponding transition; a rejected action leaves it untouched.
    """

    def __init__(self, provider: LandmarkProvider, min_visibility: float = 0.3,
                 min_ratio: float = 0.5, max_ratio: float = 2.0, **scan_params):
        self.provider = provider
        self.min_visibility = min_visibility
        self.min_ratio = min_ratio
        self.max_ratio = max_ratio
        self.scan_params = scan_params
        self.state = reset_calibration()

    def height_at(self, frame: int) -> Optional[float]:
        return foot_tip_height(self.provider.landmarks_for_frame(frame), self.min_visibility)

    def mark_contact(self, frame: int) -> CalibrationState:
        self.state = mark_contact(self.state, frame, self.height_at(frame))
        logger.info(f"Calibration: contact marked at frame {frame}")
        return self.state

    def mark_toe_off(self, frame: int) -> CalibrationState:
        self.state = mark_toe_off(self.state, frame, self.height_at(frame))
        logger.info(
            f"Calibration: toe-off marked at frame {frame}, "
            f"threshold={self.state.threshold:.4f}"
        )
        return self.state

    def rescale(self, ratio: float) -> CalibrationState:
        self.state = rescale_threshold(self.state, ratio, self.min_ratio, self.max_ratio)
        return self.state

    def reset(self) -> CalibrationState:
        self.state = reset_calibration()
        return self.state

    def scan(self, start: Optional[int] = None, end: Optional[int] = None) -> dict:
        """Run ``scan_interval`` over ``[start, end]`` (default: every frame served)."""
        if start is None or end is None:
            frame_range = self.provider.frame_range
            if frame_range is None:
                raise CalibrationError("Interval bounds required for this provider")
            start = frame_range[0] if start is None else start
            end = frame_range[1] if end is None else end
        return scan_interval(
            self.provider, self.state, start, end,
            min_visibility=self.min_visibility, **self.scan_params,
        )
