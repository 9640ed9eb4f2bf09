"""Horizontal force-velocity profile from stride speeds.

Simplified macroscopic model: the acceleration between consecutive
strides, ``a = (v[i+1] - v[i]) / (contact[i] + flight[i])``, gives the
net horizontal force ``F = m a``. A linear regression of force on
velocity then yields the profile:

    - F0    : force intercept at zero velocity (N)
    - V0    : theoretical maximal velocity, F0 / |slope| (m/s)
    - Pmax  : F0 * V0 / 4 (W)
    - RFmax : F0 / (m g) * 100 (%)
    - DRF   : RFmax / V0 (%/(m/s))

Air resistance is ignored, so forces are underestimated at high speed.

Ref: Samozino P, Rabita G, Dorel S, et al. A simple method for
measuring power, force, velocity properties, and mechanical
effectiveness in sprint running. Scand J Med Sci Sports.
2016;26(6):648-658. doi:10.1111/sms.12490
"""

import logging
from typing import List, Optional

import numpy as np
from scipy import stats

logger = logging.getLogger(__name__)


def _usable(stride: dict) -> bool:
    speed, length = stride.get("speed"), stride.get("stride_length")
    return speed is not None and speed > 0 and length is not None and length > 0


def compute_hfvp(
    strides: List[dict],
    mass_kg: Optional[float],
    min_steps: int = 3,
    gravity: float = 9.81,
) -> Optional[dict]:
    """Compute the horizontal force-velocity profile.

    Parameters
    ----------
    strides : list of dict
        Stride records with ``speed``, ``stride_length``,
        ``contact_time`` and ``flight_time``.
    mass_kg : float or None
        Body mass in kilograms.
    min_steps : int, optional
        Minimum number of usable strides and of force samples (default 3).
    gravity : float, optional
        Gravitational acceleration in m/s^2 (default 9.81).

    Returns
    -------
    dict or None
        ``{"F0", "V0", "Pmax", "RFmax", "DRF", "r_squared", "slope",
        "data_points", "summary"}``, or None when the mass is unknown,
        there are too few usable strides, or force does not decrease
        with velocity.
    """
    if mass_kg is None or mass_kg <= 0:
        logger.warning("H-FVP skipped: body mass unknown")
        return None

    steps = [s for s in strides if _usable(s)]
    if len(steps) < min_steps:
        logger.warning(f"H-FVP skipped: {len(steps)} usable strides (need {min_steps})")
        return None

    weight = mass_kg * gravity
    points = []
    distance = 0.0
    for cur, nxt in zip(steps[:-1], steps[1:]):
        dt = (cur.get("contact_time") or 0.0) + (cur.get("flight_time") or 0.0)
        if dt > 0:
            v = cur["speed"]
            force = mass_kg * (nxt["speed"] - v) / dt
            points.append({
                "stride_index": cur.get("index"),
                "velocity": v,
                "force": force,
                "power": force * v,
                "force_ratio": force / weight * 100.0,
                "distance": distance,
            })
        distance += cur["stride_length"]

    if len(points) < min_steps:
        logger.warning(f"H-FVP skipped: {len(points)} force samples (need {min_steps})")
        return None

    velocity = np.array([p["velocity"] for p in points])
    force = np.array([p["force"] for p in points])
    if np.ptp(velocity) < 1e-10:
        logger.warning("H-FVP skipped: constant velocity")
        return None

    fit = stats.linregress(velocity, force)
    if fit.slope >= 0:
        logger.warning(f"H-FVP skipped: force does not decrease with velocity (slope={fit.slope:.2f})")
        return None

    f0 = float(fit.intercept)
    v0 = f0 / abs(fit.slope)
    rf_max = f0 / weight * 100.0

    total_time = sum((s.get("contact_time") or 0.0) + (s.get("flight_time") or 0.0) for s in steps)
    speeds = [s["speed"] for s in steps]

    result = {
        "F0": f0,
        "V0": float(v0),
        "Pmax": float(f0 * v0 / 4.0),
        "RFmax": float(rf_max),
        "DRF": float(rf_max / v0) if v0 != 0 else None,
        "slope": float(fit.slope),
        "r_squared": float(fit.rvalue ** 2),
        "data_points": points,
        "summary": {
            "avg_force": float(np.mean(force)),
            "avg_power": float(np.mean([p["power"] for p in points])),
            "peak_velocity": float(max(speeds)),
            "avg_acceleration": (speeds[-1] - speeds[0]) / total_time if total_time > 0 else None,
        },
    }
    logger.info(
        f"H-FVP: F0={f0:.1f} N, V0={v0:.2f} m/s, Pmax={result['Pmax']:.0f} W, "
        f"R2={result['r_squared']:.3f}"
    )
    return result


def compute_force_velocity(
    data: dict,
    mass_kg: Optional[float] = None,
    min_steps: int = 3,
    gravity: float = 9.81,
) -> dict:
    """Store ``compute_hfvp`` output under ``data["hfvp"]``.

    *mass_kg* defaults to ``data["subject"]["mass_kg"]``.

    Raises
    ------
    TypeError
        If *data* is not a dict.
    ValueError
        If *data* has no strides.
    """
    if not isinstance(data, dict):
        raise TypeError("data must be a dict")
    if data.get("strides") is None:
        raise ValueError("No strides in data. Run compute_strides() first.")
    if mass_kg is None:
        mass_kg = (data.get("subject") or {}).get("mass_kg")
    data["hfvp"] = compute_hfvp(data["strides"]["strides"], mass_kg, min_steps, gravity)
    return data
