"""
===============================================================================
LOI PLANNER - Closest-Approach Evaluator
===============================================================================
Distance between a candidate transfer ellipse and the target body, frozen
at the LOI epoch.  This is the objective the simplex optimizer minimizes.

Two-phase search over true anomaly:

    1. Coarse scan of the whole revolution (profile.coarse_samples points,
       0 to 360 deg inclusive) to find the basin of the minimum.
    2. Fine sweep of +/- profile.fine_span_deg around the coarse winner at
       profile.fine_step_deg.

Resolving the minimum to 0.1 deg over the full orbit would cost ~3600
projections per evaluation; the two-phase scan needs ~400.  Ties keep the
first (lowest true anomaly) sample.
===============================================================================
"""

from dataclasses import dataclass
from datetime import datetime

import numpy as np

from core.config import PRODUCTION_PROFILE, SearchProfile
from core.constants import DEG2RAD, RAD2DEG, TWO_PI
from core.data_structures import OrbitalElements, Position3
from core.frames import wrap_degrees
from dynamics.ephemeris import EphemerisProvider
from dynamics.orbital_mechanics import positions_at_true_anomalies


@dataclass(frozen=True)
class Approach:
    """Closest approach of an ellipse to a fixed point."""
    distance_km: float
    true_anomaly_deg: float


def _distances(nu: np.ndarray, elements: OrbitalElements,
               target: np.ndarray) -> np.ndarray:
    craft = positions_at_true_anomalies(nu, elements)
    return np.linalg.norm(craft - target, axis=1)


def closest_approach_to_position(
    raan: float,
    apogee_alt: float,
    perigee_alt: float,
    target: Position3,
    omega: float,
    inclination: float,
    profile: SearchProfile = PRODUCTION_PROFILE,
) -> Approach:
    """
    Minimum distance between the ellipse and a fixed target position.

    Parameters
    ----------
    raan, omega, inclination : float
        Orientation of the ellipse (deg).
    apogee_alt, perigee_alt : float
        Shape of the ellipse (km).
    target : Position3
        Target position in ECI (km).
    profile : SearchProfile
        Scan resolution.

    Returns
    -------
    Approach
        Distance (km) and the true anomaly (deg, [0, 360)) where it occurs.
    """
    elements = OrbitalElements(
        inclination=inclination,
        raan=raan,
        omega=omega,
        perigee_alt=perigee_alt,
        apogee_alt=apogee_alt,
    )
    target_r = target.as_array()

    # Phase 1: full revolution
    coarse_nu = np.linspace(0.0, TWO_PI, profile.coarse_samples)
    coarse_d = _distances(coarse_nu, elements, target_r)
    i_best = int(np.argmin(coarse_d))
    best_nu = coarse_nu[i_best]
    best_d = coarse_d[i_best]

    # Phase 2: local refinement around the coarse winner
    span = profile.fine_span_deg * DEG2RAD
    step = profile.fine_step_deg * DEG2RAD
    fine_nu = best_nu + np.arange(-span, span + 0.5 * step, step)
    fine_d = _distances(fine_nu, elements, target_r)
    j_best = int(np.argmin(fine_d))
    if fine_d[j_best] < best_d:
        best_nu = fine_nu[j_best]
        best_d = fine_d[j_best]

    return Approach(
        distance_km=float(best_d),
        true_anomaly_deg=wrap_degrees(best_nu * RAD2DEG),
    )


def closest_approach(
    raan: float,
    apogee_alt: float,
    perigee_alt: float,
    target_epoch: datetime,
    omega: float,
    inclination: float,
    ephemeris: EphemerisProvider,
    profile: SearchProfile = PRODUCTION_PROFILE,
) -> Approach:
    """
    Closest approach of the ellipse to the target body at *target_epoch*.

    The ephemeris is queried exactly once; EphemerisError propagates.
    """
    target = ephemeris.position_at(target_epoch)
    return closest_approach_to_position(
        raan, apogee_alt, perigee_alt, target, omega, inclination, profile
    )
