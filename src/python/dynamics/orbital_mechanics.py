"""
===============================================================================
LOI PLANNER - Orbit Projector
===============================================================================
Maps a true anomaly on a transfer ellipse to a Cartesian ECI position.

    1. Orbit radius from the conic equation:

           r = a(1 - e^2) / (1 + e*cos(nu))

    2. Perifocal position (p-hat toward perigee, q-hat 90 deg ahead):

           r_pqw = [r*cos(nu), r*sin(nu), 0]

    3. Rotation into ECI, in this order only: argument of perigee about the
       orbit normal, inclination about the line of nodes, RAAN about the
       celestial pole (see core.frames.perifocal_to_eci_matrix).

The same projector feeds the optimizer's distance objective and any
renderer drawing the transfer ellipse or the live spacecraft marker, so
both always agree on the geometry.

Also provided: right-ascension helpers for an inclined orbit, and the
spacecraft's placement at an arbitrary instant relative to its TLI epoch.

References
----------
    [1] Curtis, "Orbital Mechanics for Engineering Students", 4th ed., 4.6.
    [2] Vallado, "Fundamentals of Astrodynamics and Applications", 4th ed.
===============================================================================
"""

from datetime import datetime

import numpy as np

from core.constants import DEG2RAD, RAD2DEG, TWO_PI
from core.data_structures import OrbitalElements, Position3, SpacecraftState
from core.frames import perifocal_to_eci_matrix, wrap_degrees
from dynamics.kepler import true_anomaly_from_time


# =============================================================================
# POSITION ON THE ELLIPSE
# =============================================================================

def positions_at_true_anomalies(nu_rad: np.ndarray,
                                elements: OrbitalElements) -> np.ndarray:
    """
    Vectorised projector.

    Parameters
    ----------
    nu_rad : np.ndarray
        True anomalies in radians, shape (N,).
    elements : OrbitalElements
        Transfer ellipse.

    Returns
    -------
    np.ndarray
        ECI positions (km), shape (N, 3).
    """
    nu = np.asarray(nu_rad, dtype=np.float64)
    a = elements.semi_major_axis
    e = elements.eccentricity

    r = a * (1.0 - e * e) / (1.0 + e * np.cos(nu))
    r_pqw = np.column_stack([r * np.cos(nu), r * np.sin(nu), np.zeros_like(nu)])

    R = perifocal_to_eci_matrix(
        elements.raan * DEG2RAD,
        elements.inclination * DEG2RAD,
        elements.omega * DEG2RAD,
    )
    return r_pqw @ R.T


def position_at_true_anomaly(true_anomaly_deg: float,
                             elements: OrbitalElements) -> Position3:
    """
    ECI position of the point at *true_anomaly_deg* on the ellipse.

    Parameters
    ----------
    true_anomaly_deg : float
        True anomaly measured from perigee (deg).
    elements : OrbitalElements
        Transfer ellipse.

    Returns
    -------
    Position3
        Position in km.
    """
    r = positions_at_true_anomalies(np.array([true_anomaly_deg * DEG2RAD]), elements)
    return Position3.from_array(r[0])


def orbit_track(elements: OrbitalElements, samples: int = 512) -> np.ndarray:
    """Closed polyline of the full ellipse, shape (samples, 3), for drawing."""
    nu = np.linspace(0.0, TWO_PI, samples)
    return positions_at_true_anomalies(nu, elements)


# =============================================================================
# RIGHT ASCENSION ALONG AN INCLINED ORBIT
# =============================================================================

def right_ascension_at(raan: float, omega: float, true_anomaly_deg: float,
                       inclination: float) -> float:
    """
    Right ascension of the point at a given true anomaly.

    With the argument of latitude u = omega + nu:

        RA = RAAN + atan2(cos(i)*sin(u), cos(u))

    All angles in degrees; result wrapped to [0, 360).
    """
    u = (omega + true_anomaly_deg) * DEG2RAD
    inc = inclination * DEG2RAD
    delta = np.arctan2(np.cos(inc) * np.sin(u), np.cos(u))
    return wrap_degrees(raan + delta * RAD2DEG)


def true_anomaly_at_right_ascension(ra: float, raan: float, omega: float,
                                    inclination: float) -> float:
    """
    Inverse of right_ascension_at for a non-polar orbit.

    The forward relation fixes (cos(i)*sin(u), cos(u)) up to a positive
    scale as (sin(dRA), cos(dRA)), so:

        u  = atan2(sin(dRA) / cos(i), cos(dRA))
        nu = u - omega

    Returns the true anomaly in degrees, wrapped to [0, 360).

    Raises:
        ValueError: For polar orbits, where RA no longer determines u.
    """
    inc = inclination * DEG2RAD
    if abs(np.cos(inc)) < 1e-12:
        raise ValueError("Right ascension does not determine position on a polar orbit")
    d_ra = (ra - raan) * DEG2RAD

    sin_u = np.sin(d_ra) / np.cos(inc)
    cos_u = np.cos(d_ra)
    u = np.arctan2(sin_u, cos_u)
    return wrap_degrees(u * RAD2DEG - omega)


# =============================================================================
# SPACECRAFT PLACEMENT IN TIME
# =============================================================================

def spacecraft_state(current: datetime, tli_epoch: datetime,
                     elements: OrbitalElements) -> SpacecraftState:
    """
    Place the spacecraft on its transfer orbit at *current*.

    Before TLI the spacecraft is parked at perigee (nu = 0).  After TLI the
    true anomaly follows from the elapsed time via Kepler's equation.
    """
    if current < tli_epoch:
        position = position_at_true_anomaly(0.0, elements)
        return SpacecraftState(
            position=position,
            true_anomaly_deg=0.0,
            is_launched=False,
            distance_from_earth=elements.rp,
        )

    elapsed = (current - tli_epoch).total_seconds()
    nu = true_anomaly_from_time(elapsed, elements.perigee_alt, elements.apogee_alt)
    position = position_at_true_anomaly(nu, elements)
    return SpacecraftState(
        position=position,
        true_anomaly_deg=nu,
        is_launched=True,
        distance_from_earth=position.norm(),
    )


def within_capture_distance(craft: Position3, target: Position3,
                            threshold_km: float) -> bool:
    """True when the spacecraft is within *threshold_km* of the target."""
    return craft.distance_to(target) <= threshold_km
