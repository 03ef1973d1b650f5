"""
===============================================================================
LOI PLANNER - Kepler Solver
===============================================================================
Time <-> anomaly conversions for a geocentric two-body ellipse defined by
its perigee and apogee altitudes.

    Mean motion:          n = sqrt(mu / a^3)
    Kepler's equation:    M = E - e*sin(E)
    True anomaly:         tan(nu/2) = sqrt((1+e)/(1-e)) * tan(E/2)
    Period:               T = 2*pi*sqrt(a^3 / mu)

Kepler's equation is solved with a fixed number of Newton-Raphson steps
(KEPLER_ITERATIONS) and no residual test.  Near-parabolic transfers
(e > KEPLER_HIGH_ECCENTRICITY) start from the root of the cubic

    (e/6)*E^3 + (1-e)*E = M

which keeps the iteration convergent up to the apogee altitude cap.

Used by the TLI planner and by spacecraft_state to place the spacecraft
on its orbit at a given instant.
===============================================================================
"""

from typing import Tuple

import numpy as np

from core.constants import (
    EARTH_MU,
    EARTH_RADIUS,
    KEPLER_HIGH_ECCENTRICITY,
    KEPLER_ITERATIONS,
    PI,
    TWO_PI,
)


def _radii(perigee_alt: float, apogee_alt: float) -> Tuple[float, float]:
    if perigee_alt < 0.0 or apogee_alt < 0.0:
        raise ValueError(
            f"Altitudes must be non-negative, got perigee={perigee_alt} km, "
            f"apogee={apogee_alt} km"
        )
    return EARTH_RADIUS + perigee_alt, EARTH_RADIUS + apogee_alt


def semi_major_axis(perigee_alt: float, apogee_alt: float) -> float:
    """a = (ra + rp) / 2 (km)."""
    rp, ra = _radii(perigee_alt, apogee_alt)
    return (rp + ra) / 2.0


def eccentricity(perigee_alt: float, apogee_alt: float) -> float:
    """e = (ra - rp) / (ra + rp)."""
    rp, ra = _radii(perigee_alt, apogee_alt)
    return (ra - rp) / (ra + rp)


def mean_motion(perigee_alt: float, apogee_alt: float) -> float:
    """n = sqrt(mu / a^3) (rad/s)."""
    a = semi_major_axis(perigee_alt, apogee_alt)
    return np.sqrt(EARTH_MU / a ** 3)


def orbital_period(perigee_alt: float, apogee_alt: float) -> float:
    """
    Keplerian period of the ellipse.

    Args:
        perigee_alt: Perigee altitude (km).
        apogee_alt:  Apogee altitude (km).

    Returns:
        Period T = 2*pi*sqrt(a^3/mu) in seconds.

    Raises:
        ValueError: If either altitude is negative.
    """
    a = semi_major_axis(perigee_alt, apogee_alt)
    return TWO_PI * np.sqrt(a ** 3 / EARTH_MU)


def _starting_anomaly(M: float, e: float) -> float:
    """
    Initial eccentric anomaly for the Newton iteration.

    E0 = M for moderate eccentricity.  Above KEPLER_HIGH_ECCENTRICITY the
    start is the real root of (e/6)*E^3 + (1-e)*E = M, solved by Cardano on
    the half revolution [0, pi] and mirrored for M > pi.
    """
    if e <= KEPLER_HIGH_ECCENTRICITY:
        return M

    mirrored = M > PI
    m = TWO_PI - M if mirrored else M

    p = 6.0 * (1.0 - e) / e
    q = 6.0 * m / e
    s = np.sqrt(q * q / 4.0 + p ** 3 / 27.0)
    E0 = min(float(np.cbrt(q / 2.0 + s) + np.cbrt(q / 2.0 - s)), PI)

    return TWO_PI - E0 if mirrored else E0


def solve_kepler(M: float, e: float) -> float:
    """
    Eccentric anomaly E for mean anomaly M (rad, in [0, 2*pi)).

        E_{k+1} = E_k - (E_k - e*sin(E_k) - M) / (1 - e*cos(E_k))
    """
    E = _starting_anomaly(M, e)
    for _ in range(KEPLER_ITERATIONS):
        E = E - (E - e * np.sin(E) - M) / (1.0 - e * np.cos(E))
    return E


def true_anomaly_from_time(time_since_periapsis: float, perigee_alt: float,
                           apogee_alt: float) -> float:
    """
    True anomaly reached *time_since_periapsis* seconds after perigee passage.

    Args:
        time_since_periapsis: Elapsed time since perigee (s).
        perigee_alt:          Perigee altitude (km).
        apogee_alt:           Apogee altitude (km).

    Returns:
        True anomaly in degrees, [0, 360).
    """
    e = eccentricity(perigee_alt, apogee_alt)
    n = mean_motion(perigee_alt, apogee_alt)

    M = (n * time_since_periapsis) % TWO_PI
    E = solve_kepler(M, e)

    nu = 2.0 * np.arctan2(
        np.sqrt(1.0 + e) * np.sin(E / 2.0),
        np.sqrt(1.0 - e) * np.cos(E / 2.0),
    )

    nu_deg = float(np.degrees(nu)) % 360.0
    if nu_deg >= 360.0:
        nu_deg = 0.0
    return nu_deg


def time_to_true_anomaly(true_anomaly_deg: float, perigee_alt: float,
                         apogee_alt: float) -> float:
    """
    Time of flight from perigee to the given true anomaly.

        cos(E) = (e + cos(nu)) / (1 + e*cos(nu))
        E      = 2*pi - E          when nu > pi (same half-plane as nu)
        M      = E - e*sin(E)
        t      = M / (2*pi) * T

    Angles are reduced to one revolution, except that exactly 360 deg is
    read as the end of the first revolution and returns one full period.

    Args:
        true_anomaly_deg: Target true anomaly (deg).
        perigee_alt:      Perigee altitude (km).
        apogee_alt:       Apogee altitude (km).

    Returns:
        Time since perigee in seconds, [0, T].
    """
    e = eccentricity(perigee_alt, apogee_alt)
    period = orbital_period(perigee_alt, apogee_alt)

    if true_anomaly_deg == 360.0:
        return period

    nu = np.radians(true_anomaly_deg) % TWO_PI

    cos_E = (e + np.cos(nu)) / (1.0 + e * np.cos(nu))
    E = np.arccos(np.clip(cos_E, -1.0, 1.0))
    if nu > np.pi:
        E = TWO_PI - E

    M = E - e * np.sin(E)
    return float(M / TWO_PI * period)
