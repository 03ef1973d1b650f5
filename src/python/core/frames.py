"""
===============================================================================
LOI PLANNER - Reference Frame Transformations
===============================================================================
Rotation matrices and angle utilities shared by the orbit projector and the
ephemeris layer.

Every Cartesian vector in the planner is expressed in a single geocentric
equatorial frame (ECI, aligned with EME2000/ICRS):

    +x  toward the vernal equinox
    +z  toward the celestial north pole
    +y  completes the right-handed triad

The ephemeris providers convert into this frame at their boundary, so the
projector and the approach evaluator never re-derive axis conventions.
Angles are in radians unless the function name says otherwise.

References
----------
    [1] Vallado, "Fundamentals of Astrodynamics and Applications", 4th ed.
    [2] Curtis, "Orbital Mechanics for Engineering Students", 4th ed.

===============================================================================
"""

from typing import Tuple

import numpy as np

from core.constants import RAD2DEG


# =============================================================================
# ELEMENTARY ROTATION MATRICES
# =============================================================================

def Rx(angle: float) -> np.ndarray:
    """
    Elementary rotation matrix about the X-axis (frame rotation):

        Rx(a) = | 1    0       0     |
                | 0   cos(a)  sin(a)  |
                | 0  -sin(a)  cos(a)  |

    Parameters
    ----------
    angle : float
        Rotation angle in radians.

    Returns
    -------
    np.ndarray
        3x3 rotation matrix.
    """
    c = np.cos(angle)
    s = np.sin(angle)
    return np.array([
        [1.0,  0.0,  0.0],
        [0.0,    c,    s],
        [0.0,   -s,    c],
    ], dtype=np.float64)


def Rz(angle: float) -> np.ndarray:
    """
    Elementary rotation matrix about the Z-axis (frame rotation):

        Rz(a) = |  cos(a)  sin(a)  0 |
                | -sin(a)  cos(a)  0 |
                |    0       0     1 |

    Parameters
    ----------
    angle : float
        Rotation angle in radians.

    Returns
    -------
    np.ndarray
        3x3 rotation matrix.
    """
    c = np.cos(angle)
    s = np.sin(angle)
    return np.array([
        [  c,    s,  0.0],
        [ -s,    c,  0.0],
        [0.0,  0.0,  1.0],
    ], dtype=np.float64)


# =============================================================================
# PERIFOCAL -> ECI
# =============================================================================

def perifocal_to_eci_matrix(RAAN: float, inc: float, omega: float) -> np.ndarray:
    """
    Direction cosine matrix taking perifocal (PQW) vectors into ECI.

    A perifocal vector is turned by the argument of periapsis about the
    orbit normal, then by the inclination about the line of nodes, then by
    RAAN about the pole.  Expressed with frame rotations:

        R_eci_pqw = Rz(-RAAN) * Rx(-inc) * Rz(-omega)

    The order is fixed; permuting the factors describes a different orbit.

    Parameters
    ----------
    RAAN : float
        Right Ascension of the Ascending Node (rad).
    inc : float
        Orbital inclination (rad).
    omega : float
        Argument of periapsis (rad).

    Returns
    -------
    np.ndarray
        3x3 rotation matrix.
    """
    return Rz(-RAAN) @ Rx(-inc) @ Rz(-omega)


def perifocal_to_eci(r_pqw: np.ndarray, RAAN: float,
                     inc: float, omega: float) -> np.ndarray:
    """
    Rotate one vector, or an (N, 3) stack of row vectors, from the
    perifocal frame to ECI.

    References
    ----------
    Vallado (2013), Algorithm 11.
    """
    r = np.asarray(r_pqw, dtype=np.float64)
    R = perifocal_to_eci_matrix(RAAN, inc, omega)
    if r.ndim == 1:
        return R @ r
    return r @ R.T


# =============================================================================
# ANGLE UTILITIES
# =============================================================================

def wrap_degrees(angle_deg: float) -> float:
    """Wrap an angle in degrees into [0, 360)."""
    wrapped = float(angle_deg) % 360.0
    # -1e-15 % 360 rounds to exactly 360.0
    if wrapped >= 360.0:
        wrapped = 0.0
    return wrapped


def right_ascension_declination(r_eci: np.ndarray) -> Tuple[float, float]:
    """
    Right ascension and declination of an ECI vector.

        RA  = atan2(y, x)                wrapped to [0, 360)
        Dec = atan2(z, sqrt(x^2 + y^2))

    Parameters
    ----------
    r_eci : np.ndarray
        3-element ECI vector (any length unit).

    Returns
    -------
    (ra_deg, dec_deg) : tuple of float
    """
    x, y, z = np.asarray(r_eci, dtype=np.float64)
    ra = wrap_degrees(np.arctan2(y, x) * RAD2DEG)
    dec = float(np.arctan2(z, np.hypot(x, y)) * RAD2DEG)
    return ra, dec
