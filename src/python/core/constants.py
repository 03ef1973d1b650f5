"""
===============================================================================
LOI PLANNER - Physical and Mission Constants
===============================================================================
Central repository for the constants used by the transfer-orbit planner.

Unlike a full-fidelity propagator, the planner works in the units the
mission designers quote: kilometres, seconds and degrees.  Angles are
converted to radians only inside the numerical routines.
===============================================================================
"""

import numpy as np


# =============================================================================
# MATHEMATICAL CONSTANTS
# =============================================================================
PI = np.pi
TWO_PI = 2.0 * np.pi
DEG2RAD = PI / 180.0
RAD2DEG = 180.0 / PI

# =============================================================================
# TIME
# =============================================================================
SECONDS_PER_DAY = 86400.0

# =============================================================================
# EARTH PARAMETERS
# =============================================================================
EARTH_MU = 398600.4418                 # Gravitational parameter (km^3/s^2)
EARTH_RADIUS = 6371.0                  # Mean radius (km)

# =============================================================================
# MOON PARAMETERS
# =============================================================================
MOON_SMA = 384400.0                    # Mean Earth-Moon distance (km)
MOON_ORBITAL_PERIOD = 2360591.0        # Sidereal orbital period (s) ~27.3 days
MOON_INCLINATION = 5.145 * DEG2RAD     # Inclination to ecliptic (rad)
EARTH_OBLIQUITY = 23.4393 * DEG2RAD    # Axial tilt (rad)

# =============================================================================
# REFERENCE FRAME
# =============================================================================
# Geocentric equatorial, EME2000/ICRS-aligned: +x vernal equinox,
# +z celestial north pole, right-handed.
ECI_FRAME = 'ECI'

# =============================================================================
# TRANSFER ORBIT PARAMETER BOUNDS
# =============================================================================
PERIGEE_ALTITUDE = 180.0               # Fixed parking-orbit perigee (km)
APOGEE_ALT_MIN = 180.0                 # km
APOGEE_ALT_MAX = 600000.0              # km

# =============================================================================
# REFERENCE MISSION (lunar transfer, 2023)
# =============================================================================
REFERENCE_OMEGA = 178.0                # Argument of perigee (deg)
REFERENCE_INCLINATION = 21.5           # deg
REFERENCE_APOGEE_ALT = 378029.0        # km

# Newton-Raphson iterations for Kepler's equation.  Fixed count: transfer
# eccentricities reach ~0.979 at APOGEE_ALT_MAX, so above
# KEPLER_HIGH_ECCENTRICITY the iteration starts from a cubic approximation
# of sin(E) instead of from M.
KEPLER_ITERATIONS = 10
KEPLER_HIGH_ECCENTRICITY = 0.8
