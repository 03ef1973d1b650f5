"""
===============================================================================
LOI PLANNER - Value Types
===============================================================================
Immutable value objects passed between the planner's subsystems:

    OrbitalElements    - transfer ellipse definition (altitudes + angles)
    Position3          - Cartesian ECI position (km)
    StateVector        - ephemeris query result (position + velocity)
    SimplexPoint       - one Nelder-Mead vertex in (RAAN, apogee) space
    OptimizationResult - best transfer found for one LOI epoch
    CandidateEpoch     - an equatorial-plane crossing of the target body
    TransferPlan       - LOI/TLI epochs bundled with the optimized orbit
    SpacecraftState    - spacecraft placement at an arbitrary instant
    LOIOption          - a crossing offered ahead of a landing date

All of them are frozen dataclasses, created fresh by each computation.
===============================================================================
"""

from dataclasses import dataclass
from datetime import datetime

import numpy as np

from core.constants import ECI_FRAME, EARTH_MU, EARTH_RADIUS, TWO_PI
from core.frames import right_ascension_declination


# =============================================================================
# ORBIT DEFINITION
# =============================================================================

@dataclass(frozen=True)
class OrbitalElements:
    """
    Geocentric transfer ellipse described the way mission designers quote it.

    Attributes
    ----------
    inclination : float
        Orbital inclination (deg).
    raan : float
        Right ascension of the ascending node (deg).
    omega : float
        Argument of perigee (deg).
    perigee_alt : float
        Perigee altitude above the mean Earth radius (km).
    apogee_alt : float
        Apogee altitude above the mean Earth radius (km).
    """
    inclination: float
    raan: float
    omega: float
    perigee_alt: float
    apogee_alt: float

    def __post_init__(self):
        if self.perigee_alt < 0.0 or self.apogee_alt < 0.0:
            raise ValueError(
                f"Altitudes must be non-negative, got perigee={self.perigee_alt} km, "
                f"apogee={self.apogee_alt} km"
            )

    @property
    def rp(self) -> float:
        """Perigee radius (km)."""
        return EARTH_RADIUS + self.perigee_alt

    @property
    def ra(self) -> float:
        """Apogee radius (km)."""
        return EARTH_RADIUS + self.apogee_alt

    @property
    def semi_major_axis(self) -> float:
        """a = (ra + rp) / 2 (km)."""
        return (self.ra + self.rp) / 2.0

    @property
    def eccentricity(self) -> float:
        """e = (ra - rp) / (ra + rp)."""
        return (self.ra - self.rp) / (self.ra + self.rp)

    @property
    def period(self) -> float:
        """Keplerian period (s)."""
        return TWO_PI * np.sqrt(self.semi_major_axis ** 3 / EARTH_MU)


# =============================================================================
# CARTESIAN STATE
# =============================================================================

@dataclass(frozen=True)
class Position3:
    """Cartesian position (km) in the planner's ECI frame."""
    x: float
    y: float
    z: float
    frame: str = ECI_FRAME

    @classmethod
    def from_array(cls, r: np.ndarray) -> 'Position3':
        r = np.asarray(r, dtype=np.float64)
        return cls(float(r[0]), float(r[1]), float(r[2]))

    def as_array(self) -> np.ndarray:
        return np.array([self.x, self.y, self.z], dtype=np.float64)

    def norm(self) -> float:
        """Distance from the Earth's centre (km)."""
        return float(np.sqrt(self.x * self.x + self.y * self.y + self.z * self.z))

    def distance_to(self, other: 'Position3') -> float:
        dx = self.x - other.x
        dy = self.y - other.y
        dz = self.z - other.z
        return float(np.sqrt(dx * dx + dy * dy + dz * dz))

    @property
    def right_ascension(self) -> float:
        """Right ascension (deg, [0, 360))."""
        return right_ascension_declination(self.as_array())[0]

    @property
    def declination(self) -> float:
        """Declination (deg, [-90, 90])."""
        return right_ascension_declination(self.as_array())[1]


@dataclass(frozen=True)
class StateVector:
    """
    Position and velocity of a body at one instant.

    Attributes
    ----------
    position : Position3
        ECI position (km).
    velocity : np.ndarray
        3-element ECI velocity (km/s).
    epoch : datetime
        Instant the state is valid at (UTC).
    """
    position: Position3
    velocity: np.ndarray
    epoch: datetime

    @property
    def speed(self) -> float:
        """Magnitude of the velocity vector (km/s)."""
        return float(np.linalg.norm(self.velocity))


# =============================================================================
# OPTIMIZER TYPES
# =============================================================================

@dataclass(frozen=True)
class SimplexPoint:
    """A vertex of the 2-D Nelder-Mead simplex."""
    raan: float
    apogee_alt: float
    value: float


@dataclass(frozen=True)
class OptimizationResult:
    """
    Best transfer orbit found for a single LOI epoch.

    Attributes
    ----------
    raan : float
        Optimal RAAN (deg, [0, 360)).
    apogee_alt : float
        Optimal apogee altitude (km, [180, 600000]).
    distance_km : float
        Closest approach between the ellipse and the target (km, >= 0).
    true_anomaly_deg : float
        True anomaly where the closest approach occurs (deg, [0, 360)).
    """
    raan: float
    apogee_alt: float
    distance_km: float
    true_anomaly_deg: float


@dataclass(frozen=True)
class CandidateEpoch:
    """Instant at which the target body crosses the equatorial plane."""
    instant: datetime
    ascending: bool


@dataclass(frozen=True)
class TransferPlan:
    """
    Complete insertion plan for one LOI epoch.

    The TLI epoch is the perigee passage that puts the spacecraft at the
    closest-approach true anomaly exactly at the LOI epoch.
    """
    loi_epoch: datetime
    tli_epoch: datetime
    time_of_flight: float
    result: OptimizationResult
    elements: OrbitalElements


@dataclass(frozen=True)
class SpacecraftState:
    """Spacecraft placement along its transfer orbit at one instant."""
    position: Position3
    true_anomaly_deg: float
    is_launched: bool
    distance_from_earth: float


@dataclass(frozen=True)
class LOIOption:
    """A candidate LOI crossing offered ahead of a landing date."""
    epoch: datetime
    days_before_landing: float
    label: str
    ascending: bool = True


def elements_from_result(result: OptimizationResult, omega: float,
                         inclination: float, perigee_alt: float) -> OrbitalElements:
    """Build the transfer ellipse described by an optimization result."""
    return OrbitalElements(
        inclination=inclination,
        raan=result.raan,
        omega=omega,
        perigee_alt=perigee_alt,
        apogee_alt=result.apogee_alt,
    )
