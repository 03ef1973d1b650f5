"""
===============================================================================
LOI PLANNER - Target-Body Ephemeris
===============================================================================
The planner consumes the target body (the Moon) through one narrow, typed
interface:

    position_and_velocity_at(instant) -> StateVector   (ECI km, km/s)
    declination_at(instant)           -> deg
    find_crossing(func, start, end)   -> instant        (bracketed root)

Concrete providers implement a single hook, ``_query(instant)``, returning
an ECI position/velocity pair.  The base class owns everything else: UTC
validation, the valid-date window, conversion into the shared ECI frame,
and translation of any provider failure into EphemerisError.  Call sites
never see provider-specific shapes.

Providers:
    AstropyMoonEphemeris  -- geometric geocentric Moon from astropy's
                             solar-system ephemeris (built-in ERFA model
                             by default, JPL kernels on request)
    AnalyticMoonEphemeris -- circular inclined Moon orbit, fast and fully
                             deterministic
    MemoizedEphemeris     -- explicit LRU memo around any provider; the
                             caller decides whether to cache, the core
                             never does
===============================================================================
"""

import logging
from abc import ABC, abstractmethod
from collections import OrderedDict
from datetime import datetime, timedelta, timezone
from typing import Callable, Optional, Tuple

import numpy as np
from astropy import units as u
from astropy.coordinates import get_body_barycentric_posvel, solar_system_ephemeris
from astropy.time import Time
from scipy.optimize import brentq

from core.constants import (
    EARTH_OBLIQUITY,
    MOON_INCLINATION,
    MOON_ORBITAL_PERIOD,
    MOON_SMA,
    TWO_PI,
)
from core.data_structures import Position3, StateVector
from core.frames import Rx, right_ascension_declination

logger = logging.getLogger(__name__)


class EphemerisError(RuntimeError):
    """The ephemeris provider could not resolve the target state."""


def ensure_utc(instant: datetime) -> datetime:
    """
    Normalize an instant to an aware UTC datetime.

    Raises:
        ValueError: If *instant* is naive; local-time ambiguity is not
                    guessed at.
    """
    if instant.tzinfo is None or instant.utcoffset() is None:
        raise ValueError(f"Instant must be timezone-aware, got naive {instant!r}")
    return instant.astimezone(timezone.utc)


# =============================================================================
# PROVIDER INTERFACE
# =============================================================================

class EphemerisProvider(ABC):
    """
    Base class for target-body ephemerides.

    Attributes:
        valid_from:  Earliest instant the provider is trusted for.
        valid_until: Latest instant the provider is trusted for.
        root_tolerance_s: Absolute time tolerance of find_crossing (s).
    """

    def __init__(
        self,
        valid_from: Optional[datetime] = None,
        valid_until: Optional[datetime] = None,
        root_tolerance_s: float = 1.0,
    ) -> None:
        self.valid_from = ensure_utc(valid_from) if valid_from else None
        self.valid_until = ensure_utc(valid_until) if valid_until else None
        self.root_tolerance_s = root_tolerance_s

    @abstractmethod
    def _query(self, instant: datetime) -> Tuple[np.ndarray, np.ndarray]:
        """Return (position km, velocity km/s) in the ECI frame."""

    def position_and_velocity_at(self, instant: datetime) -> StateVector:
        """
        State of the target body at *instant*.

        Raises:
            ValueError:     Naive datetime.
            EphemerisError: Instant outside the valid window, or any failure
                            inside the underlying model.
        """
        instant = ensure_utc(instant)
        if self.valid_from is not None and instant < self.valid_from:
            raise EphemerisError(
                f"{instant.isoformat()} precedes ephemeris coverage "
                f"(starts {self.valid_from.isoformat()})"
            )
        if self.valid_until is not None and instant > self.valid_until:
            raise EphemerisError(
                f"{instant.isoformat()} is past ephemeris coverage "
                f"(ends {self.valid_until.isoformat()})"
            )

        try:
            r, v = self._query(instant)
        except EphemerisError:
            raise
        except Exception as exc:
            raise EphemerisError(
                f"{type(self).__name__} failed at {instant.isoformat()}: {exc}"
            ) from exc

        r = np.asarray(r, dtype=np.float64)
        v = np.asarray(v, dtype=np.float64)
        if r.shape != (3,) or v.shape != (3,) or not (np.all(np.isfinite(r)) and np.all(np.isfinite(v))):
            raise EphemerisError(
                f"{type(self).__name__} returned an unusable state at {instant.isoformat()}"
            )
        return StateVector(position=Position3.from_array(r), velocity=v, epoch=instant)

    def position_at(self, instant: datetime) -> Position3:
        return self.position_and_velocity_at(instant).position

    def declination_at(self, instant: datetime) -> float:
        """Declination of the target above the equatorial plane (deg)."""
        r = self.position_at(instant).as_array()
        return right_ascension_declination(r)[1]

    def find_crossing(
        self,
        func: Callable[[datetime], float],
        start: datetime,
        end: datetime,
    ) -> datetime:
        """
        Instant in [start, end] where the scalar *func* changes sign.

        Brent's method on seconds elapsed since *start*.  The bracket must
        contain a sign change (or a zero at one end).

        Raises:
            ValueError: The bracket does not straddle a root.
        """
        start = ensure_utc(start)
        end = ensure_utc(end)
        span = (end - start).total_seconds()

        def g(seconds: float) -> float:
            return func(start + timedelta(seconds=float(seconds)))

        root = brentq(g, 0.0, span, xtol=self.root_tolerance_s)
        return start + timedelta(seconds=float(root))


# =============================================================================
# ASTROPY-BACKED MOON
# =============================================================================

class AstropyMoonEphemeris(EphemerisProvider):
    """
    Geometric geocentric Moon state from astropy.

    The Moon's and Earth's barycentric states are differenced, giving a
    geocentric vector on ICRS-aligned axes (the planner's ECI frame to well
    below the kilometre level).  The default 'builtin' ephemeris uses ERFA
    models and needs no downloads; coverage is limited to 1900-2100.
    """

    def __init__(
        self,
        ephemeris: str = 'builtin',
        valid_from: Optional[datetime] = datetime(1900, 1, 1, tzinfo=timezone.utc),
        valid_until: Optional[datetime] = datetime(2100, 12, 31, tzinfo=timezone.utc),
        root_tolerance_s: float = 1.0,
    ) -> None:
        super().__init__(valid_from, valid_until, root_tolerance_s)
        self.ephemeris = ephemeris

    def _query(self, instant: datetime) -> Tuple[np.ndarray, np.ndarray]:
        t = Time(instant.replace(tzinfo=None), scale='utc')
        with solar_system_ephemeris.set(self.ephemeris):
            moon_pos, moon_vel = get_body_barycentric_posvel('moon', t)
            earth_pos, earth_vel = get_body_barycentric_posvel('earth', t)

        r = (moon_pos - earth_pos).get_xyz().to(u.km).value
        v = (moon_vel - earth_vel).get_xyz().to(u.km / u.s).value
        return r, v


# =============================================================================
# ANALYTIC MOON
# =============================================================================

class AnalyticMoonEphemeris(EphemerisProvider):
    """
    Simplified Moon on a circular orbit.

    The Moon moves at the mean Earth-Moon distance with the sidereal period,
    in a plane inclined to the equator by the obliquity plus the lunar
    inclination to the ecliptic.  Useful wherever speed and reproducibility
    matter more than fidelity.

        n       = 2*pi / period
        theta   = theta0 + n * (t - epoch)
        r_orbit = R * [cos(theta), sin(theta), 0]
        r_eci   = Rx(-i_total) @ r_orbit
    """

    def __init__(
        self,
        epoch: datetime = datetime(2023, 1, 1, tzinfo=timezone.utc),
        radius_km: float = MOON_SMA,
        period_s: float = MOON_ORBITAL_PERIOD,
        inclination_rad: float = EARTH_OBLIQUITY + MOON_INCLINATION,
        phase_rad: float = 0.0,
        root_tolerance_s: float = 1.0,
    ) -> None:
        super().__init__(root_tolerance_s=root_tolerance_s)
        self.epoch = ensure_utc(epoch)
        self.radius_km = radius_km
        self.period_s = period_s
        self.inclination_rad = inclination_rad
        self.phase_rad = phase_rad

    def _query(self, instant: datetime) -> Tuple[np.ndarray, np.ndarray]:
        n = TWO_PI / self.period_s
        theta = self.phase_rad + n * (instant - self.epoch).total_seconds()

        r_orbit = self.radius_km * np.array([np.cos(theta), np.sin(theta), 0.0])
        v_orbit = self.radius_km * n * np.array([-np.sin(theta), np.cos(theta), 0.0])

        R = Rx(-self.inclination_rad)
        return R @ r_orbit, R @ v_orbit


# =============================================================================
# CALLER-SIDE MEMOIZATION
# =============================================================================

class MemoizedEphemeris(EphemerisProvider):
    """
    LRU memo in front of another provider.

    Keyed on the exact UTC instant.  Failures are not cached; the wrapped
    provider is asked again on the next call.
    """

    def __init__(self, provider: EphemerisProvider, maxsize: int = 4096) -> None:
        super().__init__(provider.valid_from, provider.valid_until,
                         provider.root_tolerance_s)
        self.provider = provider
        self.maxsize = maxsize
        self._memo: 'OrderedDict[datetime, Tuple[np.ndarray, np.ndarray]]' = OrderedDict()
        self.hits = 0
        self.misses = 0

    def _query(self, instant: datetime) -> Tuple[np.ndarray, np.ndarray]:
        cached = self._memo.get(instant)
        if cached is not None:
            self._memo.move_to_end(instant)
            self.hits += 1
            return cached

        self.misses += 1
        state = self.provider.position_and_velocity_at(instant)
        entry = (state.position.as_array(), np.array(state.velocity, dtype=np.float64))
        self._memo[instant] = entry
        if len(self._memo) > self.maxsize:
            self._memo.popitem(last=False)
        return entry

    def clear(self) -> None:
        self._memo.clear()
        self.hits = 0
        self.misses = 0


def build_ephemeris(provider: str = 'astropy', memoize: bool = True) -> EphemerisProvider:
    """
    Construct a provider by name.

    Args:
        provider: 'astropy' or 'analytic'.
        memoize:  Wrap the provider in a MemoizedEphemeris.

    Raises:
        ValueError: If provider is not recognized.
    """
    lookup = {
        'astropy': AstropyMoonEphemeris,
        'analytic': AnalyticMoonEphemeris,
    }
    if provider.lower() not in lookup:
        raise ValueError(f"Unknown ephemeris provider: {provider}. Valid: {list(lookup.keys())}")
    eph = lookup[provider.lower()]()
    logger.debug("Ephemeris provider: %s (memoize=%s)", type(eph).__name__, memoize)
    return MemoizedEphemeris(eph) if memoize else eph
