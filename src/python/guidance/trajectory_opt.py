"""
===============================================================================
LOI PLANNER - Transfer Optimization
===============================================================================
Finds the RAAN and apogee altitude of a trans-lunar ellipse whose path
passes closest to the Moon at a chosen lunar-orbit-insertion (LOI) epoch.

Background
----------
With perigee altitude, inclination and argument of perigee fixed by the
mission profile, the transfer ellipse has two free parameters:

    RAAN        -- swings the orbit plane about the Earth's pole
    apogee alt  -- stretches the ellipse toward the Moon's range

The objective (closest approach, guidance.approach) is multi-modal: the
ellipse passes near the Moon's direction twice per revolution, at
different RAAN values, and a single Nelder-Mead run falls into whichever
basin it starts in.  The multi-start search therefore seeds a small grid
around the physically plausible answer:

    RAAN seed    ~ Moon's right ascension at LOI  (+/- 5 deg)
    apogee seed  ~ Moon's geocentric range at LOI (+/- 10 %)

and keeps the lowest-distance result.

The Moon's position is queried once per optimization call and frozen for
every objective evaluation of that call.

TLI planning
------------
Once the closest-approach true anomaly nu* is known, the injection epoch
is the perigee passage that reaches nu* exactly at LOI:

    t_TLI = t_LOI - time_to_true_anomaly(nu*)
===============================================================================
"""

import logging
from datetime import datetime, timedelta
from typing import List, Optional, Tuple

import numpy as np

from core.config import MissionProfile, PRODUCTION_PROFILE, SearchProfile
from core.constants import EARTH_RADIUS, SECONDS_PER_DAY
from core.data_structures import (
    OptimizationResult,
    Position3,
    SimplexPoint,
    TransferPlan,
    elements_from_result,
)
from core.frames import wrap_degrees
from dynamics.ephemeris import EphemerisProvider
from dynamics.kepler import time_to_true_anomaly
from guidance.approach import closest_approach_to_position
from guidance.simplex import clamp_parameters, initial_simplex, minimize

logger = logging.getLogger(__name__)


# =============================================================================
# TRANSFER OPTIMIZER CLASS
# =============================================================================

class TransferOptimizer:
    """
    RAAN/apogee optimizer for the trans-lunar transfer ellipse.

    The optimizer holds configuration only; every call re-queries the
    ephemeris and builds fresh results, so one instance can serve
    concurrent callers.

    Typical usage:
        optimizer = TransferOptimizer(MemoizedEphemeris(AstropyMoonEphemeris()))
        result = optimizer.optimize_transfer_multi_start(loi, omega=178.0,
                                                         inclination=21.5)
        plan = optimizer.plan_transfer(loi, omega=178.0, inclination=21.5)

    Attributes:
        ephemeris: Target-body ephemeris provider.
        profile:   Resolution / convergence settings.
        mission:   Fixed mission geometry (perigee, default angles, bounds).
    """

    def __init__(
        self,
        ephemeris: EphemerisProvider,
        profile: SearchProfile = PRODUCTION_PROFILE,
        mission: Optional[MissionProfile] = None,
    ) -> None:
        self.ephemeris = ephemeris
        self.profile = profile
        self.mission = mission or MissionProfile()

    # -------------------------------------------------------------------------
    # Objective
    # -------------------------------------------------------------------------

    def project(self, raan: float, apogee_alt: float) -> Tuple[float, float]:
        """Map a trial point into the feasible (RAAN, apogee) box."""
        return clamp_parameters(raan, apogee_alt,
                                self.mission.apogee_alt_min,
                                self.mission.apogee_alt_max)

    def _objective(self, target: Position3, omega: float, inclination: float):
        perigee_alt = self.mission.perigee_alt
        profile = self.profile

        def distance(raan: float, apogee_alt: float) -> float:
            return closest_approach_to_position(
                raan, apogee_alt, perigee_alt, target, omega, inclination, profile
            ).distance_km

        return distance

    def physical_seed(self, target: Position3) -> Tuple[float, float]:
        """
        Initial (RAAN, apogee) guess from the target's geometry:
        its right ascension and its range above the Earth's surface.
        """
        return target.right_ascension, target.norm() - EARTH_RADIUS

    def _run_simplex(self, target: Position3, omega: float, inclination: float,
                     raan: float, apogee_alt: float) -> SimplexPoint:
        objective = self._objective(target, omega, inclination)
        seed = initial_simplex(
            objective, raan, apogee_alt,
            raan_offset=self.profile.simplex_raan_offset,
            apogee_offset=self.profile.simplex_apogee_offset,
            project=self.project,
        )
        return minimize(
            objective, seed,
            max_iterations=self.profile.max_iterations,
            tolerance=self.profile.tolerance_km,
            project=self.project,
        )

    def _result(self, best: SimplexPoint, target: Position3, omega: float,
                inclination: float) -> OptimizationResult:
        raan = wrap_degrees(best.raan)
        approach = closest_approach_to_position(
            raan, best.apogee_alt, self.mission.perigee_alt, target,
            omega, inclination, self.profile,
        )
        return OptimizationResult(
            raan=raan,
            apogee_alt=best.apogee_alt,
            distance_km=best.value,
            true_anomaly_deg=approach.true_anomaly_deg,
        )

    # -------------------------------------------------------------------------
    # Single start
    # -------------------------------------------------------------------------

    def optimize_transfer(
        self,
        target_epoch: datetime,
        omega: float,
        inclination: float,
        initial_raan: Optional[float] = None,
        initial_apogee_alt: Optional[float] = None,
    ) -> OptimizationResult:
        """
        One Nelder-Mead run from a single seed.

        Args:
            target_epoch:       LOI epoch (aware datetime).
            omega:              Argument of perigee (deg).
            inclination:        Inclination (deg).
            initial_raan:       Seed RAAN (deg); defaults to the Moon's RA.
            initial_apogee_alt: Seed apogee (km); defaults to the Moon's
                                range minus the Earth radius.

        Returns:
            OptimizationResult for the local minimum reached.

        Raises:
            EphemerisError: The Moon's position could not be resolved.
        """
        target = self.ephemeris.position_at(target_epoch)
        raan_guess, apogee_guess = self.physical_seed(target)
        raan0 = raan_guess if initial_raan is None else initial_raan
        apogee0 = apogee_guess if initial_apogee_alt is None else initial_apogee_alt

        best = self._run_simplex(target, omega, inclination, raan0, apogee0)
        return self._result(best, target, omega, inclination)

    # -------------------------------------------------------------------------
    # Multi start
    # -------------------------------------------------------------------------

    def seed_grid(self, raan_guess: float,
                  apogee_guess: float) -> Tuple[List[float], List[float]]:
        """
        RAAN and apogee seeds around the physical guess.

        Returns:
            (raan_seeds, apogee_seeds): RAANs wrapped into [0, 360); apogees
            evenly spaced across guess * (1 +/- apogee_seed_span).
        """
        p = self.profile
        offsets = np.arange(-p.raan_window_deg,
                            p.raan_window_deg + 0.5 * p.raan_step_deg,
                            p.raan_step_deg)
        raans = [wrap_degrees(raan_guess + d) for d in offsets]

        if p.apogee_seed_count == 1:
            factors = np.array([1.0])
        else:
            factors = np.linspace(1.0 - p.apogee_seed_span,
                                  1.0 + p.apogee_seed_span,
                                  p.apogee_seed_count)
        apogees = [float(apogee_guess * f) for f in factors]
        return raans, apogees

    def optimize_transfer_multi_start(
        self,
        target_epoch: datetime,
        omega: float,
        inclination: float,
    ) -> OptimizationResult:
        """
        Global search: one simplex run per (RAAN, apogee) seed pair, keeping
        the lowest distance.  Ties keep the earlier seed.

        Raises:
            EphemerisError: The Moon's position could not be resolved.
        """
        target = self.ephemeris.position_at(target_epoch)
        raan_guess, apogee_guess = self.physical_seed(target)
        raans, apogees = self.seed_grid(raan_guess, apogee_guess)

        logger.info(
            "Multi-start search at %s: %d seeds around RAAN %.2f deg, apogee %.0f km (%s)",
            target_epoch.isoformat(), len(raans) * len(apogees),
            raan_guess, apogee_guess, self.profile.name,
        )

        best: Optional[SimplexPoint] = None
        for raan0 in raans:
            for apogee0 in apogees:
                candidate = self._run_simplex(target, omega, inclination, raan0, apogee0)
                if best is None or candidate.value < best.value:
                    best = candidate

        result = self._result(best, target, omega, inclination)
        logger.info(
            "Best transfer: RAAN %.3f deg, apogee %.1f km, miss %.1f km at nu %.2f deg",
            result.raan, result.apogee_alt, result.distance_km, result.true_anomaly_deg,
        )
        return result

    # -------------------------------------------------------------------------
    # TLI planning
    # -------------------------------------------------------------------------

    def plan_transfer(
        self,
        loi_epoch: datetime,
        omega: Optional[float] = None,
        inclination: Optional[float] = None,
    ) -> TransferPlan:
        """
        Optimize the transfer for *loi_epoch* and back out the TLI epoch.

        Angles default to the mission profile's values.
        """
        omega = self.mission.omega if omega is None else omega
        inclination = self.mission.inclination if inclination is None else inclination

        result = self.optimize_transfer_multi_start(loi_epoch, omega, inclination)
        tof = time_to_true_anomaly(result.true_anomaly_deg,
                                   self.mission.perigee_alt, result.apogee_alt)
        tli_epoch = loi_epoch - timedelta(seconds=tof)
        logger.info("TLI %s -> LOI %s (%.2f days)",
                    tli_epoch.isoformat(), loi_epoch.isoformat(), tof / SECONDS_PER_DAY)

        return TransferPlan(
            loi_epoch=loi_epoch,
            tli_epoch=tli_epoch,
            time_of_flight=tof,
            result=result,
            elements=elements_from_result(result, omega, inclination,
                                          self.mission.perigee_alt),
        )
