"""
===============================================================================
LOI PLANNER - Kepler Solver Test Suite
===============================================================================
Tests for the time <-> true anomaly conversions of the transfer ellipse:
round trips over a full revolution, period consistency, the fixed-step
Newton solver, and argument validation.
===============================================================================
"""

import sys
import os

sys.path.insert(0, os.path.join(os.path.dirname(__file__), '..'))

import numpy as np
import pytest
from numpy.testing import assert_allclose

from core.constants import (
    APOGEE_ALT_MAX,
    EARTH_MU,
    EARTH_RADIUS,
    PERIGEE_ALTITUDE,
    REFERENCE_APOGEE_ALT,
)
from dynamics.kepler import (
    eccentricity,
    orbital_period,
    semi_major_axis,
    solve_kepler,
    time_to_true_anomaly,
    true_anomaly_from_time,
)


PERIGEE = PERIGEE_ALTITUDE
APOGEE = REFERENCE_APOGEE_ALT


# =============================================================================
# Ellipse geometry
# =============================================================================

class TestEllipseGeometry:
    """Semi-major axis, eccentricity and period of the transfer ellipse."""

    def test_semi_major_axis(self):
        expected = (EARTH_RADIUS + PERIGEE + EARTH_RADIUS + APOGEE) / 2.0
        assert_allclose(semi_major_axis(PERIGEE, APOGEE), expected, rtol=1e-14)

    def test_circular_orbit_has_zero_eccentricity(self):
        assert eccentricity(500.0, 500.0) == 0.0

    def test_transfer_eccentricity_is_high(self):
        """A 180 km x 378029 km ellipse is very nearly parabolic near perigee."""
        e = eccentricity(PERIGEE, APOGEE)
        assert 0.96 < e < 0.97

    def test_period_matches_independent_formula(self):
        """
        Period for a = (6371+180+6371+378029)/2 against T = 2*pi*sqrt(a^3/mu),
        to 6 significant figures.
        """
        a = (6371.0 + 180.0 + 6371.0 + 378029.0) / 2.0
        expected = 2.0 * np.pi * np.sqrt(a ** 3 / 398600.4418)
        assert_allclose(orbital_period(180.0, 378029.0), expected, rtol=1e-6)

    def test_period_is_roughly_ten_days(self):
        days = orbital_period(PERIGEE, APOGEE) / 86400.0
        assert 9.5 < days < 11.0

    def test_period_uses_earth_mu(self):
        a = semi_major_axis(PERIGEE, 20000.0)
        assert_allclose(orbital_period(PERIGEE, 20000.0),
                        2.0 * np.pi * np.sqrt(a ** 3 / EARTH_MU), rtol=1e-14)

    @pytest.mark.parametrize("perigee, apogee", [(-1.0, 1000.0), (180.0, -5.0)])
    def test_negative_altitude_rejected(self, perigee, apogee):
        with pytest.raises(ValueError):
            orbital_period(perigee, apogee)
        with pytest.raises(ValueError):
            time_to_true_anomaly(90.0, perigee, apogee)


# =============================================================================
# Kepler's equation
# =============================================================================

class TestSolveKepler:
    """Fixed-iteration Newton-Raphson solution of M = E - e*sin(E)."""

    @pytest.mark.parametrize("M", [0.1, 1.0, np.pi / 2, 2.5, 4.0, 6.0])
    def test_residual_small(self, M):
        e = 0.3
        E = solve_kepler(M, e)
        assert abs(E - e * np.sin(E) - M) < 1e-12

    def test_zero_mean_anomaly(self):
        assert abs(solve_kepler(0.0, 0.9)) < 1e-15

    @pytest.mark.parametrize("e", [0.85, 0.9745, 0.9786, 0.995])
    @pytest.mark.parametrize("M", [1e-6, 1e-3, 0.05, 0.137, 0.5, np.pi - 1e-3, np.pi,
                                   np.pi + 0.3, 5.0, 2 * np.pi - 1e-4])
    def test_residual_small_near_parabolic(self, M, e):
        E = solve_kepler(M, e)
        assert abs(E - e * np.sin(E) - M) < 1e-12
        assert 0.0 <= E <= 2 * np.pi

    def test_circular_orbit_identity(self):
        assert_allclose(solve_kepler(1.234, 0.0), 1.234, atol=1e-15)


# =============================================================================
# Time of flight
# =============================================================================

class TestTimeOfFlight:
    """time_to_true_anomaly and true_anomaly_from_time."""

    def test_zero_at_perigee(self):
        assert time_to_true_anomaly(0.0, PERIGEE, APOGEE) == 0.0

    def test_full_revolution_is_one_period(self):
        assert_allclose(time_to_true_anomaly(360.0, PERIGEE, APOGEE),
                        orbital_period(PERIGEE, APOGEE), rtol=1e-12)

    def test_half_revolution_is_half_period(self):
        assert_allclose(time_to_true_anomaly(180.0, PERIGEE, APOGEE),
                        orbital_period(PERIGEE, APOGEE) / 2.0, rtol=1e-9)

    def test_monotonic_in_true_anomaly(self):
        nus = np.arange(0.0, 360.0, 5.0)
        times = [time_to_true_anomaly(nu, PERIGEE, APOGEE) for nu in nus]
        assert np.all(np.diff(times) > 0.0)

    def test_angles_reduced_to_one_revolution(self):
        assert_allclose(time_to_true_anomaly(370.0, PERIGEE, APOGEE),
                        time_to_true_anomaly(10.0, PERIGEE, APOGEE), rtol=1e-12)

    def test_perigee_passage_after_full_period(self):
        nu = true_anomaly_from_time(orbital_period(PERIGEE, APOGEE), PERIGEE, APOGEE)
        assert nu < 1e-6 or nu > 360.0 - 1e-6

    def test_result_in_range(self):
        for t in np.linspace(0.0, 3.0 * orbital_period(PERIGEE, APOGEE), 37):
            nu = true_anomaly_from_time(t, PERIGEE, APOGEE)
            assert 0.0 <= nu < 360.0

    @pytest.mark.parametrize("nu", [1.0, 30.0, 90.0, 150.0, 178.0, 180.0, 182.0,
                                    250.0, 300.0, 359.0])
    def test_round_trip_transfer_ellipse(self, nu):
        t = time_to_true_anomaly(nu, PERIGEE, APOGEE)
        assert_allclose(true_anomaly_from_time(t, PERIGEE, APOGEE), nu, atol=1e-6)

    @pytest.mark.parametrize("apogee", [REFERENCE_APOGEE_ALT, 500000.0, APOGEE_ALT_MAX])
    def test_round_trip_sweep_up_to_apogee_cap(self, apogee):
        """Fine true-anomaly grid, including apogees near the parabolic limit."""
        nus = np.arange(0.0, 360.0, 0.05)
        back = np.array([
            true_anomaly_from_time(time_to_true_anomaly(nu, PERIGEE, apogee), PERIGEE, apogee)
            for nu in nus
        ])
        error = (back - nus + 180.0) % 360.0 - 180.0
        assert np.max(np.abs(error)) < 1e-6

    @pytest.mark.parametrize("nu", [45.0, 135.0, 225.0, 315.0])
    def test_round_trip_moderate_ellipse(self, nu):
        t = time_to_true_anomaly(nu, 400.0, 35786.0)
        assert_allclose(true_anomaly_from_time(t, 400.0, 35786.0), nu, atol=1e-6)
