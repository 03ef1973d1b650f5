"""
===============================================================================
LOI PLANNER - Epoch Finder Test Suite
===============================================================================
Tests for equatorial-crossing detection and LOI option selection against
the analytic Moon, whose nodes fall at exact multiples of half its period
after its epoch (ascending node at the epoch itself).
===============================================================================
"""

import sys
import os
from datetime import datetime, timedelta, timezone

sys.path.insert(0, os.path.join(os.path.dirname(__file__), '..'))

import numpy as np
import pytest

from core.constants import MOON_ORBITAL_PERIOD
from dynamics.ephemeris import AnalyticMoonEphemeris, EphemerisError, EphemerisProvider
from guidance.mission_planner import find_optimal_epochs, find_plane_crossings, select_loi_options


EPOCH = datetime(2023, 1, 1, tzinfo=timezone.utc)
HALF_PERIOD = timedelta(seconds=MOON_ORBITAL_PERIOD / 2.0)


class NorthernEphemeris(EphemerisProvider):
    """Target that never leaves the northern hemisphere."""

    def _query(self, instant):
        return np.array([300000.0, 100000.0, 50000.0]), np.zeros(3)


class BrokenEphemeris(EphemerisProvider):
    def _query(self, instant):
        raise RuntimeError('kernel read error')


@pytest.fixture
def analytic_moon():
    return AnalyticMoonEphemeris(epoch=EPOCH)


def node(k):
    """k-th node after the analytic Moon's epoch."""
    return EPOCH + k * HALF_PERIOD


# =============================================================================
# Plane crossings
# =============================================================================

class TestPlaneCrossings:
    """find_plane_crossings / find_optimal_epochs."""

    def test_ninety_day_window(self, analytic_moon):
        start = EPOCH + timedelta(days=1)
        crossings = find_plane_crossings(start, start + timedelta(days=90), analytic_moon)
        assert len(crossings) == 6
        for k, crossing in enumerate(crossings, start=1):
            assert abs((crossing.instant - node(k)).total_seconds()) <= 2.0

    def test_directions_alternate(self, analytic_moon):
        start = EPOCH + timedelta(days=1)
        crossings = find_plane_crossings(start, start + timedelta(days=90), analytic_moon)
        assert [c.ascending for c in crossings] == [False, True, False, True, False, True]

    def test_chronological_order(self, analytic_moon):
        crossings = find_plane_crossings(EPOCH + timedelta(days=1),
                                         EPOCH + timedelta(days=60), analytic_moon)
        instants = [c.instant for c in crossings]
        assert instants == sorted(instants)

    def test_crossing_in_final_partial_step(self, analytic_moon):
        """Window end is not a whole number of steps from the start."""
        start = EPOCH + timedelta(days=1)
        end = node(1) + timedelta(hours=6)
        crossings = find_plane_crossings(start, end, analytic_moon)
        assert len(crossings) == 1
        assert not crossings[0].ascending

    def test_finer_step_finds_same_crossings(self, analytic_moon):
        start = EPOCH + timedelta(days=1)
        end = start + timedelta(days=30)
        daily = find_plane_crossings(start, end, analytic_moon)
        hourly = find_plane_crossings(start, end, analytic_moon, step=timedelta(hours=6))
        assert len(daily) == len(hourly) == 2
        for a, b in zip(daily, hourly):
            assert abs((a.instant - b.instant).total_seconds()) <= 2.0

    def test_crossing_on_window_start(self, analytic_moon):
        crossings = find_plane_crossings(EPOCH, EPOCH + timedelta(days=20), analytic_moon)
        assert analytic_moon.declination_at(EPOCH) == 0.0
        assert len(crossings) == 2
        assert crossings[0].instant == EPOCH
        assert crossings[0].ascending
        assert not crossings[1].ascending
        assert abs((crossings[1].instant - node(1)).total_seconds()) <= 2.0

    def test_crossing_on_window_end(self, analytic_moon):
        crossings = find_plane_crossings(EPOCH - timedelta(days=3), EPOCH, analytic_moon)
        assert len(crossings) == 1
        assert crossings[0].ascending
        assert abs((crossings[0].instant - EPOCH).total_seconds()) <= 2.0

    def test_no_crossing_is_empty(self, analytic_moon):
        crossings = find_plane_crossings(EPOCH + timedelta(days=2),
                                         EPOCH + timedelta(days=5), analytic_moon)
        assert crossings == []

    def test_target_never_crossing(self):
        assert find_plane_crossings(EPOCH, EPOCH + timedelta(days=40),
                                    NorthernEphemeris()) == []

    def test_zero_length_window(self, analytic_moon):
        t = EPOCH + timedelta(days=3)
        assert find_plane_crossings(t, t, analytic_moon) == []

    def test_reversed_window_rejected(self, analytic_moon):
        with pytest.raises(ValueError):
            find_plane_crossings(EPOCH + timedelta(days=10), EPOCH, analytic_moon)

    def test_non_positive_step_rejected(self, analytic_moon):
        with pytest.raises(ValueError):
            find_plane_crossings(EPOCH, EPOCH + timedelta(days=10), analytic_moon,
                                 step=timedelta(0))

    def test_naive_window_rejected(self, analytic_moon):
        with pytest.raises(ValueError):
            find_plane_crossings(datetime(2023, 1, 2), datetime(2023, 2, 2), analytic_moon)

    def test_ephemeris_failure_propagates(self):
        with pytest.raises(EphemerisError):
            find_plane_crossings(EPOCH, EPOCH + timedelta(days=5), BrokenEphemeris())

    def test_optimal_epochs_are_sorted_instants(self, analytic_moon):
        start = EPOCH + timedelta(days=1)
        end = start + timedelta(days=45)
        epochs = find_optimal_epochs(start, end, analytic_moon)
        crossings = find_plane_crossings(start, end, analytic_moon)
        assert epochs == sorted(c.instant for c in crossings)
        assert all(start <= t <= end for t in epochs)


# =============================================================================
# LOI options
# =============================================================================

class TestLoiOptions:
    """Most recent crossings before a landing date."""

    def test_two_most_recent_newest_first(self, analytic_moon):
        landing = EPOCH + timedelta(days=30)
        options = select_loi_options(landing, analytic_moon)
        assert len(options) == 2
        assert abs((options[0].epoch - node(2)).total_seconds()) <= 2.0
        assert abs((options[1].epoch - node(1)).total_seconds()) <= 2.0
        assert options[0].label == 'Previous Crossing'
        assert options[1].label == 'Earlier Crossing'
        assert options[0].ascending and not options[1].ascending

    def test_days_before_landing(self, analytic_moon):
        landing = EPOCH + timedelta(days=30)
        options = select_loi_options(landing, analytic_moon)
        for option in options:
            expected = (landing - option.epoch).total_seconds() / 86400.0
            assert option.days_before_landing == pytest.approx(expected)
            assert option.days_before_landing > 0.0

    def test_count_limits_options(self, analytic_moon):
        landing = EPOCH + timedelta(days=30)
        options = select_loi_options(landing, analytic_moon, count=5)
        # Nodes at about -27.3, -13.7, 0, 13.7 and 27.3 days
        assert len(options) == 5
        epochs = [o.epoch for o in options]
        assert epochs == sorted(epochs, reverse=True)

    def test_short_lookback_without_crossings(self, analytic_moon):
        landing = node(1) + timedelta(days=2)
        assert select_loi_options(landing, analytic_moon, lookback_days=1.0) == []
