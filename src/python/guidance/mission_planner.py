"""
===============================================================================
LOI PLANNER - LOI Epoch Finder
===============================================================================
Candidate lunar-orbit-insertion epochs are the instants at which the Moon
crosses the Earth's equatorial plane (declination = 0).  At those instants
the Moon lies on the line of nodes of any geocentric orbit, so an inclined
transfer ellipse can reach it with its apogee without a plane change.

Search strategy:
    1. Sample the Moon's declination at fixed steps (1 day by default)
       across the window; the final step is shortened to end on the
       window boundary.
    2. A sign change between consecutive samples brackets a crossing.
       Both ascending (south -> north) and descending crossings count,
       giving a candidate roughly every 13.7 days.
    3. Each bracket is refined with the ephemeris provider's Brent root
       finder.

An empty result is a normal outcome: callers must check it before handing
epochs to the optimizer.
===============================================================================
"""

import logging
from datetime import datetime, timedelta
from typing import List

from core.constants import SECONDS_PER_DAY
from core.data_structures import CandidateEpoch, LOIOption
from dynamics.ephemeris import EphemerisProvider, ensure_utc

logger = logging.getLogger(__name__)

DEFAULT_STEP = timedelta(days=1)


def find_plane_crossings(
    start: datetime,
    end: datetime,
    ephemeris: EphemerisProvider,
    step: timedelta = DEFAULT_STEP,
) -> List[CandidateEpoch]:
    """
    Equatorial-plane crossings of the target body in [start, end].

    A crossing lying exactly on either bound is reported once.

    Args:
        start:     Window start (aware datetime).
        end:       Window end (aware datetime).
        ephemeris: Target-body ephemeris.
        step:      Declination sampling interval.

    Returns:
        Crossings in chronological order, tagged ascending/descending.

    Raises:
        ValueError:     end precedes start, or step is not positive.
        EphemerisError: The ephemeris failed inside the window.
    """
    start = ensure_utc(start)
    end = ensure_utc(end)
    if end < start:
        raise ValueError(f"Search window ends before it starts: {start} > {end}")
    if step <= timedelta(0):
        raise ValueError(f"Sampling step must be positive, got {step}")

    crossings: List[CandidateEpoch] = []
    t1 = start
    dec1 = ephemeris.declination_at(t1)

    while t1 < end:
        t2 = min(t1 + step, end)
        dec2 = ephemeris.declination_at(t2)

        ascending = dec1 < 0.0 <= dec2
        descending = dec1 > 0.0 >= dec2
        if ascending or descending:
            instant = ephemeris.find_crossing(ephemeris.declination_at, t1, t2)
            crossings.append(CandidateEpoch(instant=instant, ascending=ascending))
        elif t1 == start and dec1 == 0.0 and dec2 != 0.0:
            # Node exactly on the window start; direction from the next sample
            crossings.append(CandidateEpoch(instant=start, ascending=dec2 > 0.0))

        t1, dec1 = t2, dec2

    logger.info("Found %d equatorial crossings between %s and %s",
                len(crossings), start.date(), end.date())
    return crossings


def find_optimal_epochs(
    start: datetime,
    end: datetime,
    ephemeris: EphemerisProvider,
    step: timedelta = DEFAULT_STEP,
) -> List[datetime]:
    """Candidate LOI epochs in [start, end], sorted chronologically."""
    crossings = find_plane_crossings(start, end, ephemeris, step)
    return sorted(c.instant for c in crossings)


def select_loi_options(
    landing: datetime,
    ephemeris: EphemerisProvider,
    lookback_days: float = 60.0,
    count: int = 2,
) -> List[LOIOption]:
    """
    Most recent crossings strictly before a planned landing date.

    Args:
        landing:       Landing (or lunar sunrise) instant.
        ephemeris:     Target-body ephemeris.
        lookback_days: How far back to search.
        count:         Maximum number of options.

    Returns:
        Options ordered newest first; the first is labelled
        'Previous Crossing', the rest 'Earlier Crossing'.
    """
    landing = ensure_utc(landing)
    search_start = landing - timedelta(days=lookback_days)
    crossings = [
        c for c in find_plane_crossings(search_start, landing, ephemeris)
        if c.instant < landing
    ]
    crossings.sort(key=lambda c: c.instant, reverse=True)

    options = []
    for index, crossing in enumerate(crossings[:count]):
        options.append(LOIOption(
            epoch=crossing.instant,
            days_before_landing=(landing - crossing.instant).total_seconds() / SECONDS_PER_DAY,
            label='Previous Crossing' if index == 0 else 'Earlier Crossing',
            ascending=crossing.ascending,
        ))
    return options
