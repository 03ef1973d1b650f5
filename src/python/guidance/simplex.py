"""
===============================================================================
LOI PLANNER - Nelder-Mead Simplex Optimizer
===============================================================================
Derivative-free minimization over the 2-D (RAAN, apogee altitude) plane.

The closest-approach objective is piecewise smooth (the minimizing true
anomaly jumps between lobes of the orbit), so gradients are unreliable and
a simplex method is the natural fit.  A 2-D simplex is a triangle; each
iteration replaces its worst vertex by:

    reflection   x_r = c + alpha*(c - x_w)            alpha = 1.0
    expansion    x_e = c + gamma*(x_r - c)            gamma = 2.0
    contraction  x_c = c + rho*(x_w - c)              rho   = 0.5
    shrinkage    x_i = x_b + sigma*(x_i - x_b)        sigma = 0.5

where c is the centroid of the two best vertices.  The run stops when the
worst and best objective values differ by less than the tolerance, or when
the iteration cap is reached; in the latter case the best vertex found so
far is returned.

A projection hook maps every trial point into the feasible box before the
objective sees it.  Vertices keep the clipped apogee and a RAAN unwrapped
across the 0/360 seam, and the returned vertex is projected again, so the
reported point is exactly the one that was evaluated.
===============================================================================
"""

import logging
from typing import Callable, List, Optional, Sequence, Tuple

import numpy as np

from core.constants import APOGEE_ALT_MAX, APOGEE_ALT_MIN
from core.data_structures import SimplexPoint
from core.frames import wrap_degrees

logger = logging.getLogger(__name__)

# Nelder-Mead coefficients
NM_ALPHA = 1.0   # Reflection
NM_GAMMA = 2.0   # Expansion
NM_RHO = 0.5     # Contraction
NM_SIGMA = 0.5   # Shrinkage

Objective = Callable[[float, float], float]
Projection = Callable[[float, float], Tuple[float, float]]


def clamp_parameters(
    raan: float,
    apogee_alt: float,
    apogee_min: float = APOGEE_ALT_MIN,
    apogee_max: float = APOGEE_ALT_MAX,
) -> Tuple[float, float]:
    """
    Feasible (RAAN, apogee) pair: RAAN wrapped into [0, 360), apogee
    clipped to [apogee_min, apogee_max].
    """
    return wrap_degrees(raan), float(np.clip(apogee_alt, apogee_min, apogee_max))


def make_vertex(objective: Objective, raan: float, apogee_alt: float,
                project: Optional[Projection] = None) -> SimplexPoint:
    """Evaluate the objective at a (projected) point."""
    if project is not None:
        raan, apogee_alt = project(raan, apogee_alt)
    return SimplexPoint(raan=raan, apogee_alt=apogee_alt,
                        value=float(objective(raan, apogee_alt)))


def initial_simplex(
    objective: Objective,
    raan: float,
    apogee_alt: float,
    raan_offset: float = 10.0,
    apogee_offset: float = 5000.0,
    project: Optional[Projection] = None,
) -> List[SimplexPoint]:
    """Right-angled seed triangle: (r, a), (r + dr, a), (r, a + da)."""
    return [
        make_vertex(objective, raan, apogee_alt, project),
        make_vertex(objective, raan + raan_offset, apogee_alt, project),
        make_vertex(objective, raan, apogee_alt + apogee_offset, project),
    ]


def _unwrap_raan(point: SimplexPoint, reference: float) -> SimplexPoint:
    """
    Shift a vertex's RAAN by whole turns so it sits within 180 deg of
    *reference*.  Keeps the simplex geometry continuous across 0/360.
    """
    delta = (point.raan - reference + 180.0) % 360.0 - 180.0
    return SimplexPoint(raan=reference + delta, apogee_alt=point.apogee_alt,
                        value=point.value)


def minimize(
    objective: Objective,
    seed: Sequence[SimplexPoint],
    max_iterations: int = 150,
    tolerance: float = 1.0,
    project: Optional[Projection] = None,
) -> SimplexPoint:
    """
    Nelder-Mead minimization of a function of (RAAN, apogee altitude).

    Args:
        objective:      f(raan, apogee_alt) -> value.
        seed:           Three evaluated vertices.
        max_iterations: Iteration cap.
        tolerance:      Stop when worst.value - best.value < tolerance.
        project:        Optional map into the feasible box, applied before
                        every evaluation (see clamp_parameters).

    Returns:
        Best vertex.  On hitting the iteration cap this is the best point
        found so far, not an error.

    Raises:
        ValueError: If *seed* does not hold exactly three vertices.
    """
    if len(seed) != 3:
        raise ValueError(f"A 2-D simplex needs 3 vertices, got {len(seed)}")

    simplex = list(seed)
    if project is not None:
        simplex = [_unwrap_raan(p, seed[0].raan) for p in simplex]

    def evaluate(raan: float, apogee_alt: float) -> SimplexPoint:
        point = make_vertex(objective, raan, apogee_alt, project)
        if project is None:
            return point
        return _unwrap_raan(point, raan)

    for iteration in range(max_iterations):
        simplex.sort(key=lambda p: p.value)
        best, second, worst = simplex

        if worst.value - best.value < tolerance:
            logger.debug("Simplex converged in %d iterations (f=%.3f)",
                         iteration, best.value)
            return _finish(best, project)

        c_raan = (best.raan + second.raan) / 2.0
        c_apo = (best.apogee_alt + second.apogee_alt) / 2.0

        reflected = evaluate(
            c_raan + NM_ALPHA * (c_raan - worst.raan),
            c_apo + NM_ALPHA * (c_apo - worst.apogee_alt),
        )

        if best.value <= reflected.value < second.value:
            simplex[2] = reflected
            continue

        if reflected.value < best.value:
            expanded = evaluate(
                c_raan + NM_GAMMA * (reflected.raan - c_raan),
                c_apo + NM_GAMMA * (reflected.apogee_alt - c_apo),
            )
            simplex[2] = expanded if expanded.value < reflected.value else reflected
            continue

        contracted = evaluate(
            c_raan + NM_RHO * (worst.raan - c_raan),
            c_apo + NM_RHO * (worst.apogee_alt - c_apo),
        )
        if contracted.value < worst.value:
            simplex[2] = contracted
            continue

        # Shrink toward the best vertex
        for i in (1, 2):
            simplex[i] = evaluate(
                best.raan + NM_SIGMA * (simplex[i].raan - best.raan),
                best.apogee_alt + NM_SIGMA * (simplex[i].apogee_alt - best.apogee_alt),
            )

    simplex.sort(key=lambda p: p.value)
    logger.debug("Simplex stopped at iteration cap %d (spread %.3f, best %.3f)",
                 max_iterations, simplex[2].value - simplex[0].value, simplex[0].value)
    return _finish(simplex[0], project)


def _finish(point: SimplexPoint, project: Optional[Projection]) -> SimplexPoint:
    if project is None:
        return point
    raan, apogee_alt = project(point.raan, point.apogee_alt)
    return SimplexPoint(raan=raan, apogee_alt=apogee_alt, value=point.value)
