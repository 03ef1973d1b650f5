"""
===============================================================================
LOI PLANNER - Guidance Module
===============================================================================
Transfer design: closest-approach objective, Nelder-Mead optimizer,
multi-start RAAN/apogee search with TLI planning, and the LOI epoch finder.

Submodules:
    approach        -- Closest approach of an ellipse to the target body
    simplex         -- 2-D Nelder-Mead minimizer with feasibility projection
    trajectory_opt  -- TransferOptimizer (single/multi-start, plan_transfer)
    mission_planner -- Equatorial crossings and LOI option selection
===============================================================================
"""
