"""
===============================================================================
LOI PLANNER - Core Module
===============================================================================
Shared foundations: physical constants, reference-frame rotations, the
planner's value types, and YAML-backed run configuration.

Submodules:
    constants       -- Physical and mission constants (km, s, deg)
    frames          -- Elementary rotations, perifocal -> ECI, RA/Dec
    data_structures -- Orbital elements, positions, optimizer results
    config          -- Search profiles and PlannerConfig loading
===============================================================================
"""
