"""
===============================================================================
LOI PLANNER - Dynamics Module
===============================================================================
Two-body geometry of the transfer ellipse and the target-body ephemeris.

Submodules:
    kepler            -- Time <-> true anomaly, period, Kepler's equation
    orbital_mechanics -- True anomaly -> ECI position, RA helpers,
                         spacecraft placement in time
    ephemeris         -- EphemerisProvider interface, astropy and analytic
                         Moon providers, caller-side memoization
===============================================================================
"""
