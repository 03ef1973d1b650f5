"""
===============================================================================
LOI PLANNER - Configuration
===============================================================================
Run-time configuration for the planner, loaded from YAML.

Two search profiles ship with the planner.  They are both legitimate
operating points, trading accuracy for speed:

    production -- 1 deg coarse scan, 0.1 deg refinement, 150 simplex
                  iterations, 1 km tolerance, 11 x 5 multi-start seeds
    fast       -- 2 deg coarse scan, 0.4 deg refinement, 40 simplex
                  iterations, 5 km tolerance, 3 x 3 multi-start seeds

The profile is an explicit parameter handed to the optimizer; nothing in
the numerical code branches on the environment.

Configuration file layout (config/planner_config.yaml)::

    mission:
      perigee_alt: 180.0
      omega: 178.0
      inclination: 21.5
      initial_apogee_alt: 378029.0
    search:
      profile: production
      overrides: {max_iterations: 200}
    ephemeris:
      provider: astropy
      memoize: true
    windows:
      - {name: CY3, start: 2023-03-01, end: 2023-10-31}
===============================================================================
"""

import logging
from dataclasses import dataclass, field, fields, replace
from datetime import date, datetime, time, timezone
from pathlib import Path
from typing import Dict, List, Optional, Union

import yaml

from core.constants import (
    APOGEE_ALT_MAX,
    APOGEE_ALT_MIN,
    PERIGEE_ALTITUDE,
    REFERENCE_APOGEE_ALT,
    REFERENCE_INCLINATION,
    REFERENCE_OMEGA,
)

logger = logging.getLogger(__name__)

PROJECT_ROOT = Path(__file__).resolve().parents[3]
DEFAULT_CONFIG_PATH = PROJECT_ROOT / 'config' / 'planner_config.yaml'


# =============================================================================
# SEARCH PROFILE
# =============================================================================

@dataclass(frozen=True)
class SearchProfile:
    """
    Resolution and convergence settings for one optimization run.

    Attributes:
        name:                 Profile label used in logs and config files.
        coarse_samples:       Points in the full-revolution true-anomaly scan
                              (inclusive of both 0 and 360 deg).
        fine_span_deg:        Half-width of the local refinement window (deg).
        fine_step_deg:        Step of the local refinement sweep (deg).
        max_iterations:       Nelder-Mead iteration cap.
        tolerance_km:         Convergence threshold on worst - best (km).
        raan_window_deg:      Half-width of the multi-start RAAN seed grid.
        raan_step_deg:        Spacing of the multi-start RAAN seed grid.
        apogee_seed_span:     Fractional half-width of the apogee seed band.
        apogee_seed_count:    Number of apogee seeds across that band.
        simplex_raan_offset:  RAAN offset of the second seed vertex (deg).
        simplex_apogee_offset: Apogee offset of the third seed vertex (km).
    """
    name: str
    coarse_samples: int
    fine_span_deg: float
    fine_step_deg: float
    max_iterations: int
    tolerance_km: float
    raan_window_deg: float = 5.0
    raan_step_deg: float = 1.0
    apogee_seed_span: float = 0.10
    apogee_seed_count: int = 5
    simplex_raan_offset: float = 10.0
    simplex_apogee_offset: float = 5000.0

    def __post_init__(self):
        if self.coarse_samples < 2:
            raise ValueError(f"coarse_samples must be >= 2, got {self.coarse_samples}")
        if self.fine_step_deg <= 0.0 or self.raan_step_deg <= 0.0:
            raise ValueError("Search step sizes must be positive")
        if self.apogee_seed_count < 1:
            raise ValueError(f"apogee_seed_count must be >= 1, got {self.apogee_seed_count}")


PRODUCTION_PROFILE = SearchProfile(
    name='production',
    coarse_samples=361,
    fine_span_deg=2.0,
    fine_step_deg=0.1,
    max_iterations=150,
    tolerance_km=1.0,
    raan_step_deg=1.0,
    apogee_seed_span=0.10,
    apogee_seed_count=5,
)

FAST_PROFILE = SearchProfile(
    name='fast',
    coarse_samples=181,
    fine_span_deg=2.0,
    fine_step_deg=0.4,
    max_iterations=40,
    tolerance_km=5.0,
    raan_step_deg=5.0,
    apogee_seed_span=0.03,
    apogee_seed_count=3,
)

PROFILES: Dict[str, SearchProfile] = {
    PRODUCTION_PROFILE.name: PRODUCTION_PROFILE,
    FAST_PROFILE.name: FAST_PROFILE,
}


def get_profile(name: str, overrides: Optional[dict] = None) -> SearchProfile:
    """
    Look up a built-in search profile by name, optionally overriding fields.

    Raises:
        ValueError: If the name or an override key is not recognized.
    """
    key = name.lower()
    if key not in PROFILES:
        raise ValueError(f"Unknown search profile: {name}. Valid: {list(PROFILES.keys())}")
    profile = PROFILES[key]
    if overrides:
        valid = {f.name for f in fields(SearchProfile)} - {'name'}
        unknown = set(overrides) - valid
        if unknown:
            raise ValueError(f"Unknown search profile fields: {sorted(unknown)}")
        profile = replace(profile, **overrides)
    return profile


# =============================================================================
# MISSION / EPHEMERIS / REPORT SETTINGS
# =============================================================================

@dataclass(frozen=True)
class MissionProfile:
    """Fixed geometry of the mission class being planned."""
    perigee_alt: float = PERIGEE_ALTITUDE
    omega: float = REFERENCE_OMEGA
    inclination: float = REFERENCE_INCLINATION
    initial_apogee_alt: float = REFERENCE_APOGEE_ALT
    apogee_alt_min: float = APOGEE_ALT_MIN
    apogee_alt_max: float = APOGEE_ALT_MAX


@dataclass(frozen=True)
class EphemerisSettings:
    provider: str = 'astropy'
    memoize: bool = True


@dataclass(frozen=True)
class ReportWindow:
    """Named calendar span scanned by the closest-approach report."""
    name: str
    start: datetime
    end: datetime


@dataclass(frozen=True)
class PlannerConfig:
    mission: MissionProfile = field(default_factory=MissionProfile)
    search: SearchProfile = PRODUCTION_PROFILE
    ephemeris: EphemerisSettings = field(default_factory=EphemerisSettings)
    windows: List[ReportWindow] = field(default_factory=list)


# =============================================================================
# LOADING
# =============================================================================

def parse_instant(value: Union[str, date, datetime], end_of_day: bool = False) -> datetime:
    """
    Coerce a YAML/CLI date or timestamp into a timezone-aware UTC datetime.

    Bare dates map to midnight, or to 23:59:59 when *end_of_day* is set.
    A trailing 'Z' is accepted for UTC.
    """
    if isinstance(value, datetime):
        instant = value
    elif isinstance(value, date):
        instant = datetime.combine(value, time(23, 59, 59) if end_of_day else time(0, 0))
    else:
        text = str(value).strip()
        if text.endswith('Z'):
            text = text[:-1] + '+00:00'
        instant = datetime.fromisoformat(text)
        if end_of_day and len(text) == 10:
            instant = datetime.combine(instant.date(), time(23, 59, 59))
    if instant.tzinfo is None:
        instant = instant.replace(tzinfo=timezone.utc)
    return instant.astimezone(timezone.utc)


def _build_section(cls, raw: dict, key: str):
    section = raw.get(key) or {}
    unknown = set(section) - {f.name for f in fields(cls)}
    if unknown:
        raise ValueError(f"Unknown keys in '{key}' section: {sorted(unknown)}")
    return cls(**section)


def config_from_dict(raw: Optional[dict], profile_name: Optional[str] = None) -> PlannerConfig:
    """
    Build a PlannerConfig from a parsed YAML mapping.

    Args:
        raw:          Parsed YAML (missing sections fall back to defaults).
        profile_name: Overrides ``search.profile`` when given (CLI --quick).
    """
    raw = raw or {}

    mission = _build_section(MissionProfile, raw, 'mission')

    search_raw = raw.get('search') or {}
    name = profile_name or search_raw.get('profile', PRODUCTION_PROFILE.name)
    search = get_profile(name, search_raw.get('overrides'))

    ephemeris = _build_section(EphemerisSettings, raw, 'ephemeris')

    windows = [
        ReportWindow(
            name=str(w['name']),
            start=parse_instant(w['start']),
            end=parse_instant(w['end'], end_of_day=True),
        )
        for w in (raw.get('windows') or [])
    ]

    return PlannerConfig(mission=mission, search=search, ephemeris=ephemeris, windows=windows)


def load_config(config_path: Optional[str] = None,
                profile_name: Optional[str] = None) -> PlannerConfig:
    """
    Load planner configuration from a YAML file.

    Args:
        config_path:  Path to YAML config. Defaults to config/planner_config.yaml
        profile_name: Search profile override.

    Returns:
        PlannerConfig
    """
    path = Path(config_path) if config_path is not None else DEFAULT_CONFIG_PATH
    logger.info("Loading configuration from: %s", path)
    with open(path, 'r') as f:
        raw = yaml.safe_load(f)
    config = config_from_dict(raw, profile_name)
    logger.info("Search profile: %s, ephemeris: %s",
                config.search.name, config.ephemeris.provider)
    return config
