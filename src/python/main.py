#!/usr/bin/env python3
"""
===============================================================================
LOI PLANNER - MAIN ENTRY POINT
===============================================================================
Earth -> Moon transfer planning around lunar-orbit-insertion epochs.

Finds the instants at which the Moon crosses the equatorial plane, fits
a trans-lunar ellipse (RAAN, apogee altitude) through the Moon's position
at each of them, and backs out the trans-lunar-injection epoch.

USAGE:
    python main.py epochs --start 2023-07-01 --end 2023-09-30
    python main.py optimize --loi 2023-08-05T11:25:58.258Z
    python main.py optimize --loi 2023-08-05T11:25:58.258Z --single
    python main.py report --output output/closest_approach.csv
    python main.py --quick report      # fast search profile

OUTPUTS:
    stdout                       - Crossings, transfer solutions
    output/closest_approach.csv  - Per-window report (report command)

DEPENDENCIES:
    numpy, scipy, astropy, pandas, pyyaml
    Install: pip install numpy scipy astropy pandas pyyaml

===============================================================================
"""

import sys
import argparse
import time
import logging
from pathlib import Path
from typing import List, Optional

import pandas as pd

# ---------------------------------------------------------------------------
# Path setup: ensure all project modules are importable
# ---------------------------------------------------------------------------
PROJECT_ROOT = Path(__file__).parent
sys.path.insert(0, str(PROJECT_ROOT))

# ---------------------------------------------------------------------------
# Project imports
# ---------------------------------------------------------------------------
from core.config import FAST_PROFILE, PlannerConfig, load_config, parse_instant
from core.constants import SECONDS_PER_DAY
from dynamics.ephemeris import EphemerisError, build_ephemeris
from guidance.mission_planner import find_plane_crossings
from guidance.trajectory_opt import TransferOptimizer

logger = logging.getLogger('LOI_MAIN')

REPORT_COLUMNS = ['mission', 'LOI_ISO', 'TLI_ISO', 'RAAN_deg', 'Apogee_km',
                  'Closest_km', 'TrueAnom_deg']


def setup_logging(log_file: Optional[str] = None, verbose: bool = False) -> None:
    """Console logging, plus a log file when requested."""
    handlers: List[logging.Handler] = [logging.StreamHandler(sys.stdout)]
    if log_file:
        Path(log_file).parent.mkdir(parents=True, exist_ok=True)
        handlers.append(logging.FileHandler(log_file, mode='w'))
    logging.basicConfig(
        level=logging.DEBUG if verbose else logging.INFO,
        format='%(asctime)s [%(levelname)s] %(name)s: %(message)s',
        handlers=handlers,
    )


def _iso(instant) -> str:
    return instant.isoformat(timespec='milliseconds').replace('+00:00', 'Z')


def build_optimizer(config: PlannerConfig) -> TransferOptimizer:
    ephemeris = build_ephemeris(config.ephemeris.provider, config.ephemeris.memoize)
    return TransferOptimizer(ephemeris, profile=config.search, mission=config.mission)


# =============================================================================
# COMMANDS
# =============================================================================

def run_epochs(config: PlannerConfig, args) -> int:
    """List equatorial crossings of the Moon in a date window."""
    ephemeris = build_ephemeris(config.ephemeris.provider, config.ephemeris.memoize)
    start = parse_instant(args.start)
    end = parse_instant(args.end, end_of_day=True)

    crossings = find_plane_crossings(start, end, ephemeris)
    if not crossings:
        print(f"  No equatorial crossings between {start.date()} and {end.date()}")
        return 0

    print(f"\n  {'LOI candidate (UTC)':<28s} {'Direction':<12s}")
    print("  " + "-" * 40)
    for c in crossings:
        print(f"  {_iso(c.instant):<28s} {'ascending' if c.ascending else 'descending':<12s}")
    return 0


def run_optimize(config: PlannerConfig, args) -> int:
    """Optimize the transfer for one LOI epoch."""
    optimizer = build_optimizer(config)
    loi = parse_instant(args.loi)
    mission = config.mission

    if args.single:
        apogee0 = mission.initial_apogee_alt if args.apogee is None else args.apogee
        result = optimizer.optimize_transfer(
            loi, mission.omega, mission.inclination,
            initial_raan=args.raan, initial_apogee_alt=apogee0,
        )
        print(f"\n  RAAN:            {result.raan:10.3f} deg")
        print(f"  Apogee altitude: {result.apogee_alt:10.1f} km")
        print(f"  Closest approach:{result.distance_km:10.1f} km")
        print(f"  True anomaly:    {result.true_anomaly_deg:10.2f} deg")
        return 0

    plan = optimizer.plan_transfer(loi)
    result = plan.result
    print(f"\n  LOI epoch:       {_iso(plan.loi_epoch)}")
    print(f"  TLI epoch:       {_iso(plan.tli_epoch)}")
    print(f"  Time of flight:  {plan.time_of_flight / SECONDS_PER_DAY:10.3f} days")
    print(f"  RAAN:            {result.raan:10.3f} deg")
    print(f"  Apogee altitude: {result.apogee_alt:10.1f} km")
    print(f"  Closest approach:{result.distance_km:10.1f} km")
    print(f"  True anomaly:    {result.true_anomaly_deg:10.2f} deg")
    return 0


def build_report(config: PlannerConfig, optimizer: TransferOptimizer) -> pd.DataFrame:
    """
    Closest-approach report: every crossing in every configured window,
    with its optimized transfer and TLI epoch.
    """
    rows = []
    for window in config.windows:
        logger.info("Window %s: %s to %s", window.name,
                    window.start.date(), window.end.date())
        crossings = find_plane_crossings(window.start, window.end, optimizer.ephemeris)
        for crossing in crossings:
            plan = optimizer.plan_transfer(crossing.instant)
            rows.append({
                'mission': window.name,
                'LOI_ISO': _iso(plan.loi_epoch),
                'TLI_ISO': _iso(plan.tli_epoch),
                'RAAN_deg': round(plan.result.raan, 4),
                'Apogee_km': round(plan.result.apogee_alt, 3),
                'Closest_km': round(plan.result.distance_km, 3),
                'TrueAnom_deg': round(plan.result.true_anomaly_deg, 4),
            })
    return pd.DataFrame(rows, columns=REPORT_COLUMNS)


def run_report(config: PlannerConfig, args) -> int:
    """Write the closest-approach report for all configured windows."""
    if not config.windows:
        logger.warning("No report windows configured")
        return 0

    optimizer = build_optimizer(config)
    df = build_report(config, optimizer)

    output = Path(args.output)
    output.parent.mkdir(parents=True, exist_ok=True)
    df.to_csv(output, index=False)
    logger.info("Report with %d rows saved to %s", len(df), output)
    return 0


COMMANDS = {
    'epochs': run_epochs,
    'optimize': run_optimize,
    'report': run_report,
}


def main(argv: Optional[List[str]] = None) -> int:
    """
    Main entry point. Parses command line arguments and runs the
    requested command.
    """
    parser = argparse.ArgumentParser(
        description='LOI Planner: trans-lunar transfer design around equatorial crossings',
        formatter_class=argparse.RawDescriptionHelpFormatter,
        epilog="""
Examples:
  python main.py epochs --start 2023-07-01 --end 2023-09-30
  python main.py optimize --loi 2023-08-05T11:25:58.258Z
  python main.py --quick report --output output/closest_approach.csv
        """
    )

    parser.add_argument('--config', type=str, default=None,
                        help='Path to planner config YAML')
    parser.add_argument('--quick', action='store_true',
                        help='Use the fast search profile')
    parser.add_argument('--log-file', type=str, default=None,
                        help='Also write the log to this file')
    parser.add_argument('--verbose', action='store_true',
                        help='Debug-level logging')

    sub = parser.add_subparsers(dest='command', required=True)

    p_epochs = sub.add_parser('epochs', help='List equatorial crossings of the Moon')
    p_epochs.add_argument('--start', required=True, help='Window start (ISO date/time, UTC)')
    p_epochs.add_argument('--end', required=True, help='Window end (ISO date/time, UTC)')

    p_opt = sub.add_parser('optimize', help='Optimize the transfer for one LOI epoch')
    p_opt.add_argument('--loi', required=True, help='LOI epoch (ISO time, UTC)')
    p_opt.add_argument('--single', action='store_true',
                       help='Single simplex run instead of the multi-start search')
    p_opt.add_argument('--raan', type=float, default=None,
                       help='Seed RAAN for --single (deg)')
    p_opt.add_argument('--apogee', type=float, default=None,
                       help='Seed apogee altitude for --single (km); '
                            'defaults to mission.initial_apogee_alt')

    p_rep = sub.add_parser('report', help='Closest-approach report over configured windows')
    p_rep.add_argument('--output', default='output/closest_approach.csv',
                       help='CSV output path')

    args = parser.parse_args(argv)
    setup_logging(args.log_file, args.verbose)

    start_time = time.time()
    try:
        config = load_config(args.config, FAST_PROFILE.name if args.quick else None)
        status = COMMANDS[args.command](config, args)
    except (EphemerisError, ValueError) as exc:
        logger.error("%s failed: %s", args.command, exc)
        return 1

    logger.info("%s finished in %.1f s", args.command, time.time() - start_time)
    return status


if __name__ == '__main__':
    sys.exit(main())
