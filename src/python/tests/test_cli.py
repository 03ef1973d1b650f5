"""
===============================================================================
LOI PLANNER - Command Line Test Suite
===============================================================================
End-to-end runs of main.py's commands against a temporary configuration
that selects the analytic Moon and the fast search profile.
===============================================================================
"""

import sys
import os

sys.path.insert(0, os.path.join(os.path.dirname(__file__), '..'))

import pandas as pd
import pytest
import yaml

import main
from core.data_structures import OptimizationResult
from guidance.trajectory_opt import TransferOptimizer


@pytest.fixture
def config_file(tmp_path):
    raw = {
        'search': {'profile': 'fast'},
        'ephemeris': {'provider': 'analytic', 'memoize': True},
        'windows': [{'name': 'JAN', 'start': '2023-01-02', 'end': '2023-01-20'}],
    }
    path = tmp_path / 'planner.yaml'
    path.write_text(yaml.safe_dump(raw))
    return str(path)


class TestCommands:
    """epochs / optimize / report."""

    def test_epochs(self, config_file, capsys):
        status = main.main(['--config', config_file, 'epochs',
                            '--start', '2023-01-02', '--end', '2023-02-01'])
        assert status == 0
        out = capsys.readouterr().out
        assert 'descending' in out
        assert 'ascending' in out

    def test_epochs_empty_window(self, config_file, capsys):
        status = main.main(['--config', config_file, 'epochs',
                            '--start', '2023-01-03', '--end', '2023-01-05'])
        assert status == 0
        assert 'No equatorial crossings' in capsys.readouterr().out

    def test_reversed_window_exits_with_error(self, config_file):
        status = main.main(['--config', config_file, 'epochs',
                            '--start', '2023-02-01', '--end', '2023-01-02'])
        assert status == 1

    def test_optimize_single(self, config_file, capsys):
        status = main.main(['--config', config_file, 'optimize',
                            '--loi', '2023-01-01T00:00:00Z', '--single'])
        assert status == 0
        assert 'Closest approach' in capsys.readouterr().out

    @pytest.fixture
    def seeds(self, monkeypatch):
        """Records the keyword seeds handed to a single optimization run."""
        calls = []

        def fake_optimize(self, target_epoch, omega, inclination, **kwargs):
            calls.append(kwargs)
            return OptimizationResult(raan=10.0, apogee_alt=kwargs['initial_apogee_alt'],
                                      distance_km=0.0, true_anomaly_deg=180.0)

        monkeypatch.setattr(TransferOptimizer, 'optimize_transfer', fake_optimize)
        return calls

    def test_single_seeds_apogee_from_mission_config(self, tmp_path, seeds):
        path = tmp_path / 'seeded.yaml'
        path.write_text(yaml.safe_dump({
            'mission': {'initial_apogee_alt': 350000.0},
            'search': {'profile': 'fast'},
            'ephemeris': {'provider': 'analytic'},
        }))
        status = main.main(['--config', str(path), 'optimize',
                            '--loi', '2023-01-01T00:00:00Z', '--single'])
        assert status == 0
        assert seeds == [{'initial_raan': None, 'initial_apogee_alt': 350000.0}]

    def test_single_default_apogee_seed(self, config_file, seeds):
        main.main(['--config', config_file, 'optimize',
                   '--loi', '2023-01-01T00:00:00Z', '--single'])
        assert seeds[0]['initial_apogee_alt'] == 378029.0

    def test_single_apogee_option_overrides_config(self, config_file, seeds):
        main.main(['--config', config_file, 'optimize', '--loi', '2023-01-01T00:00:00Z',
                   '--single', '--raan', '12.5', '--apogee', '420000'])
        assert seeds == [{'initial_raan': 12.5, 'initial_apogee_alt': 420000.0}]

    def test_optimize_plans_tli(self, config_file, capsys):
        status = main.main(['--quick', '--config', config_file, 'optimize',
                            '--loi', '2023-01-01T00:00:00Z'])
        assert status == 0
        out = capsys.readouterr().out
        assert 'TLI epoch' in out
        assert '2022-12-' in out

    def test_report_csv(self, config_file, tmp_path):
        output = tmp_path / 'out' / 'report.csv'
        status = main.main(['--config', config_file, 'report', '--output', str(output)])
        assert status == 0

        df = pd.read_csv(output)
        assert list(df.columns) == main.REPORT_COLUMNS
        assert len(df) == 1
        row = df.iloc[0]
        assert row['mission'] == 'JAN'
        assert row['LOI_ISO'].startswith('2023-01-14')
        assert row['TLI_ISO'] < row['LOI_ISO']
        assert 0.0 <= row['RAAN_deg'] < 360.0
        assert row['Closest_km'] >= 0.0

    def test_missing_config_file(self, tmp_path):
        with pytest.raises(FileNotFoundError):
            main.main(['--config', str(tmp_path / 'absent.yaml'), 'epochs',
                       '--start', '2023-01-02', '--end', '2023-01-05'])
