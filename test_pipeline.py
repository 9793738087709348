"""
Test Full Pipeline
==================

Runs the complete workflow (load -> bootstrap -> summaries -> duration ->
export -> figures) on a small synthetic section.
"""

import matplotlib
matplotlib.use('Agg')

import numpy as np
import pandas as pd
import pytest

from subsidence_age_model import run_full_analysis
from subsidence_age_model.exceptions import ConfigurationError
from subsidence_age_model.subsidence_model import mean_age


def _write_section(path):
    heights = np.array([0.0, 400.0, 800.0, 1200.0, 1600.0])
    pd.DataFrame({
        'height': heights,
        'range': 10.0,
        'age': np.round(mean_age(heights, 817.0, 1.4), 1),
        'ageUnc': 4.0,
        'type': ['normal', 'uniform', 'normal', 'uniform', 'normal'],
    }).to_csv(path, index=False)


def test_full_analysis_writes_outputs(tmp_path):
    data_path = tmp_path / 'observations.csv'
    _write_section(data_path)
    out_dir = tmp_path / 'outputs'

    results = run_full_analysis(
        data_path=data_path, n_iterations=20, seed=5, grid_step=100.0,
        interval_heights=(400.0, 1200.0), output_dir=out_dir, verbose=False,
    )

    grid = results['grid_summary']
    assert grid['height'].tolist() == list(np.arange(0.0, 1700.0, 100.0))
    assert np.all(grid['age_min'] <= grid['age_max'])
    assert len(results['observation_summary']) == 5
    assert len(results['posterior']) == 20
    assert results['duration']['median'] > 0

    for name in ('composite_posterior.csv', 'age_model_grid.csv',
                 'age_model_observations.csv', 'interval_duration.csv',
                 'age_model.png', 'parameter_posterior.png', 'interval_duration.png'):
        assert (out_dir / name).exists()


def test_full_analysis_without_duration(tmp_path):
    data_path = tmp_path / 'observations.csv'
    _write_section(data_path)

    results = run_full_analysis(
        data_path=data_path, n_iterations=5, seed=1, grid_step=400.0,
        output_dir=tmp_path, save_figures=False, verbose=False,
    )

    assert 'duration' not in results
    assert set(results['written']) == {'posterior', 'grid_summary', 'observation_summary'}


def test_bad_interval_is_rejected_before_bootstrap(tmp_path):
    data_path = tmp_path / 'observations.csv'
    _write_section(data_path)
    out_dir = tmp_path / 'outputs'

    with pytest.raises(ConfigurationError):
        run_full_analysis(
            data_path=data_path, n_iterations=5, seed=1,
            interval_heights=(1200.0, np.nan), output_dir=out_dir, verbose=False,
        )
    assert not out_dir.exists()


def test_reversed_interval_is_rejected(tmp_path):
    data_path = tmp_path / 'observations.csv'
    _write_section(data_path)

    with pytest.raises(ConfigurationError):
        run_full_analysis(
            data_path=data_path, n_iterations=5, seed=1,
            interval_heights=(1200.0, 400.0), output_dir=tmp_path / 'outputs',
            verbose=False,
        )
