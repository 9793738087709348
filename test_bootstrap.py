"""
Test Bootstrap Calibration
==========================

End-to-end runs of the Sample -> Filter -> Fit -> draw loop on small
synthetic sections.
"""

import numpy as np
import pandas as pd
import pytest

from subsidence_age_model.config import DEFAULT_PRIORS, SIGMA_PRIOR_BOUNDS
from subsidence_age_model.exceptions import ConfigurationError, DataError
from subsidence_age_model.subsidence_model import mean_age
from subsidence_age_model.bootstrap import (
    make_prior_state, update_prior_state, run_bootstrap
)
from subsidence_age_model.posterior_summary import summarize


def _section(a=817.0, b=1.4):
    heights = np.array([0.0, 500.0, 1000.0, 1500.0, 2000.0])
    return pd.DataFrame({
        'height': heights,
        'range': 20.0,
        'age': np.round(mean_age(heights, a, b), 1),
        'ageUnc': 5.0,
        'type': 'normal',
    })


@pytest.fixture(scope='module')
def section_run():
    return run_bootstrap(_section(), n_iterations=100, seed=42, verbose=False)


def test_posterior_shape(section_run):
    posterior = section_run['posterior']
    assert list(posterior.columns) == ['a', 'b', 'sigma']
    assert len(posterior) == 100
    assert np.all(np.isfinite(posterior.to_numpy()))
    assert len(section_run['n_points']) == 100
    assert np.all(section_run['n_points'] >= 2)


def test_posterior_recovers_section(section_run):
    posterior = section_run['posterior']
    assert 1.2 < posterior['b'].median() < 1.7
    assert 800.0 < posterior['a'].median() < 830.0

    bottom = summarize(0.0, posterior)
    top = summarize(2000.0, posterior)
    assert bottom['median_age'] > top['median_age']
    assert bottom['age_min'] <= bottom['median_age'] <= bottom['age_max']


def test_final_prior_tracks_last_draw(section_run):
    last = section_run['posterior'].iloc[-1]
    final = section_run['final_prior']
    assert final['a_mean'] == pytest.approx(last['a'])
    assert final['b_mean'] == pytest.approx(last['b'])
    assert final['a_sigma'] == DEFAULT_PRIORS['a_sigma']
    assert final['b_sigma'] == DEFAULT_PRIORS['b_sigma']


def test_same_seed_same_posterior():
    first = run_bootstrap(_section(), n_iterations=10, seed=7, verbose=False)
    second = run_bootstrap(_section(), n_iterations=10, seed=7, verbose=False)
    other = run_bootstrap(_section(), n_iterations=10, seed=8, verbose=False)

    pd.testing.assert_frame_equal(first['posterior'], second['posterior'])
    assert not first['posterior'].equals(other['posterior'])


def test_two_observations_are_enough():
    obs = pd.DataFrame({
        'height': [0.0, 1000.0],
        'range': [10.0, 10.0],
        'age': [820.0, 780.0],
        'ageUnc': [2.0, 2.0],
        'type': ['normal', 'uniform'],
    })
    result = run_bootstrap(obs, n_iterations=20, seed=3, verbose=False)
    assert len(result['posterior']) == 20
    assert np.all(np.isfinite(result['posterior'].to_numpy()))


def test_inverted_pair_aborts_with_iteration():
    obs = pd.DataFrame({
        'height': [0.0, 1000.0],
        'range': [20.0, 20.0],
        'age': [700.0, 800.0],
        'ageUnc': [5.0, 5.0],
        'type': ['normal', 'normal'],
    })
    with pytest.raises(DataError) as excinfo:
        run_bootstrap(obs, n_iterations=5, seed=1, verbose=False)
    assert excinfo.value.iteration == 1
    assert 'failed after 51 attempt(s)' in str(excinfo.value)


def test_retry_limit_is_configurable():
    obs = pd.DataFrame({
        'height': [0.0, 1000.0],
        'range': [20.0, 20.0],
        'age': [700.0, 800.0],
        'ageUnc': [5.0, 5.0],
        'type': ['normal', 'normal'],
    })
    with pytest.raises(DataError, match='failed after 4 attempt'):
        run_bootstrap(obs, n_iterations=5, seed=1, max_retries=3, verbose=False)


def test_missing_column_is_a_configuration_error():
    obs = _section().drop(columns=['ageUnc'])
    with pytest.raises(ConfigurationError):
        run_bootstrap(obs, n_iterations=5, verbose=False)


def test_negative_uncertainty_is_a_configuration_error():
    obs = _section()
    obs.loc[2, 'range'] = -1.0
    with pytest.raises(ConfigurationError) as excinfo:
        run_bootstrap(obs, n_iterations=5, verbose=False)
    assert any('range' in p for p in excinfo.value.problems)


@pytest.mark.parametrize('n_iterations', [0, -3, 2.5])
def test_bad_iteration_count(n_iterations):
    with pytest.raises(ConfigurationError):
        run_bootstrap(_section(), n_iterations=n_iterations, verbose=False)


def test_bad_prior_spread():
    with pytest.raises(ConfigurationError):
        run_bootstrap(_section(), n_iterations=5, priors={'b_sigma': 0.0}, verbose=False)


def test_prior_state_helpers():
    state = make_prior_state({'a_mean': 800})
    assert state['a_mean'] == 800.0
    assert state['b_mean'] == DEFAULT_PRIORS['b_mean']

    update_prior_state(state, {'a': 805.5, 'b': 1.42, 'sigma': 3.0})
    assert state['a_mean'] == 805.5
    assert state['b_mean'] == 1.42
    assert state['a_sigma'] == DEFAULT_PRIORS['a_sigma']
    assert 'sigma' not in state


def test_reference_section_with_scattered_ages():
    # The curve cannot pass through these ages, so fits put sigma on its upper bound
    obs = pd.DataFrame({
        'height': [0.0, 500.0, 1000.0, 1500.0, 2000.0],
        'range': 20.0,
        'age': [820.0, 750.0, 700.0, 650.0, 600.0],
        'ageUnc': 5.0,
        'type': 'normal',
    })
    posterior = run_bootstrap(obs, n_iterations=100, seed=42, verbose=False)['posterior']

    assert 0.8 <= posterior['b'].median() <= 2.0
    assert posterior['sigma'].max() <= SIGMA_PRIOR_BOUNDS[1]
    assert summarize(0.0, posterior)['median_age'] > summarize(2000.0, posterior)['median_age']


def test_non_numeric_prior_is_a_configuration_error():
    with pytest.raises(ConfigurationError) as excinfo:
        run_bootstrap(_section(), n_iterations=5,
                      priors={'a_mean': 'old', 'b_sigma': -1.0}, verbose=False)
    problems = excinfo.value.problems
    assert any('a_mean' in p for p in problems)
    assert any('b_sigma' in p for p in problems)
