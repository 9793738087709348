"""
Test Quadratic Approximation Fit
================================
"""

import numpy as np
import pandas as pd
import pytest

from subsidence_age_model.config import DEFAULT_PRIORS, SIGMA_FLOOR, SIGMA_PRIOR_BOUNDS
from subsidence_age_model.exceptions import DataError, FitConvergenceError
from subsidence_age_model.subsidence_model import mean_age
from subsidence_age_model.quadratic_fit import (
    log_posterior, numerical_hessian, fit_quadratic_approximation, draw_posterior_sample
)


def _synthetic_section(a=817.0, b=1.35):
    heights = np.array([0.0, 400.0, 800.0, 1200.0, 1600.0])
    noise = np.array([1.0, -1.0, 0.5, -0.5, 0.0])
    return pd.DataFrame({'height': heights, 'age': mean_age(heights, a, b) + noise})


def test_log_posterior_support():
    data = _synthetic_section()
    prior = dict(DEFAULT_PRIORS)
    h, t = data['height'], data['age']

    assert np.isfinite(log_posterior([817.0, 1.35, 1.0], h, t, prior))
    assert log_posterior([817.0, 1.35, 11.0], h, t, prior) == -np.inf
    assert log_posterior([817.0, 1.35, -1.0], h, t, prior) == -np.inf
    # Stretch factor too small for the top of the section
    assert log_posterior([817.0, 1.01, 1.0], h, t, prior) == -np.inf


def test_numerical_hessian_of_quadratic():
    matrix = np.array([[4.0, 1.0], [1.0, 3.0]])

    def quadratic(x):
        return 0.5 * x @ matrix @ x

    hess = numerical_hessian(quadratic, np.array([0.5, -2.0]))
    np.testing.assert_allclose(hess, matrix, rtol=1e-5, atol=1e-6)


def test_fit_recovers_generating_parameters():
    fit = fit_quadratic_approximation(_synthetic_section(), dict(DEFAULT_PRIORS))
    a, b, sigma = fit['mode']

    assert a == pytest.approx(817.0, abs=3.0)
    assert b == pytest.approx(1.35, abs=0.05)
    assert 0.0 < sigma < 10.0
    assert fit['n_points'] == 5
    assert fit['free'] == [0, 1, 2]
    assert b > fit['b_lower']


def test_fit_covariance_is_positive_definite():
    fit = fit_quadratic_approximation(_synthetic_section(), dict(DEFAULT_PRIORS))
    cov = fit['cov']
    np.testing.assert_allclose(cov, cov.T)
    assert np.all(np.linalg.eigvalsh(cov) > 0)


def test_mode_value_matches_log_posterior():
    data = _synthetic_section()
    prior = dict(DEFAULT_PRIORS)
    fit = fit_quadratic_approximation(data, prior)
    direct = log_posterior(fit['mode'], data['height'], data['age'], prior)
    assert fit['log_posterior'] == pytest.approx(direct, rel=1e-8)


def test_fit_does_not_modify_prior_state():
    prior = dict(DEFAULT_PRIORS)
    snapshot = dict(prior)
    fit_quadratic_approximation(_synthetic_section(), prior)
    assert prior == snapshot


def test_prior_pulls_intercept():
    data = _synthetic_section()
    near = fit_quadratic_approximation(data, dict(DEFAULT_PRIORS, a_mean=817.0))
    far = fit_quadratic_approximation(data, dict(DEFAULT_PRIORS, a_mean=840.0))
    assert far['mode'][0] > near['mode'][0]


def test_two_points_give_valid_fit():
    data = pd.DataFrame({'height': [0.0, 1000.0], 'age': [820.0, 780.0]})
    fit = fit_quadratic_approximation(data, dict(DEFAULT_PRIORS))
    draw = draw_posterior_sample(fit, np.random.default_rng(0))

    assert fit['n_points'] == 2
    assert all(np.isfinite(v) for v in draw.values())
    if fit['sigma_at_bound'] == 'lower':
        assert fit['free'] == [0, 1]
        assert draw['sigma'] == pytest.approx(SIGMA_FLOOR)


def test_single_point_is_a_data_error():
    data = pd.DataFrame({'height': [0.0], 'age': [820.0]})
    with pytest.raises(DataError):
        fit_quadratic_approximation(data, dict(DEFAULT_PRIORS))


def test_section_beyond_subsidence_limit_fails():
    data = pd.DataFrame({'height': [0.0, 1.0e5], 'age': [820.0, 600.0]})
    with pytest.raises(FitConvergenceError):
        fit_quadratic_approximation(data, dict(DEFAULT_PRIORS))


def test_draws_follow_gaussian_approximation():
    fit = fit_quadratic_approximation(_synthetic_section(), dict(DEFAULT_PRIORS))
    rng = np.random.default_rng(5)
    n_draws = 4000
    draws = pd.DataFrame([draw_posterior_sample(fit, rng) for _ in range(n_draws)])

    sd = np.sqrt(np.diag(fit['cov']))
    assert np.all(np.abs(draws.mean().to_numpy() - fit['mode']) < 5 * sd / np.sqrt(n_draws))
    np.testing.assert_allclose(draws.var().to_numpy(), sd ** 2, rtol=0.15)


def test_sigma_held_at_upper_bound_for_scattered_section():
    # Ages the curve cannot follow: the residual scale runs into the prior's upper edge
    data = pd.DataFrame({
        'height': [0.0, 500.0, 1000.0, 1500.0, 2000.0],
        'age': [820.0, 750.0, 700.0, 650.0, 600.0],
    })
    fit = fit_quadratic_approximation(data, dict(DEFAULT_PRIORS))

    assert fit['sigma_at_bound'] == 'upper'
    assert fit['free'] == [0, 1]
    assert fit['mode'][2] == SIGMA_PRIOR_BOUNDS[1]
    np.testing.assert_array_equal(fit['cov'][2], 0.0)
    assert np.all(np.linalg.eigvalsh(fit['cov'][:2, :2]) > 0)

    rng = np.random.default_rng(9)
    sigmas = [draw_posterior_sample(fit, rng)['sigma'] for _ in range(500)]
    assert max(sigmas) <= SIGMA_PRIOR_BOUNDS[1]
