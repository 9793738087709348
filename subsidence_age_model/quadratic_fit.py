"""
Quadratic Approximation Fitting Module
=======================================

Bayesian fit of the subsidence curve to one filtered resample using a
quadratic (Laplace) approximation of the posterior.

Model:
    age_i ~ Normal(mean_age(h_i; a, b), sigma)
    a     ~ Normal(a_mean, a_sigma)
    b     ~ Normal(b_mean, b_sigma)
    sigma ~ Uniform(0, 10)

Method:
1. Find the maximum a posteriori (a, b, sigma) with L-BFGS-B from a fixed
   starting point, using the analytic gradient of the log-posterior.
   b is bounded below by the edge of the curve's domain at the highest
   filtered height; sigma is bounded to the support of its prior.
2. Approximate the posterior as a multivariate Gaussian centred on the mode,
   with covariance equal to the inverse of the negative Hessian of the
   log-posterior (central finite differences).
3. Draw one parameter vector from that Gaussian.

When sigma finishes on a bound of its prior (e.g. two points that the curve
can interpolate exactly drive sigma to its floor), the mode is not a
stationary point in sigma. sigma is then held at the bound and the Gaussian
approximation is taken over (a, b) only.
"""

import numpy as np
from scipy import stats
from scipy.optimize import minimize

try:
    from .config import (
        FIT_START, SIGMA_PRIOR_BOUNDS, SIGMA_FLOOR, OPTIMIZER_OPTIONS,
        HESSIAN_REL_STEP, HESSIAN_MIN_STEP, MIN_FILTERED_POINTS,
        SUBSIDENCE_CONSTANTS
    )
    from .exceptions import DataError, FitConvergenceError
    from .subsidence_model import mean_age, mean_age_gradient_b, stretch_factor_lower_bound
except ImportError:
    from config import (
        FIT_START, SIGMA_PRIOR_BOUNDS, SIGMA_FLOOR, OPTIMIZER_OPTIONS,
        HESSIAN_REL_STEP, HESSIAN_MIN_STEP, MIN_FILTERED_POINTS,
        SUBSIDENCE_CONSTANTS
    )
    from exceptions import DataError, FitConvergenceError
    from subsidence_model import mean_age, mean_age_gradient_b, stretch_factor_lower_bound


PARAM_NAMES = ('a', 'b', 'sigma')

_LOG_SQRT_2PI = 0.5 * np.log(2 * np.pi)

# Returned by the objective if a trial point leaves the curve's domain
_INVALID_OBJECTIVE = 1e100


# ============================================================================
# LOG-POSTERIOR
# ============================================================================

def log_posterior(params, heights, ages, prior_state, constants=None):
    """
    Joint log-posterior of (a, b, sigma) for one filtered resample.

    Parameters
    ----------
    params : array-like
        (a, b, sigma)
    heights, ages : array-like
        Filtered sequence
    prior_state : dict
        a_mean, a_sigma, b_mean, b_sigma
    constants : dict, optional
        Subsidence constants (E0, tau, T)

    Returns
    -------
    float
        Log-posterior density; -inf outside the support or the curve's domain
    """
    a, b, sigma = (float(p) for p in params)
    lower, upper = SIGMA_PRIOR_BOUNDS

    log_prior_sigma = stats.uniform.logpdf(sigma, loc=lower, scale=upper - lower)
    if not np.isfinite(log_prior_sigma) or sigma <= 0:
        return -np.inf

    mu = mean_age(np.asarray(heights, dtype=float), a, b, constants)
    if not np.all(np.isfinite(mu)):
        return -np.inf

    log_lik = np.sum(stats.norm.logpdf(np.asarray(ages, dtype=float), loc=mu, scale=sigma))
    log_prior_a = stats.norm.logpdf(a, loc=prior_state['a_mean'], scale=prior_state['a_sigma'])
    log_prior_b = stats.norm.logpdf(b, loc=prior_state['b_mean'], scale=prior_state['b_sigma'])

    return float(log_lik + log_prior_a + log_prior_b + log_prior_sigma)


def _negative_log_posterior(x, heights, ages, prior_state, constants):
    """Negative log-posterior and its gradient, inside the sigma support."""
    a, b, sigma = x
    mu = mean_age(heights, a, b, constants)
    dmu_db = mean_age_gradient_b(heights, b, constants)

    if sigma <= 0 or not np.all(np.isfinite(mu)) or not np.all(np.isfinite(dmu_db)):
        return _INVALID_OBJECTIVE, np.zeros(3)

    n = len(heights)
    lower, upper = SIGMA_PRIOR_BOUNDS
    resid = ages - mu
    ss = np.sum(resid ** 2)
    za = (a - prior_state['a_mean']) / prior_state['a_sigma']
    zb = (b - prior_state['b_mean']) / prior_state['b_sigma']

    value = (n * (np.log(sigma) + _LOG_SQRT_2PI) + 0.5 * ss / sigma ** 2
             + np.log(prior_state['a_sigma']) + _LOG_SQRT_2PI + 0.5 * za ** 2
             + np.log(prior_state['b_sigma']) + _LOG_SQRT_2PI + 0.5 * zb ** 2
             + np.log(upper - lower))

    grad = np.array([
        -np.sum(resid) / sigma ** 2 + za / prior_state['a_sigma'],
        -np.sum(resid * dmu_db) / sigma ** 2 + zb / prior_state['b_sigma'],
        n / sigma - ss / sigma ** 3,
    ])

    return float(value), grad


# ============================================================================
# CURVATURE
# ============================================================================

def numerical_hessian(func, x, steps=None):
    """
    Hessian of a scalar function by central finite differences.

    Parameters
    ----------
    func : callable
        f(x) -> float
    x : array-like
        Point of evaluation
    steps : array-like, optional
        Step per coordinate. Defaults to max(|x| * HESSIAN_REL_STEP, HESSIAN_MIN_STEP).

    Returns
    -------
    ndarray
        Symmetric (n, n) matrix
    """
    x = np.asarray(x, dtype=float)
    ndim = len(x)
    if steps is None:
        steps = np.maximum(np.abs(x) * HESSIAN_REL_STEP, HESSIAN_MIN_STEP)
    steps = np.asarray(steps, dtype=float)

    f0 = func(x)
    hess = np.zeros((ndim, ndim))
    for i in range(ndim):
        for j in range(i, ndim):
            if i == j:
                x_plus = x.copy(); x_plus[i] += steps[i]
                x_minus = x.copy(); x_minus[i] -= steps[i]
                hess[i, i] = (func(x_plus) - 2 * f0 + func(x_minus)) / steps[i] ** 2
            else:
                pp = x.copy(); pp[i] += steps[i]; pp[j] += steps[j]
                pm = x.copy(); pm[i] += steps[i]; pm[j] -= steps[j]
                mp = x.copy(); mp[i] -= steps[i]; mp[j] += steps[j]
                mm = x.copy(); mm[i] -= steps[i]; mm[j] -= steps[j]
                hess[i, j] = (func(pp) - func(pm) - func(mp) + func(mm)) / (4 * steps[i] * steps[j])
                hess[j, i] = hess[i, j]

    return hess


# ============================================================================
# FIT AND DRAW
# ============================================================================

def fit_quadratic_approximation(filtered, prior_state, start=None, constants=None):
    """
    Quadratic approximation of the posterior for one filtered resample.

    Parameters
    ----------
    filtered : DataFrame
        Filtered sequence with columns 'height', 'age'
    prior_state : dict
        a_mean, a_sigma, b_mean, b_sigma (read only)
    start : dict, optional
        Starting values for a, b, sigma. Defaults to FIT_START.
    constants : dict, optional
        Subsidence constants. Defaults to SUBSIDENCE_CONSTANTS.

    Returns
    -------
    dict
        mode : ndarray (a, b, sigma)
        cov : ndarray (3, 3), zero rows/columns for parameters held at a bound
        free : list of int, parameters included in the Gaussian approximation
        log_posterior : float at the mode
        n_points, n_iterations, b_lower, sigma_at_bound

    Raises
    ------
    DataError
        Fewer than two points
    FitConvergenceError
        Optimiser failure, non-finite optimum or non positive-definite curvature
    """
    if constants is None:
        constants = SUBSIDENCE_CONSTANTS
    if start is None:
        start = FIT_START

    heights = filtered['height'].to_numpy(dtype=float)
    ages = filtered['age'].to_numpy(dtype=float)
    n_points = len(heights)

    if n_points < MIN_FILTERED_POINTS:
        raise DataError(f"cannot fit {n_points} point(s); need >= {MIN_FILTERED_POINTS}")

    b_lower = stretch_factor_lower_bound(np.max(heights), constants)
    if not np.isfinite(b_lower):
        raise FitConvergenceError(
            f"no admissible stretch factor: top height {np.max(heights):.1f} m "
            f"reaches E0 = {constants['E0']:.1f} m"
        )

    sigma_lower = max(SIGMA_PRIOR_BOUNDS[0], SIGMA_FLOOR)
    sigma_upper = SIGMA_PRIOR_BOUNDS[1]
    bounds = [(None, None), (b_lower, None), (sigma_lower, sigma_upper)]

    x0 = np.array([start['a'], start['b'], start['sigma']], dtype=float)
    x0[1] = max(x0[1], b_lower)
    x0[2] = np.clip(x0[2], sigma_lower, sigma_upper)

    res = minimize(
        _negative_log_posterior, x0,
        args=(heights, ages, prior_state, constants),
        jac=True, method='L-BFGS-B', bounds=bounds,
        options=OPTIMIZER_OPTIONS,
    )

    mode = np.asarray(res.x, dtype=float)
    # status 1: iteration/evaluation limit. status 2 (line-search stall) is
    # accepted here and judged by the curvature check below.
    if res.status == 1 or not np.all(np.isfinite(mode)) or not np.isfinite(res.fun) \
            or res.fun >= _INVALID_OBJECTIVE:
        raise FitConvergenceError(f"optimiser did not converge: {res.message}")

    tol = 1e-8 * max(1.0, sigma_upper)
    sigma_at_bound = None
    if mode[2] <= sigma_lower + tol:
        sigma_at_bound = 'lower'
        mode[2] = sigma_lower
    elif mode[2] >= sigma_upper - tol:
        sigma_at_bound = 'upper'
        mode[2] = sigma_upper

    def objective(x):
        return _negative_log_posterior(x, heights, ages, prior_state, constants)[0]

    hess = numerical_hessian(objective, mode)

    # A bound is not a stationary point in sigma: hold it there
    free = [0, 1, 2] if sigma_at_bound is None else [0, 1]
    cov_free = _invert_curvature(hess[np.ix_(free, free)])

    if cov_free is None:
        raise FitConvergenceError("posterior curvature is not positive-definite at the mode")

    cov = np.zeros((3, 3))
    cov[np.ix_(free, free)] = cov_free

    return {
        'mode': mode,
        'cov': cov,
        'free': free,
        'log_posterior': -float(res.fun),
        'n_points': n_points,
        'n_iterations': int(res.nit),
        'b_lower': float(b_lower),
        'sigma_at_bound': sigma_at_bound,
    }


def _invert_curvature(hess):
    """Covariance from a Hessian of the negative log-posterior, or None if not PD."""
    if not np.all(np.isfinite(hess)):
        return None
    hess = 0.5 * (hess + hess.T)
    try:
        chol = np.linalg.cholesky(hess)
    except np.linalg.LinAlgError:
        return None
    chol_inv = np.linalg.inv(chol)
    cov = chol_inv.T @ chol_inv
    return 0.5 * (cov + cov.T)


def draw_posterior_sample(fit, rng):
    """
    Draw one (a, b, sigma) vector from a quadratic approximation.

    Parameters
    ----------
    fit : dict
        Output of fit_quadratic_approximation()
    rng : numpy.random.Generator

    Returns
    -------
    dict
        a, b, sigma
    """
    draw = fit['mode'].copy()
    free = fit['free']
    draw[free] = rng.multivariate_normal(
        fit['mode'][free], fit['cov'][np.ix_(free, free)], method='cholesky'
    )
    return dict(zip(PARAM_NAMES, (float(v) for v in draw)))
