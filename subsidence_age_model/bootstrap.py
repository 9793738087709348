"""
Bootstrap Orchestration Module
===============================

Drives the bootstrap-and-refit loop that builds the composite posterior.

Each iteration:
    Sample   - resample every observation's age and height
    Filter   - keep a superposition-consistent subsequence
    Fit      - quadratic approximation of the subsidence-curve posterior
    Accept   - append one posterior draw; move the a/b prior means to it

Iteration i's priors depend on iteration i-1's draw, so the loop is strictly
sequential. A single numpy Generator, seeded once, is threaded through every
sampler and fitter call; the same seed reproduces the same posterior.

Recovery policy: an iteration that raises DataError or FitConvergenceError is
retried with fresh sampling from the same generator and the same prior state,
up to max_retries times. If every retry fails the run stops with the last
error, annotated with the iteration number.
"""

import numpy as np
import pandas as pd

try:
    from .config import (
        N_BOOTSTRAP, RANDOM_SEED, MAX_ITERATION_RETRIES, MIN_FILTERED_POINTS,
        SUBSIDENCE_CONSTANTS, get_default_priors
    )
    from .exceptions import ConfigurationError, DataError, FitConvergenceError
    from .data_loading import validate_observations
    from .sampling import resample_observations
    from .superposition import filter_superposition
    from .quadratic_fit import PARAM_NAMES, fit_quadratic_approximation, draw_posterior_sample
    from .progress import ProgressBar
except ImportError:
    from config import (
        N_BOOTSTRAP, RANDOM_SEED, MAX_ITERATION_RETRIES, MIN_FILTERED_POINTS,
        SUBSIDENCE_CONSTANTS, get_default_priors
    )
    from exceptions import ConfigurationError, DataError, FitConvergenceError
    from data_loading import validate_observations
    from sampling import resample_observations
    from superposition import filter_superposition
    from quadratic_fit import PARAM_NAMES, fit_quadratic_approximation, draw_posterior_sample
    from progress import ProgressBar


PRIOR_KEYS = ('a_mean', 'a_sigma', 'b_mean', 'b_sigma')


# ============================================================================
# PRIOR STATE
# ============================================================================

def make_prior_state(priors=None):
    """
    Fresh parameter prior state.

    Parameters
    ----------
    priors : dict, optional
        a_mean, a_sigma, b_mean, b_sigma. Missing keys fall back to DEFAULT_PRIORS.

    Values are taken as given; run_bootstrap() coerces and checks them.

    Returns
    -------
    dict
    """
    state = get_default_priors()
    if priors:
        state.update(priors)
    return {key: state[key] for key in PRIOR_KEYS}


def update_prior_state(prior_state, draw):
    """Move the a and b prior means to the accepted draw. Spreads never change."""
    prior_state['a_mean'] = float(draw['a'])
    prior_state['b_mean'] = float(draw['b'])
    return prior_state


def _check_run_arguments(n_iterations, seed, prior_state, max_retries):
    problems = []
    if not isinstance(n_iterations, (int, np.integer)) or n_iterations < 1:
        problems.append(f"n_iterations must be a positive integer, got {n_iterations!r}")
    if seed is not None and not isinstance(seed, (int, np.integer)):
        problems.append(f"seed must be an integer or None, got {seed!r}")
    if not isinstance(max_retries, (int, np.integer)) or max_retries < 0:
        problems.append(f"max_retries must be a non-negative integer, got {max_retries!r}")
    for key in PRIOR_KEYS:
        try:
            prior_state[key] = float(prior_state[key])
        except (TypeError, ValueError):
            problems.append(f"prior {key} must be a number, got {prior_state[key]!r}")
            continue
        if not np.isfinite(prior_state[key]):
            problems.append(f"prior {key} must be finite")
        elif key in ('a_sigma', 'b_sigma') and prior_state[key] <= 0:
            problems.append(f"prior {key} must be positive, got {prior_state[key]}")
    if problems:
        raise ConfigurationError(problems)


# ============================================================================
# LOOP
# ============================================================================

def run_bootstrap_iteration(observations, iteration, prior_state, rng,
                            start=None, constants=None,
                            min_points=MIN_FILTERED_POINTS):
    """
    One Sample -> Filter -> Fit -> draw attempt.

    Parameters
    ----------
    observations : DataFrame
        Validated observation table
    iteration : int
        1-based iteration number (sets the filter direction)
    prior_state : dict
        Current priors (not modified)
    rng : numpy.random.Generator

    Returns
    -------
    tuple
        (draw dict, number of filtered points)

    Raises
    ------
    DataError, FitConvergenceError
    """
    resampled = resample_observations(observations, rng)
    filtered = filter_superposition(resampled['height'], resampled['age'],
                                    iteration, min_points=min_points)
    fit = fit_quadratic_approximation(filtered, prior_state, start=start, constants=constants)
    draw = draw_posterior_sample(fit, rng)
    return draw, len(filtered)


def run_bootstrap(observations, n_iterations=N_BOOTSTRAP, seed=RANDOM_SEED,
                  priors=None, start=None, max_retries=MAX_ITERATION_RETRIES,
                  constants=None, verbose=True):
    """
    Build the composite posterior by bootstrap resampling and refitting.

    Parameters
    ----------
    observations : DataFrame
        Observation table (validated here before the loop starts)
    n_iterations : int
        Number of bootstrap iterations, one posterior draw each
    seed : int
        Seed for the run's random generator
    priors : dict, optional
        Starting priors; defaults to DEFAULT_PRIORS
    start : dict, optional
        Optimiser starting values; defaults to FIT_START
    max_retries : int
        Fresh-sampling retries allowed per iteration
    constants : dict, optional
        Subsidence constants; defaults to SUBSIDENCE_CONSTANTS
    verbose : bool
        Print a header and a progress bar

    Returns
    -------
    dict
        posterior : DataFrame with columns a, b, sigma (one row per iteration)
        n_points : ndarray, filtered sequence length per iteration
        n_retries : ndarray, retries used per iteration
        final_prior : dict, prior state after the last iteration
        seed, n_iterations

    Raises
    ------
    ConfigurationError
        Invalid observations or arguments (before any iteration runs)
    DataError, FitConvergenceError
        An iteration failed on every retry
    """
    observations = validate_observations(observations)
    prior_state = make_prior_state(priors)
    _check_run_arguments(n_iterations, seed, prior_state, max_retries)

    if constants is None:
        constants = SUBSIDENCE_CONSTANTS

    rng = np.random.default_rng(seed)

    if verbose:
        print("\n" + "=" * 70)
        print("BOOTSTRAP CALIBRATION")
        print("=" * 70)
        print(f"  Observations: {len(observations)}")
        print(f"  Iterations:   {n_iterations:,} (seed {seed})")
        print(f"  Priors: a ~ N({prior_state['a_mean']}, {prior_state['a_sigma']}), "
              f"b ~ N({prior_state['b_mean']}, {prior_state['b_sigma']})")

    draws = np.empty((n_iterations, len(PARAM_NAMES)))
    n_points = np.empty(n_iterations, dtype=int)
    n_retries = np.zeros(n_iterations, dtype=int)

    progress = ProgressBar(n_iterations, desc="Bootstrap", enabled=verbose)
    for i in range(n_iterations):
        iteration = i + 1
        for attempt in range(max_retries + 1):
            try:
                draw, n_filtered = run_bootstrap_iteration(
                    observations, iteration, prior_state, rng,
                    start=start, constants=constants,
                )
                break
            except (DataError, FitConvergenceError) as err:
                if attempt == max_retries:
                    progress.close()
                    raise type(err)(
                        f"failed after {max_retries + 1} attempt(s); last error: {err.detail}",
                        iteration=iteration,
                    ) from err

        draws[i] = [draw[name] for name in PARAM_NAMES]
        n_points[i] = n_filtered
        n_retries[i] = attempt
        update_prior_state(prior_state, draw)
        progress.update()
    progress.close()

    posterior = pd.DataFrame(draws, columns=list(PARAM_NAMES))

    if verbose:
        total_retries = int(n_retries.sum())
        print(f"  Filtered points per iteration: median {np.median(n_points):.0f} "
              f"of {len(observations)}")
        if total_retries:
            print(f"  Retried attempts: {total_retries} "
                  f"({np.count_nonzero(n_retries)} iterations)")
        print(f"  Median a = {posterior['a'].median():.2f}, "
              f"b = {posterior['b'].median():.3f}, "
              f"sigma = {posterior['sigma'].median():.2f}")

    return {
        'posterior': posterior,
        'n_points': n_points,
        'n_retries': n_retries,
        'final_prior': dict(prior_state),
        'seed': seed,
        'n_iterations': n_iterations,
    }
