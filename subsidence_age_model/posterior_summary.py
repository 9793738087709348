"""
Posterior Summary Module
=========================

Turns the composite posterior (one (a, b, sigma) draw per bootstrap
iteration) into ages at query heights.

- summarize(): median age and 95% highest-density interval at one height
- summarize_heights(): the same for a list of heights, as a table
- correlated_difference(): age(h1) - age(h2) evaluated draw by draw

Differences must be taken within each draw. Shuffling one height's ages
against the other's (independent_difference) throws away the correlation
between a and b and gives much wider duration intervals. It is provided
only for comparison.

Draws for which the curve is undefined at a height give non-finite ages.
They are left out of medians and intervals and counted in the output, and a
NumericalWarning is issued.
"""

import warnings

import numpy as np
import pandas as pd
import arviz as az

try:
    from .config import INTERVAL_PROB
    from .exceptions import NumericalWarning
    from .subsidence_model import mean_age
    from .data_loading import validate_query_heights
except ImportError:
    from config import INTERVAL_PROB
    from exceptions import NumericalWarning
    from subsidence_model import mean_age
    from data_loading import validate_query_heights


def posterior_ages(height, posterior, constants=None):
    """
    Age at one height for every posterior draw.

    Parameters
    ----------
    height : float
    posterior : DataFrame
        Composite posterior with columns 'a', 'b'
    constants : dict, optional

    Returns
    -------
    ndarray
        One age per draw, in draw order; non-finite where the curve is undefined
    """
    a = posterior['a'].to_numpy(dtype=float)
    b = posterior['b'].to_numpy(dtype=float)
    return np.atleast_1d(mean_age(float(height), a, b, constants))


def compute_hpdi(values, prob=INTERVAL_PROB):
    """
    Highest-density interval of the finite values.

    Returns
    -------
    tuple
        (lower, upper); (nan, nan) if there are no finite values
    """
    values = np.asarray(values, dtype=float)
    values = values[np.isfinite(values)]
    if values.size == 0:
        return np.nan, np.nan
    if values.size == 1:
        return float(values[0]), float(values[0])

    interval = az.hdi(values, hdi_prob=prob)
    return float(interval[0]), float(interval[1])


def _finite_or_warn(values, label):
    values = np.asarray(values, dtype=float)
    finite = np.isfinite(values)
    n_bad = int((~finite).sum())
    if n_bad:
        warnings.warn(
            f"{label}: {n_bad} of {len(values)} draws give non-finite ages and are excluded",
            NumericalWarning, stacklevel=3,
        )
    return values[finite], n_bad


def summarize(height, posterior, prob=INTERVAL_PROB, constants=None):
    """
    Median age and highest-density interval at one height.

    Does not depend on the order of the posterior draws.

    Returns
    -------
    dict
        height, median_age, age_min, age_max, n_valid, n_nonfinite
    """
    ages, n_bad = _finite_or_warn(posterior_ages(height, posterior, constants),
                                  f"height {height:g}")

    if ages.size == 0:
        median = np.nan
    else:
        median = float(np.median(ages))
    lower, upper = compute_hpdi(ages, prob)

    return {
        'height': float(height),
        'median_age': median,
        'age_min': lower,
        'age_max': upper,
        'n_valid': int(ages.size),
        'n_nonfinite': n_bad,
    }


def summarize_heights(heights, posterior, prob=INTERVAL_PROB, constants=None):
    """
    Summaries for a list of query heights.

    Parameters
    ----------
    heights : array-like
        Non-decreasing query heights (dense grid or observation heights)

    Returns
    -------
    DataFrame
        height, median_age, age_min, age_max, n_valid, n_nonfinite
    """
    heights = validate_query_heights(heights)
    rows = [summarize(h, posterior, prob, constants) for h in heights]
    return pd.DataFrame(rows, columns=['height', 'median_age', 'age_min', 'age_max',
                                       'n_valid', 'n_nonfinite'])


# ============================================================================
# DIFFERENCES AND DURATIONS
# ============================================================================

def correlated_difference(height1, height2, posterior, constants=None):
    """
    age(height1) - age(height2) within each posterior draw.

    Returns
    -------
    ndarray
        One difference per draw; non-finite where either age is undefined
    """
    return (posterior_ages(height1, posterior, constants)
            - posterior_ages(height2, posterior, constants))


def independent_difference(height1, height2, posterior, rng, constants=None):
    """
    Naive difference that pairs each height's ages at random.

    Only the two marginal distributions are used; the pairing of a and b
    within a draw is lost.

    Parameters
    ----------
    rng : numpy.random.Generator
        Used to shuffle height2's ages
    """
    ages1 = posterior_ages(height1, posterior, constants)
    ages2 = posterior_ages(height2, posterior, constants)
    return ages1 - ages2[rng.permutation(len(ages2))]


def summarize_difference(differences, prob=INTERVAL_PROB):
    """
    Median and highest-density interval of a difference distribution.

    Returns
    -------
    dict
        median, lower_95, upper_95, n_valid
    """
    values, _ = _finite_or_warn(differences, "difference")
    lower, upper = compute_hpdi(values, prob)
    return {
        'median': float(np.median(values)) if values.size else np.nan,
        'lower_95': lower,
        'upper_95': upper,
        'n_valid': int(values.size),
    }


def estimate_interval_duration(base_height, top_height, posterior, prob=INTERVAL_PROB,
                               constants=None):
    """
    Duration of the interval between two heights (e.g. the Bitter Springs Anomaly).

    Parameters
    ----------
    base_height, top_height : float
        Heights of the interval's base and top

    Returns
    -------
    dict
        base_height, top_height, median, lower_95, upper_95, n_valid (Myr)
    """
    durations = correlated_difference(base_height, top_height, posterior, constants)
    result = {'base_height': float(base_height), 'top_height': float(top_height)}
    result.update(summarize_difference(durations, prob))
    return result


def summarize_parameters(posterior, prob=INTERVAL_PROB):
    """
    Median and highest-density interval for every posterior parameter.

    Returns
    -------
    DataFrame
        parameter, median, lower, upper
    """
    rows = []
    for name in posterior.columns:
        values = posterior[name].to_numpy(dtype=float)
        lower, upper = compute_hpdi(values, prob)
        rows.append({
            'parameter': name,
            'median': float(np.nanmedian(values)),
            'lower': lower,
            'upper': upper,
        })
    return pd.DataFrame(rows)
