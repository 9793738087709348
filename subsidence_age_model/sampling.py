"""
Uncertainty Sampling Module
============================

Draws one random age and one random height for every observation, once per
bootstrap iteration.

Ages are Gaussian with sd = age_uncertainty / 2. The stored uncertainty is
the half-width of a 95% interval, so halving it approximates one standard
deviation (dividing by 1.96 would be exact; the factor 2 is kept as-is).

Heights are Gaussian (sd = range / 2) for 'normal' observations, otherwise
uniform on [height - range/2, height + range/2].
"""

import numpy as np
import pandas as pd

try:
    from .config import COLS, GAUSSIAN_SHAPE_TAG
except ImportError:
    from config import COLS, GAUSSIAN_SHAPE_TAG


def is_gaussian_shape(shape):
    """True if an uncertainty-shape tag selects a Gaussian distribution."""
    if shape is None or (isinstance(shape, float) and np.isnan(shape)):
        return False
    return str(shape).strip().lower() == GAUSSIAN_SHAPE_TAG


def sample_age(age, age_uncertainty, rng):
    """Draw one age from Normal(age, age_uncertainty / 2)."""
    return rng.normal(age, age_uncertainty / 2.0)


def sample_height(height, height_uncertainty, shape, rng):
    """Draw one height from the observation's declared distribution."""
    half_width = height_uncertainty / 2.0
    if is_gaussian_shape(shape):
        return rng.normal(height, half_width)
    return rng.uniform(height - half_width, height + half_width)


def sample_observation(height, height_uncertainty, shape, age, age_uncertainty, rng):
    """
    Draw one resampled (height, age) pair for a single observation.

    Parameters
    ----------
    height, height_uncertainty : float
        Observed height and full height uncertainty
    shape : str
        Height uncertainty shape tag ('normal' or other -> uniform)
    age, age_uncertainty : float
        Observed age and its 95% half-width
    rng : numpy.random.Generator
        Source of randomness

    Returns
    -------
    tuple
        (height, age)
    """
    drawn_age = sample_age(age, age_uncertainty, rng)
    drawn_height = sample_height(height, height_uncertainty, shape, rng)
    return float(drawn_height), float(drawn_age)


def resample_observations(observations, rng):
    """
    Draw one resampled (height, age) pair for every observation.

    Randomness is consumed in a fixed order: every age draw (observations in
    stored order), then every height draw (observations in stored order).

    Parameters
    ----------
    observations : DataFrame
        Observation table with the columns named in COLS
    rng : numpy.random.Generator

    Returns
    -------
    DataFrame
        Columns 'height', 'age', same row order as observations
    """
    ages = observations[COLS['age']].to_numpy(dtype=float)
    age_unc = observations[COLS['age_unc']].to_numpy(dtype=float)
    heights = observations[COLS['height']].to_numpy(dtype=float)
    height_unc = observations[COLS['height_unc']].to_numpy(dtype=float)
    shapes = observations[COLS['shape']].to_numpy()

    drawn_ages = np.array([
        sample_age(ages[i], age_unc[i], rng) for i in range(len(ages))
    ], dtype=float)

    drawn_heights = np.array([
        sample_height(heights[i], height_unc[i], shapes[i], rng)
        for i in range(len(heights))
    ], dtype=float)

    return pd.DataFrame({'height': drawn_heights, 'age': drawn_ages})
