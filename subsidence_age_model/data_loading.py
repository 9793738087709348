"""
Data Loading Module for the Subsidence Age Model
=================================================

Reads the observation table, validates it before any bootstrap work starts,
builds query-height grids and writes results back to CSV.

Expected observation columns (see config.COLS):
    height  - stratigraphic height (m)
    range   - height uncertainty, full width (m)
    age     - measured age (Ma)
    ageUnc  - age uncertainty, 95% half-width (Ma)
    type    - 'normal' for Gaussian height uncertainty, anything else uniform
Any other columns are carried along and ignored by the model.
"""

from pathlib import Path

import numpy as np
import pandas as pd

try:
    from .config import (
        COLS, OBSERVATIONS_CSV_PATH, OUTPUT_DIR, HEIGHT_GRID_STEP,
        MIN_FILTERED_POINTS, ensure_output_dir
    )
    from .exceptions import ConfigurationError
    from .sampling import is_gaussian_shape
except ImportError:
    from config import (
        COLS, OBSERVATIONS_CSV_PATH, OUTPUT_DIR, HEIGHT_GRID_STEP,
        MIN_FILTERED_POINTS, ensure_output_dir
    )
    from exceptions import ConfigurationError
    from sampling import is_gaussian_shape


NUMERIC_KEYS = ('height', 'height_unc', 'age', 'age_unc')


# ============================================================================
# OBSERVATIONS
# ============================================================================

def load_observations_from_csv(csv_path=OBSERVATIONS_CSV_PATH, validate=True, verbose=True):
    """
    Load the observation table from CSV.

    Parameters
    ----------
    csv_path : str or Path
    validate : bool
        If True, run validate_observations() and return its cleaned copy
    verbose : bool

    Returns
    -------
    DataFrame
    """
    if verbose:
        print(f"Loading observations from: {csv_path}")

    df = pd.read_csv(csv_path)
    if verbose:
        print(f"  Raw records: {len(df):,}")

    if validate:
        df = validate_observations(df)

    return df


def validate_observations(df, min_observations=MIN_FILTERED_POINTS):
    """
    Check the observation table and collect every problem found.

    Checks:
    - required columns present
    - numeric columns parse as finite numbers
    - uncertainties are non-negative
    - at least min_observations rows

    Parameters
    ----------
    df : DataFrame
    min_observations : int

    Returns
    -------
    DataFrame
        Copy with numeric columns coerced to float, original row order kept

    Raises
    ------
    ConfigurationError
        Listing every problem at once
    """
    problems = []

    missing = [COLS[k] for k in (*NUMERIC_KEYS, 'shape') if COLS[k] not in df.columns]
    if missing:
        raise ConfigurationError(f"missing columns: {missing}")

    clean = df.copy()
    for key in NUMERIC_KEYS:
        col = COLS[key]
        values = pd.to_numeric(clean[col], errors='coerce')
        bad = ~np.isfinite(values.to_numpy(dtype=float))
        if bad.any():
            rows = list(clean.index[bad])
            problems.append(f"column '{col}' has non-numeric or non-finite values in rows {rows}")
        clean[col] = values.astype(float)

    for key in ('height_unc', 'age_unc'):
        col = COLS[key]
        negative = clean[col] < 0
        if negative.any():
            problems.append(f"column '{col}' has negative uncertainties in rows {list(clean.index[negative])}")

    if len(clean) < min_observations:
        problems.append(f"need at least {min_observations} observations, got {len(clean)}")

    if problems:
        raise ConfigurationError(problems)

    return clean


def validate_query_heights(heights):
    """
    Check a list of query heights: finite and non-decreasing.

    Returns
    -------
    ndarray
    """
    heights = np.atleast_1d(np.asarray(heights, dtype=float))
    problems = []

    if heights.size == 0:
        problems.append("query heights are empty")
    if not np.all(np.isfinite(heights)):
        problems.append("query heights contain non-finite values")
    elif np.any(np.diff(heights) < 0):
        problems.append("query heights must be non-decreasing")

    if problems:
        raise ConfigurationError(problems)

    return heights


def make_height_grid(top, step=HEIGHT_GRID_STEP, bottom=0.0):
    """
    Dense grid of query heights from bottom up to top (inclusive).

    Parameters
    ----------
    top : float
        Highest query height (column top)
    step : float
        Grid spacing
    bottom : float

    Returns
    -------
    ndarray
    """
    if step <= 0:
        raise ConfigurationError(f"grid step must be positive, got {step}")
    if top < bottom:
        raise ConfigurationError(f"grid top {top} is below bottom {bottom}")

    n_steps = int(np.floor((top - bottom) / step + 1e-9))
    return bottom + step * np.arange(n_steps + 1)


def summarize_observations(df, verbose=True):
    """
    Print and return a short description of the observation table.

    Returns
    -------
    dict
    """
    heights = df[COLS['height']]
    ages = df[COLS['age']]
    n_gaussian = int(sum(is_gaussian_shape(s) for s in df[COLS['shape']]))

    # Count adjacent pairs that are out of superposition order before resampling
    ordered = df.sort_values(COLS['height'], kind='mergesort')
    n_inversions = int(np.sum(np.diff(ordered[COLS['age']].to_numpy()) >= 0))

    summary = {
        'n_observations': len(df),
        'height_range': (float(heights.min()), float(heights.max())),
        'age_range': (float(ages.min()), float(ages.max())),
        'n_gaussian_height': n_gaussian,
        'n_uniform_height': len(df) - n_gaussian,
        'n_order_inversions': n_inversions,
    }

    if verbose:
        print("\n" + "=" * 60)
        print("OBSERVATION SUMMARY")
        print("=" * 60)
        print(f"  Observations: {summary['n_observations']}")
        print(f"  Height range: {summary['height_range'][0]:.1f} - {summary['height_range'][1]:.1f} m")
        print(f"  Age range:    {summary['age_range'][0]:.1f} - {summary['age_range'][1]:.1f} Ma")
        print(f"  Height uncertainty: {n_gaussian} normal, {summary['n_uniform_height']} uniform")
        if n_inversions:
            print(f"  ⚠ {n_inversions} adjacent pair(s) out of superposition order")

    return summary


# ============================================================================
# EXPORT
# ============================================================================

def export_results(results, output_dir=None, verbose=True):
    """
    Write pipeline outputs to CSV.

    Parameters
    ----------
    results : dict
        May contain 'posterior', 'grid_summary', 'observation_summary',
        'duration' (DataFrames or dicts)
    output_dir : str or Path, optional
        Defaults to OUTPUT_DIR

    Returns
    -------
    dict
        Name -> written path
    """
    output_base = Path(ensure_output_dir(output_dir or OUTPUT_DIR))
    filenames = {
        'posterior': 'composite_posterior.csv',
        'grid_summary': 'age_model_grid.csv',
        'observation_summary': 'age_model_observations.csv',
        'duration': 'interval_duration.csv',
    }

    written = {}
    for key, filename in filenames.items():
        table = results.get(key)
        if table is None:
            continue
        if isinstance(table, dict):
            table = pd.DataFrame([table])
        path = output_base / filename
        table.to_csv(path, index=False)
        written[key] = path
        if verbose:
            print(f"  Saved: {path}")

    return written
