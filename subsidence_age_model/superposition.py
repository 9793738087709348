"""
Superposition Filter Module
============================

Reduces one iteration's resampled draws to a subsequence that honours the
law of superposition: higher in the section means strictly younger.

Out-of-order points are rejected one at a time rather than discarding the
whole draw. The scan direction alternates with iteration parity:

- Odd iterations scan bottom-up. The lowest draw is always kept and a draw
  is kept only if it is strictly younger than the last kept draw.
- Even iterations scan top-down. The highest draw is always kept and a draw
  is kept only if it is strictly older than the last kept draw.

A fixed direction would always favour the same end of the section.
"""

import numpy as np
import pandas as pd

try:
    from .config import MIN_FILTERED_POINTS
    from .exceptions import DataError
except ImportError:
    from config import MIN_FILTERED_POINTS
    from exceptions import DataError


def scan_bottom_up(ages):
    """
    Indices kept by a bottom-up scan over height-sorted ages.

    Parameters
    ----------
    ages : array-like
        Ages ordered by ascending height

    Returns
    -------
    list of int
        Kept positions, ascending
    """
    ages = np.asarray(ages, dtype=float)
    if len(ages) == 0:
        return []

    kept = [0]
    last_age = ages[0]
    for i in range(1, len(ages)):
        if ages[i] < last_age:
            kept.append(i)
            last_age = ages[i]
    return kept


def scan_top_down(ages):
    """
    Indices kept by a top-down scan over height-sorted ages.

    Returns
    -------
    list of int
        Kept positions, ascending (i.e. already re-ordered bottom to top)
    """
    ages = np.asarray(ages, dtype=float)
    if len(ages) == 0:
        return []

    top = len(ages) - 1
    kept = [top]
    last_age = ages[top]
    for i in range(top - 1, -1, -1):
        if ages[i] > last_age:
            kept.append(i)
            last_age = ages[i]
    kept.reverse()
    return kept


def filter_superposition(heights, ages, iteration, min_points=MIN_FILTERED_POINTS):
    """
    Apply the direction-alternating superposition filter to one draw.

    Parameters
    ----------
    heights, ages : array-like
        Resampled heights and ages (any order; sorted by height here)
    iteration : int
        1-based bootstrap iteration number. Odd -> bottom-up, even -> top-down.
    min_points : int
        Minimum number of survivors for a well-posed fit

    Returns
    -------
    DataFrame
        Columns 'height', 'age'; heights non-decreasing, ages strictly decreasing

    Raises
    ------
    DataError
        If fewer than min_points draws survive
    """
    heights = np.asarray(heights, dtype=float)
    ages = np.asarray(ages, dtype=float)

    order = np.argsort(heights, kind='stable')
    heights = heights[order]
    ages = ages[order]

    if iteration % 2 == 1:
        kept = scan_bottom_up(ages)
    else:
        kept = scan_top_down(ages)

    if len(kept) < min_points:
        raise DataError(
            f"only {len(kept)} of {len(ages)} resampled points are consistent "
            f"with superposition (need >= {min_points})",
            iteration=iteration,
        )

    return pd.DataFrame({'height': heights[kept], 'age': ages[kept]})
