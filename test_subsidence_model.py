"""
Test Subsidence Curve Model
===========================
"""

import numpy as np
import pytest

from subsidence_age_model.config import (
    PHYSICAL_CONSTANTS, SUBSIDENCE_CONSTANTS, derive_subsidence_constants
)
from subsidence_age_model.subsidence_model import (
    mean_age, mean_age_gradient_b, stretch_factor_lower_bound
)


def test_derived_constants():
    tau_myr = SUBSIDENCE_CONSTANTS['tau'] / SUBSIDENCE_CONSTANTS['T']
    assert 60.0 < tau_myr < 65.0
    assert 8800.0 < SUBSIDENCE_CONSTANTS['E0'] < 9000.0


def test_derived_constants_reject_dense_infill():
    constants = dict(PHYSICAL_CONSTANTS, infill_density=3400.0)
    with pytest.raises(ValueError):
        derive_subsidence_constants(constants)


def test_age_at_zero_height_is_intercept():
    assert mean_age(0.0, 817.0, 1.3) == pytest.approx(817.0)
    assert mean_age(0.0, 700.0, 2.5) == pytest.approx(700.0)


def test_age_decreases_upwards():
    heights = np.array([0.0, 500.0, 1000.0, 1500.0, 2000.0])
    ages = mean_age(heights, 817.0, 1.3)
    assert ages.shape == heights.shape
    assert np.all(np.isfinite(ages))
    assert np.all(np.diff(ages) < 0)


def test_known_value():
    # ln(1 - h pi / (E0 b sin(pi/b))) evaluated by hand
    e0 = SUBSIDENCE_CONSTANTS['E0']
    tau_myr = SUBSIDENCE_CONSTANTS['tau'] / SUBSIDENCE_CONSTANTS['T']
    h, a, b = 1000.0, 800.0, 1.5
    expected = a + tau_myr * np.log(1 - (h / e0 * np.pi / b) / np.sin(np.pi / b))
    assert mean_age(h, a, b) == pytest.approx(expected)


def test_broadcasts_over_posterior_draws():
    a = np.array([810.0, 815.0, 820.0])
    b = np.array([1.3, 1.4, 1.5])
    ages = mean_age(800.0, a, b)
    assert ages.shape == (3,)
    for i in range(3):
        assert ages[i] == pytest.approx(mean_age(800.0, a[i], b[i]))


def test_out_of_domain_is_non_finite_not_an_error():
    assert np.isnan(mean_age(100.0, 817.0, -1.0))
    assert np.isnan(mean_age(100.0, 817.0, 0.0))
    assert not np.isfinite(mean_age(1.0e6, 817.0, 1.3))

    ages = mean_age(np.array([0.0, 1.0e6]), 817.0, 1.3)
    assert np.isfinite(ages[0])
    assert not np.isfinite(ages[1])


def test_gradient_matches_finite_difference():
    h, b, step = 1500.0, 1.4, 1e-6
    numeric = (mean_age(h, 0.0, b + step) - mean_age(h, 0.0, b - step)) / (2 * step)
    assert mean_age_gradient_b(h, b) == pytest.approx(numeric, rel=1e-5)


def test_stretch_factor_lower_bound_marks_domain_edge():
    b_lower = stretch_factor_lower_bound(2000.0)
    assert b_lower > 1.0
    assert np.isfinite(mean_age(2000.0, 817.0, b_lower + 1e-6))
    assert not np.isfinite(mean_age(2000.0, 817.0, b_lower - 1e-3))


def test_stretch_factor_lower_bound_edge_cases():
    assert stretch_factor_lower_bound(0.0) == pytest.approx(1.0)
    assert stretch_factor_lower_bound(-50.0) == pytest.approx(1.0)
    assert np.isnan(stretch_factor_lower_bound(SUBSIDENCE_CONSTANTS['E0'] * 1.1))
