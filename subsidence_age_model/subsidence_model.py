"""
Thermal Subsidence Curve Model
===============================

Closed-form age of a horizon at stratigraphic height h for a basin that
subsides thermally after uniform lithospheric stretching (McKenzie, 1978):

    age(h) = a + tau/T * ln(1 - (h/E0 * pi/b) / sin(pi/b))

where a is the age at h = 0 and b is the stretch factor. tau, E0 and T come
from config.SUBSIDENCE_CONSTANTS.

The curve is only defined for b > 0 and a positive log argument. Outside
that domain the functions here return NaN or -inf instead of raising, and
callers carry the non-finite values forward.

Reference:
    McKenzie, D. (1978). Some remarks on the development of sedimentary
    basins. Earth and Planetary Science Letters, 40(1), 25-32.
"""

import numpy as np
from scipy.optimize import brentq

try:
    from .config import SUBSIDENCE_CONSTANTS, DOMAIN_MARGIN
except ImportError:
    from config import SUBSIDENCE_CONSTANTS, DOMAIN_MARGIN


def _stretch_term(b, e0):
    """g(b) = (pi/b) / (E0 sin(pi/b)); NaN where b <= 0."""
    b = np.asarray(b, dtype=float)
    with np.errstate(divide='ignore', invalid='ignore'):
        u = np.pi / b
        g = u / (e0 * np.sin(u))
    return np.where(b > 0, g, np.nan)


def mean_age(height, a, b, constants=None):
    """
    Evaluate the subsidence curve.

    Broadcasts over height, a and b, so it can be called with a grid of
    heights for one parameter pair, or one height for a column of
    posterior draws.

    Parameters
    ----------
    height : float or array-like
        Stratigraphic height (m)
    a : float or array-like
        Age at height zero (Ma)
    b : float or array-like
        Stretch factor
    constants : dict, optional
        E0, tau, T. Defaults to SUBSIDENCE_CONSTANTS.

    Returns
    -------
    float or ndarray
        Age (Ma); non-finite outside the curve's domain
    """
    if constants is None:
        constants = SUBSIDENCE_CONSTANTS

    height = np.asarray(height, dtype=float)
    a = np.asarray(a, dtype=float)
    g = _stretch_term(b, constants['E0'])

    with np.errstate(divide='ignore', invalid='ignore'):
        arg = 1.0 - height * g
        log_arg = np.where(arg > 0, np.log(np.where(arg > 0, arg, 1.0)),
                           np.where(arg == 0, -np.inf, np.nan))
        age = a + constants['tau'] / constants['T'] * log_arg

    if age.ndim == 0:
        return float(age)
    return age


def mean_age_gradient_b(height, b, constants=None):
    """
    Partial derivative of mean_age with respect to b.

        d age / d b = -(tau/T) h g'(b) / (1 - h g(b))
        g'(b) = -(pi/b^2) (sin u - u cos u) / (E0 sin^2 u),  u = pi/b
    """
    if constants is None:
        constants = SUBSIDENCE_CONSTANTS

    height = np.asarray(height, dtype=float)
    b = np.asarray(b, dtype=float)
    e0 = constants['E0']

    with np.errstate(divide='ignore', invalid='ignore'):
        u = np.pi / b
        sin_u = np.sin(u)
        g = u / (e0 * sin_u)
        dg_du = (sin_u - u * np.cos(u)) / (e0 * sin_u ** 2)
        dg_db = dg_du * (-np.pi / b ** 2)
        grad = -(constants['tau'] / constants['T']) * height * dg_db / (1.0 - height * g)

    return grad


def stretch_factor_lower_bound(max_height, constants=None, margin=DOMAIN_MARGIN,
                               upper=1e6):
    """
    Smallest admissible stretch factor for a section reaching max_height.

    For b > 1, g(b) decreases monotonically from +inf towards 1/E0, so the
    log argument stays positive up to max_height iff b is above the root of
    max_height * g(b) = 1 - margin.

    Parameters
    ----------
    max_height : float
        Highest height the curve must be evaluated at (m)
    constants : dict, optional
    margin : float
        Distance kept from the edge of the domain in log-argument units
    upper : float
        Upper end of the root bracket

    Returns
    -------
    float
        Lower bound on b (at least just above 1). NaN if no b is admissible,
        i.e. max_height is at or beyond E0.
    """
    if constants is None:
        constants = SUBSIDENCE_CONSTANTS

    floor = 1.0 + 1e-9
    if max_height <= 0:
        return floor

    def excess(b):
        return float(max_height * _stretch_term(b, constants['E0'])) - (1.0 - margin)

    if excess(upper) >= 0:
        return np.nan

    return brentq(excess, floor, upper, xtol=1e-12)
