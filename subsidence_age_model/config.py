"""
Configuration settings for the Subsidence Age Model
====================================================

This module contains all paths, physical constants, priors and bootstrap
parameters for the analysis. Users should modify the PATHS section for their
specific system.

Project: Thermal-Subsidence Age Model - Bootstrap Bayesian Calibration
"""

import os
import math
from pathlib import Path

# ============================================================================
# PATHS - USER MODIFIES THESE FOR THEIR SYSTEM
# ============================================================================

# Observation table (CSV with one row per dated horizon)
OBSERVATIONS_CSV_PATH = r"data/observations.csv"

# Output directory (will be created if it doesn't exist)
OUTPUT_DIR = r"outputs"

# ============================================================================
# COLUMN NAME MAPPING
# ============================================================================
# Column names in the observation table (case-sensitive!)

COLS = {
    'height': 'height',          # Stratigraphic height of the horizon (m)
    'height_unc': 'range',       # Height uncertainty, full width (m)
    'age': 'age',                # Measured age (Ma)
    'age_unc': 'ageUnc',         # Age uncertainty, 95% half-width (Ma)
    'shape': 'type',             # Height uncertainty shape: 'normal' or other -> uniform
}

# Tag in the shape column that selects a Gaussian height distribution.
# Any other value selects a uniform distribution.
GAUSSIAN_SHAPE_TAG = 'normal'

# ============================================================================
# PHYSICAL CONSTANTS
# ============================================================================
# McKenzie (1978) uniform-stretching model, sediment-loaded.
# Units: SI unless noted.

PHYSICAL_CONSTANTS = {
    'lithosphere_thickness': 125.0e3,   # m
    'mantle_density': 3330.0,           # kg/m^3
    'infill_density': 2500.0,           # kg/m^3 (sediment load)
    'thermal_diffusivity': 8.0e-7,      # m^2/s
    'mantle_temperature': 1333.0,       # deg C
    'thermal_expansion': 3.28e-5,       # 1/deg C (volumetric)
    'seconds_per_myr': 1.0e6 * 365.25 * 24 * 3600,
}

# ============================================================================
# PRIORS AND FIT PARAMETERS
# ============================================================================

# Starting priors for the bootstrap. a_mean and b_mean drift to the previous
# iteration's draw; the spreads never change.
DEFAULT_PRIORS = {
    'a_mean': 817.0,    # Age at height zero (Ma)
    'a_sigma': 5.0,
    'b_mean': 1.3,      # Stretch factor (beta)
    'b_sigma': 0.2,
}

# sigma ~ Uniform(lower, upper)
SIGMA_PRIOR_BOUNDS = (0.0, 10.0)

# Fixed starting point for every local optimisation
FIT_START = {
    'a': 817.0,
    'b': 1.3,
    'sigma': 5.0,
}

# Keep the optimiser this far (in log-argument units) from the edge of the
# curve's domain at the highest filtered height
DOMAIN_MARGIN = 1e-6

# Smallest sigma (Myr) the optimiser may visit (the prior allows 0, the likelihood does not)
SIGMA_FLOOR = 1e-3

# L-BFGS-B options (scipy defaults for ftol/gtol)
OPTIMIZER_OPTIONS = {
    'maxiter': 2000,
    'maxfun': 10000,
}

# Relative finite-difference step for the Hessian
HESSIAN_REL_STEP = 1e-4
HESSIAN_MIN_STEP = 1e-5

# ============================================================================
# BOOTSTRAP PARAMETERS
# ============================================================================

# Random seed for reproducibility
RANDOM_SEED = 42

# Number of bootstrap iterations (one posterior draw each)
N_BOOTSTRAP = 7500

# Minimum filtered sequence length for a well-posed fit
MIN_FILTERED_POINTS = 2

# Fresh-sampling retries for an iteration whose filter or fit fails
MAX_ITERATION_RETRIES = 50

# ============================================================================
# QUERY AND SUMMARY PARAMETERS
# ============================================================================

# Dense query grid spacing (m)
HEIGHT_GRID_STEP = 5.0

# Probability mass of reported highest-density intervals
INTERVAL_PROB = 0.95

# Heights bracketing an interval whose duration is of interest
# (base, top). None disables the duration estimate in the full pipeline.
INTERVAL_HEIGHTS = None

# ============================================================================
# VISUALIZATION PARAMETERS
# ============================================================================

PLOT_STYLE = 'seaborn-v0_8-whitegrid'

PLOT_PARAMS = {
    'font.size': 12,
    'axes.labelsize': 14,
    'axes.titlesize': 16,
    'legend.fontsize': 11,
    'figure.dpi': 150,
    'savefig.dpi': 300,
    'savefig.bbox': 'tight',
    'figure.figsize': (10, 6),
}

COLORS = {
    'observation': '#2c3e50',
    'median': '#c0392b',
    'interval': '#e74c3c',
    'correlated': '#3498db',
    'independent': '#95a5a6',
}


# ============================================================================
# HELPER FUNCTIONS
# ============================================================================

def derive_subsidence_constants(physical_constants=None):
    """
    Combine the physical constants into the two scalars used by the curve.

    E0 = 4 L rho_m alpha T_m / (pi^2 (rho_m - rho_infill))
    tau = L^2 / (pi^2 kappa)

    Parameters
    ----------
    physical_constants : dict, optional
        Same keys as PHYSICAL_CONSTANTS. Defaults to PHYSICAL_CONSTANTS.

    Returns
    -------
    dict
        E0 (m), tau (s), T (s per model time unit)
    """
    if physical_constants is None:
        physical_constants = PHYSICAL_CONSTANTS

    L = physical_constants['lithosphere_thickness']
    rho_m = physical_constants['mantle_density']
    rho_i = physical_constants['infill_density']
    kappa = physical_constants['thermal_diffusivity']
    t_m = physical_constants['mantle_temperature']
    alpha = physical_constants['thermal_expansion']

    if rho_m <= rho_i:
        raise ValueError("mantle_density must exceed infill_density")

    e0 = 4 * L * rho_m * alpha * t_m / (math.pi ** 2 * (rho_m - rho_i))
    tau = L ** 2 / (math.pi ** 2 * kappa)

    return {
        'E0': e0,
        'tau': tau,
        'T': physical_constants['seconds_per_myr'],
    }


# Computed once; treated as immutable for the rest of the run
SUBSIDENCE_CONSTANTS = derive_subsidence_constants()


def get_default_priors():
    """Return a fresh copy of the starting priors."""
    return dict(DEFAULT_PRIORS)


def ensure_output_dir(output_dir=None):
    """Create output directory if it doesn't exist."""
    output_dir = output_dir or OUTPUT_DIR
    Path(output_dir).mkdir(parents=True, exist_ok=True)
    return output_dir


def print_config_summary():
    """Print summary of current configuration."""
    print("=" * 60)
    print("SUBSIDENCE AGE MODEL - Configuration Summary")
    print("=" * 60)
    exists = "✓" if os.path.exists(OBSERVATIONS_CSV_PATH) else "✗"
    print(f"\nObservations: [{exists}] {OBSERVATIONS_CSV_PATH}")
    print(f"\nDerived constants:")
    print(f"  E0:  {SUBSIDENCE_CONSTANTS['E0']:.1f} m")
    print(f"  tau: {SUBSIDENCE_CONSTANTS['tau'] / SUBSIDENCE_CONSTANTS['T']:.2f} Myr")
    print(f"\nPriors: a ~ N({DEFAULT_PRIORS['a_mean']}, {DEFAULT_PRIORS['a_sigma']}), "
          f"b ~ N({DEFAULT_PRIORS['b_mean']}, {DEFAULT_PRIORS['b_sigma']}), "
          f"sigma ~ U{SIGMA_PRIOR_BOUNDS}")
    print(f"Bootstrap: {N_BOOTSTRAP} iterations, seed {RANDOM_SEED}")
    print(f"Output Directory: {OUTPUT_DIR}")
    print("=" * 60)


if __name__ == "__main__":
    print_config_summary()
