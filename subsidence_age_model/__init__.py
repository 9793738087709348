"""
Subsidence Age Model Package
=============================

Bayesian age-height models for stratigraphic sections deposited during
post-rift thermal subsidence.

Core Innovation: bootstrap-and-refit calibration. Every iteration resamples
the observations within their uncertainties, removes draws that violate
superposition, fits the two-parameter subsidence curve with a quadratic
(Laplace) approximation and keeps one posterior draw. The draws together
form the composite posterior used for all reported ages and durations.

Modules:
    config            - Paths, physical constants, priors, bootstrap settings
    data_loading      - Read, validate and export tables
    sampling          - Per-observation age/height resampling
    superposition     - Direction-alternating superposition filter
    subsidence_model  - Thermal subsidence age curve
    quadratic_fit     - MAP fit and Laplace approximation
    bootstrap         - Orchestration of the bootstrap loop
    posterior_summary - Median/HDI ages and correlated durations
    visualization     - Plotting
    main              - Full pipeline

Quick Start:
    >>> from subsidence_age_model import load_observations_from_csv, run_bootstrap, summarize
    >>> obs = load_observations_from_csv('observations.csv')
    >>> posterior = run_bootstrap(obs)['posterior']
    >>> summarize(500.0, posterior)
"""

__version__ = '0.1.0'

from .config import (
    COLS, PHYSICAL_CONSTANTS, SUBSIDENCE_CONSTANTS, DEFAULT_PRIORS,
    N_BOOTSTRAP, RANDOM_SEED, derive_subsidence_constants, print_config_summary
)

from .exceptions import (
    AgeModelError,
    ConfigurationError,
    DataError,
    FitConvergenceError,
    NumericalWarning
)

from .data_loading import (
    load_observations_from_csv,
    validate_observations,
    validate_query_heights,
    make_height_grid,
    summarize_observations,
    export_results
)

from .sampling import sample_observation, resample_observations

from .superposition import filter_superposition

from .subsidence_model import mean_age, stretch_factor_lower_bound

from .quadratic_fit import (
    log_posterior,
    fit_quadratic_approximation,
    draw_posterior_sample
)

from .bootstrap import (
    make_prior_state,
    update_prior_state,
    run_bootstrap
)

from .posterior_summary import (
    summarize,
    summarize_heights,
    correlated_difference,
    independent_difference,
    summarize_difference,
    estimate_interval_duration,
    summarize_parameters
)

from .main import run_full_analysis, quick_start
