"""
Subsidence Age Model - Main Orchestration Script
=================================================

Main entry point for building an age-height model for a stratigraphic
section. It can be run directly or the functions can be called
interactively in Spyder/IPython.

Usage:
    # Run full analysis
    python -m subsidence_age_model.main --data observations.csv

    # Or import and run steps interactively:
    from subsidence_age_model import load_observations_from_csv, run_bootstrap
    obs = load_observations_from_csv('observations.csv')
    results = run_bootstrap(obs, n_iterations=1000)
"""

import sys
import time
from pathlib import Path

# Add module directory to path if running directly
if __name__ == "__main__":
    sys.path.insert(0, str(Path(__file__).parent))

import numpy as np
import matplotlib.pyplot as plt

try:
    from .config import (
        OBSERVATIONS_CSV_PATH, OUTPUT_DIR, COLS, N_BOOTSTRAP, RANDOM_SEED,
        HEIGHT_GRID_STEP, INTERVAL_HEIGHTS, INTERVAL_PROB,
        ensure_output_dir, print_config_summary
    )
    from .data_loading import (
        load_observations_from_csv, validate_observations, validate_query_heights,
        make_height_grid, summarize_observations, export_results
    )
    from .exceptions import ConfigurationError
    from .bootstrap import run_bootstrap
    from .posterior_summary import (
        summarize_heights, summarize_parameters, correlated_difference,
        independent_difference, estimate_interval_duration
    )
    from .visualization import (
        setup_plot_style, get_figure_path, plot_age_model,
        plot_parameter_posterior, plot_duration_distribution
    )
    from .progress import AnalysisTimer, timed_step, print_step_header
except ImportError:
    from config import (
        OBSERVATIONS_CSV_PATH, OUTPUT_DIR, COLS, N_BOOTSTRAP, RANDOM_SEED,
        HEIGHT_GRID_STEP, INTERVAL_HEIGHTS, INTERVAL_PROB,
        ensure_output_dir, print_config_summary
    )
    from data_loading import (
        load_observations_from_csv, validate_observations, validate_query_heights,
        make_height_grid, summarize_observations, export_results
    )
    from exceptions import ConfigurationError
    from bootstrap import run_bootstrap
    from posterior_summary import (
        summarize_heights, summarize_parameters, correlated_difference,
        independent_difference, estimate_interval_duration
    )
    from visualization import (
        setup_plot_style, get_figure_path, plot_age_model,
        plot_parameter_posterior, plot_duration_distribution
    )
    from progress import AnalysisTimer, timed_step, print_step_header


def run_full_analysis(data_path=OBSERVATIONS_CSV_PATH, observations=None,
                      n_iterations=N_BOOTSTRAP, seed=RANDOM_SEED,
                      grid_step=HEIGHT_GRID_STEP, column_top=None,
                      interval_heights=INTERVAL_HEIGHTS, output_dir=None,
                      save_results=True, save_figures=True, verbose=True):
    """
    Run the complete pipeline: load, calibrate, summarise, export, plot.

    Parameters
    ----------
    data_path : str
        Observation CSV (ignored if observations is given)
    observations : DataFrame, optional
        Observation table already in memory
    n_iterations : int
        Bootstrap iterations
    seed : int
    grid_step : float
        Spacing of the dense query grid (m)
    column_top : float, optional
        Top of the dense grid; defaults to the highest observation
    interval_heights : tuple, optional
        (base, top) heights of an interval whose duration is estimated
    output_dir : str, optional
        Defaults to OUTPUT_DIR
    save_results, save_figures : bool
    verbose : bool

    Returns
    -------
    dict
        All results
    """
    timer = AnalysisTimer()
    output_dir = output_dir or OUTPUT_DIR
    total_steps = 5 if interval_heights is not None else 4

    if verbose:
        print("\n" + "=" * 70)
        print("SUBSIDENCE AGE MODEL - FULL PIPELINE")
        print("=" * 70)
        print(f"Started at: {time.strftime('%Y-%m-%d %H:%M:%S')}")
        print_config_summary()

    results = {}
    step = 0

    # Step 1: Load and validate
    step += 1
    if verbose:
        print_step_header(step, total_steps, "Loading Observations")
    with timed_step(timer, "Load observations", verbose):
        if observations is None:
            observations = load_observations_from_csv(data_path, verbose=verbose)
        else:
            observations = validate_observations(observations)
        results['observations'] = observations
        results['observation_stats'] = summarize_observations(observations, verbose=verbose)

        if column_top is None:
            column_top = float(observations[COLS['height']].max())
        # Query heights are checked here, before any bootstrap work
        grid = validate_query_heights(make_height_grid(column_top, grid_step))
        obs_heights = validate_query_heights(
            np.unique(observations[COLS['height']].to_numpy(dtype=float)))
        if interval_heights is not None:
            interval_heights = tuple(validate_query_heights(interval_heights))
            if len(interval_heights) != 2:
                raise ConfigurationError(
                    f"interval_heights must be (base, top), got {interval_heights}")

    # Step 2: Bootstrap calibration
    step += 1
    if verbose:
        print_step_header(step, total_steps, "Bootstrap Calibration")
    with timed_step(timer, "Bootstrap", verbose):
        boot = run_bootstrap(observations, n_iterations=n_iterations, seed=seed,
                             verbose=verbose)
        posterior = boot['posterior']
        results['bootstrap'] = boot
        results['posterior'] = posterior
        results['parameter_summary'] = summarize_parameters(posterior)

    # Step 3: Age summaries
    step += 1
    if verbose:
        print_step_header(step, total_steps, "Posterior Age Summaries")
    with timed_step(timer, "Summaries", verbose):
        results['grid_summary'] = summarize_heights(grid, posterior)
        results['observation_summary'] = summarize_heights(obs_heights, posterior)
        if verbose:
            print(results['parameter_summary'].to_string(index=False))

    # Step 4: Interval duration
    if interval_heights is not None:
        step += 1
        base, top = interval_heights
        if verbose:
            print_step_header(step, total_steps, f"Interval Duration ({base:g} - {top:g} m)")
        with timed_step(timer, "Duration", verbose):
            duration = estimate_interval_duration(base, top, posterior)
            results['duration'] = duration
            results['duration_draws'] = correlated_difference(base, top, posterior)
            results['duration_draws_independent'] = independent_difference(
                base, top, posterior, np.random.default_rng(seed))
            if verbose:
                print(f"  Duration: {duration['median']:.2f} Myr "
                      f"({INTERVAL_PROB:.0%} HDI {duration['lower_95']:.2f} - "
                      f"{duration['upper_95']:.2f})")

    # Final step: Export and plot
    step += 1
    if verbose:
        print_step_header(step, total_steps, "Export and Figures")
    with timed_step(timer, "Export", verbose):
        if save_results:
            ensure_output_dir(output_dir)
            results['written'] = export_results(results, output_dir, verbose=verbose)
        if save_figures:
            setup_plot_style()
            fig, _ = plot_age_model(results['grid_summary'], observations,
                                    save_path=get_figure_path('age_model.png', output_dir))
            plt.close(fig)
            fig, _ = plot_parameter_posterior(
                posterior, save_path=get_figure_path('parameter_posterior.png', output_dir))
            plt.close(fig)
            if 'duration_draws' in results:
                fig, _ = plot_duration_distribution(
                    results['duration_draws'], results['duration_draws_independent'],
                    save_path=get_figure_path('interval_duration.png', output_dir))
                plt.close(fig)

    results['timing'] = timer.summary(verbose=verbose)
    return results


def quick_start():
    """
    Quick start guide for interactive use.
    """
    print("""
SUBSIDENCE AGE MODEL - Quick Start Guide
========================================

1. Load observations (height, range, age, ageUnc, type):
   >>> obs = load_observations_from_csv('observations.csv')

2. Build the composite posterior:
   >>> boot = run_bootstrap(obs)                     # 7500 iterations, seed 42
   >>> boot = run_bootstrap(obs, n_iterations=500)   # quick look
   >>> posterior = boot['posterior']                  # columns a, b, sigma

3. Ages at query heights:
   >>> summarize(250.0, posterior)
   >>> summarize_heights(make_height_grid(2000, 5), posterior)

4. Duration between two heights:
   >>> estimate_interval_duration(1200, 1450, posterior)

5. Full pipeline with CSV export and figures:
   >>> run_full_analysis('observations.csv', interval_heights=(1200, 1450))

Tips:
- Physical constants and priors live in config.py
- Results are saved to OUTPUT_DIR specified in config.py
""")


# ============================================================================
# MAIN ENTRY POINT
# ============================================================================

if __name__ == "__main__":
    import argparse

    parser = argparse.ArgumentParser(description='Thermal-Subsidence Age Model')
    parser.add_argument('--data', default=OBSERVATIONS_CSV_PATH,
                        help='Observation CSV (default: config.OBSERVATIONS_CSV_PATH)')
    parser.add_argument('--iterations', type=int, default=N_BOOTSTRAP,
                        help=f'Bootstrap iterations (default: {N_BOOTSTRAP})')
    parser.add_argument('--seed', type=int, default=RANDOM_SEED,
                        help=f'Random seed (default: {RANDOM_SEED})')
    parser.add_argument('--grid-step', type=float, default=HEIGHT_GRID_STEP,
                        help='Query grid spacing in m')
    parser.add_argument('--top', type=float, default=None,
                        help='Top of the query grid (default: highest observation)')
    parser.add_argument('--interval', type=float, nargs=2, metavar=('BASE', 'TOP'),
                        help='Heights bracketing an interval whose duration is estimated')
    parser.add_argument('--output', default=OUTPUT_DIR, help='Output directory')
    parser.add_argument('--no-figures', action='store_true', help='Skip figures')
    parser.add_argument('--help-quick', action='store_true', help='Print quick start guide')

    args = parser.parse_args()

    if args.help_quick:
        quick_start()
    else:
        run_full_analysis(
            data_path=args.data,
            n_iterations=args.iterations,
            seed=args.seed,
            grid_step=args.grid_step,
            column_top=args.top,
            interval_heights=tuple(args.interval) if args.interval else None,
            output_dir=args.output,
            save_figures=not args.no_figures,
        )
