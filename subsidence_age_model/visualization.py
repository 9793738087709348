"""
Visualization Module for the Subsidence Age Model
==================================================

Plots for:
- The age-height model (median and highest-density band) with observations
- Marginal posteriors of a, b and sigma
- Correlated vs independent duration estimates
"""

import numpy as np
import matplotlib.pyplot as plt
from pathlib import Path

try:
    from .config import PLOT_STYLE, PLOT_PARAMS, COLORS, COLS, OUTPUT_DIR, ensure_output_dir
except ImportError:
    from config import PLOT_STYLE, PLOT_PARAMS, COLORS, COLS, OUTPUT_DIR, ensure_output_dir


# ============================================================================
# PLOT SETUP
# ============================================================================

def setup_plot_style():
    """Apply publication-quality plot settings."""
    try:
        plt.style.use(PLOT_STYLE)
    except OSError:
        plt.style.use('default')
    plt.rcParams.update(PLOT_PARAMS)


def get_figure_path(filename, output_dir=None, create_dir=True):
    """Get full path for saving figure."""
    output_dir = output_dir or OUTPUT_DIR
    if create_dir:
        ensure_output_dir(output_dir)
    return Path(output_dir) / filename


def _save(fig, save_path):
    if save_path:
        fig.savefig(save_path, dpi=300, bbox_inches='tight')
        print(f"Figure saved to: {save_path}")


# ============================================================================
# AGE MODEL
# ============================================================================

def plot_age_model(summary_df, observations=None, figsize=(7, 9), save_path=None):
    """
    Age-height model with its highest-density band.

    Height is on the vertical axis, as in a stratigraphic column.

    Parameters
    ----------
    summary_df : DataFrame
        Output of summarize_heights()
    observations : DataFrame, optional
        Observation table; plotted with its age and height error bars
    figsize : tuple
    save_path : str, optional

    Returns
    -------
    tuple
        (fig, ax)
    """
    setup_plot_style()
    fig, ax = plt.subplots(figsize=figsize)

    valid = summary_df.dropna(subset=['median_age'])
    ax.fill_betweenx(valid['height'], valid['age_min'], valid['age_max'],
                     color=COLORS['interval'], alpha=0.25, label='95% HDI')
    ax.plot(valid['median_age'], valid['height'], '-', linewidth=2,
            color=COLORS['median'], label='Median age')

    if observations is not None:
        ax.errorbar(observations[COLS['age']], observations[COLS['height']],
                    xerr=observations[COLS['age_unc']],
                    yerr=observations[COLS['height_unc']] / 2,
                    fmt='o', color=COLORS['observation'], ecolor=COLORS['observation'],
                    capsize=3, markersize=5, label='Observations')

    ax.invert_xaxis()
    ax.set_xlabel('Age (Ma)', fontsize=14)
    ax.set_ylabel('Height (m)', fontsize=14)
    ax.set_title('Thermal-Subsidence Age Model', fontsize=16, fontweight='bold')
    ax.legend(loc='best')

    plt.tight_layout()
    _save(fig, save_path)

    return fig, ax


def plot_parameter_posterior(posterior, bins=60, figsize=(14, 4), save_path=None):
    """
    Histograms of the composite posterior for each parameter.

    Returns
    -------
    tuple
        (fig, axes)
    """
    setup_plot_style()
    names = list(posterior.columns)
    fig, axes = plt.subplots(1, len(names), figsize=figsize)
    axes = np.atleast_1d(axes)

    labels = {'a': 'a (Ma)', 'b': 'b (stretch factor)', 'sigma': 'sigma (Myr)'}
    for ax, name in zip(axes, names):
        values = posterior[name].to_numpy(dtype=float)
        values = values[np.isfinite(values)]
        ax.hist(values, bins=bins, color='steelblue', edgecolor='navy', alpha=0.7)
        ax.axvline(np.median(values), color=COLORS['median'], linestyle='--', linewidth=2)
        ax.set_xlabel(labels.get(name, name), fontsize=13)
        ax.set_ylabel('Draws', fontsize=13)

    fig.suptitle(f'Composite Posterior (n = {len(posterior):,})', fontsize=16, fontweight='bold')
    plt.tight_layout()
    _save(fig, save_path)

    return fig, axes


def plot_duration_distribution(correlated, independent=None, bins=60,
                               figsize=(9, 5), save_path=None):
    """
    Compare the per-draw duration distribution with the naive one.

    Parameters
    ----------
    correlated : array-like
        Output of correlated_difference()
    independent : array-like, optional
        Output of independent_difference()

    Returns
    -------
    tuple
        (fig, ax)
    """
    setup_plot_style()
    fig, ax = plt.subplots(figsize=figsize)

    correlated = np.asarray(correlated, dtype=float)
    correlated = correlated[np.isfinite(correlated)]
    ax.hist(correlated, bins=bins, density=True, alpha=0.6,
            color=COLORS['correlated'], label='Per-draw (correlated)')

    if independent is not None:
        independent = np.asarray(independent, dtype=float)
        independent = independent[np.isfinite(independent)]
        ax.hist(independent, bins=bins, density=True, alpha=0.5,
                color=COLORS['independent'], label='Independent marginals')

    ax.set_xlabel('Duration (Myr)', fontsize=14)
    ax.set_ylabel('Density', fontsize=14)
    ax.set_title('Interval Duration', fontsize=16, fontweight='bold')
    ax.legend(loc='best')

    plt.tight_layout()
    _save(fig, save_path)

    return fig, ax
