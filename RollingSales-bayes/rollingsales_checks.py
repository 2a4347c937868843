"""Model evaluation: posterior predictive check and borough counterfactual.

Both use the interaction model (land_sqft_z:borough). Neither is a pass/fail
test; the figures and summary numbers go into the report.
"""

import numpy as np
import pandas as pd
import matplotlib.pyplot as plt
from numpy.linalg import LinAlgError
from scipy import stats as scipy_stats

from rollingsales_bayes import REFERENCE_BOROUGH, posterior_linpred, posterior_predict
from rollingsales_charts import COLORS, save_chart, setup_chart_style
from rollingsales_config import BOROUGHS, INTERACTION_TERM

KDE_GRID_POINTS = 200


def _kde(values, grid):
    """Gaussian KDE on grid; None when the sample is degenerate (fewer than 2 points or zero spread)."""
    values = values[np.isfinite(values)]
    if len(values) < 2 or np.ptp(values) == 0:
        return None
    try:
        return scipy_stats.gaussian_kde(values)(grid)
    except LinAlgError:
        return None


def posterior_predictive_check(fit, data, config, output_dir=None):
    """Compare observed price_log with replicated datasets from the posterior predictive.

    Returns a dict of summary statistics; 'figure' is the density overlay path (None without output_dir).
    """
    rng = np.random.default_rng(config.random_seed)
    n_sub = min(config.predictive_check_draws, fit.n_draws)
    draw_idx = np.sort(rng.choice(fit.n_draws, size=n_sub, replace=False))
    yrep = posterior_predict(fit, data, rng=rng, draw_idx=draw_idx)
    y = data['price_log'].to_numpy(dtype=np.float64)

    rep_means = yrep.mean(axis=1)
    rep_sds = yrep.std(axis=1, ddof=1) if yrep.shape[1] > 1 else np.zeros(n_sub)
    obs_sd = float(np.std(y, ddof=1)) if len(y) > 1 else 0.0
    summary = {
        'model': fit.name,
        'n_obs': len(y),
        'n_draws': n_sub,
        'observed_mean': float(np.mean(y)),
        'observed_sd': obs_sd,
        'observed_q05': float(np.percentile(y, 5)),
        'observed_q50': float(np.percentile(y, 50)),
        'observed_q95': float(np.percentile(y, 95)),
        'replicated_mean': float(rep_means.mean()),
        'replicated_sd': float(rep_sds.mean()),
        'replicated_q05': float(np.percentile(yrep, 5)),
        'replicated_q50': float(np.percentile(yrep, 50)),
        'replicated_q95': float(np.percentile(yrep, 95)),
        'share_rep_mean_above_observed': float(np.mean(rep_means > np.mean(y))),
        'share_rep_sd_above_observed': float(np.mean(rep_sds > obs_sd)),
        'figure': None,
    }

    print(f"\n{'='*70}")
    print(f"POSTERIOR PREDICTIVE CHECK ({fit.name}, {n_sub} draws)")
    print(f"{'='*70}")
    print(f"                 {'observed':>10} {'replicated':>11}")
    print(f"  mean           {summary['observed_mean']:>10.3f} {summary['replicated_mean']:>11.3f}")
    print(f"  sd             {summary['observed_sd']:>10.3f} {summary['replicated_sd']:>11.3f}")
    print(f"  5th pct        {summary['observed_q05']:>10.3f} {summary['replicated_q05']:>11.3f}")
    print(f"  median         {summary['observed_q50']:>10.3f} {summary['replicated_q50']:>11.3f}")
    print(f"  95th pct       {summary['observed_q95']:>10.3f} {summary['replicated_q95']:>11.3f}")
    print(f"  Share of replicated means above observed: {summary['share_rep_mean_above_observed']:.2f}")
    print(f"{'='*70}")

    if output_dir is not None:
        setup_chart_style()
        lo = min(np.min(y), np.percentile(yrep, 0.5))
        hi = max(np.max(y), np.percentile(yrep, 99.5))
        grid = np.linspace(lo, hi, KDE_GRID_POINTS)
        fig, ax = plt.subplots(figsize=(10, 6))
        labeled = False
        for row in yrep:
            dens = _kde(row, grid)
            if dens is None:
                continue
            ax.plot(grid, dens, color=COLORS['teal'], alpha=0.08, linewidth=0.6,
                    label=None if labeled else 'Replicated (y_rep)')
            labeled = True
        dens_obs = _kde(y, grid)
        if dens_obs is not None:
            ax.plot(grid, dens_obs, color='black', linewidth=2, label='Observed (y)')
        ax.set_xlabel('Log sale price')
        ax.set_ylabel('Density')
        ax.set_title(f'Posterior Predictive Check: {fit.name} model')
        ax.legend(loc='upper right')
        summary['figure'] = save_chart(fig, output_dir, 'ppc_density.png')

    return summary


def borough_effect_draws(fit, borough, z):
    """Per-draw contribution of borough at land_sqft_z = z, shape (draws, len(z))."""
    z = np.asarray(z, dtype=np.float64)
    effect = np.zeros((fit.n_draws, len(z)))
    if borough == REFERENCE_BOROUGH:
        return effect
    effect += fit.draws_of(f'borough[{borough}]')[:, None]
    if fit.interaction:
        effect += fit.draws_of(f'{INTERACTION_TERM}:borough[{borough}]')[:, None] * z[None, :]
    return effect


def borough_counterfactual(fit, data, config, output_dir=None):
    """Predict high-priced source-borough sales as if they were in the target borough.

    Differences are source minus target on the log scale, per draw and record.
    An empty subset gives n_records=0 and empty arrays.
    """
    src, dst = config.counterfactual_from, config.counterfactual_to
    subset = data[(data['borough'] == src) & (data['price_log'] >= config.log_price_threshold)]
    print(f"\n{'='*70}")
    print(f"COUNTERFACTUAL: {src} -> {dst} (price_log >= {config.log_price_threshold})")
    print(f"{'='*70}")

    result = {
        'from': src,
        'to': dst,
        'n_records': len(subset),
        'records': subset,
        'differences': np.empty((fit.n_draws, 0)),
        'expected_shift': np.empty(0),
        'mean_difference': float('nan'),
        'q05': float('nan'),
        'q95': float('nan'),
        'share_positive': float('nan'),
        'figure': None,
    }
    if subset.empty:
        print(f"  No {src} records at or above threshold; nothing to compare")
        print(f"{'='*70}")
        return result

    clone = subset.assign(borough=pd.Categorical([dst] * len(subset), categories=BOROUGHS))
    # Same draws on both sides, so the noise term cancels and only the linear predictor differs
    differences = posterior_linpred(fit, subset) - posterior_linpred(fit, clone)

    z = subset[INTERACTION_TERM].to_numpy(dtype=np.float64)
    expected_shift = (borough_effect_draws(fit, src, z) - borough_effect_draws(fit, dst, z)).mean(axis=0)

    result.update({
        'differences': differences,
        'expected_shift': expected_shift,
        'mean_difference': float(differences.mean()),
        'q05': float(np.percentile(differences, 5)),
        'q95': float(np.percentile(differences, 95)),
        'share_positive': float(np.mean(differences > 0)),
    })
    print(f"  Records:                        {len(subset):>10,}")
    print(f"  Mean difference (log):          {result['mean_difference']:>10.3f}")
    print(f"  90% interval:                   [{result['q05']:.3f}, {result['q95']:.3f}]")
    print(f"  Price ratio at mean:            {np.exp(result['mean_difference']):>10.2f}x")
    print(f"  Share of draws with {src} higher: {result['share_positive']:.2f}")
    print(f"{'='*70}")

    if output_dir is not None:
        setup_chart_style()
        fig, ax = plt.subplots(figsize=(10, 6))
        ax.hist(differences.ravel(), bins=50, color=COLORS['blue'], edgecolor='white', alpha=0.85)
        ax.axvline(0, color=COLORS['gray'], linestyle='--', linewidth=1)
        ax.axvline(result['mean_difference'], color=COLORS['orange'], linewidth=2,
                   label=f"Mean = {result['mean_difference']:.2f}")
        ax.set_xlabel(f'Log price difference ({src} minus {dst})')
        ax.set_ylabel('Draws x records')
        ax.set_title(f'Counterfactual: {src.title()} sales priced as {dst.title()}')
        ax.legend(loc='upper right')
        filename = f"counterfactual_{src.replace(' ', '')}_{dst.replace(' ', '')}.png"
        result['figure'] = save_chart(fig, output_dir, filename)

    return result

"""MIT License

Creative Commons CC-BY-SA 4.0 2026 Diego Aguilar-Canabal"""
