#!/usr/bin/env python3
"""NYC rolling sales report: log sale price of whole residential buildings by borough.

Pipeline (strictly sequential):
1. load the five borough CSVs (rollingsales_<borough>.csv)
2. normalize column types, merge with a borough label
3. keep whole residential buildings
4. build features (z-scored areas, centered units, age)
5. EDA by borough
6. impute missing prices (Bayesian posterior predictive mean)
7. fit simple and interaction models
8. posterior predictive check and manhattan -> queens counterfactual

Usage: python rollingsales_report.py [DATA_DIR] [OUTPUT_DIR]
DATA_DIR defaults to this script's directory; OUTPUT_DIR defaults to DATA_DIR.
"""

import sys
from pathlib import Path

import numpy as np

from rollingsales_bayes import coefficient_table, fit_price_models, impute_log_price
from rollingsales_checks import borough_counterfactual, posterior_predictive_check
from rollingsales_clean import filter_residential, load_boroughs, merge_boroughs, normalize_columns
from rollingsales_config import AnalysisConfig
from rollingsales_eda import borough_summary, eda_charts, ols_price_by_land
from rollingsales_features import build_features

REPORT_FILENAME = "rollingsales_report.md"
DROPPED_FILENAME = "rollingsales_dropped.csv"


def run_pipeline(tables, config=None, output_dir=None, dropped_path=None):
    """Run normalize -> ... -> evaluation on loaded tables ({borough: raw DataFrame}).

    Figures are written only when output_dir is given. Returns a results dict.
    """
    config = config or AnalysisConfig()
    figures = []

    normalized = {key: normalize_columns(df) for key, df in tables.items()}
    merged = merge_boroughs(normalized)
    filtered, drop_counts = filter_residential(merged, config, dropped_path=dropped_path)
    features, scaling = build_features(filtered, config)
    if features.empty:
        raise RuntimeError("No rows left after filtering and feature building")

    eda_summary = borough_summary(features)
    eda_ols = ols_price_by_land(features)
    if output_dir is not None:
        figures += eda_charts(features, eda_ols, output_dir)

    data, imputation_fit = impute_log_price(features, config)
    fits = fit_price_models(data, config)

    ppc = posterior_predictive_check(fits['interaction'], data, config, output_dir)
    counterfactual = borough_counterfactual(fits['interaction'], data, config, output_dir)
    figures += [p for p in (ppc['figure'], counterfactual['figure']) if p is not None]

    return {
        'n_rows_merged': len(merged),
        'drop_counts': drop_counts,
        'filtered': filtered,
        'features': features,
        'scaling': scaling,
        'eda_summary': eda_summary,
        'eda_ols': eda_ols,
        'data': data,
        'imputation_fit': imputation_fit,
        'fits': fits,
        'coefficients': {name: coefficient_table(fit) for name, fit in fits.items()},
        'ppc': ppc,
        'counterfactual': counterfactual,
        'figures': figures,
    }


def _block(df, float_format="{:,.3f}".format):
    return "```\n" + df.to_string(float_format=float_format) + "\n```\n"


def write_report(results, config, output_path):
    """Write the Markdown report. Figures are linked by file name (same directory)."""
    output_path = Path(output_path)
    data = results['data']
    ppc = results['ppc']
    cf = results['counterfactual']
    lines = [
        "# NYC Rolling Sales: Log Sale Price by Borough\n",
        "## Data\n",
        f"- Rows merged: {results['n_rows_merged']:,}",
        f"- Whole residential buildings kept: {len(results['filtered']):,}",
        f"- Rows modeled: {len(data):,} ({int(data['price_imputed'].sum()):,} prices imputed)",
        f"- Reference year for age: {config.reference_year}\n",
        "Rows failing each filter rule:\n",
        "```\n" + results['drop_counts'].to_string() + "\n```\n",
        "## Exploratory summary\n",
        _block(results['eda_summary'], "{:,.2f}".format),
        "OLS of log price on standardized land area, by borough:\n",
        _block(results['eda_ols']),
        "![Log price histogram](eda_log_price_hist.png)\n",
        "![Log price vs land area](eda_land_scatter.png)\n",
        "## Models\n",
        f"Sampler: {config.sampler.method.upper()}, {config.sampler.chains} chains x "
        f"{config.sampler.draws} draws, seed {config.random_seed}.\n",
    ]
    for name, table in results['coefficients'].items():
        fit = results['fits'][name]
        lines += [f"### {name} (divergences: {fit.divergences})\n", _block(table[['mean', 'se', 'median', 'mad_sd']])]

    lines += [
        "## Posterior predictive check\n",
        f"Observed mean {ppc['observed_mean']:.3f} (sd {ppc['observed_sd']:.3f}); replicated mean "
        f"{ppc['replicated_mean']:.3f} (sd {ppc['replicated_sd']:.3f}) over {ppc['n_draws']} draws. "
        f"Share of replicated means above observed: {ppc['share_rep_mean_above_observed']:.2f}.\n",
    ]
    if ppc['figure'] is not None:
        lines.append(f"![Posterior predictive check]({Path(ppc['figure']).name})\n")

    lines.append(f"## Counterfactual: {cf['from']} as {cf['to']}\n")
    if cf['n_records'] == 0:
        lines.append(f"No {cf['from']} sales with log price at or above {config.log_price_threshold}.\n")
    else:
        lines.append(
            f"{cf['n_records']:,} {cf['from']} sales with log price at or above {config.log_price_threshold}. "
            f"Mean log difference {cf['mean_difference']:.3f} (90% interval {cf['q05']:.3f} to {cf['q95']:.3f}), "
            f"a price ratio of about {np.exp(cf['mean_difference']):.2f}x.\n"
        )
        if cf['figure'] is not None:
            lines.append(f"![Counterfactual]({Path(cf['figure']).name})\n")

    output_path.write_text("\n".join(lines))
    print(f"  Saved: {output_path}")
    return output_path


def main():
    """
    Main entry point for the script.
    """
    data_dir = Path(sys.argv[1]) if len(sys.argv) >= 2 else Path(__file__).parent
    output_dir = Path(sys.argv[2]) if len(sys.argv) >= 3 else data_dir

    try:
        if not data_dir.is_dir():
            raise FileNotFoundError(f"Data directory not found: {data_dir}")
        config = AnalysisConfig()
        tables = load_boroughs(data_dir)
        output_dir.mkdir(parents=True, exist_ok=True)
        results = run_pipeline(tables, config, output_dir, dropped_path=output_dir / DROPPED_FILENAME)
        report_path = write_report(results, config, output_dir / REPORT_FILENAME)
        print(f"\nOutput saved to: {report_path}")
    except Exception as e:
        print(f"Error: {e}", file=sys.stderr)
        sys.exit(1)


if __name__ == "__main__":
    main()

"""MIT License

Creative Commons CC-BY-SA 4.0 2026 Diego Aguilar-Canabal"""
