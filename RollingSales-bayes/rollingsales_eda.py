"""Exploratory summaries of the modeling features, by borough.

- borough_summary(): counts, missing prices, medians
- ols_price_by_land(): log price ~ land_sqft_z per borough (statsmodels OLS)
- eda_charts(): log-price histogram and log-price vs land area scatter with OLS lines
"""

import numpy as np
import pandas as pd
import matplotlib.pyplot as plt
import statsmodels.api as sm

from rollingsales_charts import BOROUGH_COLORS, MARKERS, save_chart, setup_chart_style
from rollingsales_config import BOROUGHS


def _log_price(features):
    """Log price from either features (sale_price) or imputed data (price_log)."""
    if 'price_log' in features.columns:
        return features['price_log'].astype(float)
    return np.log(features['sale_price'].astype(float))


def borough_summary(features):
    """One row per borough (in code order), including boroughs with no rows."""
    df = features.assign(log_price=_log_price(features))
    price_col = 'sale_price' if 'sale_price' in df.columns else 'log_price'
    rows = []
    for borough in BOROUGHS:
        sub = df[df['borough'] == borough]
        rows.append({
            'borough': borough,
            'n_sales': len(sub),
            'n_missing_price': int(sub[price_col].isna().sum()),
            'median_sale_price': np.exp(sub['log_price'].median()),
            'median_log_price': sub['log_price'].median(),
            'median_land_sqft': sub['land_sqft'].median(),
            'median_gross_sqft': sub['gross_sqft'].median(),
            'median_age': sub['age'].median(),
        })
    summary = pd.DataFrame(rows).set_index('borough')

    print(f"\n{'='*70}")
    print(f"BOROUGH SUMMARY")
    print(f"{'='*70}")
    print(summary.to_string(float_format=lambda v: f"{v:,.2f}"))
    print(f"{'='*70}")
    return summary


def ols_price_by_land(features):
    """Per-borough OLS of log price on land_sqft_z. Boroughs with < 3 priced rows get NaN."""
    df = features.assign(log_price=_log_price(features))
    rows = []
    for borough in BOROUGHS:
        sub = df[(df['borough'] == borough) & df['log_price'].notna()]
        row = {'borough': borough, 'n': len(sub), 'intercept': np.nan, 'slope': np.nan, 'r_squared': np.nan}
        if len(sub) >= 3 and sub['land_sqft_z'].nunique() > 1:
            exog = sm.add_constant(sub['land_sqft_z'].to_numpy(dtype=np.float64), has_constant='add')
            res = sm.OLS(sub['log_price'].to_numpy(dtype=np.float64), exog).fit()
            row.update(intercept=float(res.params[0]), slope=float(res.params[1]),
                       r_squared=float(res.rsquared))
        rows.append(row)
    table = pd.DataFrame(rows).set_index('borough')

    print(f"\n  OLS log price ~ land_sqft_z, by borough:")
    for borough, row in table.iterrows():
        if np.isnan(row['slope']):
            print(f"    {borough:<14} n={int(row['n']):>7,}  (too few rows)")
        else:
            print(f"    {borough:<14} n={int(row['n']):>7,}  b0={row['intercept']:>7.3f}  "
                  f"b1={row['slope']:>7.3f}  R²={row['r_squared']:.3f}")
    return table


def eda_charts(features, ols_table, output_dir):
    """Write log-price histogram and land-area scatter. Returns list of paths."""
    setup_chart_style()
    df = features.assign(log_price=_log_price(features))
    df = df[df['log_price'].notna()]
    paths = []

    fig, ax = plt.subplots(figsize=(10, 6))
    bins = np.linspace(df['log_price'].min(), df['log_price'].max(), 40) if len(df) > 1 else 10
    for borough in BOROUGHS:
        vals = df.loc[df['borough'] == borough, 'log_price']
        if len(vals):
            ax.hist(vals, bins=bins, alpha=0.5, color=BOROUGH_COLORS[borough], label=borough.title())
    ax.set_xlabel('Log sale price')
    ax.set_ylabel('Sales')
    ax.set_title('Log Sale Price by Borough')
    ax.legend(loc='upper right')
    paths.append(save_chart(fig, output_dir, 'eda_log_price_hist.png'))

    fig, ax = plt.subplots(figsize=(10, 6))
    for i, borough in enumerate(BOROUGHS):
        sub = df[df['borough'] == borough]
        if sub.empty:
            continue
        color = BOROUGH_COLORS[borough]
        ax.scatter(sub['land_sqft_z'], sub['log_price'], s=12, alpha=0.4, color=color,
                   marker=MARKERS[i], label=borough.title())
        row = ols_table.loc[borough]
        if not np.isnan(row['slope']):
            xs = np.linspace(sub['land_sqft_z'].min(), sub['land_sqft_z'].max(), 50)
            ax.plot(xs, row['intercept'] + row['slope'] * xs, color=color, linewidth=2)
    ax.set_xlabel('Land square feet (standardized)')
    ax.set_ylabel('Log sale price')
    ax.set_title('Log Sale Price vs Land Area, OLS by Borough')
    ax.legend(loc='lower right')
    paths.append(save_chart(fig, output_dir, 'eda_land_scatter.png'))
    return paths

"""MIT License

Creative Commons CC-BY-SA 4.0 2026 Diego Aguilar-Canabal"""
