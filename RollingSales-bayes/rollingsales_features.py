"""Feature Builder: modeling columns for the log-price regressions.

Order matters for reproducibility:
1. select columns, drop rows without units or borough
2. drop land or gross area below the data-quality floor
3. z-score areas with mean/sd of the rows left after step 2
4. drop unknown year built (0 is the DOF sentinel)
5. age = reference year - year built
6. center total units on the rows left after step 4
"""

import numpy as np
import pandas as pd

from rollingsales_config import (
    BOROUGHS, GROSS_SQFT_COL, LAND_SQFT_COL, SALE_PRICE_COL, TOTAL_UNITS_COL, YEAR_BUILT_COL,
)

SELECT_COLUMNS = {
    TOTAL_UNITS_COL: 'total_units',
    LAND_SQFT_COL: 'land_sqft',
    GROSS_SQFT_COL: 'gross_sqft',
    YEAR_BUILT_COL: 'year_built',
    SALE_PRICE_COL: 'sale_price',
    'borough': 'borough',
}

OUTPUT_COLUMNS = [
    'borough', 'land_sqft_z', 'gross_sqft_z', 'units_centered', 'age', 'sale_price',
    'land_sqft', 'gross_sqft', 'total_units', 'year_built',
]


def zscore_params(series):
    """Sample mean and sd (ddof=1). sd falls back to 1.0 when undefined or zero."""
    mean = float(series.mean())
    sd = float(series.std(ddof=1))
    if not np.isfinite(sd) or sd <= 0:
        print(f"  WARNING: sd of {series.name} undefined or zero over {len(series)} rows; using 1.0")
        sd = 1.0
    return mean, sd


def build_features(df, config):
    """Build modeling features. Returns (features, scaling).

    scaling holds the means/sds used, e.g. scaling['land_sqft'] = (mean, sd).
    """
    missing = [c for c in SELECT_COLUMNS if c not in df.columns]
    if missing:
        raise ValueError(f"Feature builder missing columns {missing}. Found: {df.columns.tolist()}")

    feats = df[list(SELECT_COLUMNS)].rename(columns=SELECT_COLUMNS)
    n_start = len(feats)

    # Step 1: predictors must be present (price may be missing)
    has_predictors = feats['total_units'].notna() & feats['borough'].notna()
    feats = feats[has_predictors]
    n_missing_pred = n_start - len(feats)

    # Step 2: area floor (NaN areas fail the comparison and are dropped too)
    area_ok = (feats['land_sqft'] >= config.min_area_sqft) & (feats['gross_sqft'] >= config.min_area_sqft)
    feats = feats[area_ok].copy()
    n_small_area = int((~area_ok).sum())

    # Step 3: standardize on the area-filtered rows
    land_mean, land_sd = zscore_params(feats['land_sqft'])
    gross_mean, gross_sd = zscore_params(feats['gross_sqft'])
    feats['land_sqft_z'] = (feats['land_sqft'] - land_mean) / land_sd
    feats['gross_sqft_z'] = (feats['gross_sqft'] - gross_mean) / gross_sd

    # Step 4-5: known year built, age from the fixed reference year
    year_ok = feats['year_built'] > 0
    feats = feats[year_ok].copy()
    n_no_year = int((~year_ok).sum())
    feats['age'] = config.reference_year - feats['year_built']

    # Step 6: center units
    units_mean = float(feats['total_units'].mean()) if len(feats) else 0.0
    feats['units_centered'] = feats['total_units'] - units_mean

    # $0 and negative prices are deed transfers, not market sales
    non_positive = feats['sale_price'] <= 0
    feats.loc[non_positive, 'sale_price'] = np.nan
    feats['borough'] = pd.Categorical(feats['borough'].astype(object), categories=BOROUGHS)
    feats = feats[OUTPUT_COLUMNS].reset_index(drop=True)

    n_missing_price = int(feats['sale_price'].isna().sum())
    print(f"\n{'='*70}")
    print(f"FEATURE BUILDER")
    print(f"{'='*70}")
    print(f"Rows in:                          {n_start:>10,}")
    print(f"  Dropped (missing units/borough):{n_missing_pred:>10,}")
    print(f"  Dropped (area < {config.min_area_sqft:g} sq ft):   {n_small_area:>10,}")
    print(f"  Dropped (year built <= 0):      {n_no_year:>10,}")
    print(f"Rows out:                         {len(feats):>10,}")
    print(f"  Missing sale price:             {n_missing_price:>10,} ({int(non_positive.sum()):,} were <= $0)")
    print(f"  Land sq ft mean/sd:  {land_mean:>14,.1f} / {land_sd:,.1f}")
    print(f"  Gross sq ft mean/sd: {gross_mean:>14,.1f} / {gross_sd:,.1f}")
    print(f"  Total units mean:    {units_mean:>14,.2f}")
    print(f"{'='*70}")

    scaling = {
        'land_sqft': (land_mean, land_sd),
        'gross_sqft': (gross_mean, gross_sd),
        'total_units': units_mean,
        'reference_year': config.reference_year,
    }
    return feats, scaling

"""MIT License

Creative Commons CC-BY-SA 4.0 2026 Diego Aguilar-Canabal"""
