"""Load, normalize, merge and filter the five borough rolling sales CSVs.

Uses pandas.read_csv() with every column read as text so that type coercion
happens in one place (normalize_columns). Malformed cells become missing;
no row is dropped until filter_residential(), which keeps whole residential
buildings only:

1. APARTMENT.NUMBER is a single blank space (no unit number)
2. ADDRESS contains no comma (single address, not a multi-lot filing)
3. BUILDING.CLASS.AT.TIME.OF.SALE is not a rental class
4. BUILDING.CLASS.AT.TIME.OF.SALE contains one of A, B, C, D, R
"""

import numpy as np
import pandas as pd
from pathlib import Path

from rollingsales_config import (
    ADDRESS_COL, APARTMENT_COL, BOROUGH_CODES, BOROUGH_FILES, BOROUGHS, CLASS_AT_SALE_COL,
    CURRENCY_COLUMNS, DATE_COLUMNS, DATE_FORMAT, NUMERIC_COLUMNS, REQUIRED_COLUMNS, STRING_COLUMNS,
)


def load_borough_csv(filepath):
    """Read one rolling sales CSV as text columns."""
    filepath = Path(filepath)
    if not filepath.exists():
        raise FileNotFoundError(f"Input CSV file not found: {filepath}")
    df = pd.read_csv(filepath, dtype=str, low_memory=False, on_bad_lines='warn')
    missing = [c for c in REQUIRED_COLUMNS if c not in df.columns]
    if missing:
        raise ValueError(
            f"{filepath.name} missing required columns {missing}. "
            f"Found: {df.columns.tolist()}"
        )
    print(f"  {filepath.name}: {len(df):,} rows loaded, {len(df.columns)} columns")
    return df


def load_boroughs(data_dir, files=None):
    """Load all five borough files from data_dir. Returns {borough: DataFrame}."""
    files = files or BOROUGH_FILES
    data_dir = Path(data_dir)
    print(f"Loading rolling sales from: {data_dir}")
    return {borough: load_borough_csv(data_dir / filename) for borough, filename in files.items()}


def to_numeric_stripped(series):
    """Strip '$' and ',' then parse as float (NaN if unparseable)."""
    cleaned = series.astype("string").str.replace(r"[$,]", "", regex=True).str.strip()
    return pd.to_numeric(cleaned, errors='coerce').astype(float)


def normalize_columns(df, numeric=NUMERIC_COLUMNS, strings=STRING_COLUMNS,
                      currency=CURRENCY_COLUMNS, dates=DATE_COLUMNS):
    """Coerce declared columns to consistent types. Cells that do not parse become missing.

    numeric  -> float
    strings  -> pandas string dtype (missing stays <NA>)
    currency -> '$' and ',' stripped, then float
    dates    -> datetime from MM/DD/YY
    """
    declared = list(numeric) + list(strings) + list(currency) + list(dates)
    if len(set(declared)) != len(declared):
        raise ValueError("Normalizer column sets must be disjoint")
    missing = [c for c in declared if c not in df.columns]
    if missing:
        raise ValueError(f"Cannot normalize: missing columns {missing}. Found: {df.columns.tolist()}")

    df = df.copy()
    for col in numeric:
        df[col] = pd.to_numeric(df[col], errors='coerce').astype(float)
    for col in strings:
        df[col] = df[col].astype("string")
    for col in currency:
        df[col] = to_numeric_stripped(df[col])
    for col in dates:
        df[col] = pd.to_datetime(df[col], format=DATE_FORMAT, errors='coerce')
    # inf from strings like "1e999" counts as unparseable
    num_cols = list(numeric) + list(currency)
    df[num_cols] = df[num_cols].replace([np.inf, -np.inf], np.nan)
    return df


def borough_label(key):
    """Map a borough name or DOF code (1-5) to its label; None if unrecognized."""
    if key is None:
        return None
    text = str(key).strip().lower()
    if text in BOROUGHS:
        return text
    if text.replace(" ", "") == "statenisland":
        return "staten island"
    try:
        return BOROUGH_CODES.get(int(float(text)))
    except ValueError:
        return None


def merge_boroughs(tables):
    """Concatenate normalized tables and label each row with its source borough.

    tables: {borough name or code: DataFrame}. Unrecognized keys give a missing label.
    """
    frames = []
    for key, df in tables.items():
        label = borough_label(key)
        if label is None:
            print(f"  WARNING: unrecognized borough key {key!r}; {len(df):,} rows get a missing borough label")
        frames.append(df.assign(borough=label))
    merged = pd.concat(frames, ignore_index=True)
    merged['borough'] = pd.Categorical(merged['borough'], categories=BOROUGHS)
    print(f"  Merged: {len(merged):,} rows from {len(frames)} tables")
    return merged


def filter_residential(df, config, dropped_path=None):
    """Keep whole residential buildings. Returns (df_kept, drop_counts).

    drop_counts is a Series of rows failing each rule (a row can fail several);
    dropped rows carry their first failing rule in drop_reason when exported.
    """
    class_at_sale = df[CLASS_AT_SALE_COL].astype("string").str.strip()
    class_chars = "[" + "".join(config.residential_class_chars) + "]"

    rules = [
        ("apartment number present", ~(df[APARTMENT_COL] == " ").fillna(False)),
        ("multi-address filing", df[ADDRESS_COL].str.contains(",", regex=False).fillna(False)),
        ("rental building class", class_at_sale.isin(config.excluded_building_classes).fillna(False)),
        ("non-residential class", ~class_at_sale.str.contains(class_chars, regex=True).fillna(False)),
        ("unknown borough", df['borough'].isna()),
    ]
    fail = pd.DataFrame({name: mask.astype(bool).values for name, mask in rules}, index=df.index)
    any_fail = fail.any(axis=1)

    df_kept = df[~any_fail].copy()
    drop_counts = fail.sum()

    total_rows = len(df)
    total_kept = len(df_kept)

    def pct(n):
        return 100 * n / total_rows if total_rows else 0.0

    print(f"\n{'='*70}")
    print(f"RESIDENTIAL FILTER RESULTS")
    print(f"{'='*70}")
    print(f"Total rows merged:                {total_rows:>10,}")
    print(f"  Rows kept:                      {total_kept:>10,} ({pct(total_kept):>5.1f}%)")
    print(f"  ─────────────────────────────────────────────")
    for name, count in drop_counts.items():
        print(f"  Fails: {name:<25}{count:>10,} ({pct(count):>5.1f}%)")
    print(f"{'='*70}")

    if dropped_path is not None and any_fail.any():
        df_dropped = df[any_fail].copy()
        # First failing rule in rule order
        df_dropped['drop_reason'] = fail[any_fail].idxmax(axis=1)
        df_dropped.to_csv(dropped_path, index=False)
        print(f"  Dropped rows exported: {dropped_path}")

    return df_kept, drop_counts

"""MIT License

Creative Commons CC-BY-SA 4.0 2026 Diego Aguilar-Canabal"""
