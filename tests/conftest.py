"""Shared fixtures: synthetic rolling sales tables and hand-built posterior draws."""

import matplotlib

matplotlib.use("Agg")

import numpy as np
import pandas as pd
import pytest

from rollingsales_bayes import BayesFit, _readonly, design_matrix
from rollingsales_config import AnalysisConfig, BOROUGH_CODES, REQUIRED_COLUMNS, SamplerConfig
from rollingsales_report import run_pipeline

BASE_ROW = {
    'BOROUGH': '1',
    'RESIDENTIAL.UNITS': '2',
    'COMMERCIAL.UNITS': '0',
    'TOTAL.UNITS': '2',
    'YEAR.BUILT': '1925',
    'ZIP.CODE': '10001',
    'ADDRESS': '100 MAIN STREET',
    'APARTMENT.NUMBER': ' ',
    'BUILDING.CLASS.AT.TIME.OF.SALE': 'A1',
    'SALE.PRICE': '$1,250,000',
    'LAND.SQUARE.FEET': '2,000',
    'GROSS.SQUARE.FEET': '3,200',
    'SALE.DATE': '03/15/17',
}

# Two whole residential buildings per borough; bronx and staten island each have one missing price
SYNTHETIC_ROWS = {
    'manhattan': [
        {'SALE.PRICE': '$45,000,000', 'LAND.SQUARE.FEET': '8,500', 'GROSS.SQUARE.FEET': '21,000',
         'TOTAL.UNITS': '12', 'YEAR.BUILT': '1910', 'BUILDING.CLASS.AT.TIME.OF.SALE': 'C0'},
        {'SALE.PRICE': '$9,800,000', 'LAND.SQUARE.FEET': '2,100', 'GROSS.SQUARE.FEET': '5,400',
         'TOTAL.UNITS': '3', 'YEAR.BUILT': '1899', 'BUILDING.CLASS.AT.TIME.OF.SALE': 'B1'},
    ],
    'bronx': [
        {'SALE.PRICE': '$640,000', 'LAND.SQUARE.FEET': '2,375', 'GROSS.SQUARE.FEET': '2,800',
         'TOTAL.UNITS': '2', 'YEAR.BUILT': '1931', 'BUILDING.CLASS.AT.TIME.OF.SALE': 'B2'},
        {'SALE.PRICE': ' -  ', 'LAND.SQUARE.FEET': '1,900', 'GROSS.SQUARE.FEET': '1,650',
         'TOTAL.UNITS': '1', 'YEAR.BUILT': '1950', 'BUILDING.CLASS.AT.TIME.OF.SALE': 'A5'},
    ],
    'brooklyn': [
        {'SALE.PRICE': '$2,450,000', 'LAND.SQUARE.FEET': '2,000', 'GROSS.SQUARE.FEET': '3,600',
         'TOTAL.UNITS': '3', 'YEAR.BUILT': '1901', 'BUILDING.CLASS.AT.TIME.OF.SALE': 'C0'},
        {'SALE.PRICE': '$1,375,000', 'LAND.SQUARE.FEET': '1,600', 'GROSS.SQUARE.FEET': '2,400',
         'TOTAL.UNITS': '2', 'YEAR.BUILT': '1920', 'BUILDING.CLASS.AT.TIME.OF.SALE': 'B3'},
    ],
    'queens': [
        {'SALE.PRICE': '$1,120,000', 'LAND.SQUARE.FEET': '4,000', 'GROSS.SQUARE.FEET': '2,300',
         'TOTAL.UNITS': '2', 'YEAR.BUILT': '1940', 'BUILDING.CLASS.AT.TIME.OF.SALE': 'B2'},
        {'SALE.PRICE': '$870,000', 'LAND.SQUARE.FEET': '3,100', 'GROSS.SQUARE.FEET': '1,500',
         'TOTAL.UNITS': '1', 'YEAR.BUILT': '1955', 'BUILDING.CLASS.AT.TIME.OF.SALE': 'A1'},
    ],
    'staten island': [
        {'SALE.PRICE': '$0', 'LAND.SQUARE.FEET': '5,200', 'GROSS.SQUARE.FEET': '1,800',
         'TOTAL.UNITS': '1', 'YEAR.BUILT': '1975', 'BUILDING.CLASS.AT.TIME.OF.SALE': 'A2'},
        {'SALE.PRICE': '$615,000', 'LAND.SQUARE.FEET': '3,300', 'GROSS.SQUARE.FEET': '2,050',
         'TOTAL.UNITS': '2', 'YEAR.BUILT': '1988', 'BUILDING.CLASS.AT.TIME.OF.SALE': 'B9'},
    ],
}

TEST_SAMPLER = SamplerConfig(draws=200, tune=300, chains=2, cores=1, progressbar=False)


def raw_frame(rows, borough_code='1'):
    """Text-typed rolling sales frame as read_csv(dtype=str) would return it."""
    records = []
    for i, overrides in enumerate(rows):
        row = dict(BASE_ROW, BOROUGH=borough_code, ADDRESS=f'{100 + i} MAIN STREET')
        row.update(overrides)
        records.append(row)
    return pd.DataFrame(records, columns=REQUIRED_COLUMNS)


@pytest.fixture
def raw_row():
    return dict(BASE_ROW)


@pytest.fixture
def make_raw_frame():
    return raw_frame


@pytest.fixture
def synthetic_tables():
    codes = {name: str(code) for code, name in BOROUGH_CODES.items()}
    return {name: raw_frame(rows, codes[name]) for name, rows in SYNTHETIC_ROWS.items()}


@pytest.fixture
def test_config():
    return AnalysisConfig(sampler=TEST_SAMPLER, predictive_check_draws=100)


@pytest.fixture(scope="session")
def pipeline_run(tmp_path_factory):
    """End-to-end pipeline on the ten synthetic rows, run once per session."""
    codes = {name: str(code) for code, name in BOROUGH_CODES.items()}
    tables = {name: raw_frame(rows, codes[name]) for name, rows in SYNTHETIC_ROWS.items()}
    config = AnalysisConfig(sampler=TEST_SAMPLER, predictive_check_draws=100)
    output_dir = tmp_path_factory.mktemp("report")
    results = run_pipeline(tables, config, output_dir)
    return results, config, output_dir


# Known coefficient means for hand-built interaction-model draws
TRUE_COEFS = {
    'land_sqft_z': 0.30,
    'gross_sqft_z': 0.20,
    'units_centered': 0.05,
    'age': -0.002,
    'borough[bronx]': -1.6,
    'borough[brooklyn]': -0.9,
    'borough[queens]': -1.3,
    'borough[staten island]': -1.5,
    'land_sqft_z:borough[bronx]': -0.10,
    'land_sqft_z:borough[brooklyn]': -0.05,
    'land_sqft_z:borough[queens]': -0.20,
    'land_sqft_z:borough[staten island]': -0.15,
}


def hand_built_fit(interaction=True, n_draws=400, seed=0, spread=0.02):
    frame = pd.DataFrame({'land_sqft_z': [0.0], 'gross_sqft_z': [0.0], 'units_centered': [0.0],
                          'age': [0.0], 'borough': ['manhattan']})
    columns = tuple(design_matrix(frame, interaction).columns)
    rng = np.random.default_rng(seed)
    means = np.array([TRUE_COEFS[c] for c in columns])
    beta = means + spread * rng.standard_normal((n_draws, len(columns)))
    return BayesFit(
        name='interaction' if interaction else 'simple',
        columns=columns,
        interaction=interaction,
        intercept=_readonly(13.5 + spread * rng.standard_normal(n_draws)),
        beta=_readonly(beta),
        sigma=_readonly(np.full(n_draws, 0.4)),
        n_obs=0,
    )


@pytest.fixture
def interaction_fit():
    return hand_built_fit(interaction=True)


@pytest.fixture
def simple_fit():
    return hand_built_fit(interaction=False)


@pytest.fixture
def model_frame():
    """Modeling rows (post-imputation shape) across all boroughs."""
    rng = np.random.default_rng(7)
    boroughs = ['manhattan'] * 6 + ['bronx'] * 4 + ['brooklyn'] * 4 + ['queens'] * 4 + ['staten island'] * 4
    n = len(boroughs)
    return pd.DataFrame({
        'borough': pd.Categorical(boroughs, categories=list(BOROUGH_CODES.values())),
        'land_sqft_z': rng.normal(0, 1, n),
        'gross_sqft_z': rng.normal(0, 1, n),
        'units_centered': rng.integers(-1, 4, n).astype(float),
        'age': rng.integers(20, 120, n).astype(float),
        'price_log': [18.2, 17.9, 17.6, 17.0, 16.4, 15.8] + list(rng.normal(13.5, 0.5, n - 6)),
    })
