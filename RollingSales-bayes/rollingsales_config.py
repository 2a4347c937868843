"""Analysis constants and configuration for the NYC rolling sales report.

Column names follow the CSV headers as exported from the DOF rolling sales
workbooks (spaces replaced with dots).
"""

import os
from dataclasses import dataclass, field

# Boroughs in DOF code order (BOROUGH column: 1=Manhattan ... 5=Staten Island)
BOROUGHS = ["manhattan", "bronx", "brooklyn", "queens", "staten island"]
BOROUGH_CODES = {i + 1: name for i, name in enumerate(BOROUGHS)}

# Default input file per borough, looked up in the data directory
BOROUGH_FILES = {
    "manhattan": "rollingsales_manhattan.csv",
    "bronx": "rollingsales_bronx.csv",
    "brooklyn": "rollingsales_brooklyn.csv",
    "queens": "rollingsales_queens.csv",
    "staten island": "rollingsales_statenisland.csv",
}

# Column names (from CSV header)
BOROUGH_COL = 'BOROUGH'
RES_UNITS_COL = 'RESIDENTIAL.UNITS'
COM_UNITS_COL = 'COMMERCIAL.UNITS'
TOTAL_UNITS_COL = 'TOTAL.UNITS'
LAND_SQFT_COL = 'LAND.SQUARE.FEET'
GROSS_SQFT_COL = 'GROSS.SQUARE.FEET'
YEAR_BUILT_COL = 'YEAR.BUILT'
ZIP_COL = 'ZIP.CODE'
ADDRESS_COL = 'ADDRESS'
APARTMENT_COL = 'APARTMENT.NUMBER'
CLASS_AT_SALE_COL = 'BUILDING.CLASS.AT.TIME.OF.SALE'
SALE_PRICE_COL = 'SALE.PRICE'
SALE_DATE_COL = 'SALE.DATE'

# Normalizer column sets (disjoint). Areas carry thousands separators like prices do.
NUMERIC_COLUMNS = [BOROUGH_COL, RES_UNITS_COL, COM_UNITS_COL, TOTAL_UNITS_COL, YEAR_BUILT_COL, ZIP_COL]
STRING_COLUMNS = [ADDRESS_COL, APARTMENT_COL, CLASS_AT_SALE_COL]
CURRENCY_COLUMNS = [SALE_PRICE_COL, LAND_SQFT_COL, GROSS_SQFT_COL]
DATE_COLUMNS = [SALE_DATE_COL]
DATE_FORMAT = "%m/%d/%y"

REQUIRED_COLUMNS = NUMERIC_COLUMNS + STRING_COLUMNS + CURRENCY_COLUMNS + DATE_COLUMNS

# Whole-building rental classes: walk-up and elevator rental apartments, condo rentals
EXCLUDED_BUILDING_CLASSES = (
    "C1", "C4", "C5", "C7", "C9",
    "D1", "D2", "D3", "D5", "D6", "D7", "D8", "D9",
    "RR",
)

# Feature Builder output names
FEATURE_COLUMNS = ["borough", "land_sqft_z", "gross_sqft_z", "units_centered", "age"]
PREDICTOR_COLUMNS = ["land_sqft_z", "gross_sqft_z", "units_centered", "age"]
INTERACTION_TERM = "land_sqft_z"


def default_cores():
    """Sampler cores from ROLLINGSALES_CORES, else 4."""
    raw = os.environ.get("ROLLINGSALES_CORES", "").strip()
    if not raw:
        return 4
    try:
        return max(int(raw), 1)
    except ValueError:
        raise ValueError(f"ROLLINGSALES_CORES must be an integer, got {raw!r}")


@dataclass(frozen=True)
class PriorConfig:
    """Weakly informative priors; autoscale multiplies scales by sd(y)/sd(x) as rstanarm does."""
    coef_mu: float = 0.0
    coef_sigma: float = 2.5
    intercept_mu: float = 0.0
    intercept_sigma: float = 2.5
    sigma_rate: float = 1.0
    autoscale: bool = True


@dataclass(frozen=True)
class SamplerConfig:
    draws: int = 1000
    tune: int = 1000
    chains: int = 4
    cores: int = field(default_factory=default_cores)
    method: str = "nuts"  # nuts | smc
    target_accept: float = 0.9
    progressbar: bool = True

    def __post_init__(self):
        if self.method not in ("nuts", "smc"):
            raise ValueError(f"Unknown sampler method {self.method!r}; expected 'nuts' or 'smc'")
        if self.draws < 1 or self.chains < 1:
            raise ValueError("Sampler needs at least one draw and one chain")


@dataclass(frozen=True)
class AnalysisConfig:
    reference_year: int = 2018
    log_price_threshold: float = 17.5
    excluded_building_classes: tuple = EXCLUDED_BUILDING_CLASSES
    residential_class_chars: str = "ABCDR"
    min_area_sqft: float = 100.0
    predictive_check_draws: int = 500
    counterfactual_from: str = "manhattan"
    counterfactual_to: str = "queens"
    random_seed: int = 2018
    priors: PriorConfig = field(default_factory=PriorConfig)
    sampler: SamplerConfig = field(default_factory=SamplerConfig)

    def __post_init__(self):
        for name in (self.counterfactual_from, self.counterfactual_to):
            if name not in BOROUGHS:
                raise ValueError(f"Counterfactual borough {name!r} not in {BOROUGHS}")

"""MIT License

Creative Commons CC-BY-SA 4.0 2026 Diego Aguilar-Canabal"""
