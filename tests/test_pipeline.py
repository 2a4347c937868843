"""End-to-end pipeline, report output, configuration and the command-line entry point."""

import sys

import numpy as np
import pytest

import rollingsales_report
from rollingsales_bayes import fit_bayes_linear, impute_log_price
from rollingsales_config import AnalysisConfig, SamplerConfig, default_cores
from rollingsales_report import run_pipeline, write_report


# ---------------------------------------------------------------------------
# End-to-end on ten synthetic rows
# ---------------------------------------------------------------------------

def test_ten_rows_in_ten_rows_out(pipeline_run):
    results, _, _ = pipeline_run
    assert results['n_rows_merged'] == 10
    assert len(results['filtered']) == 10
    assert len(results['features']) == 10
    assert len(results['data']) == 10


def test_no_missing_price_log_after_imputation(pipeline_run):
    results, _, _ = pipeline_run
    data = results['data']
    assert 'sale_price' not in data.columns
    assert data['price_log'].notna().all()
    assert np.isfinite(data['price_log']).all()
    assert int(data['price_imputed'].sum()) == 2


def test_observed_rows_keep_exact_log_price(pipeline_run):
    results, _, _ = pipeline_run
    features, data = results['features'], results['data']
    observed = features['sale_price'].notna()
    np.testing.assert_array_equal(data.loc[observed, 'price_log'], np.log(features.loc[observed, 'sale_price']))
    assert not data.loc[observed, 'price_imputed'].any()


def test_imputed_prices_are_plausible(pipeline_run):
    results, _, _ = pipeline_run
    data = results['data']
    imputed = data.loc[data['price_imputed'], 'price_log']
    observed = data.loc[~data['price_imputed'], 'price_log']
    assert (imputed > observed.min() - 5).all()
    assert (imputed < observed.max() + 5).all()


def test_both_models_fitted(pipeline_run):
    results, config, _ = pipeline_run
    fits = results['fits']
    assert set(fits) == {'simple', 'interaction'}
    assert len(fits['simple'].columns) == 8
    assert len(fits['interaction'].columns) == 12
    n_draws = config.sampler.draws * config.sampler.chains
    assert fits['interaction'].n_draws == n_draws
    assert (fits['simple'].sigma > 0).all()
    assert list(results['coefficients']['interaction'].index[[0, -1]]) == ['(Intercept)', 'sigma']


def test_coefficients_reproducible_with_same_seed(pipeline_run):
    results, config, _ = pipeline_run
    data = results['data']
    refit = fit_bayes_linear("simple", data, data['price_log'], config, interaction=False)
    np.testing.assert_allclose(refit.beta, results['fits']['simple'].beta)
    np.testing.assert_allclose(refit.intercept, results['fits']['simple'].intercept)
    np.testing.assert_allclose(refit.sigma, results['fits']['simple'].sigma)


def test_imputation_reproducible_with_same_seed(pipeline_run):
    results, config, _ = pipeline_run
    first, _ = impute_log_price(results['features'], config)
    second, _ = impute_log_price(results['features'], config)
    np.testing.assert_array_equal(first['price_log'], second['price_log'])
    np.testing.assert_array_equal(first['price_log'], results['data']['price_log'])


def test_pipeline_rerun_gives_same_fits(pipeline_run, synthetic_tables):
    results, config, _ = pipeline_run
    rerun = run_pipeline(synthetic_tables, config)
    np.testing.assert_array_equal(rerun['data']['price_log'], results['data']['price_log'])
    pairs = [(rerun['imputation_fit'], results['imputation_fit'])]
    pairs += [(rerun['fits'][name], results['fits'][name]) for name in ('simple', 'interaction')]
    for again, first in pairs:
        np.testing.assert_allclose(again.intercept, first.intercept)
        np.testing.assert_allclose(again.beta, first.beta)
        np.testing.assert_allclose(again.sigma, first.sigma)
    assert rerun['counterfactual']['mean_difference'] == pytest.approx(results['counterfactual']['mean_difference'])


def test_counterfactual_and_ppc_in_results(pipeline_run):
    results, _, _ = pipeline_run
    # the $45M manhattan sale is the only one above the log price threshold
    assert results['counterfactual']['n_records'] == 1
    assert results['ppc']['n_draws'] == 100
    assert results['ppc']['n_obs'] == 10


def test_figures_and_report_written(pipeline_run):
    results, config, output_dir = pipeline_run
    names = {p.name for p in results['figures']}
    assert names == {'eda_log_price_hist.png', 'eda_land_scatter.png', 'ppc_density.png',
                     'counterfactual_manhattan_queens.png'}
    report = write_report(results, config, output_dir / 'rollingsales_report.md')
    text = report.read_text()
    assert text.startswith('# NYC Rolling Sales')
    assert '![Posterior predictive check](ppc_density.png)' in text
    assert '### interaction' in text


# ---------------------------------------------------------------------------
# Configuration
# ---------------------------------------------------------------------------

def test_sampler_rejects_unknown_method():
    with pytest.raises(ValueError, match="nuts"):
        SamplerConfig(method="metropolis")


def test_sampler_rejects_zero_draws():
    with pytest.raises(ValueError):
        SamplerConfig(draws=0)


def test_counterfactual_borough_validated():
    with pytest.raises(ValueError, match="hoboken"):
        AnalysisConfig(counterfactual_to="hoboken")


def test_cores_from_environment(monkeypatch):
    monkeypatch.setenv("ROLLINGSALES_CORES", "2")
    assert default_cores() == 2
    assert SamplerConfig().cores == 2
    monkeypatch.setenv("ROLLINGSALES_CORES", "many")
    with pytest.raises(ValueError, match="ROLLINGSALES_CORES"):
        default_cores()
    monkeypatch.delenv("ROLLINGSALES_CORES")
    assert default_cores() == 4


# ---------------------------------------------------------------------------
# Entry point
# ---------------------------------------------------------------------------

def test_main_exits_on_missing_data_dir(monkeypatch, tmp_path, capsys):
    monkeypatch.setattr(sys, 'argv', ['rollingsales_report.py', str(tmp_path / 'nowhere')])
    with pytest.raises(SystemExit) as exc:
        rollingsales_report.main()
    assert exc.value.code == 1
    assert 'Data directory not found' in capsys.readouterr().err


def test_main_exits_on_missing_borough_file(monkeypatch, tmp_path, capsys):
    monkeypatch.setattr(sys, 'argv', ['rollingsales_report.py', str(tmp_path)])
    with pytest.raises(SystemExit) as exc:
        rollingsales_report.main()
    assert exc.value.code == 1
    assert 'rollingsales_manhattan.csv' in capsys.readouterr().err
