"""Bayesian linear regression of log sale price (pymc).

One model family serves three fits:
- imputation: log(price) ~ borough + land_z + gross_z + units_c + age, observed prices only
- simple:     same terms on price_log (observed + imputed)
- interaction: simple + land_z:borough

Priors are explicit (PriorConfig). With autoscale they match the rstanarm
defaults: beta ~ Normal(0, 2.5 * sd(y) / sd(x)), intercept on centered
predictors ~ Normal(mean(y), 2.5 * sd(y)), sigma ~ Exponential(1 / sd(y)).
"""

from dataclasses import dataclass

import numpy as np
import pandas as pd
import pymc as pm

from rollingsales_config import BOROUGHS, FEATURE_COLUMNS, INTERACTION_TERM, PREDICTOR_COLUMNS

REFERENCE_BOROUGH = BOROUGHS[0]


@dataclass(frozen=True)
class BayesFit:
    """Posterior draws of a fitted model. Arrays are read-only."""
    name: str
    columns: tuple
    interaction: bool
    intercept: np.ndarray  # (draws,) on the uncentered scale
    beta: np.ndarray       # (draws, len(columns))
    sigma: np.ndarray      # (draws,)
    n_obs: int
    divergences: int = 0

    @property
    def n_draws(self):
        return len(self.sigma)

    def draws_of(self, column):
        return self.beta[:, self.columns.index(column)]


def _readonly(arr):
    arr = np.ascontiguousarray(arr, dtype=np.float64)
    arr.setflags(write=False)
    return arr


def design_matrix(frame, interaction=False):
    """Predictors, borough dummies (manhattan is the reference) and optional land_z:borough terms."""
    missing = [c for c in FEATURE_COLUMNS if c not in frame.columns]
    if missing:
        raise ValueError(f"Design matrix missing columns {missing}. Found: {frame.columns.tolist()}")
    X = frame[PREDICTOR_COLUMNS].astype(float).copy()
    if X.isna().any().any():
        raise ValueError("Design matrix predictors contain missing values")
    labels = frame['borough'].astype(object)
    known = labels.isin(BOROUGHS)
    if not known.all():
        unknown = sorted(set(labels[~known].astype(str)))
        raise ValueError(f"Borough must be one of {BOROUGHS}, got {unknown}")
    borough = pd.Categorical(labels, categories=BOROUGHS)
    for level in BOROUGHS[1:]:
        X[f'borough[{level}]'] = (borough == level).astype(float)
    if interaction:
        for level in BOROUGHS[1:]:
            X[f'{INTERACTION_TERM}:borough[{level}]'] = X[INTERACTION_TERM] * X[f'borough[{level}]']
    return X


def prior_scales(X, y, priors):
    """Return (intercept_mu, intercept_sigma, coef_sigma array, sigma_rate)."""
    if not priors.autoscale:
        coef_sigma = np.full(X.shape[1], priors.coef_sigma)
        return priors.intercept_mu, priors.intercept_sigma, coef_sigma, priors.sigma_rate
    y_sd = float(np.std(y, ddof=1)) if len(y) > 1 else 1.0
    if not np.isfinite(y_sd) or y_sd <= 0:
        y_sd = 1.0
    x_sd = np.std(X, axis=0, ddof=1) if len(X) > 1 else np.ones(X.shape[1])
    # Constant columns (e.g. a borough absent from the data) get the unscaled-by-x prior
    x_sd = np.where(np.isfinite(x_sd) & (x_sd > 0), x_sd, 1.0)
    coef_sigma = priors.coef_sigma * y_sd / x_sd
    intercept_mu = priors.intercept_mu + float(np.mean(y))
    return intercept_mu, priors.intercept_sigma * y_sd, coef_sigma, priors.sigma_rate / y_sd


def _sample(sampler, seed):
    if sampler.method == "smc":
        return pm.sample_smc(draws=sampler.draws, chains=sampler.chains, cores=sampler.cores,
                             random_seed=seed, progressbar=sampler.progressbar,
                             compute_convergence_checks=False)
    return pm.sample(draws=sampler.draws, tune=sampler.tune, chains=sampler.chains, cores=sampler.cores,
                     target_accept=sampler.target_accept, random_seed=seed,
                     progressbar=sampler.progressbar, compute_convergence_checks=False)


def fit_bayes_linear(name, frame, y, config, interaction=False, seed=None):
    """Fit a Bayesian linear regression of y on the design matrix of frame. Returns BayesFit."""
    X = design_matrix(frame, interaction)
    x_arr = X.to_numpy(dtype=np.float64)
    y_arr = np.asarray(y, dtype=np.float64)
    if len(y_arr) != len(x_arr):
        raise ValueError(f"Outcome has {len(y_arr)} rows, design matrix has {len(x_arr)}")
    if len(y_arr) < 2 or not np.isfinite(y_arr).all():
        raise RuntimeError(f"[{name}] need at least 2 finite outcomes, got {np.isfinite(y_arr).sum()}")

    x_means = x_arr.mean(axis=0)
    x_centered = x_arr - x_means
    intercept_mu, intercept_sigma, coef_sigma, sigma_rate = prior_scales(x_arr, y_arr, config.priors)
    seed = config.random_seed if seed is None else seed

    print(f"      [FIT] {name}: {len(y_arr):,} obs, {X.shape[1]} coefficients, "
          f"{config.sampler.chains} chains x {config.sampler.draws} draws ({config.sampler.method.upper()})")
    with pm.Model(coords={"coef": list(X.columns)}):
        intercept_c = pm.Normal("intercept_centered", mu=intercept_mu, sigma=intercept_sigma)
        beta = pm.Normal("beta", mu=config.priors.coef_mu, sigma=coef_sigma, dims="coef")
        sigma = pm.Exponential("sigma", lam=sigma_rate)
        mu = intercept_c + pm.math.dot(x_centered, beta)
        pm.Normal("y", mu=mu, sigma=sigma, observed=y_arr)
        idata = _sample(config.sampler, seed)

    beta_draws = idata.posterior["beta"].values.reshape(-1, X.shape[1])
    intercept_c_draws = idata.posterior["intercept_centered"].values.flatten()
    sigma_draws = idata.posterior["sigma"].values.flatten()
    divergences = 0
    if hasattr(idata, "sample_stats") and "diverging" in idata.sample_stats:
        divergences = int(idata.sample_stats["diverging"].values.sum())
        if divergences:
            print(f"      [FIT] {name}: WARNING {divergences} divergent transitions")

    return BayesFit(
        name=name,
        columns=tuple(X.columns),
        interaction=interaction,
        intercept=_readonly(intercept_c_draws - beta_draws @ x_means),
        beta=_readonly(beta_draws),
        sigma=_readonly(sigma_draws),
        n_obs=len(y_arr),
        divergences=divergences,
    )


def posterior_linpred(fit, frame, draw_idx=None):
    """Linear predictor draws, shape (draws, rows)."""
    X = design_matrix(frame, fit.interaction)[list(fit.columns)].to_numpy(dtype=np.float64)
    intercept, beta = fit.intercept, fit.beta
    if draw_idx is not None:
        intercept, beta = intercept[draw_idx], beta[draw_idx]
    return intercept[:, None] + beta @ X.T


def posterior_predict(fit, frame, rng=None, draw_idx=None):
    """Posterior predictive draws (linear predictor + Normal noise), shape (draws, rows)."""
    rng = np.random.default_rng(rng)
    mu = posterior_linpred(fit, frame, draw_idx)
    sigma = fit.sigma if draw_idx is None else fit.sigma[draw_idx]
    return mu + sigma[:, None] * rng.standard_normal(mu.shape)


def coefficient_table(fit):
    """Posterior mean, se (posterior sd), median and MAD-SD per coefficient, plus sigma."""
    names = ['(Intercept)'] + list(fit.columns) + ['sigma']
    draws = np.column_stack([fit.intercept, fit.beta, fit.sigma])
    median = np.median(draws, axis=0)
    return pd.DataFrame({
        'mean': draws.mean(axis=0),
        'se': draws.std(axis=0, ddof=1),
        'median': median,
        'mad_sd': 1.4826 * np.median(np.abs(draws - median), axis=0),
        'q05': np.percentile(draws, 5, axis=0),
        'q95': np.percentile(draws, 95, axis=0),
    }, index=pd.Index(names, name='term'))


def print_coefficients(fit):
    table = coefficient_table(fit)
    print(f"\n  Model: {fit.name} (n={fit.n_obs:,}, draws={fit.n_draws:,}, divergences={fit.divergences})")
    print(table[['mean', 'se']].to_string(float_format=lambda v: f"{v:>9.3f}"))


def impute_log_price(features, config):
    """Replace sale_price with price_log; missing prices get the posterior predictive mean.

    Returns (data, fit). Observed rows keep log(price) exactly; no row is dropped.
    """
    observed = features['sale_price'].notna()
    missing = ~observed
    print(f"\n  [IMPUTE] {int(observed.sum()):,} observed prices, {int(missing.sum()):,} to impute")
    if observed.sum() < 2:
        raise RuntimeError("Need at least 2 observed sale prices to fit the imputation model")

    fit = fit_bayes_linear("imputation", features[observed],
                           np.log(features.loc[observed, 'sale_price']), config)

    price_log = np.log(features['sale_price'])
    if missing.any():
        yrep = posterior_predict(fit, features[missing], rng=config.random_seed)
        price_log[missing] = yrep.mean(axis=0)

    data = features.drop(columns=['sale_price']).assign(price_log=price_log, price_imputed=missing)
    print(f"  [IMPUTE] done: {int(data['price_log'].isna().sum())} missing price_log remain")
    return data, fit


def fit_price_models(data, config):
    """Fit the additive ('simple') and land-area x borough ('interaction') models."""
    if data['price_log'].isna().any():
        raise ValueError("price_log has missing values; run impute_log_price first")
    print(f"\n{'='*70}")
    print(f"MODEL FITTING")
    print(f"{'='*70}")
    fits = {
        'simple': fit_bayes_linear("simple", data, data['price_log'], config, interaction=False),
        'interaction': fit_bayes_linear("interaction", data, data['price_log'], config, interaction=True),
    }
    for fit in fits.values():
        print_coefficients(fit)
    return fits

"""MIT License

Creative Commons CC-BY-SA 4.0 2026 Diego Aguilar-Canabal"""
