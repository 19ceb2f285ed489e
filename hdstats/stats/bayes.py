"""
Bayesian shrinkage regression.

Bayesian Lasso: Laplace (double-exponential) prior on standardized
coefficients, scaled by the noise level, with a Gamma hyperprior on the
rate. Posterior draws come from PyMC's NUTS sampler.
"""

from __future__ import annotations

from typing import Any, Dict, List, Optional

import numpy as np
import pymc as pm
from loguru import logger

from hdstats.config import Settings, settings as default_settings
from hdstats.stats.design import standardize


def bayesian_lasso(
    X: np.ndarray,
    y: np.ndarray,
    feature_names: Optional[List[str]] = None,
    draws: Optional[int] = None,
    tune: Optional[int] = None,
    chains: Optional[int] = None,
    seed: Optional[int] = None,
    cfg: Optional[Settings] = None,
) -> Dict[str, Any]:
    """
    Posterior summary of a Bayesian Lasso fit.

    Coefficients are reported on the original feature scale: posterior mean,
    standard deviation and the central 95% credible interval.
    """
    cfg = cfg or default_settings
    X = np.asarray(X, dtype=float)
    y = np.asarray(y, dtype=float).ravel()
    n, p = X.shape
    names = feature_names or [f"x{j}" for j in range(p)]

    x_mean, x_scale = standardize(X)
    Xs = (X - x_mean) / x_scale
    y_mean = float(y.mean())
    yc = y - y_mean
    y_sd = float(yc.std()) or 1.0

    with pm.Model():
        lam = pm.Gamma("lam", alpha=1.0, beta=1.0)
        sigma = pm.HalfCauchy("sigma", beta=y_sd)
        beta = pm.Laplace("beta", mu=0.0, b=sigma / lam, shape=p)
        pm.Normal("y_obs", mu=pm.math.dot(Xs, beta), sigma=sigma, observed=yc)

        idata = pm.sample(
            draws=draws or cfg.mcmc_draws,
            tune=tune if tune is not None else cfg.mcmc_tune,
            chains=chains or cfg.mcmc_chains,
            cores=1,
            random_seed=cfg.random_seed if seed is None else seed,
            progressbar=False,
            return_inferencedata=True,
        )

    samples = idata.posterior["beta"].values.reshape(-1, p) / x_scale[None, :]
    intercepts = y_mean - samples @ x_mean
    divergences = int(idata.sample_stats["diverging"].values.sum())
    if divergences:
        logger.warning(f"bayesian_lasso: {divergences} divergent transitions; consider more tuning steps")

    lo, hi = np.percentile(samples, [2.5, 97.5], axis=0)
    return {
        "n": n,
        "p": p,
        "n_draws": int(samples.shape[0]),
        "divergences": divergences,
        "intercept": float(intercepts.mean()),
        "lambda_posterior_mean": float(idata.posterior["lam"].values.mean()),
        "sigma_posterior_mean": float(idata.posterior["sigma"].values.mean()),
        "coefficients": {
            name: {
                "mean": float(samples[:, j].mean()),
                "sd": float(samples[:, j].std(ddof=1)),
                "ci_lower": float(lo[j]),
                "ci_upper": float(hi[j]),
            }
            for j, name in enumerate(names)
        },
    }
