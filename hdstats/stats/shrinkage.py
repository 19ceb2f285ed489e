"""
Empirical Bayes variance shrinkage for gene-wise linear models.

Each gene j has a residual variance s²_j on d degrees of freedom. Assuming
s²_j ~ s₀² F(d, d₀), the prior (s₀², d₀) is estimated by moments of log s²_j
and every variance is shrunk towards s₀²:

    s̃²_j = (d₀ s₀² + d s²_j) / (d₀ + d)

The moderated t-statistic then uses s̃²_j with d + d₀ degrees of freedom.
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import Optional, Sequence, Union

import numpy as np
import pandas as pd
from loguru import logger
from scipy import stats
from scipy.special import digamma, polygamma

from hdstats.stats.multitest import benjamini_hochberg

ArrayLike = Union[Sequence[float], np.ndarray]


def trigamma(x):
    return polygamma(1, x)


def trigamma_inverse(x: ArrayLike, tol: float = 1e-8, max_iter: int = 50) -> np.ndarray:
    """Solve trigamma(y) = x for y > 0 by Newton iteration."""
    x = np.atleast_1d(np.asarray(x, dtype=float))
    if np.any(x <= 0):
        raise ValueError("trigamma_inverse is defined for positive arguments only")

    y = np.empty_like(x)
    large = x > 1e7
    small = x < 1e-6
    mid = ~(large | small)
    y[large] = 1.0 / np.sqrt(x[large])
    y[small] = 1.0 / x[small]

    if np.any(mid):
        xm = x[mid]
        ym = 0.5 + 1.0 / xm
        for _ in range(max_iter):
            tri = trigamma(ym)
            dif = tri * (1.0 - tri / xm) / polygamma(2, ym)
            ym = ym + dif
            if np.max(-dif / ym) < tol:
                break
        else:
            logger.warning("trigamma_inverse: Newton iteration did not converge")
        y[mid] = ym
    return y


@dataclass(frozen=True)
class PriorVariance:
    s0_squared: float
    d0: float  # np.inf when there is no extra variability across genes


def fit_f_dist(s2: ArrayLike, df: Union[float, ArrayLike]) -> PriorVariance:
    """
    Moment estimate of the scaled-F prior for sample variances.

    Args:
        s2: Per-gene residual variances
        df: Residual degrees of freedom (scalar or per gene)
    """
    s2 = np.asarray(s2, dtype=float).ravel()
    df = np.broadcast_to(np.asarray(df, dtype=float), s2.shape)

    ok = np.isfinite(s2) & np.isfinite(df) & (df > 0) & (s2 >= 0)
    s2, df = s2[ok], df[ok]
    if s2.size < 2:
        raise ValueError("Need at least two finite variances to estimate a prior")

    positive = s2[s2 > 0]
    if positive.size == 0:
        raise ValueError("All variances are zero")
    # floor exact zeros so log() stays finite
    s2 = np.maximum(s2, 1e-5 * np.median(positive))

    z = np.log(s2)
    e = z - digamma(df / 2) + np.log(df / 2)
    emean = float(np.mean(e))
    evar = float(np.var(e, ddof=1) - np.mean(trigamma(df / 2)))

    if evar > 0:
        d0 = float(2.0 * trigamma_inverse(evar)[0])
        s0_sq = float(np.exp(emean + digamma(d0 / 2) - np.log(d0 / 2)))
    else:
        logger.debug("fit_f_dist: no excess variability across features, prior df is infinite")
        d0 = np.inf
        s0_sq = float(np.mean(s2))

    return PriorVariance(s0_squared=s0_sq, d0=d0)


def squeeze_var(
    s2: ArrayLike, df: Union[float, ArrayLike], prior: Optional[PriorVariance] = None
) -> tuple[np.ndarray, PriorVariance]:
    """Posterior (shrunken) variances and the prior they were shrunk towards."""
    s2 = np.asarray(s2, dtype=float).ravel()
    prior = prior or fit_f_dist(s2, df)
    df = np.broadcast_to(np.asarray(df, dtype=float), s2.shape)

    if np.isinf(prior.d0):
        post = np.full_like(s2, prior.s0_squared)
    else:
        post = (prior.d0 * prior.s0_squared + df * s2) / (prior.d0 + df)
    return post, prior


def _group_masks(groups: Sequence, n_samples: int) -> tuple[np.ndarray, np.ndarray, list]:
    labels = np.asarray(groups)
    if labels.size != n_samples:
        raise ValueError(f"groups has {labels.size} labels for {n_samples} samples")
    levels = list(pd.unique(labels))
    if len(levels) != 2:
        raise ValueError(f"Exactly two groups are required, got {len(levels)}: {levels}")
    return labels == levels[0], labels == levels[1], levels


def moderated_t_test(expr: Union[np.ndarray, pd.DataFrame], groups: Sequence) -> pd.DataFrame:
    """
    Two-group moderated t-test, one row per gene.

    Args:
        expr: Expression matrix, genes x samples (DataFrame index = gene ids)
        groups: Group label for each sample (two distinct values)

    The contrast is second group minus first group, in order of appearance.
    """
    index = expr.index if isinstance(expr, pd.DataFrame) else None
    Y = np.asarray(expr, dtype=float)
    if Y.ndim != 2:
        raise ValueError("expr must be a genes x samples matrix")

    g1, g2, levels = _group_masks(groups, Y.shape[1])
    n1, n2 = int(g1.sum()), int(g2.sum())
    if n1 < 1 or n2 < 1 or n1 + n2 < 3:
        raise ValueError("Need at least 3 samples with one in each group")

    m1 = Y[:, g1].mean(axis=1)
    m2 = Y[:, g2].mean(axis=1)
    rss = ((Y[:, g1] - m1[:, None]) ** 2).sum(axis=1) + ((Y[:, g2] - m2[:, None]) ** 2).sum(axis=1)
    d = n1 + n2 - 2
    s2 = rss / d
    unscaled = np.sqrt(1.0 / n1 + 1.0 / n2)
    coef = m2 - m1

    post, prior = squeeze_var(s2, d)
    df_total = min(d + prior.d0, d * Y.shape[0])

    t_mod = coef / (np.sqrt(post) * unscaled)
    p_mod = 2 * stats.t.sf(np.abs(t_mod), df_total)

    with np.errstate(divide="ignore", invalid="ignore"):
        t_ord = coef / (np.sqrt(s2) * unscaled)
    p_ord = 2 * stats.t.sf(np.abs(t_ord), d)

    logger.debug(
        f"moderated_t_test: genes={Y.shape[0]} d={d} d0={prior.d0:.3g} s0^2={prior.s0_squared:.4g}"
    )

    out = pd.DataFrame(
        {
            "log_fc": coef,
            "ave_expr": Y.mean(axis=1),
            "s2": s2,
            "s2_post": post,
            "t": t_mod,
            "p_value": p_mod,
            "adj_p_value": benjamini_hochberg(p_mod),
            "t_ordinary": t_ord,
            "p_value_ordinary": p_ord,
        },
        index=index,
    )
    out.attrs.update(
        {
            "d0": prior.d0,
            "s0_squared": prior.s0_squared,
            "df_residual": d,
            "df_total": df_total,
            "contrast": f"{levels[1]} - {levels[0]}",
        }
    )
    return out.sort_values("p_value", kind="mergesort")
