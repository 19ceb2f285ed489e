"""
Multiple-testing adjustment.

Concepts covered:
1. Bonferroni (family-wise error rate)
2. Holm step-down (family-wise error rate, uniformly more powerful)
3. Benjamini-Hochberg step-up (false discovery rate)

NaN p-values pass through unchanged and do not count towards m.
"""

from typing import Any, Dict, Sequence, Union

import numpy as np

ArrayLike = Union[Sequence[float], np.ndarray]

METHODS = ("bonferroni", "holm", "fdr_bh")
_ALIASES = {"bh": "fdr_bh", "fdr": "fdr_bh", "benjamini-hochberg": "fdr_bh", "bonf": "bonferroni"}


def _as_pvalues(p: ArrayLike) -> tuple[np.ndarray, np.ndarray]:
    p = np.asarray(p, dtype=float).ravel()
    finite = np.isfinite(p)
    if np.any((p[finite] < 0) | (p[finite] > 1)):
        raise ValueError("p-values must lie in [0, 1]")
    return p, finite


def bonferroni(p: ArrayLike) -> np.ndarray:
    p, finite = _as_pvalues(p)
    out = p.copy()
    out[finite] = np.minimum(1.0, finite.sum() * p[finite])
    return out


def holm(p: ArrayLike) -> np.ndarray:
    p, finite = _as_pvalues(p)
    out = p.copy()
    q = p[finite]
    m = q.size
    if m == 0:
        return out

    order = np.argsort(q, kind="mergesort")
    scaled = (m - np.arange(m)) * q[order]
    adj = np.minimum(1.0, np.maximum.accumulate(scaled))

    res = np.empty(m)
    res[order] = adj
    out[finite] = res
    return out


def benjamini_hochberg(p: ArrayLike) -> np.ndarray:
    """
    BH adjusted p-values: sort ascending, scale the i-th smallest by m / i,
    then take the running minimum from the largest rank down.
    """
    p, finite = _as_pvalues(p)
    out = p.copy()
    q = p[finite]
    m = q.size
    if m == 0:
        return out

    order = np.argsort(q, kind="mergesort")
    ranks = np.arange(1, m + 1)
    scaled = q[order] * m / ranks
    adj = np.minimum(1.0, np.minimum.accumulate(scaled[::-1])[::-1])

    res = np.empty(m)
    res[order] = adj
    out[finite] = res
    return out


def adjust_pvalues(p: ArrayLike, method: str = "fdr_bh") -> np.ndarray:
    method = _ALIASES.get(method.lower(), method.lower())
    if method == "bonferroni":
        return bonferroni(p)
    if method == "holm":
        return holm(p)
    if method == "fdr_bh":
        return benjamini_hochberg(p)
    raise ValueError(f"Unknown adjustment method: {method!r} (use one of {METHODS})")


def rejection_summary(p: ArrayLike, alpha: float = 0.05) -> Dict[str, Any]:
    """Number of hypotheses rejected at level `alpha` with and without correction."""
    p, finite = _as_pvalues(p)
    m = int(finite.sum())
    summary: Dict[str, Any] = {
        "m": m,
        "alpha": alpha,
        "raw": int(np.sum(p[finite] < alpha)),
    }
    for method in METHODS:
        adj = adjust_pvalues(p, method)
        summary[method] = int(np.sum(adj[finite] < alpha))
    summary["raw_fraction"] = summary["raw"] / m if m else 0.0
    return summary
