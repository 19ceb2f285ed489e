"""Hypothesis Testing - single and gene-wise two-group comparisons."""

from typing import Any, Dict, Literal, Sequence, Union

import numpy as np
import pandas as pd
from scipy import stats


class HypothesisTesting:
    """
    Concepts covered:
    1. Two-sample t-test (independent, Welch or pooled)
    2. Gene-wise two-sample t-tests over an expression matrix
    """

    @staticmethod
    def two_sample_t(group1: np.ndarray, group2: np.ndarray,
                     equal_var: bool = False,
                     alternative: Literal["two-sided", "less", "greater"] = "two-sided") -> Dict[str, Any]:
        """Two-sample independent t-test (Welch's by default)."""
        g1 = np.asarray(group1, dtype=float)
        g2 = np.asarray(group2, dtype=float)
        g1 = g1[~np.isnan(g1)]
        g2 = g2[~np.isnan(g2)]
        if len(g1) < 2 or len(g2) < 2:
            raise ValueError("Each group needs at least 2 non-missing observations")

        result = stats.ttest_ind(g1, g2, equal_var=equal_var, alternative=alternative)

        # Effect size (Cohen's d)
        pooled_std = np.sqrt(((len(g1)-1)*np.var(g1, ddof=1) + (len(g2)-1)*np.var(g2, ddof=1)) / (len(g1)+len(g2)-2))
        cohens_d = (np.mean(g1) - np.mean(g2)) / pooled_std if pooled_std > 0 else 0

        return {
            "test": "two_sample_t",
            "test_type": "equal_variance" if equal_var else "welch",
            "n1": len(g1),
            "n2": len(g2),
            "mean1": float(np.mean(g1)),
            "mean2": float(np.mean(g2)),
            "std1": float(np.std(g1, ddof=1)),
            "std2": float(np.std(g2, ddof=1)),
            "mean_difference": float(np.mean(g1) - np.mean(g2)),
            "t_statistic": float(result.statistic),
            "p_value": float(result.pvalue),
            "df": float(result.df) if hasattr(result, 'df') else len(g1) + len(g2) - 2,
            "alternative": alternative,
            "cohens_d": float(cohens_d),
            "effect_size_interpretation": "small" if abs(cohens_d) < 0.5 else "medium" if abs(cohens_d) < 0.8 else "large",
            "significant_at_05": bool(result.pvalue < 0.05),
        }

    @staticmethod
    def genewise_t(expr: Union[np.ndarray, pd.DataFrame], groups: Sequence,
                   equal_var: bool = True) -> pd.DataFrame:
        """
        One t-test per row of a genes x samples matrix.

        The mean difference is second group minus first group (order of
        appearance in `groups`). Rows keep the input order.
        """
        index = expr.index if isinstance(expr, pd.DataFrame) else None
        Y = np.asarray(expr, dtype=float)
        labels = np.asarray(groups)
        if Y.ndim != 2 or labels.size != Y.shape[1]:
            raise ValueError("expr must be genes x samples with one group label per sample")

        levels = list(pd.unique(labels))
        if len(levels) != 2:
            raise ValueError(f"Exactly two groups are required, got {len(levels)}")

        a = Y[:, labels == levels[0]]
        b = Y[:, labels == levels[1]]
        result = stats.ttest_ind(b, a, axis=1, equal_var=equal_var)

        return pd.DataFrame(
            {
                "mean_difference": b.mean(axis=1) - a.mean(axis=1),
                "t": result.statistic,
                "p_value": result.pvalue,
            },
            index=index,
        )
