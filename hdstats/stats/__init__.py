"""Statistical modules for high-dimensional modeling and testing."""

from .design import DesignMatrix, SurvivalDesign, build_design, build_survival_design
from .hypothesis import HypothesisTesting
from .linear import ols
from .multitest import adjust_pvalues, benjamini_hochberg, bonferroni, holm
from .penalized import PathFit, fit_path
from .cross_validation import CVResult, cv_penalized, make_folds
from .shrinkage import moderated_t_test, squeeze_var

__all__ = [
    "DesignMatrix",
    "SurvivalDesign",
    "build_design",
    "build_survival_design",
    "HypothesisTesting",
    "ols",
    "adjust_pvalues",
    "benjamini_hochberg",
    "bonferroni",
    "holm",
    "PathFit",
    "fit_path",
    "CVResult",
    "cv_penalized",
    "make_folds",
    "moderated_t_test",
    "squeeze_var",
]
