from __future__ import annotations

from typing import List, Literal, Optional

from pydantic import BaseModel, ConfigDict, Field


class _Spec(BaseModel):
    # unknown keys are a client bug, not something to silently ignore
    model_config = ConfigDict(extra="forbid")


# ---------------------------
# Regression
# ---------------------------
class RegressionSpec(_Spec):
    y: str
    x: Optional[List[str]] = None
    add_intercept: bool = True


class PenalizedSpec(_Spec):
    y: str
    x: Optional[List[str]] = None
    alpha: Optional[float] = Field(None, ge=0, le=1)
    lambdas: Optional[List[float]] = None
    n_lambdas: Optional[int] = Field(None, ge=2)
    standardize: bool = True
    fit_intercept: bool = True
    cv: bool = True
    n_folds: Optional[int] = Field(None, ge=2)
    measure: Literal["mse", "mae"] = "mse"
    rule: Literal["min", "1se"] = "min"
    seed: Optional[int] = None


class CrossValidationSpec(_Spec):
    y: str
    x: Optional[List[str]] = None
    alphas: List[float] = Field(default_factory=lambda: [0.0, 0.5, 1.0], min_length=1)
    n_folds: Optional[int] = Field(None, ge=2)
    measure: Literal["mse", "mae"] = "mse"
    rule: Literal["min", "1se"] = "min"
    standardize: bool = True
    seed: Optional[int] = None


class BayesianLassoSpec(_Spec):
    y: str
    x: Optional[List[str]] = None
    draws: Optional[int] = Field(None, ge=1)
    tune: Optional[int] = Field(None, ge=0)
    chains: Optional[int] = Field(None, ge=1)
    seed: Optional[int] = None


# ---------------------------
# Testing
# ---------------------------
class TTestSpec(_Spec):
    x: str
    group: str
    equal_var: bool = False
    alternative: Literal["two-sided", "less", "greater"] = "two-sided"


class ModeratedTSpec(_Spec):
    """Rows are samples; every column except `group` (or just `genes`) is a gene."""

    group: str
    genes: Optional[List[str]] = None
    top: Optional[int] = Field(None, ge=1)


class PValueSpec(_Spec):
    column: str = "p_value"
    alpha: float = Field(0.05, gt=0, lt=1)


# ---------------------------
# Survival
# ---------------------------
class KaplanMeierSpec(_Spec):
    duration: str
    event: str
    group: Optional[str] = None
    alpha: float = Field(0.05, gt=0, lt=1)


class CoxSpec(_Spec):
    duration: str
    event: str
    x: Optional[List[str]] = None
    penalizer: Optional[float] = Field(None, ge=0)
    penalizers: Optional[List[float]] = None
    l1_ratio: float = Field(0.0, ge=0, le=1)
    n_folds: Optional[int] = Field(None, ge=2)
    seed: Optional[int] = None


class BrierSpec(_Spec):
    duration: str
    event: str
    x: Optional[List[str]] = None
    penalizer: float = Field(0.1, ge=0)
    l1_ratio: float = Field(0.0, ge=0, le=1)
    times: Optional[List[float]] = None
