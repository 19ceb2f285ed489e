"""
Design matrix construction.

Turns a tabular dataset (pandas DataFrame) into the numeric arrays the model
fitters consume:
- regression: X (n x p) and a real-valued response y
- survival: X plus (time, event) pairs
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import List, Optional, Tuple

import numpy as np
import pandas as pd

from hdstats.errors import ModelingError


@dataclass(frozen=True)
class DesignMatrix:
    X: np.ndarray
    y: np.ndarray
    feature_names: List[str]

    @property
    def n(self) -> int:
        return int(self.X.shape[0])

    @property
    def p(self) -> int:
        return int(self.X.shape[1])


@dataclass(frozen=True)
class SurvivalDesign:
    X: np.ndarray
    time: np.ndarray
    event: np.ndarray
    feature_names: List[str]

    @property
    def n(self) -> int:
        return int(self.X.shape[0])

    @property
    def p(self) -> int:
        return int(self.X.shape[1])

    def to_frame(self, duration_col: str = "time", event_col: str = "event") -> pd.DataFrame:
        """Frame layout expected by lifelines fitters."""
        df = pd.DataFrame(self.X, columns=self.feature_names)
        df[duration_col] = self.time
        df[event_col] = self.event
        return df


def require_columns(frame: pd.DataFrame, columns: List[str]) -> None:
    missing = [c for c in columns if c not in frame.columns]
    if missing:
        raise ModelingError(f"Columns not found in dataset: {missing}")


def _select_features(
    frame: pd.DataFrame,
    exclude: List[str],
    features: Optional[List[str]],
    dummies: bool,
) -> pd.DataFrame:
    require_columns(frame, (features or []) + exclude)

    cols = features if features else [c for c in frame.columns if c not in exclude]
    if not cols:
        raise ModelingError("No feature columns selected")

    Xdf = frame[cols]
    non_numeric = [c for c in cols if not pd.api.types.is_numeric_dtype(Xdf[c])]
    if non_numeric:
        if not dummies:
            raise ModelingError(f"Non-numeric feature columns: {non_numeric}")
        Xdf = pd.get_dummies(Xdf, columns=non_numeric, drop_first=True, dtype=float)
    return Xdf


def build_design(
    frame: pd.DataFrame,
    response: str,
    features: Optional[List[str]] = None,
    dummies: bool = True,
) -> DesignMatrix:
    """
    Build a regression design from a DataFrame.

    Args:
        frame: Input table, one row per observation
        response: Name of the real-valued response column
        features: Feature columns; all other columns when omitted
        dummies: One-hot encode categorical features (first level dropped)

    Rows with any missing value in the selected columns are dropped.
    """
    Xdf = _select_features(frame, [response], features, dummies)
    data = pd.concat([Xdf, frame[response].rename("__response__")], axis=1).dropna()

    if len(data) == 0:
        raise ModelingError("No complete observations after dropping missing values")

    X = data.drop(columns="__response__").to_numpy(dtype=float)
    y = data["__response__"].to_numpy(dtype=float)
    return DesignMatrix(X=X, y=y, feature_names=[str(c) for c in Xdf.columns])


def build_survival_design(
    frame: pd.DataFrame,
    duration: str,
    event: str,
    features: Optional[List[str]] = None,
    dummies: bool = True,
) -> SurvivalDesign:
    """Build a survival design; `event` must be coded 0 (censored) / 1 (event)."""
    Xdf = _select_features(frame, [duration, event], features, dummies)
    data = pd.concat(
        [Xdf, frame[duration].rename("__time__"), frame[event].rename("__event__")], axis=1
    ).dropna()

    if len(data) == 0:
        raise ModelingError("No complete observations after dropping missing values")

    time = data["__time__"].to_numpy(dtype=float)
    ev = data["__event__"].to_numpy(dtype=float)
    if np.any(time <= 0):
        raise ModelingError("Survival times must be positive")
    if not np.all(np.isin(ev, (0.0, 1.0))):
        raise ModelingError("Event indicator must be 0 (censored) or 1 (event)")

    X = data.drop(columns=["__time__", "__event__"]).to_numpy(dtype=float)
    return SurvivalDesign(
        X=X,
        time=time,
        event=ev.astype(int),
        feature_names=[str(c) for c in Xdf.columns],
    )


def standardize(X: np.ndarray) -> Tuple[np.ndarray, np.ndarray]:
    """Column means and population standard deviations (zero-variance columns scale 1)."""
    mean = X.mean(axis=0)
    scale = X.std(axis=0)
    scale = np.where(scale > 0, scale, 1.0)
    return mean, scale
