"""
Fixed-weight logistic regression for heart-disease risk scoring.

This module holds the numerical core of the detector and keeps every step
explicit and NumPy/pandas based:

- Feature normalization:
    * `FixedRangeScaler`: min-max scaling against **fixed** bounds.
    * `OrdinalScaler`: divides ordinal codes by their maximum code.
    * `FeatureNormalizer`: combines both and passes binary flags through.

- Scoring:
    * `Sigmoid`: numerically stable logistic squashing.
    * `LogisticRiskModel`: bias + weighted sum of normalized features.

- Thresholding:
    * `label_from_probability`, `confidence_percent`.

Notes:
    - Nothing here is fitted. Bounds and weights are configuration data
      supplied by the model bundle (see `services.artifacts`).
    - Out-of-range raw values produce normalized values outside [0, 1];
      they are never clamped.
"""

import math
from typing import Dict, List, Mapping, Sequence, Tuple

import numpy as np
import pandas as pd

POSITIVE = "Positive"
NEGATIVE = "Negative"
DECISION_THRESHOLD = 0.5

# ---------------------------
# Feature normalization
# ---------------------------

class FixedRangeScaler:
    """Column-wise min-max scaling against fixed bounds.

    Unlike a fitted scaler, the bounds never depend on the data being
    transformed, so a single row and a batch normalize identically.

    Attributes:
        mins: Dict[column_name, float]
        maxs: Dict[column_name, float]
    """
    def __init__(self, ranges: Mapping[str, Sequence[float]]) -> None:
        self.mins: Dict[str, float] = {}
        self.maxs: Dict[str, float] = {}
        for col, (lo, hi) in ranges.items():
            if float(hi) == float(lo):
                raise ValueError(f"Degenerate range for '{col}': [{lo}, {hi}]")
            self.mins[col] = float(lo)
            self.maxs[col] = float(hi)

    @property
    def cols(self) -> List[str]:
        return list(self.mins)

    def transform(self, df: pd.DataFrame) -> pd.DataFrame:
        """Apply (x - min) / (max - min) to a copy of the DataFrame."""
        df_scaled = df.copy()
        for col in self.cols:
            mn, mx = self.mins[col], self.maxs[col]
            df_scaled[col] = (df_scaled[col] - mn) / (mx - mn)
        return df_scaled


class OrdinalScaler:
    """Maps ordinal codes 0..k onto 0..1 by dividing by k."""
    def __init__(self, maxima: Mapping[str, float]) -> None:
        self.maxima: Dict[str, float] = {}
        for col, k in maxima.items():
            if float(k) == 0:
                raise ValueError(f"Ordinal maximum for '{col}' must be non-zero.")
            self.maxima[col] = float(k)

    @property
    def cols(self) -> List[str]:
        return list(self.maxima)

    def transform(self, df: pd.DataFrame) -> pd.DataFrame:
        df_scaled = df.copy()
        for col, k in self.maxima.items():
            df_scaled[col] = df_scaled[col] / k
        return df_scaled


class FeatureNormalizer:
    """Normalizes raw clinical features onto comparable scales.

    Args:
        feature_order: Final column order of the normalized output.
        minmax_ranges: Fixed (min, max) bounds for continuous features.
        ordinal_max: Maximum code per ordinal feature.
        binary_cols: Flags passed through unchanged.

    Raises:
        ValueError: If a feature in `feature_order` has no transformation or
            a transformation targets an unknown feature.
    """
    def __init__(
        self,
        feature_order: Sequence[str],
        minmax_ranges: Mapping[str, Sequence[float]],
        ordinal_max: Mapping[str, float],
        binary_cols: Sequence[str],
    ) -> None:
        self.feature_order: List[str] = list(feature_order)
        self.minmax = FixedRangeScaler(minmax_ranges)
        self.ordinal = OrdinalScaler(ordinal_max)
        self.binary_cols: List[str] = list(binary_cols)

        covered = self.minmax.cols + self.ordinal.cols + self.binary_cols
        missing = [c for c in self.feature_order if c not in covered]
        unknown = [c for c in covered if c not in self.feature_order]
        if missing or unknown or len(covered) != len(set(covered)):
            raise ValueError(
                f"Normalization config does not match features "
                f"(missing={missing}, unknown={unknown})."
            )

    def kind_of(self, feature: str) -> str:
        """Return "minmax", "ordinal" or "binary" for a known feature."""
        if feature in self.minmax.mins:
            return "minmax"
        if feature in self.ordinal.maxima:
            return "ordinal"
        if feature in self.binary_cols:
            return "binary"
        raise KeyError(feature)

    def transform(self, df: pd.DataFrame) -> pd.DataFrame:
        """Normalize a numeric DataFrame; returns columns in `feature_order`."""
        out = self.minmax.transform(df[self.feature_order].astype(float))
        out = self.ordinal.transform(out)
        return out[self.feature_order]

    def transform_record(self, record: Mapping[str, float]) -> Dict[str, float]:
        """Convenience wrapper for a single record (mapping in, mapping out)."""
        row = self.transform(pd.DataFrame([dict(record)]))
        return {k: float(v) for k, v in row.iloc[0].items()}

# -------------
# Scoring
# -------------

class Sigmoid:
    """Sigmoid activation σ(x) = 1 / (1 + exp(-x)).

    Evaluated as exp(-log(1 + exp(-x))) via `np.logaddexp`, which avoids
    overflow for large |x|.
    """
    def forward(self, x: np.ndarray) -> np.ndarray:
        x = np.asarray(x, dtype=float)
        return np.exp(-np.logaddexp(0.0, -x))


class LogisticRiskModel:
    """Linear model over normalized features followed by a sigmoid.

    Attributes:
        weights: feature -> coefficient (the bias is kept separately).
        bias: intercept added to every logit.
    """
    def __init__(self, weights: Mapping[str, float], feature_order: Sequence[str]) -> None:
        if "bias" not in weights:
            raise ValueError("Model weights must define a 'bias' term.")
        self.feature_order: List[str] = list(feature_order)
        missing = [c for c in self.feature_order if c not in weights]
        if missing:
            raise ValueError(f"Missing weights for features: {missing}")

        self.bias = float(weights["bias"])
        self.weights: Dict[str, float] = {c: float(weights[c]) for c in self.feature_order}
        self.coef = np.array([self.weights[c] for c in self.feature_order], dtype=float)
        self.act = Sigmoid()

    def logit(self, x: np.ndarray) -> np.ndarray:
        """Compute bias + x @ coef for normalized rows, shape (N,)."""
        x = np.atleast_2d(np.asarray(x, dtype=float))
        return x @ self.coef + self.bias

    def forward(self, x: np.ndarray) -> np.ndarray:
        """Positive-class probabilities for normalized rows, shape (N,)."""
        return self.act.forward(self.logit(x))

    def contributions(self, x: np.ndarray) -> np.ndarray:
        """Per-feature terms normalized[f] * weight[f], shape (N, F)."""
        x = np.atleast_2d(np.asarray(x, dtype=float))
        return x * self.coef

# ---------------
# Thresholding
# ---------------

def label_from_probability(probability: float, threshold: float = DECISION_THRESHOLD) -> str:
    """"Positive" when probability is strictly above the threshold."""
    return POSITIVE if probability > threshold else NEGATIVE


def confidence_percent(probability: float) -> int:
    """Scale a probability to an integer percentage, rounding halves up."""
    return int(math.floor(probability * 100.0 + 0.5))


def threshold_result(probability: float) -> Tuple[str, int]:
    """Return (label, confidence_percent) for one probability."""
    p = float(probability)
    return label_from_probability(p), confidence_percent(p)
