"""
Model artifact loading.

This module is responsible for:
- Locating the weights artifact (``model/weights.json`` inside the package,
  or the path configured through ``HEART_WEIGHTS_PATH``).
- Building the normalizer and the fixed-weight logistic model from it.
- Providing a lightweight ``ModelBundle`` wrapper that exposes a consistent
  interface to the API/service layers:
    * ``align_columns(df) -> pd.DataFrame``
    * ``normalize(df) -> pd.DataFrame``
    * ``predict_proba(df) -> np.ndarray`` (positive-class probabilities)
    * ``score(record) -> PredictionResult``

Design notes
------------
- The weights are configuration, not a trained artifact. Swapping the JSON
  file replaces the model without touching any scoring code.
- The bundle is read-only after loading and safe to share.

Artifact layout
---------------
{
  "feature_order": [...],
  "weights":       {"<feature>": float, ..., "bias": float},
  "minmax_ranges": {"<feature>": [min, max], ...},
  "ordinal_max":   {"<feature>": int, ...},
  "binary_cols":   [...],
  "metrics":       {"accuracy": ..., "precision": ..., "recall": ..., "f1_score": ...}
}
"""

import json
import logging
from pathlib import Path
from typing import Any, Dict, Mapping, Optional, Union

import numpy as np
import pandas as pd

from ..config import DEFAULT_WEIGHTS_PATH
from ..logistic_model import FeatureNormalizer, LogisticRiskModel, threshold_result
from ..schemas import ModelMetrics, PatientRecord, PredictionResult
from .validation import FEATURES, coerce_frame

logger = logging.getLogger(__name__)

REQUIRED_KEYS = ("feature_order", "weights", "minmax_ranges", "ordinal_max", "binary_cols", "metrics")


class ModelBundle:
    """Container for the normalizer, the logistic model and static metrics.

    Attributes
    ----------
    normalizer : FeatureNormalizer
        Fixed-bounds feature scaling.
    model : LogisticRiskModel
        Weighted sum + sigmoid over normalized features.
    metrics : ModelMetrics
        Hardcoded quality figures reported alongside predictions.
    feature_order : list[str]
        Column ordering expected by the model.
    source : str
        Where the weights came from (file path or "inline").
    """
    def __init__(
        self,
        normalizer: FeatureNormalizer,
        model: LogisticRiskModel,
        metrics: ModelMetrics,
        source: str = "inline",
    ) -> None:
        self.normalizer = normalizer
        self.model = model
        self.metrics = metrics
        self.feature_order = list(normalizer.feature_order)
        self.source = source

    @classmethod
    def from_config(cls, cfg: Mapping[str, Any], source: str = "inline") -> "ModelBundle":
        """Build a bundle from an already-parsed artifact mapping.

        Raises
        ------
        ValueError
            If required keys are missing or the features disagree with the
            patient record schema.
        """
        missing = [k for k in REQUIRED_KEYS if k not in cfg]
        if missing:
            raise ValueError(f"Weights artifact is missing keys: {missing}")

        order = list(cfg["feature_order"])
        if sorted(order) != sorted(FEATURES):
            raise ValueError(f"Artifact features {order} do not match record fields {FEATURES}.")

        normalizer = FeatureNormalizer(
            feature_order=order,
            minmax_ranges=cfg["minmax_ranges"],
            ordinal_max=cfg["ordinal_max"],
            binary_cols=cfg["binary_cols"],
        )
        model = LogisticRiskModel(cfg["weights"], order)
        metrics = ModelMetrics(**cfg["metrics"])
        return cls(normalizer, model, metrics, source=source)

    def align_columns(self, df: pd.DataFrame) -> pd.DataFrame:
        """Coerce to finite floats and reorder to `feature_order`.

        Missing columns are created with zeros; non-numeric values become 0.0.
        """
        return coerce_frame(df)[self.feature_order]

    def normalize(self, df: pd.DataFrame) -> pd.DataFrame:
        return self.normalizer.transform(self.align_columns(df))

    def logits(self, df: pd.DataFrame) -> np.ndarray:
        return self.model.logit(self.normalize(df).values)

    def predict_proba(self, df: pd.DataFrame) -> np.ndarray:
        """
        Aligns, normalizes, then runs model.forward().
        Returns probabilities as (N,) numpy array of float.
        """
        x = self.normalize(df).values.astype(float)
        return self.model.forward(x).ravel()

    def score(self, record: PatientRecord) -> PredictionResult:
        """Probability, label and confidence percent for one record."""
        proba = float(self.predict_proba(pd.DataFrame([record.as_features()]))[0])
        label, pct = threshold_result(proba)
        return PredictionResult(probability=proba, label=label, confidence_percent=pct)

    def describe(self) -> Dict[str, Any]:
        """Feature map: normalization kind/parameters and weight per feature."""
        features = []
        for f in self.feature_order:
            kind = self.normalizer.kind_of(f)
            entry: Dict[str, Any] = {"name": f, "kind": kind, "weight": self.model.weights[f]}
            if kind == "minmax":
                entry["range"] = [self.normalizer.minmax.mins[f], self.normalizer.minmax.maxs[f]]
            elif kind == "ordinal":
                entry["max_code"] = self.normalizer.ordinal.maxima[f]
            features.append(entry)
        return {"features": features, "bias": self.model.bias}


def load_bundle(path: Optional[Union[str, Path]] = None) -> ModelBundle:
    """Load the weights artifact from JSON.

    Parameters
    ----------
    path:
        Artifact location; defaults to the packaged ``model/weights.json``.

    Returns
    -------
    ModelBundle
        A bundle ready for scoring and explainability.

    Raises
    ------
    FileNotFoundError
        If the artifact does not exist.
    ValueError
        If the artifact is not valid JSON or has an unexpected shape.
    """
    p = Path(path) if path is not None else DEFAULT_WEIGHTS_PATH
    if not p.exists():
        raise FileNotFoundError(f"Weights artifact not found: {p}")

    with open(p, "r", encoding="utf-8") as f:
        try:
            cfg = json.load(f)
        except json.JSONDecodeError as e:
            raise ValueError(f"Malformed weights artifact {p}: {e}") from e

    bundle = ModelBundle.from_config(cfg, source=str(p))
    logger.info("Loaded model weights from %s (%d features)", p, len(bundle.feature_order))
    return bundle
