# heart_detector/services/explain.py
"""
Explainability utilities for the Heart Disease Detector.

Because the model is a fixed logistic regression, two explanations are
exact and cheap:

1) Feature contributions
   - The logit is ``bias + sum(normalized[f] * weight[f])``; each term is
     reported separately, so the contributions plus the bias reproduce the
     logit exactly.

2) Partial Dependence (PDP)
   - Sweeps one raw feature over a grid while holding the other features of
     each background record fixed, and averages the predicted probability
     at each grid value.

Notes
-----
- Both functions take raw `PatientRecord` values; normalization happens
  inside the bundle.
- Contributions are sorted by absolute size, largest first.
"""

from typing import Dict, List, Optional, Sequence

import numpy as np

from ..schemas import PatientRecord
from .artifacts import ModelBundle
from .validation import FEATURE_DOMAINS, records_to_frame


def feature_contributions(bundle: ModelBundle, record: PatientRecord) -> Dict[str, object]:
    """
    Decompose one record's logit into per-feature terms.

    Args
    ----
    bundle:
        Loaded model bundle.
    record:
        Raw patient record.

    Returns
    -------
    dict
        Keys: ``bias``, ``logit``, ``probability`` and ``contributions``, a
        list of ``{"feature", "value", "normalized", "weight",
        "contribution"}`` ordered by ``|contribution|`` descending.
    """
    df = records_to_frame([record])
    norm = bundle.normalize(df)
    terms = bundle.model.contributions(norm.values)[0]
    logit = float(bundle.model.bias + terms.sum())

    rows = []
    for j, f in enumerate(bundle.feature_order):
        rows.append({
            "feature": f,
            "value": float(df[f].iloc[0]),
            "normalized": float(norm[f].iloc[0]),
            "weight": bundle.model.weights[f],
            "contribution": float(terms[j]),
        })
    rows.sort(key=lambda r: abs(r["contribution"]), reverse=True)

    return {
        "bias": bundle.model.bias,
        "logit": logit,
        "probability": float(bundle.model.act.forward(np.array([logit]))[0]),
        "contributions": rows,
    }


def partial_dependence(
    bundle: ModelBundle,
    records: Sequence[PatientRecord],
    feature: str,
    grid: Optional[List[float]] = None,
    grid_size: int = 20,
) -> Dict[str, object]:
    """
    Compute 1D Partial Dependence for a raw feature.

    Args
    ----
    bundle:
        Loaded model bundle.
    records:
        Background records used to average out the other features.
    feature:
        Snake-case feature name to sweep.
    grid:
        Optional explicit grid. If not provided, ``grid_size`` evenly spaced
        points covering the feature's declared clinical domain are used.
    grid_size:
        Number of grid points when ``grid`` is not provided (min 2).

    Returns
    -------
    dict
        ``{"feature": str, "grid": list[float], "pdp": list[float]}``.

    Raises
    ------
    ValueError
        If ``records`` is empty or ``feature`` is unknown.
    """
    if not records:
        raise ValueError("Empty background records.")
    if feature not in bundle.feature_order:
        raise ValueError(f"Feature '{feature}' not found. Available: {bundle.feature_order}")

    if grid is None or len(grid) == 0:
        lo, hi, _ = FEATURE_DOMAINS[feature]
        grid = list(np.linspace(float(lo), float(hi), int(max(grid_size, 2))))

    X = records_to_frame(records)
    pdp_vals: List[float] = []
    X_tmp = X.copy()
    for g in grid:
        X_tmp[feature] = float(g)
        proba = bundle.predict_proba(X_tmp)
        pdp_vals.append(float(np.mean(proba)))

    return {
        "feature": feature,
        "grid": [float(v) for v in grid],
        "pdp": pdp_vals,
    }
