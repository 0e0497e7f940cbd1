"""
Heart Disease Detector API.

This module exposes a FastAPI application that serves the fixed-weight
logistic regression model for heart-disease risk assessment. It loads the
weights artifact once at import time and provides:

Endpoints
---------
- GET  `/`                      : Liveness/health check.
- GET  `/version`               : App + artifact version info.
- GET  `/feature-map`           : Normalization and weight per feature.
- GET  `/model-metrics`         : Static model-quality figures.
- POST `/predict`               : Probability, label, band and risk factors.
- POST `/risk-factors`          : Rule-based risk factors only.
- POST `/analyze`               : Delayed assessment through the analyzer.
- GET  `/analyze/state`         : Current analyzer state.
- POST `/explain/contributions` : Per-feature logit contributions.
- POST `/explain/pdp`           : Partial dependence for one feature.

Notes
-----
- Inputs are coerced to numbers (bad values become 0) unless
  ``strict=true`` is passed or ``HEART_STRICT_VALIDATION`` is set, in which
  case malformed values are rejected with HTTP 400.
- No business logic lives here; the API delegates to the service layer.
"""

import logging
from typing import Annotated, Any, Dict, List, Optional, Union

from fastapi import FastAPI, HTTPException, Query
from pydantic import BaseModel, Field

from .config import get_settings
from .logistic_model import threshold_result
from .schemas import PatientInput, PredictionResult, RiskFactor

# Services
from .services.analysis import Analyzer, AnalysisState
from .services.artifacts import load_bundle
from .services.explain import (
    feature_contributions as svc_contrib,
    partial_dependence as svc_pdp,
)
from .services.presentation import summarize
from .services.risk_factors import NO_RISK_FACTORS_MESSAGE, assess_risk_factors
from .services.validation import InvalidInput, coerce_record, coerce_records, records_to_frame

settings = get_settings()
logging.basicConfig(level=settings.log_level.upper())
logger = logging.getLogger(__name__)

APP_VERSION = settings.app_version

app = FastAPI(
    title=settings.app_name,
    version=APP_VERSION,
    description="API for heart disease risk assessment using a fixed-weight logistic regression",
)

# -----------------------------
# Pydantic models (API schemas)
# -----------------------------

class AssessmentOut(BaseModel):
    """One scored record as returned by `/predict` and `/analyze`."""
    probability: float
    label: str
    confidence_percent: int
    risk_band: str
    recommendation: Dict[str, str]
    risk_factors: List[RiskFactor]
    risk_factor_message: Optional[str] = None


class PredictResponse(BaseModel):
    predictions: List[AssessmentOut]


class RiskFactorsResponse(BaseModel):
    risk_factors: List[RiskFactor]
    message: Optional[str] = None


class AnalysisResponse(BaseModel):
    """State of an analyzer run; ``assessment`` is set once completed."""
    status: str
    run_id: int
    assessment: Optional[AssessmentOut] = None
    error: Optional[str] = None


class PDPRequest(BaseModel):
    """Request payload for Partial Dependence computation.

    Attributes
    ----------
    data:
        Background rows used to average out other features.
    feature:
        Snake-case name of the feature to sweep.
    grid:
        (Optional) Explicit grid values. If omitted, the feature's clinical
        domain is covered with ``grid_size`` points.
    grid_size:
        Number of grid points to generate if ``grid`` is not provided.
    """
    data: List[PatientInput]
    feature: str
    grid: Optional[List[float]] = None
    grid_size: int = Field(default=20, ge=2)


class PDPResponse(BaseModel):
    feature: str
    grid: List[float]
    pdp: List[float]


# -----------------
# Load model bundle
# -----------------
try:
    BUNDLE = load_bundle(settings.resolved_weights_path)
except Exception as e:
    # Fail fast if the weights artifact is missing or malformed.
    raise RuntimeError(f"Failed to load model artifacts: {e}")

ANALYZER = Analyzer(
    BUNDLE,
    delay=settings.analysis_delay_seconds,
    strict=settings.strict_validation,
)


def _strict(flag: Optional[bool]) -> bool:
    return settings.strict_validation if flag is None else bool(flag)


def _assessment(result: PredictionResult, factors: List[RiskFactor]) -> AssessmentOut:
    return AssessmentOut(**summarize(result, factors))


def _analysis_response(state: AnalysisState) -> AnalysisResponse:
    assessment = None
    if state.result is not None:
        assessment = _assessment(state.result, list(state.risk_factors))
    return AnalysisResponse(
        status=state.status.value,
        run_id=state.run_id,
        assessment=assessment,
        error=state.error,
    )

# -----------
# Endpoints
# -----------

@app.get("/")
async def health_check():
    """Liveness check and minimal environment info."""
    return {"version": APP_VERSION, "status": "OK", "artifact_source": BUNDLE.source}


@app.get("/version")
async def version():
    return {"app_version": APP_VERSION, "artifact_source": BUNDLE.source}


@app.get("/feature-map")
async def feature_map():
    """Expose feature order, normalization parameters and weights.

    Returns
    -------
    dict
        Keys: ``feature_order``, ``features`` and ``bias``.
    """
    return {"feature_order": BUNDLE.feature_order, **BUNDLE.describe()}


@app.get("/model-metrics")
async def model_metrics():
    """Static quality figures, raw and as percentage strings."""
    return {"metrics": BUNDLE.metrics.model_dump(), "formatted": BUNDLE.metrics.formatted()}


@app.post("/predict", response_model=PredictResponse)
async def predict(
    data: Union[PatientInput, List[PatientInput]],
    strict: Annotated[Optional[bool], Query()] = None,
):
    """Score one or more patient records.

    Parameters
    ----------
    data:
        A single instance or a list of instances following ``PatientInput``.
    strict:
        Reject malformed values instead of coercing them to 0. Defaults to
        the ``strict_validation`` setting.

    Returns
    -------
    PredictResponse
        One assessment per input, in input order.

    Raises
    ------
    HTTPException
        With status 400 if validation or scoring fails.
    """
    try:
        items = data if isinstance(data, list) else [data]
        records = coerce_records(items, strict=_strict(strict))
        proba = BUNDLE.predict_proba(records_to_frame(records)).astype(float).tolist()

        out = []
        for rec, p in zip(records, proba):
            label, pct = threshold_result(p)
            result = PredictionResult(probability=p, label=label, confidence_percent=pct)
            out.append(_assessment(result, assess_risk_factors(rec)))
        return PredictResponse(predictions=out)

    except Exception as e:
        raise HTTPException(status_code=400, detail=f"Error during prediction: {str(e)}")


@app.post("/risk-factors", response_model=RiskFactorsResponse)
async def risk_factors(
    data: PatientInput,
    strict: Annotated[Optional[bool], Query()] = None,
):
    """Evaluate the threshold rules on one raw record."""
    try:
        record = coerce_record(data, strict=_strict(strict))
    except InvalidInput as e:
        raise HTTPException(status_code=400, detail=str(e))

    factors = assess_risk_factors(record)
    return RiskFactorsResponse(
        risk_factors=factors,
        message=None if factors else NO_RISK_FACTORS_MESSAGE,
    )


@app.post("/analyze", response_model=AnalysisResponse)
async def analyze(data: PatientInput):
    """Run a full assessment through the analyzer (honours the configured delay).

    Raises
    ------
    HTTPException
        With status 400 if the analyzer rejects the input or fails.
    """
    try:
        state = await ANALYZER.analyze(data)
    except Exception as e:
        raise HTTPException(status_code=400, detail=f"Error during analysis: {e}")
    return _analysis_response(state)


@app.get("/analyze/state", response_model=AnalysisResponse)
async def analyze_state():
    """Latest analyzer state (idle, analyzing, completed or failed)."""
    return _analysis_response(ANALYZER.state)


@app.post("/explain/contributions")
async def explain_contributions(
    data: PatientInput,
    strict: Annotated[Optional[bool], Query()] = None,
) -> Dict[str, Any]:
    """Decompose the logit of one record into per-feature terms."""
    try:
        record = coerce_record(data, strict=_strict(strict))
        return svc_contrib(BUNDLE, record)
    except Exception as e:
        raise HTTPException(status_code=400, detail=f"Error in contributions: {e}")


@app.post("/explain/pdp", response_model=PDPResponse)
async def explain_pdp(
    payload: PDPRequest,
    strict: Annotated[Optional[bool], Query()] = None,
):
    """Compute Partial Dependence for a single feature.

    Raises
    ------
    HTTPException
        With status 400 if input is empty or computation fails.
    """
    try:
        if not payload.data:
            raise ValueError("Empty 'data'.")

        records = coerce_records(payload.data, strict=_strict(strict))
        res = svc_pdp(
            BUNDLE,
            records,
            feature=payload.feature,
            grid=payload.grid,
            grid_size=int(payload.grid_size),
        )
        return PDPResponse(**res)

    except Exception as e:
        raise HTTPException(status_code=400, detail=f"Error in PDP: {e}")
