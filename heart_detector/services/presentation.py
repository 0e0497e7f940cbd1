"""
Display-level classification of a prediction.

The scorer produces a probability; this module turns it into what a reader
sees: a risk band derived from the confidence percentage and a short
recommendation keyed on the binary label.

Bands
-----
- confidence > 70  -> "High Risk"
- confidence > 40  -> "Moderate Risk"
- otherwise        -> "Low Risk"
"""

from typing import Dict, List

from ..logistic_model import POSITIVE
from ..schemas import PredictionResult, RiskFactor
from .risk_factors import NO_RISK_FACTORS_MESSAGE

HIGH_RISK = "High Risk"
MODERATE_RISK = "Moderate Risk"
LOW_RISK = "Low Risk"


def risk_band(confidence_percent: int) -> str:
    """Map a confidence percentage onto a display band."""
    if confidence_percent > 70:
        return HIGH_RISK
    if confidence_percent > 40:
        return MODERATE_RISK
    return LOW_RISK


def recommendation(label: str) -> Dict[str, str]:
    """Headline and advice for a "Positive" or "Negative" label."""
    if label == POSITIVE:
        return {
            "headline": "High Risk Detected",
            "advice": "Please consult a cardiologist immediately for further evaluation.",
        }
    return {
        "headline": "Low Risk",
        "advice": "Continue regular checkups and maintain a healthy lifestyle.",
    }


def summarize(result: PredictionResult, factors: List[RiskFactor]) -> Dict[str, object]:
    """Flat, serializable view of one assessment."""
    return {
        "probability": result.probability,
        "label": result.label,
        "confidence_percent": result.confidence_percent,
        "risk_band": risk_band(result.confidence_percent),
        "recommendation": recommendation(result.label),
        "risk_factors": [f.model_dump() for f in factors],
        "risk_factor_message": None if factors else NO_RISK_FACTORS_MESSAGE,
    }
