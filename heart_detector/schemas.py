"""
Data schemas for the Heart Disease Detector.

This module defines the Pydantic models shared by the service layer and the
API:

- `PatientInput`: raw, possibly malformed form values (what a client sends).
- `PatientRecord`: the clean numeric record every scoring routine consumes.
- `RiskFactor`, `PredictionResult`, `ModelMetrics`: scoring outputs.

Field names are snake_case; the camelCase names used by the original form
(``chestPain``, ``restingBP``, ...) are accepted as aliases.

Notes
-----
- Units:
    * resting_bp: mm Hg
    * cholesterol: mg/dL
    * max_hr: bpm
    * oldpeak: ST depression (unitless, relative to rest)
- Encodings:
    * sex: 0=female, 1=male
    * chest_pain: 0=typical angina, 1=atypical angina, 2=non-anginal, 3=asymptomatic
    * fasting_bs: 1 if >120 mg/dL, else 0
    * resting_ecg: 0=normal, 1=ST-T abnormality, 2=LV hypertrophy
    * exercise_angina: 1=yes, 0=no
    * st_slope: 0=upsloping, 1=flat, 2=downsloping
"""

from typing import Any, Dict, Literal

from pydantic import BaseModel, ConfigDict, Field

RawValue = Any


class PatientInput(BaseModel):
    """Form values as submitted, before coercion.

    Each field accepts any JSON value (number, free text, ``null``, even a
    list or object); omitted fields take the form's initial value. See
    ``services.validation.coerce_record`` for how values become numbers.
    """
    model_config = ConfigDict(populate_by_name=True)

    age: RawValue = 50
    sex: RawValue = 1
    chest_pain: RawValue = Field(default=0, alias="chestPain")
    resting_bp: RawValue = Field(default=120, alias="restingBP")
    cholesterol: RawValue = 200
    fasting_bs: RawValue = Field(default=0, alias="fastingBS")
    resting_ecg: RawValue = Field(default=0, alias="restingECG")
    max_hr: RawValue = Field(default=150, alias="maxHR")
    exercise_angina: RawValue = Field(default=0, alias="exerciseAngina")
    oldpeak: RawValue = 1.0
    st_slope: RawValue = Field(default=1, alias="stSlope")


class PatientRecord(BaseModel):
    """Single numeric patient record used by every scoring routine.

    Attributes
    ----------
    age : float
        Age in years.
    sex : float
        Biological sex (0=female, 1=male).
    chest_pain : float
        Chest pain type encoded as 0..3.
    resting_bp : float
        Resting blood pressure (mm Hg).
    cholesterol : float
        Serum cholesterol (mg/dL).
    fasting_bs : float
        Fasting blood sugar flag (1 if >120 mg/dL, else 0).
    resting_ecg : float
        Resting electrocardiographic results (0..2).
    max_hr : float
        Maximum heart rate achieved (bpm).
    exercise_angina : float
        Exercise-induced angina (1=yes, 0=no).
    oldpeak : float
        ST depression induced by exercise relative to rest.
    st_slope : float
        Slope of the peak exercise ST segment (0..2).
    """
    model_config = ConfigDict(populate_by_name=True, frozen=True)

    age: float = 50
    sex: float = 1
    chest_pain: float = Field(default=0, alias="chestPain")
    resting_bp: float = Field(default=120, alias="restingBP")
    cholesterol: float = 200
    fasting_bs: float = Field(default=0, alias="fastingBS")
    resting_ecg: float = Field(default=0, alias="restingECG")
    max_hr: float = Field(default=150, alias="maxHR")
    exercise_angina: float = Field(default=0, alias="exerciseAngina")
    oldpeak: float = 1.0
    st_slope: float = Field(default=1, alias="stSlope")

    def as_features(self) -> Dict[str, float]:
        """Ordered mapping feature name -> value (snake_case keys)."""
        return self.model_dump(by_alias=False)


class RiskFactor(BaseModel):
    """A heuristic risk flag raised by one threshold rule."""
    factor: str
    level: Literal["High", "Moderate"]
    description: str


class PredictionResult(BaseModel):
    """Scorer output for one record.

    Attributes
    ----------
    probability:
        Positive-class probability, strictly inside (0, 1).
    label:
        ``"Positive"`` if probability > 0.5, else ``"Negative"``.
    confidence_percent:
        ``round(probability * 100)`` as an integer in 0..100.
    """
    probability: float
    label: Literal["Positive", "Negative"]
    confidence_percent: int = Field(ge=0, le=100)


class ModelMetrics(BaseModel):
    """Static model-quality figures shipped with the weights artifact."""
    accuracy: float
    precision: float
    recall: float
    f1_score: float

    def formatted(self) -> Dict[str, Any]:
        """Percent strings with one decimal, e.g. 0.87 -> "87.0%"."""
        return {k: f"{v * 100:.1f}%" for k, v in self.model_dump().items()}
