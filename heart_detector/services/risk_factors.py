"""
Rule-based risk factor evaluation.

Each rule looks at one raw (unnormalized) field of a `PatientRecord` and
contributes at most one `RiskFactor`. Rules run independently of the
logistic model, and the output keeps the order of `RISK_RULES`.

Rules
-----
- age > 55                 -> Age (High)
- chest_pain >= 2          -> Chest Pain (High)
- resting_bp > 140         -> Blood Pressure (High)
- cholesterol > 240        -> Cholesterol (High)
- exercise_angina == 1     -> Exercise Angina (High)
- oldpeak > 2              -> ST Depression (Moderate)
"""

import operator
from dataclasses import dataclass
from typing import Callable, List, Tuple

from ..schemas import PatientRecord, RiskFactor

NO_RISK_FACTORS_MESSAGE = "No significant risk factors detected."


@dataclass(frozen=True)
class RiskRule:
    """A single threshold rule over one raw feature."""
    field: str
    op: Callable[[float, float], bool]
    threshold: float
    factor: str
    level: str
    description: str

    def matches(self, record: PatientRecord) -> bool:
        return bool(self.op(getattr(record, self.field), self.threshold))

    def to_factor(self) -> RiskFactor:
        return RiskFactor(factor=self.factor, level=self.level, description=self.description)


RISK_RULES: Tuple[RiskRule, ...] = (
    RiskRule("age", operator.gt, 55, "Age", "High", "Age > 55 increases risk"),
    RiskRule("chest_pain", operator.ge, 2, "Chest Pain", "High", "Significant chest pain patterns"),
    RiskRule("resting_bp", operator.gt, 140, "Blood Pressure", "High", "Hypertension detected"),
    RiskRule("cholesterol", operator.gt, 240, "Cholesterol", "High", "High cholesterol levels"),
    RiskRule("exercise_angina", operator.eq, 1, "Exercise Angina", "High", "Exercise-induced chest pain"),
    RiskRule("oldpeak", operator.gt, 2, "ST Depression", "Moderate", "Significant ST depression"),
)


def assess_risk_factors(record: PatientRecord) -> List[RiskFactor]:
    """Return the risk factors whose rule fires, in rule-table order."""
    return [rule.to_factor() for rule in RISK_RULES if rule.matches(record)]
