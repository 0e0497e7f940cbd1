"""Tests for the feature normalizer, the logistic scorer and thresholding."""

import math

import numpy as np
import pandas as pd
import pytest

from heart_detector.logistic_model import (
    FeatureNormalizer,
    FixedRangeScaler,
    LogisticRiskModel,
    Sigmoid,
    confidence_percent,
    label_from_probability,
)
from heart_detector.schemas import PatientRecord
from heart_detector.services.validation import FEATURE_DOMAINS, FEATURES

WEIGHTS = {
    "age": 0.02, "sex": 0.8, "chest_pain": 0.9, "resting_bp": 0.01,
    "cholesterol": 0.005, "fasting_bs": 0.3, "resting_ecg": 0.5, "max_hr": -0.01,
    "exercise_angina": 1.2, "oldpeak": 0.7, "st_slope": 0.6,
}
BIAS = -2.5


def manual_logit(r: PatientRecord) -> float:
    norm = {
        "age": (r.age - 29) / 48,
        "sex": r.sex,
        "chest_pain": r.chest_pain / 3,
        "resting_bp": (r.resting_bp - 80) / 120,
        "cholesterol": (r.cholesterol - 126) / 438,
        "fasting_bs": r.fasting_bs,
        "resting_ecg": r.resting_ecg / 2,
        "max_hr": (r.max_hr - 71) / 131,
        "exercise_angina": r.exercise_angina,
        "oldpeak": r.oldpeak / 6.2,
        "st_slope": r.st_slope / 2,
    }
    return BIAS + sum(norm[k] * WEIGHTS[k] for k in WEIGHTS)


# ------------------------------------------------------------------
# Normalizer
# ------------------------------------------------------------------

class TestNormalizer:
    def test_minmax_bounds_map_to_unit_interval(self, bundle):
        lo = bundle.normalizer.transform_record(
            PatientRecord(age=29, resting_bp=80, cholesterol=126, max_hr=71, oldpeak=0).as_features()
        )
        hi = bundle.normalizer.transform_record(
            PatientRecord(age=77, resting_bp=200, cholesterol=564, max_hr=202, oldpeak=6.2).as_features()
        )
        for f in ("age", "resting_bp", "cholesterol", "max_hr", "oldpeak"):
            assert lo[f] == pytest.approx(0.0)
            assert hi[f] == pytest.approx(1.0)

    def test_ordinals_divide_by_max_code(self, bundle):
        norm = bundle.normalizer.transform_record(
            PatientRecord(chest_pain=3, resting_ecg=1, st_slope=2).as_features()
        )
        assert norm["chest_pain"] == pytest.approx(1.0)
        assert norm["resting_ecg"] == pytest.approx(0.5)
        assert norm["st_slope"] == pytest.approx(1.0)

    def test_binary_flags_pass_through(self, bundle):
        norm = bundle.normalizer.transform_record(
            PatientRecord(sex=0, fasting_bs=1, exercise_angina=1).as_features()
        )
        assert norm["sex"] == 0.0
        assert norm["fasting_bs"] == 1.0
        assert norm["exercise_angina"] == 1.0

    def test_out_of_range_is_not_clamped(self, bundle):
        norm = bundle.normalizer.transform_record(PatientRecord(age=101, cholesterol=100).as_features())
        assert norm["age"] > 1.0
        assert norm["cholesterol"] < 0.0

    def test_output_order_and_determinism(self, bundle, cleveland_record):
        first = bundle.normalizer.transform_record(cleveland_record.as_features())
        second = bundle.normalizer.transform_record(cleveland_record.as_features())
        assert list(first) == FEATURES
        assert first == second

    def test_batch_matches_single_rows(self, bundle, cleveland_record, low_risk_record):
        df = pd.DataFrame([cleveland_record.as_features(), low_risk_record.as_features()])
        batch = bundle.normalizer.transform(df)
        single = bundle.normalizer.transform_record(low_risk_record.as_features())
        assert list(batch.iloc[1]) == pytest.approx(list(single.values()))

    def test_mismatched_config_rejected(self):
        with pytest.raises(ValueError):
            FeatureNormalizer(["a", "b"], {"a": [0, 1]}, {}, [])

    def test_degenerate_range_rejected(self):
        with pytest.raises(ValueError):
            FixedRangeScaler({"age": [50, 50]})


# ------------------------------------------------------------------
# Scorer
# ------------------------------------------------------------------

class TestScorer:
    def test_matches_closed_form(self, bundle, cleveland_record):
        expected = 1.0 / (1.0 + math.exp(-manual_logit(cleveland_record)))
        result = bundle.score(cleveland_record)
        assert result.probability == pytest.approx(expected, rel=1e-9)
        assert result.probability == pytest.approx(0.4438, abs=1e-3)
        assert result.label == "Negative"
        assert result.confidence_percent == 44

    def test_probability_stays_finite_for_extreme_inputs(self, bundle):
        extremes = [
            PatientRecord(**{f: lo for f, (lo, _, _) in FEATURE_DOMAINS.items()}),
            PatientRecord(**{f: hi for f, (_, hi, _) in FEATURE_DOMAINS.items()}),
            PatientRecord(age=1e6, cholesterol=1e6, oldpeak=1e6, chest_pain=1e6),
            PatientRecord(age=-1e6, max_hr=1e6, resting_bp=-1e6),
        ]
        for r in extremes:
            p = bundle.score(r).probability
            assert 0.0 <= p <= 1.0
            assert not math.isnan(p)

    def test_probability_open_interval_for_domain_values(self, bundle):
        rng = np.random.default_rng(7)
        rows = []
        for _ in range(200):
            rows.append({f: rng.uniform(lo, hi) for f, (lo, hi, _) in FEATURE_DOMAINS.items()})
        proba = bundle.predict_proba(pd.DataFrame(rows))
        assert np.all(proba > 0.0)
        assert np.all(proba < 1.0)

    @pytest.mark.parametrize("feature", FEATURES)
    def test_monotonic_in_weight_sign(self, bundle, cleveland_record, feature):
        base = cleveland_record.as_features()
        lo, hi, _ = FEATURE_DOMAINS[feature]
        rows = []
        for v in np.linspace(lo, hi, 11):
            row = dict(base)
            row[feature] = float(v)
            rows.append(row)
        logits = bundle.logits(pd.DataFrame(rows))
        steps = np.diff(logits)
        if WEIGHTS[feature] > 0:
            assert np.all(steps >= 0)
        else:
            assert np.all(steps <= 0)

    def test_chest_pain_raises_logit(self, bundle):
        rows = [PatientRecord(chest_pain=c).as_features() for c in range(4)]
        logits = bundle.logits(pd.DataFrame(rows))
        assert list(logits) == sorted(logits)

    def test_max_hr_lowers_logit(self, bundle):
        rows = [PatientRecord(max_hr=hr).as_features() for hr in (80, 120, 160, 200)]
        logits = bundle.logits(pd.DataFrame(rows))
        assert list(logits) == sorted(logits, reverse=True)

    def test_model_requires_bias(self):
        with pytest.raises(ValueError):
            LogisticRiskModel(WEIGHTS, FEATURES)

    def test_model_requires_every_feature(self):
        with pytest.raises(ValueError):
            LogisticRiskModel({"bias": 0.0, "age": 1.0}, FEATURES)


class TestSigmoid:
    def test_known_values(self):
        act = Sigmoid()
        out = act.forward(np.array([0.0, 2.0, -2.0]))
        assert out[0] == pytest.approx(0.5)
        assert out[1] == pytest.approx(1 / (1 + math.exp(-2)))
        assert out[1] + out[2] == pytest.approx(1.0)

    def test_no_overflow_for_large_inputs(self):
        with np.errstate(over="raise"):
            out = Sigmoid().forward(np.array([-1000.0, 1000.0]))
        assert out[0] == pytest.approx(0.0)
        assert out[1] == pytest.approx(1.0)


# ------------------------------------------------------------------
# Thresholding
# ------------------------------------------------------------------

class TestThresholding:
    def test_label_strictly_above_half(self):
        assert label_from_probability(0.5) == "Negative"
        assert label_from_probability(0.5000001) == "Positive"
        assert label_from_probability(0.2) == "Negative"

    def test_confidence_rounds_halves_up(self):
        assert confidence_percent(0.125) == 13
        assert confidence_percent(0.994) == 99
        assert confidence_percent(0.0) == 0
        assert confidence_percent(1.0) == 100
