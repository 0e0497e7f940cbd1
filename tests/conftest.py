"""Test configuration and fixtures"""

import os

import pytest

# Keep the API analyzer from sleeping when the app module is imported.
os.environ.setdefault("HEART_ANALYSIS_DELAY_SECONDS", "0")

from heart_detector.schemas import PatientRecord
from heart_detector.services.artifacts import load_bundle


@pytest.fixture(scope="session")
def bundle():
    """Model bundle loaded from the packaged weights artifact"""
    return load_bundle()


@pytest.fixture
def default_record():
    """Initial form values"""
    return PatientRecord()


@pytest.fixture
def cleveland_record():
    """Classic first row of the Cleveland heart dataset"""
    return PatientRecord(
        age=63, sex=1, chest_pain=3, resting_bp=145, cholesterol=233, fasting_bs=1,
        resting_ecg=0, max_hr=150, exercise_angina=0, oldpeak=2.3, st_slope=0,
    )


@pytest.fixture
def all_rules_record():
    """Record that trips every risk factor rule"""
    return PatientRecord(
        age=60, chest_pain=2, resting_bp=150, cholesterol=250, exercise_angina=1, oldpeak=2.5,
    )


@pytest.fixture
def low_risk_record():
    return PatientRecord(
        age=30, sex=0, chest_pain=0, resting_bp=110, cholesterol=180, fasting_bs=0,
        resting_ecg=0, max_hr=190, exercise_angina=0, oldpeak=0, st_slope=0,
    )
