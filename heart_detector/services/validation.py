"""
Input coercion and validation for patient records.

Two policies are supported:

- **lenient** (default): mirrors the original form. Any value that is not a
  finite number (free text, empty string, ``None``, NaN, +/-inf, lists
  or objects) becomes ``0``. Nothing is range-checked.
- **strict**: raises `InvalidInput` naming the offending field when a value
  is non-numeric, non-finite, outside its clinical domain, or not an integer
  code for a binary/ordinal feature.

Both policies go through the same pandas coercion that the model bundle uses
for batches (``pd.to_numeric(..., errors="coerce")``), so a single record and
a DataFrame row always agree.
"""

import logging
from typing import Any, Dict, Iterable, List, Mapping, Tuple, Union

import numpy as np
import pandas as pd

from ..schemas import PatientInput, PatientRecord

logger = logging.getLogger(__name__)

# Declared clinical domain per feature: (min, max, integer_codes_only)
FEATURE_DOMAINS: Dict[str, Tuple[float, float, bool]] = {
    "age": (20, 100, False),
    "sex": (0, 1, True),
    "chest_pain": (0, 3, True),
    "resting_bp": (80, 200, False),
    "cholesterol": (100, 600, False),
    "fasting_bs": (0, 1, True),
    "resting_ecg": (0, 2, True),
    "max_hr": (60, 220, False),
    "exercise_angina": (0, 1, True),
    "oldpeak": (0, 10, False),
    "st_slope": (0, 2, True),
}

FEATURES: List[str] = list(FEATURE_DOMAINS)


class InvalidInput(ValueError):
    """Raised in strict mode when a field cannot be accepted.

    Attributes
    ----------
    field:
        Snake-case feature name.
    value:
        The value as received.
    reason:
        Short human-readable explanation.
    """
    def __init__(self, field: str, value: Any, reason: str) -> None:
        self.field = field
        self.value = value
        self.reason = reason
        super().__init__(f"Invalid value for '{field}': {value!r} ({reason})")


# camelCase form name -> snake_case feature name
FIELD_ALIASES: Dict[str, str] = {
    field.alias: name for name, field in PatientInput.model_fields.items() if field.alias
}


def _scalar_or_nan(value: Any) -> Any:
    """Lists, dicts and other containers are never numbers."""
    return value if pd.api.types.is_scalar(value) else np.nan


def _to_mapping(raw: Union[PatientInput, PatientRecord, Mapping[str, Any]]) -> Dict[str, Any]:
    """Resolve aliases and defaults by round-tripping through `PatientInput`."""
    if isinstance(raw, (PatientInput, PatientRecord)):
        return raw.model_dump(by_alias=False)
    return PatientInput.model_validate(dict(raw)).model_dump(by_alias=False)


def coerce_frame(df: pd.DataFrame) -> pd.DataFrame:
    """Coerce every feature column to finite floats; bad values become 0.0.

    camelCase columns are renamed to their snake_case feature (a snake_case
    column wins when both are present). Missing feature columns are created
    with zeros. Extra columns are dropped. Column order follows `FEATURES`.
    """
    aligned = df.copy()
    renames = {
        alias: name for alias, name in FIELD_ALIASES.items()
        if alias in aligned.columns and name not in aligned.columns
    }
    aligned = aligned.rename(columns=renames)
    for c in FEATURES:
        if c not in aligned.columns:
            aligned[c] = 0
    aligned = aligned[FEATURES]
    for c in FEATURES:
        if aligned[c].dtype == object:
            aligned[c] = aligned[c].map(_scalar_or_nan)
    aligned = aligned.apply(pd.to_numeric, errors="coerce")
    aligned = aligned.replace([np.inf, -np.inf], np.nan).fillna(0.0)
    return aligned.astype(float)


def _check_strict(values: Mapping[str, Any], numeric: Mapping[str, float]) -> None:
    for name, (lo, hi, integral) in FEATURE_DOMAINS.items():
        raw_value = values.get(name)
        num = pd.to_numeric(pd.Series([_scalar_or_nan(raw_value)], dtype=object), errors="coerce").iloc[0]
        if pd.isna(num) or not np.isfinite(num):
            raise InvalidInput(name, raw_value, "not a finite number")
        x = numeric[name]
        if x < lo or x > hi:
            raise InvalidInput(name, raw_value, f"outside [{lo}, {hi}]")
        if integral and not float(x).is_integer():
            raise InvalidInput(name, raw_value, "must be an integer code")


def coerce_record(
    raw: Union[PatientInput, PatientRecord, Mapping[str, Any]],
    strict: bool = False,
) -> PatientRecord:
    """Turn raw form values into a `PatientRecord`.

    Parameters
    ----------
    raw:
        A `PatientInput`, an existing `PatientRecord`, or a plain mapping
        keyed by snake_case or camelCase feature names. Omitted fields take
        the form defaults.
    strict:
        If True, reject malformed values with `InvalidInput` instead of
        coercing them to 0.

    Returns
    -------
    PatientRecord
        A record whose fields are all finite floats.

    Raises
    ------
    InvalidInput
        Only when ``strict`` is True.
    """
    values = _to_mapping(raw)
    row = coerce_frame(pd.DataFrame([values], dtype=object)).iloc[0]
    numeric = {k: float(v) for k, v in row.items()}

    if strict:
        try:
            _check_strict(values, numeric)
        except InvalidInput as e:
            logger.warning("Rejected patient input: %s", e)
            raise

    return PatientRecord(**numeric)


def coerce_records(
    raws: Iterable[Union[PatientInput, PatientRecord, Mapping[str, Any]]],
    strict: bool = False,
) -> List[PatientRecord]:
    """`coerce_record` applied to each item, in order."""
    return [coerce_record(r, strict=strict) for r in raws]


def records_to_frame(records: Iterable[PatientRecord]) -> pd.DataFrame:
    """Stack records into a DataFrame with columns in `FEATURES` order."""
    df = pd.DataFrame([r.as_features() for r in records], columns=FEATURES)
    return df.astype(float)
