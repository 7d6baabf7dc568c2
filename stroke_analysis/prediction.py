"""
Prediction Service Module
=========================

Clinical Context:
-----------------
This module is the contract behind the interactive form:

1. Single-patient prediction: (Trained Model, partial record) -> label
2. Input validation: missing fields, out-of-range values and categorical
   levels the model never saw are rejected with a typed error
3. Form adapter: turns the result (or the error) into the one line of text
   the form displays

The form collects gender, age, average glucose level, BMI and smoking
status. Fields it does not collect (hypertension, heart disease, marital
status, work type, residence) are filled with the training split's median
or most common value.
"""

import logging
import math
import os
from pathlib import Path
from typing import Dict, List, Optional, Union

import pandas as pd

from .config import (
    AGE_RANGE,
    CATEGORY_DOMAINS,
    FLAG_COLS,
    FORM_FIELDS,
    LABELS,
    MODEL_PATH,
    MODEL_PATH_ENV,
    NUMERIC_COLS,
)
from .model import TrainedModel, load_model


logger = logging.getLogger(__name__)


class PredictionError(ValueError):
    """Raised when a record cannot be scored."""


class MissingFieldError(PredictionError):
    """A required form field was not supplied."""


class UnseenCategoryError(PredictionError):
    """A categorical value is outside the levels the model was trained on."""


class InvalidFieldError(PredictionError):
    """A numeric field is not a number or is out of range."""


# Example form submission for testing
SAMPLE_PATIENT = {
    'gender': 'Female',
    'age': 65,
    'avg_glucose_level': 150,
    'bmi': 32,
    'smoking_status': 'formerly smoked',
}


def predict_stroke(
    trained: TrainedModel,
    record: Dict,
    required_fields: Optional[List[str]] = None
) -> Dict:
    """
    Predict stroke for a single patient.

    Parameters
    ----------
    trained : TrainedModel
        Fitted model (the form uses the random forest).
    record : dict
        Patient fields. Must contain every field in ``required_fields``;
        other model features fall back to the training defaults.
    required_fields : list, optional
        Defaults to the form fields.

    Returns
    -------
    dict
        - prediction: int (0 or 1)
        - prediction_label: str ("No Stroke" / "Stroke")
        - probability: float, predicted probability of stroke
        - record: the complete record that was scored

    Raises
    ------
    MissingFieldError, UnseenCategoryError, InvalidFieldError

    Example Usage:
    --------------
    >>> result = predict_stroke(models['random_forest'], SAMPLE_PATIENT)
    >>> format_prediction(result['prediction'])
    'Stroke Prediction: 0'
    """

    full_record = validate_record(trained, record, required_fields)
    patient_df = build_patient_frame(trained, full_record)

    prediction = int(trained.predict(patient_df)[0])
    probability = float(trained.predict_proba(patient_df)[0])

    return {
        'prediction': prediction,
        'prediction_label': LABELS[prediction],
        'probability': probability,
        'record': full_record,
    }


def validate_record(
    trained: TrainedModel,
    record: Dict,
    required_fields: Optional[List[str]] = None
) -> Dict:
    """
    Check a record against the model and complete it with training defaults.

    Returns
    -------
    dict
        One value per model feature, in feature order.
    """

    required_fields = FORM_FIELDS if required_fields is None else required_fields

    missing = [f for f in required_fields if _is_blank(record.get(f))]
    if missing:
        raise MissingFieldError(f"Missing required field(s): {', '.join(missing)}")

    full_record = dict(trained.feature_defaults)

    for field, value in record.items():
        if field not in full_record:
            logger.debug("Ignoring unknown field '%s'", field)
            continue
        if _is_blank(value):
            continue
        full_record[field] = _validate_value(trained, field, value)

    return full_record


def _validate_value(trained: TrainedModel, field: str, value):
    if field in trained.known_levels:
        level = str(value).strip()
        if level not in trained.known_levels[field]:
            raise UnseenCategoryError(
                f"Unknown {field} '{level}'. "
                f"Expected one of: {', '.join(trained.known_levels[field])}"
            )
        return level

    try:
        number = float(value)
    except (TypeError, ValueError):
        raise InvalidFieldError(f"{field} must be a number, got '{value}'")

    if math.isnan(number) or math.isinf(number):
        raise InvalidFieldError(f"{field} must be a finite number")

    if field == 'age' and not AGE_RANGE[0] <= number <= AGE_RANGE[1]:
        raise InvalidFieldError(f"age must be between {AGE_RANGE[0]:g} and {AGE_RANGE[1]:g}")
    if field == 'avg_glucose_level' and number < 0:
        raise InvalidFieldError("avg_glucose_level must be non-negative")
    if field == 'bmi' and number <= 0:
        raise InvalidFieldError("bmi must be positive")

    if field in FLAG_COLS:
        if number not in (0, 1):
            raise InvalidFieldError(f"{field} must be 0 or 1")
        return int(number)

    return number


def _is_blank(value) -> bool:
    if value is None:
        return True
    if isinstance(value, str):
        return not value.strip()
    if isinstance(value, float):
        return math.isnan(value)
    return False


def build_patient_frame(trained: TrainedModel, full_record: Dict) -> pd.DataFrame:
    """One-row DataFrame typed like the cleaned training data."""

    df = pd.DataFrame([full_record], columns=trained.feature_columns)

    for col in trained.known_levels:
        df[col] = df[col].astype(pd.CategoricalDtype(categories=CATEGORY_DOMAINS[col]))
    for col in NUMERIC_COLS:
        if col in df.columns:
            df[col] = df[col].astype(float)

    return df


def resolve_model_path() -> Path:
    """Saved form model: $STROKE_MODEL_PATH if set, else ``config.MODEL_PATH``."""
    override = os.environ.get(MODEL_PATH_ENV, "").strip()
    return Path(override) if override else MODEL_PATH


def format_prediction(label: Union[int, str]) -> str:
    """The single line shown in the form's output area."""
    return f"Stroke Prediction: {label}"


def predict_from_form(trained: TrainedModel, form_values: Dict) -> str:
    """
    Form adapter: score the submitted values and return the output line.

    Prediction errors are returned as a message for the output area instead
    of being raised; any other exception propagates.
    """

    try:
        result = predict_stroke(trained, form_values)
    except PredictionError as e:
        logger.warning("Prediction rejected: %s", e)
        return f"Prediction error: {e}"

    return format_prediction(result['prediction'])


class StrokePredictor:
    """
    Class-based interface around a saved model.

    Usage:
    ------
    >>> predictor = StrokePredictor('outputs/model/random_forest_stroke_model.joblib')
    >>> result = predictor.predict(patient_data)
    >>> batch_results = predictor.predict_batch(patient_dataframe)
    """

    def __init__(
        self,
        model_path: Optional[Union[str, Path]] = None,
        trained: Optional[TrainedModel] = None
    ):
        """
        Initialize the predictor with a trained model.

        Parameters
        ----------
        model_path : str or Path
            Path to the saved model file; defaults to ``resolve_model_path()``.
            Ignored when ``trained`` is given.
        trained : TrainedModel, optional
            An in-memory model.
        """

        if trained is None:
            trained, self.training_info = load_model(model_path or resolve_model_path())
        else:
            self.training_info = None

        self.model = trained

    def predict(self, patient_data: Dict) -> Dict:
        """Predict stroke for a single patient."""
        return predict_stroke(self.model, patient_data)

    def predict_batch(self, patients_df: pd.DataFrame) -> pd.DataFrame:
        """
        Predict stroke for every row.

        A row that fails validation gets ``prediction`` set to None and the
        error message in ``error``; the other rows are still scored.
        """

        results = []

        for idx, patient in patients_df.iterrows():
            row = {'patient_idx': idx, 'prediction': None, 'probability': None, 'error': None}
            try:
                result = self.predict(patient.to_dict())
                row['prediction'] = result['prediction']
                row['probability'] = result['probability']
            except PredictionError as e:
                row['error'] = str(e)
            results.append(row)

        return pd.DataFrame(results)
