"""
Project Configuration
=====================

Paths, dataset schema, training settings and interactive-form constraints
shared by every stage of the stroke prediction report.
"""

from pathlib import Path
from typing import Dict, List, Tuple


# =============================================================================
# Paths
# =============================================================================

BASE_DIR = Path(__file__).resolve().parent.parent
DATA_PATH = BASE_DIR / "data" / "healthcare-dataset-stroke-data.csv"
OUTPUT_DIR = BASE_DIR / "outputs"
MODEL_PATH = OUTPUT_DIR / "model" / "random_forest_stroke_model.joblib"
# Environment variable that points the form at a model saved elsewhere
MODEL_PATH_ENV = "STROKE_MODEL_PATH"

# =============================================================================
# Dataset schema
# =============================================================================

ID_COL = "id"
TARGET_COL = "stroke"
MISSING_MARKER = "N/A"

NUMERIC_COLS: List[str] = ["age", "avg_glucose_level", "bmi"]
FLAG_COLS: List[str] = ["hypertension", "heart_disease"]

# Fixed category domains; a level outside these is a data error
CATEGORY_DOMAINS: Dict[str, List[str]] = {
    "gender": ["Female", "Male", "Other"],
    "ever_married": ["No", "Yes"],
    "work_type": ["Govt_job", "Never_worked", "Private", "Self-employed", "children"],
    "Residence_type": ["Rural", "Urban"],
    "smoking_status": ["Unknown", "formerly smoked", "never smoked", "smokes"],
}
CATEGORICAL_COLS: List[str] = list(CATEGORY_DOMAINS)

LABELS: Dict[int, str] = {0: "No Stroke", 1: "Stroke"}

FEATURE_COLS: List[str] = [
    "gender", "age", "hypertension", "heart_disease", "ever_married",
    "work_type", "Residence_type", "avg_glucose_level", "bmi", "smoking_status",
]
REQUIRED_COLUMNS: List[str] = [ID_COL] + FEATURE_COLS + [TARGET_COL]

# =============================================================================
# Training
# =============================================================================

RANDOM_STATE = 123
TEST_SIZE = 0.2
N_FOLDS = 5

MODEL_NAMES: Dict[str, str] = {
    "logistic_regression": "Logistic Regression",
    "random_forest": "Random Forest",
    "xgboost": "Gradient Boosting",
}

# Candidate grids searched with 5-fold CV accuracy
PARAM_GRIDS: Dict[str, Dict[str, list]] = {
    "logistic_regression": {
        "classifier__C": [0.01, 0.1, 1.0, 10.0],
    },
    "random_forest": {
        "classifier__max_features": ["sqrt", 0.5],
        "classifier__min_samples_leaf": [1, 5],
    },
    "xgboost": {
        "classifier__max_depth": [3, 6],
        "classifier__learning_rate": [0.05, 0.1],
    },
}

ROC_COLORS: Dict[str, str] = {
    "logistic_regression": "#3498db",
    "random_forest": "#27ae60",
    "xgboost": "#e74c3c",
}

# =============================================================================
# Interactive form
# =============================================================================

FORM_MODEL = "random_forest"
FORM_FIELDS: List[str] = ["gender", "age", "avg_glucose_level", "bmi", "smoking_status"]
FORM_CHOICES: Dict[str, List[str]] = {
    "gender": ["Male", "Female"],
    "smoking_status": ["never smoked", "formerly smoked", "smokes"],
}
AGE_RANGE: Tuple[float, float] = (0.0, 100.0)
