import matplotlib

matplotlib.use("Agg")

import matplotlib.pyplot as plt
import numpy as np
import pandas as pd
import pytest

from stroke_analysis.preprocessing import clean_stroke_data, split_features_target
from stroke_analysis.model import split_data, train_models


# Small grids keep the CV fits fast
FAST_PARAM_GRIDS = {
    "logistic_regression": {"classifier__C": [0.1, 1.0]},
    "random_forest": {
        "classifier__n_estimators": [50],
        "classifier__max_features": ["sqrt", 0.5],
    },
    "xgboost": {
        "classifier__n_estimators": [50],
        "classifier__max_depth": [3],
    },
}


def _make_stroke_frame(n=600, positive_rate=0.1, n_missing_bmi=20, seed=0):
    """Synthetic raw stroke data in the CSV schema; stroke risk rises with age."""

    rng = np.random.default_rng(seed)

    age = rng.uniform(1, 90, n).round(0)
    hypertension = (rng.random(n) < 0.1 + age / 300).astype(int)
    heart_disease = (rng.random(n) < 0.05 + age / 600).astype(int)
    glucose = rng.normal(105, 35, n).clip(55, 270).round(2)
    bmi = rng.normal(29, 6, n).clip(12, 60).round(1).astype(object)

    missing_idx = rng.choice(n, size=n_missing_bmi, replace=False)
    bmi[missing_idx] = "N/A"

    risk = age / 90 + hypertension + heart_disease + glucose / 270
    weights = risk ** 3 / (risk ** 3).sum()
    n_positive = int(round(n * positive_rate))
    stroke = np.zeros(n, dtype=int)
    stroke[rng.choice(n, size=n_positive, replace=False, p=weights)] = 1

    return pd.DataFrame({
        "id": np.arange(1, n + 1) * 7,
        "gender": rng.choice(["Male", "Female"], n),
        "age": age,
        "hypertension": hypertension,
        "heart_disease": heart_disease,
        "ever_married": rng.choice(["Yes", "No"], n),
        "work_type": rng.choice(
            ["Private", "Self-employed", "Govt_job", "children", "Never_worked"], n,
            p=[0.55, 0.15, 0.15, 0.13, 0.02]
        ),
        "Residence_type": rng.choice(["Urban", "Rural"], n),
        "avg_glucose_level": glucose,
        "bmi": bmi,
        "smoking_status": rng.choice(
            ["never smoked", "formerly smoked", "smokes", "Unknown"], n
        ),
        "stroke": stroke,
    })


@pytest.fixture(scope="session")
def fast_param_grids():
    return FAST_PARAM_GRIDS


@pytest.fixture(scope="session")
def make_stroke_frame():
    return _make_stroke_frame


@pytest.fixture
def raw_df():
    return _make_stroke_frame()


@pytest.fixture
def stroke_csv(tmp_path, raw_df):
    path = tmp_path / "stroke.csv"
    raw_df.to_csv(path, index=False)
    return path


@pytest.fixture(scope="session")
def clean_df():
    df, _ = clean_stroke_data(_make_stroke_frame(), verbose=False)
    return df


@pytest.fixture(scope="session")
def split(clean_df):
    X, y = split_features_target(clean_df)
    return split_data(X, y, verbose=False)


@pytest.fixture(scope="session")
def trained_models(split):
    return train_models(split, param_grids=FAST_PARAM_GRIDS, verbose=False)


@pytest.fixture(scope="session")
def forest(trained_models):
    return trained_models["random_forest"]


@pytest.fixture(autouse=True)
def close_figures():
    yield
    plt.close("all")
