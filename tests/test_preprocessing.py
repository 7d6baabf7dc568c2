import numpy as np
import pandas as pd
import pytest

from stroke_analysis.config import CATEGORY_DOMAINS
from stroke_analysis.data_loader import DataError
from stroke_analysis.preprocessing import (
    clean_stroke_data,
    coerce_binary_label,
    impute_median,
    split_features_target,
)


def _five_patients(bmi):
    return pd.DataFrame({
        "id": [1, 2, 3, 4, 5],
        "gender": ["Male", "Female", "Female", "Male", "Female"],
        "age": [67, 61, 80, 49, 79],
        "hypertension": [0, 0, 0, 0, 1],
        "heart_disease": [1, 0, 1, 0, 0],
        "ever_married": ["Yes", "Yes", "Yes", "Yes", "Yes"],
        "work_type": ["Private", "Self-employed", "Private", "Private", "Self-employed"],
        "Residence_type": ["Urban", "Rural", "Rural", "Urban", "Rural"],
        "avg_glucose_level": [228.69, 202.21, 105.92, 171.23, 174.12],
        "bmi": bmi,
        "smoking_status": ["formerly smoked", "never smoked", "never smoked", "smokes", "never smoked"],
        "stroke": [1, 1, 1, 1, 1],
    })


def test_bmi_missing_markers_imputed_with_median():
    raw = _five_patients([22.0, "N/A", 28.0, "N/A", 30.0])

    df, info = clean_stroke_data(raw, verbose=False)

    assert df["bmi"].tolist() == [22.0, 28.0, 28.0, 28.0, 30.0]
    assert info["bmi_median"] == 28.0
    assert info["bmi_imputed"] == 2


def test_no_missing_bmi_and_median_matches_observed(raw_df):
    observed = pd.to_numeric(raw_df["bmi"], errors="coerce").dropna()
    missing = raw_df["bmi"] == "N/A"

    df, info = clean_stroke_data(raw_df, verbose=False)

    assert df["bmi"].notna().all()
    assert info["bmi_median"] == pytest.approx(observed.median())
    assert (df.loc[missing.values, "bmi"] == observed.median()).all()


def test_id_dropped_and_categoricals_typed(raw_df):
    df, info = clean_stroke_data(raw_df, verbose=False)

    assert "id" not in df.columns
    assert info["dropped_columns"] == ["id"]
    for col, domain in CATEGORY_DOMAINS.items():
        assert isinstance(df[col].dtype, pd.CategoricalDtype)
        assert list(df[col].cat.categories) == domain


def test_label_is_binary_int(raw_df):
    df, _ = clean_stroke_data(raw_df, verbose=False)

    assert pd.api.types.is_integer_dtype(df["stroke"])
    assert set(df["stroke"].unique()) <= {0, 1}


def test_input_not_mutated(raw_df):
    before = raw_df.copy()

    clean_stroke_data(raw_df, verbose=False)

    pd.testing.assert_frame_equal(raw_df, before)


def test_unparseable_numeric_raises():
    raw = _five_patients([22.0, 25.0, 28.0, 29.0, 30.0])
    raw["age"] = raw["age"].astype(object)
    raw.loc[2, "age"] = "eighty"

    with pytest.raises(DataError, match="age"):
        clean_stroke_data(raw, verbose=False)


def test_unparseable_bmi_raises():
    raw = _five_patients([22.0, "abc", 28.0, "N/A", 30.0])

    with pytest.raises(DataError, match="bmi"):
        clean_stroke_data(raw, verbose=False)


def test_level_outside_domain_raises():
    raw = _five_patients([22.0, 25.0, 28.0, 29.0, 30.0])
    raw.loc[0, "smoking_status"] = "vapes"

    with pytest.raises(DataError, match="vapes"):
        clean_stroke_data(raw, verbose=False)


def test_flag_outside_zero_one_raises():
    raw = _five_patients([22.0, 25.0, 28.0, 29.0, 30.0])
    raw.loc[0, "hypertension"] = 2

    with pytest.raises(DataError, match="hypertension"):
        clean_stroke_data(raw, verbose=False)


def test_non_binary_label_raises():
    with pytest.raises(DataError, match="stroke"):
        coerce_binary_label(pd.Series([0, 1, 2], name="stroke"))


def test_impute_median_all_missing_raises():
    with pytest.raises(DataError):
        impute_median(pd.Series([np.nan, np.nan], name="bmi"))


def test_split_features_target(clean_df):
    X, y = split_features_target(clean_df)

    assert "stroke" not in X.columns
    assert len(X) == len(y) == len(clean_df)
