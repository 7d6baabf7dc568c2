import numpy as np
import pandas as pd
import pytest

from stroke_analysis.model import (
    DataSplit,
    ModelTrainingError,
    build_classifier,
    check_training_folds,
    fold_assignments,
    get_cv,
    load_model,
    save_model,
    split_data,
    train_model,
    train_models,
)
from stroke_analysis.preprocessing import clean_stroke_data, split_features_target


def test_stratified_split_5000_records(make_stroke_frame):
    raw = make_stroke_frame(n=5000, positive_rate=0.05, n_missing_bmi=100, seed=1)
    df, _ = clean_stroke_data(raw, verbose=False)
    X, y = split_features_target(df)

    split = split_data(X, y, verbose=False)

    assert len(split.X_train) == 4000
    assert len(split.X_test) == 1000
    assert split.y_train.mean() == pytest.approx(0.05)
    assert split.y_test.mean() == pytest.approx(0.05)


def test_split_is_disjoint_and_complete(clean_df, split):
    train_idx, test_idx = set(split.X_train.index), set(split.X_test.index)

    assert not train_idx & test_idx
    assert train_idx | test_idx == set(clean_df.index)
    assert split.X_train.index.equals(split.y_train.index)


def test_split_is_deterministic(clean_df):
    X, y = split_features_target(clean_df)

    first = split_data(X, y, verbose=False)
    second = split_data(X, y, verbose=False)

    assert first.X_train.index.equals(second.X_train.index)
    assert first.X_test.index.equals(second.X_test.index)


def test_split_is_immutable(split):
    with pytest.raises(AttributeError):
        split.X_train = None


def test_fold_assignments_are_deterministic(split):
    first = fold_assignments(split.X_train, split.y_train, get_cv())
    second = fold_assignments(split.X_train, split.y_train, get_cv())

    assert len(first) == 5
    for a, b in zip(first, second):
        np.testing.assert_array_equal(a, b)

    all_rows = np.sort(np.concatenate(first))
    np.testing.assert_array_equal(all_rows, np.arange(len(split.X_train)))


def test_trained_models_in_order(trained_models):
    assert list(trained_models) == ["logistic_regression", "random_forest", "xgboost"]
    assert [m.name for m in trained_models.values()] == [
        "Logistic Regression", "Random Forest", "Gradient Boosting"
    ]


def test_trained_models_record_cv(trained_models, split):
    expected_folds = fold_assignments(split.X_train, split.y_train, get_cv())

    for model in trained_models.values():
        assert 0.0 <= model.cv_accuracy <= 1.0
        assert model.cv_accuracy == pytest.approx(model.cv_results["mean_test_score"].max())
        for a, b in zip(model.fold_assignments, expected_folds):
            np.testing.assert_array_equal(a, b)


def test_random_forest_records_importance(trained_models):
    importance = trained_models["random_forest"].feature_importance

    assert importance["importance"].sum() == pytest.approx(1.0)
    assert importance["importance"].is_monotonic_decreasing
    assert "age" in importance["feature"].tolist()
    assert trained_models["logistic_regression"].feature_importance is None
    assert trained_models["xgboost"].feature_importance is None


def test_refit_is_reproducible(split, fast_param_grids, forest):
    again = train_model("random_forest", split,
                        param_grid=fast_param_grids["random_forest"], verbose=False)

    np.testing.assert_allclose(
        again.predict_proba(split.X_test), forest.predict_proba(split.X_test)
    )


def test_feature_defaults_and_known_levels(forest, split):
    defaults = forest.feature_defaults

    assert list(defaults) == list(split.X_train.columns)
    assert defaults["age"] == pytest.approx(split.X_train["age"].median())
    assert defaults["hypertension"] in (0, 1)
    assert "Other" not in forest.known_levels["gender"]
    assert set(forest.known_levels["gender"]) == {"Female", "Male"}


def test_single_class_training_split_raises(split, fast_param_grids):
    one_class = DataSplit(
        X_train=split.X_train,
        X_test=split.X_test,
        y_train=pd.Series(0, index=split.y_train.index),
        y_test=split.y_test,
    )

    with pytest.raises(ModelTrainingError, match="single class"):
        train_model("logistic_regression", one_class,
                    param_grid=fast_param_grids["logistic_regression"], verbose=False)


def test_fold_with_single_class_raises():
    y = pd.Series([1] + [0] * 49)

    with pytest.raises(ModelTrainingError, match="fold"):
        check_training_folds(y, get_cv())


def test_unknown_model_key():
    with pytest.raises(ValueError, match="Unknown model"):
        build_classifier("svm")


def test_train_model_rejects_unknown_key(split):
    with pytest.raises(ValueError, match="Unknown model 'svm'"):
        train_model("svm", split, verbose=False)


def test_failed_family_is_skipped(split, fast_param_grids):
    grids = {
        "logistic_regression": {"classifier__C": [-1.0]},
        "random_forest": fast_param_grids["random_forest"],
    }

    models = train_models(split, model_keys=["logistic_regression", "random_forest"],
                          param_grids=grids, verbose=False)

    assert list(models) == ["random_forest"]


def test_every_family_failing_raises(split, fast_param_grids):
    one_class = DataSplit(
        X_train=split.X_train,
        X_test=split.X_test,
        y_train=pd.Series(0, index=split.y_train.index),
        y_test=split.y_test,
    )

    with pytest.raises(ModelTrainingError, match="No model could be trained"):
        train_models(one_class, param_grids=fast_param_grids, verbose=False)


def test_save_and_load_roundtrip(forest, split, tmp_path):
    path = tmp_path / "model" / "forest.joblib"

    save_model(forest, path, training_info={"train_size": len(split.X_train)})
    loaded, info = load_model(path)

    assert info == {"train_size": len(split.X_train)}
    np.testing.assert_allclose(
        loaded.predict_proba(split.X_test), forest.predict_proba(split.X_test)
    )


def test_load_missing_model(tmp_path):
    with pytest.raises(FileNotFoundError):
        load_model(tmp_path / "missing.joblib")
