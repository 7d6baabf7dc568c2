"""
Modeling Module
===============

Clinical Context:
-----------------
Three standard classifier families are compared for stroke prediction:
1. Logistic Regression: transparent baseline, coefficients are odds ratios
2. Random Forest: captures interactions (age x hypertension) without tuning
3. Gradient-Boosted Trees (XGBoost): usually the strongest on tabular data

Each model is a scikit-learn Pipeline (one-hot encoding over fixed category
domains, then the classifier). Hyperparameters are chosen by mean 5-fold
cross-validated accuracy on the training split, then the best configuration
is refit on the whole training split.

Reproducibility:
----------------
The train/test split, the CV fold assignments and each algorithm's own
randomness (bootstrap samples, row/column subsampling) all use the same
seed, so repeated runs produce identical models.
"""

import logging
from dataclasses import dataclass
from pathlib import Path
from typing import Dict, List, Optional, Tuple, Union

import joblib
import numpy as np
import pandas as pd
from sklearn.base import ClassifierMixin
from sklearn.compose import ColumnTransformer
from sklearn.ensemble import RandomForestClassifier
from sklearn.linear_model import LogisticRegression
from sklearn.model_selection import GridSearchCV, StratifiedKFold, train_test_split
from sklearn.pipeline import Pipeline
from sklearn.preprocessing import OneHotEncoder, StandardScaler
from xgboost import XGBClassifier

from .config import (
    CATEGORICAL_COLS,
    CATEGORY_DOMAINS,
    FLAG_COLS,
    MODEL_NAMES,
    N_FOLDS,
    NUMERIC_COLS,
    PARAM_GRIDS,
    RANDOM_STATE,
    TEST_SIZE,
)


logger = logging.getLogger(__name__)


class ModelTrainingError(RuntimeError):
    """Raised when a model cannot be fit on the given training data."""


@dataclass(frozen=True)
class DataSplit:
    """Stratified train/test partition of the cleaned dataset."""

    X_train: pd.DataFrame
    X_test: pd.DataFrame
    y_train: pd.Series
    y_test: pd.Series


@dataclass(frozen=True)
class TrainedModel:
    """
    A fitted classifier plus everything needed to use and audit it.

    ``known_levels`` holds the categorical levels seen in the training split;
    the prediction service rejects any other level. ``feature_defaults``
    holds training medians (numeric) and modes (categorical) for fields the
    interactive form does not collect.
    """

    key: str
    name: str
    pipeline: Pipeline
    best_params: Dict
    cv_accuracy: float
    cv_results: pd.DataFrame
    fold_assignments: List[np.ndarray]
    known_levels: Dict[str, List[str]]
    feature_defaults: Dict
    feature_importance: Optional[pd.DataFrame] = None

    @property
    def feature_columns(self) -> List[str]:
        return list(self.feature_defaults)

    def predict(self, X: pd.DataFrame) -> np.ndarray:
        return self.pipeline.predict(X[self.feature_columns])

    def predict_proba(self, X: pd.DataFrame) -> np.ndarray:
        """Probability of stroke (class 1) for each row."""
        return self.pipeline.predict_proba(X[self.feature_columns])[:, 1]


def split_data(
    X: pd.DataFrame,
    y: pd.Series,
    test_size: float = TEST_SIZE,
    random_state: int = RANDOM_STATE,
    verbose: bool = True
) -> DataSplit:
    """
    Stratified train/test split.

    Stratifying on the stroke label keeps the ~5% positive rate in both
    subsets; without it a 20% test set can end up with very few strokes.
    """

    try:
        X_train, X_test, y_train, y_test = train_test_split(
            X, y,
            test_size=test_size,
            random_state=random_state,
            stratify=y
        )
    except ValueError as e:
        raise ModelTrainingError(f"Cannot split data: {e}")

    if verbose:
        print(f"   Training set: {len(X_train):,} samples")
        print(f"   Test set: {len(X_test):,} samples")
        print(f"   Training positive rate: {y_train.mean()*100:.2f}%")
        print(f"   Test positive rate: {y_test.mean()*100:.2f}%")

    return DataSplit(X_train=X_train, X_test=X_test, y_train=y_train, y_test=y_test)


def build_preprocessor(
    scale_numeric: bool = False,
    category_domains: Optional[Dict[str, List[str]]] = None
) -> ColumnTransformer:
    """
    One-hot encode categoricals over their fixed domains; optionally scale
    numeric columns (needed for logistic regression, not for trees).

    ``handle_unknown='error'`` makes the encoder refuse levels outside the
    domain instead of encoding them as all zeros.
    """

    category_domains = category_domains or CATEGORY_DOMAINS

    encoder = OneHotEncoder(
        categories=[category_domains[c] for c in CATEGORICAL_COLS],
        handle_unknown='error',
        sparse_output=False
    )

    return ColumnTransformer(
        transformers=[
            ('num', StandardScaler() if scale_numeric else 'passthrough', NUMERIC_COLS + FLAG_COLS),
            ('cat', encoder, CATEGORICAL_COLS),
        ],
        remainder='drop',
        verbose_feature_names_out=False
    )


def build_classifier(model_key: str, random_state: int = RANDOM_STATE) -> ClassifierMixin:
    """Construct the untrained classifier for one algorithm family."""

    if model_key == 'logistic_regression':
        return LogisticRegression(max_iter=1000, random_state=random_state)

    if model_key == 'random_forest':
        return RandomForestClassifier(
            n_estimators=200,
            random_state=random_state,
            n_jobs=1
        )

    if model_key == 'xgboost':
        return XGBClassifier(
            n_estimators=200,
            subsample=0.8,
            colsample_bytree=0.8,
            random_state=random_state,
            n_jobs=1,
            eval_metric='logloss',
            tree_method='hist'
        )

    raise ValueError(f"Unknown model '{model_key}'. Choose from {list(MODEL_NAMES)}")


def build_pipeline(model_key: str, random_state: int = RANDOM_STATE) -> Pipeline:
    return Pipeline([
        ('preprocessor', build_preprocessor(scale_numeric=model_key == 'logistic_regression')),
        ('classifier', build_classifier(model_key, random_state)),
    ])


def get_cv(n_folds: int = N_FOLDS, random_state: int = RANDOM_STATE) -> StratifiedKFold:
    """Shuffled stratified k-fold with a fixed seed."""
    return StratifiedKFold(n_splits=n_folds, shuffle=True, random_state=random_state)


def fold_assignments(
    X: pd.DataFrame,
    y: pd.Series,
    cv: StratifiedKFold
) -> List[np.ndarray]:
    """Positional indices of the validation rows in each fold."""
    return [test_idx for _, test_idx in cv.split(X, y)]


def check_training_folds(y: pd.Series, cv: StratifiedKFold) -> None:
    """
    Raise ModelTrainingError if the training split, or the training part of
    any fold, contains only one class.
    """

    if y.nunique() < 2:
        raise ModelTrainingError(
            f"Training split has a single class ({y.unique().tolist()}); cannot fit a classifier"
        )

    try:
        folds = list(cv.split(np.zeros(len(y)), y))
    except ValueError as e:
        raise ModelTrainingError(f"Cannot build {cv.get_n_splits()} folds: {e}")

    for i, (train_idx, _) in enumerate(folds, start=1):
        if y.iloc[train_idx].nunique() < 2:
            raise ModelTrainingError(f"CV fold {i} training data has a single class")


def get_feature_defaults(X_train: pd.DataFrame) -> Dict:
    """Training medians for numeric columns, modes for categorical columns."""

    defaults = {}
    for col in X_train.columns:
        if col in CATEGORICAL_COLS:
            defaults[col] = str(X_train[col].mode().iloc[0])
        elif col in FLAG_COLS:
            defaults[col] = int(X_train[col].median())
        else:
            defaults[col] = float(X_train[col].median())
    return defaults


def get_known_levels(X_train: pd.DataFrame) -> Dict[str, List[str]]:
    """Categorical levels that occur at least once in the training split."""

    known = {}
    for col in CATEGORICAL_COLS:
        if col not in X_train.columns:
            continue
        present = set(X_train[col].astype(str))
        domain = CATEGORY_DOMAINS[col]
        known[col] = [level for level in domain if level in present]
    return known


def train_model(
    model_key: str,
    split: DataSplit,
    random_state: int = RANDOM_STATE,
    n_folds: int = N_FOLDS,
    param_grid: Optional[Dict[str, list]] = None,
    verbose: bool = True
) -> TrainedModel:
    """
    Fit one classifier family with cross-validated hyperparameter selection.

    Parameters
    ----------
    model_key : str
        One of 'logistic_regression', 'random_forest', 'xgboost'.
    split : DataSplit
        Train/test partition; only the training part is used.
    random_state : int, default=123
        Seed for fold assignment and the algorithm's internal randomness.
    n_folds : int, default=5
        Number of CV folds.
    param_grid : dict, optional
        Candidate hyperparameters. Defaults to ``config.PARAM_GRIDS``.
    verbose : bool, default=True
        Whether to print progress.

    Returns
    -------
    TrainedModel

    Raises
    ------
    ModelTrainingError
        If the training data (or a CV fold of it) has a single class, or
        the fit itself fails.
    ValueError
        If ``model_key`` is not a known family.
    """

    if model_key not in MODEL_NAMES:
        raise ValueError(f"Unknown model '{model_key}'. Choose from {list(MODEL_NAMES)}")

    name = MODEL_NAMES[model_key]
    param_grid = param_grid if param_grid is not None else PARAM_GRIDS[model_key]

    X_train, y_train = split.X_train, split.y_train
    cv = get_cv(n_folds, random_state)

    check_training_folds(y_train, cv)

    if verbose:
        print(f"\n   {name}: {n_folds}-fold CV over {_n_candidates(param_grid)} candidate(s)...")

    search = GridSearchCV(
        build_pipeline(model_key, random_state),
        param_grid,
        scoring='accuracy',
        cv=cv,
        refit=True,
        n_jobs=1,
        error_score='raise'
    )

    try:
        search.fit(X_train, y_train)
    except ValueError as e:
        logger.error("Fitting %s failed: %s", name, e)
        raise ModelTrainingError(f"Fitting {name} failed: {e}")

    cv_results = pd.DataFrame(search.cv_results_)[
        ['params', 'mean_test_score', 'std_test_score', 'rank_test_score']
    ]

    feature_importance = None
    if model_key == 'random_forest':
        feature_importance = get_feature_importance(search.best_estimator_)

    trained = TrainedModel(
        key=model_key,
        name=name,
        pipeline=search.best_estimator_,
        best_params=search.best_params_,
        cv_accuracy=float(search.best_score_),
        cv_results=cv_results,
        fold_assignments=fold_assignments(X_train, y_train, cv),
        known_levels=get_known_levels(X_train),
        feature_defaults=get_feature_defaults(X_train),
        feature_importance=feature_importance
    )

    if verbose:
        best = cv_results.loc[cv_results['rank_test_score'] == 1].iloc[0]
        print(f"   CV Accuracy: {best['mean_test_score']:.3f} (+/- {best['std_test_score']*2:.3f})")
        print(f"   Best parameters: {search.best_params_}")

    return trained


def train_models(
    split: DataSplit,
    model_keys: Optional[List[str]] = None,
    random_state: int = RANDOM_STATE,
    n_folds: int = N_FOLDS,
    param_grids: Optional[Dict[str, Dict[str, list]]] = None,
    verbose: bool = True
) -> Dict[str, TrainedModel]:
    """
    Fit all three classifier families in order.

    A family whose fit raises ModelTrainingError is logged and left out;
    the others are still trained.

    Returns
    -------
    dict
        Model key -> TrainedModel, in training order.

    Raises
    ------
    ModelTrainingError
        If no family could be trained.
    """

    model_keys = model_keys or list(MODEL_NAMES)
    param_grids = param_grids or {}

    if verbose:
        print("="*60)
        print("MODEL TRAINING")
        print("="*60)

    models = {}
    for key in model_keys:
        try:
            models[key] = train_model(
                key, split,
                random_state=random_state,
                n_folds=n_folds,
                param_grid=param_grids.get(key),
                verbose=verbose
            )
        except ModelTrainingError as e:
            logger.error("Skipping %s: %s", MODEL_NAMES[key], e)
            if verbose:
                print(f"\n   {MODEL_NAMES[key]}: training failed ({e})")

    if not models:
        raise ModelTrainingError(
            f"No model could be trained; every family failed on the training split "
            f"({', '.join(MODEL_NAMES[k] for k in model_keys)})"
        )

    if verbose and 'random_forest' in models:
        print("\n   Top 10 Random Forest Features:")
        for _, row in models['random_forest'].feature_importance.head(10).iterrows():
            print(f"   {row['importance']:.4f} - {row['feature']}")

    if verbose:
        print("\n" + "="*60)
        print("Model training complete!")
        print("="*60)

    return models


def get_feature_importance(pipeline: Pipeline) -> pd.DataFrame:
    """Impurity-based importances of a fitted tree pipeline, descending."""

    feature_names = pipeline.named_steps['preprocessor'].get_feature_names_out()
    importances = pipeline.named_steps['classifier'].feature_importances_

    return pd.DataFrame({
        'feature': feature_names,
        'importance': importances
    }).sort_values('importance', ascending=False).reset_index(drop=True)


def _n_candidates(param_grid: Dict[str, list]) -> int:
    return int(np.prod([len(v) for v in param_grid.values()])) if param_grid else 1


def save_model(
    trained: TrainedModel,
    output_path: Union[str, Path],
    training_info: Optional[Dict] = None
) -> str:
    """
    Save a trained model and its metadata with joblib.

    Parameters
    ----------
    trained : TrainedModel
        Model to save.
    output_path : str or Path
        Path to save the model.
    training_info : dict, optional
        Metadata saved alongside the model (``.info.joblib``).

    Returns
    -------
    str
        Path where model was saved.
    """

    output_path = Path(output_path)
    output_path.parent.mkdir(parents=True, exist_ok=True)

    joblib.dump(trained, output_path)
    print(f"Model saved to: {output_path}")

    if training_info:
        info_path = output_path.with_suffix('.info.joblib')
        joblib.dump(training_info, info_path)
        print(f"Training info saved to: {info_path}")

    return str(output_path)


def load_model(model_path: Union[str, Path]) -> Tuple[TrainedModel, Optional[Dict]]:
    """
    Load a saved model and its metadata.

    Returns
    -------
    trained : TrainedModel
        Loaded model.
    training_info : dict or None
        Training metadata if available.
    """

    model_path = Path(model_path)

    if not model_path.exists():
        raise FileNotFoundError(f"Model not found at {model_path}")

    trained = joblib.load(model_path)
    logger.info("Model loaded from %s", model_path)

    info_path = model_path.with_suffix('.info.joblib')
    training_info = None

    if info_path.exists():
        training_info = joblib.load(info_path)

    return trained, training_info
