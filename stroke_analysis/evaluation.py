"""
Model Evaluation Module
=======================

Clinical Context:
-----------------
The three stroke models are compared on the held-out 20% test split:

1. Accuracy: share of test patients classified correctly
   - Reported for every model, with no automatic winner
   - Read with care: ~95% of patients never have a stroke, so always
     predicting "No Stroke" is already ~95% accurate

2. Confusion Matrix: where the errors are
   - False Negatives: strokes the model missed
   - False Positives: patients flagged who did not have a stroke

3. ROC Curve: discrimination across all thresholds
   - Computed from predicted stroke probabilities, so each model yields a
     full curve rather than the single point given by hard labels
   - The hard-label operating point (threshold 0.5) is kept and marked
"""

import logging
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any, Dict, List, Optional, Tuple, Union

import matplotlib.pyplot as plt
import numpy as np
import pandas as pd
import seaborn as sns
import shap
from sklearn.metrics import accuracy_score, auc, confusion_matrix, roc_curve

from .config import CATEGORICAL_COLS, LABELS, ROC_COLORS
from .data_loader import DataError
from .model import DataSplit, TrainedModel
from .prediction import UnseenCategoryError


logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class EvaluationResult:
    """
    Test-set performance of one trained model.

    ``confusion_matrix`` rows are predicted labels and columns are actual
    labels. ``roc_curve`` is swept over predicted probabilities;
    ``label_roc_point`` is the (fpr, tpr) pair implied by the hard labels.

    Test records with a categorical level absent from training are not
    scored; ``rejected`` maps their row label to the error. Every other
    field covers the scored records only.
    """

    model_key: str
    model_name: str
    y_true: np.ndarray
    y_pred: np.ndarray
    y_score: np.ndarray
    accuracy: float
    confusion_matrix: pd.DataFrame
    roc_curve: Dict[str, np.ndarray]
    auc_roc: float
    label_roc_point: Tuple[float, float]
    rejected: Dict[Any, UnseenCategoryError] = field(default_factory=dict)

    @property
    def n_scored(self) -> int:
        return len(self.y_true)


def evaluate_model(
    trained: TrainedModel,
    X_test: pd.DataFrame,
    y_test: pd.Series,
    threshold: float = 0.5
) -> EvaluationResult:
    """
    Score one trained model on the test split.

    Parameters
    ----------
    trained : TrainedModel
        Fitted model.
    X_test : pd.DataFrame
        Test features.
    y_test : pd.Series
        True labels.
    threshold : float, default=0.5
        Probability threshold for the hard stroke label.

    Returns
    -------
    EvaluationResult

    Raises
    ------
    DataError
        If every test record has a level unseen in training.
    """

    rejected = reject_unseen_records(trained, X_test)
    if rejected:
        logger.warning(
            "%s: %d test record(s) not scored: %s",
            trained.name, len(rejected), "; ".join(str(e) for e in rejected.values())
        )

    scored = ~X_test.index.isin(list(rejected))
    X_scored, y_scored = X_test.loc[scored], y_test.loc[scored]
    if X_scored.empty:
        raise DataError(f"{trained.name}: no test record has levels seen in training")

    y_true = np.asarray(y_scored, dtype=int)
    y_score = trained.predict_proba(X_scored)
    y_pred = (y_score >= threshold).astype(int)

    cm = confusion_matrix(y_true, y_pred, labels=list(LABELS))
    cm_df = pd.DataFrame(
        cm.T,
        index=pd.Index(list(LABELS), name='predicted'),
        columns=pd.Index(list(LABELS), name='actual')
    )

    fpr, tpr, thresholds = roc_curve(y_true, y_score)

    return EvaluationResult(
        model_key=trained.key,
        model_name=trained.name,
        y_true=y_true,
        y_pred=y_pred,
        y_score=y_score,
        accuracy=float(accuracy_score(y_true, y_pred)),
        confusion_matrix=cm_df,
        roc_curve={'fpr': fpr, 'tpr': tpr, 'thresholds': thresholds},
        auc_roc=float(auc(fpr, tpr)),
        label_roc_point=label_operating_point(cm_df),
        rejected=rejected
    )


def label_operating_point(cm: pd.DataFrame) -> Tuple[float, float]:
    """(false-positive rate, true-positive rate) from a predicted x actual matrix."""

    tn, fn = cm.loc[0, 0], cm.loc[0, 1]
    fp, tp = cm.loc[1, 0], cm.loc[1, 1]

    fpr = fp / (fp + tn) if (fp + tn) else float('nan')
    tpr = tp / (tp + fn) if (tp + fn) else float('nan')
    return float(fpr), float(tpr)


def find_unseen_levels(trained: TrainedModel, X: pd.DataFrame) -> Dict[str, List]:
    """Map column -> row labels whose categorical level was absent from training."""

    unseen = {}
    for col in CATEGORICAL_COLS:
        if col not in X.columns or col not in trained.known_levels:
            continue
        mask = ~X[col].astype(str).isin(trained.known_levels[col])
        if mask.any():
            unseen[col] = X.index[mask].tolist()
    return unseen


def reject_unseen_records(trained: TrainedModel, X: pd.DataFrame) -> Dict[Any, UnseenCategoryError]:
    """One UnseenCategoryError per row whose levels the model never saw in training."""

    problems = {}
    for col, rows in find_unseen_levels(trained, X).items():
        for row in rows:
            problems.setdefault(row, []).append(f"{col} '{X.at[row, col]}'")

    return {
        row: UnseenCategoryError(f"Test record {row}: unknown {', '.join(levels)}")
        for row, levels in problems.items()
    }


def evaluate_models(
    models: Dict[str, TrainedModel],
    split: DataSplit,
    output_dir: Union[str, Path] = "outputs/evaluation",
    save_plots: bool = True,
    use_scores: bool = True
) -> Dict[str, EvaluationResult]:
    """
    Evaluate every trained model on the test split and render comparisons.

    Prints one ``"<Model Name> Accuracy: <value>"`` line per model. No model
    is selected automatically.

    Parameters
    ----------
    models : dict
        Model key -> TrainedModel.
    split : DataSplit
        Train/test partition; only the test part is used.
    output_dir : str or Path
        Directory to save evaluation plots.
    save_plots : bool
        Whether to save plots to files.
    use_scores : bool, default=True
        Plot ROC curves from probabilities (True) or from hard labels (False).
    """

    output_path = Path(output_dir)
    if save_plots:
        output_path.mkdir(parents=True, exist_ok=True)

    print("="*60)
    print("MODEL EVALUATION")
    print("="*60 + "\n")

    results = {}
    for key, trained in models.items():
        result = evaluate_model(trained, split.X_test, split.y_test)
        results[key] = result
        print(f"{result.model_name} Accuracy: {result.accuracy:.4f}")
        if result.rejected:
            print(f"   ({len(result.rejected)} test record(s) with levels unseen in training not scored)")

    print("\nModel comparison:")
    print(compare_models(results).round(4).to_string(index=False))

    print("\nGenerating evaluation plots...")

    figures = [
        plot_confusion_matrices(
            results,
            save_path=output_path / "confusion_matrices.png" if save_plots else None
        ),
        plot_roc_curves(
            results,
            use_scores=use_scores,
            save_path=output_path / "roc_curves.png" if save_plots else None
        ),
    ]

    forest = models.get('random_forest')
    if forest is not None and forest.feature_importance is not None:
        figures.append(plot_feature_importance(
            forest.feature_importance,
            save_path=output_path / "random_forest_importance.png" if save_plots else None
        ))

    for fig in figures:
        plt.close(fig)

    print("="*60 + "\n")

    return results


def compare_models(results: Dict[str, EvaluationResult]) -> pd.DataFrame:
    """Accuracy and AUC per model, in evaluation order."""

    return pd.DataFrame([
        {
            'model': r.model_name,
            'accuracy': r.accuracy,
            'auc_roc': r.auc_roc,
            'label_fpr': r.label_roc_point[0],
            'label_tpr': r.label_roc_point[1],
        }
        for r in results.values()
    ])


def plot_confusion_matrices(
    results: Dict[str, EvaluationResult],
    save_path: Optional[Path] = None,
    figsize: Tuple[int, int] = (15, 5)
) -> plt.Figure:
    """
    One confusion-matrix heatmap per model, side by side.

    Clinical Context:
    -----------------
    The bottom-left cell (predicted No Stroke, actual Stroke) counts missed
    strokes; on this imbalanced data it is usually the largest error cell.
    """

    fig, axes = plt.subplots(1, len(results), figsize=figsize)
    axes = np.atleast_1d(axes)

    tick_labels = [LABELS[label] for label in LABELS]

    for ax, result in zip(axes, results.values()):
        sns.heatmap(
            result.confusion_matrix,
            annot=True,
            fmt='d',
            cmap='Blues',
            ax=ax,
            cbar=False,
            annot_kws={'size': 14},
            square=True
        )
        ax.set_title(f"{result.model_name}\nAccuracy = {result.accuracy:.3f}",
                     fontsize=12, fontweight='bold')
        ax.set_xlabel('Actual', fontsize=11)
        ax.set_ylabel('Predicted', fontsize=11)
        ax.set_xticklabels(tick_labels)
        ax.set_yticklabels(tick_labels, rotation=0)

    plt.tight_layout()

    if save_path:
        fig.savefig(save_path, dpi=150, bbox_inches='tight')
        print(f"   Saved: {save_path}")

    return fig


def plot_roc_curves(
    results: Dict[str, EvaluationResult],
    use_scores: bool = True,
    save_path: Optional[Path] = None,
    figsize: Tuple[int, int] = (10, 8)
) -> plt.Figure:
    """
    Overlay the ROC curves of all models with a legend.

    With ``use_scores=False`` each curve degenerates to the single
    operating point of the hard labels, joined to (0, 0) and (1, 1).
    """

    fig, ax = plt.subplots(figsize=figsize)

    for result in results.values():
        color = ROC_COLORS.get(result.model_key, None)
        point_fpr, point_tpr = result.label_roc_point

        if use_scores:
            fpr, tpr = result.roc_curve['fpr'], result.roc_curve['tpr']
            label = f"{result.model_name} (AUC = {result.auc_roc:.3f})"
        else:
            fpr, tpr = [0.0, point_fpr, 1.0], [0.0, point_tpr, 1.0]
            label = f"{result.model_name} (labels)"

        ax.plot(fpr, tpr, color=color, lw=2.5, label=label)
        ax.scatter([point_fpr], [point_tpr], color=color, s=80, zorder=5, edgecolor='black')

    ax.plot([0, 1], [0, 1], color='gray', lw=2, linestyle='--',
            label='Random Classifier (AUC = 0.5)')

    ax.set_xlim([0.0, 1.0])
    ax.set_ylim([0.0, 1.05])
    ax.set_xlabel('False Positive Rate (1 - Specificity)', fontsize=14)
    ax.set_ylabel('True Positive Rate (Sensitivity)', fontsize=14)
    ax.set_title('ROC Curves - Stroke Prediction Models', fontsize=16, fontweight='bold')
    ax.legend(loc='lower right', fontsize=12)
    ax.grid(True, alpha=0.3)

    plt.tight_layout()

    if save_path:
        fig.savefig(save_path, dpi=150, bbox_inches='tight')
        print(f"   Saved: {save_path}")

    return fig


def plot_feature_importance(
    feature_importance: pd.DataFrame,
    top_n: int = 15,
    save_path: Optional[Path] = None,
    figsize: Tuple[int, int] = (10, 7)
) -> plt.Figure:
    """Horizontal bar chart of the random forest's top features."""

    top = feature_importance.head(top_n).iloc[::-1]

    fig, ax = plt.subplots(figsize=figsize)
    ax.barh(top['feature'], top['importance'], color='#27ae60', edgecolor='black')
    ax.set_xlabel('Mean Decrease in Impurity', fontsize=12)
    ax.set_title('Random Forest Feature Importance', fontsize=14, fontweight='bold')

    plt.tight_layout()

    if save_path:
        fig.savefig(save_path, dpi=150, bbox_inches='tight')
        print(f"   Saved: {save_path}")

    return fig


def explain_with_shap(
    trained: TrainedModel,
    X_test: pd.DataFrame,
    n_samples: int = 200,
    output_dir: Union[str, Path] = "outputs/evaluation",
    random_state: int = 42
) -> Dict:
    """
    SHAP explanation of a tree model's test-set predictions.

    Parameters
    ----------
    trained : TrainedModel
        A fitted random forest or gradient-boosted model.
    X_test : pd.DataFrame
        Test data for explanations.
    n_samples : int, default=200
        Number of rows to explain.
    output_dir : str or Path
        Directory to save the SHAP plot.

    Returns
    -------
    dict
        SHAP values, the explained rows and a mean |SHAP| ranking.

    Clinical Context:
    -----------------
    SHAP shows which features pushed each patient's risk up or down, which
    lets clinicians check that age, hypertension and glucose drive the
    predictions rather than artefacts of the encoding.
    """

    output_path = Path(output_dir)
    output_path.mkdir(parents=True, exist_ok=True)

    print("\n" + "="*60)
    print(f"SHAP EXPLAINABILITY ANALYSIS: {trained.name}")
    print("="*60)

    X_sample = X_test[trained.feature_columns]
    if len(X_sample) > n_samples:
        X_sample = X_sample.sample(n=n_samples, random_state=random_state)

    preprocessor = trained.pipeline.named_steps['preprocessor']
    X_encoded = pd.DataFrame(
        preprocessor.transform(X_sample),
        columns=preprocessor.get_feature_names_out(),
        index=X_sample.index
    )

    explainer = shap.TreeExplainer(trained.pipeline.named_steps['classifier'])
    shap_values = explainer.shap_values(X_encoded)

    # Random forests return one set of values per class
    if isinstance(shap_values, list):
        shap_values = shap_values[1]
    elif np.ndim(shap_values) == 3:
        shap_values = shap_values[:, :, 1]

    plt.figure(figsize=(12, 8))
    shap.summary_plot(shap_values, X_encoded, plot_type="bar", show=False, max_display=15)
    plt.title(f'SHAP Feature Importance - {trained.name}', fontsize=14, fontweight='bold')
    plt.tight_layout()

    save_path = output_path / f"shap_{trained.key}.png"
    plt.savefig(save_path, dpi=150, bbox_inches='tight')
    plt.close()
    print(f"   Saved: {save_path}")

    feature_importance = pd.DataFrame({
        'feature': X_encoded.columns,
        'mean_abs_shap': np.abs(shap_values).mean(axis=0)
    }).sort_values('mean_abs_shap', ascending=False).reset_index(drop=True)

    print("\n   Top 10 features by mean |SHAP|:")
    for _, row in feature_importance.head(10).iterrows():
        print(f"   {row['mean_abs_shap']:.4f} - {row['feature']}")

    return {
        'shap_values': shap_values,
        'X_encoded': X_encoded,
        'feature_importance': feature_importance,
        'plot_path': save_path
    }
