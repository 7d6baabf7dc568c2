# Stroke Prediction Report
# Data cleaning, exploratory analysis, model comparison and an interactive form

from .data_loader import load_stroke_data, DataError
from .preprocessing import clean_stroke_data, impute_median, split_features_target
from .eda import summarize_dataset, run_eda, plot_correlation_heatmap, plot_stroke_distribution
from .model import (
    DataSplit,
    TrainedModel,
    ModelTrainingError,
    split_data,
    train_model,
    train_models
)
from .evaluation import (
    EvaluationResult,
    evaluate_model,
    evaluate_models,
    compare_models,
    plot_roc_curves,
    explain_with_shap
)
from .prediction import (
    predict_stroke,
    predict_from_form,
    format_prediction,
    PredictionError,
    MissingFieldError,
    UnseenCategoryError,
    StrokePredictor
)

__version__ = "1.0.0"
