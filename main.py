#!/usr/bin/env python3
"""
Stroke Prediction Report Pipeline
=================================

Healthcare Analytics Report
Predicting Stroke from Demographic and Clinical Risk Factors

This script runs the complete analysis once, top to bottom:
1. Data Loading from the stroke CSV
2. Cleaning (BMI median imputation, fixed categorical domains)
3. Exploratory Data Analysis with visualizations
4. Training Logistic Regression, Random Forest and XGBoost with 5-fold CV
5. Evaluation (accuracy, confusion matrices, overlaid ROC curves)
6. SHAP explainability for the gradient-boosted model
7. Saving the Random Forest for the interactive form (dashboard.py)

Usage:
------
    python main.py --data data/healthcare-dataset-stroke-data.csv
    python main.py --skip-eda         # Skip EDA visualizations
    python main.py --skip-shap        # Skip SHAP analysis (faster)
"""

import argparse
import logging
import sys
import warnings
from datetime import datetime
from pathlib import Path

# Suppress warnings for cleaner output
warnings.filterwarnings('ignore')

from stroke_analysis.config import DATA_PATH, FORM_MODEL, MODEL_PATH_ENV, OUTPUT_DIR
from stroke_analysis.data_loader import DataError, load_stroke_data, save_processed_data
from stroke_analysis.preprocessing import clean_stroke_data, split_features_target
from stroke_analysis.eda import run_eda, generate_eda_report
from stroke_analysis.model import ModelTrainingError, save_model, split_data, train_models
from stroke_analysis.evaluation import compare_models, evaluate_models, explain_with_shap
from stroke_analysis.prediction import SAMPLE_PATIENT, predict_from_form


logger = logging.getLogger(__name__)


def setup_logging(level: str = "INFO") -> None:
    """Set up logging configuration."""
    logging.basicConfig(
        level=getattr(logging, level.upper(), logging.INFO),
        format='%(asctime)s - %(levelname)s - %(message)s',
        handlers=[logging.StreamHandler(sys.stdout)]
    )


def print_header():
    """Print pipeline header."""

    header = """
╔══════════════════════════════════════════════════════════════════════════════╗
║                       STROKE PREDICTION REPORT PIPELINE                      ║
║                                                                              ║
║        Logistic Regression vs Random Forest vs Gradient-Boosted Trees        ║
╚══════════════════════════════════════════════════════════════════════════════╝
    """
    print(header)
    print(f"Started at: {datetime.now().strftime('%Y-%m-%d %H:%M:%S')}")
    print("="*80 + "\n")


def print_section(title: str):
    """Print section separator."""
    print("\n" + "="*80)
    print(f"  {title}")
    print("="*80 + "\n")


def main(
    data_path=DATA_PATH,
    output_dir=OUTPUT_DIR,
    skip_eda: bool = False,
    skip_shap: bool = False,
    save_data: bool = True
):
    """
    Run the complete stroke prediction report.

    Parameters
    ----------
    data_path : str or Path
        Path to the stroke CSV file.
    output_dir : str or Path
        Root directory for plots, reports and the saved model.
    skip_eda : bool
        Skip EDA visualization generation.
    skip_shap : bool
        Skip SHAP explainability analysis.
    save_data : bool
        Save the cleaned dataset to CSV.
    """

    output_dir = Path(output_dir)

    print_header()

    # =========================================================================
    # STEP 1: DATA LOADING
    # =========================================================================
    print_section("STEP 1: DATA LOADING")

    df_raw = load_stroke_data(data_path)

    # =========================================================================
    # STEP 2: CLEANING
    # =========================================================================
    print_section("STEP 2: DATA CLEANING")

    df, cleaning_info = clean_stroke_data(df_raw)

    if save_data:
        save_processed_data(df, output_dir / "data" / "cleaned_stroke_data.csv",
                            "cleaned dataset")

    # =========================================================================
    # STEP 3: EXPLORATORY DATA ANALYSIS
    # =========================================================================
    if not skip_eda:
        print_section("STEP 3: EXPLORATORY DATA ANALYSIS")

        run_eda(df, output_dir=output_dir / "eda")
        generate_eda_report(df, output_path=output_dir / "eda" / "eda_report.txt")
    else:
        print_section("STEP 3: EXPLORATORY DATA ANALYSIS (SKIPPED)")

    # =========================================================================
    # STEP 4: MODEL TRAINING
    # =========================================================================
    print_section("STEP 4: MODEL TRAINING")

    print("Splitting data (80/20, stratified on stroke)...")
    X, y = split_features_target(df)
    split = split_data(X, y)

    models = train_models(split)

    # =========================================================================
    # STEP 5: MODEL EVALUATION
    # =========================================================================
    print_section("STEP 5: MODEL EVALUATION")

    eval_results = evaluate_models(models, split, output_dir=output_dir / "evaluation")

    # =========================================================================
    # STEP 6: SHAP EXPLAINABILITY
    # =========================================================================
    if not skip_shap and 'xgboost' in models:
        print_section("STEP 6: SHAP EXPLAINABILITY ANALYSIS")
        explain_with_shap(models['xgboost'], split.X_test,
                          output_dir=output_dir / "evaluation")
    else:
        print_section("STEP 6: SHAP EXPLAINABILITY (SKIPPED)")

    # =========================================================================
    # STEP 7: SAVE FORM MODEL
    # =========================================================================
    print_section("STEP 7: PREDICTION SERVICE")

    if FORM_MODEL not in models:
        raise ModelTrainingError(f"Form model '{FORM_MODEL}' was not trained")

    form_model = models[FORM_MODEL]
    model_path = save_model(
        form_model,
        output_path=output_dir / "model" / f"{FORM_MODEL}_stroke_model.joblib",
        training_info={
            'cleaning_info': cleaning_info,
            'train_size': len(split.X_train),
            'test_size': len(split.X_test),
            'cv_accuracy': {k: m.cv_accuracy for k, m in models.items()},
            'comparison': compare_models(eval_results),
        }
    )

    print(f"\nSample form submission: {SAMPLE_PATIENT}")
    print(predict_from_form(form_model, SAMPLE_PATIENT))

    # =========================================================================
    # PIPELINE COMPLETE
    # =========================================================================
    print("\n" + "="*80)
    print("  PIPELINE COMPLETE")
    print("="*80)

    print(f"""
Summary:
--------
• Models trained on {len(split.X_train):,} samples
• Tested on {len(split.X_test):,} samples
• BMI imputed for {cleaning_info['bmi_imputed']:,} records (median {cleaning_info['bmi_median']:.1f})

Output Files:
-------------
• Form model: {model_path}
• EDA Plots: {output_dir / 'eda'}
• Evaluation Plots: {output_dir / 'evaluation'}

Interactive form:
-----------------
    {MODEL_PATH_ENV}={model_path} streamlit run dashboard.py

Completed at: {datetime.now().strftime('%Y-%m-%d %H:%M:%S')}
    """)

    return {
        'models': models,
        'split': split,
        'eval_results': eval_results,
        'cleaning_info': cleaning_info
    }


def parse_args(argv=None):
    parser = argparse.ArgumentParser(
        description="Stroke Prediction Report Pipeline"
    )

    parser.add_argument(
        '--data',
        default=str(DATA_PATH),
        help='Path to the stroke CSV file'
    )

    parser.add_argument(
        '--output-dir',
        default=str(OUTPUT_DIR),
        help='Directory for plots, reports and the saved model'
    )

    parser.add_argument(
        '--skip-eda',
        action='store_true',
        help='Skip EDA visualization generation'
    )

    parser.add_argument(
        '--skip-shap',
        action='store_true',
        help='Skip SHAP explainability analysis (faster)'
    )

    parser.add_argument(
        '--no-save',
        action='store_true',
        help='Do not save the cleaned dataset'
    )

    parser.add_argument(
        '--log-level',
        default='INFO',
        help='Logging level (DEBUG, INFO, WARNING, ERROR)'
    )

    return parser.parse_args(argv)


if __name__ == "__main__":
    args = parse_args()
    setup_logging(args.log_level)

    try:
        main(
            data_path=args.data,
            output_dir=args.output_dir,
            skip_eda=args.skip_eda,
            skip_shap=args.skip_shap,
            save_data=not args.no_save
        )
    except (DataError, ModelTrainingError) as e:
        logger.error("Pipeline aborted: %s", e)
        sys.exit(1)
