import pytest

import main
from stroke_analysis.data_loader import DataError
from stroke_analysis.model import load_model


def test_parse_args_defaults():
    args = main.parse_args([])

    assert not args.skip_eda
    assert not args.skip_shap
    assert args.log_level == "INFO"


def test_pipeline_end_to_end(stroke_csv, tmp_path, capsys):
    out_dir = tmp_path / "outputs"

    results = main.main(data_path=stroke_csv, output_dir=out_dir, skip_shap=True)

    out = capsys.readouterr().out
    for name in ("Logistic Regression", "Random Forest", "Gradient Boosting"):
        assert f"{name} Accuracy: " in out
    assert "Stroke Prediction: " in out

    assert set(results["models"]) == {"logistic_regression", "random_forest", "xgboost"}
    assert (out_dir / "eda" / "correlation_heatmap.png").exists()
    assert (out_dir / "evaluation" / "roc_curves.png").exists()
    assert (out_dir / "data" / "cleaned_stroke_data.csv").exists()

    model, info = load_model(out_dir / "model" / "random_forest_stroke_model.joblib")
    assert model.key == "random_forest"
    assert info["test_size"] == len(results["split"].X_test)


def test_pipeline_aborts_on_missing_file(tmp_path):
    with pytest.raises(DataError):
        main.main(data_path=tmp_path / "missing.csv", output_dir=tmp_path)
