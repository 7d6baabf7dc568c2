import matplotlib.pyplot as plt
import numpy as np
import pandas as pd
import pytest

from stroke_analysis.eda import (
    generate_eda_report,
    run_eda,
    summarize_dataset,
)


def test_summary_contents(clean_df):
    summary = summarize_dataset(clean_df)

    numeric = summary["numeric_summary"]
    assert list(numeric.index) == ["min", "25%", "50%", "mean", "75%", "max"]
    assert numeric.loc["mean", "age"] == pytest.approx(clean_df["age"].mean())
    assert numeric.loc["50%", "bmi"] == pytest.approx(clean_df["bmi"].median())

    assert summary["label_counts"].sum() == len(clean_df)
    assert summary["label_counts"][1] == clean_df["stroke"].sum()


def test_category_counts_include_empty_levels(clean_df):
    counts = summarize_dataset(clean_df)["category_counts"]

    assert counts["gender"]["Other"] == 0
    assert sum(counts["smoking_status"].values()) == len(clean_df)


def test_correlation_uses_complete_cases(clean_df):
    df = clean_df.copy()
    df.loc[df.index[:10], "bmi"] = np.nan

    corr = summarize_dataset(df)["correlation"]

    complete = df.dropna(subset=["bmi"])
    assert corr.loc["age", "bmi"] == pytest.approx(complete["age"].corr(complete["bmi"]))
    assert corr.loc["age", "avg_glucose_level"] == pytest.approx(
        complete["age"].corr(complete["avg_glucose_level"])
    )
    assert corr.loc["age", "age"] == pytest.approx(1.0)
    pd.testing.assert_frame_equal(corr, corr.T)


def test_summary_does_not_mutate(clean_df):
    before = clean_df.copy()

    summarize_dataset(clean_df)

    pd.testing.assert_frame_equal(clean_df, before)


def test_run_eda_saves_plots(clean_df, tmp_path, capsys):
    results = run_eda(clean_df, output_dir=tmp_path)

    assert (tmp_path / "stroke_distribution.png").exists()
    assert (tmp_path / "correlation_heatmap.png").exists()
    assert (tmp_path / "feature_distributions.png").exists()
    assert 0 < results["stroke_rate"] < 100
    assert "Stroke rate:" in capsys.readouterr().out


def test_run_eda_without_saving(clean_df, tmp_path):
    out = tmp_path / "unused"

    run_eda(clean_df, output_dir=out, save_plots=False)

    assert not out.exists()


def test_run_eda_closes_its_figures(clean_df, tmp_path):
    plt.close("all")

    results = run_eda(clean_df, output_dir=tmp_path)

    assert plt.get_fignums() == []
    assert results["correlation_plot"].axes


def test_generate_eda_report(clean_df, tmp_path):
    path = tmp_path / "report.txt"

    report = generate_eda_report(clean_df, output_path=path)

    assert path.read_text() == report
    assert "STRONGEST CORRELATIONS WITH STROKE" in report
    assert f"Total patients: {len(clean_df):,}" in report
