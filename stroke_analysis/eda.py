"""
Exploratory Data Analysis Module
================================

Clinical Context:
-----------------
EDA for stroke prediction is mainly about:
1. Seeing how rare the outcome is (class imbalance drives metric choice)
2. Checking the ranges of age, glucose and BMI for implausible values
3. Spotting correlated risk factors (age with hypertension, for example)

Everything here is observational: the cleaned dataset is never modified.
"""

from pathlib import Path
from typing import Dict, Optional, Tuple, Union

import matplotlib.pyplot as plt
import numpy as np
import pandas as pd
import seaborn as sns

from .config import CATEGORICAL_COLS, FLAG_COLS, LABELS, NUMERIC_COLS, TARGET_COL


# Set style for all plots
plt.style.use('seaborn-v0_8-whitegrid')
sns.set_palette("husl")

SUMMARY_STATS = ['min', '25%', '50%', 'mean', '75%', 'max']


def summarize_dataset(df: pd.DataFrame) -> Dict:
    """
    Compute descriptive statistics for a cleaned stroke dataset.

    Parameters
    ----------
    df : pd.DataFrame
        Cleaned dataset (features plus stroke label).

    Returns
    -------
    dict
        - numeric_summary: DataFrame of min/quartiles/mean/max per numeric column
        - category_counts: dict of level counts per categorical column
        - label_counts: Series of counts per stroke label (both labels present)
        - correlation: Pearson correlation over numeric columns, complete cases
    """

    numeric_cols = [c for c in NUMERIC_COLS + FLAG_COLS + [TARGET_COL] if c in df.columns]

    numeric_summary = df[numeric_cols].describe().loc[SUMMARY_STATS]

    category_counts = {
        col: df[col].value_counts(sort=False).to_dict()
        for col in CATEGORICAL_COLS
        if col in df.columns
    }

    label_counts = df[TARGET_COL].value_counts().reindex(list(LABELS), fill_value=0)

    correlation = df[numeric_cols].dropna().corr(method='pearson')

    return {
        'numeric_summary': numeric_summary,
        'category_counts': category_counts,
        'label_counts': label_counts,
        'correlation': correlation,
    }


def run_eda(
    df: pd.DataFrame,
    output_dir: Union[str, Path] = "outputs/eda",
    save_plots: bool = True
) -> Dict:
    """
    Print the exploratory summary and render the EDA plots.

    Parameters
    ----------
    df : pd.DataFrame
        Cleaned dataset.
    output_dir : str or Path
        Directory to save plots.
    save_plots : bool
        Whether to save plots to files.

    Returns
    -------
    dict
        The ``summarize_dataset`` results plus the rendered figures.
    """

    output_path = Path(output_dir)
    if save_plots:
        output_path.mkdir(parents=True, exist_ok=True)

    results = summarize_dataset(df)

    print("="*60)
    print("EXPLORATORY DATA ANALYSIS")
    print("="*60)

    # 1. Numeric columns
    print("\n1. Numeric Feature Statistics")
    print(results['numeric_summary'].round(2).to_string())

    # 2. Categorical columns
    print("\n2. Categorical Level Counts")
    for col, counts in results['category_counts'].items():
        levels = ", ".join(f"{level}={count:,}" for level, count in counts.items())
        print(f"   {col}: {levels}")

    # 3. Target distribution
    print("\n3. Stroke Distribution")
    label_counts = results['label_counts']
    for label, count in label_counts.items():
        print(f"   {LABELS[label]}: {count:,}")
    stroke_rate = label_counts[1] / label_counts.sum() * 100
    print(f"   Stroke rate: {stroke_rate:.2f}%")
    results['stroke_rate'] = stroke_rate

    # 4. Correlation
    print("\n4. Correlation Matrix (complete cases)")
    print(results['correlation'].round(3).to_string())

    # 5. Plots
    print("\n5. Generating Visualizations...")

    results['distribution_plot'] = plot_stroke_distribution(
        label_counts,
        save_path=output_path / "stroke_distribution.png" if save_plots else None
    )
    results['correlation_plot'] = plot_correlation_heatmap(
        results['correlation'],
        save_path=output_path / "correlation_heatmap.png" if save_plots else None
    )
    results['feature_plot'] = plot_key_feature_distributions(
        df,
        save_path=output_path / "feature_distributions.png" if save_plots else None
    )
    for key in ('distribution_plot', 'correlation_plot', 'feature_plot'):
        plt.close(results[key])

    print("\n" + "="*60)
    print("EDA Complete! Plots saved to:", output_path if save_plots else "Not saved")
    print("="*60)

    return results


def plot_stroke_distribution(
    label_counts: pd.Series,
    save_path: Optional[Path] = None,
    figsize: Tuple[int, int] = (8, 6)
) -> plt.Figure:
    """
    Bar chart of stroke vs no-stroke counts.

    Clinical Context:
    -----------------
    Roughly 1 in 20 patients had a stroke. A model that always predicts
    "No Stroke" already scores ~95% accuracy, which is why accuracy is read
    alongside the ROC curves.
    """

    fig, ax = plt.subplots(figsize=figsize)

    colors = ['#2ecc71', '#e74c3c']
    labels = [LABELS[label] for label in label_counts.index]

    bars = ax.bar(labels, label_counts.values, color=colors, edgecolor='black', linewidth=1.5)
    ax.set_ylabel('Number of Patients', fontsize=12)
    ax.set_title('Stroke Distribution', fontsize=14, fontweight='bold')

    offset = max(label_counts.max() * 0.01, 1)
    for bar, count in zip(bars, label_counts.values):
        ax.text(bar.get_x() + bar.get_width()/2, bar.get_height() + offset,
                f'{count:,}', ha='center', va='bottom', fontsize=11, fontweight='bold')

    plt.tight_layout()

    if save_path:
        fig.savefig(save_path, dpi=150, bbox_inches='tight')
        print(f"   Saved: {save_path}")

    return fig


def plot_correlation_heatmap(
    correlation: pd.DataFrame,
    save_path: Optional[Path] = None,
    figsize: Tuple[int, int] = (9, 7)
) -> plt.Figure:
    """Heatmap of the numeric correlation matrix (lower triangle)."""

    fig, ax = plt.subplots(figsize=figsize)

    mask = np.triu(np.ones_like(correlation, dtype=bool), k=1)

    sns.heatmap(
        correlation,
        mask=mask,
        annot=True,
        fmt='.2f',
        cmap='RdBu_r',
        center=0,
        vmin=-1,
        vmax=1,
        square=True,
        linewidths=0.5,
        ax=ax,
        cbar_kws={'label': 'Correlation Coefficient', 'shrink': 0.8},
        annot_kws={'size': 10}
    )

    ax.set_title('Correlation Heatmap\n(Numeric Features and Stroke)',
                 fontsize=14, fontweight='bold', pad=20)

    plt.xticks(rotation=45, ha='right')
    plt.yticks(rotation=0)

    plt.tight_layout()

    if save_path:
        fig.savefig(save_path, dpi=150, bbox_inches='tight')
        print(f"   Saved: {save_path}")

    return fig


def plot_key_feature_distributions(
    df: pd.DataFrame,
    save_path: Optional[Path] = None,
    figsize: Tuple[int, int] = (14, 5)
) -> plt.Figure:
    """
    Box plots of age, average glucose and BMI by stroke status.

    Clinical Context:
    -----------------
    Age is the dominant risk factor; glucose shows a long right tail in the
    stroke group, consistent with diabetes as a comorbidity.
    """

    features = [c for c in NUMERIC_COLS if c in df.columns]

    fig, axes = plt.subplots(1, len(features), figsize=figsize)
    axes = np.atleast_1d(axes)

    outcome = df[TARGET_COL].map(LABELS)
    order = [LABELS[0], LABELS[1]]

    for ax, feature in zip(axes, features):
        plot_df = pd.DataFrame({feature: df[feature], 'Outcome': outcome})

        sns.boxplot(
            data=plot_df,
            x='Outcome',
            y=feature,
            hue='Outcome',
            ax=ax,
            palette=['#2ecc71', '#e74c3c'],
            order=order,
            hue_order=order,
            legend=False
        )

        ax.set_title(feature.replace("_", " ").title(), fontsize=11, fontweight='bold')
        ax.set_xlabel('')
        ax.set_ylabel('')

    fig.suptitle('Key Feature Distributions by Stroke Status',
                 fontsize=14, fontweight='bold', y=1.02)

    plt.tight_layout()

    if save_path:
        fig.savefig(save_path, dpi=150, bbox_inches='tight')
        print(f"   Saved: {save_path}")

    return fig


def generate_eda_report(
    df: pd.DataFrame,
    output_path: Union[str, Path] = "outputs/eda/eda_report.txt"
) -> str:
    """
    Generate a text-based EDA report.

    Returns
    -------
    str
        Formatted EDA report.
    """

    summary = summarize_dataset(df)
    label_counts = summary['label_counts']
    stroke_rate = label_counts[1] / label_counts.sum()

    report_lines = [
        "=" * 70,
        "EXPLORATORY DATA ANALYSIS REPORT",
        "Stroke Prediction",
        "=" * 70,
        "",
        "1. DATASET OVERVIEW",
        "-" * 40,
        f"   Total patients: {len(df):,}",
        f"   Number of features: {df.shape[1] - 1}",
        "",
        "2. TARGET VARIABLE ANALYSIS",
        "-" * 40,
        f"   Stroke: {label_counts[1]:,} ({stroke_rate*100:.2f}%)",
        f"   No stroke: {label_counts[0]:,} ({(1-stroke_rate)*100:.2f}%)",
        "",
        "3. NUMERIC FEATURE STATISTICS",
        "-" * 40,
    ]

    for feat in NUMERIC_COLS:
        if feat in df.columns:
            stats = summary['numeric_summary'][feat]
            report_lines.append(f"   {feat}:")
            report_lines.append(f"      Mean: {stats['mean']:.2f}, Median: {stats['50%']:.2f}")
            report_lines.append(f"      Min: {stats['min']:.2f}, Max: {stats['max']:.2f}")

    report_lines.extend([
        "",
        "4. CATEGORICAL LEVELS",
        "-" * 40,
    ])

    for col, counts in summary['category_counts'].items():
        report_lines.append(f"   {col}:")
        for level, count in counts.items():
            report_lines.append(f"      {level}: {count:,}")

    report_lines.extend([
        "",
        "5. STRONGEST CORRELATIONS WITH STROKE",
        "-" * 40,
    ])

    target_corr = summary['correlation'][TARGET_COL].drop(TARGET_COL)
    for feat, value in target_corr.reindex(target_corr.abs().sort_values(ascending=False).index).items():
        report_lines.append(f"   {feat}: {value:+.3f}")

    report_lines.extend(["", "=" * 70])

    report = "\n".join(report_lines)

    output_path = Path(output_path)
    output_path.parent.mkdir(parents=True, exist_ok=True)
    with open(output_path, 'w') as f:
        f.write(report)

    print(f"EDA report saved to: {output_path}")

    return report
