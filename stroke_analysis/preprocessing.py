"""
Data Cleaning Module
====================

Clinical Context:
-----------------
The stroke dataset needs only light cleaning, but each step matters:
1. BMI is missing for ~4% of patients (recorded as the literal "N/A")
2. The record identifier has no predictive value and is dropped
3. Categorical fields must map onto a fixed set of levels so the trained
   models can reject values they have never seen

Key Cleaning Steps:
1. Replace "N/A" markers with NaN and parse numeric columns
2. Impute missing BMI with the median of the observed values
3. Drop the identifier column
4. Coerce categorical columns to fixed-domain categorical types
5. Coerce the stroke label to a binary integer
"""

import logging
from typing import Dict, List, Optional, Tuple

import numpy as np
import pandas as pd

from .config import (
    CATEGORY_DOMAINS,
    FEATURE_COLS,
    FLAG_COLS,
    ID_COL,
    LABELS,
    MISSING_MARKER,
    NUMERIC_COLS,
    TARGET_COL,
)
from .data_loader import DataError


logger = logging.getLogger(__name__)


def clean_stroke_data(
    df: pd.DataFrame,
    category_domains: Optional[Dict[str, List[str]]] = None,
    verbose: bool = True
) -> Tuple[pd.DataFrame, Dict]:
    """
    Complete cleaning pipeline for the stroke dataset.

    Parameters
    ----------
    df : pd.DataFrame
        Raw stroke dataset as returned by ``load_stroke_data``.
    category_domains : dict, optional
        Allowed levels per categorical column. Defaults to
        ``config.CATEGORY_DOMAINS``.
    verbose : bool, default=True
        Whether to print progress.

    Returns
    -------
    df_clean : pd.DataFrame
        Cleaned dataset: no missing BMI, no id column, categorical columns
        typed over their fixed domains, integer 0/1 stroke label.
    cleaning_info : dict
        Imputation statistics and dropped columns, for reproducibility.

    Raises
    ------
    DataError
        If a numeric field cannot be parsed, a categorical field holds a
        level outside its domain, or the label is not binary.
    """

    category_domains = category_domains or CATEGORY_DOMAINS
    df = df.copy()
    cleaning_info = {}

    def step(message: str) -> None:
        if verbose:
            print(message)

    step("Step 1: Handling 'N/A' placeholders...")
    df = replace_missing_markers(df)

    step("Step 2: Parsing numeric columns...")
    df = coerce_numeric_columns(df)

    step("Step 3: Imputing missing BMI with the median...")
    n_missing = int(df["bmi"].isna().sum())
    df["bmi"], bmi_median = impute_median(df["bmi"])
    cleaning_info["bmi_median"] = bmi_median
    cleaning_info["bmi_imputed"] = n_missing
    logger.info("Imputed %d missing bmi values with median %.2f", n_missing, bmi_median)

    step("Step 4: Dropping identifier column...")
    dropped = [c for c in [ID_COL] if c in df.columns]
    df = df.drop(columns=dropped)
    cleaning_info["dropped_columns"] = dropped

    step("Step 5: Coercing categorical columns to fixed domains...")
    df = coerce_categorical_columns(df, category_domains)

    step("Step 6: Coercing stroke label to binary...")
    df[TARGET_COL] = coerce_binary_label(df[TARGET_COL])
    cleaning_info["target_distribution"] = df[TARGET_COL].value_counts().to_dict()

    df = df[[c for c in FEATURE_COLS if c in df.columns] + [TARGET_COL]]

    if verbose:
        print(f"\nCleaning complete!")
        print(f"Final dataset shape: {df.shape}")
        print(f"BMI median used for imputation: {bmi_median:.2f} ({n_missing:,} values)")
        print(f"Target distribution: {cleaning_info['target_distribution']}")

    return df, cleaning_info


def replace_missing_markers(df: pd.DataFrame, marker: str = MISSING_MARKER) -> pd.DataFrame:
    """Replace the literal missing marker (and blank strings) with NaN."""

    df = df.copy()
    for col in df.columns:
        dtype = df[col].dtype
        if not pd.api.types.is_numeric_dtype(dtype) and not isinstance(dtype, pd.CategoricalDtype):
            stripped = df[col].map(lambda v: v.strip() if isinstance(v, str) else v)
            df[col] = stripped.replace({marker: np.nan, "": np.nan})
    return df


def coerce_numeric_columns(df: pd.DataFrame) -> pd.DataFrame:
    """
    Parse numeric and flag columns.

    BMI may be missing; every other numeric field must be present and
    parseable. Flags must be 0 or 1.
    """

    df = df.copy()

    for col in NUMERIC_COLS + FLAG_COLS:
        if col not in df.columns:
            continue

        parsed = pd.to_numeric(df[col], errors="coerce")
        bad_rows = df.index[parsed.isna() & df[col].notna()].tolist()
        if bad_rows:
            raise DataError(
                f"Unparseable numeric value in column '{col}' at rows {bad_rows[:10]}"
            )

        if col != "bmi" and parsed.isna().any():
            missing_rows = df.index[parsed.isna()].tolist()
            raise DataError(f"Missing value in column '{col}' at rows {missing_rows[:10]}")

        if col in FLAG_COLS:
            invalid = ~parsed.isin([0, 1])
            if invalid.any():
                raise DataError(
                    f"Column '{col}' must be 0/1, found {sorted(parsed[invalid].unique())}"
                )
            parsed = parsed.astype(int)

        df[col] = parsed.astype(float) if col in NUMERIC_COLS else parsed

    return df


def impute_median(series: pd.Series) -> Tuple[pd.Series, float]:
    """
    Fill missing values with the median of the observed values.

    Returns
    -------
    series : pd.Series
        Series without missing values.
    median : float
        The median that was used.

    Clinical Context:
    -----------------
    The median is robust to the extreme BMI values present in this dataset
    (some above 90), which would pull a mean-based imputation upwards.
    """

    observed = series.dropna()
    if observed.empty:
        raise DataError(f"Cannot impute '{series.name}': no observed values")

    median = float(observed.median())
    return series.fillna(median), median


def coerce_categorical_columns(
    df: pd.DataFrame,
    category_domains: Dict[str, List[str]]
) -> pd.DataFrame:
    """Convert each categorical column to a CategoricalDtype over its domain."""

    df = df.copy()

    for col, domain in category_domains.items():
        if col not in df.columns:
            continue

        if df[col].isna().any():
            missing_rows = df.index[df[col].isna()].tolist()
            raise DataError(f"Missing value in column '{col}' at rows {missing_rows[:10]}")

        values = df[col].astype(str)
        unknown = sorted(set(values) - set(domain))
        if unknown:
            raise DataError(
                f"Column '{col}' has levels {unknown} outside the domain {domain}"
            )

        df[col] = values.astype(pd.CategoricalDtype(categories=domain))

    return df


def coerce_binary_label(label: pd.Series) -> pd.Series:
    """
    Convert the stroke column to integer 0/1.

    Raises DataError if any value is missing or not one of the two labels.
    """

    parsed = pd.to_numeric(label, errors="coerce")
    invalid = parsed.isna() | ~parsed.isin(list(LABELS))
    if invalid.any():
        raise DataError(
            f"Label '{label.name}' must be one of {list(LABELS)}, "
            f"found {sorted(label[invalid].astype(str).unique())}"
        )

    return parsed.astype(int)


def split_features_target(
    df: pd.DataFrame,
    target_col: str = TARGET_COL
) -> Tuple[pd.DataFrame, pd.Series]:
    """Separate the cleaned dataset into feature matrix and label."""

    X = df.drop(columns=[target_col])
    y = df[target_col]
    return X, y
