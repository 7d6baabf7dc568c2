"""
Data Loading Module for the Stroke Prediction Dataset
=====================================================

Clinical Context:
-----------------
Each row is one patient observation: demographics (gender, age, marital
status, work type, residence), clinical history (hypertension, heart disease,
smoking) and two measurements (average glucose level, BMI), plus whether the
patient had a stroke.

Stroke is a rare outcome in this population (roughly 5% of records), so
class balance is reported as soon as the file is read.
"""

import logging
from pathlib import Path
from typing import List, Optional, Union

import pandas as pd

from .config import MISSING_MARKER, REQUIRED_COLUMNS, TARGET_COL


logger = logging.getLogger(__name__)


class DataError(ValueError):
    """Raised when the input file or its contents cannot be used."""


def load_stroke_data(
    data_path: Union[str, Path],
    required_columns: Optional[List[str]] = None,
    verbose: bool = True
) -> pd.DataFrame:
    """
    Load the stroke dataset from a CSV file.

    Parameters
    ----------
    data_path : str or Path
        Path to the CSV file.
    required_columns : list, optional
        Columns that must be present. Defaults to the full stroke schema.
    verbose : bool, default=True
        Whether to print the dataset summary.

    Returns
    -------
    pd.DataFrame
        Raw stroke dataset. The literal "N/A" marker is read as missing.

    Raises
    ------
    DataError
        If the file is missing, unreadable, malformed, empty, or lacks a
        required column.
    """

    data_path = Path(data_path)
    required_columns = required_columns or REQUIRED_COLUMNS

    if not data_path.is_file():
        raise DataError(f"Data file not found: {data_path}")

    try:
        df = pd.read_csv(data_path, na_values=[MISSING_MARKER])
    except pd.errors.EmptyDataError:
        raise DataError(f"Data file is empty: {data_path}")
    except (pd.errors.ParserError, UnicodeDecodeError) as e:
        raise DataError(f"Malformed CSV in {data_path}: {e}")
    except OSError as e:
        raise DataError(f"Could not read {data_path}: {e}")

    logger.info("Loaded %s with shape %s", data_path, df.shape)

    validate_columns(df, required_columns)

    if df.empty:
        raise DataError(f"Data file has a header but no records: {data_path}")

    if verbose:
        _print_data_summary(df)

    return df


def validate_columns(df: pd.DataFrame, required_columns: List[str]) -> None:
    """Raise DataError listing every required column missing from df."""

    missing = [c for c in required_columns if c not in df.columns]
    if missing:
        raise DataError(
            f"Missing expected columns: {missing}. "
            f"Have: {df.columns.tolist()}"
        )


def _print_data_summary(df: pd.DataFrame) -> None:
    """Print a structural summary of the loaded dataset."""

    print("\n" + "="*60)
    print("DATASET SUMMARY")
    print("="*60)
    print(f"Total records: {len(df):,}")
    print(f"Total columns: {df.shape[1]}")
    print(f"Memory usage: {df.memory_usage(deep=True).sum() / 1e6:.2f} MB")

    print("\nColumn types:")
    for col, dtype in df.dtypes.items():
        n_missing = df[col].isna().sum()
        suffix = f" ({n_missing:,} missing)" if n_missing else ""
        print(f"  {col:<20} {str(dtype):<10}{suffix}")

    if TARGET_COL in df.columns:
        print("\nStroke Distribution:")
        print(df[TARGET_COL].value_counts())

        stroke_rate = (df[TARGET_COL] == 1).mean()
        print(f"\nStroke rate: {stroke_rate*100:.2f}%")

    print("="*60 + "\n")


def save_processed_data(
    df: pd.DataFrame,
    output_path: Union[str, Path],
    description: str = "processed_data"
) -> None:
    """
    Save processed DataFrame to CSV.

    Parameters
    ----------
    df : pd.DataFrame
        Processed data to save.
    output_path : str or Path
        Path to save the CSV file.
    description : str
        Description for logging purposes.
    """

    output_path = Path(output_path)
    output_path.parent.mkdir(parents=True, exist_ok=True)

    df.to_csv(output_path, index=False)
    print(f"Saved {description}: {output_path}")
    print(f"Shape: {df.shape}")
