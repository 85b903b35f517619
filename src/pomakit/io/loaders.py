"""
CSV loaders for metabolite matrices.

Two layouts are supported:

    Matrix layout (load_csv_matrix):
        First column holds feature IDs, every other column is a sample.
        Group labels come from a separate metadata CSV indexed by sample ID.

        ```
        "","S1","S2","S3"
        "glucose",5.1,4.8,6.0
        "lactate",1.2,,1.9
        ```

    Study layout (load_target_features):
        A target CSV with one row per sample (ID, group, covariates) and a
        features CSV with one row per sample in the same order.

Examples:
    >>> from pathlib import Path
    >>> from pomakit.io.loaders import load_csv_matrix
    >>>
    >>> matrix = load_csv_matrix(Path("intensities.csv"), Path("samples.csv"))
    >>> matrix.groups.value_counts()
"""

from __future__ import annotations

import logging
import warnings
from pathlib import Path
from typing import Optional

import numpy as np
import pandas as pd

from pomakit.core.biomatrix import BioMatrix

__all__ = ['load_csv_matrix', 'load_target_features']

logger = logging.getLogger(__name__)


def _read_csv(path: Path | str, **kwargs) -> pd.DataFrame:
    path = Path(path)
    if not path.exists():
        raise FileNotFoundError(f"CSV file not found: {path}")
    if not path.is_file():
        raise ValueError(f"Path is not a file: {path}")

    try:
        df = pd.read_csv(path, **kwargs)
    except pd.errors.EmptyDataError as e:
        raise ValueError(f"CSV file is empty: {path}") from e
    except pd.errors.ParserError as e:
        raise ValueError(f"Failed to read CSV file {path}: {e}") from e

    if df.empty:
        raise ValueError(f"CSV contains no data: {path}")
    return df


def _numeric(df: pd.DataFrame, path: Path | str) -> np.ndarray:
    """Convert to float, listing the first offending cells on failure."""
    converted = df.apply(pd.to_numeric, errors='coerce')
    bad = converted.isna() & df.notna()
    if bad.any().any():
        rows, cols = np.nonzero(bad.to_numpy())
        examples = [
            f"row '{df.index[i]}', col '{df.columns[j]}': {df.iat[i, j]!r}"
            for i, j in list(zip(rows, cols))[:5]
        ]
        raise ValueError(
            f"{path} contains non-numeric values:\n"
            + "\n".join(f"  - {x}" for x in examples)
            + ("\n  ..." if len(rows) > 5 else "")
        )

    data = converted.to_numpy(dtype=float)
    if np.isinf(data).any():
        raise ValueError(
            f"{path} contains {int(np.isinf(data).sum())} infinite values. "
            "Please clean data before loading."
        )
    n_nan = int(np.isnan(data).sum())
    if n_nan:
        warnings.warn(
            f"Found {n_nan:,} missing values ({100 * n_nan / data.size:.2f}% of data). "
            "These will need to be imputed before analysis.",
            UserWarning,
        )
    return data


def load_csv_matrix(path: Path | str, metadata_path: Optional[Path | str] = None) -> BioMatrix:
    """
    Load a features × samples CSV into a BioMatrix.

    Args:
        path: Matrix CSV; first column is the feature ID
        metadata_path: Optional sample metadata CSV whose first column is the
            sample ID and whose next column is the group. Rows are aligned to
            the matrix columns by sample ID.

    Returns:
        BioMatrix with every quality flag ORIGINAL

    Raises:
        FileNotFoundError: If a path does not exist
        ValueError: If a CSV is malformed, has duplicate IDs, or the metadata
            does not cover every sample
    """
    df = _read_csv(path, index_col=0)

    if df.index.duplicated().any():
        raise ValueError(
            f"Found {int(df.index.duplicated().sum())} duplicate feature IDs in {path}"
        )
    if df.columns.duplicated().any():
        raise ValueError(
            f"Found {int(df.columns.duplicated().sum())} duplicate sample IDs in {path}"
        )

    data = _numeric(df, path)
    feature_ids = pd.Index(df.index.astype(str))
    sample_ids = pd.Index(df.columns.astype(str))

    if metadata_path is not None:
        metadata = _read_csv(metadata_path, index_col=0)
        metadata.index = metadata.index.astype(str)
        missing = sample_ids.difference(metadata.index)
        if len(missing) > 0:
            raise ValueError(
                f"Metadata has no row for {len(missing)} samples: "
                f"{', '.join(missing[:5])}{' ...' if len(missing) > 5 else ''}"
            )
        if metadata.shape[1] == 0:
            raise ValueError(f"Metadata CSV has no group column: {metadata_path}")
        metadata = metadata.loc[sample_ids]
    else:
        metadata = pd.DataFrame(index=sample_ids)

    logger.info("Loaded %d features x %d samples from %s", *data.shape, path)
    return BioMatrix(
        data=data,
        feature_ids=feature_ids,
        sample_ids=sample_ids,
        sample_metadata=metadata,
    )


def load_target_features(target_path: Path | str, features_path: Path | str) -> BioMatrix:
    """
    Load a study from a target CSV and a samples × features CSV.

    Args:
        target_path: One row per sample; first column sample ID, second
            column group, further columns covariates
        features_path: One row per sample (same order as the target), one
            column per metabolite

    Returns:
        BioMatrix built with BioMatrix.from_target_features. Duplicate
        sample IDs are suffixed (id, id.1, ...).
    """
    target = _read_csv(target_path)
    features = _read_csv(features_path)
    _numeric(features, features_path)

    matrix = BioMatrix.from_target_features(target, features)
    logger.info(
        "Loaded %d features x %d samples from %s and %s",
        matrix.n_features, matrix.n_samples, target_path, features_path,
    )
    return matrix
