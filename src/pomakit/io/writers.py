"""
CSV writers for metabolite matrices.

Data and quality provenance are written to separate files so a reviewer can
see which values were missing or imputed:

    {path}.data.csv   processed values, features × samples
    {path}.flags.csv  QualityFlag bit masks, same layout
"""

from __future__ import annotations

import logging
from pathlib import Path

import pandas as pd

from pomakit.core.biomatrix import BioMatrix

__all__ = ['write_csv_matrix', 'write_sample_metadata']

logger = logging.getLogger(__name__)


def write_csv_matrix(
    matrix: BioMatrix,
    path: Path | str,
    write_quality_flags: bool = True
) -> tuple[Path, ...]:
    """
    Write a BioMatrix to CSV file(s).

    Flag values combine QualityFlag bits: 0 original, 1 missing on input,
    2 zero treated as missing, 4 imputed (so 5 is a missing value that was
    imputed).

    Args:
        matrix: BioMatrix to write
        path: Base path without extension, e.g. Path("out") gives
            out.data.csv and out.flags.csv
        write_quality_flags: Also write the flags file

    Returns:
        Paths of the files written

    Raises:
        TypeError: If matrix is not a BioMatrix
        ValueError: If matrix is empty
    """
    if not isinstance(matrix, BioMatrix):
        raise TypeError(f"matrix must be BioMatrix, got {type(matrix)}")
    if matrix.data.size == 0:
        raise ValueError("Cannot write empty matrix")

    path = Path(path)
    path.parent.mkdir(parents=True, exist_ok=True)

    data_path = Path(str(path) + ".data.csv")
    matrix.to_frame().to_csv(data_path)
    logger.info("Wrote data matrix to %s", data_path)
    written = [data_path]

    if write_quality_flags:
        flags_path = Path(str(path) + ".flags.csv")
        pd.DataFrame(
            matrix.quality_flags,
            index=matrix.feature_ids,
            columns=matrix.sample_ids,
        ).to_csv(flags_path)
        logger.info("Wrote quality flags to %s", flags_path)
        written.append(flags_path)

    return tuple(written)


def write_sample_metadata(matrix: BioMatrix, path: Path | str) -> Path:
    """Write sample metadata with the sample ID as first column."""
    if not isinstance(matrix, BioMatrix):
        raise TypeError(f"matrix must be BioMatrix, got {type(matrix)}")

    path = Path(path)
    path.parent.mkdir(parents=True, exist_ok=True)
    metadata = matrix.sample_metadata.rename_axis("sample_id").reset_index()
    metadata.to_csv(path, index=False)
    logger.info("Wrote sample metadata to %s", path)
    return path
