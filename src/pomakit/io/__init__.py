"""
I/O module for loading and writing metabolite matrices.

Key Functions:
    - load_csv_matrix: Load a features × samples CSV (plus sample metadata)
    - load_target_features: Load a study from target and features CSVs
    - write_csv_matrix: Write BioMatrix to CSV (data + quality flags)
    - write_sample_metadata: Export sample annotations

Examples:
    >>> from pomakit.io import load_csv_matrix, write_csv_matrix
    >>>
    >>> matrix = load_csv_matrix("intensities.csv", "samples.csv")
    >>> write_csv_matrix(matrix, "processed/intensities")
"""

from pomakit.io.loaders import load_csv_matrix, load_target_features
from pomakit.io.writers import write_csv_matrix, write_sample_metadata

__all__ = [
    'load_csv_matrix',
    'load_target_features',
    'write_csv_matrix',
    'write_sample_metadata',
]
