"""
Data quality stage: missing value handling before normalization.

Components:
    Imputer: Transform filling missing values (none, half_min, median, mean,
        min, knn, rf) and flagging them as IMPUTED
    impute: Functional entry point with argument checking
    remove_sparse_features: Drop features mostly missing in every group

Workflow:
    1. Optionally treat zeros as missing (zeros_as_na)
    2. With remove_na, drop features above the missing-value cutoff in every group
    3. Impute the remaining gaps
"""

from pomakit.quality.imputation import (
    ImputationMethod,
    Imputer,
    impute,
    remove_sparse_features,
)

__all__ = [
    'ImputationMethod',
    'Imputer',
    'impute',
    'remove_sparse_features',
]
