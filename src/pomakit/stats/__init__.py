"""
Statistics module for metabolomics group comparisons.

Exports core functions for:
- Normalization and scaling of feature intensities
- Rank product differential analysis of two groups
- Penalized logistic regression (lasso, ridge, elastic net)
"""

from .normalization import (
    NormalizationMethod,
    DegenerateFeatures,
    Normalizer,
    drop_degenerate_features,
    normalize,
)
from .rank_product import (
    DIRECTIONS,
    RankProductResult,
    rank_products,
    top_features,
)
from .differential import (
    SignificanceMethod,
    RankProdResult,
    rank_prod,
    make_unique,
)
from .regression import (
    RegressionMethod,
    LassoResult,
    lasso,
    lambda_path,
)

__all__ = [
    "NormalizationMethod",
    "DegenerateFeatures",
    "Normalizer",
    "drop_degenerate_features",
    "normalize",
    "DIRECTIONS",
    "RankProductResult",
    "rank_products",
    "top_features",
    "SignificanceMethod",
    "RankProdResult",
    "rank_prod",
    "make_unique",
    "RegressionMethod",
    "LassoResult",
    "lasso",
    "lambda_path",
]
