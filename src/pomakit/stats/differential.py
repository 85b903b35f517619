"""
Rank product differential analysis of two groups of samples.

Wraps the rank product engine for study tables: validates the group factor,
reshapes the table into a features × samples matrix, runs the rank product
with a fixed seed, and returns the significant features in both directions
together with diagnostic plots.

Table layout:
    ID | Group | metabolite_1 | metabolite_2 | ...

The first column identifies the subject, the second is a factor with exactly
two levels. Levels are sorted, so with groups "Control" and "Treated" the
fold change column reads "FC: Control/Treated" and "up-regulated" means
higher in "Treated".

References:
    - Breitling et al. (2004) FEBS Letters 573:83-92
"""

from __future__ import annotations

import logging
from dataclasses import dataclass
from enum import Enum
from typing import Optional

import pandas as pd

from pomakit._validators import _group_labels, _resolve_method, _target_table, _two_levels
from pomakit.core.biomatrix import BioMatrix, make_unique
from pomakit.errors import InvalidArgumentError
from pomakit.stats.rank_product import DIRECTIONS, RankProductResult, rank_products, top_features
from pomakit.viz.core import Figure
from pomakit.viz.differential import plot_rank_pfp

__all__ = ["SignificanceMethod", "RankProdResult", "rank_prod", "make_unique"]

logger = logging.getLogger(__name__)

RANDOM_SEED = 123


class SignificanceMethod(Enum):
    """How significant features are selected."""

    PFP = "pfp"    # percentage of false predictions
    PVAL = "pval"  # permutation p-value, less stringent


@dataclass
class RankProdResult:
    """Rank product analysis output.

    Attributes:
        upregulated: Features higher in the second group
        downregulated: Features higher in the first group
        upregulated_plot: Rank vs. estimated PFP, up-regulated direction
        downregulated_plot: Rank vs. estimated PFP, down-regulated direction
        rank_products: Full statistics for every feature
    """

    upregulated: pd.DataFrame
    downregulated: pd.DataFrame
    upregulated_plot: Figure
    downregulated_plot: Figure
    rank_products: RankProductResult

    def to_dict(self) -> dict:
        return {
            "upregulated": self.upregulated,
            "downregulated": self.downregulated,
            "Upregulated_RP_plot": self.upregulated_plot,
            "Downregulated_RP_plot": self.downregulated_plot,
        }


def rank_prod(
    data: pd.DataFrame | BioMatrix,
    logged: bool = True,
    logbase: float = 2,
    paired: Optional[int] = None,
    cutoff: float = 0.05,
    method: Optional[str] = None,
    num_perm: int = 100,
    calculate_product: bool = True,
) -> RankProdResult:
    """
    Rank product analysis to identify differentially abundant metabolites.

    Args:
        data: Table whose first column is the subject ID and second column a
            two-level group factor, followed by numeric features; or a
            BioMatrix whose first metadata column is the group
        logged: Data have been log-transformed
        logbase: Base of that log transformation
        paired: Number of random sample pairs compared; None compares all
            pairs
        cutoff: Significance threshold for selecting features
        method: "pfp" (percentage of false predictions) or "pval". If None,
            warns and uses "pfp".
        num_perm: Permutations used to estimate pfp and p-values
        calculate_product: Rank product (True) or rank sum (False)

    Returns:
        RankProdResult with up/down-regulated tables and diagnostic plots.
        Tables are indexed by feature with columns "RP/Rsum",
        "FC: <group1>/<group2>", "pfp" and "P.value".

    Raises:
        MissingArgumentError: If data is None
        InvalidArgumentError: If method or a numeric option is invalid, or the
            table has no feature columns
        GroupMismatchError: If the group factor does not have exactly two levels
    """
    table = _target_table(data)
    resolved = _resolve_method(method, SignificanceMethod, SignificanceMethod.PFP)

    if not 0 < cutoff <= 1:
        raise InvalidArgumentError(f"cutoff must be in (0, 1], got {cutoff}")
    if logbase <= 0 or logbase == 1:
        raise InvalidArgumentError(
            f"logbase must be positive and different from 1, got {logbase}"
        )

    class1, class2 = _two_levels(table["Group"])

    has_group = table["Group"].notna()
    if not has_group.all():
        logger.warning("Dropping %d samples without a group label", int((~has_group).sum()))
        table = table[has_group]

    classes = (_group_labels(table["Group"]) == class2).astype(int).to_numpy()
    sample_names = make_unique(table["ID"])

    features = table.drop(columns=["ID", "Group"]).apply(pd.to_numeric, errors="coerce")
    values = features.to_numpy(dtype=float).T

    logger.info(
        "Rank product analysis: %s (n=%d) vs %s (n=%d), %d features, %d samples",
        class1, int((classes == 0).sum()), class2, int((classes == 1).sum()),
        values.shape[0], len(sample_names),
    )

    rp = rank_products(
        values,
        classes,
        logged=logged,
        na_rm=True,
        random_pairs=paired,
        num_perm=num_perm,
        seed=RANDOM_SEED,
        calculate_product=calculate_product,
        feature_names=make_unique(features.columns),
        class_labels=(class1, class2),
    )

    upregulated, downregulated = top_features(
        rp, cutoff=cutoff, method=resolved.value, logbase=logbase
    )
    logger.info(
        "%d up-regulated and %d down-regulated features at %s < %g",
        len(upregulated), len(downregulated), resolved.value, cutoff,
    )

    upregulated_plot = plot_rank_pfp(
        rp, DIRECTIONS[0],
        title=f"Identification of Up-regulated metabolites under class {class2}",
    )
    downregulated_plot = plot_rank_pfp(
        rp, DIRECTIONS[1],
        title=f"Identification of Down-regulated metabolites under class {class2}",
    )

    return RankProdResult(
        upregulated=upregulated,
        downregulated=downregulated,
        upregulated_plot=upregulated_plot,
        downregulated_plot=downregulated_plot,
        rank_products=rp,
    )
