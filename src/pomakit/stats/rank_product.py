"""
Rank product / rank sum statistics for two-class comparisons.

The rank product detects features that are consistently ranked near the top
(or bottom) across many pairwise comparisons between the two classes. It makes
no distributional assumption and works with few replicates, which suits
metabolomics studies with small groups.

Algorithm (unpaired two-class design):
    1. Build pairwise comparisons between class-0 and class-1 samples: all
       n0 × n1 pairs, or a seeded random subset of them.
    2. Each comparison is a log difference (logged data) or a ratio.
    3. Rank every comparison in both directions (average ranks for ties,
       missing values left unranked).
    4. Combine per-feature ranks by geometric mean (rank product) or
       arithmetic mean (rank sum).
    5. Permute each comparison column independently num_perm times to build
       the null distribution; for each feature

           E(g)   = #{permuted statistics <= stat(g)} / num_perm
           pfp(g) = E(g) / #{observed statistics <= stat(g)}
           p(g)   = #{permuted statistics <= stat(g)} / #{permuted statistics}

Direction convention: column "class1 < class2" holds features higher in the
second class (up-regulated under class 2); "class1 > class2" holds features
higher in the first class.

References:
    - Breitling et al. (2004) FEBS Letters 573:83-92
    - Hong et al. (2006) Bioinformatics 22(22):2825-2827 (RankProd)
"""

from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import Literal, Optional, Sequence

import numpy as np
import pandas as pd
from numpy.typing import NDArray
from scipy.stats import rankdata

from pomakit.errors import GroupMismatchError, InvalidArgumentError

__all__ = [
    "DIRECTIONS",
    "RankProductResult",
    "rank_products",
    "top_features",
]

logger = logging.getLogger(__name__)

DIRECTIONS = ("class1 < class2", "class1 > class2")


@dataclass
class RankProductResult:
    """Result of a rank product analysis.

    All tables are indexed by feature name with one column per direction
    (see DIRECTIONS).

    Attributes:
        statistic: Rank product (or rank sum) per feature and direction
        rank: Number of features with a statistic <= this feature's
        pfp: Estimated percentage of false predictions
        pvalue: Permutation p-value
        average_fold_change: mean(class1) - mean(class2) for logged data,
            mean(class1) / mean(class2) otherwise
        class_labels: Names of class 1 (coded 0) and class 2 (coded 1)
        logged: Whether the input was log-transformed
        calculate_product: True for rank product, False for rank sum
        n_comparisons: Number of pairwise comparisons used
        num_perm: Number of permutations
    """

    statistic: pd.DataFrame
    rank: pd.DataFrame
    pfp: pd.DataFrame
    pvalue: pd.DataFrame
    average_fold_change: pd.Series
    class_labels: tuple[str, str]
    logged: bool
    calculate_product: bool
    n_comparisons: int
    num_perm: int

    @property
    def statistic_name(self) -> str:
        return "RP" if self.calculate_product else "RS"


def _row_mean(data: NDArray[np.float64]) -> NDArray[np.float64]:
    """nanmean per row; rows without observations give NaN without warning."""
    observed = ~np.isnan(data)
    counts = observed.sum(axis=1)
    sums = np.where(observed, data, 0.0).sum(axis=1)
    out = np.full(data.shape[0], np.nan)
    np.divide(sums, counts, out=out, where=counts > 0)
    return out


def _select_pairs(
    idx0: NDArray[np.int_],
    idx1: NDArray[np.int_],
    random_pairs: Optional[int],
    rng: np.random.Generator,
) -> NDArray[np.int_]:
    """Return comparison pairs as an (n_pairs, 2) array of sample indices."""
    pairs = np.array([(i, j) for i in idx0 for j in idx1], dtype=int)
    if random_pairs is None or random_pairs >= len(pairs):
        return pairs
    chosen = np.sort(rng.choice(len(pairs), size=random_pairs, replace=False))
    return pairs[chosen]


def _combine(ranks: NDArray[np.float64], calculate_product: bool) -> NDArray[np.float64]:
    """Geometric (product) or arithmetic (sum) mean of ranks per row."""
    if calculate_product:
        with np.errstate(divide="ignore"):
            return np.exp(_row_mean(np.log(ranks)))
    return _row_mean(ranks) * ranks.shape[1]


def _ranks(comparisons: NDArray[np.float64]) -> tuple[NDArray[np.float64], NDArray[np.float64]]:
    """Average ranks of each comparison column, ascending and descending."""
    frame = pd.DataFrame(comparisons)
    up = frame.rank(axis=0, method="average", ascending=True, na_option="keep")
    down = frame.rank(axis=0, method="average", ascending=False, na_option="keep")
    return up.to_numpy(), down.to_numpy()


def _significance(
    observed: NDArray[np.float64],
    null: NDArray[np.float64],
    num_perm: int,
) -> tuple[NDArray[np.float64], NDArray[np.float64], NDArray[np.float64]]:
    """Observed rank, pfp and p-value for one direction."""
    n = len(observed)
    rank = np.full(n, np.nan)
    pfp = np.full(n, np.nan)
    pvalue = np.full(n, np.nan)

    valid = ~np.isnan(observed)
    null = np.sort(null[~np.isnan(null)])
    if not np.any(valid) or len(null) == 0:
        return rank, pfp, pvalue

    count_le = np.searchsorted(null, observed[valid], side="right").astype(float)
    obs_rank = rankdata(observed[valid], method="max")

    rank[valid] = obs_rank
    pfp[valid] = np.minimum(count_le / num_perm / obs_rank, 1.0)
    pvalue[valid] = count_le / len(null)
    return rank, pfp, pvalue


def rank_products(
    data: NDArray[np.float64],
    classes: Sequence[int] | NDArray[np.int_],
    logged: bool = True,
    na_rm: bool = True,
    random_pairs: Optional[int] = None,
    num_perm: int = 100,
    seed: Optional[int] = 123,
    calculate_product: bool = True,
    feature_names: Optional[Sequence[str]] = None,
    class_labels: tuple[str, str] = ("class1", "class2"),
) -> RankProductResult:
    """
    Compute rank product (or rank sum) statistics with permutation pfp.

    Args:
        data: 2D array (n_features, n_samples)
        classes: Class of every sample, coded 0 or 1
        logged: Input is log-transformed (comparisons are differences);
            otherwise comparisons are ratios
        na_rm: Ignore missing comparisons when combining ranks. If False,
            any missing comparison makes the feature's statistic missing.
        random_pairs: Number of random sample pairs to compare; None uses all
            n0 × n1 pairs
        num_perm: Number of permutations for the null distribution
        seed: Seed of numpy.random.default_rng; a fixed seed makes the
            result deterministic
        calculate_product: Rank product (True) or rank sum (False)
        feature_names: Row labels; defaults to "feature_<i>"
        class_labels: Names of class 0 and class 1

    Returns:
        RankProductResult

    Raises:
        GroupMismatchError: If classes does not contain both 0 and 1
        InvalidArgumentError: If shapes or numeric options are invalid
    """
    data = np.asarray(data, dtype=float)
    classes = np.asarray(classes)

    if data.ndim != 2:
        raise InvalidArgumentError(f"Expected 2D array, got {data.ndim}D")
    n_features, n_samples = data.shape
    if len(classes) != n_samples:
        raise InvalidArgumentError(
            f"classes length ({len(classes)}) must match number of samples ({n_samples})"
        )
    if not set(np.unique(classes)) <= {0, 1}:
        raise InvalidArgumentError("classes must be coded 0 and 1")
    if num_perm < 1:
        raise InvalidArgumentError(f"num_perm must be >= 1, got {num_perm}")
    if random_pairs is not None and random_pairs < 1:
        raise InvalidArgumentError(f"random_pairs must be >= 1, got {random_pairs}")

    idx0 = np.flatnonzero(classes == 0)
    idx1 = np.flatnonzero(classes == 1)
    if len(idx0) == 0 or len(idx1) == 0:
        raise GroupMismatchError("Both classes need at least one sample")

    if feature_names is None:
        feature_names = [f"feature_{i}" for i in range(n_features)]
    index = pd.Index(feature_names)

    rng = np.random.default_rng(seed)
    pairs = _select_pairs(idx0, idx1, random_pairs, rng)

    first = data[:, pairs[:, 0]]
    second = data[:, pairs[:, 1]]
    if logged:
        comparisons = first - second
    else:
        with np.errstate(divide="ignore", invalid="ignore"):
            comparisons = first / second
        comparisons[~np.isfinite(comparisons)] = np.nan

    up_ranks, down_ranks = _ranks(comparisons)

    def combine(ranks: NDArray[np.float64]) -> NDArray[np.float64]:
        stat = _combine(ranks, calculate_product)
        if not na_rm:
            stat[np.isnan(ranks).any(axis=1)] = np.nan
        return stat

    observed = np.column_stack([combine(up_ranks), combine(down_ranks)])

    logger.info(
        "Rank %s: %d features, %d comparisons, %d permutations",
        "products" if calculate_product else "sums",
        n_features, len(pairs), num_perm,
    )

    null = np.empty((num_perm, n_features, 2))
    for p in range(num_perm):
        order = np.argsort(rng.random(up_ranks.shape), axis=0)
        null[p, :, 0] = combine(np.take_along_axis(up_ranks, order, axis=0))
        null[p, :, 1] = combine(np.take_along_axis(down_ranks, order, axis=0))

    rank = np.empty_like(observed)
    pfp = np.empty_like(observed)
    pvalue = np.empty_like(observed)
    for d in range(2):
        rank[:, d], pfp[:, d], pvalue[:, d] = _significance(
            observed[:, d], null[:, :, d].ravel(), num_perm
        )

    mean0 = _row_mean(data[:, idx0])
    mean1 = _row_mean(data[:, idx1])
    if logged:
        average_fc = mean0 - mean1
    else:
        with np.errstate(divide="ignore", invalid="ignore"):
            average_fc = mean0 / mean1

    def frame(values: NDArray[np.float64]) -> pd.DataFrame:
        return pd.DataFrame(values, index=index, columns=list(DIRECTIONS))

    return RankProductResult(
        statistic=frame(observed),
        rank=frame(rank),
        pfp=frame(pfp),
        pvalue=frame(pvalue),
        average_fold_change=pd.Series(average_fc, index=index, name="AveFC"),
        class_labels=(str(class_labels[0]), str(class_labels[1])),
        logged=logged,
        calculate_product=calculate_product,
        n_comparisons=len(pairs),
        num_perm=num_perm,
    )


def top_features(
    result: RankProductResult,
    cutoff: float = 0.05,
    method: Literal["pfp", "pval"] = "pfp",
    logbase: float = 2,
) -> tuple[pd.DataFrame, pd.DataFrame]:
    """
    Select significant features in both directions.

    Args:
        result: Output of rank_products()
        cutoff: Features with significance strictly below cutoff are kept
        method: "pfp" filters on percentage of false predictions, "pval" on
            permutation p-values (less stringent)
        logbase: Base used to turn the average log difference into a fold
            change for logged data

    Returns:
        (class1 < class2 table, class1 > class2 table), each indexed by
        feature with columns "RP/Rsum", "FC: <class1>/<class2>", "pfp",
        "P.value", sorted by the statistic
    """
    if method not in ("pfp", "pval"):
        raise InvalidArgumentError(
            f"Incorrect value for method argument: {method!r}. Choose from: pfp, pval"
        )

    class1, class2 = result.class_labels
    if result.logged:
        fold_change = np.power(float(logbase), result.average_fold_change)
    else:
        fold_change = result.average_fold_change

    tables = []
    for direction in DIRECTIONS:
        table = pd.DataFrame({
            "RP/Rsum": result.statistic[direction],
            f"FC: {class1}/{class2}": fold_change,
            "pfp": result.pfp[direction],
            "P.value": result.pvalue[direction],
        })
        significance = table["pfp"] if method == "pfp" else table["P.value"]
        selected = table[significance < cutoff].sort_values("RP/Rsum", kind="mergesort")
        tables.append(selected)

    return tables[0], tables[1]
