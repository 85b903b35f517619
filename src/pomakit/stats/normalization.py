"""
Normalization and scaling methods for metabolomics data.

Implements the scaling family commonly used before multivariate and
univariate analysis of metabolite panels:
- Auto scaling (unit variance): every metabolite equally important
- Level scaling: relative changes to the mean level
- Vast scaling: auto scaling weighted by the coefficient of variation
- Log transformation and log-based scalings (log, log Pareto): correct the
  right skew of concentration data and reduce heteroscedasticity

All methods are closed-form per-feature transforms. Before any transform,
features whose observed values are all zero, whose variance is zero, or with
fewer than two observations are removed; their scaled values would divide by
zero. This is the only step of the pipeline allowed to drop features.

References:
    - van den Berg et al. (2006) BMC Genomics 7:142 (centering, scaling and
      transformations of metabolomics data)
    - Keun et al. (2003) Analytica Chimica Acta 490:265-276 (vast scaling)
"""

from __future__ import annotations

import logging
from dataclasses import dataclass
from enum import Enum
from typing import Callable, Optional

import numpy as np
import pandas as pd
from numpy.typing import NDArray

from pomakit._validators import _require_matrix, _resolve_method
from pomakit.core.biomatrix import BioMatrix
from pomakit.core.transform import Transform
from pomakit.errors import InvalidArgumentError

__all__ = [
    "NormalizationMethod",
    "DegenerateFeatures",
    "Normalizer",
    "drop_degenerate_features",
    "normalize",
]

logger = logging.getLogger(__name__)


class NormalizationMethod(Enum):
    """Available normalization methods."""

    NONE = "none"
    AUTO_SCALING = "auto_scaling"
    LEVEL_SCALING = "level_scaling"
    LOG_SCALING = "log_scaling"
    LOG_TRANSFORMATION = "log_transformation"
    VAST_SCALING = "vast_scaling"
    LOG_PARETO = "log_pareto"

    @property
    def uses_log(self) -> bool:
        return self in (
            NormalizationMethod.LOG_SCALING,
            NormalizationMethod.LOG_TRANSFORMATION,
            NormalizationMethod.LOG_PARETO,
        )


@dataclass(frozen=True)
class DegenerateFeatures:
    """Features removed before normalization.

    Attributes:
        all_zero: Features whose observed values are all exactly zero
        zero_variance: Constant (non-zero) features
        too_few_values: Features with fewer than two observed values
    """

    all_zero: pd.Index
    zero_variance: pd.Index
    too_few_values: pd.Index

    @property
    def removed(self) -> pd.Index:
        return self.all_zero.append(self.zero_variance).append(self.too_few_values)

    @property
    def n_removed(self) -> int:
        return len(self.all_zero) + len(self.zero_variance) + len(self.too_few_values)


def drop_degenerate_features(matrix: BioMatrix) -> tuple[BioMatrix, DegenerateFeatures]:
    """
    Remove features that cannot be scaled.

    Zero detection is exact: a feature with variance 1e-30 is kept.

    Args:
        matrix: Input matrix (NaN allowed)

    Returns:
        (filtered matrix, description of the removed features)
    """
    data = matrix.data
    observed = ~np.isnan(data)
    n_observed = observed.sum(axis=1)

    too_few = n_observed < 2
    all_zero = ~too_few & np.all((data == 0) | ~observed, axis=1)

    variance = np.zeros(matrix.n_features)
    scalable = ~too_few
    if np.any(scalable):
        variance[scalable] = np.nanvar(data[scalable], axis=1, ddof=1)
    zero_variance = scalable & ~all_zero & (variance == 0)

    keep = ~(too_few | all_zero | zero_variance)

    removed = DegenerateFeatures(
        all_zero=matrix.feature_ids[all_zero],
        zero_variance=matrix.feature_ids[zero_variance],
        too_few_values=matrix.feature_ids[too_few],
    )
    if removed.n_removed:
        logger.info(
            "Removed %d degenerate features before normalization "
            "(%d all zero, %d zero variance, %d with <2 values)",
            removed.n_removed, len(removed.all_zero),
            len(removed.zero_variance), len(removed.too_few_values),
        )
    return matrix.select_features(keep), removed


def _row_mean(x: NDArray[np.float64]) -> NDArray[np.float64]:
    return np.nanmean(x, axis=1, keepdims=True)


def _row_sd(x: NDArray[np.float64]) -> NDArray[np.float64]:
    return np.nanstd(x, axis=1, ddof=1, keepdims=True)


def _identity(x, log):
    return x.copy()


def _auto_scaling(x, log):
    return (x - _row_mean(x)) / _row_sd(x)


def _level_scaling(x, log):
    mean = _row_mean(x)
    return (x - mean) / mean


def _log_scaling(x, log):
    lx = log(x)
    return (lx - _row_mean(lx)) / _row_sd(lx)


def _log_transformation(x, log):
    return log(x)


def _vast_scaling(x, log):
    mean = _row_mean(x)
    sd = _row_sd(x)
    cv = sd / mean
    return ((x - mean) / sd) / cv


def _log_pareto(x, log):
    lx = log(x)
    return (lx - _row_mean(lx)) / np.sqrt(_row_sd(lx))


_METHODS: dict[NormalizationMethod, Callable] = {
    NormalizationMethod.NONE: _identity,
    NormalizationMethod.AUTO_SCALING: _auto_scaling,
    NormalizationMethod.LEVEL_SCALING: _level_scaling,
    NormalizationMethod.LOG_SCALING: _log_scaling,
    NormalizationMethod.LOG_TRANSFORMATION: _log_transformation,
    NormalizationMethod.VAST_SCALING: _vast_scaling,
    NormalizationMethod.LOG_PARETO: _log_pareto,
}


class Normalizer(Transform):
    """
    Per-feature normalization of a metabolite matrix.

    Mathematical formulation (per feature x; log = log_base(x + pseudocount);
    sd uses ddof=1; NaN ignored):

        none:                x
        auto_scaling:        (x - mean) / sd
        level_scaling:       (x - mean) / mean
        log_scaling:         (log x - mean(log x)) / sd(log x)
        log_transformation:  log x
        vast_scaling:        ((x - mean) / sd) / (sd / mean)
        log_pareto:          (log x - mean(log x)) / sqrt(sd(log x))

    Args:
        method: Normalization method name or NormalizationMethod
        log_base: Base of the logarithm for log methods (default 10)
        pseudocount: Added before taking logs (default 1)

    Raises:
        InvalidArgumentError: If method is unknown, log_base is not a valid
            base or pseudocount is negative

    Examples:
        >>> normalized = Normalizer("auto_scaling").apply(imputed)
        >>> np.allclose(normalized.data.mean(axis=1), 0)
        True
    """

    def __init__(
        self,
        method: str | NormalizationMethod = "log_pareto",
        log_base: float = 10.0,
        pseudocount: float = 1.0,
    ):
        resolved = _resolve_method(method, NormalizationMethod, NormalizationMethod.LOG_PARETO)

        if log_base <= 0 or log_base == 1:
            raise InvalidArgumentError(
                f"log_base must be positive and different from 1, got {log_base}"
            )
        if pseudocount < 0:
            raise InvalidArgumentError(
                f"pseudocount must be >= 0, got {pseudocount}"
            )

        super().__init__(
            name="Normalizer",
            params={
                "method": resolved.value,
                "log_base": log_base,
                "pseudocount": pseudocount,
            }
        )

        self.method = resolved
        self.log_base = log_base
        self.pseudocount = pseudocount
        self.degenerate: Optional[DegenerateFeatures] = None

    def _log(self, x: NDArray[np.float64]) -> NDArray[np.float64]:
        return np.log(x + self.pseudocount) / np.log(self.log_base)

    def validate(self, matrix: BioMatrix) -> list[str]:
        errors = super().validate(matrix)

        if np.isinf(matrix.data).any():
            errors.append("Matrix contains infinite values")

        if self.method.uses_log:
            n_bad = int(np.sum(matrix.data + self.pseudocount <= 0))
            if n_bad:
                errors.append(
                    f"{self.method.value} requires values > {-self.pseudocount}; "
                    f"found {n_bad} values out of range"
                )

        return errors

    def apply(self, matrix: BioMatrix) -> BioMatrix:
        """
        Drop degenerate features, then normalize.

        The removed features are kept on self.degenerate.

        Returns:
            New BioMatrix with the same samples in the same order and the
            same or fewer features

        Raises:
            ValueError: If validation fails
        """
        self.check(matrix)

        filtered, self.degenerate = drop_degenerate_features(matrix)
        if filtered.n_features == 0:
            logger.warning("No features left after removing degenerate features")
            return filtered

        normalized = _METHODS[self.method](filtered.data, self._log)

        logger.info(
            "Normalized %d features × %d samples with '%s'",
            filtered.n_features, filtered.n_samples, self.method.value,
        )
        return filtered.with_data(normalized)


def normalize(
    data: BioMatrix,
    method: Optional[str] = None,
    log_base: float = 10.0,
    pseudocount: float = 1.0,
) -> BioMatrix:
    """
    Normalize a metabolite matrix.

    Args:
        data: Input BioMatrix (usually imputed)
        method: One of "none", "auto_scaling", "level_scaling",
            "log_scaling", "log_transformation", "vast_scaling",
            "log_pareto". If None, warns and uses "log_pareto".
        log_base: Logarithm base for log methods
        pseudocount: Added before taking logs

    Returns:
        New normalized BioMatrix

    Raises:
        MissingArgumentError: If data is None
        TypeError: If data is not a BioMatrix
        InvalidArgumentError: If method is unknown
    """
    matrix = _require_matrix(data)
    resolved = _resolve_method(method, NormalizationMethod, NormalizationMethod.LOG_PARETO)
    return Normalizer(resolved, log_base=log_base, pseudocount=pseudocount).apply(matrix)
