"""
Base transformation framework for immutable matrix operations.

Every pipeline stage that maps a BioMatrix to a new BioMatrix (imputation,
normalization) derives from Transform. Transformations are pure: the input
matrix is never modified, so several analysis branches can start from the
same snapshot.

Examples:
    >>> from pomakit.core.transform import Transform
    >>> from pomakit.core.biomatrix import BioMatrix
    >>>
    >>> class Log10(Transform):
    ...     def __init__(self):
    ...         super().__init__(name="Log10", params={})
    ...
    ...     def apply(self, matrix: BioMatrix) -> BioMatrix:
    ...         import numpy as np
    ...         return matrix.with_data(np.log10(matrix.data + 1))
    >>>
    >>> transformed = Log10().apply(original_matrix)
    >>> # original_matrix is unchanged
"""

from __future__ import annotations

from abc import ABC, abstractmethod
from typing import Any, TYPE_CHECKING
from datetime import datetime

if TYPE_CHECKING:
    from pomakit.core.biomatrix import BioMatrix

__all__ = ['Transform']


class Transform(ABC):
    """
    Abstract base class for all matrix transformations.

    Attributes:
        name: Human-readable transformation name (e.g., "Normalizer")
        params: Parameters used for this transformation
        timestamp: When this transform instance was created (audit trail)

    Subclasses implement apply() and usually extend validate(). apply()
    should call check() first so that invalid input aborts before any work
    is done.
    """

    def __init__(self, name: str, params: dict[str, Any]) -> None:
        """
        Initialize transformation with name and parameters.

        Args:
            name: Human-readable transformation name
            params: Parameters of the transformation. Must be JSON-serializable
                for provenance tracking, e.g. {"method": "knn", "cutoff": 20}
        """
        self.name = name
        self.params = params
        self.timestamp = datetime.now()

    @abstractmethod
    def apply(self, matrix: BioMatrix) -> BioMatrix:
        """
        Execute transformation and return new matrix.

        Must never modify the input matrix.

        Args:
            matrix: Input BioMatrix to transform

        Returns:
            New BioMatrix with transformation applied (input unchanged)

        Raises:
            ValueError: If transformation cannot be applied
        """
        pass

    def validate(self, matrix: BioMatrix) -> list[str]:
        """
        Check preconditions before applying transformation.

        Subclasses should override and call super().validate() first.

        Args:
            matrix: BioMatrix to validate

        Returns:
            List of error messages (empty list = valid)
        """
        errors: list[str] = []

        if matrix.data.size == 0:
            errors.append("Cannot process empty matrix")

        return errors

    def check(self, matrix: BioMatrix) -> None:
        """
        Raise ValueError listing every validation error, if any.
        """
        errors = self.validate(matrix)
        if errors:
            raise ValueError(
                f"Validation failed for {self.name}:\n" +
                "\n".join(f"  - {err}" for err in errors)
            )

    def __repr__(self) -> str:
        """
        String representation for logging, e.g. "Normalizer(method=log_pareto)".
        """
        params_str = ", ".join(f"{k}={v}" for k, v in self.params.items())
        return f"{self.name}({params_str})"
