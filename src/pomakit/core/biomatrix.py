"""
Core data structure for metabolite expression matrices.

BioMatrix unifies numerical data (concentrations/intensities) with sample
metadata (group labels, covariates) and per-value quality provenance (which
values were missing, which were imputed).

Metabolomics Context:
    - Rows = features (metabolites)
    - Columns = samples (subjects, time points)
    - Values = measured concentrations or peak intensities

    The first column of the sample metadata is the grouping factor of the
    study (e.g. "Control" vs "Treated"). Every analysis that compares groups
    reads it from there.

Engineering Design:
    - Immutable: Operations return new instances
    - NumPy arrays for data, pandas for identifiers and metadata
    - Metadata aligned to samples by identifier, checked in the constructor

Examples:
    >>> import numpy as np
    >>> import pandas as pd
    >>> from pomakit.core.biomatrix import BioMatrix
    >>>
    >>> data = np.array([[10.0, 20.0], [30.0, 40.0]])
    >>> sample_ids = pd.Index(["S1", "S2"])
    >>> matrix = BioMatrix(
    ...     data=data,
    ...     feature_ids=pd.Index(["glucose", "lactate"]),
    ...     sample_ids=sample_ids,
    ...     sample_metadata=pd.DataFrame({'group': ['A', 'B']}, index=sample_ids),
    ... )
    >>> matrix.groups.tolist()
    ['A', 'B']
"""

from __future__ import annotations

from typing import Iterable, Optional
import numpy as np
import pandas as pd
from pomakit.core.quality import QualityFlag
from pomakit.errors import InvalidArgumentError, MissingArgumentError

__all__ = ['BioMatrix', 'make_unique']

TARGET_COLUMNS = ("ID", "Group")


def make_unique(ids: Iterable) -> list[str]:
    """Make identifiers unique by suffixing repeats: a, a.1, a.2, ..."""
    seen: set[str] = set()
    counts: dict[str, int] = {}
    unique = []
    for value in map(str, ids):
        name = value
        while name in seen:
            counts[value] = counts.get(value, 0) + 1
            name = f"{value}.{counts[value]}"
        seen.add(name)
        unique.append(name)
    return unique


class BioMatrix:
    """
    Immutable container for expression matrix + sample metadata + quality flags.

    Attributes:
        data: Numerical matrix (features × samples), float, may contain NaN
        feature_ids: Row identifiers (metabolite names)
        sample_ids: Column identifiers (subject/sample IDs)
        sample_metadata: Sample annotations; first column is the group factor
        quality_flags: Per-value quality tracking

    Shape Invariants:
        - data.shape[0] == len(feature_ids)
        - data.shape[1] == len(sample_ids)
        - quality_flags.shape == data.shape
        - sample_metadata.index equals sample_ids
        - feature_ids and sample_ids are unique
    """

    def __init__(
        self,
        data: np.ndarray,
        feature_ids: pd.Index,
        sample_ids: pd.Index,
        sample_metadata: pd.DataFrame,
        quality_flags: Optional[np.ndarray] = None,
    ):
        """
        Initialize BioMatrix with validation.

        Args:
            data: Expression matrix (features × samples)
            feature_ids: Row identifiers
            sample_ids: Column identifiers
            sample_metadata: DataFrame with sample annotations, index matching
                sample_ids. The first column is used as the group factor.
            quality_flags: Quality tracking matrix (same shape as data).
                Defaults to QualityFlag.ORIGINAL everywhere.

        Raises:
            ValueError: If shapes are inconsistent or indices don't match
            TypeError: If data types are incorrect
        """
        if not isinstance(data, np.ndarray):
            raise TypeError(f"data must be np.ndarray, got {type(data)}")
        if not isinstance(feature_ids, pd.Index):
            raise TypeError(f"feature_ids must be pd.Index, got {type(feature_ids)}")
        if not isinstance(sample_ids, pd.Index):
            raise TypeError(f"sample_ids must be pd.Index, got {type(sample_ids)}")
        if not isinstance(sample_metadata, pd.DataFrame):
            raise TypeError(f"sample_metadata must be pd.DataFrame, got {type(sample_metadata)}")

        if data.ndim != 2:
            raise ValueError(f"data must be 2D, got shape {data.shape}")

        if quality_flags is None:
            quality_flags = np.full(data.shape, QualityFlag.ORIGINAL, dtype=np.uint32)
        if not isinstance(quality_flags, np.ndarray):
            raise TypeError(f"quality_flags must be np.ndarray, got {type(quality_flags)}")

        n_features, n_samples = data.shape

        if len(feature_ids) != n_features:
            raise ValueError(
                f"feature_ids length ({len(feature_ids)}) must match data rows ({n_features})"
            )
        if len(sample_ids) != n_samples:
            raise ValueError(
                f"sample_ids length ({len(sample_ids)}) must match data columns ({n_samples})"
            )
        if quality_flags.shape != data.shape:
            raise ValueError(
                f"quality_flags shape {quality_flags.shape} must match data shape {data.shape}"
            )
        if feature_ids.has_duplicates:
            raise ValueError("feature_ids must be unique")
        if sample_ids.has_duplicates:
            raise ValueError("sample_ids must be unique")

        if not sample_metadata.index.equals(sample_ids):
            raise ValueError(
                "sample_metadata.index must match sample_ids exactly. "
                f"Got {len(sample_metadata.index)} metadata rows for {len(sample_ids)} samples."
            )

        self._data = data.astype(float, copy=False)
        self._feature_ids = feature_ids
        self._sample_ids = sample_ids
        self._sample_metadata = sample_metadata
        self._quality_flags = quality_flags

    @classmethod
    def from_target_features(
        cls,
        target: pd.DataFrame,
        features: pd.DataFrame,
    ) -> BioMatrix:
        """
        Build a matrix from a target table and a samples × features table.

        Args:
            target: One row per sample. First column is the sample ID, second
                column is the group factor; further columns are kept as
                covariates.
            features: One row per sample (same order as target), one numeric
                column per metabolite.

        Returns:
            BioMatrix with features as rows and target IDs as sample IDs

        Raises:
            ValueError: If row counts differ or target has fewer than 2 columns
        """
        if target.shape[1] < 2:
            raise ValueError(
                "target must have at least two columns (sample ID and group)"
            )
        if len(target) != len(features):
            raise ValueError(
                f"target has {len(target)} rows but features has {len(features)}; "
                "both tables need one row per sample"
            )

        sample_ids = pd.Index(make_unique(target.iloc[:, 0]))
        metadata = target.iloc[:, 1:].copy()
        metadata.index = sample_ids

        values = features.apply(pd.to_numeric, errors='coerce').to_numpy(dtype=float)

        return cls(
            data=values.T.copy(),
            feature_ids=pd.Index(make_unique(features.columns)),
            sample_ids=sample_ids,
            sample_metadata=metadata,
        )

    @property
    def data(self) -> np.ndarray:
        """Expression matrix (features × samples)."""
        return self._data

    @property
    def feature_ids(self) -> pd.Index:
        """Row identifiers (metabolites)."""
        return self._feature_ids

    @property
    def sample_ids(self) -> pd.Index:
        """Column identifiers (samples)."""
        return self._sample_ids

    @property
    def sample_metadata(self) -> pd.DataFrame:
        """Sample annotations."""
        return self._sample_metadata

    @property
    def quality_flags(self) -> np.ndarray:
        """Quality tracking matrix (same shape as data)."""
        return self._quality_flags

    @property
    def shape(self) -> tuple[int, int]:
        """Matrix dimensions (n_features, n_samples)."""
        return self._data.shape

    @property
    def n_features(self) -> int:
        return self._data.shape[0]

    @property
    def n_samples(self) -> int:
        return self._data.shape[1]

    def _check_group_column(self) -> None:
        if self._sample_metadata.shape[1] == 0:
            raise MissingArgumentError(
                "sample_metadata has no columns; the first column must hold the sample group"
            )

    @property
    def group_column(self) -> str:
        """Name of the metadata column holding the group factor."""
        self._check_group_column()
        return str(self._sample_metadata.columns[0])

    @property
    def groups(self) -> pd.Series:
        """Group label of every sample, indexed by sample ID."""
        self._check_group_column()
        return self._sample_metadata.iloc[:, 0].rename("Group")

    def has_feature(self, names: str | Iterable[str]) -> bool:
        """True if every name is a feature ID of this matrix."""
        if isinstance(names, str):
            names = [names]
        return not self.missing_features(names)

    def missing_features(self, names: Iterable[str]) -> list[str]:
        """Return the names that are not feature IDs of this matrix."""
        return [name for name in names if name not in self._feature_ids]

    def with_data(
        self,
        data: np.ndarray,
        quality_flags: Optional[np.ndarray] = None,
    ) -> BioMatrix:
        """
        Return a new matrix with replaced values and the same identifiers.

        Args:
            data: New values, same shape as this matrix
            quality_flags: New flags; defaults to a copy of the current flags
        """
        if quality_flags is None:
            quality_flags = self._quality_flags.copy()
        return BioMatrix(
            data=data,
            feature_ids=self._feature_ids,
            sample_ids=self._sample_ids,
            sample_metadata=self._sample_metadata,
            quality_flags=quality_flags,
        )

    def select_samples(self, mask: np.ndarray | pd.Series) -> BioMatrix:
        """
        Subset matrix by samples (columns).

        Args:
            mask: Boolean array/Series indicating which samples to keep.
                If Series, uses values and ignores index.

        Returns:
            New BioMatrix with selected samples

        Raises:
            ValueError: If mask length doesn't match n_samples
        """
        if isinstance(mask, pd.Series):
            mask = mask.values
        mask = np.asarray(mask, dtype=bool)

        if len(mask) != self.n_samples:
            raise ValueError(
                f"mask length ({len(mask)}) must match n_samples ({self.n_samples})"
            )

        return BioMatrix(
            data=self._data[:, mask],
            feature_ids=self._feature_ids,
            sample_ids=self._sample_ids[mask],
            sample_metadata=self._sample_metadata.loc[self._sample_ids[mask]],
            quality_flags=self._quality_flags[:, mask],
        )

    def select_features(self, mask: np.ndarray | pd.Series) -> BioMatrix:
        """
        Subset matrix by features (rows).

        Args:
            mask: Boolean array/Series indicating which features to keep.
                If Series, uses values and ignores index.

        Returns:
            New BioMatrix with selected features

        Raises:
            ValueError: If mask length doesn't match n_features

        Examples:
            >>> variances = np.nanvar(matrix.data, axis=1)
            >>> variable = matrix.select_features(variances > 0)
        """
        if isinstance(mask, pd.Series):
            mask = mask.values
        mask = np.asarray(mask, dtype=bool)

        if len(mask) != self.n_features:
            raise ValueError(
                f"mask length ({len(mask)}) must match n_features ({self.n_features})"
            )

        return BioMatrix(
            data=self._data[mask, :],
            feature_ids=self._feature_ids[mask],
            sample_ids=self._sample_ids,
            sample_metadata=self._sample_metadata,
            quality_flags=self._quality_flags[mask, :],
        )

    def to_frame(self) -> pd.DataFrame:
        """Values as a features × samples DataFrame."""
        return pd.DataFrame(
            self._data, index=self._feature_ids, columns=self._sample_ids
        )

    def to_target_frame(self) -> pd.DataFrame:
        """
        Samples as rows: columns ID, Group, then one column per feature.

        This is the table layout expected by the rank-product wrapper.

        Raises:
            MissingArgumentError: If there is no group column
            InvalidArgumentError: If a feature is named "ID" or "Group"
        """
        clashes = [name for name in TARGET_COLUMNS if name in self._feature_ids]
        if clashes:
            raise InvalidArgumentError(
                f"Feature IDs {', '.join(clashes)} clash with the ID/Group columns; rename them first"
            )
        target = pd.DataFrame({
            "ID": self._sample_ids.astype(str),
            "Group": self.groups.to_numpy(),
        })
        values = pd.DataFrame(self._data.T, columns=self._feature_ids)
        return pd.concat([target, values], axis=1)

    def copy(self, deep: bool = True) -> BioMatrix:
        """
        Create a copy of this matrix.

        Args:
            deep: If True, copy all arrays. If False, share arrays.
        """
        if deep:
            return BioMatrix(
                data=self._data.copy(),
                feature_ids=self._feature_ids.copy(),
                sample_ids=self._sample_ids.copy(),
                sample_metadata=self._sample_metadata.copy(),
                quality_flags=self._quality_flags.copy(),
            )
        else:
            return BioMatrix(
                data=self._data,
                feature_ids=self._feature_ids,
                sample_ids=self._sample_ids,
                sample_metadata=self._sample_metadata,
                quality_flags=self._quality_flags,
            )

    def __repr__(self) -> str:
        if self.n_features == 0 or self.n_samples == 0:
            return f"BioMatrix({self.n_features} features × {self.n_samples} samples)"
        return (
            f"BioMatrix({self.n_features} features × {self.n_samples} samples)\n"
            f"  Features: {self.feature_ids[0]}...{self.feature_ids[-1]}\n"
            f"  Samples: {self.sample_ids[0]}...{self.sample_ids[-1]}\n"
            f"  Metadata columns: {list(self.sample_metadata.columns)}"
        )

    def __str__(self) -> str:
        return self.__repr__()
