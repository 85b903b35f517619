"""
Quality flag system for tracking value provenance in metabolite matrices.

Each value of a BioMatrix carries a bitwise flag recording what happened to it
on its way through the pipeline. This answers reviewer questions such as
"which concentrations were imputed?" without keeping a second copy of the raw
data around.

Metabolomics Context:
    Missing concentrations are common in targeted and untargeted panels:
    - Metabolites below the limit of detection
    - Peaks that failed integration in some runs
    - Zeros written by the acquisition software where nothing was measured

    Imputation replaces these with estimates, and downstream statistics
    should know which values are synthetic.

Examples:
    >>> from pomakit.core.quality import QualityFlag
    >>>
    >>> flag = QualityFlag.MISSING_ORIGINAL | QualityFlag.IMPUTED
    >>> bool(flag & QualityFlag.IMPUTED)
    True
"""

from __future__ import annotations

from enum import IntFlag

__all__ = ['QualityFlag']


class QualityFlag(IntFlag):
    """
    Bitwise flags for per-value quality tracking.

    Attributes:
        ORIGINAL: Untouched value from the raw data (0)
        MISSING_ORIGINAL: Missing (NaN) in the raw data (1)
        ZERO_AS_MISSING: Recorded as zero and treated as missing (2)
        IMPUTED: Value was filled in by an imputation strategy (4)
    """

    ORIGINAL = 0
    """Untouched original value."""

    MISSING_ORIGINAL = 1
    """
    Originally missing (NaN) in raw data.
    In metabolomics this is usually left-censoring below the detection limit.
    """

    ZERO_AS_MISSING = 2
    """Stored as zero on input and converted to missing before imputation."""

    IMPUTED = 4
    """
    Value was estimated (minimum, median, KNN, random forest, ...).
    Imputed values have different statistical properties than measured ones.
    """
