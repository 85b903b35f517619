"""
Core data structures for the metabolomics analysis toolkit.

1. BioMatrix: Expression matrix with sample metadata and quality tracking
2. QualityFlag: Bitwise flags for value provenance
3. Transform: Abstract base class for immutable matrix transformations

All operations return new instances; a matrix loaded once can feed several
independent analysis branches.
"""

from pomakit.core.biomatrix import BioMatrix, make_unique
from pomakit.core.quality import QualityFlag
from pomakit.core.transform import Transform

__all__ = [
    'BioMatrix',
    'make_unique',
    'QualityFlag',
    'Transform',
]
