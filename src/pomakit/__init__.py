"""
pomakit - Metabolomics data analysis toolkit

Missing value imputation, normalization, rank product differential analysis
and penalized regression for metabolite matrices, with diagnostic plots.
"""

__version__ = "0.1.0"

from pomakit.core.biomatrix import BioMatrix
from pomakit.core.transform import Transform
from pomakit.core.quality import QualityFlag
from pomakit.quality.imputation import impute
from pomakit.stats.normalization import normalize
from pomakit.stats.differential import rank_prod
from pomakit.stats.regression import lasso
from pomakit.viz.distributions import boxplots, density

__all__ = [
    "BioMatrix",
    "Transform",
    "QualityFlag",
    "impute",
    "normalize",
    "rank_prod",
    "lasso",
    "boxplots",
    "density",
]
