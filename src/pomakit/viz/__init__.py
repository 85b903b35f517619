"""
Visualization module for the metabolomics toolkit.

Static matplotlib/seaborn figures for:
- Value distributions per sample or per feature (boxplots, density)
- Rank product diagnostics (rank vs. estimated PFP)
- Penalized regression diagnostics (coefficient path, CV deviance)

Examples
--------
>>> from pomakit.viz import boxplots, FigureCollection
>>>
>>> collection = FigureCollection()
>>> collection.add("before", boxplots(imputed))
>>> collection.add("after", boxplots(normalized))
>>> collection.save_all("figures/", format="pdf")
"""

from pomakit.viz.core import Figure, FigureCollection
from pomakit.viz.styles import Palette, PALETTES, configure_style
from pomakit.viz.distributions import boxplots, density
from pomakit.viz.differential import plot_rank_pfp, plot_coefficient_path, plot_cv_curve

__all__ = [
    # Core
    "Figure",
    "FigureCollection",
    # Styles
    "Palette",
    "PALETTES",
    "configure_style",
    # Distributions
    "boxplots",
    "density",
    # Diagnostics
    "plot_rank_pfp",
    "plot_coefficient_path",
    "plot_cv_curve",
]
