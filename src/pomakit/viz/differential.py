"""
Diagnostic plots for differential analysis and penalized regression.

Rank products:
    plot_rank_pfp: number of identified features vs. estimated PFP, one
    panel per direction. A steep early rise means few features are
    confidently called.

Penalized regression:
    plot_coefficient_path: coefficient of every feature along the penalty
    path, with the selected penalty marked.
    plot_cv_curve: cross-validated binomial deviance (mean ± 1 SD) per
    penalty.
"""

from __future__ import annotations

from typing import Optional, TYPE_CHECKING

import numpy as np
import pandas as pd
import matplotlib.pyplot as plt

from pomakit.viz.core import Figure
from pomakit.viz.styles import PALETTES, Palette

if TYPE_CHECKING:
    from pomakit.stats.rank_product import RankProductResult

__all__ = ["plot_rank_pfp", "plot_coefficient_path", "plot_cv_curve"]


def plot_rank_pfp(
    result: RankProductResult,
    direction: str,
    title: str,
    palette: Optional[Palette] = None,
) -> Figure:
    """
    Scatter of observed rank vs. estimated PFP for one direction.

    Args:
        result: Output of rank_products()
        direction: One of rank_product.DIRECTIONS
        title: Axis title
    """
    palette = palette or PALETTES["default"]
    frame = pd.DataFrame({
        "rank": result.rank[direction],
        "pfp": result.pfp[direction],
    }).dropna()

    fig, ax = plt.subplots(figsize=(6, 4.5))
    ax.scatter(frame["rank"], frame["pfp"], s=12, alpha=0.8,
               color=palette.point, edgecolors="none")
    ax.set_xlabel("Number of identified metabolites")
    ax.set_ylabel("Estimated PFP")
    ax.set_title(title)

    return Figure(
        fig=fig,
        title=title,
        description=f"{len(frame)} features ranked ({direction})",
        data=frame,
        metadata={"direction": direction},
    )


def plot_coefficient_path(
    path: pd.DataFrame,
    lambda_min: float,
    title: str = "Coefficient path",
    palette: Optional[Palette] = None,
) -> Figure:
    """
    Coefficient of each feature against log(lambda).

    Args:
        path: Long table with columns lambda, feature, coefficient
        lambda_min: Selected penalty, drawn as a dashed line
    """
    palette = palette or PALETTES["default"]
    fig, ax = plt.subplots(figsize=(7, 5))

    for _, feature_path in path.groupby("feature", sort=False):
        feature_path = feature_path.sort_values("lambda")
        ax.plot(np.log(feature_path["lambda"]), feature_path["coefficient"],
                linewidth=1.0, alpha=0.8)

    ax.axvline(np.log(lambda_min), color=palette.highlight, linestyle="--",
               linewidth=1.0)
    ax.axhline(0, color=palette.neutral, linewidth=0.8)
    ax.set_xlabel("log(lambda)")
    ax.set_ylabel("Coefficient")
    ax.set_title(title)

    return Figure(
        fig=fig,
        title=title,
        description=f"{path['feature'].nunique()} features along {path['lambda'].nunique()} penalties",
        data=path,
        metadata={"lambda_min": lambda_min},
    )


def plot_cv_curve(
    cv_results: pd.DataFrame,
    lambda_min: float,
    title: str = "Cross-validated deviance",
    palette: Optional[Palette] = None,
) -> Figure:
    """
    Mean cross-validated deviance ± 1 SD against log(lambda).

    Args:
        cv_results: Table with columns lambda, mean_deviance, sd_deviance
        lambda_min: Selected penalty, drawn as a dashed line
    """
    palette = palette or PALETTES["default"]
    cv_results = cv_results.sort_values("lambda")
    log_lambda = np.log(cv_results["lambda"])

    fig, ax = plt.subplots(figsize=(7, 5))
    ax.errorbar(log_lambda, cv_results["mean_deviance"],
                yerr=cv_results["sd_deviance"], fmt="o", markersize=3,
                color=palette.highlight, ecolor=palette.neutral,
                elinewidth=0.8, capsize=2)
    ax.axvline(np.log(lambda_min), color=palette.point, linestyle="--",
               linewidth=1.0)
    ax.set_xlabel("log(lambda)")
    ax.set_ylabel("Binomial deviance")
    ax.set_title(title)

    return Figure(
        fig=fig,
        title=title,
        description=f"{len(cv_results)} penalties, lambda_min={lambda_min:.4g}",
        data=cv_results,
        metadata={"lambda_min": lambda_min},
    )
