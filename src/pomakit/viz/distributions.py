"""
Distribution charts of a metabolite matrix: boxplots and density plots.

Both charts are meant for comparing a matrix before and after normalization.
They draw values as they are; nothing here transforms the data.

Grouping:
    samples:  one box per sample (or one density per study group), coloured
              by the sample's group
    features: one box per metabolite split by group (or one density per
              metabolite)
"""

from __future__ import annotations

from typing import Literal, Optional, Sequence

import matplotlib.pyplot as plt
import pandas as pd
import seaborn as sns

from pomakit._validators import _check_choice, _check_features, _require_matrix
from pomakit.core.biomatrix import BioMatrix
from pomakit.viz.core import Figure
from pomakit.viz.styles import LEGEND_POSITIONS, Palette, configure_style, place_legend

__all__ = ["boxplots", "density", "long_format"]

GROUPINGS = ("samples", "features")


def long_format(matrix: BioMatrix, feature_name: Optional[Sequence[str]] = None) -> pd.DataFrame:
    """
    One row per value with columns ID, Group, name, value.

    Args:
        matrix: Input matrix
        feature_name: Restrict to these features (in this order)
    """
    frame = matrix.to_target_frame()
    if feature_name is not None:
        frame = frame[["ID", "Group", *feature_name]]
    long = frame.melt(id_vars=["ID", "Group"], var_name="name", value_name="value")
    long["Group"] = long["Group"].astype(str)
    return long


def _check_arguments(data, group, feature_name, legend_position):
    matrix = _require_matrix(data)
    _check_choice(group, GROUPINGS, "group")
    names = _check_features(matrix, feature_name)
    _check_choice(legend_position, LEGEND_POSITIONS, "legend_position")
    return matrix, names


def boxplots(
    data: BioMatrix,
    group: Literal["samples", "features"] = "samples",
    jitter: bool = True,
    feature_name: Optional[Sequence[str]] = None,
    label_size: float = 10,
    legend_position: str = "bottom",
    palette: str | Palette = "default",
) -> Figure:
    """
    Boxplot of values per sample or per feature.

    Useful to compare data before and after normalization.

    Args:
        data: Input BioMatrix; the first metadata column is the group
        group: "samples" (one box per sample) or "features" (one box per
            feature and group)
        jitter: Overlay every value as a jittered point
        feature_name: Only draw these features (group="features"); names
            are still checked in samples mode
        label_size: Font size of x-axis labels
        legend_position: "none", "top", "bottom", "left" or "right"
        palette: Palette name or instance

    Returns:
        Figure wrapping the matplotlib figure; Figure.data holds the plotted
        long table

    Raises:
        MissingArgumentError: If data is None
        TypeError: If data is not a BioMatrix
        InvalidArgumentError: If group or legend_position is not valid
        FeatureNotFoundError: If a feature name is not in the matrix
    """
    matrix, names = _check_arguments(data, group, feature_name, legend_position)
    pal = configure_style(palette=palette)

    # feature_name only narrows the features view; samples show every value
    long = long_format(matrix, names if group == "features" else None)
    levels = sorted(long["Group"].unique())
    colors = pal.for_groups(levels)

    if group == "samples":
        x, order, dodge = "ID", list(matrix.sample_ids.astype(str)), False
    else:
        x, order, dodge = "name", names or list(matrix.feature_ids.astype(str)), True

    fig, ax = plt.subplots(figsize=(max(6.0, 0.3 * len(order)), 5))
    sns.boxplot(
        data=long, x=x, y="value", hue="Group", order=order, hue_order=levels,
        palette=colors, fill=False, dodge=dodge, showfliers=not jitter, ax=ax,
    )
    if jitter:
        sns.stripplot(
            data=long, x=x, y="value", hue="Group", order=order, hue_order=levels,
            palette=colors, dodge=dodge, alpha=0.5, size=2.5, legend=False, ax=ax,
        )

    ax.set_xlabel("")
    ax.set_ylabel("Value")
    ax.tick_params(axis="x", labelrotation=45, labelsize=label_size)
    for label in ax.get_xticklabels():
        label.set_horizontalalignment("right")
    place_legend(ax, legend_position)

    return Figure(
        fig=fig,
        title=f"Boxplots by {group}",
        description=f"{len(order)} boxes, {len(levels)} groups",
        data=long,
        metadata={
            "group": group,
            "jitter": jitter,
            "feature_name": names,
            "legend_position": legend_position,
        },
    )


def density(
    data: BioMatrix,
    group: Literal["samples", "features"] = "samples",
    feature_name: Optional[Sequence[str]] = None,
    legend_position: str = "bottom",
    palette: str | Palette = "default",
) -> Figure:
    """
    Kernel density of values per group or per feature.

    Args:
        data: Input BioMatrix; the first metadata column is the group
        group: "samples" (one density per group of samples) or "features"
            (one density per feature)
        feature_name: Only use these features
        legend_position: "none", "top", "bottom", "left" or "right"
        palette: Palette name or instance

    Returns:
        Figure wrapping the matplotlib figure

    Raises:
        MissingArgumentError: If data is None
        TypeError: If data is not a BioMatrix
        InvalidArgumentError: If group or legend_position is not valid
        FeatureNotFoundError: If a feature name is not in the matrix
    """
    matrix, names = _check_arguments(data, group, feature_name, legend_position)
    pal = configure_style(palette=palette)

    long = long_format(matrix, names).dropna(subset=["value"])
    hue = "Group" if group == "samples" else "name"
    levels = sorted(long["Group"].unique()) if hue == "Group" else list(dict.fromkeys(long["name"]))

    fig, ax = plt.subplots(figsize=(7, 5))
    sns.kdeplot(
        data=long, x="value", hue=hue, hue_order=levels,
        palette=pal.for_groups(levels), fill=True, alpha=0.4,
        common_norm=False, warn_singular=False, ax=ax,
    )
    ax.set_xlabel("Value")
    ax.set_ylabel("Density")
    place_legend(ax, legend_position)

    return Figure(
        fig=fig,
        title=f"Density by {group}",
        description=f"{len(levels)} densities",
        data=long,
        metadata={
            "group": group,
            "feature_name": names,
            "legend_position": legend_position,
        },
    )
