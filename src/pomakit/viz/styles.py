"""
Consistent visual styles for metabolomics charts.

Groups are coloured with a discrete viridis palette (perceptually uniform and
colourblind-safe); diagnostic scatter plots use a neutral dark grey. Styles
are applied through matplotlib rcParams and seaborn themes.
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import Literal, Sequence
import matplotlib.pyplot as plt
import seaborn as sns

LEGEND_POSITIONS = ("none", "top", "bottom", "left", "right")


@dataclass(frozen=True)
class Palette:
    """
    Colour palette for group comparisons.

    Attributes
    ----------
    groups : str
        Seaborn/matplotlib palette name used for group colours
    point : str
        Colour of points in diagnostic scatter plots
    highlight : str
        Colour of selected elements (e.g. chosen penalty)
    neutral : str
        Colour of reference lines and error bars
    """
    groups: str = "viridis"
    point: str = "#333333"
    highlight: str = "#dc2626"   # Red-600
    neutral: str = "#6b7280"     # Gray-500

    def for_groups(self, levels: Sequence[str]) -> dict[str, str]:
        """Map each group level to a colour, ordered as given."""
        colors = sns.color_palette(self.groups, max(len(levels), 1)).as_hex()
        return dict(zip(levels, colors))


PALETTES = {
    "default": Palette(),
    "print": Palette(groups="Greys", point="#000000", highlight="#000000", neutral="#808080"),
}


def configure_style(
    style: Literal["paper", "notebook"] = "notebook",
    palette: str | Palette = "default",
    font_scale: float = 1.0,
) -> Palette:
    """
    Configure matplotlib and seaborn for a consistent look.

    Parameters
    ----------
    style : {"paper", "notebook"}
        Target medium.
    palette : str or Palette
        Colour palette name or Palette instance.
    font_scale : float
        Multiplier for all font sizes.

    Returns
    -------
    Palette
        The configured colour palette.
    """
    if isinstance(palette, str):
        palette = PALETTES.get(palette, PALETTES["default"])

    base_params = {
        "figure.facecolor": "white",
        "axes.facecolor": "white",
        "axes.edgecolor": "#333333",
        "axes.labelcolor": "#333333",
        "text.color": "#333333",
        "xtick.color": "#333333",
        "ytick.color": "#333333",
        "legend.frameon": False,
    }

    if style == "paper":
        style_params = {
            "font.size": 10 * font_scale,
            "axes.titlesize": 11 * font_scale,
            "axes.labelsize": 10 * font_scale,
            "legend.fontsize": 9 * font_scale,
            "savefig.dpi": 300,
        }
        context = "paper"
    else:
        style_params = {
            "font.size": 11 * font_scale,
            "axes.titlesize": 12 * font_scale,
            "axes.labelsize": 11 * font_scale,
            "legend.fontsize": 10 * font_scale,
            "savefig.dpi": 150,
        }
        context = "notebook"

    # Black-and-white theme with light grid
    sns.set_theme(style="whitegrid", context=context, font_scale=font_scale)
    plt.rcParams.update({**base_params, **style_params})

    return palette


def place_legend(ax, legend_position: str) -> None:
    """
    Move (or remove) the legend of a seaborn axis without a title.

    legend_position is one of "none", "top", "bottom", "left", "right".
    """
    legend = ax.get_legend()
    if legend is None:
        return
    if legend_position == "none":
        legend.remove()
        return

    n_entries = len(legend.get_texts())
    anchors = {
        "top": ("lower center", (0.5, 1.02), n_entries),
        "bottom": ("upper center", (0.5, -0.25), n_entries),
        "left": ("center right", (-0.12, 0.5), 1),
        "right": ("center left", (1.02, 0.5), 1),
    }
    loc, anchor, ncol = anchors[legend_position]
    sns.move_legend(ax, loc, bbox_to_anchor=anchor, ncol=ncol, title=None, frameon=False)
