"""
Core visualization primitives: Figure wrapper and FigureCollection.

Every plotting function returns a Figure, which keeps the matplotlib figure
together with a title, a description and the parameters that produced it, so
charts can be saved, embedded or inspected uniformly.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from pathlib import Path
from typing import Literal, Optional
from datetime import datetime
import io
import base64

import matplotlib.figure
import matplotlib.pyplot as plt

OutputFormat = Literal["png", "pdf", "svg", "html"]


@dataclass
class Figure:
    """
    Wrapper around a matplotlib figure.

    Attributes
    ----------
    fig : matplotlib.figure.Figure
        The underlying figure object
    title : str
        Human-readable title for the figure
    description : str
        Longer description explaining what the figure shows
    data : pandas.DataFrame, optional
        Plotted data in long format (one row per drawn value)
    metadata : dict
        Additional metadata (creation time, parameters used, etc.)

    Examples
    --------
    >>> fig = boxplots(matrix, group="features")
    >>> fig.save("features.pdf")
    >>> fig.close()
    """
    fig: matplotlib.figure.Figure
    title: str
    description: str
    data: Optional[object] = None
    metadata: dict = field(default_factory=dict)

    def __post_init__(self):
        if "created_at" not in self.metadata:
            self.metadata["created_at"] = datetime.now().isoformat()

    @property
    def axes(self):
        """Axes of the underlying figure."""
        return self.fig.axes

    def save(
        self,
        path: Path | str,
        format: Optional[OutputFormat] = None,
        dpi: int = 300,
        **kwargs
    ) -> Path:
        """
        Save figure to file.

        Parameters
        ----------
        path : Path or str
            Output file path. Format inferred from extension if not specified.
        format : str, optional
            Output format. If None, inferred from path extension.
        dpi : int, default 300
            DPI for raster formats.

        Returns
        -------
        Path
            The path where the figure was saved.
        """
        path = Path(path)

        if format is None:
            format = path.suffix.lstrip(".").lower()
            if format not in ("png", "pdf", "svg", "html"):
                format = "png"

        path.parent.mkdir(parents=True, exist_ok=True)

        save_kwargs = {
            "dpi": dpi,
            "bbox_inches": "tight",
            "facecolor": "white",
            **kwargs
        }

        if format == "html":
            img_b64 = self.to_base64(dpi=dpi)
            html = f"""<!DOCTYPE html>
<html><head><title>{self.title}</title></head>
<body style="margin:0;display:flex;justify-content:center;align-items:center;min-height:100vh;background:#f5f5f5;">
<img src="data:image/png;base64,{img_b64}" alt="{self.title}">
</body></html>"""
            path.write_text(html)
        else:
            self.fig.savefig(path, format=format, **save_kwargs)

        return path

    def show(self):
        """Display figure interactively."""
        plt.show()

    def to_base64(self, format: str = "png", dpi: int = 150) -> str:
        """Encode the figure as a base64 image string."""
        buf = io.BytesIO()
        self.fig.savefig(buf, format=format, dpi=dpi, bbox_inches="tight")
        return base64.b64encode(buf.getvalue()).decode()

    def close(self):
        """Close the figure to free memory."""
        plt.close(self.fig)


class FigureCollection:
    """
    Named collection of figures for batch saving.

    Examples
    --------
    >>> collection = FigureCollection()
    >>> collection.add("raw", boxplots(imputed))
    >>> collection.add("normalized", boxplots(normalized))
    >>> collection.save_all(Path("figures/"), format="pdf")
    """

    def __init__(self):
        self.figures: dict[str, Figure] = {}

    def add(self, key: str, fig: Figure) -> "FigureCollection":
        """Add a named figure; returns self for chaining."""
        self.figures[key] = fig
        return self

    def get(self, key: str) -> Optional[Figure]:
        return self.figures.get(key)

    def __getitem__(self, key: str) -> Figure:
        return self.figures[key]

    def __len__(self) -> int:
        return len(self.figures)

    def __iter__(self):
        return iter(self.figures.items())

    def save_all(
        self,
        directory: Path | str,
        format: OutputFormat = "png",
        dpi: int = 300,
    ) -> list[Path]:
        """Save every figure as <directory>/<key>.<format>."""
        directory = Path(directory)
        return [
            fig.save(directory / f"{key}.{format}", format=format, dpi=dpi)
            for key, fig in self.figures.items()
        ]

    def close_all(self):
        for fig in self.figures.values():
            fig.close()
