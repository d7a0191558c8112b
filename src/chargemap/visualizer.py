"""
Exploratory maps of stations and census regions.

Renders frames produced by ``chargemap.analysis.summary`` with
geopandas/matplotlib: attribute choropleths, station-presence maps and
station point overlays.
"""

from dataclasses import dataclass, field
from enum import Enum
from pathlib import Path
from typing import Any, Dict, List, Optional, Tuple, Union

import geopandas as gpd
import matplotlib.pyplot as plt
from matplotlib.axes import Axes
from matplotlib.figure import Figure


class ColorScale(Enum):
    """Pre-defined color scales for region fills."""
    VIRIDIS = "viridis"
    CIVIDIS = "cividis"
    BLUES = "Blues"
    GREENS = "Greens"
    PURPLES = "Purples"
    YELLOW_GREEN_BLUE = "YlGnBu"
    YELLOW_ORANGE_RED = "YlOrRd"


@dataclass
class MapStyle:
    """Configuration for map styling.

    Attributes:
        colormap: Color scale for values
        edge_color: Region outline color
        edge_width: Region outline width
        alpha: Fill transparency (0-1)
        missing_color: Fill for regions with no value
        figsize: Figure size in inches (width, height)
        title: Map title
        legend: Whether to show a legend/colorbar
        legend_label: Colorbar label
    """
    colormap: Union[str, ColorScale] = ColorScale.VIRIDIS
    edge_color: str = "white"
    edge_width: float = 0.2
    alpha: float = 1.0
    missing_color: str = "lightgrey"
    figsize: Tuple[int, int] = (10, 10)
    title: Optional[str] = None
    legend: bool = True
    legend_label: Optional[str] = None

    def get_colormap_name(self) -> str:
        if isinstance(self.colormap, ColorScale):
            return self.colormap.value
        return self.colormap


@dataclass
class LayerConfig:
    """A map layer.

    Attributes:
        data: GeoDataFrame to draw
        value_column: Column to color by (None for a uniform fill)
        style: Styling for this layer
        categorical: Treat ``value_column`` as categories
        marker_size: Marker size for point layers
        zorder: Drawing order (higher = on top)
    """
    data: gpd.GeoDataFrame
    value_column: Optional[str] = None
    style: MapStyle = field(default_factory=MapStyle)
    categorical: bool = False
    marker_size: float = 6.0
    zorder: int = 1


class MapVisualizer:
    """Draws region and station layers onto matplotlib axes."""

    def __init__(self, style: Optional[MapStyle] = None):
        self.default_style = style or MapStyle()
        self._layers: List[LayerConfig] = []

    @property
    def layers(self) -> List[LayerConfig]:
        return list(self._layers)

    def add_layer(
        self,
        data: gpd.GeoDataFrame,
        value_column: Optional[str] = None,
        style: Optional[MapStyle] = None,
        categorical: bool = False,
        marker_size: float = 6.0,
        zorder: int = 1
    ) -> "MapVisualizer":
        """Add a layer; returns self for chaining."""
        self._layers.append(LayerConfig(
            data=data,
            value_column=value_column,
            style=style or self.default_style,
            categorical=categorical,
            marker_size=marker_size,
            zorder=zorder,
        ))
        return self

    def clear_layers(self) -> "MapVisualizer":
        self._layers = []
        return self

    def plot(
        self,
        data: Optional[gpd.GeoDataFrame] = None,
        value_column: Optional[str] = None,
        style: Optional[MapStyle] = None,
        ax: Optional[Axes] = None
    ) -> Tuple[Figure, Axes]:
        """Render a single frame, or every added layer when ``data`` is None.

        Returns:
            Tuple of (Figure, Axes)
        """
        style = style or self.default_style

        if ax is None:
            fig, ax = plt.subplots(1, 1, figsize=style.figsize)
        else:
            fig = ax.get_figure()

        if data is not None:
            self._plot_layer(
                LayerConfig(data=data, value_column=value_column, style=style),
                ax,
                show_legend=style.legend,
            )
        else:
            ordered = sorted(self._layers, key=lambda layer: layer.zorder)
            for i, layer in enumerate(ordered):
                # Only the top colored layer gets a legend
                show_legend = (
                    layer.style.legend
                    and layer.value_column is not None
                    and i == len(ordered) - 1
                )
                self._plot_layer(layer, ax, show_legend=show_legend)

        if style.title:
            ax.set_title(style.title, fontsize=14, fontweight="bold")
        ax.set_axis_off()

        fig.tight_layout()
        return fig, ax

    def _plot_layer(self, layer: LayerConfig, ax: Axes, show_legend: bool = True):
        style = layer.style
        points = bool(len(layer.data)) and all(
            geom_type == "Point" for geom_type in layer.data.geom_type
        )

        plot_kwargs: Dict[str, Any] = {
            "ax": ax,
            "alpha": style.alpha,
            "zorder": layer.zorder,
        }
        if points:
            plot_kwargs["markersize"] = layer.marker_size
        else:
            plot_kwargs["edgecolor"] = style.edge_color
            plot_kwargs["linewidth"] = style.edge_width

        if layer.value_column is not None:
            plot_kwargs.update({
                "column": layer.value_column,
                "cmap": style.get_colormap_name(),
                "categorical": layer.categorical,
                "legend": show_legend,
                "missing_kwds": {"color": style.missing_color},
            })
            if show_legend and style.legend_label and not layer.categorical:
                plot_kwargs["legend_kwds"] = {"label": style.legend_label}
        else:
            plot_kwargs["color"] = style.edge_color if points else style.missing_color

        layer.data.plot(**plot_kwargs)

    def choropleth(
        self,
        regions: gpd.GeoDataFrame,
        value_column: str,
        title: Optional[str] = None,
        colormap: Union[str, ColorScale] = ColorScale.VIRIDIS,
        legend_label: Optional[str] = None,
        figsize: Tuple[int, int] = (10, 10)
    ) -> Tuple[Figure, Axes]:
        """Choropleth of one region attribute.

        Example:
            >>> viz = MapVisualizer()
            >>> fig, ax = viz.choropleth(
            ...     regions_to_frame(joined),
            ...     "median_income",
            ...     title="Median household income",
            ...     colormap=ColorScale.YELLOW_GREEN_BLUE
            ... )
        """
        style = MapStyle(
            colormap=colormap,
            title=title,
            legend_label=legend_label or value_column,
            figsize=figsize,
        )
        return self.plot(regions, value_column, style)

    def plot_presence(
        self,
        regions: gpd.GeoDataFrame,
        title: Optional[str] = "Regions with at least one station",
        figsize: Tuple[int, int] = (10, 10)
    ) -> Tuple[Figure, Axes]:
        """Two-color map of the ``presence`` column."""
        style = MapStyle(colormap="Paired", title=title, figsize=figsize)
        frame = regions.assign(presence=regions["presence"].map({True: "yes", False: "no"}))
        self.clear_layers()
        self.add_layer(frame, "presence", style=style, categorical=True)
        return self.plot(style=style)

    def plot_points(
        self,
        regions: gpd.GeoDataFrame,
        points: gpd.GeoDataFrame,
        title: Optional[str] = None,
        point_color: str = "crimson",
        marker_size: float = 6.0,
        figsize: Tuple[int, int] = (10, 10)
    ) -> Tuple[Figure, Axes]:
        """Station points over region outlines."""
        outline = MapStyle(
            edge_color="grey", edge_width=0.3, missing_color="whitesmoke",
            title=title, figsize=figsize, legend=False,
        )
        markers = MapStyle(edge_color=point_color, legend=False)

        self.clear_layers()
        self.add_layer(regions, style=outline, zorder=1)
        self.add_layer(points, style=markers, marker_size=marker_size, zorder=2)
        return self.plot(style=outline)

    def save(
        self,
        filepath: Union[str, Path],
        fig: Optional[Figure] = None,
        dpi: int = 150,
        **kwargs
    ):
        """Save a figure (the current one by default)."""
        if fig is None:
            fig = plt.gcf()
        fig.savefig(filepath, dpi=dpi, bbox_inches="tight", **kwargs)


def plot_map(
    regions: gpd.GeoDataFrame,
    value_column: str,
    title: Optional[str] = None,
    colormap: str = "viridis",
    figsize: Tuple[int, int] = (10, 10),
    save_path: Optional[str] = None
) -> Tuple[Figure, Axes]:
    """Quick choropleth, optionally saved to ``save_path``."""
    viz = MapVisualizer()
    fig, ax = viz.choropleth(
        regions,
        value_column,
        title=title,
        colormap=colormap,
        figsize=figsize,
    )
    if save_path:
        viz.save(save_path, fig)
    return fig, ax


def compare_maps(
    maps: List[Tuple[gpd.GeoDataFrame, str, str]],
    ncols: int = 2,
    figsize: Optional[Tuple[int, int]] = None,
    colormap: str = "viridis"
) -> Tuple[Figure, List[Axes]]:
    """Grid of choropleths for side-by-side comparison.

    Args:
        maps: (GeoDataFrame, value_column, title) tuples
        ncols: Number of grid columns
        figsize: Figure size (derived from the grid when None)
        colormap: Colormap for every panel

    Example:
        >>> frame = regions_to_frame(joined)
        >>> fig, axes = compare_maps([
        ...     (frame, "median_income", "Median income"),
        ...     (frame, "pct_white", "% white"),
        ... ])
    """
    n = len(maps)
    nrows = (n + ncols - 1) // ncols
    if figsize is None:
        figsize = (6 * ncols, 5 * nrows)

    fig, axes = plt.subplots(nrows, ncols, figsize=figsize, squeeze=False)
    axes = list(axes.flatten())

    viz = MapVisualizer()
    for ax, (data, value_column, title) in zip(axes, maps):
        style = MapStyle(colormap=colormap, title=title, legend_label=value_column)
        viz.plot(data, value_column, style, ax=ax)

    for ax in axes[n:]:
        ax.set_visible(False)

    fig.tight_layout()
    return fig, axes[:n]
