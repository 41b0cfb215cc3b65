"""
render.py – static views of OD flows

  • flow map      : asymmetric Bezier curves over zone outlines
  • OD matrix     : origins × destinations, axes in spatial reading order
  • OD map (grid) : one small gridded map of origins per destination cell

Line width / colour follow `scale_weights` – (w / max w) ** exponent – which
compresses the dynamic range so that mid-sized flows stay visible.
"""
from __future__ import annotations

import logging
from contextlib import contextmanager
from pathlib import Path
from typing import Optional, Sequence

import matplotlib

matplotlib.use("Agg")

import geopandas as gpd  # noqa: E402
import matplotlib.pyplot as plt  # noqa: E402
import numpy as np  # noqa: E402
import pandas as pd  # noqa: E402
from matplotlib.collections import LineCollection  # noqa: E402
from matplotlib.colors import Normalize  # noqa: E402

from .io import DEST, ORIGIN, WEIGHT  # noqa: E402
from .models import TrajectoryPath  # noqa: E402

logger = logging.getLogger("odflows.render")

DEFAULT_EXPONENT = 0.4


def scale_weights(weights, exponent: float = DEFAULT_EXPONENT) -> np.ndarray:
    """(w / max w) ** exponent, all zeros when every weight is zero."""
    w = np.asarray(weights, dtype=float)
    if w.size == 0:
        return w
    top = w.max()
    if top <= 0:
        return np.zeros_like(w)
    return (w / top) ** exponent


def _new_axes(ax, figsize):
    if ax is not None:
        return ax.figure, ax
    fig, ax = plt.subplots(figsize=figsize)
    return fig, ax


@contextmanager
def figure(figsize=(10.0, 10.0)):
    """Yield ``(fig, ax)`` and close the figure on exit, also when drawing fails."""
    fig, ax = plt.subplots(figsize=figsize)
    try:
        yield fig, ax
    finally:
        plt.close(fig)


# ────────────────────────────────────────────────────────────────────────────
# Flow map
# ────────────────────────────────────────────────────────────────────────────
def plot_flow_map(
    paths: Sequence[TrajectoryPath],
    zones: Optional[gpd.GeoDataFrame] = None,
    ax=None,
    exponent: float = DEFAULT_EXPONENT,
    samples: int = 20,
    cmap: str = "viridis",
    line_width: float = 3.0,
    title: Optional[str] = None,
    figsize=(10, 10),
):
    """Draw every trajectory as a sampled quadratic Bezier; heavy flows on top."""
    fig, ax = _new_axes(ax, figsize)

    if zones is not None and not zones.empty:
        zones.plot(ax=ax, facecolor="#f2f2f2", edgecolor="#bdbdbd", linewidth=0.4)

    if paths:
        order = np.argsort([p.weight for p in paths], kind="stable")
        scaled = scale_weights([p.weight for p in paths], exponent)[order]
        segments = [paths[i].sample(samples) for i in order]
        colormap = plt.get_cmap(cmap)
        lines = LineCollection(
            segments,
            linewidths=0.1 + line_width * scaled,
            colors=colormap(scaled),
            capstyle="round",
        )
        lines.set_alpha(np.clip(0.15 + 0.85 * scaled, 0, 1))
        ax.add_collection(lines)
        ax.autoscale_view()
    else:
        logger.warning("plot_flow_map: no trajectories to draw")

    ax.set_aspect("equal", adjustable="datalim")
    ax.set_axis_off()
    if title:
        ax.set_title(title, fontsize=14, fontweight="bold")
    return fig, ax


# ────────────────────────────────────────────────────────────────────────────
# OD matrix
# ────────────────────────────────────────────────────────────────────────────
def od_matrix(od: pd.DataFrame, order: Sequence[str]) -> pd.DataFrame:
    """Origins (rows) × destinations (columns) in ``order``; 0 where no flow."""
    mat = od.pivot_table(index=ORIGIN, columns=DEST, values=WEIGHT, aggfunc="sum", fill_value=0)
    return mat.reindex(index=list(order), columns=list(order), fill_value=0)


def plot_od_matrix(
    od: pd.DataFrame,
    order: Sequence[str],
    ax=None,
    exponent: float = DEFAULT_EXPONENT,
    cmap: str = "viridis",
    title: Optional[str] = None,
    figsize=(10, 10),
    max_labels: int = 40,
):
    """Heat-map of flows with both axes in spatial order."""
    fig, ax = _new_axes(ax, figsize)
    mat = od_matrix(od, order)
    values = scale_weights(mat.to_numpy(), exponent) if mat.size else mat.to_numpy()
    im = ax.imshow(values, cmap=cmap, norm=Normalize(0, 1), interpolation="nearest")

    if len(order) <= max_labels:
        ax.set_xticks(range(len(order)), labels=list(order), rotation=90, fontsize=6)
        ax.set_yticks(range(len(order)), labels=list(order), fontsize=6)
    else:
        ax.set_xticks([])
        ax.set_yticks([])
    ax.set_xlabel("destination")
    ax.set_ylabel("origin")
    cbar = fig.colorbar(im, ax=ax, fraction=0.046, pad=0.04)
    cbar.set_label(f"flow (scaled, ^{exponent})")
    if title:
        ax.set_title(title, fontsize=14, fontweight="bold")
    return fig, ax


# ────────────────────────────────────────────────────────────────────────────
# OD map – grid of grids
# ────────────────────────────────────────────────────────────────────────────
def od_grid_array(od: pd.DataFrame, layout: pd.DataFrame) -> np.ndarray:
    """
    Array of shape (rows·rows, cols·cols).  Block (R, C) is the destination
    in grid cell (R, C); within it cell (r, c) holds the flow from the
    origin in grid cell (r, c).  Cells without a zone are NaN.
    """
    rows = int(layout["row"].max()) + 1 if len(layout) else 0
    cols = int(layout["col"].max()) + 1 if len(layout) else 0
    grid = np.full((rows * rows, cols * cols), np.nan)
    if not len(layout):
        return grid

    pos = layout.set_index("zone_id")[["row", "col"]]
    # every (origin, destination) combination starts at zero
    o = pos.rename(columns={"row": "o_row", "col": "o_col"})
    d = pos.rename(columns={"row": "d_row", "col": "d_col"})
    combos = o.reset_index().merge(d.reset_index(), how="cross", suffixes=("_o", "_d"))
    grid[
        (combos["d_row"] * rows + combos["o_row"]).to_numpy(),
        (combos["d_col"] * cols + combos["o_col"]).to_numpy(),
    ] = 0

    flows = od.join(o, on=ORIGIN).join(d, on=DEST).dropna(subset=["o_row", "d_row"])
    flows = flows.groupby(["o_row", "o_col", "d_row", "d_col"], as_index=False)[WEIGHT].sum()
    r = (flows["d_row"] * rows + flows["o_row"]).astype(int).to_numpy()
    c = (flows["d_col"] * cols + flows["o_col"]).astype(int).to_numpy()
    grid[r, c] = flows[WEIGHT].to_numpy(dtype=float)
    return grid


def plot_od_grid(
    od: pd.DataFrame,
    layout: pd.DataFrame,
    ax=None,
    exponent: float = DEFAULT_EXPONENT,
    cmap: str = "viridis",
    title: Optional[str] = None,
    figsize=(10, 10),
):
    """Spatially-ordered choropleth grid (OD map) of flows."""
    fig, ax = _new_axes(ax, figsize)
    grid = od_grid_array(od, layout)
    mask = np.isnan(grid)
    scaled = np.where(mask, np.nan, scale_weights(np.nan_to_num(grid), exponent))
    im = ax.imshow(np.ma.masked_invalid(scaled), cmap=cmap, norm=Normalize(0, 1),
                   interpolation="nearest")

    if len(layout):
        rows = int(layout["row"].max()) + 1
        cols = int(layout["col"].max()) + 1
        for k in range(1, cols):
            ax.axvline(k * cols - 0.5, color="white", linewidth=1.2)
        for k in range(1, rows):
            ax.axhline(k * rows - 0.5, color="white", linewidth=1.2)
    ax.set_xticks([])
    ax.set_yticks([])
    cbar = fig.colorbar(im, ax=ax, fraction=0.046, pad=0.04)
    cbar.set_label(f"flow from origin cell (scaled, ^{exponent})")
    if title:
        ax.set_title(title, fontsize=14, fontweight="bold")
    return fig, ax


def save_figure(fig, out_path: Path | str, dpi: int = 300) -> Path:
    """Write a figure, close it and log the result."""
    out_path = Path(out_path)
    out_path.parent.mkdir(parents=True, exist_ok=True)
    fig.savefig(out_path, dpi=dpi, bbox_inches="tight")
    plt.close(fig)
    logger.info("Figure written to %s", out_path)
    return out_path
