"""
layout.py – spatial ordering of zones for the matrix and grid views.

`spatial_order` gives a reading-order ranking (north → south, west → east)
used for matrix axes.  `grid_layout` snaps every zone to its own cell of a
regular grid, keeping neighbours near each other, which is what the OD map
(grid of grids) needs.
"""
from __future__ import annotations

import logging
from math import ceil, sqrt
from typing import List, Optional, Tuple

import numpy as np
import pandas as pd
from scipy.optimize import linear_sum_assignment

logger = logging.getLogger("odflows.layout")


def spatial_order(centroids: pd.DataFrame, n_bands: Optional[int] = None) -> List[str]:
    """
    Zone ids in map reading order.

    Centroids are cut into ``n_bands`` horizontal bands by northing (default
    ≈ √n); bands run north → south and zones inside a band west → east.
    """
    if centroids.empty:
        return []
    n = len(centroids)
    n_bands = n_bands or max(1, round(sqrt(n)))
    north = centroids["north"].to_numpy(dtype=float)
    span = north.max() - north.min()
    if span == 0:
        band = np.zeros(n, dtype=int)
    else:
        # band 0 is the northernmost
        band = np.minimum(((north.max() - north) / span * n_bands).astype(int), n_bands - 1)
    ordered = centroids.assign(_band=band).sort_values(["_band", "east"], kind="mergesort")
    return ordered["zone_id"].tolist()


def _grid_shape(n: int, n_rows: Optional[int], n_cols: Optional[int]) -> Tuple[int, int]:
    if n_rows and n_cols:
        return n_rows, n_cols
    if n_rows:
        return n_rows, ceil(n / n_rows)
    if n_cols:
        return ceil(n / n_cols), n_cols
    cols = ceil(sqrt(n))
    return ceil(n / cols), cols


def grid_layout(
    centroids: pd.DataFrame,
    n_rows: Optional[int] = None,
    n_cols: Optional[int] = None,
) -> pd.DataFrame:
    """
    Assign each zone to a unique grid cell, minimising total squared
    displacement between rescaled centroids and cell centres.

    Returns ``zone_id, row, col``; row 0 is the top (north) of the map.
    """
    n = len(centroids)
    if n == 0:
        return pd.DataFrame({"zone_id": [], "row": [], "col": []})

    rows, cols = _grid_shape(n, n_rows, n_cols)
    if rows * cols < n:
        raise ValueError(f"{rows}x{cols} grid has fewer cells than {n} zones")

    east = centroids["east"].to_numpy(dtype=float)
    north = centroids["north"].to_numpy(dtype=float)

    def _unit(v: np.ndarray) -> np.ndarray:
        span = v.max() - v.min()
        return np.full_like(v, 0.5) if span == 0 else (v - v.min()) / span

    # zone positions in grid units, north at the top
    zx = _unit(east) * (cols - 1) if cols > 1 else np.zeros(n)
    zy = (1 - _unit(north)) * (rows - 1) if rows > 1 else np.zeros(n)

    cell_r, cell_c = np.divmod(np.arange(rows * cols), cols)
    cost = (zx[:, None] - cell_c[None, :]) ** 2 + (zy[:, None] - cell_r[None, :]) ** 2
    zone_idx, cell_idx = linear_sum_assignment(cost)

    logger.debug("Grid layout %dx%d for %d zones, cost %.3f",
                 rows, cols, n, cost[zone_idx, cell_idx].sum())
    out = pd.DataFrame(
        {
            "zone_id": centroids["zone_id"].to_numpy()[zone_idx],
            "row": cell_r[cell_idx].astype(int),
            "col": cell_c[cell_idx].astype(int),
        }
    )
    return out.sort_values(["row", "col"]).reset_index(drop=True)
