"""
pipeline.py – OD table + zone boundaries → trajectories, GeoJSON and figures

Each stage takes the previous stage's output and returns a new object;
nothing is reassigned in place:

  ① load OD table            (validated rows)
  ② aggregate per pair       (one row per directed pair, weights summed)
  ③ load zones + centroids   (planar CRS enforced)
  ④ join centroids           (unmatched codes dropped, counted)
  ⑤ drop self-flows
  ⑥ records → trajectories   (asymmetric Bezier per pair)
  ⑦ write GeoJSON, flow map, OD matrix, OD grid map
"""

from __future__ import annotations

import logging
from dataclasses import dataclass, field
from pathlib import Path
from typing import Dict, List, Optional

import geopandas as gpd
import pandas as pd

from .config import FlowConfig
from .flows import aggregate_flows, build_trajectories
from .io import (
    DEST,
    ORIGIN,
    WEIGHT,
    drop_self_flows,
    join_centroids,
    load_od_table,
    load_zones,
    records_from_frame,
    save_geojson,
    trajectories_to_gdf,
    trajectories_to_frame,
    zone_centroids,
)
from .layout import grid_layout, spatial_order
from .models import TrajectoryPath
from .render import figure, plot_flow_map, plot_od_grid, plot_od_matrix, save_figure

logger = logging.getLogger("odflows.pipeline")


@dataclass
class PipelineResult:
    trajectories: List[TrajectoryPath]
    flows: pd.DataFrame
    zones: gpd.GeoDataFrame
    outputs: Dict[str, Path] = field(default_factory=dict)

    def __str__(self):
        return (
            f"{len(self.trajectories):,} trajectories from {len(self.flows):,} OD pairs "
            f"over {len(self.zones):,} zones; wrote {', '.join(p.name for p in self.outputs.values())}"
        )


# --------------------------------------------------------------------------- #
# Stages                                                                      #
# --------------------------------------------------------------------------- #
def prepare_flows(od_csv: Path | str, cfg: FlowConfig) -> pd.DataFrame:
    """① + ②"""
    raw = load_od_table(od_csv, cfg.data.origin_col, cfg.data.dest_col, cfg.data.weight_col)
    return aggregate_flows(raw, ORIGIN, DEST, WEIGHT)


def prepare_zones(zones_path: Path | str, cfg: FlowConfig) -> tuple[gpd.GeoDataFrame, pd.DataFrame]:
    """③"""
    zones = load_zones(zones_path, cfg.data.zone_id_col, cfg.data.crs)
    return zones, zone_centroids(zones, cfg.data.zone_id_col)


def locate_flows(flows: pd.DataFrame, centroids: pd.DataFrame) -> pd.DataFrame:
    """④ + ⑤"""
    located = join_centroids(flows, centroids)
    located = drop_self_flows(located)
    if located.empty:
        raise ValueError("No OD pairs left after joining zones and dropping self-flows")
    return located


def trace_trajectories(located: pd.DataFrame, cfg: FlowConfig) -> List[TrajectoryPath]:
    """⑥"""
    records = records_from_frame(located, cfg.data.crs)
    return build_trajectories(
        records,
        curve_angle=cfg.trajectory.curve_angle,
        curvature=cfg.trajectory.curvature,
        workers=cfg.trajectory.workers,
    )


def write_outputs(
    trajectories: List[TrajectoryPath],
    flows: pd.DataFrame,
    zones: gpd.GeoDataFrame,
    centroids: pd.DataFrame,
    cfg: FlowConfig,
    out_dir: Path,
) -> Dict[str, Path]:
    """⑦"""
    style = cfg.style
    outputs: Dict[str, Path] = {}

    gdf = trajectories_to_gdf(trajectories, cfg.data.crs, samples=cfg.trajectory.samples)
    outputs["geojson"] = save_geojson(gdf, out_dir / "trajectories.geojson")

    points = trajectories_to_frame(trajectories)
    outputs["points"] = out_dir / "trajectory_points.csv"
    points.to_csv(outputs["points"], index=False)

    with figure(style.figsize) as (fig, ax):
        plot_flow_map(
            trajectories, zones, ax=ax,
            exponent=style.weight_exponent, samples=cfg.trajectory.samples,
            cmap=style.cmap, line_width=style.line_width, title="OD flows",
        )
        outputs["flow_map"] = save_figure(fig, out_dir / "flow_map.png", style.dpi)

    order = spatial_order(centroids)
    with figure(style.figsize) as (fig, ax):
        plot_od_matrix(flows, order, ax=ax, exponent=style.weight_exponent,
                       cmap=style.cmap, title="OD matrix")
        outputs["od_matrix"] = save_figure(fig, out_dir / "od_matrix.png", style.dpi)

    layout = grid_layout(centroids)
    with figure(style.figsize) as (fig, ax):
        plot_od_grid(flows, layout, ax=ax, exponent=style.weight_exponent,
                     cmap=style.cmap, title="OD map")
        outputs["od_grid"] = save_figure(fig, out_dir / "od_grid.png", style.dpi)
    return outputs


# --------------------------------------------------------------------------- #
# Main                                                                        #
# --------------------------------------------------------------------------- #
def run_pipeline(
    od_csv: Path | str,
    zones_path: Path | str,
    cfg: Optional[FlowConfig] = None,
) -> PipelineResult:
    cfg = cfg or FlowConfig()
    out_dir = Path(cfg.paths.output_dir)
    out_dir.mkdir(parents=True, exist_ok=True)
    logger.info("==> %s – starting run", Path(od_csv).name)

    try:
        flows = prepare_flows(od_csv, cfg)
        zones, centroids = prepare_zones(zones_path, cfg)
        located = locate_flows(flows, centroids)
        trajectories = trace_trajectories(located, cfg)
        # matrix/grid views only show zones present on the map
        shown = flows[flows[ORIGIN].isin(centroids["zone_id"]) & flows[DEST].isin(centroids["zone_id"])]
        outputs = write_outputs(trajectories, shown, zones, centroids, cfg, out_dir)
    except Exception:
        logger.error("Pipeline failed for %s", od_csv, exc_info=True)
        raise

    result = PipelineResult(trajectories, located, zones, outputs)
    logger.info("<== %s", result)
    return result
