from __future__ import annotations

import argparse
import logging
import sys
from pathlib import Path
from typing import Optional, Sequence

from .config import FlowConfig, StyleConfig, TrajectoryConfig
from .logging_config import configure
from .models import ODFlowsError
from .pipeline import run_pipeline

log = logging.getLogger("odflows.cli")


def _find_input(directory: Path, pattern: str) -> Optional[Path]:
    found = sorted(Path(directory).glob(pattern))
    return found[0] if len(found) == 1 else None


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(description="Draw asymmetric-curve OD flow maps")
    parser.add_argument("--od", help="OD table CSV (origin, destination, count)")
    parser.add_argument("--zones", help="Zone boundaries (GeoPackage, GeoJSON, Shapefile)")
    parser.add_argument("--config", help="YAML or JSON configuration file")
    parser.add_argument("--out", help="Output directory")
    parser.add_argument("--curve-angle", type=float, help="Control-point rotation in degrees")
    parser.add_argument("--curvature", type=float, help="Divisor on the OD vector (bow depth)")
    parser.add_argument("--exponent", type=float, help="Weight exponent for line styling")
    parser.add_argument("--log-level", help="DEBUG, INFO, WARNING, ERROR")
    return parser


def _apply_overrides(cfg: FlowConfig, args: argparse.Namespace) -> FlowConfig:
    if args.out:
        cfg.paths.output_dir = Path(args.out)
    if args.curve_angle is not None or args.curvature is not None:
        t = cfg.trajectory
        cfg.trajectory = TrajectoryConfig(
            curve_angle=t.curve_angle if args.curve_angle is None else args.curve_angle,
            curvature=t.curvature if args.curvature is None else args.curvature,
            samples=t.samples,
            workers=t.workers,
        )
    if args.exponent is not None:
        s = cfg.style
        cfg.style = StyleConfig(args.exponent, s.cmap, s.line_width, s.dpi, s.figsize)
    return cfg


def main(argv: Optional[Sequence[str]] = None) -> int:
    args = build_parser().parse_args(argv)

    try:
        cfg = FlowConfig.load_from_file(args.config) if args.config else FlowConfig()
        cfg = _apply_overrides(cfg, args)
    except (OSError, ValueError) as exc:
        configure(args.log_level or "INFO")
        log.error("Bad configuration: %s", exc)
        return 1

    configure(args.log_level or cfg.logging.level.value, rich=cfg.logging.rich)

    # -- locate inputs -------------------------------------------------------
    od = Path(args.od) if args.od else _find_input(cfg.paths.input_dir, "*.csv")
    zones = Path(args.zones) if args.zones else _find_input(cfg.paths.input_dir, "*.gpkg")
    if od is None or zones is None:
        log.error("Need --od and --zones (or exactly one .csv and .gpkg in %s)",
                  cfg.paths.input_dir)
        return 1

    log.info("OD → %s   zones → %s", od, zones)
    try:
        result = run_pipeline(od, zones, cfg)
    except (FileNotFoundError, ODFlowsError, ValueError) as exc:
        log.error("%s", exc)
        return 1

    for name, path in result.outputs.items():
        log.info("%-10s %s", name, path)
    return 0


if __name__ == "__main__":
    sys.exit(main())
