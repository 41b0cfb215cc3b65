"""
flows.py – pair keys, weight aggregation and the batch trajectory builder.

The builder in `geom.py` works on one record; this module decides which
records it is called on:
  • self-flows (origin == destination) carry no direction → dropped,
  • one path per distinct pair id, first-seen order,
  • a pair id with several different weights is an upstream mistake –
    aggregate with `aggregate_flows` first.
"""
from __future__ import annotations

import logging
from concurrent.futures import ThreadPoolExecutor
from functools import partial
from typing import Dict, Iterable, List, Optional

import pandas as pd

from .geom import DEFAULT_CURVATURE, DEFAULT_CURVE_ANGLE, build_trajectory
from .models import AggregationError, ODRecord, TrajectoryPath

logger = logging.getLogger("odflows.flows")

PAIR_SEP = "-"


def pair_id(origin_id: str, destination_id: str, sep: str = PAIR_SEP) -> str:
    """
    Directed pair key, e.g. ``E02000001-E02000002``.

    Backslashes and separators inside a code are backslash-escaped, so
    ``("A-B", "C")`` and ``("A", "B-C")`` give different keys.
    """
    def esc(code) -> str:
        return str(code).replace("\\", "\\\\").replace(sep, "\\" + sep)

    return f"{esc(origin_id)}{sep}{esc(destination_id)}"


def aggregate_flows(
    df: pd.DataFrame,
    origin_col: str = "origin",
    dest_col: str = "destination",
    weight_col: str = "count",
) -> pd.DataFrame:
    """
    Sum weights per directed (origin, destination) and attach a ``pair_id``.

    Returns a new frame; ``df`` is left untouched.  Mode-split tables
    (several rows per pair) collapse to one row each.
    """
    missing = [c for c in (origin_col, dest_col, weight_col) if c not in df.columns]
    if missing:
        raise ValueError(f"Missing columns {missing}")

    out = (
        df.groupby([origin_col, dest_col], sort=False, as_index=False)[weight_col]
        .sum()
        .reset_index(drop=True)
    )
    out["pair_id"] = [pair_id(o, d) for o, d in zip(out[origin_col], out[dest_col])]
    logger.debug("Aggregated %d rows into %d OD pairs", len(df), len(out))
    return out


def _representatives(records: Iterable[ODRecord]) -> List[ODRecord]:
    """First non-self record per pair id, rejecting conflicting weights."""
    chosen: Dict[str, ODRecord] = {}
    dropped_self = 0
    for rec in records:
        if rec.is_self_flow:
            dropped_self += 1
            continue
        first = chosen.get(rec.pair_id)
        if first is None:
            chosen[rec.pair_id] = rec
        elif first.weight != rec.weight:
            raise AggregationError(
                f"pair {rec.pair_id!r} has weights {first.weight} and {rec.weight}; "
                "aggregate flows per pair before building trajectories"
            )
    if dropped_self:
        logger.debug("Dropped %d self-flow records", dropped_self)
    return list(chosen.values())


def build_trajectories(
    records: Iterable[ODRecord],
    curve_angle: float = DEFAULT_CURVE_ANGLE,
    curvature: float = DEFAULT_CURVATURE,
    workers: Optional[int] = None,
) -> List[TrajectoryPath]:
    """
    Return one `TrajectoryPath` per distinct non-self ``pair_id``.

    ``workers`` > 1 maps the builder over a thread pool; output order is
    the same as the serial path (first-seen pair order).
    """
    reps = _representatives(records)
    build = partial(build_trajectory, curve_angle=curve_angle, curvature=curvature)

    if workers and workers > 1 and len(reps) > 1:
        with ThreadPoolExecutor(max_workers=workers) as pool:
            paths = list(pool.map(build, reps))
    else:
        paths = [build(r) for r in reps]

    logger.info("Built %d trajectories (angle=%.1f°, curvature=%.2f)",
                len(paths), curve_angle, curvature)
    return paths
