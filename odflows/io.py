"""
io.py – OD table validation, zone boundaries, centroid join and GeoJSON helpers
"""

from __future__ import annotations

import logging
from pathlib import Path
from typing import Final, Iterable, List, Optional, Sequence

import geopandas as gpd
import pandas as pd
from pydantic import BaseModel, Field, ValidationError, field_validator
from shapely.geometry import LineString
from text_unidecode import unidecode

from .flows import pair_id
from .models import (
    BRITISH_NATIONAL_GRID,
    CRSMismatchError,
    Coordinate,
    InvalidRecordError,
    ODRecord,
    TrajectoryPath,
)

logger = logging.getLogger("odflows.io")

# canonical column names after ingest
ORIGIN: Final[str] = "origin"
DEST: Final[str] = "destination"
WEIGHT: Final[str] = "count"
COORD_COLS: Final[List[str]] = ["o_east", "o_north", "d_east", "d_north"]


# ---------------------------------------------------------------------------
def _norm_id(s) -> str:
    """ASCII + stripped zone code (“E02000001 ” → “E02000001”)."""
    return unidecode(str(s)).strip()


class ODRow(BaseModel):
    """One line of the OD table after initial cleaning."""

    origin: str = Field(..., min_length=1)
    destination: str = Field(..., min_length=1)
    count: float = Field(..., ge=0, allow_inf_nan=False)

    # ────────────── validators ──────────────────────────────────────────
    @field_validator("origin", "destination", mode="before")
    @classmethod
    def _norm_zone(cls, v):
        return _norm_id(v) if v is not None else v


# ────────────────────────────────────────────────────────────────────────────
def load_od_table(
    csv_path: Path | str,
    origin_col: str = ORIGIN,
    dest_col: str = DEST,
    weight_col: str = WEIGHT,
) -> pd.DataFrame:
    """
    Parse an OD CSV and return a frame with columns origin/destination/count.

    * Rows with a blank zone code, or a negative / NaN / infinite count, are
      skipped with a warning.
    * Zone codes are read as text so leading zeros survive.
    """
    csv_path = Path(csv_path)
    if not csv_path.is_file():
        raise FileNotFoundError(csv_path)

    df = pd.read_csv(csv_path, dtype={origin_col: str, dest_col: str})

    # Header check
    missing = [c for c in (origin_col, dest_col, weight_col) if c not in df.columns]
    if missing:
        raise ValueError(f"Missing columns {missing}")

    df = df.rename(columns={origin_col: ORIGIN, dest_col: DEST, weight_col: WEIGHT})

    rows: list[dict] = []
    skipped = 0
    for raw in df[[ORIGIN, DEST, WEIGHT]].to_dict(orient="records"):
        # Convert pandas NaN → None so required fields fail validation
        raw = {k: (None if pd.isna(v) else v) for k, v in raw.items()}
        try:
            rows.append(ODRow(**raw).model_dump())
        except ValidationError as err:
            skipped += 1
            logger.warning("Skipping invalid row: %s", err)

    if not rows:
        raise ValueError(f"No valid rows in {csv_path}")

    logger.info("Loaded %d OD rows from %s (%d skipped)", len(rows), csv_path.name, skipped)
    return pd.DataFrame(rows, columns=[ORIGIN, DEST, WEIGHT])


# ────────────────────────────────────────────────────────────────────────────
def load_zones(
    path: Path | str,
    id_col: str,
    crs: Optional[str] = BRITISH_NATIONAL_GRID,
) -> gpd.GeoDataFrame:
    """
    Read zone boundaries and bring them into the working planar CRS.

    A file without CRS metadata is assumed to already be in ``crs``.
    Geographic (lat/lon) results are rejected – the trajectory maths needs
    linear units.
    """
    path = Path(path)
    if not path.exists():
        raise FileNotFoundError(path)

    zones = gpd.read_file(path)
    if id_col not in zones.columns:
        raise ValueError(f"Missing columns ['{id_col}'] in {path.name}")

    if crs is not None:
        if zones.crs is None:
            logger.warning("%s has no CRS – assuming %s", path.name, crs)
            zones = zones.set_crs(crs)
        elif zones.crs != crs:
            logger.info("Reprojecting %s from %s to %s", path.name, zones.crs, crs)
            zones = zones.to_crs(crs)

    if zones.crs is None:
        raise CRSMismatchError(f"{path.name} carries no CRS and none was given")
    if zones.crs.is_geographic:
        raise CRSMismatchError(f"{path.name} is in geographic CRS {zones.crs}; need a planar grid")

    zones = zones[[id_col, "geometry"]].copy()
    zones[id_col] = zones[id_col].map(_norm_id)
    zones = zones[zones.geometry.notna() & ~zones.geometry.is_empty]

    if zones[id_col].duplicated().any():
        logger.info("Dissolving multi-part zones in %s", path.name)
        zones = zones.dissolve(by=id_col, as_index=False)

    logger.info("Loaded %d zones from %s", len(zones), path.name)
    return zones.reset_index(drop=True)


def zone_centroids(zones: gpd.GeoDataFrame, id_col: str) -> pd.DataFrame:
    """Return ``zone_id, east, north`` – one representative point per zone."""
    if zones.crs is not None and zones.crs.is_geographic:
        raise CRSMismatchError("centroids of geographic coordinates are meaningless")
    cent = zones.geometry.centroid
    return pd.DataFrame(
        {"zone_id": zones[id_col].to_numpy(), "east": cent.x.to_numpy(), "north": cent.y.to_numpy()}
    )


def join_centroids(od: pd.DataFrame, centroids: pd.DataFrame) -> pd.DataFrame:
    """
    Attach origin and destination centroids to every OD row.

    Returns a new frame with ``o_east, o_north, d_east, d_north``; rows
    whose origin or destination has no zone are dropped (and counted).
    """
    lookup = centroids.set_index("zone_id")[["east", "north"]]
    out = od.join(lookup.rename(columns={"east": "o_east", "north": "o_north"}), on=ORIGIN)
    out = out.join(lookup.rename(columns={"east": "d_east", "north": "d_north"}), on=DEST)

    unmatched = out[COORD_COLS].isna().any(axis=1)
    if unmatched.any():
        codes = sorted(
            set(out.loc[unmatched & out["o_east"].isna(), ORIGIN])
            | set(out.loc[unmatched & out["d_east"].isna(), DEST])
        )
        logger.warning(
            "Dropping %d OD rows with no matching zone (e.g. %s)",
            int(unmatched.sum()),
            ", ".join(codes[:5]),
        )
        out = out[~unmatched]
    return out.reset_index(drop=True)


def drop_self_flows(df: pd.DataFrame) -> pd.DataFrame:
    """Return a new frame without rows whose origin equals destination."""
    same = df[ORIGIN] == df[DEST]
    if "o_east" in df.columns:
        # distinct codes can still share a centroid
        same |= (df["o_east"] == df["d_east"]) & (df["o_north"] == df["d_north"])
    if same.any():
        logger.debug("Dropping %d self-flow rows", int(same.sum()))
    return df[~same].reset_index(drop=True)


def records_from_frame(df: pd.DataFrame, crs: str = BRITISH_NATIONAL_GRID) -> List[ODRecord]:
    """
    Convert a joined OD frame to `ODRecord`s.

    Null coordinates raise `InvalidRecordError` – unmatched zones must be
    dropped (see `join_centroids`) before this point.
    """
    missing = [c for c in COORD_COLS + [WEIGHT] if c not in df.columns]
    if missing:
        raise ValueError(f"Missing columns {missing}")

    records = []
    for raw in df.to_dict(orient="records"):
        pid = raw.get("pair_id") or pair_id(raw[ORIGIN], raw[DEST])
        try:
            rec = ODRecord(
                origin=Coordinate(raw["o_east"], raw["o_north"], crs),
                destination=Coordinate(raw["d_east"], raw["d_north"], crs),
                pair_id=str(pid),
                weight=raw[WEIGHT],
            )
        except InvalidRecordError as exc:
            raise InvalidRecordError(f"pair {pid}: {exc}") from exc
        records.append(rec)
    return records


# ────────────────────────────────────────────────────────────────────────────
def trajectories_to_gdf(
    paths: Sequence[TrajectoryPath],
    crs: Optional[str] = None,
    samples: Optional[int] = None,
) -> gpd.GeoDataFrame:
    """
    One LineString per trajectory: the 3-point polyline, or ``samples``
    points along the quadratic Bezier.
    """
    if crs is None:
        crs = paths[0].crs if paths else BRITISH_NATIONAL_GRID
    rows = []
    for p in paths:
        if p.crs != crs:
            raise CRSMismatchError(f"pair {p.pair_id} is in {p.crs}, expected {crs}")
        coords = p.sample(samples) if samples else p.as_tuples()
        rows.append({"pair_id": p.pair_id, "weight": p.weight, "geometry": LineString(coords)})
    if not rows:
        return gpd.GeoDataFrame({"pair_id": [], "weight": [], "geometry": []}, geometry="geometry", crs=crs)
    return gpd.GeoDataFrame(rows, geometry="geometry", crs=crs)


def trajectories_to_frame(paths: Iterable[TrajectoryPath]) -> pd.DataFrame:
    """Long table ``x, y, pair_id, weight`` – three rows per trajectory."""
    rows = [
        {"x": x, "y": y, "pair_id": p.pair_id, "weight": p.weight}
        for p in paths
        for x, y in p.as_tuples()
    ]
    return pd.DataFrame(rows, columns=["x", "y", "pair_id", "weight"])


def save_geojson(gdf: gpd.GeoDataFrame, out_path: Path | str) -> Path:
    """Write a GeoJSON file and log the result."""
    out_path = Path(out_path)
    out_path.parent.mkdir(parents=True, exist_ok=True)
    gdf.to_file(out_path, driver="GeoJSON")
    logger.info("GeoJSON written to %s (%d features)", out_path, len(gdf))
    return out_path
