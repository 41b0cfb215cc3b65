from pathlib import Path

import geopandas as gpd
import pandas as pd
import pytest
from shapely.geometry import box

from odflows.models import Coordinate, ODRecord

BNG = "EPSG:27700"


@pytest.fixture
def square_zones():
    """3×3 block of 1 km squares; code Z{row}{col}, row 0 in the north."""
    rows = []
    for r in range(3):
        for c in range(3):
            x0, y0 = 400_000 + c * 1_000, 300_000 - r * 1_000
            rows.append({"code": f"Z{r}{c}", "geometry": box(x0, y0, x0 + 1_000, y0 + 1_000)})
    return gpd.GeoDataFrame(rows, geometry="geometry", crs=BNG)


@pytest.fixture
def zones_file(tmp_path, square_zones) -> Path:
    path = tmp_path / "zones.gpkg"
    square_zones.to_file(path, driver="GPKG")
    return path


@pytest.fixture
def od_csv(tmp_path) -> Path:
    path = tmp_path / "od.csv"
    pd.DataFrame(
        {
            "origin": ["Z00", "Z00", "Z22", "Z11", "Z11", "Z01", "Z99"],
            "destination": ["Z22", "Z22", "Z00", "Z11", "Z02", "Z10", "Z00"],
            "count": [10, 5, 7, 100, 3, 0, 4],
        }
    ).to_csv(path, index=False)
    return path


@pytest.fixture
def make_record():
    def _make(o, d, pair="A-B", weight=1.0, crs=BNG) -> ODRecord:
        return ODRecord(Coordinate(*o, crs=crs), Coordinate(*d, crs=crs), pair, weight)

    return _make
