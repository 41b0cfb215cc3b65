"""
odflows – asymmetric-curve OD flow maps from census commuting tables.
Top-level package.  Exposes a tiny public API and
configures logging early so every sub-module inherits it.
"""

from __future__ import annotations

import logging
import os
from pathlib import Path
from typing import Final

__all__ = [
    "logger",
    "PROJECT_ROOT",
    "INPUT_DIR",
    "OUTPUT_DIR",
    "to_radians",
    "build_trajectory",
    "build_trajectories",
    "aggregate_flows",
    "Coordinate",
    "ODRecord",
    "TrajectoryPath",
]

# ---------- paths ----------
PROJECT_ROOT: Final[Path] = Path(__file__).resolve().parent.parent
INPUT_DIR: Final[Path] = Path(os.getenv("ODFLOWS_INPUT_DIR", PROJECT_ROOT / "input"))
OUTPUT_DIR: Final[Path] = Path(os.getenv("ODFLOWS_OUTPUT_DIR", PROJECT_ROOT / "output"))

# ---------- logging ----------
LOG_LEVEL = os.getenv("ODFLOWS_LOG_LEVEL", "INFO").upper()

logging.basicConfig(
    level=LOG_LEVEL,
    format="%(asctime)s │ %(levelname)-8s │ %(name)s │ %(message)s",
    datefmt="%Y-%m-%d %H:%M:%S",
)

logger = logging.getLogger("odflows")
logger.debug("Logging initialised (level=%s)", LOG_LEVEL)

# ---------- public API ----------
from .models import Coordinate, ODRecord, TrajectoryPath  # noqa: E402
from .geom import build_trajectory, to_radians  # noqa: E402
from .flows import aggregate_flows, build_trajectories  # noqa: E402
