"""Core dataclasses: planar coordinate, OD record, and trajectory path."""
from __future__ import annotations

import math
from dataclasses import dataclass
from typing import List, Tuple

import numpy as np

BRITISH_NATIONAL_GRID = "EPSG:27700"


# ────────────────────────────────────────────────────────────────────────────
# Exceptions
# ────────────────────────────────────────────────────────────────────────────
class ODFlowsError(ValueError):
    """Base class for data-quality errors surfaced before or by the core."""


class InvalidRecordError(ODFlowsError):
    """Raised when a coordinate or weight is missing or non-finite."""


class CRSMismatchError(ODFlowsError):
    """Raised when coordinates from different reference systems meet."""


class AggregationError(ODFlowsError):
    """Raised when one pair id carries several distinct weights."""


# ────────────────────────────────────────────────────────────────────────────
# Data model
# ────────────────────────────────────────────────────────────────────────────
@dataclass(frozen=True)
class Coordinate:
    east: float
    north: float
    crs: str = BRITISH_NATIONAL_GRID

    def __post_init__(self):
        for name in ("east", "north"):
            value = getattr(self, name)
            if value is None:
                raise InvalidRecordError(f"{name} is missing")
            if isinstance(value, (bool, np.bool_)):
                raise InvalidRecordError(f"{name} is a boolean, not a coordinate: {value!r}")
            try:
                finite = math.isfinite(value)
            except TypeError as exc:
                raise InvalidRecordError(f"{name} is not numeric: {value!r}") from exc
            if not finite:
                raise InvalidRecordError(f"{name} must be finite, got {value}")

    def _check_crs(self, other: "Coordinate") -> None:
        if self.crs != other.crs:
            raise CRSMismatchError(f"{self.crs} vs {other.crs}")

    def __add__(self, other: "Coordinate") -> "Coordinate":
        self._check_crs(other)
        return Coordinate(self.east + other.east, self.north + other.north, self.crs)

    def __sub__(self, other: "Coordinate") -> "Coordinate":
        self._check_crs(other)
        return Coordinate(self.east - other.east, self.north - other.north, self.crs)

    def distance_to(self, other: "Coordinate") -> float:
        """Euclidean distance in CRS units (metres for a national grid)."""
        d = other - self
        return math.hypot(d.east, d.north)

    def as_tuple(self) -> Tuple[float, float]:
        return self.east, self.north


@dataclass(frozen=True)
class ODRecord:
    """One origin–destination pair with projected endpoints and a flow count."""

    origin: Coordinate
    destination: Coordinate
    pair_id: str
    weight: float

    def __post_init__(self):
        if self.origin.crs != self.destination.crs:
            raise CRSMismatchError(
                f"pair {self.pair_id}: origin in {self.origin.crs}, "
                f"destination in {self.destination.crs}"
            )

    @property
    def is_self_flow(self) -> bool:
        return self.origin == self.destination


@dataclass(frozen=True)
class TrajectoryPath:
    """
    Ordered ``[origin, control, destination]`` of a quadratic Bezier.

    ``pair_id`` and ``weight`` are carried through unchanged for styling
    and grouping downstream.
    """

    points: Tuple[Coordinate, Coordinate, Coordinate]
    pair_id: str
    weight: float

    def __post_init__(self):
        if len(self.points) != 3:
            raise ValueError(f"a trajectory needs exactly 3 points, got {len(self.points)}")

    @property
    def origin(self) -> Coordinate:
        return self.points[0]

    @property
    def control(self) -> Coordinate:
        return self.points[1]

    @property
    def destination(self) -> Coordinate:
        return self.points[2]

    @property
    def crs(self) -> str:
        return self.origin.crs

    def length(self) -> float:
        """Length of the 3-point polyline origin → control → destination."""
        return self.origin.distance_to(self.control) + self.control.distance_to(self.destination)

    def as_tuples(self) -> List[Tuple[float, float]]:
        return [p.as_tuple() for p in self.points]

    def sample(self, n: int = 20) -> List[Tuple[float, float]]:
        """
        Return ``n`` points on the quadratic Bezier B(t), t ∈ [0, 1].

        B(t) = (1-t)²·P0 + 2(1-t)t·P1 + t²·P2
        """
        if n < 2:
            raise ValueError("need at least 2 samples")
        (x0, y0), (x1, y1), (x2, y2) = self.as_tuples()
        out = []
        for i in range(n):
            t = i / (n - 1)
            a, b, c = (1 - t) ** 2, 2 * (1 - t) * t, t ** 2
            out.append((a * x0 + b * x1 + c * x2, a * y0 + b * y1 + c * y2))
        return out
