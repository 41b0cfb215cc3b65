"""
Geometry helpers – degree conversion & asymmetric Bezier trajectories.

Parametrisation follows Wood et al. 2011 (doi: 10.3138/carto.46.4.239):
the single control point sits near the destination, offset by the
origin-minus-destination vector scaled down and rotated.  Drawing both
directions of a pair then gives two curves bowing to opposite sides.
"""
from __future__ import annotations

from math import cos, pi, sin

from .models import Coordinate, ODRecord, TrajectoryPath

DEFAULT_CURVE_ANGLE = -90.0   # degrees, clockwise quarter-turn
DEFAULT_CURVATURE = 6.0       # divisor on the OD vector


def to_radians(degrees: float) -> float:
    """Degrees → radians."""
    return (degrees * pi) / 180


def rotate(v: Coordinate, theta: float) -> Coordinate:
    """Rotate a planar vector by ``theta`` radians (counter-clockwise positive)."""
    return Coordinate(
        v.east * cos(theta) - v.north * sin(theta),
        v.north * cos(theta) + v.east * sin(theta),
        v.crs,
    )


def control_point(
    origin: Coordinate,
    destination: Coordinate,
    curve_angle: float = DEFAULT_CURVE_ANGLE,
    curvature: float = DEFAULT_CURVATURE,
) -> Coordinate:
    """Bezier control point for the curve origin → destination."""
    if curvature == 0:
        raise ValueError("curvature divisor must be non-zero")
    v = origin - destination
    offset = Coordinate(v.east / curvature, v.north / curvature, v.crs)
    return destination + rotate(offset, to_radians(curve_angle))


def build_trajectory(
    record: ODRecord,
    curve_angle: float = DEFAULT_CURVE_ANGLE,
    curvature: float = DEFAULT_CURVATURE,
) -> TrajectoryPath:
    """
    Build the 3-point asymmetric trajectory for one OD record.

    Parameters
    ----------
    record       : origin/destination in one planar CRS, plus pair id & weight
    curve_angle  : rotation applied to the offset vector, in degrees.  The
                   sign picks the side the curve bows towards.
    curvature    : divisor on the origin-minus-destination vector; larger
                   values give flatter curves.

    A zero-length OD vector yields a control point on the destination.
    """
    ctrl = control_point(record.origin, record.destination, curve_angle, curvature)
    return TrajectoryPath(
        points=(record.origin, ctrl, record.destination),
        pair_id=record.pair_id,
        weight=record.weight,
    )
