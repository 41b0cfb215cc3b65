import math

import pytest

from odflows.geom import build_trajectory, control_point, rotate, to_radians
from odflows.models import Coordinate


def _cross(a, b, c):
    """z of (b - a) × (c - a): > 0 when c lies left of a → b."""
    return (b.east - a.east) * (c.north - a.north) - (b.north - a.north) * (c.east - a.east)


@pytest.mark.parametrize(
    "degrees, radians",
    [(0, 0.0), (180, math.pi), (-90, -math.pi / 2), (360, 2 * math.pi), (45.5, 45.5 * math.pi / 180)],
)
def test_to_radians(degrees, radians):
    assert to_radians(degrees) == pytest.approx(radians)


def test_rotate_quarter_turn():
    v = rotate(Coordinate(1.0, 0.0), to_radians(90))
    assert v.as_tuple() == pytest.approx((0.0, 1.0), abs=1e-12)


def test_right_angle_rotation_path(make_record):
    path = build_trajectory(make_record((0, 0), (6, 0)))
    # offset (0-6)/6 = (-1, 0); rotated by -90° with the stated formula → (0, 1)
    expected = [(0.0, 0.0), (6.0, 1.0), (6.0, 0.0)]
    for got, want in zip(path.as_tuples(), expected):
        assert got == pytest.approx(want, abs=1e-12)
    assert path.origin == Coordinate(0, 0)
    assert path.destination == Coordinate(6, 0)


def test_swap_gives_half_turn_not_mirror(make_record):
    a, b = (100.0, 200.0), (700.0, -50.0)
    fwd = build_trajectory(make_record(a, b))
    rev = build_trajectory(make_record(b, a))
    A, B = Coordinate(*a), Coordinate(*b)

    # control points are anchored near their own destination
    od = A.distance_to(B)
    assert fwd.control.distance_to(B) == pytest.approx(od / 6)
    assert rev.control.distance_to(A) == pytest.approx(od / 6)

    # c_ab + c_ba == A + B : a half-turn about the midpoint ...
    total = fwd.control + rev.control
    assert total.as_tuple() == pytest.approx((A + B).as_tuple())

    # ... which is not the mirror image across the perpendicular bisector
    mid = ((A.east + B.east) / 2, (A.north + B.north) / 2)
    ux, uy = (B.east - A.east) / od, (B.north - A.north) / od
    px, py = fwd.control.east - mid[0], fwd.control.north - mid[1]
    along = px * ux + py * uy
    mirror = (fwd.control.east - 2 * along * ux, fwd.control.north - 2 * along * uy)
    assert rev.control.as_tuple() != pytest.approx(mirror)

    # both curves bow to the left of their own direction of travel
    assert _cross(A, B, fwd.control) > 0
    assert _cross(B, A, rev.control) > 0


def test_positive_angle_flips_side(make_record):
    rec = make_record((0, 0), (600, 0))
    left = build_trajectory(rec, curve_angle=-90)
    right = build_trajectory(rec, curve_angle=90)
    assert left.control.north == pytest.approx(100)
    assert right.control.north == pytest.approx(-100)


def test_degenerate_pair(make_record):
    path = build_trajectory(make_record((5, 5), (5, 5)))
    assert path.control == path.destination == Coordinate(5, 5)
    assert path.length() == 0


@pytest.mark.parametrize("divisor", [3, 6, 12, 24])
def test_bow_depth_linear_in_inverse_divisor(make_record, divisor):
    rec = make_record((0, 0), (1_200, 900))
    base = build_trajectory(rec, curvature=6).control.distance_to(rec.destination)
    depth = build_trajectory(rec, curvature=divisor).control.distance_to(rec.destination)
    assert depth * divisor == pytest.approx(base * 6)


def test_doubling_divisor_halves_offset(make_record):
    rec = make_record((0, 0), (6, 0))
    d6 = build_trajectory(rec, curvature=6).control.distance_to(rec.destination)
    d12 = build_trajectory(rec, curvature=12).control.distance_to(rec.destination)
    assert d12 == pytest.approx(d6 / 2)


@pytest.mark.parametrize("pair, weight", [("E02-E03", 0), ("x y ∆", 12.5), ("", 1e9)])
def test_id_and_weight_pass_through(make_record, pair, weight):
    path = build_trajectory(make_record((0, 0), (10, 3), pair=pair, weight=weight))
    assert path.pair_id == pair
    assert path.weight == weight


def test_zero_curvature_rejected():
    with pytest.raises(ValueError):
        control_point(Coordinate(0, 0), Coordinate(1, 1), curvature=0)


def test_crs_carried_to_control(make_record):
    path = build_trajectory(make_record((0, 0), (10, 0), crs="EPSG:2157"))
    assert {p.crs for p in path.points} == {"EPSG:2157"}
