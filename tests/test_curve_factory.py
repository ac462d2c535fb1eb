import pytest

from trafficsim.curve_factory import curve_for
from trafficsim.curves import SCurve, SingleCurve, StraightLineCurve
from trafficsim.vector import Vector

X = Vector(1.0, 0.0, 0.0)
Y = Vector(0.0, 1.0, 0.0)


def _t(v):
    return (v.x, v.y, v.z)


def test_collinear_gives_straight_line():
    start = Vector(5.0, 5.0, 0.0)
    end = Vector(105.0, 5.0, 0.0)
    curve = curve_for(start, end, X, X, True)
    assert isinstance(curve, StraightLineCurve)
    assert curve.length() == pytest.approx((end - start).length())


def test_parallel_offset_gives_s_curve():
    end = Vector(100.0, 20.0, 0.0)
    curve = curve_for(Vector(), end, X, X, True)
    assert isinstance(curve, SCurve)
    assert _t(curve.position_and_tangent(curve.length())[0]) == pytest.approx(_t(end), abs=1e-6)


def test_quarter_turn_without_s_curves_gives_single_curve():
    end = Vector(200.0, 100.0, 0.0)
    curve = curve_for(Vector(), end, X, Y, False)
    assert isinstance(curve, SingleCurve)
    assert _t(curve.position_and_tangent(curve.length())[0]) == pytest.approx(_t(end), abs=1e-6)


def test_curve_directions_face_each_other():
    curve = curve_for(Vector(), Vector(200.0, 100.0, 0.0), X, Y, False)
    to_end = Vector(200.0, 100.0, 0.0)
    assert curve.start_curve_direction.dot(to_end) >= 0.0
    assert curve.end_curve_direction.dot(-to_end) >= 0.0


@pytest.mark.parametrize(
    "end, start_tangent, end_tangent, allow",
    [
        (Vector(100.0, 100.0, 0.0), X, Y, True),
        (Vector(100.0, 100.0, 0.0), X, Y, False),
        (Vector(200.0, 100.0, 0.0), X, Y, False),
        (Vector(100.0, 20.0, 0.0), X, X, True),
        (Vector(150.0, -40.0, 0.0), X, X, True),
        (Vector(300.0, 0.0, 0.0), X, X, True),
    ],
)
def test_curves_join_the_requested_ends(end, start_tangent, end_tangent, allow):
    curve = curve_for(Vector(), end, start_tangent, end_tangent, allow)
    start_pos, start_tan = curve.position_and_tangent(0.0)
    end_pos, end_tan = curve.position_and_tangent(curve.length())
    assert _t(start_pos) == pytest.approx((0.0, 0.0, 0.0), abs=1e-6)
    assert _t(end_pos) == pytest.approx(_t(end), abs=1e-6)
    assert _t(start_tan) == pytest.approx(_t(start_tangent), abs=1e-6)
    assert _t(end_tan) == pytest.approx(_t(end_tangent), abs=1e-6)
    assert curve.length() >= end.length() - 1e-9