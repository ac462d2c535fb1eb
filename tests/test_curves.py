import math

import pytest

from trafficsim.curves import SCurve, SingleCurve, StraightLineCurve
from trafficsim.vector import Vector

X = Vector(1.0, 0.0, 0.0)
Y = Vector(0.0, 1.0, 0.0)


def _t(v):
    return (v.x, v.y, v.z)


def _samples(curve, count=200):
    total = curve.length()
    return [total * i / count for i in range(count + 1)]


def _assert_continuous(curve):
    steps = _samples(curve)
    points = [curve.position_and_tangent(s)[0] for s in steps]
    for (s0, p0), (s1, p1) in zip(zip(steps, points), zip(steps[1:], points[1:])):
        assert (p1 - p0).length() <= (s1 - s0) + 1e-6


def _quarter_turn(end=Vector(100.0, 100.0, 0.0), end_tangent=Y, start_dir=Y, end_dir=-X):
    return SingleCurve(Vector(), end, X, end_tangent, start_dir, end_dir)


def _lane_change():
    return SCurve(Vector(), Vector(100.0, 20.0, 0.0), X, X, Y, -Y)


def test_straight_line_length_and_positions():
    start = Vector(1.0, 2.0, 3.0)
    end = Vector(7.0, -1.0, 5.0)
    curve = StraightLineCurve(start, end)
    assert curve.length() == pytest.approx((end - start).length())
    position, tangent = curve.position_and_tangent(curve.length())
    assert _t(position) == pytest.approx(_t(end))
    assert _t(tangent) == pytest.approx(_t((end - start).safe_normal()))
    assert curve.curvature_at(1.0) == 0.0
    assert curve.curve_progress(1.0) == 0.0


def test_straight_line_clone_behaves_the_same():
    curve = StraightLineCurve(Vector(), Vector(10.0, 0.0, 0.0))
    twin = curve.clone()
    assert twin is not curve
    assert twin.position_and_tangent(4.0) == curve.position_and_tangent(4.0)


def test_single_curve_endpoints_and_tangents():
    curve = _quarter_turn()
    start, start_tangent = curve.position_and_tangent(0.0)
    end, end_tangent = curve.position_and_tangent(curve.length())
    assert _t(start) == pytest.approx((0.0, 0.0, 0.0), abs=1e-6)
    assert _t(start_tangent) == pytest.approx(_t(X), abs=1e-6)
    assert _t(end) == pytest.approx((100.0, 100.0, 0.0), abs=1e-6)
    assert _t(end_tangent) == pytest.approx(_t(Y), abs=1e-6)


def test_single_curve_arc_stays_on_circle():
    curve = _quarter_turn()
    pivot = curve.start_anchor + curve.start_curve_direction * curve.radius
    for step in _samples(curve, 20)[:-1]:
        position, tangent = curve.position_and_tangent(step)
        assert (position - pivot).length() == pytest.approx(curve.radius)
        assert tangent.length() == pytest.approx(1.0)
        assert tangent.dot(position - pivot) == pytest.approx(0.0, abs=1e-6)


def test_single_curve_length_bounds():
    curve = SingleCurve(Vector(), Vector(200.0, 100.0, 0.0), X, Y, Y, -X)
    corner = curve.tangents_intersection
    through_corner = corner.length() + (Vector(200.0, 100.0, 0.0) - corner).length()
    assert Vector(200.0, 100.0, 0.0).length() <= curve.length() <= through_corner
    _assert_continuous(curve)
    end, _ = curve.position_and_tangent(curve.length())
    assert _t(end) == pytest.approx((200.0, 100.0, 0.0), abs=1e-6)


def test_single_curve_progress_limits():
    curve = SingleCurve(Vector(), Vector(200.0, 100.0, 0.0), X, Y, Y, -X)
    assert curve.curve_progress(0.0) == 0.0
    assert curve.curve_progress(curve.length()) == 1.0
    middle = curve.curve_progress(curve.length() * 0.5)
    assert 0.0 < middle < 1.0
    assert curve.curvature_at(0.0) == 0.0


def test_single_curve_curvature_mirrors():
    left = _quarter_turn()
    right = _quarter_turn(Vector(100.0, -100.0, 0.0), -Y, -Y, -X)
    for fraction in (0.25, 0.5, 0.75):
        a = left.curvature_at(left.length() * fraction)
        b = right.curvature_at(right.length() * fraction)
        assert a != 0.0
        assert a == pytest.approx(-b)


def test_single_curve_rejects_antiparallel_tangents():
    with pytest.raises(ValueError):
        SingleCurve(Vector(), Vector(0.0, 100.0, 0.0), X, -X, Y, -Y)


def test_s_curve_circles_touch():
    curve = _lane_change()
    assert (curve.pivot2 - curve.pivot1).length() == pytest.approx(curve.radius1 + curve.radius2)
    assert curve.radius1 > 0.0 and curve.radius2 > 0.0


def test_s_curve_endpoints_and_tangents():
    curve = _lane_change()
    start, start_tangent = curve.position_and_tangent(0.0)
    end, end_tangent = curve.position_and_tangent(curve.length())
    assert _t(start) == pytest.approx((0.0, 0.0, 0.0), abs=1e-6)
    assert _t(end) == pytest.approx((100.0, 20.0, 0.0), abs=1e-6)
    assert _t(start_tangent) == pytest.approx(_t(X), abs=1e-6)
    assert _t(end_tangent) == pytest.approx(_t(X), abs=1e-6)


def test_s_curve_is_continuous_and_flat():
    curve = _lane_change()
    _assert_continuous(curve)
    assert curve.length() >= math.hypot(100.0, 20.0)
    assert curve.curvature_at(curve.length() / 2) == 0.0
    for step in _samples(curve, 20):
        assert curve.position_and_tangent(step)[0].z == pytest.approx(0.0, abs=1e-9)


def test_s_curve_clone_is_independent_copy():
    curve = _lane_change()
    twin = curve.clone()
    assert twin is not curve
    assert twin.length() == curve.length()
    assert twin.position_and_tangent(30.0) == curve.position_and_tangent(30.0)