"""Chooses a curve type that joins two positions and tangents smoothly."""

from __future__ import annotations

from .curves import Curve, SCurve, SingleCurve, StraightLineCurve
from .vector import Vector


def curve_for(
    start_position: Vector,
    end_position: Vector,
    start_tangent: Vector,
    end_tangent: Vector,
    allow_s_curve: bool = True,
) -> Curve:
    """Return a curve joining the positions without tangent discontinuities."""
    start_to_end = end_position - start_position

    # Normal of a plane holding the whole curve
    if abs(start_tangent.dot(end_tangent)) > 0.9999:
        if abs(start_tangent.dot(start_to_end.safe_normal())) > 0.9999:
            return StraightLineCurve(start_position, end_position)
        plane_normal = start_tangent.cross(start_to_end).safe_normal()
    else:
        plane_normal = start_tangent.cross(end_tangent).safe_normal()

    # Directions perpendicular to each tangent that face the opposite end
    start_direction = start_tangent.cross(plane_normal).safe_normal()
    end_direction = -end_tangent.cross(plane_normal).safe_normal()

    if start_direction.dot(start_to_end) < 0.0:
        start_direction = -start_direction
    if end_direction.dot(-start_to_end) < 0.0:
        end_direction = -end_direction

    if not allow_s_curve or start_direction.dot(end_direction) > 0.0:
        return SingleCurve(
            start_position, end_position, start_tangent, end_tangent, start_direction, end_direction
        )
    return SCurve(
        start_position, end_position, start_tangent, end_tangent, start_direction, end_direction
    )