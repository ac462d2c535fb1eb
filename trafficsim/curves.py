"""Curves that connect two positions with continuous tangents."""

from __future__ import annotations

import copy
import logging
import math
from abc import ABC, abstractmethod

from .vector import Quat, Vector

_log = logging.getLogger(__name__)


def _acos(value: float) -> float:
    return math.acos(max(-1.0, min(value, 1.0)))


class Curve(ABC):
    """A curve parameterised by distance travelled from its start."""

    @abstractmethod
    def position_and_tangent(self, step: float) -> tuple[Vector, Vector]:
        """Position and unit tangent ``step`` units from the start of the curve."""

    @abstractmethod
    def length(self) -> float:
        """Total length of the curve."""

    def curve_progress(self, segment_progress: float) -> float:
        """Progress through the curved part at a distance along the segment."""
        return 0.0

    @abstractmethod
    def curvature_at(self, segment_progress: float) -> float:
        """Signed turn amount at a distance along the segment."""

    def clone(self) -> Curve:
        return copy.copy(self)


class StraightLineCurve(Curve):
    """A straight line from one position to another."""

    def __init__(self, start_position: Vector, end_position: Vector) -> None:
        self.start_position = start_position
        self.end_position = end_position

    def position_and_tangent(self, step: float) -> tuple[Vector, Vector]:
        tangent = (self.end_position - self.start_position).safe_normal()
        return self.start_position + tangent * step, tangent

    def length(self) -> float:
        return (self.end_position - self.start_position).length()

    def curvature_at(self, segment_progress: float) -> float:
        return 0.0


class SingleCurve(Curve):
    """A straight line, a single circular arc and another straight line."""

    def __init__(
        self,
        start_position: Vector,
        end_position: Vector,
        start_tangent: Vector,
        end_tangent: Vector,
        start_curve_direction: Vector,
        end_curve_direction: Vector,
    ) -> None:
        self.start_position = start_position
        self.end_position = end_position
        self.start_tangent = start_tangent
        self.end_tangent = end_tangent
        self.start_curve_direction = start_curve_direction
        self.end_curve_direction = end_curve_direction

        start_to_end = end_position - start_position
        chord_direction = start_to_end.safe_normal()

        # Fit the largest arc into the corner where the tangents intersect
        a = start_to_end.length()
        alpha = _acos(min(start_tangent.dot(-end_tangent), 1.0))
        beta = _acos(min(end_tangent.dot(chord_direction), 1.0))
        gamma = _acos(min(start_tangent.dot(chord_direction), 1.0))
        sin_alpha = math.sin(alpha)
        if sin_alpha == 0.0:
            raise ValueError("tangents do not intersect; a single arc cannot join them")
        b = a * math.sin(beta) / sin_alpha
        c = a * math.sin(gamma) / sin_alpha

        self.tangents_intersection = start_position + start_tangent * b
        circle_distance = min(b, c)
        self.start_anchor = self.tangents_intersection - start_tangent * circle_distance
        self.end_anchor = end_position - end_tangent * (c - circle_distance)
        self.radius = math.tan(alpha * 0.5) * circle_distance

        first = b - circle_distance
        arc = first + (math.pi - alpha) * self.radius
        self._cumulative = (first, arc, arc + c - circle_distance)

    def position_and_tangent(self, step: float) -> tuple[Vector, Vector]:
        before_arc, after_arc, _ = self._cumulative
        if step < before_arc:
            direction = (self.tangents_intersection - self.start_position).safe_normal()
            return self.start_position + direction * step, self.start_tangent
        if step < after_arc:
            pivot = self.start_anchor + self.start_curve_direction * self.radius
            shaft = self.start_anchor - pivot
            axis = shaft.cross(self.end_anchor - pivot).safe_normal()
            shaft = Quat.from_axis_angle(axis, (step - before_arc) / self.radius) * shaft
            return pivot + shaft, axis.cross(shaft).safe_normal()
        direction = (self.end_position - self.end_anchor).safe_normal()
        return self.end_anchor + direction * (step - after_arc), self.end_tangent

    def length(self) -> float:
        return self._cumulative[2]

    def curve_progress(self, segment_progress: float) -> float:
        before_arc, after_arc, _ = self._cumulative
        if segment_progress < before_arc:
            return 0.0
        if segment_progress < after_arc:
            return (segment_progress - before_arc) / (after_arc - before_arc)
        return 1.0

    def curvature_at(self, segment_progress: float) -> float:
        progress = self.curve_progress(segment_progress)
        if progress > 0.9999 or progress < 0.0001:
            return 0.0
        _, tangent = self.position_and_tangent(segment_progress)
        side = Vector(-tangent.y, tangent.x, tangent.z)
        if progress <= 0.5:
            return -self.start_tangent.dot(side)
        return side.dot(self.end_tangent)


class SCurve(Curve):
    """Two circular arcs curving in opposite directions."""

    def __init__(
        self,
        start_position: Vector,
        end_position: Vector,
        start_tangent: Vector,
        end_tangent: Vector,
        start_curve_direction: Vector,
        end_curve_direction: Vector,
    ) -> None:
        self.start_position = start_position
        self.end_position = end_position
        self.start_tangent = start_tangent
        self.end_tangent = end_tangent
        self.start_curve_direction = start_curve_direction
        self.end_curve_direction = end_curve_direction

        start_ideal_cos = start_tangent.dot(end_curve_direction)
        end_ideal_cos = end_tangent.dot(start_curve_direction)

        if start_ideal_cos < end_ideal_cos:
            self.pivot1, self.pivot2, self.radius1, self.radius2 = self._radii_and_pivots(
                start_position, end_position, start_curve_direction, end_curve_direction
            )
        else:
            _log.debug("S-curve radii computed from the end position")
            self.pivot2, self.pivot1, self.radius2, self.radius1 = self._radii_and_pivots(
                end_position, start_position, end_curve_direction, start_curve_direction
            )

        pivot_direction = (self.pivot2 - self.pivot1).safe_normal()
        gamma1 = _acos((-start_curve_direction).dot(pivot_direction))
        gamma2 = _acos((-end_curve_direction).dot(-pivot_direction))
        first = gamma1 * self.radius1
        self._cumulative = (first, first + gamma2 * self.radius2)

    @staticmethod
    def _radii_and_pivots(
        end1: Vector, end2: Vector, direction1: Vector, direction2: Vector
    ) -> tuple[Vector, Vector, float, float]:
        # The first radius is fixed at half the distance between the ends; the second follows from it
        radius1 = (end2 - end1).length() / 2.0
        pivot1 = end1 + direction1 * radius1

        k_vector = pivot1 - end2
        k1 = k_vector.length()
        k1_cos_alpha2 = direction2.dot(k_vector)

        radius2 = (k1 * k1 - radius1 * radius1) / (2.0 * (radius1 + k1_cos_alpha2))

        if radius2 < 0.0:
            cos_beta = direction2.dot((pivot1 - (end2 + direction2 * radius2)).safe_normal())
            a = radius2
            d = radius1 + radius2
            radius2 = -(a * a - 2 * a * d * cos_beta + d * d - radius1 * radius1) / (
                2 * a - 2 * d * cos_beta - 2 * radius1
            )

        return pivot1, end2 + direction2 * radius2, radius1, radius2

    def position_and_tangent(self, step: float) -> tuple[Vector, Vector]:
        pivot_direction = (self.pivot2 - self.pivot1).safe_normal()
        first = self._cumulative[0]

        if step < first:
            pivot = self.pivot1
            shaft = self.start_position - pivot
            axis = shaft.cross(pivot_direction).safe_normal()
            shaft = Quat.from_axis_angle(axis, step / self.radius1) * shaft
        else:
            segment_start = self.pivot1 + pivot_direction * self.radius1
            pivot = self.pivot2
            shaft = segment_start - pivot
            axis = shaft.cross(-self.end_curve_direction).safe_normal()
            shaft = Quat.from_axis_angle(axis, (step - first) / self.radius2) * shaft

        return pivot + shaft, axis.cross(shaft).safe_normal()

    def length(self) -> float:
        return self._cumulative[1]

    def curvature_at(self, segment_progress: float) -> float:
        return 0.0