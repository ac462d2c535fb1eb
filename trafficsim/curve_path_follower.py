"""Guides a traffic entity along a keypoint path using smooth curves."""

from __future__ import annotations

import random
from dataclasses import dataclass, field
from typing import Callable, Iterable, Optional

from .curve_factory import curve_for
from .curves import Curve
from .keypoint_graph import CUSTOM_POINT_BASE, KeypointGraph, KeypointPath
from .vector import Vector

_UNIT_X = Vector(1.0, 0.0, 0.0)


@dataclass
class TrafficEntity:
    """The part of a traffic entity that a path follower moves and consults.

    ``respawn`` is set for entities that are respawned elsewhere instead of
    taking a new path from a spawn point. ``on_path_end`` is called whenever
    the end of a path is reached, before a new path is chosen.
    """

    location: Vector = field(default_factory=Vector)
    rule_exceptions: int = 0
    respawn: Optional[Callable[[TrafficEntity], None]] = None
    on_path_end: Optional[Callable[[], None]] = None


class CurvePathFollower:
    """Follows a keypoint path on a continuous curve through the keypoints.

    The curve runs through the midpoints between consecutive keypoints, which
    gives well-defined tangents at every segment boundary.
    """

    def __init__(
        self,
        graph: Optional[KeypointGraph],
        entity: TrafficEntity,
        make_s_curve: bool = True,
        rng: Optional[random.Random] = None,
    ) -> None:
        self._graph = graph
        self._entity = entity
        self._make_s_curve = make_s_curve
        self._rng = rng if rng is not None else random.Random()
        self.path = KeypointPath(graph)
        self.current_curve: Optional[Curve] = None
        self.current_point = 0
        self.progress = 0.0

        if entity.location.is_zero():
            self._first_time_spawn()
        else:
            self.new_path(True)

    @property
    def entity(self) -> TrafficEntity:
        return self._entity

    # Movement

    def advance(self, step: float) -> None:
        """Move ``step`` units along the path, starting a new path at its end."""
        if self._graph is None:
            return

        self.current_point, self.progress, self.current_curve = self._advance_point_and_progress(
            self.current_point, self.progress, self.current_curve, step
        )

        if self.current_point >= self._point_count() - 1:
            if self._entity.on_path_end is not None:
                self._entity.on_path_end()
            last = self.path.keypoints[-1] if self.path.keypoints else None
            self.new_path(bool(self._graph.outbound(last)))

    def location_and_tangent(self, step: float = 0.0) -> tuple[Vector, Vector]:
        """Position and tangent ``step`` units ahead of the current position."""
        if self.current_curve is None:
            return self._location_at(self.current_point, self.progress, None)
        point, progress, curve = self._advance_point_and_progress(
            self.current_point, self.progress, self.current_curve.clone(), step
        )
        return self._location_at(point, progress, curve)

    def location(self, step: float = 0.0) -> Vector:
        return self.location_and_tangent(step)[0]

    def turn_amount(self, progress: Optional[float] = None) -> float:
        """Curvature of the current segment at a fraction of its length."""
        if progress is None:
            progress = self.progress
        if self.current_curve is None:
            return 0.0
        return self.current_curve.curvature_at(self.current_curve.length() * progress)

    # Paths

    def new_path_between(self, start: int, target: int) -> None:
        """Follow the route between two graph keypoints."""
        if self._graph is None:
            return
        self.path = self._graph.find_path(start, target)
        self.progress = 0.0
        self.current_point = 0
        self.current_curve = self._create_curve_from_point(0)
        self._entity.location = self.location()

    def new_path(self, from_nearest: bool) -> None:
        """Take a random path from the nearest keypoint or from a spawn point."""
        graph = self._graph
        if graph is None:
            return

        if from_nearest:
            location = self._entity.location
            closest = graph.closest_keypoint(location)
            outbounds = graph.outbound(closest)
            self.path = graph.random_path_from(closest, self._rule_exceptions())

            if outbounds and len(self.path.keypoints) > 1:
                if not location.equals(self.path.point_position(0), 10):
                    self.path.custom_points.append(location)
                    self.path.keypoints.insert(0, CUSTOM_POINT_BASE)

                self.progress = 0.0
                self.current_point = 0
                self.current_curve = self._create_curve_from_point(0)
                return

        if self._entity.respawn is not None:
            self._entity.respawn(self._entity)
            return

        self.path = graph.random_path_from(graph.random_spawn_point(), self._rule_exceptions())
        self.progress = 0.0
        self.current_point = 0
        self.current_curve = self._create_curve_from_point(0)
        self._entity.location = self.location()

    def set_point_and_progress(self, point: int, progress: float) -> None:
        self.current_point = point
        self.progress = progress
        self.current_curve = self._create_curve_from_point(point)

    def set_custom_path(self, indexes: Iterable[int], custom_points: Iterable[Vector] = ()) -> None:
        """Replace the path; custom points are indexed -8, -9, ... in ``indexes``."""
        self.path.set_custom_path(indexes, custom_points)

    def is_last_target(self) -> bool:
        return self._point_count() - 1 == self.current_point

    # Internals

    def _first_time_spawn(self) -> None:
        if self._graph is None:
            return
        self.path = self._graph.random_path(self._rule_exceptions())
        self.current_point = 0
        # Spread initial positions between the first two points
        self.progress = self._rng.uniform(0.0, 1.0)
        self.current_curve = self._create_curve_from_point(0)
        self._entity.location = self.location()

    def _rule_exceptions(self) -> int:
        return self._entity.rule_exceptions

    def _point_count(self) -> int:
        return len(self.path.keypoints) + 1

    def _position(self, index: int) -> Vector:
        count = len(self.path.keypoints)
        if index <= 0:
            return self.path.point_position(0)
        if index >= count:
            return self.path.point_position(count - 1)
        return (self.path.point_position(index) + self.path.point_position(index - 1)) * 0.5

    def _tangent(self, index: int) -> Vector:
        count = len(self.path.keypoints)
        if count < 2:
            return _UNIT_X
        if index <= 0:
            return (self.path.point_position(1) - self.path.point_position(0)).safe_normal()
        if index >= count:
            return (
                self.path.point_position(count - 1) - self.path.point_position(count - 2)
            ).safe_normal()
        return (self.path.point_position(index) - self.path.point_position(index - 1)).safe_normal()

    def _create_curve_from_point(self, point: int) -> Optional[Curve]:
        if self._point_count() < 2 or point < 0 or point >= self._point_count() - 1:
            return None
        return curve_for(
            self._position(point),
            self._position(point + 1),
            self._tangent(point),
            self._tangent(point + 1),
            self._make_s_curve,
        )

    def _location_at(
        self, point: int, progress: float, curve: Optional[Curve]
    ) -> tuple[Vector, Vector]:
        count = self._point_count()
        if curve is None or count < 2:
            return Vector(), _UNIT_X
        if point >= count - 1:
            return self._position(count - 1), self._tangent(count - 1)
        if point < 0:
            return self._position(0), self._tangent(0)
        return curve.position_and_tangent(progress * curve.length())

    def _advance_point_and_progress(
        self, point: int, progress: float, curve: Optional[Curve], distance: float
    ) -> tuple[int, float, Optional[Curve]]:
        count = self._point_count()
        if self._graph is None or curve is None:
            return point, progress, curve
        if count < 2 or point >= count - 1 or point < 0:
            return point, progress, curve

        if distance > 0:
            while distance > 0 and point < count - 1:
                full = curve.length()
                remaining = (1 - progress) * full
                if distance >= remaining:
                    distance -= remaining
                    point += 1
                    progress = 0.0
                    curve = self._create_curve_from_point(point)
                else:
                    progress += distance / full
                    break
        elif distance < 0:
            while distance < 0 and point > 0:
                full = curve.length()
                remaining = progress * full
                if -distance >= remaining:
                    distance += remaining
                    point -= 1
                    progress = 1.0
                    curve = self._create_curve_from_point(point)
                else:
                    progress += distance / full
                    break

        return point, progress, curve