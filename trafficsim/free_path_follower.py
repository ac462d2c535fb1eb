"""Guides a traffic entity from keypoint to keypoint without a fixed path shape."""

from __future__ import annotations

from typing import Optional

from .curve_path_follower import TrafficEntity
from .keypoint_graph import KeypointGraph, KeypointPath
from .vector import Vector


class FreePathFollower:
    """Tracks which keypoint of a path an entity is heading for.

    Only the target positions are given; how the entity gets there is up to
    it. Every reported location includes ``location_offset``.
    """

    def __init__(
        self,
        graph: Optional[KeypointGraph],
        entity: TrafficEntity,
        location_offset: Vector = Vector(),
    ) -> None:
        self._graph = graph
        self._entity = entity
        self.location_offset = location_offset
        self.path = KeypointPath(graph)
        self.current_point = 0
        self.new_path(True)

    @property
    def entity(self) -> TrafficEntity:
        return self._entity

    def advance_target(self) -> None:
        """Head for the next keypoint, starting a new path at the end."""
        self.current_point += 1
        if self.current_point >= self._point_count() - 1 and self._graph is not None:
            last = self.path.keypoints[-1] if self.path.keypoints else None
            self.new_path(bool(self._graph.outbound(last)))

    def location(self) -> Vector:
        """Position of the current target."""
        return self._location_at(self.current_point)

    def new_path_between(self, start: int, target: int) -> None:
        """Follow the route between two graph keypoints."""
        if self._graph is None:
            return
        self.path = self._graph.find_path(start, target)
        self.current_point = 0
        self._entity.location = self.location()

    def new_path(self, from_nearest: bool) -> None:
        """Take a random path from the nearest keypoint or from a spawn point."""
        graph = self._graph
        if graph is None:
            return
        if from_nearest:
            self.path = graph.random_path_from(graph.closest_keypoint(self._entity.location))
        else:
            self.path = graph.random_path_from(graph.random_spawn_point())
        self.current_point = 0
        self._entity.location = self.location()

    def is_last_target(self) -> bool:
        return self._point_count() - 1 == self.current_point

    def _point_count(self) -> int:
        return len(self.path.keypoints)

    def _location_at(self, point: int) -> Vector:
        count = self._point_count()
        if count < 2:
            return Vector()
        if point >= count - 1:
            return self.path.point_position(count - 1) + self.location_offset
        if point < 0:
            return self.path.point_position(0) + self.location_offset
        return self.path.point_position(point) + self.location_offset