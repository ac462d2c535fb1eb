"""Graphs of keypoints joined by directed links, used as paths for traffic entities."""

from __future__ import annotations

import logging
import random
import re
from dataclasses import dataclass, field
from enum import IntFlag
from os import PathLike
from typing import Callable, Iterable, Optional, Sequence, Union

from .vector import Rotator, Vector

_log = logging.getLogger(__name__)

RANDOM_PATH_MAX_LENGTH = 300
MAX_INT32 = 2**31 - 1
CUSTOM_POINT_BASE = -8

_OVERTAKE_HEADER = (
    'overtakelanes ### format is "rightLaneStart,rightLaneEnd;leftLaneStart,leftLaneEnd"'
    " in keypoint indexes ###"
)

_FLOAT_PREFIX = re.compile(r"\s*[+-]?(?:\d+\.?\d*(?:[eE][+-]?\d+)?|\.\d+(?:[eE][+-]?\d+)?)")
_INT_PREFIX = re.compile(r"\s*[+-]?\d+")

Lane = tuple[int, int]
PathLikeStr = Union[str, "PathLike[str]"]


class KeypointRules(IntFlag):
    """Access restrictions that can be attached to a keypoint."""

    NONE = 0
    PARKING_ACCESS_ONLY = 1 << 0
    HEAVY_WEIGHT_LIMITED = 1 << 1
    NO_ACCESS = 1 << 2


@dataclass
class Keypoint:
    """A point in a graph with its links and access rules."""

    position: Vector
    outbound: list[int] = field(default_factory=list)
    inbound: list[int] = field(default_factory=list)
    rules: int = 0


@dataclass
class KeypointPath:
    """A sequence of keypoint indices through a graph, plus optional custom points.

    Custom points are referenced by indices -8, -9, ... mapping to
    ``custom_points[0]``, ``custom_points[1]``, ...
    """

    graph: Optional[KeypointGraph] = None
    keypoints: list[int] = field(default_factory=list)
    custom_points: list[Vector] = field(default_factory=list)

    def set_custom_path(self, indexes: Iterable[int], custom_points: Iterable[Vector] = ()) -> None:
        self.keypoints = list(indexes)
        self.custom_points = list(custom_points)

    def point_position(self, index: int) -> Vector:
        """Position of the path's point at ``index``."""
        keypoint = self.keypoints[index]

        if keypoint <= CUSTOM_POINT_BASE:
            custom_index = abs(keypoint) + CUSTOM_POINT_BASE
            if custom_index < len(self.custom_points):
                return self.custom_points[custom_index]
        elif keypoint >= 0 and self.graph is not None:
            return self.graph.keypoint_position(keypoint)

        _log.error(
            "Bad index %d. Use indexes from a KeypointPath, not from the global graph.", keypoint
        )
        return Vector()


@dataclass
class _SearchNode:
    parent: Optional[_SearchNode]
    keypoint: int
    weight: float


def _split(text: str, separator: str) -> Optional[tuple[str, str]]:
    position = text.find(separator)
    if position < 0:
        return None
    return text[:position], text[position + len(separator):]


def _atof(text: str) -> float:
    match = _FLOAT_PREFIX.match(text)
    return float(match.group()) if match else 0.0


def _atoi(text: str) -> int:
    match = _INT_PREFIX.match(text)
    return int(match.group()) if match else 0


def _format_number(value: float) -> str:
    return f"{value:.6g}"


class KeypointGraph:
    """Keypoints joined by directed links; can be saved to and loaded from text files."""

    def __init__(self, rng: Optional[random.Random] = None) -> None:
        self._rng = rng if rng is not None else random.Random()
        self._keypoints: list[Keypoint] = []
        self._links: list[Lane] = []
        self._overtakes: list[tuple[Lane, Lane]] = []
        self._entry_points: list[int] = []
        self._spawn_points: list[int] = []

    # Construction

    def add_keypoint(self, position: Vector) -> None:
        self._keypoints.append(Keypoint(position))

    def remove_keypoint(self, index: int) -> None:
        """Remove a keypoint and every link that references it.

        Indices of later keypoints are not renumbered.
        """
        kept: list[Lane] = []
        for first, second in self._links:
            if first == index:
                self._discard(self._keypoints[second].inbound, index)
            elif second == index:
                self._discard(self._keypoints[first].outbound, index)
            else:
                kept.append((first, second))
        self._links = kept
        del self._keypoints[index]

    @staticmethod
    def _discard(items: list[int], value: int) -> None:
        if value in items:
            items.remove(value)

    def link_keypoints(self, first: int, second: int) -> None:
        for index in (first, second):
            if not 0 <= index < len(self._keypoints):
                raise IndexError(f"keypoint index {index} out of range")
        self._links.append((first, second))
        self._keypoints[first].outbound.append(second)
        self._keypoints[second].inbound.append(first)

    def mark_spawn_point(self, index: int) -> None:
        self._spawn_points.append(index)

    def overtake_setup(self, lane1_start: int, lane1_end: int, lane2_start: int, lane2_end: int) -> None:
        self._overtakes.append(((lane1_start, lane1_end), (lane2_start, lane2_end)))

    def set_keypoint_rules(self, index: int, rules: int) -> None:
        """Set a keypoint's rules; indices outside the graph are ignored."""
        if 0 <= index < len(self._keypoints):
            self._keypoints[index].rules = int(rules)

    def clear(self) -> None:
        self._keypoints.clear()
        self._links.clear()
        self._overtakes.clear()
        self._entry_points.clear()
        self._spawn_points.clear()

    # Files

    def save(self, path: PathLikeStr) -> None:
        lines = ["keypoints"]
        for i, keypoint in enumerate(self._keypoints):
            p = keypoint.position
            lines.append(f"{i}:{_format_number(p.x)},{_format_number(p.y)},{_format_number(p.z)}")
        lines.append("links")
        lines.extend(f"{first},{second}" for first, second in self._links)
        lines.append("spawnpoints")
        lines.extend(str(point) for point in self._spawn_points)
        lines.append(_OVERTAKE_HEADER)
        lines.extend(f"{a},{b};{c},{d}" for (a, b), (c, d) in self._overtakes)
        lines.append("rules")
        lines.extend(
            f"{i}:{keypoint.rules}" for i, keypoint in enumerate(self._keypoints) if keypoint.rules != 0
        )
        with open(path, "w", encoding="utf-8") as out:
            out.write("\n".join(lines) + "\n")

    def load(self, path: PathLikeStr) -> None:
        """Replace the graph's contents with those of a saved graph file."""
        with open(path, encoding="utf-8") as source:
            text = source.read()

        self.clear()
        section = 0
        headers = ("keypoints", "links", "spawnpoints", "overtakelanes", "rules")

        for line in text.split("\n"):
            header = next((i for i, name in enumerate(headers) if line.startswith(name)), None)
            if header is not None:
                section = header
                continue

            if section == 0:
                self._load_keypoint(line)
            elif section == 1:
                parts = _split(line, ",")
                begin, end = (_atoi(parts[0]), _atoi(parts[1])) if parts else (0, 0)
                if end < len(self._keypoints):
                    self.link_keypoints(begin, end)
            elif section == 2:
                self._spawn_points.append(_atoi(line))
            elif section == 3:
                self._load_overtake(line)
            else:
                parts = _split(line, ":")
                index, rules = parts if parts else ("", "")
                self.set_keypoint_rules(int(_atof(index)), int(_atof(rules)))

        self._update_entry_points()

    def _load_keypoint(self, line: str) -> None:
        parts = _split(line, ":")
        values = parts[1] if parts else ""
        x = y = z = ""
        parts = _split(values, ",")
        if parts:
            x, y = parts
        parts = _split(y, ",")
        if parts:
            y, z = parts
        parts = _split(z, ",")
        if parts:
            z = parts[0]
        self.add_keypoint(Vector(_atof(x), _atof(y), _atof(z)))

    def _load_overtake(self, line: str) -> None:
        a1 = a2 = b1 = b2 = rest = ""
        parts = _split(line, ",")
        if parts:
            a1, rest = parts
        parts = _split(rest, ";")
        if parts:
            a2, rest = parts
        parts = _split(rest, ",")
        if parts:
            b1, b2 = parts
        self.overtake_setup(
            int(_atof(a1)), int(_atof(a2)), int(_atof(b1)), int(_atof(b2))
        )

    @classmethod
    def from_file(cls, path: PathLikeStr, rng: Optional[random.Random] = None) -> KeypointGraph:
        graph = cls(rng)
        graph.load(path)
        return graph

    # World alignment

    def align_with_ground(self, ground_height: Callable[[Vector], Optional[float]]) -> None:
        """Set each keypoint's height to the ground height found below it, if any."""
        for keypoint in self._keypoints:
            height = ground_height(keypoint.position)
            if height is not None:
                p = keypoint.position
                keypoint.position = Vector(p.x, p.y, height)

    def apply_zone_rules(self, rules_at: Optional[Callable[[Vector], int]]) -> None:
        """Add the rules of the zone each keypoint lies in to its own rules."""
        if rules_at is None:
            return
        for keypoint in self._keypoints:
            keypoint.rules |= int(rules_at(keypoint.position))

    # Paths

    def random_path_from(self, start: int, rule_exceptions: int = MAX_INT32) -> KeypointPath:
        """Random walk from ``start`` until a dead end or the maximum length."""
        if not self.compare_rules(start, rule_exceptions):
            return self.random_path()

        keypoints = [start]
        last = start
        while len(keypoints) < RANDOM_PATH_MAX_LENGTH:
            nexts = self.verified_keypoints(self._keypoints[last].outbound, rule_exceptions)
            if not nexts:
                break
            last = self._rng.choice(nexts)
            keypoints.append(last)

        return KeypointPath(self, keypoints)

    def random_path(self, rule_exceptions: int = MAX_INT32) -> KeypointPath:
        if not self._keypoints:
            raise ValueError("cannot create a path in an empty graph")
        return self.random_path_from(self._rng.randint(0, len(self._keypoints) - 1), rule_exceptions)

    def find_path(self, start: int, destination: int, rule_exceptions: int = MAX_INT32) -> KeypointPath:
        """Search for a path from ``start`` to ``destination`` following allowed links."""
        if not self.compare_rules(start, rule_exceptions):
            return self.random_path()

        opened: list[_SearchNode] = [_SearchNode(None, start, 0.0)]
        closed: list[_SearchNode] = []

        while opened:
            current = min(opened, key=lambda node: node.weight)
            opened = [node for node in opened if node is not current]
            current_position = self._keypoints[current.keypoint].position

            for kpi in self.verified_keypoints(self._keypoints[current.keypoint].outbound, rule_exceptions):
                child_weight = current.weight + current_position.dist_2d(self._keypoints[kpi].position)

                if any(n.keypoint == kpi and n.weight < child_weight for n in opened):
                    break
                if any(n.keypoint == kpi and n.weight < child_weight for n in closed):
                    break

                child = _SearchNode(current, kpi, child_weight)
                opened.append(child)

                if kpi == destination:
                    reversed_path = []
                    node = child
                    while node.parent is not None:
                        reversed_path.append(node.keypoint)
                        node = node.parent
                    reversed_path.append(start)
                    return KeypointPath(self, reversed_path[::-1])

            closed.append(current)

        # No route: take a single random step if possible, else restart from a spawn point
        outbounds = self.verified_keypoints(self._keypoints[start].outbound, rule_exceptions)
        if not outbounds:
            return self.random_path_from(self.random_spawn_point())
        return KeypointPath(self, [start, self._rng.choice(outbounds)])

    def keypoints_with_margin(self, margin: float) -> list[int]:
        """Keypoint indices, in random order, that are each at least ``margin`` apart."""
        margin_squared = margin * margin
        order = list(range(len(self._keypoints)))
        self._rng.shuffle(order)

        result: list[int] = []
        for index in order:
            position = self._keypoints[index].position
            if any(
                (position - self._keypoints[chosen].position).length_squared() < margin_squared
                for chosen in result
            ):
                continue
            result.append(index)
        return result

    def remove_keypoints_by_range(self, indices: Iterable[int], position: Vector, radius: float) -> list[int]:
        """The given indices without those within ``radius`` of ``position`` in the xy plane."""
        radius_squared = radius * radius
        kept = []
        for index in indices:
            p = self.keypoint_position(index)
            if (p.x - position.x) ** 2 + (p.y - position.y) ** 2 > radius_squared:
                kept.append(index)
        return kept

    # Queries

    def __len__(self) -> int:
        return len(self._keypoints)

    def _valid(self, index: Optional[int]) -> bool:
        return index is not None and 0 <= index < len(self._keypoints)

    def keypoint_position(self, index: Optional[int]) -> Vector:
        """Position of a keypoint, or the zero vector for an index outside the graph."""
        if not self._valid(index):
            return Vector()
        return self._keypoints[index].position

    def keypoint_rotation(self, index: int) -> Rotator:
        """Orientation towards the mean position of the keypoint's outbound keypoints."""
        if not self._valid(index):
            return Rotator()
        outbound = self._keypoints[index].outbound
        direction = Vector()
        for other in outbound:
            direction = direction + self._keypoints[other].position / len(outbound)
        return direction.to_rotator()

    def closest_keypoint(self, position: Vector) -> Optional[int]:
        """Index of the nearest keypoint (the last one on ties), or None if empty."""
        best: Optional[int] = None
        shortest = 0.0
        for i, keypoint in enumerate(self._keypoints):
            distance = (position - keypoint.position).length_squared()
            if best is None or distance <= shortest:
                best, shortest = i, distance
        return best

    def links(self) -> list[Lane]:
        return list(self._links)

    def spawn_points(self) -> list[int]:
        return list(self._spawn_points)

    def random_spawn_point(self) -> int:
        if not self._spawn_points:
            raise IndexError("graph has no spawn points")
        return self._rng.choice(self._spawn_points)

    def inbound(self, index: Optional[int]) -> list[int]:
        return list(self._keypoints[index].inbound) if self._valid(index) else []

    def outbound(self, index: Optional[int]) -> list[int]:
        return list(self._keypoints[index].outbound) if self._valid(index) else []

    def keypoint_rules(self, index: int) -> int:
        if not self._valid(index):
            raise IndexError(f"keypoint index {index} out of range")
        return self._keypoints[index].rules

    def compare_rules(self, index: Union[int, Keypoint, None], exceptions: int) -> bool:
        """True if every rule of the keypoint is covered by ``exceptions``."""
        if isinstance(index, Keypoint):
            keypoint = index
        elif self._valid(index):
            keypoint = self._keypoints[index]
        else:
            return False
        return (keypoint.rules & exceptions) == keypoint.rules

    def keypoints_by_rules(self, exceptions: int) -> list[Keypoint]:
        """Keypoints whose rules are all covered by ``exceptions``."""
        return [kp for kp in self._keypoints if self.compare_rules(kp, exceptions)]

    def overtake_pair(self, lane: Lane, allow_both_ways: bool) -> Optional[Lane]:
        """The lane paired with ``lane`` for overtaking, or None if overtaking is not allowed."""
        lane = tuple(lane)
        for right, left in self._overtakes:
            if right == lane:
                return left
            if allow_both_ways and left == lane:
                return right
        return None

    def overtakes(self) -> list[tuple[Lane, Lane]]:
        return list(self._overtakes)

    def entry_points(self) -> list[int]:
        return list(self._entry_points)

    def _update_entry_points(self) -> None:
        self._entry_points = [i for i, kp in enumerate(self._keypoints) if not kp.inbound]

    def verified_keypoints(self, indices: Sequence[int], rule_exceptions: int) -> list[int]:
        """The indices whose keypoints are accessible with ``rule_exceptions``."""
        return [i for i in indices if self.compare_rules(i, rule_exceptions)]