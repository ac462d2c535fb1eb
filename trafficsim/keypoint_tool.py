"""Editing support for keypoint graphs: listing keypoints and saving edited graphs."""

from __future__ import annotations

from dataclasses import dataclass, field
from enum import Enum
from os import PathLike
from pathlib import Path
from typing import Iterable, Optional, Union

from .keypoint_graph import KeypointGraph
from .vector import Vector

SAVE_DIRECTORY = "KeypointToolSaves"

PathLikeStr = Union[str, "PathLike[str]"]


class GraphKind(Enum):
    """The traffic graphs that can be edited."""

    CAR = "car"
    PEDESTRIAN = "pedestrian"
    TRAM = "tram"
    BICYCLE = "bicycle"


_GRAPH_FILES = {
    GraphKind.CAR: "roadGraph.data",
    GraphKind.PEDESTRIAN: "sharedUseGraph.data",
    GraphKind.TRAM: "tramwayTrackGraph.data",
    GraphKind.BICYCLE: "bicycleGraph.data",
}

_SAVE_FILES = {
    GraphKind.CAR: "newRoadGraph.data",
    GraphKind.PEDESTRIAN: "newSharedUseGraph.data",
    GraphKind.TRAM: "newTramwayTrackGraph.data",
    GraphKind.BICYCLE: "newBicycleGraph.data",
}


@dataclass
class ToolKeypoint:
    """An editable copy of one keypoint and its links."""

    id: int = 0
    location: Vector = field(default_factory=Vector)
    outbound: list[int] = field(default_factory=list)
    inbound: list[int] = field(default_factory=list)
    rules: int = 0


def graph_file_name(kind: GraphKind) -> str:
    """Name of the data file a graph of this kind is loaded from."""
    return _GRAPH_FILES[kind]


def load_graph(data_dir: PathLikeStr, kind: GraphKind) -> KeypointGraph:
    """Load the graph of the given kind from the data directory."""
    return KeypointGraph.from_file(Path(data_dir) / graph_file_name(kind))


def keypoints_of(graph: KeypointGraph) -> list[ToolKeypoint]:
    """Editable copies of every keypoint in the graph, in index order."""
    return [
        ToolKeypoint(
            id=i,
            location=graph.keypoint_position(i),
            outbound=graph.outbound(i),
            inbound=graph.inbound(i),
            rules=graph.keypoint_rules(i),
        )
        for i in range(len(graph))
    ]


def build_graph(
    keypoints: Iterable[ToolKeypoint],
    source_graph: Optional[KeypointGraph],
    kind: GraphKind,
) -> KeypointGraph:
    """Graph made from edited keypoints, keeping the source graph's spawn points.

    Overtaking lanes are carried over only for car graphs. Keypoints are
    numbered by their position in ``keypoints``.
    """
    keypoints = list(keypoints)
    graph = KeypointGraph()

    for keypoint in keypoints:
        graph.add_keypoint(keypoint.location)

    for i, keypoint in enumerate(keypoints):
        for target in keypoint.outbound:
            graph.link_keypoints(i, target)

    if source_graph is not None:
        for spawn_point in source_graph.spawn_points():
            graph.mark_spawn_point(spawn_point)

        if kind is GraphKind.CAR:
            for (a, b), (c, d) in source_graph.overtakes():
                graph.overtake_setup(a, b, c, d)

    for i, keypoint in enumerate(keypoints):
        if keypoint.rules != 0:
            graph.set_keypoint_rules(i, keypoint.rules)

    return graph


def save_tool_keypoints(
    keypoints: Iterable[ToolKeypoint], kind: GraphKind, data_dir: PathLikeStr
) -> Path:
    """Save edited keypoints as a new graph file and return its path.

    Spawn points and overtaking lanes come from the graph currently stored in
    ``data_dir``; the result goes to its ``KeypointToolSaves`` subdirectory.
    """
    data_dir = Path(data_dir)
    source_graph = load_graph(data_dir, kind)
    graph = build_graph(keypoints, source_graph, kind)

    save_dir = data_dir / SAVE_DIRECTORY
    save_dir.mkdir(parents=True, exist_ok=True)
    target = save_dir / _SAVE_FILES[kind]
    graph.save(target)
    return target