# trafficsim

`trafficsim` holds the path and parking core of a road traffic simulation. It is plain Python and uses only the standard library.

## What it provides

### Vector maths (`trafficsim.vector`)

- `Vector`, `Rotator`, `Quat` and `Transform`, all frozen dataclasses.
- `closest_point_on_segment`.

### Curves (`trafficsim.curves`)

Each curve joins two positions so that the tangent stays continuous.

- `StraightLineCurve`
- `SingleCurve`: a straight line, then one circular arc, then another straight line.
- `SCurve`: two arcs that turn in opposite directions.

Every `Curve` provides these methods:

- `length()`
- `position_and_tangent(step)`, where `step` is a distance along the curve.
- `curve_progress(segment_progress)`
- `curvature_at(segment_progress)`
- `clone()`

`SingleCurve` raises `ValueError` when its tangents are parallel, because no single arc can join them.

### Curve selection (`trafficsim.curve_factory.curve_for`)

`curve_for` picks the curve type:

- a straight line when both positions and both tangents lie on one line;
- a `SingleCurve` when the two bends turn the same way, or when `allow_s_curve` is false;
- an `SCurve` in every other case.

### Keypoint graphs (`trafficsim.keypoint_graph`)

`KeypointGraph` is a directed graph of `Keypoint`s. It also holds:

- spawn points;
- overtaking lane pairs;
- access rule bits for each keypoint, using the `KeypointRules` flags `PARKING_ACCESS_ONLY`, `HEAVY_WEIGHT_LIMITED` and `NO_ACCESS`.

A graph offers:

- random walks through `random_path_from` and `random_path`. A walk holds at most 300 keypoints.
- path search with `find_path`;
- `closest_keypoint`;
- `keypoints_with_margin` and `remove_keypoints_by_range`;
- rule checks: `compare_rules`, `verified_keypoints` and `keypoints_by_rules`.

A graph can be written to the text `.data` format with `save` and read back with `load` or `KeypointGraph.from_file`.

Two methods take a callback, so the graph never needs a world:

- `align_with_ground(ground_height)` asks for the ground height below a keypoint, which may be `None`.
- `apply_zone_rules(rules_at)` asks for the rule bits that apply at a position.

Randomness comes from a `random.Random`. Pass one in to make results repeatable.

### Paths (`KeypointPath`)

A `KeypointPath` is a list of graph indices. It can also hold custom points. These are referred to as `-8`, `-9` and so on, meaning `custom_points[0]`, `custom_points[1]` and onwards.

### Path followers

- `CurvePathFollower` (`trafficsim.curve_path_follower`) moves a `TrafficEntity` along smooth curves. The curves run through the midpoints between consecutive keypoints. When the path ends, the follower does three things in order:
  1. It calls the entity's `on_path_end`.
  2. It continues from the last keypoint.
  3. If it cannot continue, it calls the entity's `respawn` or starts from a random spawn point.
- `FreePathFollower` (`trafficsim.free_path_follower`) steps an entity from keypoint to keypoint, adding a fixed `location_offset`.

### Keypoint tool helpers (`trafficsim.keypoint_tool`)

- `keypoints_of` exports a graph as editable `ToolKeypoint` records.
- `build_graph` rebuilds a graph from those records. It keeps the spawn points of the source graph, and keeps the overtaking lanes too for `GraphKind.CAR`.
- `load_graph` reads the graph of one `GraphKind` from a data directory.
- `save_tool_keypoints` writes an edited graph to `KeypointToolSaves/` inside that directory, using names such as `newRoadGraph.data`.

The data files each kind is read from:

| `GraphKind` | File |
| --- | --- |
| `CAR` | `roadGraph.data` |
| `PEDESTRIAN` | `sharedUseGraph.data` |
| `TRAM` | `tramwayTrackGraph.data` |
| `BICYCLE` | `bicycleGraph.data` |

### Parking (`trafficsim.parking`)

`ParkingController` keeps parked cars as instances in `InstancedMesh` collections.

- Each variant, keyed by car class and variant id, is made of mesh parts with local transforms.
- Parked instances can be created and destroyed; the controller keeps its handles stable when meshes compact themselves.
- `depart_random_parked_car` asks a random registered `ParkingSpace` to let its car go.
- When a car departs, the controller calls the `spawner` callback you supply to create a simulated car.

`ParkingSpace` provides `park_car`, `depart_car`, `spawn_car`, `clear_car` and `finish_parking`.

### Player vehicle (`trafficsim.player_vehicle`)

`PlayerVehicleController` remembers the spawn location and rotation of the pawn it possesses. It can:

- teleport the pawn to a location, absolute or relative to where it is;
- reset the pawn to its spawn;
- lift the pawn by `(100, 100, 100)` from where it is.

Rotation is not applied.

## Installation

```
pip install .
```

## Example

```python
from trafficsim.vector import Vector
from trafficsim.keypoint_graph import KeypointGraph
from trafficsim.curve_factory import curve_for

graph = KeypointGraph()
for x in (0.0, 1000.0, 2000.0):
    graph.add_keypoint(Vector(x, 0.0, 0.0))
graph.link_keypoints(0, 1)
graph.link_keypoints(1, 2)

path = graph.find_path(0, 2)
print(path.keypoints)            # [0, 1, 2]

curve = curve_for(
    Vector(0, 0, 0), Vector(1000, 1000, 0),
    Vector(1, 0, 0), Vector(0, 1, 0),
    False,
)
position, tangent = curve.position_and_tangent(curve.length() / 2)
```

## Graph file format

A graph file is a series of sections. Each section starts with a header line, and each line after it holds one entry:

| Header | Entry |
| --- | --- |
| `keypoints` | `index:x,y,z` |
| `links` | `from,to` |
| `spawnpoints` | `index` |
| `overtakelanes` | `rightStart,rightEnd;leftStart,leftEnd` |
| `rules` | `index:bits` |

A header line only has to start with the section name. The `rules` section lists only keypoints whose rules are not zero.

## Errors

These calls raise instead of returning a fallback:

| Call | Raises when |
| --- | --- |
| `KeypointGraph.link_keypoints` | an index is out of range (`IndexError`) |
| `KeypointGraph.keypoint_rules` | an index is out of range (`IndexError`) |
| `KeypointGraph.random_spawn_point` | the graph has no spawn points (`IndexError`) |
| `KeypointGraph.random_path` | the graph is empty (`ValueError`) |
| `ParkingController.create_parked_instance` | no variants are known (`LookupError`) |
| `ParkingController.create_parked_instance_for` | the variant is unknown (`KeyError`) |
| `ParkingController.destroy_parked_instance` | the id is invalid (`IndexError`) |
| `ParkingSpace.depart_car` | the controller has no spawner (`RuntimeError`) |

## What it does not do

The package has no world, renderer or physics, and no command-line program.

It does not include:

- a controller that spawns and steps whole fleets of cars, pedestrians, bicycles and trams;
- collision checks between traffic entities;
- level-of-detail handling;
- regulation zones;
- the path-planning manoeuvres that take a car into or out of a roadside or parking-lot space. `ParkingSpace` only swaps a car for a parked instance and back.

Ground heights, zone rules, spawning and respawning come in through the callbacks described above.

## Running the tests

```
pip install .[test]
pytest
```