"""Parked cars drawn as cheap static instances, and the spaces they park in."""

from __future__ import annotations

import random
from dataclasses import dataclass, field
from typing import Any, Callable, Hashable, Mapping, Optional, Sequence

from .vector import Quat, Transform, Vector

VariantKey = tuple[Hashable, int]
Part = tuple["InstancedMesh", Transform]
Spawner = Callable[[Vector, Quat, Hashable, int], Any]


@dataclass(eq=False)
class InstancedMesh:
    """A mesh drawn at many transforms.

    Removing an instance moves the last instance into the freed slot.
    """

    name: str = ""
    transforms: list[Transform] = field(default_factory=list)

    def add_instance(self, transform: Transform) -> int:
        self.transforms.append(transform)
        return len(self.transforms) - 1

    def remove_instance(self, index: int) -> None:
        self.transforms[index] = self.transforms[-1]
        self.transforms.pop()

    def __len__(self) -> int:
        return len(self.transforms)


class ParkingController:
    """Keeps track of parked car instances and the parking spaces holding them.

    ``variants`` maps ``(car_class, variant_id)`` to the mesh parts of that
    parked car with their local transforms. ``spawner`` creates a simulated
    car from a location, rotation, car class and variant when one departs.
    """

    def __init__(
        self,
        variants: Optional[Mapping[VariantKey, Sequence[Part]]] = None,
        spawner: Optional[Spawner] = None,
        parking_density: float = 1.0,
        rng: Optional[random.Random] = None,
    ) -> None:
        self._variants: dict[VariantKey, list[Part]] = {
            key: list(parts) for key, parts in (variants or {}).items()
        }
        self.spawner = spawner
        self.parking_density = parking_density
        self._rng = rng if rng is not None else random.Random()
        self.parking_spaces: list[ParkingSpace] = []

        self._instances: list[list[tuple[InstancedMesh, int]]] = []
        # Per mesh: handle -> mesh instance index, and mesh instance index -> handle
        self._handles: dict[InstancedMesh, list[int]] = {}
        self._owners: dict[InstancedMesh, list[int]] = {}
        for parts in self._variants.values():
            for mesh, _ in parts:
                self._handles.setdefault(mesh, [])
                self._owners.setdefault(mesh, [])

    def add_parking_space(self, space: ParkingSpace) -> None:
        """Register a space and fill it with a parked car according to the density."""
        space.controller = self
        self.parking_spaces.append(space)
        if self._rng.uniform(0.0, 1.0) <= self.parking_density:
            space.spawn_car()

    def create_parked_instance(self, transform: Transform) -> tuple[int, Hashable, int]:
        """Park a random car variant at ``transform``.

        Returns the instance id, the car class and the variant id.
        """
        if not self._variants:
            raise LookupError("no parked car variants available")
        car_class, variant = key = self._rng.choice(list(self._variants))
        return self._add_parts(self._variants[key], transform), car_class, variant

    def create_parked_instance_for(self, car_class: Hashable, variant: int, transform: Transform) -> int:
        """Park the given car variant at ``transform`` and return the instance id."""
        parts = self._variants.get((car_class, variant))
        if parts is None:
            raise KeyError(f"no parked instance found for {car_class} variant {variant}")
        return self._add_parts(parts, transform)

    def destroy_parked_instance(self, instance_id: int) -> None:
        """Remove every mesh instance of a parked car; destroying twice is harmless."""
        if not 0 <= instance_id < len(self._instances):
            raise IndexError(f"invalid parked instance {instance_id}")

        for mesh, handle in self._instances[instance_id]:
            handles = self._handles[mesh]
            owners = self._owners[mesh]
            removed = handles[handle]
            mesh.remove_instance(removed)

            moved_handle = owners[-1]
            handles[moved_handle] = removed
            owners[removed] = moved_handle
            handles[handle] = -1
            owners.pop()

        self._instances[instance_id] = []

    def depart_random_parked_car(self) -> bool:
        """Ask a random parking space to let its car depart."""
        if not self.parking_spaces:
            return False
        return self._rng.choice(self.parking_spaces).depart_car()

    def _add_parts(self, parts: Sequence[Part], transform: Transform) -> int:
        ids: list[tuple[InstancedMesh, int]] = []
        for mesh, local in parts:
            index = mesh.add_instance(local.compose(transform))
            handles = self._handles.setdefault(mesh, [])
            owners = self._owners.setdefault(mesh, [])
            handles.append(index)
            owners.append(len(handles) - 1)
            ids.append((mesh, len(handles) - 1))
        self._instances.append(ids)
        return len(self._instances) - 1


class ParkingSpace:
    """A place where a car can park as a static instance and later depart.

    Cars passed to :meth:`park_car` need ``car_class``, ``variant`` and
    ``transform`` attributes.
    """

    def __init__(self, parked_transform: Transform = Transform()) -> None:
        self.parked_transform = parked_transform
        self.controller: Optional[ParkingController] = None
        self.occupant: Any = None
        self.occupied = False
        self.visual_instance_id = -1
        self.car_class: Optional[Hashable] = None
        self.car_variant = -1

    def park_car(self, car: Any) -> bool:
        """Turn a simulated car into a parked instance in this space."""
        if self.occupied or self.occupant is not None or self.controller is None:
            return False
        self.occupant = car
        self.finish_parking()
        return True

    def depart_car(self) -> bool:
        """Replace the parked instance with a simulated car."""
        if not self.occupied or self.occupant is not None or self.controller is None:
            return False
        if self.controller.spawner is None:
            raise RuntimeError("no traffic controller to spawn the departing car")

        self.controller.spawner(
            self.parked_transform.translation,
            self.parked_transform.rotation,
            self.car_class,
            self.car_variant,
        )
        self.controller.destroy_parked_instance(self.visual_instance_id)
        self._reset()
        return True

    def spawn_car(self) -> bool:
        """Fill the space with a random parked car."""
        if self.occupied or self.occupant is not None or self.controller is None:
            return False
        self.visual_instance_id, self.car_class, self.car_variant = (
            self.controller.create_parked_instance(self.parked_transform)
        )
        self.occupied = True
        return True

    def clear_car(self) -> None:
        """Remove the parked car, if any, without spawning a simulated one."""
        if not self.occupied or self.controller is None:
            return
        self.controller.destroy_parked_instance(self.visual_instance_id)
        self._reset()

    def finish_parking(self) -> bool:
        """Replace the arriving car with a parked instance at the car's transform."""
        if self.occupant is None or self.controller is None:
            return False
        car = self.occupant
        self.visual_instance_id = self.controller.create_parked_instance_for(
            car.car_class, car.variant, car.transform
        )
        self.car_class = car.car_class
        self.car_variant = car.variant
        self.occupant = None
        self.occupied = True
        return True

    def _reset(self) -> None:
        self.occupied = False
        self.visual_instance_id = -1
        self.car_class = None
        self.car_variant = -1