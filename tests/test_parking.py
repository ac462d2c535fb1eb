import random
from dataclasses import dataclass, field

import pytest

from trafficsim.parking import InstancedMesh, ParkingController, ParkingSpace
from trafficsim.vector import Quat, Transform, Vector


@dataclass
class Car:
    car_class: str
    variant: int
    transform: Transform = field(default_factory=Transform)


def _controller(spawner=None, density=1.0):
    body = InstancedMesh("body")
    local = Transform(translation=Vector(0.0, 0.0, 10.0))
    controller = ParkingController(
        {("sedan", 1): [(body, local)]},
        spawner=spawner,
        parking_density=density,
        rng=random.Random(0),
    )
    return controller, body, local


def test_instanced_mesh_swap_removal():
    mesh = InstancedMesh()
    transforms = [Transform(translation=Vector(float(i), 0.0, 0.0)) for i in range(3)]
    for t in transforms:
        mesh.add_instance(t)
    mesh.remove_instance(0)
    assert mesh.transforms == [transforms[2], transforms[1]]


def test_create_parked_instance_places_parts():
    controller, body, local = _controller()
    where = Transform(translation=Vector(500.0, 0.0, 0.0))
    instance_id, car_class, variant = controller.create_parked_instance(where)
    assert (instance_id, car_class, variant) == (0, "sedan", 1)
    assert body.transforms == [local.compose(where)]


def test_create_parked_instance_without_variants_raises():
    controller = ParkingController()
    with pytest.raises(LookupError):
        controller.create_parked_instance(Transform())


def test_create_parked_instance_for_unknown_variant_raises():
    controller, _, _ = _controller()
    with pytest.raises(KeyError):
        controller.create_parked_instance_for("truck", 0, Transform())


def test_destroy_invalid_instance_raises():
    controller, _, _ = _controller()
    with pytest.raises(IndexError):
        controller.destroy_parked_instance(0)


def test_destroy_keeps_remaining_instances_consistent():
    controller, body, local = _controller()
    places = [Transform(translation=Vector(float(i) * 100.0, 0.0, 0.0)) for i in range(3)]
    ids = [controller.create_parked_instance_for("sedan", 1, p) for p in places]

    controller.destroy_parked_instance(ids[1])
    controller.destroy_parked_instance(ids[0])
    assert body.transforms == [local.compose(places[2])]

    controller.destroy_parked_instance(ids[0])
    assert len(body) == 1

    controller.destroy_parked_instance(ids[2])
    assert len(body) == 0


def test_add_parking_space_fills_space_at_full_density():
    controller, body, _ = _controller(density=1.0)
    space = ParkingSpace(Transform(translation=Vector(1.0, 2.0, 3.0)))
    controller.add_parking_space(space)
    assert space.occupied
    assert space.car_class == "sedan"
    assert len(body) == 1


def test_add_parking_space_leaves_space_empty_at_zero_density():
    controller, body, _ = _controller(density=0.0)
    space = ParkingSpace()
    controller.add_parking_space(space)
    assert not space.occupied
    assert len(body) == 0


def test_park_car_creates_instance_at_car():
    controller, body, local = _controller(density=0.0)
    space = ParkingSpace()
    controller.add_parking_space(space)
    car = Car("sedan", 1, Transform(translation=Vector(40.0, 0.0, 0.0)))

    assert space.park_car(car)
    assert space.occupied and space.occupant is None
    assert (space.car_class, space.car_variant) == ("sedan", 1)
    assert body.transforms == [local.compose(car.transform)]
    assert not space.park_car(Car("sedan", 1))


def test_park_car_without_controller_fails():
    space = ParkingSpace()
    assert not space.park_car(Car("sedan", 1))
    assert not space.occupied


def test_depart_car_spawns_and_clears():
    spawned = []
    controller, body, _ = _controller(
        spawner=lambda *args: spawned.append(args), density=1.0
    )
    rotation = Quat.from_axis_angle(Vector(0.0, 0.0, 1.0), 0.5)
    where = Transform(rotation=rotation, translation=Vector(7.0, 8.0, 9.0))
    space = ParkingSpace(where)
    controller.add_parking_space(space)

    assert space.depart_car()
    assert spawned == [(where.translation, rotation, "sedan", 1)]
    assert not space.occupied
    assert space.visual_instance_id == -1
    assert len(body) == 0
    assert not space.depart_car()


def test_depart_without_spawner_raises():
    controller, _, _ = _controller(density=1.0)
    space = ParkingSpace()
    controller.add_parking_space(space)
    with pytest.raises(RuntimeError):
        space.depart_car()


def test_clear_car_removes_parked_instance():
    controller, body, _ = _controller(density=1.0)
    space = ParkingSpace()
    controller.add_parking_space(space)
    space.clear_car()
    assert not space.occupied
    assert space.car_class is None
    assert len(body) == 0


def test_depart_random_parked_car_without_spaces():
    controller, _, _ = _controller()
    assert controller.depart_random_parked_car() is False


def test_depart_random_parked_car_departs_occupied_space():
    spawned = []
    controller, body, _ = _controller(spawner=lambda *args: spawned.append(args))
    space = ParkingSpace()
    controller.add_parking_space(space)
    assert controller.depart_random_parked_car() is True
    assert len(spawned) == 1
    assert len(body) == 0


def test_finish_parking_without_occupant_fails():
    controller, _, _ = _controller(density=0.0)
    space = ParkingSpace()
    controller.add_parking_space(space)
    assert space.finish_parking() is False
    assert not space.occupied