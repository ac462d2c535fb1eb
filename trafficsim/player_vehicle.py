"""Control of the player's vehicle: remembering its spawn and teleporting it."""

from __future__ import annotations

import math
from typing import Any, Optional

from .vector import Quat, Vector

_RESET_OFFSET = Vector(100.0, 100.0, 100.0)


def _rotation_vector(rotation: Quat) -> Vector:
    """Axis of the rotation scaled by its angle in radians."""
    w = max(-1.0, min(rotation.w, 1.0))
    angle = 2.0 * math.acos(w)
    axis = Vector(rotation.x, rotation.y, rotation.z).safe_normal()
    return axis * angle


class PlayerVehicleController:
    """Controller for the player's car.

    The controlled pawn needs ``location`` (a Vector) and ``rotation``
    (a Quat) attributes.
    """

    def __init__(self) -> None:
        self.pawn: Any = None
        self.spawn: tuple[Vector, Quat] = (Vector(), Quat())

    def possess(self, pawn: Any) -> None:
        """Take control of a pawn and remember where it started."""
        self.pawn = pawn
        self.spawn = (pawn.location, pawn.rotation)

    def unpossess(self) -> None:
        self.pawn = None

    def set_vehicle_location(self, location: Vector, rotation: Vector, relative: bool) -> None:
        """Teleport the vehicle, optionally relative to where it is now.

        Only the location is applied; changing the rotation of a moving
        vehicle is left alone.
        """
        pawn: Optional[Any] = self.pawn
        if pawn is None:
            return
        if relative:
            location = location + pawn.location
        pawn.location = location

    def reset_vehicle(self, to_spawn: bool) -> None:
        """Return the vehicle to its spawn, or lift it a little from where it is."""
        if to_spawn:
            location, rotation = self.spawn
            self.set_vehicle_location(location, _rotation_vector(rotation), False)
        else:
            self.set_vehicle_location(_RESET_OFFSET, Vector(), True)