"""
Wall classification of detected planes.

Labels a plane as wall, floor or ceiling from its normal and, for walls,
reports which side of the camera the wall stands on. Both decisions are
independent of the normal's sign.
"""

import math
import logging
from typing import Tuple

from .plane_models import (
    Plane, PlaneType, WallDirection, VerticalAxis, WallClassificationConfig
)

logger = logging.getLogger(__name__)


class WallClassifier:
    """Classify planes expressed in the camera frame."""

    def __init__(self, config: WallClassificationConfig = None,
                 vertical_axis: VerticalAxis = VerticalAxis.UP):
        self.config = config or WallClassificationConfig()
        self.config.validate()
        self.vertical_axis = VerticalAxis(vertical_axis)

    def classify(self, plane: Plane) -> Tuple[PlaneType, WallDirection]:
        """
        Classify a plane.

        Args:
            plane: Plane with a unit normal

        Returns:
            Tuple of (plane type, wall direction); direction is NONE for
            anything that is not a wall
        """
        a, b, c, d = plane.a, plane.b, plane.c, plane.d

        # Classification assumes Y grows upwards
        if self.vertical_axis == VerticalAxis.DOWN:
            b = -b

        # Orient the normal towards the camera at the origin; planes through
        # the camera take the sign of the first non-zero of c, a, b
        if self._is_flipped(d, c, a, b):
            a, b, c, d = -a, -b, -c, -d

        horizontal = math.hypot(a, c)
        if horizontal > 1e-6 and abs(b) / horizontal < self.config.verticality_threshold:
            return PlaneType.WALL, self._wall_direction(a, c)

        if abs(b) >= self.config.horizontal_threshold:
            # Height where the plane crosses the vertical axis through the camera
            crossing = -d / b
            plane_type = PlaneType.FLOOR if crossing < 0 else PlaneType.CEILING
            return plane_type, WallDirection.NONE

        return PlaneType.UNKNOWN, WallDirection.NONE

    @staticmethod
    def _is_flipped(*components: float) -> bool:
        for value in components:
            if value != 0:
                return value < 0
        return False

    def _wall_direction(self, a: float, c: float) -> WallDirection:
        if abs(a) > self.config.direction_ratio * abs(c):
            return WallDirection.LEFT if a > 0 else WallDirection.RIGHT
        return WallDirection.FRONT

    def annotate(self, plane: Plane) -> Plane:
        """Store the classification on the plane and return it."""
        plane.plane_type, plane.wall_direction = self.classify(plane)
        logger.debug(f"Plane classified as {plane.plane_type.value} ({plane.wall_direction.value})")
        return plane
