"""
Equilibrium Checker - has an object stayed where it was placed?

An object is in static equilibrium when its current position is within
THRESHOLD of its reference position on every axis. The boundary counts as
stable: only a strictly larger drift fails.
"""

import logging
from enum import Enum

import numpy as np

logger = logging.getLogger(__name__)


class EquilibriumStatus(Enum):
    """Outcome for one object"""
    STABLE = "stable"
    UNSTABLE = "unstable"


class EquilibriumChecker:
    """
    Compares tracked objects against their reference snapshots.

    THRESHOLD and the PRINT_* diagnostics are read from the parameter
    store on every check, so changes apply to the next validation.
    """

    def __init__(self, world, params):
        """
        Args:
            world: physics world owning the bodies
            params: ParameterStore
        """
        self.world = world
        self.params = params

    def displacement(self, obj):
        """
        Per-axis drift |current - reference|

        Returns:
            np.ndarray: (shape: [3])
        """
        if obj.reference_position is None:
            raise ValueError(f"'{obj.name}' has no reference position; apply a pose first")
        current = np.asarray(self.world.get_body_position(obj.body_id), dtype=np.float64)
        delta = np.abs(current - obj.reference_position)
        self._report(obj, current, delta)
        return delta

    def _report(self, obj, current, delta):
        show_start = self.params['PRINT_START_POS']
        show_end = self.params['PRINT_END_POS']
        show_delta = self.params['PRINT_DELTA_POS']

        if show_start or show_end or show_delta:
            logger.info(obj.name)
        if show_start:
            start = obj.reference_position
            logger.info(f"Start: {start[0]}, {start[1]}, {start[2]}")
        if show_end:
            logger.info(f"  End: {current[0]}, {current[1]}, {current[2]}")
        if show_delta:
            logger.info(f"Delta: {delta[0]}, {delta[1]}, {delta[2]}")

    def status_of(self, delta):
        if np.any(delta > self.params['THRESHOLD']):
            return EquilibriumStatus.UNSTABLE
        return EquilibriumStatus.STABLE

    def is_stable(self, obj):
        return self.status_of(self.displacement(obj)) is EquilibriumStatus.STABLE

    def check_scene(self, objects):
        """
        Check objects in order, stopping at the first unstable one

        Args:
            objects: TrackedObjects of the current scene

        Returns:
            (stable, displacements, failed_name):
                stable: True if every object passed
                displacements: {name: per-axis drift} for the objects checked
                failed_name: first unstable object, or None
        """
        displacements = {}
        for obj in objects:
            delta = self.displacement(obj)
            displacements[obj.name] = delta
            if self.status_of(delta) is EquilibriumStatus.UNSTABLE:
                return False, displacements, obj.name
        return True, displacements, None

    def is_scene_stable(self, objects):
        stable, _, _ = self.check_scene(objects)
        return stable
