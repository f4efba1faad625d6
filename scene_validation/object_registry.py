"""
Object Registry - fixed-capacity store of tracked objects

Registration is the expensive part of validation (mesh ingestion and body
construction), so it happens once; every later validation only looks
objects up by name.

Slots are stable indices into a fixed arena. Eviction policy when the arena
is full: the object registered longest ago is removed (FIFO) and its slot is
reused. Registering a name that already exists overwrites that object in
place.
"""

import logging
from dataclasses import dataclass, field
from typing import Dict, List, Optional

import numpy as np

from .errors import ConfigError, EngineError, ModelLookupError
from .mass_properties import recenter_mesh

logger = logging.getLogger(__name__)

DEFAULT_CAPACITY = 200


@dataclass
class TrackedObject:
    """One rigid body under test."""
    name: str
    vertices: np.ndarray
    faces: np.ndarray
    center_of_mass: np.ndarray
    scale: float
    volume: float
    mass: float
    body_id: int
    slot: int
    registered_order: int
    reference_position: Optional[np.ndarray] = field(default=None)

    @property
    def vertex_count(self):
        return len(self.vertices)

    @property
    def face_count(self):
        return len(self.faces)


class ObjectRegistry:
    """
    Name-indexed arena of TrackedObjects bound to one physics world.

    The registry owns the lifetime of the bodies it creates: a body is
    removed from the world when its slot is overwritten or evicted.
    """

    def __init__(self, world, capacity=DEFAULT_CAPACITY, print_com=False, print_aabb=False):
        """
        Args:
            world: physics world building the bodies
            capacity: number of slots (>= 1)
            print_com: callable or bool; log each centre of mass at INFO
            print_aabb: callable or bool; log each body's bounding box at INFO
        """
        if isinstance(capacity, bool) or not isinstance(capacity, int) or capacity < 1:
            raise ConfigError(f"Registry capacity must be a positive integer, got {capacity!r}")

        self.world = world
        self.capacity = capacity
        self._slots: List[Optional[TrackedObject]] = [None] * capacity
        self._index: Dict[str, int] = {}
        self._counter = 0
        self._print_com = print_com
        self._print_aabb = print_aabb

    def __len__(self):
        return len(self._index)

    def __contains__(self, name):
        return name in self._index

    def __iter__(self):
        return (obj for obj in self._slots if obj is not None)

    @property
    def is_full(self):
        return len(self._index) >= self.capacity

    def names(self):
        return [obj.name for obj in self]

    def _flag(self, option):
        return option() if callable(option) else bool(option)

    def _choose_slot(self, name):
        if name in self._index:
            slot = self._index[name]
            self._release(slot)
            return slot

        for slot, obj in enumerate(self._slots):
            if obj is None:
                return slot

        oldest = min(self, key=lambda o: o.registered_order)
        logger.warning(
            f"[ObjectRegistry] Capacity {self.capacity} reached, "
            f"evicting '{oldest.name}' (slot {oldest.slot}) for '{name}'"
        )
        self._release(oldest.slot)
        return oldest.slot

    def _release(self, slot):
        obj = self._slots[slot]
        if obj is None:
            return
        self.world.remove_body(obj.body_id)
        del self._index[obj.name]
        self._slots[slot] = None

    def register(self, name, vertices, faces, scale, density):
        """
        Register (or re-register) a mesh under a name

        Args:
            name: unique model name
            vertices: raw vertex positions (shape: [N, 3])
            faces: vertex index triples (shape: [M, 3])
            scale: divisor applied to raw coordinates
            density: mass per unit volume

        Returns:
            TrackedObject

        Raises:
            MeshError: degenerate or malformed mesh; the registry is unchanged
            EngineError: the world could not build the body; the registry
                is unchanged
        """
        # Fails before any slot is touched
        recentred, props = recenter_mesh(vertices, faces, scale)
        faces = np.asarray(faces, dtype=np.int64)

        if self._flag(self._print_com):
            com = props.center_of_mass
            logger.info(f"[ObjectRegistry] {name} COM: {com[0]:.4f}, {com[1]:.4f}, {com[2]:.4f}")

        body_id = self.world.create_trimesh_body(recentred, faces, density)
        try:
            slot = self._choose_slot(name)
        except EngineError:
            self.world.remove_body(body_id)
            raise

        obj = TrackedObject(
            name=name,
            vertices=recentred,
            faces=faces,
            center_of_mass=props.center_of_mass,
            scale=float(scale),
            volume=props.volume,
            mass=density * props.volume,
            body_id=body_id,
            slot=slot,
            registered_order=self._counter,
        )
        self._counter += 1
        self._slots[slot] = obj
        self._index[name] = slot

        if self._flag(self._print_aabb):
            lo, hi = self.world.get_aabb(body_id)
            logger.info(
                f"[ObjectRegistry] {name} AABB: minX {lo[0]:.3f}, maxX {hi[0]:.3f}, "
                f"minY {lo[1]:.3f}, maxY {hi[1]:.3f}, minZ {lo[2]:.3f}, maxZ {hi[2]:.3f}"
            )

        logger.info(
            f"[ObjectRegistry] Registered '{name}' in slot {slot} "
            f"({obj.vertex_count} vertices, {obj.face_count} faces, scale {scale})"
        )
        return obj

    def lookup(self, name):
        """TrackedObject for name, or None."""
        slot = self._index.get(name)
        return None if slot is None else self._slots[slot]

    def get(self, name):
        obj = self.lookup(name)
        if obj is None:
            raise ModelLookupError(f"Unknown model: '{name}'. Registered: {self.names()}")
        return obj

    def slot(self, index):
        """TrackedObject stored in slot index, or None."""
        return self._slots[index]

    def remove(self, name):
        if name not in self._index:
            raise ModelLookupError(f"Unknown model: '{name}'. Registered: {self.names()}")
        self._release(self._index[name])

    def clear(self):
        for obj in list(self):
            self._release(obj.slot)
