"""
Pose Applier - 6-DoF poses and their application to tracked objects

Quaternions use pybullet's (x, y, z, w) order throughout.
"""

import logging
from dataclasses import dataclass

import numpy as np

logger = logging.getLogger(__name__)

ROTATION_TOLERANCE = 1e-6


def quaternion_to_matrix(quaternion):
    """Unit quaternion (x, y, z, w) -> 3x3 rotation matrix."""
    q = np.asarray(quaternion, dtype=np.float64)
    norm = np.linalg.norm(q)
    if q.shape != (4,) or norm == 0.0:
        raise ValueError(f"quaternion must be 4 non-zero numbers (x, y, z, w), got {quaternion}")
    x, y, z, w = q / norm
    return np.array([
        [1 - 2 * (y * y + z * z), 2 * (x * y - z * w), 2 * (x * z + y * w)],
        [2 * (x * y + z * w), 1 - 2 * (x * x + z * z), 2 * (y * z - x * w)],
        [2 * (x * z - y * w), 2 * (y * z + x * w), 1 - 2 * (x * x + y * y)],
    ])


def matrix_to_quaternion(rotation):
    """3x3 rotation matrix -> unit quaternion [x, y, z, w]."""
    m = np.asarray(rotation, dtype=np.float64)
    trace = m[0, 0] + m[1, 1] + m[2, 2]

    # Pivot on the largest diagonal term for numerical stability
    if trace > 0:
        s = 2.0 * np.sqrt(trace + 1.0)
        w = 0.25 * s
        x = (m[2, 1] - m[1, 2]) / s
        y = (m[0, 2] - m[2, 0]) / s
        z = (m[1, 0] - m[0, 1]) / s
    elif m[0, 0] > m[1, 1] and m[0, 0] > m[2, 2]:
        s = 2.0 * np.sqrt(1.0 + m[0, 0] - m[1, 1] - m[2, 2])
        w = (m[2, 1] - m[1, 2]) / s
        x = 0.25 * s
        y = (m[0, 1] + m[1, 0]) / s
        z = (m[0, 2] + m[2, 0]) / s
    elif m[1, 1] > m[2, 2]:
        s = 2.0 * np.sqrt(1.0 + m[1, 1] - m[0, 0] - m[2, 2])
        w = (m[0, 2] - m[2, 0]) / s
        x = (m[0, 1] + m[1, 0]) / s
        y = 0.25 * s
        z = (m[1, 2] + m[2, 1]) / s
    else:
        s = 2.0 * np.sqrt(1.0 + m[2, 2] - m[0, 0] - m[1, 1])
        w = (m[1, 0] - m[0, 1]) / s
        x = (m[0, 2] + m[2, 0]) / s
        y = (m[1, 2] + m[2, 1]) / s
        z = 0.25 * s

    q = np.array([x, y, z, w])
    return (q / np.linalg.norm(q)).tolist()


def euler_to_matrix(euler):
    """(roll, pitch, yaw) in radians, same convention as pybullet's getQuaternionFromEuler."""
    roll, pitch, yaw = euler
    cr, sr = np.cos(roll), np.sin(roll)
    cp, sp = np.cos(pitch), np.sin(pitch)
    cy, sy = np.cos(yaw), np.sin(yaw)
    rx = np.array([[1, 0, 0], [0, cr, -sr], [0, sr, cr]])
    ry = np.array([[cp, 0, sp], [0, 1, 0], [-sp, 0, cp]])
    rz = np.array([[cy, -sy, 0], [sy, cy, 0], [0, 0, 1]])
    return rz @ ry @ rx


@dataclass(frozen=True)
class Pose:
    """
    Position and orientation of one object.

    Attributes:
        position: (shape: [3])
        rotation: rotation matrix (shape: [3, 3])
    """
    position: np.ndarray
    rotation: np.ndarray

    def __post_init__(self):
        position = np.asarray(self.position, dtype=np.float64).reshape(-1)
        rotation = np.asarray(self.rotation, dtype=np.float64)
        if position.shape != (3,):
            raise ValueError(f"position must have 3 components, got {position.shape}")
        if rotation.shape != (3, 3):
            raise ValueError(f"rotation must be a 3x3 matrix, got {rotation.shape}")
        if not np.allclose(rotation @ rotation.T, np.eye(3), atol=ROTATION_TOLERANCE) \
                or np.linalg.det(rotation) < 0:
            raise ValueError("rotation must be a proper rotation matrix (orthonormal, det = +1)")
        object.__setattr__(self, 'position', position)
        object.__setattr__(self, 'rotation', rotation)

    @classmethod
    def identity(cls, position=(0.0, 0.0, 0.0)):
        return cls(position, np.eye(3))

    @classmethod
    def from_matrix(cls, matrix):
        """Homogeneous 4x4 (or 3x4 affine) transform."""
        m = np.asarray(matrix, dtype=np.float64)
        if m.shape not in ((4, 4), (3, 4)):
            raise ValueError(f"transform must be 4x4 or 3x4, got {m.shape}")
        return cls(m[:3, 3], m[:3, :3])

    @classmethod
    def from_quaternion(cls, position, quaternion):
        return cls(position, quaternion_to_matrix(quaternion))

    @classmethod
    def from_euler(cls, position, euler):
        return cls(position, euler_to_matrix(euler))

    @classmethod
    def coerce(cls, pose):
        """Accept a Pose, a 4x4 transform, or a (position, rotation) pair."""
        if isinstance(pose, Pose):
            return pose
        if isinstance(pose, (tuple, list)) and len(pose) == 2:
            position, rotation = pose
            rotation = np.asarray(rotation, dtype=np.float64)
            if rotation.shape == (4,):
                return cls.from_quaternion(position, rotation)
            return cls(position, rotation)
        return cls.from_matrix(pose)

    @property
    def quaternion(self):
        return matrix_to_quaternion(self.rotation)

    def translated(self, dx=0.0, dy=0.0, dz=0.0):
        """Copy of this pose moved by (dx, dy, dz)."""
        return Pose(self.position + np.array([dx, dy, dz]), self.rotation)

    def as_matrix(self):
        m = np.eye(4)
        m[:3, :3] = self.rotation
        m[:3, 3] = self.position
        return m


def apply_pose(world, obj, pose):
    """
    Place a tracked object and snapshot its reference position

    Velocities are zeroed so motion from a previous trial does not leak
    into this one.

    Args:
        world: physics world owning obj.body_id
        obj: TrackedObject
        pose: Pose
    """
    world.set_body_transform(obj.body_id, pose.position, pose.rotation)
    world.zero_velocities(obj.body_id)
    obj.reference_position = pose.position.copy()


def apply_scene(world, objects, poses):
    """Apply every pose before any stepping starts."""
    for obj, pose in zip(objects, poses):
        apply_pose(world, obj, pose)
        logger.debug(f"[PoseApplier] {obj.name} placed at {pose.position}")
