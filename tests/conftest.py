import numpy as np
import pytest

from scene_validation import SceneValidator, box_mesh
from scene_validation.errors import EngineError


class FakeWorld:
    """
    Scripted stand-in for BulletWorld.

    Bodies stay where they are put unless a per-step drift is assigned
    with set_drift(); every step() call is counted.
    """

    def __init__(self, gravity=(0.0, 0.0, -0.5), plane=(0.0, 0.0, 1.0, 0.0)):
        self.gui = False
        self.gravity = gravity
        self.plane = plane
        self.positions = {}
        self.velocities = {}
        self.enabled = {}
        self.meshes = {}
        self.drift = {}
        self.step_calls = 0
        self.last_contact = None
        self.last_dt = None
        self.closed = False
        self.camera_resets = 0
        self._next_id = 1

    def create_trimesh_body(self, vertices, faces, density):
        body_id = self._next_id
        self._next_id += 1
        self.positions[body_id] = np.zeros(3)
        self.velocities[body_id] = (np.ones(3), np.ones(3))
        self.enabled[body_id] = True
        self.meshes[body_id] = (np.array(vertices), np.array(faces), density)
        return body_id

    def remove_body(self, body_id):
        if body_id not in self.positions:
            raise EngineError(f"Body {body_id} does not belong to this world")
        for table in (self.positions, self.velocities, self.enabled, self.meshes, self.drift):
            table.pop(body_id, None)

    @property
    def bodies(self):
        return set(self.positions)

    def set_body_enabled(self, body_id, enabled):
        self.enabled[body_id] = enabled

    def set_body_transform(self, body_id, position, rotation):
        self.positions[body_id] = np.array(position, dtype=np.float64)

    def zero_velocities(self, body_id):
        self.velocities[body_id] = (np.zeros(3), np.zeros(3))

    def set_drift(self, body_id, per_step):
        self.drift[body_id] = np.asarray(per_step, dtype=np.float64)

    def step(self, contact_params, dt):
        self.step_calls += 1
        self.last_contact = contact_params
        self.last_dt = dt
        for body_id, delta in self.drift.items():
            if self.enabled.get(body_id, False):
                self.positions[body_id] = self.positions[body_id] + delta

    def get_body_position(self, body_id):
        return self.positions[body_id].copy()

    def get_aabb(self, body_id):
        vertices = self.meshes[body_id][0]
        return vertices.min(axis=0) + self.positions[body_id], vertices.max(axis=0) + self.positions[body_id]

    def reset_camera(self, camera):
        self.camera_resets += 1

    def capture_frame(self, camera, width=1024, height=768):
        return np.zeros((height, width, 3), dtype=np.uint8)

    def close(self):
        self.closed = True


@pytest.fixture
def fake_world():
    return FakeWorld()


@pytest.fixture
def world_factory():
    return FakeWorld


@pytest.fixture
def validator(fake_world):
    v = SceneValidator(world=fake_world, default_scale=1.0)
    yield v
    v.close()


@pytest.fixture
def cube():
    return box_mesh(1.0, 1.0, 1.0)


@pytest.fixture
def tetrahedron():
    vertices = np.array([
        [0.0, 0.0, 0.0],
        [1.0, 0.0, 0.0],
        [0.0, 1.0, 0.0],
        [0.0, 0.0, 1.0],
    ])
    faces = np.array([[0, 2, 1], [0, 1, 3], [0, 3, 2], [1, 2, 3]])
    return vertices, faces


CUBE_OBJ = """\
v -1 -1 -1
v 1 -1 -1
v 1 1 -1
v -1 1 -1
v -1 -1 1
v 1 -1 1
v 1 1 1
v -1 1 1
f 1 3 2
f 1 4 3
f 5 6 7
f 5 7 8
f 1 2 6
f 1 6 5
f 4 7 3
f 4 8 7
f 1 5 8
f 1 8 4
f 2 3 7
f 2 7 6
"""


@pytest.fixture
def cube_obj(tmp_path):
    path = tmp_path / "cube.obj"
    path.write_text(CUBE_OBJ)
    return path
