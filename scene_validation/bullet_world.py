"""
PyBullet World - physics collaborator of the scene validator

One BulletWorld is one pybullet physics client. Every pybullet call passes
physicsClientId, so several worlds (and several validators) can live in the
same process without sharing state.

The validator only talks to the world through this contract:

    create_trimesh_body(vertices, faces, density) -> body id
    remove_body(body_id)
    set_body_enabled(body_id, enabled)
    set_body_transform(body_id, position, rotation_matrix)
    zero_velocities(body_id)
    step(contact_params, dt)
    get_body_position(body_id) -> (x, y, z)
    get_aabb(body_id) -> (min_xyz, max_xyz)
    close()
"""

import logging

import numpy as np
import pybullet as p

from .errors import EngineError
from .mass_properties import compute_mass_properties
from .pose import matrix_to_quaternion

logger = logging.getLogger(__name__)

BODY_COLOR = [1.0, 1.0, 0.0, 1.0]  # yellow
PARKING_POSITION = [0.0, 0.0, 1.0e4]


class BulletWorld:
    """
    Instance-scoped pybullet world with a static ground plane.

    Dynamic meshes collide through the convex hull of their vertices;
    Bullet only supports concave triangle meshes on static bodies.
    """

    def __init__(self, gravity=(0.0, 0.0, -0.5), plane=(0.0, 0.0, 1.0, 0.0), gui=False):
        """
        Args:
            gravity: gravity vector (x, y, z)
            plane: ground plane a*x + b*y + c*z = d as (a, b, c, d), unit normal
            gui: connect with the GUI (True) or DIRECT (False)

        Raises:
            EngineError: the physics server could not be started
        """
        self.gui = gui
        if gui:
            # Even window height keeps H.264 capture happy
            self.client = p.connect(p.GUI, options="--width=1024 --height=768")
        else:
            self.client = p.connect(p.DIRECT)

        if self.client < 0:
            raise EngineError("Failed to connect to the PyBullet physics server")

        self.gravity = tuple(float(g) for g in gravity)
        self.plane = tuple(float(v) for v in plane)
        self.bodies = set()
        self._applied_contact = None

        try:
            p.resetSimulation(physicsClientId=self.client)
            p.setGravity(*self.gravity, physicsClientId=self.client)
            # Same overlapping-pair order on every run -> reproducible answers
            p.setPhysicsEngineParameter(deterministicOverlappingPairs=1, physicsClientId=self.client)
            self.plane_id = self._create_ground_plane()
        except p.error as e:
            p.disconnect(physicsClientId=self.client)
            raise EngineError(f"Failed to set up PyBullet world: {e}") from e

        logger.info(
            f"[BulletWorld] Client {self.client} ready "
            f"({'GUI' if gui else 'DIRECT'}, gravity={self.gravity}, plane={self.plane})"
        )

    def _create_ground_plane(self):
        a, b, c, d = self.plane
        normal = [a, b, c]
        col = p.createCollisionShape(p.GEOM_PLANE, planeNormal=normal, physicsClientId=self.client)
        plane_id = p.createMultiBody(
            baseMass=0.0,
            baseCollisionShapeIndex=col,
            basePosition=[a * d, b * d, c * d],
            physicsClientId=self.client,
        )
        # Bullet multiplies the coefficients of both bodies, so the ground stays neutral
        p.changeDynamics(plane_id, -1, lateralFriction=1.0, spinningFriction=1.0,
                         restitution=1.0, physicsClientId=self.client)
        return plane_id

    def _check_connected(self):
        if self.client < 0 or not p.isConnected(physicsClientId=self.client):
            raise EngineError("PyBullet world is closed")

    # ---- Bodies ------------------------------------------------------------
    def create_trimesh_body(self, vertices, faces, density):
        """
        Build a dynamic body from a mesh whose centre of mass is at the origin

        Args:
            vertices: recentred vertex buffer (shape: [N, 3])
            faces: vertex index triples (shape: [M, 3])
            density: mass per unit volume

        Returns:
            int: pybullet body id
        """
        self._check_connected()
        vertices = np.asarray(vertices, dtype=np.float64)
        faces = np.asarray(faces, dtype=np.int64)
        mass = density * compute_mass_properties(vertices, faces).volume

        try:
            col = p.createCollisionShape(
                p.GEOM_MESH,
                vertices=vertices.tolist(),
                physicsClientId=self.client,
            )
        except p.error as e:
            raise EngineError(f"PyBullet rejected the collision mesh: {e}") from e
        if col < 0:
            raise EngineError("PyBullet rejected the collision mesh")

        try:
            vis = p.createVisualShape(
                p.GEOM_MESH,
                vertices=vertices.tolist(),
                indices=faces.ravel().tolist(),
                rgbaColor=BODY_COLOR,
                physicsClientId=self.client,
            )
        except p.error as e:
            # Only rendering needs the visual; collisions use the hull above
            logger.warning(f"[BulletWorld] Visual mesh not created, rendering without it: {e}")
            vis = -1

        try:
            body_id = p.createMultiBody(
                baseMass=mass,
                baseCollisionShapeIndex=col,
                baseVisualShapeIndex=vis,
                basePosition=[0.0, 0.0, 0.0],
                baseInertialFramePosition=[0.0, 0.0, 0.0],
                physicsClientId=self.client,
            )
        except p.error as e:
            raise EngineError(f"PyBullet could not create the body: {e}") from e
        if body_id < 0:
            raise EngineError("PyBullet could not create the body")

        self.bodies.add(body_id)
        self._applied_contact = None  # new body needs the contact model
        logger.debug(f"[BulletWorld] Body {body_id}: {len(vertices)} vertices, mass {mass:.4f}")
        return body_id

    def remove_body(self, body_id):
        self._check_connected()
        if body_id not in self.bodies:
            raise EngineError(f"Body {body_id} does not belong to this world")
        p.removeBody(body_id, physicsClientId=self.client)
        self.bodies.discard(body_id)

    def set_body_enabled(self, body_id, enabled):
        """
        Include a body in collisions, or park it out of the scene

        A parked body collides with nothing and is moved to PARKING_POSITION
        with zero velocity; it is placed again by the next set_body_transform.
        """
        self._check_connected()
        if enabled:
            p.setCollisionFilterGroupMask(body_id, -1, 1, -1, physicsClientId=self.client)
        else:
            p.setCollisionFilterGroupMask(body_id, -1, 0, 0, physicsClientId=self.client)
            p.resetBasePositionAndOrientation(body_id, PARKING_POSITION, [0, 0, 0, 1],
                                              physicsClientId=self.client)
            self.zero_velocities(body_id)

    def set_body_transform(self, body_id, position, rotation):
        """Place a body; rotation is a 3x3 rotation matrix."""
        self._check_connected()
        quaternion = matrix_to_quaternion(rotation)
        p.resetBasePositionAndOrientation(
            body_id, [float(v) for v in position], quaternion, physicsClientId=self.client
        )

    def zero_velocities(self, body_id):
        self._check_connected()
        p.resetBaseVelocity(body_id, linearVelocity=[0, 0, 0], angularVelocity=[0, 0, 0],
                            physicsClientId=self.client)

    def get_body_position(self, body_id):
        self._check_connected()
        pos, _ = p.getBasePositionAndOrientation(body_id, physicsClientId=self.client)
        return np.array(pos, dtype=np.float64)

    def get_aabb(self, body_id):
        """Axis-aligned bounding box as (min_xyz, max_xyz)."""
        self._check_connected()
        lo, hi = p.getAABB(body_id, physicsClientId=self.client)
        return np.array(lo), np.array(hi)

    # ---- Simulation --------------------------------------------------------
    def _apply_contact_parameters(self, contact, dt):
        """
        Push the contact model to every body and to the engine

        mu2 is a second-direction friction coefficient; ODE-style solvers
        ignore it unless the contact mode enables it, and the stock parameter
        set never does. Bullet has no second friction direction, so mu2 is
        sent as spinningFriction. That is a stand-in, not the same quantity;
        leave FRICTION_mu2 at 0 to match the stock behaviour.
        """
        for body_id in self.bodies:
            p.changeDynamics(
                body_id, -1,
                lateralFriction=contact.mu,
                spinningFriction=contact.mu2,
                restitution=contact.bounce,
                physicsClientId=self.client,
            )
        p.setPhysicsEngineParameter(
            restitutionVelocityThreshold=contact.bounce_vel,
            globalCFM=contact.soft_cfm,
            physicsClientId=self.client,
        )
        p.setTimeStep(dt, physicsClientId=self.client)
        self._applied_contact = (contact, dt)

    def step(self, contact_params, dt):
        """
        Advance the world by one tick

        Args:
            contact_params: ContactParameters used for every contact
            dt: seconds per step
        """
        self._check_connected()
        try:
            if self._applied_contact != (contact_params, dt):
                self._apply_contact_parameters(contact_params, dt)
            p.stepSimulation(physicsClientId=self.client)
        except p.error as e:
            raise EngineError(f"PyBullet step failed: {e}") from e

    # ---- Rendering ---------------------------------------------------------
    def reset_camera(self, camera):
        """Point the GUI camera (no-op in DIRECT mode)."""
        if not self.gui:
            return
        p.resetDebugVisualizerCamera(
            cameraDistance=camera.distance,
            cameraYaw=camera.hpr[0] - 90.0,
            cameraPitch=camera.hpr[1],
            cameraTargetPosition=camera.target().tolist(),
            physicsClientId=self.client,
        )

    def capture_frame(self, camera, width=1024, height=768):
        """
        Render the current state from the camera

        Returns:
            np.ndarray: RGB image (shape: [height, width, 3], uint8)
        """
        self._check_connected()
        proj_matrix = p.computeProjectionMatrixFOV(
            fov=60,
            aspect=width / height,
            nearVal=0.1,
            farVal=100.0
        )
        renderer = p.ER_BULLET_HARDWARE_OPENGL if self.gui else p.ER_TINY_RENDERER
        (_, _, px, _, _) = p.getCameraImage(
            width=width,
            height=height,
            viewMatrix=camera.view_matrix(),
            projectionMatrix=proj_matrix,
            renderer=renderer,
            physicsClientId=self.client,
        )
        rgba = np.reshape(np.array(px, dtype=np.uint8), (height, width, 4))
        return rgba[:, :, :3]

    # ---- Lifecycle ---------------------------------------------------------
    def close(self):
        """Disconnect from PyBullet; releases every body. Safe to call twice."""
        if self.client < 0:
            return
        if p.isConnected(physicsClientId=self.client):
            p.disconnect(physicsClientId=self.client)
        logger.info(f"[BulletWorld] Client {self.client} closed")
        self.client = -1
        self.bodies.clear()

    def __enter__(self):
        return self

    def __exit__(self, exc_type, exc, tb):
        self.close()
        return False
