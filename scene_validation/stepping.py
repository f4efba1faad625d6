"""
Stepping drivers - how simulated time is advanced

Both drivers expose advance(n_steps). The headless driver only steps the
world; the rendering driver also hands every step to the renderer. Which
one runs never changes the stability outcome, only what the user sees.
"""

import logging
import math
import time
from dataclasses import dataclass

import numpy as np
import pybullet as p

logger = logging.getLogger(__name__)


@dataclass
class Camera:
    """
    Viewpoint used when rendering

    Attributes:
        xyz: eye position
        hpr: heading, pitch, roll in degrees
    """
    xyz: tuple = (-0.0559, -8.2456, 6.0500)
    hpr: tuple = (89.0, -25.0, 0.0)

    def forward(self):
        heading, pitch = math.radians(self.hpr[0]), math.radians(self.hpr[1])
        return np.array([
            math.cos(pitch) * math.cos(heading),
            math.cos(pitch) * math.sin(heading),
            math.sin(pitch),
        ])

    @property
    def distance(self):
        """Distance along the view direction to the z = 0 plane (5 if looking up)."""
        sin_pitch = math.sin(math.radians(self.hpr[1]))
        if sin_pitch < 0 and self.xyz[2] > 0:
            return self.xyz[2] / -sin_pitch
        return 5.0

    def target(self):
        return np.asarray(self.xyz, dtype=np.float64) + self.distance * self.forward()

    def view_matrix(self):
        return p.computeViewMatrix(list(self.xyz), self.target().tolist(), [0, 0, 1])


class SteppingDriver:
    """Advances a world with the contact model of a parameter store."""

    def __init__(self, world, params):
        self.world = world
        self.params = params

    def advance(self, n_steps):
        raise NotImplementedError

    def _step_once(self):
        self.world.step(self.params.contact_parameters(), self.params['TIMESTEP'])


class HeadlessDriver(SteppingDriver):
    """Steps as fast as possible, nothing is drawn."""

    def advance(self, n_steps):
        for _ in range(n_steps):
            self._step_once()


class RenderingDriver(SteppingDriver):
    """
    Steps and renders every tick.

    With a GUI world the debug camera follows `camera` and stepping is paced
    to real time. Without one, each step is rendered off-screen and the RGB
    frames are kept in `frames`.
    """

    def __init__(self, world, params, camera=None, frame_size=(1024, 768), max_frames=1000):
        super().__init__(world, params)
        self.camera = camera or Camera()
        self.frame_size = frame_size
        self.max_frames = max_frames
        self.frames = []

    def advance(self, n_steps):
        self.world.reset_camera(self.camera)
        dt = self.params['TIMESTEP']
        for _ in range(n_steps):
            self._step_once()
            if self.world.gui:
                time.sleep(dt)
            elif len(self.frames) < self.max_frames:
                width, height = self.frame_size
                self.frames.append(self.world.capture_frame(self.camera, width, height))

    def clear_frames(self):
        self.frames = []


def make_driver(world, params, camera=None):
    """Pick the driver selected by the DRAW parameter."""
    if params['DRAW']:
        logger.info("[Stepping] DRAW enabled, using RenderingDriver")
        return RenderingDriver(world, params, camera)
    return HeadlessDriver(world, params)
