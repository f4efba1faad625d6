"""
Scene Validator - are these objects in static equilibrium at these poses?

Typical use (register once, validate many poses):

    validator = SceneValidator()
    validator.set_models(["bowl", "mug"], ["bowl.obj", "mug.obj"])
    validator.set_param("THRESHOLD", 0.04)
    if validator.is_valid_scene(["bowl", "mug"], [bowl_pose, mug_pose]):
        ...

Each SceneValidator owns its own physics world, registry and parameters;
several validators can be used side by side.
"""

import logging

from .bullet_world import BulletWorld
from .equilibrium import EquilibriumChecker
from .errors import ConfigError, ModelLookupError
from .meshes import load_mesh
from .object_registry import DEFAULT_CAPACITY, ObjectRegistry
from .params import ParameterStore, load_params
from .pose import Pose, apply_scene
from .staged_validator import StagedValidator
from .stepping import Camera, make_driver

logger = logging.getLogger(__name__)


class SceneValidator:
    """
    Static-equilibrium checker for scenes of mesh objects.
    """

    def __init__(self, gravity=None, plane=None, default_scale=None,
                 capacity=DEFAULT_CAPACITY, gui=False, world=None, **params):
        """
        Args:
            gravity: gravity vector, fixed for the validator's lifetime
                (default: GRAVITYx/y/z)
            plane: ground plane (a, b, c, d) with a*x + b*y + c*z = d, unit normal
                (default: PLANEa-d)
            default_scale: divisor applied to raw mesh coordinates
                (default: DEFAULT_SCALE)
            capacity: maximum number of registered models
            gui: open a PyBullet GUI window for the world
            world: physics world to use instead of a new BulletWorld
            **params: initial runtime parameters (THRESHOLD=0.04, STEP4=200, ...)

        Raises:
            ConfigError: bad gravity / plane / scale / parameter values
            EngineError: the physics world could not be created
        """
        construction = {}
        if gravity is not None:
            gravity = tuple(gravity)
            if len(gravity) != 3:
                raise ConfigError(f"gravity must have 3 components, got {gravity}")
            construction.update(zip(('GRAVITYx', 'GRAVITYy', 'GRAVITYz'), gravity))
        if plane is not None:
            plane = tuple(plane)
            if len(plane) != 4:
                raise ConfigError(f"plane must have 4 coefficients (a, b, c, d), got {plane}")
            construction.update(zip(('PLANEa', 'PLANEb', 'PLANEc', 'PLANEd'), plane))
        if default_scale is not None:
            construction['DEFAULT_SCALE'] = default_scale
        if isinstance(capacity, bool) or not isinstance(capacity, int) or capacity < 1:
            raise ConfigError(f"capacity must be a positive integer, got {capacity!r}")

        self.params = ParameterStore(**construction, **params)
        self.default_scale = self.params['DEFAULT_SCALE']
        self.scaling = [self.default_scale] * capacity

        self.world = world if world is not None else BulletWorld(
            self.params.gravity, self.params.plane, gui=gui
        )
        self.registry = ObjectRegistry(
            self.world,
            capacity,
            print_com=lambda: self.params['PRINT_COM'],
            print_aabb=lambda: self.params['PRINT_AABB'],
        )
        self.camera = Camera()
        self.checker = EquilibriumChecker(self.world, self.params)
        self.driver = make_driver(self.world, self.params, self.camera)
        self.staged = StagedValidator(self.driver, self.checker, self.params)
        self.last_report = None
        self._closed = False

    @classmethod
    def from_json(cls, path, capacity=DEFAULT_CAPACITY, gui=False, world=None):
        """Build a validator from a JSON parameter file (construction-only keys allowed)."""
        store = load_params(path)
        runtime = {name: value for name, value in store.as_dict().items()
                   if not ParameterStore.SPECS[name].construction_only}
        return cls(gravity=store.gravity, plane=store.plane,
                   default_scale=store['DEFAULT_SCALE'], capacity=capacity,
                   gui=gui, world=world, **runtime)

    # ---- Configuration -----------------------------------------------------
    def set_param(self, name, value):
        """
        Set a runtime parameter (see ParameterStore.SPECS)

        Raises:
            ConfigError: unknown name, construction-only name, or bad value
        """
        self.params.set_param(name, value)
        if name == 'DRAW':
            self.driver = make_driver(self.world, self.params, self.camera)
            self.staged.driver = self.driver

    def set_scale(self, index, factor):
        """
        Scale for the index-th model of the next set_models call

        Args:
            index: position in the model list (0 for the first model)
            factor: divisor applied to that model's raw coordinates
        """
        if isinstance(index, bool) or not isinstance(index, int) or not 0 <= index < len(self.scaling):
            raise ConfigError(f"Scale index must be in [0, {len(self.scaling) - 1}], got {index!r}")
        if isinstance(factor, bool) or not isinstance(factor, (int, float)) or not factor > 0:
            raise ConfigError(f"Scale factor must be a positive number, got {factor!r}")
        self.scaling[index] = float(factor)

    def scale_for(self, index):
        return self.scaling[index]

    def set_camera(self, x, y, z, h, p, r):
        """Viewpoint for rendering: eye position and heading/pitch/roll in degrees."""
        self.camera.xyz = (float(x), float(y), float(z))
        self.camera.hpr = (float(h), float(p), float(r))

    # ---- Models ------------------------------------------------------------
    def register_model(self, name, vertices, faces, scale=None):
        """
        Register one mesh under a name

        Args:
            name: model name used in scenes
            vertices: raw vertex positions (shape: [N, 3])
            faces: vertex index triples (shape: [M, 3])
            scale: divisor for raw coordinates (default: DEFAULT_SCALE)

        Returns:
            TrackedObject
        """
        if scale is None:
            scale = self.default_scale
        return self.registry.register(name, vertices, faces, scale, self.params['DENSITY'])

    def set_models(self, model_names, file_paths):
        """
        Load and register models from mesh files

        The i-th model uses the scale set with set_scale(i, ...), or
        DEFAULT_SCALE.

        Raises:
            ModelLookupError: the two lists differ in length
            MeshError, FileNotFoundError: a file could not be used
        """
        model_names = list(model_names)
        file_paths = list(file_paths)
        if len(model_names) != len(file_paths):
            error_msg = (
                f"model_names ({len(model_names)}) and file_paths ({len(file_paths)}) "
                f"must have the same length"
            )
            logger.error(f"[SceneValidator] {error_msg}")
            raise ModelLookupError(error_msg)
        if len(model_names) > len(self.scaling):
            raise ConfigError(f"At most {len(self.scaling)} models can be set at once, got {len(model_names)}")

        registered = []
        for i, (name, path) in enumerate(zip(model_names, file_paths)):
            vertices, faces = load_mesh(path)
            registered.append(self.register_model(name, vertices, faces, self.scale_for(i)))
        return registered

    # ---- Validation --------------------------------------------------------
    def _resolve_scene(self, model_names, model_poses):
        model_names = list(model_names)
        model_poses = list(model_poses)
        if len(model_names) != len(model_poses):
            raise ModelLookupError(
                f"model_names ({len(model_names)}) and model_poses ({len(model_poses)}) "
                f"must have the same length"
            )
        if len(set(model_names)) != len(model_names):
            raise ModelLookupError(f"A model can appear only once per scene: {model_names}")

        objects = [self.registry.get(name) for name in model_names]
        poses = [Pose.coerce(pose) for pose in model_poses]
        return objects, poses

    def validate(self, model_names, model_poses):
        """
        Place the named models and run the staged stability check

        Registered models not named in the scene are taken out of the world
        for this run.

        Args:
            model_names: names of registered models
            model_poses: one pose per name (Pose, 4x4 transform, or
                (position, rotation) pair)

        Returns:
            ValidationReport (VALID or INVALID)

        Raises:
            ModelLookupError: unknown or repeated name, or length mismatch
        """
        objects, poses = self._resolve_scene(model_names, model_poses)

        in_scene = {obj.name for obj in objects}
        for obj in self.registry:
            self.world.set_body_enabled(obj.body_id, obj.name in in_scene)

        apply_scene(self.world, objects, poses)
        report = self.staged.run(objects)
        self.last_report = report
        return report

    def is_valid_scene(self, model_names, model_poses):
        """True if the scene stays in static equilibrium through all four checks."""
        return self.validate(model_names, model_poses).valid

    # ---- Lifecycle ---------------------------------------------------------
    def close(self):
        """Release the physics world and every body in it."""
        if self._closed:
            return
        self._closed = True
        self.world.close()

    def __enter__(self):
        return self

    def __exit__(self, exc_type, exc, tb):
        self.close()
        return False
