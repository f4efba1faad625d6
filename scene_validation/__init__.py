"""
Scene Validation Module - static equilibrium checks for mesh scenes

Places rigid, mesh-defined objects at candidate poses, lets a physics world
run for a bounded number of steps, and reports whether every object stayed
where it was put.

Architecture:
    [Mesh files] → [Mass Properties] → [Object Registry]   (once per model)
                                              ↓
    [Scene poses] → [Pose Applier] → [Staged Validator] → VALID / INVALID
                                              ↓
                                     Equilibrium Checker
"""

from .errors import (
    SceneValidationError,
    ConfigError,
    MeshError,
    ModelLookupError,
    EngineError,
)
from .params import ParameterStore, ContactParameters, load_params
from .mass_properties import MassProperties, compute_mass_properties, recenter_mesh
from .object_registry import ObjectRegistry, TrackedObject, DEFAULT_CAPACITY
from .pose import Pose, apply_pose, apply_scene
from .equilibrium import EquilibriumChecker, EquilibriumStatus
from .stepping import Camera, HeadlessDriver, RenderingDriver, make_driver
from .staged_validator import (
    StagedValidator,
    ValidationState,
    PhaseResult,
    ValidationReport,
    print_validation_report,
)
from .meshes import box_mesh, load_mesh
from .scene_validator import SceneValidator

__all__ = [
    'SceneValidator',
    'SceneValidationError',
    'ConfigError',
    'MeshError',
    'ModelLookupError',
    'EngineError',
    'ParameterStore',
    'ContactParameters',
    'load_params',
    'MassProperties',
    'compute_mass_properties',
    'recenter_mesh',
    'ObjectRegistry',
    'TrackedObject',
    'DEFAULT_CAPACITY',
    'Pose',
    'apply_pose',
    'apply_scene',
    'EquilibriumChecker',
    'EquilibriumStatus',
    'Camera',
    'HeadlessDriver',
    'RenderingDriver',
    'make_driver',
    'StagedValidator',
    'ValidationState',
    'PhaseResult',
    'ValidationReport',
    'print_validation_report',
    'box_mesh',
    'load_mesh',
]

__version__ = '1.0.0'
