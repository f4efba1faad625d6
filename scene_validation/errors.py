"""
Scene Validation errors

All failures of the validator are raised as one of these exceptions.
An unstable scene is NOT an error: it is reported as an INVALID
ValidationReport by the staged validator.
"""


class SceneValidationError(Exception):
    """Base class for every error raised by scene_validation."""


class ConfigError(SceneValidationError, ValueError):
    """Unknown parameter, bad value, or mutation of a construction-only key."""


class MeshError(SceneValidationError, ValueError):
    """Mesh data that cannot produce a centre of mass (open, flat, malformed)."""


class ModelLookupError(SceneValidationError, LookupError):
    """A scene names a model that is not registered, or list lengths differ."""


class EngineError(SceneValidationError, RuntimeError):
    """Failure reported by the physics engine."""
