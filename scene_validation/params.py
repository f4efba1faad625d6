"""
Parameter Store - whitelisted validation parameters

Every value that changes how a scene is simulated or judged lives here.
Keys keep their established names (STEP1, THRESHOLD, FRICTION_mu, ...) so
existing parameter files keep working.

Parameters that affect time to validate a scene:
    DRAW, MAX_CONTACTS, STEP1..STEP4, THRESHOLD, TIMESTEP

Parameters that affect physics accuracy:
    BOUNCE, BOUNCE_vel, DENSITY, FRICTION_mu, GRAVITYz, SOFT_CFM, TIMESTEP,
    DEFAULT_SCALE, MAX_CONTACTS

Gravity, the ground plane and the default scale are fixed when the
store is built and cannot be changed afterwards.
"""

import json
import logging
import math
from dataclasses import dataclass
from pathlib import Path
from typing import Optional

from .errors import ConfigError

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class ParamSpec:
    """Kind, default and lower bound of one parameter."""
    kind: type
    default: object
    minimum: Optional[float] = None
    exclusive: bool = False  # True: value must be > minimum
    construction_only: bool = False
    description: str = ""


@dataclass(frozen=True)
class ContactParameters:
    """Contact model handed to the physics world on every step."""
    mu: float
    mu2: float
    bounce: float
    bounce_vel: float
    soft_cfm: float
    max_contacts: int


class ParameterStore:
    """
    Named, typed configuration of one SceneValidator.

    Unknown names, wrong types and out-of-range values raise ConfigError
    and leave the store unchanged.
    """

    SPECS = {
        'STEP1': ParamSpec(int, 6, 0, True, description="simulation steps in check #1"),
        'STEP2': ParamSpec(int, 14, 0, True, description="simulation steps in check #2"),
        'STEP3': ParamSpec(int, 20, 0, True, description="simulation steps in check #3"),
        'STEP4': ParamSpec(int, 110, 0, True, description="simulation steps in check #4"),
        'THRESHOLD': ParamSpec(float, 0.08, 0.0, description="per-axis drift allowed while still in static equilibrium"),
        'TIMESTEP': ParamSpec(float, 0.05, 0.0, True, description="seconds per simulation step"),
        'FRICTION_mu': ParamSpec(float, 1.0, 0.0, description="lateral friction, 0 is very slippery"),
        'FRICTION_mu2': ParamSpec(float, 0.0, 0.0, description="secondary (spinning) friction"),
        'BOUNCE': ParamSpec(float, 0.0, 0.0, description="restitution"),
        'BOUNCE_vel': ParamSpec(float, 0.0, 0.0, description="minimum velocity for a bounce"),
        'SOFT_CFM': ParamSpec(float, 0.01, 0.0, description="constraint force mixing"),
        'MAX_CONTACTS': ParamSpec(int, 64, 0, True, description="contact points per colliding pair"),
        'DENSITY': ParamSpec(float, 5.0, 0.0, True, description="mass per unit volume"),
        'DRAW': ParamSpec(bool, False, description="render the scene while stepping"),
        'PRINT_AABB': ParamSpec(bool, False, description="log each body's bounding box"),
        'PRINT_CHKR_RSLT': ParamSpec(bool, False, description="log the result of each check"),
        'PRINT_COM': ParamSpec(bool, False, description="log each model's centre of mass"),
        'PRINT_DELTA_POS': ParamSpec(bool, False, description="log per-axis drift"),
        'PRINT_END_POS': ParamSpec(bool, False, description="log position after stepping"),
        'PRINT_START_POS': ParamSpec(bool, False, description="log reference position"),
        # -0.5 rather than -9.81: the solver defaults (TIMESTEP, SOFT_CFM) are tuned for it
        'GRAVITYx': ParamSpec(float, 0.0, construction_only=True),
        'GRAVITYy': ParamSpec(float, 0.0, construction_only=True),
        'GRAVITYz': ParamSpec(float, -0.5, construction_only=True),
        # a*x + b*y + c*z = d, (a, b, c) must have length 1
        'PLANEa': ParamSpec(float, 0.0, construction_only=True),
        'PLANEb': ParamSpec(float, 0.0, construction_only=True),
        'PLANEc': ParamSpec(float, 1.0, construction_only=True),
        'PLANEd': ParamSpec(float, 0.0, construction_only=True),
        'DEFAULT_SCALE': ParamSpec(float, 100.0, 0.0, True, construction_only=True,
                                   description="divisor applied to raw mesh coordinates"),
    }

    PLANE_NORMAL_TOLERANCE = 1e-6

    def __init__(self, **overrides):
        """
        Args:
            **overrides: initial values, construction-only keys included
                (e.g. GRAVITYz=-9.81, DEFAULT_SCALE=10)

        Raises:
            ConfigError: unknown key, bad value, or non-unit plane normal
        """
        values = {name: spec.default for name, spec in self.SPECS.items()}
        for name, value in overrides.items():
            values[name] = self._coerce(name, value)

        normal = math.sqrt(values['PLANEa'] ** 2 + values['PLANEb'] ** 2 + values['PLANEc'] ** 2)
        if abs(normal - 1.0) > self.PLANE_NORMAL_TOLERANCE:
            raise ConfigError(
                f"Ground plane normal ({values['PLANEa']}, {values['PLANEb']}, {values['PLANEc']}) "
                f"must have length 1, got {normal:.6f}"
            )

        self._values = values

    @classmethod
    def from_json(cls, path, **overrides):
        """
        Build a store from a JSON object of parameter names to values.

        Keyword overrides win over the file.
        """
        path = Path(path)
        try:
            with open(path, 'r', encoding='utf-8') as f:
                data = json.load(f)
        except FileNotFoundError:
            error_msg = f"[ParameterStore] Parameter file not found: {path}"
            logger.error(error_msg)
            raise FileNotFoundError(error_msg)
        except json.JSONDecodeError as e:
            error_msg = f"[ParameterStore] Invalid JSON in {path}: {e}"
            logger.error(error_msg)
            raise ConfigError(error_msg) from e

        if not isinstance(data, dict):
            raise ConfigError(f"[ParameterStore] {path} must contain a JSON object, got {type(data).__name__}")

        data.update(overrides)
        logger.info(f"[ParameterStore] Loaded {len(data)} parameters from: {path}")
        return cls(**data)

    def _coerce(self, name, value):
        """Type-check and range-check one value, returning the stored form."""
        spec = self.SPECS.get(name)
        if spec is None:
            raise ConfigError(f"Invalid parameter name: {name}. Available: {sorted(self.SPECS)}")

        if spec.kind is bool:
            if not isinstance(value, bool):
                raise ConfigError(f"{name} expects a boolean, got {value!r}")
            return value

        if isinstance(value, bool) or not isinstance(value, (int, float)):
            raise ConfigError(f"{name} expects a number, got {value!r}")
        if not math.isfinite(value):
            raise ConfigError(f"{name} must be finite, got {value!r}")

        if spec.kind is int:
            if float(value) != int(value):
                raise ConfigError(f"{name} expects an integer, got {value!r}")
            value = int(value)
        else:
            value = float(value)

        if spec.minimum is not None:
            if spec.exclusive and value <= spec.minimum:
                raise ConfigError(f"{name} must be > {spec.minimum}, got {value}")
            if not spec.exclusive and value < spec.minimum:
                raise ConfigError(f"{name} must be >= {spec.minimum}, got {value}")

        return value

    def set_param(self, name, value):
        """
        Set a runtime parameter.

        Raises:
            ConfigError: unknown name, construction-only name, or bad value
        """
        spec = self.SPECS.get(name)
        if spec is not None and spec.construction_only:
            raise ConfigError(
                f"{name} must be set in the SceneValidator constructor, "
                f"it cannot be changed after construction"
            )
        self._values[name] = self._coerce(name, value)
        logger.debug(f"[ParameterStore] {name} = {self._values[name]}")

    def get(self, name):
        if name not in self._values:
            raise ConfigError(f"Invalid parameter name: {name}")
        return self._values[name]

    def __getitem__(self, name):
        return self.get(name)

    def __contains__(self, name):
        return name in self._values

    def as_dict(self):
        return dict(self._values)

    @property
    def gravity(self):
        return (self._values['GRAVITYx'], self._values['GRAVITYy'], self._values['GRAVITYz'])

    @property
    def plane(self):
        return (self._values['PLANEa'], self._values['PLANEb'],
                self._values['PLANEc'], self._values['PLANEd'])

    @property
    def step_counts(self):
        return [self._values[f'STEP{k}'] for k in range(1, 5)]

    def contact_parameters(self):
        return ContactParameters(
            mu=self._values['FRICTION_mu'],
            mu2=self._values['FRICTION_mu2'],
            bounce=self._values['BOUNCE'],
            bounce_vel=self._values['BOUNCE_vel'],
            soft_cfm=self._values['SOFT_CFM'],
            max_contacts=self._values['MAX_CONTACTS'],
        )


def load_params(path, **overrides):
    """
    Load a ParameterStore from a JSON file

    Args:
        path: JSON file path
        **overrides: values that win over the file

    Returns:
        ParameterStore
    """
    return ParameterStore.from_json(path, **overrides)
