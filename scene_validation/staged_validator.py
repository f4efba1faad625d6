"""
Staged Validator - four checkpoints of increasing simulated time

    [poses applied] → PHASE1 → PHASE2 → PHASE3 → PHASE4 → VALID
                         ↓        ↓        ↓        ↓
                                   INVALID

Each phase advances the world by STEPk steps and then checks every object
of the scene. The first failing phase ends the run; later phases are never
stepped. Drift is always measured from the pose applied before PHASE1, so
it accumulates across phases.
"""

import logging
from dataclasses import dataclass, field
from enum import Enum
from typing import Dict, List, Optional

import numpy as np

logger = logging.getLogger(__name__)


class ValidationState(Enum):
    """States of one validation run"""
    PHASE1 = "phase1"
    PHASE2 = "phase2"
    PHASE3 = "phase3"
    PHASE4 = "phase4"
    VALID = "valid"
    INVALID = "invalid"


PHASES = [ValidationState.PHASE1, ValidationState.PHASE2,
          ValidationState.PHASE3, ValidationState.PHASE4]


@dataclass
class PhaseResult:
    """Outcome of one executed phase"""
    phase: ValidationState
    steps: int
    passed: bool
    displacements: Dict[str, np.ndarray] = field(default_factory=dict)
    failed_object: Optional[str] = None


@dataclass
class ValidationReport:
    """Outcome of one validation run; phases lists only the phases that ran."""
    state: ValidationState
    phases: List[PhaseResult] = field(default_factory=list)

    @property
    def valid(self):
        return self.state is ValidationState.VALID

    @property
    def steps_taken(self):
        return sum(phase.steps for phase in self.phases)

    @property
    def failed_phase(self):
        for phase in self.phases:
            if not phase.passed:
                return phase
        return None

    def __bool__(self):
        return self.valid


class StagedValidator:
    """
    Runs the phase state machine over objects whose poses are already applied.
    """

    def __init__(self, driver, checker, params):
        """
        Args:
            driver: SteppingDriver advancing the world
            checker: EquilibriumChecker
            params: ParameterStore (STEP1..STEP4, PRINT_CHKR_RSLT)
        """
        self.driver = driver
        self.checker = checker
        self.params = params

    def run(self, objects):
        """
        Args:
            objects: TrackedObjects of the scene, reference positions set

        Returns:
            ValidationReport
        """
        step_counts = self.params.step_counts
        report = ValidationReport(state=PHASES[0])

        for phase, steps in zip(PHASES, step_counts):
            report.state = phase
            self.driver.advance(steps)
            stable, displacements, failed = self.checker.check_scene(objects)

            report.phases.append(PhaseResult(
                phase=phase,
                steps=steps,
                passed=stable,
                displacements=displacements,
                failed_object=failed,
            ))

            if self.params['PRINT_CHKR_RSLT']:
                logger.info("TRUE" if stable else "FALSE")

            if not stable:
                logger.debug(f"[StagedValidator] {phase.value} failed on '{failed}' after {steps} steps")
                report.state = ValidationState.INVALID
                return report

            logger.debug(f"[StagedValidator] {phase.value} passed ({steps} steps)")

        report.state = ValidationState.VALID
        return report


def print_validation_report(report):
    """Print a validation report"""
    print("=" * 80)
    print(" Scene Validation Report")
    print("=" * 80)

    for result in report.phases:
        status = "✓" if result.passed else "✗"
        print(f"\n[{result.phase.value}] {result.steps} steps {status}")
        for name, delta in result.displacements.items():
            marker = "  <- moved too far" if name == result.failed_object else ""
            print(f"  {name:<20} Δ = ({delta[0]:.4f}, {delta[1]:.4f}, {delta[2]:.4f}){marker}")

    print(f"\n{'=' * 80}")
    print(f" Result: {report.state.value.upper()} ({report.steps_taken} steps)")
    print(f"{'=' * 80}\n")
