import logging

import numpy as np
import pytest

from scene_validation import EquilibriumChecker, EquilibriumStatus, ObjectRegistry, ParameterStore, Pose, apply_pose


@pytest.fixture
def setup(fake_world, cube):
    params = ParameterStore(THRESHOLD=0.5)
    registry = ObjectRegistry(fake_world, capacity=4)
    a = registry.register("a", *cube, scale=1.0, density=5.0)
    b = registry.register("b", *cube, scale=1.0, density=5.0)
    apply_pose(fake_world, a, Pose.identity())
    apply_pose(fake_world, b, Pose.identity((3.0, 0.0, 0.0)))
    return EquilibriumChecker(fake_world, params), a, b


def test_drift_exactly_at_threshold_is_stable(fake_world, setup):
    checker, a, _ = setup
    fake_world.positions[a.body_id] = np.array([0.5, -0.5, 0.5])

    assert checker.is_stable(a)
    np.testing.assert_array_equal(checker.displacement(a), [0.5, 0.5, 0.5])


def test_drift_beyond_threshold_on_one_axis_is_unstable(fake_world, setup):
    checker, a, _ = setup
    fake_world.positions[a.body_id] = np.array([0.0, 0.0, 0.5 + 1e-9])

    assert not checker.is_stable(a)


def test_status_of(setup):
    checker, _, _ = setup
    assert checker.status_of(np.array([0.1, 0.2, 0.3])) is EquilibriumStatus.STABLE
    assert checker.status_of(np.array([0.1, 0.6, 0.3])) is EquilibriumStatus.UNSTABLE


def test_threshold_change_applies_to_next_check(fake_world, setup):
    checker, a, _ = setup
    fake_world.positions[a.body_id] = np.array([0.0, 0.0, 0.25])
    assert checker.is_stable(a)

    checker.params.set_param('THRESHOLD', 0.125)

    assert not checker.is_stable(a)


def test_check_scene_stops_at_first_unstable(fake_world, setup):
    checker, a, b = setup
    fake_world.positions[a.body_id] = np.array([0.0, 0.0, -2.0])
    fake_world.positions[b.body_id] = np.array([9.0, 0.0, 0.0])

    stable, displacements, failed = checker.check_scene([a, b])

    assert not stable
    assert failed == "a"
    assert list(displacements) == ["a"]


def test_check_scene_all_stable(setup):
    checker, a, b = setup

    stable, displacements, failed = checker.check_scene([a, b])

    assert stable
    assert failed is None
    assert set(displacements) == {"a", "b"}
    assert checker.is_scene_stable([a, b])


def test_object_without_reference_is_rejected(fake_world, cube):
    registry = ObjectRegistry(fake_world, capacity=1)
    obj = registry.register("loose", *cube, scale=1.0, density=5.0)
    checker = EquilibriumChecker(fake_world, ParameterStore())

    with pytest.raises(ValueError):
        checker.displacement(obj)


def test_position_diagnostics(fake_world, setup, caplog):
    checker, a, _ = setup
    for name in ('PRINT_START_POS', 'PRINT_END_POS', 'PRINT_DELTA_POS'):
        checker.params.set_param(name, True)
    fake_world.positions[a.body_id] = np.array([0.0, 0.0, 0.25])

    with caplog.at_level(logging.INFO):
        checker.displacement(a)

    assert "Start: 0.0, 0.0, 0.0" in caplog.text
    assert "End: 0.0, 0.0, 0.25" in caplog.text
    assert "Delta: 0.0, 0.0, 0.25" in caplog.text
