import logging

import numpy as np
import pytest

from scene_validation import (
    ConfigError,
    EngineError,
    MeshError,
    ModelLookupError,
    ObjectRegistry,
    box_mesh,
    compute_mass_properties,
)


def test_register_and_lookup(fake_world):
    registry = ObjectRegistry(fake_world, capacity=4)
    vertices, faces = box_mesh(2.0, 2.0, 2.0, center=(5.0, 5.0, 5.0))

    obj = registry.register("crate", vertices, faces, scale=1.0, density=5.0)

    assert registry.get("crate") is obj
    assert "crate" in registry
    assert len(registry) == 1
    assert obj.slot == 0
    assert obj.body_id in fake_world.bodies
    np.testing.assert_allclose(obj.center_of_mass, [5.0, 5.0, 5.0])
    assert obj.volume == pytest.approx(8.0)
    assert obj.mass == pytest.approx(40.0)
    assert obj.reference_position is None


def test_registered_mesh_is_centred(fake_world):
    registry = ObjectRegistry(fake_world, capacity=4)
    vertices, faces = box_mesh(30.0, 10.0, 20.0, center=(100.0, -50.0, 7.0))

    obj = registry.register("shelf", vertices, faces, scale=10.0, density=1.0)

    props = compute_mass_properties(obj.vertices, obj.faces)
    assert np.linalg.norm(props.center_of_mass) < 1e-9
    np.testing.assert_allclose(obj.vertices.max(axis=0), [1.5, 0.5, 1.0])
    body_vertices = fake_world.meshes[obj.body_id][0]
    np.testing.assert_allclose(body_vertices, obj.vertices)


def test_degenerate_mesh_leaves_registry_unchanged(fake_world, cube):
    registry = ObjectRegistry(fake_world, capacity=4)
    registry.register("base", *cube, scale=1.0, density=5.0)
    flat = np.array([[0, 0, 0], [1, 0, 0], [0, 1, 0]], dtype=float)

    with pytest.raises(MeshError):
        registry.register("sheet", flat, np.array([[0, 1, 2], [0, 2, 1]]), scale=1.0, density=5.0)

    assert registry.names() == ["base"]
    assert len(fake_world.bodies) == 1


def test_degenerate_mesh_keeps_existing_entry_with_same_name(fake_world, cube):
    registry = ObjectRegistry(fake_world, capacity=4)
    original = registry.register("base", *cube, scale=1.0, density=5.0)
    flat = np.array([[0, 0, 0], [1, 0, 0], [0, 1, 0]], dtype=float)

    with pytest.raises(MeshError):
        registry.register("base", flat, np.array([[0, 1, 2]]), scale=1.0, density=5.0)

    assert registry.get("base") is original
    assert original.body_id in fake_world.bodies


def test_reregistering_overwrites_same_slot(fake_world, cube):
    registry = ObjectRegistry(fake_world, capacity=4)
    registry.register("a", *cube, scale=1.0, density=5.0)
    first = registry.register("b", *cube, scale=1.0, density=5.0)

    second = registry.register("b", *box_mesh(2.0, 2.0, 2.0), scale=1.0, density=5.0)

    assert second.slot == first.slot
    assert registry.get("b") is second
    assert first.body_id not in fake_world.bodies
    assert second.body_id in fake_world.bodies
    assert len(registry) == 2
    assert second.volume == pytest.approx(8.0)


def test_full_registry_evicts_oldest(fake_world, cube, caplog):
    registry = ObjectRegistry(fake_world, capacity=2)
    a = registry.register("a", *cube, scale=1.0, density=5.0)
    registry.register("b", *cube, scale=1.0, density=5.0)
    assert registry.is_full

    with caplog.at_level(logging.WARNING):
        c = registry.register("c", *cube, scale=1.0, density=5.0)

    assert "a" not in registry
    assert registry.names() == ["c", "b"]
    assert c.slot == a.slot
    assert a.body_id not in fake_world.bodies
    assert len(fake_world.bodies) == 2
    assert "evicting 'a'" in caplog.text


def test_eviction_follows_registration_order_not_use(fake_world, cube):
    registry = ObjectRegistry(fake_world, capacity=2)
    registry.register("a", *cube, scale=1.0, density=5.0)
    registry.register("b", *cube, scale=1.0, density=5.0)
    registry.register("a", *cube, scale=1.0, density=5.0)

    registry.register("c", *cube, scale=1.0, density=5.0)

    assert sorted(registry.names()) == ["a", "c"]


def test_unknown_name(fake_world):
    registry = ObjectRegistry(fake_world, capacity=2)
    assert registry.lookup("ghost") is None
    with pytest.raises(ModelLookupError):
        registry.get("ghost")
    with pytest.raises(ModelLookupError):
        registry.remove("ghost")


def test_remove_and_clear(fake_world, cube):
    registry = ObjectRegistry(fake_world, capacity=3)
    registry.register("a", *cube, scale=1.0, density=5.0)
    registry.register("b", *cube, scale=1.0, density=5.0)

    registry.remove("a")
    assert registry.names() == ["b"]
    assert registry.slot(0) is None

    registry.clear()
    assert len(registry) == 0
    assert fake_world.bodies == set()


@pytest.mark.parametrize("capacity", [0, -1, 2.5, True])
def test_invalid_capacity(fake_world, capacity):
    with pytest.raises(ConfigError):
        ObjectRegistry(fake_world, capacity=capacity)


def test_print_com_logs_centre(fake_world, caplog):
    registry = ObjectRegistry(fake_world, capacity=2, print_com=True, print_aabb=lambda: True)
    vertices, faces = box_mesh(1.0, 1.0, 1.0, center=(1.0, 2.0, 3.0))

    with caplog.at_level(logging.INFO):
        registry.register("box", vertices, faces, scale=1.0, density=5.0)

    assert "box COM: 1.0000, 2.0000, 3.0000" in caplog.text
    assert "box AABB: minX -0.500" in caplog.text


def _refuse_bodies(*args, **kwargs):
    raise EngineError("PyBullet rejected the collision mesh")


def test_engine_failure_on_full_registry_keeps_oldest(fake_world, cube, monkeypatch):
    registry = ObjectRegistry(fake_world, capacity=1)
    a = registry.register("a", *cube, scale=1.0, density=5.0)
    monkeypatch.setattr(fake_world, "create_trimesh_body", _refuse_bodies)

    with pytest.raises(EngineError):
        registry.register("b", *cube, scale=1.0, density=5.0)

    assert "a" in registry
    assert registry.get("a") is a
    assert a.body_id in fake_world.bodies
    assert "b" not in registry


def test_engine_failure_on_reregister_keeps_previous(fake_world, cube, monkeypatch):
    registry = ObjectRegistry(fake_world, capacity=2)
    first = registry.register("a", *cube, scale=1.0, density=5.0)
    monkeypatch.setattr(fake_world, "create_trimesh_body", _refuse_bodies)

    with pytest.raises(EngineError):
        registry.register("a", *box_mesh(2.0, 2.0, 2.0), scale=1.0, density=5.0)

    assert registry.get("a") is first
    assert first.body_id in fake_world.bodies


def test_failed_release_discards_new_body(fake_world, cube):
    registry = ObjectRegistry(fake_world, capacity=1)
    a = registry.register("a", *cube, scale=1.0, density=5.0)
    # body vanished behind the registry's back, so releasing it fails
    del fake_world.positions[a.body_id]

    with pytest.raises(EngineError):
        registry.register("b", *cube, scale=1.0, density=5.0)

    assert "b" not in registry
    assert fake_world.bodies == set()
