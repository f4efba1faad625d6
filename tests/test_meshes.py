import numpy as np
import pytest

from scene_validation import MeshError, box_mesh, compute_mass_properties, load_mesh


def test_box_faces_wind_outward():
    vertices, faces = box_mesh(1.0, 2.0, 3.0)

    props = compute_mass_properties(vertices, faces)

    assert props.signed_volume == pytest.approx(6.0)
    for tri in faces:
        a, b, c = vertices[tri]
        normal = np.cross(b - a, c - a)
        centroid = (a + b + c) / 3.0
        assert np.dot(normal, centroid) > 0


def test_load_obj(cube_obj):
    vertices, faces = load_mesh(cube_obj)

    assert vertices.shape == (8, 3)
    assert faces.shape == (12, 3)
    assert compute_mass_properties(vertices, faces).volume == pytest.approx(8.0)


def test_load_missing_file(tmp_path):
    with pytest.raises(FileNotFoundError):
        load_mesh(tmp_path / "nothing.obj")
