"""
Mesh helpers - loading model files and building simple closed meshes
"""

import logging
from pathlib import Path

import numpy as np
import trimesh

from .errors import MeshError

logger = logging.getLogger(__name__)

# Outward-wound triangles of a box with corners indexed as in box_mesh()
BOX_FACES = np.array([
    [0, 2, 1], [0, 3, 2],  # bottom (-z)
    [4, 5, 6], [4, 6, 7],  # top    (+z)
    [0, 1, 5], [0, 5, 4],  # front  (-y)
    [3, 6, 2], [3, 7, 6],  # back   (+y)
    [0, 4, 7], [0, 7, 3],  # left   (-x)
    [1, 2, 6], [1, 6, 5],  # right  (+x)
], dtype=np.int64)


def box_mesh(size_x, size_y, size_z, center=(0.0, 0.0, 0.0)):
    """
    Closed box triangle mesh

    Args:
        size_x, size_y, size_z: full edge lengths
        center: box centre

    Returns:
        (vertices [8, 3], faces [12, 3])
    """
    hx, hy, hz = size_x / 2.0, size_y / 2.0, size_z / 2.0
    corners = np.array([
        [-hx, -hy, -hz], [hx, -hy, -hz], [hx, hy, -hz], [-hx, hy, -hz],
        [-hx, -hy, hz], [hx, -hy, hz], [hx, hy, hz], [-hx, hy, hz],
    ])
    return corners + np.asarray(center, dtype=np.float64), BOX_FACES.copy()


def load_mesh(path):
    """
    Read a triangle mesh file (.obj, .stl, .ply, ...)

    Vertices are kept exactly as stored in the file (no merging or
    reordering), so face indices stay valid.

    Args:
        path: mesh file path

    Returns:
        (vertices [N, 3], faces [M, 3])

    Raises:
        FileNotFoundError: path does not exist
        MeshError: file could not be parsed or holds no triangles
    """
    path = Path(path)
    if not path.is_file():
        error_msg = f"[Meshes] Mesh file not found: {path}"
        logger.error(error_msg)
        raise FileNotFoundError(error_msg)

    try:
        mesh = trimesh.load(str(path), force="mesh", process=False)
    except (ValueError, KeyError, IndexError) as e:
        error_msg = f"[Meshes] Failed to parse {path}: {e}"
        logger.error(error_msg)
        raise MeshError(error_msg) from e

    if isinstance(mesh, trimesh.Scene):
        geometries = [g for g in mesh.geometry.values() if isinstance(g, trimesh.Trimesh)]
        if not geometries:
            raise MeshError(f"[Meshes] {path} contains no triangle geometry")
        mesh = trimesh.util.concatenate(geometries)

    if getattr(mesh, "faces", None) is None or len(mesh.faces) == 0:
        raise MeshError(f"[Meshes] {path} contains no triangles")

    vertices = np.asarray(mesh.vertices, dtype=np.float64)
    faces = np.asarray(mesh.faces, dtype=np.int64)

    logger.info(f"[Meshes] Loaded {path.name}: {len(vertices)} vertices, {len(faces)} faces")
    return vertices, faces
