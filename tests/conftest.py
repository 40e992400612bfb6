"""Pytest fixtures for Cardslice tests."""

import struct

import numpy as np
import pytest
import trimesh

from cardslice.core.geometry import Mesh


def _binary_stl(triangles, header: bytes = b"cardslice test") -> bytes:
    triangles = np.asarray(triangles, dtype=np.float64).reshape(-1, 3, 3)
    data = bytearray(header.ljust(80, b"\x00")[:80])
    data += struct.pack("<I", len(triangles))
    for tri in triangles:
        data += struct.pack("<3f", 0.0, 0.0, 0.0)
        data += struct.pack("<9f", *tri.ravel())
        data += struct.pack("<H", 0)
    return bytes(data)


def _ascii_stl(triangles, name: str = "part") -> bytes:
    lines = [f"solid {name}"]
    for tri in np.asarray(triangles, dtype=np.float64).reshape(-1, 3, 3):
        lines.append("  facet normal 0 0 0")
        lines.append("    outer loop")
        for x, y, z in tri:
            lines.append(f"      vertex {x:.6f} {y:.6f} {z:.6f}")
        lines.append("    endloop")
        lines.append("  endfacet")
    lines.append(f"endsolid {name}")
    return "\n".join(lines).encode()


@pytest.fixture
def make_binary_stl():
    """Factory building binary STL bytes from an Nx3x3 triangle array."""
    return _binary_stl


@pytest.fixture
def make_ascii_stl():
    """Factory building ASCII STL bytes from an Nx3x3 triangle array."""
    return _ascii_stl


@pytest.fixture
def cube_trimesh() -> trimesh.Trimesh:
    """10mm cube centered at the origin (Z from -5 to 5)."""
    return trimesh.creation.box(extents=[10, 10, 10])


@pytest.fixture
def cube_mesh(cube_trimesh) -> Mesh:
    """12-triangle cube as a triangle soup."""
    return Mesh.from_trimesh(cube_trimesh)


@pytest.fixture
def sphere_mesh() -> Mesh:
    """Icosphere of radius 20mm, dense enough to give many segments per layer."""
    return Mesh.from_trimesh(trimesh.creation.icosphere(subdivisions=3, radius=20.0))


@pytest.fixture
def single_triangle():
    """One triangle spanning Z 0..2."""
    return np.array([
        [0.0, 0.0, 0.0],
        [2.0, 0.0, 2.0],
        [0.0, 2.0, 2.0],
    ])
