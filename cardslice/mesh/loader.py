"""Mesh loading for STL buffers.

This module parses raw STL bytes (binary or ASCII, auto-detected) into a
triangle soup and provides a file-based loader with mesh statistics.
"""

from __future__ import annotations

import logging
from pathlib import Path

import numpy as np
from numpy.typing import NDArray

from ..core.errors import MalformedInputError
from ..core.geometry import Mesh

logger = logging.getLogger(__name__)

HEADER_SIZE = 80
RECORD_OFFSET = 84
DETECT_BYTES = 200

# 12 bytes normal, 36 bytes vertices, 2 bytes attribute
STL_RECORD = np.dtype([
    ("normal", "<f4", (3,)),
    ("vertices", "<f4", (3, 3)),
    ("attribute", "<u2"),
])


def is_ascii_stl(buffer: bytes) -> bool:
    """Check whether a buffer looks like an ASCII STL file."""
    head = bytes(buffer[:DETECT_BYTES]).decode("utf-8", errors="replace")
    return "solid" in head and "facet normal" in head


def parse_mesh(buffer: bytes | bytearray | memoryview, strict: bool = False) -> Mesh:
    """Parse an STL buffer, detecting the encoding from its first bytes.

    Args:
        buffer: Raw file contents
        strict: Validate ASCII facet/loop structure instead of grouping
            vertex lines blindly

    Returns:
        Mesh with triangles in file order

    Raises:
        MalformedInputError: If the buffer is truncated or unparseable
    """
    buffer = bytes(buffer)
    if is_ascii_stl(buffer):
        return parse_ascii_stl(buffer.decode("utf-8", errors="replace"), strict=strict)
    return parse_binary_stl(buffer)


def parse_binary_stl(buffer: bytes) -> Mesh:
    """Parse a binary STL buffer.

    Layout: 80-byte header, little-endian uint32 triangle count at offset 80,
    then 50-byte records starting at offset 84.
    """
    if len(buffer) < RECORD_OFFSET:
        raise MalformedInputError(
            f"Binary STL header truncated: {len(buffer)} bytes, need at least {RECORD_OFFSET}"
        )

    count = int(np.frombuffer(buffer, dtype="<u4", count=1, offset=HEADER_SIZE)[0])
    expected = RECORD_OFFSET + count * STL_RECORD.itemsize
    if len(buffer) < expected:
        raise MalformedInputError(
            f"Binary STL declares {count} triangles ({expected} bytes) "
            f"but buffer holds only {len(buffer)} bytes"
        )

    if count == 0:
        triangles = np.empty((0, 3, 3), dtype=np.float64)
    else:
        records = np.frombuffer(buffer, dtype=STL_RECORD, count=count, offset=RECORD_OFFSET)
        triangles = records["vertices"].astype(np.float64)

    header = buffer[:HEADER_SIZE].split(b"\x00", 1)[0].decode("ascii", errors="replace").strip()
    logger.debug(f"Parsed binary STL: {count} triangles")
    return Mesh(triangles=triangles, source_format="binary", name=header or None)


def _parse_vertex(parts: list[str]) -> list[float] | None:
    if len(parts) < 4:
        return None
    try:
        return [float(parts[1]), float(parts[2]), float(parts[3])]
    except ValueError:
        return None


def parse_ascii_stl(text: str, strict: bool = False) -> Mesh:
    """Parse ASCII STL text.

    In the default lenient mode every ``vertex x y z`` line contributes one
    vertex and each run of three vertices forms a triangle; facet and loop
    keywords are ignored and a trailing partial triangle is dropped. Strict
    mode requires exactly three vertices inside every ``outer loop`` /
    ``endloop`` pair.
    """
    name: str | None = None
    vertices: list[list[float]] = []
    loop: list[list[float]] | None = None

    for lineno, raw_line in enumerate(text.splitlines(), start=1):
        line = raw_line.strip()
        if not line:
            continue
        parts = line.split()
        keyword = parts[0]

        if keyword == "solid" and name is None:
            name = " ".join(parts[1:]) or None
        elif keyword == "vertex":
            vertex = _parse_vertex(parts)
            if vertex is None:
                if strict:
                    raise MalformedInputError(f"Line {lineno}: malformed vertex: {raw_line!r}")
                continue
            if strict:
                if loop is None:
                    raise MalformedInputError(f"Line {lineno}: vertex outside 'outer loop'")
                loop.append(vertex)
            else:
                vertices.append(vertex)
        elif strict and keyword == "outer":
            if loop is not None:
                raise MalformedInputError(f"Line {lineno}: nested 'outer loop'")
            loop = []
        elif strict and keyword == "endloop":
            if loop is None:
                raise MalformedInputError(f"Line {lineno}: 'endloop' without 'outer loop'")
            if len(loop) != 3:
                raise MalformedInputError(
                    f"Line {lineno}: facet has {len(loop)} vertices, expected 3"
                )
            vertices.extend(loop)
            loop = None

    if strict and loop is not None:
        raise MalformedInputError("Unterminated 'outer loop' at end of file")

    usable = len(vertices) - len(vertices) % 3
    if usable != len(vertices):
        logger.warning(f"Dropping {len(vertices) - usable} trailing vertices that do not form a triangle")

    triangles = np.array(vertices[:usable], dtype=np.float64).reshape(-1, 3, 3)
    logger.debug(f"Parsed ASCII STL: {len(triangles)} triangles")
    return Mesh(triangles=triangles, source_format="ascii", name=name)


class MeshLoader:
    """Load an STL file into a triangle soup."""

    SUPPORTED_FORMATS = {".stl"}

    def __init__(self, path: str | Path, strict: bool = False):
        """Load a mesh from file.

        Args:
            path: Path to an STL file (binary or ASCII)
            strict: Validate ASCII facet structure
        """
        self.path = Path(path)

        if not self.path.exists():
            raise FileNotFoundError(f"Mesh file not found: {self.path}")

        if self.path.suffix.lower() not in self.SUPPORTED_FORMATS:
            raise ValueError(
                f"Unsupported format: {self.path.suffix}. "
                f"Supported: {self.SUPPORTED_FORMATS}"
            )

        logger.info(f"Loading mesh: {self.path}")
        self._mesh = parse_mesh(self.path.read_bytes(), strict=strict)
        logger.info(f"Loaded {self.num_faces} triangles ({self._mesh.source_format})")

    @property
    def mesh(self) -> Mesh:
        """Return the loaded triangle soup."""
        return self._mesh

    @property
    def bounds(self) -> tuple[NDArray[np.float64], NDArray[np.float64]]:
        """Return (min, max) bounding box coordinates."""
        return self._mesh.bounds

    @property
    def size(self) -> NDArray[np.float64]:
        """Return size of bounding box (x, y, z)."""
        return self._mesh.size

    @property
    def num_faces(self) -> int:
        """Return number of triangles."""
        return len(self._mesh)

    @property
    def is_watertight(self) -> bool:
        """Check if mesh is watertight (closed) once vertices are merged."""
        return bool(self._mesh.to_trimesh().is_watertight)

    def stats(self) -> dict:
        """Return statistics about the mesh."""
        empty = self.num_faces == 0
        return {
            "path": str(self.path),
            "format": self._mesh.source_format,
            "name": self._mesh.name,
            "num_faces": self.num_faces,
            "is_watertight": False if empty else self.is_watertight,
            "bounds_min": None if empty else self.bounds[0].tolist(),
            "bounds_max": None if empty else self.bounds[1].tolist(),
            "size": None if empty else self.size.tolist(),
        }

    def __repr__(self) -> str:
        return (
            f"MeshLoader({self.path.name}, "
            f"{self.num_faces} faces, "
            f"format={self._mesh.source_format})"
        )


def load_mesh(path: str | Path, strict: bool = False) -> Mesh:
    """Convenience function to load a mesh directly.

    Args:
        path: Path to mesh file
        strict: Validate ASCII facet structure

    Returns:
        Mesh triangle soup
    """
    return MeshLoader(path, strict=strict).mesh
