#!/usr/bin/env python3
"""Example: Slice a simple cube into cardboard layers.

This script demonstrates the basic workflow for Cardslice:
1. Create or load a mesh
2. Normalize it to the target height
3. Slice it into layers and export an SVG blueprint

Run with: python examples/simple_cube.py
"""

import trimesh

from cardslice import CardsliceConfig, Mesh, MeshSlicer, normalize, write_svg


def create_test_cube(size_mm: float = 20.0) -> trimesh.Trimesh:
    """Create a simple cube mesh for testing."""
    return trimesh.creation.box(extents=[size_mm, size_mm, size_mm])


def main():
    # Configuration
    config = CardsliceConfig.default()
    config.slicing.target_height_mm = 40.0
    config.slicing.layer_thickness_mm = 5.0

    print("Cardslice - Simple Cube Example")
    print("=" * 40)

    # Create test geometry
    print("\n1. Creating test cube...")
    mesh = Mesh.from_trimesh(create_test_cube(20.0), name="cube")
    print(f"   Mesh: {len(mesh)} triangles")
    print(f"   Size: {mesh.size}")

    # Normalize
    print(f"\n2. Normalizing to {config.slicing.target_height_mm:.0f} mm...")
    model = normalize(mesh, config.slicing.target_height_mm)
    print(f"   Scale: {model.scale:.3f}")
    print(f"   Size: {model.width:.1f} x {model.length:.1f} x {model.height:.1f} mm")

    # Slice
    plan = config.slicing.plan()
    print(f"\n3. Slicing {plan.count} layers of {plan.thickness:.1f} mm...")
    result = MeshSlicer(model).slice(plan)
    for key, value in result.stats().items():
        print(f"   {key}: {value}")

    # Export
    print("\n4. Exporting blueprint...")
    path = write_svg(result, "cube_slices.svg", config.layout)
    print(f"   Saved to {path}")


if __name__ == "__main__":
    main()
