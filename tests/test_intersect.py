"""Tests for triangle / plane intersection."""

import numpy as np
import pytest

from cardslice.core.geometry import Segment
from cardslice.mesh.intersect import Contact, contact_diagnostics, intersect, intersect_many


class TestIntersect:
    """Test the single-triangle intersection."""

    def test_spanning_plane(self, single_triangle):
        """Test a plane strictly inside the Z range yields one segment."""
        seg = intersect(single_triangle, 1.0)

        assert seg == Segment(p1=(0.0, 1.0), p2=(1.0, 0.0))
        assert seg.p1 != seg.p2

    def test_upper_edge_branch(self):
        """Test the second point comes from the p1-p2 edge above the middle vertex."""
        tri = [[0, 0, 0], [4, 0, 2], [0, 4, 4]]
        seg = intersect(tri, 3.0)

        assert seg is not None
        np.testing.assert_allclose(seg.p1, (0.0, 3.0))
        np.testing.assert_allclose(seg.p2, (2.0, 2.0))

    def test_vertex_order_irrelevant(self):
        """Test the result does not depend on the input vertex order."""
        tri = np.array([[0, 4, 4], [4, 0, 2], [0, 0, 0]], dtype=float)
        seg = intersect(tri, 3.0)

        np.testing.assert_allclose(seg.p1, (0.0, 3.0))
        np.testing.assert_allclose(seg.p2, (2.0, 2.0))

    @pytest.mark.parametrize("z", [-0.001, 2.001, -10.0, 100.0])
    def test_outside_range(self, single_triangle, z):
        """Test planes outside the triangle's Z range miss it."""
        assert intersect(single_triangle, z) is None

    def test_coplanar_dropped(self):
        """Test a triangle lying in the plane produces no segment."""
        tri = [[0, 0, 1], [1, 0, 1], [0, 1, 1]]
        assert intersect(tri, 1.0) is None

    def test_vertex_touch_dropped(self, single_triangle):
        """Test touching only the lowest vertex produces no segment."""
        assert intersect(single_triangle, 0.0) is None

    def test_top_edge_in_plane(self, single_triangle):
        """Test a plane through the top edge yields that edge."""
        seg = intersect(single_triangle, 2.0)

        assert seg is not None
        np.testing.assert_allclose(seg.p1, (0.0, 2.0))
        np.testing.assert_allclose(seg.p2, (2.0, 0.0))

    def test_random_spanning_triangles(self):
        """Test every strictly spanning triangle gives two distinct points."""
        rng = np.random.default_rng(7)
        for _ in range(200):
            tri = rng.uniform(-10, 10, size=(3, 3))
            z_lo, z_hi = tri[:, 2].min(), tri[:, 2].max()
            z = z_lo + (z_hi - z_lo) * rng.uniform(0.05, 0.95)
            seg = intersect(tri, z)
            assert seg is not None
            assert seg.p1 != seg.p2


class TestIntersectMany:
    """Test the vectorized layer intersection."""

    def test_matches_single(self, sphere_mesh):
        """Test the vectorized form agrees with the per-triangle form."""
        z = 3.3
        segments, contacts = intersect_many(sphere_mesh.triangles, z)

        expected = [intersect(tri, z) for tri in sphere_mesh.triangles]
        expected = [s for s in expected if s is not None]

        assert len(segments) == len(expected)
        assert np.count_nonzero(contacts == Contact.CROSSING) == len(expected)
        for (a, b), seg in zip(segments, expected):
            np.testing.assert_array_equal(a, seg.p1)
            np.testing.assert_array_equal(b, seg.p2)

    def test_contact_codes(self):
        """Test each triangle is classified."""
        tris = np.array([
            [[0, 0, 0], [2, 0, 2], [0, 2, 2]],  # crossing at z=1
            [[0, 0, 1], [1, 0, 1], [0, 1, 1]],  # coplanar at z=1
            [[0, 0, 1], [1, 0, 2], [0, 1, 2]],  # touches lowest vertex
            [[0, 0, 5], [1, 0, 6], [0, 1, 7]],  # above the plane
        ], dtype=float)
        segments, contacts = intersect_many(tris, 1.0)

        assert list(contacts) == [Contact.CROSSING, Contact.COPLANAR, Contact.GRAZING, Contact.MISS]
        assert segments.shape == (1, 2, 2)

        diagnostics = contact_diagnostics(contacts)
        assert diagnostics.coplanar == 1
        assert diagnostics.grazing == 1

    def test_empty(self):
        """Test an empty triangle array."""
        segments, contacts = intersect_many(np.empty((0, 3, 3)), 1.0)
        assert segments.shape == (0, 2, 2)
        assert len(contacts) == 0
