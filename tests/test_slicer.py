"""Tests for layer slicing and orchestration."""

import threading

import numpy as np
import pytest

from cardslice.core.config import SlicePlan, SliceSettings
from cardslice.core.errors import CancelledError
from cardslice.mesh.normalize import normalize
from cardslice.mesh.slicer import MeshSlicer, SliceProgress, slice_mesh


@pytest.fixture
def cube_model(cube_mesh):
    """10mm cube normalized to 10mm height."""
    return normalize(cube_mesh, 10.0)


@pytest.fixture
def sphere_model(sphere_mesh):
    """Sphere normalized to 40mm height."""
    return normalize(sphere_mesh, 40.0)


class TestSlicePlan:
    """Test thickness/count resolution."""

    def test_thickness_mode(self):
        """Test a fixed thickness derives the layer count."""
        plan = SliceSettings(target_height_mm=100, mode="thickness", layer_thickness_mm=4).plan()
        assert plan.count == 25
        assert plan.thickness == 4.0

    def test_count_mode(self):
        """Test a fixed count derives the thickness."""
        plan = SliceSettings(target_height_mm=100, mode="count", layer_count=25).plan()
        assert plan.count == 25
        assert plan.thickness == 4.0

    def test_modes_give_same_centers(self):
        """Test both modes place layers at the same heights."""
        by_thickness = SliceSettings(target_height_mm=100, mode="thickness", layer_thickness_mm=4).plan()
        by_count = SliceSettings(target_height_mm=100, mode="count", layer_count=25).plan()

        np.testing.assert_array_equal(by_thickness.z_centers, by_count.z_centers)

    def test_half_thickness_offset(self):
        """Test layer centers start half a thickness above the base."""
        plan = SlicePlan(thickness=4.0, count=3)
        np.testing.assert_array_equal(plan.z_centers, [2.0, 6.0, 10.0])

    def test_count_floors(self):
        """Test a thickness that does not divide the height rounds down."""
        plan = SliceSettings(target_height_mm=10, layer_thickness_mm=3).plan()
        assert plan.count == 3

    def test_count_float_guard(self):
        """Test float division noise does not lose a layer."""
        plan = SliceSettings(target_height_mm=0.3, layer_thickness_mm=0.1).plan()
        assert plan.count == 3

    def test_thickness_above_height(self):
        """Test a thickness larger than the model gives no layers."""
        plan = SliceSettings(target_height_mm=5, layer_thickness_mm=6).plan()
        assert plan.count == 0


class TestSliceLayer:
    """Test single-layer computation."""

    def test_cube_mid_section(self, cube_model):
        """Test the cube cut at mid height is one closed 10mm square."""
        layer = MeshSlicer(cube_model, max_workers=1).slice_layer(0, 5.0)

        assert len(layer.contours) == 1
        contour = layer.contours[0]
        assert contour.closed

        points = contour.points
        np.testing.assert_allclose(points.min(axis=0), [-5, -5], atol=1e-9)
        np.testing.assert_allclose(points.max(axis=0), [5, 5], atol=1e-9)
        corners = {(round(x, 6), round(y, 6)) for x, y in contour.as_tuples()}
        assert {(-5, -5), (5, -5), (5, 5), (-5, 5)} <= corners
        # Every point lies on the square's boundary
        on_edge = np.isclose(np.abs(points), 5.0).any(axis=1)
        assert on_edge.all()
        assert layer.diagnostics.is_clean

    def test_coplanar_counted(self, cube_model):
        """Test cutting exactly through a face records dropped triangles."""
        layer = MeshSlicer(cube_model, max_workers=1).slice_layer(0, 0.0)

        assert layer.diagnostics.coplanar == 2
        assert layer.segment_count == 0
        assert layer.is_empty

    def test_above_model(self, cube_model):
        """Test a plane above the model gives an empty layer."""
        layer = MeshSlicer(cube_model, max_workers=1).slice_layer(0, 11.0)
        assert layer.is_empty
        assert layer.diagnostics.dropped == 0


class TestMeshSlicer:
    """Test the full slicing run."""

    def test_layer_count_and_order(self, cube_model):
        """Test layers come back bottom-up at the planned heights."""
        plan = SlicePlan(thickness=2.0, count=5)
        result = MeshSlicer(cube_model, max_workers=1).slice(plan)

        assert len(result) == 5
        assert [layer.index for layer in result] == [0, 1, 2, 3, 4]
        np.testing.assert_allclose(result.z_centers, [1, 3, 5, 7, 9])
        assert all(len(layer.closed_contours) == 1 for layer in result)
        assert result.width == pytest.approx(10.0)
        assert result.thickness == 2.0

    def test_parallel_matches_serial(self, sphere_model):
        """Test thread pool execution reproduces the serial result."""
        plan = SlicePlan(thickness=1.5, count=26)
        serial = MeshSlicer(sphere_model, max_workers=1).slice(plan)
        parallel = MeshSlicer(sphere_model, max_workers=4).slice(plan)

        assert len(serial) == len(parallel)
        for a, b in zip(serial, parallel):
            assert a.index == b.index
            assert a.z == b.z
            assert len(a.contours) == len(b.contours)
            for ca, cb in zip(a.contours, b.contours):
                np.testing.assert_array_equal(ca.points, cb.points)
                assert ca.closed == cb.closed

    def test_sphere_sections_closed(self, sphere_model):
        """Test a watertight mesh gives closed contours on every layer."""
        result = MeshSlicer(sphere_model, max_workers=2).slice(SlicePlan(thickness=4.0, count=10))

        for layer in result:
            assert len(layer.contours) == 1
            assert layer.contours[0].closed
        assert result.diagnostics.open_contours == 0

    def test_modes_same_geometry(self, sphere_model):
        """Test thickness and count modes slice identical geometry."""
        by_thickness = SliceSettings(target_height_mm=40, mode="thickness", layer_thickness_mm=5).plan()
        by_count = SliceSettings(target_height_mm=40, mode="count", layer_count=8).plan()

        a = slice_mesh(sphere_model, by_thickness, max_workers=1)
        b = slice_mesh(sphere_model, by_count, max_workers=1)

        for la, lb in zip(a, b):
            assert la.z == lb.z
            for ca, cb in zip(la.contours, lb.contours):
                np.testing.assert_array_equal(ca.points, cb.points)

    def test_progress_reported(self, cube_model):
        """Test progress is reported once per layer."""
        updates: list[SliceProgress] = []
        MeshSlicer(cube_model, max_workers=2).slice(
            SlicePlan(thickness=2.0, count=5),
            progress_callback=updates.append,
        )

        assert [p.completed_layers for p in updates] == [1, 2, 3, 4, 5]
        assert updates[-1].percent_complete == 100.0

    def test_segments_partitioned(self, sphere_model):
        """Test every segment of every layer lands in exactly one contour."""
        result = MeshSlicer(sphere_model, max_workers=1).slice(SlicePlan(thickness=3.0, count=13))

        for layer in result:
            assert sum(c.segment_count for c in layer.contours) == layer.segment_count

    def test_empty_plan(self, cube_model):
        """Test a zero-layer plan gives an empty result."""
        result = MeshSlicer(cube_model).slice(SlicePlan(thickness=20.0, count=0))
        assert result.is_empty


class TestCancellation:
    """Test cooperative cancellation."""

    def test_cancel_before_start(self, cube_model):
        """Test a pre-set cancel event stops the run with no result."""
        event = threading.Event()
        event.set()

        with pytest.raises(CancelledError):
            MeshSlicer(cube_model, max_workers=1).slice(SlicePlan(thickness=2.0, count=5), cancel_event=event)

    @pytest.mark.parametrize("workers", [1, 3])
    def test_cancel_mid_run(self, sphere_model, workers):
        """Test cancelling from the progress callback aborts the run."""
        event = threading.Event()

        def cancel_after_two(p: SliceProgress) -> None:
            if p.completed_layers == 2:
                event.set()

        with pytest.raises(CancelledError):
            MeshSlicer(sphere_model, max_workers=workers).slice(
                SlicePlan(thickness=2.0, count=20),
                progress_callback=cancel_after_two,
                cancel_event=event,
            )

    def test_iter_layers_cancel(self, cube_model):
        """Test the layer iterator checks the event between layers."""
        event = threading.Event()
        layers = MeshSlicer(cube_model).iter_layers(SlicePlan(thickness=2.0, count=5), event)

        first = next(layers)
        assert first.index == 0
        event.set()
        with pytest.raises(CancelledError):
            next(layers)
