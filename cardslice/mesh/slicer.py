"""Slice a normalized mesh into a stack of 2D layers.

Each layer is a pure function of the mesh and its Z height, so layers are
computed independently (optionally on a thread pool) and reassembled in
ascending layer order. Cancellation is checked at layer boundaries; a
cancelled run raises and never returns a partial stack.
"""

from __future__ import annotations

import logging
import os
import threading
import time
from concurrent.futures import Future, ThreadPoolExecutor
from dataclasses import dataclass
from typing import Callable, Iterator

from ..core.config import SlicePlan
from ..core.errors import CancelledError
from ..core.geometry import Layer, NormalizedMesh, SliceDiagnostics, SliceResult
from .intersect import contact_diagnostics, intersect_many
from .stitch import stitch

logger = logging.getLogger(__name__)


@dataclass
class SliceProgress:
    """Progress information during slicing."""

    total_layers: int
    completed_layers: int
    elapsed_seconds: float

    @property
    def percent_complete(self) -> float:
        """Percentage of layers completed."""
        if self.total_layers == 0:
            return 100.0
        return (self.completed_layers / self.total_layers) * 100

    @property
    def estimated_remaining_seconds(self) -> float:
        """Estimated time remaining in seconds."""
        if self.completed_layers == 0:
            return 0.0
        rate = self.completed_layers / self.elapsed_seconds if self.elapsed_seconds > 0 else 0.0
        remaining = self.total_layers - self.completed_layers
        return remaining / rate if rate > 0 else 0.0


class MeshSlicer:
    """Slice a normalized mesh into layers at regular Z intervals."""

    def __init__(self, mesh: NormalizedMesh, max_workers: int | None = None):
        """Initialize slicer with a mesh.

        Args:
            mesh: Normalized mesh (Z starts at 0)
            max_workers: Thread count for slice(). None = one per CPU core,
                1 = compute layers inline.
        """
        self.mesh = mesh
        self.max_workers = max_workers or os.cpu_count() or 1

    def slice_layer(self, index: int, z: float) -> Layer:
        """Compute a single layer at height z."""
        segments, contacts = intersect_many(self.mesh.triangles, z)
        contours = stitch(segments)

        diagnostics = contact_diagnostics(contacts)
        diagnostics.open_contours = sum(1 for c in contours if not c.closed)

        logger.debug(
            f"Layer {index}: Z={z:.3f}mm, {len(segments)} segments, {len(contours)} contours"
        )
        return Layer(
            index=index,
            z=float(z),
            contours=contours,
            segment_count=len(segments),
            diagnostics=diagnostics,
        )

    def iter_layers(
        self,
        plan: SlicePlan,
        cancel_event: threading.Event | None = None,
    ) -> Iterator[Layer]:
        """Yield layers bottom-up, one at a time.

        Raises:
            CancelledError: If cancel_event is set between layers
        """
        for index, z in enumerate(plan.z_centers):
            _check_cancel(cancel_event)
            yield self.slice_layer(index, float(z))

    def slice(
        self,
        plan: SlicePlan,
        progress_callback: Callable[[SliceProgress], None] | None = None,
        cancel_event: threading.Event | None = None,
    ) -> SliceResult:
        """Slice the whole mesh.

        Args:
            plan: Layer thickness and count
            progress_callback: Called after each layer completes
            cancel_event: When set, the run stops at the next layer boundary

        Returns:
            SliceResult with layers in ascending Z order

        Raises:
            CancelledError: If the run was cancelled
        """
        total = plan.count
        start_time = time.time()
        logger.info(
            f"Slicing {len(self.mesh)} triangles into {total} layers "
            f"of {plan.thickness:.3f}mm ({self.max_workers} workers)"
        )

        def report(done: int) -> None:
            if progress_callback:
                progress_callback(SliceProgress(
                    total_layers=total,
                    completed_layers=done,
                    elapsed_seconds=time.time() - start_time,
                ))

        layers: list[Layer] = []
        try:
            if self.max_workers == 1 or total <= 1:
                for layer in self.iter_layers(plan, cancel_event):
                    layers.append(layer)
                    report(len(layers))
            else:
                layers = self._slice_parallel(plan, report, cancel_event)
        except CancelledError:
            logger.warning(f"Slicing cancelled; discarding partial stack of {total} layers")
            raise

        result = SliceResult(
            layers=layers,
            thickness=plan.thickness,
            height=self.mesh.height,
            width=self.mesh.width,
            length=self.mesh.length,
        )
        _log_diagnostics(result.diagnostics)
        logger.info(f"Sliced {total} layers in {time.time() - start_time:.2f}s")
        return result

    def _slice_parallel(
        self,
        plan: SlicePlan,
        report: Callable[[int], None],
        cancel_event: threading.Event | None,
    ) -> list[Layer]:
        layers: list[Layer] = []
        with ThreadPoolExecutor(max_workers=self.max_workers) as executor:
            futures: list[Future[Layer]] = [
                executor.submit(self.slice_layer, index, float(z))
                for index, z in enumerate(plan.z_centers)
            ]
            try:
                # Collect in layer order regardless of completion order
                for future in futures:
                    _check_cancel(cancel_event)
                    layers.append(future.result())
                    report(len(layers))
            except BaseException:
                for future in futures:
                    future.cancel()
                raise
        return layers


def _check_cancel(cancel_event: threading.Event | None) -> None:
    if cancel_event is not None and cancel_event.is_set():
        raise CancelledError("Slicing cancelled by caller")


def _log_diagnostics(diagnostics: SliceDiagnostics) -> None:
    if diagnostics.coplanar:
        logger.warning(
            f"Dropped {diagnostics.coplanar} triangles lying in a cutting plane; "
            f"contours at those heights may have gaps"
        )
    if diagnostics.open_contours:
        logger.warning(f"{diagnostics.open_contours} contours did not close (mesh may not be watertight)")
    if diagnostics.grazing:
        logger.debug(f"Ignored {diagnostics.grazing} vertex/edge contacts")


def slice_mesh(
    mesh: NormalizedMesh,
    plan: SlicePlan,
    max_workers: int | None = None,
    progress_callback: Callable[[SliceProgress], None] | None = None,
    cancel_event: threading.Event | None = None,
) -> SliceResult:
    """Convenience function to slice a normalized mesh directly."""
    return MeshSlicer(mesh, max_workers=max_workers).slice(
        plan,
        progress_callback=progress_callback,
        cancel_event=cancel_event,
    )
