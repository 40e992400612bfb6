"""Slicer session state and background slicing jobs.

A session owns one mesh and its derived data. Every transition (load,
resize, reconfigure, slice) produces a new immutable ``SessionState``
snapshot. Slicing runs in a background ``SliceJob``; at most one job is
active per session, and a job only commits its result if the state it
started from is still current.
"""

from __future__ import annotations

import logging
import threading
from dataclasses import dataclass, replace
from pathlib import Path
from typing import Callable

from .core.config import SliceSettings
from .core.errors import CancelledError, SliceInProgressError
from .core.geometry import Mesh, NormalizedMesh, SliceResult
from .mesh.loader import MeshLoader, parse_mesh
from .mesh.normalize import normalize
from .mesh.slicer import MeshSlicer, SliceProgress

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class SessionState:
    """Immutable snapshot of a slicing session."""

    settings: SliceSettings
    raw_mesh: Mesh | None = None
    normalized: NormalizedMesh | None = None
    slice_result: SliceResult | None = None
    source_name: str | None = None

    @property
    def has_mesh(self) -> bool:
        return self.normalized is not None


def load_state(
    state: SessionState,
    buffer: bytes,
    source_name: str | None = None,
    strict: bool = False,
) -> SessionState:
    """Parse a buffer and normalize it; any previous slices are dropped."""
    mesh = parse_mesh(buffer, strict=strict)
    return with_mesh(state, mesh, source_name)


def with_mesh(state: SessionState, mesh: Mesh, source_name: str | None = None) -> SessionState:
    """Replace the session's mesh; any previous slices are dropped."""
    normalized = normalize(mesh, state.settings.target_height_mm)
    return replace(
        state,
        raw_mesh=mesh,
        normalized=normalized,
        slice_result=None,
        source_name=source_name,
    )


def resize_state(state: SessionState, target_height: float) -> SessionState:
    """Renormalize to a new target height; any previous slices are dropped."""
    settings = SliceSettings.model_validate(
        {**state.settings.model_dump(), "target_height_mm": target_height}
    )
    normalized = normalize(state.raw_mesh, target_height) if state.raw_mesh is not None else None
    return replace(state, settings=settings, normalized=normalized, slice_result=None)


def configure_state(state: SessionState, **changes) -> SessionState:
    """Update slicing settings; any previous slices are dropped.

    A ``target_height_mm`` change triggers renormalization.
    """
    if "target_height_mm" in changes:
        state = resize_state(state, changes.pop("target_height_mm"))
    merged = {**state.settings.model_dump(), **changes}
    settings = SliceSettings.model_validate(merged)
    return replace(state, settings=settings, slice_result=None)


class SliceJob:
    """A slicing run executing on a background thread."""

    def __init__(
        self,
        state: SessionState,
        on_done: Callable[[SliceJob], None] | None = None,
        progress_callback: Callable[[SliceProgress], None] | None = None,
    ):
        if state.normalized is None:
            raise ValueError("No mesh loaded")
        self.state = state
        self.plan = state.settings.plan()
        self.progress: SliceProgress | None = None

        self._cancel_event = threading.Event()
        self._done_event = threading.Event()
        self._on_done = on_done
        self._progress_callback = progress_callback
        self._result: SliceResult | None = None
        self._error: BaseException | None = None
        self._thread = threading.Thread(target=self._run, name="cardslice-slice", daemon=True)

    def start(self) -> SliceJob:
        self._thread.start()
        return self

    def _update_progress(self, progress: SliceProgress) -> None:
        self.progress = progress
        if self._progress_callback:
            self._progress_callback(progress)

    def _run(self) -> None:
        slicer = MeshSlicer(self.state.normalized, max_workers=self.state.settings.max_workers)
        try:
            self._result = slicer.slice(
                self.plan,
                progress_callback=self._update_progress,
                cancel_event=self._cancel_event,
            )
        except BaseException as e:
            self._error = e
        finally:
            if self._on_done:
                self._on_done(self)
            self._done_event.set()

    def cancel(self) -> None:
        """Request cancellation; the run stops at the next layer boundary."""
        self._cancel_event.set()

    @property
    def cancelled(self) -> bool:
        return self._cancel_event.is_set()

    @property
    def error(self) -> BaseException | None:
        return self._error

    @property
    def outcome(self) -> SliceResult | None:
        """Slice result of a run that finished without error, else None."""
        return self._result

    @property
    def done(self) -> bool:
        return self._done_event.is_set()

    def wait(self, timeout: float | None = None) -> bool:
        """Block until the job finishes. Returns False on timeout."""
        if self._thread is threading.current_thread():
            # Called from the job's own callbacks; it cannot wait on itself
            return self.done
        return self._done_event.wait(timeout)

    def result(self, timeout: float | None = None) -> SliceResult:
        """Wait for and return the slice result.

        Raises:
            CancelledError: If the job was cancelled
            TimeoutError: If the job did not finish in time
        """
        if not self.wait(timeout):
            raise TimeoutError("Slicing job still running")
        if self.cancelled and not isinstance(self._error, CancelledError):
            raise CancelledError("Slicing job was cancelled")
        if self._error is not None:
            raise self._error
        assert self._result is not None
        return self._result


class SlicerSession:
    """Owns one mesh, its settings, and at most one running slicing job.

    A cancelled job stays registered until its thread has unwound, so a new
    run never overlaps the one it replaces.
    """

    def __init__(self, settings: SliceSettings | None = None, strict: bool = False):
        self.strict = strict
        self._state = SessionState(settings=settings or SliceSettings())
        self._job: SliceJob | None = None
        self._lock = threading.RLock()

    @property
    def state(self) -> SessionState:
        """Current immutable snapshot."""
        return self._state

    @property
    def active_job(self) -> SliceJob | None:
        with self._lock:
            if self._job is not None and self._job.done:
                return None
            return self._job

    def _transition(self, new_state: SessionState) -> SessionState:
        with self._lock:
            previous = self._cancel_active()
            self._state = new_state
        # Outside the lock: the old job's commit needs it to unwind
        if previous is not None:
            previous.wait()
        return new_state

    def _cancel_active(self) -> SliceJob | None:
        """Cancel the running job, if any, and return it."""
        job = self.active_job
        if job is not None and not job.cancelled:
            logger.info("Cancelling in-flight slicing job")
            job.cancel()
        return job

    def load_bytes(self, buffer: bytes, source_name: str | None = None) -> SessionState:
        """Load a mesh from raw STL bytes."""
        return self._transition(load_state(self._state, buffer, source_name, strict=self.strict))

    def load_file(self, path: str | Path) -> SessionState:
        """Load a mesh from an STL file."""
        loader = MeshLoader(path, strict=self.strict)
        return self._transition(with_mesh(self._state, loader.mesh, loader.path.name))

    def set_target_height(self, target_height: float) -> SessionState:
        """Change the model height, cancelling and discarding any slices.

        Blocks until an in-flight run has stopped.
        """
        return self._transition(resize_state(self._state, target_height))

    def configure(self, **changes) -> SessionState:
        """Change slicing settings, cancelling and discarding any slices."""
        return self._transition(configure_state(self._state, **changes))

    def start_slice(
        self,
        replace_running: bool = True,
        progress_callback: Callable[[SliceProgress], None] | None = None,
    ) -> SliceJob:
        """Start slicing the current mesh in the background.

        A running job is cancelled and waited for before the new one starts,
        so two runs never overlap.

        Args:
            replace_running: Cancel an active job first. If False, an active
                job makes this call fail instead.
            progress_callback: Called from the worker thread after each layer

        Raises:
            SliceInProgressError: If a job is active and replace_running is False
            ValueError: If no mesh is loaded
        """
        while True:
            with self._lock:
                previous = self.active_job
                if previous is None:
                    if self._state.slice_result is not None:
                        self._state = replace(self._state, slice_result=None)
                    job = SliceJob(self._state, on_done=self._commit, progress_callback=progress_callback)
                    self._job = job
                    return job.start()
                if not replace_running:
                    raise SliceInProgressError("A slicing job is already running")
                self._cancel_active()
            if not previous.wait():
                raise SliceInProgressError("A slicing job cannot replace itself")

    def _commit(self, job: SliceJob) -> None:
        with self._lock:
            if job.cancelled or job.error is not None:
                return
            # Stale if the session moved on while the job ran
            if job.state is not self._state:
                logger.debug("Discarding result of stale slicing job")
                return
            self._state = replace(self._state, slice_result=job.outcome)

    def slice(self, progress_callback: Callable[[SliceProgress], None] | None = None) -> SliceResult:
        """Slice synchronously and return the result."""
        return self.start_slice(progress_callback=progress_callback).result()

    def cancel(self) -> None:
        """Cancel the active slicing job, if any."""
        with self._lock:
            self._cancel_active()

    @property
    def slice_result(self) -> SliceResult | None:
        return self._state.slice_result
