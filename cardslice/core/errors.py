"""Exception hierarchy for Cardslice."""


class CardsliceError(Exception):
    """Base exception for all Cardslice errors."""


class MalformedInputError(CardsliceError):
    """Mesh buffer is truncated or cannot be parsed."""


class DegenerateMeshError(CardsliceError):
    """Mesh bounding box cannot be normalized (e.g. zero Z extent)."""


class CancelledError(CardsliceError):
    """A slicing run was stopped by the caller before it finished."""


class SliceInProgressError(CardsliceError):
    """A slicing run is already active for this session."""


class EmptyExportError(CardsliceError):
    """There are no layers to export."""
