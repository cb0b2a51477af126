"""Exceptions raised inside the draping engine.

None of these escape `ProjectiveOverlay`: the overlay catches them, logs,
and keeps its last good placement.

A mismatched cyclic order between source and destination corners is not
detected at all. `general_projection` returns a valid but self-intersecting
transform in that case; defending against it would mean assuming a winding
convention the caller may not share.
"""


class DrapeError(Exception):
    """Base class for draping errors."""
    pass


class DegenerateGeometryError(DrapeError):
    """The projective transform is undefined for this quad.

    Raised when the normalizing divisor is (numerically) zero or a computed
    entry is not finite, e.g. when three corners are collinear.
    """

    def __init__(self, message, divisor=None):
        super().__init__(message)
        self.divisor = divisor


class UnsupportedRenderingCapability(DrapeError):
    """The rendering surface cannot apply a 3-D (matrix3d) transform."""
    pass
