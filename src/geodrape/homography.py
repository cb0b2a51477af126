"""
homography.py

Closed-form 3x3 projective algebra: the four-point correspondence solver
that carries an image rectangle onto an arbitrary quadrilateral, and the
embedding of the result into a 4x4 matrix a 3-D capable rendering surface
can consume. All functions are pure and work on small numpy arrays.

Public functions:
- `adjugate(m)` -> 3x3 transpose of the cofactor matrix
- `multiply_matrix(a, b)`, `multiply_vector(m, v)`, `scale_matrix(s, m)`
- `basis_to_points(x1, y1, ..., x4, y4)` -> 3x3
- `general_projection(src, dst)` -> 3x3 normalized so m[2, 2] == 1
- `general_projection_flat(x1s, y1s, x1d, y1d, ...)` -> 3x3
- `apply_projection(m, x, y)` -> (x', y')
- `to_render_matrix(m, supports_3d=True)` -> length-16 column-major 4x4
- `from_render_matrix(r)` -> 3x3
- `matrix3d_string(r)` -> CSS ``matrix3d(...)`` text
- `is_affine(m, tol)` -> bool

Source and destination corners must be given in the same cyclic order.
Nothing here checks that; a mismatched order yields a finite but
self-intersecting transform.

See http://franklinta.com/2014/09/08/computing-css-matrix3d-transforms/
"""
from typing import Sequence, Tuple

import numpy as np

from geodrape.config import DEGENERATE_EPS, AFFINE_TOL
from geodrape.errors import DegenerateGeometryError, UnsupportedRenderingCapability

# Hadamard ratio |det(m)| / prod(row norms) below which m is treated as singular.
# The ratio does not change when a row is rescaled, so zoom level has no effect.
SINGULAR_RATIO = 1e-10


def adjugate(m) -> np.ndarray:
    """Return the adjugate (classical adjoint) of a 3x3 matrix.

    Proportional to the inverse; used instead of it because the final
    projection is normalized by a scalar anyway, so the determinant division
    never has to happen here.
    """
    a = np.asarray(m, dtype=float).ravel()
    return np.array([
        [a[4] * a[8] - a[5] * a[7], a[2] * a[7] - a[1] * a[8], a[1] * a[5] - a[2] * a[4]],
        [a[5] * a[6] - a[3] * a[8], a[0] * a[8] - a[2] * a[6], a[2] * a[3] - a[0] * a[5]],
        [a[3] * a[7] - a[4] * a[6], a[1] * a[6] - a[0] * a[7], a[0] * a[4] - a[1] * a[3]],
    ])


def multiply_matrix(a, b) -> np.ndarray:
    """Multiply two 3x3 matrices."""
    return np.asarray(a, dtype=float).reshape(3, 3) @ np.asarray(b, dtype=float).reshape(3, 3)


def multiply_vector(m, v) -> np.ndarray:
    """Multiply a 3x3 matrix and a 3-vector."""
    return np.asarray(m, dtype=float).reshape(3, 3) @ np.asarray(v, dtype=float).reshape(3)


def scale_matrix(s: float, m) -> np.ndarray:
    """Multiply a scalar and a 3x3 matrix."""
    return float(s) * np.asarray(m, dtype=float).reshape(3, 3)


def basis_to_points(x1, y1, x2, y2, x3, y3, x4, y4) -> np.ndarray:
    """Matrix mapping the homogeneous standard basis onto three points.

    The first three points receive e1, e2, e3 and the fourth receives a
    scaled (1, 1, 1).
    """
    m = np.array([
        [x1, x2, x3],
        [y1, y2, y3],
        [1.0, 1.0, 1.0],
    ], dtype=float)
    v = multiply_vector(adjugate(m), (x4, y4, 1.0))
    return multiply_matrix(m, np.diag(v))


def _check_finite_nonsingular(m: np.ndarray) -> None:
    if not np.all(np.isfinite(m)):
        raise DegenerateGeometryError('projection has non-finite entries')
    row_norms = np.linalg.norm(m, axis=1)
    if np.any(row_norms == 0.0):
        raise DegenerateGeometryError('projection has an all-zero row')
    ratio = abs(np.linalg.det(m)) / float(np.prod(row_norms))
    if ratio < SINGULAR_RATIO:
        raise DegenerateGeometryError(f'projection is singular (hadamard ratio {ratio:.3g})')


def general_projection(src: Sequence[Tuple[float, float]],
                       dst: Sequence[Tuple[float, float]]) -> np.ndarray:
    """Projective transform carrying four source points onto four destinations.

    Parameters:
    - src: four (x, y) pairs, e.g. the corners of the image in pixels
    - dst: four (x, y) pairs in the same cyclic order as `src`

    Returns the unique 3x3 matrix with m[2, 2] == 1.

    Raises `DegenerateGeometryError` when the normalizing divisor is within
    machine epsilon of zero, an entry is not finite, or the result is
    singular (three of the points collinear).
    """
    src = np.asarray(src, dtype=float).reshape(4, 2)
    dst = np.asarray(dst, dtype=float).reshape(4, 2)
    s = basis_to_points(*src.ravel())
    d = basis_to_points(*dst.ravel())
    m = multiply_matrix(d, adjugate(s))
    divisor = m[2, 2]
    if not np.isfinite(divisor) or abs(divisor) <= DEGENERATE_EPS:
        raise DegenerateGeometryError(f'normalizing divisor is {divisor!r}', divisor=divisor)
    # Normalize to the unique matrix with m[2, 2] == 1.
    m = scale_matrix(1.0 / divisor, m)
    _check_finite_nonsingular(m)
    return m


def general_projection_flat(x1s, y1s, x1d, y1d,
                            x2s, y2s, x2d, y2d,
                            x3s, y3s, x3d, y3d,
                            x4s, y4s, x4d, y4d) -> np.ndarray:
    """Sixteen-scalar form of `general_projection` (source, destination per corner)."""
    return general_projection(
        [(x1s, y1s), (x2s, y2s), (x3s, y3s), (x4s, y4s)],
        [(x1d, y1d), (x2d, y2d), (x3d, y3d), (x4d, y4d)],
    )


def apply_projection(m, x: float, y: float) -> Tuple[float, float]:
    """Map (x, y) through `m` with homogeneous division."""
    u, v, w = multiply_vector(m, (x, y, 1.0))
    return float(u / w), float(v / w)


def to_render_matrix(m, supports_3d: bool = True) -> np.ndarray:
    """Embed a 2-D projective matrix into a 4x4 one acting as identity on z.

    The result is a flat length-16 array in the column-major order CSS
    ``matrix3d`` expects. Raises `UnsupportedRenderingCapability` when the
    surface cannot apply 3-D transforms.
    """
    if not supports_3d:
        raise UnsupportedRenderingCapability(
            'rendering surface must support 3D transforms to draw a warped image')
    a = np.asarray(m, dtype=float).ravel()
    return np.array([
        a[0], a[3], 0.0, a[6],
        a[1], a[4], 0.0, a[7],
        0.0, 0.0, 1.0, 0.0,
        a[2], a[5], 0.0, a[8],
    ])


def from_render_matrix(r) -> np.ndarray:
    """Recover the 3x3 matrix embedded by `to_render_matrix`."""
    a = np.asarray(r, dtype=float).ravel()
    return np.array([
        [a[0], a[4], a[12]],
        [a[1], a[5], a[13]],
        [a[3], a[7], a[15]],
    ])


def matrix3d_string(r) -> str:
    """CSS ``matrix3d(...)`` text for a length-16 render matrix."""
    return 'matrix3d(' + ','.join(repr(float(v)) for v in np.asarray(r).ravel()) + ')'


def is_affine(m, tol: float = AFFINE_TOL) -> bool:
    """True when the projective-distortion entries m[2, 0] and m[2, 1] vanish."""
    a = np.asarray(m, dtype=float).reshape(3, 3)
    return bool(abs(a[2, 0]) <= tol and abs(a[2, 1]) <= tol)
