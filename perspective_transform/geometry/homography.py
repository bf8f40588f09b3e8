"""
Homography estimation from four point correspondences.

A planar homography (projective transformation) maps one quadrilateral onto
another.  With the bottom-right entry of the 3x3 matrix fixed to 1 the
transform has eight unknowns, and four correspondences give exactly eight
linear equations.  Both point sets are similarity-normalised, the equations
are rewritten in all nine unknowns, and one extra row pins c3 = 1 in the
original frame; that 9x9 system is solved by LU decomposition with partial
pivoting.
"""

from dataclasses import dataclass
from itertools import combinations

import numpy as np
from scipy.linalg import lu_factor, lu_solve

from perspective_transform.geometry.errors import (
    DegenerateConfiguration,
    HomographyError,
    InvalidInputCardinality,
)

# Doubled triangle area (normalised coordinates) below which three points
# count as collinear.
COLLINEAR_TOL = 1e-9

# 2-norm condition number above which the correspondence system counts as
# singular.
MAX_CONDITION = 1e10

# |H[2, 2]| relative to ||H|| below which c3 cannot be normalised to 1.
MIN_SCALE_RATIO = 1e-12


@dataclass(frozen=True)
class Point2D:
    """A point in the plane.

    Attributes:
        x: Horizontal coordinate.
        y: Vertical coordinate.
    """

    x: float
    y: float


@dataclass(frozen=True)
class HomographyCoefficients:
    """The nine entries of a 3x3 homography, normalised so ``c3 == 1``.

    ::

        | a1 a2 a3 |
        | b1 b2 b3 |
        | c1 c2 c3 |
    """

    a1: float
    a2: float
    a3: float
    b1: float
    b2: float
    b3: float
    c1: float
    c2: float
    c3: float = 1.0

    @classmethod
    def from_matrix(cls, H) -> "HomographyCoefficients":
        """Build coefficients from a 3x3 matrix, rescaling so H[2, 2] == 1."""
        H = np.asarray(H, dtype=float)
        if H.shape != (3, 3):
            raise HomographyError(f"expected a 3 x 3 matrix, got shape {H.shape}")
        if abs(H[2, 2]) <= MIN_SCALE_RATIO * np.linalg.norm(H):
            raise DegenerateConfiguration(
                "homography cannot be normalised: H[2, 2] is zero")
        H = H / H[2, 2]
        return cls(*(float(v) for v in H.ravel()))

    @classmethod
    def identity(cls) -> "HomographyCoefficients":
        return cls(1.0, 0.0, 0.0, 0.0, 1.0, 0.0, 0.0, 0.0, 1.0)

    def as_tuple(self) -> tuple:
        return (self.a1, self.a2, self.a3,
                self.b1, self.b2, self.b3,
                self.c1, self.c2, self.c3)

    def as_matrix(self) -> np.ndarray:
        return np.array(self.as_tuple(), dtype=float).reshape(3, 3)

    def transform(self, x: float, y: float) -> tuple:
        """Map ``(x, y)`` through the homography with perspective division.

        Points on the vanishing line (``w == 0``) raise ZeroDivisionError.
        """
        w = self.c1 * x + self.c2 * y + self.c3
        return ((self.a1 * x + self.a2 * y + self.a3) / w,
                (self.b1 * x + self.b2 * y + self.b3) / w)

    def inverse(self) -> "HomographyCoefficients":
        """Coefficients of the inverse mapping, renormalised to ``c3 == 1``."""
        return HomographyCoefficients.from_matrix(np.linalg.inv(self.as_matrix()))

    def transform_inverse(self, x: float, y: float) -> tuple:
        return self.inverse().transform(x, y)


def as_points(points, name: str = "points") -> np.ndarray:
    """Coerce a correspondence set into a 4 x 2 float array.

    Accepts ``Point2D`` objects, ``(x, y)`` pairs, an ``N x 2`` array or a
    flat ``[x0, y0, x1, y1, ...]`` sequence.

    Raises
    ------
    InvalidInputCardinality
        If the set does not hold exactly four points.
    HomographyError
        If the input is not a set of finite 2D coordinates.
    """
    try:
        if not isinstance(points, np.ndarray):
            points = [(p.x, p.y) if isinstance(p, Point2D) else p for p in points]
        arr = np.array(points, dtype=float)
    except (TypeError, ValueError) as exc:
        raise HomographyError(f"{name} must hold numeric (x, y) points") from exc

    if arr.ndim == 1:
        if arr.size % 2:
            raise HomographyError(
                f"{name} holds an odd number of coordinates ({arr.size})")
        arr = arr.reshape(-1, 2)
    if arr.ndim != 2 or arr.shape[1] != 2:
        raise HomographyError(f"{name} must be N x 2, got shape {arr.shape}")
    if arr.shape[0] != 4:
        raise InvalidInputCardinality(
            f"{name} must contain exactly 4 points, got {arr.shape[0]}")
    if not np.all(np.isfinite(arr)):
        raise HomographyError(f"{name} contains non-finite coordinates")
    return arr


def normalize_points(pts: np.ndarray):
    """Translate the centroid to the origin and scale to mean distance sqrt(2).

    Returns
    -------
    norm : np.ndarray
        N x 2 normalised points.
    T : np.ndarray
        3 x 3 similarity such that ``norm ~ T @ [x, y, 1]``.
    """
    centroid = pts.mean(axis=0)
    mean_dist = np.sqrt(((pts - centroid) ** 2).sum(axis=1)).mean()
    scale = np.sqrt(2) / mean_dist if mean_dist > 0 else 1.0
    T = np.array([
        [scale, 0,     -scale * centroid[0]],
        [0,     scale, -scale * centroid[1]],
        [0,     0,      1                  ],
    ], dtype=float)
    return (pts - centroid) * scale, T


def _check_not_collinear(pts: np.ndarray, name: str) -> None:
    for i, j, k in combinations(range(len(pts)), 3):
        u = pts[j] - pts[i]
        v = pts[k] - pts[i]
        if abs(u[0] * v[1] - u[1] * v[0]) < COLLINEAR_TOL:
            raise DegenerateConfiguration(
                f"{name} points {i}, {j}, {k} are collinear or duplicated")


def build_system(src: np.ndarray, dst: np.ndarray):
    """Assemble the 8x8 system ``A @ h = b`` for h = (a1, a2, a3, b1, b2, b3, c1, c2).

    Each correspondence (sx, sy) -> (dx, dy) contributes

        a1*sx + a2*sy + a3 - c1*sx*dx - c2*sy*dx = dx
        b1*sx + b2*sy + b3 - c1*sx*dy - c2*sy*dy = dy
    """
    A = np.zeros((8, 8))
    b = np.zeros(8)
    for i, ((sx, sy), (dx, dy)) in enumerate(zip(src, dst)):
        A[2 * i]     = [sx, sy, 1, 0,  0,  0, -sx * dx, -sy * dx]
        A[2 * i + 1] = [0,  0,  0, sx, sy, 1, -sx * dy, -sy * dy]
        b[2 * i] = dx
        b[2 * i + 1] = dy
    return A, b


def solve_homography(src, dst) -> HomographyCoefficients:
    """Solve the perspective transform mapping ``src[i]`` onto ``dst[i]``.

    Parameters
    ----------
    src, dst
        Four source and four destination points (see :func:`as_points`).

    Returns
    -------
    HomographyCoefficients
        ``(a1, a2, a3, b1, b2, b3, c1, c2, 1)``.

    Raises
    ------
    InvalidInputCardinality
        If either set does not contain exactly four points.
    DegenerateConfiguration
        If three points of either set are collinear (duplicates included) or
        the linear system is singular.
    """
    src = as_points(src, "src")
    dst = as_points(dst, "dst")

    nsrc, T_src = normalize_points(src)
    ndst, T_dst = normalize_points(dst)
    _check_not_collinear(nsrc, "src")
    _check_not_collinear(ndst, "dst")

    A, b = build_system(nsrc, ndst)
    # Homogeneous rows in all nine unknowns, plus one row pinning c3 = 1 in
    # the original frame: H[2, 2] = H_norm[2] . T_src[:, 2].
    pin = np.array([0, 0, 0, 0, 0, 0, T_src[0, 2], T_src[1, 2], 1.0])
    pin_norm = np.linalg.norm(pin)
    M = np.vstack([np.hstack([A, -b[:, np.newaxis]]), pin / pin_norm])
    rhs = np.zeros(9)
    rhs[8] = 1.0 / pin_norm

    cond = np.linalg.cond(M)
    if not np.isfinite(cond) or cond > MAX_CONDITION:
        raise DegenerateConfiguration(
            f"correspondence system is singular (condition number {cond:.3g})")

    H_norm = lu_solve(lu_factor(M), rhs).reshape(3, 3)

    # Undo the normalisation: H = T_dst^-1 @ H_norm @ T_src
    H = np.linalg.inv(T_dst) @ H_norm @ T_src
    coeffs = HomographyCoefficients.from_matrix(H)
    if not np.all(np.isfinite(coeffs.as_tuple())):
        raise DegenerateConfiguration("homography has non-finite coefficients")
    return coeffs


def apply_homography(H, points) -> np.ndarray:
    """Apply a homography to a set of (x, y) coordinates.

    Parameters
    ----------
    H : np.ndarray or HomographyCoefficients
        3 x 3 homography matrix.
    points : array-like
        N x 2 array of (x, y) coordinates.

    Returns
    -------
    np.ndarray
        N x 2 array of transformed (x, y) coordinates.
    """
    if isinstance(H, HomographyCoefficients):
        H = H.as_matrix()
    pts = np.asarray(points, dtype=float).reshape(-1, 2)
    homog = np.hstack([pts, np.ones((pts.shape[0], 1))])

    transformed = homog @ np.asarray(H, dtype=float).T
    return transformed[:, :2] / transformed[:, 2:3]


def reprojection_error(coeffs: HomographyCoefficients, src, dst) -> float:
    """Largest Euclidean distance between ``H(src[i])`` and ``dst[i]``."""
    predicted = apply_homography(coeffs, as_points(src, "src"))
    return float(np.max(np.linalg.norm(predicted - as_points(dst, "dst"), axis=1)))
