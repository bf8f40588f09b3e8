"""
4x4 homogeneous transforms for rendering.

``Matrix4`` follows the renderer convention: ``set`` takes its sixteen
arguments in row-major order while ``elements`` is stored column-major.
A solved homography is embedded so that it acts on x and y and leaves z
untouched, letting a 3D mesh keep its depth while its plane is warped.
"""

import numpy as np

from perspective_transform.geometry.homography import (
    HomographyCoefficients,
    solve_homography,
)


class Matrix4:
    """A 4x4 real matrix, initialised to the identity."""

    def __init__(self):
        self.elements = np.eye(4).ravel(order="F")

    def set(self, *values) -> "Matrix4":
        """Set all sixteen entries from row-major arguments."""
        if len(values) != 16:
            raise ValueError(f"Matrix4.set expects 16 values, got {len(values)}")
        self.elements = np.array(values, dtype=float).reshape(4, 4).ravel(order="F")
        return self

    def identity(self) -> "Matrix4":
        self.elements = np.eye(4).ravel(order="F")
        return self

    def copy(self) -> "Matrix4":
        return Matrix4().set(*self.to_numpy().ravel())

    def get(self, row: int, col: int) -> float:
        return float(self.elements[col * 4 + row])

    def to_numpy(self) -> np.ndarray:
        """Row-major 4 x 4 array."""
        return self.elements.reshape(4, 4, order="F").copy()

    def multiply(self, other: "Matrix4") -> "Matrix4":
        """Post-multiply in place: ``self = self @ other``."""
        product = self.to_numpy() @ other.to_numpy()
        return self.set(*product.ravel())

    def apply_to_point(self, x: float, y: float, z: float) -> tuple:
        """Transform ``(x, y, z, 1)`` and divide by the resulting w."""
        out = self.to_numpy() @ np.array([x, y, z, 1.0])
        return tuple(float(v) for v in out[:3] / out[3])

    def __eq__(self, other) -> bool:
        if not isinstance(other, Matrix4):
            return NotImplemented
        return bool(np.array_equal(self.elements, other.elements))

    def __repr__(self) -> str:
        rows = ", ".join(str(r) for r in self.to_numpy().tolist())
        return f"Matrix4({rows})"


def embed_as_matrix4(coeffs: HomographyCoefficients) -> Matrix4:
    """Splice a 2D homography into a 4x4 matrix with z passed through.

    Rows 0, 1 and 3 carry the homography's a, b and c rows with a zero in
    the z column; row 2 is the identity row for z.
    """
    a1, a2, a3, b1, b2, b3, c1, c2, c3 = coeffs.as_tuple()
    return Matrix4().set(
        a1, a2, 0, a3,
        b1, b2, 0, b3,
        0,  0,  1, 0,
        c1, c2, 0, c3,
    )


def get_perspective_transform(src, dst) -> Matrix4:
    """4x4 transform that warps quad *src* onto quad *dst* in the xy plane."""
    return embed_as_matrix4(solve_homography(src, dst))
