"""
Image warping through a perspective transform.

Inverse warping: every output pixel is mapped back through H⁻¹ and the
source image is sampled with bilinear interpolation.  Pixels that map
outside the source image are left as zero (black).
"""

import numpy as np

from perspective_transform.geometry.homography import (
    HomographyCoefficients,
    as_points,
    solve_homography,
)


def image_corners(img: np.ndarray) -> np.ndarray:
    """Return the 4 x 2 corners (0,0), (w,0), (w,h), (0,h) of *img*."""
    h, w = img.shape[:2]
    return np.array([[0, 0], [w, 0], [w, h], [0, h]], dtype=float)


def warp_image(img: np.ndarray, H, output_shape: tuple) -> np.ndarray:
    """Warp *img* into a new canvas using inverse homography mapping.

    Parameters
    ----------
    img : np.ndarray
        H x W or H x W x C source image.
    H : np.ndarray or HomographyCoefficients
        3 x 3 homography mapping *img* coordinates to output coordinates.
    output_shape : tuple of (int, int)
        (height, width) of the destination canvas.

    Returns
    -------
    np.ndarray
        Warped image with the same dtype and channel count as *img*.
    """
    if isinstance(H, HomographyCoefficients):
        H = H.as_matrix()
    h_out, w_out = output_shape
    H_inv = np.linalg.inv(np.asarray(H, dtype=float))

    ys, xs = np.mgrid[0:h_out, 0:w_out]
    p_out = np.stack([xs.ravel(), ys.ravel(), np.ones(xs.size)]).astype(float)
    p_in = H_inv @ p_out

    with np.errstate(divide="ignore", invalid="ignore"):
        x_in = p_in[0] / p_in[2]
        y_in = p_in[1] / p_in[2]

    h_in, w_in = img.shape[:2]
    valid = ((x_in >= 0) & (x_in <= w_in - 1) &
             (y_in >= 0) & (y_in <= h_in - 1))

    src = img.astype(float)
    if src.ndim == 2:
        src = src[:, :, np.newaxis]
    warped = np.zeros((h_out * w_out, src.shape[2]), dtype=float)

    x_v, y_v = x_in[valid], y_in[valid]
    x0 = x_v.astype(int)
    y0 = y_v.astype(int)
    # Neighbours clamp at the last row and column
    x1 = np.minimum(x0 + 1, w_in - 1)
    y1 = np.minimum(y0 + 1, h_in - 1)
    dx = (x_v - x0)[:, np.newaxis]
    dy = (y_v - y0)[:, np.newaxis]

    warped[valid] = (
        src[y0, x0] * (1 - dx) * (1 - dy) +
        src[y0, x1] *      dx  * (1 - dy) +
        src[y1, x0] * (1 - dx) *      dy  +
        src[y1, x1] *      dx  *      dy
    )

    warped = warped.reshape(h_out, w_out, src.shape[2])
    if img.ndim == 2:
        warped = warped[:, :, 0]
    if np.issubdtype(img.dtype, np.integer):
        info = np.iinfo(img.dtype)
        warped = np.clip(np.rint(warped), info.min, info.max)
    return warped.astype(img.dtype)


def warp_onto_quad(img: np.ndarray, dst, output_shape: tuple = None) -> np.ndarray:
    """Warp the whole of *img* onto the destination quadrilateral *dst*.

    The corners of *img* (clockwise from the top-left) map to ``dst[0..3]``.
    When *output_shape* is omitted the canvas is sized to hold *dst*.
    """
    H = solve_homography(image_corners(img), dst)
    if output_shape is None:
        quad = as_points(dst, "dst")
        output_shape = (max(1, int(np.ceil(quad[:, 1].max()))),
                        max(1, int(np.ceil(quad[:, 0].max()))))
    print(f"  Canvas size: {output_shape[1]} x {output_shape[0]} px")
    return warp_image(img, H, output_shape)
