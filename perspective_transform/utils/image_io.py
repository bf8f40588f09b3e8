"""
I/O helpers.

Thin wrappers around PIL and numpy for image loading, output directory
management, and writing solved transforms to disk.
"""

import os
import numpy as np
from PIL import Image


def load_image(path: str) -> np.ndarray:
    """Load an image as a uint8 RGB array.

    Parameters
    ----------
    path : str
        File path to the image.

    Returns
    -------
    np.ndarray
        H x W x 3 uint8 array.
    """
    return np.array(Image.open(path).convert("RGB"))


def ensure_output_dirs(names: list, base: str = "results") -> None:
    """Create one output subdirectory per transform name under *base*."""
    for name in names:
        os.makedirs(os.path.join(base, name), exist_ok=True)


def save_matrix(matrix: np.ndarray, name: str, filename: str,
                out_dir: str) -> str:
    """Write *matrix* as whitespace-separated rows and return the file path."""
    path = os.path.join(out_dir, name, filename)
    np.savetxt(path, np.atleast_2d(matrix), fmt="%.12g")
    return path
