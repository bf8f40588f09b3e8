"""
Visualization utilities for solved perspective transforms.

All functions save figures to disk rather than displaying them interactively,
making the module suitable for headless execution.
"""

import os
import numpy as np
import matplotlib
matplotlib.use("Agg")          # non-interactive backend
import matplotlib.pyplot as plt

from perspective_transform.geometry.homography import apply_homography


def _closed(quad: np.ndarray) -> np.ndarray:
    return np.vstack([quad, quad[:1]])


def warped_grid(H, src: np.ndarray, n: int = 10) -> list:
    """Return the lines of an n x n grid spanning the bounding box of *src*,
    each mapped through *H*, as a list of M x 2 arrays."""
    x_min, y_min = src.min(axis=0)
    x_max, y_max = src.max(axis=0)
    t = np.linspace(0.0, 1.0, 50)
    lines = []
    for s in np.linspace(0.0, 1.0, n + 1):
        x = x_min + s * (x_max - x_min)
        y = y_min + s * (y_max - y_min)
        vertical = np.column_stack([np.full_like(t, x), y_min + t * (y_max - y_min)])
        horizontal = np.column_stack([x_min + t * (x_max - x_min), np.full_like(t, y)])
        lines.append(apply_homography(H, vertical))
        lines.append(apply_homography(H, horizontal))
    return lines


def save_quad_mapping(H, src: np.ndarray, dst: np.ndarray, name: str,
                      out_dir: str, grid_lines: int = 10, dpi: int = 150) -> None:
    """Save a side-by-side plot of the source quad and its warped image."""
    fig, axes = plt.subplots(1, 2, figsize=(14, 6))

    x_min, y_min = src.min(axis=0)
    x_max, y_max = src.max(axis=0)
    for s in np.linspace(0.0, 1.0, grid_lines + 1):
        x = x_min + s * (x_max - x_min)
        y = y_min + s * (y_max - y_min)
        axes[0].plot([x, x], [y_min, y_max], color="0.8", linewidth=0.5)
        axes[0].plot([x_min, x_max], [y, y], color="0.8", linewidth=0.5)
    axes[0].plot(*_closed(src).T, "b-", linewidth=2)
    axes[0].set_title(f"{name} – source quad")

    for line in warped_grid(H, src, grid_lines):
        axes[1].plot(line[:, 0], line[:, 1], color="0.8", linewidth=0.5)
    axes[1].plot(*_closed(dst).T, "g-", linewidth=2)
    axes[1].set_title(f"{name} – destination quad")

    for ax, quad in ((axes[0], src), (axes[1], dst)):
        for i, (x, y) in enumerate(quad):
            ax.plot(x, y, "ro", markersize=5)
            ax.text(x, y, f" {i}", color="red", fontsize=9)
        ax.set_aspect("equal")
        ax.invert_yaxis()
        ax.grid(True, alpha=0.3)

    plt.tight_layout()
    plt.savefig(os.path.join(out_dir, name, "quad_mapping.jpg"), dpi=dpi, bbox_inches="tight")
    plt.close()


def save_warped_image(img: np.ndarray, warped: np.ndarray, dst: np.ndarray,
                      name: str, out_dir: str, dpi: int = 150) -> None:
    """Save the input image next to its warp onto *dst*."""
    fig, axes = plt.subplots(1, 2, figsize=(14, 6))

    axes[0].imshow(img); axes[0].set_title(f"{name} – input"); axes[0].axis("off")

    axes[1].imshow(warped)
    axes[1].plot(*_closed(dst).T, "g-", linewidth=1)
    axes[1].set_title(f"{name} – warped onto destination quad"); axes[1].axis("off")

    plt.tight_layout()
    plt.savefig(os.path.join(out_dir, name, "warped.jpg"), dpi=dpi, bbox_inches="tight")
    plt.close()
