#!/usr/bin/env python3
"""
run_transform.py – Quad-to-quad perspective transform solver

Loads configuration from configs/default.yaml (or a user-specified file),
solves the perspective transform for every quad pair defined in the config,
embeds it as a 4x4 rendering matrix, and writes the matrices and figures to
the results directory.

Usage
-----
    python run_transform.py
    python run_transform.py --config configs/default.yaml
    python run_transform.py --transforms scale keystone
    python run_transform.py --no-visualize
"""

import argparse
import os
import sys
import time

import numpy as np
import yaml

# Ensure the project root is on the Python path when invoked directly
sys.path.insert(0, os.path.dirname(os.path.abspath(__file__)))

from perspective_transform.geometry.errors import HomographyError
from perspective_transform.geometry.homography import (
    as_points,
    reprojection_error,
    solve_homography,
)
from perspective_transform.geometry.matrix4 import embed_as_matrix4
from perspective_transform.utils.image_io import (
    ensure_output_dirs,
    load_image,
    save_matrix,
)
from perspective_transform.utils.visualization import (
    save_quad_mapping,
    save_warped_image,
)
from perspective_transform.warping.warp import warp_onto_quad


# ──────────────────────────────────────────────────────────────────────────────
# Helpers
# ──────────────────────────────────────────────────────────────────────────────

def load_config(path: str) -> dict:
    with open(path, "r") as fh:
        return yaml.safe_load(fh) or {}


def banner(text: str) -> None:
    width = 60
    print("\n" + "─" * width)
    print(f"  {text}")
    print("─" * width)


def format_matrix(m: np.ndarray, indent: str = "    ") -> str:
    return "\n".join(indent + "  ".join(f"{v:>12.6g}" for v in row) for row in m)


# ──────────────────────────────────────────────────────────────────────────────
# Per-transform pipeline
# ──────────────────────────────────────────────────────────────────────────────

def run_transform(tr_cfg: dict, cfg: dict, results_dir: str,
                  visualize: bool) -> dict:
    """Solve one configured transform and return summary metrics."""
    name = tr_cfg["name"]
    banner(f"Transform: {name}")

    metrics = {"transform": name, "status": "skipped", "error": None}

    # ── 1. Solve the homography ───────────────────────────────────────────────
    print("  Stage 1 – Solve homography")
    try:
        src = as_points(tr_cfg.get("src"), "src")
        dst = as_points(tr_cfg.get("dst"), "dst")
        coeffs = solve_homography(src, dst)
    except HomographyError as exc:
        print(f"  [ERROR] {type(exc).__name__}: {exc}")
        print("  Transform skipped")
        return metrics

    err = reprojection_error(coeffs, src, dst)
    metrics["status"] = "ok"
    metrics["error"] = err
    print("    Coefficients (a1 a2 a3 b1 b2 b3 c1 c2 c3):")
    print("    " + " ".join(f"{v:.6g}" for v in coeffs.as_tuple()))
    print(f"    Max reprojection error: {err:.3e}")

    # ── 2. Embed as a 4x4 rendering matrix ───────────────────────────────────
    print("  Stage 2 – Embed as 4x4 matrix")
    matrix = embed_as_matrix4(coeffs)
    print(format_matrix(matrix.to_numpy()))
    save_matrix(np.asarray(coeffs.as_tuple()), name, "coefficients.txt", results_dir)
    save_matrix(matrix.to_numpy(), name, "matrix4.txt", results_dir)
    print(f"  Saved matrices → {results_dir}/{name}/")

    # ── 3. Figures ───────────────────────────────────────────────────────────
    if visualize:
        v_cfg = cfg.get("visualization") or {}
        dpi = v_cfg.get("dpi", 150)
        print("  Stage 3 – Visualization")
        save_quad_mapping(coeffs, src, dst, name, results_dir,
                          grid_lines=v_cfg.get("grid_lines", 10), dpi=dpi)

        if tr_cfg.get("image"):
            img = load_image(tr_cfg["image"])
            out_size = tr_cfg.get("output_size")
            shape = (out_size[1], out_size[0]) if out_size else None
            warped = warp_onto_quad(img, dst, shape)
            save_warped_image(img, warped, dst, name, results_dir, dpi=dpi)
            print(f"  Saved warped image → {results_dir}/{name}/warped.jpg")

    return metrics


# ──────────────────────────────────────────────────────────────────────────────
# Entry point
# ──────────────────────────────────────────────────────────────────────────────

def parse_args(argv=None):
    p = argparse.ArgumentParser(
        description="Solve quad-to-quad perspective transforms as 4x4 matrices"
    )
    p.add_argument(
        "--config", default="configs/default.yaml",
        help="Path to YAML configuration file (default: configs/default.yaml)",
    )
    p.add_argument(
        "--transforms", nargs="*", default=None,
        help="Subset of transform names to solve (default: all in config)",
    )
    p.add_argument(
        "--no-visualize", action="store_true",
        help="Skip figure generation and image warping",
    )
    return p.parse_args(argv)


def main(argv=None):
    args = parse_args(argv)

    # Load configuration
    if not os.path.exists(args.config):
        print(f"[ERROR] Config file not found: {args.config}")
        sys.exit(1)
    cfg = load_config(args.config)

    results_dir = cfg.get("results_dir", "results")
    transforms = cfg.get("transforms") or []

    # Optionally restrict to a subset of transforms
    if args.transforms:
        transforms = [t for t in transforms if t["name"] in args.transforms]
        if not transforms:
            print(f"[ERROR] No matching transforms found for: {args.transforms}")
            sys.exit(1)

    visualize = not args.no_visualize

    # Validate that image files exist
    if visualize:
        for tr in transforms:
            if tr.get("image") and not os.path.exists(tr["image"]):
                print(f"[ERROR] Image not found: {tr['image']}")
                sys.exit(1)

    # Create output directories
    ensure_output_dirs([t["name"] for t in transforms], base=results_dir)

    banner("Perspective Transform Solver")
    print(f"  Config    : {args.config}")
    print(f"  Transforms: {[t['name'] for t in transforms]}")
    print(f"  Figures   : {'enabled' if visualize else 'disabled'}")
    print(f"  Output    : {results_dir}/")

    t0 = time.time()
    all_metrics = []

    for tr in transforms:
        metrics = run_transform(tr, cfg, results_dir, visualize)
        all_metrics.append(metrics)

    # ── Summary table ──────────────────────────────────────────────────────
    banner("Results Summary")
    header = f"{'Transform':<16} {'Status':>8} {'Max error':>12}"
    print(header)
    print("─" * len(header))
    for m in all_metrics:
        err = f"{m['error']:.3e}" if m["error"] is not None else "–"
        print(f"{m['transform']:<16} {m['status']:>8} {err:>12}")

    elapsed = time.time() - t0
    print(f"\nSolved {sum(m['status'] == 'ok' for m in all_metrics)}"
          f"/{len(all_metrics)} transforms in {elapsed:.2f}s")
    print(f"Results saved to: {os.path.abspath(results_dir)}/")
    return all_metrics


if __name__ == "__main__":
    main()
