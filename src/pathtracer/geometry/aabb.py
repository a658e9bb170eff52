"""Axis-aligned bounding boxes.

The slab test is a broad-phase reject for triangle meshes: a mesh's triangles
are only tested when the ray passes through the mesh's box. There is no
hierarchy; each mesh has exactly one box.

compute_aabb runs on the host when a mesh is built or uploaded.
"""

import numpy as np
import numpy.typing as npt
import taichi as ti
import taichi.math as tm

vec3 = tm.vec3


@ti.func
def hit_aabb(
    ray_origin: vec3,
    inv_direction: vec3,
    box_min: vec3,
    box_max: vec3,
    t_limit: ti.f32,
) -> ti.i32:
    """Slab test against an axis-aligned box.

    Computes the entry/exit parameters on each axis and keeps the running
    intersection of the three intervals.

    Args:
        ray_origin: The starting point of the ray, in the box's space.
        inv_direction: Component-wise inverse of the ray direction (see
            core.ray.safe_inverse).
        box_min: Minimum corner.
        box_max: Maximum corner.
        t_limit: Entries at or beyond this distance are rejected (the
            closest hit found so far).

    Returns:
        1 if the ray enters the box in front of the origin and before
        t_limit, or starts inside it; 0 otherwise.
    """
    t1 = (box_min - ray_origin) * inv_direction
    t2 = (box_max - ray_origin) * inv_direction

    t_near = ti.min(t1, t2)
    t_far = ti.max(t1, t2)

    t_enter = ti.max(ti.max(t_near.x, t_near.y), t_near.z)
    t_exit = ti.min(ti.min(t_far.x, t_far.y), t_far.z)

    result = 0
    if t_exit >= ti.max(t_enter, 0.0) and t_enter < t_limit:
        result = 1
    return result


def compute_aabb(
    positions: npt.ArrayLike,
) -> tuple[tuple[float, float, float], tuple[float, float, float]]:
    """Compute the bounding box of a set of vertex positions.

    Args:
        positions: Array-like of shape (N, 3).

    Returns:
        Tuple of (min_corner, max_corner). An empty vertex list gives a
        degenerate box at the origin.

    Raises:
        ValueError: If positions is not of shape (N, 3).
    """
    points = np.asarray(positions, dtype=np.float64)
    if points.size == 0:
        return (0.0, 0.0, 0.0), (0.0, 0.0, 0.0)
    if points.ndim != 2 or points.shape[1] != 3:
        raise ValueError(f"Expected positions of shape (N, 3), got {points.shape}")

    lo = points.min(axis=0)
    hi = points.max(axis=0)
    return (
        (float(lo[0]), float(lo[1]), float(lo[2])),
        (float(hi[0]), float(hi[1]), float(hi[2])),
    )
