"""Geometry module for shape intersection routines.

This module provides the ray-primitive tests used by the scene:

Components:
    sphere: Ray-sphere quadratic (near and far roots)
    triangle: Moller-Trumbore ray-triangle test with smooth normals
    aabb: Slab test and bounding-box computation for mesh culling

The intersection routines are Taichi functions (@ti.func) inlined into the
render kernel. They never raise: degenerate inputs (zero-length directions,
parallel rays, zero-area triangles) are reported as misses.
"""

from .aabb import compute_aabb, hit_aabb
from .sphere import hit_sphere, sphere_normal
from .triangle import TRIANGLE_EPSILON, hit_triangle, interpolate_normal

__all__ = [
    "hit_sphere",
    "sphere_normal",
    "hit_triangle",
    "interpolate_normal",
    "TRIANGLE_EPSILON",
    "hit_aabb",
    "compute_aabb",
]
