"""Ray-triangle intersection (Moller-Trumbore) with smooth normals.

The Moller-Trumbore test solves

    origin + t * direction = (1 - u - v) * v0 + u * v1 + v * v2

for (t, u, v) directly from the two edge vectors, without first computing the
triangle's plane. A hit requires u in [0, 1], v >= 0, u + v <= 1 and
t > TRIANGLE_EPSILON; rays (near) parallel to the triangle plane and
zero-area triangles both give |det| < TRIANGLE_EPSILON and are misses.

Shading normals are interpolated from the three vertex normals with the
barycentric weights, giving smooth (Phong) shading across a mesh.
"""

import taichi as ti
import taichi.math as tm

from src.pathtracer.core.ray import safe_normalize

vec3 = tm.vec3

TRIANGLE_EPSILON = 1e-8


@ti.func
def hit_triangle(ray_origin: vec3, ray_direction: vec3, v0: vec3, v1: vec3, v2: vec3):
    """Intersect a ray with a single triangle.

    Args:
        ray_origin: The starting point of the ray.
        ray_direction: The ray direction.
        v0: First vertex.
        v1: Second vertex.
        v2: Third vertex.

    Returns:
        A tuple (hit, t, u, v) where u and v are the barycentric weights of
        v1 and v2 (the weight of v0 is 1 - u - v). Values other than hit are
        only meaningful when hit == 1.
    """
    edge1 = v1 - v0
    edge2 = v2 - v0

    p = tm.cross(ray_direction, edge2)
    det = tm.dot(edge1, p)

    did_hit = 0
    t = 0.0
    u = 0.0
    v = 0.0

    if ti.abs(det) >= TRIANGLE_EPSILON:
        inv_det = 1.0 / det
        s = ray_origin - v0
        u = tm.dot(s, p) * inv_det
        if u >= 0.0 and u <= 1.0:
            q = tm.cross(s, edge1)
            v = tm.dot(ray_direction, q) * inv_det
            if v >= 0.0 and u + v <= 1.0:
                t = tm.dot(edge2, q) * inv_det
                if t > TRIANGLE_EPSILON:
                    did_hit = 1

    return did_hit, t, u, v


@ti.func
def interpolate_normal(n0: vec3, n1: vec3, n2: vec3, u: ti.f32, v: ti.f32) -> vec3:
    """Blend vertex normals with barycentric weights and re-normalize.

    Falls back to n0 when the blend cancels out (opposed vertex normals).
    """
    blended = n0 * (1.0 - u - v) + n1 * u + n2 * v
    return safe_normalize(blended, n0)
