"""Vector utilities shared by the intersection routines and the path tracer.

Everything here is a Taichi function (@ti.func) and is inlined into the
calling kernel. Rays are passed around as separate origin / direction vectors
rather than a struct, which keeps the bounce loop free of struct copies.

Example:
    >>> import taichi as ti
    >>> ti.init(arch=ti.cpu)
    >>> from src.pathtracer.core.ray import ray_at, reflect, vec3
    >>> # Use within a Taichi kernel:
    >>> # point = ray_at(origin, direction, 2.5)
"""

import taichi as ti
import taichi.math as tm

# Type aliases using Taichi's math module
vec3 = tm.vec3
vec4 = tm.vec4

# Offset applied along the surface normal when spawning a bounce ray
RAY_EPSILON = 1e-4

# Stand-in for 1/0 when inverting a direction component
INV_DIRECTION_LIMIT = 1e30


@ti.func
def ray_at(origin: vec3, direction: vec3, t: ti.f32) -> vec3:
    """Compute the point along a ray at parameter t.

    Args:
        origin: The ray origin.
        direction: The ray direction.
        t: The ray parameter. Positive values are in front of the origin.

    Returns:
        origin + t * direction.
    """
    return origin + t * direction


@ti.func
def reflect(incident: vec3, normal: vec3) -> vec3:
    """Reflect an incident vector about a normal.

    Args:
        incident: The incoming direction (pointing toward the surface).
        normal: The reflection normal. Should be unit length.

    Returns:
        The reflected direction.
    """
    return incident - 2.0 * tm.dot(incident, normal) * normal


@ti.func
def safe_normalize(v: vec3, fallback: vec3) -> vec3:
    """Normalize v, or return fallback when v has (near) zero length.

    tm.normalize divides by the length and yields NaNs for a zero vector,
    which would then poison the whole accumulation slot.
    """
    result = fallback
    len_sq = tm.dot(v, v)
    if len_sq > 1e-16:
        result = v / ti.sqrt(len_sq)
    return result


@ti.func
def safe_inverse(direction: vec3) -> vec3:
    """Component-wise 1/direction with zero components mapped to +-1e30.

    Used by the AABB slab test. Keeping the result finite avoids 0 * inf
    NaNs when the ray origin lies exactly on a slab plane.
    """
    inv = vec3(0.0, 0.0, 0.0)
    for i in ti.static(range(3)):
        if ti.abs(direction[i]) < 1e-12:
            inv[i] = ti.select(direction[i] >= 0.0, INV_DIRECTION_LIMIT, -INV_DIRECTION_LIMIT)
        else:
            inv[i] = 1.0 / direction[i]
    return inv


@ti.func
def offset_ray_origin(point: vec3, normal: vec3) -> vec3:
    """Push a hit point off the surface along its normal.

    Args:
        point: The intersection point.
        normal: The surface normal at the point.

    Returns:
        point + RAY_EPSILON * normal.
    """
    return point + RAY_EPSILON * normal


@ti.func
def smoothstep(edge0: ti.f32, edge1: ti.f32, x: ti.f32) -> ti.f32:
    """Hermite interpolation between 0 and 1 for x in [edge0, edge1].

    Returns 0 below edge0 and 1 at or above edge1.
    """
    t = tm.clamp((x - edge0) / (edge1 - edge0), 0.0, 1.0)
    return t * t * (3.0 - 2.0 * t)


@ti.func
def lerp(a: vec3, b: vec3, t: ti.f32) -> vec3:
    """Linear interpolation from a to b. Returns a exactly when a == b."""
    return a + (b - a) * t
