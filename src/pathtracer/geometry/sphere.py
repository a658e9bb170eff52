"""Ray-sphere intersection.

The ray-sphere intersection is found by solving

    |origin + t * direction - center|^2 = radius^2

which expands to the quadratic a*t^2 + b*t + c = 0 with

    a = dot(direction, direction)
    b = 2 * dot(origin - center, direction)
    c = dot(origin - center, origin - center) - radius^2

A negative discriminant means the ray misses. Otherwise both roots are
returned, nearest first; the scene only ever shades the near root and the
caller is responsible for rejecting roots at or behind the origin.

Example:
    >>> import taichi as ti
    >>> ti.init(arch=ti.cpu)
    >>> from src.pathtracer.geometry.sphere import hit_sphere, vec3
    >>> # Within a Taichi kernel:
    >>> # hit, t_near, t_far = hit_sphere(origin, direction, center, radius)
"""

import taichi as ti
import taichi.math as tm

# Type alias for 3D vectors using Taichi's math module
vec3 = tm.vec3


@ti.func
def hit_sphere(ray_origin: vec3, ray_direction: vec3, center: vec3, radius: ti.f32):
    """Solve the ray-sphere quadratic.

    Args:
        ray_origin: The starting point of the ray.
        ray_direction: The ray direction (need not be normalized).
        center: The sphere center.
        radius: The sphere radius.

    Returns:
        A tuple (hit, t_near, t_far). hit is 0 when the discriminant is
        negative or the direction has zero length, in which case both
        distances are 0.
    """
    oc = ray_origin - center

    a = tm.dot(ray_direction, ray_direction)
    b = 2.0 * tm.dot(oc, ray_direction)
    c = tm.dot(oc, oc) - radius * radius

    discriminant = b * b - 4.0 * a * c

    did_hit = 0
    t_near = 0.0
    t_far = 0.0

    # A zero-length direction makes a == 0; treat it as a miss
    if discriminant >= 0.0 and a > 0.0:
        sqrt_d = ti.sqrt(discriminant)
        did_hit = 1
        t_near = (-b - sqrt_d) / (2.0 * a)
        t_far = (-b + sqrt_d) / (2.0 * a)

    return did_hit, t_near, t_far


@ti.func
def sphere_normal(point: vec3, center: vec3, radius: ti.f32) -> vec3:
    """Outward unit normal of a sphere at a surface point."""
    return (point - center) / radius
