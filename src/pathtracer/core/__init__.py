"""Core rendering module.

Components:
    random: PCG hash random numbers and per-pixel seeding
    ray: Vector helpers shared by the intersection routines and the tracer
    renderer: The path tracing kernel and its accumulation buffers
    progressive: Host-side frame loop (viewport, input, edits, timing)

All per-pixel work runs in Taichi kernels, one parallel iteration per pixel.
"""

from .random import mix_frame_seed, pcg_hash, pcg_hash_host, pixel_seed, random_float
from .ray import (
    RAY_EPSILON,
    lerp,
    offset_ray_origin,
    ray_at,
    reflect,
    safe_inverse,
    safe_normalize,
    smoothstep,
    vec3,
    vec4,
)

# Note: renderer and progressive are NOT imported here to avoid circular imports.
# Import them from src.pathtracer.core.renderer / src.pathtracer.core.progressive.

__all__ = [
    "pcg_hash",
    "pcg_hash_host",
    "pixel_seed",
    "mix_frame_seed",
    "random_float",
    "RAY_EPSILON",
    "ray_at",
    "reflect",
    "safe_normalize",
    "safe_inverse",
    "offset_ray_origin",
    "smoothstep",
    "lerp",
    "vec3",
    "vec4",
]
