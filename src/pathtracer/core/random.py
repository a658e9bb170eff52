"""PCG hash random number source for the path tracer.

The generator is a single multiply/xor/shift hash over a 32-bit state: hashing
the state produces both the output and the next state. Each pixel derives its
own state from its index and the frame seed, so no two pixels share a sequence
and no synchronization is needed between parallel iterations.

This is not a cryptographic generator. Its contract is a well-distributed,
fully deterministic sequence for a given seed, which makes renders
reproducible when the seed is controlled by the caller.

The host-side helpers (pcg_hash_host, mix_frame_seed) compute the same hash in
plain Python integers for seeding kernels.
"""

import taichi as ti
import taichi.math as tm

from src.pathtracer.core.ray import vec3

U32_MASK = 0xFFFFFFFF

# PCG hash constants
PCG_MULTIPLIER = 747796405
PCG_INCREMENT = 2891336453
PCG_WORD_MULTIPLIER = 277803737

# 2891336453 does not fit a signed 32-bit literal; this is the same bit
# pattern, reinterpreted as u32 inside kernels.
_PCG_INCREMENT_I32 = PCG_INCREMENT - (1 << 32)

# Scale for turning the top 24 bits of a u32 into a float in [0, 1)
_INV_2_POW_24 = 1.0 / 16777216.0


@ti.func
def pcg_hash(value: ti.u32) -> ti.u32:
    """Hash a 32-bit value with the PCG output permutation.

    Args:
        value: The input state.

    Returns:
        The hashed value, also usable as the next state.
    """
    state = value * ti.cast(PCG_MULTIPLIER, ti.u32) + ti.cast(_PCG_INCREMENT_I32, ti.u32)
    word = ((state >> ((state >> ti.cast(28, ti.u32)) + ti.cast(4, ti.u32))) ^ state) * ti.cast(
        PCG_WORD_MULTIPLIER, ti.u32
    )
    return (word >> ti.cast(22, ti.u32)) ^ word


@ti.func
def random_float(seed: ti.u32):
    """Advance the seed and return a uniform float in [0, 1).

    Only the top 24 bits are used so the float conversion is exact and
    never rounds up to 1.0.

    Args:
        seed: The current state.

    Returns:
        A tuple (value, next_seed).
    """
    next_seed = pcg_hash(seed)
    value = ti.cast(next_seed >> ti.cast(8, ti.u32), ti.f32) * _INV_2_POW_24
    return value, next_seed


@ti.func
def random_signed(seed: ti.u32):
    """Advance the seed and return a uniform float in [-1, 1).

    Returns:
        A tuple (value, next_seed).
    """
    value, next_seed = random_float(seed)
    return value * 2.0 - 1.0, next_seed


@ti.func
def random_unit_vector(seed: ti.u32):
    """Random direction from three signed uniforms, normalized.

    The distribution is not exactly uniform on the sphere (it is biased toward
    the cube diagonals); bounce perturbation only needs a cheap, well spread
    direction. A (vanishingly unlikely) zero vector comes back as zero.

    Returns:
        A tuple (direction, next_seed).
    """
    x, seed = random_signed(seed)
    y, seed = random_signed(seed)
    z, seed = random_signed(seed)
    v = vec3(x, y, z)
    result = vec3(0.0, 0.0, 0.0)
    len_sq = tm.dot(v, v)
    if len_sq > 1e-16:
        result = v / ti.sqrt(len_sq)
    return result, seed


@ti.func
def pixel_seed(pixel_index: ti.i32, frame_seed: ti.u32) -> ti.u32:
    """Derive the starting state for one pixel in one frame.

    Args:
        pixel_index: Row-major pixel index (x + y * width).
        frame_seed: Per-frame seed from mix_frame_seed.

    Returns:
        The pixel's initial RNG state.
    """
    return pcg_hash(ti.cast(pixel_index, ti.u32) ^ pcg_hash(frame_seed))


# =============================================================================
# Host-side seeding
# =============================================================================


def pcg_hash_host(value: int) -> int:
    """Python-side twin of pcg_hash, operating on ints masked to 32 bits."""
    state = (value * PCG_MULTIPLIER + PCG_INCREMENT) & U32_MASK
    word = (((state >> ((state >> 28) + 4)) ^ state) * PCG_WORD_MULTIPLIER) & U32_MASK
    return (word >> 22) ^ word


def mix_frame_seed(seed: int, pass_index: int) -> int:
    """Combine the user seed and the render pass counter into a frame seed.

    Args:
        seed: The user-controlled base seed.
        pass_index: Number of render passes issued so far.

    Returns:
        A 32-bit frame seed.
    """
    return pcg_hash_host((seed & U32_MASK) ^ pcg_hash_host(pass_index & U32_MASK))
