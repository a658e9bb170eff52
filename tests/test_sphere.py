"""Unit tests for ray-sphere intersection.

Tests cover:
- Near and far roots for rays hitting from outside
- Misses and tangent rays
- Rays starting inside the sphere
- Zero-length directions
"""

import pytest
import taichi as ti


def _intersect(origin, direction, center, radius):
    from src.pathtracer.geometry.sphere import hit_sphere, vec3

    hit = ti.field(dtype=ti.i32, shape=())
    t_near = ti.field(dtype=ti.f32, shape=())
    t_far = ti.field(dtype=ti.f32, shape=())

    @ti.kernel
    def test_kernel(o: vec3, d: vec3, c: vec3, r: ti.f32):
        h, tn, tf = hit_sphere(o, d, c, r)
        hit[None] = h
        t_near[None] = tn
        t_far[None] = tf

    test_kernel(vec3(*origin), vec3(*direction), vec3(*center), radius)
    return hit[None], t_near[None], t_far[None]


class TestSphereIntersection:
    """Tests for hit_sphere."""

    def test_half_unit_sphere_from_z2(self):
        """Test the radius-0.5 sphere seen from (0, 0, 2): near 1.5, far 2.5."""
        hit, t_near, t_far = _intersect((0.0, 0.0, 2.0), (0.0, 0.0, -1.0), (0.0, 0.0, 0.0), 0.5)
        assert hit == 1
        assert t_near == pytest.approx(1.5, abs=1e-6)
        assert t_far == pytest.approx(2.5, abs=1e-6)

    def test_unit_sphere_from_z2(self):
        """Test the radius-1 sphere seen from (0, 0, 2): near 1, far 3."""
        hit, t_near, t_far = _intersect((0.0, 0.0, 2.0), (0.0, 0.0, -1.0), (0.0, 0.0, 0.0), 1.0)
        assert hit == 1
        assert t_near == pytest.approx(1.0, abs=1e-6)
        assert t_far == pytest.approx(3.0, abs=1e-6)

    def test_unnormalized_direction(self):
        """Test that distances scale with the direction length."""
        hit, t_near, t_far = _intersect((0.0, 0.0, 2.0), (0.0, 0.0, -2.0), (0.0, 0.0, 0.0), 1.0)
        assert hit == 1
        assert t_near == pytest.approx(0.5, abs=1e-6)
        assert t_far == pytest.approx(1.5, abs=1e-6)

    def test_miss(self):
        """Test a ray passing beside the sphere."""
        hit, _, _ = _intersect((0.0, 2.0, 2.0), (0.0, 0.0, -1.0), (0.0, 0.0, 0.0), 1.0)
        assert hit == 0

    def test_tangent(self):
        """Test a ray grazing the sphere gives equal roots."""
        hit, t_near, t_far = _intersect((0.0, 1.0, 2.0), (0.0, 0.0, -1.0), (0.0, 0.0, 0.0), 1.0)
        assert hit == 1
        assert t_near == pytest.approx(2.0, abs=1e-3)
        assert t_far == pytest.approx(2.0, abs=1e-3)

    def test_origin_inside(self):
        """Test that a ray from inside has a negative near root."""
        hit, t_near, t_far = _intersect((0.0, 0.0, 0.0), (1.0, 0.0, 0.0), (0.0, 0.0, 0.0), 1.0)
        assert hit == 1
        assert t_near == pytest.approx(-1.0, abs=1e-6)
        assert t_far == pytest.approx(1.0, abs=1e-6)

    def test_sphere_behind_origin(self):
        """Test that a sphere behind the ray still solves with negative roots."""
        hit, t_near, t_far = _intersect((0.0, 0.0, 5.0), (0.0, 0.0, 1.0), (0.0, 0.0, 0.0), 1.0)
        assert hit == 1
        assert t_near < 0.0 and t_far < 0.0

    def test_zero_direction_is_miss(self):
        """Test that a zero-length direction never hits."""
        hit, _, _ = _intersect((0.0, 0.0, 0.5), (0.0, 0.0, 0.0), (0.0, 0.0, 0.0), 1.0)
        assert hit == 0


class TestSphereNormal:
    """Tests for sphere_normal."""

    def test_normal_points_outward(self):
        from src.pathtracer.geometry.sphere import sphere_normal, vec3

        result = ti.field(dtype=ti.math.vec3, shape=())

        @ti.kernel
        def test_kernel():
            result[None] = sphere_normal(vec3(1.0, 2.0, 0.0), vec3(1.0, 0.0, 0.0), 2.0)

        test_kernel()
        n = result[None]
        assert abs(n[0]) < 1e-6
        assert abs(n[1] - 1.0) < 1e-6
        assert abs(n[2]) < 1e-6
