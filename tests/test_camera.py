"""Tests for the perspective camera: matrices, ray directions and movement."""

import math

import numpy as np
import pytest


class TestMatrices:
    """Tests for the host-side matrix helpers."""

    def test_perspective_scale_terms(self):
        from src.pathtracer.camera.perspective import perspective_rh

        proj = perspective_rh(math.radians(90.0), 2.0, 0.1, 100.0)
        assert proj[0, 0] == pytest.approx(0.5)
        assert proj[1, 1] == pytest.approx(1.0)
        assert proj[3, 2] == -1.0

    def test_perspective_depth_range(self):
        """Test that the near plane maps to depth 0 and the far plane to 1."""
        from src.pathtracer.camera.perspective import perspective_rh

        proj = perspective_rh(math.radians(45.0), 1.0, 0.1, 100.0)
        near = proj @ np.array([0.0, 0.0, -0.1, 1.0])
        far = proj @ np.array([0.0, 0.0, -100.0, 1.0])
        assert near[2] / near[3] == pytest.approx(0.0, abs=1e-9)
        assert far[2] / far[3] == pytest.approx(1.0)

    def test_look_at(self):
        from src.pathtracer.camera.perspective import WORLD_UP, look_at_rh

        view = look_at_rh([0.0, 0.0, 6.0], [0.0, 0.0, 5.0], WORLD_UP)
        np.testing.assert_allclose(view[0], [1.0, 0.0, 0.0, 0.0])
        np.testing.assert_allclose(view[1], [0.0, 1.0, 0.0, 0.0])
        np.testing.assert_allclose(view[2], [0.0, 0.0, 1.0, -6.0])
        np.testing.assert_allclose(view[3], [0.0, 0.0, 0.0, 1.0])

    def test_axis_angle(self):
        from src.pathtracer.camera.perspective import axis_angle_matrix

        rot = axis_angle_matrix([0.0, 0.0, 2.0], math.pi / 2.0)
        np.testing.assert_allclose(rot @ [1.0, 0.0, 0.0], [0.0, 1.0, 0.0], atol=1e-12)

    def test_camera_matrices_are_inverses(self, make_camera):
        camera = make_camera(16, 8)
        np.testing.assert_allclose(camera.view @ camera.inverse_view, np.identity(4), atol=1e-12)
        np.testing.assert_allclose(
            camera.projection @ camera.inverse_projection, np.identity(4), atol=1e-9
        )


class TestConstruction:
    """Tests for constructor validation."""

    @pytest.mark.parametrize(
        "kwargs",
        [
            {"vertical_fov": 0.0},
            {"vertical_fov": 180.0},
            {"near_clip": 0.0},
            {"near_clip": 10.0, "far_clip": 5.0},
            {"forward": (0.0, 0.0, 0.0)},
            {"max_width": 0},
        ],
    )
    def test_invalid_arguments(self, make_camera, kwargs):
        with pytest.raises(ValueError):
            make_camera(**kwargs)

    def test_forward_is_normalized(self, make_camera):
        camera = make_camera(forward=(0.0, 0.0, -3.0))
        np.testing.assert_allclose(camera.forward, [0.0, 0.0, -1.0])


class TestRayDirections:
    """Tests for the cached primary ray directions."""

    def test_center_ray_is_forward(self, make_camera):
        camera = make_camera(9, 9)
        rays = camera.get_ray_directions_numpy()
        assert rays.shape == (9, 9, 3)
        np.testing.assert_allclose(rays[4, 4], [0.0, 0.0, -1.0], atol=1e-6)

    def test_rays_are_unit_length(self, make_camera):
        camera = make_camera(12, 7)
        norms = np.linalg.norm(camera.get_ray_directions_numpy(), axis=2)
        np.testing.assert_allclose(norms, 1.0, atol=1e-5)

    def test_row_zero_is_top(self, make_camera):
        camera = make_camera(8, 8)
        rays = camera.get_ray_directions_numpy()
        assert rays[0, 0, 1] > 0.0  # top-left looks up
        assert rays[0, 0, 0] < 0.0  # and left
        assert rays[7, 7, 1] < 0.0
        assert rays[7, 7, 0] > 0.0

    def test_field_of_view(self, make_camera):
        """Test the top-center pixel against the vertical half-angle."""
        camera = make_camera(9, 9, vertical_fov=90.0)
        ray = camera.get_ray_directions_numpy()[0, 4]
        ndc_y = 1.0 - 1.0 / 9.0
        assert ray[1] / -ray[2] == pytest.approx(ndc_y, rel=1e-4)
        assert ray[0] == pytest.approx(0.0, abs=1e-6)

    def test_center_ray_follows_look_at(self, make_camera):
        camera = make_camera(9, 9)
        camera.look_at((3.0, 1.0, 0.0))
        expected = np.array([3.0, 1.0, -6.0]) / np.linalg.norm([3.0, 1.0, -6.0])
        np.testing.assert_allclose(camera.get_ray_directions_numpy()[4, 4], expected, atol=1e-5)

    def test_looking_straight_down(self, make_camera):
        camera = make_camera(9, 9, forward=(0.0, -1.0, 0.0))
        rays = camera.get_ray_directions_numpy()
        assert np.all(np.isfinite(rays))
        np.testing.assert_allclose(rays[4, 4], [0.0, -1.0, 0.0], atol=1e-6)

    def test_look_at_own_position(self, make_camera):
        camera = make_camera(4, 4)
        with pytest.raises(ValueError):
            camera.look_at((0.0, 0.0, 6.0))

    def test_origin_matches_position(self, make_camera):
        import taichi as ti

        camera = make_camera(4, 4, position=(1.0, 2.0, 3.0))
        result = ti.Vector.field(3, dtype=ti.f32, shape=())

        @ti.kernel
        def test_kernel(cam: ti.template()):
            result[None] = cam.origin()

        test_kernel(camera)
        np.testing.assert_allclose(result[None].to_numpy(), [1.0, 2.0, 3.0])


class TestResize:
    """Tests for viewport resizing."""

    def test_resize_through_zero_is_identical(self, make_camera):
        camera = make_camera(9, 7)
        before = camera.get_ray_directions_numpy().copy()
        camera.resize(0, 0)
        assert camera.get_ray_directions_numpy().shape == (0, 0, 3)
        camera.resize(9, 7)
        np.testing.assert_array_equal(camera.get_ray_directions_numpy(), before)

    def test_zero_width(self, make_camera):
        camera = make_camera(0, 5)
        assert camera.viewport_width == 0
        assert camera.viewport_height == 5
        assert camera.get_ray_directions_numpy().shape == (5, 0, 3)

    def test_over_capacity(self, make_camera):
        camera = make_camera(max_width=16, max_height=16)
        with pytest.raises(ValueError, match="capacity"):
            camera.resize(17, 8)

    def test_negative(self, make_camera):
        camera = make_camera()
        with pytest.raises(ValueError):
            camera.resize(-1, 8)

    def test_aspect_ratio(self, make_camera):
        assert make_camera(16, 8).aspect_ratio == 2.0
        assert make_camera(0, 0).aspect_ratio == 1.0


class TestMovement:
    """Tests for fly-through input."""

    def test_no_input(self, make_camera):
        from src.pathtracer.camera.perspective import MovementKeys

        camera = make_camera(4, 4)
        assert camera.update(0.1, MovementKeys(), (0.0, 0.0)) is False
        np.testing.assert_allclose(camera.position, [0.0, 0.0, 6.0])

    def test_forward(self, make_camera):
        from src.pathtracer.camera.perspective import MovementKeys

        camera = make_camera(4, 4)
        assert camera.update(0.1, MovementKeys(forward=True)) is True
        np.testing.assert_allclose(camera.position, [0.0, 0.0, 5.5])

    def test_forward_beats_backward(self, make_camera):
        from src.pathtracer.camera.perspective import MovementKeys

        camera = make_camera(4, 4)
        camera.update(0.1, MovementKeys(forward=True, backward=True))
        np.testing.assert_allclose(camera.position, [0.0, 0.0, 5.5])

    def test_left_beats_right(self, make_camera):
        from src.pathtracer.camera.perspective import MovementKeys

        camera = make_camera(4, 4)
        camera.update(0.1, MovementKeys(left=True, right=True))
        np.testing.assert_allclose(camera.position, [-0.5, 0.0, 6.0])

    def test_strafe_right(self, make_camera):
        from src.pathtracer.camera.perspective import MovementKeys

        camera = make_camera(4, 4)
        camera.update(0.1, MovementKeys(right=True))
        np.testing.assert_allclose(camera.position, [0.5, 0.0, 6.0])

    def test_down_beats_up(self, make_camera):
        from src.pathtracer.camera.perspective import MovementKeys

        camera = make_camera(4, 4)
        camera.update(0.1, MovementKeys(up=True, down=True))
        np.testing.assert_allclose(camera.position, [0.0, -0.5, 6.0])

    def test_up(self, make_camera):
        from src.pathtracer.camera.perspective import MovementKeys

        camera = make_camera(4, 4)
        camera.update(0.1, MovementKeys(up=True))
        np.testing.assert_allclose(camera.position, [0.0, 0.5, 6.0])

    def test_yaw_toward_positive_x(self, make_camera):
        from src.pathtracer.camera.perspective import MovementKeys

        camera = make_camera(4, 4)
        assert camera.update(0.1, MovementKeys(), (1.0, 0.0)) is True
        np.testing.assert_allclose(
            camera.forward, [math.sin(0.1), 0.0, -math.cos(0.1)], atol=1e-12
        )

    def test_pitch_down(self, make_camera):
        from src.pathtracer.camera.perspective import MovementKeys

        camera = make_camera(4, 4)
        camera.update(0.1, MovementKeys(), (0.0, 1.0))
        assert camera.forward[1] < 0.0
        assert camera.forward[1] == pytest.approx(-math.sin(0.1))
        assert np.linalg.norm(camera.forward) == pytest.approx(1.0)

    def test_moving_updates_rays(self, make_camera):
        from src.pathtracer.camera.perspective import MovementKeys

        camera = make_camera(9, 9)
        camera.update(0.1, MovementKeys(), (2.0, 0.0))
        np.testing.assert_allclose(
            camera.get_ray_directions_numpy()[4, 4], camera.forward, atol=1e-5
        )

    def test_set_position(self, make_camera):
        camera = make_camera(4, 4)
        camera.set_position((1.0, 2.0, 3.0))
        np.testing.assert_allclose(camera.view[:3, 3], [-1.0, -2.0, -3.0])

    def test_movement_keys_any(self):
        from src.pathtracer.camera.perspective import MovementKeys

        assert not MovementKeys().any()
        assert MovementKeys(down=True).any()
