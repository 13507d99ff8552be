import math

import numpy as np
import pytest

from bodysync.features.geometry import (
    IDENTITY_QUATERNION,
    blend_heading,
    ccw_angle_between_planes,
    logistic,
    pitch_roll_yaw,
    plane_normal,
    quaternion_from_axis_angle,
    quaternion_multiply,
    quaternion_to_matrix,
    shoulder_orientation,
)


def test_identity_quaternion_is_neutral():
    q = quaternion_from_axis_angle([0.0, 1.0, 0.0], 0.7)

    np.testing.assert_allclose(quaternion_multiply(IDENTITY_QUATERNION, q), q)
    np.testing.assert_allclose(quaternion_multiply(q, IDENTITY_QUATERNION), q)


def test_quaternion_product_composes_rotations():
    qz = quaternion_from_axis_angle([0.0, 0.0, 1.0], math.pi / 2)
    qx = quaternion_from_axis_angle([1.0, 0.0, 0.0], math.pi / 2)
    combined = quaternion_to_matrix(quaternion_multiply(qz, qx))

    np.testing.assert_allclose(combined, quaternion_to_matrix(qz) @ quaternion_to_matrix(qx), atol=1e-12)


def test_rotation_matrix():
    q = quaternion_from_axis_angle([0.0, 0.0, 1.0], math.pi / 2)

    np.testing.assert_allclose(quaternion_to_matrix(q) @ [1.0, 0.0, 0.0], [0.0, 1.0, 0.0], atol=1e-12)


def test_pitch_roll_yaw():
    assert pitch_roll_yaw(IDENTITY_QUATERNION) == pytest.approx((0.0, 0.0, 0.0))

    pitch, roll, yaw = pitch_roll_yaw(quaternion_from_axis_angle([1.0, 0.0, 0.0], 0.4))
    assert pitch == pytest.approx(0.4)
    assert roll == pytest.approx(0.0)
    assert yaw == pytest.approx(0.0)


def test_plane_normal():
    normal = plane_normal(np.zeros(3), np.array([1.0, 0.0, 0.0]), np.array([0.0, 1.0, 0.0]))

    np.testing.assert_allclose(normal, [0.0, 0.0, 1.0])


def test_coplanar_planes_are_pi_apart():
    normal = np.array([0.0, 0.0, 1.0])
    angle = ccw_angle_between_planes(normal, normal, np.zeros(3), np.array([1.0, 0.0, 0.0]))

    assert angle == pytest.approx(math.pi)


def test_ccw_angle_sign_depends_on_viewing_direction():
    upper = np.array([0.0, 0.0, 1.0])
    lower = np.array([0.0, math.sin(0.3), math.cos(0.3)])
    near, far = np.zeros(3), np.array([1.0, 0.0, 0.0])

    forward = ccw_angle_between_planes(upper, lower, near, far)
    backward = ccw_angle_between_planes(upper, lower, far, near)

    assert forward + backward == pytest.approx(2 * math.pi)
    assert abs(forward - math.pi) == pytest.approx(0.3)


def test_shoulder_orientation():
    assert shoulder_orientation(np.array([-1.0, 0.0, 2.0]), np.array([1.0, 0.0, 2.0])) == pytest.approx(0.0)
    assert shoulder_orientation(np.array([0.0, 0.0, 2.0]), np.array([1.0, 0.5, 1.0])) == pytest.approx(math.pi / 4)


def test_logistic():
    assert logistic(0.5) == pytest.approx(0.5)
    assert logistic(1.0) > 0.99
    assert logistic(0.0) < 0.01


def test_blend_heading_is_continuous_between_poses():
    # 平放：设备顶部向量在地面上，主要采用它的朝向
    flat = blend_heading(IDENTITY_QUATERNION)
    # 竖直：顶部向量朝上，改用穿过屏幕向量的朝向
    upright = blend_heading(quaternion_from_axis_angle([1.0, 0.0, 0.0], math.pi / 2))

    assert flat == pytest.approx(math.pi / 2, abs=0.01)
    assert upright == pytest.approx(math.pi / 2, abs=0.01)


def test_blend_heading_follows_rotation_about_vertical_axis():
    q = quaternion_from_axis_angle([0.0, 0.0, 1.0], 0.5)

    assert blend_heading(q) == pytest.approx(math.pi / 2 + 0.5, abs=0.01)
