"""
Tests for rigid transform helpers.

These tests verify the correctness of:
    - Pose construction from flattened row-major matrices
    - Rotation matrix validation
    - Camera-to-reference composition (summed and rigid)
"""

import pytest
import numpy as np
from numpy.testing import assert_allclose
from scipy.spatial.transform import Rotation

from camera_params.transforms import (
    Pose,
    compose_cam_to_reference,
    validate_rotation_matrix,
)


class TestPose:
    """Tests for the Pose type."""

    def test_default_is_identity(self):
        pose = Pose()
        assert_allclose(pose.rotation, np.eye(3))
        assert_allclose(pose.translation, np.zeros(3))

    def test_from_row_major_4x4(self):
        data = [
            0, -1, 0, 1.5,
            1, 0, 0, -2.0,
            0, 0, 1, 0.25,
            0, 0, 0, 1,
        ]
        pose = Pose.from_row_major(data, 4, 4)

        assert_allclose(pose.rotation, [[0, -1, 0], [1, 0, 0], [0, 0, 1]])
        assert_allclose(pose.translation, [1.5, -2.0, 0.25])
        assert_allclose(pose.matrix().reshape(-1), data)

    def test_from_row_major_wrong_length(self):
        with pytest.raises(ValueError):
            Pose.from_row_major([1, 0, 0, 0], 4, 4)

    def test_from_row_major_wrong_shape(self):
        with pytest.raises(ValueError):
            Pose.from_row_major([0.0] * 9, 3, 3)

    def test_translation_column_vector(self):
        pose = Pose(translation=np.array([[1.0], [2.0], [3.0]]))
        assert pose.translation.shape == (3,)

    def test_bad_rotation_shape(self):
        with pytest.raises(ValueError):
            Pose(rotation=np.eye(4))

    def test_compose_matches_homogeneous_product(self):
        a = Pose(rotation=Rotation.from_euler('z', 90, degrees=True).as_matrix(),
                 translation=[1.0, 0.0, 0.0])
        b = Pose(translation=[1.0, 0.0, 0.0])

        ab = a.compose(b)
        assert_allclose(ab.matrix(), a.matrix() @ b.matrix(), atol=1e-12)
        assert_allclose(ab.translation, [1.0, 1.0, 0.0], atol=1e-12)

    def test_equals_tolerance(self):
        a = Pose(translation=[0.0, 0.0, 0.0])
        b = Pose(translation=[0.0, 0.0, 1e-6])
        assert a.equals(a, 0.0)
        assert not a.equals(b, 1e-9)
        assert a.equals(b, 1e-5)

    def test_rpy_degrees(self):
        R = Rotation.from_euler('xyz', [10, -5, 30], degrees=True).as_matrix()
        assert_allclose(Pose(rotation=R).rpy_degrees(), [10, -5, 30], atol=1e-9)


class TestValidateRotationMatrix:
    """Tests for rotation matrix validation."""

    def test_identity(self):
        assert validate_rotation_matrix(np.eye(3))

    def test_random_rotation(self):
        R = Rotation.from_euler('zyx', [45, 10, -20], degrees=True).as_matrix()
        assert validate_rotation_matrix(R)

    def test_reflection(self):
        assert not validate_rotation_matrix(np.diag([1.0, 1.0, -1.0]))

    def test_scaled(self):
        assert not validate_rotation_matrix(2 * np.eye(3))

    def test_wrong_shape(self):
        assert not validate_rotation_matrix(np.eye(4))


class TestComposeCamToReference:
    """Tests for combining file extrinsics with a caller-supplied transform."""

    @pytest.fixture
    def R_ref(self):
        return Rotation.from_euler('x', -90, degrees=True).as_matrix()

    def test_identity_reference_is_passthrough(self):
        R_cam = Rotation.from_euler('y', 12, degrees=True).as_matrix()
        T_cam = np.array([0.1, -0.2, 0.3])

        pose = compose_cam_to_reference(np.eye(3), np.zeros(3), R_cam, T_cam)

        assert np.array_equal(pose.rotation, R_cam)
        assert np.array_equal(pose.translation, T_cam)

    def test_summed_translation(self, R_ref):
        T_cam = np.array([0.1, -0.2, 0.3])
        pose = compose_cam_to_reference(R_ref, [1.0, 2.0, 3.0], np.eye(3), T_cam)

        assert_allclose(pose.rotation, R_ref)
        assert_allclose(pose.translation, [1.1, 1.8, 3.3])

    def test_rigid_translation(self, R_ref):
        T_cam = np.array([0.1, -0.2, 0.3])
        pose = compose_cam_to_reference(R_ref, [1.0, 2.0, 3.0], np.eye(3), T_cam, rigid=True)

        assert_allclose(pose.translation, R_ref @ T_cam + [1.0, 2.0, 3.0])

    def test_bad_reference_rotation(self):
        with pytest.raises(ValueError):
            compose_cam_to_reference(np.eye(2), np.zeros(3), np.eye(3), np.zeros(3))

    def test_bad_reference_translation(self):
        with pytest.raises(ValueError):
            compose_cam_to_reference(np.eye(3), np.zeros(4), np.eye(3), np.zeros(3))


if __name__ == "__main__":
    pytest.main([__file__, "-v"])
