"""
Rigid transform helpers for camera extrinsics.

A Pose holds the rotation and translation placing the camera in the
body (rig) frame:

    p_body = R @ p_cam + t

Conventions:
    - Rotations are 3x3 float64 matrices
    - Translations are 3-element float64 vectors (meters)
    - Flattened matrices coming from calibration files are row-major
"""

import numpy as np
from typing import Sequence
from dataclasses import dataclass, field
from scipy.spatial.transform import Rotation


@dataclass(frozen=True, eq=False)
class Pose:
    """
    Rigid body transform (rotation + translation).

    Attributes:
        rotation: 3x3 rotation matrix
        translation: 3-element translation vector
    """
    rotation: np.ndarray = field(default_factory=lambda: np.eye(3))
    translation: np.ndarray = field(default_factory=lambda: np.zeros(3))

    def __post_init__(self):
        rotation = np.asarray(self.rotation, dtype=np.float64)
        translation = np.asarray(self.translation, dtype=np.float64).reshape(-1)
        if rotation.shape != (3, 3):
            raise ValueError(f"Rotation must be 3x3, got shape {rotation.shape}")
        if translation.shape != (3,):
            raise ValueError(f"Translation must have 3 elements, got {translation.size}")
        object.__setattr__(self, "rotation", rotation)
        object.__setattr__(self, "translation", translation)

    @classmethod
    def from_row_major(cls, data: Sequence[float], n_rows: int, n_cols: int) -> "Pose":
        """
        Build a pose from a flattened row-major homogeneous matrix.

        Args:
            data: rows * cols values, row-major
            n_rows: 3 (3x4 [R|t]) or 4 (4x4 homogeneous)
            n_cols: must be 4

        Returns:
            Pose with the upper-left 3x3 block as rotation and the
            last column as translation
        """
        if n_rows not in (3, 4) or n_cols != 4:
            raise ValueError(f"Expected a 3x4 or 4x4 transform, got {n_rows}x{n_cols}")
        if len(data) != n_rows * n_cols:
            raise ValueError(
                f"Expected {n_rows * n_cols} values for a {n_rows}x{n_cols} "
                f"transform, got {len(data)}"
            )
        T = np.asarray(data, dtype=np.float64).reshape(n_rows, n_cols)
        return cls(rotation=T[:3, :3], translation=T[:3, 3])

    def matrix(self) -> np.ndarray:
        """Return the 4x4 homogeneous matrix."""
        T = np.eye(4)
        T[:3, :3] = self.rotation
        T[:3, 3] = self.translation
        return T

    def compose(self, other: "Pose") -> "Pose":
        """Standard rigid composition: self * other."""
        return Pose(
            rotation=self.rotation @ other.rotation,
            translation=self.rotation @ other.translation + self.translation,
        )

    def equals(self, other: "Pose", tol: float = 1e-9) -> bool:
        """Elementwise comparison of rotation and translation within tol."""
        return bool(
            np.all(np.abs(self.rotation - other.rotation) <= tol)
            and np.all(np.abs(self.translation - other.translation) <= tol)
        )

    def rpy_degrees(self) -> np.ndarray:
        """Roll, pitch, yaw (degrees) of the rotation, for display."""
        return Rotation.from_matrix(self.rotation).as_euler("xyz", degrees=True)

    def __str__(self) -> str:
        return (
            f"R:\n{np.array2string(self.rotation, precision=6)}\n"
            f"t: {np.array2string(self.translation, precision=6)}"
        )


def validate_rotation_matrix(R: np.ndarray, tol: float = 1e-6) -> bool:
    """
    Validate that a matrix is a proper rotation matrix.

    A proper rotation matrix must:
        1. Be orthogonal: R @ R.T = I
        2. Have determinant = +1 (not a reflection)

    Args:
        R: 3x3 matrix to validate
        tol: Numerical tolerance

    Returns:
        True if R is a valid rotation matrix
    """
    R = np.asarray(R)
    if R.shape != (3, 3):
        return False

    # Check orthogonality
    if not np.allclose(R @ R.T, np.eye(3), atol=tol):
        return False

    # Check determinant
    if not np.isclose(np.linalg.det(R), 1.0, atol=tol):
        return False

    return True


def compose_cam_to_reference(
    R_cam_to_ref: np.ndarray,
    T_cam_to_ref: np.ndarray,
    R_cam: np.ndarray,
    T_cam: np.ndarray,
    rigid: bool = False,
) -> Pose:
    """
    Combine a camera's native-frame extrinsics with a known
    camera-to-reference transform.

    The rotation is always R_cam_to_ref @ R_cam. With rigid=False the
    translations are summed (T_cam_to_ref + T_cam), which is what existing
    KITTI setups expect. With rigid=True the translation follows the
    standard composition R_cam_to_ref @ T_cam + T_cam_to_ref.

    Args:
        R_cam_to_ref: 3x3 rotation supplied by the caller
        T_cam_to_ref: 3-vector (or 3x1) translation supplied by the caller
        R_cam: 3x3 rotation read from the calibration file
        T_cam: 3-vector translation read from the calibration file
        rigid: Use the full rigid transform composition

    Returns:
        The camera pose in the reference (body) frame
    """
    R_ref = np.asarray(R_cam_to_ref, dtype=np.float64)
    if R_ref.shape != (3, 3):
        raise ValueError(f"Camera-to-reference rotation must be 3x3, got {R_ref.shape}")
    T_ref = np.asarray(T_cam_to_ref, dtype=np.float64)
    if T_ref.size != 3 or T_ref.shape not in ((3,), (3, 1), (1, 3)):
        raise ValueError(
            f"Camera-to-reference translation must have 3 elements, got shape {T_ref.shape}"
        )
    T_ref = T_ref.reshape(3)
    R_cam = np.asarray(R_cam, dtype=np.float64)
    T_cam = np.asarray(T_cam, dtype=np.float64).reshape(3)

    if rigid:
        return Pose(rotation=R_ref, translation=T_ref).compose(Pose(rotation=R_cam, translation=T_cam))
    return Pose(rotation=R_ref @ R_cam, translation=T_ref + T_cam)
