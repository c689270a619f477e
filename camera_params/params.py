"""
Canonical camera parameter model.

CameraParams is the single output type of every calibration parser.
Whatever the source format, a parsed model exposes:

    - intrinsics (fx, fy, cx, cy)
    - radial-tangential distortion, 4 or 5 coefficients
    - image size, frame period, camera pose in the body frame
    - the projection model built from the above

The camera matrix and the 5-slot OpenCV distortion vector are derived
on access, so they always agree with the intrinsics and distortion.
"""

import numpy as np
from enum import Enum
from typing import NamedTuple, Optional, Sequence, Tuple
from dataclasses import dataclass, field
import logging

from .camera import DistortedPinholeCalibration
from .transforms import Pose, validate_rotation_matrix

logger = logging.getLogger(__name__)

# Elementwise tolerance for derived matrices (camera matrix, rectification maps...)
MATRIX_TOL = 1e-7


class DistortionModel(Enum):
    """Supported radial-tangential variants, valued by coefficient count."""
    RADTAN4 = 4  # k1, k2, p1, p2
    RADTAN5 = 5  # k1, k2, p1, p2, k3


@dataclass(frozen=True)
class Distortion:
    """Radial-tangential lens distortion coefficients."""
    model: DistortionModel
    coefficients: Tuple[float, ...]

    def __post_init__(self):
        coefficients = tuple(float(c) for c in self.coefficients)
        if len(coefficients) != self.model.value:
            raise ValueError(
                f"{self.model.name} expects {self.model.value} coefficients, "
                f"got {len(coefficients)}"
            )
        object.__setattr__(self, "coefficients", coefficients)

    @classmethod
    def from_coefficients(cls, values: Sequence[float]) -> "Distortion":
        """Pick the variant from the number of coefficients (4 or 5)."""
        try:
            model = DistortionModel(len(values))
        except ValueError:
            raise ValueError(
                f"Radial-tangential distortion needs 4 or 5 coefficients, got {len(values)}"
            ) from None
        return cls(model=model, coefficients=tuple(values))

    @property
    def radtan4(self) -> Tuple[float, float, float, float]:
        """k1, k2, p1, p2. The projection model only uses these four."""
        return self.coefficients[:4]

    @property
    def k3(self) -> float:
        if self.model is DistortionModel.RADTAN5:
            return self.coefficients[4]
        return 0.0

    def as_opencv(self) -> np.ndarray:
        """1x5 OpenCV-ordered vector (k1, k2, p1, p2, k3), zero padded."""
        coeffs = np.zeros((1, 5), dtype=np.float64)
        coeffs[0, :len(self.coefficients)] = self.coefficients
        return coeffs


class ImageSize(NamedTuple):
    width: int
    height: int


def _matrices_equal(a: Optional[np.ndarray], b: Optional[np.ndarray], tol: float = MATRIX_TOL) -> bool:
    """Elementwise comparison; two missing matrices are equal."""
    if a is None or b is None:
        return a is None and b is None
    a = np.asarray(a)
    b = np.asarray(b)
    if a.shape != b.shape:
        return False
    return bool(np.all(np.abs(a - b) <= tol))


@dataclass(frozen=True, eq=False)
class CameraParams:
    """
    Calibration snapshot for one monocular camera.

    Attributes:
        intrinsics: (fx, fy, cx, cy) in pixels
        distortion: Radial-tangential distortion (4 or 5 coefficients)
        image_size: (width, height) in pixels
        frame_rate: Frame period in seconds (1 / rate in Hz)
        body_pose_cam: Pose of the camera in the body frame
        R_rectify: Rectification rotation (set by stereo rectification)
        undist_rect_map_x: Horizontal undistortion map (set by stereo rectification)
        undist_rect_map_y: Vertical undistortion map (set by stereo rectification)
        P: Rectified projection matrix (set by stereo rectification)
    """
    intrinsics: Tuple[float, float, float, float]
    distortion: Distortion
    image_size: ImageSize
    frame_rate: float
    body_pose_cam: Pose = field(default_factory=Pose)
    R_rectify: Optional[np.ndarray] = None
    undist_rect_map_x: Optional[np.ndarray] = None
    undist_rect_map_y: Optional[np.ndarray] = None
    P: Optional[np.ndarray] = None
    calibration: DistortedPinholeCalibration = field(init=False, repr=False)

    def __post_init__(self):
        intrinsics = tuple(float(v) for v in self.intrinsics)
        if len(intrinsics) != 4:
            raise ValueError(f"Expected 4 intrinsics (fx, fy, cx, cy), got {len(intrinsics)}")
        image_size = ImageSize(int(self.image_size[0]), int(self.image_size[1]))
        if image_size.width <= 0 or image_size.height <= 0:
            raise ValueError(f"Image size must be positive, got {image_size}")

        object.__setattr__(self, "intrinsics", intrinsics)
        object.__setattr__(self, "image_size", image_size)
        object.__setattr__(self, "frame_rate", float(self.frame_rate))

        fx, fy, cx, cy = intrinsics
        k1, k2, p1, p2 = self.distortion.radtan4
        object.__setattr__(
            self,
            "calibration",
            DistortedPinholeCalibration(fx, fy, 0.0, cx, cy, k1, k2, p1, p2),
        )

    @property
    def camera_matrix(self) -> np.ndarray:
        """3x3 camera matrix: identity with fx, fy on the diagonal and cx, cy in the last column."""
        fx, fy, cx, cy = self.intrinsics
        K = np.eye(3, dtype=np.float64)
        K[0, 0] = fx
        K[1, 1] = fy
        K[0, 2] = cx
        K[1, 2] = cy
        return K

    @property
    def distortion_coeff(self) -> np.ndarray:
        return self.distortion.as_opencv()

    def equals(self, other: "CameraParams", tol: float = 1e-9) -> bool:
        """
        Compare two models up to a tolerance.

        Intrinsics, pose, frame period and projection model use tol; image
        size must match exactly; derived matrices are compared elementwise
        with max(tol, MATRIX_TOL).
        """
        for mine, theirs in zip(self.intrinsics, other.intrinsics):
            if abs(mine - theirs) > tol:
                return False

        matrix_tol = max(tol, MATRIX_TOL)
        checks = [
            self.body_pose_cam.equals(other.body_pose_cam, tol),
            abs(self.frame_rate - other.frame_rate) <= tol,
            self.image_size.width == other.image_size.width,
            self.image_size.height == other.image_size.height,
            self.calibration.equals(other.calibration, tol),
            _matrices_equal(self.camera_matrix, other.camera_matrix, matrix_tol),
            _matrices_equal(self.distortion_coeff, other.distortion_coeff, matrix_tol),
            _matrices_equal(self.undist_rect_map_x, other.undist_rect_map_x, matrix_tol),
            _matrices_equal(self.undist_rect_map_y, other.undist_rect_map_y, matrix_tol),
            _matrices_equal(self.R_rectify, other.R_rectify, matrix_tol),
            _matrices_equal(self.P, other.P, matrix_tol),
        ]
        return all(checks)

    def dump(self) -> str:
        """Build a human-readable report of every field and log it."""
        def fmt(matrix: Optional[np.ndarray]) -> str:
            if matrix is None:
                return "[]"
            return np.array2string(np.asarray(matrix), precision=6)

        def map_shape(matrix: Optional[np.ndarray]) -> str:
            return "empty" if matrix is None else f"{np.asarray(matrix).shape}"

        if validate_rotation_matrix(self.body_pose_cam.rotation):
            rpy = self.body_pose_cam.rpy_degrees()
            rpy_line = f"  rpy (deg): {rpy[0]:.4f}, {rpy[1]:.4f}, {rpy[2]:.4f}"
        else:
            rpy_line = "  rpy (deg): n/a (not a rotation)"
        lines = [
            "------------ CameraParams -------------",
            "intrinsics: " + ", ".join(f"{v:g}" for v in self.intrinsics),
            f"body_pose_cam:\n{self.body_pose_cam}",
            rpy_line,
            f"calibration: {self.calibration!r}",
            f"frame_rate: {self.frame_rate}",
            f"image_size: width= {self.image_size.width} height= {self.image_size.height}",
            f"camera_matrix:\n{fmt(self.camera_matrix)}",
            f"distortion ({self.distortion.model.name}):\n{fmt(self.distortion_coeff)}",
            f"R_rectify:\n{fmt(self.R_rectify)}",
            f"undist_rect_map_x: {map_shape(self.undist_rect_map_x)}, "
            f"undist_rect_map_y: {map_shape(self.undist_rect_map_y)} "
            "(only created by stereo rectification)",
            f"P:\n{fmt(self.P)}",
        ]
        report = "\n".join(lines)
        logger.debug(report)
        return report
