"""
Projection model built from camera intrinsics and lens distortion.

Implements the pinhole camera model with 4-parameter radial-tangential
distortion, parameterized by nine scalars:

    fx, fy, skew, u0, v0, k1, k2, p1, p2

Projection Model:
    1. Perspective projection: x' = X/Z, y' = Y/Z
    2. Distortion: apply radial (k1, k2) and tangential (p1, p2) terms
    3. Pixel mapping: u = fx*x'' + skew*y'' + u0, v = fy*y'' + v0
"""

import numpy as np
from typing import Tuple
import logging

logger = logging.getLogger(__name__)


class DistortedPinholeCalibration:
    """
    Calibration object combining intrinsics and radial-tangential distortion.

    The distortion model follows OpenCV conventions restricted to four terms:
        r² = x'² + y'²
        x'' = x'(1 + k1*r² + k2*r⁴) + 2*p1*x'*y' + p2*(r² + 2*x'²)
        y'' = y'(1 + k1*r² + k2*r⁴) + p1*(r² + 2*y'²) + 2*p2*x'*y'
    """

    def __init__(
        self,
        fx: float,
        fy: float,
        skew: float,
        u0: float,
        v0: float,
        k1: float,
        k2: float,
        p1: float,
        p2: float,
    ):
        self.fx = float(fx)
        self.fy = float(fy)
        self.skew = float(skew)
        self.u0 = float(u0)
        self.v0 = float(v0)
        self.k1 = float(k1)
        self.k2 = float(k2)
        self.p1 = float(p1)
        self.p2 = float(p2)

        logger.debug(f"Calibration initialized: fx={self.fx}, fy={self.fy}")
        logger.debug(f"Principal point: ({self.u0}, {self.v0})")

    def vector(self) -> np.ndarray:
        """All nine parameters in constructor order."""
        return np.array([
            self.fx, self.fy, self.skew, self.u0, self.v0,
            self.k1, self.k2, self.p1, self.p2,
        ])

    def K(self) -> np.ndarray:
        """3x3 intrinsic matrix."""
        return np.array([
            [self.fx, self.skew, self.u0],
            [0, self.fy, self.v0],
            [0, 0, 1]
        ], dtype=np.float64)

    def equals(self, other: "DistortedPinholeCalibration", tol: float = 1e-9) -> bool:
        return bool(np.all(np.abs(self.vector() - other.vector()) <= tol))

    def _apply_distortion(self, x_norm: float, y_norm: float) -> Tuple[float, float]:
        r2 = x_norm ** 2 + y_norm ** 2
        r4 = r2 ** 2

        radial = 1 + self.k1 * r2 + self.k2 * r4

        x_tangential = 2 * self.p1 * x_norm * y_norm + self.p2 * (r2 + 2 * x_norm ** 2)
        y_tangential = self.p1 * (r2 + 2 * y_norm ** 2) + 2 * self.p2 * x_norm * y_norm

        return x_norm * radial + x_tangential, y_norm * radial + y_tangential

    def uncalibrate(self, x_norm: float, y_norm: float) -> Tuple[float, float]:
        """Map normalized image coordinates to distorted pixel coordinates."""
        x_dist, y_dist = self._apply_distortion(x_norm, y_norm)
        u = self.fx * x_dist + self.skew * y_dist + self.u0
        v = self.fy * y_dist + self.v0
        return u, v

    def project(self, point_camera: np.ndarray) -> Tuple[float, float]:
        """
        Project a 3D point in camera frame (Z forward) to pixel coordinates.

        Raises:
            ValueError: if the point is not in front of the camera
        """
        X, Y, Z = point_camera
        if Z <= 0:
            raise ValueError(f"Point behind camera: Z={Z}")
        return self.uncalibrate(X / Z, Y / Z)

    def undistort_pixel(
        self,
        u: float,
        v: float,
        max_iterations: int = 20,
        tolerance: float = 1e-10,
    ) -> Tuple[float, float]:
        """
        Remove distortion from pixel coordinates.

        Uses fixed-point iteration to solve for the undistorted normalized
        coordinates, then maps them back through the pinhole model.

        Args:
            u: Distorted u coordinate
            v: Distorted v coordinate
            max_iterations: Maximum iterations for convergence
            tolerance: Convergence tolerance

        Returns:
            Undistorted (u, v) pixel coordinates
        """
        y_dist = (v - self.v0) / self.fy
        x_dist = (u - self.u0 - self.skew * y_dist) / self.fx

        x_norm, y_norm = x_dist, y_dist
        for _ in range(max_iterations):
            x_curr, y_curr = self._apply_distortion(x_norm, y_norm)
            dx = x_dist - x_curr
            dy = y_dist - y_curr
            if abs(dx) < tolerance and abs(dy) < tolerance:
                break
            x_norm += dx
            y_norm += dy

        return (
            self.fx * x_norm + self.skew * y_norm + self.u0,
            self.fy * y_norm + self.v0,
        )

    def __repr__(self) -> str:
        return (
            f"DistortedPinholeCalibration(fx={self.fx}, fy={self.fy}, skew={self.skew}, "
            f"u0={self.u0}, v0={self.v0}, k1={self.k1}, k2={self.k2}, "
            f"p1={self.p1}, p2={self.p2})"
        )
