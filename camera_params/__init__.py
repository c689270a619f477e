"""
Camera Parameters Package

Reads camera calibration files from different datasets and normalizes
them into one canonical camera model (CameraParams) for stereo
rectification, projection and bundle adjustment.

Supported Formats:
    - EuRoC / Kalibr `sensor.yaml` (OpenCV FileStorage YAML, `%YAML:1.0`)
    - KITTI `calib_cam_to_cam.txt` (labeled text records per camera)

Conventions:
    - Intrinsics: (fx, fy, cx, cy) in pixels
    - Distortion: radial-tangential, OpenCV order (k1, k2, p1, p2, k3)
    - Frame rate stored as a frame period in seconds
    - body_pose_cam: camera pose expressed in the body (IMU) frame
"""

from .errors import (
    CalibrationError,
    CalibrationFileNotFoundError,
    FormatMarkerError,
    MissingFieldError,
    FieldCardinalityError,
    FieldTypeError,
    FieldValueError,
    MalformedFileError,
)
from .transforms import Pose, compose_cam_to_reference
from .camera import DistortedPinholeCalibration
from .params import CameraParams, Distortion, DistortionModel, ImageSize
from .yaml_parser import YAMLCalibrationParser, parse_yaml_calibration, write_yaml_calibration
from .kitti_parser import (
    KITTICalibrationParser,
    CalibrationRecord,
    RecordKind,
    iter_records,
    parse_kitti_calibration,
)
from .config import Config, CamToReference
from .loader import load_camera_params

__version__ = "1.0.0"
__all__ = [
    "CalibrationError",
    "CalibrationFileNotFoundError",
    "FormatMarkerError",
    "MissingFieldError",
    "FieldCardinalityError",
    "FieldTypeError",
    "FieldValueError",
    "MalformedFileError",
    "Pose",
    "compose_cam_to_reference",
    "DistortedPinholeCalibration",
    "CameraParams",
    "Distortion",
    "DistortionModel",
    "ImageSize",
    "YAMLCalibrationParser",
    "parse_yaml_calibration",
    "write_yaml_calibration",
    "KITTICalibrationParser",
    "CalibrationRecord",
    "RecordKind",
    "iter_records",
    "parse_kitti_calibration",
    "Config",
    "CamToReference",
    "load_camera_params",
]
