"""
EuRoC-style YAML calibration parser.

Reads a single-camera `sensor.yaml` as written by OpenCV FileStorage
(Kalibr / EuRoC MAV datasets) into a CameraParams model.

File Format:
    %YAML:1.0
    sensor_type: camera
    T_BS:
      cols: 4
      rows: 4
      data: [r11, r12, r13, tx, r21, ..., 0.0, 0.0, 0.0, 1.0]
    rate_hz: 20
    resolution: [752, 480]
    camera_model: pinhole
    intrinsics: [fx, fy, cx, cy]
    distortion_model: radial-tangential
    distortion_coefficients: [k1, k2, p1, p2]

Note: the OpenCV `%YAML:1.0` directive is not valid YAML for PyYAML,
so the marker line is checked and stripped before loading.
"""

import yaml
from pathlib import Path
from typing import Any, Dict, List, Optional, Tuple, Union
from dataclasses import dataclass
import logging

from .errors import (
    CalibrationFileNotFoundError,
    FieldCardinalityError,
    FieldTypeError,
    FieldValueError,
    FormatMarkerError,
    MalformedFileError,
    MissingFieldError,
)
from .params import CameraParams, Distortion, DistortionModel, ImageSize
from .transforms import Pose, validate_rotation_matrix

logger = logging.getLogger(__name__)

FORMAT_MARKER = "%YAML"
WRITE_MARKER = "%YAML:1.0"

SUPPORTED_CAMERA_MODELS = ("pinhole",)
SUPPORTED_DISTORTION_MODELS = ("radial-tangential", "radtan")


@dataclass(frozen=True)
class FieldSpec:
    """
    Expected shape of one YAML field.

    Attributes:
        path: Key path from the document root
        dtype: Element type (int or float)
        count: Number of elements for a sequence, None for a scalar
    """
    path: Tuple[str, ...]
    dtype: type
    count: Optional[int] = None

    @property
    def name(self) -> str:
        return ".".join(self.path)


INTRINSICS = FieldSpec(("intrinsics",), float, 4)
DISTORTION = FieldSpec(("distortion_coefficients",), float, 4)
RESOLUTION = FieldSpec(("resolution",), int, 2)
RATE_HZ = FieldSpec(("rate_hz",), int)
T_BS_ROWS = FieldSpec(("T_BS", "rows"), int)
T_BS_COLS = FieldSpec(("T_BS", "cols"), int)


class YAMLCalibrationParser:
    """
    Parser for EuRoC-style camera calibration YAML files.

    Every field is read against a FieldSpec; any mismatch raises a
    CalibrationError subclass naming the file and the field.
    """

    def parse_file(self, filepath: Union[str, Path]) -> CameraParams:
        """
        Parse a calibration YAML file.

        Args:
            filepath: Path to the sensor YAML file

        Returns:
            Fully populated CameraParams
        """
        path = Path(filepath)
        if not path.is_file():
            raise CalibrationFileNotFoundError("Calibration file not found", path=path)

        data = self._load(path)
        self._check_models(data, path)

        intrinsics = self._read_field(data, INTRINSICS, path)
        distortion = Distortion(
            model=DistortionModel.RADTAN4,
            coefficients=tuple(self._read_field(data, DISTORTION, path)),
        )

        width, height = self._read_field(data, RESOLUTION, path)
        if width <= 0 or height <= 0:
            raise FieldValueError(
                f"Resolution must be positive, got {width}x{height}",
                path=path, field=RESOLUTION.name,
            )

        rate_hz = self._read_field(data, RATE_HZ, path)
        if rate_hz <= 0:
            raise FieldValueError(
                f"Frame rate must be positive, got {rate_hz}", path=path, field=RATE_HZ.name
            )

        body_pose_cam = self._read_pose(data, path)

        params = CameraParams(
            intrinsics=tuple(intrinsics),
            distortion=distortion,
            image_size=ImageSize(width, height),
            frame_rate=1.0 / rate_hz,
            body_pose_cam=body_pose_cam,
        )
        logger.info(f"Parsed camera params from {path}")
        return params

    def _load(self, path: Path) -> Dict[str, Any]:
        try:
            with open(path, 'r', encoding='utf-8') as f:
                first_line = f.readline()
                if not first_line.startswith(FORMAT_MARKER):
                    raise FormatMarkerError(
                        f"Expected '{WRITE_MARKER}' as first line, got {first_line.strip()!r}",
                        path=path,
                    )
                try:
                    data = yaml.safe_load(f)
                except yaml.YAMLError as e:
                    raise MalformedFileError(f"Invalid YAML: {e}", path=path) from e
        except UnicodeDecodeError as e:
            raise MalformedFileError(f"File is not valid UTF-8: {e}", path=path) from e
        except OSError as e:
            raise CalibrationFileNotFoundError(f"Cannot read calibration file: {e}", path=path) from e

        if not isinstance(data, dict):
            raise MalformedFileError("Top level of the document is not a mapping", path=path)
        return data

    def _check_models(self, data: Dict[str, Any], path: Path) -> None:
        camera_model = data.get("camera_model")
        if camera_model is not None and camera_model not in SUPPORTED_CAMERA_MODELS:
            raise FieldValueError(
                f"Unsupported camera model {camera_model!r}", path=path, field="camera_model"
            )
        distortion_model = data.get("distortion_model")
        if distortion_model is not None and distortion_model not in SUPPORTED_DISTORTION_MODELS:
            raise FieldValueError(
                f"Unsupported distortion model {distortion_model!r}",
                path=path, field="distortion_model",
            )

    def _read_pose(self, data: Dict[str, Any], path: Path) -> Pose:
        n_rows = self._read_field(data, T_BS_ROWS, path)
        n_cols = self._read_field(data, T_BS_COLS, path)
        if n_rows not in (3, 4) or n_cols != 4:
            raise FieldValueError(
                f"T_BS must be 3x4 or 4x4, got {n_rows}x{n_cols}", path=path, field="T_BS"
            )
        values = self._read_field(data, FieldSpec(("T_BS", "data"), float, n_rows * n_cols), path)

        pose = Pose.from_row_major(values, n_rows, n_cols)
        if not validate_rotation_matrix(pose.rotation):
            logger.warning(f"T_BS rotation in {path} is not orthonormal")
        return pose

    def _read_field(self, data: Dict[str, Any], spec: FieldSpec, path: Path) -> Any:
        """Walk spec.path and convert the value to spec.dtype / spec.count."""
        node: Any = data
        for key in spec.path:
            if not isinstance(node, dict) or key not in node or node[key] is None:
                raise MissingFieldError("Required field missing", path=path, field=spec.name)
            node = node[key]

        if spec.count is None:
            return _convert(node, spec, path)

        if not isinstance(node, (list, tuple)):
            raise FieldTypeError(
                f"Expected a sequence of {spec.count} values, got {type(node).__name__}",
                path=path, field=spec.name,
            )
        if len(node) != spec.count:
            raise FieldCardinalityError(
                f"Expected {spec.count} values, got {len(node)}", path=path, field=spec.name
            )
        return [_convert(value, spec, path) for value in node]


def _convert(value: Any, spec: FieldSpec, path: Path) -> Union[int, float]:
    if isinstance(value, bool):
        raise FieldTypeError(f"Expected {spec.dtype.__name__}, got bool", path=path, field=spec.name)
    # PyYAML loads exponent-only numbers such as 1e-5 as strings
    try:
        number = float(value)
    except (TypeError, ValueError):
        raise FieldTypeError(
            f"Expected {spec.dtype.__name__}, got {value!r}", path=path, field=spec.name
        ) from None
    if spec.dtype is int:
        if not number.is_integer():
            raise FieldTypeError(f"Expected int, got {value!r}", path=path, field=spec.name)
        return int(number)
    return number


def write_yaml_calibration(params: CameraParams, filepath: Union[str, Path]) -> None:
    """
    Save a camera model in the EuRoC YAML dialect.

    Only the 4-coefficient radial-tangential model is expressible in this
    format; a non-zero k3 is rejected rather than silently dropped.
    """
    if params.distortion.model is DistortionModel.RADTAN5 and params.distortion.k3 != 0.0:
        raise ValueError("EuRoC YAML cannot store a non-zero k3 distortion coefficient")

    rate_hz = int(round(1.0 / params.frame_rate))
    data = {
        'sensor_type': 'camera',
        'T_BS': {
            'cols': 4,
            'rows': 4,
            'data': _flatten(params.body_pose_cam.matrix()),
        },
        'rate_hz': rate_hz,
        'resolution': [params.image_size.width, params.image_size.height],
        'camera_model': 'pinhole',
        'intrinsics': list(params.intrinsics),
        'distortion_model': 'radial-tangential',
        'distortion_coefficients': list(params.distortion.radtan4),
    }

    with open(filepath, 'w') as f:
        f.write(WRITE_MARKER + "\n")
        yaml.safe_dump(data, f, default_flow_style=None, sort_keys=False)

    logger.info(f"Camera params saved to {filepath}")


def _flatten(matrix) -> List[float]:
    return [float(v) for v in matrix.reshape(-1)]


def parse_yaml_calibration(filepath: Union[str, Path]) -> CameraParams:
    """
    Convenience function to parse a EuRoC calibration YAML file.

    Args:
        filepath: Path to the sensor YAML file

    Returns:
        Parsed CameraParams
    """
    parser = YAMLCalibrationParser()
    return parser.parse_file(filepath)
