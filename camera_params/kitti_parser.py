"""
KITTI calibration text parser.

Parses `calib_cam_to_cam.txt`-style files for one camera.

File Format:
    Each non-empty line is a label followed by space-separated values:
        <Label>_<camera_id>: v1 v2 ...

    Labels read for the selected camera:
        S_<id>:  image size (width height)              2 values
        K_<id>:  intrinsic matrix, row-major 3x3        9 values
        D_<id>:  distortion (k1 k2 p1 p2 [k3])          4 or 5 values
        R_<id>:  rotation, row-major 3x3                9 values
        T_<id>:  translation                            3 values

    Example:
        calib_time: 09-Jan-2012 13:57:47
        S_00: 1.392000e+03 5.120000e+02
        K_00: 9.842439e+02 0.000000e+00 6.900000e+02 0.000000e+00 9.808141e+02 ...
        D_00: -3.728755e-01 2.037299e-01 2.219027e-03 1.383707e-03 -7.233722e-02
        R_00: 1.000000e+00 0.000000e+00 0.000000e+00 0.000000e+00 1.000000e+00 ...
        T_00: 2.573699e-16 -1.059758e-16 1.614870e-16

    Every other label (other cameras, rectified records, calib_time, ...)
    is ignored.

The format does not encode a frame rate; KITTI raw sequences are
recorded at approximately 10 Hz.
"""

import re
import numpy as np
from enum import Enum
from pathlib import Path
from typing import Dict, Iterator, List, Optional, Tuple, Union
from dataclasses import dataclass, field
import logging

from .errors import (
    CalibrationFileNotFoundError,
    FieldCardinalityError,
    FieldTypeError,
    FieldValueError,
    MalformedFileError,
    MissingFieldError,
)
from .params import CameraParams, Distortion, ImageSize
from .transforms import compose_cam_to_reference

logger = logging.getLogger(__name__)

KITTI_FRAME_RATE = 1 / 10.0

LABEL_PATTERN = re.compile(r"^([A-Za-z])_(.+):$")


class RecordKind(Enum):
    """Kind of a calibration record, keyed by its label prefix."""
    SIZE = "S"
    INTRINSICS = "K"
    DISTORTION = "D"
    ROTATION = "R"
    TRANSLATION = "T"
    UNKNOWN = None


# Accepted number of values per record kind
RECORD_CARDINALITY: Dict[RecordKind, Tuple[int, ...]] = {
    RecordKind.SIZE: (2,),
    RecordKind.INTRINSICS: (9,),
    RecordKind.DISTORTION: (4, 5),
    RecordKind.ROTATION: (9,),
    RecordKind.TRANSLATION: (3,),
}

REQUIRED_RECORDS = tuple(RECORD_CARDINALITY)


@dataclass
class CalibrationRecord:
    """
    One labeled line of a KITTI calibration file.

    Attributes:
        kind: Record kind; UNKNOWN for labels not addressed to the camera
        label: The raw label token, including the trailing colon
        camera_id: Camera id taken from the label, if it has one
        values: Parsed values (empty for UNKNOWN records)
        line_num: 1-based line number in the file
    """
    kind: RecordKind
    label: str
    camera_id: Optional[str]
    line_num: int
    values: List[float] = field(default_factory=list)


def classify_label(label: str, camera_id: str) -> Tuple[RecordKind, Optional[str]]:
    """
    Map a label token to its record kind for the requested camera.

    Only an exact "<P>_<camera_id>:" with P in S, K, D, R, T is a known
    record; "S_rect_00:" or "K_01:" are UNKNOWN when camera_id is "00".
    """
    match = LABEL_PATTERN.match(label)
    if not match:
        return RecordKind.UNKNOWN, None

    prefix, label_camera_id = match.groups()
    if label_camera_id != camera_id:
        return RecordKind.UNKNOWN, label_camera_id
    try:
        return RecordKind(prefix), label_camera_id
    except ValueError:
        return RecordKind.UNKNOWN, label_camera_id


def iter_records(filepath: Union[str, Path], camera_id: str) -> Iterator[CalibrationRecord]:
    """
    Lazily yield the labeled records of a KITTI calibration file.

    Values are only parsed for records addressed to camera_id, so lines
    for other cameras or free-form entries never fail the parse.

    Args:
        filepath: Path to the calibration text file
        camera_id: Camera identifier, e.g. "00"

    Yields:
        CalibrationRecord for every non-empty line
    """
    path = Path(filepath)
    if not path.is_file():
        raise CalibrationFileNotFoundError("Calibration file not found", path=path)

    try:
        with open(path, 'r', encoding='utf-8') as f:
            for line_num, line in enumerate(f, 1):
                tokens = line.split()
                if not tokens:
                    continue

                label, fields = tokens[0], tokens[1:]
                kind, label_camera_id = classify_label(label, camera_id)
                logger.debug(f"label: {label} ({kind.name})")

                if kind is RecordKind.UNKNOWN:
                    yield CalibrationRecord(kind, label, label_camera_id, line_num)
                    continue

                yield CalibrationRecord(
                    kind, label, label_camera_id, line_num,
                    _parse_values(kind, label, fields, line_num, path),
                )
    except UnicodeDecodeError as e:
        raise MalformedFileError(f"File is not valid UTF-8: {e}", path=path) from e
    except OSError as e:
        raise CalibrationFileNotFoundError(f"Cannot read calibration file: {e}", path=path) from e


def _parse_values(
    kind: RecordKind, label: str, fields: List[str], line_num: int, path: Path
) -> List[float]:
    expected = RECORD_CARDINALITY[kind]
    if len(fields) not in expected:
        raise FieldCardinalityError(
            f"Line {line_num}: expected {' or '.join(map(str, expected))} values, "
            f"got {len(fields)}",
            path=path, field=label,
        )
    try:
        return [float(token) for token in fields]
    except ValueError:
        raise FieldTypeError(
            f"Line {line_num}: non-numeric value in {' '.join(fields)!r}",
            path=path, field=label,
        ) from None


class KITTICalibrationParser:
    """
    Parser for KITTI camera-to-camera calibration files.

    The camera pose in the reference (body) frame is obtained by
    combining the file's R/T with a caller-supplied camera-to-reference
    transform:

        R = R_cam_to_ref @ R_file
        t = T_cam_to_ref + T_file                      (default)
        t = R_cam_to_ref @ T_file + T_cam_to_ref       (rigid_composition=True)

    The default keeps compatibility with existing KITTI pipeline setups.
    """

    def __init__(self, rigid_composition: bool = False):
        """
        Initialize parser.

        Args:
            rigid_composition: Compose translations as a full rigid transform
                instead of summing them.
        """
        self.rigid_composition = rigid_composition

    def parse_file(
        self,
        filepath: Union[str, Path],
        R_cam_to_ref: np.ndarray,
        T_cam_to_ref: np.ndarray,
        camera_id: str,
    ) -> CameraParams:
        """
        Parse a KITTI calibration file for one camera.

        Args:
            filepath: Path to the calibration text file
            R_cam_to_ref: 3x3 camera-to-reference rotation
            T_cam_to_ref: 3-vector (or 3x1) camera-to-reference translation
            camera_id: Camera identifier, e.g. "00"

        Returns:
            Fully populated CameraParams
        """
        path = Path(filepath)
        records = self._collect(path, camera_id)

        width, height = records[RecordKind.SIZE]
        if width <= 0 or height <= 0:
            raise FieldValueError(
                f"Image size must be positive, got {width}x{height}",
                path=path, field=f"S_{camera_id}:",
            )

        K = records[RecordKind.INTRINSICS]
        intrinsics = (K[0], K[4], K[2], K[5])

        distortion = Distortion.from_coefficients(records[RecordKind.DISTORTION])
        if distortion.k3 != 0.0:
            logger.debug(f"k3={distortion.k3} is kept but not used by the projection model")

        R_cam = np.asarray(records[RecordKind.ROTATION]).reshape(3, 3)
        T_cam = np.asarray(records[RecordKind.TRANSLATION])
        body_pose_cam = compose_cam_to_reference(
            R_cam_to_ref, T_cam_to_ref, R_cam, T_cam, rigid=self.rigid_composition
        )

        params = CameraParams(
            intrinsics=intrinsics,
            distortion=distortion,
            image_size=ImageSize(int(round(width)), int(round(height))),
            frame_rate=KITTI_FRAME_RATE,
            body_pose_cam=body_pose_cam,
        )
        logger.info(f"Parsed camera {camera_id} params from {path}")
        return params

    def _collect(self, path: Path, camera_id: str) -> Dict[RecordKind, List[float]]:
        """Fold the record stream into the latest values per kind."""
        found: Dict[RecordKind, List[float]] = {}
        skipped = 0
        for record in iter_records(path, camera_id):
            if record.kind is RecordKind.UNKNOWN:
                skipped += 1
                continue
            found[record.kind] = record.values

        missing = [kind for kind in REQUIRED_RECORDS if kind not in found]
        if missing:
            labels = ", ".join(f"{kind.value}_{camera_id}:" for kind in missing)
            raise MissingFieldError(f"Records not found: {labels}", path=path, field=labels)

        logger.debug(f"Ignored {skipped} records not addressed to camera {camera_id}")
        return found


def parse_kitti_calibration(
    filepath: Union[str, Path],
    R_cam_to_ref: np.ndarray,
    T_cam_to_ref: np.ndarray,
    camera_id: str,
    rigid_composition: bool = False,
) -> CameraParams:
    """
    Convenience function to parse a KITTI calibration file.

    Args:
        filepath: Path to the calibration text file
        R_cam_to_ref: 3x3 camera-to-reference rotation
        T_cam_to_ref: 3-vector camera-to-reference translation
        camera_id: Camera identifier, e.g. "00"
        rigid_composition: Compose translations as a full rigid transform

    Returns:
        Parsed CameraParams
    """
    parser = KITTICalibrationParser(rigid_composition=rigid_composition)
    return parser.parse_file(filepath, R_cam_to_ref, T_cam_to_ref, camera_id)
