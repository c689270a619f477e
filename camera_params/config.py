"""
Configuration module for camera parameter loading.

Handles loading and validation of run configuration from YAML files.
"""

import yaml
import numpy as np
from pathlib import Path
from dataclasses import dataclass, field
from typing import List
import logging

logger = logging.getLogger(__name__)

DATASET_EUROC = 'euroc'
DATASET_KITTI = 'kitti'
SUPPORTED_DATASETS = (DATASET_EUROC, DATASET_KITTI)


def _identity_rows() -> List[float]:
    return [1.0, 0.0, 0.0, 0.0, 1.0, 0.0, 0.0, 0.0, 1.0]


def _flat_floats(value, name: str) -> List[float]:
    """Flatten a flat or nested (row by row) list of numbers."""
    try:
        return [float(v) for v in np.asarray(value, dtype=np.float64).reshape(-1)]
    except (TypeError, ValueError) as e:
        raise ValueError(f"cam_to_reference.{name} must be a list of numbers: {e}") from e


@dataclass
class CamToReference:
    """
    Camera-to-reference transform supplied by the pipeline setup.

    Only used for KITTI, whose calibration files express extrinsics in
    the camera rig frame rather than the body (IMU) frame.
    """
    rotation: List[float] = field(default_factory=_identity_rows)  # Row-major 3x3
    translation: List[float] = field(default_factory=lambda: [0.0, 0.0, 0.0])  # Meters

    def rotation_matrix(self) -> np.ndarray:
        return np.asarray(self.rotation, dtype=np.float64).reshape(3, 3)

    def translation_vector(self) -> np.ndarray:
        return np.asarray(self.translation, dtype=np.float64).reshape(3)


@dataclass
class Config:
    """
    Run configuration for loading one camera's parameters.

    Attributes:
        dataset: Dataset type selecting the parser ('euroc' or 'kitti')
        calibration_file: Path to the calibration file
        camera_id: Camera identifier in KITTI files (e.g. '00')
        cam_to_reference: Camera-to-reference transform (KITTI only)
        rigid_composition: Compose KITTI translations as a full rigid transform
    """
    dataset: str
    calibration_file: str
    camera_id: str = '00'
    cam_to_reference: CamToReference = field(default_factory=CamToReference)
    rigid_composition: bool = False

    def __post_init__(self):
        self.dataset = str(self.dataset).lower()
        if self.dataset not in SUPPORTED_DATASETS:
            raise ValueError(
                f"Unsupported dataset {self.dataset!r}, expected one of {SUPPORTED_DATASETS}"
            )
        if len(self.cam_to_reference.rotation) != 9:
            raise ValueError("cam_to_reference.rotation must hold 9 values (row-major 3x3)")
        if len(self.cam_to_reference.translation) != 3:
            raise ValueError("cam_to_reference.translation must hold 3 values")

    @classmethod
    def from_yaml(cls, config_path: str) -> "Config":
        """
        Load configuration from a YAML file.

        Args:
            config_path: Path to the YAML configuration file

        Returns:
            Config object with loaded parameters

        Example YAML structure:
            dataset: kitti
            calibration_file: "calib_cam_to_cam.txt"
            camera_id: "00"
            cam_to_reference:
              rotation: [1, 0, 0, 0, 1, 0, 0, 0, 1]
              translation: [0.0, 0.0, 0.0]
            rigid_composition: false
        """
        path = Path(config_path)
        if not path.exists():
            raise FileNotFoundError(f"Configuration file not found: {config_path}")

        with open(path, 'r') as f:
            data = yaml.safe_load(f) or {}

        logger.info(f"Loading configuration from {config_path}")

        if 'dataset' not in data or 'calibration_file' not in data:
            raise ValueError("Configuration needs 'dataset' and 'calibration_file'")

        ref_data = data.get('cam_to_reference') or {}
        cam_to_reference = CamToReference(
            rotation=_flat_floats(ref_data.get('rotation', _identity_rows()), 'rotation'),
            translation=_flat_floats(ref_data.get('translation', [0.0, 0.0, 0.0]), 'translation'),
        )

        # Resolve paths relative to config file location
        calibration_file = str(path.parent / data['calibration_file'])

        return cls(
            dataset=data['dataset'],
            calibration_file=calibration_file,
            camera_id=str(data.get('camera_id', '00')),
            cam_to_reference=cam_to_reference,
            rigid_composition=bool(data.get('rigid_composition', False)),
        )

    def to_yaml(self, config_path: str) -> None:
        """Save configuration to a YAML file."""
        data = {
            'dataset': self.dataset,
            'calibration_file': self.calibration_file,
            'camera_id': self.camera_id,
            'cam_to_reference': {
                'rotation': list(self.cam_to_reference.rotation),
                'translation': list(self.cam_to_reference.translation),
            },
            'rigid_composition': self.rigid_composition,
        }

        with open(config_path, 'w') as f:
            yaml.dump(data, f, default_flow_style=False, sort_keys=False)

        logger.info(f"Configuration saved to {config_path}")
