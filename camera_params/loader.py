"""
Selects the calibration parser for a dataset and loads the camera model.
"""

import logging

from .config import Config, DATASET_EUROC, DATASET_KITTI
from .kitti_parser import KITTICalibrationParser
from .params import CameraParams
from .yaml_parser import YAMLCalibrationParser

logger = logging.getLogger(__name__)


def load_camera_params(config: Config) -> CameraParams:
    """
    Parse the calibration file named in config with the parser for its dataset.

    Args:
        config: Run configuration

    Returns:
        Parsed CameraParams
    """
    logger.info(f"Loading {config.dataset} calibration from {config.calibration_file}")

    if config.dataset == DATASET_EUROC:
        return YAMLCalibrationParser().parse_file(config.calibration_file)

    if config.dataset == DATASET_KITTI:
        parser = KITTICalibrationParser(rigid_composition=config.rigid_composition)
        return parser.parse_file(
            config.calibration_file,
            config.cam_to_reference.rotation_matrix(),
            config.cam_to_reference.translation_vector(),
            config.camera_id,
        )

    raise ValueError(f"No parser for dataset {config.dataset!r}")
