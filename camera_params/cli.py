"""
Command-line interface for camera parameter loading.

Usage:
    camera-params config.yaml [--export OUTPUT_YAML] [-v]
"""

import argparse
import logging
import sys

from .config import Config
from .errors import CalibrationError
from .loader import load_camera_params
from .yaml_parser import write_yaml_calibration


def setup_logging(verbose: bool = False) -> None:
    """Configure logging."""
    level = logging.DEBUG if verbose else logging.INFO
    logging.basicConfig(
        level=level,
        format='%(asctime)s - %(name)s - %(levelname)s - %(message)s',
        handlers=[logging.StreamHandler(sys.stdout)]
    )


def main(argv=None) -> int:
    """Main entry point for CLI."""
    parser = argparse.ArgumentParser(
        description='Load a camera calibration file and print the canonical camera parameters',
        formatter_class=argparse.RawDescriptionHelpFormatter,
        epilog='''
Examples:
    # Print the parameters described by a run configuration
    camera-params config.yaml

    # Convert a KITTI calibration to EuRoC YAML
    camera-params kitti.yaml --export cam0_sensor.yaml

    # Verbose output (every record label)
    camera-params config.yaml -v
'''
    )

    parser.add_argument(
        'config',
        type=str,
        help='Path to YAML configuration file'
    )

    parser.add_argument(
        '--export', '-e',
        type=str,
        default=None,
        help='Write the parsed parameters as a EuRoC sensor YAML file'
    )

    parser.add_argument(
        '--verbose', '-v',
        action='store_true',
        help='Enable verbose output'
    )

    args = parser.parse_args(argv)

    setup_logging(args.verbose)
    logger = logging.getLogger(__name__)

    try:
        config = Config.from_yaml(args.config)
        params = load_camera_params(config)

        print(params.dump())

        if args.export:
            write_yaml_calibration(params, args.export)

        return 0

    except CalibrationError as e:
        logger.error(f"Calibration error [{e.kind}]: {e}")
        return 1
    except FileNotFoundError as e:
        logger.error(f"File not found: {e}")
        return 1
    except ValueError as e:
        logger.error(f"Configuration error: {e}")
        return 1


if __name__ == '__main__':
    sys.exit(main())
