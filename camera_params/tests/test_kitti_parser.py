"""
Tests for KITTI calibration text parser.
"""

import pytest
import numpy as np
from numpy.testing import assert_allclose

from camera_params.errors import (
    CalibrationFileNotFoundError,
    FieldCardinalityError,
    FieldTypeError,
    MalformedFileError,
    MissingFieldError,
)
from camera_params import kitti_parser
from camera_params.kitti_parser import (
    KITTICalibrationParser,
    RecordKind,
    classify_label,
    iter_records,
    parse_kitti_calibration,
)
from camera_params.params import DistortionModel

SIMPLE_CALIB = """S_0: 1242 375
K_0: 721.5 0 609.6 0 721.5 172.8 0 0 1
D_0: -0.37 0.2 0 0 0
R_0: 1 0 0 0 1 0 0 0 1
T_0: 0 0 0
"""

# Excerpt of a KITTI raw calib_cam_to_cam.txt
KITTI_RAW_CALIB = """calib_time: 09-Jan-2012 13:57:47
corner_dist: 9.950000e-02
S_00: 1.392000e+03 5.120000e+02
K_00: 9.842439e+02 0.000000e+00 6.900000e+02 0.000000e+00 9.808141e+02 2.331966e+02 0.000000e+00 0.000000e+00 1.000000e+00
D_00: -3.728755e-01 2.037299e-01 2.219027e-03 1.383707e-03 -7.233722e-02
R_00: 1.000000e+00 0.000000e+00 0.000000e+00 0.000000e+00 1.000000e+00 0.000000e+00 0.000000e+00 0.000000e+00 1.000000e+00
T_00: 2.573699e-16 -1.059758e-16 1.614870e-16
S_rect_00: 1.242000e+03 3.750000e+02
R_rect_00: 9.999239e-01 9.837760e-03 -7.445048e-03 -9.869795e-03 9.999421e-01 -4.278459e-03 7.402527e-03 4.351614e-03 9.999631e-01
P_rect_00: 7.215377e+02 0.000000e+00 6.095593e+02 0.000000e+00 0.000000e+00 7.215377e+02 1.728540e+02 0.000000e+00 0.000000e+00 0.000000e+00 1.000000e+00 0.000000e+00

S_01: 1.392000e+03 5.120000e+02
K_01: 9.895267e+02 0.000000e+00 7.020000e+02 0.000000e+00 9.878386e+02 2.455590e+02 0.000000e+00 0.000000e+00 1.000000e+00
D_01: -3.644661e-01 1.790019e-01 1.148107e-03 -6.298563e-04 -5.314062e-02
R_01: 9.993513e-01 1.860866e-02 -3.083487e-02 -1.887662e-02 9.997863e-01 -8.421873e-03 3.067156e-02 8.998467e-03 9.994890e-01
T_01: -5.370000e-01 4.822061e-03 -1.252488e-02
"""

IDENTITY = np.eye(3)
ZERO = np.zeros(3)


@pytest.fixture
def simple_file(tmp_path):
    path = tmp_path / "calib.txt"
    path.write_text(SIMPLE_CALIB)
    return path


@pytest.fixture
def raw_file(tmp_path):
    path = tmp_path / "calib_cam_to_cam.txt"
    path.write_text(KITTI_RAW_CALIB)
    return path


class TestKITTICalibrationParser:
    """Tests for a complete single-camera file."""

    def test_intrinsics_from_matrix(self, simple_file):
        params = parse_kitti_calibration(simple_file, IDENTITY, ZERO, "0")
        assert params.intrinsics == pytest.approx((721.5, 721.5, 609.6, 172.8))

    def test_camera_matrix_rebuilt(self, simple_file):
        params = parse_kitti_calibration(simple_file, IDENTITY, ZERO, "0")
        assert_allclose(
            params.camera_matrix,
            [[721.5, 0, 609.6], [0, 721.5, 172.8], [0, 0, 1]],
        )

    def test_image_size(self, simple_file):
        params = parse_kitti_calibration(simple_file, IDENTITY, ZERO, "0")
        assert params.image_size == (1242, 375)

    def test_fixed_frame_rate(self, simple_file):
        params = parse_kitti_calibration(simple_file, IDENTITY, ZERO, "0")
        assert params.frame_rate == pytest.approx(0.1)

    def test_identity_pose(self, simple_file):
        params = parse_kitti_calibration(simple_file, IDENTITY, ZERO, "0")
        assert_allclose(params.body_pose_cam.rotation, np.eye(3))
        assert_allclose(params.body_pose_cam.translation, np.zeros(3))

    def test_five_distortion_coefficients(self, simple_file):
        params = parse_kitti_calibration(simple_file, IDENTITY, ZERO, "0")
        assert params.distortion.model is DistortionModel.RADTAN5
        assert_allclose(params.distortion_coeff, [[-0.37, 0.2, 0, 0, 0]])

    def test_four_distortion_coefficients(self, tmp_path):
        path = tmp_path / "calib.txt"
        path.write_text(SIMPLE_CALIB.replace("D_0: -0.37 0.2 0 0 0", "D_0: -0.37 0.2 0.001 0.002"))
        params = parse_kitti_calibration(path, IDENTITY, ZERO, "0")
        assert params.distortion.model is DistortionModel.RADTAN4
        assert params.distortion.k3 == 0.0
        assert_allclose(params.distortion_coeff, [[-0.37, 0.2, 0.001, 0.002, 0.0]])

    def test_reflexive_equality(self, simple_file):
        params = parse_kitti_calibration(simple_file, IDENTITY, ZERO, "0")
        assert params.equals(params, 0.0)

    def test_zero_rotation_can_be_dumped(self, tmp_path):
        path = tmp_path / "calib.txt"
        path.write_text(SIMPLE_CALIB.replace("R_0: 1 0 0 0 1 0 0 0 1", "R_0: 0 0 0 0 0 0 0 0 0"))
        params = parse_kitti_calibration(path, IDENTITY, ZERO, "0")
        assert "rpy (deg): n/a (not a rotation)" in params.dump()


class TestKITTIRawFile:
    """Tests against a multi-camera file with unrelated records."""

    def test_ignores_other_records(self, raw_file):
        params = parse_kitti_calibration(raw_file, IDENTITY, ZERO, "00")
        assert params.intrinsics == pytest.approx((984.2439, 980.8141, 690.0, 233.1966))
        assert params.image_size == (1392, 512)

    def test_selects_requested_camera(self, raw_file):
        params = parse_kitti_calibration(raw_file, IDENTITY, ZERO, "01")
        assert params.intrinsics[0] == pytest.approx(989.5267)
        assert_allclose(
            params.body_pose_cam.translation, [-0.537, 4.822061e-03, -1.252488e-02]
        )

    def test_k3_excluded_from_projection_model(self, raw_file):
        params = parse_kitti_calibration(raw_file, IDENTITY, ZERO, "00")
        assert params.distortion.k3 == pytest.approx(-7.233722e-02)
        assert params.distortion_coeff[0, 4] == pytest.approx(-7.233722e-02)
        assert_allclose(
            params.calibration.vector()[5:],
            [-3.728755e-01, 2.037299e-01, 2.219027e-03, 1.383707e-03],
        )

    def test_identity_reference_keeps_raw_extrinsics(self, raw_file):
        params = parse_kitti_calibration(raw_file, IDENTITY, ZERO, "01")
        R_raw = np.array([
            9.993513e-01, 1.860866e-02, -3.083487e-02,
            -1.887662e-02, 9.997863e-01, -8.421873e-03,
            3.067156e-02, 8.998467e-03, 9.994890e-01,
        ]).reshape(3, 3)
        assert np.array_equal(params.body_pose_cam.rotation, R_raw)

    def test_reference_translation_is_added(self, raw_file):
        R_ref = np.array([[0, 0, 1], [-1, 0, 0], [0, -1, 0]], dtype=float)
        T_ref = np.array([[1.0], [2.0], [3.0]])
        params = parse_kitti_calibration(raw_file, R_ref, T_ref, "01")

        assert_allclose(params.body_pose_cam.translation, [1.0 - 0.537, 2.004822061, 2.98747512])
        R_raw = parse_kitti_calibration(raw_file, IDENTITY, ZERO, "01").body_pose_cam.rotation
        assert_allclose(params.body_pose_cam.rotation, R_ref @ R_raw)

    def test_rigid_composition(self, raw_file):
        R_ref = np.array([[0, 0, 1], [-1, 0, 0], [0, -1, 0]], dtype=float)
        T_ref = np.array([1.0, 2.0, 3.0])
        parser = KITTICalibrationParser(rigid_composition=True)
        params = parser.parse_file(raw_file, R_ref, T_ref, "01")

        T_raw = np.array([-0.537, 4.822061e-03, -1.252488e-02])
        assert_allclose(params.body_pose_cam.translation, R_ref @ T_raw + T_ref)


class TestRecordStream:
    """Tests for label classification and the lazy record iterator."""

    def test_classify_known_labels(self):
        assert classify_label("S_00:", "00") == (RecordKind.SIZE, "00")
        assert classify_label("K_00:", "00") == (RecordKind.INTRINSICS, "00")
        assert classify_label("D_00:", "00") == (RecordKind.DISTORTION, "00")
        assert classify_label("R_00:", "00") == (RecordKind.ROTATION, "00")
        assert classify_label("T_00:", "00") == (RecordKind.TRANSLATION, "00")

    def test_classify_unknown_labels(self):
        assert classify_label("K_01:", "00") == (RecordKind.UNKNOWN, "01")
        assert classify_label("S_rect_00:", "00") == (RecordKind.UNKNOWN, "rect_00")
        assert classify_label("P_00:", "00") == (RecordKind.UNKNOWN, "00")
        assert classify_label("calib_time:", "00") == (RecordKind.UNKNOWN, None)
        assert classify_label("K_00", "00") == (RecordKind.UNKNOWN, None)

    def test_iter_records_skips_blank_lines(self, raw_file):
        records = list(iter_records(raw_file, "00"))
        # 15 non-empty lines
        assert len(records) == 15
        known = [r.kind for r in records if r.kind is not RecordKind.UNKNOWN]
        assert known == [
            RecordKind.SIZE,
            RecordKind.INTRINSICS,
            RecordKind.DISTORTION,
            RecordKind.ROTATION,
            RecordKind.TRANSLATION,
        ]

    def test_unknown_records_carry_no_values(self, raw_file):
        records = list(iter_records(raw_file, "00"))
        calib_time = records[0]
        assert calib_time.kind is RecordKind.UNKNOWN
        assert calib_time.label == "calib_time:"
        assert calib_time.values == []
        assert calib_time.line_num == 1


class TestKITTICalibrationErrors:
    """Error reporting for malformed or incomplete files."""

    def test_file_not_found(self):
        with pytest.raises(CalibrationFileNotFoundError):
            parse_kitti_calibration("/nonexistent/calib.txt", IDENTITY, ZERO, "00")

    def test_missing_record(self, tmp_path):
        path = tmp_path / "calib.txt"
        path.write_text(SIMPLE_CALIB.replace("T_0: 0 0 0\n", ""))
        with pytest.raises(MissingFieldError) as exc_info:
            parse_kitti_calibration(path, IDENTITY, ZERO, "0")
        assert exc_info.value.field == "T_0:"

    def test_unknown_camera_id(self, simple_file):
        with pytest.raises(MissingFieldError):
            parse_kitti_calibration(simple_file, IDENTITY, ZERO, "1")

    def test_short_intrinsics_line(self, tmp_path):
        path = tmp_path / "calib.txt"
        path.write_text(SIMPLE_CALIB.replace("172.8 0 0 1", "172.8"))
        with pytest.raises(FieldCardinalityError) as exc_info:
            parse_kitti_calibration(path, IDENTITY, ZERO, "0")
        assert exc_info.value.field == "K_0:"
        assert "Line 2" in str(exc_info.value)

    def test_non_numeric_value(self, tmp_path):
        path = tmp_path / "calib.txt"
        path.write_text(SIMPLE_CALIB.replace("S_0: 1242 375", "S_0: 1242 tall"))
        with pytest.raises(FieldTypeError):
            parse_kitti_calibration(path, IDENTITY, ZERO, "0")

    def test_bad_reference_rotation(self, simple_file):
        with pytest.raises(ValueError):
            parse_kitti_calibration(simple_file, np.eye(2), ZERO, "0")

    def test_six_distortion_coefficients(self, tmp_path):
        path = tmp_path / "calib.txt"
        path.write_text(SIMPLE_CALIB.replace("D_0: -0.37 0.2 0 0 0", "D_0: -0.37 0.2 0 0 0 0.01"))
        with pytest.raises(FieldCardinalityError) as exc_info:
            parse_kitti_calibration(path, IDENTITY, ZERO, "0")
        assert exc_info.value.field == "D_0:"
        assert "Line 3" in str(exc_info.value)

    def test_undecodable_bytes(self, tmp_path):
        path = tmp_path / "calib.txt"
        path.write_bytes(b"calib_time: \xff\xfe\n" + SIMPLE_CALIB.encode())
        with pytest.raises(MalformedFileError) as exc_info:
            parse_kitti_calibration(path, IDENTITY, ZERO, "0")
        assert exc_info.value.path == str(path)

    def test_unreadable_file(self, simple_file, monkeypatch):
        def deny(*args, **kwargs):
            raise PermissionError("Permission denied")

        monkeypatch.setattr(kitti_parser, "open", deny, raising=False)
        with pytest.raises(CalibrationFileNotFoundError) as exc_info:
            parse_kitti_calibration(simple_file, IDENTITY, ZERO, "0")
        assert exc_info.value.kind == "file_not_found"


if __name__ == "__main__":
    pytest.main([__file__, "-v"])
