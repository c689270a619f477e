"""
Error types raised while reading calibration files.

Every error carries the file it came from and, where it applies, the
field (YAML key or text label) that failed, so callers can report
exactly what was wrong without parsing the message.
"""

from typing import Optional


class CalibrationError(Exception):
    """Base class for all calibration parsing errors."""

    kind = "calibration"

    def __init__(
        self,
        message: str,
        path: Optional[str] = None,
        field: Optional[str] = None,
    ):
        self.path = str(path) if path is not None else None
        self.field = field
        context = []
        if self.path:
            context.append(f"file={self.path}")
        if field:
            context.append(f"field={field}")
        if context:
            message = f"{message} ({', '.join(context)})"
        super().__init__(message)


class CalibrationFileNotFoundError(CalibrationError, FileNotFoundError):
    """The calibration file does not exist or cannot be opened."""

    kind = "file_not_found"


class FormatMarkerError(CalibrationError):
    """The file does not start with the expected format marker."""

    kind = "format_marker"


class MissingFieldError(CalibrationError):
    """A required key or label is absent."""

    kind = "missing_field"


class FieldCardinalityError(CalibrationError):
    """A field holds the wrong number of values."""

    kind = "cardinality"


class FieldTypeError(CalibrationError):
    """A field value cannot be converted to the expected type."""

    kind = "type"


class FieldValueError(CalibrationError):
    """A field is well formed but its value is not acceptable."""

    kind = "value"


class MalformedFileError(CalibrationError):
    """The file cannot be tokenized in its declared format."""

    kind = "malformed"
