"""
Error taxonomy for the nocheat library.

Every failure raised by the library derives from NoCheatError so callers can
catch the whole family at once. Zero denominators are not errors: ratio
features are defined as 0.0 in that case and never surface here.
"""

from typing import Optional


class NoCheatError(Exception):
    """Base exception for all library errors."""

    def __init__(self, message: str, operation: Optional[str] = None):
        super().__init__(message)
        self.message = message
        self.operation = operation

    def __str__(self) -> str:
        if self.operation:
            return f"[{self.operation}] {self.message}"
        return self.message


class InputValidationError(NoCheatError):
    """Malformed stat records or mismatched inputs."""


class InvalidTrainingData(InputValidationError):
    """Training rows and labels are empty, ragged or of different lengths."""

    def __init__(self, message: str):
        super().__init__(message, operation="train")


class ModelLoadError(NoCheatError):
    """A model file could not be read or decoded."""

    def __init__(self, message: str, path: Optional[str] = None):
        super().__init__(message, operation="load")
        self.path = path


class ModelFileNotFound(ModelLoadError):
    pass


class ModelFormatError(ModelLoadError):
    """The file exists but is corrupt or not a model written by save()."""


class ModelSaveError(NoCheatError):
    def __init__(self, message: str, path: Optional[str] = None):
        super().__init__(message, operation="save")
        self.path = path


class ColumnNotFound(NoCheatError):
    def __init__(self, column: str, operation: str = "extract_matrix"):
        super().__init__(f"Column '{column}' not found", operation=operation)
        self.column = column


class TypeMismatch(NoCheatError):
    def __init__(self, column: str, dtype):
        super().__init__(
            f"Column '{column}' has non-numeric dtype {dtype}", operation="extract_matrix"
        )
        self.column = column
        self.dtype = dtype


class PredictionError(NoCheatError):
    """The underlying inference call failed for a row."""

    def __init__(self, message: str, row_index: Optional[int] = None):
        super().__init__(message, operation="predict")
        self.row_index = row_index


class CounterOverflowError(NoCheatError, OverflowError):
    """A summed counter does not fit the unsigned 32-bit column width."""

    def __init__(self, message: str):
        super().__init__(message, operation="build_table")


class AnalysisError(NoCheatError):
    """A pipeline stage failed; the whole batch is aborted."""

    def __init__(self, message: str, stage: str):
        super().__init__(message, operation="analyze")
        self.stage = stage

    def __str__(self) -> str:
        return f"[analyze.{self.stage}] {self.message}"


class ModelUnavailable(AnalysisError):
    def __init__(self, message: str):
        super().__init__(message, stage="model")


class FFIProtocolError(NoCheatError):
    """Failure at the foreign-function boundary, tagged with its status code."""

    def __init__(self, message: str, status: int):
        super().__init__(message, operation="ffi")
        self.status = status
