"""
NoCheat - machine learning based cheat detection for multiplayer games.

Scores per-round player statistics with a random forest and exposes the
analysis to host processes through a C-compatible buffer interface.
"""

__version__ = "0.1.0"

from nocheat.analysis import analyze, analyze_stats, screen
from nocheat.errors import (
    AnalysisError,
    ColumnNotFound,
    CounterOverflowError,
    FFIProtocolError,
    InputValidationError,
    InvalidTrainingData,
    ModelFileNotFound,
    ModelFormatError,
    ModelLoadError,
    ModelSaveError,
    ModelUnavailable,
    NoCheatError,
    PredictionError,
    TypeMismatch,
)
from nocheat.model import CheatModel, LazyModel, default_model, load, predict, save, train
from nocheat.training import generate_default, train_model
from nocheat.types import Analyzable, AnalysisResponse, AnalysisResult, DefaultStatPayload, DefaultStatRecord, StatRecord

__all__ = [
    "__version__",
    "analyze",
    "analyze_stats",
    "screen",
    "generate_default",
    "train_model",
    "CheatModel",
    "LazyModel",
    "default_model",
    "load",
    "predict",
    "save",
    "train",
    "Analyzable",
    "AnalysisResponse",
    "AnalysisResult",
    "DefaultStatPayload",
    "DefaultStatRecord",
    "StatRecord",
    "AnalysisError",
    "ColumnNotFound",
    "CounterOverflowError",
    "FFIProtocolError",
    "InputValidationError",
    "InvalidTrainingData",
    "ModelFileNotFound",
    "ModelFormatError",
    "ModelLoadError",
    "ModelSaveError",
    "ModelUnavailable",
    "NoCheatError",
    "PredictionError",
    "TypeMismatch",
]
