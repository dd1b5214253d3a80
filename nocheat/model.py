import logging
import os
import pickle
import threading
from typing import List, Optional, Sequence

import numpy as np
import pandas as pd
from sklearn.ensemble import RandomForestClassifier

from nocheat import config
from nocheat.errors import (
    InvalidTrainingData,
    ModelFileNotFound,
    ModelFormatError,
    ModelLoadError,
    ModelSaveError,
    PredictionError,
)

logger = logging.getLogger(__name__)

POSITIVE_LABEL = 1.0
LABEL_COLUMN = "label"

_UNPICKLE_ERRORS = (pickle.UnpicklingError, EOFError, AttributeError, ImportError, IndexError, TypeError, ValueError)


class CheatModel:
    """A trained forest plus the ordered feature names it expects."""

    def __init__(self, forest: RandomForestClassifier, feature_names: Sequence[str] = config.FEATURE_COLUMNS):
        self.forest = forest
        self.feature_names = list(feature_names)

    @property
    def n_features(self) -> int:
        return len(self.feature_names)

    def predict(self, feature_row: Sequence[float], row_index: Optional[int] = None) -> float:
        return predict(self, feature_row, row_index=row_index)

    def save(self, path: str) -> None:
        save(self, path)

    @classmethod
    def load(cls, path: str) -> "CheatModel":
        return load(path)


def _feature_names_for(width: int) -> List[str]:
    if width == len(config.FEATURE_COLUMNS):
        return list(config.FEATURE_COLUMNS)
    return [f"feature_{i}" for i in range(width)]


def _positive_index(forest: RandomForestClassifier) -> Optional[int]:
    matches = np.flatnonzero(forest.classes_ == POSITIVE_LABEL)
    return int(matches[0]) if len(matches) else None


def train(
    rows: Sequence[Sequence[float]],
    labels: Sequence[float],
    feature_names: Optional[Sequence[str]] = None,
) -> CheatModel:
    """Fit a Gini random forest on labeled feature rows (1.0 = cheater, 0.0 = legitimate)."""
    if len(rows) != len(labels):
        raise InvalidTrainingData(f"Number of samples ({len(rows)}) and labels ({len(labels)}) must match")
    if len(rows) == 0:
        raise InvalidTrainingData("Training data cannot be empty")

    try:
        X = np.asarray(rows, dtype=np.float64)
        y = np.asarray(labels, dtype=np.float64)
    except (TypeError, ValueError) as e:
        raise InvalidTrainingData(f"Training rows must be equal-length numeric sequences: {e}") from e

    if X.ndim != 2 or X.shape[1] == 0:
        raise InvalidTrainingData(f"Training rows must form a non-empty 2-D matrix, got shape {X.shape}")
    if not np.isfinite(X).all() or not np.isfinite(y).all():
        raise InvalidTrainingData("Training rows and labels must be finite")

    names = list(feature_names) if feature_names is not None else _feature_names_for(X.shape[1])
    if len(names) != X.shape[1]:
        raise InvalidTrainingData(f"Expected {X.shape[1]} feature names, got {len(names)}")

    table = pd.DataFrame(X, columns=names)
    table[LABEL_COLUMN] = y

    forest = RandomForestClassifier(
        n_estimators=config.N_ESTIMATORS,
        criterion="gini",
        max_depth=config.MAX_DEPTH,
        class_weight="balanced",
        random_state=config.RANDOM_STATE,
    )
    # Fit on plain arrays so predict() on bare rows does not trip feature-name checks
    forest.fit(table[names].to_numpy(), table[LABEL_COLUMN].to_numpy())

    positives = int((y == POSITIVE_LABEL).sum())
    logger.info("Trained forest on %d rows (%d positive, %d negative)", len(y), positives, len(y) - positives)
    return CheatModel(forest, names)


def predict(model: CheatModel, feature_row: Sequence[float], row_index: Optional[int] = None) -> float:
    """Suspicion score in [0, 1] for one feature row. Any inference failure becomes PredictionError."""
    try:
        row = np.asarray(feature_row, dtype=np.float64).reshape(1, -1)
    except (TypeError, ValueError) as e:
        raise PredictionError(f"Invalid feature row: {e}", row_index=row_index) from e

    if row.shape[1] != model.n_features:
        raise PredictionError(
            f"Expected {model.n_features} features, got {row.shape[1]}", row_index=row_index
        )

    try:
        proba = model.forest.predict_proba(row)[0]
        idx = _positive_index(model.forest)
    except Exception as e:
        # One bad row must not take the process down; the caller decides what to abort
        raise PredictionError(f"Model prediction failed: {e}", row_index=row_index) from e

    score = float(proba[idx]) if idx is not None else 0.0
    if not np.isfinite(score):
        raise PredictionError(f"Model returned non-finite score {score}", row_index=row_index)
    return min(max(score, 0.0), 1.0)


def save(model: CheatModel, path: str) -> None:
    try:
        directory = os.path.dirname(path)
        if directory:
            os.makedirs(directory, exist_ok=True)
        with open(path, "wb") as f:
            pickle.dump((model.forest, model.feature_names), f)
    except (OSError, pickle.PicklingError) as e:
        raise ModelSaveError(f"Failed to save model to {path}: {e}", path=path) from e
    logger.info("Model saved to %s", path)


def load(path: str) -> CheatModel:
    if not os.path.exists(path):
        raise ModelFileNotFound(f"Model not found at {path}", path=path)

    try:
        with open(path, "rb") as f:
            payload = pickle.load(f)
    except OSError as e:
        raise ModelLoadError(f"Failed to read model at {path}: {e}", path=path) from e
    except _UNPICKLE_ERRORS as e:
        raise ModelFormatError(f"Corrupt or incompatible model file {path}: {e}", path=path) from e

    if not (isinstance(payload, tuple) and len(payload) == 2):
        raise ModelFormatError(f"Unexpected model payload in {path}", path=path)
    forest, feature_names = payload
    if not isinstance(forest, RandomForestClassifier) or not hasattr(forest, "classes_"):
        raise ModelFormatError(f"{path} does not contain a trained random forest", path=path)

    logger.info("Model loaded from %s", path)
    return CheatModel(forest, feature_names)


class LazyModel:
    """
    Process-wide model holder: the file is read at most once, on first get().

    The outcome of that first load is final. A missing or corrupt file makes
    every later get() raise the same error; there is no reload.
    """

    def __init__(self, path: str):
        self.path = path
        self._lock = threading.Lock()
        self._model: Optional[CheatModel] = None
        self._error: Optional[ModelLoadError] = None

    @property
    def initialized(self) -> bool:
        return self._model is not None or self._error is not None

    def get(self) -> CheatModel:
        if not self.initialized:
            with self._lock:
                if not self.initialized:
                    try:
                        self._model = load(self.path)
                    except ModelLoadError as e:
                        logger.error("Model at %s unavailable for this process: %s", self.path, e)
                        self._error = e
        if self._error is not None:
            raise self._error
        return self._model


_default_loader = LazyModel(config.MODEL_PATH)


def default_model_loader() -> LazyModel:
    return _default_loader


def default_model() -> CheatModel:
    return _default_loader.get()
