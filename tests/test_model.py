"""Tests for the classifier service: train, predict, persistence and the lazy loader."""

import pickle
import threading

import numpy as np
import pytest

from nocheat import model as model_module
from nocheat.errors import (
    InputValidationError,
    InvalidTrainingData,
    ModelFileNotFound,
    ModelFormatError,
    ModelLoadError,
    ModelSaveError,
    PredictionError,
)
from nocheat.model import CheatModel, LazyModel, load, predict, save, train


def _profiles():
    """50 normal and 50 cheater (accuracy, headshot ratio) rows with labels."""
    rows, labels = [], []
    for i in range(50):
        rows.append([0.40 + (i % 25) * 0.01, 0.10 + (i % 15) * 0.01])
        labels.append(0.0)
    for i in range(50):
        rows.append([0.80 + (i % 18) * 0.01, 0.40 + (i % 40) * 0.01])
        labels.append(1.0)
    return rows, labels


@pytest.fixture(scope="module")
def trained_model():
    rows, labels = _profiles()
    return train(rows, labels)


class TestTrain:
    """Training input validation and fitting."""

    def test_length_mismatch(self):
        with pytest.raises(InvalidTrainingData):
            train([[0.5, 0.2], [0.9, 0.7]], [0.0])

    def test_empty(self):
        with pytest.raises(InvalidTrainingData):
            train([], [])

    def test_ragged_rows(self):
        with pytest.raises(InvalidTrainingData):
            train([[0.5, 0.2], [0.9]], [0.0, 1.0])

    def test_non_finite_values(self):
        with pytest.raises(InvalidTrainingData):
            train([[0.5, float("nan")], [0.9, 0.7]], [0.0, 1.0])

    def test_invalid_training_data_is_input_validation_error(self):
        with pytest.raises(InputValidationError):
            train([], [1.0])

    def test_uses_gini_forest(self, trained_model):
        assert trained_model.forest.criterion == "gini"
        assert trained_model.feature_names == ["hit_rate", "headshot_rate"]

    def test_generic_feature_names(self):
        m = train([[1.0, 2.0, 3.0], [4.0, 5.0, 6.0]], [0.0, 1.0])
        assert m.feature_names == ["feature_0", "feature_1", "feature_2"]

    def test_separates_profiles(self, trained_model):
        cheater = predict(trained_model, [0.9, 0.78])
        normal = predict(trained_model, [0.5, 0.2])
        assert cheater > normal


class TestPredict:
    """Inference boundary."""

    def test_score_in_unit_interval(self, trained_model):
        for row in ([0.0, 0.0], [1.0, 1.0], [0.5, 0.2], [0.95, 0.84]):
            score = predict(trained_model, row)
            assert 0.0 <= score <= 1.0

    def test_method_matches_function(self, trained_model):
        assert trained_model.predict([0.9, 0.78]) == predict(trained_model, [0.9, 0.78])

    def test_wrong_feature_count(self, trained_model):
        with pytest.raises(PredictionError):
            predict(trained_model, [0.5])

    def test_non_numeric_row(self, trained_model):
        with pytest.raises(PredictionError):
            predict(trained_model, ["a", "b"])

    def test_inference_fault_becomes_prediction_error(self):
        class BrokenForest:
            classes_ = np.array([0.0, 1.0])

            def predict_proba(self, X):
                raise RuntimeError("segfault in native code")

        broken = CheatModel(BrokenForest())
        with pytest.raises(PredictionError) as exc_info:
            predict(broken, [0.5, 0.2], row_index=3)
        assert exc_info.value.row_index == 3
        assert isinstance(exc_info.value.__cause__, RuntimeError)

    def test_single_class_model(self):
        m = train([[0.1, 0.1], [0.2, 0.2]], [0.0, 0.0])
        assert predict(m, [0.9, 0.9]) == 0.0

    def test_concurrent_predict(self, trained_model):
        expected = predict(trained_model, [0.9, 0.78])
        results = []

        def worker():
            results.append(predict(trained_model, [0.9, 0.78]))

        threads = [threading.Thread(target=worker) for _ in range(8)]
        for t in threads:
            t.start()
        for t in threads:
            t.join()
        assert results == [expected] * 8


class TestPersistence:
    """save/load round trip and failure modes."""

    def test_round_trip_predictions(self, trained_model, tmp_path):
        path = tmp_path / "model.bin"
        save(trained_model, str(path))
        loaded = load(str(path))
        rows, _ = _profiles()
        for row in rows + [[0.9, 0.78], [0.5, 0.2], [0.0, 0.0]]:
            assert loaded.predict(row) == pytest.approx(trained_model.predict(row), abs=1e-6)

    def test_save_creates_directory(self, trained_model, tmp_path):
        path = tmp_path / "nested" / "dir" / "model.bin"
        trained_model.save(str(path))
        assert path.exists()
        assert CheatModel.load(str(path)).feature_names == trained_model.feature_names

    def test_load_missing_file(self, tmp_path):
        with pytest.raises(ModelFileNotFound):
            load(str(tmp_path / "nope.bin"))

    def test_load_corrupt_file(self, tmp_path):
        path = tmp_path / "corrupt.bin"
        path.write_bytes(b"\x00\x01garbage")
        with pytest.raises(ModelFormatError):
            load(str(path))

    def test_load_wrong_payload(self, tmp_path):
        path = tmp_path / "wrong.bin"
        path.write_bytes(pickle.dumps({"not": "a model"}))
        with pytest.raises(ModelFormatError):
            load(str(path))

    def test_load_errors_share_base(self, tmp_path):
        with pytest.raises(ModelLoadError):
            load(str(tmp_path / "nope.bin"))

    def test_save_to_directory_fails(self, trained_model, tmp_path):
        with pytest.raises(ModelSaveError):
            save(trained_model, str(tmp_path))


class TestLazyModel:
    """Process-wide, load-once model holder."""

    def test_loads_once(self, monkeypatch, trained_model, tmp_path):
        calls = []

        def fake_load(path):
            calls.append(path)
            return trained_model

        monkeypatch.setattr(model_module, "load", fake_load)
        loader = LazyModel(str(tmp_path / "model.bin"))
        assert loader.get() is trained_model
        assert loader.get() is trained_model
        assert len(calls) == 1

    def test_concurrent_first_use_loads_once(self, monkeypatch, trained_model, tmp_path):
        calls = []
        gate = threading.Event()

        def slow_load(path):
            gate.wait(timeout=5)
            calls.append(path)
            return trained_model

        monkeypatch.setattr(model_module, "load", slow_load)
        loader = LazyModel(str(tmp_path / "model.bin"))
        seen = []

        def worker():
            seen.append(loader.get())

        threads = [threading.Thread(target=worker) for _ in range(10)]
        for t in threads:
            t.start()
        gate.set()
        for t in threads:
            t.join()

        assert len(calls) == 1
        assert len(seen) == 10
        assert all(m is trained_model for m in seen)

    def test_missing_file_fails_permanently(self, trained_model, tmp_path):
        path = tmp_path / "late.bin"
        loader = LazyModel(str(path))
        with pytest.raises(ModelFileNotFound):
            loader.get()

        save(trained_model, str(path))
        with pytest.raises(ModelFileNotFound):
            loader.get()
        assert loader.initialized

    def test_default_loader_accessor(self, default_loader):
        assert model_module.default_model_loader() is default_loader
        assert isinstance(model_module.default_model(), CheatModel)
