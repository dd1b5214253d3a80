"""Shared fixtures for the nocheat test suite."""

import pytest

from nocheat import model as model_module
from nocheat.model import LazyModel
from nocheat.training import generate_default
from nocheat.types import DefaultStatPayload, StatRecord


def _make_record(player_id, shots, hits, headshots, label=None):
    return StatRecord(
        player_id,
        DefaultStatPayload(shots_fired=shots, hits=hits, headshots=headshots, training_label=label),
    )


@pytest.fixture
def make_record():
    """Factory for default-payload records from weapon -> count dicts."""
    return _make_record


@pytest.fixture
def sample_records():
    return [
        _make_record("normal_player", {"rifle": 100}, {"rifle": 50}, 10),
        _make_record("suspicious_player", {"rifle": 100, "pistol": 50}, {"rifle": 90, "pistol": 45}, 50),
    ]


@pytest.fixture(scope="session")
def default_model_path(tmp_path_factory):
    path = tmp_path_factory.mktemp("models") / "cheat_model.bin"
    generate_default(str(path))
    return path


@pytest.fixture
def default_loader(monkeypatch, default_model_path):
    """Point the process-wide model at the generated default model."""
    loader = LazyModel(str(default_model_path))
    monkeypatch.setattr(model_module, "_default_loader", loader)
    return loader


@pytest.fixture
def missing_model_loader(monkeypatch, tmp_path):
    loader = LazyModel(str(tmp_path / "missing" / "cheat_model.bin"))
    monkeypatch.setattr(model_module, "_default_loader", loader)
    return loader
