"""
Training helpers: labeled datasets, the synthetic default dataset and
one-call train-and-save.
"""

import logging
from typing import List, Optional, Sequence, Tuple

from nocheat import config
from nocheat.errors import InvalidTrainingData
from nocheat.feature_extractor import build_features
from nocheat.model import CheatModel, save, train
from nocheat.types import DefaultStatPayload, StatRecord, decode_records

logger = logging.getLogger(__name__)

N_PROFILES_PER_CLASS = 50


def training_set_from_records(
    records: Sequence[StatRecord[DefaultStatPayload]],
) -> Tuple[List[List[float]], List[float]]:
    """Feature rows and labels; every record must carry a training_label."""
    if not records:
        raise InvalidTrainingData("No training data found")

    unlabeled = [r.player_id for r in records if r.data.training_label is None]
    if unlabeled:
        raise InvalidTrainingData(
            f"{len(unlabeled)} records are missing training labels (first: {unlabeled[0]})"
        )

    _, matrix = build_features(records)
    return matrix.tolist(), [r.data.training_label for r in records]


def train_model(
    records: Sequence[StatRecord[DefaultStatPayload]],
    labels: Optional[Sequence[float]],
    output_path: str,
) -> CheatModel:
    """Run the feature pipeline over `records`, fit, and save to `output_path`.

    When `labels` is None they are taken from each record's training_label.
    """
    if labels is None:
        rows, labels = training_set_from_records(records)
    else:
        if len(records) != len(labels):
            raise InvalidTrainingData(
                f"Number of samples ({len(records)}) and labels ({len(labels)}) must match"
            )
        if not records:
            raise InvalidTrainingData("Training data cannot be empty")
        rows = build_features(records)[1].tolist()

    model = train(rows, labels, feature_names=config.FEATURE_COLUMNS)
    save(model, output_path)
    return model


def _profile(player_id: str, i: int, accuracy: float, headshot_ratio: float, label: float) -> StatRecord[DefaultStatPayload]:
    shot_count = 100 + i
    hit_count = int(shot_count * accuracy)
    hits = {"rifle": hit_count, "pistol": hit_count // 2}
    return StatRecord(
        player_id,
        DefaultStatPayload(
            shots_fired={"rifle": shot_count, "pistol": shot_count // 2},
            hits=hits,
            # Ratio applies to hits across all weapons
            headshots=int(sum(hits.values()) * headshot_ratio),
            training_label=label,
        ),
    )


def synthetic_training_records(n_per_class: int = N_PROFILES_PER_CLASS) -> List[StatRecord[DefaultStatPayload]]:
    """Deterministic balanced dataset of normal and cheating profiles."""
    records = []
    for i in range(n_per_class):
        # accuracy 40-65%, headshot ratio 10-25%
        records.append(_profile(f"normal_player_{i}", i, 0.40 + (i % 25) * 0.01, 0.10 + (i % 15) * 0.01, 0.0))
    for i in range(n_per_class):
        # accuracy 80-98%, headshot ratio 40-80%
        records.append(_profile(f"cheater_{i}", i, 0.80 + (i % 18) * 0.01, 0.40 + (i % 40) * 0.01, 1.0))
    return records


def generate_default(output_path: str) -> CheatModel:
    logger.info("Generating default model at %s", output_path)
    return train_model(synthetic_training_records(), None, output_path)


def load_training_file(path: str) -> List[StatRecord[DefaultStatPayload]]:
    with open(path, "rb") as f:
        return decode_records(f.read())
