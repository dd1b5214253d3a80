import logging
from typing import Iterable, Sequence, Tuple

import numpy as np
import pandas as pd

from nocheat import config
from nocheat.errors import ColumnNotFound, CounterOverflowError, InputValidationError, TypeMismatch
from nocheat.types import DefaultStatPayload, StatRecord

logger = logging.getLogger(__name__)

COUNTER_DTYPE = "uint32"


def _checked_total(counts: Iterable[int], player_id: str, column: str) -> int:
    total = sum(counts)
    if total > config.UINT32_MAX:
        raise CounterOverflowError(
            f"'{column}' total {total} for player '{player_id}' exceeds {config.UINT32_MAX}"
        )
    return total


def build_table(records: Sequence[StatRecord[DefaultStatPayload]]) -> pd.DataFrame:
    """One row per record, in input order. An empty batch gives an empty table."""
    ids, shots, hits, headshots = [], [], [], []

    for record in records:
        data = record.data
        if not isinstance(data, DefaultStatPayload):
            raise InputValidationError(
                f"Record '{record.player_id}' has payload {type(data).__name__}, expected DefaultStatPayload",
                operation="build_table",
            )
        ids.append(record.player_id)
        shots.append(_checked_total(data.shots_fired.values(), record.player_id, "shots"))
        hits.append(_checked_total(data.hits.values(), record.player_id, "hits"))
        headshots.append(_checked_total([data.headshots], record.player_id, "headshots"))

    return pd.DataFrame({
        "player_id": pd.Series(ids, dtype=object),
        "shots": pd.Series(shots, dtype=COUNTER_DTYPE),
        "hits": pd.Series(hits, dtype=COUNTER_DTYPE),
        "headshots": pd.Series(headshots, dtype=COUNTER_DTYPE),
    })


def _ratio_column(numerator: pd.Series, denominator: pd.Series) -> np.ndarray:
    num = numerator.to_numpy(dtype=np.float64)
    den = denominator.to_numpy(dtype=np.float64)
    # Zero denominators stay 0.0 instead of NaN/inf
    return np.divide(num, den, out=np.zeros(len(num), dtype=np.float64), where=den != 0)


def derive_ratios(table: pd.DataFrame) -> pd.DataFrame:
    """Adds hit_rate = hits/shots and headshot_rate = headshots/hits without reordering rows."""
    for column in ("shots", "hits", "headshots"):
        if column not in table.columns:
            raise ColumnNotFound(column, operation="derive_ratios")

    return table.assign(
        hit_rate=_ratio_column(table["hits"], table["shots"]),
        headshot_rate=_ratio_column(table["headshots"], table["hits"]),
    )


def extract_matrix(table: pd.DataFrame, column_names: Sequence[str]) -> np.ndarray:
    for name in column_names:
        if name not in table.columns:
            raise ColumnNotFound(name)
        if not pd.api.types.is_numeric_dtype(table[name]):
            raise TypeMismatch(name, table[name].dtype)

    return table.loc[:, list(column_names)].to_numpy(dtype=np.float64).reshape(len(table), len(column_names))


def build_features(
    records: Sequence[StatRecord[DefaultStatPayload]],
    column_names: Sequence[str] = config.FEATURE_COLUMNS,
) -> Tuple[pd.DataFrame, np.ndarray]:
    table = derive_ratios(build_table(records))
    matrix = extract_matrix(table, column_names)
    logger.debug("Built feature matrix %s from %d records", matrix.shape, len(records))
    return table, matrix
