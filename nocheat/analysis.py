"""
Analysis orchestration: stat records in, per-player suspicion results out.

analyze() is all-or-nothing. A failure in any stage raises AnalysisError
naming the stage, and no partial results are returned. Results are matched
back to players by row position, which relies on the feature pipeline never
reordering or dropping rows.
"""

import logging
from typing import Any, Callable, List, Optional, Sequence

from nocheat import config
from nocheat.errors import AnalysisError, InputValidationError, ModelLoadError, ModelUnavailable
from nocheat.feature_extractor import build_table, derive_ratios, extract_matrix
from nocheat.model import CheatModel, LazyModel, default_model_loader
from nocheat.types import Analyzable, AnalysisResponse, AnalysisResult, DefaultStatPayload, StatRecord

logger = logging.getLogger(__name__)

HIGH_HIT_RATE_FLAG = "HighHitRate"
HIGH_ACCURACY_FLAG = "HighAccuracy"
HIGH_HEADSHOT_RATIO_FLAG = "HighHeadshotRatio"


def _stage(name: str, fn: Callable[..., Any], *args) -> Any:
    try:
        return fn(*args)
    except Exception as e:
        raise AnalysisError(str(e), stage=name) from e


def _resolve_model(model: Optional[CheatModel], loader: Optional[LazyModel]) -> CheatModel:
    if model is not None:
        return model
    loader = loader or default_model_loader()
    try:
        return loader.get()
    except ModelLoadError as e:
        raise ModelUnavailable(str(e)) from e


def analyze(
    records: Sequence[StatRecord[DefaultStatPayload]],
    model: Optional[CheatModel] = None,
    loader: Optional[LazyModel] = None,
    high_hit_rate_threshold: float = config.HIGH_HIT_RATE_THRESHOLD,
) -> List[AnalysisResult]:
    """Score a batch of records. Output i belongs to input record i.

    Uses `model` when given, otherwise the process-wide model (or `loader`).
    """
    model = _resolve_model(model, loader)

    table = _stage("build_table", build_table, records)
    table = _stage("derive_ratios", derive_ratios, table)
    matrix = _stage("extract_matrix", extract_matrix, table, config.FEATURE_COLUMNS)

    player_ids = table["player_id"].tolist()
    hit_rates = table["hit_rate"].tolist()

    results = []
    for i, row in enumerate(matrix):
        score = _stage("predict", model.predict, row, i)
        flags = [HIGH_HIT_RATE_FLAG] if hit_rates[i] > high_hit_rate_threshold else []
        results.append(AnalysisResult(player_id=player_ids[i], suspicion_score=score, flags=flags))

    logger.debug("Analyzed %d records, %d flagged", len(results), sum(1 for r in results if r.flags))
    return results


def analyze_stats(records: Sequence[StatRecord[DefaultStatPayload]], **kwargs) -> AnalysisResponse:
    return AnalysisResponse(results=analyze(records, **kwargs))


def screen(
    records: "Sequence[StatRecord[Analyzable]]",
    accuracy_threshold: float = config.SUSPICIOUS_ACCURACY_THRESHOLD,
    headshot_threshold: float = config.SUSPICIOUS_HEADSHOT_THRESHOLD,
) -> List[AnalysisResult]:
    """Rule-based results for any Analyzable payload, no model involved."""
    results = []
    for record in records:
        data = record.data
        if not isinstance(data, Analyzable):
            raise InputValidationError(
                f"Payload of '{record.player_id}' ({type(data).__name__}) is not Analyzable",
                operation="screen",
            )

        accuracy = data.accuracy_rate()
        headshot = data.headshot_ratio()
        flags = []
        if accuracy > accuracy_threshold:
            flags.append(HIGH_ACCURACY_FLAG)
        if headshot > headshot_threshold:
            flags.append(HIGH_HEADSHOT_RATIO_FLAG)

        score = min(1.0, 0.5 * accuracy + 0.5 * headshot) if data.is_suspicious() else 0.0
        results.append(AnalysisResult(player_id=record.player_id, suspicion_score=score, flags=flags))
    return results
