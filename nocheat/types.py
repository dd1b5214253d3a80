"""
Player statistics data model.

A StatRecord couples a player identifier with an arbitrary statistics
payload. Any payload implementing the Analyzable protocol can go through the
rule-based screening path; DefaultStatPayload is the shape consumed by the
feature pipeline and the classifier.
"""

import json
from dataclasses import dataclass, field
from typing import Any, Callable, Dict, Generic, List, Optional, Protocol, TypeVar, Union, runtime_checkable

from pydantic import BaseModel, Field, TypeAdapter, ValidationError, conint, constr, field_validator, model_validator

from nocheat import config
from nocheat.errors import InputValidationError

D = TypeVar("D")
E = TypeVar("E")

Count = conint(strict=True, ge=0, le=config.UINT32_MAX)


@runtime_checkable
class Analyzable(Protocol):
    """Capabilities a payload needs to be analyzed."""

    def accuracy_rate(self) -> float:
        ...

    def headshot_ratio(self) -> float:
        ...

    def feature_vector(self) -> List[float]:
        """Ordered features; the order must match the one used at training time."""
        ...

    def is_suspicious(self) -> bool:
        ...


def safe_ratio(numerator, denominator) -> float:
    if denominator == 0:
        return 0.0
    return float(numerator) / float(denominator)


class DefaultStatPayload(BaseModel):
    """Per-weapon shot counters for one player and round."""

    shots_fired: Dict[str, Count] = Field(default_factory=dict, description="Shots per weapon")
    hits: Dict[str, Count] = Field(default_factory=dict, description="Hits per weapon")
    headshots: Count = Field(0, description="Headshots across all weapons")
    # Kept for timing analysis, not used by the feature pipeline yet
    shot_timestamps_ms: Optional[List[conint(strict=True, ge=0)]] = Field(None)
    training_label: Optional[float] = Field(None, description="1.0 cheater, 0.0 legitimate")

    @field_validator("training_label")
    @classmethod
    def _binary_label(cls, value: Optional[float]) -> Optional[float]:
        if value is not None and value not in (0.0, 1.0):
            raise ValueError(f"training_label must be 0.0 or 1.0, got {value!r}")
        return value

    def total_shots(self) -> int:
        return sum(self.shots_fired.values())

    def total_hits(self) -> int:
        return sum(self.hits.values())

    def accuracy_rate(self) -> float:
        return safe_ratio(self.total_hits(), self.total_shots())

    def headshot_ratio(self) -> float:
        return safe_ratio(self.headshots, self.total_hits())

    def feature_vector(self) -> List[float]:
        # Same order as config.FEATURE_COLUMNS
        return [self.accuracy_rate(), self.headshot_ratio()]

    def is_suspicious(
        self,
        accuracy_threshold: float = config.SUSPICIOUS_ACCURACY_THRESHOLD,
        headshot_threshold: float = config.SUSPICIOUS_HEADSHOT_THRESHOLD,
    ) -> bool:
        return self.accuracy_rate() > accuracy_threshold or self.headshot_ratio() > headshot_threshold


class StatRecord(BaseModel, Generic[D]):
    """One player's raw statistics for an analysis batch."""

    player_id: constr(strict=True, min_length=1)
    data: D

    def __init__(self, player_id: str, data: D, **kwargs):
        super().__init__(player_id=player_id, data=data, **kwargs)

    @model_validator(mode="before")
    @classmethod
    def _accept_flat_shape(cls, value: Any) -> Any:
        # {"player_id": ..., "shots_fired": ...} is read as {"player_id": ..., "data": {...}}
        if isinstance(value, dict) and "data" not in value:
            payload = {k: v for k, v in value.items() if k != "player_id"}
            return {"player_id": value.get("player_id"), "data": payload}
        return value

    def map_data(self, fn: Callable[[D], E]) -> "StatRecord[E]":
        """Convert the payload with `fn`, keeping the player id. The result is not validated."""
        return StatRecord.model_construct(player_id=self.player_id, data=fn(self.data))


DefaultStatRecord = StatRecord[DefaultStatPayload]

_records_adapter = TypeAdapter(List[DefaultStatRecord])


@dataclass
class AnalysisResult:
    player_id: str
    suspicion_score: float
    flags: List[str] = field(default_factory=list)

    def to_dict(self) -> Dict[str, Any]:
        return {
            "player_id": self.player_id,
            "suspicion_score": self.suspicion_score,
            "flags": list(self.flags),
        }


@dataclass
class AnalysisResponse:
    results: List[AnalysisResult] = field(default_factory=list)

    def to_dict(self) -> Dict[str, Any]:
        return {"results": [r.to_dict() for r in self.results]}


def decode_records(raw: Union[bytes, str]) -> List[DefaultStatRecord]:
    """Parse and validate a JSON array of stat records."""
    try:
        return _records_adapter.validate_json(raw)
    except ValidationError as e:
        raise InputValidationError(
            f"Invalid stat records ({e.error_count()} errors): {e.errors()[0]['msg']}", operation="decode"
        ) from e
    except (ValueError, RecursionError) as e:
        raise InputValidationError(f"Invalid stat records JSON: {e}", operation="decode") from e


def encode_response(response: AnalysisResponse) -> bytes:
    # allow_nan=False: a NaN score must fail loudly instead of producing invalid JSON
    return json.dumps(response.to_dict(), allow_nan=False).encode("utf-8")
