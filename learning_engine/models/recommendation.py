from __future__ import annotations

from dataclasses import asdict, dataclass
from typing import Any


@dataclass(frozen=True, slots=True)
class ContentRecommendation:
    content_id: str
    difficulty: float
    reason: str
    confidence: float

    def to_dict(self) -> dict[str, Any]:
        return asdict(self)

    @staticmethod
    def from_dict(data: dict[str, Any]) -> ContentRecommendation:
        return ContentRecommendation(**data)
