"""
Quality Scorer - trustworthiness of a fused entity.

Quality is the mean of source diversity, confidence consistency and
temporal freshness, each in [0, 1].
"""

import math
from datetime import datetime

from src.fusion_engine.config import FRESHNESS_HORIZON_DAYS
from src.fusion_engine.schemas import Entity, clamp_confidence, ensure_utc, utc_now
from src.fusion_engine.strategies import age_in_days


class QualityScorer:
    """Rates fused entities."""

    def __init__(self, freshness_horizon_days: float = FRESHNESS_HORIZON_DAYS):
        self.freshness_horizon_days = freshness_horizon_days

    def quality(
        self,
        group: list[Entity],
        fused_entity: Entity,
        now: datetime | None = None,
    ) -> float:
        """Score a fused entity against the group it came from."""
        if not group:
            return 0.0

        now = ensure_utc(now) if now else utc_now()
        factors = [
            self.source_diversity(group),
            self.confidence_consistency(group),
            self.temporal_freshness(group, now),
        ]
        return clamp_confidence(sum(factors) / len(factors))

    def source_diversity(self, group: list[Entity]) -> float:
        """Distinct sources divided by group size."""
        return len({e.source for e in group}) / len(group)

    def confidence_consistency(self, group: list[Entity]) -> float:
        """1 - standard deviation of member confidences, floored at 0."""
        confidences = [e.confidence for e in group]
        mean = sum(confidences) / len(confidences)
        variance = sum((c - mean) ** 2 for c in confidences) / len(confidences)
        return max(0.0, 1.0 - math.sqrt(variance))

    def temporal_freshness(self, group: list[Entity], now: datetime) -> float:
        """Decays with the average member age over the freshness horizon."""
        average_age = sum(age_in_days(e, now) for e in group) / len(group)
        return min(1.0, 1.0 / (1.0 + average_age / self.freshness_horizon_days))
