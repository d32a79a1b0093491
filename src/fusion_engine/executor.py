"""
Fusion Executor - merges a correlated group into one canonical entity.
"""

from dataclasses import replace
from datetime import datetime
from typing import Any
from uuid import uuid4

from src.fusion_engine.confidence import ConfidenceModelRegistry
from src.fusion_engine.config import TEMPORAL_DECAY_RATE
from src.fusion_engine.errors import ValidationError
from src.fusion_engine.quality import QualityScorer
from src.fusion_engine.schemas import Entity, FusionResult, FusionRule, ensure_utc, utc_now
from src.fusion_engine.strategies import FusionContext, resolve_strategy
from src.shared.logger import get_logger

logger = get_logger()


class FusionExecutor:
    """Applies a fusion rule's strategy to a group of entities."""

    def __init__(
        self,
        registry: ConfidenceModelRegistry | None = None,
        quality_scorer: QualityScorer | None = None,
        decay_rate: float = TEMPORAL_DECAY_RATE,
    ):
        self.registry = registry if registry is not None else ConfidenceModelRegistry()
        self.quality_scorer = quality_scorer or QualityScorer()
        self.decay_rate = decay_rate

    def fuse(
        self,
        group: list[Entity],
        rule: FusionRule,
        now: datetime | None = None,
    ) -> FusionResult:
        """Fuse a group of at least two entities.

        The member with the smallest id is the template: its type,
        description and location carry over, and its attributes win on
        key collisions.

        Args:
            group: Correlated entities
            rule: Rule whose strategy sets the fused confidence
            now: Reference time for ages and timestamps

        Returns:
            Fusion result with the new entity and its quality score
        """
        if len(group) < 2:
            raise ValidationError(f"Fusion needs at least 2 entities, got {len(group)}")
        if len({e.id for e in group}) != len(group):
            raise ValidationError("Fusion group contains duplicate entity ids")

        now = ensure_utc(now) if now else utc_now()
        members = sorted(group, key=lambda e: str(e.id))
        template = members[0]

        handler = resolve_strategy(rule.fusion_strategy)
        if handler.strategy != rule.fusion_strategy:
            logger.debug(
                f"Rule '{rule.name}' uses unrecognized strategy {rule.fusion_strategy!r}, "
                f"falling back to {handler.strategy.value}"
            )

        context = FusionContext(registry=self.registry, now=now, decay_rate=self.decay_rate)
        outcome = handler.combine(members, context)

        fused = replace(
            template,
            id=uuid4(),
            name=outcome.name if outcome.name is not None else template.name,
            tags=self._merge_tags(members),
            attributes=self._merge_attributes(members),
        )
        fused.update_confidence(outcome.confidence, at=now)

        quality_score = self.quality_scorer.quality(members, fused, now=now)
        logger.fusion(len(members), handler.strategy.value, fused.confidence)

        return FusionResult(
            fused_entity=fused,
            source_entities=[e.id for e in members],
            confidence_delta=fused.confidence - template.confidence,
            fusion_method=handler.strategy,
            quality_score=quality_score,
            created_at=now,
        )

    def _merge_tags(self, members: list[Entity]) -> list[str]:
        """Sorted union of all member tags."""
        return sorted({tag for e in members for tag in e.tags})

    def _merge_attributes(self, members: list[Entity]) -> dict[str, Any]:
        """Key-wise union; the first member (by id) to set a key wins."""
        merged: dict[str, Any] = {}
        for entity in members:
            for key, value in entity.attributes.items():
                merged.setdefault(key, value)
        return merged
