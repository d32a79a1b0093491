"""
Data Fusion Engine - main entry point for fusing a batch of entities.
"""

import asyncio
from collections.abc import Callable, Iterable
from concurrent.futures import Executor
from datetime import datetime
from uuid import UUID

from src.fusion_engine.cache import CorrelationCache, EntityCache
from src.fusion_engine.confidence import ConfidenceModelRegistry
from src.fusion_engine.config import MAX_BATCH_SIZE, TEMPORAL_DECAY_RATE
from src.fusion_engine.errors import BatchTooLargeError, MissingEntityError, ValidationError
from src.fusion_engine.executor import FusionExecutor
from src.fusion_engine.grouping import EntityGrouper
from src.fusion_engine.quality import QualityScorer
from src.fusion_engine.rules import FusionRuleSelector
from src.fusion_engine.schemas import (
    ConfidenceModel,
    Diagnostic,
    Entity,
    FusionReport,
    FusionResult,
    FusionRule,
    utc_now,
)
from src.fusion_engine.scoring import CorrelationScorer
from src.shared.logger import get_logger

logger = get_logger()


class DataFusionEngine:
    """Correlates a batch of entities and fuses each correlated group.

    Rules and confidence models are configured before processing. Several
    fusion requests may run concurrently on one event loop and share the
    entity and correlation caches, which the engine fills for callers and
    never reads back.
    """

    def __init__(
        self,
        scorer: CorrelationScorer | None = None,
        registry: ConfidenceModelRegistry | None = None,
        rules: list[FusionRule] | None = None,
        pool: Executor | None = None,
        max_batch_size: int | None = MAX_BATCH_SIZE,
        decay_rate: float = TEMPORAL_DECAY_RATE,
        clock: Callable[[], datetime] = utc_now,
        entity_cache: EntityCache | None = None,
        correlation_cache: CorrelationCache | None = None,
    ):
        """Initialize the Data Fusion Engine.

        Args:
            scorer: Pairwise correlation scorer
            registry: Confidence models for weighted fusion
            rules: Fusion rules in evaluation order
            pool: Optional executor for the pairwise scoring pass
            max_batch_size: Largest batch accepted (None disables the guard)
            decay_rate: Per-day decay for temporal decay fusion
            clock: Source of the reference time for a pass
            entity_cache: Bounded store of batch and fused entities for callers
            correlation_cache: Bounded store of retained correlation matches
        """
        self.scorer = scorer or CorrelationScorer()
        self.registry = registry if registry is not None else ConfidenceModelRegistry()
        self.grouper = EntityGrouper(self.scorer, executor=pool)
        self.rule_selector = FusionRuleSelector()
        self.fusion_executor = FusionExecutor(self.registry, QualityScorer(), decay_rate)
        self.max_batch_size = max_batch_size
        self.clock = clock

        self.entity_cache = entity_cache if entity_cache is not None else EntityCache()
        self.correlation_cache = (
            correlation_cache if correlation_cache is not None else CorrelationCache()
        )

        for rule in rules or []:
            self.add_fusion_rule(rule)

        logger.debug(
            f"Data Fusion Engine initialized (threshold {self.scorer.related_threshold}, "
            f"max batch {self.max_batch_size})"
        )

    @property
    def fusion_rules(self) -> list[FusionRule]:
        return list(self.rule_selector.rules)

    def add_fusion_rule(self, rule: FusionRule) -> None:
        """Add fusion rule; call before processing starts."""
        self.rule_selector.add_rule(rule)

    def add_confidence_model(self, model: ConfidenceModel) -> None:
        """Add confidence model for a source; call before processing starts."""
        self.registry.register(model)

    async def fuse_entities(self, entities: Iterable[Entity]) -> list[FusionResult]:
        """Fuse entities from multiple sources.

        Args:
            entities: Batch of entities with unique ids

        Returns:
            One result per correlated group; ungrouped entities produce none
        """
        report = await self.run(entities)
        return report.results

    async def run(self, entities: Iterable[Entity]) -> FusionReport:
        """Run one fusion pass and report results with diagnostics.

        Raises:
            BatchTooLargeError: If the batch exceeds max_batch_size
            ValidationError: If entity ids are not unique
            InternalError: If a group references an entity outside the batch
        """
        batch = list(entities)
        self._admit(batch)

        report = FusionReport()
        if len(batch) < 2:
            report.unfused_entity_ids = [e.id for e in batch]
            return report

        now = self.clock()
        grouping = self.grouper.group_with_matches(batch)
        report.diagnostics.extend(grouping.diagnostics)

        entities_by_id = {e.id: e for e in batch}
        processed: set[UUID] = set()
        fused_entities: list[Entity] = []

        for group_ids in grouping.groups:
            # Cancellation point between groups
            await asyncio.sleep(0)

            if any(entity_id in processed for entity_id in group_ids):
                report.diagnostics.append(
                    Diagnostic(
                        code="group_overlap",
                        message="Group shares members with an already fused group; skipped",
                        entity_ids=list(group_ids),
                    )
                )
                continue

            members = self._materialize(group_ids, entities_by_id)
            rule = self.rule_selector.select({e.entity_type for e in members})
            result = self.fusion_executor.fuse(members, rule, now=now)

            processed.update(group_ids)
            fused_entities.append(result.fused_entity)
            report.results.append(result)

        report.unfused_entity_ids = [
            e.id for e in sorted(batch, key=lambda e: str(e.id)) if e.id not in processed
        ]

        await self.entity_cache.put_many(batch + fused_entities)
        await self.correlation_cache.add_many(grouping.matches)

        logger.info(
            f"Fused {len(processed)} of {len(batch)} entities into "
            f"{len(report.results)} results"
        )
        for diagnostic in report.diagnostics:
            logger.warning(f"{diagnostic.code}: {diagnostic.message}")

        return report

    def _admit(self, batch: list[Entity]) -> None:
        """Reject oversized batches and duplicate ids."""
        if self.max_batch_size is not None and len(batch) > self.max_batch_size:
            raise BatchTooLargeError(len(batch), self.max_batch_size)

        seen: set[UUID] = set()
        for entity in batch:
            if entity.id in seen:
                raise ValidationError(f"Duplicate entity id in batch: {entity.id}")
            seen.add(entity.id)

    def _materialize(
        self,
        group_ids: list[UUID],
        entities_by_id: dict[UUID, Entity],
    ) -> list[Entity]:
        """Resolve group ids to entities; a missing id is an engine bug."""
        members = []
        for entity_id in group_ids:
            entity = entities_by_id.get(entity_id)
            if entity is None:
                raise MissingEntityError(entity_id)
            members.append(entity)
        return members
