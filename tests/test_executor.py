"""Tests for group fusion: strategies, merge policies and quality scoring."""

import math
from datetime import datetime, timedelta, timezone

import pytest

from src.fusion_engine import (
    ConfidenceModel,
    ConfidenceModelRegistry,
    EntityType,
    FusionExecutor,
    FusionRule,
    FusionStrategy,
    Geometry,
    QualityScorer,
    ValidationError,
)
from src.fusion_engine.strategies import STRATEGY_HANDLERS, resolve_strategy
from tests.conftest import uid


def rule_for(strategy: FusionStrategy | str) -> FusionRule:
    return FusionRule(name="test", entity_types=[EntityType.IP_ADDRESS], fusion_strategy=strategy)


@pytest.fixture
def pair(make_entity):
    first = make_entity(id=uid(1), source="A", confidence=0.8)
    second = make_entity(id=uid(2), source="B", confidence=0.6)
    return first, second


class TestStrategies:
    """Tests for each confidence fusion policy."""

    def test_average_confidence(self, executor: FusionExecutor, pair, now) -> None:
        result = executor.fuse(list(pair), rule_for(FusionStrategy.AVERAGE_CONFIDENCE), now=now)

        assert result.fused_entity.confidence == pytest.approx(0.7)
        assert result.fusion_method == FusionStrategy.AVERAGE_CONFIDENCE

    def test_highest_confidence_copies_name(self, executor: FusionExecutor, make_entity, now) -> None:
        low = make_entity(id=uid(1), name="APT-28", confidence=0.4)
        high = make_entity(id=uid(2), name="APT28", confidence=0.9)

        result = executor.fuse([low, high], rule_for(FusionStrategy.HIGHEST_CONFIDENCE), now=now)

        assert result.fused_entity.confidence == pytest.approx(0.9)
        assert result.fused_entity.name == "APT28"

    def test_highest_confidence_tie_prefers_smallest_id(
        self, executor: FusionExecutor, make_entity, now
    ) -> None:
        later = make_entity(id=uid(2), name="second", confidence=0.7)
        earlier = make_entity(id=uid(1), name="first", confidence=0.7)

        result = executor.fuse([later, earlier], rule_for(FusionStrategy.HIGHEST_CONFIDENCE), now=now)

        assert result.fused_entity.name == "first"

    def test_weighted_average_uses_reliability(self, make_entity, now) -> None:
        registry = ConfidenceModelRegistry(
            [
                ConfidenceModel(source_name="A", reliability_score=3.0),
                ConfidenceModel(source_name="B", reliability_score=1.0),
            ]
        )
        executor = FusionExecutor(registry=registry)
        first = make_entity(id=uid(1), source="A", confidence=0.8)
        second = make_entity(id=uid(2), source="B", confidence=0.4)

        result = executor.fuse([first, second], rule_for(FusionStrategy.WEIGHTED_AVERAGE), now=now)

        assert result.fused_entity.confidence == pytest.approx((0.8 * 3 + 0.4) / 4)

    def test_weighted_average_with_equal_weights_is_average(
        self, executor: FusionExecutor, pair, now
    ) -> None:
        weighted = executor.fuse(list(pair), rule_for(FusionStrategy.WEIGHTED_AVERAGE), now=now)
        average = executor.fuse(list(pair), rule_for(FusionStrategy.AVERAGE_CONFIDENCE), now=now)

        assert weighted.fused_entity.confidence == pytest.approx(average.fused_entity.confidence)

    def test_weighted_average_with_zero_weights_falls_back(self, make_entity, now) -> None:
        registry = ConfidenceModelRegistry(
            [
                ConfidenceModel(source_name="A", reliability_score=0.0),
                ConfidenceModel(source_name="B", reliability_score=0.0),
            ]
        )
        executor = FusionExecutor(registry=registry)
        first = make_entity(id=uid(1), source="A", confidence=0.8)
        second = make_entity(id=uid(2), source="B", confidence=0.6)

        result = executor.fuse([first, second], rule_for(FusionStrategy.WEIGHTED_AVERAGE), now=now)

        assert result.fused_entity.confidence == pytest.approx(0.7)

    def test_temporal_decay_with_zero_ages_is_average(
        self, executor: FusionExecutor, pair, now
    ) -> None:
        result = executor.fuse(list(pair), rule_for(FusionStrategy.TEMPORAL_DECAY), now=now)

        assert result.fused_entity.confidence == pytest.approx(0.7)

    def test_temporal_decay_favours_recent(self, executor: FusionExecutor, make_entity, now) -> None:
        fresh = make_entity(id=uid(1), confidence=0.9)
        stale = make_entity(id=uid(2), confidence=0.1, age=timedelta(days=10))
        weight = math.exp(-0.1 * 10)

        result = executor.fuse([fresh, stale], rule_for(FusionStrategy.TEMPORAL_DECAY), now=now)

        assert result.fused_entity.confidence == pytest.approx((0.9 + 0.1 * weight) / (1 + weight))

    def test_temporal_decay_uses_whole_days(self, executor: FusionExecutor, make_entity, now) -> None:
        first = make_entity(id=uid(1), confidence=0.8)
        second = make_entity(id=uid(2), confidence=0.6, age=timedelta(hours=23))

        result = executor.fuse([first, second], rule_for(FusionStrategy.TEMPORAL_DECAY), now=now)

        assert result.fused_entity.confidence == pytest.approx(0.7)

    def test_bayesian_fusion_reinforces_agreement(
        self, executor: FusionExecutor, make_entity, now
    ) -> None:
        first = make_entity(id=uid(1), confidence=0.8)
        second = make_entity(id=uid(2), confidence=0.8)

        result = executor.fuse([first, second], rule_for(FusionStrategy.BAYESIAN_FUSION), now=now)

        # Odds 4 * 4 = 16
        assert result.fused_entity.confidence == pytest.approx(16 / 17)
        assert result.fusion_method == FusionStrategy.BAYESIAN_FUSION

    def test_bayesian_fusion_neutral_member_has_no_effect(
        self, executor: FusionExecutor, make_entity, now
    ) -> None:
        first = make_entity(id=uid(1), confidence=0.5)
        second = make_entity(id=uid(2), confidence=0.7)

        result = executor.fuse([first, second], rule_for(FusionStrategy.BAYESIAN_FUSION), now=now)

        assert result.fused_entity.confidence == pytest.approx(0.7)

    def test_bayesian_fusion_handles_certainty(
        self, executor: FusionExecutor, make_entity, now
    ) -> None:
        first = make_entity(id=uid(1), confidence=1.0)
        second = make_entity(id=uid(2), confidence=0.0)

        result = executor.fuse([first, second], rule_for(FusionStrategy.BAYESIAN_FUSION), now=now)

        assert result.fused_entity.confidence == pytest.approx(0.5)

    def test_unrecognized_strategy_falls_back_to_average(
        self, executor: FusionExecutor, pair, now
    ) -> None:
        rule = rule_for("dempster_shafer")
        assert rule.fusion_strategy == "dempster_shafer"

        result = executor.fuse(list(pair), rule, now=now)

        assert result.fused_entity.confidence == pytest.approx(0.7)
        assert result.fusion_method == FusionStrategy.AVERAGE_CONFIDENCE

    def test_every_strategy_has_a_handler(self) -> None:
        assert set(STRATEGY_HANDLERS) == set(FusionStrategy)
        for strategy in FusionStrategy:
            assert resolve_strategy(strategy).strategy == strategy


class TestMergePolicies:
    """Tests for identity, tags, attributes and inherited fields."""

    def test_fused_entity_has_fresh_identity(self, executor: FusionExecutor, pair, now) -> None:
        result = executor.fuse(list(pair), rule_for(FusionStrategy.AVERAGE_CONFIDENCE), now=now)

        assert result.fused_entity.id not in result.source_entities
        assert result.source_entities == [uid(1), uid(2)]

    def test_template_is_smallest_id(self, executor: FusionExecutor, make_entity, now) -> None:
        template = make_entity(
            id=uid(1),
            confidence=0.8,
            description="gateway",
            location=Geometry.point(50.45, 30.52),
            age=timedelta(days=2),
        )
        other = make_entity(id=uid(2), confidence=0.6, entity_type=EntityType.DOMAIN)

        result = executor.fuse([other, template], rule_for(FusionStrategy.AVERAGE_CONFIDENCE), now=now)
        fused = result.fused_entity

        assert fused.entity_type == EntityType.IP_ADDRESS
        assert fused.description == "gateway"
        assert fused.location == template.location
        assert fused.created_at == template.created_at
        assert fused.updated_at == now
        assert result.confidence_delta == pytest.approx(0.7 - 0.8)

    def test_tags_are_sorted_union_without_duplicates(
        self, executor: FusionExecutor, make_entity, now
    ) -> None:
        first = make_entity(id=uid(1), tags=["c2", "botnet"])
        second = make_entity(id=uid(2), tags=["botnet", "apt28", "c2"])

        result = executor.fuse([first, second], rule_for(FusionStrategy.AVERAGE_CONFIDENCE), now=now)
        tags = result.fused_entity.tags

        assert tags == ["apt28", "botnet", "c2"]
        assert len(tags) == len(set(tags))
        assert set(first.tags) | set(second.tags) <= set(tags)

    def test_attributes_first_writer_by_id_wins(
        self, executor: FusionExecutor, make_entity, now
    ) -> None:
        second = make_entity(id=uid(2), attributes={"asn": 2, "country": "UA"})
        first = make_entity(id=uid(1), attributes={"asn": 1})

        result = executor.fuse([second, first], rule_for(FusionStrategy.AVERAGE_CONFIDENCE), now=now)

        assert result.fused_entity.attributes == {"asn": 1, "country": "UA"}

    def test_sources_are_not_mutated(self, executor: FusionExecutor, make_entity, now) -> None:
        first = make_entity(id=uid(1), tags=["a"], attributes={"k": "v1"})
        second = make_entity(id=uid(2), tags=["b"], attributes={"j": "v2"})
        before = (first.to_dict(), second.to_dict())

        executor.fuse([first, second], rule_for(FusionStrategy.HIGHEST_CONFIDENCE), now=now)

        assert (first.to_dict(), second.to_dict()) == before

    def test_group_of_one_is_rejected(self, executor: FusionExecutor, make_entity) -> None:
        with pytest.raises(ValidationError):
            executor.fuse([make_entity()], rule_for(FusionStrategy.AVERAGE_CONFIDENCE))

    def test_duplicate_ids_are_rejected(self, executor: FusionExecutor, make_entity) -> None:
        entity = make_entity(id=uid(1))

        with pytest.raises(ValidationError):
            executor.fuse([entity, entity], rule_for(FusionStrategy.AVERAGE_CONFIDENCE))

    def test_naive_timestamps_are_utc(self, executor: FusionExecutor, make_entity, now) -> None:
        naive = datetime(2026, 1, 1)
        first = make_entity(id=uid(1), source="A", confidence=0.8, created_at=naive)
        second = make_entity(id=uid(2), source="B", confidence=0.6, created_at=naive)

        result = executor.fuse(
            [first, second], rule_for(FusionStrategy.TEMPORAL_DECAY), now=now.replace(tzinfo=None)
        )

        assert first.created_at == datetime(2026, 1, 1, tzinfo=timezone.utc)
        assert result.fused_entity.confidence == pytest.approx(0.7)
        assert result.fused_entity.updated_at == now


class TestQualityScorer:
    """Tests for fused entity quality."""

    def test_ideal_group_scores_one(self, make_entity, now) -> None:
        group = [make_entity(source="A", confidence=0.7), make_entity(source="B", confidence=0.7)]

        assert QualityScorer().quality(group, group[0], now=now) == pytest.approx(1.0)

    def test_source_diversity(self, make_entity) -> None:
        group = [make_entity(source="A"), make_entity(source="A"), make_entity(source="B")]

        assert QualityScorer().source_diversity(group) == pytest.approx(2 / 3)

    def test_confidence_consistency(self, make_entity) -> None:
        group = [make_entity(confidence=0.8), make_entity(confidence=0.6)]

        assert QualityScorer().confidence_consistency(group) == pytest.approx(0.9)

    def test_temporal_freshness(self, make_entity, now) -> None:
        group = [make_entity(age=timedelta(days=30)), make_entity(age=timedelta(days=30))]

        assert QualityScorer().temporal_freshness(group, now) == pytest.approx(0.5)

    def test_mean_of_factors(self, make_entity, now) -> None:
        group = [
            make_entity(source="A", confidence=0.8, age=timedelta(days=60)),
            make_entity(source="A", confidence=0.6, age=timedelta(days=60)),
        ]

        quality = QualityScorer().quality(group, group[0], now=now)

        assert quality == pytest.approx((0.5 + 0.9 + 1 / 3) / 3)

    def test_result_carries_quality(self, executor: FusionExecutor, pair, now) -> None:
        result = executor.fuse(list(pair), rule_for(FusionStrategy.AVERAGE_CONFIDENCE), now=now)

        assert result.quality_score == pytest.approx((1.0 + 0.9 + 1.0) / 3)
        assert 0.0 <= result.quality_score <= 1.0
