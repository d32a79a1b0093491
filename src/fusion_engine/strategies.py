"""
Fusion strategies - confidence merge policies for a correlated group.

Each strategy is a handler object registered against a FusionStrategy
value. The executor picks the handler by lookup; labels without a handler
fall back to averaging.
"""

import math
from abc import ABC, abstractmethod
from dataclasses import dataclass
from datetime import datetime

from src.fusion_engine.config import BAYESIAN_EPSILON, TEMPORAL_DECAY_RATE
from src.fusion_engine.confidence import ConfidenceModelRegistry
from src.fusion_engine.schemas import Entity, FusionStrategy


def age_in_days(entity: Entity, now: datetime) -> int:
    """Whole days since the entity was created; future timestamps count as 0."""
    return max(0, (now - entity.created_at).days)


def weighted_mean(members: list[Entity], weights: list[float]) -> float | None:
    """Weighted mean confidence, or None when the weights sum to zero."""
    weight_sum = sum(weights)
    if weight_sum <= 0:
        return None
    return sum(e.confidence * w for e, w in zip(members, weights)) / weight_sum


def mean_confidence(members: list[Entity]) -> float:
    return sum(e.confidence for e in members) / len(members)


@dataclass
class FusionContext:
    """Inputs a strategy may consult besides the group itself."""

    registry: ConfidenceModelRegistry
    now: datetime
    decay_rate: float = TEMPORAL_DECAY_RATE


@dataclass
class StrategyOutcome:
    """Fused confidence, plus a name when the strategy picks one."""

    confidence: float
    name: str | None = None


class FusionStrategyHandler(ABC):
    """Base class for confidence fusion policies.

    `combine` receives the members sorted by id and must be deterministic
    for that order.
    """

    strategy: FusionStrategy

    @abstractmethod
    def combine(self, members: list[Entity], context: FusionContext) -> StrategyOutcome:
        """Compute the fused confidence for a group."""


class HighestConfidenceStrategy(FusionStrategyHandler):
    strategy = FusionStrategy.HIGHEST_CONFIDENCE

    def combine(self, members: list[Entity], context: FusionContext) -> StrategyOutcome:
        # max() keeps the first maximal member, i.e. the smallest id on ties
        best = max(members, key=lambda e: e.confidence)
        return StrategyOutcome(confidence=best.confidence, name=best.name)


class AverageConfidenceStrategy(FusionStrategyHandler):
    strategy = FusionStrategy.AVERAGE_CONFIDENCE

    def combine(self, members: list[Entity], context: FusionContext) -> StrategyOutcome:
        return StrategyOutcome(confidence=mean_confidence(members))


class WeightedAverageStrategy(FusionStrategyHandler):
    """Average weighted by each source's reliability score."""

    strategy = FusionStrategy.WEIGHTED_AVERAGE

    def combine(self, members: list[Entity], context: FusionContext) -> StrategyOutcome:
        weights = [context.registry.weight_of(e.source) for e in members]
        confidence = weighted_mean(members, weights)
        if confidence is None:
            confidence = mean_confidence(members)
        return StrategyOutcome(confidence=confidence)


class TemporalDecayStrategy(FusionStrategyHandler):
    """Average weighted by exp(-rate * age_days), favouring recent observations."""

    strategy = FusionStrategy.TEMPORAL_DECAY

    def combine(self, members: list[Entity], context: FusionContext) -> StrategyOutcome:
        weights = [
            math.exp(-context.decay_rate * age_in_days(e, context.now)) for e in members
        ]
        confidence = weighted_mean(members, weights)
        if confidence is None:
            confidence = mean_confidence(members)
        return StrategyOutcome(confidence=confidence)


class BayesianFusionStrategy(FusionStrategyHandler):
    """Combine confidences as independent evidence via odds multiplication.

    Starting from a neutral 0.5 prior, each member's confidence p contributes
    a likelihood ratio p / (1 - p). Members at 0.5 leave the posterior
    unchanged; agreeing sources reinforce each other.
    """

    strategy = FusionStrategy.BAYESIAN_FUSION

    def combine(self, members: list[Entity], context: FusionContext) -> StrategyOutcome:
        log_odds = 0.0
        for entity in members:
            p = min(1.0 - BAYESIAN_EPSILON, max(BAYESIAN_EPSILON, entity.confidence))
            log_odds += math.log(p / (1.0 - p))

        # Logistic form avoids overflow for large groups
        if log_odds >= 0:
            confidence = 1.0 / (1.0 + math.exp(-log_odds))
        else:
            odds = math.exp(log_odds)
            confidence = odds / (1.0 + odds)
        return StrategyOutcome(confidence=confidence)


STRATEGY_HANDLERS: dict[FusionStrategy, FusionStrategyHandler] = {
    handler.strategy: handler
    for handler in (
        HighestConfidenceStrategy(),
        AverageConfidenceStrategy(),
        WeightedAverageStrategy(),
        TemporalDecayStrategy(),
        BayesianFusionStrategy(),
    )
}

FALLBACK_STRATEGY = FusionStrategy.AVERAGE_CONFIDENCE


def resolve_strategy(strategy: FusionStrategy | str) -> FusionStrategyHandler:
    """Handler for a strategy label, averaging for anything unrecognized."""
    if isinstance(strategy, FusionStrategy) and strategy in STRATEGY_HANDLERS:
        return STRATEGY_HANDLERS[strategy]
    return STRATEGY_HANDLERS[FALLBACK_STRATEGY]
