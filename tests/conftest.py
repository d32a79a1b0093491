"""Shared pytest fixtures for fusion engine tests."""

from __future__ import annotations

from collections.abc import Callable
from datetime import datetime, timedelta, timezone
from typing import Any
from uuid import UUID

import pytest

from src.fusion_engine import (
    ConfidenceModelRegistry,
    CorrelationScorer,
    DataFusionEngine,
    Entity,
    EntityType,
    FusionExecutor,
)

# Fixed reference time so ages and temporal evidence are reproducible
NOW = datetime(2026, 3, 1, 12, 0, 0, tzinfo=timezone.utc)


def uid(n: int) -> UUID:
    """Deterministic UUID whose sort order follows n."""
    return UUID(int=n)


@pytest.fixture
def now() -> datetime:
    return NOW


@pytest.fixture
def make_entity() -> Callable[..., Entity]:
    """Factory for entities created at NOW unless overridden."""

    def _make(
        name: str = "192.168.1.1",
        entity_type: EntityType = EntityType.IP_ADDRESS,
        source: str = "source1",
        confidence: float = 0.5,
        age: timedelta = timedelta(0),
        **kwargs: Any,
    ) -> Entity:
        created_at = kwargs.pop("created_at", NOW - age)
        return Entity(
            entity_type=entity_type,
            name=name,
            source=source,
            confidence=confidence,
            created_at=created_at,
            updated_at=created_at,
            **kwargs,
        )

    return _make


@pytest.fixture
def scorer() -> CorrelationScorer:
    return CorrelationScorer()


@pytest.fixture
def registry() -> ConfidenceModelRegistry:
    return ConfidenceModelRegistry()


@pytest.fixture
def executor(registry: ConfidenceModelRegistry) -> FusionExecutor:
    return FusionExecutor(registry=registry)


@pytest.fixture
def engine() -> DataFusionEngine:
    return DataFusionEngine(clock=lambda: NOW)
