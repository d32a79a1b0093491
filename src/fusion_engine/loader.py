"""
Loader - validates JSON batches, fusion rules and confidence models.

Pydantic models describe the external document format; the engine only
ever receives the parsed dataclasses.
"""

import json
from dataclasses import dataclass, field
from datetime import datetime
from pathlib import Path
from typing import Any
from uuid import UUID, uuid4

from pydantic import BaseModel, Field
from pydantic import ValidationError as PydanticValidationError

from src.fusion_engine.errors import ConfigurationError, ValidationError
from src.fusion_engine.schemas import (
    ConfidenceModel,
    Entity,
    EntityType,
    FusionRule,
    Geometry,
    utc_now,
)


class LocationInput(BaseModel):
    """GeoJSON geometry, or a plain latitude/longitude pair."""

    type: str = Field(default="Point", description="GeoJSON geometry type")
    coordinates: list[Any] | None = Field(default=None, description="GeoJSON coordinates")
    latitude: float | None = Field(default=None, description="Latitude for a point")
    longitude: float | None = Field(default=None, description="Longitude for a point")

    def to_geometry(self) -> Geometry:
        if self.latitude is not None and self.longitude is not None:
            return Geometry.point(self.latitude, self.longitude)
        if self.coordinates is None:
            raise ValueError("location needs coordinates or latitude/longitude")
        return Geometry(kind=self.type, coordinates=tuple(self.coordinates))


class EntityInput(BaseModel):
    """An entity as produced by upstream extraction or ingestion."""

    id: UUID | None = Field(default=None, description="Entity id (generated if absent)")
    entity_type: EntityType = Field(default=EntityType.UNKNOWN)
    name: str = Field(description="Display name")
    source: str = Field(description="Source label")
    confidence: float = Field(default=0.5, description="Confidence, clamped to [0, 1]")
    description: str | None = None
    created_at: datetime | None = None
    updated_at: datetime | None = None
    tags: list[str] = Field(default_factory=list)
    attributes: dict[str, Any] = Field(default_factory=dict)
    location: LocationInput | None = None

    def to_entity(self) -> Entity:
        # Entity normalizes naive timestamps to UTC
        created_at = self.created_at or utc_now()
        return Entity(
            id=self.id or uuid4(),
            entity_type=self.entity_type,
            name=self.name,
            source=self.source,
            confidence=self.confidence,
            description=self.description,
            created_at=created_at,
            updated_at=self.updated_at or created_at,
            tags=self.tags,
            attributes=self.attributes,
            location=self.location.to_geometry() if self.location else None,
        )


class FusionRuleInput(BaseModel):
    """A configured fusion rule."""

    id: UUID | None = None
    name: str
    description: str = ""
    source_types: list[str] = Field(default_factory=list)
    entity_types: list[EntityType] = Field(default_factory=list)
    fusion_strategy: str = Field(default="average_confidence", description="Strategy label")
    confidence_threshold: float = Field(default=0.5, ge=0.0, le=1.0)
    enabled: bool = True

    def to_rule(self) -> FusionRule:
        return FusionRule(
            id=self.id or uuid4(),
            name=self.name,
            description=self.description,
            source_types=self.source_types,
            entity_types=self.entity_types,
            fusion_strategy=self.fusion_strategy,
            confidence_threshold=self.confidence_threshold,
            enabled=self.enabled,
        )


class ConfidenceModelInput(BaseModel):
    """Reliability parameters for a source."""

    source_name: str
    base_confidence: float = Field(default=0.5, ge=0.0, le=1.0)
    reliability_score: float = Field(default=1.0, ge=0.0)
    decay_rate: float = Field(default=0.1, ge=0.0, description="Per day")
    quality_factors: dict[str, float] = Field(default_factory=dict)

    def to_model(self) -> ConfidenceModel:
        return ConfidenceModel(
            source_name=self.source_name,
            base_confidence=self.base_confidence,
            reliability_score=self.reliability_score,
            decay_rate=self.decay_rate,
            quality_factors=self.quality_factors,
        )


@dataclass
class FusionBatch:
    """Parsed contents of a batch document."""

    entities: list[Entity] = field(default_factory=list)
    fusion_rules: list[FusionRule] = field(default_factory=list)
    confidence_models: list[ConfidenceModel] = field(default_factory=list)


def _describe(error: PydanticValidationError) -> str:
    parts = []
    for item in error.errors():
        location = ".".join(str(p) for p in item["loc"])
        parts.append(f"{location}: {item['msg']}")
    return "; ".join(parts)


def parse_entities(data: list[dict[str, Any]]) -> list[Entity]:
    """Validate raw entity dictionaries.

    Raises:
        ValidationError: If any entity is malformed
    """
    entities = []
    for index, raw in enumerate(data):
        try:
            entities.append(EntityInput.model_validate(raw).to_entity())
        except PydanticValidationError as e:
            raise ValidationError(f"Invalid entity at index {index}: {_describe(e)}") from e
        except ValueError as e:
            raise ValidationError(f"Invalid entity at index {index}: {e}") from e
    return entities


def parse_fusion_rules(data: list[dict[str, Any]]) -> list[FusionRule]:
    """Validate raw fusion rule dictionaries, keeping their order.

    Raises:
        ConfigurationError: If any rule is malformed
    """
    rules = []
    for index, raw in enumerate(data):
        try:
            rules.append(FusionRuleInput.model_validate(raw).to_rule())
        except PydanticValidationError as e:
            raise ConfigurationError(f"Invalid fusion rule at index {index}: {_describe(e)}") from e
    return rules


def parse_confidence_models(data: list[dict[str, Any]]) -> list[ConfidenceModel]:
    """Validate raw confidence model dictionaries.

    Raises:
        ConfigurationError: If any model is malformed
    """
    models = []
    for index, raw in enumerate(data):
        try:
            models.append(ConfidenceModelInput.model_validate(raw).to_model())
        except PydanticValidationError as e:
            raise ConfigurationError(
                f"Invalid confidence model at index {index}: {_describe(e)}"
            ) from e
    return models


def parse_batch(document: dict[str, Any]) -> FusionBatch:
    """Parse a batch document with entities, rules and confidence models."""
    if not isinstance(document, dict):
        raise ValidationError("Batch document must be a JSON object")

    return FusionBatch(
        entities=parse_entities(document.get("entities", [])),
        fusion_rules=parse_fusion_rules(document.get("fusion_rules", [])),
        confidence_models=parse_confidence_models(document.get("confidence_models", [])),
    )


def load_batch(path: Path) -> FusionBatch:
    """Load and parse a batch document from a JSON file."""
    try:
        document = json.loads(Path(path).read_text(encoding="utf-8"))
    except json.JSONDecodeError as e:
        raise ValidationError(f"Batch file {path} is not valid JSON: {e}") from e
    return parse_batch(document)
