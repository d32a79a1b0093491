"""
Entity, Correlation and Fusion schemas for the Entity Fusion Engine.
"""

from dataclasses import dataclass, field
from datetime import datetime, timezone
from enum import Enum
from typing import Any
from uuid import UUID, uuid4


def utc_now() -> datetime:
    """Current time as a timezone-aware UTC datetime."""
    return datetime.now(timezone.utc)


def ensure_utc(value: datetime) -> datetime:
    """Naive timestamps are taken to be UTC; aware ones are converted."""
    if value.tzinfo is None:
        return value.replace(tzinfo=timezone.utc)
    return value.astimezone(timezone.utc)


def clamp_confidence(value: float) -> float:
    """Clamp a confidence value to [0, 1]."""
    return min(1.0, max(0.0, float(value)))


class EntityType(str, Enum):
    """Types of intelligence entities."""

    # Network entities
    IP_ADDRESS = "ip_address"
    DOMAIN = "domain"
    URL = "url"
    EMAIL = "email"

    # Threat entities
    MALWARE = "malware"
    THREAT_ACTOR = "threat_actor"
    CAMPAIGN = "campaign"
    VULNERABILITY = "vulnerability"

    # Geospatial entities
    LOCATION = "location"
    FACILITY = "facility"
    VEHICLE = "vehicle"

    # Human entities
    PERSON = "person"
    ORGANIZATION = "organization"
    GROUP = "group"

    # Communication entities
    PHONE_NUMBER = "phone_number"
    SOCIAL_MEDIA = "social_media"
    DOCUMENT = "document"

    # Generic
    UNKNOWN = "unknown"

    @property
    def category(self) -> str:
        """Category label of this entity type."""
        return _ENTITY_CATEGORIES[self]


_ENTITY_CATEGORIES: dict[EntityType, str] = {
    EntityType.IP_ADDRESS: "network",
    EntityType.DOMAIN: "network",
    EntityType.URL: "network",
    EntityType.EMAIL: "network",
    EntityType.MALWARE: "threat",
    EntityType.THREAT_ACTOR: "threat",
    EntityType.CAMPAIGN: "threat",
    EntityType.VULNERABILITY: "threat",
    EntityType.LOCATION: "geospatial",
    EntityType.FACILITY: "geospatial",
    EntityType.VEHICLE: "geospatial",
    EntityType.PERSON: "human",
    EntityType.ORGANIZATION: "human",
    EntityType.GROUP: "human",
    EntityType.PHONE_NUMBER: "communication",
    EntityType.SOCIAL_MEDIA: "communication",
    EntityType.DOCUMENT: "communication",
    EntityType.UNKNOWN: "unknown",
}


class EvidenceType(str, Enum):
    """Kinds of evidence supporting a correlation."""

    EXACT_MATCH = "exact_match"
    FUZZY_MATCH = "fuzzy_match"
    GEOGRAPHIC_PROXIMITY = "geographic_proximity"
    TEMPORAL_OVERLAP = "temporal_overlap"
    TAG_OVERLAP = "tag_overlap"
    NETWORK_PATH = "network_path"
    SEMANTIC_SIMILARITY = "semantic_similarity"
    SOURCE_CITATION = "source_citation"


class CorrelationType(str, Enum):
    """Types of correlations between two entities."""

    SAME_ENTITY = "same_entity"  # Same real-world object seen by different sources
    RELATED_ENTITY = "related_entity"
    SPATIAL_PROXIMITY = "spatial_proximity"
    TEMPORAL_PROXIMITY = "temporal_proximity"
    NETWORK_CONNECTION = "network_connection"
    SEMANTIC_SIMILARITY = "semantic_similarity"


class FusionStrategy(str, Enum):
    """Policies for merging the confidence of a correlated group."""

    HIGHEST_CONFIDENCE = "highest_confidence"
    AVERAGE_CONFIDENCE = "average_confidence"
    WEIGHTED_AVERAGE = "weighted_average"  # Weighted by source reliability
    BAYESIAN_FUSION = "bayesian_fusion"
    TEMPORAL_DECAY = "temporal_decay"  # Newer data weighted more


@dataclass(frozen=True)
class Geometry:
    """GeoJSON-style geometry; entities normally carry a Point."""

    kind: str
    coordinates: tuple[Any, ...]

    @classmethod
    def point(cls, latitude: float, longitude: float) -> "Geometry":
        """Build a Point (coordinates stored in GeoJSON lon/lat order)."""
        return cls(kind="Point", coordinates=(float(longitude), float(latitude)))

    @property
    def is_point(self) -> bool:
        return self.kind == "Point"

    @property
    def latitude(self) -> float:
        return float(self.coordinates[1])

    @property
    def longitude(self) -> float:
        return float(self.coordinates[0])

    def to_dict(self) -> dict[str, Any]:
        """Convert to a GeoJSON geometry dictionary."""
        return {"type": self.kind, "coordinates": list(self.coordinates)}


@dataclass
class Entity:
    """Intelligence entity observed by a single source."""

    entity_type: EntityType
    name: str
    source: str
    confidence: float = 0.5
    id: UUID = field(default_factory=uuid4)
    description: str | None = None
    created_at: datetime = field(default_factory=utc_now)
    updated_at: datetime = field(default_factory=utc_now)

    # Ordered, free-text labels (duplicates dropped on construction)
    tags: list[str] = field(default_factory=list)

    # Source-specific attributes
    attributes: dict[str, Any] = field(default_factory=dict)

    location: Geometry | None = None

    def __post_init__(self) -> None:
        self.entity_type = EntityType(self.entity_type)
        self.confidence = clamp_confidence(self.confidence)
        self.created_at = ensure_utc(self.created_at)
        self.updated_at = ensure_utc(self.updated_at)
        self.tags = list(dict.fromkeys(self.tags))

    @classmethod
    def new(
        cls,
        entity_type: EntityType,
        name: str,
        source: str,
        **kwargs: Any,
    ) -> "Entity":
        """Create a new entity with default confidence."""
        return cls(entity_type=entity_type, name=name, source=source, **kwargs)

    def update_confidence(self, new_confidence: float, at: datetime | None = None) -> None:
        """Set a clamped confidence and refresh the update timestamp."""
        self.confidence = clamp_confidence(new_confidence)
        self.updated_at = ensure_utc(at) if at else utc_now()

    def to_dict(self) -> dict[str, Any]:
        """Convert to dictionary for output."""
        return {
            "id": str(self.id),
            "entity_type": self.entity_type.value,
            "name": self.name,
            "description": self.description,
            "confidence": self.confidence,
            "source": self.source,
            "created_at": self.created_at.isoformat(),
            "updated_at": self.updated_at.isoformat(),
            "tags": list(self.tags),
            "attributes": dict(self.attributes),
            "location": self.location.to_dict() if self.location else None,
        }


@dataclass
class Evidence:
    """A single observation supporting a correlation decision."""

    evidence_type: EvidenceType
    value: str
    confidence: float
    source: str  # Provenance, e.g. "name_comparison"

    def __post_init__(self) -> None:
        self.confidence = clamp_confidence(self.confidence)

    def to_dict(self) -> dict[str, Any]:
        return {
            "evidence_type": self.evidence_type.value,
            "value": self.value,
            "confidence": self.confidence,
            "source": self.source,
        }


@dataclass
class CorrelationMatch:
    """Scored hypothesis that two entities refer to the same or related object."""

    entity1_id: UUID
    entity2_id: UUID
    correlation_type: CorrelationType
    confidence: float
    evidence: list[Evidence] = field(default_factory=list)
    created_at: datetime = field(default_factory=utc_now)

    def __post_init__(self) -> None:
        self.confidence = clamp_confidence(self.confidence)

    @property
    def pair_key(self) -> tuple[UUID, UUID]:
        """Order-independent key for this pair."""
        return tuple(sorted((self.entity1_id, self.entity2_id), key=str))  # type: ignore[return-value]

    def to_dict(self) -> dict[str, Any]:
        return {
            "entity1_id": str(self.entity1_id),
            "entity2_id": str(self.entity2_id),
            "correlation_type": self.correlation_type.value,
            "confidence": self.confidence,
            "evidence": [e.to_dict() for e in self.evidence],
            "created_at": self.created_at.isoformat(),
        }


@dataclass
class FusionRule:
    """Rule selecting the fusion strategy for groups of given entity types."""

    name: str
    entity_types: list[EntityType] = field(default_factory=list)

    # Unrecognized labels are kept as plain strings and fused by averaging
    fusion_strategy: FusionStrategy | str = FusionStrategy.AVERAGE_CONFIDENCE

    id: UUID = field(default_factory=uuid4)
    description: str = ""
    source_types: list[str] = field(default_factory=list)
    confidence_threshold: float = 0.5
    enabled: bool = True
    created_at: datetime = field(default_factory=utc_now)

    def __post_init__(self) -> None:
        self.entity_types = [EntityType(t) for t in self.entity_types]
        try:
            self.fusion_strategy = FusionStrategy(self.fusion_strategy)
        except ValueError:
            pass
        self.confidence_threshold = clamp_confidence(self.confidence_threshold)

    def matches(self, entity_types: set[EntityType]) -> bool:
        """Check if this rule applies to a group with these entity types."""
        return self.enabled and any(t in entity_types for t in self.entity_types)

    def to_dict(self) -> dict[str, Any]:
        strategy = self.fusion_strategy
        return {
            "id": str(self.id),
            "name": self.name,
            "description": self.description,
            "source_types": list(self.source_types),
            "entity_types": [t.value for t in self.entity_types],
            "fusion_strategy": strategy.value if isinstance(strategy, FusionStrategy) else strategy,
            "confidence_threshold": self.confidence_threshold,
            "enabled": self.enabled,
            "created_at": self.created_at.isoformat(),
        }


@dataclass
class ConfidenceModel:
    """Reliability parameters for one source."""

    source_name: str
    base_confidence: float = 0.5
    reliability_score: float = 1.0  # Weight in weighted fusion
    decay_rate: float = 0.1  # Per day
    quality_factors: dict[str, float] = field(default_factory=dict)

    def __post_init__(self) -> None:
        self.base_confidence = clamp_confidence(self.base_confidence)

    def to_dict(self) -> dict[str, Any]:
        return {
            "source_name": self.source_name,
            "base_confidence": self.base_confidence,
            "reliability_score": self.reliability_score,
            "decay_rate": self.decay_rate,
            "quality_factors": dict(self.quality_factors),
        }


@dataclass
class FusionResult:
    """Canonical entity produced from a correlated group."""

    fused_entity: Entity
    source_entities: list[UUID]
    confidence_delta: float
    fusion_method: FusionStrategy
    quality_score: float
    created_at: datetime = field(default_factory=utc_now)

    def to_dict(self) -> dict[str, Any]:
        return {
            "fused_entity": self.fused_entity.to_dict(),
            "source_entities": [str(i) for i in self.source_entities],
            "confidence_delta": self.confidence_delta,
            "fusion_method": self.fusion_method.value,
            "quality_score": self.quality_score,
            "created_at": self.created_at.isoformat(),
        }


@dataclass
class Diagnostic:
    """Non-fatal event recorded during a fusion pass."""

    code: str  # e.g. "group_overlap", "geo_evidence_dropped"
    message: str
    entity_ids: list[UUID] = field(default_factory=list)

    def to_dict(self) -> dict[str, Any]:
        return {
            "code": self.code,
            "message": self.message,
            "entity_ids": [str(i) for i in self.entity_ids],
        }


@dataclass
class FusionReport:
    """Everything one fusion pass produced."""

    results: list[FusionResult] = field(default_factory=list)
    diagnostics: list[Diagnostic] = field(default_factory=list)

    # Entities left untouched by this pass
    unfused_entity_ids: list[UUID] = field(default_factory=list)

    def to_dict(self) -> dict[str, Any]:
        return {
            "results": [r.to_dict() for r in self.results],
            "diagnostics": [d.to_dict() for d in self.diagnostics],
            "unfused_entity_ids": [str(i) for i in self.unfused_entity_ids],
        }
