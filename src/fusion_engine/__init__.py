"""
Entity Fusion Engine.

Decides which intelligence observations from independent sources refer to
the same real-world entity and merges them into canonical records with a
recalibrated confidence.
"""

from src.fusion_engine.confidence import ConfidenceModelRegistry
from src.fusion_engine.engine import DataFusionEngine
from src.fusion_engine.errors import (
    BatchTooLargeError,
    ConfigurationError,
    FusionEngineError,
    GeometryValidationError,
    InternalError,
    ValidationError,
)
from src.fusion_engine.executor import FusionExecutor
from src.fusion_engine.grouping import DisjointSet, EntityGrouper
from src.fusion_engine.quality import QualityScorer
from src.fusion_engine.rules import DEFAULT_FUSION_RULE, FusionRuleSelector
from src.fusion_engine.schemas import (
    ConfidenceModel,
    CorrelationMatch,
    CorrelationType,
    Entity,
    EntityType,
    Evidence,
    EvidenceType,
    FusionReport,
    FusionResult,
    FusionRule,
    FusionStrategy,
    Geometry,
)
from src.fusion_engine.scoring import CorrelationScorer, fuzzy_similarity, levenshtein_distance

__version__ = "0.1.0"

__all__ = [
    "BatchTooLargeError",
    "ConfidenceModel",
    "ConfidenceModelRegistry",
    "ConfigurationError",
    "CorrelationMatch",
    "CorrelationScorer",
    "CorrelationType",
    "DEFAULT_FUSION_RULE",
    "DataFusionEngine",
    "DisjointSet",
    "Entity",
    "EntityGrouper",
    "EntityType",
    "Evidence",
    "EvidenceType",
    "FusionEngineError",
    "FusionExecutor",
    "FusionReport",
    "FusionResult",
    "FusionRule",
    "FusionRuleSelector",
    "FusionStrategy",
    "Geometry",
    "GeometryValidationError",
    "InternalError",
    "QualityScorer",
    "ValidationError",
    "fuzzy_similarity",
    "levenshtein_distance",
]
