"""
Correlation Scorer - pairwise evidence and similarity between two entities.

Each evidence rule that fires adds its confidence to a running sum and
counts as one contributing factor. Matching entity types contribute a
scalar bonus with no evidence record, and count as a factor like any
other rule. The final confidence is the sum divided by the factor count,
clamped to [0, 1].
"""

from rapidfuzz.distance import Levenshtein

from src.fusion_engine.config import (
    CORRELATION_THRESHOLD,
    EXACT_NAME_CONFIDENCE,
    FUZZY_MATCH_THRESHOLD,
    GEO_PROXIMITY_METERS,
    SAME_ENTITY_THRESHOLD,
    TEMPORAL_WINDOW_SECONDS,
    TYPE_MATCH_BONUS,
)
from src.fusion_engine.geo import DistanceFunction, great_circle_distance_meters
from src.fusion_engine.schemas import (
    CorrelationMatch,
    CorrelationType,
    Entity,
    Evidence,
    EvidenceType,
    clamp_confidence,
)


def levenshtein_distance(s1: str, s2: str) -> int:
    """Classic edit distance (insert, delete, substitute all cost 1)."""
    return Levenshtein.distance(s1, s2)


def fuzzy_similarity(s1: str, s2: str) -> float:
    """Case-insensitive similarity: 1 - distance / longer length."""
    return Levenshtein.normalized_similarity(s1.lower(), s2.lower())


class CorrelationScorer:
    """Computes a CorrelationMatch for a pair of entities.

    `related_threshold` is the single boundary shared with the grouper:
    scores above it classify as related, scores at or above it form edges.
    """

    def __init__(
        self,
        distance: DistanceFunction = great_circle_distance_meters,
        related_threshold: float = CORRELATION_THRESHOLD,
        same_entity_threshold: float = SAME_ENTITY_THRESHOLD,
    ):
        self.distance = distance
        self.related_threshold = related_threshold
        self.same_entity_threshold = same_entity_threshold

    def score(self, entity1: Entity, entity2: Entity, use_location: bool = True) -> CorrelationMatch:
        """Score two entities.

        Args:
            entity1: First entity
            entity2: Second entity
            use_location: Set False to skip geographic evidence

        Returns:
            Correlation match with evidence and classification

        Raises:
            GeometryValidationError: If the distance capability rejects a location
        """
        evidence: list[Evidence] = []
        total = 0.0
        factors = 0

        name_evidence = self._name_evidence(entity1, entity2)
        if name_evidence:
            evidence.append(name_evidence)
            total += name_evidence.confidence
            factors += 1

        if entity1.entity_type == entity2.entity_type:
            total += TYPE_MATCH_BONUS
            factors += 1

        if use_location:
            geo_evidence = self._geo_evidence(entity1, entity2)
            if geo_evidence:
                evidence.append(geo_evidence)
                total += geo_evidence.confidence
                factors += 1

        for check in (self._temporal_evidence, self._tag_evidence):
            item = check(entity1, entity2)
            if item:
                evidence.append(item)
                total += item.confidence
                factors += 1

        confidence = clamp_confidence(total / factors) if factors else 0.0

        return CorrelationMatch(
            entity1_id=entity1.id,
            entity2_id=entity2.id,
            correlation_type=self.classify(confidence),
            confidence=confidence,
            evidence=evidence,
        )

    def classify(self, confidence: float) -> CorrelationType:
        """Map an aggregate confidence to a correlation type."""
        if confidence > self.same_entity_threshold:
            return CorrelationType.SAME_ENTITY
        if confidence > self.related_threshold:
            return CorrelationType.RELATED_ENTITY
        return CorrelationType.SEMANTIC_SIMILARITY

    def _name_evidence(self, entity1: Entity, entity2: Entity) -> Evidence | None:
        if entity1.name.lower() == entity2.name.lower():
            return Evidence(
                evidence_type=EvidenceType.EXACT_MATCH,
                value=entity1.name,
                confidence=EXACT_NAME_CONFIDENCE,
                source="name_comparison",
            )

        similarity = fuzzy_similarity(entity1.name, entity2.name)
        if similarity > FUZZY_MATCH_THRESHOLD:
            return Evidence(
                evidence_type=EvidenceType.FUZZY_MATCH,
                value=f"{int(similarity * 100)}% similarity",
                confidence=similarity,
                source="fuzzy_match",
            )
        return None

    def _geo_evidence(self, entity1: Entity, entity2: Entity) -> Evidence | None:
        if entity1.location is None or entity2.location is None:
            return None

        distance = self.distance(entity1.location, entity2.location)
        if distance >= GEO_PROXIMITY_METERS:
            return None

        return Evidence(
            evidence_type=EvidenceType.GEOGRAPHIC_PROXIMITY,
            value=f"{distance:.1f}m apart",
            confidence=(GEO_PROXIMITY_METERS - distance) / GEO_PROXIMITY_METERS,
            source="geographic_analysis",
        )

    def _temporal_evidence(self, entity1: Entity, entity2: Entity) -> Evidence | None:
        # Whole seconds, truncated toward zero
        time_diff = abs(int((entity1.created_at - entity2.created_at).total_seconds()))
        if time_diff >= TEMPORAL_WINDOW_SECONDS:
            return None

        return Evidence(
            evidence_type=EvidenceType.TEMPORAL_OVERLAP,
            value=f"{time_diff} seconds apart",
            confidence=(TEMPORAL_WINDOW_SECONDS - time_diff) / TEMPORAL_WINDOW_SECONDS,
            source="temporal_analysis",
        )

    def _tag_evidence(self, entity1: Entity, entity2: Entity) -> Evidence | None:
        common_tags = set(entity1.tags) & set(entity2.tags)
        if not common_tags:
            return None

        average_size = (len(entity1.tags) + len(entity2.tags)) / 2
        return Evidence(
            evidence_type=EvidenceType.TAG_OVERLAP,
            value=f"{len(common_tags)} common tags",
            confidence=min(1.0, len(common_tags) / max(average_size, 1.0)),
            source="tag_analysis",
        )
