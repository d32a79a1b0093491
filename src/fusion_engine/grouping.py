"""
Entity Grouper - transitive clustering of correlated entities.

Every unordered pair is scored; pairs at or above the shared correlation
threshold become edges and a disjoint-set forest joins their endpoints.
All iteration runs over entities sorted by id, so identical input always
yields identical groups.
"""

from concurrent.futures import Executor
from dataclasses import dataclass, field
from uuid import UUID

from src.fusion_engine.config import PARALLEL_MIN_BATCH, SCORING_WORKERS
from src.fusion_engine.errors import GeometryValidationError
from src.fusion_engine.schemas import CorrelationMatch, Diagnostic, Entity
from src.fusion_engine.scoring import CorrelationScorer
from src.shared.logger import get_logger

logger = get_logger()


class DisjointSet:
    """Union-find over dense integer indices with path compression."""

    def __init__(self, size: int):
        self.parent = list(range(size))

    def find(self, index: int) -> int:
        root = index
        while self.parent[root] != root:
            # Path halving: point at the grandparent while walking up
            self.parent[root] = self.parent[self.parent[root]]
            root = self.parent[root]
        return root

    def union(self, a: int, b: int) -> bool:
        """Join the sets of a and b; returns False if already joined."""
        root_a = self.find(a)
        root_b = self.find(b)
        if root_a == root_b:
            return False
        self.parent[root_a] = root_b
        return True


@dataclass
class _RowResult:
    """Edges retained for pairs (i, j > i) of one row."""

    matches: list[tuple[int, int, CorrelationMatch]] = field(default_factory=list)
    diagnostics: list[Diagnostic] = field(default_factory=list)


@dataclass
class GroupingResult:
    """Groups plus the correlation matches that formed them."""

    groups: list[list[UUID]]
    matches: list[CorrelationMatch]
    diagnostics: list[Diagnostic] = field(default_factory=list)


def _score_row(
    scorer: CorrelationScorer,
    entities: list[Entity],
    i: int,
    threshold: float,
) -> _RowResult:
    """Score entity i against every later entity."""
    row = _RowResult()
    for j in range(i + 1, len(entities)):
        entity1, entity2 = entities[i], entities[j]
        try:
            match = scorer.score(entity1, entity2)
        except GeometryValidationError as e:
            # Drop only the geographic evidence for this pair
            match = scorer.score(entity1, entity2, use_location=False)
            row.diagnostics.append(
                Diagnostic(
                    code="geo_evidence_dropped",
                    message=e.message,
                    entity_ids=[entity1.id, entity2.id],
                )
            )

        if match.confidence >= threshold:
            row.matches.append((i, j, match))
    return row


def _score_rows(
    scorer: CorrelationScorer,
    entities: list[Entity],
    start: int,
    stop: int,
    threshold: float,
) -> list[_RowResult]:
    """Score a contiguous block of rows; one task per block on a pool."""
    return [_score_row(scorer, entities, i, threshold) for i in range(start, stop)]


def row_chunks(size: int, chunks: int) -> list[tuple[int, int]]:
    """Split rows 0..size into contiguous ranges with similar pair counts.

    Row i scores size - i - 1 pairs, so early ranges hold fewer rows.
    """
    total_pairs = size * (size - 1) // 2
    if size == 0:
        return []
    if chunks <= 1 or total_pairs == 0:
        return [(0, size)]

    target = total_pairs / chunks
    ranges = []
    start = 0
    pairs = 0
    for i in range(size):
        pairs += size - i - 1
        if pairs >= target and len(ranges) < chunks - 1:
            ranges.append((start, i + 1))
            start = i + 1
            pairs = 0
    if start < size:
        ranges.append((start, size))
    return ranges


class EntityGrouper:
    """Groups entities transitively using pairwise correlation scores."""

    def __init__(
        self,
        scorer: CorrelationScorer | None = None,
        executor: Executor | None = None,
        parallel_min_batch: int = PARALLEL_MIN_BATCH,
        chunks: int = SCORING_WORKERS * 4,
    ):
        """Initialize grouper.

        Args:
            scorer: Pairwise scorer (its related threshold is the edge threshold)
            executor: Optional pool for the pairwise pass on large batches
            parallel_min_batch: Smallest batch scored on the executor
            chunks: Number of row blocks submitted to the executor
        """
        self.scorer = scorer or CorrelationScorer()
        self.executor = executor
        self.parallel_min_batch = parallel_min_batch
        self.chunks = chunks

    @property
    def threshold(self) -> float:
        return self.scorer.related_threshold

    def group(self, entities: list[Entity]) -> list[list[UUID]]:
        """Return groups of correlated entity ids, each of size >= 2."""
        return self.group_with_matches(entities).groups

    def group_with_matches(self, entities: list[Entity]) -> GroupingResult:
        """Group entities and keep the retained correlation matches."""
        ordered = sorted(entities, key=lambda e: str(e.id))
        rows = self._score_pairs(ordered)

        forest = DisjointSet(len(ordered))
        matches: list[CorrelationMatch] = []
        diagnostics: list[Diagnostic] = []

        # Rows come back in index order, so unions happen in canonical order
        for row in rows:
            diagnostics.extend(row.diagnostics)
            for i, j, match in row.matches:
                forest.union(i, j)
                matches.append(match)

        members_by_root: dict[int, list[UUID]] = {}
        for index, entity in enumerate(ordered):
            members_by_root.setdefault(forest.find(index), []).append(entity.id)

        # Members are already sorted; order groups by their smallest id
        groups = [members for members in members_by_root.values() if len(members) > 1]
        groups.sort(key=lambda members: str(members[0]))

        logger.debug(
            f"Grouped {len(ordered)} entities into {len(groups)} groups "
            f"from {len(matches)} correlated pairs"
        )
        return GroupingResult(groups=groups, matches=matches, diagnostics=diagnostics)

    def _score_pairs(self, ordered: list[Entity]) -> list[_RowResult]:
        """Score all pairs, on the executor when the batch is large enough."""
        threshold = self.threshold
        indices = range(len(ordered))

        if self.executor is not None and len(ordered) >= self.parallel_min_batch:
            blocks = row_chunks(len(ordered), self.chunks)
            logger.debug(f"Scoring {len(ordered)} entities in {len(blocks)} blocks on worker pool")
            futures = [
                self.executor.submit(_score_rows, self.scorer, ordered, start, stop, threshold)
                for start, stop in blocks
            ]
            # Blocks are contiguous and in order, so rows stay in index order
            return [row for future in futures for row in future.result()]

        return [_score_row(self.scorer, ordered, i, threshold) for i in indices]
