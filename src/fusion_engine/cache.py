"""
In-memory caches shared by concurrent fusion requests.

The engine only writes to these caches; they are a store for callers that
want to look up entities and correlations from recent passes. Both are
bounded and evict the least recently written entries first.

Writers serialize on an asyncio.Lock. Readers take no lock: reads never
await, so on the event loop they always observe a completed write.
"""

import asyncio
from collections import OrderedDict
from collections.abc import Iterable
from uuid import UUID

from src.fusion_engine.config import CORRELATION_CACHE_SIZE, ENTITY_CACHE_SIZE
from src.fusion_engine.schemas import CorrelationMatch, Entity
from src.shared.logger import get_logger

logger = get_logger()

PairKey = tuple[UUID, UUID]


class EntityCache:
    """Entities seen by previous fusion passes, keyed by id."""

    def __init__(self, max_size: int = ENTITY_CACHE_SIZE):
        self.max_size = max_size
        self._entities: OrderedDict[UUID, Entity] = OrderedDict()
        self._lock = asyncio.Lock()

    def get(self, entity_id: UUID) -> Entity | None:
        return self._entities.get(entity_id)

    def snapshot(self) -> dict[UUID, Entity]:
        """Copy of the current contents."""
        return dict(self._entities)

    async def put_many(self, entities: Iterable[Entity]) -> None:
        async with self._lock:
            for entity in entities:
                self._entities[entity.id] = entity
                self._entities.move_to_end(entity.id)

            evicted = 0
            while len(self._entities) > self.max_size:
                self._entities.popitem(last=False)
                evicted += 1
            if evicted:
                logger.debug(f"Entity cache evicted {evicted} entries")

    async def clear(self) -> None:
        async with self._lock:
            self._entities.clear()

    def __len__(self) -> int:
        return len(self._entities)

    def __contains__(self, entity_id: object) -> bool:
        return entity_id in self._entities


class CorrelationCache:
    """Correlation matches keyed by pair, indexed by both entity ids."""

    def __init__(self, max_size: int = CORRELATION_CACHE_SIZE):
        self.max_size = max_size
        self._matches: OrderedDict[PairKey, CorrelationMatch] = OrderedDict()
        self._by_entity: dict[UUID, set[PairKey]] = {}
        self._lock = asyncio.Lock()

    def for_entity(self, entity_id: UUID) -> list[CorrelationMatch]:
        """Matches involving an entity, ordered by pair."""
        keys = sorted(self._by_entity.get(entity_id, ()), key=lambda k: (str(k[0]), str(k[1])))
        return [self._matches[key] for key in keys]

    async def add_many(self, matches: Iterable[CorrelationMatch]) -> None:
        async with self._lock:
            for match in matches:
                key = match.pair_key
                # Replace an older score for the same pair
                self._matches[key] = match
                self._matches.move_to_end(key)
                for entity_id in key:
                    self._by_entity.setdefault(entity_id, set()).add(key)

            evicted = 0
            while len(self._matches) > self.max_size:
                key, _ = self._matches.popitem(last=False)
                self._unindex(key)
                evicted += 1
            if evicted:
                logger.debug(f"Correlation cache evicted {evicted} entries")

    async def clear(self) -> None:
        async with self._lock:
            self._matches.clear()
            self._by_entity.clear()

    def _unindex(self, key: PairKey) -> None:
        for entity_id in key:
            keys = self._by_entity.get(entity_id)
            if keys is None:
                continue
            keys.discard(key)
            if not keys:
                del self._by_entity[entity_id]

    def __len__(self) -> int:
        return len(self._matches)
