"""
Confidence Model Registry - per-source reliability parameters.
"""

from collections.abc import Iterable, Iterator

from src.fusion_engine.config import DEFAULT_SOURCE_WEIGHT
from src.fusion_engine.schemas import ConfidenceModel
from src.shared.logger import get_logger

logger = get_logger()


class ConfidenceModelRegistry:
    """Lookup of confidence models keyed by source name.

    Models are registered before processing; fusion only reads them.
    """

    def __init__(self, models: Iterable[ConfidenceModel] | None = None):
        self._models: dict[str, ConfidenceModel] = {}
        for model in models or []:
            self.register(model)

    def register(self, model: ConfidenceModel) -> None:
        """Register (or replace) the model for a source."""
        if model.source_name in self._models:
            logger.debug(f"Replacing confidence model for source '{model.source_name}'")
        self._models[model.source_name] = model

    def get(self, source: str) -> ConfidenceModel | None:
        return self._models.get(source)

    def weight_of(self, source: str) -> float:
        """Reliability weight of a source, 1.0 when no model is registered."""
        model = self._models.get(source)
        return model.reliability_score if model else DEFAULT_SOURCE_WEIGHT

    def __contains__(self, source: object) -> bool:
        return source in self._models

    def __len__(self) -> int:
        return len(self._models)

    def __iter__(self) -> Iterator[ConfidenceModel]:
        return iter(self._models.values())
