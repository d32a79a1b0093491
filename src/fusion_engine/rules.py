"""
Fusion Rule Selector - picks the merge policy for a correlated group.
"""

from collections.abc import Iterable
from datetime import datetime, timezone
from uuid import UUID

from src.fusion_engine.schemas import EntityType, FusionRule, FusionStrategy
from src.shared.logger import get_logger

logger = get_logger()


# Fallback used when no configured rule matches
DEFAULT_FUSION_RULE = FusionRule(
    id=UUID(int=0),
    name="Default",
    description="Default fusion rule",
    entity_types=[],
    source_types=[],
    fusion_strategy=FusionStrategy.AVERAGE_CONFIDENCE,
    confidence_threshold=0.5,
    enabled=True,
    created_at=datetime.min.replace(tzinfo=timezone.utc),
)


class FusionRuleSelector:
    """Selects the first enabled rule matching a group's entity types."""

    def __init__(
        self,
        rules: list[FusionRule] | None = None,
        default_rule: FusionRule = DEFAULT_FUSION_RULE,
    ):
        """Initialize with rules in evaluation order."""
        self.rules: list[FusionRule] = list(rules or [])
        self.default_rule = default_rule

    def add_rule(self, rule: FusionRule) -> None:
        """Append a rule; earlier rules take precedence."""
        if not rule.entity_types:
            logger.warning(
                f"Fusion rule '{rule.name}' has no entity types and will never match; "
                "groups fall back to the default rule"
            )
        self.rules.append(rule)

    def select(self, entity_types: Iterable[EntityType]) -> FusionRule:
        """Return the applicable rule, never failing.

        Args:
            entity_types: Entity types present in the group

        Returns:
            First enabled matching rule, or the default rule
        """
        present = set(entity_types)
        for rule in self.rules:
            if rule.matches(present):
                return rule

        return self.default_rule
