"""
Question selection strategies.

Usage:
    from tutorquiz.selection import build_registry

    registry = build_registry()
    strategy = registry.create("adaptive", repository, rng=random.Random(42))
    selected = strategy.select(criteria)
"""

from tutorquiz.selection.adaptive import AdaptiveSelectionStrategy, adaptive_score
from tutorquiz.selection.base import (
    SelectionRegistry,
    SelectionStrategy,
    StrategyName,
    coerce_criteria,
)
from tutorquiz.selection.default import DefaultSelectionStrategy


def build_registry(default: str | StrategyName = StrategyName.DEFAULT) -> SelectionRegistry:
    """Create a registry holding the built-in strategies."""
    registry = SelectionRegistry()
    registry.register(StrategyName.DEFAULT, DefaultSelectionStrategy)
    registry.register(StrategyName.ADAPTIVE, AdaptiveSelectionStrategy)
    registry.set_default(default)
    return registry


__all__ = [
    "AdaptiveSelectionStrategy",
    "DefaultSelectionStrategy",
    "SelectionRegistry",
    "SelectionStrategy",
    "StrategyName",
    "adaptive_score",
    "build_registry",
    "coerce_criteria",
]
