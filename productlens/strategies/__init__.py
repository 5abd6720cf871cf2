"""Extraction strategies, composed as an ordered list by the orchestrator."""

from __future__ import annotations

from ..ai import AIService
from .ai_strategy import AIStrategy
from .base import ExtractionContext, FieldExtractor, StrategyKind
from .heuristic import HeuristicStrategy, HtmlFetcher
from .index_strategy import IndexStrategy

__all__ = [
    "AIStrategy",
    "ExtractionContext",
    "FieldExtractor",
    "HeuristicStrategy",
    "IndexStrategy",
    "StrategyKind",
    "default_strategies",
]


def default_strategies(
    ai_service: AIService | None = None,
    fetch_html: HtmlFetcher | None = None,
) -> list[FieldExtractor]:
    """Index, then AI (only when a service is configured), then heuristics."""
    strategies: list[FieldExtractor] = [IndexStrategy()]
    if ai_service is not None:
        strategies.append(AIStrategy(ai_service))
    strategies.append(HeuristicStrategy(fetch_html))
    return strategies
