"""Extraction orchestrator.

Runs the strategy list in escalating order:

    Indexed -> IndexExtracted -> Complete
                              -> Escalated -> AIExtracted -> Merged -> Complete
    BasicHeuristic is reachable from any failure and also runs last when no
    title has been found.

``ctx.partial`` always holds the best record so far, so a caller that gives
up at any boundary still has something to return.
"""

from __future__ import annotations

import logging
from enum import Enum

from .merge import merge_records
from .models import ProductRecord
from .strategies import ExtractionContext, FieldExtractor, StrategyKind

logger = logging.getLogger(__name__)


class State(str, Enum):
    INDEXED = "Indexed"
    INDEX_EXTRACTED = "IndexExtracted"
    ESCALATED = "Escalated"
    AI_EXTRACTED = "AIExtracted"
    MERGED = "Merged"
    BASIC_HEURISTIC = "BasicHeuristic"
    COMPLETE = "Complete"


class Orchestrator:
    def __init__(self, strategies: list[FieldExtractor]):
        self.strategies = strategies

    def _of_kind(self, kind: StrategyKind) -> list[FieldExtractor]:
        return [s for s in self.strategies if s.kind == kind]

    @staticmethod
    def _enter(ctx: ExtractionContext, state: State) -> None:
        ctx.states.append(state.value)
        logger.debug("[%s] -> %s", ctx.tag, state.value)

    @staticmethod
    async def _run(strategy: FieldExtractor, ctx: ExtractionContext) -> ProductRecord | None:
        try:
            return await strategy.extract(ctx)
        except Exception as exc:
            logger.warning("[%s] Strategy '%s' failed: %r", ctx.tag, strategy.name, exc)
            return None

    async def _basic_heuristic(self, ctx: ExtractionContext) -> ProductRecord:
        self._enter(ctx, State.BASIC_HEURISTIC)
        for strategy in self._of_kind(StrategyKind.HEURISTIC):
            result = await self._run(strategy, ctx)
            if result is None:
                continue
            if ctx.partial.images:
                # heuristic images only fill an empty list
                result.images = []
            ctx.partial = merge_records(ctx.partial, result)
        return ctx.partial

    async def run(self, ctx: ExtractionContext) -> ProductRecord:
        if ctx.session is None and ctx.snapshot is None:
            logger.info("[%s] No rendered page, using basic heuristics only", ctx.tag)
            record = await self._basic_heuristic(ctx)
            self._enter(ctx, State.COMPLETE)
            return record

        self._enter(ctx, State.INDEXED)
        for strategy in self._of_kind(StrategyKind.INDEX):
            result = await self._run(strategy, ctx)
            if result is not None:
                ctx.partial = merge_records(ctx.partial, result)
        self._enter(ctx, State.INDEX_EXTRACTED)

        if not ctx.partial.is_complete():
            self._enter(ctx, State.ESCALATED)
            ai_results = []
            for strategy in self._of_kind(StrategyKind.AI):
                result = await self._run(strategy, ctx)
                if result is not None:
                    ai_results.append(result)

            if ai_results:
                self._enter(ctx, State.AI_EXTRACTED)
                for result in ai_results:
                    ctx.partial = merge_records(ctx.partial, result)
                self._enter(ctx, State.MERGED)
            else:
                await self._basic_heuristic(ctx)

        if not ctx.partial.title and State.BASIC_HEURISTIC.value not in ctx.states:
            await self._basic_heuristic(ctx)

        self._enter(ctx, State.COMPLETE)
        return ctx.partial
