"""Common contract for extraction strategies."""

from __future__ import annotations

from dataclasses import dataclass, field
from enum import Enum
from typing import Protocol

from ..config import Settings
from ..models import DocumentIndex, DocumentSnapshot, ProductRecord
from ..platforms import PlatformProfile
from ..session import RenderSession


class StrategyKind(str, Enum):
    INDEX = "index"
    AI = "ai"
    HEURISTIC = "heuristic"


@dataclass
class ExtractionContext:
    """Everything one extraction pass knows about the page.

    ``session`` is None when rendering failed; ``index`` is None when the
    indexer failed. Strategies must cope with both.
    """

    url: str
    platform: PlatformProfile
    settings: Settings
    session: RenderSession | None = None
    snapshot: DocumentSnapshot | None = None
    index: DocumentIndex | None = None
    # Best record assembled so far; read by the pipeline on timeout.
    partial: ProductRecord = field(default_factory=ProductRecord)
    states: list[str] = field(default_factory=list)

    @property
    def tag(self) -> str:
        return self.platform.name


class FieldExtractor(Protocol):
    """One extraction approach. Returns a partial record or None."""

    name: str
    kind: StrategyKind

    async def extract(self, ctx: ExtractionContext) -> ProductRecord | None: ...
