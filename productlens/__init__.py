"""Structured product extraction from rendered e-commerce pages."""

from .errors import (
    ExtractionError,
    IncompleteResultError,
    ObstacleError,
    ParseError,
    RenderError,
    ServiceUnavailableError,
    UnsupportedSourceError,
)
from .models import DeliveryInfo, ProductRecord, Variants
from .pipeline import ExtractOptions, Extractor, extract

__all__ = [
    "DeliveryInfo",
    "ExtractOptions",
    "ExtractionError",
    "Extractor",
    "IncompleteResultError",
    "ObstacleError",
    "ParseError",
    "ProductRecord",
    "RenderError",
    "ServiceUnavailableError",
    "UnsupportedSourceError",
    "Variants",
    "extract",
]
