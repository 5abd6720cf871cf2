"""Error taxonomy for the extraction pipeline.

Every error carries a numeric ``status_code`` so a thin HTTP or CLI layer can
map it without inspecting the type:

- 400: the URL does not belong to a supported platform
- 422: extraction finished but the record is unusable (no title)
- 500: renderer or internal failure
"""

from __future__ import annotations


class ExtractionError(Exception):
    """Base class for all pipeline errors."""

    status_code: int = 500

    def __init__(self, message: str, status_code: int | None = None):
        super().__init__(message)
        self.message = message
        if status_code is not None:
            self.status_code = status_code

    def to_dict(self) -> dict:
        return {"error": type(self).__name__, "message": self.message, "status": self.status_code}


class UnsupportedSourceError(ExtractionError):
    """URL does not match any known platform. Fatal, never retried."""

    status_code = 400


class RenderError(ExtractionError):
    """Navigation or page-load failure."""

    status_code = 500


class ParseError(ExtractionError):
    """AI response could not be parsed as JSON, even after repair."""

    status_code = 500


class ServiceUnavailableError(ExtractionError):
    """AI service errored, timed out, or is not configured."""

    status_code = 503


class IncompleteResultError(ExtractionError):
    """Final record still lacks a mandatory field."""

    status_code = 422


class ObstacleError(ExtractionError):
    """Obstacle suppression failed. Logged only; the pipeline continues."""

    status_code = 500
