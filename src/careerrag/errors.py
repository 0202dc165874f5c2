"""
Error taxonomy for the resume-analysis pipeline.

Every error carries a machine-readable ``kind`` and a human-readable message,
so the CLI and the HTTP layer can report failures without guessing.
"""

from __future__ import annotations

from typing import Any, Dict, List, Optional


class CareerRAGError(Exception):
    """Base exception for all pipeline errors."""

    kind = "internal_error"
    http_status = 500

    def __init__(self, message: str, details: Optional[Dict[str, Any]] = None) -> None:
        self.message = message
        self.details = details or {}
        super().__init__(message)

    def __str__(self) -> str:
        if self.details:
            return f"{self.message} | Details: {self.details}"
        return self.message

    def to_dict(self) -> Dict[str, Any]:
        return {"kind": self.kind, "message": self.message, "details": self.details}


class InvalidArgumentError(CareerRAGError):
    """Raised for bad parameters (chunk sizes, unsupported uploads)."""

    kind = "invalid_argument"
    http_status = 400


class MissingInputError(CareerRAGError):
    """Raised when required input is empty (resume text, corpus)."""

    kind = "missing_input"
    http_status = 400


class ConfigurationError(CareerRAGError):
    """Raised when a service is misconfigured (missing API key, unknown provider)."""

    kind = "configuration_error"
    http_status = 500


class EmbeddingError(CareerRAGError):
    """Raised when the embedding model call fails."""

    kind = "embedding_failure"
    http_status = 502

    def __init__(self, message: str, cause: Optional[BaseException] = None,
                 details: Optional[Dict[str, Any]] = None) -> None:
        details = dict(details or {})
        if cause is not None:
            details["cause"] = f"{type(cause).__name__}: {cause}"
        self.cause = cause
        super().__init__(message, details)


class IndexUnavailableError(CareerRAGError):
    """Raised when the vector index cannot be reached or rejects a request."""

    kind = "index_unavailable"
    http_status = 503

    def __init__(self, message: str, operation: Optional[str] = None,
                 details: Optional[Dict[str, Any]] = None) -> None:
        details = dict(details or {})
        if operation:
            details["operation"] = operation
        self.operation = operation
        super().__init__(message, details)


class GenerationError(CareerRAGError):
    """Raised when every configured generation model failed."""

    kind = "generation_failure"
    http_status = 502

    def __init__(self, message: str, models: Optional[List[str]] = None,
                 details: Optional[Dict[str, Any]] = None) -> None:
        details = dict(details or {})
        if models:
            details["models"] = list(models)
        super().__init__(message, details)


class MalformedAnalysisOutputError(CareerRAGError):
    """Raised when the model response is not a valid analysis JSON object."""

    kind = "malformed_analysis_output"
    http_status = 502

    def __init__(self, message: str, raw_text: str,
                 details: Optional[Dict[str, Any]] = None) -> None:
        details = dict(details or {})
        details["raw_text"] = raw_text
        self.raw_text = raw_text
        super().__init__(message, details)
