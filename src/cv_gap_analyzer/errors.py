"""Exception taxonomy for the CV analysis pipeline.

Errors raised before a profile is loaded abort the request and map to an HTTP
status code. Errors on the AI path (``AIPathError`` subclasses) are absorbed by
the orchestrator and replaced with a fallback report.
"""

from __future__ import annotations


class AnalyzerError(Exception):
    """Base class for all pipeline errors."""

    status_code: int = 500


class InputInvalid(AnalyzerError):
    """Malformed payload, unsupported file type or oversized file."""

    status_code = 400


class ProfileNotFound(AnalyzerError):
    """No talent profile exists for the requested key."""

    status_code = 404


class ConfigurationMissing(AnalyzerError):
    """A required collaborator or secret is not configured."""

    status_code = 500


class StoreFailure(AnalyzerError):
    """The profile store could not be read."""

    status_code = 500


class AIPathError(AnalyzerError):
    """Any failure while extracting or analysing with the language model."""


class ExtractionFailed(AIPathError):
    pass


class AnalysisFailed(AIPathError):
    pass


class MalformedResponse(AIPathError):
    """Model output could not be repaired into valid JSON."""


class CleanupFailed(AnalyzerError):
    """Releasing a staged file failed. Logged, never returned to the caller."""
