"""
Error Taxonomy

Generation failures are recovered inside the engine (fallback chain, skipped
batch items). Only validation and unknown-name errors reach the caller.
"""

from typing import Optional


class TutorError(Exception):
    """Base class for all engine errors."""


class GenerationError(TutorError):
    """The text generation backend failed (network, timeout, quota, bad output)."""


class ParseError(GenerationError):
    """Structured output did not match the expected JSON shape."""

    def __init__(self, message: str, raw_text: Optional[str] = None):
        super().__init__(message)
        self.raw_text = raw_text


class UnknownWorkflowError(TutorError):
    """Caller asked for a workflow that does not exist."""

    def __init__(self, name: str):
        super().__init__(f"Unknown workflow: {name!r}")
        self.name = name


class UnknownActionError(TutorError):
    """Caller asked for an action that does not exist."""

    def __init__(self, name: str):
        super().__init__(f"Unknown action: {name!r}")
        self.name = name


class ValidationError(TutorError):
    """A required parameter is missing or invalid."""

    def __init__(self, parameter: str, message: Optional[str] = None):
        super().__init__(message or f"Missing required parameter: {parameter}")
        self.parameter = parameter
