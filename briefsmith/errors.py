# briefsmith/errors.py
"""Exception types raised by the brief generation pipeline."""
from __future__ import annotations

from typing import Iterable, List, Optional


class BriefsmithError(Exception):
    """Base class for every error raised by briefsmith."""


class BackendError(BriefsmithError):
    """Transport-level failure talking to the generation backend."""


class GenerationCancelled(BriefsmithError):
    def __init__(self, operation: str = "generation"):
        super().__init__(f"{operation} was cancelled")
        self.operation = operation


class EmptyResponseError(BriefsmithError):
    def __init__(self, operation: str):
        super().__init__(f"Received an empty response from the model for {operation}.")
        self.operation = operation


class PromptTooLargeError(BriefsmithError):
    """A prompt is over the hard token limit and was not sent."""

    def __init__(self, operation: str, tokens: int, limit: int):
        super().__init__(f"Prompt for {operation} is ~{tokens} tokens, over the hard limit of {limit}.")
        self.operation = operation
        self.tokens = tokens
        self.limit = limit


class SchemaValidationError(BriefsmithError):
    """Backend text did not parse, or parsed but failed required-field checks."""


class IdentityViolationError(SchemaValidationError):
    """The response changed something it was required to preserve exactly."""


class KeywordIdentityError(IdentityViolationError):
    def __init__(self, missing: Iterable[str], unexpected: Iterable[str]):
        self.missing: List[str] = sorted(missing)
        self.unexpected: List[str] = sorted(unexpected)
        parts = []
        if self.missing:
            parts.append(f"missing {self.missing}")
        if self.unexpected:
            parts.append(f"unexpected {self.unexpected}")
        super().__init__("Keyword strategy does not match the supplied keyword list: " + "; ".join(parts))


class OutlineDepthError(IdentityViolationError):
    def __init__(self, heading: str, depth: int, max_depth: int):
        super().__init__(f"Outline node '{heading}' is nested {depth} levels deep (max {max_depth}).")
        self.heading = heading
        self.depth = depth


class OutlineStructureError(IdentityViolationError):
    """An enrichment pass altered headings or the tree shape."""


class GenerationError(BriefsmithError):
    """All retry attempts for one generation call were exhausted."""

    def __init__(self, operation: str, attempts: int, cause: Optional[BaseException] = None):
        msg = f"{operation} failed after {attempts} attempt(s)"
        if cause is not None:
            msg += f": {cause}"
        super().__init__(msg)
        self.operation = operation
        self.attempts = attempts
        self.cause = cause


class StageError(BriefsmithError):
    """A brief stage could not be generated; the brief is left untouched for it."""

    def __init__(self, stage: int, message: str, cause: Optional[BaseException] = None):
        super().__init__(f"Stage {stage}: {message}")
        self.stage = stage
        self.cause = cause


class StageDependencyError(StageError):
    def __init__(self, stage: int, missing: Iterable[int]):
        self.missing = sorted(int(s) for s in missing)
        super().__init__(stage, f"prerequisite stage(s) {self.missing} have no data yet")


class SectionError(BriefsmithError):
    """Writing one article section failed; earlier sections stay valid."""

    def __init__(self, heading: str, index: int, partial_content: str = "", cause: Optional[BaseException] = None):
        super().__init__(f"Failed to write section {index + 1} '{heading}': {cause}")
        self.heading = heading
        self.index = index
        self.partial_content = partial_content
        self.cause = cause


class DataSourceError(BriefsmithError):
    """The competitor data source returned an HTTP or task-level error."""
