# briefsmith/__init__.py
"""Staged SEO content-brief generation and brief-driven article writing."""
from briefsmith.errors import BriefsmithError, GenerationCancelled, GenerationError, SectionError, StageError
from briefsmith.llm import CancellationToken, OpenAIBackend, SchemaGenerationClient
from briefsmith.models import ContentBrief, GenerationContext
from briefsmith.orchestrator import BriefSession, StageOrchestrator
from briefsmith.stages import Stage

__version__ = "0.3.0"

__all__ = [
    "BriefSession",
    "BriefsmithError",
    "CancellationToken",
    "ContentBrief",
    "GenerationCancelled",
    "GenerationContext",
    "GenerationError",
    "OpenAIBackend",
    "SchemaGenerationClient",
    "SectionError",
    "Stage",
    "StageError",
    "StageOrchestrator",
]
