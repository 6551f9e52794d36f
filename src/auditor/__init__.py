"""QA auditor: scoring orchestration and aggregation for call-center interactions.

The auditor sends a transcript (and/or audio) with a weighted scorecard and
zero-tolerance rules to a chat model, validates and normalizes the structured
evaluation it returns, stores it in the interaction history, and aggregates
that history into dashboard analytics.

Subpackages:
    core: LLM factory and rigor-tier model selection
    evaluation: Request building, reply validation and orchestration
    store: Interaction history and persisted application state
    analytics: Average score, category performance and Pareto ranking
    podcast: Podcast-style audio feedback

Modules:
    consultant: Free-form QA consultant grounded on the scorecard
    cli: Command-line entry point

Example:
    >>> from src.auditor import InteractionAuditor, RigorModelSelector, InteractionStore
    >>> auditor = InteractionAuditor(
    ...     RigorModelSelector("gemini-2.5-flash", "gemini-2.5-pro"),
    ...     InteractionStore(),
    ... )
    >>> outcome = await auditor.evaluate(transcript, default_rubric(), metadata)
"""

from src.auditor.analytics import Statistics, compute_statistics
from src.auditor.consultant import QualityConsultant
from src.auditor.core import LLMFactory, RigorModelSelector
from src.auditor.evaluation import (
    AudioPayload,
    AuditOutcome,
    EvaluationRequestBuilder,
    InteractionAuditor,
    InteractionMetadata,
    ResultValidator,
)
from src.auditor.podcast import PodcastAudio, PodcastSynthesizer, VoiceStyle
from src.auditor.store import InteractionStore, StateRepository

__all__ = [
    # Analytics
    "Statistics",
    "compute_statistics",
    # Consultant
    "QualityConsultant",
    # Core
    "LLMFactory",
    "RigorModelSelector",
    # Evaluation
    "AudioPayload",
    "AuditOutcome",
    "EvaluationRequestBuilder",
    "InteractionAuditor",
    "InteractionMetadata",
    "ResultValidator",
    # Podcast
    "PodcastAudio",
    "PodcastSynthesizer",
    "VoiceStyle",
    # Store
    "InteractionStore",
    "StateRepository",
]
