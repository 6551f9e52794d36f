"""Evaluation orchestration: request, oracle round-trip, validation, storage.

``InteractionAuditor`` runs one evaluation end to end:

1. Build the request (input and metadata errors raise before any oracle call).
2. Check the rubric's balance (non-fatal warning).
3. Pick the chat model for the request's rigor level.
4. Send the request with structured output and await the single reply.
5. Validate the reply; failures raise and nothing is stored.
6. Record the interaction in the store.

Independent evaluations may run concurrently (e.g. with ``asyncio.gather``).
They share no state except the store, whose append does not await. Abandoning
an evaluation means cancelling or discarding its task; a cancelled task never
reaches step 6.

Classes:
    AuditOutcome: Stored interaction plus non-fatal rubric warning.
    InteractionAuditor: The orchestrator.
"""

from __future__ import annotations

import logging
import time
from dataclasses import dataclass
from typing import Any, Protocol

from langchain_core.exceptions import OutputParserException
from langchain_core.language_models.chat_models import BaseChatModel

from src.auditor.evaluation.request import (
    AudioPayload,
    EvaluationRequest,
    EvaluationRequestBuilder,
    InteractionMetadata,
)
from src.auditor.evaluation.validator import ResultValidator
from src.auditor.store.interaction_store import InteractionStore
from src.common.scorecard.errors import (
    MalformedResponseError,
    OracleTransportError,
    RubricImbalanceWarning,
)
from src.common.scorecard.results import AnalysisResult, Interaction, RigorLevel
from src.common.scorecard.rubric import Rubric, check_balance


logger = logging.getLogger(__name__)


class ModelSelector(Protocol):
    """Anything that maps a rigor level to a chat model."""

    def llm_for(self, rigor: RigorLevel) -> BaseChatModel: ...


@dataclass(frozen=True)
class AuditOutcome:
    """Result of a completed evaluation.

    Attributes:
        interaction: The stored interaction.
        result: The validated analysis result stored on ``interaction``.
        rubric_warning: Imbalance warning for the rubric used, if any.
    """

    interaction: Interaction
    result: AnalysisResult
    rubric_warning: RubricImbalanceWarning | None = None


class InteractionAuditor:
    """Runs evaluations against the oracle and stores validated results.

    Attributes:
        selector: Maps rigor levels to chat models.
        store: Interaction store that receives completed evaluations.
        builder: Request builder (size caps live here).

    Example:
        >>> auditor = InteractionAuditor(selector, store)
        >>> outcome = await auditor.evaluate(transcript, rubric, metadata)
        >>> outcome.result.total_score
        85
    """

    def __init__(
        self,
        selector: ModelSelector,
        store: InteractionStore,
        builder: EvaluationRequestBuilder | None = None,
    ) -> None:
        """Initialize the auditor.

        Args:
            selector: Maps rigor levels to chat models.
            store: Interaction store that receives completed evaluations.
            builder: Request builder; defaults to one without size caps.
        """
        self.selector = selector
        self.store = store
        self.builder = builder or EvaluationRequestBuilder()

    async def evaluate(
        self,
        transcript: str,
        rubric: Rubric,
        metadata: InteractionMetadata,
        audio: AudioPayload | None = None,
    ) -> AuditOutcome:
        """Evaluate one interaction and store the validated result.

        Args:
            transcript: Interaction transcript (may be empty with audio).
            rubric: Rubric snapshot to evaluate against.
            metadata: Identification fields and rigor.
            audio: Optional audio recording.

        Returns:
            AuditOutcome with the stored interaction.

        Raises:
            InsufficientInputError: No transcript and no audio.
            MissingMetadataError: Required metadata fields are blank.
            OracleTransportError: The model call failed.
            MalformedResponseError: The reply did not match the schema.
            IncompleteCoverageError: The reply skipped rubric criteria.
        """
        request = self.builder.build(transcript, rubric, metadata, audio)
        rubric_warning = check_balance(rubric)

        raw = await self._call_oracle(request)
        result = ResultValidator(request).validate(raw).unwrap()

        interaction = self.store.record(metadata.agent_name, transcript, result)
        logger.info(
            "Evaluated agent '%s' for %s: score=%d, ncg=%s, warnings=%d",
            metadata.agent_name,
            metadata.operation,
            result.total_score,
            result.is_ncg_detected,
            len(result.warnings),
        )
        return AuditOutcome(
            interaction=interaction, result=result, rubric_warning=rubric_warning
        )

    async def _call_oracle(self, request: EvaluationRequest) -> Any:
        """Send a request to the rigor-selected model and return the raw reply.

        The structured runnable is asked for the raw message as well. When its
        own parser fails, the raw text is returned so the validator can decide
        whether it is recoverable or malformed.

        Raises:
            OracleTransportError: If the model call fails.
            MalformedResponseError: If the reply could not be parsed at all.
        """
        llm = self.selector.llm_for(request.rigor)
        structured_llm = llm.with_structured_output(
            request.response_schema, include_raw=True
        )

        start = time.monotonic()
        try:
            reply = await structured_llm.ainvoke(request.to_messages())
        except OutputParserException as e:
            logger.warning(
                "Oracle reply for agent '%s' could not be parsed: %s",
                request.metadata.agent_name,
                e,
            )
            raise MalformedResponseError(f"response could not be parsed ({e})") from e
        except Exception as e:
            logger.error(
                "Oracle call failed for agent '%s': %s",
                request.metadata.agent_name,
                e,
                exc_info=True,
            )
            raise OracleTransportError(f"Oracle call failed: {e}", original_error=e) from e

        logger.debug(
            "Oracle latency %.2fs for agent '%s' (rigor=%s)",
            time.monotonic() - start,
            request.metadata.agent_name,
            request.rigor,
        )

        if reply.get("parsing_error") is not None or reply.get("parsed") is None:
            logger.warning(
                "Structured output parsing failed for agent '%s': %s",
                request.metadata.agent_name,
                reply.get("parsing_error"),
            )
            return _message_text(reply.get("raw"))
        return reply["parsed"]


def _message_text(message: Any) -> str:
    """Return the text of a raw chat reply, joining multi-part content."""
    content = getattr(message, "content", "")
    if isinstance(content, list):
        return "".join(
            part.get("text", "") if isinstance(part, dict) else str(part)
            for part in content
        )
    return content or ""
