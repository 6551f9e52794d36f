"""Evaluation request construction.

``EvaluationRequestBuilder`` turns raw interaction input (transcript and/or
audio) plus a rubric snapshot into a bounded, well-formed request for the
oracle. Input problems are caught here, before any oracle call is made.

Classes:
    AudioPayload: Raw audio bytes with their declared media type.
    InteractionMetadata: Identification fields for one evaluation.
    EvaluationRequest: Immutable request handed to the oracle and validator.
    EvaluationRequestBuilder: Validates input and builds requests.

Example:
    >>> builder = EvaluationRequestBuilder(max_transcript_chars=100_000)
    >>> request = builder.build(
    ...     transcript="Agente: Bom dia, aqui é a Ana...",
    ...     rubric=rubric,
    ...     metadata=InteractionMetadata(
    ...         agent_name="Ana", operation="Suporte", monitor_id="M-7"
    ...     ),
    ... )
    >>> messages = request.to_messages()
"""

from __future__ import annotations

import base64
import copy
import datetime
import logging
from dataclasses import dataclass, field
from typing import Any

from langchain_core.messages import BaseMessage, HumanMessage, SystemMessage
from pydantic import BaseModel, ConfigDict, Field

from src.auditor.evaluation.models import ORACLE_RESPONSE_SCHEMA
from src.auditor.evaluation.prompts import (
    build_system_instructions,
    build_user_prompt,
    serialize_rubric,
    serialize_zero_tolerance,
    truncate_transcript,
)
from src.common.scorecard.errors import InsufficientInputError, MissingMetadataError
from src.common.scorecard.results import RigorLevel
from src.common.scorecard.rubric import Rubric


logger = logging.getLogger(__name__)


# =============================================================================
# Input Models
# =============================================================================


@dataclass(frozen=True)
class AudioPayload:
    """Raw audio bytes with their declared media type.

    Attributes:
        data: Encoded audio file contents.
        mime_type: Declared media type (e.g. "audio/mpeg").
    """

    data: bytes
    mime_type: str

    def as_base64(self) -> str:
        """Return the audio as a base64 string for inline transmission."""
        return base64.b64encode(self.data).decode("ascii")


class InteractionMetadata(BaseModel):
    """Identification fields for one evaluation.

    ``agent_name``, ``operation`` and ``monitor_id`` are required to be
    non-blank; the builder reports every blank one at once.

    Attributes:
        agent_name: The evaluated agent.
        operation: Operation / unit / company the call belongs to.
        monitor_id: Reviewer identifier.
        monitor_name: Reviewer display name.
        audit_date: ISO date of the audit (defaults to today).
        rigor: Evaluation rigor level.
    """

    model_config = ConfigDict(frozen=True)

    agent_name: str = ""
    operation: str = ""
    monitor_id: str = ""
    monitor_name: str = ""
    audit_date: str = Field(default_factory=lambda: datetime.date.today().isoformat())
    rigor: RigorLevel = "MEDIUM"

    def missing_fields(self) -> list[str]:
        """Return the names of required fields that are blank."""
        required = ("agent_name", "operation", "monitor_id")
        return [name for name in required if not getattr(self, name).strip()]


# =============================================================================
# Evaluation Request
# =============================================================================


@dataclass(frozen=True)
class EvaluationRequest:
    """Immutable request for one evaluation.

    Attributes:
        transcript: Transcript as sent to the oracle (possibly truncated).
        audio: Optional audio payload.
        rubric: Rubric snapshot the reply is validated against.
        metadata: Identification fields; echoed into the result.
        system_instructions: Rendered system prompt.
        user_prompt: Rendered user prompt.
        response_schema: JSON schema the reply must satisfy.
        truncated_sections: Which inputs were cut to fit size caps.
    """

    transcript: str
    audio: AudioPayload | None
    rubric: Rubric
    metadata: InteractionMetadata
    system_instructions: str
    user_prompt: str
    response_schema: dict[str, Any]
    truncated_sections: tuple[str, ...] = field(default_factory=tuple)

    @property
    def truncated(self) -> bool:
        """Return True if any input was truncated."""
        return bool(self.truncated_sections)

    @property
    def rigor(self) -> RigorLevel:
        """Return the requested rigor level."""
        return self.metadata.rigor

    def to_messages(self) -> list[BaseMessage]:
        """Build the chat messages sent to the oracle.

        The human message becomes multi-part when audio is attached: a text
        part with metadata and transcript, followed by an inline base64
        audio block.
        """
        if self.audio is None:
            human = HumanMessage(content=self.user_prompt)
        else:
            human = HumanMessage(
                content=[
                    {"type": "text", "text": self.user_prompt},
                    {
                        "type": "audio",
                        "source_type": "base64",
                        "data": self.audio.as_base64(),
                        "mime_type": self.audio.mime_type,
                    },
                ]
            )
        return [SystemMessage(content=self.system_instructions), human]


# =============================================================================
# Builder
# =============================================================================


class EvaluationRequestBuilder:
    """Validates evaluation input and builds EvaluationRequests.

    The builder is pure: it performs no I/O and holds no per-request state.

    Attributes:
        max_transcript_chars: Transcript size cap (None disables it).
        max_rubric_chars: Serialized rubric size cap (None disables it).
    """

    def __init__(
        self,
        max_transcript_chars: int | None = None,
        max_rubric_chars: int | None = None,
    ) -> None:
        """Initialize the builder.

        Args:
            max_transcript_chars: Transcript size cap (None disables it).
            max_rubric_chars: Serialized rubric size cap (None disables it).
        """
        self.max_transcript_chars = max_transcript_chars
        self.max_rubric_chars = max_rubric_chars

    def build(
        self,
        transcript: str,
        rubric: Rubric,
        metadata: InteractionMetadata,
        audio: AudioPayload | None = None,
    ) -> EvaluationRequest:
        """Build an evaluation request.

        Args:
            transcript: Interaction transcript (may be empty if audio is given).
            rubric: Rubric snapshot to evaluate against.
            metadata: Identification fields.
            audio: Optional audio recording.

        Returns:
            A ready-to-send EvaluationRequest.

        Raises:
            InsufficientInputError: If the transcript is blank and no audio
                (or empty audio) is supplied.
            MissingMetadataError: If required metadata fields are blank.
        """
        transcript = transcript or ""
        has_audio = audio is not None and len(audio.data) > 0
        if not transcript.strip() and not has_audio:
            raise InsufficientInputError()

        missing = metadata.missing_fields()
        if missing:
            raise MissingMetadataError(missing)

        truncated_sections: list[str] = []

        sent_transcript, transcript_cut = truncate_transcript(
            transcript, self.max_transcript_chars
        )
        if transcript_cut:
            truncated_sections.append("transcript")
            logger.warning(
                "Transcript for agent '%s' truncated from %d to %d characters",
                metadata.agent_name,
                len(transcript),
                len(sent_transcript),
            )

        scorecard_text, rubric_cut = serialize_rubric(rubric, self.max_rubric_chars)
        if rubric_cut:
            truncated_sections.append("rubric")
            logger.warning(
                "Rubric descriptions trimmed to fit %d characters",
                self.max_rubric_chars,
            )

        system_instructions = build_system_instructions(
            scorecard_text, serialize_zero_tolerance(rubric.zero_tolerance)
        )
        user_prompt = build_user_prompt(
            transcript=sent_transcript,
            agent_name=metadata.agent_name,
            operation=metadata.operation,
            monitor_name=metadata.monitor_name,
            audit_date=metadata.audit_date,
            rigor=metadata.rigor,
            transcript_truncated=transcript_cut,
        )

        logger.debug(
            "Built evaluation request for agent '%s' (%d criteria, audio=%s, rigor=%s)",
            metadata.agent_name,
            len(rubric.criteria),
            has_audio,
            metadata.rigor,
        )

        return EvaluationRequest(
            transcript=sent_transcript,
            audio=audio if has_audio else None,
            rubric=rubric,
            metadata=metadata,
            system_instructions=system_instructions,
            user_prompt=user_prompt,
            response_schema=copy.deepcopy(ORACLE_RESPONSE_SCHEMA),
            truncated_sections=tuple(truncated_sections),
        )
