"""Data models for the oracle's raw reply.

These models describe what the language model is asked to return. They are
deliberately more lenient than the canonical ``AnalysisResult``: totals and
points are plain numbers the oracle may get wrong, and nothing here enforces
rubric coverage or score invariants. ``ResultValidator`` parses the reply
into these models first, then normalizes it.

Classes:
    OracleCriterionScore: One criterion line as reported by the oracle.
    OracleAnalysisResponse: The full reply as reported by the oracle.

Constants:
    REQUIRED_RESPONSE_FIELDS: Top-level keys the reply must contain.
    ORACLE_RESPONSE_SCHEMA: JSON schema passed to structured output.

Design Notes:
    - The schema is hand-written without ``$ref`` indirection, since some
      providers reject nested definitions in structured output schemas.
    - Echoed metadata (monitorId, auditDate, rigorApplied) is never part of
      the schema; it is attached from the request after validation.
"""

from __future__ import annotations

from typing import Any

from pydantic import BaseModel, ConfigDict, Field, field_validator
from pydantic.alias_generators import to_camel

from src.common.scorecard.results import StatusType, normalize_status_label


REQUIRED_RESPONSE_FIELDS: tuple[str, ...] = (
    "evaluationStatus",
    "totalScore",
    "reasonForCall",
    "criteriaScores",
    "summary",
    "systemReadyText",
    "operatorFeedback",
    "isNcgDetected",
)


# =============================================================================
# Oracle Reply Models
# =============================================================================


class OracleCriterionScore(BaseModel):
    """One criterion line as reported by the oracle.

    Attributes:
        criterion_id: Id the oracle claims to be scoring.
        status: Conformity status; accepts unaccented/lowercase variants.
        points_earned: Points as reported (may be out of range or fractional).
        observation: Justification; must not be blank.
    """

    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True, extra="ignore")

    criterion_id: str = Field(..., min_length=1)
    status: StatusType
    points_earned: float = Field(..., allow_inf_nan=False)
    observation: str = Field(..., min_length=1)

    @field_validator("criterion_id", "observation", mode="before")
    @classmethod
    def strip_text(cls, v: Any) -> Any:
        """Strip surrounding whitespace so blank strings fail min_length."""
        if isinstance(v, str):
            return v.strip()
        if isinstance(v, (int, float)) and not isinstance(v, bool):
            return str(v)
        return v

    @field_validator("status", mode="before")
    @classmethod
    def normalize_status(cls, v: Any) -> Any:
        """Map case and accent variants onto the canonical labels."""
        if not isinstance(v, str):
            return v
        return normalize_status_label(v)


class OracleAnalysisResponse(BaseModel):
    """The full reply as reported by the oracle."""

    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True, extra="ignore")

    evaluation_status: str
    total_score: float = Field(..., allow_inf_nan=False)
    reason_for_call: str
    criteria_scores: list[OracleCriterionScore]
    summary: str
    system_ready_text: str
    operator_feedback: str
    is_ncg_detected: bool


# =============================================================================
# Structured Output Schema
# =============================================================================

ORACLE_RESPONSE_SCHEMA: dict[str, Any] = {
    "title": "AnalysisResult",
    "description": "Quality evaluation of one call-center interaction.",
    "type": "object",
    "properties": {
        "evaluationStatus": {"type": "string"},
        "totalScore": {"type": "number"},
        "reasonForCall": {"type": "string"},
        "isNcgDetected": {"type": "boolean"},
        "criteriaScores": {
            "type": "array",
            "items": {
                "type": "object",
                "properties": {
                    "criterionId": {"type": "string"},
                    "status": {
                        "type": "string",
                        "enum": ["CONFORME", "NÃO CONFORME", "FALHA GRAVE (NCG)"],
                    },
                    "pointsEarned": {"type": "number"},
                    "observation": {"type": "string"},
                },
                "required": ["criterionId", "status", "pointsEarned", "observation"],
            },
        },
        "summary": {"type": "string"},
        "systemReadyText": {"type": "string"},
        "operatorFeedback": {"type": "string"},
    },
    "required": list(REQUIRED_RESPONSE_FIELDS),
}
