"""Evaluation result models.

This module defines the canonical, validated shape of an evaluation outcome
and the persisted interaction record. Oracle output never reaches these
models directly: ``ResultValidator`` normalizes it first.

Models:
    - CriterionScore: One evaluated rubric line
    - ScoreConsistencyWarning: A correction the validator applied to a result
    - AnalysisResult: Canonical evaluation outcome
    - Interaction: Persisted record of one evaluated interaction

Functions:
    - normalize_status_label: Map case and accent variants onto status labels
    - restore_stored_result: Rebuild a stored result saved without a ledger

Design Note:
    Models serialize with camelCase aliases so persisted JSON keeps the
    field names the stored history has always used (``totalScore``,
    ``criteriaScores``...). Use ``model_dump(mode="json", by_alias=True)``
    to write and ``model_validate`` to read.

Example:
    >>> score = CriterionScore(
    ...     criterion_id="A",
    ...     status="CONFORME",
    ...     points_earned=60,
    ...     max_points=60,
    ...     observation="Greeted the customer by name.",
    ... )
"""

from __future__ import annotations

import datetime
import math
import unicodedata
import uuid
from collections.abc import Mapping
from decimal import ROUND_HALF_UP, Decimal
from typing import Any, Literal

from pydantic import BaseModel, ConfigDict, Field, model_validator
from pydantic.alias_generators import to_camel


# =============================================================================
# Status and Rigor Types
# =============================================================================

STATUS_CONFORME = "CONFORME"
STATUS_NAO_CONFORME = "NÃO CONFORME"
STATUS_NCG = "FALHA GRAVE (NCG)"

StatusType = Literal["CONFORME", "NÃO CONFORME", "FALHA GRAVE (NCG)"]

ALL_STATUSES: list[StatusType] = [STATUS_CONFORME, STATUS_NAO_CONFORME, STATUS_NCG]

RigorLevel = Literal["LIGHT", "MEDIUM", "EXPERT"]

ALL_RIGOR_LEVELS: list[RigorLevel] = ["LIGHT", "MEDIUM", "EXPERT"]

# Ceiling of an interaction's total score
MAX_TOTAL_SCORE = 100


_MODEL_CONFIG = ConfigDict(
    frozen=True,
    alias_generator=to_camel,
    populate_by_name=True,
)


# =============================================================================
# Criterion Score
# =============================================================================


class CriterionScore(BaseModel):
    """One evaluated rubric line.

    Attributes:
        criterion_id: Id of the rubric criterion this line scores.
        status: Conformity status assigned by the oracle.
        points_earned: Points awarded, within [0, max_points].
        max_points: The criterion's weight when it was scored.
        observation: Justification for the status (never empty).
    """

    model_config = _MODEL_CONFIG

    criterion_id: str = Field(..., min_length=1)
    status: StatusType
    points_earned: int = Field(..., ge=0)
    max_points: int = Field(..., ge=0)
    observation: str = Field(..., min_length=1)

    @model_validator(mode="after")
    def validate_points_within_weight(self) -> "CriterionScore":
        """Ensure points_earned does not exceed max_points."""
        if self.points_earned > self.max_points:
            raise ValueError(
                f"points_earned ({self.points_earned}) cannot exceed "
                f"max_points ({self.max_points})"
            )
        return self

    @property
    def is_conforming(self) -> bool:
        """Return True if the line was marked CONFORME."""
        return self.status == STATUS_CONFORME


# =============================================================================
# Consistency Warnings
# =============================================================================

WarningKind = Literal[
    "clamped",
    "total_recomputed",
    "total_capped",
    "unknown_criterion",
    "duplicate_criterion",
    "ncg_override",
    "empty_rubric",
]


class ScoreConsistencyWarning(BaseModel):
    """A non-fatal correction applied while normalizing an oracle reply.

    Attributes:
        kind: What was corrected.
        message: Human-readable description.
        criterion_id: The criterion involved, if any.
        reported: The value the oracle reported, if any.
        corrected: The value the validator kept, if any.
    """

    model_config = _MODEL_CONFIG

    kind: WarningKind
    message: str
    criterion_id: str | None = None
    reported: float | str | None = None
    corrected: float | str | None = None


# =============================================================================
# Analysis Result
# =============================================================================


class AnalysisResult(BaseModel):
    """Canonical evaluation outcome.

    Invariants:
        - ``is_ncg_detected`` implies ``total_score == 0`` and the NCG status.
        - Otherwise ``total_score`` equals the sum of ``points_earned``
          (capped at 100).
        - ``criteria_scores`` holds at most one entry per criterion id.

    Attributes:
        evaluation_status: Overall status label.
        total_score: Final score, 0-100.
        reason_for_call: Why the customer called.
        criteria_scores: One CriterionScore per rubric criterion, rubric order.
        summary: Narrative summary of the interaction.
        system_ready_text: Text ready to paste into the ticketing system.
        operator_feedback: Feedback addressed to the agent.
        is_ncg_detected: Whether a zero-tolerance rule was triggered.
        monitor_id: Reviewer identifier echoed from the request.
        audit_date: Audit date echoed from the request.
        rigor_applied: Rigor level echoed from the request.
        warnings: Corrections applied during normalization.
        truncated: Whether the request input was truncated to fit size caps.
    """

    model_config = _MODEL_CONFIG

    evaluation_status: str
    total_score: int = Field(..., ge=0, le=MAX_TOTAL_SCORE)
    reason_for_call: str
    criteria_scores: list[CriterionScore]
    summary: str
    system_ready_text: str
    operator_feedback: str
    is_ncg_detected: bool
    monitor_id: str | None = None
    audit_date: str | None = None
    rigor_applied: RigorLevel | None = None
    warnings: list[ScoreConsistencyWarning] = Field(default_factory=list)
    truncated: bool = False

    @model_validator(mode="after")
    def validate_score_invariants(self) -> "AnalysisResult":
        """Enforce the zero-tolerance and ledger invariants."""
        ids = [s.criterion_id for s in self.criteria_scores]
        if len(ids) != len(set(ids)):
            raise ValueError("criteria_scores contains duplicate criterion ids")

        if self.is_ncg_detected:
            if self.total_score != 0:
                raise ValueError("total_score must be 0 when an NCG is detected")
            if self.evaluation_status != STATUS_NCG:
                raise ValueError(
                    f"evaluation_status must be '{STATUS_NCG}' when an NCG is detected"
                )
        else:
            ledger = min(self.points_sum, MAX_TOTAL_SCORE)
            if self.total_score != ledger:
                raise ValueError(
                    f"total_score ({self.total_score}) must equal the sum of "
                    f"points_earned ({ledger})"
                )
        return self

    @property
    def points_sum(self) -> int:
        """Return the sum of points earned across all criteria."""
        return sum(s.points_earned for s in self.criteria_scores)

    def score_for(self, criterion_id: str) -> CriterionScore | None:
        """Return the score line for a criterion id, if present."""
        for score in self.criteria_scores:
            if score.criterion_id == criterion_id:
                return score
        return None


# =============================================================================
# Interaction
# =============================================================================


def _new_interaction_id() -> str:
    return uuid.uuid4().hex


class Interaction(BaseModel):
    """Persisted record of one evaluated interaction.

    Created once per completed evaluation and never mutated afterwards.

    Attributes:
        id: Unique id generated at save time.
        agent_name: The evaluated agent.
        date: Audit date (ISO format).
        transcript: The transcript that was evaluated (may be empty).
        result: The validated evaluation, if one exists.
    """

    model_config = _MODEL_CONFIG

    id: str = Field(default_factory=_new_interaction_id)
    agent_name: str
    date: str = Field(default_factory=lambda: datetime.date.today().isoformat())
    transcript: str = ""
    result: AnalysisResult | None = None


# =============================================================================
# Rounding
# =============================================================================


def round_half_up(value: float) -> int:
    """Round to the nearest integer, halves away from zero.

    Python's ``round`` uses banker's rounding (``round(2.5) == 2``); scores
    and percentages are displayed with conventional half-up rounding.
    """
    return int(Decimal(str(value)).quantize(Decimal("1"), rounding=ROUND_HALF_UP))


def normalize_status_label(value: str) -> str:
    """Map case, spacing and accent variants onto the canonical status labels.

    Unrecognized labels are returned upper-cased so validation can reject them.
    """
    label = " ".join(value.strip().upper().split())
    folded = "".join(
        ch for ch in unicodedata.normalize("NFKD", label) if not unicodedata.combining(ch)
    )
    if folded == "NAO CONFORME":
        return STATUS_NAO_CONFORME
    return label


# =============================================================================
# Stored Result Recovery
# =============================================================================


def _stored_points(value: Any, field: str) -> float:
    points = float(value if value is not None else 0)
    if not math.isfinite(points):
        raise ValueError(f"{field} must be a finite number, got {value!r}")
    return points


def restore_stored_result(
    data: Mapping[str, Any],
    weights: Mapping[str, int],
) -> AnalysisResult:
    """Rebuild a stored result that does not satisfy the ledger invariants.

    Histories written by earlier versions kept the oracle reply verbatim:
    lines may lack ``maxPoints``, points may be fractional or out of range and
    the total may disagree with the lines. Each line's ceiling is its stored
    ``maxPoints``, else the criterion's current weight, else the points it
    earned. Points are rounded half-up and clamped; the total is re-derived
    from the lines, or zeroed when an NCG was detected. Every correction is
    recorded as a ScoreConsistencyWarning.

    Args:
        data: The stored result, camelCase keys.
        weights: Current rubric weights by criterion id.

    Returns:
        A valid AnalysisResult.

    Raises:
        ValueError: If the stored data cannot be interpreted (includes
            pydantic's ValidationError).
        TypeError: If a criterion line is not an object.
    """
    warnings: list[ScoreConsistencyWarning] = []
    scores: list[CriterionScore] = []
    seen: set[str] = set()

    for line in data.get("criteriaScores") or []:
        if not isinstance(line, Mapping):
            raise TypeError(f"criterion line must be an object, got {type(line).__name__}")
        criterion_id = str(line.get("criterionId", "")).strip()
        if criterion_id in seen:
            warnings.append(
                ScoreConsistencyWarning(
                    kind="duplicate_criterion",
                    message=f"Dropped repeated score for criterion '{criterion_id}'",
                    criterion_id=criterion_id,
                )
            )
            continue
        seen.add(criterion_id)

        reported = _stored_points(line.get("pointsEarned"), "pointsEarned")
        if line.get("maxPoints") is not None:
            max_points = max(0, round_half_up(_stored_points(line["maxPoints"], "maxPoints")))
        elif criterion_id in weights:
            max_points = weights[criterion_id]
        else:
            max_points = max(0, round_half_up(reported))

        points = max(0, min(round_half_up(reported), max_points))
        if points != reported:
            warnings.append(
                ScoreConsistencyWarning(
                    kind="clamped",
                    message=f"Points for '{criterion_id}' adjusted into [0, {max_points}]",
                    criterion_id=criterion_id,
                    reported=reported,
                    corrected=points,
                )
            )
        scores.append(
            CriterionScore(
                criterion_id=criterion_id,
                status=normalize_status_label(str(line.get("status", ""))),
                points_earned=points,
                max_points=max_points,
                observation=str(line.get("observation") or "").strip() or "-",
            )
        )

    reported_total = _stored_points(data.get("totalScore"), "totalScore")
    is_ncg = bool(data.get("isNcgDetected", False))
    evaluation_status = str(data.get("evaluationStatus", ""))
    if is_ncg:
        total_score = 0
        if reported_total != 0 or evaluation_status != STATUS_NCG:
            warnings.append(
                ScoreConsistencyWarning(
                    kind="ncg_override",
                    message="Zero-tolerance rule detected; total forced to 0",
                    reported=reported_total,
                    corrected=0,
                )
            )
        evaluation_status = STATUS_NCG
    else:
        total_score = min(sum(s.points_earned for s in scores), MAX_TOTAL_SCORE)
        if reported_total != total_score:
            warnings.append(
                ScoreConsistencyWarning(
                    kind="total_recomputed",
                    message=(
                        f"Stored total {reported_total:g} replaced by the "
                        f"criterion ledger {total_score}"
                    ),
                    reported=reported_total,
                    corrected=total_score,
                )
            )

    return AnalysisResult(
        evaluation_status=evaluation_status,
        total_score=total_score,
        reason_for_call=str(data.get("reasonForCall", "")),
        criteria_scores=scores,
        summary=str(data.get("summary", "")),
        system_ready_text=str(data.get("systemReadyText", "")),
        operator_feedback=str(data.get("operatorFeedback", "")),
        is_ncg_detected=is_ncg,
        monitor_id=data.get("monitorId"),
        audit_date=data.get("auditDate"),
        rigor_applied=data.get("rigorApplied"),
        warnings=warnings,
        truncated=bool(data.get("truncated", False)),
    )
