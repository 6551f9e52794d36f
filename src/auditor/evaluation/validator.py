"""Validation and normalization of oracle replies.

The oracle is an untrusted black box. ``ResultValidator`` is the boundary
its output must cross before it can become an ``AnalysisResult``:

1. Parse the raw reply (JSON text, mapping or model) into
   ``OracleAnalysisResponse``; shape problems are a MalformedResponseError.
2. Check coverage against the request's rubric: missing ids are fatal
   (IncompleteCoverageError), unknown or duplicated ids are dropped with a
   warning.
3. Clamp every ``points_earned`` into ``[0, weight]``.
4. Apply the zero-tolerance override (score 0, NCG status).
5. Otherwise recompute the total from the per-criterion ledger when the
   oracle's total disagrees.
6. Echo monitor id, audit date and rigor from the request.

Each correction is recorded as a ScoreConsistencyWarning on the result and
logged. The outcome is tagged: ``Ok(result)`` or ``Err(error)``.

Classes:
    ValidationState: PENDING -> RECEIVED -> VALID | INVALID.
    Ok / Err: Tagged validation outcome.
    ResultValidator: Per-request validator.

Functions:
    clamp_points: Clamp (and round) a reported point value into range.
    validate_response: Validate and unwrap in one call.
"""

from __future__ import annotations

import json
import logging
import re
from dataclasses import dataclass
from enum import Enum
from typing import Any, Union

from pydantic import BaseModel, ValidationError

from src.auditor.evaluation.models import (
    REQUIRED_RESPONSE_FIELDS,
    OracleAnalysisResponse,
)
from src.auditor.evaluation.request import EvaluationRequest
from src.common.scorecard.errors import (
    IncompleteCoverageError,
    MalformedResponseError,
    OracleError,
)
from src.common.scorecard.results import (
    MAX_TOTAL_SCORE,
    STATUS_NCG,
    AnalysisResult,
    CriterionScore,
    ScoreConsistencyWarning,
    round_half_up,
)


logger = logging.getLogger(__name__)

_CODE_FENCE = re.compile(r"^\s*```(?:json)?\s*(.*?)\s*```\s*$", re.DOTALL)


# =============================================================================
# State and Outcome Types
# =============================================================================


class ValidationState(Enum):
    """Lifecycle of one validation."""

    PENDING = "pending"
    RECEIVED = "received"
    VALID = "valid"
    INVALID = "invalid"


@dataclass(frozen=True)
class Ok:
    """Successful validation carrying the canonical result."""

    value: AnalysisResult

    @property
    def is_ok(self) -> bool:
        return True

    def unwrap(self) -> AnalysisResult:
        """Return the result."""
        return self.value


@dataclass(frozen=True)
class Err:
    """Failed validation carrying the typed error."""

    error: OracleError

    @property
    def is_ok(self) -> bool:
        return False

    def unwrap(self) -> AnalysisResult:
        """Raise the carried error."""
        raise self.error


ValidationOutcome = Union[Ok, Err]


# =============================================================================
# Helpers
# =============================================================================


def clamp_points(points: float, weight: int) -> int:
    """Round a reported point value half-up and clamp it into ``[0, weight]``.

    Idempotent: ``clamp_points(clamp_points(p, w), w) == clamp_points(p, w)``.
    """
    return max(0, min(round_half_up(points), weight))


def _decode(raw: Any) -> Any:
    if isinstance(raw, OracleAnalysisResponse):
        return raw
    if isinstance(raw, BaseModel):
        return raw.model_dump(by_alias=True)
    if isinstance(raw, bytes):
        raw = raw.decode("utf-8", errors="replace")
    if isinstance(raw, str):
        text = raw.strip()
        fenced = _CODE_FENCE.match(text)
        if fenced:
            text = fenced.group(1)
        if not text:
            raise MalformedResponseError("empty response")
        try:
            return json.loads(text)
        except json.JSONDecodeError as e:
            raise MalformedResponseError(f"response is not valid JSON ({e.msg})") from e
    return raw


def _summarize_validation_error(error: ValidationError) -> str:
    parts = []
    for item in error.errors()[:5]:
        location = ".".join(str(p) for p in item["loc"])
        parts.append(f"{location}: {item['msg']}")
    return "; ".join(parts)


# =============================================================================
# Result Validator
# =============================================================================


class ResultValidator:
    """Validates one oracle reply against the request it answers.

    A validator is single-use: it moves from PENDING to RECEIVED when a
    reply arrives and ends in VALID or INVALID.

    Attributes:
        request: The request whose rubric and metadata govern validation.

    Example:
        >>> validator = ResultValidator(request)
        >>> outcome = validator.validate(raw_json)
        >>> if outcome.is_ok:
        ...     result = outcome.value
    """

    def __init__(self, request: EvaluationRequest) -> None:
        """Initialize the validator.

        Args:
            request: The request whose rubric and metadata govern validation.
        """
        self.request = request
        self._state = ValidationState.PENDING

    @property
    def state(self) -> ValidationState:
        """Return the current validation state."""
        return self._state

    def validate(self, raw: Any) -> ValidationOutcome:
        """Validate and normalize a raw oracle reply.

        Args:
            raw: JSON text, decoded mapping, or pydantic model.

        Returns:
            Ok with the canonical AnalysisResult, or Err with a
            MalformedResponseError / IncompleteCoverageError.

        Raises:
            RuntimeError: If this validator already processed a reply.
        """
        if self._state is not ValidationState.PENDING:
            raise RuntimeError(
                f"ResultValidator already used (state: {self._state.value})"
            )
        self._state = ValidationState.RECEIVED

        try:
            parsed = self._parse(raw)
            result = self._normalize(parsed)
        except (MalformedResponseError, IncompleteCoverageError) as e:
            self._state = ValidationState.INVALID
            logger.warning(
                "Oracle reply rejected for agent '%s': %s",
                self.request.metadata.agent_name,
                e,
            )
            return Err(e)

        self._state = ValidationState.VALID
        return Ok(result)

    def _parse(self, raw: Any) -> OracleAnalysisResponse:
        """Parse a raw reply into the oracle reply model.

        Raises:
            MalformedResponseError: On any shape problem.
        """
        data = _decode(raw)
        if isinstance(data, OracleAnalysisResponse):
            return data
        if not isinstance(data, dict):
            raise MalformedResponseError(
                f"expected a JSON object, got {type(data).__name__}"
            )

        missing = [
            name
            for name in REQUIRED_RESPONSE_FIELDS
            if name not in data and _to_snake(name) not in data
        ]
        if missing:
            raise MalformedResponseError(
                "missing required fields: " + ", ".join(missing)
            )

        try:
            return OracleAnalysisResponse.model_validate(data)
        except ValidationError as e:
            raise MalformedResponseError(_summarize_validation_error(e)) from e

    def _normalize(self, parsed: OracleAnalysisResponse) -> AnalysisResult:
        """Apply coverage, clamping and total rules to a parsed reply.

        Raises:
            IncompleteCoverageError: If rubric criteria were not scored.
        """
        rubric = self.request.rubric
        warnings: list[ScoreConsistencyWarning] = []

        if not rubric.criteria:
            warnings.append(
                ScoreConsistencyWarning(
                    kind="empty_rubric",
                    message="Rubric has no criteria; the score cannot exceed 0",
                )
            )

        lines = {}
        for line in parsed.criteria_scores:
            if rubric.get(line.criterion_id) is None:
                warnings.append(
                    ScoreConsistencyWarning(
                        kind="unknown_criterion",
                        message=f"Dropped score for unknown criterion '{line.criterion_id}'",
                        criterion_id=line.criterion_id,
                    )
                )
                continue
            if line.criterion_id in lines:
                warnings.append(
                    ScoreConsistencyWarning(
                        kind="duplicate_criterion",
                        message=f"Dropped repeated score for criterion '{line.criterion_id}'",
                        criterion_id=line.criterion_id,
                    )
                )
                continue
            lines[line.criterion_id] = line

        missing = [cid for cid in rubric.ids if cid not in lines]
        if missing:
            raise IncompleteCoverageError(missing)

        scores: list[CriterionScore] = []
        for criterion in rubric.criteria:
            line = lines[criterion.id]
            points = clamp_points(line.points_earned, criterion.weight)
            if points != line.points_earned:
                warnings.append(
                    ScoreConsistencyWarning(
                        kind="clamped",
                        message=(
                            f"Points for '{criterion.id}' adjusted into "
                            f"[0, {criterion.weight}]"
                        ),
                        criterion_id=criterion.id,
                        reported=line.points_earned,
                        corrected=points,
                    )
                )
            scores.append(
                CriterionScore(
                    criterion_id=criterion.id,
                    status=line.status,
                    points_earned=points,
                    max_points=criterion.weight,
                    observation=line.observation,
                )
            )

        ledger = sum(s.points_earned for s in scores)

        if parsed.is_ncg_detected:
            total_score = 0
            evaluation_status = STATUS_NCG
            if parsed.total_score != 0 or parsed.evaluation_status != STATUS_NCG:
                warnings.append(
                    ScoreConsistencyWarning(
                        kind="ncg_override",
                        message="Zero-tolerance rule detected; total forced to 0",
                        reported=parsed.total_score,
                        corrected=0,
                    )
                )
        else:
            evaluation_status = parsed.evaluation_status
            total_score = ledger
            if total_score > MAX_TOTAL_SCORE:
                warnings.append(
                    ScoreConsistencyWarning(
                        kind="total_capped",
                        message=(
                            f"Criterion points sum to {ledger}; total capped at "
                            f"{MAX_TOTAL_SCORE}"
                        ),
                        reported=ledger,
                        corrected=MAX_TOTAL_SCORE,
                    )
                )
                total_score = MAX_TOTAL_SCORE
            if parsed.total_score != total_score:
                warnings.append(
                    ScoreConsistencyWarning(
                        kind="total_recomputed",
                        message=(
                            f"Reported total {parsed.total_score:g} replaced by the "
                            f"criterion ledger {total_score}"
                        ),
                        reported=parsed.total_score,
                        corrected=total_score,
                    )
                )

        for warning in warnings:
            logger.warning(
                "Score consistency (%s) for agent '%s': %s",
                warning.kind,
                self.request.metadata.agent_name,
                warning.message,
            )

        metadata = self.request.metadata
        return AnalysisResult(
            evaluation_status=evaluation_status,
            total_score=total_score,
            reason_for_call=parsed.reason_for_call,
            criteria_scores=scores,
            summary=parsed.summary,
            system_ready_text=parsed.system_ready_text,
            operator_feedback=parsed.operator_feedback,
            is_ncg_detected=parsed.is_ncg_detected,
            monitor_id=metadata.monitor_id,
            audit_date=metadata.audit_date,
            rigor_applied=metadata.rigor,
            warnings=warnings,
            truncated=self.request.truncated,
        )


def validate_response(request: EvaluationRequest, raw: Any) -> AnalysisResult:
    """Validate a reply and return the result, raising on failure.

    Raises:
        MalformedResponseError: If the reply has the wrong shape.
        IncompleteCoverageError: If rubric criteria were not scored.
    """
    return ResultValidator(request).validate(raw).unwrap()


def _to_snake(name: str) -> str:
    return re.sub(r"(?<!^)(?=[A-Z])", "_", name).lower()
