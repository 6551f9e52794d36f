"""Evaluation of call-center interactions against a scorecard.

This package builds rubric-grounded requests for the oracle, validates and
normalizes its replies, and orchestrates the full evaluation round-trip.

Modules:
    prompts: Prompt templates and rubric serialization
    models: Oracle reply models and the structured output schema
    request: Evaluation request construction and input checks
    validator: Reply validation and score normalization
    auditor: End-to-end evaluation orchestration
"""

from src.auditor.evaluation.auditor import AuditOutcome, InteractionAuditor
from src.auditor.evaluation.models import (
    ORACLE_RESPONSE_SCHEMA,
    OracleAnalysisResponse,
    OracleCriterionScore,
)
from src.auditor.evaluation.prompts import (
    format_criterion_line,
    serialize_rubric,
    serialize_zero_tolerance,
)
from src.auditor.evaluation.request import (
    AudioPayload,
    EvaluationRequest,
    EvaluationRequestBuilder,
    InteractionMetadata,
)
from src.auditor.evaluation.validator import (
    Err,
    Ok,
    ResultValidator,
    ValidationState,
    clamp_points,
    validate_response,
)

__all__ = [
    # Orchestration
    "AuditOutcome",
    "InteractionAuditor",
    # Oracle reply
    "ORACLE_RESPONSE_SCHEMA",
    "OracleAnalysisResponse",
    "OracleCriterionScore",
    # Prompts
    "format_criterion_line",
    "serialize_rubric",
    "serialize_zero_tolerance",
    # Requests
    "AudioPayload",
    "EvaluationRequest",
    "EvaluationRequestBuilder",
    "InteractionMetadata",
    # Validation
    "Err",
    "Ok",
    "ResultValidator",
    "ValidationState",
    "clamp_points",
    "validate_response",
]
