"""Shared scorecard models for the QA scoring engine.

This package holds the data contracts shared by every part of the engine:
the rubric, the validated evaluation results, the error taxonomy and the
runtime configuration.

Modules:
    rubric: Criterion, ZeroToleranceRule and Rubric models plus invariant checks
    results: CriterionScore, AnalysisResult and Interaction models
    errors: Exception and warning taxonomy
    config: Configuration model (environment variables and CLI arguments)
"""

from __future__ import annotations

from src.common.scorecard.config import ScorecardConfig, validate_config
from src.common.scorecard.errors import (
    IncompleteCoverageError,
    InsufficientInputError,
    MalformedResponseError,
    MissingMetadataError,
    OracleError,
    OracleTransportError,
    RubricImbalanceWarning,
    ScorecardError,
    StateLoadError,
    StateSaveError,
)
from src.common.scorecard.results import (
    ALL_RIGOR_LEVELS,
    ALL_STATUSES,
    STATUS_CONFORME,
    STATUS_NAO_CONFORME,
    STATUS_NCG,
    AnalysisResult,
    CriterionScore,
    Interaction,
    RigorLevel,
    ScoreConsistencyWarning,
    StatusType,
    normalize_status_label,
    restore_stored_result,
    round_half_up,
)
from src.common.scorecard.rubric import (
    DEFAULT_NCG_RULES,
    DEFAULT_SCORECARD,
    EXPECTED_TOTAL_WEIGHT,
    Criterion,
    Rubric,
    ZeroToleranceRule,
    check_balance,
    default_rubric,
    group_by_category,
    is_balanced,
    total_weight,
)

__all__ = [
    # Config
    "ScorecardConfig",
    "validate_config",
    # Errors
    "ScorecardError",
    "InsufficientInputError",
    "MissingMetadataError",
    "OracleError",
    "OracleTransportError",
    "MalformedResponseError",
    "IncompleteCoverageError",
    "StateLoadError",
    "StateSaveError",
    "RubricImbalanceWarning",
    # Results
    "ALL_RIGOR_LEVELS",
    "ALL_STATUSES",
    "STATUS_CONFORME",
    "STATUS_NAO_CONFORME",
    "STATUS_NCG",
    "AnalysisResult",
    "CriterionScore",
    "Interaction",
    "RigorLevel",
    "ScoreConsistencyWarning",
    "StatusType",
    "normalize_status_label",
    "restore_stored_result",
    "round_half_up",
    # Rubric
    "DEFAULT_NCG_RULES",
    "DEFAULT_SCORECARD",
    "EXPECTED_TOTAL_WEIGHT",
    "Criterion",
    "Rubric",
    "ZeroToleranceRule",
    "check_balance",
    "default_rubric",
    "group_by_category",
    "is_balanced",
    "total_weight",
]
