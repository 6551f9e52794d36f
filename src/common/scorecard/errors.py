"""Exception and warning taxonomy for the QA scoring engine.

Errors are split by where they originate so callers can tell a user
correctable problem from an oracle failure:

- Input errors (``InsufficientInputError``, ``MissingMetadataError``) are
  raised while building a request, before any oracle call is made.
- Oracle errors (``OracleError`` subclasses) abort the evaluation; no partial
  result is ever stored.
- ``RubricImbalanceWarning`` is non-fatal and is returned alongside results.

Per-result score corrections are recorded as data
(``ScoreConsistencyWarning`` in ``results.py``) rather than raised.
"""

from __future__ import annotations


# =============================================================================
# Base
# =============================================================================


class ScorecardError(Exception):
    """Base exception for all QA scoring engine errors."""

    pass


# =============================================================================
# Input Errors
# =============================================================================


class InsufficientInputError(ScorecardError):
    """Raised when neither a transcript nor an audio payload is supplied."""

    def __init__(self) -> None:
        """Initialize the error."""
        super().__init__(
            "An evaluation needs a non-empty transcript or an audio payload"
        )


class MissingMetadataError(ScorecardError):
    """Raised when required identification fields are blank.

    Attributes:
        missing_fields: Names of the metadata fields that were empty.
    """

    def __init__(self, missing_fields: list[str]) -> None:
        """Initialize the error.

        Args:
            missing_fields: Names of the metadata fields that were empty.
        """
        self.missing_fields = list(missing_fields)
        super().__init__(
            "Missing required metadata: " + ", ".join(self.missing_fields)
        )


# =============================================================================
# Oracle Errors
# =============================================================================


class OracleError(ScorecardError):
    """Base exception for failures on the oracle side of an evaluation."""

    pass


class OracleTransportError(OracleError):
    """Raised when the call to the language model itself fails.

    Attributes:
        original_error: The exception raised by the LLM client.
    """

    def __init__(self, message: str, original_error: Exception | None = None) -> None:
        """Initialize the error.

        Args:
            message: Human-readable error description.
            original_error: The exception raised by the LLM client.
        """
        super().__init__(message)
        self.original_error = original_error


class MalformedResponseError(OracleError):
    """Raised when the oracle reply does not parse into the expected shape.

    Attributes:
        reason: Short description of what failed to parse.
    """

    def __init__(self, reason: str) -> None:
        """Initialize the error.

        Args:
            reason: Short description of what failed to parse.
        """
        self.reason = reason
        super().__init__(f"Malformed oracle response: {reason}")


class IncompleteCoverageError(OracleError):
    """Raised when the oracle omitted criteria present in the rubric.

    This is a domain failure (the oracle ignored its instructions), not a
    transport failure.

    Attributes:
        missing_ids: Rubric criterion ids absent from the reply, in rubric order.
    """

    def __init__(self, missing_ids: list[str]) -> None:
        """Initialize the error.

        Args:
            missing_ids: Rubric criterion ids absent from the reply.
        """
        self.missing_ids = list(missing_ids)
        super().__init__(
            "Oracle response did not score criteria: " + ", ".join(self.missing_ids)
        )


# =============================================================================
# Other Errors
# =============================================================================


class StateLoadError(ScorecardError):
    """Raised when a persisted state slot cannot be decoded.

    Attributes:
        slot: Name of the slot that failed to load.
    """

    def __init__(self, slot: str, message: str) -> None:
        """Initialize the error.

        Args:
            slot: Name of the slot that failed to load.
            message: Description of the decoding failure.
        """
        self.slot = slot
        super().__init__(f"Could not load state slot '{slot}': {message}")


class StateSaveError(ScorecardError):
    """Raised when a state slot cannot be written.

    Attributes:
        slot: Name of the slot that failed to save.
    """

    def __init__(self, slot: str, message: str) -> None:
        self.slot = slot
        super().__init__(f"Could not save state slot '{slot}': {message}")


# =============================================================================
# Warnings
# =============================================================================


class RubricImbalanceWarning(UserWarning):
    """Non-fatal warning: the rubric's weights do not add up to 100.

    Attributes:
        total_weight: Actual sum of the criterion weights.
        expected_total: The total a balanced rubric must reach.
    """

    def __init__(self, total_weight: int, expected_total: int = 100) -> None:
        """Initialize the warning.

        Args:
            total_weight: Actual sum of the criterion weights.
            expected_total: The total a balanced rubric must reach.
        """
        self.total_weight = total_weight
        self.expected_total = expected_total
        super().__init__(
            f"Rubric weights sum to {total_weight}, expected {expected_total}"
        )

    def __eq__(self, other: object) -> bool:
        if not isinstance(other, RubricImbalanceWarning):
            return NotImplemented
        return (
            self.total_weight == other.total_weight
            and self.expected_total == other.expected_total
        )

    def __hash__(self) -> int:
        return hash((self.total_weight, self.expected_total))
