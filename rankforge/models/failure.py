"""
Failure Taxonomy and Result Envelope.

Every rule violation surfaces as a typed exception; the engine performs no
silent recovery. The taxonomy:

- NotFoundError: a referenced entity is absent (data or programming defect)
- RuleValidationError: a game rule was violated (safe to show verbatim)
- DraftStateError: an internal precondition is broken (e.g. no draft)
- DataIntegrityError: persisted data could not be decoded or is malformed

Outcome types for the calling layer:
- Success: the operation was applied
- Refusal: a game rule blocked the operation (message shown verbatim)
- KnownFailure: a defect the system can classify (generic message, logged)
- UnknownFailure: anything else

AUTHORITY BOUNDARY:
All results returned to a user interface MUST pass through
`finalize_response()`. `run_engine_command()` is the usual way to get there.
"""

import logging
from collections.abc import Callable
from enum import Enum
from typing import Any, Generic, TypeVar

from pydantic import BaseModel, Field

logger = logging.getLogger(__name__)


class FailureKind(str, Enum):
    """Classification of failure types."""

    # Input failures
    INVALID_INPUT = "invalid_input"

    # Resource failures
    NOT_FOUND = "not_found"

    # Rule violations
    VALIDATION_FAILED = "validation_failed"
    REQUIREMENTS_NOT_MET = "requirements_not_met"
    INSUFFICIENT_POINTS = "insufficient_points"
    AT_MAXIMUM = "at_maximum"
    AT_MINIMUM = "at_minimum"
    DUPLICATE_SELECTION = "duplicate_selection"
    RANK_LIMIT = "rank_limit"

    # State failures
    NO_DRAFT = "no_draft"
    INVARIANT_VIOLATION = "invariant_violation"
    DATA_INTEGRITY = "data_integrity"

    # Unknown
    UNKNOWN = "unknown"


class OutcomeType(str, Enum):
    """High-level outcome classification."""

    SUCCESS = "success"
    REFUSAL = "refusal"
    KNOWN_FAILURE = "known_failure"
    UNKNOWN_FAILURE = "unknown_failure"


T = TypeVar("T")


class FailureDetail(BaseModel):
    """Detailed information about a failure."""

    kind: FailureKind = Field(
        ...,
        description="Classification of the failure",
    )
    message: str = Field(
        ...,
        description="User-appropriate explanation of what went wrong",
    )
    detail: str | None = Field(
        default=None,
        description="Additional technical detail (optional)",
    )
    suggestion: str | None = Field(
        default=None,
        description="Suggested action for the user",
    )


class ApiResponse(BaseModel, Generic[T]):
    """
    Universal result envelope for engine commands.

    Every result is classified into one of four outcome types,
    ensuring no failure reaches the user unexplained.
    """

    outcome: OutcomeType = Field(
        ...,
        description="High-level classification of the result",
    )
    data: T | None = Field(
        default=None,
        description="Result data (present on success)",
    )
    failure: FailureDetail | None = Field(
        default=None,
        description="Failure details (present on non-success)",
    )


# =============================================================================
# EXCEPTIONS
# =============================================================================


class KnownError(Exception):
    """
    Base class for exceptions that represent known, explainable failures.

    Subclass this for errors where the engine knows exactly what went wrong.
    """

    user_visible = False

    def __init__(
        self,
        kind: FailureKind,
        message: str,
        detail: str | None = None,
        suggestion: str | None = None,
    ):
        self.kind = kind
        self.message = message
        self.detail = detail
        self.suggestion = suggestion
        super().__init__(message)


class NotFoundError(KnownError):
    """A referenced entity (edge, skill, hindrance, record...) is absent."""

    def __init__(self, entity: str, entity_id: object = None):
        self.entity = entity
        self.entity_id = entity_id
        message = f"{entity} not found" if entity_id is None else f"{entity} {entity_id} not found"
        super().__init__(kind=FailureKind.NOT_FOUND, message=message)


class RuleValidationError(KnownError):
    """
    A game rule blocked the operation.

    The message names the violated rule and is safe to display verbatim.
    """

    user_visible = True

    def __init__(
        self,
        message: str,
        kind: FailureKind = FailureKind.VALIDATION_FAILED,
        detail: str | None = None,
        suggestion: str | None = None,
    ):
        super().__init__(kind=kind, message=message, detail=detail, suggestion=suggestion)


class DraftStateError(KnownError):
    """An internal precondition is broken (no draft, corrupted history...)."""

    def __init__(self, message: str, kind: FailureKind = FailureKind.INVARIANT_VIOLATION):
        super().__init__(kind=kind, message=message)


class DataIntegrityError(KnownError):
    """Persisted data is malformed: unknown enum value, cycle, broken tree."""

    def __init__(self, message: str, detail: str | None = None):
        super().__init__(kind=FailureKind.DATA_INTEGRITY, message=message, detail=detail)


# =============================================================================
# FAILURE AUTHORITY BOUNDARY
# =============================================================================

# Fixed user-facing text per outcome
STANDARD_MESSAGES: dict[OutcomeType, str] = {
    OutcomeType.REFUSAL: "That choice is not allowed by the rules.",
    OutcomeType.KNOWN_FAILURE: "The character data is inconsistent. The change was not applied.",
    OutcomeType.UNKNOWN_FAILURE: "Something went wrong and the change was not applied.",
}

STANDARD_SUGGESTIONS: dict[OutcomeType, str] = {
    OutcomeType.REFUSAL: "Adjust the selection and try again.",
    OutcomeType.KNOWN_FAILURE: "Reload the character and try again.",
    OutcomeType.UNKNOWN_FAILURE: "If this persists, please report the issue.",
}

# Track finalized responses
_finalized_responses: set[int] = set()


def finalize_response(response: ApiResponse[Any]) -> ApiResponse[Any]:
    """
    Finalize a response through the authority boundary.

    Raises:
        ValueError: If response structure is invalid
    """
    if response.outcome == OutcomeType.SUCCESS:
        if response.failure is not None:
            raise ValueError("Success response must not have failure details")
    else:
        if response.failure is None:
            raise ValueError(f"{response.outcome.value} response must have failure details")

    _finalized_responses.add(id(response))
    return response


def is_finalized(response: ApiResponse[Any]) -> bool:
    """Check if a response has passed through the authority boundary."""
    return id(response) in _finalized_responses


def create_success(data: T) -> ApiResponse[T]:
    """Create a finalized success response."""
    response = ApiResponse[T](outcome=OutcomeType.SUCCESS, data=data)
    return finalize_response(response)


def create_refusal(error: RuleValidationError) -> ApiResponse[Any]:
    """
    Create a refusal from a rule violation.

    Rule messages describe exactly which rule blocked the action, so they
    are passed through verbatim.
    """
    response: ApiResponse[Any] = ApiResponse(
        outcome=OutcomeType.REFUSAL,
        failure=FailureDetail(
            kind=error.kind,
            message=error.message,
            detail=error.detail,
            suggestion=error.suggestion or STANDARD_SUGGESTIONS[OutcomeType.REFUSAL],
        ),
    )
    return finalize_response(response)


def create_known_failure(error: KnownError) -> ApiResponse[Any]:
    """
    Create a known failure response.

    NotFound/State/DataIntegrity errors indicate defects: the user sees the
    standard message, the full detail goes to the log.
    """
    logger.error(
        "Engine defect (%s): %s%s",
        error.kind.value,
        error.message,
        f" [{error.detail}]" if error.detail else "",
    )
    response: ApiResponse[Any] = ApiResponse(
        outcome=OutcomeType.KNOWN_FAILURE,
        failure=FailureDetail(
            kind=error.kind,
            message=STANDARD_MESSAGES[OutcomeType.KNOWN_FAILURE],
            detail=error.kind.value,
            suggestion=STANDARD_SUGGESTIONS[OutcomeType.KNOWN_FAILURE],
        ),
    )
    return finalize_response(response)


def create_unknown_failure(exception: Exception) -> ApiResponse[Any]:
    """Create an unknown failure response. The message is fixed."""
    response: ApiResponse[Any] = ApiResponse(
        outcome=OutcomeType.UNKNOWN_FAILURE,
        failure=FailureDetail(
            kind=FailureKind.UNKNOWN,
            message=STANDARD_MESSAGES[OutcomeType.UNKNOWN_FAILURE],
            detail=type(exception).__name__,
            suggestion=STANDARD_SUGGESTIONS[OutcomeType.UNKNOWN_FAILURE],
        ),
    )
    return finalize_response(response)


def run_engine_command(command: Callable[..., T], *args: Any, **kwargs: Any) -> ApiResponse[Any]:
    """
    Run an engine operation and classify its outcome.

    This is the single exit point between engine calls and a user interface.
    """
    try:
        return create_success(command(*args, **kwargs))
    except RuleValidationError as e:
        return create_refusal(e)
    except KnownError as e:
        return create_known_failure(e)
    except Exception as e:
        logger.exception("Unexpected error in %s", getattr(command, "__name__", command))
        return create_unknown_failure(e)
