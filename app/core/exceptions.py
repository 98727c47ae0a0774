"""Custom exception hierarchy."""

from typing import Optional


class AppError(Exception):
    """Base exception for application errors."""
    def __init__(self, message: str, original_error: Exception = None):
        super().__init__(message)
        self.message = message
        self.original_error = original_error


class DatabaseError(AppError):
    """Raised when a database operation fails."""
    pass


class ValidationError(AppError):
    """Raised when input validation fails."""
    pass


class SigningError(AppError):
    """Base class for signature workflow errors.

    Each subclass carries a stable ``code`` and the HTTP status it maps to,
    so clients can tell "not your turn" apart from "already decided" or
    "workflow closed".
    """

    code: str = "SIGNING_ERROR"
    title: str = "Signing Error"
    http_status: int = 400
    retryable: bool = False

    def __init__(
        self,
        message: str,
        document_id: Optional[object] = None,
        signer_id: Optional[object] = None,
        original_error: Exception = None,
    ):
        super().__init__(message, original_error=original_error)
        self.document_id = document_id
        self.signer_id = signer_id


class NotFoundError(SigningError):
    """Raised when a document or signer is unknown."""
    code = "NOT_FOUND"
    title = "Not Found"
    http_status = 404


class DocumentNotFoundError(NotFoundError):
    """Raised when a document is not found."""
    title = "Document Not Found"


class SignerNotFoundError(NotFoundError):
    """Raised when a signer is not found."""
    title = "Signer Not Found"


class SignerNotInSequenceError(NotFoundError):
    """Raised when a signer is not part of the document's signing sequence."""
    title = "Signer Not In Sequence"


class AlreadyInitializedError(SigningError):
    """Raised when a document already has a signing sequence."""
    code = "ALREADY_INITIALIZED"
    title = "Sequence Already Initialized"
    http_status = 409


class OutOfTurnError(SigningError):
    """Raised when an earlier signer has not completed yet."""
    code = "OUT_OF_TURN"
    title = "Out Of Turn"
    http_status = 409


class AlreadyActedError(SigningError):
    """Raised when the signer already has a terminal record for the document."""
    code = "ALREADY_ACTED"
    title = "Already Acted"
    http_status = 409


class WorkflowClosedError(SigningError):
    """Raised when the document is already Completed or Rejected."""
    code = "WORKFLOW_CLOSED"
    title = "Workflow Closed"
    http_status = 409


class ConcurrencyConflictError(SigningError):
    """Raised when a transaction lost a contention race and retries ran out."""
    code = "CONCURRENCY_CONFLICT"
    title = "Concurrency Conflict"
    http_status = 503
    retryable = True


class InvalidDecisionError(SigningError):
    """Raised when a caller submits something other than Completed or Rejected."""
    code = "VALIDATION_ERROR"
    title = "Invalid Decision"
    http_status = 422


class InvalidSequenceError(SigningError):
    """Raised when an ordered signer list is empty or has duplicates."""
    code = "VALIDATION_ERROR"
    title = "Invalid Sequence"
    http_status = 422
