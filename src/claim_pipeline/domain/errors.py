"""Domain exceptions for claim job operations."""


class ClaimPipelineError(Exception):
    """Base class for claim pipeline errors."""


class ClaimJobNotFoundError(ClaimPipelineError):
    """Raised when a claim job cannot be found."""


class ClaimJobStateError(ClaimPipelineError):
    """Raised when an operation conflicts with the current job state."""


class ClaimValidationError(ClaimPipelineError):
    """Raised when request validation fails."""


class ClaimQueueClosedError(ClaimPipelineError):
    """Raised when a claim request is submitted while the queue is not running."""


class ClaimExecutorError(RuntimeError):
    """Raised when the claim executor reports a transport or protocol fault."""


class ClaimExecutorUnavailableError(ClaimExecutorError):
    """Raised when the claim executor cannot be reached at all."""


__all__ = [
    "ClaimExecutorError",
    "ClaimExecutorUnavailableError",
    "ClaimJobNotFoundError",
    "ClaimJobStateError",
    "ClaimPipelineError",
    "ClaimQueueClosedError",
    "ClaimValidationError",
]
