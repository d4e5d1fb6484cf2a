"""
Error taxonomy shared by the store, registries, engines and routes.

Every error a client can trigger derives from ProverMockError and carries the
HTTP status it is translated into at the request boundary.
"""

from typing import Optional


class ProverMockError(Exception):
    """Base class for recoverable, request-scoped errors."""

    status_code: int = 500
    error_code: str = "INTERNAL_ERROR"
    hint: str = "Check server logs for details"
    retryable: bool = False

    def __init__(self, message: str, status_code: Optional[int] = None):
        super().__init__(message)
        self.message = message
        if status_code is not None:
            self.status_code = status_code


class UnknownArtifact(ProverMockError):
    """A referenced digest was never uploaded."""

    status_code = 400
    error_code = "UNKNOWN_ARTIFACT"
    hint = "Upload the artifact before referencing its digest"


class NotFound(ProverMockError):
    status_code = 404
    error_code = "NOT_FOUND"
    hint = "Check the identifier and try again"


class NotReady(ProverMockError):
    """The result of a job was requested before it succeeded."""

    status_code = 409
    error_code = "NOT_READY"
    hint = "Poll the status endpoint until the job has succeeded"
    retryable = True


class ResourceExhaustion(ProverMockError):
    status_code = 503
    error_code = "RESOURCE_EXHAUSTED"
    hint = "Reduce the request size or retry later"
    retryable = True


class ProverFailure(Exception):
    """The proof computation itself failed. Recorded as the job's error message."""


class IllegalTransition(RuntimeError):
    """A job state change that the state machine forbids. Indicates a bug."""
