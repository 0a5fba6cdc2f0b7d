"""
Error taxonomy for the signing service.

Every error carries the document it concerns and the pipeline stage that
failed, so callers can tell "signing failed" apart from "signing worked but
the output could not be stored".
"""
from typing import Optional


class SigningServiceError(Exception):
    """Base class for all domain errors raised by the service."""

    status_code = 500

    def __init__(
        self,
        message: str,
        *,
        document_id: Optional[str] = None,
        stage: Optional[str] = None,
    ):
        super().__init__(message)
        self.message = message
        self.document_id = document_id
        self.stage = stage

    def to_dict(self) -> dict:
        return {
            "detail": self.message,
            "stage": self.stage,
            "document_id": self.document_id,
        }


class ValidationError(SigningServiceError):
    """Malformed or missing input. The operation was not attempted."""

    status_code = 400


class DecodeError(SigningServiceError):
    """An image payload is neither PNG nor JPEG. Contained to one field."""

    status_code = 422


class SourceLoadError(SigningServiceError):
    """The source PDF could not be fetched or parsed."""

    status_code = 502


class PersistenceError(SigningServiceError):
    """Writing the signed output or the audit record failed."""

    status_code = 500


class NotFoundError(SigningServiceError):
    """Referenced document / field / audit record does not exist."""

    status_code = 404
