# docsign/errors.py
"""
Error taxonomy for the signing core.

Request-facing errors carry an HTTP status and are turned into JSON by the
handlers registered in create_app(). DecodeError, ArchiveError and
AuditWriteError are recovered or logged where they happen and never reach
a caller.
"""
from __future__ import annotations


class DocSignError(Exception):
    status_code = 500

    def __init__(self, message: str = "", *, status_code: int | None = None):
        super().__init__(message)
        self.message = message or self.__class__.__name__
        if status_code is not None:
            self.status_code = status_code

    def to_dict(self) -> dict:
        return {"msg": self.message}


class ValidationError(DocSignError):
    status_code = 400


class PermissionDenied(DocSignError):
    status_code = 403


class NotFound(DocSignError):
    status_code = 404


class NoSignatures(DocSignError):
    status_code = 400

    def __init__(self, message: str = "No valid signatures found for this document"):
        super().__init__(message)


class LinkExpired(DocSignError):
    status_code = 410

    def __init__(self, message: str = "Invalid or expired link"):
        super().__init__(message)


# ---------------------------------------------------------
# Internal (never surfaced)
# ---------------------------------------------------------
class DecodeError(DocSignError):
    """Malformed signature artifact; rendering degrades to a text stamp."""


class ArchiveError(DocSignError):
    """Rejected-copy archiving failed."""


class AuditWriteError(DocSignError):
    """Audit event could not be persisted."""
