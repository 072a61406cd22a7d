"""Error taxonomy raised by the service layer.

Each error carries a stable ``code`` (``EmptyName``, ``DuplicateTag``,
``TokenExpired`` ...) and a human readable message. The ``kind`` class
attribute groups codes the way callers react to them. Internal errors are
never the caller's fault.
"""

from __future__ import annotations


class ServiceError(Exception):
    kind = "internal"

    def __init__(self, code: str, message: str):
        super().__init__(message)
        self.code = code
        self.message = message

    def __repr__(self) -> str:
        return f"{type(self).__name__}(code={self.code!r}, message={self.message!r})"


class ValidationError(ServiceError):
    kind = "validation"


class AuthorizationError(ServiceError):
    kind = "forbidden"

    def __init__(self, message: str = "resource belongs to another user"):
        super().__init__("Forbidden", message)


class NotFoundError(ServiceError):
    kind = "not_found"

    def __init__(self, message: str = "resource not found", code: str = "NotFound"):
        super().__init__(code, message)


class ConflictError(ServiceError):
    kind = "conflict"


class HasResumesError(ConflictError):
    def __init__(self, count: int):
        super().__init__(
            "HasResumes",
            f"position still has {count} resume version(s); delete them first",
        )
        self.count = count


class AuthenticationError(ServiceError):
    kind = "authentication"


class InternalError(ServiceError):
    def __init__(self, message: str = "internal error"):
        super().__init__("Internal", message)


_CREDENTIAL_CODES = {"UserNotFound", "InvalidPassword"}


def public_error(exc: ServiceError) -> ServiceError:
    """Return the view of ``exc`` that is safe to show outside the service layer.

    Non-owned resources look exactly like missing ones. Unknown users look
    like wrong passwords.
    """
    if isinstance(exc, AuthorizationError):
        return NotFoundError()
    if isinstance(exc, NotFoundError) and exc.code != "NotFound":
        return NotFoundError()
    if isinstance(exc, AuthenticationError) and exc.code in _CREDENTIAL_CODES:
        return AuthenticationError("InvalidCredentials", "invalid email or password")
    if isinstance(exc, InternalError):
        return InternalError()
    return exc
