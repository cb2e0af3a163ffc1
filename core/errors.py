"""
core/errors.py -- Error taxonomy shared by every layer.

Every error that may cross the API boundary is a ModelError subclass carrying
a stable, short public `code` ("not_found", "read_only", ...). The human
message passed to the constructor is for logs only and never rendered.

Anything that is not a ModelError is internal: the API layer logs it and
answers with a generic "server_error".

ValidationError is the one composite error: it maps field names (their JSON
names, e.g. "roleId") to atomic ModelErrors.

Layer rule: core/ is the kernel. No imports from api/, auth/ or ratings/.
"""

from __future__ import annotations


class ModelError(Exception):
    """Base class for errors with a public code."""

    code: str = "server_error"

    def __init__(self, message: str = "") -> None:
        super().__init__(message or self.code)

    @property
    def public(self) -> str:
        return self.code


class NotFound(ModelError):
    code = "not_found"


class ReadOnly(ModelError):
    code = "read_only"


class InUse(ModelError):
    code = "in_use"


class Unauthorized(ModelError):
    code = "unauthorized"


class Forbidden(ModelError):
    code = "forbidden"


class NotAcceptable(ModelError):
    code = "not_acceptable"


class Duplicate(ModelError):
    code = "is_duplicate"


class IdTaken(ModelError):
    code = "id_taken"


class TooShort(ModelError):
    code = "too_short"


class TooLong(ModelError):
    code = "too_long"


class Required(ModelError):
    code = "required"


class Invalid(ModelError):
    code = "invalid"


class RefNotFound(ModelError):
    code = "reference_not_found"


class NoCredentials(ModelError):
    code = "credentials_not_provided"


class PasswordIncorrect(ModelError):
    code = "incorrect_password"


class TokenInvalid(ModelError):
    code = "invalid_token"


class TokenExpired(ModelError):
    code = "expired_token"


class ValidationError(ModelError):
    """Field-scoped errors, keyed by the field's JSON name.

    Only raised when every problem relates to a specific field. A problem
    with the request as a whole is raised as a single ModelError instead.
    """

    code = "validation_error"

    def __init__(self, fields: dict[str, ModelError]) -> None:
        self.fields = dict(fields)
        super().__init__("validation error on fields " + ", ".join(sorted(self.fields)))

    def public_fields(self) -> dict[str, str]:
        """Return {field: public code}, the shape rendered to API callers."""
        return {name: err.code for name, err in self.fields.items()}
