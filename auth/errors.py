"""
auth/errors.py -- Exception taxonomy for authentication and ownership checks.

Every error carries a stable machine-readable ``code`` that the API layer
copies into the error envelope. Messages are deliberately generic: they must
not reveal whether an account or a resource exists.

Hierarchy:
  AuthError
    AuthenticationError        401, terminal for the request
      InvalidCredentials
      TokenError
        TokenMissing
        TokenMalformed
        TokenBadSignature
        TokenExpired
      UnknownSubject
    EmailAlreadyRegistered     400
    PasswordTooLong            400
  ResourceNotFound             404
    ResourceNotOwned           404, indistinguishable from ResourceNotFound

Layer rule: no imports from api/, core/, or ledger/.
"""

from __future__ import annotations


class AuthError(Exception):
    code = "auth_error"
    message = "Authentication error."

    def __init__(self, message: str | None = None) -> None:
        super().__init__(message or self.message)


class AuthenticationError(AuthError):
    """The request could not be tied to a verified identity."""

    code = "unauthorized"
    message = "Authentication required."


class InvalidCredentials(AuthenticationError):
    # Same message for unknown email and wrong password.
    code = "bad_credentials"
    message = "Invalid email or password."


class TokenError(AuthenticationError):
    code = "invalid_token"
    message = "Invalid or expired token."


class TokenMissing(TokenError):
    code = "unauthorized"
    message = "Authentication required."


class TokenMalformed(TokenError):
    pass


class TokenBadSignature(TokenError):
    pass


class TokenExpired(TokenError):
    pass


class UnknownSubject(AuthenticationError):
    """A well-formed, correctly signed token names an account that no longer exists."""

    code = "invalid_token"
    message = "Invalid or expired token."


class EmailAlreadyRegistered(AuthError):
    code = "email_already_registered"
    message = "Email is already registered."


class PasswordTooLong(AuthError):
    """The password does not fit the hasher's input limit."""

    code = "password_too_long"
    message = "Password is too long."


class ResourceNotFound(LookupError):
    """The resource does not exist for this caller.

    Raised both for ids that do not exist and (via ResourceNotOwned) for ids
    owned by another user. The message only names the resource type.
    """

    code = "not_found"

    def __init__(self, resource_name: str, resource_id: int) -> None:
        self.resource_name = resource_name
        self.resource_id = resource_id
        self.code = f"{resource_name}_not_found"
        super().__init__(f"{resource_name.capitalize()} {resource_id} not found.")


class ResourceNotOwned(ResourceNotFound):
    """The resource exists but belongs to someone else.

    Carries exactly the same code and message as ResourceNotFound so the two
    cases cannot be told apart from outside the process.
    """
