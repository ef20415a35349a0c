from __future__ import annotations


class AuthError(Exception):
    """Base class for every error raised by the authkit domain layer.

    ``kind`` names the taxonomy bucket; the HTTP adapters map it to a status code.
    """

    kind = "upstream"


# InvalidInput
class InvalidInputError(AuthError):
    """Raised when request data is malformed or missing."""

    kind = "invalid_input"


class InvalidPhoneError(InvalidInputError):
    """Raised when a phone number cannot be normalized for the given region."""


class InvalidChannelError(InvalidInputError):
    """Raised when an OTP channel is not one of email, sms or whatsapp."""


class PasswordPolicyError(InvalidInputError):
    """Raised when a password does not satisfy the configured password policy."""


class OtpPurposeNotSupportedError(InvalidInputError):
    """Raised when an OTP is requested for a purpose that cannot be served."""


# Conflict
class ConflictError(AuthError):
    """Raised when a unique record (email, phone, OAuth link, active OTP) already exists."""

    kind = "conflict"


class UserAlreadyExistsError(ConflictError):
    """Raised when attempting to register an email or phone that is already in use."""


# Unauthorized
class UnauthorizedError(AuthError):
    kind = "unauthorized"


class InvalidCredentialsError(UnauthorizedError):
    """Raised when login credentials are invalid."""


class OtpInvalidOrExpiredError(UnauthorizedError):
    """Raised when an OTP is invalid, expired, used, or does not match the intended purpose."""


class TokenInvalidOrExpiredError(UnauthorizedError):
    """Raised when a one-time token is unknown, used or expired."""


# NotFound
class NotFoundError(AuthError):
    kind = "not_found"


class UserNotFoundError(NotFoundError):
    """Raised when an identifier does not resolve to a user."""


class ProviderNotConfiguredError(NotFoundError):
    """Raised when an OAuth provider is unknown or disabled."""


# Forbidden
class ForbiddenError(AuthError):
    """Raised when an authenticated caller lacks the required role."""

    kind = "forbidden"


class AccountDisabledError(ForbiddenError):
    """Raised when a disabled account tries to log in by any method."""


# Upstream
class UpstreamError(AuthError):
    """A collaborator (storage, transport, OAuth provider) failed; the cause is chained."""

    kind = "upstream"


class DeliveryError(UpstreamError):
    """Raised when an OTP or token could not be handed to its transport."""


class ExchangeFailedError(UpstreamError):
    """Raised when an OAuth authorization code cannot be exchanged for a token."""


class ProfileFetchFailedError(UpstreamError):
    """Raised when the OAuth provider's user-info endpoint fails."""
