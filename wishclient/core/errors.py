"""
Error kinds surfaced by the client.

The gateway raises them; controllers and the session store catch them at the
operation boundary and turn them into user-facing messages.
"""

GENERIC_TRANSPORT_MESSAGE = "Something went wrong. Please try again."
GENERIC_NOT_FOUND_MESSAGE = (
    "Failed to load wishlist. You might not have access or it might not exist."
)
GENERIC_AUTH_MESSAGE = "Your session has expired. Please log in again."


class WishClientError(Exception):
    """Base class. ``message`` is always safe to show to the user."""

    default_message = GENERIC_TRANSPORT_MESSAGE

    def __init__(self, message: str | None = None, *, status_code: int | None = None) -> None:
        self.message = message or self.default_message
        self.status_code = status_code
        super().__init__(self.message)


class ValidationError(WishClientError):
    """Local pre-flight rejection. Never reaches the network."""

    default_message = "Invalid input."


class AuthError(WishClientError):
    default_message = GENERIC_AUTH_MESSAGE


class NotFoundOrForbidden(WishClientError):
    """Missing resource and missing access are deliberately indistinguishable."""

    default_message = GENERIC_NOT_FOUND_MESSAGE

    def __init__(self, detail: str | None = None, *, status_code: int | None = None) -> None:
        super().__init__(None, status_code=status_code)
        # server wording is kept for logs only
        self.detail = detail


class RequestRejected(WishClientError):
    """Non-success status that came with a structured server message."""


class TransportError(WishClientError):
    default_message = GENERIC_TRANSPORT_MESSAGE
