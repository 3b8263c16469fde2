from __future__ import annotations


class PlacemapError(Exception):
    """Base for errors the engine hands back to the presentation layer.

    ``message`` is meant to be shown to the user as-is.
    """

    default_message = "Something went wrong"

    def __init__(self, message: str | None = None) -> None:
        self.message = message or self.default_message
        super().__init__(self.message)


class NetworkFailure(PlacemapError):
    default_message = "The service is unreachable. Try again."


class ValidationError(PlacemapError):
    default_message = "Invalid input"


class AuthRequired(PlacemapError):
    default_message = "Login required"


class Forbidden(PlacemapError):
    default_message = "Only the author can change this review"


class NotFound(PlacemapError):
    default_message = "Not found"


class StaleResponse(PlacemapError):
    """A completion that lost the race to a newer request. Never shown to users."""

    default_message = "Superseded by a newer request"
