from __future__ import annotations


class FormsError(Exception):
    status_code = 400
    default_message = "Request failed."

    def __init__(self, message: str | None = None) -> None:
        super().__init__(message or self.default_message)
        self.message = message or self.default_message


class Unauthorized(FormsError):
    """No verified identity could be resolved for the request."""

    status_code = 401
    default_message = "Unauthorized: User not logged in."


class NotOwner(FormsError):
    """The caller is signed in but does not own the target form."""

    status_code = 403
    default_message = "Unauthorized: You do not own this form."


class NotFound(FormsError):
    status_code = 404
    default_message = "Not found."


class ValidationError(FormsError):
    status_code = 400
    default_message = "Invalid input."
