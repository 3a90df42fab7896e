from __future__ import annotations


class WebhookError(Exception):
    """
    Terminal failure of one webhook delivery.
    `message` is the public response body; diagnostic detail belongs in the log.
    """

    status_code = 500
    message = "Internal error"

    def __init__(self, detail: str | None = None):
        super().__init__(detail or self.message)
        self.detail = detail


class MethodNotAllowed(WebhookError):
    status_code = 405
    message = "Only POST requests allowed"


class InvalidSignature(WebhookError):
    status_code = 401
    message = "Invalid signature"


class MalformedPayload(WebhookError):
    status_code = 400
    message = "Invalid payload"


class UserNotFound(WebhookError):
    status_code = 404
    message = "User not found"


class PersistenceError(WebhookError):
    status_code = 500
    message = "Database error"
