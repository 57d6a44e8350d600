"""
core/errors.py
────────────────────────────────────────────────────────────────────────
Error taxonomy shared by the token service and the HTTP layer.

Each error knows its HTTP status and the public `error` string; `main.py`
turns them into `{"error": ..., "details": ...}` JSON bodies.
"""
from __future__ import annotations

from typing import Any


class MessError(Exception):
    status_code: int = 500
    error: str = "Internal server error"

    def __init__(self, details: str | None = None) -> None:
        super().__init__(details or self.error)
        self.details = details

    def payload(self) -> dict[str, Any]:
        body: dict[str, Any] = {"error": self.error}
        if self.details:
            body["details"] = self.details
        return body


class Unauthorized(MessError):
    status_code = 401
    error = "Unauthorized"


class Forbidden(MessError):
    status_code = 403
    error = "Forbidden"


class InvalidInput(MessError):
    status_code = 400
    error = "Invalid input"


class AlreadyExists(MessError):
    """Duplicate issuance; carries the code of the token already held."""

    status_code = 409
    error = "Token already exists"

    def __init__(self, token_code: str, details: str | None = None) -> None:
        super().__init__(details)
        self.token_code = token_code

    def payload(self) -> dict[str, Any]:
        body = super().payload()
        body["tokenCode"] = self.token_code
        return body


class NotFound(MessError):
    status_code = 404
    error = "Token not found or expired"


class AlreadyUsed(MessError):
    status_code = 409
    error = "Token already used"


class StoreFailure(MessError):
    status_code = 500
    error = "Internal server error"


class MenuNotFound(NotFound):
    error = "Menu not published"
