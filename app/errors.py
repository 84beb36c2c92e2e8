"""Error taxonomy shared by the validator, the store, and the HTTP layer.

Each error knows its HTTP status and how to render the public
``{"error": ..., "details": [...]}`` envelope.
"""

from dataclasses import dataclass, asdict
from typing import Any, Dict, List


@dataclass(frozen=True)
class FieldError:
    """One violated constraint, addressed by a dotted field path."""

    field: str
    message: str


class AppError(Exception):
    status_code = 500

    def __init__(self, message: str) -> None:
        super().__init__(message)
        self.message = message

    def body(self) -> Dict[str, Any]:
        return {"error": self.message}


class ValidationError(AppError):
    """Client input violated one or more declared constraints."""

    status_code = 400

    def __init__(self, message: str, details: List[FieldError]) -> None:
        super().__init__(message)
        self.details = list(details)

    def body(self) -> Dict[str, Any]:
        return {"error": self.message, "details": [asdict(d) for d in self.details]}


class NotFoundError(AppError):
    status_code = 404


class PersistenceError(AppError):
    """The storage engine failed; ``message`` is the driver's own text."""

    status_code = 500
