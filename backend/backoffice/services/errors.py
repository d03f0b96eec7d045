"""Workflow error taxonomy.

Every failure a workflow step can report is one of these types. The HTTP
layer maps them onto status codes; nothing here knows about HTTP beyond the
suggested ``status_code``.

    WorkflowError
    +-- BadRequestError    missing/invalid input, pricing mismatch, insufficient stock
    +-- NotFoundError      customer / invoice / product id does not resolve
    +-- UnauthorizedError  role check failed
    +-- ConflictError      concurrent oversubscription caught by the conditional decrement
    +-- InternalError      unexpected persistence failure (changes rolled back)
"""

from dataclasses import dataclass, asdict
from uuid import UUID


@dataclass(frozen=True)
class Problem:
    """One per-product failure inside a multi-line request."""
    product_id: UUID | None
    message: str
    requested: int | None = None
    on_hand: int | None = None

    def as_dict(self) -> dict:
        data = asdict(self)
        if self.product_id is not None:
            data["product_id"] = str(self.product_id)
        return data


class WorkflowError(Exception):
    code = "WORKFLOW_ERROR"
    status_code = 500

    def __init__(self, message: str, problems: list[Problem] | None = None):
        super().__init__(message)
        self.message = message
        self.problems: list[Problem] = list(problems or [])

    def to_dict(self) -> dict:
        body = {"code": self.code, "detail": self.message}
        if self.problems:
            body["problems"] = [p.as_dict() for p in self.problems]
        return body


class BadRequestError(WorkflowError):
    code = "BAD_REQUEST"
    status_code = 400


class UnauthorizedError(WorkflowError):
    code = "UNAUTHORIZED"
    status_code = 403


class NotFoundError(WorkflowError):
    code = "NOT_FOUND"
    status_code = 404


class ConflictError(WorkflowError):
    code = "CONFLICT"
    status_code = 409


class InternalError(WorkflowError):
    code = "INTERNAL_ERROR"
    status_code = 500
