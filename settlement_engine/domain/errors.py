from __future__ import annotations


class DomainValidationError(ValueError):
    """Raised when a settlement or commission rule is violated."""


class InvalidRange(DomainValidationError):
    """Raised when a custom window ends before it starts."""


class CeilingViolation(DomainValidationError):
    """Raised when a reseller share exceeds the ceiling set by its parent."""

    def __init__(self, reseller_id: str, field: str, value: object, ceiling: object) -> None:
        super().__init__(f"{field} of reseller {reseller_id} is {value}, parent ceiling is {ceiling}")
        self.reseller_id = reseller_id
        self.field = field
        self.value = value
        self.ceiling = ceiling


class QueryFailure(RuntimeError):
    """Raised when the backing store cannot serve a read or write."""
