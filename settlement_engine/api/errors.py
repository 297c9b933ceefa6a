from __future__ import annotations

from typing import Any

from fastapi import HTTPException, status

from settlement_engine.domain import DomainValidationError, InvalidRange, QueryFailure


def api_error(
    *,
    code: str,
    message: str,
    details: Any | None = None,
    status_code: int = status.HTTP_400_BAD_REQUEST,
) -> HTTPException:
    return HTTPException(
        status_code=status_code,
        detail={
            "code": code,
            "message": message,
            "details": details,
        },
    )


def translate_error(exc: Exception) -> HTTPException:
    if isinstance(exc, QueryFailure):
        return api_error(code="store_unavailable", message=str(exc), status_code=status.HTTP_503_SERVICE_UNAVAILABLE)
    if isinstance(exc, InvalidRange):
        return api_error(code="invalid_range", message=str(exc))
    if isinstance(exc, DomainValidationError):
        return api_error(code="validation_error", message=str(exc))
    raise exc
