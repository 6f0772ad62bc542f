"""
FastAPI Depends.

Сюда выносим:
- идентичность владельца (X-Owner-Id, проставляет внешний auth-слой)
- проверку cron-секрета для sweep
- перевод AppError в HTTPException
"""

from __future__ import annotations

from fastapi import Header, HTTPException, Request, status

from meeting_notes_agent.common.errors import AppError, ErrCode, UnauthorizedError
from meeting_notes_agent.common.logging import get_project_logger
from meeting_notes_agent.common.security import require_cron

log = get_project_logger()

_STATUS_BY_CODE = {
    ErrCode.VALIDATION: status.HTTP_400_BAD_REQUEST,
    ErrCode.UNAUTHORIZED: status.HTTP_401_UNAUTHORIZED,
    ErrCode.NOT_FOUND: status.HTTP_404_NOT_FOUND,
}


def owner_dep(x_owner_id: str | None = Header(default=None, alias="X-Owner-Id")) -> str | None:
    """
    Владелец встречи (опционально). Без заголовка фильтр по владельцу не применяется.
    """
    owner = (x_owner_id or "").strip()
    return owner or None


def required_owner_dep(x_owner_id: str | None = Header(default=None, alias="X-Owner-Id")) -> str:
    owner = (x_owner_id or "").strip()
    if not owner:
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail={"code": ErrCode.UNAUTHORIZED, "message": "X-Owner-Id is required"},
        )
    return owner


def cron_auth_dep(
    request: Request,
    authorization: str | None = Header(default=None, alias="Authorization"),
) -> None:
    try:
        require_cron(authorization)
    except UnauthorizedError as e:
        log.warning(
            "security_audit_deny",
            extra={
                "payload": {
                    "endpoint": request.url.path,
                    "method": request.method,
                    "reason": "cron_secret_mismatch",
                    "client_ip": request.client.host if request.client else None,
                }
            },
        )
        raise http_error(e) from e


def http_error(err: AppError) -> HTTPException:
    return HTTPException(
        status_code=_STATUS_BY_CODE.get(err.code, status.HTTP_500_INTERNAL_SERVER_ERROR),
        detail={"code": err.code, "message": err.message},
    )
