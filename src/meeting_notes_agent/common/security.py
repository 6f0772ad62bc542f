"""
Авторизация служебных вызовов.

Cron sweep защищён общим секретом:
    Authorization: Bearer <CRON_SECRET>
Пустой CRON_SECRET означает, что sweep по HTTP выключен.
"""

from __future__ import annotations

import hmac

from .config import get_settings
from .errors import UnauthorizedError


def is_cron_authorized(authorization: str | None, secret: str | None) -> bool:
    expected_secret = (secret or "").strip()
    if not expected_secret:
        return False
    got = (authorization or "").strip()
    return hmac.compare_digest(got.encode("utf-8"), f"Bearer {expected_secret}".encode())


def require_cron(authorization: str | None) -> None:
    if not is_cron_authorized(authorization, get_settings().cron_secret):
        raise UnauthorizedError("Unauthorized")
