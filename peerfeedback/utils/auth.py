from __future__ import annotations

from dataclasses import dataclass

from fastapi import Depends
from fastapi.security import OAuth2PasswordBearer

from peerfeedback import config
from peerfeedback.utils.sanitization import sanitize_google_id

# Упрощённая авторизация: токен = google id пользователя.
oauth2_scheme = OAuth2PasswordBearer(tokenUrl="/webapi/auth/token", auto_error=False)


@dataclass(frozen=True)
class UserInfo:
    """Кто делает запрос. При google_id=None пользователь анонимный."""
    google_id: str | None
    is_admin: bool = False

    @property
    def is_logged_in(self) -> bool:
        return self.google_id is not None


ANONYMOUS = UserInfo(google_id=None)


def get_admin_ids() -> set[str]:
    return {sanitize_google_id(g) for g in config.APP_ADMINS}


def get_current_user(token: str | None = Depends(oauth2_scheme)) -> UserInfo:
    google_id = sanitize_google_id(token) if token else None
    if not google_id:
        return ANONYMOUS
    return UserInfo(google_id=google_id, is_admin=google_id in get_admin_ids())
