from datetime import datetime, timezone
import secrets
from uuid import uuid4

from sqlalchemy import Column, DateTime


def utcnow() -> datetime:
    # в БД храним наивное UTC-время
    return datetime.now(timezone.utc).replace(tzinfo=None)


def new_id() -> str:
    return str(uuid4())


class TimestampMixin:
    created_at = Column(DateTime, default=utcnow, nullable=False)
    updated_at = Column(DateTime, default=utcnow, onupdate=utcnow, nullable=False)

    def _init_timestamps(self) -> None:
        # created_at нужен до первого flush: с ним сравнивается deleted_at
        if self.created_at is None:
            self.created_at = utcnow()
        if self.updated_at is None:
            self.updated_at = self.created_at


class EntityEqualityMixin:
    """Равенство и хеш только по первичному ключу."""

    def __eq__(self, other):
        if self is other:
            return True
        if other is None or type(self) is not type(other):
            return False
        return self.id is not None and self.id == other.id

    def __hash__(self):
        return hash((type(self).__name__, self.id))


def add_non_empty_error(error: str, errors: list[str]) -> None:
    if error:
        errors.append(error)


def generate_registration_key() -> str:
    # непрозрачный ключ для ссылок в письмах
    return secrets.token_urlsafe(24)
