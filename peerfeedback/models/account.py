from sqlalchemy import Column, String, DateTime, Text, ForeignKey, UniqueConstraint
from sqlalchemy.orm import relationship, validates

from peerfeedback.database import Base
from peerfeedback.models.common import (
    TimestampMixin, EntityEqualityMixin, add_non_empty_error, new_id,
)
from peerfeedback.utils import field_validator as fv
from peerfeedback.utils.sanitization import sanitize_google_id, sanitize_name, sanitize_email


class Account(EntityEqualityMixin, TimestampMixin, Base):
    """
    Учётная запись пользователя (вход через google id).
    Владеет отметками о прочитанных уведомлениях; при удалении аккаунта
    они удаляются вместе с ним (см. Logic.delete_account_cascade).
    """
    __tablename__ = "accounts"

    id = Column(String, primary_key=True, index=True)
    google_id = Column(String, unique=True, index=True, nullable=False)
    name = Column(String, nullable=False)
    email = Column(String, nullable=False)

    _read_notifications = relationship(
        "ReadNotification", back_populates="account", order_by="ReadNotification.created_at"
    )

    def __init__(self, google_id, name, email, **kwargs):
        super().__init__(**kwargs)
        self._init_timestamps()
        if self.id is None:
            self.id = new_id()
        self.google_id = google_id
        self.name = name
        self.email = email

    @validates("google_id")
    def _sanitize_google_id(self, _key, value):
        return sanitize_google_id(value)

    @validates("name")
    def _sanitize_name(self, _key, value):
        return sanitize_name(value)

    @validates("email")
    def _sanitize_email(self, _key, value):
        value = sanitize_email(value)
        return value.lower() if value is not None else None

    @property
    def read_notifications(self) -> tuple:
        return tuple(self._read_notifications)

    @read_notifications.setter
    def read_notifications(self, items):
        self._read_notifications.clear()
        if items:
            self._read_notifications.extend(items)

    def add_read_notification(self, read_notification: "ReadNotification") -> None:
        # back_populates мог уже добавить запись при создании ReadNotification
        if read_notification not in self._read_notifications:
            self._read_notifications.append(read_notification)

    def get_invalidity_info(self) -> list[str]:
        errors: list[str] = []
        add_non_empty_error(fv.get_invalidity_info_for_google_id(self.google_id), errors)
        add_non_empty_error(fv.get_invalidity_info_for_person_name(self.name), errors)
        add_non_empty_error(fv.get_invalidity_info_for_email(self.email), errors)
        return errors

    def __repr__(self):
        return f"Account(id={self.id!r}, google_id={self.google_id!r}, email={self.email!r})"


class Notification(EntityEqualityMixin, TimestampMixin, Base):
    __tablename__ = "notifications"

    id = Column(String, primary_key=True, index=True)
    title = Column(String, nullable=False)
    message = Column(Text, nullable=False)
    start_time = Column(DateTime, nullable=False)
    end_time = Column(DateTime, nullable=False)

    def __init__(self, title, message, start_time, end_time, **kwargs):
        super().__init__(**kwargs)
        self._init_timestamps()
        if self.id is None:
            self.id = new_id()
        self.title = title
        self.message = message
        self.start_time = start_time
        self.end_time = end_time

    @validates("title")
    def _sanitize_title(self, _key, value):
        return sanitize_name(value)

    def get_invalidity_info(self) -> list[str]:
        errors: list[str] = []
        if not self.title:
            errors.append("The field 'notification title' is empty.")
        if not self.message:
            errors.append("The field 'notification message' is empty.")
        add_non_empty_error(fv.get_invalidity_info_for_time_window(
            self.start_time, self.end_time, "start time", "end time"), errors)
        return errors


class ReadNotification(EntityEqualityMixin, TimestampMixin, Base):
    """Отметка «аккаунт прочитал уведомление»."""
    __tablename__ = "read_notifications"
    __table_args__ = (
        UniqueConstraint("account_id", "notification_id", name="uq_read_notification"),
    )

    id = Column(String, primary_key=True, index=True)
    account_id = Column(String, ForeignKey("accounts.id"), nullable=False, index=True)
    account = relationship("Account", back_populates="_read_notifications")

    notification_id = Column(String, ForeignKey("notifications.id"), nullable=False)
    notification = relationship("Notification")

    def __init__(self, account, notification, **kwargs):
        super().__init__(**kwargs)
        self._init_timestamps()
        if self.id is None:
            self.id = new_id()
        self.account = account
        self.notification = notification

    def get_invalidity_info(self) -> list[str]:
        return []
