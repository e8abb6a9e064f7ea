from sqlalchemy import Column, String, Boolean, ForeignKey, UniqueConstraint, JSON
from sqlalchemy.orm import relationship, validates
from sqlalchemy.types import TypeDecorator

from peerfeedback.database import Base
from peerfeedback.models.common import (
    TimestampMixin, EntityEqualityMixin, add_non_empty_error, new_id, generate_registration_key,
)
from peerfeedback.utils import field_validator as fv
from peerfeedback.utils.privileges import InstructorPrivileges, InstructorRole
from peerfeedback.utils.sanitization import sanitize_name, sanitize_email

DEFAULT_DISPLAY_NAME = "Instructor"
ALLOWED_ROLES = {role.value for role in InstructorRole}


class PrivilegesType(TypeDecorator):
    """InstructorPrivileges <-> JSON."""
    impl = JSON
    cache_ok = True

    def process_bind_param(self, value, dialect):
        if isinstance(value, InstructorPrivileges):
            return value.to_dict()
        return value

    def process_result_value(self, value, dialect):
        if value is None:
            return None
        return InstructorPrivileges.from_dict(value)


class Instructor(EntityEqualityMixin, TimestampMixin, Base):
    """
    Инструктор курса. Одна запись на пару (курс, email) и на пару
    (курс, аккаунт). Правило «в курсе остаётся хотя бы один инструктор»
    держит слой логики, а не сама сущность.
    """
    __tablename__ = "instructors"
    __table_args__ = (
        UniqueConstraint("course_id", "email", name="uq_instructor_course_email"),
        UniqueConstraint("course_id", "account_id", name="uq_instructor_course_account"),
    )

    id = Column(String, primary_key=True, index=True)

    course_id = Column(String, ForeignKey("courses.id"), nullable=False, index=True)
    course = relationship("Course")

    account_id = Column(String, ForeignKey("accounts.id"), nullable=True, index=True)
    account = relationship("Account")

    name = Column(String, nullable=False)
    email = Column(String, nullable=False)
    reg_key = Column(String, unique=True, index=True, nullable=False)
    role = Column(String, nullable=False)
    is_displayed_to_students = Column(Boolean, default=True, nullable=False)
    display_name = Column(String, nullable=False)
    privileges = Column(InstructorPrivileges.as_mutable(PrivilegesType), nullable=False)

    def __init__(self, course, name, email, is_displayed_to_students=True, display_name=None,
                 role=InstructorRole.COOWNER, privileges=None, **kwargs):
        super().__init__(**kwargs)
        self._init_timestamps()
        if self.id is None:
            self.id = new_id()
        if self.reg_key is None:
            self.reg_key = generate_registration_key()
        self.course = course
        if course is not None:
            self.course_id = course.id
        self.name = name
        self.email = email
        self.is_displayed_to_students = is_displayed_to_students
        self.display_name = display_name
        self.role = role
        if privileges is None:
            template = self.role if self.role in ALLOWED_ROLES else InstructorRole.CUSTOM
            privileges = InstructorPrivileges(template)
        self.privileges = privileges

    @validates("name")
    def _sanitize_name(self, _key, value):
        return sanitize_name(value)

    @validates("display_name")
    def _sanitize_display_name(self, _key, value):
        return sanitize_name(value) or DEFAULT_DISPLAY_NAME

    @validates("email")
    def _sanitize_email(self, _key, value):
        value = sanitize_email(value)
        return value.lower() if value is not None else None

    @validates("role")
    def _normalize_role(self, _key, value):
        if isinstance(value, InstructorRole):
            return value.value
        return value

    @property
    def google_id(self):
        return self.account.google_id if self.account is not None else None

    @property
    def is_registered(self) -> bool:
        return self.account is not None

    def get_invalidity_info(self) -> list[str]:
        errors: list[str] = []
        if self.course is None and self.course_id is None:
            errors.append("An instructor must belong to a course.")
        add_non_empty_error(fv.get_invalidity_info_for_person_name(self.name), errors)
        add_non_empty_error(fv.get_invalidity_info_for_email(self.email), errors)
        add_non_empty_error(fv.get_invalidity_info_for_person_name(self.display_name), errors)
        add_non_empty_error(fv.get_invalidity_info_for_role(self.role, ALLOWED_ROLES), errors)
        return errors

    def __repr__(self):
        return f"Instructor(id={self.id!r}, course_id={self.course_id!r}, email={self.email!r})"
