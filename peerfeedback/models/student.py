from sqlalchemy import Column, String, Text, ForeignKey, UniqueConstraint
from sqlalchemy.orm import relationship, validates

from peerfeedback.database import Base
from peerfeedback.models.common import (
    TimestampMixin, EntityEqualityMixin, add_non_empty_error, new_id, generate_registration_key,
)
from peerfeedback.utils import field_validator as fv
from peerfeedback.utils.sanitization import sanitize_name, sanitize_email


class Student(EntityEqualityMixin, TimestampMixin, Base):
    __tablename__ = "students"
    __table_args__ = (
        UniqueConstraint("course_id", "email", name="uq_student_course_email"),
    )

    id = Column(String, primary_key=True, index=True)

    course_id = Column(String, ForeignKey("courses.id"), nullable=False, index=True)
    course = relationship("Course")

    section_id = Column(String, ForeignKey("sections.id"), nullable=True, index=True)
    section = relationship("Section")

    account_id = Column(String, ForeignKey("accounts.id"), nullable=True, index=True)
    account = relationship("Account")

    name = Column(String, nullable=False)
    email = Column(String, nullable=False)
    comments = Column(Text, nullable=False, default="")
    reg_key = Column(String, unique=True, index=True, nullable=False)

    def __init__(self, course, name, email, comments="", section=None, **kwargs):
        super().__init__(**kwargs)
        self._init_timestamps()
        if self.id is None:
            self.id = new_id()
        if self.reg_key is None:
            self.reg_key = generate_registration_key()
        self.course = course
        if course is not None:
            self.course_id = course.id
        self.section = section
        self.name = name
        self.email = email
        self.comments = comments

    @validates("name")
    def _sanitize_name(self, _key, value):
        return sanitize_name(value)

    @validates("email")
    def _sanitize_email(self, _key, value):
        value = sanitize_email(value)
        return value.lower() if value is not None else None

    @property
    def google_id(self):
        return self.account.google_id if self.account is not None else None

    def get_invalidity_info(self) -> list[str]:
        errors: list[str] = []
        add_non_empty_error(fv.get_invalidity_info_for_person_name(self.name), errors)
        add_non_empty_error(fv.get_invalidity_info_for_email(self.email), errors)
        if self.section is not None and self.section.course_id not in (None, self.course_id):
            errors.append("The section of a student must belong to the student's course.")
        return errors
