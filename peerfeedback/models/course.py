from sqlalchemy import Column, String, DateTime, Text, ForeignKey, UniqueConstraint
from sqlalchemy.orm import relationship, validates

from peerfeedback import config
from peerfeedback.database import Base
from peerfeedback.models.common import (
    TimestampMixin, EntityEqualityMixin, add_non_empty_error, new_id,
)
from peerfeedback.utils import field_validator as fv
from peerfeedback.utils.sanitization import sanitize_title, sanitize_name, sanitize_email


class Course(EntityEqualityMixin, TimestampMixin, Base):
    """
    Курс. id выбирает сам инструктор, он же первичный ключ.

    Секции принадлежат курсу и удаляются вместе с ним. Сессии обратной связи
    тоже привязаны к курсу, но живут по своему жизненному циклу.
    deleted_at: отметка мягкого удаления (корзина).
    """
    __tablename__ = "courses"

    id = Column(String, primary_key=True, index=True)
    name = Column(String, nullable=False)
    time_zone = Column(String, nullable=False)
    institute = Column(String, nullable=False)
    deleted_at = Column(DateTime, nullable=True)

    _sections = relationship("Section", back_populates="course", order_by="Section.name")
    _feedback_sessions = relationship(
        "FeedbackSession", back_populates="course", order_by="FeedbackSession.created_at"
    )

    def __init__(self, id, name, time_zone=None, institute=None, **kwargs):
        super().__init__(**kwargs)
        self._init_timestamps()
        self.id = id
        self.name = name
        self.time_zone = time_zone or config.DEFAULT_TIME_ZONE
        self.institute = institute

    @validates("id", "institute")
    def _sanitize_title_fields(self, _key, value):
        return sanitize_title(value)

    @validates("name")
    def _sanitize_name(self, _key, value):
        return sanitize_name(value)

    @validates("deleted_at")
    def _check_deleted_at(self, _key, value):
        if value is not None and (self.created_at is None or value < self.created_at):
            raise ValueError("Deleted time cannot be before creation time.")
        return value

    def set_deleted_at(self, deleted_at) -> None:
        self.deleted_at = deleted_at

    @property
    def is_course_deleted(self) -> bool:
        return self.deleted_at is not None

    @property
    def sections(self) -> tuple:
        return tuple(self._sections)

    @sections.setter
    def sections(self, items):
        self._sections.clear()
        if items:
            self._sections.extend(items)

    def add_section(self, section: "Section") -> None:
        if section not in self._sections:
            self._sections.append(section)

    @property
    def feedback_sessions(self) -> tuple:
        return tuple(self._feedback_sessions)

    @feedback_sessions.setter
    def feedback_sessions(self, items):
        self._feedback_sessions.clear()
        if items:
            self._feedback_sessions.extend(items)

    def get_invalidity_info(self) -> list[str]:
        errors: list[str] = []
        add_non_empty_error(fv.get_invalidity_info_for_course_id(self.id), errors)
        add_non_empty_error(fv.get_invalidity_info_for_course_name(self.name), errors)
        add_non_empty_error(fv.get_invalidity_info_for_institute_name(self.institute), errors)
        add_non_empty_error(fv.get_invalidity_info_for_time_zone(self.time_zone), errors)
        return errors

    def __repr__(self):
        return f"Course(id={self.id!r}, name={self.name!r}, deleted_at={self.deleted_at!r})"


class Section(EntityEqualityMixin, TimestampMixin, Base):
    __tablename__ = "sections"
    __table_args__ = (UniqueConstraint("course_id", "name", name="uq_section_course_name"),)

    id = Column(String, primary_key=True, index=True)
    course_id = Column(String, ForeignKey("courses.id"), nullable=False, index=True)
    course = relationship("Course", back_populates="_sections")
    name = Column(String, nullable=False)

    def __init__(self, course, name, **kwargs):
        super().__init__(**kwargs)
        self._init_timestamps()
        if self.id is None:
            self.id = new_id()
        self.course = course
        self.name = name

    @validates("name")
    def _sanitize_name(self, _key, value):
        return sanitize_title(value)

    def get_invalidity_info(self) -> list[str]:
        errors: list[str] = []
        add_non_empty_error(fv.get_invalidity_info_for_section_name(self.name), errors)
        return errors


class FeedbackSession(EntityEqualityMixin, TimestampMixin, Base):
    __tablename__ = "feedback_sessions"
    __table_args__ = (UniqueConstraint("course_id", "name", name="uq_session_course_name"),)

    id = Column(String, primary_key=True, index=True)
    course_id = Column(String, ForeignKey("courses.id"), nullable=False, index=True)
    course = relationship("Course", back_populates="_feedback_sessions")

    name = Column(String, nullable=False)
    creator_email = Column(String, nullable=False)
    instructions = Column(Text, nullable=False, default="")
    start_time = Column(DateTime, nullable=False)
    end_time = Column(DateTime, nullable=False)
    session_visible_from_time = Column(DateTime, nullable=True)
    results_visible_from_time = Column(DateTime, nullable=True)
    deleted_at = Column(DateTime, nullable=True)

    def __init__(self, course, name, creator_email, start_time, end_time, instructions="", **kwargs):
        super().__init__(**kwargs)
        self._init_timestamps()
        if self.id is None:
            self.id = new_id()
        self.course = course
        self.name = name
        self.creator_email = creator_email
        self.instructions = instructions
        self.start_time = start_time
        self.end_time = end_time

    @validates("name")
    def _sanitize_name(self, _key, value):
        return sanitize_title(value)

    @validates("creator_email")
    def _sanitize_email(self, _key, value):
        value = sanitize_email(value)
        return value.lower() if value is not None else None

    @validates("deleted_at")
    def _check_deleted_at(self, _key, value):
        if value is not None and (self.created_at is None or value < self.created_at):
            raise ValueError("Deleted time cannot be before creation time.")
        return value

    def get_invalidity_info(self) -> list[str]:
        errors: list[str] = []
        add_non_empty_error(fv.get_invalidity_info_for_session_name(self.name), errors)
        add_non_empty_error(fv.get_invalidity_info_for_email(self.creator_email), errors)
        add_non_empty_error(fv.get_invalidity_info_for_time_window(
            self.start_time, self.end_time, "start time", "end time"), errors)
        add_non_empty_error(fv.get_invalidity_info_for_time_window(
            self.session_visible_from_time, self.start_time,
            "time when the session will be visible", "start time"), errors)
        return errors


class DeadlineExtension(EntityEqualityMixin, TimestampMixin, Base):
    """Индивидуальный срок сдачи для инструктора или студента."""
    __tablename__ = "deadline_extensions"

    id = Column(String, primary_key=True, index=True)
    feedback_session_id = Column(String, ForeignKey("feedback_sessions.id"), nullable=False, index=True)
    feedback_session = relationship("FeedbackSession")

    instructor_id = Column(String, ForeignKey("instructors.id"), nullable=True, index=True)
    student_id = Column(String, ForeignKey("students.id"), nullable=True, index=True)
    end_time = Column(DateTime, nullable=False)

    def __init__(self, feedback_session, end_time, instructor=None, student=None, **kwargs):
        super().__init__(**kwargs)
        self._init_timestamps()
        if self.id is None:
            self.id = new_id()
        self.feedback_session = feedback_session
        self.end_time = end_time
        if instructor is not None:
            self.instructor_id = instructor.id
        if student is not None:
            self.student_id = student.id

    def get_invalidity_info(self) -> list[str]:
        errors: list[str] = []
        if (self.instructor_id is None) == (self.student_id is None):
            errors.append("A deadline extension must belong to exactly one instructor or student.")
        if self.feedback_session is not None:
            add_non_empty_error(fv.get_invalidity_info_for_time_window(
                self.feedback_session.end_time, self.end_time,
                "session end time", "extended deadline"), errors)
        return errors
