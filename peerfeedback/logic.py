"""
Слой логики: единственная точка, через которую роутеры читают и меняют данные.

Каскадные удаления выполняются явными запросами DELETE в фиксированном
порядке (сначала зависимые строки, потом владелец) внутри одной транзакции.
Метаданные каскадов ORM для этого не используются.
"""
from __future__ import annotations

import logging
from typing import List, Optional

from fastapi import Depends
from sqlalchemy import or_
from sqlalchemy.exc import IntegrityError, SQLAlchemyError
from sqlalchemy.orm import Session

from peerfeedback import config
from peerfeedback.database import get_db
from peerfeedback.errors import (
    EntityAlreadyExistsError,
    EntityDoesNotExistError,
    InstructorUpdateError,
    InvalidOperationError,
    InvalidParametersError,
)
from peerfeedback.models import (
    Account,
    Course,
    DeadlineExtension,
    FeedbackSession,
    Instructor,
    ReadNotification,
    Section,
    Student,
)
from peerfeedback.models.common import generate_registration_key, utcnow
from peerfeedback.utils.sanitization import sanitize_email, sanitize_google_id, sanitize_title

logger = logging.getLogger(__name__)

LAST_INSTRUCTOR_MESSAGE = (
    "The instructor you are trying to delete is the last instructor in the course. "
    "Deleting the last instructor from the course is not allowed."
)


def _normalize_email(email: Optional[str]) -> Optional[str]:
    email = sanitize_email(email)
    return email.lower() if email else email


class Logic:
    def __init__(self, db: Session, max_key_regeneration_tries: int | None = None):
        self.db = db
        self.max_key_regeneration_tries = max_key_regeneration_tries or config.MAX_KEY_REGENERATION_TRIES

    # ------------------------------------------------------------------
    # Аккаунты
    # ------------------------------------------------------------------
    def get_account_for_google_id(self, google_id: str) -> Optional[Account]:
        google_id = sanitize_google_id(google_id)
        return self.db.query(Account).filter(Account.google_id == google_id).first()

    def create_account(self, account: Account) -> Account:
        self._validate(account)
        if self.get_account_for_google_id(account.google_id) is not None:
            raise EntityAlreadyExistsError(f"Account with google id {account.google_id} already exists.")
        return self._persist(account)

    def delete_account_cascade(self, google_id: str) -> None:
        """
        Удаляет аккаунт вместе с отметками о прочитанных уведомлениях и
        записями инструктора/студента, привязанными к нему.
        Отсутствующий аккаунт не считается ошибкой.

        Если аккаунт принадлежит единственному инструктору какого-либо курса,
        удаление отклоняется целиком: курс не может остаться без инструкторов.
        Строки затронутых курсов блокируются, как в delete_instructor_cascade.
        """
        account = self.get_account_for_google_id(google_id)
        if account is None:
            return
        account_id = account.id
        try:
            instructor_rows = self.db.query(Instructor.id, Instructor.course_id) \
                .filter(Instructor.account_id == account_id).all()
            instructor_ids = [row.id for row in instructor_rows]
            for course_id in sorted({row.course_id for row in instructor_rows}):
                self.db.query(Course).filter(Course.id == course_id).with_for_update().first()
                others = self.db.query(Instructor).filter(
                    Instructor.course_id == course_id,
                    or_(Instructor.account_id.is_(None), Instructor.account_id != account_id),
                ).count()
                if others == 0:
                    self.db.rollback()
                    logger.info("Refused to delete account %s: last instructor of course %s",
                                google_id, course_id)
                    raise InvalidOperationError(LAST_INSTRUCTOR_MESSAGE)
            student_ids = [row.id for row in
                           self.db.query(Student.id).filter(Student.account_id == account_id)]
            self._delete_deadline_extensions(instructor_ids=instructor_ids, student_ids=student_ids)
            if instructor_ids:
                self.db.query(Instructor).filter(Instructor.id.in_(instructor_ids)) \
                    .delete(synchronize_session=False)
            if student_ids:
                self.db.query(Student).filter(Student.id.in_(student_ids)) \
                    .delete(synchronize_session=False)
            self.db.query(ReadNotification).filter(ReadNotification.account_id == account_id) \
                .delete(synchronize_session=False)
            self.db.query(Account).filter(Account.id == account_id).delete(synchronize_session=False)
            self.db.commit()
        except SQLAlchemyError:
            self.db.rollback()
            logger.warning("Rolled back cascade delete of account %s", google_id)
            raise
        self.db.expire_all()
        logger.info("Deleted account %s with %d instructor and %d student records",
                    google_id, len(instructor_ids), len(student_ids))

    # ------------------------------------------------------------------
    # Курсы
    # ------------------------------------------------------------------
    def get_course(self, course_id: str) -> Optional[Course]:
        return self.db.get(Course, sanitize_title(course_id))

    def create_course(self, course: Course) -> Course:
        self._validate(course)
        if self.get_course(course.id) is not None:
            raise EntityAlreadyExistsError(f"The course with the id {course.id} already exists.")
        return self._persist(course)

    def move_course_to_recycle_bin(self, course_id: str) -> Course:
        course = self.get_course(course_id)
        if course is None:
            raise EntityDoesNotExistError(f"Trying to move a non-existent course {course_id} to recycle bin.")
        course.set_deleted_at(utcnow())
        self.db.commit()
        self.db.refresh(course)
        logger.info("Moved course %s to recycle bin", course.id)
        return course

    def restore_course_from_recycle_bin(self, course_id: str) -> Course:
        course = self.get_course(course_id)
        if course is None:
            raise EntityDoesNotExistError(f"Trying to restore a non-existent course {course_id}.")
        course.set_deleted_at(None)
        self.db.commit()
        self.db.refresh(course)
        logger.info("Restored course %s from recycle bin", course.id)
        return course

    def delete_course_cascade(self, course_id: str) -> None:
        """Полное удаление курса со всеми зависимыми строками. Идемпотентно."""
        course = self.get_course(course_id)
        if course is None:
            return
        course_id = course.id
        try:
            session_ids = [row.id for row in
                           self.db.query(FeedbackSession.id).filter(FeedbackSession.course_id == course_id)]
            if session_ids:
                self.db.query(DeadlineExtension) \
                    .filter(DeadlineExtension.feedback_session_id.in_(session_ids)) \
                    .delete(synchronize_session=False)
            self.db.query(FeedbackSession).filter(FeedbackSession.course_id == course_id) \
                .delete(synchronize_session=False)
            self.db.query(Student).filter(Student.course_id == course_id).delete(synchronize_session=False)
            self.db.query(Section).filter(Section.course_id == course_id).delete(synchronize_session=False)
            self.db.query(Instructor).filter(Instructor.course_id == course_id) \
                .delete(synchronize_session=False)
            self.db.query(Course).filter(Course.id == course_id).delete(synchronize_session=False)
            self.db.commit()
        except SQLAlchemyError:
            self.db.rollback()
            logger.warning("Rolled back cascade delete of course %s", course_id)
            raise
        self.db.expire_all()
        logger.info("Deleted course %s with %d feedback sessions", course_id, len(session_ids))

    def get_feedback_sessions_for_course(self, course_id: str) -> List[FeedbackSession]:
        return (
            self.db.query(FeedbackSession)
            .filter(FeedbackSession.course_id == sanitize_title(course_id),
                    FeedbackSession.deleted_at.is_(None))
            .order_by(FeedbackSession.start_time, FeedbackSession.name)
            .all()
        )

    # ------------------------------------------------------------------
    # Инструкторы
    # ------------------------------------------------------------------
    def get_instructor_by_google_id(self, course_id: str, google_id: str) -> Optional[Instructor]:
        return (
            self.db.query(Instructor)
            .join(Account, Instructor.account_id == Account.id)
            .filter(Instructor.course_id == sanitize_title(course_id),
                    Account.google_id == sanitize_google_id(google_id))
            .first()
        )

    def get_instructor_for_email(self, course_id: str, email: str) -> Optional[Instructor]:
        return (
            self.db.query(Instructor)
            .filter(Instructor.course_id == sanitize_title(course_id),
                    Instructor.email == _normalize_email(email))
            .first()
        )

    def get_instructors_by_course(self, course_id: str) -> List[Instructor]:
        return (
            self.db.query(Instructor)
            .filter(Instructor.course_id == sanitize_title(course_id))
            .order_by(Instructor.name, Instructor.email)
            .all()
        )

    def create_instructor(self, instructor: Instructor) -> Instructor:
        self._validate(instructor)
        if self.get_instructor_for_email(instructor.course_id, instructor.email) is not None:
            raise EntityAlreadyExistsError(
                f"Instructor {instructor.email} already exists in course {instructor.course_id}."
            )
        return self._persist(instructor)

    def delete_instructor_cascade(self, course_id: str, email: str) -> None:
        """
        Удаляет инструктора и его продления дедлайнов. Отсутствующий
        инструктор не считается ошибкой.

        Строка курса блокируется (SELECT ... FOR UPDATE там, где СУБД это
        умеет), и правило последнего инструктора перепроверяется внутри той же
        транзакции: два параллельных удаления не оставят курс без инструкторов.
        """
        course_id = sanitize_title(course_id)
        try:
            self.db.query(Course).filter(Course.id == course_id).with_for_update().first()
            instructor = self.get_instructor_for_email(course_id, email)
            if instructor is None:
                self.db.rollback()
                return
            remaining = self.db.query(Instructor).filter(Instructor.course_id == course_id).count()
            if remaining <= 1:
                self.db.rollback()
                raise InvalidOperationError(LAST_INSTRUCTOR_MESSAGE)
            instructor_id = instructor.id
            self._delete_deadline_extensions(instructor_ids=[instructor_id])
            self.db.query(Instructor).filter(Instructor.id == instructor_id).delete(synchronize_session=False)
            self.db.commit()
        except SQLAlchemyError:
            self.db.rollback()
            logger.warning("Rolled back delete of instructor %s in course %s", email, course_id)
            raise
        self.db.expire_all()
        logger.info("Deleted instructor %s from course %s", email, course_id)

    def regenerate_instructor_registration_key(self, course_id: str, email: str) -> Instructor:
        """
        Выдаёт инструктору новый ключ регистрации.

        Raises:
            EntityDoesNotExistError: инструктора нет в курсе
            InstructorUpdateError: не удалось подобрать уникальный ключ или сохранить его
        """
        instructor = self.get_instructor_for_email(course_id, email)
        if instructor is None:
            raise EntityDoesNotExistError(
                f"The instructor with the email {email} could not be found for the course with ID [{course_id}]."
            )

        old_key = instructor.reg_key
        new_key = self._find_unused_registration_key(old_key)
        if new_key is None:
            raise InstructorUpdateError("Could not regenerate a new course registration key for the instructor.")

        instructor.reg_key = new_key
        try:
            self.db.commit()
        except SQLAlchemyError as e:
            self.db.rollback()
            logger.warning("Registration key update for %s in %s failed: %s", email, course_id, e)
            raise InstructorUpdateError(
                "Could not regenerate a new course registration key for the instructor."
            ) from e
        self.db.refresh(instructor)
        logger.info("Regenerated registration key of instructor %s in course %s", email, course_id)
        return instructor

    def _find_unused_registration_key(self, old_key: str) -> Optional[str]:
        for _ in range(self.max_key_regeneration_tries):
            candidate = generate_registration_key()
            if candidate == old_key:
                continue
            if not self.db.query(Instructor.id).filter(Instructor.reg_key == candidate).first():
                return candidate
        return None

    # ------------------------------------------------------------------
    # Студенты
    # ------------------------------------------------------------------
    def get_student_by_google_id(self, course_id: str, google_id: str) -> Optional[Student]:
        return (
            self.db.query(Student)
            .join(Account, Student.account_id == Account.id)
            .filter(Student.course_id == sanitize_title(course_id),
                    Account.google_id == sanitize_google_id(google_id))
            .first()
        )

    def create_student(self, student: Student) -> Student:
        self._validate(student)
        existing = self.db.query(Student).filter(
            Student.course_id == student.course_id, Student.email == student.email
        ).first()
        if existing is not None:
            raise EntityAlreadyExistsError(f"Student {student.email} already exists in course {student.course_id}.")
        return self._persist(student)

    # ------------------------------------------------------------------
    # Вспомогательное
    # ------------------------------------------------------------------
    def _delete_deadline_extensions(self, instructor_ids=(), student_ids=()) -> None:
        conditions = []
        if instructor_ids:
            conditions.append(DeadlineExtension.instructor_id.in_(list(instructor_ids)))
        if student_ids:
            conditions.append(DeadlineExtension.student_id.in_(list(student_ids)))
        if conditions:
            self.db.query(DeadlineExtension).filter(or_(*conditions)).delete(synchronize_session=False)

    @staticmethod
    def _validate(entity) -> None:
        errors = entity.get_invalidity_info()
        if errors:
            raise InvalidParametersError(errors)

    def _persist(self, entity):
        self.db.add(entity)
        try:
            self.db.commit()
        except IntegrityError as e:
            self.db.rollback()
            raise EntityAlreadyExistsError(f"Could not save {type(entity).__name__}: {e.orig}") from e
        self.db.refresh(entity)
        return entity


def get_logic(db: Session = Depends(get_db)) -> Logic:
    return Logic(db)
