"""
Проверки доступа. Каждая функция либо молча возвращается, либо бросает
UnauthorizedAccessError (401 для анонимного пользователя, 403 для остальных).
"""
from __future__ import annotations

import logging

from peerfeedback.errors import UnauthorizedAccessError
from peerfeedback.logic import Logic
from peerfeedback.models import Course, Instructor
from peerfeedback.utils.auth import UserInfo
from peerfeedback.utils.privileges import InstructorPermission

logger = logging.getLogger(__name__)


def _deny(user: UserInfo, message: str) -> None:
    logger.info("Access denied for %s: %s", user.google_id or "anonymous", message)
    raise UnauthorizedAccessError(message, anonymous=not user.is_logged_in)


def verify_logged_in(user: UserInfo) -> None:
    if not user.is_logged_in:
        _deny(user, "You are not logged in.")


def verify_admin(user: UserInfo) -> None:
    verify_logged_in(user)
    if not user.is_admin:
        _deny(user, "Admin privilege is required to access this resource.")


def verify_accessible(user: UserInfo, instructor: Instructor | None, course: Course | None,
                      permission: InstructorPermission | None = None) -> None:
    """
    instructor: запись вызывающего пользователя в курсе (или None).
    Нужна запись инструктора именно в этом курсе и, если указано, право permission.
    """
    verify_logged_in(user)
    if instructor is None:
        _deny(user, "Trying to access system using a non-existent instructor entity.")
    if course is not None and instructor.course_id != course.id:
        _deny(user, f"Course [{course.id}] is not accessible to instructor [{instructor.email}].")
    if permission is not None and not instructor.privileges.has_privilege(permission):
        _deny(user, f"Course [{instructor.course_id}] is not accessible to instructor "
                    f"[{instructor.email}] for privilege [{permission.value}].")


def check_delete_instructor_access(logic: Logic, user: UserInfo, course_id: str,
                                   target_google_id: str | None, target_email: str | None) -> None:
    """
    Удалять инструктора может администратор, сам инструктор (свою роль
    всегда, независимо от флагов) или инструктор того же курса с правом
    canmodifyinstructor.
    """
    verify_logged_in(user)
    if user.is_admin:
        return
    acting = logic.get_instructor_by_google_id(course_id, user.google_id)
    if acting is not None:
        if target_google_id is not None and target_google_id == user.google_id:
            return
        if target_email is not None and target_email.strip().lower() == acting.email:
            return
    verify_accessible(user, acting, logic.get_course(course_id), InstructorPermission.CAN_MODIFY_INSTRUCTOR)


def check_course_member_access(logic: Logic, user: UserInfo, course_id: str,
                               allow_students: bool = False) -> None:
    verify_logged_in(user)
    if user.is_admin:
        return
    if logic.get_instructor_by_google_id(course_id, user.google_id) is not None:
        return
    if allow_students and logic.get_student_by_google_id(course_id, user.google_id) is not None:
        return
    _deny(user, f"You are not a member of course [{course_id}].")


def check_course_privilege(logic: Logic, user: UserInfo, course_id: str,
                           permission: InstructorPermission) -> None:
    verify_logged_in(user)
    if user.is_admin:
        return
    acting = logic.get_instructor_by_google_id(course_id, user.google_id)
    verify_accessible(user, acting, logic.get_course(course_id), permission)
