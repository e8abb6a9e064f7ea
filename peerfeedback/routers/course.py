from __future__ import annotations

from typing import Optional

from fastapi import APIRouter, Depends, Query

from peerfeedback.errors import EntityDoesNotExistError, EntityNotFoundError, InvalidOperationError
from peerfeedback.logic import Logic, get_logic
from peerfeedback.schemas.course import CourseData
from peerfeedback.schemas.output import MessageOutput
from peerfeedback.utils.auth import UserInfo, get_current_user
from peerfeedback.utils.gatekeeper import check_course_member_access, check_course_privilege
from peerfeedback.utils.params import get_non_null_param
from peerfeedback.utils.privileges import InstructorPermission

router = APIRouter(prefix="/webapi", tags=["Courses"])


@router.get("/course", response_model=CourseData)
def get_course(
    courseid: Optional[str] = Query(None),
    logic: Logic = Depends(get_logic),
    user: UserInfo = Depends(get_current_user),
):
    course_id = get_non_null_param("courseid", courseid)
    check_course_member_access(logic, user, course_id, allow_students=True)
    course = logic.get_course(course_id)
    if course is None:
        raise EntityNotFoundError("No course with id: " + course_id)
    return course


@router.put("/bin/course", response_model=CourseData)
def bin_course(
    courseid: Optional[str] = Query(None),
    logic: Logic = Depends(get_logic),
    user: UserInfo = Depends(get_current_user),
):
    """Перемещает курс в корзину (мягкое удаление)."""
    course_id = get_non_null_param("courseid", courseid)
    check_course_privilege(logic, user, course_id, InstructorPermission.CAN_MODIFY_COURSE)
    try:
        return logic.move_course_to_recycle_bin(course_id)
    except EntityDoesNotExistError as e:
        raise EntityNotFoundError(e.message) from e


@router.delete("/bin/course", response_model=CourseData)
def restore_course(
    courseid: Optional[str] = Query(None),
    logic: Logic = Depends(get_logic),
    user: UserInfo = Depends(get_current_user),
):
    course_id = get_non_null_param("courseid", courseid)
    check_course_privilege(logic, user, course_id, InstructorPermission.CAN_MODIFY_COURSE)
    try:
        return logic.restore_course_from_recycle_bin(course_id)
    except EntityDoesNotExistError as e:
        raise EntityNotFoundError(e.message) from e


@router.delete("/course", response_model=MessageOutput)
def delete_course(
    courseid: Optional[str] = Query(None),
    logic: Logic = Depends(get_logic),
    user: UserInfo = Depends(get_current_user),
):
    """Окончательно удаляет курс из корзины вместе со всеми зависимыми данными."""
    course_id = get_non_null_param("courseid", courseid)
    check_course_privilege(logic, user, course_id, InstructorPermission.CAN_MODIFY_COURSE)
    course = logic.get_course(course_id)
    if course is not None and not course.is_course_deleted:
        raise InvalidOperationError("The course must be moved to the recycle bin before it can be deleted.")
    logic.delete_course_cascade(course_id)
    return MessageOutput(message="OK")
