from __future__ import annotations

import logging
from typing import Optional

from fastapi import APIRouter, Depends, Query, status
from fastapi.responses import JSONResponse

from peerfeedback.errors import (
    EntityDoesNotExistError,
    EntityNotFoundError,
    InstructorUpdateError,
    InvalidHttpParameterError,
    InvalidOperationError,
    PeerFeedbackError,
)
from peerfeedback.logic import LAST_INSTRUCTOR_MESSAGE, Logic, get_logic
from peerfeedback.models import Instructor
from peerfeedback.schemas.instructor import InstructorData, InstructorsData
from peerfeedback.schemas.output import MessageOutput, RegenerateKeyData
from peerfeedback.utils.auth import UserInfo, get_current_user
from peerfeedback.utils.emails import (
    EmailGenerator,
    EmailSender,
    EmailType,
    get_email_generator,
    get_email_sender,
)
from peerfeedback.utils.gatekeeper import (
    check_course_member_access,
    check_delete_instructor_access,
    verify_admin,
)
from peerfeedback.utils.params import get_non_null_param
from peerfeedback.utils.sanitization import sanitize_google_id

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/webapi", tags=["Instructors"])

SUCCESSFUL_DELETION = "Instructor is successfully deleted."

SUCCESSFUL_REGENERATION = "Instructor's key for this course has been successfully regenerated,"
SUCCESSFUL_REGENERATION_WITH_EMAIL_SENT = SUCCESSFUL_REGENERATION + " and the email has been sent."
SUCCESSFUL_REGENERATION_BUT_EMAIL_FAILED = SUCCESSFUL_REGENERATION + " but the email failed to send."
UNSUCCESSFUL_REGENERATION = "Regeneration of the instructor's key was unsuccessful."


def _to_data(instructor: Instructor) -> InstructorData:
    return InstructorData(
        id=instructor.id,
        course_id=instructor.course_id,
        google_id=instructor.google_id,
        name=instructor.name,
        email=instructor.email,
        role=instructor.role,
        display_name=instructor.display_name,
        is_displayed_to_students=instructor.is_displayed_to_students,
    )


@router.get("/instructors", response_model=InstructorsData)
def list_instructors(
    courseid: Optional[str] = Query(None),
    logic: Logic = Depends(get_logic),
    user: UserInfo = Depends(get_current_user),
):
    course_id = get_non_null_param("courseid", courseid)
    check_course_member_access(logic, user, course_id)
    return InstructorsData(instructors=[_to_data(i) for i in logic.get_instructors_by_course(course_id)])


@router.delete("/instructor", response_model=MessageOutput)
def delete_instructor(
    courseid: Optional[str] = Query(None),
    instructorid: Optional[str] = Query(None),
    instructoremail: Optional[str] = Query(None),
    logic: Logic = Depends(get_logic),
    user: UserInfo = Depends(get_current_user),
):
    """
    Удаляет инструктора из курса по google id или по email.

    Для несуществующего курса или инструктора ответ тот же, что и при настоящем
    удалении: по ответу нельзя узнать, существует ли курс. Последнего
    инструктора курса удалить нельзя.
    """
    course_id = get_non_null_param("courseid", courseid)
    has_id = bool(instructorid and instructorid.strip())
    has_email = bool(instructoremail and instructoremail.strip())
    if has_id == has_email:
        raise InvalidHttpParameterError(
            "Exactly one of the [instructorid] and [instructoremail] HTTP parameters must be given."
        )
    google_id = sanitize_google_id(instructorid) if has_id else None
    email = instructoremail.strip() if has_email else None

    check_delete_instructor_access(logic, user, course_id, google_id, email)

    if logic.get_course(course_id) is None:
        return MessageOutput(message=SUCCESSFUL_DELETION)

    if google_id is not None:
        instructor = logic.get_instructor_by_google_id(course_id, google_id)
    else:
        instructor = logic.get_instructor_for_email(course_id, email)
    if instructor is None:
        return MessageOutput(message=SUCCESSFUL_DELETION)

    if len(logic.get_instructors_by_course(course_id)) <= 1:
        raise InvalidOperationError(LAST_INSTRUCTOR_MESSAGE)

    # каскад всегда по email: он стабилен, даже если искали по google id
    logic.delete_instructor_cascade(course_id, instructor.email)
    return MessageOutput(message=SUCCESSFUL_DELETION)


@router.post(
    "/instructor/key",
    response_model=RegenerateKeyData,
    responses={status.HTTP_500_INTERNAL_SERVER_ERROR: {"model": MessageOutput}},
)
def regenerate_instructor_key(
    courseid: Optional[str] = Query(None),
    instructoremail: Optional[str] = Query(None),
    logic: Logic = Depends(get_logic),
    email_generator: EmailGenerator = Depends(get_email_generator),
    email_sender: EmailSender = Depends(get_email_sender),
    user: UserInfo = Depends(get_current_user),
):
    """
    Выдаёт инструктору новый ключ регистрации и пытается отправить ему письмо
    с обновлёнными ссылками. Сбой письма не отменяет смену ключа.
    """
    course_id = get_non_null_param("courseid", courseid)
    email = get_non_null_param("instructoremail", instructoremail)
    verify_admin(user)

    try:
        instructor = logic.regenerate_instructor_registration_key(course_id, email)
    except EntityDoesNotExistError as e:
        raise EntityNotFoundError(e.message) from e
    except InstructorUpdateError as e:
        logger.warning("Key regeneration for %s in %s failed: %s", email, course_id, e.message)
        return JSONResponse(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            content=MessageOutput(message=UNSUCCESSFUL_REGENERATION).model_dump(),
        )

    if _send_regenerated_links(email_generator, email_sender, instructor):
        message = SUCCESSFUL_REGENERATION_WITH_EMAIL_SENT
    else:
        message = SUCCESSFUL_REGENERATION_BUT_EMAIL_FAILED
    return RegenerateKeyData(message=message, new_registration_key=instructor.reg_key)


def _send_regenerated_links(email_generator: EmailGenerator, email_sender: EmailSender,
                            instructor: Instructor) -> bool:
    try:
        email = email_generator.generate_feedback_session_summary_of_course(
            instructor.course_id, instructor.email, EmailType.INSTRUCTOR_COURSE_LINKS_REGENERATED
        )
    except PeerFeedbackError as e:
        logger.warning("Could not build regenerated-links email for %s: %s", instructor.email, e.message)
        return False
    sending_status = email_sender.send_email(email)
    if not sending_status.is_success():
        logger.warning("Regenerated-links email to %s was not sent: %s",
                       instructor.email, sending_status.message)
    return sending_status.is_success()
