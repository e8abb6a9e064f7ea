from __future__ import annotations

import pytest
from fastapi.testclient import TestClient

from conftest import login_as, login_as_admin
from peerfeedback.logic import LAST_INSTRUCTOR_MESSAGE
from peerfeedback.models import Account, Course, Instructor
from peerfeedback.routers.instructor import SUCCESSFUL_DELETION
from peerfeedback.utils.privileges import InstructorPermission, InstructorPrivileges

URL = "/webapi/instructor"


def _setup_instructor(course: Course, google_id: str, name: str, email: str) -> Instructor:
    privileges = InstructorPrivileges()
    privileges.update_privilege(InstructorPermission.CAN_MODIFY_INSTRUCTOR, True)
    instructor = Instructor(course, name, email, True, "", privileges=privileges)
    instructor.account = Account(google_id, name, email)
    return instructor


@pytest.fixture()
def course() -> Course:
    return Course("course-id", "Course Name", "UTC", "institute")


@pytest.fixture()
def instructors(course, mock_logic):
    instructor = _setup_instructor(course, "instructor-googleId", "name", "instructoremail@tm.tmt")
    instructor2 = _setup_instructor(course, "instructor2-googleId", "name2", "instructor2email@tm.tmt")
    by_google_id = {i.google_id: i for i in (instructor, instructor2)}
    by_email = {i.email: i for i in (instructor, instructor2)}

    mock_logic.get_course.side_effect = lambda cid: course if cid == course.id else None
    mock_logic.get_instructor_by_google_id.side_effect = \
        lambda cid, gid: by_google_id.get(gid) if cid == course.id else None
    mock_logic.get_instructor_for_email.side_effect = \
        lambda cid, email: by_email.get(email) if cid == course.id else None
    mock_logic.get_instructors_by_course.return_value = [instructor, instructor2]
    return instructor, instructor2


def _delete(client: TestClient, params: dict, headers: dict | None = None):
    return client.delete(URL, params=params, headers=login_as_admin() if headers is None else headers)


def test_delete_instructor_by_google_id(client, mock_logic, course, instructors):
    _, instructor2 = instructors
    response = _delete(client, {"courseid": course.id, "instructorid": instructor2.google_id})

    assert response.status_code == 200
    assert response.json()["message"] == SUCCESSFUL_DELETION
    mock_logic.delete_instructor_cascade.assert_called_once_with(course.id, instructor2.email)


def test_delete_instructor_by_email(client, mock_logic, course, instructors):
    _, instructor2 = instructors
    response = _delete(client, {"courseid": course.id, "instructoremail": instructor2.email})

    assert response.status_code == 200
    assert response.json()["message"] == "Instructor is successfully deleted."
    mock_logic.delete_instructor_cascade.assert_called_once_with(course.id, instructor2.email)


@pytest.mark.parametrize("by", ["instructorid", "instructoremail"])
def test_delete_last_instructor_is_rejected(client, mock_logic, course, instructors, by):
    instructor, _ = instructors
    mock_logic.get_instructors_by_course.return_value = [instructor]
    value = instructor.google_id if by == "instructorid" else instructor.email

    response = _delete(client, {"courseid": course.id, by: value})

    assert response.status_code == 400
    assert response.json()["message"] == (
        "The instructor you are trying to delete is the last instructor in the course. "
        "Deleting the last instructor from the course is not allowed."
    )
    assert response.json()["message"] == LAST_INSTRUCTOR_MESSAGE
    mock_logic.delete_instructor_cascade.assert_not_called()


def test_instructor_deletes_own_role_without_privilege(client, mock_logic, course, instructors):
    instructor, _ = instructors
    no_privileges = InstructorPrivileges()
    no_privileges.update_privilege(InstructorPermission.CAN_MODIFY_INSTRUCTOR, False)
    instructor.privileges = no_privileges

    response = _delete(client, {"courseid": course.id, "instructorid": instructor.google_id},
                       headers=login_as(instructor.google_id))

    assert response.status_code == 200
    assert response.json()["message"] == SUCCESSFUL_DELETION
    mock_logic.delete_instructor_cascade.assert_called_once_with(course.id, instructor.email)


def test_instructor_deletes_own_role_by_email(client, mock_logic, course, instructors):
    instructor, _ = instructors
    instructor.privileges.update_privilege(InstructorPermission.CAN_MODIFY_INSTRUCTOR, False)

    response = _delete(client, {"courseid": course.id, "instructoremail": instructor.email},
                       headers=login_as(instructor.google_id))

    assert response.status_code == 200
    mock_logic.delete_instructor_cascade.assert_called_once_with(course.id, instructor.email)


def test_delete_non_existent_instructor_by_google_id_fails_silently(client, mock_logic, course, instructors):
    response = _delete(client, {"courseid": course.id, "instructorid": "fake-googleId"})

    assert response.status_code == 200
    assert response.json()["message"] == SUCCESSFUL_DELETION
    mock_logic.delete_instructor_cascade.assert_not_called()


def test_delete_non_existent_instructor_by_email_fails_silently(client, mock_logic, course, instructors):
    response = _delete(client, {"courseid": course.id, "instructoremail": "fake-instructoremail@tm.tmt"})

    assert response.status_code == 200
    assert response.json()["message"] == SUCCESSFUL_DELETION
    mock_logic.delete_instructor_cascade.assert_not_called()


def test_course_does_not_exist_fails_silently(client, mock_logic, instructors):
    instructor, _ = instructors
    response = _delete(client, {"courseid": "non-existent-course-id", "instructorid": instructor.google_id})

    assert response.status_code == 200
    assert response.json()["message"] == SUCCESSFUL_DELETION
    mock_logic.delete_instructor_cascade.assert_not_called()


@pytest.mark.parametrize("params", [
    {},
    {"instructorid": "instructor-googleId"},
    {"instructoremail": "instructoremail@tm.tmt"},
    {"courseid": "course-id"},
    {"courseid": "course-id", "instructorid": "instructor-googleId",
     "instructoremail": "instructoremail@tm.tmt"},
])
def test_invalid_parameters_are_rejected(client, mock_logic, instructors, params):
    response = _delete(client, params)

    assert response.status_code == 400
    mock_logic.get_course.assert_not_called()
    mock_logic.delete_instructor_cascade.assert_not_called()


def test_admin_can_access(client, course, instructors):
    instructor, _ = instructors
    response = _delete(client, {"courseid": course.id, "instructorid": instructor.google_id})
    assert response.status_code == 200


def test_instructor_with_permission_can_delete_other(client, mock_logic, course, instructors):
    instructor, instructor2 = instructors
    response = _delete(client, {"courseid": course.id, "instructorid": instructor2.google_id},
                       headers=login_as(instructor.google_id))

    assert response.status_code == 200
    mock_logic.delete_instructor_cascade.assert_called_once_with(course.id, instructor2.email)


def test_instructor_without_permission_cannot_delete_other(client, mock_logic, course, instructors):
    instructor, instructor2 = instructors
    privileges = InstructorPrivileges()
    privileges.update_privilege(InstructorPermission.CAN_MODIFY_INSTRUCTOR, False)
    instructor.privileges = privileges

    response = _delete(client, {"courseid": course.id, "instructorid": instructor2.google_id},
                       headers=login_as(instructor.google_id))

    assert response.status_code == 403
    mock_logic.delete_instructor_cascade.assert_not_called()


def test_instructor_in_different_course_cannot_access(client, mock_logic, course, instructors):
    instructor, _ = instructors
    response = _delete(client, {"courseid": course.id, "instructorid": instructor.google_id},
                       headers=login_as("instructor3-googleId"))

    assert response.status_code == 403
    mock_logic.delete_instructor_cascade.assert_not_called()


def test_student_cannot_access(client, mock_logic, course, instructors):
    instructor, _ = instructors
    response = _delete(client, {"courseid": course.id, "instructorid": instructor.google_id},
                       headers=login_as("student-googleId"))

    assert response.status_code == 403
    mock_logic.delete_instructor_cascade.assert_not_called()


def test_logged_out_cannot_access(client, mock_logic, course, instructors):
    instructor, _ = instructors
    response = _delete(client, {"courseid": course.id, "instructorid": instructor.google_id}, headers={})

    assert response.status_code == 401
    mock_logic.delete_instructor_cascade.assert_not_called()
