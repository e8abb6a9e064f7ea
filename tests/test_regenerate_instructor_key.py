from __future__ import annotations

import pytest

from conftest import login_as, login_as_admin
from peerfeedback.errors import EntityDoesNotExistError, InstructorUpdateError
from peerfeedback.models import Course, Instructor
from peerfeedback.routers.instructor import (
    SUCCESSFUL_REGENERATION_BUT_EMAIL_FAILED,
    SUCCESSFUL_REGENERATION_WITH_EMAIL_SENT,
    UNSUCCESSFUL_REGENERATION,
)
from peerfeedback.utils.emails import EmailType, EmailWrapper

URL = "/webapi/instructor/key"


@pytest.fixture()
def instructor(mock_email_generator) -> Instructor:
    course = Course("idOfTypicalCourse1", "Typical Course 1", "UTC", "Test Institute 1")
    instructor = Instructor(course, "Instructor One", "instr1@course1.tmt")
    mock_email_generator.generate_feedback_session_summary_of_course.return_value = EmailWrapper(
        recipient=instructor.email,
        subject="links regenerated",
        content="<p>new links</p>",
        type=EmailType.INSTRUCTOR_COURSE_LINKS_REGENERATED,
    )
    return instructor


def _params(instructor: Instructor) -> dict:
    return {"courseid": instructor.course_id, "instructoremail": instructor.email}


def test_successful_regeneration_with_email_sent(client, mock_logic, mock_email_generator,
                                                 mock_email_sender, instructor):
    mock_logic.regenerate_instructor_registration_key.return_value = instructor

    response = client.post(URL, params=_params(instructor), headers=login_as_admin())

    assert response.status_code == 200
    body = response.json()
    assert body["message"] == SUCCESSFUL_REGENERATION_WITH_EMAIL_SENT
    assert body["new_registration_key"] == instructor.reg_key
    mock_logic.regenerate_instructor_registration_key.assert_called_once_with(
        instructor.course_id, instructor.email)
    mock_email_generator.generate_feedback_session_summary_of_course.assert_called_once_with(
        instructor.course_id, instructor.email, EmailType.INSTRUCTOR_COURSE_LINKS_REGENERATED)
    assert len(mock_email_sender.sent) == 1


def test_successful_regeneration_with_email_failed(client, mock_logic, mock_email_generator,
                                                   mock_email_sender, instructor):
    mock_logic.regenerate_instructor_registration_key.return_value = instructor
    mock_email_sender.should_fail = True

    response = client.post(URL, params=_params(instructor), headers=login_as_admin())

    assert response.status_code == 200
    body = response.json()
    assert body["message"] == SUCCESSFUL_REGENERATION_BUT_EMAIL_FAILED
    assert body["new_registration_key"] is not None
    mock_email_generator.generate_feedback_session_summary_of_course.assert_called_once()
    assert mock_email_sender.sent == []


def test_email_generation_failure_keeps_regenerated_key(client, mock_logic, mock_email_generator,
                                                        mock_email_sender, instructor):
    mock_logic.regenerate_instructor_registration_key.return_value = instructor
    mock_email_generator.generate_feedback_session_summary_of_course.side_effect = \
        EntityDoesNotExistError("Course does not exist.")

    response = client.post(URL, params=_params(instructor), headers=login_as_admin())

    assert response.status_code == 200
    assert response.json()["message"] == SUCCESSFUL_REGENERATION_BUT_EMAIL_FAILED
    assert response.json()["new_registration_key"] == instructor.reg_key
    assert mock_email_sender.sent == []


def test_entity_does_not_exist_returns_not_found(client, mock_logic, mock_email_generator,
                                                 mock_email_sender, instructor):
    mock_logic.regenerate_instructor_registration_key.side_effect = \
        EntityDoesNotExistError("Instructor not found")

    response = client.post(URL, params=_params(instructor), headers=login_as_admin())

    assert response.status_code == 404
    assert response.json()["message"] == "Instructor not found"
    mock_email_generator.generate_feedback_session_summary_of_course.assert_not_called()
    assert mock_email_sender.sent == []


def test_instructor_update_failure_returns_server_error(client, mock_logic, mock_email_generator,
                                                       mock_email_sender, instructor):
    mock_logic.regenerate_instructor_registration_key.side_effect = \
        InstructorUpdateError("Instructor update failed")

    response = client.post(URL, params=_params(instructor), headers=login_as_admin())

    assert response.status_code == 500
    assert response.json()["message"] == UNSUCCESSFUL_REGENERATION
    mock_logic.regenerate_instructor_registration_key.assert_called_once()
    mock_email_generator.generate_feedback_session_summary_of_course.assert_not_called()
    assert mock_email_sender.sent == []


@pytest.mark.parametrize("params", [
    {},
    {"courseid": "idOfTypicalCourse1"},
    {"instructoremail": "instr1@course1.tmt"},
])
def test_missing_parameters_are_rejected(client, mock_logic, params):
    response = client.post(URL, params=params, headers=login_as_admin())

    assert response.status_code == 400
    mock_logic.regenerate_instructor_registration_key.assert_not_called()


@pytest.mark.parametrize("google_id, expected_status", [
    ("instructor-googleId", 403),
    ("student-googleId", 403),
    (None, 401),
])
def test_only_admin_can_regenerate(client, mock_logic, mock_email_sender, instructor,
                                   google_id, expected_status):
    mock_logic.regenerate_instructor_registration_key.return_value = instructor

    response = client.post(URL, params=_params(instructor), headers=login_as(google_id))

    assert response.status_code == expected_status
    mock_logic.regenerate_instructor_registration_key.assert_not_called()
    assert mock_email_sender.sent == []
